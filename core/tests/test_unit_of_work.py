from unittest import mock

from django.test import TestCase

from core.exceptions import ConflictError, ValidationError
from core.tests.factories import make_customer, make_shop
from core.unit_of_work import unit_of_work
from customers.models import Customer


class UnitOfWorkTests(TestCase):
    """
    GUARANTEES:
    - Side effects run only after a successful commit
    - A rolled-back unit drops its side effects
    - A failing side effect is logged, never raised
    - IntegrityError surfaces as ConflictError after rollback
    """

    def setUp(self):
        self.shop = make_shop()

    def test_side_effect_runs_after_commit(self):
        effect = mock.Mock()

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with unit_of_work("test.commit") as uow:
                uow.on_commit(effect, 1, flag=True)
                effect.assert_not_called()
                self.assertEqual(uow.pending_side_effects, 1)

        self.assertEqual(len(callbacks), 1)
        effect.assert_called_once_with(1, flag=True)

    def test_rollback_drops_side_effects(self):
        effect = mock.Mock()

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.assertRaises(ValidationError):
                with unit_of_work("test.rollback") as uow:
                    make_customer(shop=self.shop)
                    uow.on_commit(effect)
                    raise ValidationError("nope")

        self.assertEqual(callbacks, [])
        effect.assert_not_called()
        self.assertFalse(Customer.objects.exists())

    def test_failing_side_effect_is_logged_not_raised(self):
        def broken():
            raise RuntimeError("cache down")

        with self.assertLogs("sales", level="ERROR") as logs:
            with self.captureOnCommitCallbacks(execute=True):
                with unit_of_work("test.broken") as uow:
                    uow.on_commit(broken)

        self.assertIn("Post-commit side effect failed", logs.output[0])

    def test_integrity_error_becomes_conflict(self):
        make_customer(shop=self.shop, phone="9999999999")

        with self.assertRaises(ConflictError):
            with unit_of_work("test.conflict"):
                make_customer(shop=self.shop, name="Someone Else", phone="9999999999")

        self.assertEqual(Customer.objects.count(), 1)
