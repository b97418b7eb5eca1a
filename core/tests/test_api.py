from django.test import SimpleTestCase
from rest_framework.exceptions import NotAuthenticated

from core.api import engine_exception_handler
from core.exceptions import InsufficientStockError, NotFoundError, ValidationError


class EngineExceptionHandlerTests(SimpleTestCase):
    """
    GUARANTEES:
    - Engine errors map to their HTTP status with a stable error code
    - Non-engine errors fall through to DRF's handler
    """

    def test_insufficient_stock_is_conflict(self):
        exc = InsufficientStockError(product_id="p-1", product_name="Ring", requested=3, available=1)
        response = engine_exception_handler(exc, {})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["error"]["code"], "insufficient_stock")
        self.assertEqual(response.data["error"]["context"]["available"], 1)
        self.assertIn("Ring", response.data["error"]["message"])

    def test_not_found_and_validation(self):
        self.assertEqual(engine_exception_handler(NotFoundError.for_entity("Sale", "x"), {}).status_code, 404)

        response = engine_exception_handler(ValidationError("bad discount"), {})
        self.assertEqual(response.status_code, 400)
        self.assertNotIn("context", response.data["error"])

    def test_drf_errors_fall_through(self):
        response = engine_exception_handler(NotAuthenticated(), {})
        self.assertEqual(response.status_code, 401)
        self.assertIn("detail", response.data)
