# sales/models/sale_payment.py

from django.db import models

from core.models import PaymentRecord


class SalePayment(PaymentRecord):
    """
    Append-only payment event on a Sale (recorded by the payment tracker).
    """

    sale = models.ForeignKey("sales.Sale", on_delete=models.PROTECT, related_name="payments")

    class Meta(PaymentRecord.Meta):
        indexes = [
            models.Index(fields=["sale", "paid_at"]),
            models.Index(fields=["mode"]),
        ]
