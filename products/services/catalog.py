# products/services/catalog.py

"""
PRODUCT CATALOG SERVICE

Creating a product never writes `quantity` directly: the product starts at
zero and any opening stock enters through the ledger as an IN row
referencing the product's creation.
"""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as ModelValidationError

from core.exceptions import ValidationError
from core.side_effects import emit_audit_event, invalidate_shop_cache
from core.unit_of_work import unit_of_work
from products.models import InventoryTransaction, Product
from products.services.inventory_ledger import apply_stock_change

logger = logging.getLogger("inventory")


def create_product(*, shop, data: dict, initial_quantity: int = 0, user=None) -> Product:
    if initial_quantity < 0:
        raise ValidationError("initial_quantity cannot be negative")

    fields = dict(data)
    fields.pop("quantity", None)

    with unit_of_work("product.create") as uow:
        product = Product(shop=shop, quantity=0, **fields)
        try:
            product.full_clean(exclude=["shop"], validate_unique=False)
        except ModelValidationError as exc:
            raise ValidationError("; ".join(exc.messages)) from exc
        product.save()

        if initial_quantity:
            apply_stock_change(
                product=product,
                quantity=initial_quantity,
                direction=InventoryTransaction.Direction.IN,
                transaction_type=InventoryTransaction.TransactionType.IN,
                reason="Initial stock",
                reference_type=InventoryTransaction.ReferenceType.PRODUCT_CREATION,
                reference_id=product.pk,
                reference_number=product.sku,
                value=product.cost_price * initial_quantity,
                user=user,
            )

        uow.on_commit(invalidate_shop_cache, shop.pk)
        uow.on_commit(
            emit_audit_event,
            action="product.create",
            actor_id=getattr(user, "pk", None),
            shop_id=shop.pk,
            entity="product",
            entity_id=product.pk,
            sku=product.sku,
            initial_quantity=initial_quantity,
        )

    logger.info("Product created", extra={"product_id": str(product.pk), "sku": product.sku})
    return product
