# core/exceptions.py

"""
ENGINE ERRORS

Centralized domain errors shared by every transactional service.

Rules:
- Every error is recoverable by the caller and maps to a 4xx response.
- Messages identify the offending entity (sale, product, customer, shop).
- Unexpected exceptions are NOT wrapped here; they abort the unit of work
  and propagate as-is.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base exception for all engine failures."""

    code = "engine_error"
    http_status = 400

    def __init__(self, message: str = "", **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self):
        return self.message


class NotFoundError(EngineError):
    """Raised when a sale, product, customer, supplier or shop is missing."""

    code = "not_found"
    http_status = 404

    @classmethod
    def for_entity(cls, entity: str, identifier) -> "NotFoundError":
        return cls(f"{entity} not found: {identifier}", entity=entity, id=str(identifier))


class ValidationError(EngineError):
    """Raised when a business rule rejects the requested operation."""

    code = "validation_error"
    http_status = 400


class InsufficientStockError(EngineError):
    """Raised when requested quantity exceeds available stock."""

    code = "insufficient_stock"
    http_status = 409

    def __init__(self, *, product_id, product_name: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for {product_name}. "
            f"Requested: {requested}, Available: {available}",
            product_id=str(product_id),
            requested=requested,
            available=available,
        )
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available


class ConflictError(EngineError):
    """Raised on write conflicts such as a duplicate invoice number race."""

    code = "conflict"
    http_status = 409
