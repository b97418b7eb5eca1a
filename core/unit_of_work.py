# core/unit_of_work.py

"""
UNIT OF WORK

One atomic, all-or-nothing group of writes spanning Sale, Product,
InventoryTransaction and Customer rows.

GUARANTEES:
- Every write enclosed in the block commits together or not at all.
- IntegrityError (e.g. duplicate invoice number) surfaces as ConflictError,
  after the rollback has already happened.
- Side effects registered with `uow.on_commit(...)` run ONLY after the
  outermost transaction commits, and their failure is logged, never raised.
- Nothing here retries. A caller that hits ConflictError re-runs the whole
  operation from scratch.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager

from django.db import IntegrityError, transaction

from core.exceptions import ConflictError

logger = logging.getLogger("sales")


class UnitOfWork:
    def __init__(self, label: str):
        self.label = label
        self._pending = 0

    def on_commit(self, func, *args, **kwargs) -> None:
        self._pending += 1
        transaction.on_commit(lambda: run_side_effect(self.label, func, *args, **kwargs))

    @property
    def pending_side_effects(self) -> int:
        return self._pending


def run_side_effect(label: str, func, *args, **kwargs) -> None:
    try:
        func(*args, **kwargs)
    except Exception:
        logger.exception(
            "Post-commit side effect failed",
            extra={"operation": label, "side_effect": getattr(func, "__name__", repr(func))},
        )


@contextmanager
def unit_of_work(label: str):
    uow = UnitOfWork(label)
    try:
        with transaction.atomic():
            yield uow
    except IntegrityError as exc:
        logger.warning(
            "Unit of work aborted on integrity conflict",
            extra={"operation": label, "error": str(exc)},
        )
        raise ConflictError(f"Conflicting write during {label}. Retry the operation.") from exc
