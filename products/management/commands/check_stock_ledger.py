# products/management/commands/check_stock_ledger.py

from __future__ import annotations

from django.core.management.base import BaseCommand

from products.models import Product
from products.services.inventory_ledger import stock_conservation_report


class Command(BaseCommand):
    help = "Verify stock conservation: quantity == opening_quantity + Σ signed ledger deltas, per product."

    def add_arguments(self, parser):
        parser.add_argument("--shop", dest="shop_id", help="Limit the check to one shop (UUID)")
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Fail (non-zero exit) if any product is inconsistent.",
        )

    def handle(self, *args, **options):
        qs = Product.objects.all().order_by("shop_id", "sku")
        if options.get("shop_id"):
            qs = qs.filter(shop_id=options["shop_id"])

        self.stdout.write(self.style.MIGRATE_HEADING("Stock ledger conservation check"))

        checked = 0
        errors = 0
        for product in qs.iterator():
            checked += 1
            report = stock_conservation_report(product)
            if report.is_consistent:
                continue
            errors += 1
            self.stderr.write(
                self.style.ERROR(
                    f"[FAIL] {product.sku} ({product.pk}): quantity={report.current_quantity} "
                    f"expected={report.expected_quantity} "
                    f"(opening={report.opening_quantity}, ledger={report.ledger_delta:+d})"
                )
            )

        if errors:
            self.stderr.write(self.style.ERROR(f"{errors} of {checked} product(s) inconsistent"))
        else:
            self.stdout.write(self.style.SUCCESS(f"[OK] {checked} product(s) consistent"))

        return self._exit(options.get("strict") and errors > 0)

    def _exit(self, fail: bool):
        if fail:
            raise SystemExit(1)
        return None
