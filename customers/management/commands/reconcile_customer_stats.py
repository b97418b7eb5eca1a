# customers/management/commands/reconcile_customer_stats.py

from __future__ import annotations

from django.core.management.base import BaseCommand

from customers.models import Customer
from customers.services.accumulator import rebuild_statistics, statistics_drift


class Command(BaseCommand):
    help = "Compare customer running aggregates with sale history and optionally rebuild them."

    def add_arguments(self, parser):
        parser.add_argument("--shop", dest="shop_id", help="Limit to one shop (UUID)")
        parser.add_argument(
            "--fix",
            action="store_true",
            help="Rebuild every drifted customer from sale history.",
        )

    def handle(self, *args, **options):
        qs = Customer.objects.all().order_by("shop_id", "name")
        if options.get("shop_id"):
            qs = qs.filter(shop_id=options["shop_id"])

        self.stdout.write(self.style.MIGRATE_HEADING("Customer statistics reconciliation"))

        drifted = 0
        for customer in qs.iterator():
            drift = statistics_drift(customer)["drift"]
            if not drift:
                continue
            drifted += 1
            fields = ", ".join(f"{k}: {v['stored']} -> {v['derived']}" for k, v in drift.items())
            self.stderr.write(self.style.WARNING(f"[DRIFT] {customer.name} ({customer.pk}): {fields}"))
            if options.get("fix"):
                rebuild_statistics(customer_id=customer.pk)
                self.stdout.write(self.style.SUCCESS(f"[FIXED] {customer.name}"))

        if drifted:
            self.stdout.write(f"{drifted} customer(s) drifted")
        else:
            self.stdout.write(self.style.SUCCESS("[OK] All customer aggregates match sale history"))
