# sales/api/filters.py

import django_filters
from django.db.models import Q
from django.utils import timezone

from sales.models import Sale


class SaleFilter(django_filters.FilterSet):
    """
    Sales history filters.

    ?status=confirmed&payment_status=partial&customer=<uuid>
    &date_from=YYYY-MM-DD&date_to=YYYY-MM-DD&q=<invoice or customer>
    &min_amount=<n>&max_amount=<n>  (grand_total range, inclusive)
    """

    status = django_filters.ChoiceFilter(choices=Sale.STATUS_CHOICES)
    payment_status = django_filters.ChoiceFilter(choices=Sale.PAYMENT_STATUS_CHOICES)
    approval_status = django_filters.ChoiceFilter(choices=Sale.APPROVAL_CHOICES)
    sale_type = django_filters.ChoiceFilter(choices=Sale.SaleType.choices)
    customer = django_filters.UUIDFilter(field_name="customer_id")
    date_from = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    date_to = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    min_amount = django_filters.NumberFilter(field_name="grand_total", lookup_expr="gte")
    max_amount = django_filters.NumberFilter(field_name="grand_total", lookup_expr="lte")
    overdue = django_filters.BooleanFilter(method="filter_overdue")
    q = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = Sale
        fields = ["status", "payment_status", "approval_status", "sale_type", "customer"]

    def filter_overdue(self, queryset, name, value):
        overdue = Q(due_amount__gt=0, due_date__lt=timezone.localdate())
        return queryset.filter(overdue) if value else queryset.exclude(overdue)

    def filter_search(self, queryset, name, value):
        value = (value or "").strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(invoice_number__icontains=value)
            | Q(customer__name__icontains=value)
            | Q(customer__phone__icontains=value)
        )
