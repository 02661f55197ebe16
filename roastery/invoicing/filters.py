import django_filters
from django.db.models import Q
from django.utils import timezone
from .models import InvoiceBase, SalesInvoice, PurchaseInvoice


class InvoiceFilter(django_filters.FilterSet):
    """payment_status=OVERDUE matches stored and derived overdue invoices"""
    payment_status = django_filters.ChoiceFilter(choices=InvoiceBase.PAYMENT_STATUS_CHOICES, method='filter_payment_status')
    search = django_filters.CharFilter(field_name='invoice_number', lookup_expr='icontains')
    date_from = django_filters.DateFilter(field_name='invoice_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='invoice_date', lookup_expr='lte')

    def filter_payment_status(self, queryset, name, value):
        today = timezone.localdate()
        overdue = Q(payment_status=InvoiceBase.PAYMENT_OVERDUE) | (
            Q(due_date__lt=today) & ~Q(payment_status=InvoiceBase.PAYMENT_PAID)
        )
        if value == InvoiceBase.PAYMENT_OVERDUE:
            return queryset.filter(overdue)
        if value == InvoiceBase.PAYMENT_PAID:
            return queryset.filter(payment_status=value)
        return queryset.filter(payment_status=value).exclude(overdue)


class SalesInvoiceFilter(InvoiceFilter):
    client_id = django_filters.NumberFilter(field_name='client_id')

    class Meta:
        model = SalesInvoice
        fields = ['payment_status', 'search', 'date_from', 'date_to', 'client_id']


class PurchaseInvoiceFilter(InvoiceFilter):
    supplier_id = django_filters.NumberFilter(field_name='supplier_id')

    class Meta:
        model = PurchaseInvoice
        fields = ['payment_status', 'search', 'date_from', 'date_to', 'supplier_id']
