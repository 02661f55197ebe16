import django_filters
from .models import PurchaseOrder


class PurchaseOrderFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=PurchaseOrder.STATUS_CHOICES)
    supplier_id = django_filters.NumberFilter(field_name='supplier_id')
    search = django_filters.CharFilter(field_name='po_number', lookup_expr='icontains')
    date_from = django_filters.DateFilter(field_name='order_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='order_date', lookup_expr='lte')

    class Meta:
        model = PurchaseOrder
        fields = ['status', 'supplier_id', 'search', 'date_from', 'date_to']
