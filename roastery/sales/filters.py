import django_filters
from .models import SalesOrder


class SalesOrderFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=SalesOrder.STATUS_CHOICES)
    client_id = django_filters.NumberFilter(field_name='client_id')
    search = django_filters.CharFilter(field_name='so_number', lookup_expr='icontains')
    date_from = django_filters.DateFilter(field_name='order_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='order_date', lookup_expr='lte')

    class Meta:
        model = SalesOrder
        fields = ['status', 'client_id', 'search', 'date_from', 'date_to']
