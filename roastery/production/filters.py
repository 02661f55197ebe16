import django_filters
from .models import RoastBatch


class RoastBatchFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=RoastBatch.STATUS_CHOICES)
    product_sku = django_filters.CharFilter(field_name='product_sku', lookup_expr='iexact')
    lot = django_filters.NumberFilter(field_name='lot_id')
    search = django_filters.CharFilter(field_name='batch_number', lookup_expr='icontains')
    roasted_from = django_filters.DateFilter(field_name='roasted_at', lookup_expr='date__gte')
    roasted_to = django_filters.DateFilter(field_name='roasted_at', lookup_expr='date__lte')

    class Meta:
        model = RoastBatch
        fields = ['status', 'product_sku', 'lot', 'search', 'roasted_from', 'roasted_to']
