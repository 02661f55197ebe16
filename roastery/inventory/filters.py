import django_filters
from django.db.models import Q
from .models import GreenCoffeeLot


class GreenCoffeeLotFilter(django_filters.FilterSet):
    """Filter green coffee lots by SKU, derived status, supplier and receipt date"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    sku = django_filters.CharFilter(field_name='sku', lookup_expr='iexact')
    status = django_filters.ChoiceFilter(
        method='filter_status',
        choices=[(GreenCoffeeLot.STATUS_AVAILABLE, 'Available'), (GreenCoffeeLot.STATUS_DEPLETED, 'Depleted')],
    )
    supplier = django_filters.NumberFilter(field_name='supplier_id')
    received_from = django_filters.DateFilter(field_name='received_at', lookup_expr='date__gte')
    received_to = django_filters.DateFilter(field_name='received_at', lookup_expr='date__lte')

    class Meta:
        model = GreenCoffeeLot
        fields = ['search', 'sku', 'status', 'supplier', 'received_from', 'received_to']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(lot_number__icontains=value) | Q(sku__icontains=value))

    def filter_status(self, queryset, name, value):
        if value == GreenCoffeeLot.STATUS_AVAILABLE:
            return queryset.filter(current_weight__gt=0)
        return queryset.filter(current_weight__lte=0)
