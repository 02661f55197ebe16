import django_filters
from .models import CostEntry, IndirectCost


class IndirectCostFilter(django_filters.FilterSet):
    year = django_filters.NumberFilter()
    is_closed = django_filters.BooleanFilter()

    class Meta:
        model = IndirectCost
        fields = ['year', 'is_closed']


class CostEntryFilter(django_filters.FilterSet):
    category = django_filters.ChoiceFilter(choices=CostEntry.CATEGORY_CHOICES)
    date_from = django_filters.DateFilter(field_name='entry_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='entry_date', lookup_expr='lte')

    class Meta:
        model = CostEntry
        fields = ['category', 'date_from', 'date_to']
