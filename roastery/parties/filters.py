import django_filters
from django.db.models import Q
from .models import Supplier, Client


class PartyFilter(django_filters.FilterSet):
    """Search and active-flag filtering shared by suppliers and clients"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    active = django_filters.BooleanFilter(field_name='is_active')
    country = django_filters.CharFilter(field_name='country', lookup_expr='iexact')

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(contact_person__icontains=value) |
            Q(email__icontains=value) |
            Q(phone__icontains=value)
        )


class SupplierFilter(PartyFilter):
    class Meta:
        model = Supplier
        fields = ['search', 'active', 'country']


class ClientFilter(PartyFilter):
    class Meta:
        model = Client
        fields = ['search', 'active', 'country']
