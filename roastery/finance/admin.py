from django.contrib import admin
from .models import IndirectCost, CostEntry


@admin.register(IndirectCost)
class IndirectCostAdmin(admin.ModelAdmin):
    list_display = ['tenant', 'year', 'month', 'total_actual', 'estimated_total', 'is_closed']
    list_filter = ['tenant', 'year', 'is_closed']
    readonly_fields = ['total_actual', 'closed_at', 'created_at', 'updated_at']


@admin.register(CostEntry)
class CostEntryAdmin(admin.ModelAdmin):
    list_display = ['tenant', 'entry_date', 'category', 'amount', 'description']
    list_filter = ['tenant', 'category']
    search_fields = ['description']
    date_hierarchy = 'entry_date'
