from django.contrib import admin
from .models import GreenCoffeeLot, StockAdjustment


@admin.register(GreenCoffeeLot)
class GreenCoffeeLotAdmin(admin.ModelAdmin):
    list_display = ['lot_number', 'tenant', 'sku', 'initial_weight', 'current_weight', 'weighted_avg_cost', 'received_at']
    list_filter = ['tenant', 'sku']
    search_fields = ['lot_number', 'sku']
    readonly_fields = ['initial_weight', 'current_weight', 'weighted_avg_cost', 'created_at', 'updated_at']


@admin.register(StockAdjustment)
class StockAdjustmentAdmin(admin.ModelAdmin):
    list_display = ['lot', 'qty_change', 'reason_code', 'adjusted_by', 'created_at']
    list_filter = ['reason_code']
    search_fields = ['lot__lot_number', 'notes']
    readonly_fields = ['tenant', 'lot', 'qty_change', 'reason_code', 'adjusted_by', 'created_at']
