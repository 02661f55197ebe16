from django.contrib import admin
from .models import SalesOrder, SalesOrderItem, SOStatusHistory, InventoryReservation


class SalesOrderItemInline(admin.TabularInline):
    model = SalesOrderItem
    extra = 0
    readonly_fields = ['total_price', 'fulfilled_quantity_kg']


class SOStatusHistoryInline(admin.TabularInline):
    model = SOStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ['from_status', 'to_status', 'changed_by', 'notes', 'created_at']


class InventoryReservationInline(admin.TabularInline):
    model = InventoryReservation
    extra = 0
    can_delete = False
    readonly_fields = ['sales_order_item', 'batch', 'quantity_kg', 'reserved_at', 'fulfilled_at']


@admin.register(SalesOrder)
class SalesOrderAdmin(admin.ModelAdmin):
    list_display = ['so_number', 'tenant', 'client', 'status', 'order_date', 'total_amount']
    list_filter = ['status', 'tenant']
    search_fields = ['so_number', 'client__name']
    readonly_fields = ['so_number', 'status', 'total_amount', 'created_at', 'updated_at']
    inlines = [SalesOrderItemInline, InventoryReservationInline, SOStatusHistoryInline]
