from django.contrib import admin
from .models import PurchaseOrder, PurchaseOrderItem, POStatusHistory


class PurchaseOrderItemInline(admin.TabularInline):
    model = PurchaseOrderItem
    extra = 0
    readonly_fields = ['total_price', 'received_quantity_kg']


class POStatusHistoryInline(admin.TabularInline):
    model = POStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ['from_status', 'to_status', 'changed_by', 'notes', 'created_at']


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ['po_number', 'tenant', 'supplier', 'status', 'order_date', 'total_amount']
    list_filter = ['status', 'tenant']
    search_fields = ['po_number', 'supplier__name']
    readonly_fields = ['po_number', 'status', 'total_amount', 'created_at', 'updated_at']
    inlines = [PurchaseOrderItemInline, POStatusHistoryInline]
