from django.contrib import admin
from .models import RoastBatch, QualityControl


class QualityControlInline(admin.StackedInline):
    model = QualityControl
    extra = 0
    can_delete = False
    readonly_fields = ['aroma', 'flavor', 'aftertaste', 'acidity', 'body', 'total_score', 'passed',
                       'notes', 'inspected_by', 'created_at']


@admin.register(RoastBatch)
class RoastBatchAdmin(admin.ModelAdmin):
    list_display = ['batch_number', 'tenant', 'product_sku', 'status', 'weight_in', 'weight_out',
                    'available_quantity_kg', 'reserved_quantity_kg', 'roasted_at']
    list_filter = ['status', 'tenant']
    search_fields = ['batch_number', 'product_sku', 'lot__lot_number']
    readonly_fields = ['available_quantity_kg', 'reserved_quantity_kg', 'created_at', 'updated_at']
    inlines = [QualityControlInline]
