from decimal import Decimal

from rest_framework import serializers
from .models import GreenCoffeeLot, StockAdjustment


class GreenCoffeeLotSerializer(serializers.ModelSerializer):
    status = serializers.CharField(read_only=True)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True, default=None)
    stock_value = serializers.SerializerMethodField()

    class Meta:
        model = GreenCoffeeLot
        fields = ['id', 'lot_number', 'sku', 'initial_weight', 'current_weight', 'moisture_content',
                  'purchase_cost_per_kg', 'weighted_avg_cost', 'stock_value', 'status', 'received_at',
                  'supplier', 'supplier_name', 'purchase_order_item', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_stock_value(self, obj):
        return obj.get_stock_value().quantize(Decimal('0.01'))


class LotReceiveSerializer(serializers.Serializer):
    """Input of a manual goods received note"""
    lot_number = serializers.CharField(max_length=100)
    sku = serializers.CharField(max_length=100)
    initial_weight = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal('0.001'))
    moisture_content = serializers.DecimalField(max_digits=5, decimal_places=2, required=False,
                                                min_value=0, max_value=100)
    purchase_cost_per_kg = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0)
    received_at = serializers.DateTimeField(required=False)
    supplier = serializers.IntegerField(required=False, allow_null=True)


class LotUpdateSerializer(serializers.Serializer):
    moisture_content = serializers.DecimalField(max_digits=5, decimal_places=2, required=False,
                                                min_value=0, max_value=100)
    purchase_cost_per_kg = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, min_value=0)


class StockAdjustmentSerializer(serializers.ModelSerializer):
    adjusted_by = serializers.CharField(source='adjusted_by.username', read_only=True, default=None)
    lot_number = serializers.CharField(source='lot.lot_number', read_only=True)

    class Meta:
        model = StockAdjustment
        fields = ['id', 'lot', 'lot_number', 'qty_change', 'reason_code', 'notes', 'adjusted_by', 'created_at']
        read_only_fields = fields


class StockAdjustmentInputSerializer(serializers.Serializer):
    qty_change = serializers.DecimalField(max_digits=12, decimal_places=3)
    reason_code = serializers.ChoiceField(choices=StockAdjustment.REASON_CHOICES)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
