from rest_framework import serializers
from .models import RoastBatch, QualityControl


class QualityControlSerializer(serializers.ModelSerializer):
    inspected_by = serializers.CharField(source='inspected_by.username', read_only=True, default=None)

    class Meta:
        model = QualityControl
        fields = ['id', 'batch', 'aroma', 'flavor', 'aftertaste', 'acidity', 'body',
                  'total_score', 'passed', 'notes', 'inspected_by', 'created_at']
        read_only_fields = fields


class RoastBatchSerializer(serializers.ModelSerializer):
    lot_number = serializers.CharField(source='lot.lot_number', read_only=True)
    quality_control = QualityControlSerializer(read_only=True, allow_null=True)

    class Meta:
        model = RoastBatch
        fields = ['id', 'batch_number', 'lot', 'lot_number', 'product_sku', 'roast_profile',
                  'weight_in', 'weight_out', 'shrinkage_pct', 'status', 'roasted_at',
                  'available_quantity_kg', 'reserved_quantity_kg', 'notes', 'quality_control',
                  'created_at', 'updated_at']
        read_only_fields = fields


class BatchCreateSerializer(serializers.Serializer):
    lot_id = serializers.IntegerField()
    weight_in = serializers.DecimalField(max_digits=12, decimal_places=3)
    product_sku = serializers.CharField(max_length=100, required=False, allow_blank=True)
    roast_profile = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    batch_number = serializers.CharField(max_length=100, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class FinishRoastSerializer(serializers.Serializer):
    weight_out = serializers.DecimalField(max_digits=12, decimal_places=3)
    roasted_at = serializers.DateTimeField(required=False)


class QCSubmitSerializer(serializers.Serializer):
    aroma = serializers.DecimalField(max_digits=4, decimal_places=1, min_value=0, max_value=10)
    flavor = serializers.DecimalField(max_digits=4, decimal_places=1, min_value=0, max_value=10)
    aftertaste = serializers.DecimalField(max_digits=4, decimal_places=1, min_value=0, max_value=10)
    acidity = serializers.DecimalField(max_digits=4, decimal_places=1, min_value=0, max_value=10)
    body = serializers.DecimalField(max_digits=4, decimal_places=1, min_value=0, max_value=10)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
