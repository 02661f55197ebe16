from rest_framework import serializers
from .models import PurchaseOrder, PurchaseOrderItem, POStatusHistory


class PurchaseOrderItemSerializer(serializers.ModelSerializer):
    outstanding_quantity_kg = serializers.SerializerMethodField()

    class Meta:
        model = PurchaseOrderItem
        fields = ['id', 'sku', 'description', 'quantity_kg', 'unit_price', 'total_price',
                  'received_quantity_kg', 'outstanding_quantity_kg']
        read_only_fields = fields

    def get_outstanding_quantity_kg(self, obj):
        return obj.get_outstanding_quantity()


class PurchaseOrderSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    items = PurchaseOrderItemSerializer(many=True, read_only=True)
    created_by = serializers.CharField(source='created_by.username', read_only=True, default=None)
    allowed_transitions = serializers.SerializerMethodField()

    class Meta:
        model = PurchaseOrder
        fields = ['id', 'po_number', 'supplier', 'supplier_name', 'status', 'allowed_transitions',
                  'order_date', 'expected_delivery_date', 'actual_delivery_date', 'total_amount',
                  'currency', 'notes', 'items', 'created_by', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_allowed_transitions(self, obj):
        return sorted(obj.ALLOWED_TRANSITIONS.get(obj.status, set()) - {PurchaseOrder.STATUS_RECEIVED})


class PurchaseOrderListSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    item_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = ['id', 'po_number', 'supplier', 'supplier_name', 'status', 'order_date',
                  'expected_delivery_date', 'actual_delivery_date', 'total_amount', 'currency',
                  'item_count', 'created_at']
        read_only_fields = fields


class POItemInputSerializer(serializers.Serializer):
    sku = serializers.CharField(max_length=100)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    quantity_kg = serializers.DecimalField(max_digits=12, decimal_places=3)
    unit_price = serializers.DecimalField(max_digits=14, decimal_places=2)


class PurchaseOrderInputSerializer(serializers.Serializer):
    supplier = serializers.IntegerField()
    order_date = serializers.DateField(required=False)
    expected_delivery_date = serializers.DateField(required=False, allow_null=True)
    currency = serializers.CharField(max_length=3, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    items = POItemInputSerializer(many=True)


class POStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=PurchaseOrder.STATUS_CHOICES)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class ReceiveItemSerializer(serializers.Serializer):
    po_item_id = serializers.IntegerField()
    received_quantity = serializers.DecimalField(max_digits=12, decimal_places=3)
    moisture_content = serializers.DecimalField(max_digits=5, decimal_places=2, required=False,
                                                min_value=0, max_value=100)


class ReceiveGoodsSerializer(serializers.Serializer):
    items = ReceiveItemSerializer(many=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class POStatusHistorySerializer(serializers.ModelSerializer):
    changed_by = serializers.CharField(source='changed_by.username', read_only=True, default=None)

    class Meta:
        model = POStatusHistory
        fields = ['id', 'from_status', 'to_status', 'changed_by', 'notes', 'created_at']
        read_only_fields = fields
