from rest_framework import serializers
from .models import SalesOrder, SalesOrderItem, SOStatusHistory, InventoryReservation


class SalesOrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = SalesOrderItem
        fields = ['id', 'product_sku', 'description', 'quantity_kg', 'unit_price', 'total_price',
                  'fulfilled_quantity_kg']
        read_only_fields = fields


class SalesOrderSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True)
    items = SalesOrderItemSerializer(many=True, read_only=True)
    created_by = serializers.CharField(source='created_by.username', read_only=True, default=None)
    allowed_transitions = serializers.SerializerMethodField()

    class Meta:
        model = SalesOrder
        fields = ['id', 'so_number', 'client', 'client_name', 'status', 'allowed_transitions',
                  'order_date', 'requested_delivery_date', 'actual_delivery_date', 'total_amount',
                  'currency', 'notes', 'items', 'created_by', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_allowed_transitions(self, obj):
        return sorted(obj.ALLOWED_TRANSITIONS.get(obj.status, set()))


class SalesOrderListSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True)
    item_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = SalesOrder
        fields = ['id', 'so_number', 'client', 'client_name', 'status', 'order_date',
                  'requested_delivery_date', 'actual_delivery_date', 'total_amount', 'currency',
                  'item_count', 'created_at']
        read_only_fields = fields


class SOItemInputSerializer(serializers.Serializer):
    product_sku = serializers.CharField(max_length=100)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    quantity_kg = serializers.DecimalField(max_digits=12, decimal_places=3)
    unit_price = serializers.DecimalField(max_digits=14, decimal_places=2)


class SalesOrderInputSerializer(serializers.Serializer):
    client = serializers.IntegerField()
    order_date = serializers.DateField(required=False)
    requested_delivery_date = serializers.DateField(required=False, allow_null=True)
    currency = serializers.CharField(max_length=3, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    items = SOItemInputSerializer(many=True)


class SOActionSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class SOStatusHistorySerializer(serializers.ModelSerializer):
    changed_by = serializers.CharField(source='changed_by.username', read_only=True, default=None)

    class Meta:
        model = SOStatusHistory
        fields = ['id', 'from_status', 'to_status', 'changed_by', 'notes', 'created_at']
        read_only_fields = fields


class InventoryReservationSerializer(serializers.ModelSerializer):
    batch_number = serializers.CharField(source='batch.batch_number', read_only=True)
    product_sku = serializers.CharField(source='sales_order_item.product_sku', read_only=True)
    roasted_at = serializers.DateTimeField(source='batch.roasted_at', read_only=True)

    class Meta:
        model = InventoryReservation
        fields = ['id', 'sales_order', 'sales_order_item', 'product_sku', 'batch', 'batch_number',
                  'roasted_at', 'quantity_kg', 'reserved_at', 'fulfilled_at']
        read_only_fields = fields
