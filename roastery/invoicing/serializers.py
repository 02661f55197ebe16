from rest_framework import serializers
from .models import InvoiceBase, SalesInvoice, SalesInvoiceItem, PurchaseInvoice, PurchaseInvoiceItem

INVOICE_FIELDS = ['id', 'invoice_number', 'invoice_date', 'due_date', 'payment_terms_days',
                  'subtotal_amount', 'tax_amount', 'total_amount', 'payment_status', 'stored_payment_status',
                  'paid_amount', 'balance_due', 'payment_method', 'payment_date', 'payment_reference',
                  'notes', 'items', 'created_at', 'updated_at']

ITEM_FIELDS = ['id', 'product_sku', 'product_name', 'quantity', 'unit_price', 'line_total', 'notes']


class SalesInvoiceItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = SalesInvoiceItem
        fields = ITEM_FIELDS
        read_only_fields = fields


class PurchaseInvoiceItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = PurchaseInvoiceItem
        fields = ITEM_FIELDS
        read_only_fields = fields


class InvoiceStatusMixin(serializers.Serializer):
    """Reports OVERDUE for unpaid invoices past their due date"""
    payment_status = serializers.SerializerMethodField()
    stored_payment_status = serializers.CharField(source='payment_status', read_only=True)
    balance_due = serializers.SerializerMethodField()

    def get_payment_status(self, obj):
        return obj.get_effective_status()

    def get_balance_due(self, obj):
        return obj.get_balance_due()


class SalesInvoiceSerializer(InvoiceStatusMixin, serializers.ModelSerializer):
    items = SalesInvoiceItemSerializer(many=True, read_only=True)
    client_name = serializers.CharField(source='client.name', read_only=True)
    so_number = serializers.CharField(source='sales_order.so_number', read_only=True, default=None)

    class Meta:
        model = SalesInvoice
        fields = INVOICE_FIELDS + ['client', 'client_name', 'sales_order', 'so_number']
        read_only_fields = fields


class PurchaseInvoiceSerializer(InvoiceStatusMixin, serializers.ModelSerializer):
    items = PurchaseInvoiceItemSerializer(many=True, read_only=True)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    po_number = serializers.CharField(source='purchase_order.po_number', read_only=True, default=None)

    class Meta:
        model = PurchaseInvoice
        fields = INVOICE_FIELDS + ['supplier', 'supplier_name', 'purchase_order', 'po_number']
        read_only_fields = fields


class InvoiceLineInputSerializer(serializers.Serializer):
    product_sku = serializers.CharField(max_length=100)
    product_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3)
    unit_price = serializers.DecimalField(max_digits=14, decimal_places=2)
    notes = serializers.CharField(required=False, allow_blank=True)


class InvoiceTermsSerializer(serializers.Serializer):
    invoice_date = serializers.DateField(required=False)
    payment_terms_days = serializers.IntegerField(required=False, min_value=0)
    tax_amount = serializers.DecimalField(max_digits=16, decimal_places=2, required=False, min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class ManualSalesInvoiceSerializer(InvoiceTermsSerializer):
    client = serializers.IntegerField()
    items = InvoiceLineInputSerializer(many=True)


class ManualPurchaseInvoiceSerializer(InvoiceTermsSerializer):
    supplier = serializers.IntegerField()
    items = InvoiceLineInputSerializer(many=True)


class PaymentSerializer(serializers.Serializer):
    paid_amount = serializers.DecimalField(max_digits=16, decimal_places=2)
    payment_method = serializers.ChoiceField(choices=InvoiceBase.PAYMENT_METHOD_CHOICES, required=False,
                                             allow_blank=True, default='')
    payment_date = serializers.DateField(required=False, allow_null=True)
    payment_reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
