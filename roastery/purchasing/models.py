from decimal import Decimal

from django.db import models

from roastery.core.models import Tenant, User
from roastery.parties.models import Supplier


class PurchaseOrder(models.Model):
    """Purchase order of green coffee from a supplier"""
    STATUS_DRAFT = 'DRAFT'
    STATUS_SENT = 'SENT'
    STATUS_CONFIRMED = 'CONFIRMED'
    STATUS_IN_TRANSIT = 'IN_TRANSIT'
    STATUS_RECEIVED = 'RECEIVED'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_CANCELLED = 'CANCELLED'

    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Draft'),
        (STATUS_SENT, 'Sent'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_IN_TRANSIT, 'In Transit'),
        (STATUS_RECEIVED, 'Received'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    ALLOWED_TRANSITIONS = {
        STATUS_DRAFT: {STATUS_SENT, STATUS_CANCELLED},
        STATUS_SENT: {STATUS_CONFIRMED, STATUS_CANCELLED},
        STATUS_CONFIRMED: {STATUS_IN_TRANSIT, STATUS_CANCELLED},
        STATUS_IN_TRANSIT: {STATUS_RECEIVED, STATUS_CANCELLED},
        STATUS_RECEIVED: {STATUS_COMPLETED},
        STATUS_COMPLETED: set(),
        STATUS_CANCELLED: set(),
    }

    CLOSED_STATUSES = [STATUS_RECEIVED, STATUS_COMPLETED, STATUS_CANCELLED]

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='purchase_orders')
    po_number = models.CharField(max_length=50)
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, related_name='purchase_orders')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_DRAFT)
    order_date = models.DateField()
    expected_delivery_date = models.DateField(null=True, blank=True)
    actual_delivery_date = models.DateField(null=True, blank=True)
    total_amount = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    currency = models.CharField(max_length=3, default='IDR')
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.po_number

    def can_transition_to(self, new_status):
        return new_status in self.ALLOWED_TRANSITIONS.get(self.status, set())

    def is_fully_received(self):
        return all(item.received_quantity_kg >= item.quantity_kg for item in self.items.all())

    class Meta:
        db_table = 'purchase_orders'
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'po_number'], name='uniq_po_number_per_tenant'),
        ]
        indexes = [
            models.Index(fields=['tenant', 'status'], name='idx_po_tenant_status'),
            models.Index(fields=['tenant', '-order_date'], name='idx_po_tenant_order_date'),
        ]


class PurchaseOrderItem(models.Model):
    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name='items')
    sku = models.CharField(max_length=100)
    description = models.CharField(max_length=255, blank=True)
    quantity_kg = models.DecimalField(max_digits=12, decimal_places=3)
    unit_price = models.DecimalField(max_digits=14, decimal_places=2)
    total_price = models.DecimalField(max_digits=16, decimal_places=2)
    received_quantity_kg = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0.000'))

    def __str__(self):
        return f"{self.purchase_order.po_number} - {self.sku}"

    def get_outstanding_quantity(self):
        return self.quantity_kg - self.received_quantity_kg

    class Meta:
        db_table = 'purchase_order_items'
        ordering = ['id']


class POStatusHistory(models.Model):
    """Append-only trail of purchase order status changes"""
    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name='status_history')
    from_status = models.CharField(max_length=20, null=True, blank=True)
    to_status = models.CharField(max_length=20)
    changed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'po_status_history'
        ordering = ['created_at', 'id']
