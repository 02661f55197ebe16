from decimal import Decimal

from django.db import models

from roastery.core.models import Tenant, User
from roastery.parties.models import Client
from roastery.production.models import RoastBatch


class SalesOrder(models.Model):
    """Order of roasted coffee placed by a client"""
    STATUS_PENDING = 'PENDING'
    STATUS_CONFIRMED = 'CONFIRMED'
    STATUS_PREPARING = 'PREPARING'
    STATUS_SHIPPED = 'SHIPPED'
    STATUS_DELIVERED = 'DELIVERED'
    STATUS_CANCELLED = 'CANCELLED'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_PREPARING, 'Preparing'),
        (STATUS_SHIPPED, 'Shipped'),
        (STATUS_DELIVERED, 'Delivered'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    ALLOWED_TRANSITIONS = {
        STATUS_PENDING: {STATUS_CONFIRMED, STATUS_CANCELLED},
        STATUS_CONFIRMED: {STATUS_PREPARING, STATUS_SHIPPED, STATUS_CANCELLED},
        STATUS_PREPARING: {STATUS_SHIPPED},
        STATUS_SHIPPED: {STATUS_DELIVERED},
        STATUS_DELIVERED: set(),
        STATUS_CANCELLED: set(),
    }

    CLOSED_STATUSES = [STATUS_DELIVERED, STATUS_CANCELLED]

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='sales_orders')
    so_number = models.CharField(max_length=50)
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name='sales_orders')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    order_date = models.DateField()
    requested_delivery_date = models.DateField(null=True, blank=True)
    actual_delivery_date = models.DateField(null=True, blank=True)
    total_amount = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    currency = models.CharField(max_length=3, default='IDR')
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales_orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.so_number

    def can_transition_to(self, new_status):
        return new_status in self.ALLOWED_TRANSITIONS.get(self.status, set())

    class Meta:
        db_table = 'sales_orders'
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'so_number'], name='uniq_so_number_per_tenant'),
        ]
        indexes = [
            models.Index(fields=['tenant', 'status'], name='idx_so_tenant_status'),
            models.Index(fields=['tenant', '-order_date'], name='idx_so_tenant_order_date'),
        ]


class SalesOrderItem(models.Model):
    sales_order = models.ForeignKey(SalesOrder, on_delete=models.CASCADE, related_name='items')
    product_sku = models.CharField(max_length=100)
    description = models.CharField(max_length=255, blank=True)
    quantity_kg = models.DecimalField(max_digits=12, decimal_places=3)
    unit_price = models.DecimalField(max_digits=14, decimal_places=2)
    total_price = models.DecimalField(max_digits=16, decimal_places=2)
    fulfilled_quantity_kg = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0.000'))

    def __str__(self):
        return f"{self.sales_order.so_number} - {self.product_sku}"

    class Meta:
        db_table = 'sales_order_items'
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['sales_order', 'product_sku'], name='uniq_so_item_sku'),
        ]


class SOStatusHistory(models.Model):
    """Append-only trail of sales order status changes"""
    sales_order = models.ForeignKey(SalesOrder, on_delete=models.CASCADE, related_name='status_history')
    from_status = models.CharField(max_length=20, null=True, blank=True)
    to_status = models.CharField(max_length=20)
    changed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'so_status_history'
        ordering = ['created_at', 'id']


class InventoryReservation(models.Model):
    """Quantity of one roast batch held for one sales order line"""
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='reservations')
    sales_order = models.ForeignKey(SalesOrder, on_delete=models.CASCADE, related_name='reservations')
    sales_order_item = models.ForeignKey(SalesOrderItem, on_delete=models.CASCADE, related_name='reservations')
    batch = models.ForeignKey(RoastBatch, on_delete=models.PROTECT, related_name='reservations')
    quantity_kg = models.DecimalField(max_digits=12, decimal_places=3)
    reserved_at = models.DateTimeField(auto_now_add=True)
    fulfilled_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.sales_order.so_number}: {self.quantity_kg} kg from {self.batch.batch_number}"

    class Meta:
        db_table = 'inventory_reservations'
        ordering = ['reserved_at', 'id']
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity_kg__gt=0), name='chk_reservation_positive'),
        ]
        indexes = [
            models.Index(fields=['sales_order', 'fulfilled_at'], name='idx_reservation_open'),
        ]
