from django.db import models
from decimal import Decimal
from roastery.core.models import Tenant, User
from roastery.parties.models import Supplier


class GreenCoffeeLot(models.Model):
    """Green coffee lot created by a goods received note (GRN)"""
    STATUS_AVAILABLE = 'AVAILABLE'
    STATUS_DEPLETED = 'DEPLETED'

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='green_lots')
    lot_number = models.CharField(max_length=100)
    sku = models.CharField(max_length=100, db_index=True)
    initial_weight = models.DecimalField(max_digits=12, decimal_places=3)
    current_weight = models.DecimalField(max_digits=12, decimal_places=3)
    moisture_content = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    purchase_cost_per_kg = models.DecimalField(max_digits=14, decimal_places=2)
    weighted_avg_cost = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal('0.0000'))
    received_at = models.DateTimeField()
    supplier = models.ForeignKey(Supplier, on_delete=models.SET_NULL, null=True, blank=True, related_name='green_lots')
    purchase_order_item = models.ForeignKey(
        'purchasing.PurchaseOrderItem', on_delete=models.SET_NULL, null=True, blank=True, related_name='lots'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.lot_number

    @property
    def status(self):
        return self.STATUS_AVAILABLE if self.current_weight > 0 else self.STATUS_DEPLETED

    def get_stock_value(self):
        return self.current_weight * self.weighted_avg_cost

    class Meta:
        db_table = 'green_coffee_lots'
        ordering = ['-received_at', '-id']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'lot_number'], name='uniq_lot_number_per_tenant'),
            models.CheckConstraint(
                condition=models.Q(current_weight__gte=0) & models.Q(current_weight__lte=models.F('initial_weight')),
                name='chk_lot_current_weight_range',
            ),
        ]
        indexes = [
            models.Index(fields=['tenant', 'sku'], name='idx_lot_tenant_sku'),
            models.Index(fields=['tenant', '-received_at'], name='idx_lot_tenant_received'),
        ]


class StockAdjustment(models.Model):
    """Manual corrections to a lot's weight (signed)"""
    REASON_CHOICES = [
        ('DAMAGED', 'Damaged'),
        ('SPILLAGE', 'Spillage'),
        ('SAMPLE', 'Sample'),
        ('COUNT_CORRECTION', 'Count Correction'),
        ('OTHER', 'Other'),
    ]

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='stock_adjustments')
    lot = models.ForeignKey(GreenCoffeeLot, on_delete=models.PROTECT, related_name='adjustments')
    qty_change = models.DecimalField(max_digits=12, decimal_places=3)
    reason_code = models.CharField(max_length=30, choices=REASON_CHOICES)
    notes = models.TextField(blank=True)
    adjusted_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='stock_adjustments')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'stock_adjustments'
        ordering = ['-created_at']
