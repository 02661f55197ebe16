from decimal import Decimal

from django.db import models

from roastery.core.models import Tenant, User
from roastery.inventory.models import GreenCoffeeLot


class RoastBatch(models.Model):
    """A roast of green coffee from one lot, sellable once it passes QC"""
    STATUS_PENDING_ROAST = 'PENDING_ROAST'
    STATUS_ROASTED = 'ROASTED'
    STATUS_QC_PASSED = 'QC_PASSED'
    STATUS_QC_FAILED = 'QC_FAILED'

    STATUS_CHOICES = [
        (STATUS_PENDING_ROAST, 'Pending Roast'),
        (STATUS_ROASTED, 'Roasted'),
        (STATUS_QC_PASSED, 'QC Passed'),
        (STATUS_QC_FAILED, 'QC Failed'),
    ]

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='roast_batches')
    batch_number = models.CharField(max_length=100)
    lot = models.ForeignKey(GreenCoffeeLot, on_delete=models.PROTECT, related_name='roast_batches')
    product_sku = models.CharField(max_length=100, db_index=True)
    roast_profile = models.CharField(max_length=100, blank=True)
    weight_in = models.DecimalField(max_digits=12, decimal_places=3)
    weight_out = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    shrinkage_pct = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING_ROAST)
    roasted_at = models.DateTimeField(null=True, blank=True)
    available_quantity_kg = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0.000'))
    reserved_quantity_kg = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0.000'))
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='roast_batches')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.batch_number

    def get_total_quantity(self):
        return self.available_quantity_kg + self.reserved_quantity_kg

    class Meta:
        db_table = 'roast_batches'
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'batch_number'], name='uniq_batch_number_per_tenant'),
            models.CheckConstraint(condition=models.Q(available_quantity_kg__gte=0), name='chk_batch_available_non_negative'),
            models.CheckConstraint(condition=models.Q(reserved_quantity_kg__gte=0), name='chk_batch_reserved_non_negative'),
        ]
        indexes = [
            models.Index(fields=['tenant', 'status', 'product_sku'], name='idx_batch_sellable'),
            models.Index(fields=['tenant', 'roasted_at'], name='idx_batch_tenant_roasted'),
        ]


class QualityControl(models.Model):
    """Cupping scores of a roasted batch; written once"""
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='quality_controls')
    batch = models.OneToOneField(RoastBatch, on_delete=models.CASCADE, related_name='quality_control')
    aroma = models.DecimalField(max_digits=4, decimal_places=1)
    flavor = models.DecimalField(max_digits=4, decimal_places=1)
    aftertaste = models.DecimalField(max_digits=4, decimal_places=1)
    acidity = models.DecimalField(max_digits=4, decimal_places=1)
    body = models.DecimalField(max_digits=4, decimal_places=1)
    total_score = models.DecimalField(max_digits=5, decimal_places=1)
    passed = models.BooleanField(default=False)
    notes = models.TextField(blank=True)
    inspected_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='quality_controls')
    created_at = models.DateTimeField(auto_now_add=True)

    SCORE_FIELDS = ('aroma', 'flavor', 'aftertaste', 'acidity', 'body')

    def __str__(self):
        return f"QC {self.batch.batch_number}: {self.total_score}"

    class Meta:
        db_table = 'quality_controls'
        ordering = ['-created_at']
