from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from roastery.core.models import Tenant, User


class IndirectCost(models.Model):
    """Monthly overhead of a tenant, by category"""
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='indirect_costs')
    month = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(12)])
    year = models.PositiveSmallIntegerField(validators=[MinValueValidator(2000), MaxValueValidator(2100)])
    rent = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    utilities = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    labor = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    misc = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    total_actual = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    estimated_total = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    is_closed = models.BooleanField(default=False)
    closed_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    CATEGORY_FIELDS = ('rent', 'utilities', 'labor', 'misc')

    def __str__(self):
        return f"{self.year}-{self.month:02d}"

    def recalculate_total(self):
        self.total_actual = sum((getattr(self, f) for f in self.CATEGORY_FIELDS), Decimal('0.00'))
        return self.total_actual

    class Meta:
        db_table = 'indirect_costs'
        ordering = ['-year', '-month']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'year', 'month'], name='uniq_indirect_cost_month'),
        ]


class CostEntry(models.Model):
    """Individual dated expense rolled up into the month's IndirectCost row"""
    CATEGORY_RENT = 'RENT'
    CATEGORY_UTILITIES = 'UTILITIES'
    CATEGORY_LABOR = 'LABOR'
    CATEGORY_FUEL = 'FUEL'
    CATEGORY_GAS = 'GAS'
    CATEGORY_TRANSPORTATION = 'TRANSPORTATION'
    CATEGORY_MAINTENANCE = 'MAINTENANCE'
    CATEGORY_SUPPLIES = 'SUPPLIES'
    CATEGORY_INSURANCE = 'INSURANCE'
    CATEGORY_DEPRECIATION = 'DEPRECIATION'
    CATEGORY_MISC = 'MISC'

    CATEGORY_CHOICES = [
        (CATEGORY_RENT, 'Rent'),
        (CATEGORY_UTILITIES, 'Utilities'),
        (CATEGORY_LABOR, 'Labor'),
        (CATEGORY_FUEL, 'Fuel'),
        (CATEGORY_GAS, 'Gas'),
        (CATEGORY_TRANSPORTATION, 'Transportation'),
        (CATEGORY_MAINTENANCE, 'Maintenance'),
        (CATEGORY_SUPPLIES, 'Supplies'),
        (CATEGORY_INSURANCE, 'Insurance'),
        (CATEGORY_DEPRECIATION, 'Depreciation'),
        (CATEGORY_MISC, 'Miscellaneous'),
    ]

    # Category to IndirectCost column; anything without its own column lands in misc
    CATEGORY_FIELD_MAP = {
        CATEGORY_RENT: 'rent',
        CATEGORY_UTILITIES: 'utilities',
        CATEGORY_LABOR: 'labor',
        CATEGORY_FUEL: 'misc',
        CATEGORY_GAS: 'misc',
        CATEGORY_TRANSPORTATION: 'misc',
        CATEGORY_MAINTENANCE: 'misc',
        CATEGORY_SUPPLIES: 'misc',
        CATEGORY_INSURANCE: 'misc',
        CATEGORY_DEPRECIATION: 'misc',
        CATEGORY_MISC: 'misc',
    }

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='cost_entries')
    entry_date = models.DateField()
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES)
    amount = models.DecimalField(max_digits=16, decimal_places=2)
    description = models.CharField(max_length=255, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.entry_date} {self.category} {self.amount}"

    class Meta:
        db_table = 'cost_entries'
        ordering = ['-entry_date', '-id']
        indexes = [
            models.Index(fields=['tenant', '-entry_date'], name='idx_cost_entry_tenant_date'),
        ]
