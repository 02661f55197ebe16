from decimal import Decimal

from django.db import models
from django.utils import timezone

from roastery.core.models import Tenant, User
from roastery.parties.models import Client, Supplier
from roastery.purchasing.models import PurchaseOrder
from roastery.sales.models import SalesOrder


class InvoiceBase(models.Model):
    """Fields and payment state shared by sales and purchase invoices"""
    PAYMENT_UNPAID = 'UNPAID'
    PAYMENT_PARTIALLY_PAID = 'PARTIALLY_PAID'
    PAYMENT_PAID = 'PAID'
    PAYMENT_OVERDUE = 'OVERDUE'

    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_UNPAID, 'Unpaid'),
        (PAYMENT_PARTIALLY_PAID, 'Partially Paid'),
        (PAYMENT_PAID, 'Paid'),
        (PAYMENT_OVERDUE, 'Overdue'),
    ]

    PAYMENT_METHOD_CHOICES = [
        ('CASH', 'Cash'),
        ('BANK_TRANSFER', 'Bank Transfer'),
        ('CARD', 'Card'),
        ('E_WALLET', 'E-Wallet'),
        ('OTHER', 'Other'),
    ]

    invoice_number = models.CharField(max_length=50)
    invoice_date = models.DateField()
    due_date = models.DateField()
    payment_terms_days = models.PositiveIntegerField(default=30)
    subtotal_amount = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    tax_amount = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_UNPAID)
    paid_amount = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, blank=True)
    payment_date = models.DateField(null=True, blank=True)
    payment_reference = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.invoice_number

    def get_balance_due(self):
        return self.total_amount - self.paid_amount

    def is_overdue(self, today=None):
        today = today or timezone.localdate()
        return self.payment_status != self.PAYMENT_PAID and self.due_date < today

    def get_effective_status(self, today=None):
        """Stored payment status, reported as OVERDUE once past due and unpaid"""
        if self.is_overdue(today):
            return self.PAYMENT_OVERDUE
        return self.payment_status

    class Meta:
        abstract = True


class SalesInvoice(InvoiceBase):
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='sales_invoices')
    sales_order = models.OneToOneField(
        SalesOrder, on_delete=models.PROTECT, null=True, blank=True, related_name='invoice'
    )
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name='invoices')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    updated_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')

    class Meta:
        db_table = 'sales_invoices'
        ordering = ['-invoice_date', '-id']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'invoice_number'], name='uniq_sales_invoice_number'),
        ]
        indexes = [
            models.Index(fields=['tenant', 'payment_status'], name='idx_sinv_tenant_status'),
            models.Index(fields=['tenant', 'due_date'], name='idx_sinv_tenant_due'),
        ]


class PurchaseInvoice(InvoiceBase):
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='purchase_invoices')
    purchase_order = models.OneToOneField(
        PurchaseOrder, on_delete=models.PROTECT, null=True, blank=True, related_name='invoice'
    )
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, related_name='invoices')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    updated_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')

    class Meta:
        db_table = 'purchase_invoices'
        ordering = ['-invoice_date', '-id']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'invoice_number'], name='uniq_purchase_invoice_number'),
        ]
        indexes = [
            models.Index(fields=['tenant', 'payment_status'], name='idx_pinv_tenant_status'),
            models.Index(fields=['tenant', 'due_date'], name='idx_pinv_tenant_due'),
        ]


class InvoiceItemBase(models.Model):
    product_sku = models.CharField(max_length=100)
    product_name = models.CharField(max_length=255)
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    unit_price = models.DecimalField(max_digits=14, decimal_places=2)
    line_total = models.DecimalField(max_digits=16, decimal_places=2)
    notes = models.TextField(blank=True)

    def __str__(self):
        return f"{self.product_sku} x {self.quantity}"

    class Meta:
        abstract = True


class SalesInvoiceItem(InvoiceItemBase):
    invoice = models.ForeignKey(SalesInvoice, on_delete=models.CASCADE, related_name='items')

    class Meta:
        db_table = 'sales_invoice_items'
        ordering = ['id']


class PurchaseInvoiceItem(InvoiceItemBase):
    invoice = models.ForeignKey(PurchaseInvoice, on_delete=models.CASCADE, related_name='items')

    class Meta:
        db_table = 'purchase_invoice_items'
        ordering = ['id']
