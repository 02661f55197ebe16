from django.contrib.auth.models import AbstractUser
from django.db import models


class Tenant(models.Model):
    """A roastery company using the system"""
    company_name = models.CharField(max_length=200)
    currency = models.CharField(max_length=3, default='IDR')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.company_name

    class Meta:
        db_table = 'tenants'
        ordering = ['company_name']


class User(AbstractUser):
    """Extended user model with tenant membership and role"""
    ROLE_SUPERADMIN = 'SUPERADMIN'
    ROLE_OWNER = 'OWNER'
    ROLE_ACCOUNTANT = 'ACCOUNTANT'
    ROLE_ROASTER = 'ROASTER'

    ROLE_CHOICES = [
        (ROLE_SUPERADMIN, 'Super Admin'),
        (ROLE_OWNER, 'Owner'),
        (ROLE_ACCOUNTANT, 'Accountant'),
        (ROLE_ROASTER, 'Roaster'),
    ]

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, null=True, blank=True, related_name='users')
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_ROASTER)
    phone = models.CharField(max_length=20, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['tenant', 'role'], name='idx_user_tenant_role'),
        ]


class AuditLog(models.Model):
    """Audit log for state-changing operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('status_change', 'Status Change'),
        ('receive', 'Goods Received'),
        ('stock_adjust', 'Stock Adjustment'),
        ('reserve', 'Inventory Reserved'),
        ('release', 'Reservation Released'),
        ('fulfill', 'Reservation Fulfilled'),
        ('qc_submit', 'QC Submitted'),
        ('payment_update', 'Payment Updated'),
        ('close', 'Period Closed'),
        ('role_change', 'Role Changed'),
    ]

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, null=True, blank=True, related_name='audit_logs')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., PO number, lot number)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['tenant', '-created_at'], name='idx_audit_tenant_created'),
            models.Index(fields=['action'], name='idx_audit_action'),
            models.Index(fields=['model_name'], name='idx_audit_model'),
        ]
