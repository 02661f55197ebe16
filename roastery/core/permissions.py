"""
Role to capability mapping and the DRF permission factory built on it.

Views never compare role names; they declare the capability an operation needs
and this module decides, in one place, which roles hold it.
"""
from rest_framework.permissions import SAFE_METHODS, BasePermission

from .models import User

INVENTORY_VIEW = 'inventory.view'
INVENTORY_MANAGE = 'inventory.manage'
PRODUCTION_VIEW = 'production.view'
PRODUCTION_MANAGE = 'production.manage'
PURCHASING_VIEW = 'purchasing.view'
PURCHASING_MANAGE = 'purchasing.manage'
SALES_VIEW = 'sales.view'
SALES_MANAGE = 'sales.manage'
INVOICES_VIEW = 'invoices.view'
INVOICES_MANAGE = 'invoices.manage'
FINANCE_VIEW = 'finance.view'
FINANCE_MANAGE = 'finance.manage'
REPORTS_VIEW = 'reports.view'
USERS_MANAGE = 'users.manage'
TENANTS_MANAGE = 'tenants.manage'

_TENANT_CAPABILITIES = frozenset({
    INVENTORY_VIEW, INVENTORY_MANAGE,
    PRODUCTION_VIEW, PRODUCTION_MANAGE,
    PURCHASING_VIEW, PURCHASING_MANAGE,
    SALES_VIEW, SALES_MANAGE,
    INVOICES_VIEW, INVOICES_MANAGE,
    FINANCE_VIEW, FINANCE_MANAGE,
    REPORTS_VIEW,
})

ROLE_CAPABILITIES = {
    User.ROLE_OWNER: _TENANT_CAPABILITIES | {USERS_MANAGE},
    User.ROLE_ACCOUNTANT: frozenset({
        INVENTORY_VIEW, PRODUCTION_VIEW,
        PURCHASING_VIEW, PURCHASING_MANAGE,
        SALES_VIEW, SALES_MANAGE,
        INVOICES_VIEW, INVOICES_MANAGE,
        FINANCE_VIEW, FINANCE_MANAGE,
        REPORTS_VIEW,
    }),
    User.ROLE_ROASTER: frozenset({
        INVENTORY_VIEW, INVENTORY_MANAGE,
        PRODUCTION_VIEW, PRODUCTION_MANAGE,
        PURCHASING_VIEW, SALES_VIEW,
        REPORTS_VIEW,
    }),
    User.ROLE_SUPERADMIN: frozenset({TENANTS_MANAGE, USERS_MANAGE}),
}


def capabilities_for(role):
    return ROLE_CAPABILITIES.get(role, frozenset())


def has_capability(user, capability):
    if not user or not user.is_authenticated or not user.is_active:
        return False
    return capability in capabilities_for(user.role)


def capability_required(read, write=None):
    """Permission class requiring ``read`` for safe methods and ``write`` otherwise

    Usage:
        @permission_classes([IsAuthenticated, capability_required(SALES_VIEW, SALES_MANAGE)])
    """
    write = write or read

    class CapabilityPermission(BasePermission):
        message = 'You do not have permission to perform this action.'

        def has_permission(self, request, view):
            needed = read if request.method in SAFE_METHODS else write
            return has_capability(request.user, needed)

    CapabilityPermission.__name__ = f'CapabilityPermission[{read}|{write}]'
    return CapabilityPermission
