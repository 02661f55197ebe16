"""Request-scoped context passed explicitly into every service call"""
from dataclasses import dataclass
from typing import Optional

from .exceptions import Forbidden, NotFound
from .models import Tenant, User


@dataclass(frozen=True)
class RequestContext:
    user: Optional[User]
    tenant: Optional[Tenant]
    role: str
    ip_address: Optional[str] = None

    @property
    def tenant_id(self):
        return self.tenant.pk if self.tenant else None

    def require_tenant(self):
        if self.tenant is None:
            raise Forbidden('This operation requires a tenant account.')
        return self.tenant


def context_from_request(request, require_tenant=True):
    """Build the context for the authenticated user behind ``request``"""
    from .utils import get_client_ip

    user = request.user if request.user and request.user.is_authenticated else None
    if user is None:
        raise Forbidden('Authentication required.')
    tenant = user.tenant
    if tenant is not None and not tenant.is_active:
        raise Forbidden('Tenant account is disabled.')
    ctx = RequestContext(user=user, tenant=tenant, role=user.role, ip_address=get_client_ip(request))
    if require_tenant:
        ctx.require_tenant()
    return ctx


def system_context(tenant, user=None):
    """Context for management commands and tests acting on behalf of a tenant"""
    return RequestContext(user=user, tenant=tenant, role=user.role if user else User.ROLE_OWNER)


def scoped(queryset, ctx):
    """Restrict a queryset to the context's tenant"""
    return queryset.filter(tenant_id=ctx.require_tenant().pk)


def get_scoped(queryset, ctx, pk, label=None):
    """Fetch one tenant-owned row or raise NotFound"""
    try:
        return scoped(queryset, ctx).get(pk=pk)
    except (queryset.model.DoesNotExist, ValueError, TypeError):
        name = label or queryset.model._meta.verbose_name.title()
        raise NotFound(f'{name} not found.')
