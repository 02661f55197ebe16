"""Utility functions for audit logging, numbering and pagination"""
import logging
import uuid

from django.core.paginator import Paginator
from django.db import transaction
from django.utils import timezone
from rest_framework.response import Response

from .models import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(ctx=None, action=None, model_name=None, object_id=None,
                     changes=None, object_reference=None):
    """
    Create an audit log entry

    Args:
        ctx: RequestContext of the acting user (tenant, user and IP come from it)
        action: Action type (create, status_change, reserve, ...)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        object_reference: Reference identifier (e.g., PO number, lot number)
    """
    if not action or not model_name or object_id is None:
        logger.warning(
            "Audit log creation skipped: missing required fields (action=%s, model_name=%s, object_id=%s)",
            action, model_name, object_id
        )
        return None
    try:
        user = ctx.user if ctx and ctx.user and ctx.user.pk else None
        # Savepoint so a failed insert does not poison the caller's transaction
        with transaction.atomic():
            return AuditLog.objects.create(
                tenant=ctx.tenant if ctx else None,
                user=user,
                action=action,
                model_name=model_name,
                object_id=str(object_id),
                object_reference=object_reference,
                changes=changes or {},
                ip_address=ctx.ip_address if ctx else None,
            )
    except Exception as e:
        # Auditing must never break the business operation
        logger.error("Failed to create audit log: %s", e)
        return None


def generate_document_number(prefix, model, field, tenant=None):
    """Generate a unique document number like PO-20250101-1A2B3C4D"""
    def candidate():
        return f"{prefix}-{timezone.now().strftime('%Y%m%d')}-{str(uuid.uuid4())[:8].upper()}"

    number = candidate()
    queryset = model.objects.all()
    if tenant is not None:
        queryset = queryset.filter(tenant=tenant)
    while queryset.filter(**{field: number}).exists():
        number = candidate()
    return number


def paginated_response(request, queryset, serializer_class, default_limit=20, context=None):
    """Paginate a queryset with ?page=&limit= and return the list envelope"""
    try:
        page = max(int(request.query_params.get('page', 1)), 1)
        limit = min(max(int(request.query_params.get('limit', default_limit)), 1), 500)
    except (TypeError, ValueError):
        page, limit = 1, default_limit

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)

    serializer = serializer_class(page_obj.object_list, many=True, context=context or {'request': request})
    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    })
