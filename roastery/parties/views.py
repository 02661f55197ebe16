import logging

from django.db import transaction
from django.db.models.deletion import ProtectedError
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from roastery.core.context import context_from_request, get_scoped, scoped
from roastery.core.exceptions import Conflict
from roastery.core.permissions import (
    PURCHASING_MANAGE, PURCHASING_VIEW, SALES_MANAGE, SALES_VIEW, capability_required,
)
from roastery.core.utils import create_audit_log, paginated_response
from roastery.purchasing.models import PurchaseOrder
from roastery.sales.models import SalesOrder
from .filters import ClientFilter, SupplierFilter
from .models import Client, Supplier
from .serializers import ClientSerializer, SupplierSerializer

logger = logging.getLogger(__name__)


def _delete_party(ctx, party, active_orders, label):
    """Delete a supplier or client unless orders or documents still point at it"""
    active_count = active_orders.count()
    if active_count:
        raise Conflict(f'{label} has {active_count} active order(s) and cannot be deleted.')
    try:
        with transaction.atomic():
            create_audit_log(ctx, action='delete', model_name=label, object_id=party.pk,
                             object_reference=party.name)
            party.delete()
    except ProtectedError:
        raise Conflict(f'{label} is referenced by existing records. Deactivate it instead.')
    logger.info("%s %s deleted", label, party.name)


# Supplier views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability_required(PURCHASING_VIEW, PURCHASING_MANAGE)])
def supplier_list_create(request):
    """List all suppliers or create a new supplier"""
    ctx = context_from_request(request)
    if request.method == 'GET':
        filterset = SupplierFilter(request.query_params, queryset=scoped(Supplier.objects.all(), ctx))
        return paginated_response(request, filterset.qs.order_by('name'), SupplierSerializer, default_limit=50)

    serializer = SupplierSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    supplier = serializer.save(tenant=ctx.tenant)
    create_audit_log(ctx, action='create', model_name='Supplier', object_id=supplier.pk,
                     object_reference=supplier.name)
    return Response(SupplierSerializer(supplier).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, capability_required(PURCHASING_VIEW, PURCHASING_MANAGE)])
def supplier_detail(request, pk):
    """Retrieve, update or delete a supplier"""
    ctx = context_from_request(request)
    supplier = get_scoped(Supplier.objects.all(), ctx, pk, 'Supplier')

    if request.method == 'GET':
        return Response(SupplierSerializer(supplier).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SupplierSerializer(supplier, data=request.data, partial=request.method == 'PATCH')
        serializer.is_valid(raise_exception=True)
        serializer.save()
        create_audit_log(ctx, action='update', model_name='Supplier', object_id=supplier.pk,
                         object_reference=supplier.name, changes=serializer.validated_data)
        return Response(serializer.data)
    else:  # DELETE
        active_orders = supplier.purchase_orders.exclude(status__in=PurchaseOrder.CLOSED_STATUSES)
        _delete_party(ctx, supplier, active_orders, 'Supplier')
        return Response(status=status.HTTP_204_NO_CONTENT)


# Client views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability_required(SALES_VIEW, SALES_MANAGE)])
def client_list_create(request):
    """List all clients or create a new client"""
    ctx = context_from_request(request)
    if request.method == 'GET':
        filterset = ClientFilter(request.query_params, queryset=scoped(Client.objects.all(), ctx))
        return paginated_response(request, filterset.qs.order_by('name'), ClientSerializer, default_limit=50)

    serializer = ClientSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    client = serializer.save(tenant=ctx.tenant)
    create_audit_log(ctx, action='create', model_name='Client', object_id=client.pk,
                     object_reference=client.name)
    return Response(ClientSerializer(client).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, capability_required(SALES_VIEW, SALES_MANAGE)])
def client_detail(request, pk):
    """Retrieve, update or delete a client"""
    ctx = context_from_request(request)
    client = get_scoped(Client.objects.all(), ctx, pk, 'Client')

    if request.method == 'GET':
        return Response(ClientSerializer(client).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ClientSerializer(client, data=request.data, partial=request.method == 'PATCH')
        serializer.is_valid(raise_exception=True)
        serializer.save()
        create_audit_log(ctx, action='update', model_name='Client', object_id=client.pk,
                         object_reference=client.name, changes=serializer.validated_data)
        return Response(serializer.data)
    else:  # DELETE
        active_orders = client.sales_orders.exclude(status__in=SalesOrder.CLOSED_STATUSES)
        _delete_party(ctx, client, active_orders, 'Client')
        return Response(status=status.HTTP_204_NO_CONTENT)
