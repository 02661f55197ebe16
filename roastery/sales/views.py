from django.db.models import Count
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from roastery.core.context import context_from_request, get_scoped, scoped
from roastery.core.permissions import SALES_MANAGE, SALES_VIEW, capability_required
from roastery.core.utils import paginated_response
from roastery.parties.models import Client
from . import services
from .filters import SalesOrderFilter
from .models import SalesOrder
from .serializers import (
    InventoryReservationSerializer, SalesOrderInputSerializer, SalesOrderListSerializer,
    SalesOrderSerializer, SOActionSerializer, SOStatusHistorySerializer,
)


def _order_detail(ctx, pk):
    queryset = SalesOrder.objects.select_related('client', 'created_by').prefetch_related('items')
    return get_scoped(queryset, ctx, pk, 'Sales order')


def _run_action(request, pk, action):
    ctx = context_from_request(request)
    serializer = SOActionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    action(ctx, pk, notes=serializer.validated_data['notes'])
    return Response(SalesOrderSerializer(_order_detail(ctx, pk)).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability_required(SALES_VIEW, SALES_MANAGE)])
def order_list_create(request):
    """List sales orders or create a PENDING order"""
    ctx = context_from_request(request)
    if request.method == 'GET':
        queryset = scoped(SalesOrder.objects.select_related('client'), ctx).annotate(item_count=Count('items'))
        filterset = SalesOrderFilter(request.query_params, queryset=queryset)
        return paginated_response(request, filterset.qs.order_by('-created_at', '-id'), SalesOrderListSerializer)

    serializer = SalesOrderInputSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = dict(serializer.validated_data)
    client = get_scoped(Client.objects.all(), ctx, data.pop('client'), 'Client')
    order = services.create_order(ctx, client=client, **data)
    return Response(SalesOrderSerializer(_order_detail(ctx, order.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, capability_required(SALES_VIEW, SALES_MANAGE)])
def order_detail(request, pk):
    """Retrieve, edit (PENDING only) or delete (PENDING only) a sales order"""
    ctx = context_from_request(request)

    if request.method == 'GET':
        return Response(SalesOrderSerializer(_order_detail(ctx, pk)).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SalesOrderInputSerializer(data=request.data, partial=request.method == 'PATCH')
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        if 'client' in data:
            data['client'] = get_scoped(Client.objects.all(), ctx, data['client'], 'Client')
        services.update_order(ctx, pk, **data)
        return Response(SalesOrderSerializer(_order_detail(ctx, pk)).data)
    else:  # DELETE
        services.delete_order(ctx, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, capability_required(SALES_MANAGE)])
def order_confirm(request, pk):
    """Confirm the order and reserve roasted stock (all or nothing)"""
    return _run_action(request, pk, services.confirm)


@api_view(['POST'])
@permission_classes([IsAuthenticated, capability_required(SALES_MANAGE)])
def order_prepare(request, pk):
    return _run_action(request, pk, services.start_preparing)


@api_view(['POST'])
@permission_classes([IsAuthenticated, capability_required(SALES_MANAGE)])
def order_ship(request, pk):
    """Ship the order; its reservations are fulfilled"""
    return _run_action(request, pk, services.ship)


@api_view(['POST'])
@permission_classes([IsAuthenticated, capability_required(SALES_MANAGE)])
def order_deliver(request, pk):
    return _run_action(request, pk, services.deliver)


@api_view(['POST'])
@permission_classes([IsAuthenticated, capability_required(SALES_MANAGE)])
def order_cancel(request, pk):
    """Cancel the order and release its reservations"""
    return _run_action(request, pk, services.cancel)


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability_required(SALES_VIEW)])
def order_reservations(request, pk):
    ctx = context_from_request(request)
    order = get_scoped(SalesOrder.objects.all(), ctx, pk, 'Sales order')
    queryset = order.reservations.select_related('batch', 'sales_order_item')
    return Response(InventoryReservationSerializer(queryset, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability_required(SALES_VIEW)])
def order_history(request, pk):
    ctx = context_from_request(request)
    order = get_scoped(SalesOrder.objects.all(), ctx, pk, 'Sales order')
    history = order.status_history.select_related('changed_by')
    return Response(SOStatusHistorySerializer(history, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability_required(SALES_VIEW)])
def client_stats(request, pk):
    """Order count, amount and open orders of a client"""
    ctx = context_from_request(request)
    client = get_scoped(Client.objects.all(), ctx, pk, 'Client')
    return Response(services.client_stats(ctx, client))
