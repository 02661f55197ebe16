from django.db.models import Count
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from roastery.core.context import context_from_request, get_scoped, scoped
from roastery.core.permissions import PURCHASING_MANAGE, PURCHASING_VIEW, capability_required
from roastery.core.utils import paginated_response
from roastery.inventory.serializers import GreenCoffeeLotSerializer
from roastery.parties.models import Supplier
from . import services
from .filters import PurchaseOrderFilter
from .models import PurchaseOrder
from .serializers import (
    POStatusHistorySerializer, POStatusSerializer, PurchaseOrderInputSerializer,
    PurchaseOrderListSerializer, PurchaseOrderSerializer, ReceiveGoodsSerializer,
)


def _order_detail(ctx, pk):
    queryset = PurchaseOrder.objects.select_related('supplier', 'created_by').prefetch_related('items')
    return get_scoped(queryset, ctx, pk, 'Purchase order')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability_required(PURCHASING_VIEW, PURCHASING_MANAGE)])
def order_list_create(request):
    """List purchase orders or create a DRAFT order"""
    ctx = context_from_request(request)
    if request.method == 'GET':
        queryset = scoped(PurchaseOrder.objects.select_related('supplier'), ctx).annotate(item_count=Count('items'))
        filterset = PurchaseOrderFilter(request.query_params, queryset=queryset)
        return paginated_response(request, filterset.qs.order_by('-created_at', '-id'), PurchaseOrderListSerializer)

    serializer = PurchaseOrderInputSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = dict(serializer.validated_data)
    supplier = get_scoped(Supplier.objects.all(), ctx, data.pop('supplier'), 'Supplier')
    order = services.create_order(ctx, supplier=supplier, **data)
    return Response(PurchaseOrderSerializer(_order_detail(ctx, order.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, capability_required(PURCHASING_VIEW, PURCHASING_MANAGE)])
def order_detail(request, pk):
    """Retrieve, edit (DRAFT only) or delete (DRAFT only) a purchase order"""
    ctx = context_from_request(request)

    if request.method == 'GET':
        return Response(PurchaseOrderSerializer(_order_detail(ctx, pk)).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = PurchaseOrderInputSerializer(data=request.data, partial=request.method == 'PATCH')
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        if 'supplier' in data:
            data['supplier'] = get_scoped(Supplier.objects.all(), ctx, data['supplier'], 'Supplier')
        services.update_order(ctx, pk, **data)
        return Response(PurchaseOrderSerializer(_order_detail(ctx, pk)).data)
    else:  # DELETE
        services.delete_order(ctx, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, capability_required(PURCHASING_MANAGE)])
def order_status(request, pk):
    """Move a purchase order along its transition table"""
    ctx = context_from_request(request)
    serializer = POStatusSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    services.change_status(ctx, pk, serializer.validated_data['status'], serializer.validated_data['notes'])
    return Response(PurchaseOrderSerializer(_order_detail(ctx, pk)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, capability_required(PURCHASING_MANAGE)])
def order_receive(request, pk):
    """Receive goods; each received line becomes a green coffee lot"""
    ctx = context_from_request(request)
    serializer = ReceiveGoodsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    order, lots = services.receive_goods(ctx, pk, serializer.validated_data['items'],
                                         serializer.validated_data['notes'])
    return Response({
        'order': PurchaseOrderSerializer(_order_detail(ctx, order.pk)).data,
        'lots': GreenCoffeeLotSerializer(lots, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability_required(PURCHASING_VIEW)])
def order_history(request, pk):
    ctx = context_from_request(request)
    order = get_scoped(PurchaseOrder.objects.all(), ctx, pk, 'Purchase order')
    history = order.status_history.select_related('changed_by')
    return Response(POStatusHistorySerializer(history, many=True).data)
