import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from roastery.core.context import context_from_request, get_scoped, scoped
from roastery.core.permissions import INVENTORY_MANAGE, INVENTORY_VIEW, capability_required
from roastery.core.utils import paginated_response
from roastery.parties.models import Supplier
from . import services
from .filters import GreenCoffeeLotFilter
from .models import GreenCoffeeLot, StockAdjustment
from .serializers import (
    GreenCoffeeLotSerializer, LotReceiveSerializer, LotUpdateSerializer,
    StockAdjustmentInputSerializer, StockAdjustmentSerializer,
)

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability_required(INVENTORY_VIEW, INVENTORY_MANAGE)])
def lot_list_create(request):
    """List green coffee lots or receive a new lot (GRN)"""
    ctx = context_from_request(request)
    if request.method == 'GET':
        queryset = scoped(GreenCoffeeLot.objects.select_related('supplier'), ctx)
        filterset = GreenCoffeeLotFilter(request.query_params, queryset=queryset)
        return paginated_response(request, filterset.qs.order_by('-received_at', '-id'),
                                  GreenCoffeeLotSerializer, default_limit=50)

    serializer = LotReceiveSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    supplier = None
    if data.get('supplier'):
        supplier = get_scoped(Supplier.objects.all(), ctx, data['supplier'], 'Supplier')

    lot = services.receive_lot(
        ctx,
        lot_number=data['lot_number'],
        sku=data['sku'],
        initial_weight=data['initial_weight'],
        purchase_cost_per_kg=data['purchase_cost_per_kg'],
        moisture_content=data.get('moisture_content'),
        received_at=data.get('received_at'),
        supplier=supplier,
    )
    return Response(GreenCoffeeLotSerializer(lot).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, capability_required(INVENTORY_VIEW, INVENTORY_MANAGE)])
def lot_detail(request, pk):
    """Retrieve, edit (moisture / cost only) or delete a lot"""
    ctx = context_from_request(request)

    if request.method == 'GET':
        lot = get_scoped(GreenCoffeeLot.objects.select_related('supplier'), ctx, pk, 'Lot')
        return Response(GreenCoffeeLotSerializer(lot).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = LotUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        lot = services.update_lot(ctx, pk, **serializer.validated_data)
        return Response(GreenCoffeeLotSerializer(lot).data)
    else:  # DELETE
        services.delete_lot(ctx, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability_required(INVENTORY_VIEW, INVENTORY_MANAGE)])
def lot_adjustments(request, pk):
    """List or record stock adjustments of a lot"""
    ctx = context_from_request(request)
    lot = get_scoped(GreenCoffeeLot.objects.all(), ctx, pk, 'Lot')

    if request.method == 'GET':
        queryset = StockAdjustment.objects.filter(lot=lot).select_related('adjusted_by', 'lot')
        return paginated_response(request, queryset.order_by('-created_at'), StockAdjustmentSerializer)

    serializer = StockAdjustmentInputSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    adjustment = services.adjust_stock(ctx, lot.pk, **serializer.validated_data)
    return Response(StockAdjustmentSerializer(adjustment).data, status=status.HTTP_201_CREATED)
