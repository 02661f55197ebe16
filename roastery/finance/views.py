from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from roastery.core.context import context_from_request, get_scoped, scoped
from roastery.core.exceptions import ValidationError
from roastery.core.permissions import FINANCE_MANAGE, FINANCE_VIEW, capability_required
from roastery.core.utils import paginated_response
from . import services
from .filters import CostEntryFilter, IndirectCostFilter
from .models import CostEntry, IndirectCost
from .serializers import (
    CostEntrySerializer, IndirectCostInputSerializer, IndirectCostSerializer, IndirectCostUpdateSerializer,
)


def _year_param(request):
    value = request.query_params.get('year')
    if not value:
        return timezone.localdate().year
    try:
        return int(value)
    except ValueError:
        raise ValidationError('year must be a number.', field='year')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability_required(FINANCE_VIEW, FINANCE_MANAGE)])
def cost_list_create(request):
    """List monthly indirect costs, or record (upsert) one month"""
    ctx = context_from_request(request)
    if request.method == 'GET':
        filterset = IndirectCostFilter(request.query_params, queryset=scoped(IndirectCost.objects.all(), ctx))
        return paginated_response(request, filterset.qs.order_by('-year', '-month'), IndirectCostSerializer,
                                  default_limit=24)

    serializer = IndirectCostInputSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    cost = services.record_monthly_cost(ctx, **serializer.validated_data)
    return Response(IndirectCostSerializer(cost).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, capability_required(FINANCE_VIEW, FINANCE_MANAGE)])
def cost_detail(request, pk):
    ctx = context_from_request(request)
    if request.method == 'GET':
        return Response(IndirectCostSerializer(get_scoped(IndirectCost.objects.all(), ctx, pk, 'Indirect cost')).data)

    if request.method == 'DELETE':
        services.delete_monthly_cost(ctx, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = IndirectCostUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    cost = services.update_monthly_cost(ctx, pk, **serializer.validated_data)
    return Response(IndirectCostSerializer(cost).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, capability_required(FINANCE_MANAGE)])
def cost_close(request, pk):
    """Close a month; its costs become read-only"""
    ctx = context_from_request(request)
    cost = services.close_month(ctx, pk)
    return Response(IndirectCostSerializer(cost).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability_required(FINANCE_VIEW, FINANCE_MANAGE)])
def cost_entry_list_create(request):
    ctx = context_from_request(request)
    if request.method == 'GET':
        queryset = scoped(CostEntry.objects.select_related('created_by'), ctx)
        filterset = CostEntryFilter(request.query_params, queryset=queryset)
        return paginated_response(request, filterset.qs.order_by('-entry_date', '-id'), CostEntrySerializer,
                                  default_limit=50)

    serializer = CostEntrySerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    entry = services.record_cost_entry(ctx, **serializer.validated_data)
    return Response(CostEntrySerializer(entry).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated, capability_required(FINANCE_VIEW, FINANCE_MANAGE)])
def cost_entry_detail(request, pk):
    ctx = context_from_request(request)
    if request.method == 'GET':
        return Response(CostEntrySerializer(get_scoped(CostEntry.objects.all(), ctx, pk, 'Cost entry')).data)
    services.delete_cost_entry(ctx, pk)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability_required(FINANCE_VIEW)])
def hpp_report(request):
    """Overhead per roasted kg for each month of ?year="""
    ctx = context_from_request(request)
    return Response(services.compute_hpp(ctx, _year_param(request)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability_required(FINANCE_VIEW)])
def variance_report(request):
    ctx = context_from_request(request)
    return Response(services.compute_variance(ctx, _year_param(request)))
