from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from roastery.core.context import context_from_request
from roastery.core.permissions import INVENTORY_VIEW, REPORTS_VIEW, capability_required
from . import services


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability_required(REPORTS_VIEW)])
def dashboard(request):
    """Every dashboard figure in one response"""
    ctx = context_from_request(request)
    return Response(services.dashboard_summary(ctx))


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability_required(INVENTORY_VIEW)])
def stock(request):
    """Green and roasted stock grouped by SKU"""
    ctx = context_from_request(request)
    return Response(services.stock_summary(ctx))
