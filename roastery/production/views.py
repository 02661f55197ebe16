from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from roastery.core.context import context_from_request, get_scoped, scoped
from roastery.core.exceptions import NotFound
from roastery.core.permissions import PRODUCTION_MANAGE, PRODUCTION_VIEW, capability_required
from roastery.core.utils import paginated_response
from . import services
from .filters import RoastBatchFilter
from .models import QualityControl, RoastBatch
from .serializers import (
    BatchCreateSerializer, FinishRoastSerializer, QCSubmitSerializer,
    QualityControlSerializer, RoastBatchSerializer,
)


def _batch_queryset():
    return RoastBatch.objects.select_related('lot', 'quality_control')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability_required(PRODUCTION_VIEW, PRODUCTION_MANAGE)])
def batch_list_create(request):
    """List roast batches or start a new roast"""
    ctx = context_from_request(request)
    if request.method == 'GET':
        filterset = RoastBatchFilter(request.query_params, queryset=scoped(_batch_queryset(), ctx))
        return paginated_response(request, filterset.qs.order_by('-created_at', '-id'), RoastBatchSerializer)

    serializer = BatchCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    batch = services.create_batch(ctx, **serializer.validated_data)
    return Response(RoastBatchSerializer(batch).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, capability_required(PRODUCTION_VIEW, PRODUCTION_MANAGE)])
def batch_detail(request, pk):
    """Retrieve a batch, or PATCH weight_out to finish roasting it"""
    ctx = context_from_request(request)
    if request.method == 'PATCH':
        serializer = FinishRoastSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.finish_roast(ctx, pk, **serializer.validated_data)
    batch = get_scoped(_batch_queryset(), ctx, pk, 'Batch')
    return Response(RoastBatchSerializer(batch).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability_required(PRODUCTION_VIEW, PRODUCTION_MANAGE)])
def batch_qc(request, pk):
    """Read or submit the quality control record of a batch"""
    ctx = context_from_request(request)
    if request.method == 'GET':
        batch = get_scoped(RoastBatch.objects.all(), ctx, pk, 'Batch')
        try:
            qc = batch.quality_control
        except QualityControl.DoesNotExist:
            raise NotFound(f'Batch {batch.batch_number} has no QC record yet.')
        return Response(QualityControlSerializer(qc).data)

    serializer = QCSubmitSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    qc = services.submit_qc(ctx, pk, **serializer.validated_data)
    batch = get_scoped(_batch_queryset(), ctx, pk, 'Batch')
    return Response({
        'quality_control': QualityControlSerializer(qc).data,
        'batch': RoastBatchSerializer(batch).data,
    }, status=status.HTTP_201_CREATED)
