"""Roast batch lifecycle: PENDING_ROAST -> ROASTED -> QC_PASSED | QC_FAILED"""
import logging
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from roastery.core.context import get_scoped
from roastery.core.exceptions import Conflict, InvalidTransition, ValidationError
from roastery.core.utils import create_audit_log, generate_document_number
from roastery.inventory import services as ledger
from roastery.inventory.services import QTY_PLACES, to_decimal
from .models import QualityControl, RoastBatch

logger = logging.getLogger(__name__)

SCORE_MIN = Decimal('0')
SCORE_MAX = Decimal('10')


def _lock_batch(ctx, batch_id):
    return get_scoped(RoastBatch.objects.select_for_update().select_related('lot'), ctx, batch_id, 'Batch')


@transaction.atomic
def create_batch(ctx, lot_id, weight_in, product_sku=None, roast_profile='', notes='', batch_number=None):
    """Start a roast: the green weight leaves the lot immediately"""
    tenant = ctx.require_tenant()
    weight_in = to_decimal(weight_in, 'weight_in').quantize(QTY_PLACES)
    if weight_in <= 0:
        raise ValidationError('weight_in must be greater than zero.', field='weight_in')

    lot = ledger.consume(ctx, lot_id, weight_in)

    batch_number = (batch_number or '').strip() or generate_document_number(
        'RB', RoastBatch, 'batch_number', tenant=tenant
    )
    if RoastBatch.objects.filter(tenant=tenant, batch_number=batch_number).exists():
        raise ValidationError(f'Batch number {batch_number} already exists.', field='batch_number')

    batch = RoastBatch.objects.create(
        tenant=tenant,
        batch_number=batch_number,
        lot=lot,
        product_sku=(product_sku or '').strip() or lot.sku,
        roast_profile=roast_profile or '',
        weight_in=weight_in,
        notes=notes or '',
        created_by=ctx.user,
    )
    create_audit_log(ctx, action='create', model_name='RoastBatch', object_id=batch.pk,
                     object_reference=batch.batch_number,
                     changes={'lot': lot.lot_number, 'weight_in': str(weight_in), 'product_sku': batch.product_sku})
    logger.info("Batch %s started from lot %s with %s kg", batch.batch_number, lot.lot_number, weight_in)
    return batch


@transaction.atomic
def finish_roast(ctx, batch_id, weight_out, roasted_at=None):
    """Record the roasted weight; shrinkage is derived from it"""
    batch = _lock_batch(ctx, batch_id)
    if batch.status != RoastBatch.STATUS_PENDING_ROAST:
        raise InvalidTransition(from_status=batch.status, to_status=RoastBatch.STATUS_ROASTED)

    weight_out = to_decimal(weight_out, 'weight_out').quantize(QTY_PLACES)
    if weight_out <= 0:
        raise ValidationError('weight_out must be greater than zero.', field='weight_out')
    if weight_out > batch.weight_in:
        raise ValidationError('weight_out cannot exceed weight_in.', field='weight_out')

    batch.weight_out = weight_out
    batch.shrinkage_pct = ((batch.weight_in - weight_out) / batch.weight_in * 100).quantize(Decimal('0.01'))
    batch.roasted_at = roasted_at or timezone.now()
    batch.status = RoastBatch.STATUS_ROASTED
    batch.save()
    create_audit_log(ctx, action='status_change', model_name='RoastBatch', object_id=batch.pk,
                     object_reference=batch.batch_number,
                     changes={'status': {'old': RoastBatch.STATUS_PENDING_ROAST, 'new': batch.status},
                              'weight_out': str(weight_out), 'shrinkage_pct': str(batch.shrinkage_pct)})
    logger.info("Batch %s roasted: %s kg out, shrinkage %s%%", batch.batch_number, weight_out, batch.shrinkage_pct)
    return batch


@transaction.atomic
def submit_qc(ctx, batch_id, aroma, flavor, aftertaste, acidity, body, notes=''):
    """Grade a roasted batch; a passing grade releases its weight for sale"""
    batch = _lock_batch(ctx, batch_id)
    if QualityControl.objects.filter(batch=batch).exists():
        raise Conflict(f'Batch {batch.batch_number} already has a QC record.')
    if batch.status != RoastBatch.STATUS_ROASTED:
        raise InvalidTransition(
            f'Batch {batch.batch_number} must be ROASTED before QC; it is {batch.status}.',
            from_status=batch.status, to_status=RoastBatch.STATUS_QC_PASSED,
        )

    scores = {}
    for field, value in zip(QualityControl.SCORE_FIELDS, (aroma, flavor, aftertaste, acidity, body)):
        score = to_decimal(value, field)
        if score < SCORE_MIN or score > SCORE_MAX:
            raise ValidationError(f'{field} must be between 0 and 10.', field=field)
        scores[field] = score

    total = sum(scores.values(), Decimal('0'))
    passed = total >= Decimal(str(settings.QC_PASS_SCORE))

    qc = QualityControl.objects.create(
        tenant=batch.tenant,
        batch=batch,
        total_score=total,
        passed=passed,
        notes=notes or '',
        inspected_by=ctx.user,
        **scores,
    )

    old_status = batch.status
    batch.status = RoastBatch.STATUS_QC_PASSED if passed else RoastBatch.STATUS_QC_FAILED
    batch.save(update_fields=['status', 'updated_at'])
    if passed:
        ledger.release_roasted_yield(batch)

    create_audit_log(ctx, action='qc_submit', model_name='RoastBatch', object_id=batch.pk,
                     object_reference=batch.batch_number,
                     changes={'status': {'old': old_status, 'new': batch.status},
                              'total_score': str(total), 'passed': passed})
    logger.info("QC for batch %s: score %s, %s", batch.batch_number, total, batch.status)
    return qc
