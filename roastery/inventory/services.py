"""
Inventory ledger: the only code that mutates green coffee lots.

Weighted average cost (WAC) is kept per SKU bucket. Receiving a lot blends its
cost into the bucket formed by the SKU's AVAILABLE lots and stamps the new WAC
on every lot of the bucket, so any lot of a SKU values stock the same way.
"""
import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from roastery.core.context import get_scoped
from roastery.core.exceptions import Conflict, InsufficientStock, InvalidTransition, ValidationError
from roastery.core.utils import create_audit_log
from roastery.production.models import RoastBatch
from .models import GreenCoffeeLot, StockAdjustment

logger = logging.getLogger(__name__)

QTY_PLACES = Decimal('0.001')
WAC_PLACES = Decimal('0.0001')
ZERO = Decimal('0')


def to_decimal(value, field):
    """Coerce request/service input into a Decimal or raise ValidationError"""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f'{field} must be a number.', field=field)


def _lock_lot(ctx, lot_id):
    return get_scoped(GreenCoffeeLot.objects.select_for_update(), ctx, lot_id, 'Lot')


def _available_bucket(tenant, sku, exclude_pk=None):
    queryset = GreenCoffeeLot.objects.select_for_update().filter(
        tenant=tenant, sku=sku, current_weight__gt=0
    ).order_by('id')
    if exclude_pk is not None:
        queryset = queryset.exclude(pk=exclude_pk)
    return list(queryset)


def compute_wac(old_qty, old_wac, new_qty, new_cost):
    """Blend a receipt into a bucket: (oldQty*oldWAC + newQty*newCost) / (oldQty + newQty)"""
    total_qty = old_qty + new_qty
    if total_qty <= 0:
        return Decimal(new_cost).quantize(WAC_PLACES)
    return ((old_qty * old_wac + new_qty * new_cost) / total_qty).quantize(WAC_PLACES)


def _bucket_position(lots):
    """Summed weight and weighted cost of a list of lots"""
    qty = sum((lot.current_weight for lot in lots), ZERO)
    if qty <= 0:
        return ZERO, ZERO
    value = sum((lot.current_weight * lot.weighted_avg_cost for lot in lots), ZERO)
    return qty, value / qty


@transaction.atomic
def receive_lot(ctx, lot_number, sku, initial_weight, purchase_cost_per_kg,
                moisture_content=ZERO, received_at=None, supplier=None, purchase_order_item=None):
    """Append a lot (GRN) and recompute the SKU bucket's weighted average cost"""
    tenant = ctx.require_tenant()
    lot_number = (lot_number or '').strip()
    sku = (sku or '').strip()
    if not lot_number:
        raise ValidationError('lot_number is required.', field='lot_number')
    if not sku:
        raise ValidationError('sku is required.', field='sku')

    initial_weight = to_decimal(initial_weight, 'initial_weight').quantize(QTY_PLACES)
    cost = to_decimal(purchase_cost_per_kg, 'purchase_cost_per_kg')
    moisture = to_decimal(moisture_content if moisture_content is not None else ZERO, 'moisture_content')
    if initial_weight <= 0:
        raise ValidationError('initial_weight must be greater than zero.', field='initial_weight')
    if cost < 0:
        raise ValidationError('purchase_cost_per_kg cannot be negative.', field='purchase_cost_per_kg')
    if moisture < 0 or moisture > 100:
        raise ValidationError('moisture_content must be between 0 and 100.', field='moisture_content')
    if GreenCoffeeLot.objects.filter(tenant=tenant, lot_number=lot_number).exists():
        raise ValidationError(f'Lot number {lot_number} already exists.', field='lot_number')

    bucket = _available_bucket(tenant, sku)
    old_qty, old_wac = _bucket_position(bucket)
    new_wac = compute_wac(old_qty, old_wac, initial_weight, cost)

    if bucket:
        GreenCoffeeLot.objects.filter(pk__in=[lot.pk for lot in bucket]).update(
            weighted_avg_cost=new_wac, updated_at=timezone.now()
        )

    lot = GreenCoffeeLot.objects.create(
        tenant=tenant,
        lot_number=lot_number,
        sku=sku,
        initial_weight=initial_weight,
        current_weight=initial_weight,
        moisture_content=moisture,
        purchase_cost_per_kg=cost,
        weighted_avg_cost=new_wac,
        received_at=received_at or timezone.now(),
        supplier=supplier,
        purchase_order_item=purchase_order_item,
    )
    create_audit_log(ctx, action='create', model_name='GreenCoffeeLot', object_id=lot.pk,
                     object_reference=lot.lot_number,
                     changes={'sku': sku, 'initial_weight': str(initial_weight),
                              'purchase_cost_per_kg': str(cost), 'weighted_avg_cost': str(new_wac)})
    logger.info("Lot %s received: %s kg of %s, WAC now %s", lot.lot_number, initial_weight, sku, new_wac)
    return lot


@transaction.atomic
def consume(ctx, lot_id, qty):
    """Take weight out of a lot, e.g. to roast it"""
    qty = to_decimal(qty, 'quantity').quantize(QTY_PLACES)
    if qty <= 0:
        raise ValidationError('Quantity must be greater than zero.', field='quantity')
    lot = _lock_lot(ctx, lot_id)
    if qty > lot.current_weight:
        raise InsufficientStock(
            f'Lot {lot.lot_number} holds {lot.current_weight} kg; {qty} kg requested.',
            lot_number=lot.lot_number, requested=str(qty), available=str(lot.current_weight),
        )
    lot.current_weight -= qty
    lot.save(update_fields=['current_weight', 'updated_at'])
    logger.info("Consumed %s kg from lot %s (%s kg left)", qty, lot.lot_number, lot.current_weight)
    return lot


@transaction.atomic
def adjust_stock(ctx, lot_id, qty_change, reason_code, notes=''):
    """Record a signed manual correction of a lot's weight"""
    qty_change = to_decimal(qty_change, 'qty_change').quantize(QTY_PLACES)
    if qty_change == 0:
        raise ValidationError('qty_change cannot be zero.', field='qty_change')
    valid_reasons = {code for code, _ in StockAdjustment.REASON_CHOICES}
    if reason_code not in valid_reasons:
        raise ValidationError(
            f"reason_code must be one of {', '.join(sorted(valid_reasons))}.", field='reason_code'
        )

    if qty_change < 0:
        lot = consume(ctx, lot_id, -qty_change)
    else:
        lot = _lock_lot(ctx, lot_id)
        if lot.current_weight + qty_change > lot.initial_weight:
            raise ValidationError(
                f'Adjustment would raise lot {lot.lot_number} above its received weight '
                f'of {lot.initial_weight} kg.', field='qty_change'
            )
        lot.current_weight += qty_change
        lot.save(update_fields=['current_weight', 'updated_at'])

    adjustment = StockAdjustment.objects.create(
        tenant=lot.tenant,
        lot=lot,
        qty_change=qty_change,
        reason_code=reason_code,
        notes=notes or '',
        adjusted_by=ctx.user,
    )
    create_audit_log(ctx, action='stock_adjust', model_name='GreenCoffeeLot', object_id=lot.pk,
                     object_reference=lot.lot_number,
                     changes={'qty_change': str(qty_change), 'reason_code': reason_code,
                              'current_weight': str(lot.current_weight)})
    return adjustment


@transaction.atomic
def update_lot(ctx, lot_id, moisture_content=None, purchase_cost_per_kg=None):
    """Edit the mutable attributes of a lot; weights change only through the ledger"""
    lot = _lock_lot(ctx, lot_id)
    changes = {}

    if moisture_content is not None:
        moisture = to_decimal(moisture_content, 'moisture_content')
        if moisture < 0 or moisture > 100:
            raise ValidationError('moisture_content must be between 0 and 100.', field='moisture_content')
        changes['moisture_content'] = {'old': str(lot.moisture_content), 'new': str(moisture)}
        lot.moisture_content = moisture

    if purchase_cost_per_kg is not None:
        cost = to_decimal(purchase_cost_per_kg, 'purchase_cost_per_kg')
        if cost < 0:
            raise ValidationError('purchase_cost_per_kg cannot be negative.', field='purchase_cost_per_kg')
        if cost != lot.purchase_cost_per_kg:
            changes['purchase_cost_per_kg'] = {'old': str(lot.purchase_cost_per_kg), 'new': str(cost)}
            _rebase_bucket_cost(lot, lot.purchase_cost_per_kg, cost)
            lot.purchase_cost_per_kg = cost

    if changes:
        lot.save()
        create_audit_log(ctx, action='update', model_name='GreenCoffeeLot', object_id=lot.pk,
                         object_reference=lot.lot_number, changes=changes)
    return lot


def _rebase_bucket_cost(lot, old_cost, new_cost):
    """Revalue the SKU bucket after a lot's purchase cost was corrected"""
    if lot.current_weight <= 0:
        return
    bucket = _available_bucket(lot.tenant, lot.sku, exclude_pk=lot.pk)
    qty, wac = _bucket_position(bucket + [lot])
    value = qty * wac + lot.current_weight * (new_cost - old_cost)
    new_wac = (value / qty).quantize(WAC_PLACES) if qty > 0 else new_cost
    if new_wac < 0:
        new_wac = ZERO
    GreenCoffeeLot.objects.filter(pk__in=[other.pk for other in bucket]).update(
        weighted_avg_cost=new_wac, updated_at=timezone.now()
    )
    lot.weighted_avg_cost = new_wac


@transaction.atomic
def delete_lot(ctx, lot_id):
    lot = _lock_lot(ctx, lot_id)
    if lot.roast_batches.exists() or lot.adjustments.exists():
        raise Conflict(f'Lot {lot.lot_number} has roast batches or adjustments and cannot be deleted.')
    create_audit_log(ctx, action='delete', model_name='GreenCoffeeLot', object_id=lot.pk,
                     object_reference=lot.lot_number)
    lot.delete()
    logger.info("Lot %s deleted", lot.lot_number)


def release_roasted_yield(batch):
    """Make a QC-passed batch's roasted weight sellable"""
    if batch.status != RoastBatch.STATUS_QC_PASSED:
        raise InvalidTransition(
            f'Batch {batch.batch_number} is {batch.status}; only QC_PASSED batches can be released.',
            from_status=batch.status, to_status=RoastBatch.STATUS_QC_PASSED,
        )
    batch.available_quantity_kg = batch.weight_out or ZERO
    batch.reserved_quantity_kg = ZERO
    batch.save(update_fields=['available_quantity_kg', 'reserved_quantity_kg', 'updated_at'])
    logger.info("Batch %s released %s kg for sale", batch.batch_number, batch.available_quantity_kg)
    return batch
