"""
Reservation engine: the only code that creates or removes inventory reservations.

Roasted stock is allocated FIFO (oldest roast first; created_at then id break
ties) from QC_PASSED batches of the item's product SKU. A request is planned in
memory across all items before anything is written, so an order is either
reserved completely or not at all. Writes use conditional updates
(``available >= qty``) so a concurrent change to a batch surfaces as a Conflict
instead of driving a quantity negative.

For every batch, available + reserved is unchanged by reserve followed by
release; fulfilment removes the quantity from reserved permanently.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from roastery.core.cache_utils import invalidate_tenant_reports
from roastery.core.exceptions import Conflict, InsufficientInventory
from roastery.core.utils import create_audit_log
from roastery.production.models import RoastBatch
from .models import InventoryReservation, SalesOrderItem

logger = logging.getLogger(__name__)

ZERO = Decimal('0')

FIFO_ORDER = ('roasted_at', 'created_at', 'id')


def eligible_batches(tenant_id, sku, lock=True):
    """Sellable batches of a product SKU, oldest roast first"""
    queryset = RoastBatch.objects.filter(
        tenant_id=tenant_id,
        status=RoastBatch.STATUS_QC_PASSED,
        product_sku=sku,
        available_quantity_kg__gt=0,
    ).order_by(*FIFO_ORDER)
    if lock:
        queryset = queryset.select_for_update()
    return list(queryset)


def plan_allocation(items, batches_by_sku):
    """
    Greedy FIFO allocation of ``items`` against in-memory batch availabilities.

    Returns (plan, shortages) where plan is a list of (item, batch, qty) and
    shortages a list of {sku, requested, available}. Nothing is written.
    """
    remaining = {
        batch.pk: batch.available_quantity_kg
        for batches in batches_by_sku.values()
        for batch in batches
    }
    plan = []
    shortages = []
    for item in items:
        batches = batches_by_sku.get(item.product_sku, [])
        available_before = sum((remaining[b.pk] for b in batches), ZERO)
        need = item.quantity_kg
        for batch in batches:
            if need <= 0:
                break
            take = min(need, remaining[batch.pk])
            if take <= 0:
                continue
            remaining[batch.pk] -= take
            need -= take
            plan.append((item, batch, take))
        if need > 0:
            shortages.append({
                'sku': item.product_sku,
                'requested': item.quantity_kg,
                'available': available_before,
            })
    return plan, shortages


@transaction.atomic
def reserve_order(ctx, order):
    """Reserve roasted stock for every item of ``order`` or raise InsufficientInventory"""
    if order.reservations.filter(fulfilled_at__isnull=True).exists():
        raise Conflict(f'Sales order {order.so_number} already holds reservations.')

    items = list(order.items.order_by('id'))
    # Lock batches SKU by SKU in a stable order
    skus = sorted({item.product_sku for item in items})
    batches_by_sku = {sku: eligible_batches(order.tenant_id, sku) for sku in skus}

    plan, shortages = plan_allocation(items, batches_by_sku)
    if shortages:
        logger.warning("Reservation for %s failed: %s", order.so_number,
                       ', '.join(f"{s['sku']} {s['available']}/{s['requested']}" for s in shortages))
        raise InsufficientInventory(shortages)

    now = timezone.now()
    reservations = []
    for item, batch, qty in plan:
        updated = RoastBatch.objects.filter(pk=batch.pk, available_quantity_kg__gte=qty).update(
            available_quantity_kg=F('available_quantity_kg') - qty,
            reserved_quantity_kg=F('reserved_quantity_kg') + qty,
            updated_at=now,
        )
        if updated != 1:
            raise Conflict(f'Batch {batch.batch_number} changed while reserving; retry the confirmation.')
        reservations.append(InventoryReservation(
            tenant_id=order.tenant_id,
            sales_order=order,
            sales_order_item=item,
            batch=batch,
            quantity_kg=qty,
        ))
    InventoryReservation.objects.bulk_create(reservations)
    invalidate_tenant_reports(order.tenant_id)

    create_audit_log(ctx, action='reserve', model_name='SalesOrder', object_id=order.pk,
                     object_reference=order.so_number,
                     changes={'allocations': [
                         {'sku': item.product_sku, 'batch': batch.batch_number, 'quantity_kg': str(qty)}
                         for item, batch, qty in plan
                     ]})
    logger.info("Reserved %d allocation(s) for %s", len(plan), order.so_number)
    return reservations


def _open_reservations(order):
    return list(
        order.reservations.select_for_update()
        .filter(fulfilled_at__isnull=True)
        .select_related('batch', 'sales_order_item')
        .order_by('batch_id', 'id')
    )


@transaction.atomic
def release_order(ctx, order):
    """Return every unfulfilled reservation of ``order`` to its batch"""
    open_reservations = _open_reservations(order)
    now = timezone.now()
    for reservation in open_reservations:
        qty = reservation.quantity_kg
        updated = RoastBatch.objects.filter(pk=reservation.batch_id, reserved_quantity_kg__gte=qty).update(
            available_quantity_kg=F('available_quantity_kg') + qty,
            reserved_quantity_kg=F('reserved_quantity_kg') - qty,
            updated_at=now,
        )
        if updated != 1:
            raise Conflict(f'Batch {reservation.batch.batch_number} does not hold the reserved quantity.')

    released = len(open_reservations)
    InventoryReservation.objects.filter(pk__in=[r.pk for r in open_reservations]).delete()
    invalidate_tenant_reports(order.tenant_id)

    create_audit_log(ctx, action='release', model_name='SalesOrder', object_id=order.pk,
                     object_reference=order.so_number,
                     changes={'released': [
                         {'batch': r.batch.batch_number, 'quantity_kg': str(r.quantity_kg)}
                         for r in open_reservations
                     ]})
    logger.info("Released %d reservation(s) of %s", released, order.so_number)
    return released


@transaction.atomic
def fulfill_order(ctx, order):
    """Consume the reservations of ``order``: the stock leaves the roastery"""
    open_reservations = _open_reservations(order)
    if not open_reservations:
        raise Conflict(f'Sales order {order.so_number} has no open reservations to fulfil.')

    now = timezone.now()
    fulfilled_by_item = {}
    for reservation in open_reservations:
        qty = reservation.quantity_kg
        updated = RoastBatch.objects.filter(pk=reservation.batch_id, reserved_quantity_kg__gte=qty).update(
            reserved_quantity_kg=F('reserved_quantity_kg') - qty,
            updated_at=now,
        )
        if updated != 1:
            raise Conflict(f'Batch {reservation.batch.batch_number} does not hold the reserved quantity.')
        item = reservation.sales_order_item
        fulfilled_by_item.setdefault(item.pk, [item, ZERO])[1] += qty

    InventoryReservation.objects.filter(pk__in=[r.pk for r in open_reservations]).update(fulfilled_at=now)
    for item, qty in fulfilled_by_item.values():
        SalesOrderItem.objects.filter(pk=item.pk).update(fulfilled_quantity_kg=F('fulfilled_quantity_kg') + qty)
    invalidate_tenant_reports(order.tenant_id)

    create_audit_log(ctx, action='fulfill', model_name='SalesOrder', object_id=order.pk,
                     object_reference=order.so_number,
                     changes={'fulfilled': {item.product_sku: str(qty) for item, qty in fulfilled_by_item.values()}})
    logger.info("Fulfilled %d reservation(s) of %s", len(open_reservations), order.so_number)
    return len(open_reservations)
