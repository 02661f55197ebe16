"""
Purchase order state machine.

    DRAFT -> SENT -> CONFIRMED -> IN_TRANSIT -> RECEIVED -> COMPLETED
      \________\__________\____________\-> CANCELLED

RECEIVED is only reached through receive_goods, which turns each received line
into a green coffee lot through the inventory ledger.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from roastery.core.context import get_scoped
from roastery.core.exceptions import Conflict, InvalidTransition, ValidationError
from roastery.core.utils import create_audit_log, generate_document_number
from roastery.inventory import services as ledger
from roastery.inventory.models import GreenCoffeeLot
from roastery.inventory.services import QTY_PLACES, to_decimal
from .models import POStatusHistory, PurchaseOrder, PurchaseOrderItem

logger = logging.getLogger(__name__)

MONEY_PLACES = Decimal('0.01')


def _lock_order(ctx, order_id):
    return get_scoped(PurchaseOrder.objects.select_for_update().select_related('supplier'), ctx, order_id,
                      'Purchase order')


def _clean_items(items):
    """Validate item dicts and compute their totals"""
    if not items:
        raise ValidationError('A purchase order needs at least one item.', field='items')
    cleaned = []
    for index, item in enumerate(items, start=1):
        sku = (item.get('sku') or '').strip()
        if not sku:
            raise ValidationError(f'Item {index}: sku is required.', field='items')
        quantity = to_decimal(item.get('quantity_kg'), 'quantity_kg').quantize(QTY_PLACES)
        unit_price = to_decimal(item.get('unit_price'), 'unit_price').quantize(MONEY_PLACES)
        if quantity <= 0:
            raise ValidationError(f'Item {index}: quantity_kg must be greater than zero.', field='items')
        if unit_price <= 0:
            raise ValidationError(f'Item {index}: unit_price must be greater than zero.', field='items')
        cleaned.append({
            'sku': sku,
            'description': item.get('description') or '',
            'quantity_kg': quantity,
            'unit_price': unit_price,
            'total_price': (quantity * unit_price).quantize(MONEY_PLACES),
        })
    return cleaned


def _write_items(order, cleaned):
    PurchaseOrderItem.objects.bulk_create([
        PurchaseOrderItem(purchase_order=order, **item) for item in cleaned
    ])
    order.total_amount = sum((item['total_price'] for item in cleaned), Decimal('0.00'))


def _record_status(ctx, order, from_status, to_status, notes=''):
    POStatusHistory.objects.create(
        purchase_order=order,
        from_status=from_status,
        to_status=to_status,
        changed_by=ctx.user,
        notes=notes or '',
    )


@transaction.atomic
def create_order(ctx, supplier, items, order_date=None, expected_delivery_date=None, currency=None, notes=''):
    tenant = ctx.require_tenant()
    if supplier.tenant_id != tenant.pk:
        raise ValidationError('Supplier does not belong to this tenant.', field='supplier')
    cleaned = _clean_items(items)

    order = PurchaseOrder.objects.create(
        tenant=tenant,
        po_number=generate_document_number('PO', PurchaseOrder, 'po_number', tenant=tenant),
        supplier=supplier,
        order_date=order_date or timezone.localdate(),
        expected_delivery_date=expected_delivery_date,
        currency=currency or tenant.currency,
        notes=notes or '',
        created_by=ctx.user,
    )
    _write_items(order, cleaned)
    order.save(update_fields=['total_amount'])
    _record_status(ctx, order, None, PurchaseOrder.STATUS_DRAFT, 'Purchase order created')

    create_audit_log(ctx, action='create', model_name='PurchaseOrder', object_id=order.pk,
                     object_reference=order.po_number,
                     changes={'supplier': supplier.name, 'total_amount': str(order.total_amount),
                              'items': len(cleaned)})
    logger.info("Purchase order %s created for %s", order.po_number, supplier.name)
    return order


@transaction.atomic
def update_order(ctx, order_id, items=None, **header):
    """Edit a DRAFT order; ``items`` replaces all lines when given"""
    order = _lock_order(ctx, order_id)
    if order.status != PurchaseOrder.STATUS_DRAFT:
        raise Conflict(f'Purchase order {order.po_number} is {order.status}; only DRAFT orders can be edited.')

    supplier = header.pop('supplier', None)
    if supplier is not None:
        if supplier.tenant_id != order.tenant_id:
            raise ValidationError('Supplier does not belong to this tenant.', field='supplier')
        order.supplier = supplier
    for field in ('order_date', 'expected_delivery_date', 'currency', 'notes'):
        if field in header:
            setattr(order, field, header[field])

    if items is not None:
        cleaned = _clean_items(items)
        order.items.all().delete()
        _write_items(order, cleaned)
    order.save()

    create_audit_log(ctx, action='update', model_name='PurchaseOrder', object_id=order.pk,
                     object_reference=order.po_number,
                     changes={'fields': sorted(header), 'items_replaced': items is not None})
    return order


@transaction.atomic
def change_status(ctx, order_id, to_status, notes=''):
    order = _lock_order(ctx, order_id)
    valid = {code for code, _ in PurchaseOrder.STATUS_CHOICES}
    if to_status not in valid:
        raise ValidationError(f'Unknown status {to_status}.', field='status')
    if to_status == PurchaseOrder.STATUS_RECEIVED:
        raise InvalidTransition(
            'Orders become RECEIVED by receiving goods.',
            from_status=order.status, to_status=to_status,
        )
    if not order.can_transition_to(to_status):
        raise InvalidTransition(from_status=order.status, to_status=to_status)

    old_status = order.status
    order.status = to_status
    order.save(update_fields=['status', 'updated_at'])
    _record_status(ctx, order, old_status, to_status, notes)
    create_audit_log(ctx, action='status_change', model_name='PurchaseOrder', object_id=order.pk,
                     object_reference=order.po_number,
                     changes={'status': {'old': old_status, 'new': to_status}, 'notes': notes or ''})
    logger.info("Purchase order %s: %s -> %s", order.po_number, old_status, to_status)
    return order


@transaction.atomic
def receive_goods(ctx, order_id, items, notes=''):
    """
    Receive goods of an IN_TRANSIT order.

    Each entry is {po_item_id, received_quantity, moisture_content}. Every
    non-zero entry becomes one lot numbered GRN-<po_number>-<n>. Returns the
    order and the created lots.
    """
    order = _lock_order(ctx, order_id)
    if order.status != PurchaseOrder.STATUS_IN_TRANSIT:
        raise InvalidTransition(
            f'Goods can only be received for IN_TRANSIT orders; {order.po_number} is {order.status}.',
            from_status=order.status, to_status=PurchaseOrder.STATUS_RECEIVED,
        )
    if not items:
        raise ValidationError('No items to receive.', field='items')

    order_items = {item.pk: item for item in order.items.select_for_update()}
    receipts = []
    seen = set()
    for entry in items:
        item_id = entry.get('po_item_id')
        try:
            item = order_items[int(item_id)]
        except (KeyError, TypeError, ValueError):
            raise ValidationError(f'Item {item_id} is not part of {order.po_number}.', field='items')
        if item.pk in seen:
            raise ValidationError(f'Item {item.sku} is listed more than once.', field='items')
        seen.add(item.pk)

        quantity = to_decimal(entry.get('received_quantity'), 'received_quantity').quantize(QTY_PLACES)
        if quantity < 0:
            raise ValidationError(f'Received quantity for {item.sku} cannot be negative.', field='items')
        outstanding = item.get_outstanding_quantity()
        if quantity > outstanding:
            raise ValidationError(
                f'Received quantity {quantity} kg for {item.sku} exceeds the outstanding {outstanding} kg.',
                field='items',
            )
        if quantity > 0:
            receipts.append((item, quantity, entry.get('moisture_content')))

    if not receipts:
        raise ValidationError('At least one item must have a received quantity above zero.', field='items')

    sequence = GreenCoffeeLot.objects.filter(purchase_order_item__purchase_order=order).count()
    lots = []
    for item, quantity, moisture in receipts:
        sequence += 1
        while GreenCoffeeLot.objects.filter(tenant_id=order.tenant_id, lot_number=f'GRN-{order.po_number}-{sequence}').exists():
            sequence += 1
        lot = ledger.receive_lot(
            ctx,
            lot_number=f'GRN-{order.po_number}-{sequence}',
            sku=item.sku,
            initial_weight=quantity,
            purchase_cost_per_kg=item.unit_price,
            moisture_content=moisture,
            supplier=order.supplier,
            purchase_order_item=item,
        )
        item.received_quantity_kg += quantity
        item.save(update_fields=['received_quantity_kg'])
        lots.append(lot)

    fully_received = all(i.received_quantity_kg >= i.quantity_kg for i in order_items.values())
    if fully_received:
        old_status = order.status
        order.status = PurchaseOrder.STATUS_RECEIVED
        order.actual_delivery_date = timezone.localdate()
        order.save(update_fields=['status', 'actual_delivery_date', 'updated_at'])
        _record_status(ctx, order, old_status, order.status, notes or 'All items received')

    create_audit_log(ctx, action='receive', model_name='PurchaseOrder', object_id=order.pk,
                     object_reference=order.po_number,
                     changes={'lots': [lot.lot_number for lot in lots],
                              'received': {item.sku: str(qty) for item, qty, _ in receipts},
                              'complete': fully_received, 'notes': notes or ''})
    logger.info("Received %d line(s) for %s%s", len(lots), order.po_number,
                ' (complete)' if fully_received else ' (partial)')
    return order, lots


@transaction.atomic
def delete_order(ctx, order_id):
    order = _lock_order(ctx, order_id)
    if order.status != PurchaseOrder.STATUS_DRAFT:
        raise Conflict(f'Purchase order {order.po_number} is {order.status}; only DRAFT orders can be deleted.')
    create_audit_log(ctx, action='delete', model_name='PurchaseOrder', object_id=order.pk,
                     object_reference=order.po_number)
    order.delete()
    logger.info("Purchase order %s deleted", order.po_number)
