"""
Sales order state machine.

    PENDING -> CONFIRMED -> PREPARING -> SHIPPED -> DELIVERED
       \           \__________________/^
        \-> CANCELLED <-/

Confirming reserves roasted stock, shipping fulfils the reservations and
cancelling releases them. Each operation locks the order row and runs in one
transaction, so a failed reservation leaves the order PENDING and untouched.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from roastery.core.context import get_scoped
from roastery.core.exceptions import Conflict, InvalidTransition, ValidationError
from roastery.core.utils import create_audit_log, generate_document_number
from roastery.inventory.services import QTY_PLACES, to_decimal
from . import reservations
from .models import SalesOrder, SalesOrderItem, SOStatusHistory

logger = logging.getLogger(__name__)

MONEY_PLACES = Decimal('0.01')


def _lock_order(ctx, order_id):
    return get_scoped(SalesOrder.objects.select_for_update().select_related('client'), ctx, order_id,
                      'Sales order')


def _guard(order, to_status):
    if not order.can_transition_to(to_status):
        raise InvalidTransition(from_status=order.status, to_status=to_status)


def _transition(ctx, order, to_status, notes='', extra_fields=()):
    old_status = order.status
    order.status = to_status
    order.save(update_fields=['status', 'updated_at', *extra_fields])
    SOStatusHistory.objects.create(
        sales_order=order,
        from_status=old_status,
        to_status=to_status,
        changed_by=ctx.user,
        notes=notes or '',
    )
    create_audit_log(ctx, action='status_change', model_name='SalesOrder', object_id=order.pk,
                     object_reference=order.so_number,
                     changes={'status': {'old': old_status, 'new': to_status}, 'notes': notes or ''})
    logger.info("Sales order %s: %s -> %s", order.so_number, old_status, to_status)
    return order


def _clean_items(items):
    """Validate item dicts (positive quantity and price, unique SKUs) and compute totals"""
    if not items:
        raise ValidationError('A sales order needs at least one item.', field='items')
    cleaned = []
    seen = set()
    for index, item in enumerate(items, start=1):
        sku = (item.get('product_sku') or '').strip()
        if not sku:
            raise ValidationError(f'Item {index}: product_sku is required.', field='items')
        if sku in seen:
            raise ValidationError(f'Product {sku} appears more than once; combine the lines.', field='items')
        seen.add(sku)
        quantity = to_decimal(item.get('quantity_kg'), 'quantity_kg').quantize(QTY_PLACES)
        unit_price = to_decimal(item.get('unit_price'), 'unit_price').quantize(MONEY_PLACES)
        if quantity <= 0:
            raise ValidationError(f'Item {index}: quantity_kg must be greater than zero.', field='items')
        if unit_price <= 0:
            raise ValidationError(f'Item {index}: unit_price must be greater than zero.', field='items')
        cleaned.append({
            'product_sku': sku,
            'description': item.get('description') or '',
            'quantity_kg': quantity,
            'unit_price': unit_price,
            'total_price': (quantity * unit_price).quantize(MONEY_PLACES),
        })
    return cleaned


def _write_items(order, cleaned):
    SalesOrderItem.objects.bulk_create([SalesOrderItem(sales_order=order, **item) for item in cleaned])
    order.total_amount = sum((item['total_price'] for item in cleaned), Decimal('0.00'))


@transaction.atomic
def create_order(ctx, client, items, order_date=None, requested_delivery_date=None, currency=None, notes=''):
    tenant = ctx.require_tenant()
    if client.tenant_id != tenant.pk:
        raise ValidationError('Client does not belong to this tenant.', field='client')
    cleaned = _clean_items(items)

    order = SalesOrder.objects.create(
        tenant=tenant,
        so_number=generate_document_number('SO', SalesOrder, 'so_number', tenant=tenant),
        client=client,
        order_date=order_date or timezone.localdate(),
        requested_delivery_date=requested_delivery_date,
        currency=currency or tenant.currency,
        notes=notes or '',
        created_by=ctx.user,
    )
    _write_items(order, cleaned)
    order.save(update_fields=['total_amount'])
    SOStatusHistory.objects.create(sales_order=order, from_status=None, to_status=SalesOrder.STATUS_PENDING,
                                   changed_by=ctx.user, notes='Sales order created')

    create_audit_log(ctx, action='create', model_name='SalesOrder', object_id=order.pk,
                     object_reference=order.so_number,
                     changes={'client': client.name, 'total_amount': str(order.total_amount),
                              'items': len(cleaned)})
    logger.info("Sales order %s created for %s", order.so_number, client.name)
    return order


@transaction.atomic
def update_order(ctx, order_id, items=None, **header):
    """Edit a PENDING order; ``items`` replaces all lines when given"""
    order = _lock_order(ctx, order_id)
    if order.status != SalesOrder.STATUS_PENDING:
        raise Conflict(f'Sales order {order.so_number} is {order.status}; only PENDING orders can be edited.')

    client = header.pop('client', None)
    if client is not None:
        if client.tenant_id != order.tenant_id:
            raise ValidationError('Client does not belong to this tenant.', field='client')
        order.client = client
    for field in ('order_date', 'requested_delivery_date', 'currency', 'notes'):
        if field in header:
            setattr(order, field, header[field])

    if items is not None:
        cleaned = _clean_items(items)
        order.items.all().delete()
        _write_items(order, cleaned)
    order.save()

    create_audit_log(ctx, action='update', model_name='SalesOrder', object_id=order.pk,
                     object_reference=order.so_number,
                     changes={'fields': sorted(header), 'items_replaced': items is not None})
    return order


@transaction.atomic
def confirm(ctx, order_id, notes=''):
    """PENDING -> CONFIRMED, reserving stock for every item"""
    order = _lock_order(ctx, order_id)
    _guard(order, SalesOrder.STATUS_CONFIRMED)
    reservations.reserve_order(ctx, order)
    return _transition(ctx, order, SalesOrder.STATUS_CONFIRMED, notes or 'Order confirmed and inventory reserved')


@transaction.atomic
def start_preparing(ctx, order_id, notes=''):
    order = _lock_order(ctx, order_id)
    _guard(order, SalesOrder.STATUS_PREPARING)
    return _transition(ctx, order, SalesOrder.STATUS_PREPARING, notes)


@transaction.atomic
def ship(ctx, order_id, notes=''):
    """CONFIRMED | PREPARING -> SHIPPED; reserved stock is deducted for good"""
    order = _lock_order(ctx, order_id)
    # Guard before touching reservations
    _guard(order, SalesOrder.STATUS_SHIPPED)
    reservations.fulfill_order(ctx, order)
    return _transition(ctx, order, SalesOrder.STATUS_SHIPPED, notes or 'Order shipped')


@transaction.atomic
def deliver(ctx, order_id, notes='', delivered_on=None):
    order = _lock_order(ctx, order_id)
    _guard(order, SalesOrder.STATUS_DELIVERED)
    order.actual_delivery_date = delivered_on or timezone.localdate()
    return _transition(ctx, order, SalesOrder.STATUS_DELIVERED, notes or 'Order delivered',
                       extra_fields=('actual_delivery_date',))


@transaction.atomic
def cancel(ctx, order_id, notes=''):
    """PENDING | CONFIRMED -> CANCELLED, releasing any reservations"""
    order = _lock_order(ctx, order_id)
    _guard(order, SalesOrder.STATUS_CANCELLED)
    if order.reservations.filter(fulfilled_at__isnull=True).exists():
        reservations.release_order(ctx, order)
    return _transition(ctx, order, SalesOrder.STATUS_CANCELLED, notes or 'Order cancelled')


@transaction.atomic
def delete_order(ctx, order_id):
    order = _lock_order(ctx, order_id)
    if order.status != SalesOrder.STATUS_PENDING:
        raise Conflict(f'Sales order {order.so_number} is {order.status}; only PENDING orders can be deleted.')
    create_audit_log(ctx, action='delete', model_name='SalesOrder', object_id=order.pk,
                     object_reference=order.so_number)
    order.delete()
    logger.info("Sales order %s deleted", order.so_number)


def client_stats(ctx, client):
    """Order totals of one client; cancelled orders do not count towards the amount"""
    stats = SalesOrder.objects.filter(tenant_id=ctx.require_tenant().pk, client=client).aggregate(
        total_orders=Count('id'),
        total_amount=Sum('total_amount', filter=~Q(status=SalesOrder.STATUS_CANCELLED)),
        active_orders=Count('id', filter=~Q(status__in=SalesOrder.CLOSED_STATUSES)),
    )
    stats['total_amount'] = stats['total_amount'] or Decimal('0.00')
    return stats
