"""
Invoice generator and payment recording for sales and purchase invoices.

Invoices generated from an order copy its fulfilled (sales) or received
(purchase) quantities; an order is invoiced at most once. Payment status is
derived from the paid amount and never set to OVERDUE by a payment; overdue
is a function of the due date (see mark_overdue_invoices).
"""
import logging
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from roastery.core.context import get_scoped
from roastery.core.exceptions import Conflict, InvalidPaymentAmount, InvalidTransition, ValidationError
from roastery.core.utils import create_audit_log, generate_document_number
from roastery.inventory.services import QTY_PLACES, to_decimal
from roastery.purchasing.models import PurchaseOrder
from roastery.sales.models import SalesOrder
from .models import InvoiceBase, PurchaseInvoice, PurchaseInvoiceItem, SalesInvoice, SalesInvoiceItem

logger = logging.getLogger(__name__)

MONEY_PLACES = Decimal('0.01')
ZERO = Decimal('0.00')

INVOICABLE_SALES_STATUSES = (SalesOrder.STATUS_SHIPPED, SalesOrder.STATUS_DELIVERED)
INVOICABLE_PURCHASE_STATUSES = (PurchaseOrder.STATUS_RECEIVED, PurchaseOrder.STATUS_COMPLETED)


def _payment_terms(payment_terms_days):
    if payment_terms_days is None:
        return settings.DEFAULT_PAYMENT_TERMS_DAYS
    try:
        days = int(payment_terms_days)
    except (TypeError, ValueError):
        raise ValidationError('payment_terms_days must be a whole number of days.', field='payment_terms_days')
    if days < 0:
        raise ValidationError('payment_terms_days cannot be negative.', field='payment_terms_days')
    return days


def _clean_lines(lines):
    """Validate invoice line dicts and compute line totals"""
    if not lines:
        raise ValidationError('An invoice needs at least one line.', field='items')
    cleaned = []
    for index, line in enumerate(lines, start=1):
        sku = (line.get('product_sku') or '').strip()
        if not sku:
            raise ValidationError(f'Line {index}: product_sku is required.', field='items')
        quantity = to_decimal(line.get('quantity'), 'quantity').quantize(QTY_PLACES)
        unit_price = to_decimal(line.get('unit_price'), 'unit_price').quantize(MONEY_PLACES)
        if quantity <= 0:
            raise ValidationError(f'Line {index}: quantity must be greater than zero.', field='items')
        if unit_price < 0:
            raise ValidationError(f'Line {index}: unit_price cannot be negative.', field='items')
        cleaned.append({
            'product_sku': sku,
            'product_name': (line.get('product_name') or '').strip() or sku,
            'quantity': quantity,
            'unit_price': unit_price,
            'line_total': (quantity * unit_price).quantize(MONEY_PLACES),
            'notes': line.get('notes') or '',
        })
    return cleaned


def _create_invoice(ctx, model, item_model, prefix, lines, invoice_date=None, payment_terms_days=None,
                    tax_amount=None, notes='', **links):
    tenant = ctx.require_tenant()
    cleaned = _clean_lines(lines)
    tax_amount = to_decimal(tax_amount if tax_amount is not None else ZERO, 'tax_amount').quantize(MONEY_PLACES)
    if tax_amount < 0:
        raise ValidationError('tax_amount cannot be negative.', field='tax_amount')
    terms = _payment_terms(payment_terms_days)
    invoice_date = invoice_date or timezone.localdate()
    subtotal = sum((line['line_total'] for line in cleaned), ZERO)

    invoice = model.objects.create(
        tenant=tenant,
        invoice_number=generate_document_number(prefix, model, 'invoice_number', tenant=tenant),
        invoice_date=invoice_date,
        due_date=invoice_date + timedelta(days=terms),
        payment_terms_days=terms,
        subtotal_amount=subtotal,
        tax_amount=tax_amount,
        total_amount=subtotal + tax_amount,
        notes=notes or '',
        created_by=ctx.user,
        updated_by=ctx.user,
        **links,
    )
    item_model.objects.bulk_create([item_model(invoice=invoice, **line) for line in cleaned])

    create_audit_log(ctx, action='create', model_name=model.__name__, object_id=invoice.pk,
                     object_reference=invoice.invoice_number,
                     changes={'total_amount': str(invoice.total_amount), 'lines': len(cleaned),
                              'due_date': invoice.due_date.isoformat()})
    logger.info("%s %s created: total %s due %s", model.__name__, invoice.invoice_number,
                invoice.total_amount, invoice.due_date)
    return invoice


@transaction.atomic
def generate_from_sales_order(ctx, order_id, invoice_date=None, payment_terms_days=None, tax_amount=None, notes=''):
    """Invoice the fulfilled quantities of a SHIPPED or DELIVERED order"""
    order = get_scoped(SalesOrder.objects.select_for_update().select_related('client'), ctx, order_id, 'Sales order')
    if order.status not in INVOICABLE_SALES_STATUSES:
        raise InvalidTransition(
            f'Sales order {order.so_number} is {order.status}; only shipped or delivered orders can be invoiced.',
            from_status=order.status,
        )
    if SalesInvoice.objects.filter(sales_order=order).exists():
        raise Conflict(f'Sales order {order.so_number} is already invoiced.')

    lines = [
        {
            'product_sku': item.product_sku,
            'product_name': item.description or item.product_sku,
            'quantity': item.fulfilled_quantity_kg,
            'unit_price': item.unit_price,
        }
        for item in order.items.order_by('id') if item.fulfilled_quantity_kg > 0
    ]
    return _create_invoice(
        ctx, SalesInvoice, SalesInvoiceItem, 'INV', lines,
        invoice_date=invoice_date, payment_terms_days=payment_terms_days, tax_amount=tax_amount,
        notes=notes or f'Invoice for {order.so_number}',
        sales_order=order, client=order.client,
    )


@transaction.atomic
def generate_from_purchase_order(ctx, order_id, invoice_date=None, payment_terms_days=None, tax_amount=None, notes=''):
    """Record the supplier bill for the received quantities of a purchase order"""
    order = get_scoped(PurchaseOrder.objects.select_for_update().select_related('supplier'), ctx, order_id,
                       'Purchase order')
    if order.status not in INVOICABLE_PURCHASE_STATUSES:
        raise InvalidTransition(
            f'Purchase order {order.po_number} is {order.status}; only received orders can be invoiced.',
            from_status=order.status,
        )
    if PurchaseInvoice.objects.filter(purchase_order=order).exists():
        raise Conflict(f'Purchase order {order.po_number} is already invoiced.')

    lines = [
        {
            'product_sku': item.sku,
            'product_name': item.description or item.sku,
            'quantity': item.received_quantity_kg,
            'unit_price': item.unit_price,
        }
        for item in order.items.order_by('id') if item.received_quantity_kg > 0
    ]
    return _create_invoice(
        ctx, PurchaseInvoice, PurchaseInvoiceItem, 'PINV', lines,
        invoice_date=invoice_date, payment_terms_days=payment_terms_days, tax_amount=tax_amount,
        notes=notes or f'Invoice for {order.po_number}',
        purchase_order=order, supplier=order.supplier,
    )


@transaction.atomic
def create_manual_sales_invoice(ctx, client, items, invoice_date=None, payment_terms_days=None,
                                tax_amount=None, notes=''):
    if client.tenant_id != ctx.require_tenant().pk:
        raise ValidationError('Client does not belong to this tenant.', field='client')
    return _create_invoice(ctx, SalesInvoice, SalesInvoiceItem, 'INV', items,
                           invoice_date=invoice_date, payment_terms_days=payment_terms_days,
                           tax_amount=tax_amount, notes=notes, client=client)


@transaction.atomic
def create_manual_purchase_invoice(ctx, supplier, items, invoice_date=None, payment_terms_days=None,
                                   tax_amount=None, notes=''):
    if supplier.tenant_id != ctx.require_tenant().pk:
        raise ValidationError('Supplier does not belong to this tenant.', field='supplier')
    return _create_invoice(ctx, PurchaseInvoice, PurchaseInvoiceItem, 'PINV', items,
                           invoice_date=invoice_date, payment_terms_days=payment_terms_days,
                           tax_amount=tax_amount, notes=notes, supplier=supplier)


def payment_status_for(paid_amount, total_amount):
    """PAID at the total, UNPAID at 0, PARTIALLY_PAID in between"""
    # A zero-total invoice is settled by a zero payment
    if paid_amount >= total_amount:
        return InvoiceBase.PAYMENT_PAID
    if paid_amount <= 0:
        return InvoiceBase.PAYMENT_UNPAID
    return InvoiceBase.PAYMENT_PARTIALLY_PAID


@transaction.atomic
def record_payment(ctx, model, invoice_id, paid_amount, payment_method='', payment_date=None, payment_reference=''):
    """Set the cumulative paid amount of an invoice"""
    invoice = get_scoped(model.objects.select_for_update(), ctx, invoice_id, 'Invoice')
    paid_amount = to_decimal(paid_amount, 'paid_amount').quantize(MONEY_PLACES)
    if paid_amount < 0:
        raise InvalidPaymentAmount('Paid amount cannot be negative.')
    if paid_amount > invoice.total_amount:
        raise InvalidPaymentAmount(
            f'Paid amount {paid_amount} exceeds the invoice total {invoice.total_amount}.'
        )

    old_status, old_paid = invoice.payment_status, invoice.paid_amount
    invoice.paid_amount = paid_amount
    invoice.payment_status = payment_status_for(paid_amount, invoice.total_amount)
    if payment_method:
        invoice.payment_method = payment_method
    if payment_reference:
        invoice.payment_reference = payment_reference
    invoice.payment_date = payment_date or (timezone.localdate() if paid_amount > 0 else None)
    invoice.updated_by = ctx.user
    invoice.save()

    create_audit_log(ctx, action='payment_update', model_name=model.__name__, object_id=invoice.pk,
                     object_reference=invoice.invoice_number,
                     changes={'paid_amount': {'old': str(old_paid), 'new': str(paid_amount)},
                              'payment_status': {'old': old_status, 'new': invoice.payment_status}})
    logger.info("Payment on %s: %s of %s (%s)", invoice.invoice_number, paid_amount,
                invoice.total_amount, invoice.payment_status)
    return invoice


@transaction.atomic
def delete_invoice(ctx, model, invoice_id):
    invoice = get_scoped(model.objects.select_for_update(), ctx, invoice_id, 'Invoice')
    if invoice.payment_status != InvoiceBase.PAYMENT_UNPAID or invoice.paid_amount > 0:
        raise Conflict(f'Invoice {invoice.invoice_number} has payments and cannot be deleted.')
    create_audit_log(ctx, action='delete', model_name=model.__name__, object_id=invoice.pk,
                     object_reference=invoice.invoice_number)
    invoice.delete()
    logger.info("%s %s deleted", model.__name__, invoice.invoice_number)


def mark_overdue(model, today=None, tenant=None):
    """Persist OVERDUE on unpaid invoices past their due date; returns the count"""
    today = today or timezone.localdate()
    queryset = model.objects.filter(
        due_date__lt=today,
        payment_status__in=[InvoiceBase.PAYMENT_UNPAID, InvoiceBase.PAYMENT_PARTIALLY_PAID],
    )
    if tenant is not None:
        queryset = queryset.filter(tenant=tenant)
    return queryset.update(payment_status=InvoiceBase.PAYMENT_OVERDUE, updated_at=timezone.now())
