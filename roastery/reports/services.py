"""
Read model for the dashboard and the stock overview.

Each function answers one screen in a handful of aggregate queries. Results are
cached per tenant and dropped whenever lots, batches, orders, invoices or costs
change (see roastery.core.cache_signals).
"""
import logging
from decimal import Decimal

from django.db.models import Count, DecimalField, ExpressionWrapper, F, Min, Q, Sum
from django.utils import timezone

from roastery.core.cache_utils import cached_report
from roastery.finance.models import IndirectCost
from roastery.inventory.models import GreenCoffeeLot
from roastery.invoicing.models import InvoiceBase, PurchaseInvoice, SalesInvoice
from roastery.production.models import RoastBatch
from roastery.purchasing.models import PurchaseOrder
from roastery.sales.models import SalesOrder

logger = logging.getLogger(__name__)

ZERO_QTY = Decimal('0.000')
ZERO_MONEY = Decimal('0.00')

STOCK_VALUE = ExpressionWrapper(
    F('current_weight') * F('weighted_avg_cost'),
    output_field=DecimalField(max_digits=20, decimal_places=4),
)
BALANCE_DUE = ExpressionWrapper(
    F('total_amount') - F('paid_amount'),
    output_field=DecimalField(max_digits=16, decimal_places=2),
)


def _money(value):
    return (value or ZERO_MONEY).quantize(ZERO_MONEY)


def _qty(value):
    return (value or ZERO_QTY).quantize(ZERO_QTY)


def _outstanding(model, tenant_id):
    return _money(
        model.objects.filter(tenant_id=tenant_id)
        .exclude(payment_status=InvoiceBase.PAYMENT_PAID)
        .aggregate(total=Sum(BALANCE_DUE))['total']
    )


@cached_report('dashboard')
def dashboard_summary(ctx):
    """Headline figures of one tenant"""
    tenant = ctx.require_tenant()
    today = timezone.localdate()

    lots = GreenCoffeeLot.objects.filter(tenant=tenant).aggregate(
        total_lots=Count('id'),
        available_lots=Count('id', filter=Q(current_weight__gt=0)),
        green_stock_kg=Sum('current_weight'),
        green_stock_value=Sum(STOCK_VALUE),
    )

    batches = RoastBatch.objects.filter(tenant=tenant)
    batch_counts = {status: 0 for status, _ in RoastBatch.STATUS_CHOICES}
    for row in batches.values('status').annotate(count=Count('id')):
        batch_counts[row['status']] = row['count']
    roasted = batches.filter(status=RoastBatch.STATUS_QC_PASSED).aggregate(
        available=Sum('available_quantity_kg'),
        reserved=Sum('reserved_quantity_kg'),
    )

    current_cost = IndirectCost.objects.filter(tenant=tenant, year=today.year, month=today.month).first()

    summary = {
        'users': tenant.users.filter(is_active=True).count(),
        'green_lots': {
            'total': lots['total_lots'],
            'available': lots['available_lots'],
            'stock_kg': _qty(lots['green_stock_kg']),
            'stock_value': _money(lots['green_stock_value']),
        },
        'roast_batches': batch_counts,
        'roasted_stock': {
            'available_kg': _qty(roasted['available']),
            'reserved_kg': _qty(roasted['reserved']),
        },
        'open_purchase_orders': PurchaseOrder.objects.filter(tenant=tenant).exclude(
            status__in=PurchaseOrder.CLOSED_STATUSES).count(),
        'open_sales_orders': SalesOrder.objects.filter(tenant=tenant).exclude(
            status__in=SalesOrder.CLOSED_STATUSES).count(),
        'receivables_outstanding': _outstanding(SalesInvoice, tenant.pk),
        'payables_outstanding': _outstanding(PurchaseInvoice, tenant.pk),
        'current_month_cost': {
            'month': today.month,
            'year': today.year,
            'actual': current_cost.total_actual if current_cost else ZERO_MONEY,
            'estimated': current_cost.estimated_total if current_cost else ZERO_MONEY,
        },
        'generated_at': timezone.now().isoformat(),
    }
    logger.debug("Dashboard summary computed for tenant %s", tenant.pk)
    return summary


@cached_report('stock-summary')
def stock_summary(ctx):
    """Green stock per SKU (valued at WAC) and sellable roasted stock per product SKU"""
    tenant = ctx.require_tenant()

    green = (
        GreenCoffeeLot.objects.filter(tenant=tenant, current_weight__gt=0)
        .values('sku')
        .annotate(
            total_weight=Sum('current_weight'),
            lot_count=Count('id'),
            total_value=Sum(STOCK_VALUE),
            oldest_date=Min('received_at'),
        )
        .order_by('sku')
    )
    roasted = (
        RoastBatch.objects.filter(tenant=tenant, status=RoastBatch.STATUS_QC_PASSED)
        .values('product_sku')
        .annotate(
            total_available=Sum('available_quantity_kg'),
            total_reserved=Sum('reserved_quantity_kg'),
            batch_count=Count('id'),
        )
        .order_by('product_sku')
    )

    return {
        'green': [
            {
                'sku': row['sku'],
                'total_weight': _qty(row['total_weight']),
                'lot_count': row['lot_count'],
                'total_value': _money(row['total_value']),
                'oldest_date': row['oldest_date'].isoformat() if row['oldest_date'] else None,
            }
            for row in green
        ],
        'roasted': [
            {
                'product_sku': row['product_sku'],
                'total_available': _qty(row['total_available']),
                'total_reserved': _qty(row['total_reserved']),
                'total_weight': _qty((row['total_available'] or ZERO_QTY) + (row['total_reserved'] or ZERO_QTY)),
                'batch_count': row['batch_count'],
            }
            for row in roasted
        ],
    }
