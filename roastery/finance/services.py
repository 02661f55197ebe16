"""
Cost/HPP aggregator.

Indirect costs are kept as one row per (tenant, month, year). Individual cost
entries roll into the category columns of their month's row, so the monthly
row is always the figure the HPP report divides by production.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum
from django.db.models.functions import ExtractMonth
from django.utils import timezone

from roastery.core.context import get_scoped
from roastery.core.exceptions import Conflict, ValidationError
from roastery.core.utils import create_audit_log
from roastery.inventory.services import QTY_PLACES, to_decimal
from roastery.production.models import RoastBatch
from .models import CostEntry, IndirectCost

logger = logging.getLogger(__name__)

MONEY_PLACES = Decimal('0.01')
ZERO = Decimal('0.00')
MONTHS = range(1, 13)


def _check_period(month, year):
    try:
        month, year = int(month), int(year)
    except (TypeError, ValueError):
        raise ValidationError('month and year must be whole numbers.')
    if month not in MONTHS:
        raise ValidationError('month must be between 1 and 12.', field='month')
    if not 2000 <= year <= 2100:
        raise ValidationError('year must be between 2000 and 2100.', field='year')
    return month, year


def _amount(value, field, positive=False):
    amount = to_decimal(value if value is not None else ZERO, field).quantize(MONEY_PLACES)
    if positive and amount <= 0:
        raise ValidationError(f'{field} must be greater than zero.', field=field)
    if amount < 0:
        raise ValidationError(f'{field} cannot be negative.', field=field)
    return amount


def _ensure_open(cost):
    if cost.is_closed:
        raise Conflict(f'Costs for {cost} are closed and cannot be changed.')


@transaction.atomic
def record_monthly_cost(ctx, month, year, rent=None, utilities=None, labor=None, misc=None,
                        estimated_total=None):
    """Create or overwrite the indirect cost row of a month"""
    tenant = ctx.require_tenant()
    month, year = _check_period(month, year)
    values = {
        'rent': _amount(rent, 'rent'),
        'utilities': _amount(utilities, 'utilities'),
        'labor': _amount(labor, 'labor'),
        'misc': _amount(misc, 'misc'),
    }

    cost = IndirectCost.objects.select_for_update().filter(tenant=tenant, month=month, year=year).first()
    created = cost is None
    if created:
        cost = IndirectCost(tenant=tenant, month=month, year=year, created_by=ctx.user)
    else:
        _ensure_open(cost)

    for field, value in values.items():
        setattr(cost, field, value)
    if estimated_total is not None or created:
        cost.estimated_total = _amount(estimated_total, 'estimated_total')
    cost.recalculate_total()
    cost.save()

    create_audit_log(ctx, action='create' if created else 'update', model_name='IndirectCost',
                     object_id=cost.pk, object_reference=str(cost),
                     changes=dict({k: str(v) for k, v in values.items()},
                                  total_actual=str(cost.total_actual),
                                  estimated_total=str(cost.estimated_total)))
    logger.info("Indirect cost %s %s: actual %s estimated %s", cost, 'recorded' if created else 'updated',
                cost.total_actual, cost.estimated_total)
    return cost


@transaction.atomic
def update_monthly_cost(ctx, cost_id, **values):
    """Edit the amounts of an open month; the period itself cannot move"""
    cost = get_scoped(IndirectCost.objects.select_for_update(), ctx, cost_id, 'Indirect cost')
    _ensure_open(cost)
    for field in IndirectCost.CATEGORY_FIELDS + ('estimated_total',):
        if field in values:
            setattr(cost, field, _amount(values[field], field))
    cost.recalculate_total()
    cost.save()
    create_audit_log(ctx, action='update', model_name='IndirectCost', object_id=cost.pk,
                     object_reference=str(cost),
                     changes={k: str(v) for k, v in values.items()})
    return cost


@transaction.atomic
def close_month(ctx, cost_id):
    cost = get_scoped(IndirectCost.objects.select_for_update(), ctx, cost_id, 'Indirect cost')
    if cost.is_closed:
        raise Conflict(f'Costs for {cost} are already closed.')
    cost.is_closed = True
    cost.closed_at = timezone.now()
    cost.save(update_fields=['is_closed', 'closed_at', 'updated_at'])
    create_audit_log(ctx, action='close', model_name='IndirectCost', object_id=cost.pk,
                     object_reference=str(cost), changes={'total_actual': str(cost.total_actual)})
    logger.info("Indirect cost %s closed at %s", cost, cost.total_actual)
    return cost


@transaction.atomic
def delete_monthly_cost(ctx, cost_id):
    cost = get_scoped(IndirectCost.objects.select_for_update(), ctx, cost_id, 'Indirect cost')
    _ensure_open(cost)
    create_audit_log(ctx, action='delete', model_name='IndirectCost', object_id=cost.pk,
                     object_reference=str(cost))
    cost.delete()


def _apply_entry(cost, category, delta):
    field = CostEntry.CATEGORY_FIELD_MAP[category]
    setattr(cost, field, getattr(cost, field) + delta)
    cost.recalculate_total()
    cost.save()


@transaction.atomic
def record_cost_entry(ctx, entry_date, category, amount, description=''):
    """Post a dated expense and add it to its month's category total"""
    tenant = ctx.require_tenant()
    if category not in CostEntry.CATEGORY_FIELD_MAP:
        raise ValidationError(f'Unknown category {category}.', field='category')
    amount = _amount(amount, 'amount', positive=True)

    cost, created = IndirectCost.objects.select_for_update().get_or_create(
        tenant=tenant, month=entry_date.month, year=entry_date.year,
        defaults={'estimated_total': ZERO, 'created_by': ctx.user},
    )
    _ensure_open(cost)

    entry = CostEntry.objects.create(
        tenant=tenant,
        entry_date=entry_date,
        category=category,
        amount=amount,
        description=description or '',
        created_by=ctx.user,
    )
    _apply_entry(cost, category, amount)

    create_audit_log(ctx, action='create', model_name='CostEntry', object_id=entry.pk,
                     object_reference=str(cost),
                     changes={'category': category, 'amount': str(amount), 'month_created': created})
    logger.info("Cost entry %s %s posted to %s", category, amount, cost)
    return entry


@transaction.atomic
def delete_cost_entry(ctx, entry_id):
    """Remove an expense and take it back out of its month's total"""
    entry = get_scoped(CostEntry.objects.select_for_update(), ctx, entry_id, 'Cost entry')
    cost = IndirectCost.objects.select_for_update().filter(
        tenant_id=entry.tenant_id, month=entry.entry_date.month, year=entry.entry_date.year,
    ).first()
    if cost is not None:
        _ensure_open(cost)
        field = CostEntry.CATEGORY_FIELD_MAP[entry.category]
        # Never drive a category negative if the row was overwritten since
        _apply_entry(cost, entry.category, -min(entry.amount, getattr(cost, field)))

    create_audit_log(ctx, action='delete', model_name='CostEntry', object_id=entry.pk,
                     object_reference=str(cost) if cost else None,
                     changes={'category': entry.category, 'amount': str(entry.amount)})
    entry.delete()
    logger.info("Cost entry %s %s removed", entry.category, entry.amount)


def _ratio(numerator, denominator, places):
    if not denominator:
        return ZERO.quantize(places)
    return (numerator / denominator).quantize(places)


def monthly_production(ctx, year):
    """Roasted output (sum of weight_out) per month of ``year``"""
    rows = (
        RoastBatch.objects.filter(tenant_id=ctx.require_tenant().pk, roasted_at__year=year,
                                  weight_out__isnull=False)
        .annotate(month=ExtractMonth('roasted_at'))
        .values('month')
        .annotate(total=Sum('weight_out'))
    )
    return {row['month']: row['total'] or Decimal('0') for row in rows}


def compute_hpp(ctx, year):
    """
    Overhead cost per roasted kilogram, month by month.

    Months without production report an HPP of 0 instead of dividing by zero;
    the yearly average uses the same guard.
    """
    tenant = ctx.require_tenant()
    _check_period(1, year)
    year = int(year)
    overheads = {
        cost.month: cost.total_actual
        for cost in IndirectCost.objects.filter(tenant=tenant, year=year)
    }
    production = monthly_production(ctx, year)

    months = []
    total_overhead = ZERO
    total_production = Decimal('0.000')
    for month in MONTHS:
        overhead = overheads.get(month, ZERO)
        produced = Decimal(production.get(month, 0)).quantize(QTY_PLACES)
        total_overhead += overhead
        total_production += produced
        months.append({
            'month': month,
            'overhead': overhead,
            'production_kg': produced,
            'hpp_per_kg': _ratio(overhead, produced, MONEY_PLACES),
        })

    return {
        'year': year,
        'months': months,
        'total_overhead': total_overhead,
        'total_production_kg': total_production,
        'average_hpp': _ratio(total_overhead, total_production, MONEY_PLACES),
    }


def compute_variance(ctx, year):
    """Actual against estimated overhead for each recorded month; negative is favourable"""
    tenant = ctx.require_tenant()
    _check_period(1, year)
    rows = []
    costs = IndirectCost.objects.filter(tenant=tenant, year=int(year)).order_by('month')
    for cost in costs:
        variance = (cost.total_actual - cost.estimated_total).quantize(MONEY_PLACES)
        rows.append({
            'id': cost.pk,
            'month': cost.month,
            'actual': cost.total_actual,
            'estimated': cost.estimated_total,
            'variance': variance,
            'variance_pct': _ratio(variance * 100, cost.estimated_total, MONEY_PLACES),
            'favourable': variance < 0,
            'is_closed': cost.is_closed,
        })
    return {'year': int(year), 'months': rows}
