"""
Cache invalidation signals
Replace the tenant cache version whenever a row feeding a read model changes
"""
import logging

from django.db.models.signals import post_delete, post_save

from .cache_utils import invalidate_tenant_reports

logger = logging.getLogger(__name__)

# Models whose rows feed the dashboard and stock summary
WATCHED_MODELS = [
    'core.User',
    'inventory.GreenCoffeeLot',
    'production.RoastBatch',
    'purchasing.PurchaseOrder',
    'sales.SalesOrder',
    'invoicing.SalesInvoice',
    'invoicing.PurchaseInvoice',
    'finance.IndirectCost',
    'finance.CostEntry',
]


def tenant_row_changed(sender, instance, **kwargs):
    """Invalidate cached reports of the instance's tenant"""
    tenant_id = getattr(instance, 'tenant_id', None)
    if tenant_id is None:
        return
    invalidate_tenant_reports(tenant_id)
    logger.debug("Invalidated report cache of tenant %s (%s changed)", tenant_id, sender.__name__)


for model_label in WATCHED_MODELS:
    post_save.connect(tenant_row_changed, sender=model_label, dispatch_uid=f'reports-save-{model_label}')
    post_delete.connect(tenant_row_changed, sender=model_label, dispatch_uid=f'reports-delete-{model_label}')
