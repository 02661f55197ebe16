"""
Django management command to persist OVERDUE on unpaid invoices past their due date
Intended to run daily from cron
"""
from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_date
from roastery.core.models import Tenant
from roastery.invoicing.models import SalesInvoice, PurchaseInvoice
from roastery.invoicing.services import mark_overdue


class Command(BaseCommand):
    help = 'Mark unpaid sales and purchase invoices past their due date as OVERDUE'

    def add_arguments(self, parser):
        parser.add_argument(
            '--tenant-id',
            type=int,
            help='Only process invoices of this tenant',
        )
        parser.add_argument(
            '--date',
            help='Treat this ISO date as today (default: current local date)',
        )

    def handle(self, *args, **options):
        tenant = None
        if options.get('tenant_id'):
            try:
                tenant = Tenant.objects.get(pk=options['tenant_id'])
            except Tenant.DoesNotExist:
                raise CommandError(f"Tenant {options['tenant_id']} does not exist")

        today = None
        if options.get('date'):
            today = parse_date(options['date'])
            if today is None:
                raise CommandError(f"Invalid date: {options['date']}")

        sales_count = mark_overdue(SalesInvoice, today=today, tenant=tenant)
        purchase_count = mark_overdue(PurchaseInvoice, today=today, tenant=tenant)

        self.stdout.write(self.style.SUCCESS(
            f"Marked {sales_count} sales invoice(s) and {purchase_count} purchase invoice(s) as OVERDUE"
        ))
