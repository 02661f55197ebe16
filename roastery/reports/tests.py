"""
Test suite for the dashboard and stock summary read models
"""
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from roastery.core.test_utils import AuthenticatedAPIClient, TestDataFactory
from roastery.invoicing import services as invoicing
from roastery.invoicing.models import SalesInvoice
from roastery.production.models import RoastBatch
from roastery.reports import services
from roastery.sales import services as sales


class DashboardSummaryTests(TestCase):

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.tenant = self.user.tenant
        self.ctx = TestDataFactory.context(self.user)
        self.lot = TestDataFactory.create_lot(self.user, sku='GC-GAYO', weight='100.000', cost='50000.00')

    def test_headline_figures(self):
        """Test the dashboard headline figures"""
        TestDataFactory.create_sellable_batch(self.tenant, self.lot, product_sku='RC-GAYO', available='10.000')
        order = TestDataFactory.create_sales_order(self.tenant, items=[('RC-GAYO', '4.000', '200000.00')])
        sales.confirm(self.ctx, order.pk)
        TestDataFactory.create_purchase_order(self.tenant)
        client = TestDataFactory.create_client(self.tenant)
        invoice = invoicing.create_manual_sales_invoice(self.ctx, client, [
            {'product_sku': 'RC-GAYO', 'quantity': Decimal('1'), 'unit_price': Decimal('1000.00')},
        ])
        invoicing.record_payment(self.ctx, SalesInvoice, invoice.pk, Decimal('400.00'))

        summary = services.dashboard_summary(self.ctx)
        self.assertEqual(summary['users'], 1)
        self.assertEqual(summary['green_lots'], {
            'total': 1, 'available': 1, 'stock_kg': Decimal('100.000'), 'stock_value': Decimal('5000000.00'),
        })
        self.assertEqual(summary['roast_batches'][RoastBatch.STATUS_QC_PASSED], 1)
        self.assertEqual(summary['roast_batches'][RoastBatch.STATUS_PENDING_ROAST], 0)
        self.assertEqual(summary['roasted_stock'], {'available_kg': Decimal('6.000'), 'reserved_kg': Decimal('4.000')})
        self.assertEqual(summary['open_purchase_orders'], 1)
        self.assertEqual(summary['open_sales_orders'], 1)
        self.assertEqual(summary['receivables_outstanding'], Decimal('600.00'))
        self.assertEqual(summary['payables_outstanding'], Decimal('0.00'))

    def test_empty_tenant(self):
        """Test the dashboard of a tenant without data"""
        owner = TestDataFactory.create_user()
        summary = services.dashboard_summary(TestDataFactory.context(owner))
        self.assertEqual(summary['green_lots']['stock_kg'], Decimal('0.000'))
        self.assertEqual(summary['roasted_stock']['available_kg'], Decimal('0.000'))
        self.assertEqual(summary['current_month_cost']['actual'], Decimal('0.00'))

    def test_summary_is_cached_until_data_changes(self):
        """Test the summary is cached until data changes"""
        first = services.dashboard_summary(self.ctx)
        second = services.dashboard_summary(self.ctx)
        self.assertEqual(first['generated_at'], second['generated_at'])

        TestDataFactory.create_lot(self.user, sku='GC-GAYO', weight='50.000', cost='50000.00')
        third = services.dashboard_summary(self.ctx)
        self.assertEqual(third['green_lots']['total'], 2)
        self.assertEqual(third['green_lots']['stock_kg'], Decimal('150.000'))

    def test_reservations_invalidate_cache(self):
        """Test reserving stock invalidates the cached summary"""
        TestDataFactory.create_sellable_batch(self.tenant, self.lot, product_sku='RC-GAYO', available='10.000')
        order = TestDataFactory.create_sales_order(self.tenant, items=[('RC-GAYO', '3.000', '200000.00')])
        services.dashboard_summary(self.ctx)
        sales.confirm(self.ctx, order.pk)
        summary = services.dashboard_summary(self.ctx)
        self.assertEqual(summary['roasted_stock']['reserved_kg'], Decimal('3.000'))

    def test_figures_cached_before_commit_are_dropped(self):
        """Test a summary cached inside an open transaction is recomputed after commit"""
        TestDataFactory.create_sellable_batch(self.tenant, self.lot, product_sku='RC-GAYO', available='10.000')
        order = TestDataFactory.create_sales_order(self.tenant, items=[('RC-GAYO', '2.000', '200000.00')])
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            sales.confirm(self.ctx, order.pk)
            before_commit = services.dashboard_summary(self.ctx)
        self.assertTrue(callbacks)
        after_commit = services.dashboard_summary(self.ctx)
        self.assertNotEqual(before_commit['generated_at'], after_commit['generated_at'])
        self.assertEqual(after_commit['roasted_stock']['reserved_kg'], Decimal('2.000'))

    def test_cache_is_per_tenant(self):
        """Test cached summaries are kept per tenant"""
        other = TestDataFactory.create_user()
        services.dashboard_summary(self.ctx)
        summary = services.dashboard_summary(TestDataFactory.context(other))
        self.assertEqual(summary['green_lots']['total'], 0)


class StockSummaryTests(TestCase):

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.ctx = TestDataFactory.context(self.user)

    def test_green_stock_valued_at_wac(self):
        """Test green stock is valued at weighted average cost"""
        TestDataFactory.create_lot(self.user, sku='GC-GAYO', weight='100.000', cost='50000.00')
        TestDataFactory.create_lot(self.user, sku='GC-GAYO', weight='300.000', cost='60000.00')
        TestDataFactory.create_lot(self.user, sku='GC-TORAJA', weight='20.000', cost='90000.00')

        green = services.stock_summary(self.ctx)['green']
        self.assertEqual([row['sku'] for row in green], ['GC-GAYO', 'GC-TORAJA'])
        gayo = green[0]
        self.assertEqual(gayo['total_weight'], Decimal('400.000'))
        self.assertEqual(gayo['lot_count'], 2)
        self.assertEqual(gayo['total_value'], Decimal('23000000.00'))
        self.assertIsNotNone(gayo['oldest_date'])

    def test_roasted_stock_per_product(self):
        """Test roasted stock is grouped per product"""
        lot = TestDataFactory.create_lot(self.user)
        TestDataFactory.create_sellable_batch(self.user.tenant, lot, product_sku='RC-HOUSE', available='5.000')
        TestDataFactory.create_sellable_batch(self.user.tenant, lot, product_sku='RC-HOUSE', available='2.500')
        failed = TestDataFactory.create_sellable_batch(self.user.tenant, lot, product_sku='RC-HOUSE',
                                                       available='9.000')
        failed.status = RoastBatch.STATUS_QC_FAILED
        failed.save()

        roasted = services.stock_summary(self.ctx)['roasted']
        self.assertEqual(roasted, [{
            'product_sku': 'RC-HOUSE',
            'total_available': Decimal('7.500'),
            'total_reserved': Decimal('0.000'),
            'total_weight': Decimal('7.500'),
            'batch_count': 2,
        }])


class ReportAPITests(TestCase):
    """Test the report endpoints"""

    def setUp(self):
        cache.clear()
        self.tenant = TestDataFactory.create_tenant()
        self.owner = TestDataFactory.create_user(tenant=self.tenant)
        self.client = AuthenticatedAPIClient()

    def test_dashboard(self):
        """Test the dashboard endpoint"""
        self.client.authenticate_user(self.owner)
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('green_lots', response.data)
        self.assertIn('generated_at', response.data)

    def test_stock_summary(self):
        """Test the stock summary endpoint"""
        TestDataFactory.create_lot(self.owner, sku='GC-FLORES', weight='12.000')
        self.client.authenticate_user(self.owner)
        response = self.client.get('/api/v1/inventory/stock/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['green'][0]['sku'], 'GC-FLORES')

    def test_superadmin_has_no_dashboard(self):
        """Test a superadmin cannot read the dashboard"""
        admin = TestDataFactory.create_user(role='SUPERADMIN')
        self.client.authenticate_user(admin)
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
