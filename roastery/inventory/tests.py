"""
Test suite for the inventory ledger
Tests: lot receipt, weighted average cost, consumption, adjustments, API endpoints
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from roastery.core.exceptions import Conflict, InsufficientStock, InvalidTransition, ValidationError
from roastery.core.test_utils import AuthenticatedAPIClient, TestDataFactory
from roastery.inventory import services
from roastery.inventory.models import GreenCoffeeLot, StockAdjustment
from roastery.production.models import RoastBatch


class WeightedAverageCostTests(TestCase):
    """WAC of an SKU bucket is recomputed on every receipt"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.ctx = TestDataFactory.context(self.user)

    def test_compute_wac(self):
        """Test weighted average cost calculation"""
        self.assertEqual(
            services.compute_wac(Decimal('100'), Decimal('50000'), Decimal('100'), Decimal('60000')),
            Decimal('55000.0000'),
        )

    def test_compute_wac_for_empty_bucket_is_new_cost(self):
        """Test the first lot of a SKU keeps its own cost"""
        self.assertEqual(services.compute_wac(Decimal('0'), Decimal('0'), Decimal('20'), Decimal('12.5')),
                         Decimal('12.5000'))

    def test_second_receipt_blends_cost_across_bucket(self):
        """Test a second receipt blends cost across the SKU"""
        first = TestDataFactory.create_lot(self.user, sku='GC-A', weight='100.000', cost='50000.00')
        second = TestDataFactory.create_lot(self.user, sku='GC-A', weight='300.000', cost='60000.00')
        first.refresh_from_db()
        # (100 * 50000 + 300 * 60000) / 400
        self.assertEqual(second.weighted_avg_cost, Decimal('57500.0000'))
        self.assertEqual(first.weighted_avg_cost, Decimal('57500.0000'))

    def test_other_skus_are_not_blended(self):
        """Test lots of other SKUs keep their cost"""
        other = TestDataFactory.create_lot(self.user, sku='GC-B', weight='10.000', cost='10000.00')
        TestDataFactory.create_lot(self.user, sku='GC-A', weight='10.000', cost='90000.00')
        other.refresh_from_db()
        self.assertEqual(other.weighted_avg_cost, Decimal('10000.0000'))

    def test_depleted_lots_do_not_count(self):
        """Test depleted lots are left out of the average"""
        first = TestDataFactory.create_lot(self.user, sku='GC-A', weight='50.000', cost='40000.00')
        services.consume(self.ctx, first.pk, Decimal('50.000'))
        second = TestDataFactory.create_lot(self.user, sku='GC-A', weight='50.000', cost='60000.00')
        self.assertEqual(second.weighted_avg_cost, Decimal('60000.0000'))

    def test_duplicate_lot_number_rejected(self):
        """Test a duplicate lot number is rejected"""
        TestDataFactory.create_lot(self.user, lot_number='GRN-1')
        with self.assertRaises(ValidationError):
            TestDataFactory.create_lot(self.user, lot_number='GRN-1')

    def test_cost_correction_rebases_bucket(self):
        """Test correcting a lot cost recomputes the average"""
        first = TestDataFactory.create_lot(self.user, sku='GC-A', weight='100.000', cost='50000.00')
        second = TestDataFactory.create_lot(self.user, sku='GC-A', weight='100.000', cost='60000.00')
        services.update_lot(self.ctx, second.pk, purchase_cost_per_kg=Decimal('70000.00'))
        first.refresh_from_db()
        second.refresh_from_db()
        self.assertEqual(first.weighted_avg_cost, Decimal('60000.0000'))
        self.assertEqual(second.weighted_avg_cost, Decimal('60000.0000'))
        self.assertEqual(second.purchase_cost_per_kg, Decimal('70000.00'))


class LedgerMutationTests(TestCase):
    """Consumption and adjustments keep 0 <= current_weight <= initial_weight"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.ctx = TestDataFactory.context(self.user)
        self.lot = TestDataFactory.create_lot(self.user, weight='60.000')

    def test_consume_reduces_weight(self):
        """Test consuming green coffee reduces lot weight"""
        lot = services.consume(self.ctx, self.lot.pk, Decimal('12.500'))
        self.assertEqual(lot.current_weight, Decimal('47.500'))
        self.assertEqual(lot.status, GreenCoffeeLot.STATUS_AVAILABLE)

    def test_consume_more_than_available_fails(self):
        """Test consuming more than the lot holds fails"""
        with self.assertRaises(InsufficientStock):
            services.consume(self.ctx, self.lot.pk, Decimal('60.001'))
        self.lot.refresh_from_db()
        self.assertEqual(self.lot.current_weight, Decimal('60.000'))

    def test_lot_depletes(self):
        """Test a lot consumed to zero is depleted"""
        lot = services.consume(self.ctx, self.lot.pk, Decimal('60.000'))
        self.assertEqual(lot.status, GreenCoffeeLot.STATUS_DEPLETED)

    def test_negative_adjustment(self):
        """Test a negative stock adjustment"""
        adjustment = services.adjust_stock(self.ctx, self.lot.pk, Decimal('-2.000'), 'SPILLAGE', 'Dropped bag')
        self.lot.refresh_from_db()
        self.assertEqual(self.lot.current_weight, Decimal('58.000'))
        self.assertEqual(adjustment.adjusted_by, self.user)

    def test_positive_adjustment_cannot_exceed_received_weight(self):
        """Test adjustments cannot exceed the received weight"""
        services.consume(self.ctx, self.lot.pk, Decimal('5.000'))
        services.adjust_stock(self.ctx, self.lot.pk, Decimal('5.000'), 'COUNT_CORRECTION')
        with self.assertRaises(ValidationError):
            services.adjust_stock(self.ctx, self.lot.pk, Decimal('0.001'), 'COUNT_CORRECTION')

    def test_unknown_reason_rejected(self):
        """Test an unknown adjustment reason is rejected"""
        with self.assertRaises(ValidationError):
            services.adjust_stock(self.ctx, self.lot.pk, Decimal('-1'), 'STOLEN')

    def test_release_requires_qc_passed(self):
        """Test roasted yield is released only after passing QC"""
        batch = RoastBatch.objects.create(
            tenant=self.user.tenant, batch_number='RB-X', lot=self.lot, product_sku='RC',
            weight_in=Decimal('10'), weight_out=Decimal('8'), status=RoastBatch.STATUS_ROASTED,
        )
        with self.assertRaises(InvalidTransition):
            services.release_roasted_yield(batch)

    def test_delete_lot_with_adjustments_conflicts(self):
        """Test a lot with adjustments cannot be deleted"""
        services.adjust_stock(self.ctx, self.lot.pk, Decimal('-1'), 'SAMPLE')
        with self.assertRaises(Conflict):
            services.delete_lot(self.ctx, self.lot.pk)


class LotAPITests(TestCase):
    """Test the lot endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.supplier = TestDataFactory.create_supplier(self.user.tenant)

    def test_receive_lot(self):
        """Test receiving a lot via API"""
        response = self.client.post('/api/v1/inventory/lots/', {
            'lot_number': 'GRN-2024-001',
            'sku': 'GC-GAYO',
            'initial_weight': '120.000',
            'moisture_content': '11.20',
            'purchase_cost_per_kg': '85000.00',
            'supplier': self.supplier.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], GreenCoffeeLot.STATUS_AVAILABLE)
        self.assertEqual(response.data['current_weight'], Decimal('120.000'))
        self.assertEqual(response.data['supplier_name'], self.supplier.name)

    def test_receive_lot_invalid_weight(self):
        """Test receiving a lot with invalid weight should fail"""
        response = self.client.post('/api/v1/inventory/lots/', {
            'lot_number': 'GRN-2024-002', 'sku': 'GC-GAYO', 'initial_weight': '0',
            'purchase_cost_per_kg': '85000.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('initial_weight', response.data['fields'])

    def test_filter_by_status(self):
        """Test filtering lots by status"""
        lot = TestDataFactory.create_lot(self.user, weight='5.000', lot_number='EMPTY')
        services.consume(TestDataFactory.context(self.user), lot.pk, Decimal('5.000'))
        TestDataFactory.create_lot(self.user, lot_number='FULL')
        response = self.client.get('/api/v1/inventory/lots/', {'status': 'DEPLETED'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['lot_number'] for row in response.data['results']], ['EMPTY'])

    def test_patch_moisture(self):
        """Test updating a lot's moisture content"""
        lot = TestDataFactory.create_lot(self.user)
        response = self.client.patch(f'/api/v1/inventory/lots/{lot.id}/', {'moisture_content': '10.00'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['moisture_content'], Decimal('10.00'))

    def test_record_adjustment(self):
        """Test recording an adjustment via API"""
        lot = TestDataFactory.create_lot(self.user, weight='20.000')
        response = self.client.post(f'/api/v1/inventory/lots/{lot.id}/adjustments/', {
            'qty_change': '-0.250', 'reason_code': 'SAMPLE', 'notes': 'Cupping sample',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(StockAdjustment.objects.filter(lot=lot).count(), 1)
        listing = self.client.get(f'/api/v1/inventory/lots/{lot.id}/adjustments/')
        self.assertEqual(listing.data['count'], 1)

    def test_adjustment_beyond_stock_is_insufficient_stock(self):
        """Test over-adjusting returns insufficient stock"""
        lot = TestDataFactory.create_lot(self.user, weight='1.000')
        response = self.client.post(f'/api/v1/inventory/lots/{lot.id}/adjustments/', {
            'qty_change': '-2.000', 'reason_code': 'DAMAGED',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'insufficient_stock')

    def test_delete_unused_lot(self):
        """Test deleting an unused lot"""
        lot = TestDataFactory.create_lot(self.user)
        response = self.client.delete(f'/api/v1/inventory/lots/{lot.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(GreenCoffeeLot.objects.filter(pk=lot.pk).exists())
