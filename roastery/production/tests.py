"""
Test suite for roast batches and quality control
"""
from decimal import Decimal

from django.test import TestCase, override_settings
from rest_framework import status

from roastery.core.exceptions import Conflict, InsufficientStock, InvalidTransition, ValidationError
from roastery.core.test_utils import AuthenticatedAPIClient, TestDataFactory
from roastery.production import services
from roastery.production.models import QualityControl, RoastBatch

PASSING = {'aroma': '7.5', 'flavor': '7.0', 'aftertaste': '7.0', 'acidity': '7.0', 'body': '7.0'}
FAILING = {'aroma': '6.0', 'flavor': '6.0', 'aftertaste': '6.0', 'acidity': '6.0', 'body': '6.0'}


class RoastWorkflowTests(TestCase):
    """create_batch -> finish_roast -> submit_qc"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.ctx = TestDataFactory.context(self.user)
        self.lot = TestDataFactory.create_lot(self.user, sku='GC-TORAJA', weight='50.000')

    def _roasted_batch(self, weight_in='12.000', weight_out='10.000'):
        batch = services.create_batch(self.ctx, self.lot.pk, Decimal(weight_in), product_sku='RC-TORAJA')
        return services.finish_roast(self.ctx, batch.pk, Decimal(weight_out))

    def test_create_batch_consumes_lot(self):
        """Test creating a batch consumes green coffee"""
        batch = services.create_batch(self.ctx, self.lot.pk, Decimal('12.000'))
        self.lot.refresh_from_db()
        self.assertEqual(self.lot.current_weight, Decimal('38.000'))
        self.assertEqual(batch.status, RoastBatch.STATUS_PENDING_ROAST)
        self.assertEqual(batch.product_sku, 'GC-TORAJA')
        self.assertTrue(batch.batch_number.startswith('RB-'))

    def test_create_batch_beyond_lot_weight(self):
        """Test a batch larger than the lot is rejected"""
        with self.assertRaises(InsufficientStock):
            services.create_batch(self.ctx, self.lot.pk, Decimal('50.001'))

    def test_finish_roast_computes_shrinkage(self):
        """Test finishing a roast computes shrinkage"""
        batch = self._roasted_batch('12.000', '10.200')
        self.assertEqual(batch.status, RoastBatch.STATUS_ROASTED)
        self.assertEqual(batch.shrinkage_pct, Decimal('15.00'))
        self.assertIsNotNone(batch.roasted_at)
        # Not sellable before QC
        self.assertEqual(batch.available_quantity_kg, Decimal('0'))

    def test_weight_out_cannot_exceed_weight_in(self):
        """Test roasted weight cannot exceed green weight"""
        batch = services.create_batch(self.ctx, self.lot.pk, Decimal('10.000'))
        with self.assertRaises(ValidationError):
            services.finish_roast(self.ctx, batch.pk, Decimal('10.001'))

    def test_cannot_roast_twice(self):
        """Test a batch cannot be roasted twice"""
        batch = self._roasted_batch()
        with self.assertRaises(InvalidTransition):
            services.finish_roast(self.ctx, batch.pk, Decimal('9.000'))

    def test_passing_qc_releases_yield(self):
        """Test passing QC makes the yield sellable"""
        batch = self._roasted_batch(weight_out='10.000')
        qc = services.submit_qc(self.ctx, batch.pk, **{k: Decimal(v) for k, v in PASSING.items()})
        batch.refresh_from_db()
        self.assertTrue(qc.passed)
        self.assertEqual(qc.total_score, Decimal('35.5'))
        self.assertEqual(batch.status, RoastBatch.STATUS_QC_PASSED)
        self.assertEqual(batch.available_quantity_kg, Decimal('10.000'))
        self.assertEqual(batch.reserved_quantity_kg, Decimal('0.000'))

    def test_failing_qc_keeps_batch_unsellable(self):
        """Test failing QC keeps the batch unsellable"""
        batch = self._roasted_batch()
        qc = services.submit_qc(self.ctx, batch.pk, **{k: Decimal(v) for k, v in FAILING.items()})
        batch.refresh_from_db()
        self.assertFalse(qc.passed)
        self.assertEqual(batch.status, RoastBatch.STATUS_QC_FAILED)
        self.assertEqual(batch.available_quantity_kg, Decimal('0.000'))

    def test_qc_before_roast_is_invalid(self):
        """Test QC before roasting is an invalid transition"""
        batch = services.create_batch(self.ctx, self.lot.pk, Decimal('5.000'))
        with self.assertRaises(InvalidTransition):
            services.submit_qc(self.ctx, batch.pk, **{k: Decimal(v) for k, v in PASSING.items()})

    def test_qc_is_written_once(self):
        """Test a batch takes only one QC record"""
        batch = self._roasted_batch()
        services.submit_qc(self.ctx, batch.pk, **{k: Decimal(v) for k, v in FAILING.items()})
        with self.assertRaises(Conflict):
            services.submit_qc(self.ctx, batch.pk, **{k: Decimal(v) for k, v in PASSING.items()})
        self.assertEqual(QualityControl.objects.filter(batch=batch).count(), 1)

    def test_score_out_of_range(self):
        """Test QC scores outside 0-10 are rejected"""
        batch = self._roasted_batch()
        scores = {k: Decimal(v) for k, v in PASSING.items()}
        scores['body'] = Decimal('10.5')
        with self.assertRaises(ValidationError):
            services.submit_qc(self.ctx, batch.pk, **scores)

    @override_settings(QC_PASS_SCORE=40)
    def test_pass_threshold_is_configurable(self):
        """Test the QC pass score follows settings"""
        batch = self._roasted_batch()
        qc = services.submit_qc(self.ctx, batch.pk, **{k: Decimal(v) for k, v in PASSING.items()})
        self.assertFalse(qc.passed)


class BatchAPITests(TestCase):
    """Test the batch endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.lot = TestDataFactory.create_lot(self.user, weight='30.000')

    def test_full_roast_flow(self):
        """Test the roast and QC flow via API"""
        response = self.client.post('/api/v1/production/batches/', {
            'lot_id': self.lot.id, 'weight_in': '12.000', 'product_sku': 'RC-HOUSE', 'roast_profile': 'Medium',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        batch_id = response.data['id']
        self.assertIsNone(response.data['quality_control'])

        response = self.client.patch(f'/api/v1/production/batches/{batch_id}/', {'weight_out': '10.000'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], RoastBatch.STATUS_ROASTED)

        response = self.client.post(f'/api/v1/production/batches/{batch_id}/qc/', PASSING, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['quality_control']['passed'])
        self.assertEqual(response.data['batch']['status'], RoastBatch.STATUS_QC_PASSED)
        self.assertEqual(response.data['batch']['available_quantity_kg'], Decimal('10.000'))

        response = self.client.get(f'/api/v1/production/batches/{batch_id}/qc/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_qc_missing_is_not_found(self):
        """Test reading QC of an unchecked batch returns 404"""
        batch = services.create_batch(TestDataFactory.context(self.user), self.lot.pk, Decimal('5.000'))
        response = self.client.get(f'/api/v1/production/batches/{batch.id}/qc/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_qc_on_pending_batch_is_invalid_transition(self):
        """Test QC on an unroasted batch returns 400"""
        batch = services.create_batch(TestDataFactory.context(self.user), self.lot.pk, Decimal('5.000'))
        response = self.client.post(f'/api/v1/production/batches/{batch.id}/qc/', PASSING, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_transition')

    def test_filter_by_status(self):
        """Test filtering batches by status"""
        TestDataFactory.create_sellable_batch(self.user.tenant, self.lot, batch_number='RB-SELL')
        services.create_batch(TestDataFactory.context(self.user), self.lot.pk, Decimal('5.000'))
        response = self.client.get('/api/v1/production/batches/', {'status': RoastBatch.STATUS_QC_PASSED})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['batch_number'] for row in response.data['results']], ['RB-SELL'])

    def test_legacy_route(self):
        """Test the roast-batches route still answers"""
        response = self.client.get('/api/v1/roast-batches/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
