"""
Test suite for indirect costs and HPP
"""
from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from roastery.core.exceptions import Conflict, ValidationError
from roastery.core.test_utils import AuthenticatedAPIClient, TestDataFactory
from roastery.finance import services
from roastery.finance.models import CostEntry, IndirectCost


class MonthlyCostTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.ctx = TestDataFactory.context(self.user)

    def test_record_computes_actual_total(self):
        """Test recording a month computes the actual total"""
        cost = services.record_monthly_cost(self.ctx, 3, 2025, rent=Decimal('3000000'), utilities=Decimal('750000'),
                                            labor=Decimal('4000000'), misc=Decimal('250000'),
                                            estimated_total=Decimal('7500000'))
        self.assertEqual(cost.total_actual, Decimal('8000000.00'))
        self.assertEqual(cost.estimated_total, Decimal('7500000.00'))

    def test_record_same_month_overwrites(self):
        """Test recording the same month again overwrites it"""
        services.record_monthly_cost(self.ctx, 3, 2025, rent=Decimal('1000'), estimated_total=Decimal('900'))
        cost = services.record_monthly_cost(self.ctx, 3, 2025, rent=Decimal('2000'))
        self.assertEqual(IndirectCost.objects.filter(tenant=self.user.tenant).count(), 1)
        self.assertEqual(cost.total_actual, Decimal('2000.00'))
        # Estimate survives when not given again
        self.assertEqual(cost.estimated_total, Decimal('900.00'))

    def test_invalid_month(self):
        """Test a month outside 1-12 is rejected"""
        with self.assertRaises(ValidationError):
            services.record_monthly_cost(self.ctx, 13, 2025, rent=Decimal('1'))

    def test_negative_amount(self):
        """Test negative cost amounts are rejected"""
        with self.assertRaises(ValidationError):
            services.record_monthly_cost(self.ctx, 1, 2025, misc=Decimal('-1'))

    def test_closed_month_is_read_only(self):
        """Test a closed month rejects every change"""
        cost = services.record_monthly_cost(self.ctx, 1, 2025, rent=Decimal('1000'))
        services.close_month(self.ctx, cost.pk)
        with self.assertRaises(Conflict):
            services.record_monthly_cost(self.ctx, 1, 2025, rent=Decimal('2000'))
        with self.assertRaises(Conflict):
            services.update_monthly_cost(self.ctx, cost.pk, labor=Decimal('5'))
        with self.assertRaises(Conflict):
            services.close_month(self.ctx, cost.pk)
        with self.assertRaises(Conflict):
            services.record_cost_entry(self.ctx, date(2025, 1, 20), CostEntry.CATEGORY_MISC, Decimal('10'))

    def test_cost_entries_roll_into_month(self):
        """Test cost entries add to and subtract from their month"""
        services.record_cost_entry(self.ctx, date(2025, 2, 3), CostEntry.CATEGORY_UTILITIES, Decimal('120000'))
        entry = services.record_cost_entry(self.ctx, date(2025, 2, 17), CostEntry.CATEGORY_UTILITIES,
                                           Decimal('80000'))
        cost = IndirectCost.objects.get(tenant=self.user.tenant, month=2, year=2025)
        self.assertEqual(cost.utilities, Decimal('200000.00'))
        self.assertEqual(cost.total_actual, Decimal('200000.00'))
        self.assertEqual(cost.estimated_total, Decimal('0.00'))

        services.delete_cost_entry(self.ctx, entry.pk)
        cost.refresh_from_db()
        self.assertEqual(cost.utilities, Decimal('120000.00'))
        self.assertEqual(CostEntry.objects.count(), 1)

    def test_categories_without_own_column_roll_into_misc(self):
        """Test fuel, gas and other overheads land in the misc column"""
        services.record_cost_entry(self.ctx, date(2025, 3, 1), CostEntry.CATEGORY_FUEL, Decimal('100.00'))
        services.record_cost_entry(self.ctx, date(2025, 3, 9), CostEntry.CATEGORY_DEPRECIATION, Decimal('50.00'))
        services.record_cost_entry(self.ctx, date(2025, 3, 12), CostEntry.CATEGORY_RENT, Decimal('400.00'))
        cost = IndirectCost.objects.get(tenant=self.user.tenant, month=3, year=2025)
        self.assertEqual(cost.misc, Decimal('150.00'))
        self.assertEqual(cost.rent, Decimal('400.00'))
        self.assertEqual(cost.total_actual, Decimal('550.00'))

    def test_unknown_category(self):
        """Test a category outside the list is rejected"""
        with self.assertRaises(ValidationError):
            services.record_cost_entry(self.ctx, date(2025, 3, 1), 'COFFEE', Decimal('1'))

    def test_cost_entry_must_be_positive(self):
        """Test a zero cost entry is rejected"""
        with self.assertRaises(ValidationError):
            services.record_cost_entry(self.ctx, date(2025, 2, 3), CostEntry.CATEGORY_RENT, Decimal('0'))


class HPPReportTests(TestCase):
    """Overhead divided by roasted output per month"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.ctx = TestDataFactory.context(self.user)
        lot = TestDataFactory.create_lot(self.user, weight='500.000')
        march = datetime(2025, 3, 15, 10, 0, tzinfo=dt_timezone.utc)
        TestDataFactory.create_sellable_batch(self.user.tenant, lot, available='100.000', roasted_at=march)
        TestDataFactory.create_sellable_batch(self.user.tenant, lot, available='50.000', roasted_at=march)
        TestDataFactory.create_indirect_cost(self.user.tenant, 3, 2025, rent='3000000.00', labor='1500000.00',
                                             estimated_total='5000000.00')
        TestDataFactory.create_indirect_cost(self.user.tenant, 4, 2025, rent='1000000.00',
                                             estimated_total='800000.00')

    def test_hpp_per_month(self):
        """Test HPP per roasted kilogram for each month"""
        report = services.compute_hpp(self.ctx, 2025)
        self.assertEqual(len(report['months']), 12)
        march = report['months'][2]
        self.assertEqual(march['production_kg'], Decimal('150.000'))
        self.assertEqual(march['overhead'], Decimal('4500000.00'))
        self.assertEqual(march['hpp_per_kg'], Decimal('30000.00'))

    def test_month_without_production_is_zero(self):
        """Test HPP is zero for a month without roasting"""
        april = services.compute_hpp(self.ctx, 2025)['months'][3]
        self.assertEqual(april['production_kg'], Decimal('0.000'))
        self.assertEqual(april['hpp_per_kg'], Decimal('0.00'))

    def test_yearly_average(self):
        """Test the yearly average HPP"""
        report = services.compute_hpp(self.ctx, 2025)
        self.assertEqual(report['total_overhead'], Decimal('5500000.00'))
        self.assertEqual(report['average_hpp'], Decimal('36666.67'))

    def test_year_without_data(self):
        """Test a year without data reports zeros"""
        report = services.compute_hpp(self.ctx, 2030)
        self.assertEqual(report['total_production_kg'], Decimal('0.000'))
        self.assertEqual(report['average_hpp'], Decimal('0.00'))

    def test_other_tenants_are_ignored(self):
        """Test HPP ignores other tenants' data"""
        other = TestDataFactory.create_user()
        TestDataFactory.create_indirect_cost(other.tenant, 3, 2025, rent='9999999.00')
        march = services.compute_hpp(self.ctx, 2025)['months'][2]
        self.assertEqual(march['overhead'], Decimal('4500000.00'))

    def test_variance(self):
        """Test actual against estimated cost variance"""
        report = services.compute_variance(self.ctx, 2025)
        self.assertEqual([row['month'] for row in report['months']], [3, 4])
        march, april = report['months']
        self.assertEqual(march['variance'], Decimal('-500000.00'))
        self.assertEqual(march['variance_pct'], Decimal('-10.00'))
        self.assertTrue(march['favourable'])
        self.assertEqual(april['variance'], Decimal('200000.00'))
        self.assertEqual(april['variance_pct'], Decimal('25.00'))
        self.assertFalse(april['favourable'])


class FinanceAPITests(TestCase):
    """Test the finance endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_record_and_close_month(self):
        """Test recording and closing a month via API"""
        response = self.client.post('/api/v1/finance/costs/', {
            'month': 5, 'year': 2025, 'rent': '2500000.00', 'labor': '3000000.00', 'estimated_total': '6000000.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_actual'], Decimal('5500000.00'))
        cost_id = response.data['id']

        response = self.client.post(f'/api/v1/finance/costs/{cost_id}/close/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_closed'])

        response = self.client.patch(f'/api/v1/finance/costs/{cost_id}/', {'misc': '1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_cost_entry_endpoint(self):
        """Test posting a cost entry via API"""
        response = self.client.post('/api/v1/finance/cost-entries/', {
            'entry_date': '2025-06-02', 'category': CostEntry.CATEGORY_LABOR, 'amount': '1750000.00',
            'description': 'June wages',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        listing = self.client.get('/api/v1/finance/costs/', {'year': 2025})
        self.assertEqual(listing.data['count'], 1)
        self.assertEqual(listing.data['results'][0]['labor'], Decimal('1750000.00'))

    def test_fuel_cost_entry_endpoint(self):
        """Test posting a fuel expense through the API"""
        response = self.client.post('/api/v1/finance/cost-entries/', {
            'entry_date': '2025-03-01', 'category': 'FUEL', 'amount': '100.00', 'description': 'Roaster LPG',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['category'], 'FUEL')
        cost = IndirectCost.objects.get(tenant=self.user.tenant, month=3, year=2025)
        self.assertEqual(cost.misc, Decimal('100.00'))

    def test_hpp_endpoint(self):
        """Test the HPP report endpoint"""
        response = self.client.get('/api/v1/finance/reports/hpp/', {'year': 2025})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['year'], 2025)
        self.assertEqual(len(response.data['months']), 12)

    def test_hpp_rejects_bad_year(self):
        """Test the HPP report rejects a non-numeric year"""
        response = self.client.get('/api/v1/finance/reports/hpp/', {'year': 'last'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_variance_endpoint(self):
        """Test the variance report endpoint"""
        TestDataFactory.create_indirect_cost(self.user.tenant, 1, 2025, rent='100.00', estimated_total='200.00')
        response = self.client.get('/api/v1/finance/reports/variance/', {'year': 2025})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['months'][0]['variance'], Decimal('-100.00'))

    def test_roaster_cannot_read_finance(self):
        """Test a roaster cannot read finance data"""
        roaster = TestDataFactory.create_user(tenant=self.user.tenant, role='ROASTER')
        self.client.authenticate_user(roaster)
        response = self.client.get('/api/v1/finance/costs/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
