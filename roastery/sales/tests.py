"""
Test suite for sales orders and the reservation engine
Tests: FIFO allocation, all-or-nothing confirmation, conservation, shipping, cancelling
"""
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from roastery.core.exceptions import Conflict, InsufficientInventory, InvalidTransition
from roastery.core.test_utils import AuthenticatedAPIClient, TestDataFactory
from roastery.production.models import RoastBatch
from roastery.sales import services
from roastery.sales.models import InventoryReservation, SalesOrder


def _total(batch):
    batch.refresh_from_db()
    return batch.available_quantity_kg + batch.reserved_quantity_kg


class ReservationEngineTests(TestCase):
    """Confirm / ship / cancel against roasted stock"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.tenant = self.user.tenant
        self.ctx = TestDataFactory.context(self.user)
        lot = TestDataFactory.create_lot(self.user, weight='200.000')
        now = timezone.now()
        self.newest = TestDataFactory.create_sellable_batch(self.tenant, lot, available='10.000',
                                                            roasted_at=now - timedelta(days=1))
        self.oldest = TestDataFactory.create_sellable_batch(self.tenant, lot, available='6.000',
                                                            roasted_at=now - timedelta(days=5))
        self.middle = TestDataFactory.create_sellable_batch(self.tenant, lot, available='4.000',
                                                            roasted_at=now - timedelta(days=3))
        self.other_sku = TestDataFactory.create_sellable_batch(self.tenant, lot, product_sku='RC-DECAF',
                                                               available='3.000')

    def _order(self, *items):
        return TestDataFactory.create_sales_order(self.tenant, items=list(items))

    def test_fifo_takes_oldest_roast_first(self):
        """Test reservations take the oldest roast first"""
        order = self._order(('RC-HOUSE', '8.000', '150000.00'))
        services.confirm(self.ctx, order.pk)
        allocations = {
            r.batch_id: r.quantity_kg for r in InventoryReservation.objects.filter(sales_order=order)
        }
        self.assertEqual(allocations, {self.oldest.pk: Decimal('6.000'), self.middle.pk: Decimal('2.000')})
        self.oldest.refresh_from_db()
        self.middle.refresh_from_db()
        self.newest.refresh_from_db()
        self.assertEqual(self.oldest.available_quantity_kg, Decimal('0.000'))
        self.assertEqual(self.oldest.reserved_quantity_kg, Decimal('6.000'))
        self.assertEqual(self.middle.available_quantity_kg, Decimal('2.000'))
        self.assertEqual(self.newest.reserved_quantity_kg, Decimal('0.000'))

    def test_fifo_ties_fall_back_to_creation_order(self):
        """Test batches roasted at the same instant are taken by created_at, then id"""
        lot = TestDataFactory.create_lot(self.user, weight='50.000')
        roasted_at = timezone.now() - timedelta(days=2)
        first = TestDataFactory.create_sellable_batch(self.tenant, lot, product_sku='RC-TIE', available='10.000',
                                                      roasted_at=roasted_at)
        second = TestDataFactory.create_sellable_batch(self.tenant, lot, product_sku='RC-TIE', available='5.000',
                                                       roasted_at=roasted_at)
        RoastBatch.objects.filter(pk__in=[first.pk, second.pk]).update(created_at=roasted_at)

        order = self._order(('RC-TIE', '12.000', '150000.00'))
        services.confirm(self.ctx, order.pk)
        allocations = {
            r.batch_id: r.quantity_kg for r in InventoryReservation.objects.filter(sales_order=order)
        }
        self.assertEqual(allocations, {first.pk: Decimal('10.000'), second.pk: Decimal('2.000')})

        # An earlier created_at wins over a lower id
        RoastBatch.objects.filter(pk=second.pk).update(created_at=roasted_at - timedelta(minutes=1))
        services.cancel(self.ctx, order.pk)
        order = self._order(('RC-TIE', '12.000', '150000.00'))
        services.confirm(self.ctx, order.pk)
        allocations = {
            r.batch_id: r.quantity_kg for r in InventoryReservation.objects.filter(sales_order=order)
        }
        self.assertEqual(allocations, {second.pk: Decimal('5.000'), first.pk: Decimal('7.000')})

    def test_unpassed_batches_are_not_eligible(self):
        """Test batches without a QC pass are skipped"""
        RoastBatch.objects.filter(pk=self.oldest.pk).update(status=RoastBatch.STATUS_QC_FAILED)
        order = self._order(('RC-HOUSE', '3.000', '150000.00'))
        services.confirm(self.ctx, order.pk)
        reservation = InventoryReservation.objects.get(sales_order=order)
        self.assertEqual(reservation.batch_id, self.middle.pk)

    def test_shortage_reserves_nothing(self):
        """Test a shortage reserves nothing"""
        order = self._order(('RC-HOUSE', '5.000', '150000.00'), ('RC-DECAF', '4.000', '160000.00'))
        with self.assertRaises(InsufficientInventory) as raised:
            services.confirm(self.ctx, order.pk)
        self.assertEqual(raised.exception.shortages, [
            {'sku': 'RC-DECAF', 'requested': Decimal('4.000'), 'available': Decimal('3.000')},
        ])
        order.refresh_from_db()
        self.assertEqual(order.status, SalesOrder.STATUS_PENDING)
        self.assertFalse(InventoryReservation.objects.exists())
        self.oldest.refresh_from_db()
        self.assertEqual(self.oldest.available_quantity_kg, Decimal('6.000'))
        self.assertEqual(self.oldest.reserved_quantity_kg, Decimal('0.000'))

    def test_reserve_then_release_conserves_totals(self):
        """Test reserving and releasing conserves stock"""
        batches = [self.oldest, self.middle, self.newest]
        before = [_total(batch) for batch in batches]
        order = self._order(('RC-HOUSE', '15.500', '150000.00'))
        services.confirm(self.ctx, order.pk)
        self.assertEqual([_total(batch) for batch in batches], before)
        services.cancel(self.ctx, order.pk)
        self.assertEqual([_total(batch) for batch in batches], before)
        for batch in batches:
            self.assertEqual(batch.reserved_quantity_kg, Decimal('0.000'))
        order.refresh_from_db()
        self.assertEqual(order.status, SalesOrder.STATUS_CANCELLED)
        self.assertFalse(InventoryReservation.objects.filter(sales_order=order).exists())

    def test_ship_deducts_reserved_stock(self):
        """Test shipping deducts the reserved stock"""
        order = self._order(('RC-HOUSE', '8.000', '150000.00'))
        services.confirm(self.ctx, order.pk)
        services.start_preparing(self.ctx, order.pk)
        order = services.ship(self.ctx, order.pk)
        self.assertEqual(order.status, SalesOrder.STATUS_SHIPPED)
        self.oldest.refresh_from_db()
        self.middle.refresh_from_db()
        self.assertEqual(self.oldest.reserved_quantity_kg, Decimal('0.000'))
        self.assertEqual(self.oldest.available_quantity_kg, Decimal('0.000'))
        self.assertEqual(self.middle.available_quantity_kg, Decimal('2.000'))
        self.assertEqual(self.middle.reserved_quantity_kg, Decimal('0.000'))
        self.assertEqual(order.items.get().fulfilled_quantity_kg, Decimal('8.000'))
        self.assertFalse(InventoryReservation.objects.filter(sales_order=order, fulfilled_at__isnull=True).exists())

    def test_ship_from_pending_changes_nothing(self):
        """Test shipping a pending order changes nothing"""
        order = self._order(('RC-HOUSE', '2.000', '150000.00'))
        with self.assertRaises(InvalidTransition):
            services.ship(self.ctx, order.pk)
        order.refresh_from_db()
        self.assertEqual(order.status, SalesOrder.STATUS_PENDING)
        self.assertEqual(order.items.get().fulfilled_quantity_kg, Decimal('0.000'))

    def test_cannot_cancel_shipped_order(self):
        """Test a shipped order cannot be cancelled"""
        order = self._order(('RC-HOUSE', '2.000', '150000.00'))
        services.confirm(self.ctx, order.pk)
        services.ship(self.ctx, order.pk)
        with self.assertRaises(InvalidTransition):
            services.cancel(self.ctx, order.pk)

    def test_deliver_sets_delivery_date(self):
        """Test delivering sets the delivery date"""
        order = self._order(('RC-HOUSE', '2.000', '150000.00'))
        services.confirm(self.ctx, order.pk)
        services.ship(self.ctx, order.pk)
        order = services.deliver(self.ctx, order.pk)
        self.assertEqual(order.status, SalesOrder.STATUS_DELIVERED)
        self.assertEqual(order.actual_delivery_date, timezone.localdate())
        self.assertEqual(order.status_history.count(), 3)

    def test_edit_after_confirmation_conflicts(self):
        """Test editing a confirmed order conflicts"""
        order = self._order(('RC-HOUSE', '2.000', '150000.00'))
        services.confirm(self.ctx, order.pk)
        with self.assertRaises(Conflict):
            services.update_order(self.ctx, order.pk, notes='Change')

    def test_client_stats_excludes_cancelled_amount(self):
        """Test client stats leave out cancelled amounts"""
        client = TestDataFactory.create_client(self.tenant)
        TestDataFactory.create_sales_order(self.tenant, client=client, items=[('RC-HOUSE', '1.000', '100.00')])
        TestDataFactory.create_sales_order(self.tenant, client=client, items=[('RC-HOUSE', '2.000', '100.00')],
                                           status=SalesOrder.STATUS_CANCELLED)
        TestDataFactory.create_sales_order(self.tenant, client=client, items=[('RC-HOUSE', '4.000', '100.00')],
                                           status=SalesOrder.STATUS_DELIVERED)
        stats = services.client_stats(self.ctx, client)
        self.assertEqual(stats['total_orders'], 3)
        self.assertEqual(stats['total_amount'], Decimal('500.00'))
        self.assertEqual(stats['active_orders'], 1)


class SalesOrderAPITests(TestCase):
    """Test the sales order endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_client(self.user.tenant)
        lot = TestDataFactory.create_lot(self.user)
        self.batch = TestDataFactory.create_sellable_batch(self.user.tenant, lot, available='5.000')

    def test_create_order(self):
        """Test creating a sales order via API"""
        response = self.client.post('/api/v1/sales/orders/', {
            'client': self.customer.id,
            'items': [
                {'product_sku': 'RC-HOUSE', 'quantity_kg': '2.500', 'unit_price': '180000.00'},
                {'product_sku': 'RC-ESPRESSO', 'quantity_kg': '1.000', 'unit_price': '200000.00'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], SalesOrder.STATUS_PENDING)
        self.assertEqual(response.data['total_amount'], Decimal('650000.00'))
        self.assertEqual(response.data['client_name'], self.customer.name)

    def test_duplicate_skus_rejected(self):
        """Test duplicate product SKUs are rejected"""
        response = self.client.post('/api/v1/sales/orders/', {
            'client': self.customer.id,
            'items': [
                {'product_sku': 'RC-HOUSE', 'quantity_kg': '1', 'unit_price': '1'},
                {'product_sku': 'RC-HOUSE', 'quantity_kg': '2', 'unit_price': '1'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_confirm_and_list_reservations(self):
        """Test confirming an order and listing its reservations"""
        order = TestDataFactory.create_sales_order(self.user.tenant, client=self.customer,
                                                   items=[('RC-HOUSE', '3.000', '150000.00')])
        response = self.client.post(f'/api/v1/sales/orders/{order.id}/confirm/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], SalesOrder.STATUS_CONFIRMED)

        response = self.client.get(f'/api/v1/sales/orders/{order.id}/reservations/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['batch_number'], self.batch.batch_number)
        self.assertEqual(response.data[0]['quantity_kg'], Decimal('3.000'))

    def test_confirm_with_shortage_is_409(self):
        """Test confirming with a shortage returns 409"""
        order = TestDataFactory.create_sales_order(self.user.tenant, client=self.customer,
                                                   items=[('RC-HOUSE', '5.001', '150000.00')])
        response = self.client.post(f'/api/v1/sales/orders/{order.id}/confirm/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'insufficient_inventory')
        self.assertEqual(response.data['shortages'],
                         [{'sku': 'RC-HOUSE', 'requested': '5.001', 'available': '5.000'}])
        order.refresh_from_db()
        self.assertEqual(order.status, SalesOrder.STATUS_PENDING)

    def test_ship_pending_order_is_400(self):
        """Test shipping a pending order returns 400"""
        order = TestDataFactory.create_sales_order(self.user.tenant, client=self.customer)
        response = self.client.post(f'/api/v1/sales/orders/{order.id}/ship/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_transition')

    def test_cancel_restores_availability(self):
        """Test cancelling restores availability"""
        order = TestDataFactory.create_sales_order(self.user.tenant, client=self.customer,
                                                   items=[('RC-HOUSE', '5.000', '150000.00')])
        self.client.post(f'/api/v1/sales/orders/{order.id}/confirm/', {}, format='json')
        self.batch.refresh_from_db()
        self.assertEqual(self.batch.available_quantity_kg, Decimal('0.000'))

        response = self.client.post(f'/api/v1/sales/orders/{order.id}/cancel/', {'notes': 'Client withdrew'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.batch.refresh_from_db()
        self.assertEqual(self.batch.available_quantity_kg, Decimal('5.000'))
        self.assertEqual(self.batch.reserved_quantity_kg, Decimal('0.000'))

        history = self.client.get(f'/api/v1/sales/orders/{order.id}/history/')
        self.assertEqual(history.data[-1]['notes'], 'Client withdrew')

    def test_client_stats_endpoint(self):
        """Test the client stats endpoint"""
        TestDataFactory.create_sales_order(self.user.tenant, client=self.customer,
                                           items=[('RC-HOUSE', '2.000', '100.00')])
        response = self.client.get(f'/api/v1/sales/clients/{self.customer.id}/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_orders'], 1)
        self.assertEqual(response.data['total_amount'], Decimal('200.00'))
