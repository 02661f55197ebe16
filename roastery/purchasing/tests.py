"""
Test suite for purchase orders
Tests: DRAFT editing, status transitions, goods receipt into lots, history
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from roastery.core.exceptions import Conflict, InvalidTransition, ValidationError
from roastery.core.test_utils import AuthenticatedAPIClient, TestDataFactory
from roastery.inventory.models import GreenCoffeeLot
from roastery.purchasing import services
from roastery.purchasing.models import POStatusHistory, PurchaseOrder


class PurchaseOrderServiceTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.ctx = TestDataFactory.context(self.user)
        self.supplier = TestDataFactory.create_supplier(self.user.tenant)

    def _create(self):
        return services.create_order(self.ctx, supplier=self.supplier, items=[
            {'sku': 'GC-GAYO', 'quantity_kg': Decimal('100'), 'unit_price': Decimal('85000')},
            {'sku': 'GC-TORAJA', 'quantity_kg': Decimal('50.5'), 'unit_price': Decimal('90000')},
        ])

    def _advance(self, order, *statuses):
        for to_status in statuses:
            order = services.change_status(self.ctx, order.pk, to_status)
        return order

    def test_create_computes_totals(self):
        """Test creating a purchase order computes totals"""
        order = self._create()
        self.assertEqual(order.status, PurchaseOrder.STATUS_DRAFT)
        self.assertEqual(order.total_amount, Decimal('13045000.00'))
        self.assertEqual(order.currency, self.user.tenant.currency)
        self.assertTrue(order.po_number.startswith('PO-'))
        self.assertEqual(order.status_history.count(), 1)

    def test_create_requires_items(self):
        """Test a purchase order without items is rejected"""
        with self.assertRaises(ValidationError):
            services.create_order(self.ctx, supplier=self.supplier, items=[])

    def test_supplier_from_other_tenant_rejected(self):
        """Test a supplier of another tenant is rejected"""
        foreign = TestDataFactory.create_supplier(TestDataFactory.create_tenant())
        with self.assertRaises(ValidationError):
            services.create_order(self.ctx, supplier=foreign, items=[
                {'sku': 'GC', 'quantity_kg': Decimal('1'), 'unit_price': Decimal('1')},
            ])

    def test_update_replaces_items_while_draft(self):
        """Test updating a draft replaces its items"""
        order = self._create()
        order = services.update_order(self.ctx, order.pk, items=[
            {'sku': 'GC-GAYO', 'quantity_kg': Decimal('10'), 'unit_price': Decimal('1000')},
        ], notes='Reduced')
        self.assertEqual(order.items.count(), 1)
        self.assertEqual(order.total_amount, Decimal('10000.00'))
        self.assertEqual(order.notes, 'Reduced')

    def test_update_after_draft_conflicts(self):
        """Test editing a sent order conflicts"""
        order = self._advance(self._create(), PurchaseOrder.STATUS_SENT)
        with self.assertRaises(Conflict):
            services.update_order(self.ctx, order.pk, notes='Too late')

    def test_transition_table(self):
        """Test every allowed and rejected status change"""
        order = self._advance(self._create(), PurchaseOrder.STATUS_SENT, PurchaseOrder.STATUS_CONFIRMED)
        self.assertEqual(order.status, PurchaseOrder.STATUS_CONFIRMED)
        with self.assertRaises(InvalidTransition):
            services.change_status(self.ctx, order.pk, PurchaseOrder.STATUS_DRAFT)

    def test_received_only_through_receipt(self):
        """Test RECEIVED is reachable only by receiving goods"""
        order = self._advance(self._create(), PurchaseOrder.STATUS_SENT, PurchaseOrder.STATUS_CONFIRMED,
                              PurchaseOrder.STATUS_IN_TRANSIT)
        with self.assertRaises(InvalidTransition):
            services.change_status(self.ctx, order.pk, PurchaseOrder.STATUS_RECEIVED)

    def test_partial_then_full_receipt(self):
        """Test a partial receipt followed by the rest"""
        order = self._advance(self._create(), PurchaseOrder.STATUS_SENT, PurchaseOrder.STATUS_CONFIRMED,
                              PurchaseOrder.STATUS_IN_TRANSIT)
        gayo, toraja = order.items.order_by('id')

        order, lots = services.receive_goods(self.ctx, order.pk, [
            {'po_item_id': gayo.pk, 'received_quantity': Decimal('60'), 'moisture_content': Decimal('11.0')},
        ])
        self.assertEqual(order.status, PurchaseOrder.STATUS_IN_TRANSIT)
        self.assertEqual([lot.lot_number for lot in lots], [f'GRN-{order.po_number}-1'])
        self.assertEqual(lots[0].current_weight, Decimal('60.000'))
        self.assertEqual(lots[0].purchase_cost_per_kg, Decimal('85000.00'))
        self.assertEqual(lots[0].supplier, self.supplier)

        order, lots = services.receive_goods(self.ctx, order.pk, [
            {'po_item_id': gayo.pk, 'received_quantity': Decimal('40')},
            {'po_item_id': toraja.pk, 'received_quantity': Decimal('50.5')},
        ])
        self.assertEqual(order.status, PurchaseOrder.STATUS_RECEIVED)
        self.assertIsNotNone(order.actual_delivery_date)
        self.assertEqual([lot.lot_number for lot in lots],
                         [f'GRN-{order.po_number}-2', f'GRN-{order.po_number}-3'])
        self.assertEqual(GreenCoffeeLot.objects.filter(sku='GC-GAYO').count(), 2)
        self.assertTrue(POStatusHistory.objects.filter(purchase_order=order,
                                                       to_status=PurchaseOrder.STATUS_RECEIVED).exists())

    def test_over_receipt_rejected(self):
        """Test receiving more than ordered is rejected"""
        order = self._advance(self._create(), PurchaseOrder.STATUS_SENT, PurchaseOrder.STATUS_CONFIRMED,
                              PurchaseOrder.STATUS_IN_TRANSIT)
        item = order.items.order_by('id').first()
        with self.assertRaises(ValidationError):
            services.receive_goods(self.ctx, order.pk, [
                {'po_item_id': item.pk, 'received_quantity': Decimal('100.001')},
            ])
        self.assertFalse(GreenCoffeeLot.objects.exists())

    def test_receive_requires_in_transit(self):
        """Test goods are received only while in transit"""
        order = self._create()
        item = order.items.first()
        with self.assertRaises(InvalidTransition):
            services.receive_goods(self.ctx, order.pk, [{'po_item_id': item.pk, 'received_quantity': Decimal('1')}])

    def test_delete_only_draft(self):
        """Test only draft orders can be deleted"""
        order = self._advance(self._create(), PurchaseOrder.STATUS_SENT)
        with self.assertRaises(Conflict):
            services.delete_order(self.ctx, order.pk)


class PurchaseOrderAPITests(TestCase):
    """Test the purchase order endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.supplier = TestDataFactory.create_supplier(self.user.tenant)

    def test_create_order(self):
        """Test creating a purchase order via API"""
        response = self.client.post('/api/v1/purchasing/orders/', {
            'supplier': self.supplier.id,
            'expected_delivery_date': '2025-03-01',
            'items': [{'sku': 'GC-KINTAMANI', 'quantity_kg': '25.000', 'unit_price': '95000.00'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], PurchaseOrder.STATUS_DRAFT)
        self.assertEqual(response.data['total_amount'], Decimal('2375000.00'))
        self.assertEqual(response.data['allowed_transitions'],
                         [PurchaseOrder.STATUS_CANCELLED, PurchaseOrder.STATUS_SENT])
        self.assertEqual(len(response.data['items']), 1)

    def test_create_with_unknown_supplier(self):
        """Test creating an order for an unknown supplier returns 404"""
        response = self.client.post('/api/v1/purchasing/orders/', {
            'supplier': 999999,
            'items': [{'sku': 'GC', 'quantity_kg': '1', 'unit_price': '1'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_status_transition(self):
        """Test changing status via API"""
        order = TestDataFactory.create_purchase_order(self.user.tenant, supplier=self.supplier)
        response = self.client.patch(f'/api/v1/purchasing/orders/{order.id}/status/',
                                     {'status': PurchaseOrder.STATUS_SENT, 'notes': 'Emailed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], PurchaseOrder.STATUS_SENT)

    def test_invalid_transition_is_400(self):
        """Test an invalid status change returns 400"""
        order = TestDataFactory.create_purchase_order(self.user.tenant, supplier=self.supplier)
        response = self.client.patch(f'/api/v1/purchasing/orders/{order.id}/status/',
                                     {'status': PurchaseOrder.STATUS_RECEIVED}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_transition')

    def test_edit_sent_order_conflicts(self):
        """Test editing a sent order returns 409"""
        order = TestDataFactory.create_purchase_order(self.user.tenant, supplier=self.supplier,
                                                      status=PurchaseOrder.STATUS_SENT)
        response = self.client.patch(f'/api/v1/purchasing/orders/{order.id}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_receive_goods(self):
        """Test receiving goods via API"""
        order = TestDataFactory.create_purchase_order(
            self.user.tenant, supplier=self.supplier, status=PurchaseOrder.STATUS_IN_TRANSIT,
            items=[('GC-GAYO', '30.000', '80000.00')],
        )
        item = order.items.get()
        response = self.client.post(f'/api/v1/purchasing/orders/{order.id}/receive/', {
            'items': [{'po_item_id': item.id, 'received_quantity': '30.000', 'moisture_content': '10.50'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['order']['status'], PurchaseOrder.STATUS_RECEIVED)
        self.assertEqual(len(response.data['lots']), 1)
        self.assertEqual(response.data['lots'][0]['lot_number'], f'GRN-{order.po_number}-1')

    def test_over_receipt_is_400(self):
        """Test an over-receipt returns 400"""
        order = TestDataFactory.create_purchase_order(
            self.user.tenant, supplier=self.supplier, status=PurchaseOrder.STATUS_IN_TRANSIT,
            items=[('GC-GAYO', '30.000', '80000.00')],
        )
        item = order.items.get()
        response = self.client.post(f'/api/v1/purchasing/orders/{order.id}/receive/', {
            'items': [{'po_item_id': item.id, 'received_quantity': '31.000'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'validation_error')

    def test_history(self):
        """Test listing an order's status history"""
        ctx = TestDataFactory.context(self.user)
        order = services.create_order(ctx, supplier=self.supplier, items=[
            {'sku': 'GC', 'quantity_kg': Decimal('1'), 'unit_price': Decimal('1')},
        ])
        services.change_status(ctx, order.pk, PurchaseOrder.STATUS_CANCELLED, 'Supplier out of stock')
        response = self.client.get(f'/api/v1/purchasing/orders/{order.id}/history/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['to_status'] for row in response.data],
                         [PurchaseOrder.STATUS_DRAFT, PurchaseOrder.STATUS_CANCELLED])
        self.assertEqual(response.data[1]['notes'], 'Supplier out of stock')

    def test_list_filters_by_status(self):
        """Test filtering purchase orders by status"""
        TestDataFactory.create_purchase_order(self.user.tenant, supplier=self.supplier)
        TestDataFactory.create_purchase_order(self.user.tenant, supplier=self.supplier,
                                              status=PurchaseOrder.STATUS_SENT)
        response = self.client.get('/api/v1/purchasing/orders/', {'status': PurchaseOrder.STATUS_SENT})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['item_count'], 1)
