"""
Test suite for suppliers and clients
"""
from django.test import TestCase
from rest_framework import status

from roastery.core.models import AuditLog
from roastery.core.test_utils import AuthenticatedAPIClient, TestDataFactory
from roastery.parties.models import Client, Supplier
from roastery.purchasing.models import PurchaseOrder
from roastery.sales.models import SalesOrder


class SupplierAPITests(TestCase):
    """Test supplier CRUD endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_supplier(self):
        """Test creating a supplier via API"""
        response = self.client.post('/api/v1/purchasing/suppliers/', {
            'name': '  Gayo Highland Coop ',
            'contact_person': 'Pak Rahmat',
            'email': 'sales@gayocoop.id',
            'country': 'Indonesia',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Gayo Highland Coop')
        supplier = Supplier.objects.get(pk=response.data['id'])
        self.assertEqual(supplier.tenant, self.user.tenant)
        self.assertTrue(AuditLog.objects.filter(model_name='Supplier', action='create').exists())

    def test_blank_name_rejected(self):
        """Test a blank supplier name is rejected"""
        response = self.client.post('/api/v1/purchasing/suppliers/', {'name': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data['fields'])

    def test_search_and_active_filter(self):
        """Test searching suppliers with the active filter"""
        TestDataFactory.create_supplier(self.user.tenant, name='Toraja Estate')
        inactive = TestDataFactory.create_supplier(self.user.tenant, name='Toraja Old')
        inactive.is_active = False
        inactive.save()
        TestDataFactory.create_supplier(self.user.tenant, name='Flores Farmers')

        response = self.client.get('/api/v1/purchasing/suppliers/', {'search': 'toraja', 'active': 'true'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['name'] for row in response.data['results']], ['Toraja Estate'])

    def test_update_supplier(self):
        """Test updating a supplier"""
        supplier = TestDataFactory.create_supplier(self.user.tenant)
        response = self.client.patch(f'/api/v1/purchasing/suppliers/{supplier.id}/', {'phone': '+62 811 000'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        supplier.refresh_from_db()
        self.assertEqual(supplier.phone, '+62 811 000')

    def test_delete_unused_supplier(self):
        """Test deleting a supplier without orders"""
        supplier = TestDataFactory.create_supplier(self.user.tenant)
        response = self.client.delete(f'/api/v1/purchasing/suppliers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Supplier.objects.filter(pk=supplier.pk).exists())

    def test_delete_with_active_order_conflicts(self):
        """Test a supplier with an open order cannot be deleted"""
        supplier = TestDataFactory.create_supplier(self.user.tenant)
        TestDataFactory.create_purchase_order(self.user.tenant, supplier=supplier)
        response = self.client.delete(f'/api/v1/purchasing/suppliers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(Supplier.objects.filter(pk=supplier.pk).exists())

    def test_delete_with_closed_order_history_conflicts(self):
        """Test a supplier with order history must be deactivated instead"""
        supplier = TestDataFactory.create_supplier(self.user.tenant)
        TestDataFactory.create_purchase_order(self.user.tenant, supplier=supplier,
                                              status=PurchaseOrder.STATUS_CANCELLED)
        response = self.client.delete(f'/api/v1/purchasing/suppliers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertIn('Deactivate', response.data['error'])
        self.assertFalse(AuditLog.objects.filter(model_name='Supplier', action='delete').exists())


class ClientAPITests(TestCase):
    """Test client CRUD endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_and_fetch_client(self):
        """Test creating and retrieving a client"""
        response = self.client.post('/api/v1/sales/clients/', {
            'name': 'Kedai Senja', 'email': 'order@kedaisenja.id', 'shipping_address': 'Jl. Braga 12, Bandung',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        detail = self.client.get(f"/api/v1/sales/clients/{response.data['id']}/")
        self.assertEqual(detail.status_code, status.HTTP_200_OK)
        self.assertEqual(detail.data['shipping_address'], 'Jl. Braga 12, Bandung')

    def test_other_tenant_client_is_hidden(self):
        """Test clients of another tenant are hidden"""
        foreign = TestDataFactory.create_client(TestDataFactory.create_tenant())
        response = self.client.get(f'/api/v1/sales/clients/{foreign.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.get('/api/v1/sales/clients/')
        self.assertEqual(response.data['count'], 0)

    def test_delete_with_active_order_conflicts(self):
        """Test a client with an active order cannot be deleted"""
        customer = TestDataFactory.create_client(self.user.tenant)
        TestDataFactory.create_sales_order(self.user.tenant, client=customer, status=SalesOrder.STATUS_CONFIRMED)
        response = self.client.delete(f'/api/v1/sales/clients/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertIn('active order', response.data['error'])
        self.assertTrue(Client.objects.filter(pk=customer.pk).exists())

    def test_roaster_cannot_create_client(self):
        """Test a roaster cannot create clients"""
        roaster = TestDataFactory.create_user(tenant=self.user.tenant, role='ROASTER')
        self.client.authenticate_user(roaster)
        response = self.client.post('/api/v1/sales/clients/', {'name': 'Nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
