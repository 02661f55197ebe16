"""
Test suite for the core module
Tests: JWT login, capabilities, tenant isolation, user and tenant administration, error envelope
"""
from django.test import TestCase
from rest_framework import status

from roastery.core.models import AuditLog, Tenant, User
from roastery.core.permissions import (
    INVENTORY_MANAGE, PURCHASING_MANAGE, TENANTS_MANAGE, capabilities_for, has_capability,
)
from roastery.core.test_utils import AuthenticatedAPIClient, TestDataFactory


class CapabilityTests(TestCase):
    """Role to capability mapping"""

    def test_owner_has_everything_but_tenant_admin(self):
        """Test an owner holds every capability except tenant administration"""
        caps = capabilities_for(User.ROLE_OWNER)
        self.assertIn(INVENTORY_MANAGE, caps)
        self.assertIn(PURCHASING_MANAGE, caps)
        self.assertNotIn(TENANTS_MANAGE, caps)

    def test_roaster_cannot_manage_purchasing(self):
        """Test a roaster manages inventory but not purchasing"""
        caps = capabilities_for(User.ROLE_ROASTER)
        self.assertIn(INVENTORY_MANAGE, caps)
        self.assertNotIn(PURCHASING_MANAGE, caps)

    def test_accountant_cannot_manage_inventory(self):
        """Test an accountant has no inventory write capability"""
        user = TestDataFactory.create_user(role=User.ROLE_ACCOUNTANT)
        self.assertFalse(has_capability(user, INVENTORY_MANAGE))
        self.assertTrue(has_capability(user, PURCHASING_MANAGE))

    def test_superadmin_has_no_tenant_data_capabilities(self):
        """Test a superadmin only manages tenants and users"""
        caps = capabilities_for(User.ROLE_SUPERADMIN)
        self.assertEqual(caps, {TENANTS_MANAGE, 'users.manage'})

    def test_inactive_user_has_no_capabilities(self):
        """Test a deactivated user has no capabilities"""
        user = TestDataFactory.create_user()
        user.is_active = False
        self.assertFalse(has_capability(user, INVENTORY_MANAGE))


class AuthAPITests(TestCase):
    """Test login, refresh and the current user endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(username='owner1', password='testpass123')

    def test_login_returns_tokens_and_user(self):
        """Test login returns a token pair and the user payload"""
        response = self.client.post('/api/v1/auth/login/', {'username': 'owner1', 'password': 'testpass123'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['role'], User.ROLE_OWNER)
        self.assertEqual(response.data['user']['tenant'], self.user.tenant_id)

    def test_login_rejected_for_disabled_tenant(self):
        """Test users of a disabled tenant cannot log in"""
        self.user.tenant.is_active = False
        self.user.tenant.save()
        response = self.client.post('/api/v1/auth/login/', {'username': 'owner1', 'password': 'testpass123'})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_issues_new_access_token(self):
        """Test refreshing a token"""
        login = self.client.post('/api/v1/auth/login/', {'username': 'owner1', 'password': 'testpass123'})
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_me_lists_capabilities(self):
        """Test the current user endpoint lists capabilities"""
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'owner1')
        self.assertIn('inventory.manage', response.data['capabilities'])

    def test_unauthenticated_request_is_rejected(self):
        """Test requests without a token are rejected"""
        response = self.client.get('/api/v1/inventory/lots/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('error', response.data)


class PermissionAPITests(TestCase):
    """Capability enforcement on the API"""

    def setUp(self):
        self.tenant = TestDataFactory.create_tenant()
        self.roaster = TestDataFactory.create_user(tenant=self.tenant, role=User.ROLE_ROASTER)
        self.accountant = TestDataFactory.create_user(tenant=self.tenant, role=User.ROLE_ACCOUNTANT)
        self.client = AuthenticatedAPIClient()

    def test_roaster_can_read_but_not_create_purchase_orders(self):
        """Test a roaster can list but not create purchase orders"""
        self.client.authenticate_user(self.roaster)
        self.assertEqual(self.client.get('/api/v1/purchasing/orders/').status_code, status.HTTP_200_OK)
        response = self.client.post('/api/v1/purchasing/orders/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(set(response.data), {'error', 'code'})

    def test_accountant_cannot_receive_lots(self):
        """Test an accountant cannot receive green coffee lots"""
        self.client.authenticate_user(self.accountant)
        response = self.client.post('/api/v1/inventory/lots/', {
            'lot_number': 'L-1', 'sku': 'GC-1', 'initial_weight': '10', 'purchase_cost_per_kg': '100',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_roaster_cannot_manage_users(self):
        """Test a roaster cannot list users"""
        self.client.authenticate_user(self.roaster)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_superadmin_cannot_read_tenant_inventory(self):
        """Test a superadmin cannot read tenant inventory"""
        admin = TestDataFactory.create_user(role=User.ROLE_SUPERADMIN)
        self.client.authenticate_user(admin)
        response = self.client.get('/api/v1/inventory/lots/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class TenantIsolationTests(TestCase):
    """Rows of another tenant behave as missing rows"""

    def setUp(self):
        self.owner_a = TestDataFactory.create_user()
        self.owner_b = TestDataFactory.create_user()
        self.lot_b = TestDataFactory.create_lot(self.owner_b)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.owner_a)

    def test_other_tenant_lot_is_not_found(self):
        """Test a lot of another tenant is a 404"""
        response = self.client.get(f'/api/v1/inventory/lots/{self.lot_b.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')

    def test_list_only_shows_own_tenant(self):
        """Test listing users only shows the caller's tenant"""
        TestDataFactory.create_lot(self.owner_a, lot_number='MINE-1')
        response = self.client.get('/api/v1/inventory/lots/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['lot_number'] for row in response.data['results']], ['MINE-1'])

    def test_cannot_delete_other_tenant_user(self):
        """Test deleting a user of another tenant is a 404"""
        response = self.client.delete(f'/api/v1/users/{self.owner_b.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(User.objects.filter(pk=self.owner_b.pk).exists())


class UserAdminAPITests(TestCase):
    """Owner managing the users of its tenant"""

    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.owner)

    def test_create_user_in_own_tenant(self):
        """Test creating a user in the owner's tenant"""
        response = self.client.post('/api/v1/users/', {
            'username': 'roaster1',
            'email': 'roaster1@test.com',
            'password': 'Strong-pass-123',
            'password_confirm': 'Strong-pass-123',
            'role': User.ROLE_ROASTER,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(username='roaster1')
        self.assertEqual(user.tenant_id, self.owner.tenant_id)
        self.assertEqual(user.role, User.ROLE_ROASTER)
        self.assertTrue(AuditLog.objects.filter(model_name='User', action='create').exists())

    def test_password_mismatch_is_a_validation_error(self):
        """Test mismatched passwords are rejected"""
        response = self.client.post('/api/v1/users/', {
            'username': 'roaster2',
            'password': 'Strong-pass-123',
            'password_confirm': 'other-pass-123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'validation_error')
        self.assertIn('fields', response.data)

    def test_owner_cannot_grant_superadmin(self):
        """Test an owner cannot create a superadmin"""
        roaster = TestDataFactory.create_user(tenant=self.owner.tenant, role=User.ROLE_ROASTER)
        response = self.client.patch(f'/api/v1/users/{roaster.id}/role/', {'role': User.ROLE_SUPERADMIN},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_change_role(self):
        """Test changing a user's role"""
        roaster = TestDataFactory.create_user(tenant=self.owner.tenant, role=User.ROLE_ROASTER)
        response = self.client.patch(f'/api/v1/users/{roaster.id}/role/', {'role': User.ROLE_ACCOUNTANT},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        roaster.refresh_from_db()
        self.assertEqual(roaster.role, User.ROLE_ACCOUNTANT)

    def test_owner_cannot_demote_self(self):
        """Test an owner cannot change their own role"""
        response = self.client.patch(f'/api/v1/users/{self.owner.id}/role/', {'role': User.ROLE_ROASTER},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'conflict')

    def test_owner_cannot_delete_self(self):
        """Test an owner cannot delete their own account"""
        response = self.client.delete(f'/api/v1/users/{self.owner.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_audit_logs_are_tenant_scoped(self):
        """Test audit logs only show the caller's tenant"""
        other = TestDataFactory.create_user()
        TestDataFactory.create_lot(other)
        TestDataFactory.create_lot(self.owner)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)


class TenantAdminAPITests(TestCase):
    """Super admin tenant panel"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(role=User.ROLE_SUPERADMIN)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_create_tenant_with_owner(self):
        """Test creating a tenant together with its owner"""
        response = self.client.post('/api/v1/tenants/', {
            'company_name': 'Kopi Nusantara',
            'owner': {'username': 'nusantara', 'email': 'owner@nusantara.id', 'password': 'Strong-pass-123'},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        tenant = Tenant.objects.get(company_name='Kopi Nusantara')
        owner = User.objects.get(username='nusantara')
        self.assertEqual(owner.tenant, tenant)
        self.assertEqual(owner.role, User.ROLE_OWNER)
        self.assertEqual(response.data['user_count'], 1)

    def test_tenant_detail_counts_records(self):
        """Test tenant detail reports record counts"""
        owner = TestDataFactory.create_user()
        TestDataFactory.create_lot(owner)
        response = self.client.get(f'/api/v1/tenants/{owner.tenant_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['record_counts']['green_lots'], 1)
        self.assertEqual(len(response.data['users']), 1)

    def test_owner_cannot_open_tenant_panel(self):
        """Test an owner cannot reach the tenant panel"""
        owner = TestDataFactory.create_user()
        self.client.authenticate_user(owner)
        response = self.client.get('/api/v1/tenants/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
