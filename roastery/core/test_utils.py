"""
Test utilities and factories for creating test data
"""
import random
import string
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from roastery.core.context import system_context
from roastery.core.models import Tenant
from roastery.finance.models import IndirectCost
from roastery.inventory import services as ledger
from roastery.parties.models import Client, Supplier
from roastery.production.models import RoastBatch
from roastery.purchasing.models import PurchaseOrder, PurchaseOrderItem
from roastery.sales.models import SalesOrder, SalesOrderItem

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_tenant(company_name=None, currency='IDR', is_active=True):
        if not company_name:
            company_name = f'Roastery_{TestDataFactory.random_string(6)}'
        return Tenant.objects.create(company_name=company_name, currency=currency, is_active=is_active)

    @staticmethod
    def create_user(tenant=None, role=User.ROLE_OWNER, username=None, email=None, password='testpass123'):
        """Create a test user; tenant users get a fresh tenant unless one is given"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        if tenant is None and role != User.ROLE_SUPERADMIN:
            tenant = TestDataFactory.create_tenant()
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            tenant=tenant,
            role=role,
        )

    @staticmethod
    def context(user):
        """Service context acting as ``user``"""
        return system_context(user.tenant, user)

    @staticmethod
    def create_supplier(tenant, name=None):
        if not name:
            name = f'Supplier_{TestDataFactory.random_string(6)}'
        return Supplier.objects.create(tenant=tenant, name=name, email=f'{name.lower()}@test.com',
                                       country='Indonesia')

    @staticmethod
    def create_client(tenant, name=None):
        if not name:
            name = f'Client_{TestDataFactory.random_string(6)}'
        return Client.objects.create(tenant=tenant, name=name, email=f'{name.lower()}@test.com')

    @staticmethod
    def create_lot(user, sku='GC-ARABICA', weight='100.000', cost='50000.00', lot_number=None, supplier=None):
        """Receive a green coffee lot through the inventory ledger"""
        if not lot_number:
            lot_number = f'LOT-{TestDataFactory.random_string(8).upper()}'
        return ledger.receive_lot(
            TestDataFactory.context(user),
            lot_number=lot_number,
            sku=sku,
            initial_weight=Decimal(weight),
            purchase_cost_per_kg=Decimal(cost),
            moisture_content=Decimal('11.50'),
            supplier=supplier,
        )

    @staticmethod
    def create_sellable_batch(tenant, lot, product_sku='RC-HOUSE', available='10.000', roasted_at=None,
                              batch_number=None):
        """A QC_PASSED batch holding ``available`` kg, bypassing the roast workflow"""
        if not batch_number:
            batch_number = f'RB-{TestDataFactory.random_string(8).upper()}'
        available = Decimal(available)
        return RoastBatch.objects.create(
            tenant=tenant,
            batch_number=batch_number,
            lot=lot,
            product_sku=product_sku,
            weight_in=available * Decimal('1.2'),
            weight_out=available,
            shrinkage_pct=Decimal('16.67'),
            status=RoastBatch.STATUS_QC_PASSED,
            roasted_at=roasted_at or timezone.now(),
            available_quantity_kg=available,
        )

    @staticmethod
    def create_sales_order(tenant, client=None, items=None, status=SalesOrder.STATUS_PENDING):
        """Sales order with ``items`` as (product_sku, quantity_kg, unit_price) tuples"""
        if client is None:
            client = TestDataFactory.create_client(tenant)
        order = SalesOrder.objects.create(
            tenant=tenant,
            so_number=f'SO-TEST-{TestDataFactory.random_string(8).upper()}',
            client=client,
            status=status,
            order_date=timezone.localdate(),
        )
        total = Decimal('0.00')
        for sku, quantity, price in items or [('RC-HOUSE', '5.000', '150000.00')]:
            line_total = Decimal(quantity) * Decimal(price)
            SalesOrderItem.objects.create(
                sales_order=order,
                product_sku=sku,
                quantity_kg=Decimal(quantity),
                unit_price=Decimal(price),
                total_price=line_total,
            )
            total += line_total
        order.total_amount = total
        order.save(update_fields=['total_amount'])
        return order

    @staticmethod
    def create_purchase_order(tenant, supplier=None, items=None, status=PurchaseOrder.STATUS_DRAFT):
        """Purchase order with ``items`` as (sku, quantity_kg, unit_price) tuples"""
        if supplier is None:
            supplier = TestDataFactory.create_supplier(tenant)
        order = PurchaseOrder.objects.create(
            tenant=tenant,
            po_number=f'PO-TEST-{TestDataFactory.random_string(8).upper()}',
            supplier=supplier,
            status=status,
            order_date=timezone.localdate(),
        )
        total = Decimal('0.00')
        for sku, quantity, price in items or [('GC-ARABICA', '100.000', '50000.00')]:
            line_total = Decimal(quantity) * Decimal(price)
            PurchaseOrderItem.objects.create(
                purchase_order=order,
                sku=sku,
                quantity_kg=Decimal(quantity),
                unit_price=Decimal(price),
                total_price=line_total,
            )
            total += line_total
        order.total_amount = total
        order.save(update_fields=['total_amount'])
        return order

    @staticmethod
    def create_indirect_cost(tenant, month, year, rent='0.00', utilities='0.00', labor='0.00', misc='0.00',
                             estimated_total='0.00', is_closed=False):
        cost = IndirectCost(
            tenant=tenant, month=month, year=year,
            rent=Decimal(rent), utilities=Decimal(utilities), labor=Decimal(labor), misc=Decimal(misc),
            estimated_total=Decimal(estimated_total), is_closed=is_closed,
        )
        cost.recalculate_total()
        cost.save()
        return cost


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
