"""
Test suite for invoicing
Tests: generation from orders, payment status boundaries, deletion rules, overdue marking
"""
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from roastery.core.exceptions import Conflict, InvalidPaymentAmount, InvalidTransition
from roastery.core.test_utils import AuthenticatedAPIClient, TestDataFactory
from roastery.invoicing import services
from roastery.invoicing.models import InvoiceBase, PurchaseInvoice, SalesInvoice
from roastery.purchasing.models import PurchaseOrder
from roastery.sales import services as sales
from roastery.sales.models import SalesOrder


class InvoiceTestMixin:

    def make_shipped_order(self, quantity='4.000', price='150000.00'):
        lot = TestDataFactory.create_lot(self.user)
        TestDataFactory.create_sellable_batch(self.user.tenant, lot, available='10.000')
        order = TestDataFactory.create_sales_order(self.user.tenant, items=[('RC-HOUSE', quantity, price)])
        sales.confirm(self.ctx, order.pk)
        sales.ship(self.ctx, order.pk)
        return order

    def make_invoice(self, total='1000.00'):
        client = TestDataFactory.create_client(self.user.tenant)
        return services.create_manual_sales_invoice(self.ctx, client, [
            {'product_sku': 'RC-HOUSE', 'quantity': Decimal('1'), 'unit_price': Decimal(total)},
        ])


class InvoiceGenerationTests(InvoiceTestMixin, TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.ctx = TestDataFactory.context(self.user)

    def test_generate_from_shipped_order(self):
        """Test invoicing a shipped sales order"""
        order = self.make_shipped_order('4.000', '150000.00')
        invoice = services.generate_from_sales_order(self.ctx, order.pk, invoice_date=date(2025, 1, 10),
                                                     tax_amount=Decimal('66000.00'))
        self.assertEqual(invoice.sales_order, order)
        self.assertEqual(invoice.client, order.client)
        self.assertEqual(invoice.subtotal_amount, Decimal('600000.00'))
        self.assertEqual(invoice.total_amount, Decimal('666000.00'))
        self.assertEqual(invoice.due_date, date(2025, 2, 9))
        self.assertEqual(invoice.payment_status, InvoiceBase.PAYMENT_UNPAID)
        line = invoice.items.get()
        self.assertEqual(line.quantity, Decimal('4.000'))
        self.assertEqual(line.line_total, Decimal('600000.00'))

    def test_pending_order_cannot_be_invoiced(self):
        """Test a pending order cannot be invoiced"""
        order = TestDataFactory.create_sales_order(self.user.tenant)
        with self.assertRaises(InvalidTransition):
            services.generate_from_sales_order(self.ctx, order.pk)

    def test_order_invoiced_once(self):
        """Test an order is invoiced only once"""
        order = self.make_shipped_order()
        services.generate_from_sales_order(self.ctx, order.pk)
        with self.assertRaises(Conflict):
            services.generate_from_sales_order(self.ctx, order.pk)
        self.assertEqual(SalesInvoice.objects.filter(sales_order=order).count(), 1)

    def test_custom_payment_terms(self):
        """Test custom payment terms set the due date"""
        order = self.make_shipped_order()
        invoice = services.generate_from_sales_order(self.ctx, order.pk, invoice_date=date(2025, 1, 1),
                                                     payment_terms_days=14)
        self.assertEqual(invoice.due_date, date(2025, 1, 15))

    def test_generate_from_received_purchase_order(self):
        """Test invoicing a received purchase order"""
        order = TestDataFactory.create_purchase_order(self.user.tenant, status=PurchaseOrder.STATUS_RECEIVED,
                                                      items=[('GC-GAYO', '20.000', '80000.00')])
        order.items.update(received_quantity_kg=Decimal('18.000'))
        invoice = services.generate_from_purchase_order(self.ctx, order.pk)
        self.assertEqual(invoice.supplier, order.supplier)
        self.assertEqual(invoice.total_amount, Decimal('1440000.00'))
        self.assertTrue(invoice.invoice_number.startswith('PINV-'))

    def test_unreceived_purchase_order_cannot_be_invoiced(self):
        """Test an unreceived purchase order cannot be invoiced"""
        order = TestDataFactory.create_purchase_order(self.user.tenant, status=PurchaseOrder.STATUS_IN_TRANSIT)
        with self.assertRaises(InvalidTransition):
            services.generate_from_purchase_order(self.ctx, order.pk)


class PaymentTests(InvoiceTestMixin, TestCase):
    """Payment status follows the cumulative paid amount"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.ctx = TestDataFactory.context(self.user)
        self.invoice = self.make_invoice('1000.00')

    def _pay(self, amount):
        return services.record_payment(self.ctx, SalesInvoice, self.invoice.pk, Decimal(amount))

    def test_zero_is_unpaid(self):
        """Test a zero payment leaves the invoice unpaid"""
        self.assertEqual(self._pay('0').payment_status, InvoiceBase.PAYMENT_UNPAID)

    def test_partial_payment(self):
        """Test a one cent payment is a partial payment"""
        invoice = self._pay('0.01')
        self.assertEqual(invoice.payment_status, InvoiceBase.PAYMENT_PARTIALLY_PAID)
        self.assertEqual(invoice.get_balance_due(), Decimal('999.99'))
        self.assertIsNotNone(invoice.payment_date)

    def test_one_cent_short_is_partial(self):
        """Test paying the total less one cent stays partially paid"""
        invoice = self._pay('999.99')
        self.assertEqual(invoice.payment_status, InvoiceBase.PAYMENT_PARTIALLY_PAID)
        self.assertEqual(invoice.get_balance_due(), Decimal('0.01'))

    def test_zero_total_invoice_is_paid_by_zero(self):
        """Test a zero-total invoice counts as paid once zero is recorded"""
        free = self.make_invoice('0.00')
        invoice = services.record_payment(self.ctx, SalesInvoice, free.pk, Decimal('0'))
        self.assertEqual(invoice.total_amount, Decimal('0.00'))
        self.assertEqual(invoice.payment_status, InvoiceBase.PAYMENT_PAID)

    def test_full_payment(self):
        """Test paying the total marks the invoice paid"""
        invoice = self._pay('1000.00')
        self.assertEqual(invoice.payment_status, InvoiceBase.PAYMENT_PAID)
        self.assertEqual(invoice.get_balance_due(), Decimal('0.00'))

    def test_overpayment_rejected(self):
        """Test paying more than the total is rejected"""
        with self.assertRaises(InvalidPaymentAmount):
            self._pay('1000.01')
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.paid_amount, Decimal('0.00'))

    def test_negative_payment_rejected(self):
        """Test a negative payment is rejected"""
        with self.assertRaises(InvalidPaymentAmount):
            self._pay('-1')

    def test_payment_is_cumulative_not_additive(self):
        """Test each payment sets the cumulative amount"""
        self._pay('400.00')
        invoice = self._pay('300.00')
        self.assertEqual(invoice.paid_amount, Decimal('300.00'))

    def test_overdue_is_derived_from_due_date(self):
        """Test overdue status is derived from the due date"""
        self.invoice.due_date = timezone.localdate() - timedelta(days=1)
        self.invoice.save()
        self.assertEqual(self.invoice.get_effective_status(), InvoiceBase.PAYMENT_OVERDUE)
        invoice = self._pay('1000.00')
        self.assertEqual(invoice.get_effective_status(), InvoiceBase.PAYMENT_PAID)

    def test_delete_only_unpaid(self):
        """Test only unpaid invoices can be deleted"""
        self._pay('10.00')
        with self.assertRaises(Conflict):
            services.delete_invoice(self.ctx, SalesInvoice, self.invoice.pk)
        self._pay('0')
        services.delete_invoice(self.ctx, SalesInvoice, self.invoice.pk)
        self.assertFalse(SalesInvoice.objects.filter(pk=self.invoice.pk).exists())


class MarkOverdueCommandTests(InvoiceTestMixin, TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.ctx = TestDataFactory.context(self.user)

    def test_command_marks_past_due_unpaid_invoices(self):
        """Test the command marks past due invoices overdue"""
        late = self.make_invoice()
        paid = self.make_invoice()
        services.record_payment(self.ctx, SalesInvoice, paid.pk, paid.total_amount)
        current = self.make_invoice()
        SalesInvoice.objects.filter(pk__in=[late.pk, paid.pk]).update(due_date=date(2025, 1, 1))

        out = StringIO()
        call_command('mark_overdue_invoices', '--date', '2025-01-02', stdout=out)
        self.assertIn('Marked 1 sales invoice(s)', out.getvalue())

        statuses = dict(SalesInvoice.objects.values_list('pk', 'payment_status'))
        self.assertEqual(statuses[late.pk], InvoiceBase.PAYMENT_OVERDUE)
        self.assertEqual(statuses[paid.pk], InvoiceBase.PAYMENT_PAID)
        self.assertEqual(statuses[current.pk], InvoiceBase.PAYMENT_UNPAID)

    def test_command_rejects_bad_date(self):
        """Test the command rejects a malformed date"""
        with self.assertRaises(CommandError):
            call_command('mark_overdue_invoices', '--date', 'yesterday')


class InvoiceAPITests(InvoiceTestMixin, TestCase):
    """Test the invoice endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.ctx = TestDataFactory.context(self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_invoice_shipped_order(self):
        """Test invoicing a shipped order via API"""
        order = self.make_shipped_order('2.000', '100000.00')
        response = self.client.post(f'/api/v1/sales/orders/{order.id}/invoice/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['so_number'], order.so_number)
        self.assertEqual(response.data['total_amount'], Decimal('200000.00'))
        self.assertEqual(response.data['payment_status'], InvoiceBase.PAYMENT_UNPAID)
        self.assertEqual(response.data['payment_terms_days'], 30)

        second = self.client.post(f'/api/v1/sales/orders/{order.id}/invoice/', {}, format='json')
        self.assertEqual(second.status_code, status.HTTP_409_CONFLICT)

    def test_invoice_pending_order_is_400(self):
        """Test invoicing a pending order returns 400"""
        order = TestDataFactory.create_sales_order(self.user.tenant)
        response = self.client.post(f'/api/v1/sales/orders/{order.id}/invoice/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        order.refresh_from_db()
        self.assertEqual(order.status, SalesOrder.STATUS_PENDING)

    def test_record_payment(self):
        """Test recording a payment via API"""
        invoice = self.make_invoice('500.00')
        response = self.client.patch(f'/api/v1/sales/invoices/{invoice.id}/payment/', {
            'paid_amount': '200.00', 'payment_method': 'BANK_TRANSFER', 'payment_reference': 'TRX-1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payment_status'], InvoiceBase.PAYMENT_PARTIALLY_PAID)
        self.assertEqual(response.data['balance_due'], Decimal('300.00'))

    def test_overpayment_is_400(self):
        """Test an overpayment returns 400"""
        invoice = self.make_invoice('500.00')
        response = self.client.patch(f'/api/v1/sales/invoices/{invoice.id}/payment/', {'paid_amount': '500.01'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_payment_amount')

    def test_manual_purchase_invoice(self):
        """Test creating a manual purchase invoice"""
        supplier = TestDataFactory.create_supplier(self.user.tenant)
        response = self.client.post('/api/v1/purchasing/invoices/', {
            'supplier': supplier.id,
            'payment_terms_days': 7,
            'items': [{'product_sku': 'FREIGHT', 'quantity': '1', 'unit_price': '250000.00'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['supplier_name'], supplier.name)
        self.assertEqual(PurchaseInvoice.objects.count(), 1)

    def test_delete_paid_invoice_conflicts(self):
        """Test deleting a paid invoice returns 409"""
        invoice = self.make_invoice('500.00')
        services.record_payment(self.ctx, SalesInvoice, invoice.pk, Decimal('500.00'))
        response = self.client.delete(f'/api/v1/sales/invoices/{invoice.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_filter_by_payment_status(self):
        """Test filtering invoices by payment status"""
        self.make_invoice()
        paid = self.make_invoice()
        services.record_payment(self.ctx, SalesInvoice, paid.pk, paid.total_amount)
        response = self.client.get('/api/v1/sales/invoices/', {'payment_status': InvoiceBase.PAYMENT_PAID})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
