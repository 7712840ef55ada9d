"""
Tests for suppliers and the accounts payable ledger
"""
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backend.core.exceptions import BusinessRuleViolation
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.parties.models import AccountsPayable, APPayment
from backend.parties import services


class PaymentTermsTests(TestCase):
    """Test due date calculation"""

    def test_known_terms(self):
        start = date(2025, 1, 1)
        self.assertEqual(services.calculate_due_date('Net 15', start), date(2025, 1, 16))
        self.assertEqual(services.calculate_due_date('Net 60', start), date(2025, 3, 2))
        self.assertEqual(services.calculate_due_date('COD', start), start)

    def test_unknown_terms_use_default(self):
        self.assertEqual(services.calculate_due_date('Net 45', date(2025, 1, 1)), date(2025, 1, 31))

    def test_aging_buckets(self):
        self.assertEqual(services.bucket_for(-5), '0-30')
        self.assertEqual(services.bucket_for(30), '0-30')
        self.assertEqual(services.bucket_for(31), '31-60')
        self.assertEqual(services.bucket_for(90), '61-90')
        self.assertEqual(services.bucket_for(91), '90+')


class AccountsPayableServiceTests(TestCase):
    """Test payable creation and payments"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.branch = TestDataFactory.create_branch()
        self.supplier = TestDataFactory.create_supplier()
        self.today = timezone.localdate()

    def _payable(self, total='1000.00', due_in=30):
        return services.create_payable(
            self.branch, self.supplier, Decimal(total), self.today + timedelta(days=due_in), user=self.user
        )

    def test_create_payable(self):
        payable = self._payable()
        self.assertEqual(payable.balance, Decimal('1000.00'))
        self.assertEqual(payable.paid_amount, Decimal('0.00'))
        self.assertEqual(payable.status, 'pending')
        self.assertTrue(AuditLog.objects.filter(action='ap_create', object_id=str(payable.id)).exists())

    def test_partial_then_full_payment(self):
        payable = self._payable()
        services.record_payment(payable, Decimal('400.00'), 'cash', user=self.user)
        self.assertEqual(payable.balance, Decimal('600.00'))
        self.assertEqual(payable.status, 'partial')

        services.record_payment(payable, Decimal('600.00'), 'bank_transfer', reference_number='TRX-1', user=self.user)
        self.assertEqual(payable.balance, Decimal('0.00'))
        self.assertEqual(payable.paid_amount, Decimal('1000.00'))
        self.assertEqual(payable.status, 'paid')
        self.assertEqual(payable.payments.count(), 2)

    def test_overpayment_rejected(self):
        payable = self._payable(total='100.00')
        with self.assertRaises(BusinessRuleViolation):
            services.record_payment(payable, Decimal('100.01'), 'cash')
        self.assertEqual(APPayment.objects.count(), 0)

    def test_payment_on_paid_payable_rejected(self):
        payable = self._payable(total='100.00')
        services.record_payment(payable, Decimal('100.00'), 'cash')
        with self.assertRaises(BusinessRuleViolation):
            services.record_payment(payable, Decimal('1.00'), 'cash')

    def test_non_positive_payment_rejected(self):
        payable = self._payable()
        with self.assertRaises(BusinessRuleViolation):
            services.record_payment(payable, Decimal('0'), 'cash')

    def test_refresh_overdue_status(self):
        overdue = self._payable(due_in=-1)
        AccountsPayable.objects.filter(pk=overdue.pk).update(status='pending')
        current = self._payable(due_in=10)

        self.assertEqual(services.refresh_overdue_status(), 1)
        overdue.refresh_from_db()
        current.refresh_from_db()
        self.assertEqual(overdue.status, 'overdue')
        self.assertEqual(current.status, 'pending')

    def test_refresh_payables_status_command(self):
        payable = self._payable(due_in=5)
        out = StringIO()
        call_command('refresh_payables_status', '--date', (self.today + timedelta(days=6)).isoformat(), stdout=out)
        payable.refresh_from_db()
        self.assertEqual(payable.status, 'overdue')
        self.assertIn('Marked 1', out.getvalue())

    def test_aging_report(self):
        self._payable(total='100.00', due_in=10)
        self._payable(total='200.00', due_in=-45)
        self._payable(total='300.00', due_in=-120)
        other = TestDataFactory.create_supplier()
        services.create_payable(self.branch, other, Decimal('50.00'), self.today - timedelta(days=70))

        report = services.aging_report(today=self.today)
        self.assertEqual(report['buckets']['0-30'], Decimal('100.00'))
        self.assertEqual(report['buckets']['31-60'], Decimal('200.00'))
        self.assertEqual(report['buckets']['61-90'], Decimal('50.00'))
        self.assertEqual(report['buckets']['90+'], Decimal('300.00'))
        self.assertEqual(report['total_outstanding'], Decimal('650.00'))
        self.assertEqual(len(report['suppliers']), 2)


class SupplierAPITests(TestCase):
    """Test Supplier API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_supplier(self):
        data = {'company_name': 'Acme Beverages', 'payment_terms': 'Net 15', 'email': 'ap@acme.test'}
        response = self.client.post('/api/v1/suppliers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['payment_terms'], 'Net 15')

    def test_invalid_payment_terms_rejected(self):
        response = self.client.post('/api/v1/suppliers/', {'company_name': 'Acme', 'payment_terms': 'Net 45'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('payment_terms', response.data)

    def test_search_suppliers(self):
        TestDataFactory.create_supplier(company_name='Acme Beverages')
        TestDataFactory.create_supplier(company_name='Globex Foods')
        response = self.client.get('/api/v1/suppliers/', {'search': 'acme'})
        self.assertEqual([s['company_name'] for s in response.data], ['Acme Beverages'])

    def test_delete_supplier_with_payable_is_blocked(self):
        supplier = TestDataFactory.create_supplier()
        services.create_payable(TestDataFactory.create_branch(), supplier, Decimal('10.00'), timezone.localdate())
        response = self.client.delete(f'/api/v1/suppliers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class AccountsPayableAPITests(TestCase):
    """Test accounts payable API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.branch = TestDataFactory.create_branch()
        self.supplier = TestDataFactory.create_supplier()
        self.payable = services.create_payable(
            self.branch, self.supplier, Decimal('500.00'), timezone.localdate() + timedelta(days=30)
        )

    def test_list_payables(self):
        response = self.client.get('/api/v1/payables/', {'supplier': self.supplier.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['balance'], '500.00')

    def test_record_payment(self):
        response = self.client.post(
            f'/api/v1/payables/{self.payable.id}/payments/',
            {'amount': '200.00', 'payment_method': 'check', 'reference_number': 'CHK-001'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['payable']['balance'], '300.00')
        self.assertEqual(response.data['payable']['status'], 'partial')
        self.assertEqual(response.data['payment']['reference_number'], 'CHK-001')

    def test_overpayment_returns_error(self):
        response = self.client.post(
            f'/api/v1/payables/{self.payable.id}/payments/',
            {'amount': '600.00', 'payment_method': 'cash'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)
        self.assertIn('amount', response.data['fields'])

    def test_detail_includes_payments(self):
        services.record_payment(self.payable, Decimal('50.00'), 'cash')
        response = self.client.get(f'/api/v1/payables/{self.payable.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['payments']), 1)

    def test_summary(self):
        services.record_payment(self.payable, Decimal('100.00'), 'cash')
        response = self.client.get('/api/v1/payables/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_amount'], '500.00')
        self.assertEqual(response.data['total_paid'], '100.00')
        self.assertEqual(response.data['total_outstanding'], '400.00')
        self.assertEqual(response.data['counts']['partial'], 1)

    def test_aging(self):
        response = self.client.get('/api/v1/payables/aging/', {'branch': self.branch.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['buckets']['0-30'], '500.00')
        self.assertEqual(response.data['total_outstanding'], '500.00')
