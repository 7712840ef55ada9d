"""
Tests for core helpers: document numbers, audit logging, error handling and auth
"""
from datetime import date
from django.conf import settings
from django.test import TestCase, RequestFactory
from rest_framework import status
from rest_framework.exceptions import ValidationError
from backend.core.exceptions import (
    BusinessRuleViolation, InsufficientStock, InvalidStatusTransition, custom_exception_handler,
)
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import create_audit_log, generate_document_number, get_client_ip
from backend.purchasing.models import PurchaseOrder


class DocumentNumberTests(TestCase):
    """Test sequential document numbering"""

    def test_first_number_of_day(self):
        number = generate_document_number(PurchaseOrder, 'po_number', 'PO', on_date=date(2025, 1, 14))
        self.assertEqual(number, 'PO-20250114-0001')

    def test_sequence_follows_highest_existing(self):
        po = TestDataFactory.create_purchase_order()
        PurchaseOrder.objects.filter(pk=po.pk).update(po_number='PO-20250114-0007')
        number = generate_document_number(PurchaseOrder, 'po_number', 'PO', on_date=date(2025, 1, 14))
        self.assertEqual(number, 'PO-20250114-0008')

    def test_sequence_restarts_each_day(self):
        po = TestDataFactory.create_purchase_order()
        PurchaseOrder.objects.filter(pk=po.pk).update(po_number='PO-20250114-0007')
        number = generate_document_number(PurchaseOrder, 'po_number', 'PO', on_date=date(2025, 1, 15))
        self.assertEqual(number, 'PO-20250115-0001')


class AuditLogUtilTests(TestCase):
    """Test audit log creation helper"""

    def setUp(self):
        self.factory = RequestFactory()
        self.user = TestDataFactory.create_user()

    def test_creates_entry_with_request_user_and_ip(self):
        request = self.factory.post('/api/v1/test/', HTTP_X_FORWARDED_FOR='10.0.0.1, 172.16.0.1')
        request.user = self.user
        entry = create_audit_log(
            request=request, action='create', model_name='PurchaseOrder', object_id=1,
            object_reference='PO-20250114-0001', changes={'status': 'draft'}
        )
        self.assertIsNotNone(entry)
        self.assertEqual(entry.user, self.user)
        self.assertEqual(entry.ip_address, '10.0.0.1')
        self.assertEqual(entry.object_id, '1')
        self.assertEqual(entry.changes, {'status': 'draft'})

    def test_missing_required_fields_is_skipped(self):
        entry = create_audit_log(action='create', model_name=None, object_id=1, user=self.user)
        self.assertIsNone(entry)
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_client_ip_falls_back_to_remote_addr(self):
        request = self.factory.get('/', REMOTE_ADDR='192.168.1.5')
        self.assertEqual(get_client_ip(request), '192.168.1.5')


class ExceptionHandlerTests(TestCase):
    """Test error response shape"""

    def test_business_rule_violation_shape(self):
        exc = BusinessRuleViolation('Purchase order already received', fields={'status': 'received'})
        response = custom_exception_handler(exc, {})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Purchase order already received')
        self.assertEqual(response.data['code'], 'business_rule_violation')
        self.assertEqual(response.data['fields'], {'status': 'received'})

    def test_insufficient_stock_message(self):
        exc = InsufficientStock('Cola', 5, 10)
        response = custom_exception_handler(exc, {})
        self.assertEqual(response.data['error'], 'Insufficient stock for Cola. Available: 5, Requested: 10')
        self.assertEqual(response.data['code'], 'insufficient_stock')

    def test_invalid_status_transition_message(self):
        exc = InvalidStatusTransition('ordered', 'draft')
        response = custom_exception_handler(exc, {})
        self.assertEqual(response.data['error'], 'Cannot change status from ordered to draft')
        self.assertEqual(response.data['code'], 'invalid_status_transition')

    def test_validation_error_keeps_field_shape(self):
        response = custom_exception_handler(ValidationError({'quantity': ['Required.']}), {})
        self.assertEqual(response.data, {'quantity': ['Required.']})


class AuthAPITests(TestCase):
    """Test JWT login and user endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(username='clerk', password='testpass123')
        self.client = AuthenticatedAPIClient()

    def test_login_returns_tokens(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'clerk', 'password': 'testpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

    def test_login_with_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'clerk', 'password': 'wrong'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_returns_current_user(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'clerk')
        self.assertFalse(response.data['is_admin'])

    def test_user_list_is_admin_only(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_refresh_issues_new_access_token(self):
        login = self.client.post('/api/v1/auth/login/', {'username': 'clerk', 'password': 'testpass123'}, format='json')
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_users_are_read_only(self):
        admin = TestDataFactory.create_user(is_staff=True)
        self.client.authenticate_user(admin)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        response = self.client.patch(f'/api/v1/users/{self.user.id}/', {'email': 'x@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
        self.user.refresh_from_db()
        self.assertNotEqual(self.user.email, 'x@test.com')


class AuditLogAPITests(TestCase):
    """Test audit log endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_user(is_staff=True)
        self.client = AuthenticatedAPIClient()
        create_audit_log(action='create', model_name='PurchaseOrder', object_id=1, object_reference='PO-1', user=self.user)
        create_audit_log(action='cancel', model_name='PurchaseOrder', object_id=2, object_reference='PO-2', user=self.admin)

    def test_non_staff_sees_only_own_logs(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['object_reference'], 'PO-1')

    def test_staff_filters_by_action(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/audit-logs/', {'action': 'cancel'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['action'], 'cancel')

    def test_detail_of_other_users_log_is_forbidden(self):
        entry = AuditLog.objects.get(object_reference='PO-2')
        self.client.authenticate_user(self.user)
        response = self.client.get(f'/api/v1/audit-logs/{entry.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class DatabaseSettingsTests(TestCase):
    """Test the database configuration built from DATABASE_URL"""

    def test_default_database_is_parsed_from_url(self):
        database = settings.DATABASES['default']
        self.assertTrue(database['ENGINE'].startswith('django.db.backends.'))
        self.assertIn('CONN_MAX_AGE', database)

