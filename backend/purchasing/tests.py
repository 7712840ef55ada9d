"""
Comprehensive test suite for Purchasing module
Tests: purchase order lifecycle, receiving vouchers, stock and payable side effects, variance reporting
"""
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backend.core.exceptions import BusinessRuleViolation, InvalidStatusTransition
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.inventory.models import InventoryBatch, StockMovement
from backend.parties.models import AccountsPayable
from backend.purchasing.models import PurchaseOrder, ReceivingVoucher
from backend.purchasing import services


class PurchasingTestMixin:

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.branch = TestDataFactory.create_branch()
        self.warehouse = TestDataFactory.create_warehouse(branch=self.branch)
        self.supplier = TestDataFactory.create_supplier(payment_terms='Net 30')
        self.product = TestDataFactory.create_product(base_uom='bottle', uoms={'case': 24})
        self.today = timezone.localdate()

    def _order(self, quantity='10', uom='case', unit_price='240.00', status='ordered', product=None, notes=''):
        return TestDataFactory.create_purchase_order(
            user=self.user,
            supplier=self.supplier,
            warehouse=self.warehouse,
            items=[(product or self.product, quantity, uom, unit_price)],
            status=status,
            notes=notes,
        )

    def _receive(self, purchase_order, quantity, key=None, reason=''):
        item = purchase_order.items.get()
        return services.create_receiving_voucher(purchase_order, {
            'items': [{'purchase_order_item': item.id, 'received_quantity': Decimal(str(quantity)), 'variance_reason': reason}],
            'receiver_name': 'Dock Clerk',
            'idempotency_key': key,
        }, user=self.user)


class PurchaseOrderCreateTests(PurchasingTestMixin, TestCase):
    """Test purchase order creation rules"""

    def _data(self, **overrides):
        data = {
            'supplier': self.supplier,
            'warehouse': self.warehouse,
            'items': [{'product': self.product, 'quantity': Decimal('10'), 'uom': 'case', 'unit_price': Decimal('240.00')}],
        }
        data.update(overrides)
        return data

    def test_create_purchase_order(self):
        po = services.create_purchase_order(self._data(), user=self.user)
        self.assertTrue(po.po_number.startswith(f"PO-{self.today.strftime('%Y%m%d')}-"))
        self.assertEqual(po.status, 'draft')
        self.assertEqual(po.receiving_status, 'pending')
        self.assertEqual(po.branch, self.branch)
        self.assertEqual(po.total_amount, Decimal('2400.00'))
        self.assertEqual(po.items.count(), 1)
        self.assertTrue(AuditLog.objects.filter(action='create', object_reference=po.po_number).exists())

    def test_total_sums_all_lines(self):
        other = TestDataFactory.create_product()
        items = [
            {'product': self.product, 'quantity': Decimal('2'), 'uom': 'case', 'unit_price': Decimal('240.00')},
            {'product': self.product, 'quantity': Decimal('5'), 'uom': 'bottle', 'unit_price': Decimal('10.50')},
            {'product': other, 'quantity': Decimal('3'), 'uom': '', 'unit_price': Decimal('1.25')},
        ]
        po = services.create_purchase_order(self._data(items=items))
        self.assertEqual(po.total_amount, Decimal('536.25'))
        self.assertEqual(po.items.get(product=other).uom, other.base_uom)

    def test_inactive_supplier_rejected(self):
        supplier = TestDataFactory.create_supplier(is_active=False)
        with self.assertRaises(BusinessRuleViolation):
            services.create_purchase_order(self._data(supplier=supplier))
        self.assertEqual(PurchaseOrder.objects.count(), 0)

    def test_items_required(self):
        with self.assertRaises(BusinessRuleViolation):
            services.create_purchase_order(self._data(items=[]))

    def test_inactive_product_rejected(self):
        product = TestDataFactory.create_product(is_active=False)
        items = [{'product': product, 'quantity': Decimal('1'), 'uom': 'bottle', 'unit_price': Decimal('1')}]
        with self.assertRaises(BusinessRuleViolation):
            services.create_purchase_order(self._data(items=items))

    def test_invalid_uom_rejected(self):
        items = [{'product': self.product, 'quantity': Decimal('1'), 'uom': 'pallet', 'unit_price': Decimal('1')}]
        with self.assertRaises(BusinessRuleViolation):
            services.create_purchase_order(self._data(items=items))

    def test_non_positive_price_rejected(self):
        items = [{'product': self.product, 'quantity': Decimal('1'), 'uom': 'case', 'unit_price': Decimal('0')}]
        with self.assertRaises(BusinessRuleViolation):
            services.create_purchase_order(self._data(items=items))

    def test_duplicate_product_uom_rejected(self):
        line = {'product': self.product, 'quantity': Decimal('1'), 'uom': 'case', 'unit_price': Decimal('1')}
        with self.assertRaises(BusinessRuleViolation):
            services.create_purchase_order(self._data(items=[line, dict(line, uom='CASE')]))

    def test_warehouse_must_belong_to_branch(self):
        with self.assertRaises(BusinessRuleViolation):
            services.create_purchase_order(self._data(branch=TestDataFactory.create_branch()))

    def test_new_order_cannot_start_ordered(self):
        with self.assertRaises(InvalidStatusTransition):
            services.create_purchase_order(self._data(status='ordered'))


class PurchaseOrderStatusTests(PurchasingTestMixin, TestCase):
    """Test the purchase order state machine and edits"""

    def test_manual_transitions(self):
        po = self._order(status='draft')
        po = services.update_purchase_order(po, {'status': 'pending'}, user=self.user)
        self.assertEqual(po.status, 'pending')
        po = services.update_purchase_order(po, {'status': 'ordered'}, user=self.user)
        self.assertEqual(po.status, 'ordered')
        self.assertEqual(AuditLog.objects.filter(action='status_change', object_reference=po.po_number).count(), 2)

    def test_draft_straight_to_ordered(self):
        po = self._order(status='draft')
        po = services.update_purchase_order(po, {'status': 'ordered'})
        self.assertEqual(po.status, 'ordered')

    def test_backwards_transition_rejected(self):
        po = self._order(status='pending')
        with self.assertRaises(InvalidStatusTransition):
            services.update_purchase_order(po, {'status': 'draft'})

    def test_received_not_reachable_manually(self):
        po = self._order(status='ordered')
        with self.assertRaises(InvalidStatusTransition) as ctx:
            services.update_purchase_order(po, {'status': 'received'})
        self.assertIn('only through receiving', str(ctx.exception.detail))

    def test_cancelled_not_reachable_through_update(self):
        po = self._order(status='draft')
        with self.assertRaises(InvalidStatusTransition):
            services.update_purchase_order(po, {'status': 'cancelled'})

    def test_edit_items_retotals(self):
        po = self._order(status='pending')
        po = services.update_purchase_order(po, {
            'notes': 'Rush order',
            'items': [{'product': self.product, 'quantity': Decimal('3'), 'uom': 'case', 'unit_price': Decimal('200.00')}],
        })
        self.assertEqual(po.total_amount, Decimal('600.00'))
        self.assertEqual(po.notes, 'Rush order')
        self.assertEqual(po.items.get().quantity, Decimal('3.0000'))

    def test_edit_after_ordered_rejected(self):
        po = self._order(status='ordered')
        with self.assertRaises(BusinessRuleViolation):
            services.update_purchase_order(po, {'notes': 'Too late'})

    def test_delete_only_in_draft(self):
        po = self._order(status='pending')
        with self.assertRaises(BusinessRuleViolation):
            services.delete_purchase_order(po)

        draft = self._order(status='draft')
        services.delete_purchase_order(draft)
        self.assertFalse(PurchaseOrder.objects.filter(pk=draft.pk).exists())


class PurchaseOrderCancelTests(PurchasingTestMixin, TestCase):
    """Test cancelling purchase orders"""

    def test_cancel_keeps_original_notes(self):
        po = self._order(status='ordered', notes='Deliver before noon')
        po = services.cancel_purchase_order(po, 'Supplier out of stock', user=self.user)
        self.assertEqual(po.status, 'cancelled')
        self.assertEqual(po.notes, 'CANCELLED: Supplier out of stock\n\nOriginal Notes: Deliver before noon')

    def test_cancel_without_notes(self):
        po = self._order(status='draft')
        po = services.cancel_purchase_order(po, 'Duplicate')
        self.assertEqual(po.notes, 'CANCELLED: Duplicate')

    def test_cancel_requires_reason(self):
        po = self._order(status='draft')
        with self.assertRaises(BusinessRuleViolation):
            services.cancel_purchase_order(po, ' ')

    def test_cancel_twice_rejected(self):
        po = self._order(status='draft')
        services.cancel_purchase_order(po, 'Duplicate')
        with self.assertRaises(InvalidStatusTransition):
            services.cancel_purchase_order(po, 'Again')

    def test_cancel_after_partial_receipt_rejected(self):
        po = self._order(status='ordered')
        self._receive(po, 4)
        with self.assertRaises(BusinessRuleViolation):
            services.cancel_purchase_order(po, 'Changed mind')
        po.refresh_from_db()
        self.assertEqual(po.status, 'ordered')

    def test_cancel_received_rejected(self):
        po = self._order(status='ordered')
        self._receive(po, 10)
        with self.assertRaises(InvalidStatusTransition):
            services.cancel_purchase_order(po, 'Changed mind')


class ReceivingVoucherTests(PurchasingTestMixin, TestCase):
    """Test receiving goods against purchase orders"""

    def test_partial_receipt(self):
        po = self._order(status='ordered')
        rv, created = self._receive(po, 4, reason='Short shipped')
        self.assertTrue(created)
        self.assertTrue(rv.rv_number.startswith('RV-'))
        self.assertEqual(rv.status, 'complete')
        self.assertEqual(rv.total_ordered_amount, Decimal('2400.00'))
        self.assertEqual(rv.total_received_amount, Decimal('960.00'))
        self.assertEqual(rv.variance_amount, Decimal('-1440.00'))

        line = rv.items.get()
        self.assertEqual(line.ordered_quantity, Decimal('10.0000'))
        self.assertEqual(line.received_quantity, Decimal('4.0000'))
        self.assertEqual(line.variance_quantity, Decimal('-6.0000'))
        self.assertEqual(line.variance_percentage, Decimal('-60.00'))
        self.assertEqual(line.variance_reason, 'Short shipped')

        po.refresh_from_db()
        self.assertEqual(po.status, 'ordered')
        self.assertEqual(po.receiving_status, 'partially_received')
        self.assertEqual(po.items.get().received_quantity, Decimal('4.0000'))
        self.assertFalse(AccountsPayable.objects.filter(purchase_order=po).exists())

    def test_receipt_creates_batch_in_base_units(self):
        po = self._order(status='ordered')
        rv, _ = self._receive(po, 4)
        batch = rv.items.get().batch
        self.assertEqual(batch.quantity, Decimal('96.0000'))
        self.assertEqual(batch.unit_cost, Decimal('10.0000'))
        self.assertEqual(batch.warehouse, self.warehouse)

        movement = StockMovement.objects.get(batch=batch)
        self.assertEqual(movement.reference_type, 'RV')
        self.assertEqual(movement.reference_id, str(rv.id))
        self.assertEqual(movement.reason, f"Received from RV {rv.rv_number} (PO {po.po_number})")

    def test_receipt_updates_moving_average_cost(self):
        TestDataFactory.add_batch(self.product, self.warehouse, 24, '1.00')
        po = self._order(quantity='1', unit_price='48.00')
        self._receive(po, 1)
        self.product.refresh_from_db()
        self.assertEqual(self.product.average_cost_price, Decimal('1.5000'))

    def test_second_receipt_completes_order_and_opens_payable(self):
        po = self._order(status='ordered')
        self._receive(po, 4)
        rv, _ = self._receive(po, 6)
        self.assertEqual(rv.items.get().ordered_quantity, Decimal('6.0000'))
        self.assertEqual(rv.items.get().variance_quantity, Decimal('0.0000'))

        po.refresh_from_db()
        self.assertEqual(po.status, 'received')
        self.assertEqual(po.receiving_status, 'fully_received')
        self.assertEqual(po.actual_delivery_date, self.today)

        payable = AccountsPayable.objects.get(purchase_order=po)
        self.assertEqual(payable.total_amount, Decimal('2400.00'))
        self.assertEqual(payable.balance, Decimal('2400.00'))
        self.assertEqual(payable.supplier, self.supplier)
        self.assertEqual(payable.branch, self.branch)
        self.assertEqual(payable.due_date, self.today + timedelta(days=30))

    def test_over_receipt(self):
        po = self._order(status='ordered')
        rv, _ = self._receive(po, 12, reason='Bonus stock')
        line = rv.items.get()
        self.assertEqual(line.variance_quantity, Decimal('2.0000'))
        self.assertEqual(line.variance_percentage, Decimal('20.00'))
        self.assertEqual(rv.variance_amount, Decimal('480.00'))

        po.refresh_from_db()
        self.assertEqual(po.status, 'received')
        self.assertEqual(AccountsPayable.objects.get(purchase_order=po).total_amount, Decimal('2880.00'))

    def test_payable_uses_supplier_terms(self):
        self.supplier.payment_terms = 'Net 15'
        self.supplier.save()
        po = self._order(status='ordered')
        self._receive(po, 10)
        payable = AccountsPayable.objects.get(purchase_order=po)
        self.assertEqual(payable.due_date, self.today + timedelta(days=15))

    def test_idempotent_receipt(self):
        po = self._order(status='ordered')
        first, created = self._receive(po, 4, key='dock-42')
        self.assertTrue(created)
        again, created = self._receive(po, 4, key='dock-42')
        self.assertFalse(created)
        self.assertEqual(again.pk, first.pk)
        self.assertEqual(ReceivingVoucher.objects.count(), 1)
        self.assertEqual(InventoryBatch.objects.count(), 1)
        self.assertEqual(po.items.get().received_quantity, Decimal('4.0000'))

    def test_idempotency_key_of_other_order_rejected(self):
        po = self._order(status='ordered')
        self._receive(po, 4, key='dock-42')
        other = self._order(status='ordered')
        with self.assertRaises(BusinessRuleViolation):
            self._receive(other, 4, key='dock-42')

    def test_receive_requires_ordered_status(self):
        po = self._order(status='draft')
        with self.assertRaises(InvalidStatusTransition) as ctx:
            self._receive(po, 1)
        self.assertIn('must be ordered', str(ctx.exception.detail))

    def test_receive_cancelled_rejected(self):
        po = self._order(status='ordered')
        services.cancel_purchase_order(po, 'No longer needed')
        with self.assertRaises(InvalidStatusTransition) as ctx:
            self._receive(po, 1)
        self.assertEqual(str(ctx.exception.detail), 'Cannot receive cancelled purchase order')

    def test_receive_received_rejected(self):
        po = self._order(status='ordered')
        self._receive(po, 10)
        with self.assertRaises(InvalidStatusTransition) as ctx:
            self._receive(po, 1)
        self.assertEqual(str(ctx.exception.detail), 'Purchase order already received')

    def test_nothing_received_rejected(self):
        po = self._order(status='ordered')
        with self.assertRaises(BusinessRuleViolation):
            self._receive(po, 0)
        self.assertEqual(ReceivingVoucher.objects.count(), 0)

    def test_item_of_other_order_rejected(self):
        po = self._order(status='ordered')
        other = self._order(status='ordered')
        with self.assertRaises(BusinessRuleViolation):
            services.create_receiving_voucher(po, {
                'items': [{'purchase_order_item': other.items.get().id, 'received_quantity': Decimal('1')}],
            })

    def test_receive_purchase_order_receives_outstanding(self):
        po = self._order(status='ordered')
        self._receive(po, 3)
        rv, created = services.receive_purchase_order(po, user=self.user, receiver_name='Dock Clerk')
        self.assertTrue(created)
        self.assertEqual(rv.items.get().received_quantity, Decimal('7.0000'))

        po.refresh_from_db()
        self.assertEqual(po.status, 'received')
        self.assertEqual(AccountsPayable.objects.filter(purchase_order=po).count(), 1)
        self.assertEqual(AccountsPayable.objects.get(purchase_order=po).total_amount, Decimal('2400.00'))

    def test_receive_purchase_order_reads_outstanding_under_lock(self):
        po = self._order(status='ordered')
        original = services.create_receiving_voucher

        def receipt_lands_first(purchase_order, data, user=None):
            original(purchase_order, {
                'items': [{'purchase_order_item': purchase_order.items.get().id, 'received_quantity': Decimal('4')}],
            }, user=self.user)
            return original(purchase_order, data, user=user)

        with patch.object(services, 'create_receiving_voucher', side_effect=receipt_lands_first):
            rv, created = services.receive_purchase_order(po, user=self.user)

        self.assertTrue(created)
        self.assertEqual(rv.items.get().received_quantity, Decimal('6.0000'))
        item = po.items.get()
        self.assertEqual(item.received_quantity, Decimal('10'))
        self.assertEqual(AccountsPayable.objects.get(purchase_order=po).total_amount, Decimal('2400.00'))


class VarianceReportTests(PurchasingTestMixin, TestCase):
    """Test the receiving variance report"""

    def test_report_per_supplier(self):
        self._receive(self._order(quantity='10'), 12)
        self._receive(self._order(quantity='5'), 5)
        self._receive(self._order(quantity='5'), 3)

        report = services.generate_variance_report()
        self.assertEqual(report['receiving_voucher_count'], 3)
        self.assertEqual(report['variance_line_percentage'], Decimal('66.67'))

        entry = report['suppliers'][0]
        self.assertEqual(entry['supplier_name'], self.supplier.company_name)
        self.assertEqual(entry['over_lines'], 1)
        self.assertEqual(entry['under_lines'], 1)
        self.assertEqual(entry['exact_lines'], 1)

        product = entry['products'][0]
        self.assertEqual(product['variance_count'], 2)
        self.assertEqual(product['ordered_quantity'], Decimal('20'))
        self.assertEqual(product['received_quantity'], Decimal('20'))
        self.assertEqual(product['variance_quantity'], Decimal('0'))

    def test_report_filters_by_branch(self):
        self._receive(self._order(), 10)
        report = services.generate_variance_report(branch=TestDataFactory.create_branch())
        self.assertEqual(report['suppliers'], [])
        self.assertEqual(report['variance_line_percentage'], Decimal('0.00'))


class PurchaseOrderAPITests(PurchasingTestMixin, TestCase):
    """Test purchase order and receiving API endpoints"""

    def setUp(self):
        super().setUp()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_purchase_order(self):
        data = {
            'supplier': self.supplier.id,
            'warehouse': self.warehouse.id,
            'expected_delivery_date': (self.today + timedelta(days=7)).isoformat(),
            'items': [{'product': self.product.id, 'quantity': '10', 'uom': 'case', 'unit_price': '240.00'}],
        }
        response = self.client.post('/api/v1/purchase-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_amount'], '2400.00')
        self.assertEqual(response.data['status'], 'draft')
        self.assertEqual(response.data['branch'], self.branch.id)
        self.assertEqual(len(response.data['items']), 1)
        self.assertIsNone(response.data['payable'])

    def test_create_without_items(self):
        data = {'supplier': self.supplier.id, 'warehouse': self.warehouse.id, 'items': []}
        response = self.client.post('/api/v1/purchase-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('items', response.data)

    def test_create_with_invalid_uom(self):
        data = {
            'supplier': self.supplier.id,
            'warehouse': self.warehouse.id,
            'items': [{'product': self.product.id, 'quantity': '1', 'uom': 'pallet', 'unit_price': '1'}],
        }
        response = self.client.post('/api/v1/purchase-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['fields'], {'uom': 'Invalid UOM for this product'})

    def test_list_filters_by_status(self):
        self._order(status='draft')
        self._order(status='ordered')
        response = self.client.get('/api/v1/purchase-orders/', {'status': 'ordered'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['status'], 'ordered')

    def test_patch_status(self):
        po = self._order(status='draft')
        response = self.client.patch(f'/api/v1/purchase-orders/{po.id}/', {'status': 'pending'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'pending')

    def test_invalid_transition_returns_error(self):
        po = self._order(status='ordered')
        response = self.client.patch(f'/api/v1/purchase-orders/{po.id}/', {'status': 'draft'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_status_transition')
        self.assertEqual(response.data['error'], 'Cannot change status from ordered to draft')

    def test_delete_non_draft_rejected(self):
        po = self._order(status='ordered')
        response = self.client.delete(f'/api/v1/purchase-orders/{po.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(PurchaseOrder.objects.filter(pk=po.id).exists())

    def test_cancel_endpoint(self):
        po = self._order(status='pending')
        response = self.client.post(f'/api/v1/purchase-orders/{po.id}/cancel/', {'reason': 'Budget cut'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cancelled')
        self.assertEqual(response.data['notes'], 'CANCELLED: Budget cut')

    def test_receive_endpoint_is_idempotent(self):
        po = self._order(status='ordered')
        url = f'/api/v1/purchase-orders/{po.id}/receive/'
        response = self.client.post(url, {'receiver_name': 'Dock Clerk'}, format='json', HTTP_IDEMPOTENCY_KEY='rcv-1')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['purchase_order']['status'], 'received')
        self.assertEqual(response.data['purchase_order']['payable']['balance'], '2400.00')
        rv_id = response.data['receiving_voucher']['id']

        response = self.client.post(url, {'receiver_name': 'Dock Clerk'}, format='json', HTTP_IDEMPOTENCY_KEY='rcv-1')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['receiving_voucher']['id'], rv_id)
        self.assertEqual(AccountsPayable.objects.count(), 1)

    def test_receive_cancelled_returns_error(self):
        po = self._order(status='ordered')
        services.cancel_purchase_order(po, 'No longer needed')
        response = self.client.post(f'/api/v1/purchase-orders/{po.id}/receive/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cannot receive cancelled purchase order')

    def test_create_receiving_voucher_endpoint(self):
        po = self._order(status='ordered')
        item = po.items.get()
        data = {
            'receiver_name': 'Dock Clerk',
            'idempotency_key': 'rv-abc',
            'items': [{'purchase_order_item': item.id, 'received_quantity': '4', 'variance_reason': 'Short'}],
        }
        url = f'/api/v1/purchase-orders/{po.id}/receiving-vouchers/'
        response = self.client.post(url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_received_amount'], '960.00')
        self.assertEqual(response.data['items'][0]['variance_percentage'], '-60.00')
        self.assertIsNotNone(response.data['items'][0]['batch_number'])

        response = self.client.post(url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get(url)
        self.assertEqual(len(response.data), 1)

    def test_receiving_voucher_list_filters(self):
        po = self._order(status='ordered')
        self._receive(po, 4)
        self._receive(self._order(status='ordered'), 2)

        response = self.client.get('/api/v1/receiving-vouchers/', {'po_number': po.po_number})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['po_number'], po.po_number)

        response = self.client.get('/api/v1/receiving-vouchers/', {'supplier': self.supplier.id, 'branch': self.branch.id})
        self.assertEqual(response.data['count'], 2)

    def test_variance_report_endpoint(self):
        self._receive(self._order(quantity='10'), 12)
        response = self.client.get('/api/v1/reports/receiving-variance/', {'branch': self.branch.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['suppliers'][0]['over_lines'], 1)
        self.assertEqual(response.data['suppliers'][0]['variance_line_percentage'], '100.00')

    def test_variance_report_bad_date(self):
        response = self.client.get('/api/v1/reports/receiving-variance/', {'start_date': '2025-13-45'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('start_date', response.data)
