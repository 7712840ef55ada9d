"""
Tests for batch inventory: costing, FEFO consumption, transfers, adjustments and expiry
"""
from datetime import timedelta
from decimal import Decimal
from io import StringIO
from django.core.cache import cache
from django.core.management import call_command
from django.db.models import Sum
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backend.core.exceptions import BusinessRuleViolation, InsufficientStock
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.inventory.models import InventoryBatch, StockMovement
from backend.inventory import services


class InventoryTestMixin:

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.branch = TestDataFactory.create_branch()
        self.warehouse = TestDataFactory.create_warehouse(branch=self.branch)
        self.product = TestDataFactory.create_product(base_uom='bottle', uoms={'case': 24})
        self.today = timezone.localdate()

    def assertLedgerBalanced(self, batch):
        batch.refresh_from_db()
        ledger = batch.movements.aggregate(total=Sum('quantity'))['total'] or Decimal('0')
        self.assertEqual(batch.quantity, ledger)


class AddStockTests(InventoryTestMixin, TestCase):
    """Test receiving stock into batches"""

    def test_add_stock_converts_to_base_units(self):
        batch = services.add_stock(self.product, self.warehouse, Decimal('2'), 'case', Decimal('48.00'), user=self.user)
        self.assertEqual(batch.quantity, Decimal('48.0000'))
        self.assertEqual(batch.unit_cost, Decimal('2.0000'))
        self.assertEqual(batch.status, 'active')
        self.assertTrue(batch.batch_number.startswith('BATCH-'))

        movement = batch.movements.get()
        self.assertEqual(movement.movement_type, 'IN')
        self.assertEqual(movement.quantity, Decimal('48.0000'))
        self.assertLedgerBalanced(batch)

    def test_default_expiry_uses_shelf_life(self):
        batch = services.add_stock(self.product, self.warehouse, 10, 'bottle', '1.00')
        self.assertEqual(batch.received_date, self.today)
        self.assertEqual(batch.expiry_date, self.today + timedelta(days=365))

    def test_moving_average_cost_uses_stock_before_receipt(self):
        services.add_stock(self.product, self.warehouse, 10, 'bottle', Decimal('1.00'))
        self.product.refresh_from_db()
        self.assertEqual(self.product.average_cost_price, Decimal('1.0000'))

        services.add_stock(self.product, self.warehouse, 30, 'bottle', Decimal('2.00'))
        self.product.refresh_from_db()
        self.assertEqual(self.product.average_cost_price, Decimal('1.7500'))

    def test_rejects_non_positive_quantity_and_cost(self):
        with self.assertRaises(BusinessRuleViolation):
            services.add_stock(self.product, self.warehouse, 0, 'bottle', '1.00')
        with self.assertRaises(BusinessRuleViolation):
            services.add_stock(self.product, self.warehouse, 5, 'bottle', '0')
        self.assertEqual(InventoryBatch.objects.count(), 0)

    def test_rejects_quantity_below_base_precision(self):
        product = TestDataFactory.create_product(base_uom='kg', uoms={'gram': '0.001'})
        with self.assertRaises(BusinessRuleViolation) as ctx:
            services.add_stock(product, self.warehouse, Decimal('0.0001'), 'gram', Decimal('1.00'))
        self.assertIn('quantity', ctx.exception.fields)
        self.assertEqual(InventoryBatch.objects.count(), 0)
        self.assertEqual(StockMovement.objects.count(), 0)

    def test_rejects_unknown_uom(self):
        with self.assertRaises(BusinessRuleViolation):
            services.add_stock(self.product, self.warehouse, 5, 'pallet', '1.00')

    def test_rejects_inactive_warehouse(self):
        warehouse = TestDataFactory.create_warehouse(branch=self.branch, is_active=False)
        with self.assertRaises(BusinessRuleViolation):
            services.add_stock(self.product, warehouse, 5, 'bottle', '1.00')


class CostingTests(InventoryTestMixin, TestCase):
    """Test weighted-average cost and stock level queries"""

    def setUp(self):
        super().setUp()
        TestDataFactory.add_batch(self.product, self.warehouse, 10, '1.00')
        TestDataFactory.add_batch(self.product, self.warehouse, 30, '2.00')

    def test_weighted_average_cost(self):
        self.assertEqual(services.calculate_weighted_average_cost(self.product, self.warehouse), Decimal('1.7500'))

    def test_average_cost_by_uom(self):
        self.assertEqual(services.get_average_cost_by_uom(self.product, self.warehouse, 'case'), Decimal('42.0000'))

    def test_average_cost_without_stock_is_zero(self):
        other = TestDataFactory.create_warehouse(branch=self.branch)
        self.assertEqual(services.calculate_weighted_average_cost(self.product, other), Decimal('0.0000'))

    def test_expired_batches_excluded_from_cost_and_stock(self):
        InventoryBatch.objects.filter(unit_cost=Decimal('2.0000')).update(status='expired')
        self.assertEqual(services.calculate_weighted_average_cost(self.product, self.warehouse), Decimal('1.0000'))
        self.assertEqual(services.get_current_stock_level(self.product, self.warehouse), Decimal('10.0000'))

    def test_has_sufficient_stock_in_uom(self):
        self.assertTrue(services.has_sufficient_stock(self.product, self.warehouse, 1, 'case'))
        self.assertFalse(services.has_sufficient_stock(self.product, self.warehouse, 2, 'case'))

    def test_stock_levels_refresh_after_write(self):
        levels = services.get_stock_levels(warehouse=self.warehouse)
        self.assertEqual(len(levels), 1)
        self.assertEqual(levels[0]['quantity'], Decimal('40.0000'))
        self.assertEqual(levels[0]['average_cost'], Decimal('1.7500'))
        self.assertEqual(levels[0]['total_value'], Decimal('70.0000'))

        TestDataFactory.add_batch(self.product, self.warehouse, 10, '3.00')
        levels = services.get_stock_levels(warehouse=self.warehouse)
        self.assertEqual(levels[0]['quantity'], Decimal('50.0000'))
        self.assertEqual(levels[0]['batch_count'], 3)


class DeductStockTests(InventoryTestMixin, TestCase):
    """Test FEFO consumption"""

    def test_deducts_earliest_expiry_first(self):
        later = TestDataFactory.add_batch(self.product, self.warehouse, 10, '1.00', expiry_date=self.today + timedelta(days=10))
        sooner = TestDataFactory.add_batch(self.product, self.warehouse, 10, '2.00', expiry_date=self.today + timedelta(days=5))

        movements = services.deduct_stock(self.product, self.warehouse, 15, 'bottle', 'Sale', reference_type='POS', reference_id=7)
        self.assertEqual([m.batch_id for m in movements], [sooner.id, later.id])
        self.assertEqual([m.quantity for m in movements], [Decimal('-10.0000'), Decimal('-5.0000')])

        sooner.refresh_from_db()
        later.refresh_from_db()
        self.assertEqual(sooner.quantity, Decimal('0'))
        self.assertEqual(sooner.status, 'depleted')
        self.assertEqual(later.quantity, Decimal('5.0000'))
        self.assertEqual(movements[0].reference_id, '7')
        self.assertLedgerBalanced(sooner)
        self.assertLedgerBalanced(later)

    def test_batches_without_expiry_are_consumed_last(self):
        undated = InventoryBatch.objects.create(
            batch_number='BATCH-UNDATED', product=self.product, warehouse=self.warehouse,
            quantity=Decimal('5'), unit_cost=Decimal('1'), received_date=self.today - timedelta(days=30)
        )
        dated = TestDataFactory.add_batch(self.product, self.warehouse, 5, '1.00', expiry_date=self.today + timedelta(days=400))
        ordered = list(services.fefo(services.active_batches(self.product, self.warehouse)))
        self.assertEqual(ordered, [dated, undated])

    def test_deduct_in_alternate_uom(self):
        TestDataFactory.add_batch(self.product, self.warehouse, 2, '24.00', uom='case')
        services.deduct_stock(self.product, self.warehouse, Decimal('0.5'), 'case', 'Sale')
        self.assertEqual(services.get_current_stock_level(self.product, self.warehouse), Decimal('36.0000'))

    def test_rejects_quantity_below_base_precision(self):
        product = TestDataFactory.create_product(base_uom='kg', uoms={'gram': '0.001'})
        batch = TestDataFactory.add_batch(product, self.warehouse, 5, '10.00')
        with self.assertRaises(BusinessRuleViolation):
            services.deduct_stock(product, self.warehouse, Decimal('0.0001'), 'gram', 'Sale')
        batch.refresh_from_db()
        self.assertEqual(batch.quantity, Decimal('5.0000'))
        self.assertEqual(StockMovement.objects.filter(movement_type='OUT').count(), 0)

    def test_insufficient_stock_changes_nothing(self):
        batch = TestDataFactory.add_batch(self.product, self.warehouse, 10, '1.00')
        with self.assertRaises(InsufficientStock) as ctx:
            services.deduct_stock(self.product, self.warehouse, 11, 'bottle', 'Sale')
        self.assertEqual(
            str(ctx.exception.detail),
            f"Insufficient stock for {self.product.name}. Available: 10.0000, Requested: 11.0000"
        )
        batch.refresh_from_db()
        self.assertEqual(batch.quantity, Decimal('10.0000'))
        self.assertEqual(StockMovement.objects.filter(movement_type='OUT').count(), 0)


class TransferStockTests(InventoryTestMixin, TestCase):
    """Test transfers between warehouses"""

    def setUp(self):
        super().setUp()
        self.destination = TestDataFactory.create_warehouse(branch=self.branch)

    def test_transfer_keeps_cost_and_expiry(self):
        first_expiry = self.today + timedelta(days=20)
        second_expiry = self.today + timedelta(days=40)
        TestDataFactory.add_batch(self.product, self.warehouse, 6, '1.00', expiry_date=first_expiry)
        TestDataFactory.add_batch(self.product, self.warehouse, 30, '2.00', expiry_date=second_expiry)

        result = services.transfer_stock(self.product, self.warehouse, self.destination, 1, 'case', user=self.user)
        self.assertTrue(result['reference'].startswith('TRF-'))
        self.assertEqual(result['quantity'], Decimal('24.0000'))

        destination_batches = result['destination_batches']
        self.assertEqual([b.quantity for b in destination_batches], [Decimal('6.0000'), Decimal('18.0000')])
        self.assertEqual([b.unit_cost for b in destination_batches], [Decimal('1.0000'), Decimal('2.0000')])
        self.assertEqual([b.expiry_date for b in destination_batches], [first_expiry, second_expiry])

        self.assertEqual(services.get_current_stock_level(self.product, self.warehouse), Decimal('12.0000'))
        self.assertEqual(services.get_current_stock_level(self.product, self.destination), Decimal('24.0000'))
        movements = StockMovement.objects.filter(reference_type='TRANSFER', reference_id=result['reference'])
        self.assertEqual(movements.aggregate(total=Sum('quantity'))['total'], Decimal('0'))
        for batch in destination_batches:
            self.assertLedgerBalanced(batch)

    def test_transfer_to_same_warehouse_rejected(self):
        TestDataFactory.add_batch(self.product, self.warehouse, 10, '1.00')
        with self.assertRaises(BusinessRuleViolation):
            services.transfer_stock(self.product, self.warehouse, self.warehouse, 5, 'bottle')

    def test_rejects_quantity_below_base_precision(self):
        product = TestDataFactory.create_product(base_uom='kg', uoms={'gram': '0.001'})
        TestDataFactory.add_batch(product, self.warehouse, 5, '10.00')
        with self.assertRaises(BusinessRuleViolation):
            services.transfer_stock(product, self.warehouse, self.destination, Decimal('0.0001'), 'gram')
        self.assertFalse(InventoryBatch.objects.filter(warehouse=self.destination).exists())

    def test_transfer_more_than_available_rejected(self):
        TestDataFactory.add_batch(self.product, self.warehouse, 10, '1.00')
        with self.assertRaises(InsufficientStock):
            services.transfer_stock(self.product, self.warehouse, self.destination, 11, 'bottle')
        self.assertFalse(InventoryBatch.objects.filter(warehouse=self.destination).exists())


class AdjustStockTests(InventoryTestMixin, TestCase):
    """Test stock count adjustments"""

    def setUp(self):
        super().setUp()
        self.batch = TestDataFactory.add_batch(self.product, self.warehouse, 10, '1.00')

    def test_adjust_records_signed_delta(self):
        movement = services.adjust_stock(self.batch, Decimal('7'), 'Breakage', user=self.user)
        self.assertEqual(movement.quantity, Decimal('-3.0000'))
        self.assertEqual(movement.movement_type, 'ADJUSTMENT')
        self.assertEqual(self.batch.quantity, Decimal('7.0000'))
        self.assertLedgerBalanced(self.batch)
        self.assertTrue(AuditLog.objects.filter(action='stock_adjust', object_id=str(self.batch.id)).exists())

    def test_adjust_to_zero_depletes_and_back_reactivates(self):
        services.adjust_stock(self.batch, 0, 'Count')
        self.assertEqual(self.batch.status, 'depleted')
        services.adjust_stock(self.batch, 4, 'Found stock')
        self.assertEqual(self.batch.status, 'active')
        self.assertLedgerBalanced(self.batch)

    def test_unchanged_quantity_rejected(self):
        with self.assertRaises(BusinessRuleViolation):
            services.adjust_stock(self.batch, Decimal('10'), 'Count')

    def test_reason_required(self):
        with self.assertRaises(BusinessRuleViolation):
            services.adjust_stock(self.batch, Decimal('5'), '  ')

    def test_negative_quantity_rejected(self):
        with self.assertRaises(BusinessRuleViolation):
            services.adjust_stock(self.batch, Decimal('-1'), 'Count')


class ExpiryTests(InventoryTestMixin, TestCase):
    """Test expiring and expired batches"""

    def test_expiring_batches_window(self):
        soon = TestDataFactory.add_batch(self.product, self.warehouse, 5, '1.00', expiry_date=self.today + timedelta(days=5))
        TestDataFactory.add_batch(self.product, self.warehouse, 5, '1.00', expiry_date=self.today + timedelta(days=60))
        self.assertEqual(list(services.get_expiring_batches(days=7)), [soon])

    def test_mark_expired_batches(self):
        past = TestDataFactory.add_batch(
            self.product, self.warehouse, 5, '1.00',
            received_date=self.today - timedelta(days=10), expiry_date=self.today - timedelta(days=1)
        )
        TestDataFactory.add_batch(self.product, self.warehouse, 5, '1.00')

        self.assertEqual(services.mark_expired_batches(), 1)
        past.refresh_from_db()
        self.assertEqual(past.status, 'expired')
        self.assertEqual(list(services.get_expired_batches()), [past])
        self.assertEqual(services.get_current_stock_level(self.product, self.warehouse), Decimal('5.0000'))
        self.assertEqual(services.mark_expired_batches(), 0)

    def test_mark_expired_batches_command(self):
        TestDataFactory.add_batch(
            self.product, self.warehouse, 5, '1.00',
            received_date=self.today - timedelta(days=10), expiry_date=self.today - timedelta(days=1)
        )
        out = StringIO()
        call_command('mark_expired_batches', stdout=out)
        self.assertEqual(InventoryBatch.objects.filter(status='expired').count(), 1)


class StockLedgerCommandTests(InventoryTestMixin, TestCase):
    """Test the ledger consistency command"""

    def test_clean_ledger(self):
        TestDataFactory.add_batch(self.product, self.warehouse, 10, '1.00')
        services.deduct_stock(self.product, self.warehouse, 4, 'bottle', 'Sale')
        out = StringIO()
        call_command('check_stock_ledger', '--fail', stdout=out)
        self.assertIn('All batch quantities match', out.getvalue())

    def test_reports_discrepancy(self):
        batch = TestDataFactory.add_batch(self.product, self.warehouse, 10, '1.00')
        InventoryBatch.objects.filter(pk=batch.pk).update(quantity=Decimal('9'))
        out = StringIO()
        call_command('check_stock_ledger', stdout=out)
        self.assertIn('Discrepancies found: 1', out.getvalue())


class InventoryAPITests(InventoryTestMixin, TestCase):
    """Test inventory API endpoints"""

    def setUp(self):
        super().setUp()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_add_stock(self):
        data = {
            'product': self.product.id,
            'warehouse': self.warehouse.id,
            'quantity': '2',
            'uom': 'case',
            'unit_cost': '48.00',
        }
        response = self.client.post('/api/v1/inventory/add-stock/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['quantity'], '48.0000')
        self.assertEqual(response.data['unit_cost'], '2.0000')

    def test_add_stock_invalid_uom(self):
        data = {'product': self.product.id, 'warehouse': self.warehouse.id, 'quantity': '2', 'uom': 'pallet', 'unit_cost': '1'}
        response = self.client.post('/api/v1/inventory/add-stock/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('uom', response.data)

    def test_deduct_stock_insufficient(self):
        TestDataFactory.add_batch(self.product, self.warehouse, 5, '1.00')
        data = {'product': self.product.id, 'warehouse': self.warehouse.id, 'quantity': '6', 'reason': 'Sale'}
        response = self.client.post('/api/v1/inventory/deduct-stock/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'insufficient_stock')
        self.assertIn('Available: 5.0000, Requested: 6.0000', response.data['error'])

    def test_deduct_stock(self):
        TestDataFactory.add_batch(self.product, self.warehouse, 20, '1.00')
        data = {'product': self.product.id, 'warehouse': self.warehouse.id, 'quantity': '15', 'reason': 'Sale'}
        response = self.client.post('/api/v1/inventory/deduct-stock/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['quantity'], '15.0000')
        self.assertEqual(response.data['remaining'], '5.0000')

    def test_transfer_stock(self):
        destination = TestDataFactory.create_warehouse(branch=self.branch)
        TestDataFactory.add_batch(self.product, self.warehouse, 20, '1.00')
        data = {
            'product': self.product.id,
            'source_warehouse': self.warehouse.id,
            'destination_warehouse': destination.id,
            'quantity': '8',
        }
        response = self.client.post('/api/v1/inventory/transfer/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['destination_batches']), 1)
        self.assertEqual(response.data['destination_batches'][0]['warehouse'], destination.id)

    def test_adjust_stock(self):
        batch = TestDataFactory.add_batch(self.product, self.warehouse, 10, '1.00')
        data = {'batch': batch.id, 'new_quantity': '12', 'reason': 'Recount'}
        response = self.client.post('/api/v1/inventory/adjust/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['movement']['quantity'], '2.0000')
        self.assertEqual(response.data['batch']['quantity'], '12.0000')

    def test_stock_levels_and_low_stock_filter(self):
        TestDataFactory.add_batch(self.product, self.warehouse, 5, '1.00')
        other = TestDataFactory.create_product(low_stock_threshold=1)
        TestDataFactory.add_batch(other, self.warehouse, 50, '1.00')

        response = self.client.get('/api/v1/inventory/stock-levels/', {'warehouse': self.warehouse.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

        response = self.client.get('/api/v1/inventory/stock-levels/', {'warehouse': self.warehouse.id, 'low_stock': 'true'})
        self.assertEqual([row['product_id'] for row in response.data], [self.product.id])

    def test_stock_level_requires_params(self):
        response = self.client.get('/api/v1/inventory/stock-level/', {'product': self.product.id})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('warehouse', response.data)

    def test_average_cost_by_uom(self):
        TestDataFactory.add_batch(self.product, self.warehouse, 10, '1.00')
        TestDataFactory.add_batch(self.product, self.warehouse, 30, '2.00')
        response = self.client.get('/api/v1/inventory/average-cost/', {
            'product': self.product.id, 'warehouse': self.warehouse.id, 'uom': 'case'
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['average_cost'], '1.7500')
        self.assertEqual(response.data['average_cost_per_uom'], '42.0000')

    def test_batch_and_movement_lists(self):
        batch = TestDataFactory.add_batch(self.product, self.warehouse, 10, '1.00')
        services.deduct_stock(self.product, self.warehouse, 3, 'bottle', 'Sale', reference_type='POS', reference_id='INV-1')

        response = self.client.get('/api/v1/inventory/batches/', {'product': self.product.id})
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/v1/inventory/movements/', {'reference_type': 'POS', 'reference_id': 'INV-1'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['quantity'], '-3.0000')

        response = self.client.get(f'/api/v1/inventory/batches/{batch.id}/')
        self.assertEqual(len(response.data['movements']), 2)

    def test_mark_expired_requires_admin(self):
        response = self.client.post('/api/v1/inventory/batches/mark-expired/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
