"""
Tests for products and units of measure
"""
from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from backend.core.exceptions import BusinessRuleViolation
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.catalog.models import Product


class ProductUOMTests(TestCase):
    """Test unit of measure conversion on Product"""

    def setUp(self):
        self.product = TestDataFactory.create_product(base_uom='bottle', uoms={'case': 24, 'pack': 6})

    def test_base_uom_factor_is_one(self):
        self.assertEqual(self.product.get_conversion_factor('bottle'), Decimal('1'))

    def test_alternate_uom_factor(self):
        self.assertEqual(self.product.get_conversion_factor('case'), Decimal('24'))

    def test_uom_matching_ignores_case_and_whitespace(self):
        self.assertEqual(self.product.get_conversion_factor('  Pack '), Decimal('6'))

    def test_convert_to_base(self):
        self.assertEqual(self.product.convert_to_base(Decimal('2.5'), 'case'), Decimal('60'))

    def test_unknown_uom_raises(self):
        with self.assertRaises(BusinessRuleViolation) as ctx:
            self.product.get_conversion_factor('pallet')
        self.assertEqual(ctx.exception.fields, {'uom': 'Invalid UOM for this product'})


class ProductAPITests(TestCase):
    """Test Product API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_product_with_uoms(self):
        data = {
            'name': 'Sparkling Water 500ml',
            'sku': 'SW-500',
            'category': 'Beverages',
            'base_uom': 'bottle',
            'shelf_life_days': 180,
            'alternate_uoms': [{'name': 'case', 'conversion_factor': '24'}],
        }
        response = self.client.post('/api/v1/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['available_uoms'], ['bottle', 'case'])
        self.assertEqual(response.data['average_cost_price'], '0.0000')
        self.assertTrue(AuditLog.objects.filter(model_name='Product', action='create').exists())

    def test_blank_sku_is_stored_as_null(self):
        for name in ('Item A', 'Item B'):
            response = self.client.post('/api/v1/products/', {'name': name, 'sku': ''}, format='json')
            self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Product.objects.filter(sku__isnull=True).count(), 2)

    def test_alternate_uom_clashing_with_base_rejected(self):
        data = {
            'name': 'Juice',
            'base_uom': 'bottle',
            'alternate_uoms': [{'name': 'Bottle', 'conversion_factor': '1'}],
        }
        response = self.client.post('/api/v1/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('alternate_uoms', response.data)

    def test_duplicate_alternate_uoms_rejected(self):
        data = {
            'name': 'Juice',
            'base_uom': 'bottle',
            'alternate_uoms': [
                {'name': 'case', 'conversion_factor': '24'},
                {'name': 'CASE', 'conversion_factor': '12'},
            ],
        }
        response = self.client.post('/api/v1/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_positive_conversion_factor_rejected(self):
        data = {'name': 'Juice', 'alternate_uoms': [{'name': 'case', 'conversion_factor': '0'}]}
        response = self.client.post('/api/v1/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters(self):
        TestDataFactory.create_product(name='Cola Classic', uoms={'case': 24})
        TestDataFactory.create_product(name='Lemon Soda', uoms={'pack': 6}, is_active=False)

        response = self.client.get('/api/v1/products/', {'search': 'cola'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/v1/products/', {'uom': 'pack'})
        self.assertEqual([p['name'] for p in response.data['results']], ['Lemon Soda'])

        response = self.client.get('/api/v1/products/', {'active': 'true'})
        self.assertEqual([p['name'] for p in response.data['results']], ['Cola Classic'])

    def test_update_replaces_uoms_and_logs_changes(self):
        product = TestDataFactory.create_product(uoms={'case': 24})
        response = self.client.patch(
            f'/api/v1/products/{product.id}/',
            {'shelf_life_days': 90, 'alternate_uoms': [{'name': 'crate', 'conversion_factor': '12'}]},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['available_uoms'], [product.base_uom, 'crate'])
        log = AuditLog.objects.get(model_name='Product', action='update')
        self.assertEqual(log.changes['shelf_life_days'], {'old': 365, 'new': 90})

    def test_delete_product_with_stock_is_blocked(self):
        product = TestDataFactory.create_product()
        TestDataFactory.add_batch(product, TestDataFactory.create_warehouse(), 5, '2.00')
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Product.objects.filter(pk=product.id).exists())
