"""
Tests for branch and warehouse endpoints
"""
from django.test import TestCase
from rest_framework import status
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.locations.models import Branch, Warehouse


class BranchAPITests(TestCase):
    """Test Branch API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_user(is_staff=True)
        self.client = AuthenticatedAPIClient()

    def test_list_branches(self):
        TestDataFactory.create_branch(name='Downtown')
        TestDataFactory.create_branch(name='Uptown', is_active=False)
        self.client.authenticate_user(self.user)

        response = self.client.get('/api/v1/branches/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

        response = self.client.get('/api/v1/branches/', {'is_active': 'true'})
        self.assertEqual([b['name'] for b in response.data], ['Downtown'])

    def test_create_branch_requires_admin(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/branches/', {'name': 'North', 'code': 'NTH'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Branch.objects.filter(code='NTH').exists())

    def test_admin_creates_branch(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/branches/', {'name': 'North', 'code': 'NTH'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['warehouse_count'], 0)

    def test_duplicate_branch_code_rejected(self):
        TestDataFactory.create_branch(code='NTH')
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/branches/', {'name': 'North 2', 'code': 'NTH'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('code', response.data)

    def test_delete_branch_with_warehouse_is_blocked(self):
        warehouse = TestDataFactory.create_warehouse()
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/branches/{warehouse.branch_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)
        self.assertTrue(Branch.objects.filter(pk=warehouse.branch_id).exists())


class WarehouseAPITests(TestCase):
    """Test Warehouse API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.branch = TestDataFactory.create_branch()

    def test_create_warehouse(self):
        data = {'name': 'Main Store', 'code': 'MS-01', 'branch': self.branch.id, 'capacity': 500}
        response = self.client.post('/api/v1/warehouses/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['branch_name'], self.branch.name)

    def test_filter_warehouses_by_branch(self):
        TestDataFactory.create_warehouse(branch=self.branch)
        TestDataFactory.create_warehouse()
        response = self.client.get('/api/v1/warehouses/', {'branch': self.branch.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_delete_warehouse_with_stock_is_blocked(self):
        warehouse = TestDataFactory.create_warehouse(branch=self.branch)
        product = TestDataFactory.create_product()
        TestDataFactory.add_batch(product, warehouse, 10, '1.50')
        response = self.client.delete(f'/api/v1/warehouses/{warehouse.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Warehouse.objects.filter(pk=warehouse.id).exists())

    def test_delete_empty_warehouse(self):
        warehouse = TestDataFactory.create_warehouse(branch=self.branch)
        response = self.client.delete(f'/api/v1/warehouses/{warehouse.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
