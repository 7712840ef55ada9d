"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backend.locations.models import Branch, Warehouse
from backend.catalog.models import Product, ProductUOM
from backend.parties.models import Supplier
from backend.inventory import services as inventory_services
from backend.purchasing import services as purchasing_services
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_branch(name=None, code=None, is_active=True):
        """Create a test branch"""
        if not name:
            name = f'Branch_{TestDataFactory.random_string(6)}'
        if not code:
            code = f'BR_{TestDataFactory.random_string(6).upper()}'
        return Branch.objects.create(
            name=name,
            code=code,
            address=f'Test Address {name}',
            phone='1234567890',
            is_active=is_active
        )

    @staticmethod
    def create_warehouse(branch=None, name=None, code=None, is_active=True):
        """Create a test warehouse, with a new branch unless one is given"""
        if not branch:
            branch = TestDataFactory.create_branch()
        if not name:
            name = f'Warehouse_{TestDataFactory.random_string(6)}'
        if not code:
            code = f'WH_{TestDataFactory.random_string(6).upper()}'
        return Warehouse.objects.create(
            name=name,
            code=code,
            branch=branch,
            location=f'Test Location {name}',
            is_active=is_active
        )

    @staticmethod
    def create_product(name=None, sku=None, base_uom='bottle', uoms=None, shelf_life_days=365,
                       low_stock_threshold=10, is_active=True):
        """
        Create a test product.

        ``uoms`` maps alternate unit names to their conversion factor,
        defaulting to a case of 24.
        """
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if not sku:
            sku = f'SKU_{TestDataFactory.random_string(8)}'
        if uoms is None:
            uoms = {'case': 24}

        product = Product.objects.create(
            name=name,
            sku=sku,
            category='Beverages',
            base_uom=base_uom,
            shelf_life_days=shelf_life_days,
            low_stock_threshold=low_stock_threshold,
            is_active=is_active
        )
        for uom_name, factor in uoms.items():
            ProductUOM.objects.create(product=product, name=uom_name, conversion_factor=Decimal(str(factor)))
        return product

    @staticmethod
    def create_supplier(company_name=None, payment_terms='Net 30', is_active=True):
        """Create a test supplier"""
        if not company_name:
            company_name = f'Supplier_{TestDataFactory.random_string(6)}'
        return Supplier.objects.create(
            company_name=company_name,
            contact_person='Test Contact',
            phone=f'9{random.randint(100000000, 999999999)}',
            email=f'{company_name.lower()}@test.com',
            payment_terms=payment_terms,
            is_active=is_active
        )

    @staticmethod
    def add_batch(product, warehouse, quantity, unit_cost, uom=None, expiry_date=None, received_date=None, user=None):
        """Receive stock into a new batch through the inventory service"""
        return inventory_services.add_stock(
            product, warehouse, Decimal(str(quantity)), uom or product.base_uom, Decimal(str(unit_cost)),
            received_date=received_date,
            expiry_date=expiry_date,
            user=user
        )

    @staticmethod
    def create_purchase_order(user=None, supplier=None, warehouse=None, items=None, status='draft', notes=''):
        """
        Create a test purchase order through the purchasing service.

        ``items`` is a list of ``(product, quantity, uom, unit_price)`` tuples.
        """
        if not supplier:
            supplier = TestDataFactory.create_supplier()
        if not warehouse:
            warehouse = TestDataFactory.create_warehouse()
        if items is None:
            items = [(TestDataFactory.create_product(), Decimal('10'), 'case', Decimal('240.00'))]

        purchase_order = purchasing_services.create_purchase_order({
            'supplier': supplier,
            'warehouse': warehouse,
            'status': 'draft' if status == 'ordered' else status,
            'notes': notes,
            'items': [
                {'product': product, 'quantity': Decimal(str(quantity)), 'uom': uom, 'unit_price': Decimal(str(price))}
                for product, quantity, uom, price in items
            ],
        }, user=user)
        if status == 'ordered':
            purchase_order = purchasing_services.update_purchase_order(purchase_order, {'status': 'ordered'}, user=user)
        return purchase_order


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
