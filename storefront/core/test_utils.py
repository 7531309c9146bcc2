"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from storefront.catalog.models import Silo, Subcategory, ProductType, Product, ProductCategory
from storefront.catalog.product_csv.template import CSV_HEADERS
from storefront.core.csvtools import build_line
from storefront.distributors.models import Distributor
from decimal import Decimal
from django.utils.text import slugify
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
    def create_user(username=None, email=None, password='testpass123', role='customer', is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            is_superuser=is_superuser,
        )

    @staticmethod
    def create_superadmin(username=None):
        return TestDataFactory.create_user(username=username, role='superadmin')

    @staticmethod
    def create_silo(name='Cocina', slug=None, sort_order=0):
        """Create a test silo"""
        return Silo.objects.create(name=name, slug=slug or slugify(name), sort_order=sort_order)

    @staticmethod
    def create_subcategory(silo, name=None, slug=None):
        """Create a test subcategory"""
        if not name:
            name = f'Subcategory {TestDataFactory.random_string(6)}'
        return Subcategory.objects.create(silo=silo, name=name, slug=slug or slugify(name))

    @staticmethod
    def create_product_type(subcategory, name=None, slug=None):
        """Create a test product type"""
        if not name:
            name = f'Type {TestDataFactory.random_string(6)}'
        return ProductType.objects.create(subcategory=subcategory, name=name, slug=slug or slugify(name))

    @staticmethod
    def create_product(code=None, name=None, subcategory=None, price=None, **fields):
        """Create a test product, optionally placed in a subcategory"""
        if not code:
            code = f'REF-{TestDataFactory.random_string(6).upper()}'
        if not name:
            name = f'Product {code}'
        product = Product.objects.create(
            code=code,
            name=name,
            slug=slugify(f'{name}-{code}'),
            price=price if price is not None else Decimal('10000.00'),
            **fields
        )
        if subcategory is not None:
            ProductCategory.objects.create(product=product, subcategory=subcategory, is_primary=True)
        return product

    @staticmethod
    def create_distributor(user=None, company_rif=None, company_name=None, discount_percentage=None, is_active=True):
        """Create a test distributor and its user"""
        if user is None:
            user = TestDataFactory.create_user(role='distributor')
        if not company_rif:
            company_rif = f'900{random.randint(100000, 999999)}-{random.randint(0, 9)}'
        return Distributor.objects.create(
            user=user,
            company_rif=company_rif,
            company_name=company_name or f'Company {company_rif}',
            discount_percentage=discount_percentage if discount_percentage is not None else Decimal('0.00'),
            is_active=is_active,
        )

    @staticmethod
    def product_csv(rows, headers=None):
        """Build product CSV text from a list of {column: value} dicts"""
        headers = headers or CSV_HEADERS
        lines = [','.join(headers)]
        for row in rows:
            lines.append(build_line(row.get(h, '') for h in headers))
        return '\n'.join(lines)

    @staticmethod
    def product_row(ref='ABC-001', **overrides):
        """Minimal valid product CSV row"""
        row = {
            'Ref': ref,
            'Producto': f'Producto {ref}',
            'Precio_COP': '89900',
            'Categoria_1': 'Cocina',
            'Subcategoria_1': 'Corte y Picado',
        }
        row.update(overrides)
        return row


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
