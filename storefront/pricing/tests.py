"""
Test suite for Pricing module
Tests: public and distributor price calculation, pricing endpoint
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .utils import calculate_product_pricing, is_product_on_sale


class PricingCalculationTests(TestCase):
    """Test calculate_product_pricing"""

    def setUp(self):
        self.product = TestDataFactory.create_product(
            'ABC-001',
            price=Decimal('100000'),
            discount_percentage=Decimal('10'),
            distributor_price=Decimal('60000'),
            distributor_discount=Decimal('5'),
        )
        self.distributor = TestDataFactory.create_distributor(discount_percentage=Decimal('10'))

    def test_public_price_with_discount(self):
        pricing = calculate_product_pricing(self.product)
        self.assertEqual(pricing.public_price, Decimal('90000.00'))
        self.assertEqual(pricing.public_original_price, Decimal('100000'))
        self.assertTrue(pricing.public_has_discount)
        self.assertIsNone(pricing.distributor_net_price)

    def test_public_price_without_discount(self):
        self.product.discount_percentage = Decimal('0')
        pricing = calculate_product_pricing(self.product)
        self.assertEqual(pricing.public_price, Decimal('100000'))
        self.assertIsNone(pricing.public_original_price)
        self.assertFalse(pricing.public_has_discount)

    def test_distributor_discounts_are_multiplicative(self):
        pricing = calculate_product_pricing(self.product, self.distributor)
        # 60000 * 0.90 * 0.95
        self.assertEqual(pricing.distributor_net_price, Decimal('51300.00'))
        self.assertEqual(pricing.distributor_base_price, Decimal('60000'))
        self.assertEqual(pricing.distributor_suggested_price, Decimal('100000'))
        self.assertEqual(pricing.distributor_discount, Decimal('10'))
        self.assertEqual(pricing.distributor_product_discount, Decimal('5'))
        # Distributors see the public price without the retail discount
        self.assertFalse(pricing.public_has_discount)
        self.assertEqual(pricing.public_price, Decimal('100000'))

    def test_distributor_without_distributor_price(self):
        self.product.distributor_price = None
        pricing = calculate_product_pricing(self.product, self.distributor)
        self.assertIsNone(pricing.distributor_net_price)
        self.assertIsNone(pricing.distributor_base_price)

    def test_rounding(self):
        self.product.price = Decimal('99999')
        self.product.discount_percentage = Decimal('33')
        pricing = calculate_product_pricing(self.product)
        self.assertEqual(pricing.public_price, Decimal('66999.33'))

    def test_is_product_on_sale(self):
        self.assertTrue(is_product_on_sale(self.product))
        self.product.discount_percentage = Decimal('0')
        self.assertFalse(is_product_on_sale(self.product))


class PricingAPITests(TestCase):
    """Test the product pricing endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.product = TestDataFactory.create_product(
            'ABC-001',
            price=Decimal('100000'),
            discount_percentage=Decimal('10'),
            distributor_price=Decimal('60000'),
        )
        self.distributor = TestDataFactory.create_distributor(discount_percentage=Decimal('20'))

    def test_anonymous_pricing(self):
        response = self.client.get(f'/api/v1/products/{self.product.id}/pricing/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_distributor'])
        self.assertEqual(response.data['public_price'], Decimal('90000.00'))
        self.assertIsNone(response.data['distributor_net_price'])

    def test_distributor_pricing(self):
        self.client.authenticate_user(self.distributor.user)
        response = self.client.get(f'/api/v1/products/{self.product.id}/pricing/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_distributor'])
        self.assertEqual(response.data['distributor_net_price'], Decimal('48000.00'))

    def test_inactive_distributor_gets_public_prices(self):
        self.distributor.is_active = False
        self.distributor.save()
        self.client.authenticate_user(self.distributor.user)
        response = self.client.get(f'/api/v1/products/{self.product.id}/pricing/')
        self.assertFalse(response.data['is_distributor'])
        self.assertTrue(response.data['public_has_discount'])

    def test_inactive_product(self):
        self.product.is_active = False
        self.product.save()
        response = self.client.get(f'/api/v1/products/{self.product.id}/pricing/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
