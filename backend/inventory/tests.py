"""
Test suite for Inventory module
Tests: Product CRUD, role checks, custom IDs, filters, summary, low stock
"""
from decimal import Decimal
from unittest.mock import patch

from django.core.cache import cache
from django.test import TestCase, override_settings
from rest_framework import status
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.inventory.models import Product, get_stock_status


class StockStatusTests(TestCase):
    """Test stock status labels"""

    def test_boundaries(self):
        self.assertEqual(get_stock_status(0), 'Out of Stock')
        self.assertEqual(get_stock_status(5), 'Critical')
        self.assertEqual(get_stock_status(6), 'Low Stock')
        self.assertEqual(get_stock_status(10), 'Low Stock')
        self.assertEqual(get_stock_status(11), 'Medium Stock')
        self.assertEqual(get_stock_status(50), 'Medium Stock')
        self.assertEqual(get_stock_status(51), 'High Stock')


class ProductTests(TestCase):
    """Test product endpoints"""

    def setUp(self):
        cache.clear()
        self.owner = TestDataFactory.create_owner()
        self.worker = TestDataFactory.create_worker()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.owner)

    def test_create_product_generates_category_id(self):
        """Owner can add a product and gets a category based ID"""
        data = {'name': 'Brake Pad', 'category': 'Brake System', 'quantity': 12, 'unit_price': '450.00'}
        response = self.client.post('/api/v1/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['custom_id'], 'BRK0001')
        self.assertEqual(response.data['stock_status'], 'Medium Stock')

        response = self.client.post('/api/v1/products/', {**data, 'name': 'Brake Disc'}, format='json')
        self.assertEqual(response.data['custom_id'], 'BRK0002')

        product = Product.objects.get(custom_id='BRK0001')
        self.assertEqual(product.last_updated_by, self.owner)
        self.assertTrue(AuditLog.objects.filter(action='add_product', object_reference='BRK0001').exists())

    def test_worker_cannot_create_product(self):
        """Only the owner manages inventory"""
        self.client.authenticate_user(self.worker)
        data = {'name': 'Oil Filter', 'category': 'Engine Parts', 'quantity': 5, 'unit_price': '120.00'}
        response = self.client.post('/api/v1/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Product.objects.exists())

    def test_worker_can_list_products(self):
        """Every role can read inventory"""
        TestDataFactory.create_product(name='Spark Plug')
        self.client.authenticate_user(self.worker)
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_negative_quantity_rejected(self):
        data = {'name': 'Coolant', 'category': 'Fluids', 'quantity': -1, 'unit_price': '300.00'}
        response = self.client.post('/api/v1/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_product_records_changes(self):
        """Test product update writes an activity entry with old/new values"""
        product = TestDataFactory.create_product(name='Headlight', category='Electrical', quantity=30)
        response = self.client.patch(f'/api/v1/products/{product.id}/', {'quantity': 25}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(action='update_product')
        self.assertEqual(log.changes['quantity'], {'old': '30', 'new': '25'})

    @patch('backend.inventory.views.check_low_stock')
    def test_update_to_low_quantity_triggers_alert(self, mock_check):
        product = TestDataFactory.create_product(quantity=30)
        self.client.patch(f'/api/v1/products/{product.id}/', {'quantity': 3}, format='json')
        mock_check.assert_called_once()

    def test_delete_product(self):
        product = TestDataFactory.create_product()
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Product.objects.filter(pk=product.pk).exists())
        self.assertTrue(AuditLog.objects.filter(action='delete_product', object_reference=product.custom_id).exists())

    def test_filters(self):
        """Test search, category and stock level filters"""
        TestDataFactory.create_product(name='Engine Oil', category='Fluids', quantity=8)
        TestDataFactory.create_product(name='Timing Belt', category='Engine Parts', quantity=30)
        TestDataFactory.create_product(name='Wrench Set', category='Tools', quantity=80)

        response = self.client.get('/api/v1/products/?search=oil')
        self.assertEqual([p['name'] for p in response.data], ['Engine Oil'])

        response = self.client.get('/api/v1/products/?category=Tools')
        self.assertEqual([p['name'] for p in response.data], ['Wrench Set'])

        response = self.client.get('/api/v1/products/?stock_level=low')
        self.assertEqual([p['name'] for p in response.data], ['Engine Oil'])
        response = self.client.get('/api/v1/products/?stock_level=medium')
        self.assertEqual([p['name'] for p in response.data], ['Timing Belt'])
        response = self.client.get('/api/v1/products/?stock_level=high')
        self.assertEqual([p['name'] for p in response.data], ['Wrench Set'])

        response = self.client.get('/api/v1/products/?ordering=-quantity')
        self.assertEqual([p['quantity'] for p in response.data], [80, 30, 8])

    def test_summary(self):
        """Test inventory summary totals"""
        TestDataFactory.create_product(name='A', quantity=0, unit_price='100.00')
        TestDataFactory.create_product(name='B', quantity=4, unit_price='250.00')
        TestDataFactory.create_product(name='C', quantity=20, unit_price='10.00')

        response = self.client.get('/api/v1/products/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_products'], 3)
        self.assertEqual(response.data['total_value'], 1200.0)
        self.assertEqual(response.data['low_stock_count'], 2)
        self.assertEqual(response.data['out_of_stock_count'], 1)
        self.assertEqual(response.data['top_products'][0]['name'], 'B')

    @override_settings(LOW_STOCK_THRESHOLD=5)
    def test_summary_uses_low_stock_setting(self):
        TestDataFactory.create_product(quantity=5)
        TestDataFactory.create_product(quantity=8)
        response = self.client.get('/api/v1/products/summary/')
        self.assertEqual(response.data['low_stock_count'], 1)

    def test_low_stock(self):
        TestDataFactory.create_product(name='Fuse', quantity=2)
        TestDataFactory.create_product(name='Bulb', quantity=40)
        response = self.client.get('/api/v1/products/low-stock/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['name'] for p in response.data], ['Fuse'])

    def test_total_value_property(self):
        product = TestDataFactory.create_product(quantity=3, unit_price='19.50')
        self.assertEqual(product.total_value, Decimal('58.50'))
