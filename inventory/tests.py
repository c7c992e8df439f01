"""
Tests for the catalog, the stock ledger and manual stock adjustment.
"""
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from core.exceptions import InvalidState, NotFound
from inventory.models import Category, Product, InventoryMovement
from inventory.services import DECREASE, INCREASE, SET, adjust_stock, low_stock_products, record_movement

User = get_user_model()


class StockAdjustmentTestCase(TestCase):
    """Test cases for adjust_stock."""

    def setUp(self):
        self.manager = User.objects.create_user(username='manager', password='pw', role=User.Role.MANAGER)
        self.category = Category.objects.create(name='Electronics')
        self.product = Product.objects.create(
            name='Phone', price=Decimal('100.00'), stock=10, category=self.category
        )

    def test_increase(self):
        product = adjust_stock(self.product.id, 5, INCREASE, InventoryMovement.Type.RESTOCK, 'Delivery', self.manager)

        self.assertEqual(product.stock, 15)
        movement = InventoryMovement.objects.get(product=self.product)
        self.assertEqual(movement.quantity_delta, 5)
        self.assertEqual(movement.type, InventoryMovement.Type.RESTOCK)
        self.assertEqual(movement.reason, 'Delivery')
        self.assertEqual(movement.user, self.manager)

    def test_set_records_difference(self):
        adjust_stock(self.product.id, 4, SET)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 4)
        self.assertEqual(InventoryMovement.objects.get(product=self.product).quantity_delta, -6)

    def test_decrease_floors_at_zero(self):
        """
        Given: 10 in stock
        When: Decreasing by 25
        Then: Stock is 0, the product is out of stock and the ledger shows -10
        """
        product = adjust_stock(self.product.id, 25, DECREASE)

        self.assertEqual(product.stock, 0)
        self.assertEqual(product.status, Product.Status.OUT_OF_STOCK)
        self.assertEqual(InventoryMovement.objects.get(product=self.product).quantity_delta, -10)

    def test_restock_reactivates_out_of_stock(self):
        adjust_stock(self.product.id, 0, SET)
        product = adjust_stock(self.product.id, 3, INCREASE)

        self.assertEqual(product.status, Product.Status.ACTIVE)

    def test_restock_keeps_discontinued(self):
        Product.objects.filter(pk=self.product.pk).update(status=Product.Status.DISCONTINUED)

        product = adjust_stock(self.product.id, 3, INCREASE)

        self.assertEqual(product.status, Product.Status.DISCONTINUED)

    def test_untracked_product_rejected(self):
        Product.objects.filter(pk=self.product.pk).update(track_inventory=False)

        with self.assertRaises(InvalidState):
            adjust_stock(self.product.id, 1, INCREASE)
        self.assertEqual(InventoryMovement.objects.count(), 0)

    def test_missing_product(self):
        with self.assertRaises(NotFound):
            adjust_stock(99999, 1, INCREASE)

    def test_movements_are_append_only(self):
        movement = record_movement(self.product, 1, InventoryMovement.Type.ADJUSTMENT)

        movement.reason = 'edited'
        with self.assertRaises(ValueError):
            movement.save()
        with self.assertRaises(ValueError):
            movement.delete()

    def test_low_stock_uses_per_product_threshold(self):
        quiet = Product.objects.create(
            name='Cable', price=Decimal('5.00'), stock=15, low_stock_threshold=20, category=self.category
        )
        Product.objects.create(
            name='E-book', price=Decimal('3.00'), stock=0, track_inventory=False, category=self.category
        )

        self.assertEqual(set(low_stock_products()), {self.product, quiet})


@override_settings(RATE_LIMIT_ENABLED=False)
class CatalogAPITestCase(TestCase):
    """Endpoint tests for categories, products and inventory."""

    def setUp(self):
        self.client = APIClient()
        self.customer = User.objects.create_user(username='abebe', password='pw')
        self.seller = User.objects.create_user(username='seller', password='pw', role=User.Role.SELLER)
        self.category = Category.objects.create(name='Electronics')
        self.phone = Product.objects.create(
            name='Phone X', sku='PH-X', price=Decimal('100.00'), stock=4, category=self.category
        )
        self.charger = Product.objects.create(
            name='Phone Charger', price=Decimal('20.00'), stock=50, category=self.category
        )

    def test_category_slug_generated(self):
        self.client.force_authenticate(self.seller)

        response = self.client.post('/api/categories/', {'name': 'Home Office'}, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['data']['slug'], 'home-office')

    def test_customers_cannot_write_catalog(self):
        self.client.force_authenticate(self.customer)

        response = self.client.post('/api/categories/', {'name': 'Garden'}, format='json')

        self.assertEqual(response.status_code, 403)
        self.assertFalse(response.json()['success'])

    def test_duplicate_category_name(self):
        self.client.force_authenticate(self.seller)

        response = self.client.post('/api/categories/', {'name': 'Electronics'}, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['errors'][0]['field'], 'name')

    def test_delete_category_with_products_is_conflict(self):
        self.client.force_authenticate(self.seller)

        response = self.client.delete(f'/api/categories/{self.category.id}/')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['message'], 'Record is still referenced by other records')
        self.assertTrue(Category.objects.filter(pk=self.category.pk).exists())

    def test_product_stock_not_editable_directly(self):
        self.client.force_authenticate(self.seller)

        response = self.client.patch(f'/api/products/{self.phone.id}/', {'stock': 99}, format='json')

        self.assertEqual(response.status_code, 400)
        self.phone.refresh_from_db()
        self.assertEqual(self.phone.stock, 4)

    def test_search_with_price_range(self):
        self.client.force_authenticate(self.customer)

        response = self.client.get('/api/products/search/', {'q': 'phone', 'max_price': '50'})

        names = [p['name'] for p in response.json()['data']['results']]
        self.assertEqual(names, ['Phone Charger'])

    def test_autocomplete(self):
        self.client.force_authenticate(self.customer)

        short = self.client.get('/api/products/autocomplete/', {'q': 'ph'})
        self.assertEqual(short.status_code, 400)

        response = self.client.get('/api/products/autocomplete/', {'q': 'pho'})
        self.assertEqual(len(response.json()['data']), 2)

    def test_inventory_list_ordered_by_stock(self):
        self.client.force_authenticate(self.seller)

        response = self.client.get('/api/inventory/')

        names = [p['name'] for p in response.json()['data']['results']]
        self.assertEqual(names, ['Phone X', 'Phone Charger'])

    def test_low_stock_endpoint(self):
        self.client.force_authenticate(self.seller)

        response = self.client.get('/api/inventory/low-stock/')

        self.assertEqual([p['id'] for p in response.json()['data']], [self.phone.id])

    def test_inventory_requires_staff_role(self):
        self.client.force_authenticate(self.customer)
        response = self.client.get('/api/inventory/')
        self.assertEqual(response.status_code, 403)

    def test_stock_update_and_history(self):
        self.client.force_authenticate(self.seller)

        response = self.client.patch(
            f'/api/inventory/{self.phone.id}/stock/',
            {'quantity': 6, 'operation': 'increase', 'type': 'RESTOCK', 'reason': 'Delivery'},
            format='json'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['message'], 'Stock updated')
        self.assertEqual(response.json()['data']['stock'], 10)

        history = self.client.get(f'/api/inventory/{self.phone.id}/history/')
        results = history.json()['data']['results']
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0]['quantity_delta'], 6)
        self.assertEqual(results[0]['user_id'], self.seller.id)

    def test_stock_update_rejects_sale_type(self):
        self.client.force_authenticate(self.seller)

        response = self.client.patch(
            f'/api/inventory/{self.phone.id}/stock/',
            {'quantity': 1, 'operation': 'decrease', 'type': 'SALE'},
            format='json'
        )

        self.assertEqual(response.status_code, 400)

    def test_history_for_missing_product(self):
        self.client.force_authenticate(self.seller)
        response = self.client.get('/api/inventory/99999/history/')
        self.assertEqual(response.status_code, 404)
