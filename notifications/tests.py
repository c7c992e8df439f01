"""
Tests for notifications: creation tasks and the owner-only API.
"""
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from inventory.models import Category, Product
from notifications.models import Notification
from notifications.services import create_notification
from notifications.tasks import notify_stock_levels
from orders.models import Order, OrderStatus, PaymentMethod
from orders.tasks import notify_order_status_change, send_order_confirmation

User = get_user_model()


class StockAlertTestCase(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(username='admin', password='pw', role=User.Role.ADMIN)
        self.manager = User.objects.create_user(username='manager', password='pw', role=User.Role.MANAGER)
        self.customer = User.objects.create_user(username='abebe', password='pw')
        category = Category.objects.create(name='Books')
        self.low = Product.objects.create(name='Atlas', price=Decimal('20.00'), stock=3, category=category)
        self.empty = Product.objects.create(name='Novel', price=Decimal('9.00'), stock=0, category=category)
        self.plenty = Product.objects.create(name='Diary', price=Decimal('5.00'), stock=50, category=category)

    def test_alerts_go_to_admins_and_managers(self):
        result = notify_stock_levels([self.low.id, self.empty.id, self.plenty.id])

        self.assertEqual(result, {'alerts': 4})
        self.assertFalse(Notification.objects.filter(user=self.customer).exists())
        self.assertEqual(
            Notification.objects.filter(user=self.admin, type='PRODUCT_OUT_OF_STOCK').get().data,
            {'product_id': self.empty.id, 'stock': 0}
        )
        self.assertTrue(
            Notification.objects.filter(user=self.manager, type='PRODUCT_LOW_STOCK').exists()
        )

    def test_no_alerts_when_stock_is_healthy(self):
        self.assertEqual(notify_stock_levels([self.plenty.id]), {'alerts': 0})
        self.assertEqual(Notification.objects.count(), 0)


class OrderNotificationTaskTestCase(TestCase):

    def setUp(self):
        self.customer = User.objects.create_user(username='abebe', password='pw')
        self.order = Order.objects.create(
            order_number='ORD-000001',
            user=self.customer,
            customer_name='abebe',
            shipping_address='Bole Road 12',
            shipping_city='Addis Ababa',
            shipping_country='Ethiopia',
            total=Decimal('255.00'),
            payment_method=PaymentMethod.CHAPA,
        )

    def test_confirmation_creates_notification(self):
        result = send_order_confirmation(self.order.id)

        self.assertEqual(result['status'], 'success')
        notification = Notification.objects.get(user=self.customer)
        self.assertEqual(notification.type, 'ORDER_CREATED')
        self.assertEqual(notification.data['order_number'], 'ORD-000001')

    def test_confirmation_for_missing_order(self):
        result = send_order_confirmation(99999)
        self.assertEqual(result['status'], 'error')

    def test_shipped_status_notification(self):
        Order.objects.filter(pk=self.order.pk).update(order_status=OrderStatus.SHIPPED)

        notify_order_status_change(self.order.id, OrderStatus.PROCESSING)

        notification = Notification.objects.get(user=self.customer)
        self.assertEqual(notification.type, 'ORDER_SHIPPED')
        self.assertEqual(notification.data['previous_status'], 'PROCESSING')

    def test_other_status_is_generic_update(self):
        Order.objects.filter(pk=self.order.pk).update(order_status=OrderStatus.CANCELLED)

        result = notify_order_status_change(self.order.id, OrderStatus.PENDING)

        self.assertEqual(result['type'], 'ORDER_UPDATED')


class NotificationAPITestCase(TestCase):
    """Endpoint tests for /api/notifications/."""

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(username='abebe', password='pw')
        self.other = User.objects.create_user(username='sara', password='pw')
        self.first = create_notification(self.user.id, 'ORDER_CREATED', 'Order placed', 'ORD-000001 placed')
        self.second = create_notification(self.user.id, 'PAYMENT_RECEIVED', 'Payment received', 'Thanks')
        self.foreign = create_notification(self.other.id, 'ORDER_CREATED', 'Order placed', 'ORD-000002 placed')
        self.client.force_authenticate(self.user)

    def test_list_own_notifications(self):
        response = self.client.get('/api/notifications/')

        data = response.json()['data']
        self.assertEqual(data['pagination']['total'], 2)
        self.assertEqual(data['unread_count'], 2)
        self.assertEqual(data['results'][0]['id'], self.second.id)

    def test_unread_only_filter(self):
        self.client.patch(f'/api/notifications/{self.first.id}/read/')

        response = self.client.get('/api/notifications/', {'unread_only': 'true'})

        data = response.json()['data']
        self.assertEqual([n['id'] for n in data['results']], [self.second.id])
        self.assertEqual(data['unread_count'], 1)

    def test_mark_read_sets_timestamp(self):
        response = self.client.patch(f'/api/notifications/{self.first.id}/read/')

        self.assertEqual(response.status_code, 200)
        self.first.refresh_from_db()
        self.assertTrue(self.first.is_read)
        self.assertIsNotNone(self.first.read_at)

    def test_mark_all_read(self):
        response = self.client.patch('/api/notifications/read-all/')

        self.assertEqual(response.json()['data'], {'updated': 2})
        self.assertFalse(Notification.objects.filter(user=self.user, is_read=False).exists())
        self.foreign.refresh_from_db()
        self.assertFalse(self.foreign.is_read)

    def test_delete(self):
        response = self.client.delete(f'/api/notifications/{self.first.id}/')

        self.assertEqual(response.status_code, 200)
        self.assertFalse(Notification.objects.filter(pk=self.first.pk).exists())

    def test_other_users_notification_forbidden(self):
        for method, url in (
            ('get', f'/api/notifications/{self.foreign.id}/'),
            ('patch', f'/api/notifications/{self.foreign.id}/read/'),
            ('delete', f'/api/notifications/{self.foreign.id}/'),
        ):
            response = getattr(self.client, method)(url)
            self.assertEqual(response.status_code, 403)
        self.assertTrue(Notification.objects.filter(pk=self.foreign.pk).exists())

    def test_missing_notification(self):
        response = self.client.get('/api/notifications/99999/')
        self.assertEqual(response.status_code, 404)
