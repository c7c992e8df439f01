"""
Tests for dashboard rollups.
"""
from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from dashboard.services import orders_chart, revenue_chart, shift_month, trend
from inventory.models import Category, Product
from orders.models import Order, OrderStatus, PaymentStatus, PaymentMethod

User = get_user_model()


def make_order(user, number, total, **fields):
    return Order.objects.create(
        order_number=number,
        user=user,
        customer_name=user.username,
        shipping_address='Bole Road 12',
        shipping_city='Addis Ababa',
        shipping_country='Ethiopia',
        total=Decimal(total),
        payment_method=PaymentMethod.CHAPA,
        **fields
    )


class HelperTestCase(TestCase):

    def test_shift_month_clamps_day(self):
        self.assertEqual(shift_month(date(2026, 3, 31), -1), date(2026, 2, 28))
        self.assertEqual(shift_month(date(2026, 1, 15), -2), date(2025, 11, 15))
        self.assertEqual(shift_month(date(2025, 12, 1), 1), date(2026, 1, 1))

    def test_trend(self):
        self.assertEqual(trend(15, 10), 50.0)
        self.assertEqual(trend(1, 3), -66.7)
        self.assertEqual(trend(5, 0), 0.0)


class DashboardTestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.customer = User.objects.create_user(username='abebe', password='pw')
        self.seller = User.objects.create_user(username='seller', password='pw', role=User.Role.SELLER)
        self.paid = make_order(self.customer, 'ORD-000001', '255.00', payment_status=PaymentStatus.PAID,
                               order_status=OrderStatus.CONFIRMED)
        self.pending = make_order(self.customer, 'ORD-000002', '100.00')

        category = Category.objects.create(name='Electronics')
        Product.objects.create(name='Phone', price=Decimal('100.00'), sales_count=7, category=category)
        Product.objects.create(name='Cable', price=Decimal('5.00'), sales_count=30, category=category)

    def test_stats_are_public(self):
        response = self.client.get('/api/dashboard/stats/')

        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(data['total_orders'], 2)
        self.assertEqual(data['total_revenue'], '255.00')
        self.assertEqual(data['pending_orders'], 1)
        self.assertEqual(data['active_users'], 1)

    def test_charts_require_staff_role(self):
        self.client.force_authenticate(self.customer)
        response = self.client.get('/api/dashboard/charts/orders/')
        self.assertEqual(response.status_code, 403)

    def test_orders_chart_counts_current_month(self):
        data = orders_chart(months=3)

        self.assertEqual(len(data), 3)
        self.assertEqual(data[-1]['month'], timezone.localdate().strftime('%Y-%m'))
        self.assertEqual(data[-1]['orders'], 2)
        self.assertEqual(data[0]['orders'], 0)

    def test_revenue_chart_counts_only_paid(self):
        old = make_order(self.customer, 'ORD-000003', '40.00', payment_status=PaymentStatus.PAID)
        Order.objects.filter(pk=old.pk).update(created_at=datetime(2026, 1, 10, tzinfo=dt_timezone.utc))

        data = revenue_chart(months=12, today=date(2026, 2, 20))

        by_month = {point['month']: point['revenue'] for point in data}
        self.assertEqual(by_month['2026-01'], '40.00')
        self.assertEqual(by_month['2025-12'], '0.00')
        self.assertEqual(data[0]['month'], '2025-03')

    def test_chart_endpoint_months_param(self):
        self.client.force_authenticate(self.seller)
        response = self.client.get('/api/dashboard/charts/revenue/', {'months': '6'})
        self.assertEqual(len(response.json()['data']), 6)

    def test_top_products(self):
        self.client.force_authenticate(self.seller)

        response = self.client.get('/api/dashboard/top-products/', {'limit': '1'})

        data = response.json()['data']
        self.assertEqual(len(data), 1)
        self.assertEqual(data[0]['name'], 'Cable')
        self.assertEqual(data[0]['category_name'], 'Electronics')

    def test_recent_orders(self):
        self.client.force_authenticate(self.seller)

        response = self.client.get('/api/dashboard/recent-orders/')

        numbers = [order['order_number'] for order in response.json()['data']]
        self.assertEqual(numbers, ['ORD-000002', 'ORD-000001'])
