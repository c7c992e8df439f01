"""
Tests for the order lifecycle.

Test Cases:
1. Transition tables and timestamp policy
2. Order creation totals, stock deduction and ledger entries
3. Insufficient stock leaves nothing behind
4. Cancellation restores stock and sales exactly
5. Staff status updates
6. API endpoints and visibility
7. Concurrent order race condition prevention
"""
import threading
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.db import connection
from django.test import TestCase, TransactionTestCase, skipUnlessDBFeature
from rest_framework.exceptions import ValidationError
from rest_framework.test import APIClient

from core.exceptions import Forbidden, InsufficientStock, InvalidState, NotFound
from inventory.models import Category, Product, InventoryMovement
from orders.models import Order, OrderStatus, PaymentStatus, PaymentMethod
from orders.services import (
    calculate_totals,
    cancel_order,
    create_order,
    generate_order_number,
    update_order_status,
)
from orders.state_machine import (
    ORDER_TRANSITIONS,
    PAYMENT_TRANSITIONS,
    InvalidTransition,
    apply_status_timestamps,
    order_status_from_payment,
    validate_order_transition,
    validate_payment_transition,
)
from siteconfig.models import Setting
from siteconfig.services import PricingConfig

User = get_user_model()

SHIPPING = {
    'shipping_address': 'Bole Road 12',
    'shipping_city': 'Addis Ababa',
    'shipping_country': 'Ethiopia',
    'payment_method': PaymentMethod.CHAPA,
}


class OrderFixturesMixin:

    def create_fixtures(self):
        self.customer = User.objects.create_user(username='abebe', email='abebe@example.com', password='pw')
        self.other_customer = User.objects.create_user(username='sara', password='pw')
        self.manager = User.objects.create_user(username='manager', password='pw', role=User.Role.MANAGER)

        self.category = Category.objects.create(name='Electronics')
        self.phone = Product.objects.create(
            name='Phone', sku='PH-1', price=Decimal('100.00'), stock=10, category=self.category
        )
        self.cable = Product.objects.create(
            name='Cable', sku='CB-1', price=Decimal('300.00'), stock=5, category=self.category
        )
        self.ebook = Product.objects.create(
            name='E-book', price=Decimal('15.00'), stock=0, track_inventory=False, category=self.category
        )

    def place(self, user=None, items=None, **overrides):
        data = dict(SHIPPING, **overrides)
        return create_order(
            user_id=(user or self.customer).pk,
            items=items or [{'product_id': self.phone.id, 'quantity': 2}],
            **data
        )


class StateMachineTestCase(TestCase):
    """Test cases for the transition tables."""

    def test_every_listed_order_edge_is_allowed(self):
        for current, allowed in ORDER_TRANSITIONS.items():
            for requested in allowed:
                validate_order_transition(current, requested)

    def test_unlisted_order_edges_are_rejected(self):
        for current in OrderStatus.values:
            for requested in OrderStatus.values:
                if requested in ORDER_TRANSITIONS[current]:
                    continue
                with self.assertRaises(InvalidTransition):
                    validate_order_transition(current, requested)

    def test_order_examples(self):
        validate_order_transition(OrderStatus.PENDING, OrderStatus.CONFIRMED)
        with self.assertRaises(InvalidState):
            validate_order_transition(OrderStatus.PENDING, OrderStatus.PROCESSING)
        with self.assertRaises(InvalidState):
            validate_order_transition(OrderStatus.DELIVERED, OrderStatus.CANCELLED)

    def test_payment_edges(self):
        for current in PaymentStatus.values:
            for requested in PaymentStatus.values:
                if requested in PAYMENT_TRANSITIONS[current]:
                    validate_payment_transition(current, requested)
                else:
                    with self.assertRaises(InvalidTransition):
                        validate_payment_transition(current, requested)

    def test_transition_error_message(self):
        with self.assertRaises(InvalidTransition) as context:
            validate_payment_transition('REFUNDED', 'PAID')
        self.assertEqual(
            context.exception.message,
            'Invalid payment transition from REFUNDED to PAID'
        )

    def test_order_status_from_payment(self):
        self.assertEqual(order_status_from_payment(PaymentStatus.PAID), OrderStatus.CONFIRMED)
        self.assertEqual(order_status_from_payment(PaymentStatus.FAILED), OrderStatus.PENDING)
        self.assertEqual(order_status_from_payment(PaymentStatus.REFUNDED), OrderStatus.REFUNDED)
        self.assertEqual(order_status_from_payment(PaymentStatus.PENDING), OrderStatus.PENDING)

    def test_timestamps_are_set_once(self):
        order = Order(shipped_at=None, delivered_at=None, cancelled_at=None, paid_at=None)

        changed = apply_status_timestamps(order, order_status=OrderStatus.SHIPPED)
        self.assertEqual(changed, ['shipped_at'])
        first = order.shipped_at

        changed = apply_status_timestamps(order, order_status=OrderStatus.SHIPPED)
        self.assertEqual(changed, [])
        self.assertEqual(order.shipped_at, first)

        changed = apply_status_timestamps(order, payment_status=PaymentStatus.PAID)
        self.assertEqual(changed, ['paid_at'])


class TotalsTestCase(TestCase):

    pricing = PricingConfig(
        tax_rate=Decimal('0.15'),
        free_shipping_threshold=Decimal('500'),
        default_shipping_cost=Decimal('25'),
    )

    def test_shipping_charged_at_threshold(self):
        totals = calculate_totals(Decimal('500.00'), self.pricing)
        self.assertEqual(totals.shipping_cost, Decimal('25.00'))
        self.assertEqual(totals.total, Decimal('600.00'))

    def test_free_shipping_above_threshold(self):
        totals = calculate_totals(Decimal('500.01'), self.pricing)
        self.assertEqual(totals.shipping_cost, Decimal('0.00'))
        self.assertEqual(totals.tax, Decimal('75.00'))

    def test_tax_is_rounded_to_cents(self):
        totals = calculate_totals(Decimal('10.03'), self.pricing)
        self.assertEqual(totals.tax, Decimal('1.50'))
        self.assertEqual(totals.total, totals.subtotal + totals.tax + totals.shipping_cost - totals.discount)


class OrderCreationTestCase(OrderFixturesMixin, TestCase):
    """Test cases for create_order."""

    def setUp(self):
        self.create_fixtures()

    def test_order_created_with_sufficient_stock(self):
        """
        Given: Phone at 100.00 with 10 in stock
        When: Ordering 2
        Then: subtotal 200, tax 30, shipping 25, total 255; stock 8
        """
        order = self.place()

        self.assertEqual(order.order_number, 'ORD-000001')
        self.assertEqual(order.subtotal, Decimal('200.00'))
        self.assertEqual(order.tax, Decimal('30.00'))
        self.assertEqual(order.shipping_cost, Decimal('25.00'))
        self.assertEqual(order.discount, Decimal('0.00'))
        self.assertEqual(order.total, Decimal('255.00'))
        self.assertEqual(order.order_status, OrderStatus.PENDING)
        self.assertEqual(order.payment_status, PaymentStatus.PENDING)
        self.assertEqual(order.billing_city, 'Addis Ababa')
        self.assertEqual(order.customer_email, 'abebe@example.com')

        item = order.items.get()
        self.assertEqual(item.product_name, 'Phone')
        self.assertEqual(item.product_sku, 'PH-1')
        self.assertEqual(item.subtotal, Decimal('200.00'))

        self.phone.refresh_from_db()
        self.assertEqual(self.phone.stock, 8)
        self.assertEqual(self.phone.sales_count, 2)

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.total_orders, 1)
        self.assertEqual(self.customer.total_spent, Decimal('255.00'))

    def test_sale_movement_recorded(self):
        order = self.place()

        movement = InventoryMovement.objects.get(product=self.phone)
        self.assertEqual(movement.type, InventoryMovement.Type.SALE)
        self.assertEqual(movement.quantity_delta, -2)
        self.assertEqual(movement.reason, f'Order {order.order_number}')
        self.assertEqual(movement.reference_id, str(order.id))
        self.assertEqual(movement.user, self.customer)

    def test_free_shipping_above_threshold(self):
        order = self.place(items=[{'product_id': self.cable.id, 'quantity': 2}])

        self.assertEqual(order.subtotal, Decimal('600.00'))
        self.assertEqual(order.shipping_cost, Decimal('0.00'))
        self.assertEqual(order.total, Decimal('690.00'))

    def test_pricing_settings_override_defaults(self):
        Setting.objects.create(key='tax_rate', value='0.10', type=Setting.Type.NUMBER)
        Setting.objects.create(key='default_shipping_cost', value='40', type=Setting.Type.NUMBER)

        order = self.place()

        self.assertEqual(order.tax, Decimal('20.00'))
        self.assertEqual(order.shipping_cost, Decimal('40.00'))
        self.assertEqual(order.total, Decimal('260.00'))

    def test_unusable_pricing_settings_fall_back_to_defaults(self):
        """
        Given: A NaN tax rate and a negative shipping cost stored as settings
        When: Ordering 2 phones
        Then: The order is priced with the defaults (total 255.00)
        """
        Setting.objects.create(key='tax_rate', value='NaN', type=Setting.Type.STRING)
        Setting.objects.create(key='default_shipping_cost', value='-2', type=Setting.Type.NUMBER)

        order = self.place()

        self.assertEqual(order.tax, Decimal('30.00'))
        self.assertEqual(order.shipping_cost, Decimal('25.00'))
        self.assertEqual(order.total, Decimal('255.00'))
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.total_spent, Decimal('255.00'))

    def test_exact_stock_marks_out_of_stock(self):
        self.place(items=[{'product_id': self.cable.id, 'quantity': 5}])

        self.cable.refresh_from_db()
        self.assertEqual(self.cable.stock, 0)
        self.assertEqual(self.cable.status, Product.Status.OUT_OF_STOCK)

    def test_untracked_product_ignores_stock(self):
        order = self.place(items=[{'product_id': self.ebook.id, 'quantity': 3}])

        self.assertEqual(order.subtotal, Decimal('45.00'))
        self.ebook.refresh_from_db()
        self.assertEqual(self.ebook.stock, 0)
        self.assertEqual(self.ebook.sales_count, 0)
        self.assertFalse(InventoryMovement.objects.filter(product=self.ebook).exists())

    def test_insufficient_stock_leaves_no_trace(self):
        """
        Given: Cable has only 5 units
        When: Ordering 2 phones and 6 cables
        Then: InsufficientStock, and nothing about stock, orders or aggregates changes
        """
        items = [
            {'product_id': self.phone.id, 'quantity': 2},
            {'product_id': self.cable.id, 'quantity': 6},
        ]

        with self.assertRaises(InsufficientStock) as context:
            self.place(items=items)

        self.assertEqual(context.exception.product_name, 'Cable')
        self.assertEqual(context.exception.available, 5)
        self.assertEqual(context.exception.requested, 6)
        self.assertIn('Insufficient stock for Cable', context.exception.message)

        self.phone.refresh_from_db()
        self.cable.refresh_from_db()
        self.customer.refresh_from_db()
        self.assertEqual(self.phone.stock, 10)
        self.assertEqual(self.cable.stock, 5)
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(InventoryMovement.objects.count(), 0)
        self.assertEqual(self.customer.total_orders, 0)
        self.assertEqual(self.customer.total_spent, Decimal('0.00'))

    def test_unknown_product(self):
        with self.assertRaises(NotFound):
            self.place(items=[{'product_id': 99999, 'quantity': 1}])
        self.assertEqual(Order.objects.count(), 0)

    def test_unknown_user(self):
        with self.assertRaises(NotFound):
            create_order(user_id=99999, items=[{'product_id': self.phone.id, 'quantity': 1}], **SHIPPING)

    def test_validation_error_empty_items(self):
        with self.assertRaises(ValidationError) as context:
            create_order(user_id=self.customer.pk, items=[], **SHIPPING)
        self.assertIn('items', context.exception.detail)

    def test_validation_error_invalid_quantity(self):
        with self.assertRaises(ValidationError) as context:
            self.place(items=[{'product_id': self.phone.id, 'quantity': 0}])
        self.assertIn('items.0.quantity', context.exception.detail)

    def test_validation_error_duplicate_products(self):
        items = [
            {'product_id': self.phone.id, 'quantity': 1},
            {'product_id': self.phone.id, 'quantity': 3},
        ]
        with self.assertRaises(ValidationError) as context:
            self.place(items=items)
        self.assertIn('items.1.product_id', context.exception.detail)

    def test_order_numbers_are_sequential(self):
        self.place()
        self.assertEqual(generate_order_number(), 'ORD-000002')

    def test_confirmation_queued_after_commit(self):
        with patch('orders.tasks.send_order_confirmation.delay') as mock_confirm, \
                patch('notifications.tasks.notify_stock_levels.delay') as mock_stock:
            with self.captureOnCommitCallbacks(execute=True):
                order = self.place()

        mock_confirm.assert_called_once_with(order.id)
        mock_stock.assert_called_once_with([self.phone.id])

    def test_queue_failure_does_not_fail_order(self):
        with patch('orders.tasks.send_order_confirmation.delay', side_effect=ConnectionError('broker down')), \
                patch('notifications.tasks.notify_stock_levels.delay'):
            with self.captureOnCommitCallbacks(execute=True):
                order = self.place()

        self.assertTrue(Order.objects.filter(pk=order.pk).exists())


class OrderCancellationTestCase(OrderFixturesMixin, TestCase):
    """Test cases for cancel_order."""

    def setUp(self):
        self.create_fixtures()

    def test_cancel_restores_stock_and_sales(self):
        order = self.place()

        cancelled = cancel_order(order.id, self.customer)

        self.assertEqual(cancelled.order_status, OrderStatus.CANCELLED)
        self.assertIsNotNone(cancelled.cancelled_at)
        self.phone.refresh_from_db()
        self.assertEqual(self.phone.stock, 10)
        self.assertEqual(self.phone.sales_count, 0)

        movement = InventoryMovement.objects.get(product=self.phone, type=InventoryMovement.Type.RETURN)
        self.assertEqual(movement.quantity_delta, 2)
        self.assertEqual(movement.reason, 'Order cancelled')
        self.assertEqual(movement.reference_id, str(order.id))

    def test_cancel_reactivates_out_of_stock_product(self):
        order = self.place(items=[{'product_id': self.cable.id, 'quantity': 5}])

        cancel_order(order.id, self.customer)

        self.cable.refresh_from_db()
        self.assertEqual(self.cable.stock, 5)
        self.assertEqual(self.cable.status, Product.Status.ACTIVE)

    def test_cancel_by_elevated_role(self):
        order = self.place()
        cancel_order(order.id, self.manager)
        self.assertEqual(Order.objects.get(pk=order.pk).order_status, OrderStatus.CANCELLED)

    def test_cancel_by_other_customer_forbidden(self):
        order = self.place()
        with self.assertRaises(Forbidden):
            cancel_order(order.id, self.other_customer)

        self.phone.refresh_from_db()
        self.assertEqual(self.phone.stock, 8)

    def test_cancel_twice_rejected(self):
        order = self.place()
        cancelled_at = cancel_order(order.id, self.customer).cancelled_at

        with self.assertRaises(InvalidState):
            cancel_order(order.id, self.customer)

        order.refresh_from_db()
        self.assertEqual(order.cancelled_at, cancelled_at)
        self.phone.refresh_from_db()
        self.assertEqual(self.phone.stock, 10)

    def test_cannot_cancel_processing_order(self):
        order = self.place()
        Order.objects.filter(pk=order.pk).update(order_status=OrderStatus.PROCESSING)

        with self.assertRaises(InvalidState):
            cancel_order(order.id, self.customer)

    def test_cancel_missing_order(self):
        with self.assertRaises(NotFound):
            cancel_order(99999, self.customer)


class OrderStatusUpdateTestCase(OrderFixturesMixin, TestCase):
    """Test cases for update_order_status."""

    def setUp(self):
        self.create_fixtures()
        self.order = self.place()

    def test_invalid_transition_rejected(self):
        with self.assertRaises(InvalidTransition):
            update_order_status(self.order.id, {'order_status': OrderStatus.PROCESSING})

        self.order.refresh_from_db()
        self.assertEqual(self.order.order_status, OrderStatus.PENDING)

    def test_same_status_is_not_validated(self):
        order = update_order_status(self.order.id, {
            'order_status': OrderStatus.PENDING,
            'tracking_number': 'TRK-1',
        })
        self.assertEqual(order.tracking_number, 'TRK-1')

    def test_payment_paid_derives_confirmed(self):
        order = update_order_status(self.order.id, {'payment_status': PaymentStatus.PAID})

        self.assertEqual(order.payment_status, PaymentStatus.PAID)
        self.assertEqual(order.order_status, OrderStatus.CONFIRMED)
        self.assertIsNotNone(order.paid_at)

    def test_derived_status_respects_transition_table(self):
        """
        Given: A paid order that has already shipped
        When: Its payment is partially refunded
        Then: The order stays SHIPPED instead of falling back to PENDING
        """
        update_order_status(self.order.id, {'payment_status': PaymentStatus.PAID})
        for status in (OrderStatus.PROCESSING, OrderStatus.SHIPPED):
            update_order_status(self.order.id, {'order_status': status})

        order = update_order_status(self.order.id, {'payment_status': PaymentStatus.PARTIALLY_REFUNDED})

        self.assertEqual(order.payment_status, PaymentStatus.PARTIALLY_REFUNDED)
        self.assertEqual(order.order_status, OrderStatus.SHIPPED)
        with self.assertRaises(InvalidState):
            cancel_order(order.id, self.customer)

    def test_explicit_order_status_wins_over_derived(self):
        order = update_order_status(self.order.id, {
            'payment_status': PaymentStatus.PAID,
            'order_status': OrderStatus.CANCELLED,
        })

        self.assertEqual(order.payment_status, PaymentStatus.PAID)
        self.assertEqual(order.order_status, OrderStatus.CANCELLED)
        self.assertIsNotNone(order.cancelled_at)

    def test_shipped_twice_keeps_first_timestamp(self):
        for status in (OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED):
            update_order_status(self.order.id, {'order_status': status})
        shipped_at = Order.objects.get(pk=self.order.pk).shipped_at
        self.assertIsNotNone(shipped_at)

        order = update_order_status(self.order.id, {'order_status': OrderStatus.SHIPPED})

        self.assertEqual(order.shipped_at, shipped_at)

    def test_free_form_fields_copied(self):
        order = update_order_status(self.order.id, {
            'fulfillment_status': 'FULFILLED',
            'shipping_carrier': 'EMS',
            'internal_notes': 'fragile',
        })
        self.assertEqual(order.fulfillment_status, 'FULFILLED')
        self.assertEqual(order.shipping_carrier, 'EMS')
        self.assertEqual(order.internal_notes, 'fragile')

    def test_status_change_notification_queued(self):
        with patch('orders.tasks.notify_order_status_change.delay') as mock_notify:
            with self.captureOnCommitCallbacks(execute=True):
                update_order_status(self.order.id, {'order_status': OrderStatus.CONFIRMED})

        mock_notify.assert_called_once_with(self.order.id, OrderStatus.PENDING)


class OrderAPITestCase(OrderFixturesMixin, TestCase):
    """Endpoint tests for /api/orders/."""

    def setUp(self):
        self.create_fixtures()
        self.client = APIClient()

    def test_create_order(self):
        self.client.force_authenticate(self.customer)
        payload = dict(SHIPPING, items=[{'product_id': self.phone.id, 'quantity': 2}])

        response = self.client.post('/api/orders/', payload, format='json')

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body['success'])
        self.assertEqual(body['message'], 'Order created successfully')
        self.assertEqual(body['data']['total'], '255.00')
        self.assertEqual(len(body['data']['items']), 1)

    def test_create_order_insufficient_stock(self):
        self.client.force_authenticate(self.customer)
        payload = dict(SHIPPING, items=[{'product_id': self.cable.id, 'quantity': 50}])

        response = self.client.post('/api/orders/', payload, format='json')

        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertFalse(body['success'])
        self.assertIn('Insufficient stock for Cable', body['message'])

    def test_create_order_validation_errors(self):
        self.client.force_authenticate(self.customer)
        payload = dict(SHIPPING, shipping_address='abc', items=[])

        response = self.client.post('/api/orders/', payload, format='json')

        self.assertEqual(response.status_code, 400)
        fields = {error['field'] for error in response.json()['errors']}
        self.assertIn('shipping_address', fields)
        self.assertIn('items', fields)

    def test_requires_authentication(self):
        response = self.client.get('/api/orders/')
        self.assertIn(response.status_code, (401, 403))
        self.assertFalse(response.json()['success'])

    def test_customers_see_only_their_orders(self):
        own = self.place()
        self.place(user=self.other_customer, items=[{'product_id': self.cable.id, 'quantity': 1}])

        self.client.force_authenticate(self.customer)
        response = self.client.get('/api/orders/')

        data = response.json()['data']
        self.assertEqual(data['pagination']['total'], 1)
        self.assertEqual(data['results'][0]['id'], own.id)

    def test_staff_filter_by_status(self):
        self.place()
        other = self.place(user=self.other_customer, items=[{'product_id': self.cable.id, 'quantity': 1}])
        cancel_order(other.id, self.other_customer)

        self.client.force_authenticate(self.manager)
        response = self.client.get('/api/orders/', {'order_status': 'cancelled'})

        results = response.json()['data']['results']
        self.assertEqual([r['id'] for r in results], [other.id])

    def test_detail_forbidden_for_other_customer(self):
        order = self.place()
        self.client.force_authenticate(self.other_customer)

        response = self.client.get(f'/api/orders/{order.id}/')

        self.assertEqual(response.status_code, 403)

    def test_detail_missing(self):
        self.client.force_authenticate(self.manager)
        response = self.client.get('/api/orders/99999/')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['message'], 'Order not found')

    def test_status_update_requires_admin_or_manager(self):
        order = self.place()
        self.client.force_authenticate(self.customer)

        response = self.client.patch(
            f'/api/orders/{order.id}/status/', {'order_status': 'CONFIRMED'}, format='json'
        )

        self.assertEqual(response.status_code, 403)

    def test_status_update_invalid_transition(self):
        order = self.place()
        self.client.force_authenticate(self.manager)

        response = self.client.patch(
            f'/api/orders/{order.id}/status/', {'order_status': 'DELIVERED'}, format='json'
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'Invalid transition from PENDING to DELIVERED')

    def test_cancel_endpoint(self):
        order = self.place()
        self.client.force_authenticate(self.customer)

        response = self.client.post(f'/api/orders/{order.id}/cancel/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['order_status'], 'CANCELLED')


@skipUnlessDBFeature('has_select_for_update')
class ConcurrentOrderTestCase(TransactionTestCase):
    """
    Test concurrent order handling to verify select_for_update works.
    Uses TransactionTestCase for proper multi-threading support.
    """

    def setUp(self):
        self.category = Category.objects.create(name='Concurrent Test Category')
        self.product = Product.objects.create(
            name='Limited Stock Product',
            price=Decimal('50.00'),
            stock=10,
            category=self.category
        )
        self.users = [
            User.objects.create_user(username=f'buyer{i}', password='pw') for i in range(2)
        ]

    def test_concurrent_orders_no_overselling(self):
        """
        Given: 10 units in stock
        When: Two concurrent orders of 8 units each
        Then: At most one succeeds and stock never goes negative
        """
        results = {}

        def place_order(user):
            try:
                create_order(
                    user_id=user.pk,
                    items=[{'product_id': self.product.id, 'quantity': 8}],
                    **SHIPPING
                )
                results[user.pk] = 'created'
            except InsufficientStock:
                results[user.pk] = 'rejected'
            finally:
                connection.close()

        threads = [threading.Thread(target=place_order, args=(user,)) for user in self.users]
        with patch('orders.services.enqueue'):
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        self.product.refresh_from_db()
        created = sum(1 for r in results.values() if r == 'created')

        self.assertLessEqual(created, 1)
        self.assertEqual(self.product.stock, 10 - 8 * created)
