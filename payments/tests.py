"""
Tests for payment workflows and the provider registry.
"""
import random
import time
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.exceptions import ValidationError
from rest_framework.test import APIClient

from core.exceptions import Forbidden, InvalidState, NotFound
from orders.models import Order, OrderStatus, PaymentStatus, PaymentMethod
from payments import services
from payments.models import Payment
from payments.providers import InitiateResult, ProviderRegistry, VerifyResult
from payments.providers.mock import MockPaymentProvider
from siteconfig.models import Setting

User = get_user_model()


class StubProvider:
    """Provider with scripted outcomes that records its calls."""

    def __init__(self, initiate_status='PENDING', verify_success=True, redirect_url=None):
        self.initiate_status = initiate_status
        self.verify_success = verify_success
        self.redirect_url = redirect_url
        self.verified = []

    def initiate(self, order_id, amount, return_url=None, cancel_url=None):
        return InitiateResult(
            transaction_id=f'STUB-{order_id}',
            status=self.initiate_status,
            redirect_url=self.redirect_url,
        )

    def verify(self, transaction_id, raw_callback=None):
        self.verified.append((transaction_id, raw_callback))
        return VerifyResult(success=self.verify_success, status='PAID' if self.verify_success else 'FAILED')


class SlowProvider(StubProvider):

    def initiate(self, order_id, amount, return_url=None, cancel_url=None):
        time.sleep(0.5)
        return super().initiate(order_id, amount, return_url, cancel_url)


class BrokenProvider(StubProvider):

    def initiate(self, order_id, amount, return_url=None, cancel_url=None):
        raise ConnectionError('gateway unreachable')


def make_order(user, **fields):
    defaults = {
        'order_number': f'ORD-{Order.objects.count() + 1:06d}',
        'user': user,
        'customer_name': user.username,
        'shipping_address': 'Bole Road 12',
        'shipping_city': 'Addis Ababa',
        'shipping_country': 'Ethiopia',
        'subtotal': Decimal('200.00'),
        'tax': Decimal('30.00'),
        'shipping_cost': Decimal('25.00'),
        'total': Decimal('255.00'),
        'payment_method': PaymentMethod.CHAPA,
    }
    defaults.update(fields)
    return Order.objects.create(**defaults)


class ProviderRegistryTestCase(TestCase):

    def test_from_settings_builds_configured_backends(self):
        registry = ProviderRegistry.from_settings({
            'CHAPA': {
                'BACKEND': 'payments.providers.mock.MockPaymentProvider',
                'OPTIONS': {'failure_rate': 0.5},
            },
        })

        provider = registry.get('CHAPA')
        self.assertIsInstance(provider, MockPaymentProvider)
        self.assertEqual(provider.failure_rate, 0.5)
        self.assertIsNone(registry.get('CASH_ON_DELIVERY'))

    def test_app_registry_covers_gateway_methods(self):
        registry = services.get_registry()
        for method in ('CHAPA', 'TELEBIRR', 'SANTIM_PAY'):
            self.assertIn(method, registry)
        self.assertNotIn('BANK_TRANSFER', registry)

    def test_mock_provider_outcomes(self):
        provider = MockPaymentProvider(initiate_delay=0, verify_delay=0, failure_rate=0.05, rng=random.Random(1))

        result = provider.initiate(1, Decimal('10.00'))
        self.assertTrue(result.transaction_id.startswith('MOCK-'))
        self.assertIn(result.status, ('PENDING', 'FAILED'))

        self.assertEqual(provider.verify(result.transaction_id), VerifyResult(success=True, status='PAID'))

    def test_mock_provider_failure_rate_bounds(self):
        always = MockPaymentProvider(initiate_delay=0, failure_rate=1.0)
        never = MockPaymentProvider(initiate_delay=0, failure_rate=0.0)

        self.assertEqual(always.initiate(1, Decimal('1.00')).status, 'FAILED')
        self.assertEqual(never.initiate(1, Decimal('1.00')).status, 'PENDING')


class ProcessPaymentTestCase(TestCase):

    def setUp(self):
        self.customer = User.objects.create_user(username='abebe', password='pw')
        self.other = User.objects.create_user(username='sara', password='pw')
        self.order = make_order(self.customer)
        self.provider = StubProvider()
        self.registry = ProviderRegistry({'CHAPA': self.provider})

    def process(self, method='CHAPA', user=None, order=None):
        return services.process_payment(
            user or self.customer, (order or self.order).id, method, Decimal('255.00'), registry=self.registry
        )

    def test_successful_gateway_payment(self):
        payment, success = self.process()

        self.assertTrue(success)
        self.assertEqual(payment.status, PaymentStatus.PAID)
        self.assertEqual(payment.transaction_id, f'STUB-{self.order.id}')
        self.assertIsNotNone(payment.processed_at)

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.PAID)
        self.assertEqual(self.order.order_status, OrderStatus.CONFIRMED)
        self.assertIsNotNone(self.order.paid_at)

    def test_failed_initiation_records_failed_payment(self):
        self.provider.initiate_status = 'FAILED'

        payment, success = self.process()

        self.assertFalse(success)
        self.assertEqual(payment.status, PaymentStatus.FAILED)
        self.assertEqual(self.provider.verified, [])
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.PENDING)
        self.assertIsNone(self.order.paid_at)

    def test_cash_on_delivery_bypasses_provider(self):
        payment, success = self.process(method='CASH_ON_DELIVERY')

        self.assertTrue(success)
        self.assertTrue(payment.transaction_id.startswith('COD-'))
        self.assertEqual(self.provider.verified, [])

    def test_paid_order_keeps_later_status(self):
        Order.objects.filter(pk=self.order.pk).update(order_status=OrderStatus.PROCESSING)

        self.process(method='BANK_TRANSFER')

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.PAID)
        self.assertEqual(self.order.order_status, OrderStatus.PROCESSING)

    def test_already_paid(self):
        self.process()
        with self.assertRaises(InvalidState):
            self.process()
        self.assertEqual(Payment.objects.count(), 1)

    def test_cancelled_order_cannot_be_paid(self):
        """
        Given: A cancelled order
        When: Paying for it on delivery
        Then: The payment is refused and nothing is recorded
        """
        Order.objects.filter(pk=self.order.pk).update(order_status=OrderStatus.CANCELLED)

        with self.assertRaises(InvalidState):
            self.process(method='CASH_ON_DELIVERY')

        self.assertEqual(Payment.objects.count(), 0)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.PENDING)

    def test_refunded_order_cannot_be_paid(self):
        Order.objects.filter(pk=self.order.pk).update(order_status=OrderStatus.REFUNDED)

        with self.assertRaises(InvalidState):
            self.process()
        self.assertEqual(self.provider.verified, [])

    def test_other_users_order(self):
        with self.assertRaises(Forbidden):
            self.process(user=self.other)

    def test_missing_order(self):
        with self.assertRaises(NotFound):
            services.process_payment(self.customer, 99999, 'CHAPA', Decimal('1.00'), registry=self.registry)

    def test_unconfigured_method(self):
        with self.assertRaises(ValidationError):
            self.process(method='TELEBIRR')

    @override_settings(PAYMENT_PROVIDER_TIMEOUT=0.05)
    def test_provider_timeout_counts_as_failure(self):
        self.registry.register('CHAPA', SlowProvider())

        payment, success = self.process()

        self.assertFalse(success)
        self.assertEqual(payment.status, PaymentStatus.FAILED)

    def test_provider_error_counts_as_failure(self):
        self.registry.register('CHAPA', BrokenProvider())

        payment, success = self.process()

        self.assertFalse(success)
        self.assertEqual(payment.status, PaymentStatus.FAILED)

    def test_outcome_notification_queued(self):
        with patch('notifications.tasks.create_notification.delay') as mock_notify:
            with self.captureOnCommitCallbacks(execute=True):
                payment, _ = self.process()

        mock_notify.assert_called_once()
        args = mock_notify.call_args[0]
        self.assertEqual(args[0], self.customer.id)
        self.assertEqual(args[1], 'PAYMENT_RECEIVED')
        self.assertEqual(args[4], {'order_id': self.order.id, 'payment_id': payment.id})


class InitiateAndWebhookTestCase(TestCase):

    def setUp(self):
        self.customer = User.objects.create_user(username='abebe', password='pw')
        self.order = make_order(self.customer)
        self.provider = StubProvider(redirect_url='https://pay.example.com/checkout')
        self.registry = ProviderRegistry({'CHAPA': self.provider})

    def initiate(self, method='CHAPA'):
        return services.initiate_payment(
            self.customer, self.order.id, method, Decimal('255.00'),
            return_url='https://shop.example.com/done', registry=self.registry
        )

    def test_initiate_creates_pending_payment(self):
        result = self.initiate()

        self.assertEqual(result['status'], 'PENDING')
        self.assertEqual(result['redirect_url'], 'https://pay.example.com/checkout')
        payment = Payment.objects.get(pk=result['payment_id'])
        self.assertEqual(payment.status, PaymentStatus.PENDING)
        self.assertEqual(payment.gateway_response['transaction_id'], result['transaction_id'])

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.PENDING)

    def test_initiate_offline_method_pays_immediately(self):
        result = self.initiate(method='CASH_ON_DELIVERY')

        self.assertEqual(result['status'], 'PAID')
        self.order.refresh_from_db()
        self.assertTrue(self.order.is_paid)

    def test_webhook_confirms_payment(self):
        result = self.initiate()
        payload = {'tx_ref': result['transaction_id'], 'status': 'success'}

        outcome = services.handle_webhook('Chapa', payload, registry=self.registry)

        self.assertEqual(outcome, {'processed': True, 'verified': True})
        self.assertEqual(self.provider.verified, [(result['transaction_id'], payload)])
        payment = Payment.objects.get(pk=result['payment_id'])
        self.assertEqual(payment.status, PaymentStatus.PAID)
        self.order.refresh_from_db()
        self.assertEqual(self.order.order_status, OrderStatus.CONFIRMED)

    def test_webhook_replay_is_already_processed(self):
        result = self.initiate()
        services.handle_webhook('chapa', {'transactionId': result['transaction_id']}, registry=self.registry)

        outcome = services.handle_webhook('chapa', {'transactionId': result['transaction_id']}, registry=self.registry)

        self.assertEqual(outcome, {'processed': False})
        self.assertEqual(len(self.provider.verified), 1)

    def test_webhook_from_other_provider_is_ignored(self):
        result = self.initiate()
        self.registry.register('TELEBIRR', StubProvider())

        outcome = services.handle_webhook('telebirr', {'reference': result['transaction_id']}, registry=self.registry)

        self.assertEqual(outcome, {'processed': False})
        self.assertEqual(Payment.objects.get(pk=result['payment_id']).status, PaymentStatus.PENDING)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.PENDING)

    def test_webhook_unknown_transaction(self):
        outcome = services.handle_webhook('chapa', {'reference': 'nope'}, registry=self.registry)
        self.assertEqual(outcome, {'processed': False})

    def test_webhook_unsuccessful_verification(self):
        result = self.initiate()
        self.provider.verify_success = False

        outcome = services.handle_webhook('chapa', {'reference': result['transaction_id']}, registry=self.registry)

        self.assertEqual(outcome, {'processed': True, 'verified': False})
        self.assertEqual(Payment.objects.get(pk=result['payment_id']).status, PaymentStatus.PENDING)

    def test_webhook_unknown_provider(self):
        with self.assertRaises(ValidationError):
            services.handle_webhook('paypal', {'transactionId': 'x'}, registry=self.registry)

    def test_webhook_missing_transaction_id(self):
        with self.assertRaises(ValidationError):
            services.handle_webhook('chapa', {'status': 'success'}, registry=self.registry)


class PaymentMethodsTestCase(TestCase):

    def test_default_methods(self):
        methods = services.payment_methods()
        self.assertEqual([m['method'] for m in methods], PaymentMethod.values)

    def test_configured_methods(self):
        Setting.objects.create(
            key='payment_methods',
            value='[{"method": "CHAPA", "name": "Chapa", "enabled": true}]',
            type=Setting.Type.JSON,
            category='payment',
        )
        self.assertEqual(services.payment_methods(), [{'method': 'CHAPA', 'name': 'Chapa', 'enabled': True}])

    def test_malformed_setting_falls_back(self):
        Setting.objects.create(key='payment_methods', value='{oops', type=Setting.Type.JSON)
        self.assertEqual(services.payment_methods(), services.DEFAULT_PAYMENT_METHODS)


@override_settings(RATE_LIMIT_ENABLED=False)
class PaymentAPITestCase(TestCase):
    """Endpoint tests for /api/payments/."""

    def setUp(self):
        self.client = APIClient()
        self.customer = User.objects.create_user(username='abebe', password='pw')
        self.other = User.objects.create_user(username='sara', password='pw')
        self.order = make_order(self.customer)

    def test_methods_endpoint(self):
        self.client.force_authenticate(self.customer)
        response = self.client.get('/api/payments/methods/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()['data']), 5)

    def test_process_cash_on_delivery(self):
        self.client.force_authenticate(self.customer)

        response = self.client.post('/api/payments/process/', {
            'order_id': self.order.id, 'method': 'CASH_ON_DELIVERY', 'amount': '255.00',
        }, format='json')

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body['success'])
        self.assertEqual(body['message'], 'Payment processed successfully')
        self.assertEqual(body['data']['status'], 'PAID')

    def test_process_rejects_non_positive_amount(self):
        self.client.force_authenticate(self.customer)

        response = self.client.post('/api/payments/process/', {
            'order_id': self.order.id, 'method': 'CHAPA', 'amount': '0',
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['errors'][0]['field'], 'amount')

    def test_webhook_needs_no_authentication(self):
        response = self.client.post('/api/payments/webhook/chapa/', {'transactionId': 'unknown'}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'success': True, 'message': 'Already processed'})

    def test_webhook_unknown_provider(self):
        response = self.client.post('/api/payments/webhook/paypal/', {'transactionId': 'x'}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_payment_detail_and_verify(self):
        payment = Payment.objects.create(
            order=self.order, amount=Decimal('255.00'), method='CHAPA',
            status=PaymentStatus.PAID, transaction_id='MOCK-1-abc'
        )
        self.client.force_authenticate(self.customer)

        detail = self.client.get(f'/api/payments/{payment.id}/')
        self.assertEqual(detail.json()['data']['order']['order_number'], self.order.order_number)

        verify = self.client.post(f'/api/payments/{payment.id}/verify/')
        self.assertEqual(verify.json()['data'], {
            'payment_id': payment.id,
            'status': 'PAID',
            'verified': True,
            'transaction_id': 'MOCK-1-abc',
        })

    def test_payment_detail_forbidden_for_other_customer(self):
        payment = Payment.objects.create(order=self.order, amount=Decimal('255.00'), method='CHAPA')
        self.client.force_authenticate(self.other)

        response = self.client.get(f'/api/payments/{payment.id}/')

        self.assertEqual(response.status_code, 403)
