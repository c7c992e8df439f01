"""
Payment Service Layer.

Provider calls are made outside any database transaction and bounded by
PAYMENT_PROVIDER_TIMEOUT. The resulting Payment row and the order update are
then written together under a lock on the order row.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as ProviderTimeout
from decimal import Decimal
from typing import Dict, Optional, Tuple

from django.apps import apps
from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from core.deferred import enqueue_on_commit
from core.exceptions import Forbidden, InvalidState, NotFound, StorefrontError
from core.permissions import is_elevated
from orders.models import Order, OrderStatus, PaymentMethod, PaymentStatus
from orders.services import mark_order_paid
from siteconfig.services import get_value
from .models import Payment
from .providers import InitiateResult, ProviderRegistry, VerifyResult

logger = logging.getLogger(__name__)

OFFLINE_METHODS = (PaymentMethod.CASH_ON_DELIVERY, PaymentMethod.BANK_TRANSFER)

WEBHOOK_PROVIDERS = {
    'chapa': PaymentMethod.CHAPA,
    'telebirr': PaymentMethod.TELEBIRR,
    'santim_pay': PaymentMethod.SANTIM_PAY,
}

WEBHOOK_TRANSACTION_KEYS = ('transactionId', 'reference', 'tx_ref')

DEFAULT_PAYMENT_METHODS = [
    {'method': PaymentMethod.CHAPA.value, 'name': 'Chapa', 'enabled': True},
    {'method': PaymentMethod.TELEBIRR.value, 'name': 'Telebirr', 'enabled': True},
    {'method': PaymentMethod.SANTIM_PAY.value, 'name': 'Santim Pay', 'enabled': True},
    {'method': PaymentMethod.CASH_ON_DELIVERY.value, 'name': 'Cash on Delivery', 'enabled': True},
    {'method': PaymentMethod.BANK_TRANSFER.value, 'name': 'Bank Transfer', 'enabled': True},
]


def get_registry() -> ProviderRegistry:
    return apps.get_app_config('payments').registry


def payment_methods():
    """Configured payment methods, or the built-in list."""
    configured = get_value('payment_methods')
    if isinstance(configured, list) and configured:
        return configured
    return DEFAULT_PAYMENT_METHODS


def offline_transaction_id() -> str:
    return f"COD-{int(time.time() * 1000)}"


def call_with_timeout(func, *args, **kwargs):
    """
    Run a provider call on a worker thread, waiting at most
    PAYMENT_PROVIDER_TIMEOUT seconds for the result.

    Raises:
        concurrent.futures.TimeoutError: If the call does not finish in time
    """
    pool = ThreadPoolExecutor(max_workers=1)
    future = pool.submit(func, *args, **kwargs)
    try:
        return future.result(timeout=settings.PAYMENT_PROVIDER_TIMEOUT)
    finally:
        # Don't wait for a hung provider
        pool.shutdown(wait=False)


def initiate_with_provider(provider, order_id, amount, return_url=None, cancel_url=None) -> InitiateResult:
    """Initiate with the provider; timeouts and errors count as FAILED."""
    try:
        return call_with_timeout(provider.initiate, order_id, amount, return_url, cancel_url)
    except ProviderTimeout:
        logger.warning(f"Payment initiation timed out for order #{order_id}")
    except Exception as e:
        logger.exception(f"Payment initiation failed for order #{order_id}: {e}")
    return InitiateResult(transaction_id='', status=PaymentStatus.FAILED.value)


def verify_with_provider(provider, transaction_id, raw_callback=None) -> VerifyResult:
    """Verify with the provider; timeouts and errors count as unsuccessful."""
    try:
        return call_with_timeout(provider.verify, transaction_id, raw_callback)
    except ProviderTimeout:
        logger.warning(f"Payment verification timed out for {transaction_id}")
    except Exception as e:
        logger.exception(f"Payment verification failed for {transaction_id}: {e}")
    return VerifyResult(success=False, status=PaymentStatus.FAILED.value)


def _get_payable_order(user, order_id: int) -> Order:
    try:
        order = Order.objects.get(pk=order_id)
    except Order.DoesNotExist:
        raise NotFound("Order not found")
    if order.user_id != user.pk:
        raise Forbidden("Forbidden")
    _assert_payable(order)
    return order


def _assert_payable(order: Order) -> None:
    if order.payment_status == PaymentStatus.PAID:
        raise InvalidState("Order already paid")
    if order.order_status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
        raise InvalidState(f"Cannot pay for a {order.order_status.lower()} order")


def _resolve_provider(method: str, registry: Optional[ProviderRegistry]):
    registry = registry or get_registry()
    provider = registry.get(method) if registry is not None else None
    if provider is None:
        raise ValidationError({'method': ['Invalid payment method']})
    return provider


def _queue_payment_notification(order: Order, payment: Payment) -> None:
    from notifications.tasks import create_notification

    if payment.status == PaymentStatus.PAID:
        notification_type, title = 'PAYMENT_RECEIVED', 'Payment received'
        message = f"Payment of {payment.amount} for order {order.order_number} received."
    else:
        notification_type, title = 'PAYMENT_FAILED', 'Payment failed'
        message = f"Payment for order {order.order_number} failed. Please try again."
    enqueue_on_commit(
        create_notification,
        order.user_id,
        notification_type,
        title,
        message,
        {'order_id': order.id, 'payment_id': payment.id},
    )


def _record_payment(order_id: int, method: str, amount: Decimal, status: str,
                    transaction_id: Optional[str], gateway_response: Dict) -> Payment:
    """
    Write the Payment row and, for a PAID payment, mark the order paid.
    Runs in one transaction with the order row locked.
    """
    paid = status == PaymentStatus.PAID
    with transaction.atomic():
        order = Order.objects.select_for_update().get(pk=order_id)
        if paid:
            _assert_payable(order)

        payment = Payment.objects.create(
            order=order,
            amount=amount,
            method=method,
            status=status,
            transaction_id=transaction_id or None,
            gateway_response=gateway_response,
            processed_at=timezone.now() if paid else None,
        )
        if paid:
            mark_order_paid(order)
        if status != PaymentStatus.PENDING:
            _queue_payment_notification(order, payment)

    return payment


def process_payment(user, order_id: int, method: str, amount: Decimal,
                    registry: Optional[ProviderRegistry] = None) -> Tuple[Payment, bool]:
    """
    Charge an order in one step: initiate then verify.

    Returns:
        (payment, success)

    Raises:
        NotFound: If the order does not exist
        Forbidden: If the order belongs to someone else
        InvalidState: If the order is already paid
        ValidationError: If no provider handles the method
    """
    order = _get_payable_order(user, order_id)

    transaction_id = None
    if method in OFFLINE_METHODS:
        success = True
        transaction_id = offline_transaction_id()
    else:
        provider = _resolve_provider(method, registry)
        init = initiate_with_provider(provider, order.id, amount)
        if init.status == PaymentStatus.FAILED:
            success = False
        else:
            transaction_id = init.transaction_id
            success = verify_with_provider(provider, transaction_id).success

    payment = _record_payment(
        order.id,
        method,
        amount,
        PaymentStatus.PAID if success else PaymentStatus.FAILED,
        transaction_id,
        {'transaction_id': transaction_id},
    )

    if success:
        logger.info(f"Payment #{payment.id} for order {order.order_number} succeeded via {method}")
    else:
        logger.warning(f"Payment #{payment.id} for order {order.order_number} failed via {method}")
    return payment, success


def initiate_payment(user, order_id: int, method: str, amount: Decimal,
                     return_url: Optional[str] = None, cancel_url: Optional[str] = None,
                     registry: Optional[ProviderRegistry] = None) -> Dict:
    """
    Start a gateway payment that completes later through the webhook.

    Offline methods are recorded as PAID immediately.
    """
    order = _get_payable_order(user, order_id)

    if method in OFFLINE_METHODS:
        payment = _record_payment(
            order.id, method, amount, PaymentStatus.PAID, offline_transaction_id(), {}
        )
        logger.info(f"Offline payment #{payment.id} recorded for order {order.order_number}")
        return {'payment_id': payment.id, 'status': PaymentStatus.PAID.value}

    provider = _resolve_provider(method, registry)
    init = initiate_with_provider(provider, order.id, amount, return_url, cancel_url)

    status = PaymentStatus.FAILED if init.status == PaymentStatus.FAILED else PaymentStatus.PENDING
    payment = _record_payment(order.id, method, amount, status, init.transaction_id, init.as_dict())

    logger.info(f"Payment #{payment.id} initiated for order {order.order_number}: {init.status}")
    return {
        'payment_id': payment.id,
        'transaction_id': init.transaction_id,
        'status': init.status,
        'redirect_url': init.redirect_url,
    }


def handle_webhook(provider_slug: str, payload: Dict,
                   registry: Optional[ProviderRegistry] = None) -> Dict:
    """
    Confirm a pending payment from a gateway callback.

    Returns:
        {'processed': False} for unknown or already paid transactions, or ones
        made with a different provider,
        otherwise {'processed': True, 'verified': bool}
    """
    method = WEBHOOK_PROVIDERS.get((provider_slug or '').lower())
    if method is None:
        raise ValidationError({'provider': ['Unknown provider']})

    payload = payload if isinstance(payload, dict) else {}
    transaction_id = next(
        (payload[key] for key in WEBHOOK_TRANSACTION_KEYS if payload.get(key)), None
    )
    if not transaction_id:
        raise ValidationError({'transactionId': ['Missing transactionId']})
    transaction_id = str(transaction_id)

    payment = Payment.objects.filter(transaction_id=transaction_id, method=method).first()
    if payment is None or payment.status == PaymentStatus.PAID:
        return {'processed': False}

    registry = registry or get_registry()
    provider = registry.get(method) if registry is not None else None
    if provider is None:
        raise StorefrontError("Provider not configured")

    verified = verify_with_provider(provider, transaction_id, payload)
    if not verified.success:
        logger.warning(f"Webhook verification failed for {transaction_id}")
        return {'processed': True, 'verified': False}

    with transaction.atomic():
        payment = Payment.objects.select_for_update().get(pk=payment.pk)
        if payment.status == PaymentStatus.PAID:
            return {'processed': False}
        order = Order.objects.select_for_update().get(pk=payment.order_id)

        payment.status = PaymentStatus.PAID
        payment.processed_at = timezone.now()
        payment.save(update_fields=['status', 'processed_at', 'updated_at'])
        mark_order_paid(order)
        _queue_payment_notification(order, payment)

    logger.info(f"Webhook confirmed payment #{payment.id} for order {order.order_number}")
    return {'processed': True, 'verified': True}


def get_payment_for_user(payment_id: int, user) -> Payment:
    try:
        payment = Payment.objects.select_related('order').get(pk=payment_id)
    except Payment.DoesNotExist:
        raise NotFound("Payment not found")
    if payment.order.user_id != user.pk and not is_elevated(user):
        raise Forbidden("Forbidden")
    return payment


def verify_payment(payment_id: int, user) -> Dict:
    """Stored status of a payment and whether it counts as verified."""
    payment = get_payment_for_user(payment_id, user)
    return {
        'payment_id': payment.id,
        'status': payment.status,
        'verified': payment.is_verified,
        'transaction_id': payment.transaction_id,
    }
