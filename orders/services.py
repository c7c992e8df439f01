"""
Order Service Layer - Atomic order lifecycle logic.

create_order:
1. Resolve user and products, pre-check stock
2. Lock product rows with select_for_update() and re-check stock
3. Compute totals from the pricing settings
4. Persist order + items, deduct stock, log SALE movements, bump user aggregates
5. Queue the confirmation task once the transaction commits

cancel_order and update_order_status run under the same all-or-nothing
discipline with the order row locked.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import F
from rest_framework.exceptions import ValidationError

from core.deferred import enqueue
from core.exceptions import Forbidden, InsufficientStock, InvalidState, NotFound
from core.permissions import is_elevated
from inventory.models import Product, InventoryMovement
from inventory.services import record_movement
from siteconfig.services import PricingConfig, get_pricing_config
from .models import Order, OrderItem, OrderStatus, PaymentStatus, PaymentMethod
from .state_machine import (
    apply_status_timestamps,
    can_transition_order,
    order_status_from_payment,
    validate_order_transition,
    validate_payment_transition,
)

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')
ORDER_NUMBER_PREFIX = 'ORD-'
ORDER_NUMBER_WIDTH = 6

UPDATABLE_ORDER_FIELDS = ('fulfillment_status', 'tracking_number', 'shipping_carrier', 'internal_notes')


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax: Decimal
    shipping_cost: Decimal
    discount: Decimal
    total: Decimal


def to_money(value) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_totals(subtotal: Decimal, pricing: PricingConfig, discount: Decimal = Decimal('0')) -> OrderTotals:
    """
    Compute order amounts from the item subtotal.

    Shipping is free only when the subtotal strictly exceeds the threshold.
    """
    subtotal = to_money(subtotal)
    tax = to_money(subtotal * pricing.tax_rate)
    shipping_cost = Decimal('0.00') if subtotal > pricing.free_shipping_threshold else to_money(pricing.default_shipping_cost)
    discount = to_money(discount)
    return OrderTotals(
        subtotal=subtotal,
        tax=tax,
        shipping_cost=shipping_cost,
        discount=discount,
        total=subtotal + tax + shipping_cost - discount,
    )


def generate_order_number() -> str:
    """Next sequential order number, e.g. ORD-000042."""
    sequence = Order.objects.count() + 1
    return f"{ORDER_NUMBER_PREFIX}{sequence:0{ORDER_NUMBER_WIDTH}d}"


def validate_order_items(items: List[Dict]) -> None:
    """
    Validate order items structure.

    Args:
        items: List of dicts with 'product_id' and 'quantity'

    Raises:
        ValidationError: Per-field errors keyed by item index
    """
    if not items:
        raise ValidationError({'items': ['Order must contain at least one item']})

    errors = {}
    seen_products = set()
    for idx, item in enumerate(items):
        if 'product_id' not in item:
            errors[f'items.{idx}.product_id'] = ['This field is required.']
            continue
        quantity = item.get('quantity')
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            errors[f'items.{idx}.quantity'] = ['Quantity must be a positive integer.']

        product_id = item['product_id']
        if product_id in seen_products:
            errors[f'items.{idx}.product_id'] = [f'Duplicate product_id {product_id}.']
        seen_products.add(product_id)

    if errors:
        raise ValidationError(errors)


def _check_stock(items: List[Dict], products: Dict[int, Product]) -> None:
    for item in items:
        product = products[item['product_id']]
        if product.track_inventory and product.stock < item['quantity']:
            raise InsufficientStock(product.name, product.stock, item['quantity'])


def create_order(
    user_id: int,
    items: List[Dict],
    shipping_address: str,
    shipping_city: str,
    shipping_country: str,
    payment_method: str,
    shipping_postal: str = '',
    customer_notes: str = '',
) -> Order:
    """
    Create an order, its items, stock deductions and movements atomically.

    Args:
        user_id: ID of the ordering user
        items: List of dicts with 'product_id' and 'quantity'
        shipping_*: Shipping address fields (copied to billing)
        payment_method: One of PaymentMethod
        customer_notes: Optional free text

    Returns:
        The persisted Order

    Raises:
        ValidationError: If items or payment method are malformed
        NotFound: If the user or any product does not exist
        InsufficientStock: If any tracked product lacks stock
    """
    validate_order_items(items)
    if payment_method not in PaymentMethod.values:
        raise ValidationError({'payment_method': [f'"{payment_method}" is not a valid choice.']})

    User = get_user_model()
    try:
        user = User.objects.get(pk=user_id)
    except User.DoesNotExist:
        raise NotFound("User not found")

    product_ids = [item['product_id'] for item in items]
    products = Product.objects.in_bulk(product_ids)
    if len(products) != len(product_ids):
        raise NotFound("Some products not found")

    # Cheap pre-check; repeated under lock below
    _check_stock(items, products)

    pricing = get_pricing_config()

    with transaction.atomic():
        # Lock in id order to avoid deadlocks between concurrent orders
        locked = {
            p.id: p for p in Product.objects.select_for_update().filter(id__in=product_ids).order_by('id')
        }
        if len(locked) != len(product_ids):
            raise NotFound("Some products not found")
        _check_stock(items, locked)

        subtotal = Decimal('0.00')
        order_items = []
        for item in items:
            product = locked[item['product_id']]
            line_subtotal = to_money(product.price * item['quantity'])
            subtotal += line_subtotal
            order_items.append(OrderItem(
                product=product,
                product_name=product.name,
                product_sku=product.sku or '',
                product_image=product.thumbnail,
                price=product.price,
                quantity=item['quantity'],
                subtotal=line_subtotal,
            ))

        totals = calculate_totals(subtotal, pricing)

        order = Order.objects.create(
            order_number=generate_order_number(),
            user=user,
            customer_name=user.display_name,
            customer_email=user.email,
            customer_phone=user.phone,
            shipping_address=shipping_address,
            shipping_city=shipping_city,
            shipping_country=shipping_country,
            shipping_postal=shipping_postal or '',
            billing_address=shipping_address,
            billing_city=shipping_city,
            billing_country=shipping_country,
            billing_postal=shipping_postal or '',
            subtotal=totals.subtotal,
            tax=totals.tax,
            shipping_cost=totals.shipping_cost,
            discount=totals.discount,
            total=totals.total,
            order_status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            payment_method=payment_method,
            customer_notes=customer_notes or '',
        )

        for order_item in order_items:
            order_item.order = order
        OrderItem.objects.bulk_create(order_items)

        tracked_ids = []
        for item in items:
            product = locked[item['product_id']]
            if not product.track_inventory:
                continue
            quantity = item['quantity']

            product.stock -= quantity
            product.sales_count += quantity
            if product.stock == 0:
                product.status = Product.Status.OUT_OF_STOCK
            product.save(update_fields=['stock', 'sales_count', 'status', 'updated_at'])

            record_movement(
                product,
                quantity_delta=-quantity,
                movement_type=InventoryMovement.Type.SALE,
                reason=f"Order {order.order_number}",
                reference_id=order.id,
                user=user,
            )
            tracked_ids.append(product.id)

            logger.debug(
                f"Order {order.order_number}: deducted {quantity} of {product.name}, "
                f"remaining stock: {product.stock}"
            )

        User.objects.filter(pk=user.pk).update(
            total_orders=F('total_orders') + 1,
            total_spent=F('total_spent') + totals.total,
        )

        transaction.on_commit(lambda: _queue_order_created(order.id, tracked_ids))

    logger.info(
        f"Order {order.order_number} created for user #{user.pk}: "
        f"{len(order_items)} items, total {totals.total}"
    )
    return order


def _queue_order_created(order_id: int, tracked_product_ids: List[int]) -> None:
    from notifications.tasks import notify_stock_levels
    from .tasks import send_order_confirmation

    enqueue(send_order_confirmation, order_id)
    if tracked_product_ids:
        enqueue(notify_stock_levels, tracked_product_ids)


def _get_locked_order(order_id: int) -> Order:
    try:
        return Order.objects.select_for_update().get(pk=order_id)
    except Order.DoesNotExist:
        raise NotFound("Order not found")


def cancel_order(order_id: int, actor) -> Order:
    """
    Cancel a PENDING or CONFIRMED order and return its stock.

    Raises:
        NotFound: If the order does not exist
        Forbidden: If the actor neither owns the order nor holds an elevated role
        InvalidState: If the order is past the cancellable stages
    """
    with transaction.atomic():
        order = _get_locked_order(order_id)

        if order.user_id != actor.pk and not is_elevated(actor):
            raise Forbidden("Forbidden")
        if not order.is_cancellable:
            raise InvalidState("Cannot cancel order in current status")

        items = list(order.items.all())
        products = {
            p.id: p for p in Product.objects.select_for_update().filter(
                id__in=[item.product_id for item in items]
            ).order_by('id')
        }

        for item in items:
            product = products[item.product_id]
            if not product.track_inventory:
                continue

            product.stock += item.quantity
            product.sales_count = max(0, product.sales_count - item.quantity)
            if product.status == Product.Status.OUT_OF_STOCK and product.stock > 0:
                product.status = Product.Status.ACTIVE
            product.save(update_fields=['stock', 'sales_count', 'status', 'updated_at'])

            record_movement(
                product,
                quantity_delta=item.quantity,
                movement_type=InventoryMovement.Type.RETURN,
                reason="Order cancelled",
                reference_id=order.id,
                user=actor,
            )

        previous_status = order.order_status
        order.order_status = OrderStatus.CANCELLED
        apply_status_timestamps(order, order_status=OrderStatus.CANCELLED)
        order.save(update_fields=['order_status', 'cancelled_at', 'updated_at'])

        transaction.on_commit(lambda: _queue_status_change(order.id, previous_status))

    logger.info(f"Order {order.order_number} cancelled by user #{actor.pk}")
    return order


def update_order_status(order_id: int, changes: Dict) -> Order:
    """
    Apply a staff status update.

    Transitions are validated only for statuses that actually change. When a
    payment status is given without an order status, the order status is
    derived from it, but only applied when the transition table allows it;
    an explicit order status always wins.

    Args:
        order_id: Order to update
        changes: Any of order_status, payment_status, fulfillment_status,
            tracking_number, shipping_carrier, internal_notes

    Raises:
        NotFound: If the order does not exist
        InvalidTransition: If a requested transition is not allowed
    """
    new_order_status = changes.get('order_status')
    new_payment_status = changes.get('payment_status')

    with transaction.atomic():
        order = _get_locked_order(order_id)
        previous_status = order.order_status

        if new_order_status and new_order_status != order.order_status:
            validate_order_transition(order.order_status, new_order_status)
        if new_payment_status and new_payment_status != order.payment_status:
            validate_payment_transition(order.payment_status, new_payment_status)

        if new_payment_status and not new_order_status:
            # A derived status never moves the order off the transition table
            derived = order_status_from_payment(new_payment_status)
            if can_transition_order(order.order_status, derived):
                new_order_status = derived

        if new_order_status:
            order.order_status = new_order_status
        if new_payment_status:
            order.payment_status = new_payment_status

        for field in UPDATABLE_ORDER_FIELDS:
            if field in changes:
                setattr(order, field, changes[field])

        apply_status_timestamps(order, order_status=new_order_status, payment_status=new_payment_status)
        order.save()

        if order.order_status != previous_status:
            transaction.on_commit(lambda: _queue_status_change(order.id, previous_status))

    logger.info(
        f"Order {order.order_number} status updated: "
        f"{previous_status} -> {order.order_status}, payment {order.payment_status}"
    )
    return order


def _queue_status_change(order_id: int, previous_status: str) -> None:
    from .tasks import notify_order_status_change

    enqueue(notify_order_status_change, order_id, previous_status)


def mark_order_paid(order: Order) -> Order:
    """
    Record a successful payment on an order.

    Call inside the caller's transaction with the order row locked. The order
    moves to CONFIRMED only when that is a legal transition from its current
    status.
    """
    order.payment_status = PaymentStatus.PAID
    if can_transition_order(order.order_status, OrderStatus.CONFIRMED):
        order.order_status = OrderStatus.CONFIRMED
    apply_status_timestamps(order, payment_status=PaymentStatus.PAID)
    order.save(update_fields=['payment_status', 'order_status', 'paid_at', 'updated_at'])
    return order


def visible_orders(user, queryset=None):
    """Orders the user may see: customers only their own."""
    if queryset is None:
        queryset = Order.objects.all()
    if is_elevated(user):
        return queryset
    return queryset.filter(user=user)


def get_order_for_user(order_id: int, user, queryset=None) -> Order:
    if queryset is None:
        queryset = Order.objects.all()
    try:
        order = queryset.get(pk=order_id)
    except Order.DoesNotExist:
        raise NotFound("Order not found")
    if order.user_id != user.pk and not is_elevated(user):
        raise Forbidden("Forbidden")
    return order
