"""
Order Models - Order and OrderItem entities with status tracking.

An order carries three independent statuses:
    - order_status: fulfilment lifecycle, guarded by orders.state_machine
    - payment_status: payment lifecycle, guarded by orders.state_machine
    - fulfillment_status: shipment completeness, not guarded
"""
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from inventory.models import Product


class OrderStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    CONFIRMED = 'CONFIRMED', 'Confirmed'
    PROCESSING = 'PROCESSING', 'Processing'
    SHIPPED = 'SHIPPED', 'Shipped'
    DELIVERED = 'DELIVERED', 'Delivered'
    CANCELLED = 'CANCELLED', 'Cancelled'
    REFUNDED = 'REFUNDED', 'Refunded'


class PaymentStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    PAID = 'PAID', 'Paid'
    FAILED = 'FAILED', 'Failed'
    REFUNDED = 'REFUNDED', 'Refunded'
    PARTIALLY_REFUNDED = 'PARTIALLY_REFUNDED', 'Partially refunded'


class FulfillmentStatus(models.TextChoices):
    UNFULFILLED = 'UNFULFILLED', 'Unfulfilled'
    PARTIALLY_FULFILLED = 'PARTIALLY_FULFILLED', 'Partially fulfilled'
    FULFILLED = 'FULFILLED', 'Fulfilled'


class PaymentMethod(models.TextChoices):
    CHAPA = 'CHAPA', 'Chapa'
    TELEBIRR = 'TELEBIRR', 'Telebirr'
    SANTIM_PAY = 'SANTIM_PAY', 'Santim Pay'
    CASH_ON_DELIVERY = 'CASH_ON_DELIVERY', 'Cash on Delivery'
    BANK_TRANSFER = 'BANK_TRANSFER', 'Bank Transfer'


def money_field(**kwargs):
    return models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        **kwargs
    )


class Order(models.Model):
    """
    Customer order with snapshotted customer and shipping details.

    Totals are computed once at creation:
        total = subtotal + tax + shipping_cost - discount
    """
    order_number = models.CharField(
        max_length=20,
        unique=True,
        help_text="Sequential, zero-padded order number"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='orders',
        help_text="Customer who placed the order"
    )

    # Customer snapshot
    customer_name = models.CharField(max_length=200)
    customer_email = models.EmailField(blank=True, default='')
    customer_phone = models.CharField(max_length=32, blank=True, default='')

    # Addresses
    shipping_address = models.CharField(max_length=300)
    shipping_city = models.CharField(max_length=100)
    shipping_country = models.CharField(max_length=100)
    shipping_postal = models.CharField(max_length=20, blank=True, default='')
    billing_address = models.CharField(max_length=300, blank=True, default='')
    billing_city = models.CharField(max_length=100, blank=True, default='')
    billing_country = models.CharField(max_length=100, blank=True, default='')
    billing_postal = models.CharField(max_length=20, blank=True, default='')

    # Amounts
    subtotal = money_field()
    tax = money_field()
    shipping_cost = money_field()
    discount = money_field()
    total = money_field(help_text="subtotal + tax + shipping_cost - discount")

    # Statuses
    order_status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        db_index=True
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True
    )
    fulfillment_status = models.CharField(
        max_length=20,
        choices=FulfillmentStatus.choices,
        default=FulfillmentStatus.UNFULFILLED
    )
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)

    customer_notes = models.TextField(blank=True, default='')
    internal_notes = models.TextField(blank=True, default='')
    tracking_number = models.CharField(max_length=100, blank=True, default='')
    shipping_carrier = models.CharField(max_length=100, blank=True, default='')

    # Lifecycle timestamps, each set at most once
    paid_at = models.DateTimeField(null=True, blank=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Order'
        verbose_name_plural = 'Orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'order_status'], name='order_user_status_idx'),
            models.Index(fields=['payment_status', 'created_at'], name='order_payment_created_idx'),
        ]

    def __str__(self):
        return f"{self.order_number} - {self.customer_name} ({self.order_status})"

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID

    @property
    def is_cancellable(self) -> bool:
        return self.order_status in (OrderStatus.PENDING, OrderStatus.CONFIRMED)

    @property
    def item_count(self) -> int:
        return self.items.count()


class OrderItem(models.Model):
    """
    A product line in an order.

    Name, SKU, image and price are copied from the product at order time so
    later catalog edits do not rewrite order history.
    """
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='items',
        help_text="Parent order"
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,  # Prevent deletion of products with orders
        related_name='order_items',
        help_text="Ordered product"
    )
    product_name = models.CharField(max_length=200)
    product_sku = models.CharField(max_length=64, blank=True, default='')
    product_image = models.CharField(max_length=500, blank=True, default='')
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Price per unit at time of order"
    )
    quantity = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Quantity ordered"
    )
    subtotal = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="price x quantity"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Order Item'
        verbose_name_plural = 'Order Items'
        ordering = ['id']

    def __str__(self):
        return f"{self.quantity}x {self.product_name} @ {self.price}"
