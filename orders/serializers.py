"""
Serializers for order models.
"""
from rest_framework import serializers

from accounts.serializers import UserMinimalSerializer
from payments.serializers import PaymentSerializer
from .models import Order, OrderItem, OrderStatus, PaymentStatus, FulfillmentStatus, PaymentMethod


class OrderItemSerializer(serializers.ModelSerializer):
    """Order line with the product snapshot taken at order time."""
    product_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            'id', 'product_id', 'product_name', 'product_sku', 'product_image',
            'price', 'quantity', 'subtotal'
        ]


class OrderItemCreateSerializer(serializers.Serializer):
    """Serializer for creating order items in order creation request."""
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class OrderSerializer(serializers.ModelSerializer):
    """
    Full order representation with items, customer and payment attempts.
    Expects items and payments to be prefetched.
    """
    user = UserMinimalSerializer(read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    payments = PaymentSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'user',
            'customer_name', 'customer_email', 'customer_phone',
            'shipping_address', 'shipping_city', 'shipping_country', 'shipping_postal',
            'billing_address', 'billing_city', 'billing_country', 'billing_postal',
            'subtotal', 'tax', 'shipping_cost', 'discount', 'total',
            'order_status', 'payment_status', 'fulfillment_status', 'payment_method',
            'customer_notes', 'internal_notes', 'tracking_number', 'shipping_carrier',
            'items', 'payments',
            'paid_at', 'shipped_at', 'delivered_at', 'cancelled_at',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """
    Optimized serializer for listing orders.
    """
    user = UserMinimalSerializer(read_only=True)
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'user', 'customer_name', 'total',
            'order_status', 'payment_status', 'payment_method',
            'item_count', 'created_at'
        ]

    def get_item_count(self, obj):
        # Use prefetched items count if available
        if hasattr(obj, '_prefetched_objects_cache') and 'items' in obj._prefetched_objects_cache:
            return len(obj.items.all())
        return obj.items.count()


class OrderCreateSerializer(serializers.Serializer):
    """
    Serializer for creating orders via POST /orders/

    Request format:
    {
        "items": [
            {"product_id": 1, "quantity": 2},
            {"product_id": 3, "quantity": 1}
        ],
        "shipping_address": "Bole Road 12",
        "shipping_city": "Addis Ababa",
        "shipping_country": "Ethiopia",
        "payment_method": "CHAPA"
    }
    """
    items = OrderItemCreateSerializer(many=True)
    shipping_address = serializers.CharField(min_length=5, max_length=300)
    shipping_city = serializers.CharField(min_length=2, max_length=100)
    shipping_country = serializers.CharField(min_length=2, max_length=100)
    shipping_postal = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    customer_notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required")

        # Check for duplicate products
        product_ids = [item['product_id'] for item in value]
        if len(product_ids) != len(set(product_ids)):
            raise serializers.ValidationError("Duplicate products in order items")

        return value


class OrderStatusUpdateSerializer(serializers.Serializer):
    """
    Request body for PATCH /orders/{id}/status/. Every field is optional.
    """
    order_status = serializers.ChoiceField(choices=OrderStatus.choices, required=False)
    payment_status = serializers.ChoiceField(choices=PaymentStatus.choices, required=False)
    fulfillment_status = serializers.ChoiceField(choices=FulfillmentStatus.choices, required=False)
    tracking_number = serializers.CharField(max_length=100, required=False, allow_blank=True)
    shipping_carrier = serializers.CharField(max_length=100, required=False, allow_blank=True)
    internal_notes = serializers.CharField(required=False, allow_blank=True)
