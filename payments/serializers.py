"""
Serializers for payments.
"""
from decimal import Decimal

from rest_framework import serializers

from orders.models import PaymentMethod
from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    order_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Payment
        fields = [
            'id', 'order_id', 'amount', 'method', 'status', 'transaction_id',
            'gateway_response', 'processed_at', 'created_at'
        ]
        read_only_fields = fields


class PaymentOrderSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    order_number = serializers.CharField()
    customer_name = serializers.CharField()
    total = serializers.DecimalField(max_digits=12, decimal_places=2)


class PaymentDetailSerializer(PaymentSerializer):
    """Payment with a summary of its order."""
    order = PaymentOrderSerializer(read_only=True)

    class Meta(PaymentSerializer.Meta):
        fields = PaymentSerializer.Meta.fields + ['order']
        read_only_fields = fields


class ProcessPaymentSerializer(serializers.Serializer):
    """
    Request body for POST /payments/process/

    {"order_id": 1, "method": "CHAPA", "amount": "255.00"}
    """
    order_id = serializers.IntegerField(min_value=1)
    method = serializers.ChoiceField(choices=PaymentMethod.choices)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))


class InitiatePaymentSerializer(ProcessPaymentSerializer):
    return_url = serializers.URLField(required=False)
    cancel_url = serializers.URLField(required=False)
