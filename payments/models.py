"""
Payment Model - one row per payment attempt against an order.
"""
from django.db import models

from orders.models import Order, PaymentMethod, PaymentStatus


class Payment(models.Model):
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='payments',
        help_text="Order being paid"
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True
    )
    transaction_id = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        db_index=True,
        help_text="Gateway reference used to match webhooks"
    )
    gateway_response = models.JSONField(default=dict, blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Payment'
        verbose_name_plural = 'Payments'
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.method} {self.amount} for order #{self.order_id} ({self.status})"

    @property
    def is_verified(self) -> bool:
        return self.status == PaymentStatus.PAID and bool(self.transaction_id)
