"""
Per-user notifications.
"""
from django.conf import settings
from django.db import models


class Notification(models.Model):

    class Type(models.TextChoices):
        ORDER_CREATED = 'ORDER_CREATED', 'Order created'
        ORDER_UPDATED = 'ORDER_UPDATED', 'Order updated'
        ORDER_SHIPPED = 'ORDER_SHIPPED', 'Order shipped'
        ORDER_DELIVERED = 'ORDER_DELIVERED', 'Order delivered'
        PAYMENT_RECEIVED = 'PAYMENT_RECEIVED', 'Payment received'
        PAYMENT_FAILED = 'PAYMENT_FAILED', 'Payment failed'
        PRODUCT_LOW_STOCK = 'PRODUCT_LOW_STOCK', 'Product low stock'
        PRODUCT_OUT_OF_STOCK = 'PRODUCT_OUT_OF_STOCK', 'Product out of stock'
        USER_REGISTERED = 'USER_REGISTERED', 'User registered'
        SYSTEM_ALERT = 'SYSTEM_ALERT', 'System alert'

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    type = models.CharField(max_length=30, choices=Type.choices)
    title = models.CharField(max_length=200)
    message = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False, db_index=True)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = 'Notification'
        verbose_name_plural = 'Notifications'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notification_user_read_idx'),
        ]

    def __str__(self):
        return f"{self.type} for {self.user_id}: {self.title}"
