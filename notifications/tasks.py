"""
Celery tasks that create notifications.

Tasks:
    - create_notification: Create one notification for a user
    - notify_stock_levels: Alert staff about low or depleted stock
"""
import logging
from typing import Dict, List, Optional

from celery import shared_task

logger = logging.getLogger(__name__)

ALERTED_ROLES = ('ADMIN', 'MANAGER')


@shared_task
def create_notification(user_id: int, notification_type: str, title: str, message: str, data: Optional[Dict] = None):
    from . import services

    notification = services.create_notification(user_id, notification_type, title, message, data)
    return {'status': 'success', 'notification_id': notification.id}


@shared_task
def notify_stock_levels(product_ids: List[int]):
    """
    Create PRODUCT_OUT_OF_STOCK / PRODUCT_LOW_STOCK notifications for admins
    and managers for each listed product at or below its threshold.
    """
    from django.contrib.auth import get_user_model
    from inventory.models import Product
    from . import services

    products = [
        p for p in Product.objects.filter(id__in=product_ids, track_inventory=True)
        if p.is_low_stock
    ]
    if not products:
        return {'alerts': 0}

    recipients = list(
        get_user_model().objects.filter(role__in=ALERTED_ROLES, is_active=True).values_list('id', flat=True)
    )

    alerts = 0
    for product in products:
        if product.is_out_of_stock:
            notification_type, title = 'PRODUCT_OUT_OF_STOCK', f"{product.name} is out of stock"
        else:
            notification_type, title = 'PRODUCT_LOW_STOCK', f"{product.name} is low on stock"
        for user_id in recipients:
            services.create_notification(
                user_id=user_id,
                notification_type=notification_type,
                title=title,
                message=f"{product.name} has {product.stock} units left.",
                data={'product_id': product.id, 'stock': product.stock},
            )
            alerts += 1

    logger.warning(f"Stock alerts sent for {len(products)} products")
    return {'alerts': alerts}
