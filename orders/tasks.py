"""
Celery tasks for order processing.

Tasks:
    - send_order_confirmation: Notify the customer after order creation
    - notify_order_status_change: Notify the customer when the order moves on
    - generate_daily_order_report: Log yesterday's order statistics
"""
import logging
from datetime import timedelta

from celery import shared_task
from django.db.models import Count, Q, Sum
from django.utils import timezone

logger = logging.getLogger(__name__)

STATUS_NOTIFICATIONS = {
    'SHIPPED': ('ORDER_SHIPPED', 'Order shipped'),
    'DELIVERED': ('ORDER_DELIVERED', 'Order delivered'),
}


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def send_order_confirmation(self, order_id: int):
    """
    Async task triggered after an order is committed.

    Creates the ORDER_CREATED notification for the customer and logs a
    confirmation summary.

    Args:
        order_id: ID of the new order

    Returns:
        Dict with confirmation details
    """
    from notifications.services import create_notification
    from orders.models import Order

    try:
        order = Order.objects.select_related('user').prefetch_related('items').get(id=order_id)
    except Order.DoesNotExist:
        logger.error(f"Order #{order_id} not found for confirmation")
        return {'status': 'error', 'message': f'Order {order_id} not found'}

    items_summary = [
        f"  - {item.quantity}x {item.product_name} @ {item.price}"
        for item in order.items.all()
    ]
    logger.info(
        f"Confirmation for {order.order_number} ({order.customer_email}):\n"
        + "\n".join(items_summary)
        + f"\n  Total: {order.total}"
    )

    create_notification(
        user_id=order.user_id,
        notification_type='ORDER_CREATED',
        title='Order placed',
        message=f"Your order {order.order_number} has been placed. Total: {order.total}",
        data={'order_id': order.id, 'order_number': order.order_number},
    )

    return {
        'status': 'success',
        'order_id': order.id,
        'message': f'Confirmation sent for order {order.order_number}'
    }


@shared_task
def notify_order_status_change(order_id: int, previous_status: str):
    from notifications.services import create_notification
    from orders.models import Order

    order = Order.objects.filter(id=order_id).first()
    if order is None:
        logger.error(f"Order #{order_id} not found for status notification")
        return {'status': 'error'}

    notification_type, title = STATUS_NOTIFICATIONS.get(
        order.order_status, ('ORDER_UPDATED', 'Order updated')
    )
    create_notification(
        user_id=order.user_id,
        notification_type=notification_type,
        title=title,
        message=f"Order {order.order_number} is now {order.get_order_status_display().lower()}.",
        data={
            'order_id': order.id,
            'previous_status': previous_status,
            'status': order.order_status,
        },
    )
    return {'status': 'success', 'type': notification_type}


@shared_task
def generate_daily_order_report():
    """
    Generate daily order statistics report.

    Can be scheduled via Celery Beat for daily execution.
    """
    from orders.models import Order, OrderStatus, PaymentStatus

    yesterday = timezone.now().date() - timedelta(days=1)

    stats = Order.objects.filter(created_at__date=yesterday).aggregate(
        total_orders=Count('id'),
        paid_orders=Count('id', filter=Q(payment_status=PaymentStatus.PAID)),
        cancelled_orders=Count('id', filter=Q(order_status=OrderStatus.CANCELLED)),
        total_revenue=Sum('total', filter=Q(payment_status=PaymentStatus.PAID)),
    )

    logger.info(
        f"Daily order report {yesterday}: {stats['total_orders']} orders, "
        f"{stats['paid_orders']} paid, {stats['cancelled_orders']} cancelled, "
        f"revenue {stats['total_revenue'] or 0}"
    )

    stats['total_revenue'] = str(stats['total_revenue'] or '0.00')
    return stats
