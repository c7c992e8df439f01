"""
Notification Service Layer.
"""
import logging
from typing import Dict, Optional

from django.utils import timezone

from core.exceptions import Forbidden, NotFound
from .models import Notification

logger = logging.getLogger(__name__)


def create_notification(
    user_id: int,
    notification_type: str,
    title: str,
    message: str,
    data: Optional[Dict] = None,
) -> Notification:
    notification = Notification.objects.create(
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        data=data or {},
    )
    logger.info(f"Notification {notification_type} created for user #{user_id}")
    return notification


def get_user_notification(notification_id: int, user) -> Notification:
    """Fetch a notification, enforcing ownership."""
    try:
        notification = Notification.objects.get(pk=notification_id)
    except Notification.DoesNotExist:
        raise NotFound("Notification not found")
    if notification.user_id != user.pk:
        raise Forbidden("Forbidden")
    return notification


def mark_as_read(notification: Notification) -> Notification:
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = timezone.now()
        notification.save(update_fields=['is_read', 'read_at'])
    return notification


def mark_all_as_read(user) -> int:
    return Notification.objects.filter(user=user, is_read=False).update(
        is_read=True,
        read_at=timezone.now()
    )


def unread_count(user) -> int:
    return Notification.objects.filter(user=user, is_read=False).count()
