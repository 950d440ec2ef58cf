"""
CORE App - Celery Tasks

Asynchronous fan-out of admin notifications by email.
"""

import logging
from celery import shared_task
from django.core.mail import mail_admins

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=30,
    retry_backoff=True
)
def email_admins_notification(self, notification_id: str):
    """
    Email an admin notification to settings.ADMINS.

    Args:
        notification_id: Notification UUID string
    """
    from core.models import Notification

    try:
        notification = Notification.objects.get(pk=notification_id)
    except Notification.DoesNotExist:
        logger.warning(f"[TASK] Notification {notification_id} no longer exists")
        return False

    try:
        mail_admins(
            subject=notification.get_notification_type_display(),
            message=f"{notification.message}\n\n{notification.link}".strip(),
        )
        return True
    except Exception as e:
        logger.error(f"[TASK] Error emailing notification {notification_id}: {e}")
        raise self.retry(exc=e)
