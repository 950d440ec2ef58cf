"""
CORE App - Services for FLYCARGO

- NotificationService: admin notifications (in-app + async email)
- NicVerificationService: NIC submission, review and signed document links
"""

import os
import logging
from typing import Optional

from django.conf import settings
from django.core import signing
from django.db import transaction
from django.urls import reverse
from django.utils import timezone

from core.models import (
    User, Notification, NotificationType, NicVerificationStatus,
)

logger = logging.getLogger(__name__)


class NicSubmissionError(Exception):
    """Raised when a NIC submission is not allowed in the user's current state."""


class NotificationService:
    """Creates admin notifications and schedules the email fan-out."""

    @staticmethod
    def notify_admins(notification_type: str, message: str, link: str = "") -> Notification:
        """
        Create an in-app notification for administrators.

        The email is dispatched only after the surrounding transaction
        commits, so rolled-back work never notifies anybody.
        """
        notification = Notification.objects.create(
            notification_type=notification_type,
            message=message,
            link=link,
        )

        transaction.on_commit(
            lambda: NotificationService._dispatch_email(str(notification.id))
        )

        logger.info(f"[NOTIFY] {notification_type}: {message}")
        return notification

    @staticmethod
    def _dispatch_email(notification_id: str):
        """Queue the admin email; a broker outage must not fail committed work."""
        from core.tasks import email_admins_notification
        try:
            email_admins_notification.delay(notification_id)
        except Exception as e:
            logger.error(f"[NOTIFY] Failed to queue email for notification {notification_id}: {e}")

    @staticmethod
    def mark_read(notification: Notification) -> Notification:
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=['is_read'])
        return notification


class NicVerificationService:
    """
    NIC (National Identity Card) verification workflow.

    Flow:
    1. Customer uploads front + back images -> status 'pending'
    2. Admin reviews the queue and verifies or rejects
    3. Rejected customers may submit again
    """

    SIGNER_SALT = 'core.nic-document'
    SIDES = ('front', 'back')

    @staticmethod
    @transaction.atomic
    def submit(user: User, front_image, back_image, nic_number: str = "") -> User:
        """
        Store both NIC images and move the user to 'pending'.

        Raises:
            NicSubmissionError: If a submission is already pending or verified
        """
        user = User.objects.select_for_update().get(pk=user.pk)

        if user.nic_verification_status in (
            NicVerificationStatus.PENDING,
            NicVerificationStatus.VERIFIED,
        ):
            raise NicSubmissionError(
                f"NIC is already {user.nic_verification_status}."
            )

        user.nic_front_image.save(
            f"nic_front{NicVerificationService._extension(front_image)}",
            front_image,
            save=False,
        )
        user.nic_back_image.save(
            f"nic_back{NicVerificationService._extension(back_image)}",
            back_image,
            save=False,
        )
        if nic_number:
            user.nic_number = nic_number
        user.nic_verification_status = NicVerificationStatus.PENDING
        user.nic_submitted_at = timezone.now()
        user.nic_reviewed_at = None
        user.save(update_fields=[
            'nic_front_image', 'nic_back_image', 'nic_number',
            'nic_verification_status', 'nic_submitted_at', 'nic_reviewed_at',
        ])

        NotificationService.notify_admins(
            NotificationType.NIC_SUBMISSION,
            f"User {user.display_name or user.email} submitted NIC for verification.",
            link='/admin/verify-nic',
        )
        logger.info(f"[NIC] Submission received for {user.pk}")
        return user

    @staticmethod
    def review(user: User, new_status: str) -> User:
        """Set a reviewed status ('verified' or 'rejected')."""
        if new_status not in (NicVerificationStatus.VERIFIED, NicVerificationStatus.REJECTED):
            raise ValueError(f"Invalid review status: {new_status}")

        user.nic_verification_status = new_status
        user.nic_reviewed_at = timezone.now()
        user.save(update_fields=['nic_verification_status', 'nic_reviewed_at'])

        logger.info(f"[NIC] {user.pk} -> {new_status}")
        return user

    @classmethod
    def signed_document_url(cls, user: User, side: str) -> Optional[str]:
        """
        Build a short-lived link to one NIC image.

        Returns:
            Relative URL carrying a signed token, or None if no image stored
        """
        if side not in cls.SIDES:
            raise ValueError(f"Unknown NIC side: {side}")

        image = user.nic_front_image if side == 'front' else user.nic_back_image
        if not image:
            return None

        token = signing.dumps(
            {'user': str(user.pk), 'side': side},
            salt=cls.SIGNER_SALT,
        )
        return reverse('nic-document', kwargs={'token': token})

    @classmethod
    def resolve_document_token(cls, token: str):
        """
        Resolve a signed token back to the stored image.

        Raises:
            signing.BadSignature: Invalid or expired token (SignatureExpired
                is a subclass)
            User.DoesNotExist: User was removed since the link was issued
        """
        payload = signing.loads(
            token,
            salt=cls.SIGNER_SALT,
            max_age=settings.NIC_DOCUMENT_URL_MAX_AGE,
        )
        user = User.objects.get(pk=payload['user'])
        if payload['side'] == 'front':
            return user.nic_front_image
        return user.nic_back_image

    @staticmethod
    def _extension(uploaded_file) -> str:
        return os.path.splitext(getattr(uploaded_file, 'name', '') or '')[1].lower()
