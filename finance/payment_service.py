"""
Payment Service for FLYCARGO

Applies verified PayHere notifications to bookings.
"""

import logging
from dataclasses import dataclass

from django.db import transaction

from core.models import NotificationType
from core.services import NotificationService
from finance.models import PayHereStatusCode
from logistics.models import Booking, PaymentStatus

logger = logging.getLogger(__name__)

NOTIFICATION_FIELDS = (
    'merchant_id', 'order_id', 'payhere_amount',
    'payhere_currency', 'status_code', 'md5sig',
)


class BookingNotFound(Exception):
    """A verified notification refers to an unknown booking."""


@dataclass(frozen=True)
class PaymentNotification:
    """
    PayHere notification fields, kept as the raw strings that were signed.

    Build from form data with from_form(); status is the parsed status_code.
    """
    merchant_id: str
    order_id: str
    payhere_amount: str
    payhere_currency: str
    status_code: str
    md5sig: str

    @property
    def status(self) -> int:
        return int(self.status_code)

    @property
    def is_success(self) -> bool:
        return self.status_code == str(PayHereStatusCode.SUCCESS.value)

    @classmethod
    def from_form(cls, data) -> 'PaymentNotification':
        """
        Validate raw form fields.

        Raises:
            ValueError: A field is missing or blank, or status_code is not an integer
        """
        values = {}
        for name in NOTIFICATION_FIELDS:
            value = data.get(name)
            if value is None or not str(value).strip():
                raise ValueError(f"Missing field: {name}")
            values[name] = str(value)

        try:
            int(values['status_code'])
        except ValueError:
            raise ValueError(f"Invalid status_code: {values['status_code']!r}")

        return cls(**values)


def describe_status(code: int) -> str:
    try:
        return PayHereStatusCode(code).label
    except ValueError:
        return f"Unknown ({code})"


@transaction.atomic
def apply_notification(notification: PaymentNotification) -> bool:
    """
    Apply an already verified notification.

    Only a success notification for a Pending booking changes anything
    (Pending -> Paid). Duplicates and late deliveries are no-ops.

    Returns:
        True if the booking transitioned to Paid

    Raises:
        BookingNotFound: order_id does not match a booking
    """
    if not notification.is_success:
        logger.info(
            f"[PAYHERE] Non-success status {notification.status_code} "
            f"({describe_status(notification.status)}) for {notification.order_id}; no change"
        )
        return False

    try:
        booking = Booking.objects.select_for_update().get(pk=notification.order_id)
    except Booking.DoesNotExist:
        raise BookingNotFound(notification.order_id)

    if booking.payment_status != PaymentStatus.PENDING:
        logger.info(f"[PAYHERE] {booking.id} already {booking.payment_status}; ignoring duplicate")
        return False

    booking.payment_status = PaymentStatus.PAID
    booking.save(update_fields=['payment_status', 'updated_at'])

    NotificationService.notify_admins(
        NotificationType.PAYMENT_RECEIVED,
        f"Payment of {notification.payhere_amount} {notification.payhere_currency} "
        f"received for booking #{booking.id}.",
        link='/admin/orders',
    )
    logger.info(f"[PAYHERE] {booking.id} marked Paid ({notification.payhere_amount} {notification.payhere_currency})")
    return True
