"""
Booking Service for FLYCARGO

Creates bookings with a server-side cost estimate and notifies admins.
"""

import logging
from decimal import Decimal
from typing import Optional

from django.db import IntegrityError, transaction

from core.models import NotificationType
from core.services import NotificationService
from logistics.models import Booking, CourierPurpose, generate_booking_id
from logistics.services.pricing import RateCalculator, RateQuery, RateResult
from logistics.services.rate_tables import default_calculator

logger = logging.getLogger(__name__)

BOOKING_ID_ATTEMPTS = 10


class BookingError(Exception):
    """Raised when a booking cannot be created for this user."""


class BookingService:
    """
    Booking creation.

    The estimate is computed here from the stored rate table, never taken
    from the client. A failed calculation (e.g. unconfigured price) still
    creates the booking with no estimate; admins price it manually.
    """

    def __init__(self, calculator: Optional[RateCalculator] = None):
        self.calculator = calculator or default_calculator()

    def estimate(self, data: dict) -> RateResult:
        query = RateQuery(
            shipment_type=data['shipment_type'],
            service_type=data['service_type'],
            destination=data['receiver_country'],
            weight=data['approx_weight'],
            length=data.get('length'),
            width=data.get('width'),
            height=data.get('height'),
        )
        return self.calculator.quote(query)

    @staticmethod
    def package_description(data: dict) -> str:
        purpose = data['courier_purpose']
        if purpose == CourierPurpose.CUSTOM and data.get('custom_purpose'):
            purpose = data['custom_purpose'].strip()
        return f"{purpose}: {data['package_contents'][:100]}"

    def create_booking(self, user, data: dict) -> Booking:
        """
        Create a booking for a user.

        Args:
            user: Owning customer (profile must be complete)
            data: Validated booking fields (see BookingCreateSerializer)

        Raises:
            BookingError: Incomplete customer profile
        """
        if not user.is_profile_complete:
            raise BookingError("Complete your profile (name, phone, address) before booking.")

        result = self.estimate(data)
        fields = dict(data)
        fields.pop('agreed_to_terms', None)

        booking = self._insert_with_unique_id(
            user=user,
            package_description=self.package_description(data),
            chargeable_weight=result.chargeable_weight.quantize(Decimal('0.001')),
            estimated_cost_lkr=result.price if result.ok else None,
            rate_band_label=result.band_label or '',
            nic_verification_status=user.nic_verification_status,
            **fields,
        )

        if not result.ok:
            logger.warning(f"[BOOKING] {booking.id} created without estimate: {result.message}")

        NotificationService.notify_admins(
            NotificationType.NEW_BOOKING,
            f"New booking (#{booking.id}) received from {booking.sender_full_name}.",
            link='/admin/orders',
        )
        logger.info(f"[BOOKING] Created {booking.id} for {user.pk} ({booking.estimated_cost_lkr} LKR)")
        return booking

    def _insert_with_unique_id(self, **fields) -> Booking:
        """Insert, regenerating the short id on collision."""
        for _ in range(BOOKING_ID_ATTEMPTS):
            booking_id = generate_booking_id()
            if Booking.objects.filter(pk=booking_id).exists():
                continue
            try:
                with transaction.atomic():
                    return Booking.objects.create(id=booking_id, **fields)
            except IntegrityError:
                logger.warning(f"[BOOKING] Id collision on {booking_id}, retrying")
        raise RuntimeError("Could not allocate a unique booking id")
