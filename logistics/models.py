"""
LOGISTICS App - Shipping Rates & Bookings for FLYCARGO

Handles: Destination rate tables (country -> weight bands), Special offers, Bookings
"""

import random
import string
from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator
from decimal import Decimal


class ShipmentType(models.TextChoices):
    """Shipment kind."""
    PARCEL = 'parcel', 'Parcel (non-document)'
    DOCUMENT = 'document', 'Document'


class ServiceType(models.TextChoices):
    """Service tier."""
    ECONOMY = 'economy', 'Economy'
    EXPRESS = 'express', 'Express'


class OrderStatus(models.TextChoices):
    """Order lifecycle (managed by admins, never touched by payments)."""
    PENDING = 'Pending', 'Pending'
    IN_TRANSIT = 'In Transit', 'In Transit'
    DELIVERED = 'Delivered', 'Delivered'
    CANCELLED = 'Cancelled', 'Cancelled'


class PaymentStatus(models.TextChoices):
    """Payment lifecycle. Pending -> Paid only via verified PayHere notification."""
    PENDING = 'Pending', 'Pending'
    PAID = 'Paid', 'Paid'
    REFUNDED = 'Refunded', 'Refunded'


class LocationType(models.TextChoices):
    PICKUP = 'pickup', 'Pickup from sender'
    DROPOFF_KATUNAYAKE = 'dropoff_katunayake', 'Drop-off at Katunayake'


class CourierPurpose(models.TextChoices):
    GIFT = 'gift', 'Gift'
    COMMERCIAL = 'commercial', 'Commercial'
    PERSONAL = 'personal', 'Personal'
    SAMPLE = 'sample', 'Sample'
    RETURN_FOR_REPAIR = 'return_for_repair', 'Return for repair'
    RETURN_AFTER_REPAIR = 'return_after_repair', 'Return after repair'
    CUSTOM = 'custom', 'Custom'


# ===========================================
# RATE TABLES
# ===========================================

PRICE_VALIDATORS = [MinValueValidator(Decimal('0'))]


class Country(models.Model):
    """
    Destination country owning a table of weight bands.
    """

    name = models.CharField(max_length=50, unique=True, verbose_name="Country")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Destination country"
        verbose_name_plural = "Destination countries"
        ordering = ['name']

    def __str__(self):
        return self.name


class WeightBand(models.Model):
    """
    One priced weight band for a destination.

    weight_value is the inclusive upper bound (kg) of the band. Each of the
    four (shipment type x service type) cells has its own price and enabled
    flag: a disabled cell is not offered, an enabled cell without a price is
    a misconfiguration.
    """

    country = models.ForeignKey(
        Country,
        on_delete=models.CASCADE,
        related_name='weight_bands',
        verbose_name="Country"
    )
    weight_label = models.CharField(max_length=50, verbose_name="Label")
    weight_value = models.DecimalField(
        max_digits=8,
        decimal_places=3,
        validators=[MinValueValidator(Decimal('0.001'))],
        verbose_name="Upper weight (kg)"
    )

    # Parcel (non-document)
    nd_economy_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
        validators=PRICE_VALIDATORS, verbose_name="Parcel economy (LKR)"
    )
    is_nd_economy_enabled = models.BooleanField(default=True, verbose_name="Parcel economy offered")
    nd_express_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
        validators=PRICE_VALIDATORS, verbose_name="Parcel express (LKR)"
    )
    is_nd_express_enabled = models.BooleanField(default=True, verbose_name="Parcel express offered")

    # Document
    doc_economy_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
        validators=PRICE_VALIDATORS, verbose_name="Document economy (LKR)"
    )
    is_doc_economy_enabled = models.BooleanField(default=True, verbose_name="Document economy offered")
    doc_express_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
        validators=PRICE_VALIDATORS, verbose_name="Document express (LKR)"
    )
    is_doc_express_enabled = models.BooleanField(default=True, verbose_name="Document express offered")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Weight band"
        verbose_name_plural = "Weight bands"
        ordering = ['country', 'weight_value']

    def __str__(self):
        return f"{self.country.name} - {self.weight_label}"


class SpecialOffer(models.Model):
    """Promotional flat rate advertised on the homepage."""

    country = models.CharField(max_length=50, verbose_name="Country")
    weight_description = models.CharField(max_length=100, verbose_name="Weight (e.g. 'Up to 25kg')")
    rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        verbose_name="Rate (LKR)"
    )
    enabled = models.BooleanField(default=True, verbose_name="Enabled")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Special offer"
        verbose_name_plural = "Special offers"
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.country} {self.weight_description} @ {self.rate} LKR"


# ===========================================
# BOOKINGS
# ===========================================

def generate_booking_id() -> str:
    """One uppercase letter followed by four digits, e.g. 'K4821'."""
    return random.choice(string.ascii_uppercase) + str(random.randint(1000, 9999))


class Booking(models.Model):
    """
    Customer shipment booking.

    The cost estimate is frozen at creation time from the destination's rate
    table. payment_status is only ever advanced by the PayHere webhook.
    """

    id = models.CharField(primary_key=True, max_length=10, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='bookings',
        verbose_name="Customer"
    )

    # Shipment
    shipment_type = models.CharField(max_length=10, choices=ShipmentType.choices)
    service_type = models.CharField(max_length=10, choices=ServiceType.choices)
    location_type = models.CharField(max_length=20, choices=LocationType.choices)
    receiver_country = models.CharField(max_length=50, verbose_name="Destination")
    approx_weight = models.DecimalField(max_digits=8, decimal_places=3, verbose_name="Weight (kg)")
    length = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True, verbose_name="Length (cm)")
    width = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True, verbose_name="Width (cm)")
    height = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True, verbose_name="Height (cm)")
    approx_value = models.DecimalField(max_digits=10, decimal_places=2, verbose_name="Value of goods (USD)")

    # Receiver
    receiver_full_name = models.CharField(max_length=100)
    receiver_email = models.EmailField(max_length=100, blank=True)
    receiver_address = models.CharField(max_length=200)
    receiver_door_code = models.CharField(max_length=50, blank=True)
    receiver_zip_code = models.CharField(max_length=20)
    receiver_city = models.CharField(max_length=50)
    receiver_contact_no = models.CharField(max_length=20)
    receiver_whatsapp_no = models.CharField(max_length=20, blank=True)

    # Sender
    sender_full_name = models.CharField(max_length=100)
    sender_address = models.CharField(max_length=200)
    sender_contact_no = models.CharField(max_length=20)
    sender_whatsapp_no = models.CharField(max_length=20, blank=True)

    # Package
    package_contents = models.CharField(max_length=200)
    courier_purpose = models.CharField(max_length=30, choices=CourierPurpose.choices)
    custom_purpose = models.CharField(max_length=100, blank=True)
    package_description = models.CharField(max_length=255, blank=True)

    # Pricing (frozen at creation)
    chargeable_weight = models.DecimalField(max_digits=10, decimal_places=3, verbose_name="Chargeable weight (kg)")
    estimated_cost_lkr = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name="Estimated cost (LKR)"
    )
    rate_band_label = models.CharField(max_length=50, blank=True, verbose_name="Rate band")

    # Lifecycles
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        verbose_name="Order status"
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        verbose_name="Payment status"
    )
    nic_verification_status = models.CharField(
        max_length=20,
        blank=True,
        verbose_name="NIC status at booking"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Booking"
        verbose_name_plural = "Bookings"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='logistics_bk_status_idx'),
            models.Index(fields=['user', 'created_at'], name='logistics_bk_user_idx'),
        ]

    def __str__(self):
        return f"Booking {self.id} - {self.status}"

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID

    @property
    def has_dimensions(self) -> bool:
        return all(v is not None for v in (self.length, self.width, self.height))
