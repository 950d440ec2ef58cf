"""
Logistics App Serializers - Rates, Offers & Bookings
"""

from decimal import Decimal
from rest_framework import serializers
from django.core.validators import RegexValidator

from .models import (
    Country, WeightBand, SpecialOffer, Booking,
    ShipmentType, ServiceType, CourierPurpose, OrderStatus,
)

phone_validator = RegexValidator(
    regex=r'^\+?[1-9]\d{1,14}$',
    message="Invalid contact number (include country code)."
)

DIMENSION_FIELDS = ('length', 'width', 'height')


def validate_dimensions(data):
    """Dimensions are all-or-none."""
    provided = [name for name in DIMENSION_FIELDS if data.get(name) is not None]
    if provided and len(provided) != len(DIMENSION_FIELDS):
        raise serializers.ValidationError({
            'length': "Please enter all three dimensions or leave them all blank."
        })
    return data


# ===========================================
# RATE TABLES
# ===========================================

class WeightBandSerializer(serializers.ModelSerializer):
    """Serializer for WeightBand model (admin rate editing)."""

    country = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = WeightBand
        fields = [
            'id', 'country', 'weight_label', 'weight_value',
            'nd_economy_price', 'is_nd_economy_enabled',
            'nd_express_price', 'is_nd_express_enabled',
            'doc_economy_price', 'is_doc_economy_enabled',
            'doc_express_price', 'is_doc_express_enabled',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'country', 'created_at', 'updated_at']

    def validate_weight_label(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Label is required.")
        return value


class CountrySerializer(serializers.ModelSerializer):
    """Serializer for Country model."""

    band_count = serializers.SerializerMethodField()

    class Meta:
        model = Country
        fields = ['id', 'name', 'band_count', 'created_at']
        read_only_fields = ['id', 'band_count', 'created_at']

    def get_band_count(self, obj):
        return obj.weight_bands.count()

    def validate_name(self, value):
        value = value.strip()
        queryset = Country.objects.filter(name__iexact=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("A country with this name already exists.")
        return value


class CountryListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for the public destination list."""

    class Meta:
        model = Country
        fields = ['id', 'name']


class RateQuerySerializer(serializers.Serializer):
    """Input of the quote and rate preview endpoints."""

    shipment_type = serializers.ChoiceField(choices=ShipmentType.choices)
    service_type = serializers.ChoiceField(choices=ServiceType.choices)
    country = serializers.CharField(max_length=50, required=False)
    weight = serializers.DecimalField(max_digits=8, decimal_places=3, min_value=Decimal('0.001'))
    length = serializers.DecimalField(
        max_digits=8, decimal_places=2, min_value=Decimal('0.01'), required=False, allow_null=True
    )
    width = serializers.DecimalField(
        max_digits=8, decimal_places=2, min_value=Decimal('0.01'), required=False, allow_null=True
    )
    height = serializers.DecimalField(
        max_digits=8, decimal_places=2, min_value=Decimal('0.01'), required=False, allow_null=True
    )

    def validate(self, data):
        return validate_dimensions(data)


# ===========================================
# SPECIAL OFFERS
# ===========================================

class SpecialOfferSerializer(serializers.ModelSerializer):

    class Meta:
        model = SpecialOffer
        fields = ['id', 'country', 'weight_description', 'rate', 'enabled', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']


# ===========================================
# BOOKINGS
# ===========================================

class BookingCreateSerializer(serializers.ModelSerializer):
    """
    Customer booking form.

    Pricing, status and ownership fields are set server-side.
    """

    approx_weight = serializers.DecimalField(max_digits=8, decimal_places=3, min_value=Decimal('0.01'))
    approx_value = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('1'))
    length = serializers.DecimalField(
        max_digits=8, decimal_places=2, min_value=Decimal('0.01'), required=False, allow_null=True
    )
    width = serializers.DecimalField(
        max_digits=8, decimal_places=2, min_value=Decimal('0.01'), required=False, allow_null=True
    )
    height = serializers.DecimalField(
        max_digits=8, decimal_places=2, min_value=Decimal('0.01'), required=False, allow_null=True
    )
    receiver_full_name = serializers.CharField(min_length=2, max_length=100)
    receiver_address = serializers.CharField(min_length=5, max_length=200)
    receiver_contact_no = serializers.CharField(max_length=20, validators=[phone_validator])
    receiver_whatsapp_no = serializers.CharField(
        max_length=20, required=False, allow_blank=True, validators=[phone_validator]
    )
    sender_full_name = serializers.CharField(min_length=2, max_length=100)
    sender_address = serializers.CharField(min_length=5, max_length=200)
    sender_contact_no = serializers.CharField(max_length=20, validators=[phone_validator])
    sender_whatsapp_no = serializers.CharField(
        max_length=20, required=False, allow_blank=True, validators=[phone_validator]
    )
    package_contents = serializers.CharField(min_length=3, max_length=200)
    agreed_to_terms = serializers.BooleanField(write_only=True)

    class Meta:
        model = Booking
        fields = [
            'shipment_type', 'service_type', 'location_type',
            'receiver_country', 'approx_weight', 'length', 'width', 'height', 'approx_value',
            'receiver_full_name', 'receiver_email', 'receiver_address', 'receiver_door_code',
            'receiver_zip_code', 'receiver_city', 'receiver_contact_no', 'receiver_whatsapp_no',
            'sender_full_name', 'sender_address', 'sender_contact_no', 'sender_whatsapp_no',
            'package_contents', 'courier_purpose', 'custom_purpose',
            'agreed_to_terms',
        ]

    def validate_agreed_to_terms(self, value):
        if value is not True:
            raise serializers.ValidationError(
                "You must read and agree to the Terms and Conditions to proceed."
            )
        return value

    def validate_receiver_country(self, value):
        return value.strip()

    def validate(self, data):
        validate_dimensions(data)
        if data.get('courier_purpose') == CourierPurpose.CUSTOM:
            custom = (data.get('custom_purpose') or '').strip()
            if len(custom) <= 2:
                raise serializers.ValidationError({
                    'custom_purpose': "Please specify the custom purpose."
                })
        return data


class BookingSerializer(serializers.ModelSerializer):
    """Full serializer for Booking model."""

    customer_email = serializers.EmailField(source='user.email', read_only=True)
    uses_chargeable_weight = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            'id', 'customer_email',
            'shipment_type', 'service_type', 'location_type',
            'receiver_country', 'approx_weight', 'length', 'width', 'height', 'approx_value',
            'receiver_full_name', 'receiver_email', 'receiver_address', 'receiver_door_code',
            'receiver_zip_code', 'receiver_city', 'receiver_contact_no', 'receiver_whatsapp_no',
            'sender_full_name', 'sender_address', 'sender_contact_no', 'sender_whatsapp_no',
            'package_contents', 'courier_purpose', 'custom_purpose', 'package_description',
            'chargeable_weight', 'uses_chargeable_weight', 'estimated_cost_lkr', 'rate_band_label',
            'status', 'payment_status', 'nic_verification_status',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_uses_chargeable_weight(self, obj):
        return abs(obj.chargeable_weight - obj.approx_weight) >= Decimal('0.001')


class BookingTrackingSerializer(serializers.ModelSerializer):
    """Public tracking view: no personal data."""

    class Meta:
        model = Booking
        fields = ['id', 'status', 'receiver_country', 'created_at', 'updated_at']
        read_only_fields = fields


class BookingStatusSerializer(serializers.Serializer):
    """Admin order status update."""

    status = serializers.ChoiceField(choices=OrderStatus.choices)

