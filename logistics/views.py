"""
Logistics App Views - Rates, Offers, Bookings & Admin order management
"""

import logging
from django.contrib.auth import get_user_model
from django.db.models import Count
from django.shortcuts import get_object_or_404
from rest_framework import viewsets, status, permissions, mixins
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from core.models import NicVerificationStatus, Notification
from core.views import IsAdminUser
from .models import Country, WeightBand, SpecialOffer, Booking, OrderStatus, PaymentStatus
from .serializers import (
    CountrySerializer, CountryListSerializer, WeightBandSerializer,
    RateQuerySerializer, SpecialOfferSerializer,
    BookingCreateSerializer, BookingSerializer, BookingTrackingSerializer,
    BookingStatusSerializer,
)
from .services.booking import BookingService, BookingError
from .services.pricing import RateQuery, calculate_rate
from .services.rate_tables import RateTableError, default_calculator, table_from_country

User = get_user_model()
logger = logging.getLogger(__name__)


def _rate_query(data, destination):
    return RateQuery(
        shipment_type=data['shipment_type'],
        service_type=data['service_type'],
        destination=destination,
        weight=data['weight'],
        length=data.get('length'),
        width=data.get('width'),
        height=data.get('height'),
    )


def _rate_table_error(e):
    logger.error(f"[RATES] Invalid rate table: {e}")
    return Response(
        {'error': 'Rate table is misconfigured. Please contact support.'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


# ===========================================
# RATES (PUBLIC)
# ===========================================

class CountryViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Destination countries with configured rate tables.

    GET /api/countries/
    """

    queryset = Country.objects.all()
    serializer_class = CountryListSerializer
    permission_classes = [permissions.AllowAny]
    pagination_class = None


class RateQuoteAPIView(APIView):
    """
    Public shipping cost estimate.

    POST /api/quote/

    Request body:
    {
        "shipment_type": "parcel",     # parcel | document
        "service_type": "economy",     # economy | express
        "country": "United Kingdom",
        "weight": "2.5",               # kg
        "length": "40", "width": "30", "height": "20"   # cm, optional (all or none)
    }

    Response:
    {
        "ok": true,
        "kind": "SUCCESS",
        "price": "12500.00",
        "currency": "LKR",
        "band_label": "3kg",
        "chargeable_weight": "4.8",
        "uses_chargeable_weight": true,
        "overflow": false,
        "message": "..."
    }

    Calculation failures (service unavailable, price missing, ...) are
    reported with ok=false and a 200 status.
    """

    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = RateQuerySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        country = (data.get('country') or '').strip()
        if not country:
            return Response(
                {'country': ['This field is required.']},
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            result = default_calculator().quote(_rate_query(data, country))
        except RateTableError as e:
            return _rate_table_error(e)

        return Response(result.to_dict())


class SpecialOfferViewSet(viewsets.ReadOnlyModelViewSet):
    """Enabled special offers for the homepage."""

    queryset = SpecialOffer.objects.filter(enabled=True)
    serializer_class = SpecialOfferSerializer
    permission_classes = [permissions.AllowAny]
    pagination_class = None


# ===========================================
# RATES (ADMIN)
# ===========================================

class AdminCountryViewSet(viewsets.ModelViewSet):
    """
    Rate table management (Admin only).

    Deleting a country deletes its weight bands.
    """

    queryset = Country.objects.all()
    serializer_class = CountrySerializer
    permission_classes = [IsAdminUser]
    search_fields = ['name']

    @action(detail=True, methods=['get', 'post'])
    def weights(self, request, pk=None):
        """List or add weight bands of a country."""
        country = self.get_object()

        if request.method == 'POST':
            serializer = WeightBandSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            serializer.save(country=country)
            logger.info(f"[RATES] Band '{serializer.data['weight_label']}' added to {country.name}")
            return Response(serializer.data, status=status.HTTP_201_CREATED)

        bands = country.weight_bands.order_by('weight_value')
        return Response(WeightBandSerializer(bands, many=True).data)

    @action(detail=True, methods=['post'])
    def preview(self, request, pk=None):
        """Run the rate calculator against this country's table."""
        country = self.get_object()
        serializer = RateQuerySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            table = table_from_country(country)
        except RateTableError as e:
            return _rate_table_error(e)

        result = calculate_rate(_rate_query(serializer.validated_data, country.name), table)
        return Response(result.to_dict())


class AdminWeightBandViewSet(
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet
):
    """Edit or delete one weight band of a country (Admin only)."""

    serializer_class = WeightBandSerializer
    permission_classes = [IsAdminUser]

    def get_queryset(self):
        return WeightBand.objects.filter(country_id=self.kwargs['country_pk'])

    def perform_destroy(self, instance):
        logger.info(f"[RATES] Band '{instance.weight_label}' removed from {instance.country.name}")
        instance.delete()


class AdminSpecialOfferViewSet(viewsets.ModelViewSet):
    """Special offer management (Admin only)."""

    queryset = SpecialOffer.objects.all()
    serializer_class = SpecialOfferSerializer
    permission_classes = [IsAdminUser]
    filterset_fields = ['enabled']


# ===========================================
# BOOKINGS (CUSTOMER)
# ===========================================

class BookingViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet
):
    """
    Customer bookings.

    POST /api/bookings/ creates a booking; the estimate is always computed
    server-side from the destination's rate table.
    """

    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ['status', 'payment_status']

    def get_queryset(self):
        return Booking.objects.filter(user=self.request.user)

    def create(self, request, *args, **kwargs):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            booking = BookingService().create_booking(request.user, serializer.validated_data)
        except BookingError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except RateTableError as e:
            return _rate_table_error(e)

        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)


class BookingTrackingAPIView(APIView):
    """
    Public package tracking by booking id.

    GET /api/bookings/track/<booking_id>/
    """

    permission_classes = [permissions.AllowAny]

    def get(self, request, booking_id):
        booking = get_object_or_404(Booking, pk=booking_id.strip().upper())
        return Response(BookingTrackingSerializer(booking).data)


# ===========================================
# BOOKINGS (ADMIN)
# ===========================================

class AdminBookingViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Order management (Admin only).

    GET /api/admin/bookings/?status=Pending&payment_status=Paid&search=K48
    """

    queryset = Booking.objects.select_related('user')
    serializer_class = BookingSerializer
    permission_classes = [IsAdminUser]
    filterset_fields = ['status', 'payment_status', 'receiver_country', 'shipment_type']
    search_fields = ['id', 'sender_full_name', 'receiver_full_name', 'user__email']
    ordering_fields = ['created_at', 'estimated_cost_lkr']

    @action(detail=True, methods=['post'], url_path='status')
    def update_status(self, request, pk=None):
        """Change the order status. Payment status is never touched here."""
        booking = self.get_object()
        serializer = BookingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        old_status = booking.status
        booking.status = serializer.validated_data['status']
        booking.save(update_fields=['status', 'updated_at'])

        logger.info(f"[BOOKING] {booking.id} {old_status} -> {booking.status} by {request.user.email}")
        return Response(BookingSerializer(booking).data)


class AdminDashboardAPIView(APIView):
    """
    Admin dashboard counters.

    GET /api/admin/dashboard/
    """

    permission_classes = [IsAdminUser]

    def get(self, request):
        by_status = {
            row['status']: row['n']
            for row in Booking.objects.values('status').annotate(n=Count('id'))
        }
        by_payment = {
            row['payment_status']: row['n']
            for row in Booking.objects.values('payment_status').annotate(n=Count('id'))
        }

        return Response({
            'bookings': {
                'total': sum(by_status.values()),
                'by_status': {s: by_status.get(s, 0) for s in OrderStatus.values},
                'by_payment_status': {s: by_payment.get(s, 0) for s in PaymentStatus.values},
            },
            'pending_nic_verifications': User.objects.filter(
                nic_verification_status=NicVerificationStatus.PENDING
            ).count(),
            'countries': Country.objects.count(),
            'active_offers': SpecialOffer.objects.filter(enabled=True).count(),
            'unread_notifications': Notification.objects.filter(is_read=False).count(),
        })
