"""
Logistics App URLs
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    CountryViewSet, RateQuoteAPIView, SpecialOfferViewSet,
    AdminCountryViewSet, AdminWeightBandViewSet, AdminSpecialOfferViewSet,
    BookingViewSet, BookingTrackingAPIView,
    AdminBookingViewSet, AdminDashboardAPIView,
)

router = DefaultRouter()
router.register(r'countries', CountryViewSet, basename='country')
router.register(r'offers', SpecialOfferViewSet, basename='offer')
router.register(r'bookings', BookingViewSet, basename='booking')
router.register(r'admin/countries', AdminCountryViewSet, basename='admin-country')
router.register(r'admin/offers', AdminSpecialOfferViewSet, basename='admin-offer')
router.register(r'admin/bookings', AdminBookingViewSet, basename='admin-booking')

weight_band_detail = AdminWeightBandViewSet.as_view({
    'get': 'retrieve',
    'put': 'update',
    'patch': 'partial_update',
    'delete': 'destroy',
})

urlpatterns = [
    # Public rate calculator
    path('quote/', RateQuoteAPIView.as_view(), name='rate-quote'),

    # Public tracking (status only)
    path('bookings/track/<str:booking_id>/', BookingTrackingAPIView.as_view(), name='booking-track'),

    # Weight band edit/delete (list/create is /admin/countries/<id>/weights/)
    path(
        'admin/countries/<int:country_pk>/weights/<int:pk>/',
        weight_band_detail,
        name='admin-weight-band-detail'
    ),

    path('admin/dashboard/', AdminDashboardAPIView.as_view(), name='admin-dashboard'),

    # Router URLs
    path('', include(router.urls)),
]
