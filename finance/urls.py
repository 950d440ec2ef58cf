"""
Finance App URLs
"""

from django.urls import path

from .views import PaymentSettingsAPIView
from . import payment_api

urlpatterns = [
    # PayHere
    path('payments/<str:booking_id>/checkout/', payment_api.payhere_checkout, name='payhere-checkout'),
    path('payhere-notify', payment_api.payhere_notify, name='payhere-notify'),

    # Admin
    path('admin/payment-settings/', PaymentSettingsAPIView.as_view(), name='payment-settings'),
]
