"""
PayHere Payment API for FLYCARGO

Checkout payload endpoint for customers and the PayHere notify webhook.
"""

import logging
from django.http import HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from finance.models import PaymentSettings
from finance.payhere_service import PayHereService, PaymentConfigurationError
from finance.payment_service import PaymentNotification, BookingNotFound, apply_notification
from logistics.models import Booking

logger = logging.getLogger(__name__)


def _text(message: str, status_code: int = 200) -> HttpResponse:
    return HttpResponse(message, status=status_code, content_type='text/plain; charset=utf-8')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def payhere_checkout(request, booking_id):
    """
    Build the signed PayHere form for one of the user's bookings.

    POST /api/payments/<booking_id>/checkout/

    Returns the form fields plus 'url' (the PayHere checkout action):
    {
        "url": "https://sandbox.payhere.lk/pay/checkout",
        "merchant_id": "...",
        "order_id": "K4821",
        "amount": "12500.00",
        "currency": "LKR",
        "hash": "...",
        ...
    }
    """
    booking = Booking.objects.filter(pk=booking_id, user=request.user).first()
    if booking is None:
        return Response(
            {'error': 'This booking could not be found.'},
            status=status.HTTP_404_NOT_FOUND
        )

    if not PaymentSettings.get_config().is_payhere_enabled:
        return Response(
            {'error': 'Online payment is currently unavailable.'},
            status=status.HTTP_403_FORBIDDEN
        )

    if booking.is_paid:
        return Response(
            {'error': 'This booking has already been paid for.'},
            status=status.HTTP_409_CONFLICT
        )

    try:
        payload = PayHereService().build_checkout_payload(booking, request.user)
    except ValueError:
        return Response(
            {'error': 'The cost for this booking has not been determined yet. Please contact support.'},
            status=status.HTTP_400_BAD_REQUEST
        )
    except PaymentConfigurationError as e:
        logger.error(f"[PAYHERE] Checkout unavailable: {e}")
        return Response(
            {'error': 'Payment is not configured. Please contact support.'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return Response(payload)


@csrf_exempt
@require_http_methods(['POST'])
def payhere_notify(request):
    """
    PayHere server-to-server notification (form-encoded).

    POST /api/payhere-notify

    Responses are plain text: 200 OK, 400 for malformed or unsigned
    requests, 500 for configuration and processing errors (PayHere retries).
    """
    service = PayHereService()
    if not service.merchant_secret:
        logger.error("[PAYHERE] PAYHERE_MERCHANT_SECRET is not configured")
        return _text("Server configuration error.", 500)

    try:
        notification = PaymentNotification.from_form(request.POST)
    except ValueError as e:
        logger.warning(f"[PAYHERE] Malformed notification: {e}")
        return _text("Malformed notification.", 400)

    logger.info(
        f"[PAYHERE] Notification for order {notification.order_id} "
        f"with status code {notification.status_code}"
    )

    if not service.verify_notification(notification):
        logger.warning(
            f"[PAYHERE] Signature mismatch for order {notification.order_id}. "
            f"Received: {notification.md5sig}"
        )
        return _text("Signature mismatch.", 400)

    try:
        apply_notification(notification)
    except BookingNotFound:
        logger.error(f"[PAYHERE] Verified notification for unknown booking {notification.order_id}")
        return _text("Webhook error.", 500)
    except Exception as e:
        logger.exception(f"[PAYHERE] Error processing notification for {notification.order_id}: {e}")
        return _text("Webhook error.", 500)

    return _text("OK")
