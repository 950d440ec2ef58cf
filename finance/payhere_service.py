"""
PayHere Integration for FLYCARGO

Builds signed checkout payloads and verifies server-to-server notifications.

Signing scheme (PayHere Checkout API):
    secret_hash = UPPER(MD5(merchant_secret))
    checkout    = UPPER(MD5(merchant_id + order_id + amount + currency + secret_hash))
    notify      = UPPER(MD5(merchant_id + order_id + payhere_amount
                            + payhere_currency + status_code + secret_hash))

Amounts are plain strings with exactly two decimals and no separators.
"""

import hashlib
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)

SANDBOX_CHECKOUT_URL = 'https://sandbox.payhere.lk/pay/checkout'
LIVE_CHECKOUT_URL = 'https://www.payhere.lk/pay/checkout'

CURRENCY = 'LKR'
BILLING_COUNTRY = 'Sri Lanka'


class PaymentConfigurationError(ImproperlyConfigured):
    """PayHere merchant credentials or APP_URL are missing."""


def _md5_upper(value: str) -> str:
    return hashlib.md5(value.encode('utf-8')).hexdigest().upper()


def format_amount(amount) -> str:
    """Format an amount as PayHere expects it, e.g. 1234.5 -> '1234.50'."""
    if not isinstance(amount, Decimal):
        amount = Decimal(str(amount))
    return str(amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))


def split_name(full_name: str):
    """'Nimal Perera Silva' -> ('Nimal', 'Perera Silva'); blanks become 'N/A'."""
    parts = (full_name or '').split()
    first_name = parts[0] if parts else ''
    last_name = ' '.join(parts[1:])
    return first_name or 'N/A', last_name or 'N/A'


class PayHereService:
    """
    PayHere checkout payload signer and notification verifier.

    Credentials default to settings (PAYHERE_MERCHANT_ID,
    PAYHERE_MERCHANT_SECRET, PAYHERE_MODE, APP_URL) and are only checked
    when used.
    """

    def __init__(
        self,
        merchant_id: Optional[str] = None,
        merchant_secret: Optional[str] = None,
        mode: Optional[str] = None,
        app_url: Optional[str] = None,
    ):
        self.merchant_id = merchant_id if merchant_id is not None else settings.PAYHERE_MERCHANT_ID
        self.merchant_secret = (
            merchant_secret if merchant_secret is not None else settings.PAYHERE_MERCHANT_SECRET
        )
        self.mode = (mode if mode is not None else settings.PAYHERE_MODE).strip().lower()
        self.app_url = (app_url if app_url is not None else settings.APP_URL).rstrip('/')

    @property
    def is_live(self) -> bool:
        return self.mode == 'live'

    @property
    def checkout_url(self) -> str:
        return LIVE_CHECKOUT_URL if self.is_live else SANDBOX_CHECKOUT_URL

    @property
    def is_configured(self) -> bool:
        return bool(self.merchant_id and self.merchant_secret)

    def secret_hash(self) -> str:
        if not self.merchant_secret:
            raise PaymentConfigurationError("PAYHERE_MERCHANT_SECRET is not configured.")
        return _md5_upper(self.merchant_secret)

    def _require_merchant(self):
        if not self.merchant_id:
            raise PaymentConfigurationError("PAYHERE_MERCHANT_ID is not configured.")
        if not self.app_url:
            raise PaymentConfigurationError("APP_URL is not configured.")

    # ============================================
    # CHECKOUT
    # ============================================

    def checkout_hash(self, order_id: str, amount: str, currency: str = CURRENCY) -> str:
        """Signature of a checkout form; amount must already be formatted."""
        return _md5_upper(f"{self.merchant_id}{order_id}{amount}{currency}{self.secret_hash()}")

    def build_checkout_payload(self, booking, customer=None) -> dict:
        """
        Build the signed form fields for a PayHere checkout.

        Args:
            booking: logistics.Booking with a positive estimated_cost_lkr
            customer: Owning user (email fallback); defaults to booking.user

        Raises:
            PaymentConfigurationError: Missing merchant id, secret or APP_URL
            ValueError: Booking has no positive estimate
        """
        self._require_merchant()

        if booking.estimated_cost_lkr is None or booking.estimated_cost_lkr <= 0:
            raise ValueError("The cost for this booking has not been determined yet.")

        customer = customer or booking.user
        amount = format_amount(booking.estimated_cost_lkr)
        first_name, last_name = split_name(booking.sender_full_name)

        payload = {
            'url': self.checkout_url,
            'merchant_id': self.merchant_id,
            'return_url': f"{self.app_url}/payment/success?bookingId={booking.id}",
            'cancel_url': f"{self.app_url}/payment/cancel?bookingId={booking.id}",
            'notify_url': f"{self.app_url}/api/payhere-notify",
            'first_name': first_name,
            'last_name': last_name,
            'email': getattr(customer, 'email', '') or 'no-email@flycargo.lk',
            'phone': booking.sender_contact_no,
            'address': booking.sender_address,
            'city': booking.receiver_city,
            'country': BILLING_COUNTRY,
            'order_id': booking.id,
            'items': f"Shipment Booking: {booking.id}",
            'currency': CURRENCY,
            'amount': amount,
            'hash': self.checkout_hash(booking.id, amount),
        }

        logger.info(f"[PAYHERE] Checkout payload built for {booking.id} ({amount} {CURRENCY}, {self.mode})")
        return payload

    # ============================================
    # NOTIFICATIONS
    # ============================================

    def notification_signature(
        self,
        merchant_id: str,
        order_id: str,
        payhere_amount: str,
        payhere_currency: str,
        status_code: str,
    ) -> str:
        """Expected md5sig for the raw notification field values."""
        return _md5_upper(
            f"{merchant_id}{order_id}{payhere_amount}{payhere_currency}{status_code}{self.secret_hash()}"
        )

    def verify_notification(self, notification) -> bool:
        """
        Check a notification's md5sig.

        The raw payhere_amount string is signed, not a re-formatted number.
        """
        expected = self.notification_signature(
            notification.merchant_id,
            notification.order_id,
            notification.payhere_amount,
            notification.payhere_currency,
            str(notification.status_code),
        )
        return expected == notification.md5sig.upper()
