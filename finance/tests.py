"""
FLYCARGO Finance Tests
=======================

Tests for:
1. PayHere signing (amount format, checkout hash, notification signature)
2. Checkout payload endpoint
3. PayHere notify webhook (verification, Pending -> Paid, idempotency)
4. Payment settings singleton & admin API
"""

import hashlib
from decimal import Decimal
from unittest.mock import patch

from django.core.cache import cache
from django.db import DatabaseError
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from core.models import User, UserRole, Notification, NotificationType
from logistics.models import Booking, PaymentStatus, OrderStatus
from finance.models import PaymentSettings
from finance.payhere_service import (
    PayHereService, PaymentConfigurationError,
    SANDBOX_CHECKOUT_URL, LIVE_CHECKOUT_URL,
    format_amount, split_name,
)
from finance.payment_service import PaymentNotification, apply_notification

MERCHANT_ID = '1221149'
MERCHANT_SECRET = 'MzY0NjQ3NjU3OTE5NDE4NTk0MDI0MTk='

PAYHERE_SETTINGS = dict(
    PAYHERE_MERCHANT_ID=MERCHANT_ID,
    PAYHERE_MERCHANT_SECRET=MERCHANT_SECRET,
    PAYHERE_MODE='sandbox',
    APP_URL='https://flycargo.lk',
)


def md5_upper(value):
    return hashlib.md5(value.encode('utf-8')).hexdigest().upper()


def sign_notification(order_id, amount, currency='LKR', status_code='2',
                      merchant_id=MERCHANT_ID, secret=MERCHANT_SECRET):
    """md5sig as PayHere computes it."""
    return md5_upper(f"{merchant_id}{order_id}{amount}{currency}{status_code}{md5_upper(secret)}")


def notification_form(order_id, amount='1500.00', currency='LKR', status_code='2', **overrides):
    form = {
        'merchant_id': MERCHANT_ID,
        'order_id': order_id,
        'payhere_amount': amount,
        'payhere_currency': currency,
        'status_code': status_code,
        'md5sig': sign_notification(order_id, amount, currency, status_code),
    }
    form.update(overrides)
    return form


def make_booking(user, booking_id='K4821', estimate=Decimal('1500.00'), **fields):
    values = dict(
        shipment_type='parcel',
        service_type='economy',
        location_type='pickup',
        receiver_country='Germany',
        approx_weight=Decimal('1.5'),
        approx_value=Decimal('50'),
        receiver_full_name='Anna Schmidt',
        receiver_address='Hauptstrasse 12',
        receiver_zip_code='10115',
        receiver_city='Berlin',
        receiver_contact_no='+4915112345678',
        sender_full_name='Nimal Perera Silva',
        sender_address='12 Galle Road, Colombo 03',
        sender_contact_no='+94771234567',
        package_contents='Tea packets',
        courier_purpose='gift',
        chargeable_weight=Decimal('1.5'),
        estimated_cost_lkr=estimate,
        rate_band_label='0-2kg',
    )
    values.update(fields)
    return Booking.objects.create(id=booking_id, user=user, **values)


class TestPayHereSigning(TestCase):
    """Tests for PayHereService hashing helpers."""

    def setUp(self):
        self.service = PayHereService(
            merchant_id=MERCHANT_ID,
            merchant_secret=MERCHANT_SECRET,
            mode='sandbox',
            app_url='https://flycargo.lk/',
        )

    def test_format_amount(self):
        self.assertEqual(format_amount(Decimal('1500')), '1500.00')
        self.assertEqual(format_amount(Decimal('1234.5')), '1234.50')
        self.assertEqual(format_amount(Decimal('99.995')), '100.00')
        self.assertEqual(format_amount(250), '250.00')

    def test_split_name(self):
        self.assertEqual(split_name('Nimal Perera Silva'), ('Nimal', 'Perera Silva'))
        self.assertEqual(split_name('Nimal'), ('Nimal', 'N/A'))
        self.assertEqual(split_name('   '), ('N/A', 'N/A'))

    def test_secret_hash(self):
        self.assertEqual(self.service.secret_hash(), md5_upper(MERCHANT_SECRET))

    def test_checkout_hash_matches_payhere_formula(self):
        expected = md5_upper(f"{MERCHANT_ID}K48211500.00LKR{md5_upper(MERCHANT_SECRET)}")
        self.assertEqual(self.service.checkout_hash('K4821', '1500.00'), expected)

    def test_notification_signature(self):
        notification = PaymentNotification.from_form(notification_form('K4821'))
        self.assertTrue(self.service.verify_notification(notification))

    def test_lowercase_signature_accepted(self):
        form = notification_form('K4821')
        form['md5sig'] = form['md5sig'].lower()
        self.assertTrue(self.service.verify_notification(PaymentNotification.from_form(form)))

    def test_raw_amount_is_signed(self):
        """'1500' and '1500.00' are different signed strings."""
        form = notification_form('K4821', amount='1500.00')
        form['payhere_amount'] = '1500'
        self.assertFalse(self.service.verify_notification(PaymentNotification.from_form(form)))

    def test_wrong_secret_rejected(self):
        other = PayHereService(MERCHANT_ID, 'another-secret', 'sandbox', 'https://flycargo.lk')
        notification = PaymentNotification.from_form(notification_form('K4821'))
        self.assertFalse(other.verify_notification(notification))

    def test_checkout_url_by_mode(self):
        self.assertEqual(self.service.checkout_url, SANDBOX_CHECKOUT_URL)
        live = PayHereService(MERCHANT_ID, MERCHANT_SECRET, ' LIVE ', 'https://flycargo.lk')
        self.assertTrue(live.is_live)
        self.assertEqual(live.checkout_url, LIVE_CHECKOUT_URL)

    def test_missing_secret(self):
        service = PayHereService(MERCHANT_ID, '', 'sandbox', 'https://flycargo.lk')
        self.assertFalse(service.is_configured)
        with self.assertRaises(PaymentConfigurationError):
            service.secret_hash()

    # ==========================================
    # Notification parsing
    # ==========================================

    def test_from_form_requires_every_field(self):
        form = notification_form('K4821')
        del form['md5sig']
        with self.assertRaises(ValueError):
            PaymentNotification.from_form(form)

    def test_from_form_rejects_blank_field(self):
        form = notification_form('K4821')
        form['order_id'] = '  '
        with self.assertRaises(ValueError):
            PaymentNotification.from_form(form)

    def test_from_form_rejects_non_integer_status(self):
        with self.assertRaises(ValueError):
            PaymentNotification.from_form(notification_form('K4821', status_code='ok'))

    def test_from_form_keeps_raw_values(self):
        """Fields are verified exactly as received, whitespace included."""
        form = notification_form('K4821', amount='1500.00 ')
        notification = PaymentNotification.from_form(form)

        self.assertEqual(notification.payhere_amount, '1500.00 ')
        self.assertTrue(self.service.verify_notification(notification))

        form['md5sig'] = sign_notification('K4821', '1500.00')
        self.assertFalse(self.service.verify_notification(PaymentNotification.from_form(form)))

    def test_only_exact_success_code_is_success(self):
        self.assertTrue(PaymentNotification.from_form(notification_form('K4821')).is_success)
        for code in ('02', '+2', ' 2'):
            notification = PaymentNotification.from_form(notification_form('K4821', status_code=code))
            self.assertFalse(notification.is_success)


class TestCheckoutPayload(TestCase):
    """Tests for build_checkout_payload and the checkout endpoint."""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = User.objects.create_user(
            email='nimal@example.com',
            display_name='Nimal Perera',
            phone='+94771234567',
            address='12 Galle Road, Colombo 03',
        )
        self.booking = make_booking(self.user)

    def test_payload_fields(self):
        service = PayHereService(MERCHANT_ID, MERCHANT_SECRET, 'sandbox', 'https://flycargo.lk/')
        payload = service.build_checkout_payload(self.booking)

        self.assertEqual(payload['url'], SANDBOX_CHECKOUT_URL)
        self.assertEqual(payload['merchant_id'], MERCHANT_ID)
        self.assertEqual(payload['order_id'], 'K4821')
        self.assertEqual(payload['amount'], '1500.00')
        self.assertEqual(payload['currency'], 'LKR')
        self.assertEqual(payload['first_name'], 'Nimal')
        self.assertEqual(payload['last_name'], 'Perera Silva')
        self.assertEqual(payload['email'], 'nimal@example.com')
        self.assertEqual(payload['city'], 'Berlin')
        self.assertEqual(payload['country'], 'Sri Lanka')
        self.assertEqual(payload['items'], 'Shipment Booking: K4821')
        self.assertEqual(payload['return_url'], 'https://flycargo.lk/payment/success?bookingId=K4821')
        self.assertEqual(payload['cancel_url'], 'https://flycargo.lk/payment/cancel?bookingId=K4821')
        self.assertEqual(payload['notify_url'], 'https://flycargo.lk/api/payhere-notify')
        self.assertEqual(
            payload['hash'],
            md5_upper(f"{MERCHANT_ID}K48211500.00LKR{md5_upper(MERCHANT_SECRET)}")
        )

    def test_payload_requires_estimate(self):
        service = PayHereService(MERCHANT_ID, MERCHANT_SECRET, 'sandbox', 'https://flycargo.lk')
        booking = make_booking(self.user, booking_id='B1000', estimate=None)
        with self.assertRaises(ValueError):
            service.build_checkout_payload(booking)

    def test_payload_requires_merchant_id(self):
        service = PayHereService('', MERCHANT_SECRET, 'sandbox', 'https://flycargo.lk')
        with self.assertRaises(PaymentConfigurationError):
            service.build_checkout_payload(self.booking)

    # ==========================================
    # Endpoint
    # ==========================================

    @override_settings(**PAYHERE_SETTINGS)
    def test_checkout_endpoint(self):
        self.client.force_authenticate(self.user)
        response = self.client.post('/api/payments/K4821/checkout/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['amount'], '1500.00')
        self.assertEqual(response.json()['url'], SANDBOX_CHECKOUT_URL)

    @override_settings(**PAYHERE_SETTINGS)
    def test_checkout_other_users_booking(self):
        other = User.objects.create_user(email='other@example.com')
        self.client.force_authenticate(other)
        response = self.client.post('/api/payments/K4821/checkout/')
        self.assertEqual(response.status_code, 404)

    @override_settings(**PAYHERE_SETTINGS)
    def test_checkout_when_payhere_disabled(self):
        PaymentSettings(is_payhere_enabled=False).save()
        self.client.force_authenticate(self.user)
        response = self.client.post('/api/payments/K4821/checkout/')
        self.assertEqual(response.status_code, 403)

    @override_settings(**PAYHERE_SETTINGS)
    def test_checkout_already_paid(self):
        Booking.objects.filter(pk='K4821').update(payment_status=PaymentStatus.PAID)
        self.client.force_authenticate(self.user)
        response = self.client.post('/api/payments/K4821/checkout/')
        self.assertEqual(response.status_code, 409)

    @override_settings(**PAYHERE_SETTINGS)
    def test_checkout_without_estimate(self):
        make_booking(self.user, booking_id='B1000', estimate=None)
        self.client.force_authenticate(self.user)
        response = self.client.post('/api/payments/B1000/checkout/')
        self.assertEqual(response.status_code, 400)

    @override_settings(**dict(PAYHERE_SETTINGS, PAYHERE_MERCHANT_ID=''))
    def test_checkout_misconfigured(self):
        self.client.force_authenticate(self.user)
        response = self.client.post('/api/payments/K4821/checkout/')
        self.assertEqual(response.status_code, 500)

    def test_checkout_requires_login(self):
        response = self.client.post('/api/payments/K4821/checkout/')
        self.assertEqual(response.status_code, 401)


@override_settings(**PAYHERE_SETTINGS)
class TestPayHereNotify(TestCase):
    """Tests for the PayHere notify webhook."""

    url = '/api/payhere-notify'

    def setUp(self):
        self.user = User.objects.create_user(
            email='nimal@example.com',
            display_name='Nimal Perera',
            phone='+94771234567',
            address='12 Galle Road, Colombo 03',
        )
        self.booking = make_booking(self.user)

    def payment_notifications(self):
        return Notification.objects.filter(notification_type=NotificationType.PAYMENT_RECEIVED)

    def test_success_marks_booking_paid(self):
        response = self.client.post(self.url, notification_form('K4821'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b'OK')
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.PAID)
        self.assertEqual(self.booking.status, OrderStatus.PENDING)
        self.assertEqual(
            self.payment_notifications().get().message,
            "Payment of 1500.00 LKR received for booking #K4821."
        )

    def test_duplicate_notification_is_idempotent(self):
        self.client.post(self.url, notification_form('K4821'))
        response = self.client.post(self.url, notification_form('K4821'))

        self.assertEqual(response.status_code, 200)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.PAID)
        self.assertEqual(self.payment_notifications().count(), 1)

    def test_tampered_amount_rejected(self):
        form = notification_form('K4821', amount='1500.00')
        form['payhere_amount'] = '15.00'
        response = self.client.post(self.url, form)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.content, b'Signature mismatch.')
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.PENDING)
        self.assertFalse(self.payment_notifications().exists())

    def test_malformed_notification(self):
        form = notification_form('K4821')
        del form['status_code']
        response = self.client.post(self.url, form)
        self.assertEqual(response.status_code, 400)

    def test_non_success_codes_change_nothing(self):
        for code in ('0', '-1', '-2', '-3'):
            response = self.client.post(self.url, notification_form('K4821', status_code=code))
            self.assertEqual(response.status_code, 200)

        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.PENDING)
        self.assertFalse(self.payment_notifications().exists())

    def test_paid_never_reverts(self):
        self.client.post(self.url, notification_form('K4821'))
        for code in ('-1', '-3', '0'):
            self.client.post(self.url, notification_form('K4821', status_code=code))

        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.PAID)

    def test_refunded_booking_not_repaid(self):
        Booking.objects.filter(pk='K4821').update(payment_status=PaymentStatus.REFUNDED)
        self.client.post(self.url, notification_form('K4821'))

        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.REFUNDED)

    def test_unknown_booking(self):
        response = self.client.post(self.url, notification_form('Z0000'))
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.content, b'Webhook error.')

    @override_settings(PAYHERE_MERCHANT_SECRET='')
    def test_missing_secret(self):
        response = self.client.post(self.url, notification_form('K4821'))

        self.assertEqual(response.status_code, 500)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.PENDING)

    def test_get_not_allowed(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 405)

    def test_padded_success_code_changes_nothing(self):
        response = self.client.post(self.url, notification_form('K4821', status_code='02'))

        self.assertEqual(response.status_code, 200)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.PENDING)

    def test_broker_down_still_acknowledged(self):
        """Payment is recorded and PayHere gets 200 when the email cannot be queued."""
        with patch(
            'core.tasks.email_admins_notification.delay',
            side_effect=ConnectionError('broker down'),
        ):
            with self.captureOnCommitCallbacks(execute=True):
                response = self.client.post(self.url, notification_form('K4821'))

        self.assertEqual(response.status_code, 200)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.PAID)

    def test_persistence_failure_rolls_back(self):
        """A failure inside the transition leaves the booking Pending; the retry succeeds."""
        with patch(
            'finance.payment_service.NotificationService.notify_admins',
            side_effect=DatabaseError('disk full'),
        ):
            response = self.client.post(self.url, notification_form('K4821'))

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.content, b'Webhook error.')
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.PENDING)
        self.assertFalse(self.payment_notifications().exists())

        response = self.client.post(self.url, notification_form('K4821'))
        self.assertEqual(response.status_code, 200)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.PAID)
        self.assertEqual(self.payment_notifications().count(), 1)

    def test_apply_notification_returns_transition(self):
        notification = PaymentNotification.from_form(notification_form('K4821'))
        self.assertTrue(apply_notification(notification))
        self.assertFalse(apply_notification(notification))


class TestPaymentSettings(TestCase):
    """Tests for the PaymentSettings singleton and admin API."""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.admin = User.objects.create_user(
            email='admin@flycargo.lk', password='testpass123', role=UserRole.ADMIN
        )
        self.customer = User.objects.create_user(email='customer@example.com')

    def test_get_config_creates_default(self):
        config = PaymentSettings.get_config()
        self.assertEqual(config.pk, 1)
        self.assertTrue(config.is_payhere_enabled)

    def test_singleton(self):
        PaymentSettings(is_payhere_enabled=True).save()
        PaymentSettings(is_payhere_enabled=False).save()
        self.assertEqual(PaymentSettings.objects.count(), 1)

    def test_save_invalidates_cache(self):
        self.assertTrue(PaymentSettings.get_config().is_payhere_enabled)
        PaymentSettings(is_payhere_enabled=False).save()
        self.assertFalse(PaymentSettings.get_config().is_payhere_enabled)

    def test_admin_reads_settings(self):
        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/admin/payment-settings/')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['is_payhere_enabled'])
        self.assertIsNone(response.json()['updated_by'])

    def test_admin_disables_payhere(self):
        self.client.force_authenticate(self.admin)
        response = self.client.patch(
            '/api/admin/payment-settings/', {'is_payhere_enabled': False}, format='json'
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['updated_by'], 'admin@flycargo.lk')
        self.assertFalse(PaymentSettings.get_config().is_payhere_enabled)

    def test_customer_forbidden(self):
        self.client.force_authenticate(self.customer)
        response = self.client.patch(
            '/api/admin/payment-settings/', {'is_payhere_enabled': False}, format='json'
        )
        self.assertEqual(response.status_code, 403)
