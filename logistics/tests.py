"""
FLYCARGO Logistics Tests
=========================

Tests for:
1. Rate Calculator (chargeable weight, band selection, result kinds)
2. Rate table loading & validation
3. Booking creation (server-side estimate, id, admin notification)
4. Rates, offers, bookings & dashboard API
"""

from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase
from rest_framework.test import APIClient

from core.models import User, UserRole, Notification, NotificationType, NicVerificationStatus
from logistics.models import (
    Country, WeightBand as WeightBandRow, SpecialOffer, Booking,
    OrderStatus, PaymentStatus, generate_booking_id,
)
from logistics.services.booking import BookingService, BookingError
from logistics.services.pricing import (
    WeightBand, RateTable, RateQuery, RateResultKind, RateCalculator,
    chargeable_weight, select_band, calculate_rate, find_rate_table,
    calculate_rate_for_destination,
)
from logistics.services.rate_tables import (
    RateTableError, band_from_row, load_rate_table, load_all_rate_tables,
)


def band(label, value, **prices):
    return WeightBand(weight_label=label, weight_value=Decimal(str(value)), **prices)


def parcel_economy(weight, country='Germany', **dims):
    return RateQuery(
        shipment_type='parcel',
        service_type='economy',
        destination=country,
        weight=Decimal(str(weight)),
        **dims
    )


class TestChargeableWeight(TestCase):
    """Tests for actual vs volumetric weight."""

    def test_actual_weight_without_dimensions(self):
        self.assertEqual(chargeable_weight(Decimal('1.5')), Decimal('1.5'))

    def test_volumetric_weight_wins(self):
        """50x50x50cm = 125000 / 5000 = 25kg."""
        result = chargeable_weight(Decimal('1'), Decimal('50'), Decimal('50'), Decimal('50'))
        self.assertEqual(result, Decimal('25'))

    def test_actual_weight_wins_over_small_box(self):
        result = chargeable_weight(Decimal('10'), Decimal('10'), Decimal('10'), Decimal('10'))
        self.assertEqual(result, Decimal('10'))

    def test_partial_dimensions_are_ignored(self):
        result = chargeable_weight(Decimal('2'), Decimal('100'), None, Decimal('100'))
        self.assertEqual(result, Decimal('2'))

    # ==========================================
    # RateQuery validation
    # ==========================================

    def test_query_rejects_non_positive_weight(self):
        with self.assertRaises(ValueError):
            parcel_economy(0)
        with self.assertRaises(ValueError):
            parcel_economy(-1)

    def test_query_rejects_partial_dimensions(self):
        with self.assertRaises(ValueError):
            parcel_economy(1, length=Decimal('10'), width=Decimal('10'))

    def test_query_rejects_unknown_shipment_type(self):
        with self.assertRaises(ValueError):
            RateQuery('pallet', 'economy', 'Germany', Decimal('1'))

    def test_query_accepts_floats(self):
        query = parcel_economy(1, length=50.0, width=50.0, height=50.0)
        self.assertEqual(query.chargeable_weight, Decimal('25'))


class TestBandSelection(TestCase):
    """Tests for weight band selection."""

    def setUp(self):
        # Deliberately unsorted
        self.bands = [
            band('5kg', 5),
            band('0.5kg', '0.5'),
            band('2kg', 2),
        ]

    def test_exact_threshold_selects_that_band(self):
        """Upper bound is inclusive."""
        selected, overflow = select_band(self.bands, Decimal('2'))
        self.assertEqual(selected.weight_label, '2kg')
        self.assertFalse(overflow)

    def test_just_above_threshold_selects_next_band(self):
        selected, _ = select_band(self.bands, Decimal('2.001'))
        self.assertEqual(selected.weight_label, '5kg')

    def test_smallest_band(self):
        selected, _ = select_band(self.bands, Decimal('0.1'))
        self.assertEqual(selected.weight_label, '0.5kg')

    def test_overflow_uses_largest_band(self):
        selected, overflow = select_band(self.bands, Decimal('30'))
        self.assertEqual(selected.weight_label, '5kg')
        self.assertTrue(overflow)

    def test_empty_band_list(self):
        self.assertEqual(select_band([], Decimal('1')), (None, False))


class TestRateCalculator(TestCase):
    """Tests for calculate_rate result kinds."""

    def setUp(self):
        self.germany = RateTable(country='Germany', bands=(
            band(
                '0-2kg', 2,
                nd_economy_price=Decimal('1500'),
                nd_express_price=Decimal('2500'),
                doc_economy_price=Decimal('900'),
                is_doc_express_enabled=False,
                doc_express_price=Decimal('1200'),
            ),
            band('25kg', 25, nd_economy_price=Decimal('18000')),
            band('30kg', 30, nd_economy_price=Decimal('21000')),
        ))

    def test_germany_example(self):
        """1.5kg parcel economy to Germany -> 1500 LKR in the 0-2kg band."""
        result = calculate_rate(parcel_economy('1.5'), self.germany)

        self.assertTrue(result.ok)
        self.assertEqual(result.kind, RateResultKind.SUCCESS)
        self.assertEqual(result.price, Decimal('1500'))
        self.assertEqual(result.currency, 'LKR')
        self.assertEqual(result.band_label, '0-2kg')
        self.assertEqual(result.chargeable_weight, Decimal('1.5'))
        self.assertFalse(result.overflow)
        self.assertFalse(result.uses_chargeable_weight)

    def test_volumetric_override_selects_25kg_band(self):
        query = parcel_economy(1, length=Decimal('50'), width=Decimal('50'), height=Decimal('50'))
        result = calculate_rate(query, self.germany)

        self.assertEqual(result.band_label, '25kg')
        self.assertEqual(result.price, Decimal('18000'))
        self.assertEqual(result.chargeable_weight, Decimal('25'))
        self.assertEqual(result.actual_weight, Decimal('1'))
        self.assertTrue(result.uses_chargeable_weight)

    def test_overflow_returns_top_band_price_with_warning(self):
        result = calculate_rate(parcel_economy(45), self.germany)

        self.assertTrue(result.ok)
        self.assertTrue(result.overflow)
        self.assertEqual(result.price, Decimal('21000'))
        self.assertEqual(result.message, "Weight exceeds max band. Using rate for 30kg.")

    def test_service_disabled(self):
        table = RateTable('Germany', (
            band('0-2kg', 2, nd_economy_price=Decimal('1000'), is_nd_economy_enabled=False),
        ))
        result = calculate_rate(parcel_economy(1), table)

        self.assertFalse(result.ok)
        self.assertEqual(result.kind, RateResultKind.SERVICE_UNAVAILABLE)
        self.assertIsNone(result.price)

    def test_price_missing(self):
        table = RateTable('Germany', (band('0-2kg', 2, nd_economy_price=None),))
        result = calculate_rate(parcel_economy(1), table)

        self.assertFalse(result.ok)
        self.assertEqual(result.kind, RateResultKind.PRICE_NOT_CONFIGURED)

    def test_disabled_document_express(self):
        query = RateQuery('document', 'express', 'Germany', Decimal('0.5'))
        result = calculate_rate(query, self.germany)
        self.assertEqual(result.kind, RateResultKind.SERVICE_UNAVAILABLE)

    def test_document_economy_uses_doc_column(self):
        query = RateQuery('document', 'economy', 'Germany', Decimal('0.5'))
        self.assertEqual(calculate_rate(query, self.germany).price, Decimal('900'))

    def test_no_bands(self):
        result = calculate_rate(parcel_economy(1), RateTable('Germany', ()))
        self.assertEqual(result.kind, RateResultKind.NO_RATES_CONFIGURED)

    def test_destination_not_found(self):
        result = calculate_rate(parcel_economy(1), None)
        self.assertEqual(result.kind, RateResultKind.DESTINATION_NOT_FOUND)

    def test_deterministic(self):
        query = parcel_economy('1.5')
        self.assertEqual(calculate_rate(query, self.germany), calculate_rate(query, self.germany))

    def test_tiny_volumetric_difference_is_not_reported(self):
        """10 x 10 x 50.004 / 5000 = 1.00008kg vs 1kg actual."""
        query = parcel_economy(1, length=Decimal('10'), width=Decimal('10'), height=Decimal('50.004'))
        result = calculate_rate(query, self.germany)
        self.assertFalse(result.uses_chargeable_weight)

    # ==========================================
    # Destination lookup
    # ==========================================

    def test_find_rate_table_is_case_insensitive(self):
        tables = [RateTable('Japan', ()), self.germany]
        self.assertIs(find_rate_table(tables, '  germany '), self.germany)
        self.assertIsNone(find_rate_table(tables, 'France'))

    def test_calculate_rate_for_destination(self):
        result = calculate_rate_for_destination(parcel_economy('1.5', country='GERMANY'), [self.germany])
        self.assertEqual(result.price, Decimal('1500'))

    def test_calculator_uses_table_source(self):
        calculator = RateCalculator(lambda name: self.germany if name == 'Germany' else None)
        self.assertTrue(calculator.quote(parcel_economy('1.5')).ok)
        self.assertEqual(
            calculator.quote(parcel_economy('1.5', country='Peru')).kind,
            RateResultKind.DESTINATION_NOT_FOUND
        )


class TestRateTables(TestCase):
    """Tests for loading rate tables from the database."""

    def setUp(self):
        self.country = Country.objects.create(name='United Kingdom')
        WeightBandRow.objects.create(
            country=self.country, weight_label='5kg', weight_value=Decimal('5'),
            nd_economy_price=Decimal('9000'),
        )
        WeightBandRow.objects.create(
            country=self.country, weight_label='1kg', weight_value=Decimal('1'),
            nd_economy_price=Decimal('4000'), is_doc_express_enabled=False,
        )

    def test_load_rate_table_case_insensitive(self):
        table = load_rate_table('united kingdom')

        self.assertEqual(table.country, 'United Kingdom')
        self.assertEqual([b.weight_label for b in table.bands], ['1kg', '5kg'])
        self.assertFalse(table.bands[0].is_doc_express_enabled)

    def test_unknown_country(self):
        self.assertIsNone(load_rate_table('Atlantis'))

    def test_load_all_rate_tables(self):
        Country.objects.create(name='Australia')
        tables = load_all_rate_tables()
        self.assertEqual([t.country for t in tables], ['Australia', 'United Kingdom'])
        self.assertEqual(tables[0].bands, ())

    def test_band_with_blank_label_is_rejected(self):
        row = WeightBandRow(country=self.country, weight_label='  ', weight_value=Decimal('1'))
        with self.assertRaises(RateTableError):
            band_from_row(row)

    def test_band_with_non_positive_weight_is_rejected(self):
        row = WeightBandRow(country=self.country, weight_label='zero', weight_value=Decimal('0'))
        with self.assertRaises(RateTableError):
            band_from_row(row)

    def test_band_with_negative_price_is_rejected(self):
        row = WeightBandRow(
            country=self.country, weight_label='1kg', weight_value=Decimal('1'),
            nd_express_price=Decimal('-5'),
        )
        with self.assertRaises(RateTableError):
            band_from_row(row)

    def test_deleting_country_cascades_bands(self):
        self.country.delete()
        self.assertEqual(WeightBandRow.objects.count(), 0)


BOOKING_DATA = {
    'shipment_type': 'parcel',
    'service_type': 'economy',
    'location_type': 'pickup',
    'receiver_country': 'Germany',
    'approx_weight': Decimal('1.5'),
    'approx_value': Decimal('50'),
    'receiver_full_name': 'Anna Schmidt',
    'receiver_email': 'anna@example.de',
    'receiver_address': 'Hauptstrasse 12',
    'receiver_zip_code': '10115',
    'receiver_city': 'Berlin',
    'receiver_contact_no': '+4915112345678',
    'sender_full_name': 'Nimal Perera',
    'sender_address': '12 Galle Road, Colombo 03',
    'sender_contact_no': '+94771234567',
    'package_contents': 'Tea packets and spices',
    'courier_purpose': 'gift',
    'custom_purpose': '',
}


class TestBookingService(TestCase):
    """Tests for BookingService.create_booking."""

    def setUp(self):
        self.user = User.objects.create_user(
            email='nimal@example.com',
            display_name='Nimal Perera',
            phone='+94771234567',
            address='12 Galle Road, Colombo 03',
        )
        germany = Country.objects.create(name='Germany')
        WeightBandRow.objects.create(
            country=germany, weight_label='0-2kg', weight_value=Decimal('2'),
            nd_economy_price=Decimal('1500'),
        )
        WeightBandRow.objects.create(
            country=germany, weight_label='25kg', weight_value=Decimal('25'),
            nd_economy_price=Decimal('18000'),
        )

    def test_booking_stores_calculated_estimate(self):
        booking = BookingService().create_booking(self.user, dict(BOOKING_DATA))

        self.assertEqual(booking.estimated_cost_lkr, Decimal('1500'))
        self.assertEqual(booking.rate_band_label, '0-2kg')
        self.assertEqual(booking.chargeable_weight, Decimal('1.500'))
        self.assertEqual(booking.status, OrderStatus.PENDING)
        self.assertEqual(booking.payment_status, PaymentStatus.PENDING)
        self.assertEqual(booking.nic_verification_status, NicVerificationStatus.NONE)
        self.assertRegex(booking.id, r'^[A-Z]\d{4}$')

    def test_volumetric_booking(self):
        data = dict(BOOKING_DATA, length=Decimal('50'), width=Decimal('50'), height=Decimal('50'))
        booking = BookingService().create_booking(self.user, data)

        self.assertEqual(booking.chargeable_weight, Decimal('25'))
        self.assertEqual(booking.estimated_cost_lkr, Decimal('18000'))

    def test_booking_without_price_has_no_estimate(self):
        data = dict(BOOKING_DATA, receiver_country='Atlantis')
        booking = BookingService().create_booking(self.user, data)

        self.assertIsNone(booking.estimated_cost_lkr)
        self.assertEqual(booking.rate_band_label, '')

    def test_package_description(self):
        data = dict(BOOKING_DATA, package_contents='x' * 150)
        booking = BookingService().create_booking(self.user, data)
        self.assertEqual(booking.package_description, 'gift: ' + 'x' * 100)

    def test_custom_purpose_in_description(self):
        data = dict(BOOKING_DATA, courier_purpose='custom', custom_purpose='Wedding album')
        booking = BookingService().create_booking(self.user, data)
        self.assertTrue(booking.package_description.startswith('Wedding album: '))

    def test_admins_notified(self):
        booking = BookingService().create_booking(self.user, dict(BOOKING_DATA))
        notification = Notification.objects.get(notification_type=NotificationType.NEW_BOOKING)
        self.assertEqual(
            notification.message,
            f"New booking (#{booking.id}) received from Nimal Perera."
        )

    def test_incomplete_profile_is_refused(self):
        user = User.objects.create_user(email='incomplete@example.com')
        with self.assertRaises(BookingError):
            BookingService().create_booking(user, dict(BOOKING_DATA))
        self.assertEqual(Booking.objects.count(), 0)

    def test_id_collision_is_retried(self):
        first = BookingService().create_booking(self.user, dict(BOOKING_DATA))
        with patch(
            'logistics.services.booking.generate_booking_id',
            side_effect=[first.id, 'Z9999'],
        ):
            second = BookingService().create_booking(self.user, dict(BOOKING_DATA))
        self.assertEqual(second.id, 'Z9999')

    def test_generate_booking_id_format(self):
        for _ in range(20):
            self.assertRegex(generate_booking_id(), r'^[A-Z][1-9]\d{3}$')


class TestRatesAPI(TestCase):
    """Tests for public rates endpoints and admin rate management."""

    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(
            email='admin@flycargo.lk', password='testpass123', role=UserRole.ADMIN
        )
        self.customer = User.objects.create_user(email='customer@example.com')
        self.germany = Country.objects.create(name='Germany')
        self.band = WeightBandRow.objects.create(
            country=self.germany, weight_label='0-2kg', weight_value=Decimal('2'),
            nd_economy_price=Decimal('1500'),
        )

    def test_countries_are_public(self):
        response = self.client.get('/api/countries/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual([c['name'] for c in response.json()], ['Germany'])

    def test_quote(self):
        response = self.client.post('/api/quote/', {
            'shipment_type': 'parcel',
            'service_type': 'economy',
            'country': 'germany',
            'weight': '1.5',
        }, format='json')

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data['ok'])
        self.assertEqual(Decimal(data['price']), Decimal('1500'))
        self.assertEqual(data['currency'], 'LKR')
        self.assertEqual(data['band_label'], '0-2kg')

    def test_quote_failure_kind(self):
        response = self.client.post('/api/quote/', {
            'shipment_type': 'document',
            'service_type': 'economy',
            'country': 'Germany',
            'weight': '1',
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()['ok'])
        self.assertEqual(response.json()['kind'], 'PRICE_NOT_CONFIGURED')

    def test_quote_partial_dimensions_rejected(self):
        response = self.client.post('/api/quote/', {
            'shipment_type': 'parcel',
            'service_type': 'economy',
            'country': 'Germany',
            'weight': '1',
            'length': '10',
        }, format='json')
        self.assertEqual(response.status_code, 400)

    def test_quote_requires_country(self):
        response = self.client.post('/api/quote/', {
            'shipment_type': 'parcel', 'service_type': 'economy', 'weight': '1',
        }, format='json')
        self.assertEqual(response.status_code, 400)

    def test_quote_rejects_zero_weight(self):
        response = self.client.post('/api/quote/', {
            'shipment_type': 'parcel', 'service_type': 'economy',
            'country': 'Germany', 'weight': '0',
        }, format='json')
        self.assertEqual(response.status_code, 400)

    # ==========================================
    # Admin rate management
    # ==========================================

    def test_admin_adds_weight_band(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post(f'/api/admin/countries/{self.germany.pk}/weights/', {
            'weight_label': '5kg',
            'weight_value': '5',
            'nd_economy_price': '4200',
            'is_nd_express_enabled': False,
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(self.germany.weight_bands.count(), 2)

        response = self.client.get(f'/api/admin/countries/{self.germany.pk}/weights/')
        self.assertEqual([b['weight_label'] for b in response.json()], ['0-2kg', '5kg'])

    def test_admin_edits_and_deletes_band(self):
        self.client.force_authenticate(self.admin)
        url = f'/api/admin/countries/{self.germany.pk}/weights/{self.band.pk}/'

        response = self.client.patch(url, {'nd_economy_price': '1600'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.band.refresh_from_db()
        self.assertEqual(self.band.nd_economy_price, Decimal('1600'))

        response = self.client.delete(url)
        self.assertEqual(response.status_code, 204)
        self.assertFalse(WeightBandRow.objects.filter(pk=self.band.pk).exists())

    def test_band_of_other_country_not_found(self):
        other = Country.objects.create(name='Japan')
        self.client.force_authenticate(self.admin)
        response = self.client.get(f'/api/admin/countries/{other.pk}/weights/{self.band.pk}/')
        self.assertEqual(response.status_code, 404)

    def test_duplicate_country_name_rejected(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/admin/countries/', {'name': 'GERMANY'}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_admin_preview(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post(f'/api/admin/countries/{self.germany.pk}/preview/', {
            'shipment_type': 'parcel', 'service_type': 'economy', 'weight': '3',
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['overflow'])
        self.assertEqual(Decimal(response.json()['price']), Decimal('1500'))

    def test_rate_admin_forbidden_for_customers(self):
        self.client.force_authenticate(self.customer)
        response = self.client.get('/api/admin/countries/')
        self.assertEqual(response.status_code, 403)

    # ==========================================
    # Special offers
    # ==========================================

    def test_public_offers_only_enabled(self):
        SpecialOffer.objects.create(country='Australia', weight_description='Up to 25kg', rate=Decimal('45000'))
        SpecialOffer.objects.create(
            country='Canada', weight_description='Up to 10kg', rate=Decimal('30000'), enabled=False
        )
        response = self.client.get('/api/offers/')
        self.assertEqual([o['country'] for o in response.json()], ['Australia'])

    def test_admin_creates_offer(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/admin/offers/', {
            'country': 'Italy', 'weight_description': 'Up to 5kg', 'rate': '15000',
        }, format='json')
        self.assertEqual(response.status_code, 201)

    def test_offer_rate_must_be_positive(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/admin/offers/', {
            'country': 'Italy', 'weight_description': 'Up to 5kg', 'rate': '0',
        }, format='json')
        self.assertEqual(response.status_code, 400)


class TestBookingAPI(TestCase):
    """Tests for booking endpoints."""

    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(
            email='admin@flycargo.lk', password='testpass123', role=UserRole.ADMIN
        )
        self.user = User.objects.create_user(
            email='nimal@example.com',
            display_name='Nimal Perera',
            phone='+94771234567',
            address='12 Galle Road, Colombo 03',
        )
        germany = Country.objects.create(name='Germany')
        WeightBandRow.objects.create(
            country=germany, weight_label='0-2kg', weight_value=Decimal('2'),
            nd_economy_price=Decimal('1500'),
        )
        self.payload = {k: str(v) for k, v in BOOKING_DATA.items()}
        self.payload['agreed_to_terms'] = True

    def test_create_booking(self):
        self.client.force_authenticate(self.user)
        payload = dict(self.payload, estimated_cost_lkr='1', payment_status='Paid')
        response = self.client.post('/api/bookings/', payload, format='json')

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(Decimal(data['estimated_cost_lkr']), Decimal('1500'))
        self.assertEqual(data['payment_status'], PaymentStatus.PENDING)

    def test_create_booking_with_broker_down(self):
        """A failed email dispatch does not turn a created booking into a 500."""
        self.client.force_authenticate(self.user)
        with patch(
            'core.tasks.email_admins_notification.delay',
            side_effect=ConnectionError('broker down'),
        ):
            with self.captureOnCommitCallbacks(execute=True):
                response = self.client.post('/api/bookings/', self.payload, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(Booking.objects.count(), 1)

    def test_terms_must_be_accepted(self):
        self.client.force_authenticate(self.user)
        response = self.client.post(
            '/api/bookings/', dict(self.payload, agreed_to_terms=False), format='json'
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn('agreed_to_terms', response.json())

    def test_partial_dimensions_rejected(self):
        self.client.force_authenticate(self.user)
        response = self.client.post(
            '/api/bookings/', dict(self.payload, length='10', width='10'), format='json'
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(Booking.objects.count(), 0)

    def test_custom_purpose_required(self):
        self.client.force_authenticate(self.user)
        response = self.client.post(
            '/api/bookings/',
            dict(self.payload, courier_purpose='custom', custom_purpose='ab'),
            format='json'
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn('custom_purpose', response.json())

    def test_invalid_contact_number(self):
        self.client.force_authenticate(self.user)
        response = self.client.post(
            '/api/bookings/', dict(self.payload, sender_contact_no='call me'), format='json'
        )
        self.assertEqual(response.status_code, 400)

    def test_incomplete_profile_forbidden(self):
        user = User.objects.create_user(email='new@example.com')
        self.client.force_authenticate(user)
        response = self.client.post('/api/bookings/', self.payload, format='json')
        self.assertEqual(response.status_code, 403)

    def test_list_only_own_bookings(self):
        mine = BookingService().create_booking(self.user, dict(BOOKING_DATA))
        other = User.objects.create_user(
            email='other@example.com', display_name='Other',
            phone='+94770000000', address='Kandy Road, Kandy',
        )
        BookingService().create_booking(other, dict(BOOKING_DATA))

        self.client.force_authenticate(self.user)
        response = self.client.get('/api/bookings/')
        self.assertEqual([b['id'] for b in response.json()['results']], [mine.id])

    def test_tracking_is_public_and_minimal(self):
        booking = BookingService().create_booking(self.user, dict(BOOKING_DATA))
        response = self.client.get(f'/api/bookings/track/{booking.id.lower()}/')

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['status'], OrderStatus.PENDING)
        self.assertNotIn('sender_full_name', data)

    def test_tracking_unknown_booking(self):
        response = self.client.get('/api/bookings/track/Q0000/')
        self.assertEqual(response.status_code, 404)

    # ==========================================
    # Admin order management
    # ==========================================

    def test_admin_filters_bookings(self):
        paid = BookingService().create_booking(self.user, dict(BOOKING_DATA))
        Booking.objects.filter(pk=paid.pk).update(payment_status=PaymentStatus.PAID)
        BookingService().create_booking(self.user, dict(BOOKING_DATA))

        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/admin/bookings/', {'payment_status': 'Paid'})
        self.assertEqual([b['id'] for b in response.json()['results']], [paid.id])

    def test_admin_updates_order_status_only(self):
        booking = BookingService().create_booking(self.user, dict(BOOKING_DATA))
        self.client.force_authenticate(self.admin)

        response = self.client.post(
            f'/api/admin/bookings/{booking.id}/status/',
            {'status': OrderStatus.IN_TRANSIT},
            format='json'
        )

        self.assertEqual(response.status_code, 200)
        booking.refresh_from_db()
        self.assertEqual(booking.status, OrderStatus.IN_TRANSIT)
        self.assertEqual(booking.payment_status, PaymentStatus.PENDING)

    def test_admin_rejects_unknown_status(self):
        booking = BookingService().create_booking(self.user, dict(BOOKING_DATA))
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            f'/api/admin/bookings/{booking.id}/status/', {'status': 'Lost'}, format='json'
        )
        self.assertEqual(response.status_code, 400)

    def test_dashboard_counts(self):
        BookingService().create_booking(self.user, dict(BOOKING_DATA))
        self.user.nic_verification_status = NicVerificationStatus.PENDING
        self.user.save(update_fields=['nic_verification_status'])

        self.client.force_authenticate(self.admin)
        data = self.client.get('/api/admin/dashboard/').json()

        self.assertEqual(data['bookings']['total'], 1)
        self.assertEqual(data['bookings']['by_status'][OrderStatus.PENDING], 1)
        self.assertEqual(data['bookings']['by_payment_status'][PaymentStatus.PAID], 0)
        self.assertEqual(data['pending_nic_verifications'], 1)
        self.assertEqual(data['countries'], 1)
