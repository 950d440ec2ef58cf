"""
FLYCARGO Core Tests
====================

Tests for:
1. Custom User Model (creation, roles, profile completeness)
2. Profile & role management API
3. NIC verification (submission, queue, review, signed document links)
4. Admin notifications (creation, email fan-out after commit)
5. Health endpoints
"""

import io
import shutil
import tempfile
from unittest.mock import patch, MagicMock

from django.core import mail
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from PIL import Image
from rest_framework.test import APIClient

from core.models import User, UserRole, NicVerificationStatus, Notification, NotificationType
from core.services import NicVerificationService, NicSubmissionError, NotificationService
from core.tasks import email_admins_notification

MEDIA_ROOT = tempfile.mkdtemp()


def make_image(name='nic.png', color=(200, 30, 30)):
    buffer = io.BytesIO()
    Image.new('RGB', (40, 25), color).save(buffer, format='PNG')
    return SimpleUploadedFile(name, buffer.getvalue(), content_type='image/png')


class TestUserModel(TestCase):
    """Tests for the custom User model."""

    def test_create_user_requires_email(self):
        """Email is the username field."""
        with self.assertRaises(ValueError):
            User.objects.create_user(email='', password='testpass123')

    def test_default_role_and_nic_status(self):
        user = User.objects.create_user(email='nimal@example.com', password='testpass123')
        self.assertEqual(user.role, UserRole.USER)
        self.assertEqual(user.nic_verification_status, NicVerificationStatus.NONE)
        self.assertTrue(user.needs_nic_verification)
        self.assertFalse(user.is_admin)

    def test_superuser_is_admin(self):
        admin = User.objects.create_superuser(email='root@example.com', password='testpass123')
        self.assertTrue(admin.is_admin)
        self.assertTrue(admin.is_staff)

    # ==========================================
    # Profile completeness
    # ==========================================

    def test_profile_incomplete_without_address(self):
        user = User.objects.create_user(
            email='kamal@example.com',
            display_name='Kamal Perera',
            phone='+94771234567',
        )
        self.assertFalse(user.is_profile_complete)

    def test_profile_complete_when_all_fields_present(self):
        user = User.objects.create_user(
            email='kamal@example.com',
            display_name='Kamal Perera',
            phone='+94771234567',
            address='12 Galle Road, Colombo 03',
        )
        self.assertTrue(user.is_profile_complete)

    def test_profile_completeness_saved_with_update_fields(self):
        """Saving a subset of fields still persists the derived flag."""
        user = User.objects.create_user(
            email='kamal@example.com',
            display_name='Kamal Perera',
            phone='+94771234567',
        )
        user.address = '12 Galle Road, Colombo 03'
        user.save(update_fields=['address'])

        user.refresh_from_db()
        self.assertTrue(user.is_profile_complete)


class TestUserAPI(TestCase):
    """Tests for /api/users/ endpoints."""

    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(
            email='admin@flycargo.lk', password='testpass123', role=UserRole.ADMIN
        )
        self.customer = User.objects.create_user(
            email='customer@example.com', password='testpass123'
        )

    def test_me_returns_profile(self):
        self.client.force_authenticate(self.customer)
        response = self.client.get('/api/users/me/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['email'], 'customer@example.com')

    def test_me_patch_updates_profile_not_role(self):
        self.client.force_authenticate(self.customer)
        response = self.client.patch('/api/users/me/', {
            'display_name': 'Sunil Silva',
            'phone': '+94771234567',
            'address': '45 Kandy Road, Kadawatha',
            'role': UserRole.ADMIN,
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.customer.refresh_from_db()
        self.assertTrue(self.customer.is_profile_complete)
        self.assertEqual(self.customer.role, UserRole.USER)

    def test_me_requires_authentication(self):
        response = self.client.get('/api/users/me/')
        self.assertEqual(response.status_code, 401)

    # ==========================================
    # Role assignment
    # ==========================================

    def test_admin_assigns_role(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/users/set_role/', {
            'email': 'CUSTOMER@example.com', 'role': UserRole.DEVELOPER
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.role, UserRole.DEVELOPER)

    def test_admin_cannot_change_own_role(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/users/set_role/', {
            'email': 'admin@flycargo.lk', 'role': UserRole.USER
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.admin.refresh_from_db()
        self.assertEqual(self.admin.role, UserRole.ADMIN)

    def test_set_role_unknown_user(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/users/set_role/', {
            'email': 'ghost@example.com', 'role': UserRole.USER
        }, format='json')
        self.assertEqual(response.status_code, 404)

    def test_set_role_forbidden_for_customers(self):
        self.client.force_authenticate(self.customer)
        response = self.client.post('/api/users/set_role/', {
            'email': 'admin@flycargo.lk', 'role': UserRole.USER
        }, format='json')
        self.assertEqual(response.status_code, 403)


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class TestNicVerification(TestCase):
    """Tests for NIC submission and the admin review queue."""

    @classmethod
    def tearDownClass(cls):
        super().tearDownClass()
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)

    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(
            email='admin@flycargo.lk', password='testpass123', role=UserRole.ADMIN
        )
        self.customer = User.objects.create_user(
            email='customer@example.com',
            password='testpass123',
            display_name='Ruwan Fernando',
        )

    def _submit(self, user=None):
        return NicVerificationService.submit(
            user=user or self.customer,
            front_image=make_image('front.png'),
            back_image=make_image('back.png', color=(30, 30, 200)),
            nic_number='199012345678',
        )

    # ==========================================
    # Submission
    # ==========================================

    def test_submit_moves_user_to_pending(self):
        user = self._submit()

        self.assertEqual(user.nic_verification_status, NicVerificationStatus.PENDING)
        self.assertEqual(user.nic_number, '199012345678')
        self.assertIsNotNone(user.nic_submitted_at)
        self.assertIn('nic_front_', user.nic_front_image.name)
        self.assertIn('nic_back_', user.nic_back_image.name)
        self.assertTrue(user.nic_front_image.name.startswith(f'nic_verification/{user.pk}/'))

    def test_submit_notifies_admins(self):
        self._submit()
        notification = Notification.objects.get()
        self.assertEqual(notification.notification_type, NotificationType.NIC_SUBMISSION)
        self.assertIn('Ruwan Fernando', notification.message)

    def test_resubmit_while_pending_is_refused(self):
        self._submit()
        with self.assertRaises(NicSubmissionError):
            self._submit()

    def test_resubmit_after_rejection_is_allowed(self):
        user = self._submit()
        NicVerificationService.review(user, NicVerificationStatus.REJECTED)

        user = self._submit(user)
        self.assertEqual(user.nic_verification_status, NicVerificationStatus.PENDING)
        self.assertIsNone(user.nic_reviewed_at)

    def test_submit_endpoint(self):
        self.client.force_authenticate(self.customer)
        response = self.client.post('/api/nic/submit/', {
            'front_image': make_image('front.png'),
            'back_image': make_image('back.png'),
            'nic_number': '901234567V',
        }, format='multipart')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['nic_verification_status'], NicVerificationStatus.PENDING)

    def test_submit_endpoint_conflict_when_verified(self):
        user = self._submit()
        NicVerificationService.review(user, NicVerificationStatus.VERIFIED)

        self.client.force_authenticate(self.customer)
        response = self.client.post('/api/nic/submit/', {
            'front_image': make_image('front.png'),
            'back_image': make_image('back.png'),
        }, format='multipart')
        self.assertEqual(response.status_code, 409)

    def test_submit_endpoint_rejects_non_images(self):
        self.client.force_authenticate(self.customer)
        response = self.client.post('/api/nic/submit/', {
            'front_image': SimpleUploadedFile('front.png', b'not an image', content_type='image/png'),
            'back_image': make_image('back.png'),
        }, format='multipart')
        self.assertEqual(response.status_code, 400)

    # ==========================================
    # Review queue
    # ==========================================

    def test_review_rejects_invalid_status(self):
        with self.assertRaises(ValueError):
            NicVerificationService.review(self.customer, NicVerificationStatus.PENDING)

    def test_queue_defaults_to_pending(self):
        self._submit()
        other = User.objects.create_user(email='other@example.com')
        self._submit(other)
        NicVerificationService.review(other, NicVerificationStatus.VERIFIED)

        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/nic/queue/')

        self.assertEqual(response.status_code, 200)
        emails = [row['email'] for row in response.json()]
        self.assertEqual(emails, ['customer@example.com'])

    def test_queue_all_and_search(self):
        self._submit()
        other = User.objects.create_user(email='other@example.com', display_name='Chaminda')
        self._submit(other)
        NicVerificationService.review(other, NicVerificationStatus.REJECTED)

        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/nic/queue/', {'status': 'all'})
        self.assertEqual(len(response.json()), 2)

        response = self.client.get('/api/nic/queue/', {'status': 'all', 'search': 'chamin'})
        self.assertEqual([row['email'] for row in response.json()], ['other@example.com'])

    def test_queue_excludes_users_who_never_submitted(self):
        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/nic/queue/', {'status': 'all'})
        self.assertEqual(response.json(), [])

    def test_queue_forbidden_for_customers(self):
        self.client.force_authenticate(self.customer)
        response = self.client.get('/api/nic/queue/')
        self.assertEqual(response.status_code, 403)

    def test_verify_endpoint(self):
        self._submit()
        self.client.force_authenticate(self.admin)
        response = self.client.post(f'/api/nic/{self.customer.pk}/verify/')

        self.assertEqual(response.status_code, 200)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.nic_verification_status, NicVerificationStatus.VERIFIED)
        self.assertIsNotNone(self.customer.nic_reviewed_at)

    def test_reject_endpoint(self):
        self._submit()
        self.client.force_authenticate(self.admin)
        response = self.client.post(f'/api/nic/{self.customer.pk}/reject/')

        self.assertEqual(response.status_code, 200)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.nic_verification_status, NicVerificationStatus.REJECTED)

    # ==========================================
    # Signed document links
    # ==========================================

    def test_signed_url_is_none_without_image(self):
        self.assertIsNone(NicVerificationService.signed_document_url(self.customer, 'front'))

    def test_document_links_stream_images(self):
        self._submit()
        self.client.force_authenticate(self.admin)
        links = self.client.get(f'/api/nic/{self.customer.pk}/documents/').json()

        self.assertIsNotNone(links['front'])
        self.assertIsNotNone(links['back'])

        anonymous = APIClient()
        response = anonymous.get(links['front'])
        self.assertEqual(response.status_code, 200)
        body = b''.join(response.streaming_content)
        self.assertTrue(body.startswith(b'\x89PNG'))
        response.close()

    def test_tampered_token_is_rejected(self):
        self._submit()
        url = NicVerificationService.signed_document_url(self.customer, 'front')
        response = self.client.get(url.replace(':', 'x:', 1))
        self.assertEqual(response.status_code, 404)

    def test_expired_token_is_rejected(self):
        self._submit()
        url = NicVerificationService.signed_document_url(self.customer, 'back')
        with override_settings(NIC_DOCUMENT_URL_MAX_AGE=-1):
            response = self.client.get(url)
        self.assertEqual(response.status_code, 404)


class TestNotifications(TestCase):
    """Tests for admin notifications and their email fan-out."""

    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(
            email='admin@flycargo.lk', password='testpass123', role=UserRole.ADMIN
        )

    def test_email_scheduled_after_commit(self):
        with patch('core.tasks.email_admins_notification.delay') as mock_delay:
            with self.captureOnCommitCallbacks(execute=True):
                notification = NotificationService.notify_admins(
                    NotificationType.NEW_BOOKING, 'New booking (#K4821) received from Nimal.'
                )
        mock_delay.assert_called_once_with(str(notification.id))

    def test_email_not_sent_before_commit(self):
        with patch('core.tasks.email_admins_notification.delay') as mock_delay:
            NotificationService.notify_admins(NotificationType.NEW_BOOKING, 'pending commit')
        mock_delay.assert_not_called()

    def test_broker_outage_is_logged_not_raised(self):
        """The notification is kept even when the email cannot be queued."""
        with patch(
            'core.tasks.email_admins_notification.delay',
            side_effect=ConnectionError('broker down'),
        ):
            with self.assertLogs('core.services', level='ERROR') as logs:
                with self.captureOnCommitCallbacks(execute=True):
                    notification = NotificationService.notify_admins(
                        NotificationType.NEW_BOOKING, 'broker down'
                    )

        self.assertTrue(Notification.objects.filter(pk=notification.pk).exists())
        self.assertIn('Failed to queue email', logs.output[0])

    @override_settings(ADMINS=[('Ops', 'ops@flycargo.lk')])
    def test_email_task_mails_admins(self):
        notification = Notification.objects.create(
            notification_type=NotificationType.PAYMENT_RECEIVED,
            message='Payment of 12500.00 LKR received for booking #K4821.',
            link='/admin/orders',
        )
        self.assertTrue(email_admins_notification(str(notification.id)))
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('K4821', mail.outbox[0].body)

    def test_email_task_missing_notification(self):
        self.assertFalse(email_admins_notification('00000000-0000-0000-0000-000000000000'))

    def test_list_and_mark_read(self):
        notification = Notification.objects.create(
            notification_type=NotificationType.NEW_BOOKING, message='hello'
        )
        self.client.force_authenticate(self.admin)

        response = self.client.get('/api/notifications/', {'is_read': 'false'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['count'], 1)

        response = self.client.post(f'/api/notifications/{notification.id}/read/')
        self.assertEqual(response.status_code, 200)
        notification.refresh_from_db()
        self.assertTrue(notification.is_read)


class TestHealthEndpoints(TestCase):
    """Tests for liveness/readiness probes."""

    def test_health_endpoint_accessible(self):
        """Health check should be accessible without auth."""
        response = self.client.get('/health/')
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['status'], 'ok')
        self.assertEqual(data['service'], 'flycargo')

    def test_readiness_reports_celery_as_degraded(self):
        """No Celery worker must not fail readiness."""
        from flycargo_core.celery import app as celery_app

        control = MagicMock()
        control.inspect.return_value.ping.return_value = None
        with patch.object(celery_app, 'control', control):
            response = self.client.get('/health/ready/')

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['checks']['database']['status'], 'healthy')
        self.assertEqual(data['checks']['celery']['status'], 'degraded')
