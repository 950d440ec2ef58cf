"""
CORE App - Custom User Model for FLYCARGO

Handles: Users (Customers, Admins, Developers), NIC verification, Admin notifications
"""

import os
import uuid
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models
from django.core.validators import RegexValidator
from django.utils import timezone


class UserRole(models.TextChoices):
    """User role enumeration."""
    USER = 'user', 'Customer'
    ADMIN = 'admin', 'Administrator'
    DEVELOPER = 'developer', 'Developer'


class NicVerificationStatus(models.TextChoices):
    """National Identity Card verification status."""
    NONE = 'none', 'Not submitted'
    PENDING = 'pending', 'Pending review'
    VERIFIED = 'verified', 'Verified'
    REJECTED = 'rejected', 'Rejected'


def nic_upload_to(instance, filename):
    """
    Store NIC images under nic_verification/<user_id>/.

    The side ('front'/'back') is carried in the incoming filename prefix
    set by NicVerificationService.
    """
    extension = os.path.splitext(filename)[1].lower() or '.jpg'
    side = 'back' if filename.startswith('nic_back') else 'front'
    stamp = int(timezone.now().timestamp() * 1000)
    return f"nic_verification/{instance.pk}/nic_{side}_{stamp}{extension}"


class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication."""

    use_in_migrations = True

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('An email address is required')

        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', UserRole.ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as primary identifier.

    Key Business Logic:
    - is_profile_complete is derived on save (name, phone and address present)
    - nic_verification_status gates the post-booking flow: customers with
      'none' or 'rejected' are sent to NIC submission after booking
    - role ADMIN unlocks rate tables, offers, orders and the NIC queue
    """

    phone_regex = RegexValidator(
        regex=r'^\+?[0-9]{9,15}$',
        message="Format: +94XXXXXXXXX (country code included)"
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True, verbose_name="Email")

    # Profile
    display_name = models.CharField(max_length=150, blank=True, verbose_name="Display name")
    phone = models.CharField(
        max_length=16,
        blank=True,
        validators=[phone_regex],
        verbose_name="Phone"
    )
    address = models.CharField(max_length=255, blank=True, verbose_name="Address")
    is_profile_complete = models.BooleanField(default=False, verbose_name="Profile complete")
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.USER,
        verbose_name="Role"
    )

    # NIC Verification
    nic_number = models.CharField(max_length=20, blank=True, verbose_name="NIC number")
    nic_front_image = models.ImageField(
        upload_to=nic_upload_to,
        null=True,
        blank=True,
        verbose_name="NIC front"
    )
    nic_back_image = models.ImageField(
        upload_to=nic_upload_to,
        null=True,
        blank=True,
        verbose_name="NIC back"
    )
    nic_verification_status = models.CharField(
        max_length=20,
        choices=NicVerificationStatus.choices,
        default=NicVerificationStatus.NONE,
        db_index=True,
        verbose_name="NIC status"
    )
    nic_submitted_at = models.DateTimeField(null=True, blank=True)
    nic_reviewed_at = models.DateTimeField(null=True, blank=True)

    # Django Auth Fields
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    date_joined = models.DateTimeField(auto_now_add=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"
        ordering = ['-date_joined']

    def __str__(self):
        return f"{self.display_name or self.email} ({self.role})"

    def save(self, *args, **kwargs):
        self.is_profile_complete = all([
            self.display_name.strip(),
            self.phone.strip(),
            self.address.strip(),
        ])
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'is_profile_complete' not in update_fields:
            kwargs['update_fields'] = list(update_fields) + ['is_profile_complete']
        super().save(*args, **kwargs)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def needs_nic_verification(self) -> bool:
        """Customers without an accepted or pending NIC must (re)submit."""
        return self.nic_verification_status in (
            NicVerificationStatus.NONE,
            NicVerificationStatus.REJECTED,
        )


# ===========================================
# ADMIN NOTIFICATIONS
# ===========================================

class NotificationType(models.TextChoices):
    NEW_BOOKING = 'new_booking', 'New booking'
    NIC_SUBMISSION = 'nic_submission', 'NIC submitted'
    PAYMENT_RECEIVED = 'payment_received', 'Payment received'


class Notification(models.Model):
    """
    In-app notification addressed to all administrators.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    notification_type = models.CharField(
        max_length=30,
        choices=NotificationType.choices,
        verbose_name="Type"
    )
    message = models.CharField(max_length=255, verbose_name="Message")
    link = models.CharField(max_length=255, blank=True, verbose_name="Link")
    is_read = models.BooleanField(default=False, verbose_name="Read")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Notification"
        verbose_name_plural = "Notifications"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_read', 'created_at'], name='core_notif_read_created_idx'),
        ]

    def __str__(self):
        return f"[{self.notification_type}] {self.message}"
