"""
FINANCE App - Payment gateway settings for FLYCARGO

Booking payment state lives on logistics.Booking; this app only owns the
PayHere on/off switch and the gateway integration.
"""

from django.db import models
from django.conf import settings
from django.core.cache import cache


class PayHereStatusCode(models.IntegerChoices):
    """status_code values sent by PayHere notifications."""
    SUCCESS = 2, 'Success'
    PENDING = 0, 'Pending'
    CANCELLED = -1, 'Cancelled'
    FAILED = -2, 'Failed'
    CHARGED_BACK = -3, 'Charged back'


class PaymentSettings(models.Model):
    """
    Singleton (pk=1) with admin-controlled payment options.

    Read through get_config(), which caches the row.
    """

    CACHE_KEY = 'payment_settings'

    is_payhere_enabled = models.BooleanField(
        default=True,
        verbose_name="PayHere enabled",
        help_text="Offer online card payment through PayHere"
    )
    updated_at = models.DateTimeField(auto_now=True)
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='+',
        verbose_name="Updated by"
    )

    class Meta:
        verbose_name = "Payment settings"
        verbose_name_plural = "Payment settings"

    def __str__(self):
        return "Payment settings"

    def save(self, *args, **kwargs):
        """Enforce singleton, only one instance."""
        self.pk = 1
        super().save(*args, **kwargs)
        cache.delete(self.CACHE_KEY)

    @classmethod
    def get_config(cls):
        """Get the payment settings (cached)."""
        config = cache.get(cls.CACHE_KEY)
        if config is None:
            config, _ = cls.objects.get_or_create(pk=1)
            cache.set(cls.CACHE_KEY, config, 600)
        return config
