"""
Django Admin configuration for FINANCE app.
"""

from django.contrib import admin
from .models import PaymentSettings


@admin.register(PaymentSettings)
class PaymentSettingsAdmin(admin.ModelAdmin):
    """Singleton: no add once the row exists, never delete."""

    list_display = ('__str__', 'is_payhere_enabled', 'updated_by', 'updated_at')
    readonly_fields = ('updated_at', 'updated_by')

    def has_add_permission(self, request):
        return not PaymentSettings.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False

    def save_model(self, request, obj, form, change):
        obj.updated_by = request.user
        super().save_model(request, obj, form, change)
