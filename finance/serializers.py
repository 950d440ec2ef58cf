"""
Finance App Serializers - Payment settings
"""

from rest_framework import serializers
from .models import PaymentSettings


class PaymentSettingsSerializer(serializers.ModelSerializer):
    """Serializer for the PaymentSettings singleton (admin)."""

    updated_by = serializers.EmailField(source='updated_by.email', read_only=True, allow_null=True)

    class Meta:
        model = PaymentSettings
        fields = ['is_payhere_enabled', 'updated_at', 'updated_by']
        read_only_fields = ['updated_at', 'updated_by']
