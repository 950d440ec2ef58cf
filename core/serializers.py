"""
Core App Serializers - Users, NIC verification, Notifications
"""

from rest_framework import serializers
from django.contrib.auth import get_user_model

from .models import UserRole, NicVerificationStatus, Notification

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """Serializer for User model (profile read/update)."""

    class Meta:
        model = User
        fields = [
            'id', 'email', 'display_name', 'phone', 'address',
            'is_profile_complete', 'role', 'nic_verification_status',
            'nic_submitted_at', 'date_joined'
        ]
        read_only_fields = [
            'id', 'email', 'is_profile_complete', 'role',
            'nic_verification_status', 'nic_submitted_at', 'date_joined'
        ]


class RoleAssignmentSerializer(serializers.Serializer):
    """Serializer for assigning a role by email (admin)."""

    email = serializers.EmailField()
    role = serializers.ChoiceField(choices=UserRole.choices)


class NicSubmissionSerializer(serializers.Serializer):
    """Serializer for NIC image upload."""

    front_image = serializers.ImageField()
    back_image = serializers.ImageField()
    nic_number = serializers.CharField(max_length=20, required=False, allow_blank=True)


class NicQueueSerializer(serializers.ModelSerializer):
    """Admin view of a user in the NIC verification queue."""

    booking_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'display_name', 'phone', 'nic_number',
            'nic_verification_status', 'nic_submitted_at', 'nic_reviewed_at',
            'booking_count'
        ]
        read_only_fields = fields


class NicQueueFilterSerializer(serializers.Serializer):
    """Query parameters for the NIC queue."""

    status = serializers.ChoiceField(
        choices=[('all', 'All')] + list(NicVerificationStatus.choices),
        default=NicVerificationStatus.PENDING,
    )
    search = serializers.CharField(required=False, allow_blank=True)


class NotificationSerializer(serializers.ModelSerializer):

    class Meta:
        model = Notification
        fields = ['id', 'notification_type', 'message', 'link', 'is_read', 'created_at']
        read_only_fields = fields
