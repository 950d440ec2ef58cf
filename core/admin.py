"""
Django Admin configuration for CORE app.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, NicVerificationStatus, Notification
from .services import NicVerificationService


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Custom admin for User model with email-based auth."""

    list_display = (
        'email',
        'display_name',
        'role',
        'is_profile_complete',
        'nic_verification_status',
        'is_active',
        'date_joined'
    )
    list_filter = ('role', 'nic_verification_status', 'is_profile_complete', 'is_active', 'is_staff')
    search_fields = ('email', 'display_name', 'nic_number', 'phone')
    ordering = ('-date_joined',)

    fieldsets = (
        (None, {
            'fields': ('email', 'password')
        }),
        ('Profile', {
            'fields': ('display_name', 'phone', 'address', 'is_profile_complete', 'role')
        }),
        ('NIC Verification', {
            'fields': (
                'nic_number', 'nic_verification_status',
                'nic_front_image', 'nic_back_image',
                'nic_submitted_at', 'nic_reviewed_at'
            ),
        }),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
            'classes': ('collapse',)
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'role', 'password1', 'password2'),
        }),
    )

    readonly_fields = ('date_joined', 'is_profile_complete', 'nic_submitted_at', 'nic_reviewed_at')

    actions = ['verify_nic', 'reject_nic']

    @admin.action(description="Verify NIC of selected users")
    def verify_nic(self, request, queryset):
        pending = queryset.filter(nic_verification_status=NicVerificationStatus.PENDING)
        count = 0
        for user in pending:
            NicVerificationService.review(user, NicVerificationStatus.VERIFIED)
            count += 1
        self.message_user(request, f"{count} NIC(s) verified.")

    @admin.action(description="Reject NIC of selected users")
    def reject_nic(self, request, queryset):
        pending = queryset.filter(nic_verification_status=NicVerificationStatus.PENDING)
        count = 0
        for user in pending:
            NicVerificationService.review(user, NicVerificationStatus.REJECTED)
            count += 1
        self.message_user(request, f"{count} NIC(s) rejected.")


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('notification_type', 'message', 'is_read', 'created_at')
    list_filter = ('notification_type', 'is_read')
    search_fields = ('message',)
    ordering = ('-created_at',)
