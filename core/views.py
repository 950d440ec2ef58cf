"""
Core App Views - Users, NIC verification, Admin notifications
"""

import logging
from django.contrib.auth import get_user_model
from django.core import signing
from django.db.models import Count, Q
from django.http import FileResponse, Http404
from django.shortcuts import get_object_or_404
from rest_framework import viewsets, status, permissions, mixins
from rest_framework.decorators import action
from rest_framework.response import Response

from .models import UserRole, NicVerificationStatus, Notification
from .serializers import (
    UserSerializer, RoleAssignmentSerializer,
    NicSubmissionSerializer, NicQueueSerializer, NicQueueFilterSerializer,
    NotificationSerializer,
)
from .services import NicVerificationService, NicSubmissionError, NotificationService

User = get_user_model()
logger = logging.getLogger(__name__)


class IsAdminUser(permissions.BasePermission):
    """Permission for admin users only."""

    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role == UserRole.ADMIN


class UserViewSet(viewsets.GenericViewSet):
    """
    ViewSet for the current user's profile and admin role management.
    """

    queryset = User.objects.all()
    serializer_class = UserSerializer
    permission_classes = [permissions.IsAuthenticated]

    @action(detail=False, methods=['get', 'patch'])
    def me(self, request):
        """Get or update the current user profile."""
        if request.method == 'PATCH':
            serializer = self.get_serializer(request.user, data=request.data, partial=True)
            serializer.is_valid(raise_exception=True)
            serializer.save()
            return Response(serializer.data)
        return Response(self.get_serializer(request.user).data)

    @action(detail=False, methods=['post'], permission_classes=[IsAdminUser])
    def set_role(self, request):
        """Assign a role to a user by email (Admin only)."""
        serializer = RoleAssignmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        email = serializer.validated_data['email']
        role = serializer.validated_data['role']

        if email.lower() == request.user.email.lower():
            return Response(
                {'error': 'You cannot change your own role.'},
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            user = User.objects.get(email__iexact=email)
        except User.DoesNotExist:
            return Response(
                {'error': 'User not found.'},
                status=status.HTTP_404_NOT_FOUND
            )

        user.role = role
        user.save(update_fields=['role'])
        logger.info(f"[ROLES] {request.user.email} set {user.email} -> {role}")
        return Response({'message': f'User {user.email} is now {role}.'})


class NicVerificationViewSet(viewsets.ViewSet):
    """
    NIC submission (customers) and verification queue (admins).
    """

    permission_classes = [permissions.IsAuthenticated]

    @action(detail=False, methods=['post'])
    def submit(self, request):
        """Upload NIC front/back images for verification."""
        serializer = NicSubmissionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            user = NicVerificationService.submit(
                user=request.user,
                front_image=data['front_image'],
                back_image=data['back_image'],
                nic_number=data.get('nic_number', ''),
            )
        except NicSubmissionError as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        return Response({
            'message': 'NIC uploaded. Verification is pending.',
            'nic_verification_status': user.nic_verification_status,
        })

    @action(detail=False, methods=['get'], permission_classes=[IsAdminUser])
    def queue(self, request):
        """List users in the verification queue (Admin only)."""
        filters = NicQueueFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        status_filter = filters.validated_data['status']
        search = filters.validated_data.get('search', '').strip()

        users = User.objects.exclude(
            nic_verification_status=NicVerificationStatus.NONE
        ).annotate(booking_count=Count('bookings'))

        if status_filter != 'all':
            users = users.filter(nic_verification_status=status_filter)
        if search:
            users = users.filter(
                Q(display_name__icontains=search) |
                Q(email__icontains=search) |
                Q(nic_number__icontains=search)
            )

        users = users.order_by('-nic_submitted_at')
        return Response(NicQueueSerializer(users, many=True).data)

    @action(detail=True, methods=['post'], permission_classes=[IsAdminUser])
    def verify(self, request, pk=None):
        """Approve a user's NIC (Admin only)."""
        user = get_object_or_404(User, pk=pk)
        NicVerificationService.review(user, NicVerificationStatus.VERIFIED)
        return Response({'message': f'NIC for {user.email} verified.'})

    @action(detail=True, methods=['post'], permission_classes=[IsAdminUser])
    def reject(self, request, pk=None):
        """Reject a user's NIC (Admin only)."""
        user = get_object_or_404(User, pk=pk)
        NicVerificationService.review(user, NicVerificationStatus.REJECTED)
        return Response({'message': f'NIC for {user.email} rejected.'})

    @action(detail=True, methods=['get'], permission_classes=[IsAdminUser])
    def documents(self, request, pk=None):
        """Short-lived signed links to both NIC images (Admin only)."""
        user = get_object_or_404(User, pk=pk)
        links = {}
        for side in NicVerificationService.SIDES:
            url = NicVerificationService.signed_document_url(user, side)
            links[side] = request.build_absolute_uri(url) if url else None
        return Response(links)


def nic_document(request, token):
    """
    Stream a NIC image for a signed, unexpired token.

    GET /api/nic/documents/<token>/
    """
    try:
        image = NicVerificationService.resolve_document_token(token)
    except signing.BadSignature:
        logger.warning("[NIC] Rejected invalid or expired document token")
        raise Http404("Link expired or invalid.")
    except User.DoesNotExist:
        raise Http404("Document not found.")

    if not image:
        raise Http404("Document not found.")
    return FileResponse(image.open('rb'))


class NotificationViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """Admin notifications (newest first)."""

    queryset = Notification.objects.all()
    serializer_class = NotificationSerializer
    permission_classes = [IsAdminUser]
    filterset_fields = ['is_read', 'notification_type']

    @action(detail=True, methods=['post'])
    def read(self, request, pk=None):
        notification = NotificationService.mark_read(self.get_object())
        return Response(self.get_serializer(notification).data)
