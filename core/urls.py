"""
Core App URLs
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
)

from .views import UserViewSet, NicVerificationViewSet, NotificationViewSet, nic_document

router = DefaultRouter()
router.register(r'users', UserViewSet, basename='user')
router.register(r'nic', NicVerificationViewSet, basename='nic')
router.register(r'notifications', NotificationViewSet, basename='notification')

urlpatterns = [
    # JWT Authentication
    path('auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # Signed NIC image links (no session required)
    path('nic/documents/<str:token>/', nic_document, name='nic-document'),

    # Router URLs
    path('', include(router.urls)),
]
