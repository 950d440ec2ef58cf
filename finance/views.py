"""
Finance App Views - Payment settings API
"""

import logging
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.views import IsAdminUser
from .models import PaymentSettings
from .serializers import PaymentSettingsSerializer

logger = logging.getLogger(__name__)


class PaymentSettingsAPIView(APIView):
    """
    Toggle online payment options (Admin only).

    GET/PATCH /api/admin/payment-settings/
    """

    permission_classes = [IsAdminUser]

    def get(self, request):
        return Response(PaymentSettingsSerializer(PaymentSettings.get_config()).data)

    def patch(self, request):
        config = PaymentSettings.objects.get_or_create(pk=1)[0]
        serializer = PaymentSettingsSerializer(config, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        serializer.save(updated_by=request.user)
        logger.info(
            f"[PAYMENTS] PayHere {'enabled' if config.is_payhere_enabled else 'disabled'} "
            f"by {request.user.email}"
        )
        return Response(serializer.data)
