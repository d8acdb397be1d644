"""API views for payments and the provider webhook."""

from __future__ import annotations

import json

import structlog
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from shared.infrastructure.throttling import StrictTokenBucketThrottle

from .application.webhook_handlers import handle_payment_event
from .models import Payment
from .serializers import PaymentCreateSerializer, PaymentSerializer, WebhookEventSerializer
from .signature import SIGNATURE_HEADER, TIMESTAMP_HEADER, InvalidSignature, verify_signature

logger = structlog.get_logger(__name__)


class PaymentViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Guests open payments for their provisional bookings and see their history."""

    permission_classes = [permissions.IsAuthenticated]
    throttle_scope = "payments"
    filterset_fields = ["booking", "status", "purpose"]

    def get_throttles(self):  # type: ignore
        if self.action == "create":
            return [StrictTokenBucketThrottle()]
        return super().get_throttles()

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return PaymentCreateSerializer
        return PaymentSerializer

    def get_queryset(self):  # type: ignore
        qs = Payment.objects.select_related("booking")
        user = self.request.user
        if user.is_staff:
            return qs
        return qs.filter(booking__guest=user)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = serializer.save()
        logger.info(
            "payment.created",
            payment_id=payment.pk,
            booking_id=payment.booking_id,
            purpose=payment.purpose,
            amount=payment.amount,
        )
        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)


class PaymentWebhookView(APIView):
    """
    Provider callback. Authenticated by HMAC signature, not by user.

    Any response other than 2xx makes the provider redeliver, so duplicate
    and stale deliveries are acknowledged with 200 and their outcome.
    """

    authentication_classes: list = []
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):  # type: ignore
        body = request.body
        try:
            verify_signature(
                body,
                request.headers.get(SIGNATURE_HEADER),
                request.headers.get(TIMESTAMP_HEADER),
            )
        except InvalidSignature as exc:
            logger.warning("payment.webhook.rejected", reason=str(exc))
            return Response({"detail": "Invalid signature"}, status=status.HTTP_403_FORBIDDEN)

        try:
            payload = json.loads(body or b"{}")
        except ValueError:
            logger.warning("payment.webhook.invalid_json")
            return Response({"detail": "Invalid JSON"}, status=status.HTTP_400_BAD_REQUEST)

        serializer = WebhookEventSerializer(data=payload)
        serializer.is_valid(raise_exception=True)
        event = serializer.to_event()

        outcome = handle_payment_event(event, payload)
        logger.info(
            "payment.webhook.processed",
            event_id=event.event_id,
            event_type=event.type.value,
            payment_id=event.payment_id,
            booking_id=event.booking_id,
            outcome=outcome.value,
        )
        return Response({"status": outcome.value}, status=status.HTTP_200_OK)
