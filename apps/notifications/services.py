"""Notification delivery over email, SMS/WhatsApp gateways and the in-app inbox."""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

import requests
from django.conf import settings  # type: ignore
from django.contrib.auth import get_user_model  # type: ignore
from django.core.mail import send_mail  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.errors import ExternalServiceError

from .models import Notification
from .templates import render

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    error: str = ""
    retryable: bool = False
    notification_id: Optional[int] = None


class NotificationDispatcher:
    """
    Render a notification, log it and deliver it on one channel.

    Every call leaves a ``Notification`` row behind, so the delivery log
    and the in-app inbox are the same table. Delivery problems are
    reported in the result and never raised; transient ones are flagged
    ``retryable`` for the calling task.
    """

    def __init__(
        self,
        http_post: Callable[..., Any] = requests.post,
        mailer: Callable[..., Any] = send_mail,
    ):
        self.http_post = http_post
        self.mailer = mailer

    def send(
        self,
        user_id: int,
        notification_type: str,
        channel: str,
        template_data: Optional[Mapping[str, Any]] = None,
        *,
        dispatch_key: str = "",
    ) -> DeliveryResult:
        data = dict(template_data or {})
        user = get_user_model().objects.filter(pk=user_id).first()
        if user is None:
            logger.warning("Notification %s for unknown user %s dropped", notification_type, user_id)
            return DeliveryResult(success=False, error="unknown user")

        notification = self._record(user, notification_type, channel, data, dispatch_key)
        if notification.status == Notification.Status.SENT:
            return DeliveryResult(success=True, notification_id=notification.pk)

        notification.attempts += 1
        try:
            self._deliver(user, notification, data)
        except _DeliveryFailed as exc:
            notification.status = Notification.Status.FAILED
            notification.error = str(exc)
            notification.save(update_fields=["status", "error", "attempts"])
            logger.warning(
                "Notification %s to user %s over %s failed: %s",
                notification_type, user_id, channel, exc,
            )
            return DeliveryResult(
                success=False,
                error=str(exc),
                retryable=exc.retryable,
                notification_id=notification.pk,
            )

        notification.status = Notification.Status.SENT
        notification.error = ""
        notification.sent_at = timezone.now()
        notification.save(update_fields=["status", "error", "attempts", "sent_at"])
        logger.info("Notification %s sent to user %s over %s", notification_type, user_id, channel)
        return DeliveryResult(success=True, notification_id=notification.pk)

    def _record(self, user, notification_type: str, channel: str, data: dict, dispatch_key: str) -> Notification:
        title, message = render(notification_type, data)
        if dispatch_key:
            notification, _ = Notification.objects.get_or_create(
                dispatch_key=dispatch_key,
                defaults={
                    "user": user,
                    "type": notification_type,
                    "channel": channel,
                    "title": title,
                    "message": message,
                },
            )
            return notification
        return Notification.objects.create(
            user=user,
            type=notification_type,
            channel=channel,
            title=title,
            message=message,
        )

    def _deliver(self, user, notification: Notification, data: dict) -> None:
        channel = notification.channel
        if channel == Notification.Channel.IN_APP:
            return
        if channel == Notification.Channel.EMAIL:
            self._send_email(user, notification)
        elif channel == Notification.Channel.SMS:
            self._send_via_gateway(settings.SMS_GATEWAY_URL, user, notification, data)
        elif channel == Notification.Channel.WHATSAPP:
            self._send_via_gateway(settings.WHATSAPP_GATEWAY_URL, user, notification, data)
        else:
            raise _DeliveryFailed(f"unsupported channel {channel}")

    def _send_email(self, user, notification: Notification) -> None:
        if not user.email:
            raise _DeliveryFailed("user has no email address")
        try:
            self.mailer(
                subject=notification.title,
                message=notification.message,
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[user.email],
                fail_silently=False,
            )
        except (smtplib.SMTPException, OSError) as exc:
            raise _DeliveryFailed(f"email delivery failed: {exc}", retryable=True) from exc

    def _send_via_gateway(self, url: str, user, notification: Notification, data: dict) -> None:
        if not url:
            raise _DeliveryFailed(f"no gateway configured for {notification.channel}")
        phone = data.get("phone") or getattr(user, "phone", "")
        if not phone:
            raise _DeliveryFailed("user has no phone number")
        try:
            response = self.http_post(
                url,
                json={"to": phone, "message": notification.message},
                timeout=10,
            )
        except requests.RequestException as exc:
            raise _DeliveryFailed(f"gateway unreachable: {exc}", retryable=True) from exc
        if response.status_code >= 500:
            raise _DeliveryFailed(f"gateway error {response.status_code}", retryable=True)
        if response.status_code >= 400:
            raise _DeliveryFailed(f"gateway rejected message: {response.status_code}")


class _DeliveryFailed(Exception):
    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


def post_staff_notices(subject: str, message: str) -> int:
    """Drop an in-app notice for every active staff user."""
    staff = get_user_model().objects.filter(is_staff=True, is_active=True)
    notices = [
        Notification(
            user=user,
            type="staff_alert",
            channel=Notification.Channel.IN_APP,
            title=subject,
            message=message,
            status=Notification.Status.SENT,
            sent_at=timezone.now(),
        )
        for user in staff
    ]
    Notification.objects.bulk_create(notices)
    return len(notices)


def email_staff_alert(subject: str, message: str, mailer: Optional[Callable[..., Any]] = None) -> bool:
    """
    Mail the alert to STAFF_ALERT_EMAIL.

    Returns False when no address is configured. SMTP and socket errors
    become ExternalServiceError so the calling task can retry.
    """
    recipient = getattr(settings, "STAFF_ALERT_EMAIL", "")
    if not recipient:
        return False
    try:
        (mailer or send_mail)(
            subject=subject,
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient],
            fail_silently=False,
        )
    except (smtplib.SMTPException, OSError) as exc:
        raise ExternalServiceError(
            f"Staff alert email to {recipient} failed: {exc}",
            details={"subject": subject},
        ) from exc
    return True


def alert_staff(subject: str, message: str, mailer: Optional[Callable[..., Any]] = None) -> int:
    """In-app notices are written before the email is attempted."""
    created = post_staff_notices(subject, message)
    email_staff_alert(subject, message, mailer=mailer)
    return created
