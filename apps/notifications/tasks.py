"""Celery tasks for notification delivery."""

from __future__ import annotations

import logging
from typing import Any, Optional

from celery import shared_task  # type: ignore

from shared.domain.errors import ExternalServiceError

from .services import NotificationDispatcher, alert_staff, email_staff_alert

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    name="notifications.dispatch_notification",
    autoretry_for=(ExternalServiceError,),
    retry_backoff=True,
    retry_backoff_max=600,
    max_retries=5,
)
def dispatch_notification(
    self,
    user_id: int,
    notification_type: str,
    channel: str,
    template_data: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """
    Deliver one notification.

    Retries reuse the notification row created by the first attempt
    (keyed by the task id). Permanent failures are recorded on the row
    and not retried.
    """
    result = NotificationDispatcher().send(
        user_id,
        notification_type,
        channel,
        template_data,
        dispatch_key=self.request.id or "",
    )
    if not result.success and result.retryable:
        raise ExternalServiceError(
            f"Delivery of {notification_type} to user {user_id} failed: {result.error}",
            details={"notification_id": result.notification_id, "channel": channel},
        )
    return {"success": result.success, "notification_id": result.notification_id, "error": result.error}


@shared_task(
    bind=True,
    name="notifications.alert_staff",
    autoretry_for=(ExternalServiceError,),
    retry_backoff=True,
    retry_backoff_max=600,
    max_retries=5,
)
def alert_staff_task(self, subject: str, message: str) -> int:
    """In-app notices are posted on the first attempt; retries only resend the email."""
    if self.request.retries:
        email_staff_alert(subject, message)
        return 0
    return alert_staff(subject, message)


@shared_task(name="notifications.broadcast")
def broadcast(user_ids: list[int], title: str, message: str, channel: str) -> int:
    """Fan a staff message out to each recipient as its own delivery task."""
    for user_id in user_ids:
        dispatch_notification.delay(user_id, "broadcast", channel, {"title": title, "message": message})
    logger.info("Broadcast %r queued for %d users over %s", title, len(user_ids), channel)
    return len(user_ids)
