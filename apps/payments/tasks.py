"""Celery tasks for payments."""

from __future__ import annotations

import logging

import requests
from celery import shared_task  # type: ignore
from django.conf import settings  # type: ignore

from .models import Payment

logger = logging.getLogger(__name__)


@shared_task(
    name="payments.request_refund",
    autoretry_for=(requests.RequestException,),
    retry_backoff=True,
    max_retries=5,
)
def request_refund(payment_id: int, reason: str = "") -> bool:
    """
    Ask the provider to refund a captured payment.

    Without a configured refund endpoint the request is left to staff; the
    provider's ``refunded`` webhook closes the loop either way.
    """
    try:
        payment = Payment.objects.get(pk=payment_id)
    except Payment.DoesNotExist:
        logger.error("Refund requested for unknown payment %s", payment_id)
        return False

    if payment.status != Payment.Status.SUCCEEDED:
        logger.info("Payment %s is %s, no refund needed", payment_id, payment.status)
        return False

    refund_url = getattr(settings, "PAYMENT_PROVIDER_REFUND_URL", "")
    if not refund_url:
        logger.warning("No refund endpoint configured, payment %s needs a manual refund", payment_id)
        payment.metadata["refund_requested"] = "manual"
        payment.save(update_fields=["metadata", "updated_at"])
        return False

    response = requests.post(
        refund_url,
        json={
            "provider_payment_id": payment.provider_payment_id,
            "amount": payment.amount,
            "currency": payment.currency,
            "reason": reason,
            "metadata": {"payment_id": payment.pk, "booking_id": payment.booking_id},
        },
        headers={"Authorization": f"Bearer {settings.PAYMENT_PROVIDER_API_KEY}"},
        timeout=10,
    )
    response.raise_for_status()
    payment.metadata["refund_requested"] = "provider"
    payment.save(update_fields=["metadata", "updated_at"])
    logger.info("Refund requested from provider for payment %s", payment_id)
    return True
