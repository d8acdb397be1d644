"""Notification delivery and the in-app inbox API."""

from __future__ import annotations

import smtplib
from unittest import mock

import requests
from django.contrib.auth import get_user_model
from django.core import mail
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.notifications.models import Notification
from apps.notifications.services import NotificationDispatcher, alert_staff
from apps.notifications.tasks import alert_staff_task, dispatch_notification
from apps.notifications.templates import render
from shared.domain.errors import ExternalServiceError

User = get_user_model()

BOOKING_DATA = {
    "booking_code": "AB12CD34",
    "room_type": "Deluxe King",
    "start_date": "2026-11-01",
    "end_date": "2026-11-03",
    "total_price": 20000,
    "currency": "USD",
}


def gateway_response(status_code: int) -> mock.Mock:
    return mock.Mock(status_code=status_code)


class TemplateTests(TestCase):
    def test_known_type_is_rendered(self) -> None:
        title, message = render("booking_confirmed", BOOKING_DATA)

        self.assertEqual(title, "Booking AB12CD34 confirmed")
        self.assertIn("2026-11-01", message)

    def test_missing_values_render_empty(self) -> None:
        title, _ = render("booking_expired", {})

        self.assertEqual(title, "Booking  expired")

    def test_unknown_type_uses_data(self) -> None:
        self.assertEqual(render("broadcast", {"title": "Pool closed", "message": "Until noon"}), ("Pool closed", "Until noon"))


class DispatcherTests(TestCase):
    def setUp(self) -> None:
        self.user = User.objects.create_user(username="guest", email="guest@example.com", password="GuestPass123")

    def test_email_is_sent_and_logged(self) -> None:
        result = NotificationDispatcher().send(self.user.pk, "booking_confirmed", "email", BOOKING_DATA)

        self.assertTrue(result.success)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["guest@example.com"])
        notification = Notification.objects.get(pk=result.notification_id)
        self.assertEqual(notification.status, Notification.Status.SENT)
        self.assertEqual(notification.attempts, 1)
        self.assertIsNotNone(notification.sent_at)

    def test_in_app_notice_needs_no_delivery(self) -> None:
        result = NotificationDispatcher().send(self.user.pk, "booking_created", "in_app", BOOKING_DATA)

        self.assertTrue(result.success)
        self.assertEqual(len(mail.outbox), 0)
        self.assertFalse(Notification.objects.get().is_read)

    def test_smtp_error_is_retryable(self) -> None:
        mailer = mock.Mock(side_effect=smtplib.SMTPServerDisconnected("gone"))

        result = NotificationDispatcher(mailer=mailer).send(self.user.pk, "booking_confirmed", "email", BOOKING_DATA)

        self.assertFalse(result.success)
        self.assertTrue(result.retryable)
        self.assertEqual(Notification.objects.get().status, Notification.Status.FAILED)

    def test_user_without_email_fails_permanently(self) -> None:
        self.user.email = ""
        self.user.save()

        result = NotificationDispatcher().send(self.user.pk, "booking_confirmed", "email", BOOKING_DATA)

        self.assertFalse(result.success)
        self.assertFalse(result.retryable)

    def test_unknown_user_is_dropped(self) -> None:
        result = NotificationDispatcher().send(999999, "booking_confirmed", "email", BOOKING_DATA)

        self.assertFalse(result.success)
        self.assertFalse(Notification.objects.exists())

    @override_settings(SMS_GATEWAY_URL="https://sms.example.test/send")
    def test_sms_goes_through_the_gateway(self) -> None:
        http_post = mock.Mock(return_value=gateway_response(200))

        result = NotificationDispatcher(http_post=http_post).send(
            self.user.pk, "booking_confirmed", "sms", {**BOOKING_DATA, "phone": "+15550100"}
        )

        self.assertTrue(result.success)
        http_post.assert_called_once()
        self.assertEqual(http_post.call_args.kwargs["json"]["to"], "+15550100")

    @override_settings(SMS_GATEWAY_URL="https://sms.example.test/send")
    def test_gateway_server_error_is_retryable(self) -> None:
        http_post = mock.Mock(return_value=gateway_response(503))

        result = NotificationDispatcher(http_post=http_post).send(
            self.user.pk, "booking_confirmed", "sms", {**BOOKING_DATA, "phone": "+15550100"}
        )

        self.assertFalse(result.success)
        self.assertTrue(result.retryable)

    @override_settings(WHATSAPP_GATEWAY_URL="https://wa.example.test/send")
    def test_gateway_rejection_is_permanent(self) -> None:
        http_post = mock.Mock(return_value=gateway_response(400))

        result = NotificationDispatcher(http_post=http_post).send(
            self.user.pk, "booking_confirmed", "whatsapp", {**BOOKING_DATA, "phone": "+15550100"}
        )

        self.assertFalse(result.success)
        self.assertFalse(result.retryable)

    @override_settings(SMS_GATEWAY_URL="https://sms.example.test/send")
    def test_unreachable_gateway_is_retryable(self) -> None:
        http_post = mock.Mock(side_effect=requests.ConnectionError("refused"))

        result = NotificationDispatcher(http_post=http_post).send(
            self.user.pk, "booking_confirmed", "sms", {**BOOKING_DATA, "phone": "+15550100"}
        )

        self.assertTrue(result.retryable)

    @override_settings(SMS_GATEWAY_URL="https://sms.example.test/send")
    def test_missing_phone_fails_without_calling_gateway(self) -> None:
        http_post = mock.Mock()

        result = NotificationDispatcher(http_post=http_post).send(self.user.pk, "booking_confirmed", "sms", BOOKING_DATA)

        self.assertFalse(result.success)
        self.assertFalse(result.retryable)
        http_post.assert_not_called()

    def test_retry_with_same_dispatch_key_reuses_row(self) -> None:
        mailer = mock.Mock(side_effect=[smtplib.SMTPServerDisconnected("gone"), 1])
        dispatcher = NotificationDispatcher(mailer=mailer)

        first = dispatcher.send(self.user.pk, "booking_confirmed", "email", BOOKING_DATA, dispatch_key="task-1")
        second = dispatcher.send(self.user.pk, "booking_confirmed", "email", BOOKING_DATA, dispatch_key="task-1")
        third = dispatcher.send(self.user.pk, "booking_confirmed", "email", BOOKING_DATA, dispatch_key="task-1")

        self.assertFalse(first.success)
        self.assertTrue(second.success)
        self.assertTrue(third.success)
        self.assertEqual(first.notification_id, second.notification_id)
        notification = Notification.objects.get()
        self.assertEqual(notification.attempts, 2)
        self.assertEqual(mailer.call_count, 2)

    def test_dispatch_task_reports_permanent_failure(self) -> None:
        self.user.email = ""
        self.user.save()

        result = dispatch_notification.delay(self.user.pk, "booking_confirmed", "email", BOOKING_DATA).get()

        self.assertFalse(result["success"])
        self.assertEqual(Notification.objects.get().status, Notification.Status.FAILED)

    @override_settings(STAFF_ALERT_EMAIL="ops@hotel.test")
    def test_alert_staff_mails_and_posts_in_app(self) -> None:
        User.objects.create_user(username="manager", password="StaffPass123", is_staff=True)
        User.objects.create_user(username="retired", password="StaffPass123", is_staff=True, is_active=False)

        created = alert_staff("Overbooking", "Booking AB12CD34 needs a refund")

        self.assertEqual(created, 1)
        self.assertEqual(mail.outbox[0].to, ["ops@hotel.test"])
        self.assertEqual(Notification.objects.get().type, "staff_alert")

    @override_settings(STAFF_ALERT_EMAIL="ops@hotel.test")
    def test_staff_alert_survives_a_mail_outage(self) -> None:
        User.objects.create_user(username="manager", password="StaffPass123", is_staff=True)
        mailer = mock.Mock(side_effect=smtplib.SMTPServerDisconnected("gone"))

        with self.assertRaises(ExternalServiceError):
            alert_staff("Overbooking", "Booking AB12CD34 needs a refund", mailer=mailer)

        self.assertEqual(Notification.objects.get().type, "staff_alert")

    @override_settings(STAFF_ALERT_EMAIL="ops@hotel.test")
    def test_staff_alert_retry_only_resends_the_email(self) -> None:
        User.objects.create_user(username="manager", password="StaffPass123", is_staff=True)

        result = alert_staff_task.apply(args=("Overbooking", "Booking AB12CD34 needs a refund"), retries=1).get()

        self.assertEqual(result, 0)
        self.assertFalse(Notification.objects.exists())
        self.assertEqual(mail.outbox[0].to, ["ops@hotel.test"])


class NotificationAPITests(APITestCase):
    def setUp(self) -> None:
        self.user = User.objects.create_user(username="guest", email="guest@example.com", password="GuestPass123")
        self.other = User.objects.create_user(username="other", email="other@example.com", password="OtherPass123")
        self.staff = User.objects.create_user(username="manager", password="StaffPass123", is_staff=True)
        self.notice = Notification.objects.create(user=self.user, type="booking_created", title="Held", message="...")
        Notification.objects.create(user=self.user, type="booking_created", channel="email", title="Held", message="...")
        Notification.objects.create(user=self.other, type="booking_created", title="Held", message="...")

    def test_inbox_lists_own_in_app_notices_only(self) -> None:
        self.client.force_authenticate(self.user)

        response = self.client.get(reverse("notification-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item["id"] for item in response.data["results"]], [self.notice.pk])

    def test_mark_read(self) -> None:
        self.client.force_authenticate(self.user)

        response = self.client.post(reverse("notification-mark-read", args=[self.notice.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.notice.refresh_from_db()
        self.assertTrue(self.notice.is_read)

    def test_cannot_mark_someone_elses_notice(self) -> None:
        self.client.force_authenticate(self.other)

        response = self.client.post(reverse("notification-mark-read", args=[self.notice.pk]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_mark_all_read(self) -> None:
        self.client.force_authenticate(self.user)

        response = self.client.post(reverse("notification-mark-all-read"))

        self.assertEqual(response.data["updated"], 1)

    def test_broadcast_is_staff_only(self) -> None:
        self.client.force_authenticate(self.user)

        response = self.client.post(
            reverse("notification-broadcast"), {"title": "Pool closed", "message": "Until noon"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_broadcast_reaches_selected_users(self) -> None:
        self.client.force_authenticate(self.staff)

        response = self.client.post(
            reverse("notification-broadcast"),
            {"title": "Pool closed", "message": "Until noon", "user_ids": [self.user.pk, self.other.pk]},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_202_ACCEPTED)
        self.assertEqual(response.data["queued"], 2)
        broadcasts = Notification.objects.filter(type="broadcast")
        self.assertEqual(broadcasts.count(), 2)
        self.assertEqual(set(broadcasts.values_list("title", flat=True)), {"Pool closed"})
