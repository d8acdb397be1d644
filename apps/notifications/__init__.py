"""Notifications app package.

Delivery log and in-app inbox for guest and staff notifications. Domain
events are turned into Celery tasks that deliver over email, SMS,
WhatsApp or the in-app inbox; a failed delivery never touches booking or
payment state.
"""
