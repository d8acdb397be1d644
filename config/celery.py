import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("hotel_booking")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Provisional bookings whose payment hold ran out
    "expire-provisional-bookings": {
        "task": "bookings.expire_provisional_bookings",
        "schedule": 60.0,
        "options": {"expires": 50},
    },
    "send-upcoming-stay-reminders": {
        "task": "bookings.send_upcoming_stay_reminders",
        "schedule": crontab(minute=0, hour=10),
    },
    "expire-waitlist-entries": {
        "task": "bookings.expire_waitlist_entries",
        "schedule": crontab(minute=30, hour=0),
    },
}
