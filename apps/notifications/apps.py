from django.apps import AppConfig  # type: ignore


class NotificationsConfig(AppConfig):
    name = "apps.notifications"
    label = "notifications"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self) -> None:
        from shared.application.message_bus import message_bus

        from .application import event_handlers

        event_handlers.register(message_bus)
