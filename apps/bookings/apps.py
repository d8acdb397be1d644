from django.apps import AppConfig  # type: ignore


class BookingsConfig(AppConfig):
    name = "apps.bookings"
    label = "bookings"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self) -> None:
        from shared.application.message_bus import message_bus

        from .application import command_handlers, event_handlers

        command_handlers.register(message_bus)
        event_handlers.register(message_bus)
