from django.apps import AppConfig  # type: ignore


class PaymentsConfig(AppConfig):
    name = "apps.payments"
    label = "payments"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self) -> None:
        from shared.application.message_bus import message_bus

        from .application import event_handlers

        event_handlers.register(message_bus)
