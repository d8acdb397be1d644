from django.apps import AppConfig  # type: ignore


class RoomsConfig(AppConfig):
    name = "apps.rooms"
    label = "rooms"
    default_auto_field = "django.db.models.BigAutoField"
