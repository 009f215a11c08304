from django.apps import AppConfig


class ReservationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.reservations"
    verbose_name = "Reservations"

    def ready(self) -> None:
        from shared.application.message_bus import message_bus

        from . import notifications

        notifications.register(message_bus)
