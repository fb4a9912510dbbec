from django.apps import AppConfig


class DeliveriesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.deliveries"
    label = "deliveries"

    def ready(self) -> None:
        from modules.deliveries.handlers import SUBSCRIPTIONS
        from shared.infrastructure.bus import event_bus

        for event_type, handler in SUBSCRIPTIONS:
            event_bus.subscribe(event_type, handler)
