from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"

    def ready(self) -> None:
        from modules.orders.conf import get_stage_sequence
        from modules.orders.events import OrderCreated, OrderStageChanged, PaymentRecorded
        from modules.orders.handlers import (
            order_created_handler,
            order_stage_changed_handler,
            payment_recorded_handler,
        )
        from shared.infrastructure.bus import event_bus

        # fail at start-up on a broken ORDER_TIMELINE
        get_stage_sequence()

        event_bus.subscribe(OrderCreated, order_created_handler)
        event_bus.subscribe(OrderStageChanged, order_stage_changed_handler)
        event_bus.subscribe(PaymentRecorded, payment_recorded_handler)
