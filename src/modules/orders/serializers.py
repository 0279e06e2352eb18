"""Order DRF serializers for API input/output.

Input serializers validate request payloads before they become DTOs.
Output serializers add the timeline-derived fields (progress, delay flag,
per-stage steps); they read ``now`` and the stage sequence from the
serializer context so one response uses a single clock reading.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from modules.orders import conf
from modules.orders.constants import PaymentType
from modules.orders.models import Order, OrderActivity, OrderPayment, OrderStageEntry
from modules.orders.timeline import (
    compute_progress_percentage,
    describe_timeline,
    is_delayed,
    resolve_stage_index,
)

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CustomChargeSerializer(serializers.Serializer):
    name = serializers.CharField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)


class CreateOrderSerializer(serializers.Serializer):
    company_id = serializers.UUIDField()
    client_id = serializers.UUIDField()
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    discount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=0, required=False, default=0
    )
    custom_charges = CustomChargeSerializer(many=True, required=False, default=list)
    advance_percentage = serializers.IntegerField(
        min_value=0, max_value=100, required=False, default=60
    )
    amount_paid = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=0, required=False, default=0
    )
    order_date = serializers.DateTimeField(required=False, allow_null=True, default=None)
    expected_delivery = serializers.DateTimeField()
    shipping_address = serializers.CharField()
    notes = serializers.CharField(required=False, default="", allow_blank=True)
    internal_notes = serializers.CharField(required=False, default="", allow_blank=True)


class UpdateOrderSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1, required=False)
    price = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=0, required=False
    )
    discount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=0, required=False
    )
    custom_charges = CustomChargeSerializer(many=True, required=False)
    advance_percentage = serializers.IntegerField(
        min_value=0, max_value=100, required=False
    )
    order_date = serializers.DateTimeField(required=False)
    expected_delivery = serializers.DateTimeField(required=False)
    shipping_address = serializers.CharField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    internal_notes = serializers.CharField(required=False, allow_blank=True)


class TransitionSerializer(serializers.Serializer):
    # stage labels match exactly
    stage = serializers.CharField(trim_whitespace=False)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class PaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.01"))
    paid_on = serializers.DateTimeField(required=False, allow_null=True, default=None)
    payment_type = serializers.ChoiceField(
        choices=PaymentType.choices, required=False, default=PaymentType.INSTALLMENT
    )
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class UpdatePaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0.01"), required=False
    )
    paid_on = serializers.DateTimeField(required=False)
    payment_type = serializers.ChoiceField(choices=PaymentType.choices, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class StageEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStageEntry
        fields = ["id", "stage_name", "status", "entered_at", "exited_at", "notes"]
        read_only_fields = fields


class PaymentOutputSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderPayment
        fields = ["id", "amount", "paid_on", "payment_type", "notes"]
        read_only_fields = fields


class ActivitySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderActivity
        fields = ["id", "action", "details", "performed_by", "timestamp"]
        read_only_fields = fields


class TimelineFieldsMixin(serializers.Serializer):
    """Progress and delay flag computed from the order's current stage."""

    progress = serializers.SerializerMethodField()
    is_delayed = serializers.SerializerMethodField()

    def _sequence(self):
        return self.context.get("sequence") or conf.get_stage_sequence()

    def _now(self):
        return self.context["now"]

    def get_progress(self, order: Order) -> int:
        sequence = self._sequence()
        return compute_progress_percentage(
            sequence, resolve_stage_index(sequence, order.current_stage)
        )

    def get_is_delayed(self, order: Order) -> bool:
        sequence = self._sequence()
        return is_delayed(
            order.expected_delivery,
            resolve_stage_index(sequence, order.current_stage),
            conf.get_shipped_ordinal(sequence),
            sequence.terminal.ordinal,
            self._now(),
        )


class OrderListSerializer(TimelineFieldsMixin, serializers.ModelSerializer):
    company_name = serializers.CharField(source="company.company_name", read_only=True)
    client_name = serializers.CharField(source="client.name", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "company_id",
            "company_name",
            "client_id",
            "client_name",
            "product_id",
            "product_name",
            "quantity",
            "order_date",
            "expected_delivery",
            "current_stage",
            "completed_at",
            "progress",
            "is_delayed",
            "price_with_gst",
            "amount_paid",
            "payment_status",
        ]
        read_only_fields = fields


class OrderSerializer(OrderListSerializer):
    """Full order with history, payments, activity and timeline steps."""

    timeline_steps = serializers.SerializerMethodField()
    stage_history = StageEntrySerializer(many=True, read_only=True)
    payments = PaymentOutputSerializer(many=True, read_only=True)
    activity = ActivitySerializer(many=True, read_only=True)

    class Meta(OrderListSerializer.Meta):
        fields = OrderListSerializer.Meta.fields + [
            "price",
            "discount",
            "custom_charges",
            "price_after_discount",
            "advance_percentage",
            "shipping_address",
            "notes",
            "internal_notes",
            "created_at",
            "updated_at",
            "timeline_steps",
            "stage_history",
            "payments",
            "activity",
        ]
        read_only_fields = fields

    def get_timeline_steps(self, order: Order) -> list[dict]:
        return [
            {
                "name": step.name,
                "ordinal": step.ordinal,
                "status": step.status.value,
                "entered_at": step.entered_at,
            }
            for step in describe_timeline(self._sequence(), order.timeline_state())
        ]


class BoardCardSerializer(TimelineFieldsMixin, serializers.ModelSerializer):
    client_name = serializers.CharField(source="client.name", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "client_name",
            "product_name",
            "quantity",
            "expected_delivery",
            "current_stage",
            "completed_at",
            "progress",
            "is_delayed",
        ]
        read_only_fields = fields


class OrderStatsSerializer(serializers.Serializer):
    total_orders = serializers.IntegerField()
    completed_payments = serializers.IntegerField()
    pending_payments = serializers.IntegerField()
    total_revenue = serializers.DecimalField(max_digits=14, decimal_places=2)
    by_stage = serializers.DictField(child=serializers.IntegerField())
    by_payment_status = serializers.DictField(child=serializers.IntegerField())
