"""Delivery DRF serializers for API input/output."""

from __future__ import annotations

from rest_framework import serializers

from modules.deliveries.constants import DeliveryStatus
from modules.deliveries.models import Delivery
from modules.orders.constants import PaymentMethod


class UpdateDeliveryStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=DeliveryStatus.choices)
    expected_version = serializers.IntegerField(required=False, min_value=1)
    notes = serializers.CharField(required=False, allow_blank=True)
    payment_collected = serializers.BooleanField(required=False, default=False)
    payment_method = serializers.ChoiceField(
        choices=PaymentMethod.choices, required=False
    )


class DeliveryNotesSerializer(serializers.Serializer):
    note = serializers.CharField()
    expected_version = serializers.IntegerField(required=False, min_value=1)


class DeliverySerializer(serializers.ModelSerializer):
    """Read serializer; carries what the agent needs at the door."""

    delivery_address = serializers.CharField(
        source="order.delivery_address", read_only=True
    )
    total_amount = serializers.DecimalField(
        source="order.total_amount", max_digits=10, decimal_places=2, read_only=True
    )
    payment_method = serializers.CharField(source="order.payment_method", read_only=True)
    payment_status = serializers.CharField(source="order.payment_status", read_only=True)

    class Meta:
        model = Delivery
        fields = [
            "id",
            "order_id",
            "agent_id",
            "status",
            "assigned_at",
            "delivered_at",
            "notes",
            "version",
            "delivery_address",
            "total_amount",
            "payment_method",
            "payment_status",
        ]
        read_only_fields = fields
