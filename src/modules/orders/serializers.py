"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import OrderStatus, PaymentMethod
from modules.orders.models import Order, OrderItem, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderItemSerializer(serializers.Serializer):
    """Validates a single item in an order creation request."""

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload.

    ``customer_id`` defaults to the caller; only admins may order for
    somebody else.
    """

    customer_id = serializers.CharField(required=False, max_length=255)
    items = CreateOrderItemSerializer(many=True, allow_empty=False)
    payment_method = serializers.ChoiceField(
        choices=PaymentMethod.choices, default=PaymentMethod.CASH
    )
    delivery_address = serializers.CharField()
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class VersionedSerializer(serializers.Serializer):
    expected_version = serializers.IntegerField(required=False, min_value=1)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class UpdateOrderStatusSerializer(VersionedSerializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)


class PayOrderSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(
        choices=PaymentMethod.choices, required=False
    )
    expected_version = serializers.IntegerField(required=False, min_value=1)


class AssignOrderSerializer(serializers.Serializer):
    agent_id = serializers.CharField(max_length=255)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class BulkAssignSerializer(serializers.Serializer):
    order_ids = serializers.ListField(
        child=serializers.CharField(max_length=20), allow_empty=False
    )
    agent_id = serializers.CharField(max_length=255)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with the price snapshot."""

    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "quantity",
            "price_at_order",
            "line_total",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "actor_id",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Order row for tables; includes the current delivery."""

    delivery = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "customer_id",
            "status",
            "payment_method",
            "payment_status",
            "total_amount",
            "delivery_address",
            "version",
            "created_at",
            "delivery",
        ]
        read_only_fields = fields

    def get_delivery(self, order: Order):
        deliveries = sorted(
            order.deliveries.all(), key=lambda d: d.assigned_at, reverse=True
        )
        if not deliveries:
            return None
        latest = deliveries[0]
        return {
            "id": str(latest.id),
            "agent_id": latest.agent_id,
            "status": latest.status,
            "assigned_at": latest.assigned_at.isoformat(),
            "delivered_at": (
                latest.delivered_at.isoformat() if latest.delivered_at else None
            ),
        }


class OrderSerializer(OrderListSerializer):
    """Full order with nested items and status history."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta(OrderListSerializer.Meta):
        fields = OrderListSerializer.Meta.fields + [
            "notes",
            "updated_at",
            "items",
            "status_history",
        ]
        read_only_fields = fields
