"""Product DRF serializers (read-only catalog view)."""

from __future__ import annotations

from rest_framework import serializers

from modules.products.models import Product


class ProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "description",
            "price",
            "category",
            "is_available",
            "stock_quantity",
            "track_inventory",
            "is_out_of_stock",
        ]
        read_only_fields = fields
