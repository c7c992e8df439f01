"""
Serializers for catalog and inventory models.
Provides data validation and JSON conversion for API endpoints.
"""
from rest_framework import serializers

from .models import Category, Product, InventoryMovement
from .services import STOCK_OPERATIONS, ADJUSTMENT_TYPES


class CategorySerializer(serializers.ModelSerializer):
    """Serializer for Category model."""
    product_count = serializers.SerializerMethodField()
    parent_id = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.all(),
        source='parent',
        required=False,
        allow_null=True
    )

    class Meta:
        model = Category
        fields = [
            'id', 'name', 'slug', 'description', 'image', 'parent_id',
            'is_active', 'sort_order', 'product_count', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'slug', 'created_at', 'updated_at']

    def get_product_count(self, obj):
        """Get count of products in this category."""
        return obj.products.count()


class CategoryMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for nested category representation."""
    class Meta:
        model = Category
        fields = ['id', 'name', 'slug']


class ProductSerializer(serializers.ModelSerializer):
    """Serializer for Product model with nested category."""
    category = CategoryMinimalSerializer(read_only=True)
    category_id = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.all(),
        source='category',
        write_only=True
    )
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'slug', 'sku', 'description', 'price', 'cost_price',
            'stock', 'track_inventory', 'low_stock_threshold', 'status',
            'sales_count', 'thumbnail', 'category', 'category_id',
            'is_low_stock', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'slug', 'sales_count', 'created_at', 'updated_at']

    def validate_stock(self, value):
        # Stock of an existing product changes only through stock adjustments
        if self.instance is not None and value != self.instance.stock:
            raise serializers.ValidationError(
                "Use the inventory stock endpoint to change stock."
            )
        return value


class ProductMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for autocomplete and nested representations."""
    class Meta:
        model = Product
        fields = ['id', 'name', 'slug', 'price', 'thumbnail']


class InventoryProductSerializer(serializers.ModelSerializer):
    """Stock-oriented view of a product for the inventory listing."""
    category = CategoryMinimalSerializer(read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'sku', 'stock', 'low_stock_threshold', 'status',
            'sales_count', 'category', 'is_low_stock', 'updated_at'
        ]


class StockUpdateSerializer(serializers.Serializer):
    """
    Request body for PATCH /inventory/{product_id}/stock/

    {"quantity": 5, "operation": "increase", "type": "RESTOCK", "reason": "..."}
    """
    quantity = serializers.IntegerField(min_value=0)
    operation = serializers.ChoiceField(choices=STOCK_OPERATIONS)
    type = serializers.ChoiceField(
        choices=[str(t) for t in ADJUSTMENT_TYPES],
        default=InventoryMovement.Type.ADJUSTMENT
    )
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class InventoryMovementSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = InventoryMovement
        fields = [
            'id', 'product_id', 'quantity_delta', 'type', 'reason',
            'reference_id', 'user_id', 'created_at'
        ]
