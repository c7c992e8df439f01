"""
Django Admin configuration for catalog and inventory models.
"""
from django.contrib import admin
from .models import Category, Product, InventoryMovement


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'slug', 'parent', 'is_active', 'product_count', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name']
    ordering = ['sort_order', 'name']

    def product_count(self, obj):
        return obj.products.count()
    product_count.short_description = 'Products'


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'sku', 'price', 'stock', 'status', 'is_low_stock', 'sales_count', 'category']
    list_filter = ['category', 'status', 'track_inventory', 'created_at']
    search_fields = ['name', 'sku', 'description']
    ordering = ['name']
    raw_id_fields = ['category']
    readonly_fields = ['stock', 'sales_count']

    def is_low_stock(self, obj):
        return obj.is_low_stock
    is_low_stock.boolean = True
    is_low_stock.short_description = 'Low Stock'


@admin.register(InventoryMovement)
class InventoryMovementAdmin(admin.ModelAdmin):
    list_display = ['id', 'product', 'quantity_delta', 'type', 'reason', 'reference_id', 'user', 'created_at']
    list_filter = ['type', 'created_at']
    search_fields = ['product__name', 'reference_id', 'reason']
    ordering = ['-created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
