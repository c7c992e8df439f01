"""
Django Admin configuration for order models.
"""
from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['product', 'product_name', 'product_sku', 'price', 'quantity', 'subtotal']
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = [
        'order_number', 'customer_name', 'order_status', 'payment_status',
        'payment_method', 'total', 'item_count', 'created_at'
    ]
    list_filter = ['order_status', 'payment_status', 'payment_method', 'created_at']
    search_fields = ['order_number', 'customer_name', 'customer_email']
    ordering = ['-created_at']
    readonly_fields = [
        'order_number', 'subtotal', 'tax', 'shipping_cost', 'discount', 'total',
        'paid_at', 'shipped_at', 'delivered_at', 'cancelled_at', 'created_at', 'updated_at'
    ]
    raw_id_fields = ['user']
    inlines = [OrderItemInline]

    def item_count(self, obj):
        return obj.items.count()
    item_count.short_description = 'Items'
