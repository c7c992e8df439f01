from django.contrib import admin
from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['id', 'order', 'method', 'amount', 'status', 'transaction_id', 'processed_at', 'created_at']
    list_filter = ['method', 'status', 'created_at']
    search_fields = ['transaction_id', 'order__order_number']
    ordering = ['-created_at']
    raw_id_fields = ['order']
    readonly_fields = ['gateway_response', 'processed_at', 'created_at', 'updated_at']
