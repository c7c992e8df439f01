"""
Django Admin configuration for user accounts.
"""
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['id', 'username', 'email', 'role', 'status', 'total_orders', 'total_spent', 'date_joined']
    list_filter = ['role', 'status', 'is_staff', 'date_joined']
    readonly_fields = ['total_orders', 'total_spent']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Storefront', {'fields': ('role', 'status', 'phone', 'total_orders', 'total_spent')}),
    )
