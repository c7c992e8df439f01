from django.contrib import admin
from .models import Setting


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'value', 'type', 'category', 'updated_at']
    list_filter = ['category', 'type']
    search_fields = ['key', 'value']
    ordering = ['category', 'key']
