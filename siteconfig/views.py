"""
Settings API Views.

Implements:
- GET /settings/ - Decoded key/value object (optional ?category=)
- PUT/PATCH /settings/ - Bulk upsert (admin only)
- GET /settings/ui/ - Public UI configuration with defaults
- GET /settings/{key}/ - Single setting with its type and category
"""
from rest_framework import serializers
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import IsAdmin
from . import services


class SettingListView(APIView):

    def get_permissions(self):
        if self.request.method in ('PUT', 'PATCH'):
            return [IsAdmin()]
        return super().get_permissions()

    def get(self, request):
        category = request.query_params.get('category') or None
        return Response(services.as_dict(category=category))

    def put(self, request):
        if not isinstance(request.data, dict) or not request.data:
            raise serializers.ValidationError(
                {'non_field_errors': ['Expected a non-empty object of settings']}
            )
        services.update_settings(dict(request.data))
        return Response({'success': True, 'message': 'Settings updated successfully'})

    patch = put


class UISettingsView(APIView):
    """Public: UI config for theming and layout."""
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        return Response(services.ui_settings())


class SettingDetailView(APIView):

    def get(self, request, key):
        setting = services.get_setting(key)
        return Response({
            'key': setting.key,
            'value': setting.typed_value,
            'type': setting.type,
            'category': setting.category,
        })
