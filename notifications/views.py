"""
Notification API Views.

All endpoints operate on the caller's own notifications.
"""
from rest_framework import generics
from rest_framework.response import Response
from rest_framework.views import APIView

from . import services
from .models import Notification
from .serializers import NotificationSerializer


class NotificationListView(generics.ListAPIView):
    """
    GET: The caller's notifications, newest first, with the unread count.

    Query Parameters:
        - unread_only: true to hide read notifications
    """
    serializer_class = NotificationSerializer

    def get_queryset(self):
        queryset = Notification.objects.filter(user=self.request.user)
        if self.request.query_params.get('unread_only', '').lower() == 'true':
            queryset = queryset.filter(is_read=False)
        return queryset

    def list(self, request, *args, **kwargs):
        response = super().list(request, *args, **kwargs)
        response.data['unread_count'] = services.unread_count(request.user)
        return response


class NotificationDetailView(APIView):
    """
    GET: Retrieve one notification
    DELETE: Delete it
    """

    def get(self, request, pk):
        notification = services.get_user_notification(pk, request.user)
        return Response(NotificationSerializer(notification).data)

    def delete(self, request, pk):
        notification = services.get_user_notification(pk, request.user)
        notification.delete()
        return Response({'success': True, 'message': 'Notification deleted'})


class NotificationReadView(APIView):
    """PATCH: Mark one notification as read."""

    def patch(self, request, pk):
        notification = services.mark_as_read(services.get_user_notification(pk, request.user))
        return Response({
            'success': True,
            'message': 'Notification marked as read',
            'data': NotificationSerializer(notification).data,
        })


class NotificationReadAllView(APIView):
    """PATCH: Mark all of the caller's notifications as read."""

    def patch(self, request):
        updated = services.mark_all_as_read(request.user)
        return Response({
            'success': True,
            'message': 'All notifications marked as read',
            'data': {'updated': updated},
        })
