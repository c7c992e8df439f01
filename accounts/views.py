"""
User account API views.

Registration and token issuance are handled outside this service; these
endpoints expose accounts to staff and to their owners.
"""
from django.db.models import Q
from rest_framework import generics
from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import IsAdminOrManager
from .models import User
from .serializers import UserSerializer


class UserListView(generics.ListAPIView):
    """
    GET: List users (admin/manager).

    Query Parameters:
        - search: Match username, name or email
        - role: Filter by role
        - status: Filter by account status
    """
    serializer_class = UserSerializer
    permission_classes = [IsAdminOrManager]

    def get_queryset(self):
        queryset = User.objects.all()

        search = self.request.query_params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(username__icontains=search) |
                Q(first_name__icontains=search) |
                Q(last_name__icontains=search) |
                Q(email__icontains=search)
            )

        role = self.request.query_params.get('role', '').upper()
        if role in User.Role.values:
            queryset = queryset.filter(role=role)

        status_filter = self.request.query_params.get('status', '').upper()
        if status_filter in User.Status.values:
            queryset = queryset.filter(status=status_filter)

        return queryset.order_by('-date_joined')


class UserDetailView(generics.RetrieveAPIView):
    serializer_class = UserSerializer
    permission_classes = [IsAdminOrManager]
    queryset = User.objects.all()


class CurrentUserView(APIView):
    """GET: The authenticated caller's own account."""

    def get(self, request):
        return Response(UserSerializer(request.user).data)
