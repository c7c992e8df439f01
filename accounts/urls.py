"""
URL routing for user account endpoints.
"""
from django.urls import path
from . import views

app_name = 'accounts'

urlpatterns = [
    path('users/', views.UserListView.as_view(), name='user-list'),
    path('users/me/', views.CurrentUserView.as_view(), name='user-me'),
    path('users/<int:pk>/', views.UserDetailView.as_view(), name='user-detail'),
]
