"""
URL routing for settings endpoints.
"""
from django.urls import path
from . import views

app_name = 'siteconfig'

urlpatterns = [
    path('settings/', views.SettingListView.as_view(), name='setting-list'),
    path('settings/ui/', views.UISettingsView.as_view(), name='setting-ui'),
    path('settings/<str:key>/', views.SettingDetailView.as_view(), name='setting-detail'),
]
