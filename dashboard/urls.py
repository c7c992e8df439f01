"""
URL routing for dashboard endpoints.
"""
from django.urls import path
from . import views

app_name = 'dashboard'

urlpatterns = [
    path('dashboard/stats/', views.DashboardStatsView.as_view(), name='dashboard-stats'),
    path('dashboard/charts/orders/', views.OrdersChartView.as_view(), name='dashboard-orders-chart'),
    path('dashboard/charts/revenue/', views.RevenueChartView.as_view(), name='dashboard-revenue-chart'),
    path('dashboard/top-products/', views.TopProductsView.as_view(), name='dashboard-top-products'),
    path('dashboard/recent-orders/', views.RecentOrdersView.as_view(), name='dashboard-recent-orders'),
]
