"""
Dashboard API Views.

Headline stats are public (landing page); charts and listings require an
elevated role.
"""
from rest_framework import serializers
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import IsStaffRole
from inventory.models import Product
from orders.models import Order
from . import services


def _int_param(request, name, default, maximum):
    try:
        value = int(request.query_params.get(name, default))
    except (TypeError, ValueError):
        return default
    return max(1, min(value, maximum))


class TopProductSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'name', 'thumbnail', 'price', 'sales_count', 'category_name']


class RecentOrderSerializer(serializers.ModelSerializer):
    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'customer_name', 'total',
            'order_status', 'payment_status', 'created_at'
        ]


class DashboardStatsView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        return Response(services.dashboard_stats())


class OrdersChartView(APIView):
    """
    Query Parameters:
        - months: Number of months to include (default 12)
    """
    permission_classes = [IsStaffRole]

    def get(self, request):
        months = _int_param(request, 'months', services.DEFAULT_CHART_MONTHS, services.MAX_CHART_MONTHS)
        return Response(services.orders_chart(months))


class RevenueChartView(APIView):
    permission_classes = [IsStaffRole]

    def get(self, request):
        months = _int_param(request, 'months', services.DEFAULT_CHART_MONTHS, services.MAX_CHART_MONTHS)
        return Response(services.revenue_chart(months))


class TopProductsView(APIView):
    permission_classes = [IsStaffRole]

    def get(self, request):
        limit = _int_param(request, 'limit', 10, 100)
        return Response(TopProductSerializer(services.top_products(limit), many=True).data)


class RecentOrdersView(APIView):
    permission_classes = [IsStaffRole]

    def get(self, request):
        limit = _int_param(request, 'limit', 10, 100)
        return Response(RecentOrderSerializer(services.recent_orders(limit), many=True).data)
