"""
Order API Views.

Implements:
- GET /orders/ - List orders (customers see only their own)
- POST /orders/ - Create order with atomic transaction
- GET /orders/{id}/ - Order detail with items and payments
- PATCH /orders/{id}/status/ - Staff status update
- POST /orders/{id}/cancel/ - Cancel and restock
"""
from django.db.models import Q
from rest_framework import generics, status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import IsAdminOrManager
from .models import Order, OrderStatus, PaymentStatus, PaymentMethod
from .serializers import (
    OrderSerializer,
    OrderListSerializer,
    OrderCreateSerializer,
    OrderStatusUpdateSerializer,
)
from .services import (
    cancel_order,
    create_order,
    get_order_for_user,
    update_order_status,
    visible_orders,
)


def order_detail_queryset():
    return Order.objects.select_related('user').prefetch_related('items', 'payments')


class OrderListCreateView(generics.ListCreateAPIView):
    """
    GET: List orders, newest first
    POST: Create a new order with atomic transaction handling

    Query Parameters (GET):
        - search: Match order number, customer name or email
        - order_status, payment_status, payment_method: Exact filters
        - user_id: Filter by customer (staff only in effect)
    """

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return OrderCreateSerializer
        return OrderListSerializer

    def get_queryset(self):
        queryset = visible_orders(
            self.request.user,
            Order.objects.select_related('user').prefetch_related('items')
        )
        params = self.request.query_params

        search = params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(order_number__icontains=search) |
                Q(customer_name__icontains=search) |
                Q(customer_email__icontains=search)
            )

        order_status = params.get('order_status', '').upper()
        if order_status in OrderStatus.values:
            queryset = queryset.filter(order_status=order_status)

        payment_status = params.get('payment_status', '').upper()
        if payment_status in PaymentStatus.values:
            queryset = queryset.filter(payment_status=payment_status)

        payment_method = params.get('payment_method', '').upper()
        if payment_method in PaymentMethod.values:
            queryset = queryset.filter(payment_method=payment_method)

        user_id = params.get('user_id')
        if user_id and user_id.isdigit():
            queryset = queryset.filter(user_id=user_id)

        return queryset.order_by('-created_at', '-id')

    def create(self, request, *args, **kwargs):
        """
        Returns:
            - 201: Order created
            - 400: Validation error or insufficient stock
            - 404: Products not found
        """
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        order = create_order(
            user_id=request.user.pk,
            items=[dict(item) for item in data['items']],
            shipping_address=data['shipping_address'],
            shipping_city=data['shipping_city'],
            shipping_country=data['shipping_country'],
            payment_method=data['payment_method'],
            shipping_postal=data.get('shipping_postal', ''),
            customer_notes=data.get('customer_notes', ''),
        )

        # Fetch fresh order with all relations
        order = order_detail_queryset().get(id=order.id)
        return Response(
            {
                'success': True,
                'message': 'Order created successfully',
                'data': OrderSerializer(order).data,
            },
            status=status.HTTP_201_CREATED
        )


class OrderDetailView(APIView):
    """
    GET: Retrieve order details with items and payment attempts.
    """

    def get(self, request, pk):
        order = get_order_for_user(pk, request.user, order_detail_queryset())
        return Response(OrderSerializer(order).data)


class OrderStatusUpdateView(APIView):
    """
    PATCH: Move the order and/or payment status along the allowed transitions.
    """
    permission_classes = [IsAdminOrManager]

    def patch(self, request, pk):
        serializer = OrderStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = update_order_status(pk, serializer.validated_data)
        order = order_detail_queryset().get(id=order.id)
        return Response({
            'success': True,
            'message': 'Order status updated',
            'data': OrderSerializer(order).data,
        })


class OrderCancelView(APIView):
    """
    POST: Cancel a PENDING or CONFIRMED order and return its stock.
    """

    def post(self, request, pk):
        order = cancel_order(pk, request.user)
        order = order_detail_queryset().get(id=order.id)
        return Response({
            'success': True,
            'message': 'Order cancelled successfully',
            'data': OrderSerializer(order).data,
        })
