"""
Payment API Views.

Implements:
- GET /payments/methods/ - Enabled payment methods
- POST /payments/process/ - One-step charge (rate limited)
- POST /payments/initiate/ - Start a gateway payment (rate limited)
- POST /payments/webhook/{provider}/ - Gateway callback, no authentication
- GET /payments/{id}/ - Payment detail
- POST /payments/{id}/verify/ - Verification status
"""
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core.rate_limiting import rate_limit
from . import services
from .serializers import (
    InitiatePaymentSerializer,
    PaymentDetailSerializer,
    PaymentSerializer,
    ProcessPaymentSerializer,
)


class PaymentMethodsView(APIView):

    def get(self, request):
        return Response(services.payment_methods())


class ProcessPaymentView(APIView):

    @rate_limit(max_requests=10, window_seconds=60)
    def post(self, request):
        serializer = ProcessPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        payment, success = services.process_payment(
            request.user, data['order_id'], data['method'], data['amount']
        )
        return Response({
            'success': success,
            'message': 'Payment processed successfully' if success else 'Payment failed',
            'data': PaymentSerializer(payment).data,
        })


class InitiatePaymentView(APIView):

    @rate_limit(max_requests=10, window_seconds=60)
    def post(self, request):
        serializer = InitiatePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = services.initiate_payment(
            request.user,
            data['order_id'],
            data['method'],
            data['amount'],
            return_url=data.get('return_url'),
            cancel_url=data.get('cancel_url'),
        )
        return Response(result)


class PaymentWebhookView(APIView):
    """
    Server-to-server callback from a payment gateway.
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request, provider):
        result = services.handle_webhook(provider, request.data)
        if not result['processed']:
            return Response({'success': True, 'message': 'Already processed'})
        return Response({'success': True, 'verified': result['verified']})


class PaymentDetailView(APIView):

    def get(self, request, pk):
        payment = services.get_payment_for_user(pk, request.user)
        return Response(PaymentDetailSerializer(payment).data)


class PaymentVerifyView(APIView):

    def post(self, request, pk):
        return Response(services.verify_payment(pk, request.user))
