"""
URL routing for payment endpoints.
"""
from django.urls import path
from . import views

app_name = 'payments'

urlpatterns = [
    path('payments/methods/', views.PaymentMethodsView.as_view(), name='payment-methods'),
    path('payments/process/', views.ProcessPaymentView.as_view(), name='payment-process'),
    path('payments/initiate/', views.InitiatePaymentView.as_view(), name='payment-initiate'),
    path('payments/webhook/<str:provider>/', views.PaymentWebhookView.as_view(), name='payment-webhook'),
    path('payments/<int:pk>/', views.PaymentDetailView.as_view(), name='payment-detail'),
    path('payments/<int:pk>/verify/', views.PaymentVerifyView.as_view(), name='payment-verify'),
]
