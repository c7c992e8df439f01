"""
Tests for the shared error handler, envelope renderer and rate limiter.
"""
import json
from unittest.mock import MagicMock, patch

import redis
from django.db import IntegrityError
from django.db.models import ProtectedError
from django.test import RequestFactory, SimpleTestCase, override_settings
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from core.exceptions import Conflict, InsufficientStock, NotFound, api_exception_handler
from core.rate_limiting import get_client_ip, rate_limit
from core.renderers import EnvelopeJSONRenderer


class ExceptionHandlerTestCase(SimpleTestCase):

    def test_domain_error(self):
        response = api_exception_handler(NotFound("Order not found"), {})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data, {'success': False, 'message': 'Order not found'})

    def test_insufficient_stock_message(self):
        response = api_exception_handler(InsufficientStock('Phone', 1, 3), {})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.data['message'],
            'Insufficient stock for Phone. Available: 1, Requested: 3'
        )

    def test_validation_errors_flattened(self):
        exc = ValidationError({'items': [{'quantity': ['Too small']}], 'shipping_city': ['Required']})

        response = api_exception_handler(exc, {})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['errors'], [
            {'field': 'items.0.quantity', 'message': 'Too small'},
            {'field': 'shipping_city', 'message': 'Required'},
        ])

    def test_integrity_error_is_conflict(self):
        response = api_exception_handler(IntegrityError('UNIQUE constraint failed'), {})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['message'], Conflict.default_message)

    def test_protected_delete_is_not_reported_as_duplicate(self):
        exc = ProtectedError('Cannot delete some instances', set())

        response = api_exception_handler(exc, {})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['message'], 'Record is still referenced by other records')

    @override_settings(DEBUG=False)
    def test_unexpected_error_hides_details(self):
        with self.assertLogs('core.exceptions', level='ERROR'):
            response = api_exception_handler(RuntimeError('boom'), {})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data, {'success': False, 'message': 'Internal server error'})

    @override_settings(DEBUG=True)
    def test_unexpected_error_includes_stack_in_debug(self):
        with self.assertLogs('core.exceptions', level='ERROR'):
            response = api_exception_handler(RuntimeError('boom'), {})
        self.assertIn('RuntimeError: boom', response.data['stack'])


class EnvelopeRendererTestCase(SimpleTestCase):

    def render(self, data, status_code=200):
        response = Response(data, status=status_code)
        body = EnvelopeJSONRenderer().render(data, renderer_context={'response': response})
        return json.loads(body)

    def test_wraps_plain_payload(self):
        self.assertEqual(self.render({'id': 1}), {'success': True, 'data': {'id': 1}})

    def test_keeps_enveloped_payload(self):
        payload = {'success': True, 'message': 'Stock updated', 'data': {'id': 1}}
        self.assertEqual(self.render(payload), payload)

    def test_error_status_marks_failure(self):
        self.assertEqual(self.render(['x'], status.HTTP_400_BAD_REQUEST), {'success': False, 'data': ['x']})


class RateLimitTestCase(SimpleTestCase):

    class View:
        @rate_limit(max_requests=2, window_seconds=60)
        def get(self, request):
            return Response({'ok': True})

    def setUp(self):
        self.request = RequestFactory().get('/api/products/autocomplete/', REMOTE_ADDR='10.0.0.1')

    def test_client_ip_prefers_forwarded_header(self):
        request = RequestFactory().get('/', HTTP_X_FORWARDED_FOR='1.2.3.4, 10.0.0.1')
        self.assertEqual(get_client_ip(request), '1.2.3.4')

    @override_settings(RATE_LIMIT_ENABLED=True)
    def test_blocks_after_limit(self):
        client = MagicMock()
        client.incr.side_effect = [1, 2, 3]
        client.ttl.return_value = 42

        with patch('core.rate_limiting.get_redis_client', return_value=client):
            first = self.View().get(self.request)
            self.View().get(self.request)
            blocked = self.View().get(self.request)

        self.assertEqual(first['X-RateLimit-Remaining'], '1')
        self.assertEqual(blocked.status_code, 429)
        self.assertEqual(blocked['Retry-After'], '42')
        client.expire.assert_called_once()

    @override_settings(RATE_LIMIT_ENABLED=True)
    def test_fails_open_when_redis_is_down(self):
        client = MagicMock()
        client.incr.side_effect = redis.ConnectionError('down')

        with patch('core.rate_limiting.get_redis_client', return_value=client):
            response = self.View().get(self.request)

        self.assertEqual(response.status_code, 200)

    @override_settings(RATE_LIMIT_ENABLED=False)
    def test_disabled(self):
        with patch('core.rate_limiting.get_redis_client') as get_client:
            response = self.View().get(self.request)

        self.assertEqual(response.status_code, 200)
        get_client.assert_not_called()
