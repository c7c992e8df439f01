"""
Request logging middleware.
"""
import logging
import time

logger = logging.getLogger('storefront.requests')


class RequestLoggingMiddleware:
    """Log method, path, status code and duration of every request."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        started = time.monotonic()
        response = self.get_response(request)
        duration_ms = (time.monotonic() - started) * 1000

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            f"{request.method} {request.get_full_path()} "
            f"{response.status_code} - {duration_ms:.0f}ms"
        )
        return response
