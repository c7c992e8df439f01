"""
JSON renderer that wraps every payload in the {success, data, message} envelope.
"""
from rest_framework.renderers import JSONRenderer


class EnvelopeJSONRenderer(JSONRenderer):
    """
    Wrap plain response data as {'success': ..., 'data': ...}.

    Payloads that already carry a 'success' key (error responses, views that
    attach a message) are rendered untouched.
    """

    def render(self, data, accepted_media_type=None, renderer_context=None):
        response = (renderer_context or {}).get('response')

        if not (isinstance(data, dict) and 'success' in data):
            succeeded = response is None or response.status_code < 400
            data = {'success': succeeded, 'data': data}

        return super().render(data, accepted_media_type, renderer_context)
