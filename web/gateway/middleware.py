"""Gateway middleware: request identifiers and API payload limits.

``RequestIdMiddleware`` ensures every incoming HTTP request carries a
request identifier. The identifier is read from the incoming
``X-Request-Id`` header when the client or the upstream proxy provides one,
or generated server-side otherwise. It is stored on the request, in a
context variable for code running downstream (log filters, the catalog
HTTP client), and echoed back in the ``X-Request-ID`` response header.

``ApiSizeLimitMiddleware`` rejects ``/api/`` requests whose declared body is
larger than ``API_MAX_BYTES``.
"""

import contextvars
import uuid

from django.conf import settings
from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

REQUEST_ID_CTX = contextvars.ContextVar("request_id", default="-")
CALLER_ID_CTX = contextvars.ContextVar("caller_id", default="-")


class RequestIdMiddleware(MiddlewareMixin):
    """Sets and returns a per-request identifier.

    Attributes:
        HEADER (str): Incoming header in ``request.META`` casing.
        RESPONSE_HEADER (str): Header added to outgoing responses.
    """

    HEADER = "HTTP_X_REQUEST_ID"
    RESPONSE_HEADER = "X-Request-ID"

    def process_request(self, request):
        rid = request.META.get(self.HEADER) or str(uuid.uuid4())
        request.request_id = rid
        REQUEST_ID_CTX.set(rid)
        # reset per request; set again by authentication when a caller is known
        CALLER_ID_CTX.set("-")

    def process_response(self, request, response):
        rid = getattr(request, "request_id", REQUEST_ID_CTX.get())
        response[self.RESPONSE_HEADER] = rid
        return response


class ApiSizeLimitMiddleware(MiddlewareMixin):
    def process_request(self, request):
        if request.path.startswith("/api/"):
            clen = request.META.get("CONTENT_LENGTH")
            if clen and clen.isdigit() and int(clen) > settings.API_MAX_BYTES:
                return JsonResponse(
                    {"detail": "PAYLOAD_TOO_LARGE", "message": f"Request body exceeds {settings.API_MAX_BYTES} bytes"},
                    status=413,
                )
