import logging
import time
import uuid
from contextvars import ContextVar

logger = logging.getLogger("chainverdict.request")

_request_id = ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    """Stamp every log record with the id of the request being served."""

    def filter(self, record):
        record.request_id = _request_id.get()
        return True


def get_client_ip(request):
    x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")


class RequestLoggingMiddleware:
    """One log line per request, tagged with a request id echoed in X-Request-ID."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = request.META.get("HTTP_X_REQUEST_ID") or uuid.uuid4().hex[:8]
        token = _request_id.set(request_id)
        request.request_id = request_id
        started = time.monotonic()

        try:
            response = self.get_response(request)

            duration_ms = (time.monotonic() - started) * 1000
            user = getattr(request, "user", None)
            user_id = user.pk if user is not None and user.is_authenticated else None

            if response.status_code >= 500:
                level = logging.ERROR
            elif response.status_code >= 400:
                level = logging.WARNING
            else:
                level = logging.INFO
            logger.log(
                level,
                "%s %s %s %.1fms user=%s ip=%s",
                request.method,
                request.get_full_path(),
                response.status_code,
                duration_ms,
                user_id,
                get_client_ip(request),
            )

            response["X-Request-ID"] = request_id
            return response
        finally:
            _request_id.reset(token)
