import logging
import time
import uuid

from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger("django.request")


class RequestLogMiddleware(MiddlewareMixin):
    """
    Tags every request with X-Request-ID (taken from the client or generated)
    and logs one structured line per response with its latency.
    """

    def process_request(self, request):
        request.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request._start_time = time.monotonic()

    def process_response(self, request, response):
        request_id = getattr(request, "request_id", None)
        started = getattr(request, "_start_time", None)
        latency = int((time.monotonic() - started) * 1000) if started is not None else None

        if request_id:
            response["X-Request-ID"] = request_id

        logger.info(
            "http_request",
            extra={
                "event": "http_request",
                "request_id": request_id,
                "path": request.path,
                "method": request.method,
                "status": response.status_code,
                "latency_ms": latency,
            },
        )
        return response
