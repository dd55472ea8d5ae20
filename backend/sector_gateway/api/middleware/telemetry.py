"""Request tracing for the gateway API

Each request gets a server span continuing any incoming W3C context. The
caller identity and the routed session id are attached to the span so a
trace can be joined with the request log.
"""

import uuid
from typing import Optional, Tuple

from opentelemetry import propagate, trace
from opentelemetry.context import Context
from opentelemetry.trace import SpanKind, Status, StatusCode
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from ...core.logger import CentralizedLogger
from ...core.telemetry import get_tracer


logger = CentralizedLogger("TelemetryMiddleware")
tracer = get_tracer(__name__)

USER_HEADER = "X-User-Id"


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Open a server span per request and echo its ids to the caller"""

    async def dispatch(self, request: Request, call_next):
        parent = propagate.extract(request.headers)
        user_id = (request.headers.get(USER_HEADER) or "").strip() or None

        with tracer.start_as_current_span(
            f"{request.method} {request.url.path}",
            context=parent,
            kind=SpanKind.SERVER,
            attributes={
                "http.method": request.method,
                "http.target": request.url.path,
            }
        ) as span:
            trace_id, span_id = self._request_ids(span, parent, request)
            request.state.trace_id = trace_id
            request.state.span_id = span_id

            if user_id:
                span.set_attribute("gateway.user_id", user_id)

            try:
                response = await call_next(request)
            except Exception as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, type(e).__name__))
                raise

            # The chat router records the session once the body is parsed
            session_id = getattr(request.state, "session_id", None)
            if session_id:
                span.set_attribute("gateway.session_id", session_id)

            span.set_attribute("http.status_code", response.status_code)
            if response.status_code >= 500:
                span.set_status(Status(StatusCode.ERROR, f"HTTP {response.status_code}"))

            response.headers["X-Trace-Id"] = trace_id
            response.headers["X-Span-Id"] = span_id

            logger.debug(
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra={"session_id": session_id, "user_id": user_id}
            )
            return response

    @staticmethod
    def _request_ids(span, parent: Context, request: Request) -> Tuple[str, str]:
        """Trace and span ids for this request, as lower-case hex

        Uses the live span when tracing is configured, then the propagated
        parent, then an ``X-Trace-Id`` header, then fresh ids.
        """
        span_context = span.get_span_context()
        if span_context.is_valid:
            return format(span_context.trace_id, "032x"), format(span_context.span_id, "016x")

        new_span_id = uuid.uuid4().hex[:16]
        parent_context = trace.get_current_span(parent).get_span_context()
        if parent_context.is_valid:
            return format(parent_context.trace_id, "032x"), new_span_id

        trace_id: Optional[str] = request.headers.get("X-Trace-Id")
        return trace_id or uuid.uuid4().hex, new_span_id
