"""Last-resort error handling for the gateway API

The chat router answers routing failures itself; this middleware only sees
what escapes a handler. Internal error text is logged with an error id and
never returned. Chat callers still get the gateway's failure shape, with
``fallback_content`` to display.
"""

import uuid
from typing import Any, Dict, Optional

from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from ...core.config import get_settings
from ...core.exceptions import GatewayError
from ...core.logger import CentralizedLogger
from ...storage.base_storage import StorageError


logger = CentralizedLogger("ErrorHandler")

CHAT_PATH = "/api/chat"


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Map unhandled exceptions to sanitized JSON responses"""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)

        except ValidationError as e:
            # Bad input that slipped past request parsing
            logger.warning(f"Invalid request on {request.url.path}: {e.error_count()} errors")
            return self._error_response(
                request,
                status_code=422,
                error="Invalid request",
                details=e.errors(include_url=False, include_context=False)
            )

        except TimeoutError as e:
            logger.error(f"Request timeout on {request.url.path}: {str(e)}")
            return self._error_response(request, status_code=504, error="Request timed out")

        except (GatewayError, StorageError) as e:
            error_id = str(uuid.uuid4())
            logger.error(
                f"Gateway unavailable [{error_id}]: {str(e)}",
                exc_info=True,
                extra={"error_id": error_id, "session_id": self._session_id(request)}
            )
            return self._error_response(
                request,
                status_code=503,
                error="Service temporarily unavailable",
                error_id=error_id
            )

        except Exception as e:
            error_id = str(uuid.uuid4())
            logger.error(
                f"Unhandled error [{error_id}] on {request.method} {request.url.path}: {str(e)}",
                exc_info=True,
                extra={"error_id": error_id, "session_id": self._session_id(request)}
            )
            return self._error_response(
                request,
                status_code=500,
                error="An internal error occurred",
                error_id=error_id
            )

    @staticmethod
    def _session_id(request: Request) -> Optional[str]:
        return getattr(request.state, "session_id", None)

    def _fallback_content(self, request: Request) -> str:
        settings = getattr(request.app.state, "settings", None) or get_settings()
        return settings.gateway.fallback_content

    def _error_response(
        self,
        request: Request,
        status_code: int,
        error: str,
        error_id: Optional[str] = None,
        details: Any = None
    ) -> JSONResponse:
        """Build the error body; chat requests get ``fallback_content``"""
        content: Dict[str, Any] = {"error": error}

        if request.url.path == CHAT_PATH:
            content["fallback_content"] = self._fallback_content(request)
        if error_id:
            content["error_id"] = error_id
        if details:
            content["details"] = details

        trace_id = getattr(request.state, "trace_id", None)
        if trace_id:
            content["trace_id"] = trace_id

        return JSONResponse(status_code=status_code, content=content)
