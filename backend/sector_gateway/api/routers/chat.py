"""Chat routing API endpoint"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from ..dependencies import get_caller_identity, get_gateway
from ...core.exceptions import ConfigurationError, RoutingFailedError
from ...core.logger import CentralizedLogger
from ...models.routing import ChatRequest, ErrorResponse, GatewayResponse
from ...services.routing_gateway import RoutingGateway


router = APIRouter()
logger = CentralizedLogger("ChatAPI")


def _failure(gateway: RoutingGateway, status_code: int, message: str) -> JSONResponse:
    body = ErrorResponse(error=message, fallback_content=gateway.fallback_content)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.post(
    "/chat",
    response_model=GatewayResponse,
    responses={
        status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def chat(
    request: ChatRequest,
    http_request: Request,
    user_id: Optional[str] = Depends(get_caller_identity),
    gateway: RoutingGateway = Depends(get_gateway)
):
    """Route a chat message to the best provider for its sector

    Failures always carry ``fallback_content`` so the caller has text to
    show: 503 when nothing could be called for configuration reasons, 502
    when providers were called and failed, 500 for anything unexpected.
    """
    ctx = request.to_context(user_id=user_id)
    http_request.state.session_id = ctx.session_id

    try:
        return await gateway.route(ctx)

    except RoutingFailedError as e:
        logger.error(
            f"Routing failed after {e.attempts}: {str(e)}",
            extra={"session_id": ctx.session_id}
        )
        status_code = (
            status.HTTP_503_SERVICE_UNAVAILABLE if e.is_configuration_error
            else status.HTTP_502_BAD_GATEWAY
        )
        return _failure(gateway, status_code, str(e))

    except ConfigurationError as e:
        logger.error(
            f"Routing unavailable: {str(e)}",
            extra={"session_id": ctx.session_id}
        )
        return _failure(gateway, status.HTTP_503_SERVICE_UNAVAILABLE, str(e))

    except Exception as e:
        logger.error(
            f"Unexpected routing error: {str(e)}",
            exc_info=True,
            extra={"session_id": ctx.session_id}
        )
        return _failure(
            gateway,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal routing error"
        )
