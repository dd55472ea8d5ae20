"""
Request telemetry endpoint.

Exposes the per-request log records written by the routing gateway.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_gateway
from ...core.logger import CentralizedLogger
from ...models.routing import LogRecord
from ...services.routing_gateway import RoutingGateway

logger = CentralizedLogger(__name__)

router = APIRouter(tags=["logging"])


@router.get("/logs", response_model=List[LogRecord])
async def list_request_logs(
    session_id: Optional[str] = Query(None, description="Only records for this session"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum records to return"),
    gateway: RoutingGateway = Depends(get_gateway)
):
    """
    Most recent request log records, newest first.
    """
    records = await gateway.recent_logs(session_id=session_id, limit=limit)
    logger.debug(f"Returning {len(records)} log records")
    return records
