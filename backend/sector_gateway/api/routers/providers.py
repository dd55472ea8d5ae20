"""Provider registry and router status endpoints"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from ..dependencies import get_gateway
from ...models.routing import Provider
from ...services.routing_gateway import RoutingGateway


router = APIRouter()


@router.get("/providers", response_model=List[Provider])
async def list_providers(gateway: RoutingGateway = Depends(get_gateway)):
    """Active providers in the current registry snapshot, cheapest first"""
    return await gateway.list_providers()


@router.get("/router/status")
async def router_status(gateway: RoutingGateway = Depends(get_gateway)) -> Dict[str, Any]:
    """Provider availability and per-sector coverage"""
    return await gateway.get_status()
