"""API Dependencies for dependency injection"""

from typing import Optional
from fastapi import Header

from ..services.service_factory import ServiceFactory, ServiceType
from ..services.routing_gateway import RoutingGateway


async def get_caller_identity(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id")
) -> Optional[str]:
    """Optional caller identity, recorded with telemetry

    Not authenticated; access control is handled in front of the gateway.
    """
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    return None


async def get_gateway() -> RoutingGateway:
    """Get routing gateway instance"""
    return ServiceFactory.create(ServiceType.ROUTING_GATEWAY)

