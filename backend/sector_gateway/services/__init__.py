"""Services module for the Sector Gateway"""

from .base_service import BaseService
from .service_factory import ServiceFactory, ServiceType
from .telemetry_logger import TelemetryLogger
from .routing_gateway import RoutingGateway

__all__ = [
    # Base classes
    "BaseService",

    # Factory
    "ServiceFactory",
    "ServiceType",

    # Services
    "TelemetryLogger",
    "RoutingGateway",
]
