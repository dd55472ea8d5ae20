"""Error hierarchy for the routing pipeline"""

from typing import List, Optional


class GatewayError(Exception):
    """Base exception for routing gateway failures"""
    pass


class ConfigurationError(GatewayError):
    """Local misconfiguration: missing credential, empty registry

    Fatal to the current attempt, never to the process.
    """

    def __init__(self, message: str, provider_name: Optional[str] = None):
        super().__init__(message)
        self.provider_name = provider_name


class ClassificationError(ConfigurationError):
    """Raised when a request cannot be mapped to the default sector"""
    pass


class ProviderError(GatewayError):
    """Transport or protocol failure talking to a provider"""

    def __init__(
        self,
        message: str,
        provider_name: str,
        status_code: Optional[int] = None
    ):
        super().__init__(message)
        self.provider_name = provider_name
        self.status_code = status_code


class RoutingFailedError(GatewayError):
    """Aggregated failure once the primary and fallback attempts are spent

    ``last_error`` is the fallback's error when a fallback ran, otherwise
    the primary's.
    """

    def __init__(self, message: str, attempts: List[str], last_error: GatewayError):
        super().__init__(message)
        self.attempts = list(attempts)
        self.last_error = last_error

    @property
    def is_configuration_error(self) -> bool:
        return isinstance(self.last_error, ConfigurationError)
