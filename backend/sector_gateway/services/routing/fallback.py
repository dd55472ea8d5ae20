"""Single-level fallback around provider invocation"""

from dataclasses import dataclass
from typing import Optional, Tuple

from .invoker import ProviderInvoker
from .provider_registry import RegistrySnapshot
from ..base_service import BaseService
from ...core.exceptions import (
    ConfigurationError,
    GatewayError,
    ProviderError,
    RoutingFailedError,
)
from ...models.routing import InvocationResult, Provider, RequestContext, Sector


@dataclass(frozen=True)
class FallbackOutcome:
    """What happened across the primary and (at most one) fallback attempt"""
    attempts: Tuple[str, ...]
    last_provider: Provider
    result: Optional[InvocationResult] = None
    error: Optional[GatewayError] = None
    fallback_available: bool = True

    @property
    def succeeded(self) -> bool:
        return self.result is not None

    @property
    def fallback_used(self) -> bool:
        return len(self.attempts) > 1

    def to_error(self) -> RoutingFailedError:
        """Aggregate the failure, naming the last error"""
        if self.fallback_available:
            message = f"All providers failed. Last error: {self.error}"
        else:
            message = (
                f"Provider {self.attempts[0]} failed and no fallback provider "
                f"is available: {self.error}"
            )
        return RoutingFailedError(message, attempts=list(self.attempts), last_error=self.error)


class FallbackCoordinator(BaseService):
    """Invoke the primary provider, then at most one different provider

    Only ProviderError and ConfigurationError trigger the fallback; any
    other exception propagates unchanged.
    """

    def __init__(self, invoker: ProviderInvoker):
        super().__init__("FallbackCoordinator")
        self.invoker = invoker

    async def execute(
        self,
        primary: Provider,
        snapshot: RegistrySnapshot,
        ctx: RequestContext,
        sector: Sector
    ) -> FallbackOutcome:
        try:
            result = await self.invoker.invoke(primary, ctx.message, ctx, sector)
            return FallbackOutcome(attempts=(primary.name,), last_provider=primary, result=result)
        except (ProviderError, ConfigurationError) as primary_error:
            self.logger.warning(
                f"Primary provider {primary.name} failed: {str(primary_error)}",
                extra={"provider": primary.name, "session_id": ctx.session_id}
            )
            fallback = snapshot.first_other_than(primary.name)
            if fallback is None:
                return FallbackOutcome(
                    attempts=(primary.name,),
                    last_provider=primary,
                    error=primary_error,
                    fallback_available=False,
                )

        self.logger.info(
            f"Falling back from {primary.name} to {fallback.name}",
            extra={"provider": fallback.name, "session_id": ctx.session_id}
        )
        attempts = (primary.name, fallback.name)
        try:
            result = await self.invoker.invoke(fallback, ctx.message, ctx, sector)
            return FallbackOutcome(attempts=attempts, last_provider=fallback, result=result)
        except (ProviderError, ConfigurationError) as fallback_error:
            self.logger.error(
                f"Fallback provider {fallback.name} failed: {str(fallback_error)}",
                extra={"provider": fallback.name, "session_id": ctx.session_id}
            )
            return FallbackOutcome(attempts=attempts, last_provider=fallback, error=fallback_error)
