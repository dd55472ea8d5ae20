"""Routing gateway: classify, select, invoke with fallback, log"""

from typing import Any, Dict, List, Optional

import httpx

from .base_service import BaseService
from .service_factory import ServiceFactory, ServiceType
from .telemetry_logger import TelemetryLogger
from .routing import (
    FallbackCoordinator,
    FallbackOutcome,
    PromptGenerator,
    ProviderInvoker,
    ProviderRegistry,
    ProviderSelector,
    RequestClassifier,
    SectorCatalog,
    load_catalog,
)
from ..core.exceptions import ConfigurationError
from ..models.routing import (
    Classification,
    GatewayResponse,
    LocaleEcho,
    LogRecord,
    Provider,
    RequestContext,
    RoutingAnalysis,
    Sector,
    Strategy,
)
from ..storage.base_storage import StorageAdapter

UNKNOWN_PROVIDER = "unknown"


class RoutingGateway(BaseService):
    """End-to-end request routing

    Each call runs one sequential pipeline: classify the request, take a
    registry snapshot, select a provider, invoke it with at most one
    fallback, and write exactly one log record whatever the outcome.
    """

    def __init__(
        self,
        storage: StorageAdapter,
        catalog: Optional[SectorCatalog] = None,
        registry: Optional[ProviderRegistry] = None,
        invoker: Optional[ProviderInvoker] = None,
        telemetry: Optional[TelemetryLogger] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        super().__init__("RoutingGateway")
        gateway_settings = self.settings.gateway

        try:
            default_sector = Sector(gateway_settings.default_sector)
            self.default_strategy = Strategy(gateway_settings.default_strategy)
        except ValueError as e:
            raise ConfigurationError(f"Invalid gateway settings: {str(e)}") from e

        self.storage = storage
        self.catalog = catalog or load_catalog(gateway_settings.sector_catalog_path)
        self.registry = registry or ProviderRegistry(storage)
        self.classifier = RequestClassifier(self.catalog, default_sector)
        self.prompt_generator = PromptGenerator(self.catalog)
        self.selector = ProviderSelector(self.catalog)
        self.invoker = invoker or ProviderInvoker(self.prompt_generator, http_client=http_client)
        self.fallback = FallbackCoordinator(self.invoker)
        self.telemetry = telemetry or TelemetryLogger(storage)
        self.fallback_content = gateway_settings.fallback_content

    async def route(self, ctx: RequestContext) -> GatewayResponse:
        """Route one request

        Raises:
            ConfigurationError: No provider could be selected
            RoutingFailedError: The primary and the fallback attempt failed,
                or the primary failed with no fallback candidate
        """
        strategy = ctx.strategy or self.default_strategy
        classification: Optional[Classification] = None
        outcome: Optional[FallbackOutcome] = None
        error_message: Optional[str] = None

        with self.traced_operation(
            "gateway.route",
            session_id=ctx.session_id,
            strategy=strategy.value
        ) as span:
            try:
                classification = self.classifier.classify(ctx)
                span.set_attribute("routing.sector", classification.sector.value)
                span.set_attribute("routing.task_type", classification.task_type.value)

                snapshot = await self.registry.snapshot()
                primary, rule_name = self.selector.select_with_rule(
                    snapshot, classification, strategy, ctx
                )
                if primary is None:
                    raise ConfigurationError("No available providers")
                span.set_attribute("routing.primary", primary.name)

                outcome = await self.fallback.execute(primary, snapshot, ctx, classification.sector)
                if not outcome.succeeded:
                    raise outcome.to_error() from outcome.error

                return self._build_response(ctx, strategy, classification, outcome, rule_name)

            except Exception as e:
                error_message = str(e)
                raise

            finally:
                await self.telemetry.record(
                    self._build_log_record(ctx, strategy, classification, outcome, error_message)
                )

    def _build_response(
        self,
        ctx: RequestContext,
        strategy: Strategy,
        classification: Classification,
        outcome: FallbackOutcome,
        rule_name: Optional[str]
    ) -> GatewayResponse:
        result = outcome.result
        locale = ctx.locale

        multi_sector_context = None
        if locale.country_code:
            multi_sector_context = LocaleEcho(
                country_code=locale.country_code,
                region=locale.region,
                language=locale.language,
                sector=classification.sector,
            )

        return GatewayResponse(
            content=result.content,
            provider=result.provider_name,
            model=result.model_name,
            sector=classification.sector,
            tokens_used=result.total_tokens,
            cost_estimate=result.cost_estimate,
            processing_time=result.processing_time_ms,
            analysis=RoutingAnalysis(
                detected_sector=classification.sector,
                task_type=classification.task_type,
                complexity=classification.complexity,
                requires_realtime=classification.requires_realtime,
                detected_language=classification.detected_language,
                strategy_used=strategy,
                selection_rule=rule_name,
                context_enhanced=not ctx.override_system_prompt,
                provider_attempts=list(outcome.attempts),
                fallback_used=outcome.fallback_used,
            ),
            multi_sector_context=multi_sector_context,
        )

    def _build_log_record(
        self,
        ctx: RequestContext,
        strategy: Strategy,
        classification: Optional[Classification],
        outcome: Optional[FallbackOutcome],
        error_message: Optional[str]
    ) -> LogRecord:
        """One record for the whole request, describing the last attempt"""
        fields: Dict[str, Any] = {
            "user_id": ctx.user_id,
            "session_id": ctx.session_id,
            "strategy": strategy,
            "task_type": classification.task_type if classification else None,
            "sector": classification.sector if classification else None,
            "country_context": ctx.locale.country_code,
            "region_context": ctx.locale.region,
            "error_message": error_message,
        }

        if outcome is None:
            # Nothing was attempted
            return LogRecord(
                provider_name=UNKNOWN_PROVIDER,
                model_name=UNKNOWN_PROVIDER,
                success=False,
                **fields
            )

        fields["provider_attempts"] = list(outcome.attempts)
        fields["fallback_used"] = outcome.fallback_used

        result = outcome.result
        if result is None:
            # Failed attempts carry zeroed metrics
            return LogRecord(
                provider_name=outcome.last_provider.name,
                model_name=outcome.last_provider.model_name,
                success=False,
                **fields
            )

        return LogRecord(
            provider_name=result.provider_name,
            model_name=result.model_name,
            prompt_tokens=result.prompt_tokens,
            completion_tokens=result.completion_tokens,
            total_tokens=result.total_tokens,
            cost_estimate=result.cost_estimate,
            latency_ms=result.processing_time_ms,
            success=error_message is None,
            **fields
        )

    async def list_providers(self) -> List[Provider]:
        """Providers in the current registry snapshot, cheapest first"""
        snapshot = await self.registry.snapshot()
        return list(snapshot.providers)

    async def recent_logs(self, session_id: Optional[str] = None, limit: int = 100) -> List[LogRecord]:
        return await self.telemetry.recent(session_id=session_id, limit=limit)

    async def get_status(self) -> Dict[str, Any]:
        """Router status: providers, active flags and sector coverage"""
        with self.traced_operation("gateway.status"):
            snapshot = await self.registry.snapshot()
            sector_coverage = {
                profile.sector.value: sum(
                    1 for name in profile.preferences if snapshot.find(name) is not None
                )
                for profile in self.catalog.sectors
            }
            return {
                "total_providers": len(snapshot),
                "available_providers": {p.name: p.is_active for p in snapshot},
                "sector_coverage": sector_coverage,
                "default_strategy": self.default_strategy.value,
                "selection_rules": [rule.name for rule in self.selector.rules],
                "snapshot_age_seconds": round(snapshot.age(), 3),
            }

    async def seed_providers(self) -> int:
        """Write the configured providers to an empty registry store"""
        providers = [Provider(**entry) for entry in self.settings.gateway.providers]
        return await self.registry.seed(providers)

    async def health_check(self) -> Dict[str, Any]:
        storage_health = await self.storage.health_check()
        return {
            "service": self.service_name,
            "status": storage_health.get("status", "unknown"),
            "storage": storage_health,
        }

    async def cleanup(self):
        await self.invoker.cleanup()


ServiceFactory.register(ServiceType.ROUTING_GATEWAY, RoutingGateway)
