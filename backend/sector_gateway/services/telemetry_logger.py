"""Per-request telemetry records and metrics"""

from typing import List, Optional

from .base_service import BaseService
from ..core.telemetry import get_meter
from ..models.routing import LogRecord
from ..storage.base_storage import StorageAdapter, StorageError


class TelemetryLogger(BaseService):
    """Write one LogRecord per request to the sink and record metrics

    A sink failure is logged and swallowed so it never changes the
    response the caller gets.
    """

    def __init__(self, storage: StorageAdapter):
        super().__init__("TelemetryLogger")
        self.storage = storage

        meter = get_meter("sector_gateway.routing")
        self.request_counter = meter.create_counter(
            "gateway.requests",
            description="Routed requests by provider and outcome"
        )
        self.cost_histogram = meter.create_histogram(
            "gateway.request.cost",
            description="Estimated cost per request"
        )
        self.latency_histogram = meter.create_histogram(
            "gateway.request.latency",
            unit="ms",
            description="Provider latency per request"
        )

    async def record(self, record: LogRecord) -> bool:
        """Persist *record*; returns False when the sink rejected it"""
        attributes = {
            "provider": record.provider_name,
            "success": record.success,
            "fallback_used": record.fallback_used,
        }
        if record.sector is not None:
            attributes["sector"] = record.sector.value
        self.request_counter.add(1, attributes)
        self.cost_histogram.record(record.cost_estimate, attributes)
        self.latency_histogram.record(record.latency_ms, attributes)

        try:
            await self.storage.append_log(record)
        except StorageError as e:
            self.logger.error(
                f"Failed to write log record {record.id}: {str(e)}",
                exc_info=e,
                extra={"session_id": record.session_id, "provider": record.provider_name}
            )
            return False

        self.logger.info(
            f"Logged request {record.id} "
            f"(provider={record.provider_name}, success={record.success})",
            extra={"session_id": record.session_id, "provider": record.provider_name}
        )
        return True

    async def recent(
        self,
        session_id: Optional[str] = None,
        limit: int = 100
    ) -> List[LogRecord]:
        with self.traced_operation("telemetry.recent"):
            return await self.storage.list_logs(session_id=session_id, limit=limit)
