"""Base service class with OpenTelemetry integration"""

from contextlib import contextmanager
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import asyncio

from ..core.logger import CentralizedLogger
from ..core.config import get_settings

class BaseService:
    """Base service class with automatic tracing and logging"""

    def __init__(self, service_name: str):
        self.service_name = service_name
        self.tracer = trace.get_tracer(service_name)
        self.logger = CentralizedLogger(service_name)
        self.settings = get_settings()

    @contextmanager
    def traced_operation(self, operation_name: str, **attributes):
        """Context manager for traced operations"""
        with self.tracer.start_as_current_span(operation_name) as span:
            # Set common attributes
            span.set_attributes({
                "service.name": self.service_name,
                "operation.name": operation_name,
                **attributes
            })

            try:
                self.logger.info(f"Starting {operation_name}",
                               extra={"attributes": attributes})
                yield span
                span.set_status(Status(StatusCode.OK))
                self.logger.info(f"Completed {operation_name}")
            except Exception as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                self.logger.error(f"Error in {operation_name}: {str(e)}",
                                exc_info=True)
                raise

    async def with_timeout(self, coro, timeout_seconds: float = 30):
        """Execute coroutine with timeout"""
        try:
            return await asyncio.wait_for(coro, timeout=timeout_seconds)
        except asyncio.TimeoutError:
            self.logger.error(f"Operation timed out after {timeout_seconds} seconds")
            raise

    async def health_check(self) -> dict:
        """Report service health"""
        return {"service": self.service_name, "status": "healthy"}
