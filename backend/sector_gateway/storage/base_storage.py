"""Base storage adapter interface for the Sector Gateway

A storage adapter plays two roles for the gateway: it is the provider
registry store (read active providers, write provider configuration) and
the telemetry sink (append one log record per request).
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Iterable
from contextlib import contextmanager

from opentelemetry.trace import Status, StatusCode

from ..models.routing import Provider, LogRecord
from ..core.logger import CentralizedLogger
from ..core.telemetry import get_tracer


class StorageAdapter(ABC):
    """Abstract base class for storage adapters"""

    def __init__(self, storage_type: str):
        """Initialize storage adapter

        Args:
            storage_type: Type identifier for the storage backend
        """
        self.storage_type = storage_type
        self.logger = CentralizedLogger(f"Storage-{storage_type}")
        self.tracer = get_tracer(f"storage.{storage_type}")

    @abstractmethod
    async def list_active_providers(self) -> List[Provider]:
        """Return active providers sorted by ascending unit cost"""
        pass

    @abstractmethod
    async def save_provider(self, provider: Provider) -> bool:
        """Insert or replace a provider keyed by name

        Args:
            provider: Provider configuration to store

        Returns:
            True if successful
        """
        pass

    @abstractmethod
    async def append_log(self, record: LogRecord) -> bool:
        """Append one telemetry record

        Args:
            record: Log record to append

        Returns:
            True if successful
        """
        pass

    @abstractmethod
    async def list_logs(
        self,
        session_id: Optional[str] = None,
        limit: int = 100
    ) -> List[LogRecord]:
        """List telemetry records, newest first

        Args:
            session_id: Only return records for this session
            limit: Maximum number of results

        Returns:
            List of log records
        """
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Check storage health status

        Returns:
            Health status dictionary
        """
        pass

    async def close(self):
        """Release backend resources"""
        pass

    @staticmethod
    def _active_sorted(providers: Iterable[Provider]) -> List[Provider]:
        """Filter to active providers ordered by cost, then name"""
        return sorted(
            (p for p in providers if p.is_active),
            key=lambda p: (p.cost_per_million_tokens, p.name)
        )

    @staticmethod
    def _newest_first(
        records: Iterable[LogRecord],
        session_id: Optional[str],
        limit: int
    ) -> List[LogRecord]:
        selected = [r for r in records if session_id is None or r.session_id == session_id]
        selected.reverse()
        return selected[:limit]

    @contextmanager
    def traced_operation(self, operation_name: str, **attributes):
        """Create a traced operation context with automatic logging

        Args:
            operation_name: Name of the operation
            **attributes: Additional span attributes

        Returns:
            Trace context manager
        """
        with self.tracer.start_as_current_span(
            f"storage.{self.storage_type}.{operation_name}",
            attributes=attributes
        ) as span:
            try:
                # Log operation start with trace context
                self.logger.debug(
                    f"Starting {operation_name} operation",
                    extra={"attributes": attributes}
                )
                yield span
                span.set_status(Status(StatusCode.OK))
            except Exception as e:
                # Log error with trace context
                self.logger.error(
                    f"Error in {operation_name} operation: {str(e)}",
                    exc_info=True
                )
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise


class StorageError(Exception):
    """Base exception for storage operations"""
    pass


class StorageConnectionError(StorageError):
    """Exception raised when storage connection fails"""
    pass
