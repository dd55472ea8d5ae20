"""In-process storage adapter"""

from typing import Dict, List, Optional, Any

from .base_storage import StorageAdapter
from ..models.routing import Provider, LogRecord


class MemoryStorage(StorageAdapter):
    """Dictionary-backed storage for development and tests

    Nothing survives a restart.
    """

    def __init__(self, providers: Optional[List[Provider]] = None):
        super().__init__("memory")
        self._providers: Dict[str, Provider] = {p.name: p for p in providers or []}
        self._logs: List[LogRecord] = []

    @property
    def logs(self) -> List[LogRecord]:
        """Appended records in insertion order"""
        return list(self._logs)

    async def list_active_providers(self) -> List[Provider]:
        with self.traced_operation("list_active_providers"):
            return self._active_sorted(self._providers.values())

    async def save_provider(self, provider: Provider) -> bool:
        with self.traced_operation("save_provider", provider=provider.name):
            self._providers[provider.name] = provider
            return True

    async def append_log(self, record: LogRecord) -> bool:
        with self.traced_operation("append_log", session_id=record.session_id):
            self._logs.append(record)
            return True

    async def list_logs(
        self,
        session_id: Optional[str] = None,
        limit: int = 100
    ) -> List[LogRecord]:
        with self.traced_operation("list_logs"):
            return self._newest_first(self._logs, session_id, limit)

    async def health_check(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "storage_type": self.storage_type,
            "provider_count": len(self._providers),
            "log_count": len(self._logs),
        }
