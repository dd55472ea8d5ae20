"""Filesystem storage adapter implementation"""

import json
import os
from pathlib import Path
from typing import Dict, List, Optional, Any
import aiofiles
import aiofiles.os

from .base_storage import StorageAdapter, StorageError
from ..models.routing import Provider, LogRecord
from ..core.config import get_settings


class FilesystemStorage(StorageAdapter):
    """Filesystem-based storage adapter

    Providers live in a single JSON document keyed by name; request logs
    are appended one JSON object per line.
    """

    def __init__(self, base_path: Optional[str] = None):
        """Initialize filesystem storage

        Args:
            base_path: Base directory for the registry and the request log
        """
        super().__init__("filesystem")
        settings = get_settings()
        self.base_path = Path(base_path or settings.storage.filesystem_path)

        # Create base directory if it doesn't exist
        self.base_path.mkdir(parents=True, exist_ok=True)

        self.providers_path = self.base_path / "providers.json"
        self.logs_path = self.base_path / "request_logs.jsonl"

        self.logger.info(f"Initialized filesystem storage at {self.base_path}")

    async def _read_providers(self) -> Dict[str, Provider]:
        if not await aiofiles.os.path.exists(self.providers_path):
            return {}

        async with aiofiles.open(self.providers_path, 'r') as f:
            content = await f.read()

        if not content.strip():
            return {}
        data = json.loads(content)
        return {name: Provider(**entry) for name, entry in data.items()}

    async def list_active_providers(self) -> List[Provider]:
        """Load active providers from the registry file"""
        with self.traced_operation("list_active_providers"):
            try:
                providers = await self._read_providers()
                return self._active_sorted(providers.values())
            except (OSError, ValueError) as e:
                self.logger.error(f"Failed to read providers: {str(e)}")
                raise StorageError(f"Failed to read providers: {str(e)}") from e

    async def save_provider(self, provider: Provider) -> bool:
        """Save a provider to the registry file"""
        with self.traced_operation("save_provider", provider=provider.name):
            try:
                providers = await self._read_providers()
                providers[provider.name] = provider

                data = {name: p.model_dump(mode="json") for name, p in providers.items()}
                # Write then rename so readers never see a partial document
                tmp_path = self.providers_path.with_suffix(".json.tmp")
                async with aiofiles.open(tmp_path, 'w') as f:
                    await f.write(json.dumps(data, indent=2))
                await aiofiles.os.replace(tmp_path, self.providers_path)

                self.logger.info(f"Saved provider {provider.name} to filesystem")
                return True

            except (OSError, ValueError) as e:
                self.logger.error(f"Failed to save provider {provider.name}: {str(e)}")
                raise StorageError(f"Failed to save provider: {str(e)}") from e

    async def append_log(self, record: LogRecord) -> bool:
        """Append a log record to the request log"""
        with self.traced_operation("append_log", session_id=record.session_id):
            try:
                line = json.dumps(record.model_dump(mode="json"), default=str)
                async with aiofiles.open(self.logs_path, 'a') as f:
                    await f.write(line + "\n")
                return True

            except OSError as e:
                self.logger.error(f"Failed to append log record {record.id}: {str(e)}")
                raise StorageError(f"Failed to append log record: {str(e)}") from e

    async def list_logs(
        self,
        session_id: Optional[str] = None,
        limit: int = 100
    ) -> List[LogRecord]:
        """List log records, newest first"""
        with self.traced_operation("list_logs"):
            if not await aiofiles.os.path.exists(self.logs_path):
                return []

            records = []
            try:
                async with aiofiles.open(self.logs_path, 'r') as f:
                    async for line in f:
                        line = line.strip()
                        if not line:
                            continue
                        try:
                            records.append(LogRecord(**json.loads(line)))
                        except ValueError as e:
                            self.logger.warning(f"Skipping corrupted log line: {str(e)}")
            except OSError as e:
                raise StorageError(f"Failed to read request log: {str(e)}") from e

            return self._newest_first(records, session_id, limit)

    async def health_check(self) -> Dict[str, Any]:
        """Check filesystem storage health"""
        with self.traced_operation("health_check"):
            try:
                checks = {
                    "base_path_exists": self.base_path.exists(),
                    "base_path_writable": os.access(self.base_path, os.W_OK),
                }
                providers = await self._read_providers()

                health_status = {
                    "status": "healthy" if all(checks.values()) else "unhealthy",
                    "storage_type": self.storage_type,
                    "base_path": str(self.base_path),
                    "checks": checks,
                    "provider_count": len(providers),
                }

                self.logger.info(f"Health check: {health_status['status']}")
                return health_status

            except Exception as e:
                self.logger.error(f"Health check failed: {str(e)}")
                return {
                    "status": "error",
                    "storage_type": self.storage_type,
                    "error": str(e)
                }
