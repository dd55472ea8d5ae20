"""Redis storage adapter implementation"""

import json
from typing import Dict, List, Optional, Any
import redis.asyncio as redis
from redis.exceptions import RedisError, ConnectionError as RedisConnectionError

from .base_storage import (
    StorageAdapter,
    StorageError,
    StorageConnectionError,
)
from ..models.routing import Provider, LogRecord
from ..core.config import get_settings


class RedisStorage(StorageAdapter):
    """Redis-based storage adapter

    Providers are kept in one hash keyed by provider name. Log records are
    pushed onto a list, plus a per-session list so session lookups do not
    scan the whole log.
    """

    def __init__(self, redis_url: Optional[str] = None, key_prefix: Optional[str] = None):
        """Initialize Redis storage

        Args:
            redis_url: Redis connection URL
            key_prefix: Namespace for every key this adapter writes
        """
        super().__init__("redis")
        settings = get_settings()
        self.redis_url = redis_url or settings.storage.redis_url
        self.redis_client: Optional[redis.Redis] = None
        self.key_prefix = key_prefix or settings.storage.redis_key_prefix

        self.logger.info(f"Initialized Redis storage with URL: {self.redis_url}")

    async def _ensure_connected(self):
        """Ensure Redis connection is established"""
        if not self.redis_client:
            try:
                self.redis_client = redis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True
                )
                # Test connection
                await self.redis_client.ping()
                self.logger.info("Connected to Redis successfully")
            except (RedisError, RedisConnectionError) as e:
                self.redis_client = None
                self.logger.error(f"Failed to connect to Redis: {str(e)}")
                raise StorageConnectionError(f"Redis connection failed: {str(e)}") from e

    def _get_providers_key(self) -> str:
        return f"{self.key_prefix}:providers"

    def _get_logs_key(self) -> str:
        return f"{self.key_prefix}:logs"

    def _get_session_logs_key(self, session_id: str) -> str:
        return f"{self.key_prefix}:logs:session:{session_id}"

    async def list_active_providers(self) -> List[Provider]:
        """Load active providers from the registry hash"""
        with self.traced_operation("list_active_providers"):
            await self._ensure_connected()

            try:
                entries = await self.redis_client.hgetall(self._get_providers_key())
                providers = [Provider(**json.loads(value)) for value in entries.values()]
                return self._active_sorted(providers)

            except RedisError as e:
                self.logger.error(f"Failed to read providers from Redis: {str(e)}")
                raise StorageError(f"Redis read failed: {str(e)}") from e
            except ValueError as e:
                # Undecodable JSON or an entry that is not a valid provider
                self.logger.error(f"Corrupted provider entry in Redis: {str(e)}")
                raise StorageError(f"Corrupted provider registry: {str(e)}") from e

    async def save_provider(self, provider: Provider) -> bool:
        """Save a provider to the registry hash"""
        with self.traced_operation("save_provider", provider=provider.name):
            await self._ensure_connected()

            try:
                await self.redis_client.hset(
                    self._get_providers_key(),
                    provider.name,
                    json.dumps(provider.model_dump(mode="json"))
                )
                self.logger.debug(f"Saved provider {provider.name} to Redis")
                return True

            except RedisError as e:
                self.logger.error(f"Failed to save provider {provider.name} to Redis: {str(e)}")
                raise StorageError(f"Redis save failed: {str(e)}") from e

    async def append_log(self, record: LogRecord) -> bool:
        """Push a log record onto the request log"""
        with self.traced_operation("append_log", session_id=record.session_id):
            await self._ensure_connected()

            try:
                record_json = json.dumps(record.model_dump(mode="json"), default=str)

                # Use pipeline for atomic operations
                pipe = self.redis_client.pipeline()
                pipe.lpush(self._get_logs_key(), record_json)
                pipe.lpush(self._get_session_logs_key(record.session_id), record_json)
                await pipe.execute()
                return True

            except RedisError as e:
                self.logger.error(f"Failed to append log record {record.id} to Redis: {str(e)}")
                raise StorageError(f"Redis append failed: {str(e)}") from e

    async def list_logs(
        self,
        session_id: Optional[str] = None,
        limit: int = 100
    ) -> List[LogRecord]:
        """List log records, newest first"""
        with self.traced_operation("list_logs"):
            await self._ensure_connected()

            key = self._get_session_logs_key(session_id) if session_id else self._get_logs_key()
            try:
                # LPUSH keeps the newest entry at index 0
                entries = await self.redis_client.lrange(key, 0, max(limit, 1) - 1)
            except RedisError as e:
                self.logger.error(f"Failed to list log records from Redis: {str(e)}")
                raise StorageError(f"Redis read failed: {str(e)}") from e

            records = []
            for entry in entries[:limit]:
                try:
                    records.append(LogRecord(**json.loads(entry)))
                except ValueError as e:
                    self.logger.warning(f"Skipping corrupted log entry: {str(e)}")
            return records

    async def health_check(self) -> Dict[str, Any]:
        """Check Redis storage health"""
        with self.traced_operation("health_check"):
            try:
                await self._ensure_connected()

                ping_response = await self.redis_client.ping()
                provider_count = await self.redis_client.hlen(self._get_providers_key())
                log_count = await self.redis_client.llen(self._get_logs_key())

                health_status = {
                    "status": "healthy" if ping_response else "unhealthy",
                    "storage_type": self.storage_type,
                    "redis_url": self.redis_url,
                    "connected": bool(ping_response),
                    "provider_count": provider_count,
                    "log_count": log_count,
                }

                self.logger.info(f"Redis health check: {health_status['status']}")
                return health_status

            except (RedisError, StorageConnectionError) as e:
                self.logger.error(f"Redis health check failed: {str(e)}")
                return {
                    "status": "error",
                    "storage_type": self.storage_type,
                    "error": str(e)
                }

    async def close(self):
        """Close Redis connection"""
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None
            self.logger.info("Closed Redis connection")
