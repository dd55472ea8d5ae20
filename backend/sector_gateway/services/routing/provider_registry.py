"""Provider registry with immutable, TTL-cached snapshots"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from ..base_service import BaseService
from ...core.exceptions import ConfigurationError
from ...models.routing import Provider
from ...storage.base_storage import StorageAdapter, StorageError


@dataclass(frozen=True)
class RegistrySnapshot:
    """Read-only view of the active providers, cheapest first

    A snapshot is never mutated; refreshing the registry builds a new one.
    """
    providers: Tuple[Provider, ...] = ()
    fetched_at: float = field(default_factory=time.time)

    @classmethod
    def build(cls, providers: List[Provider]) -> "RegistrySnapshot":
        active = sorted(
            (p for p in providers if p.is_active),
            key=lambda p: (p.cost_per_million_tokens, p.name)
        )
        return cls(providers=tuple(active))

    def __iter__(self) -> Iterator[Provider]:
        return iter(self.providers)

    def __len__(self) -> int:
        return len(self.providers)

    @property
    def is_empty(self) -> bool:
        return not self.providers

    @property
    def names(self) -> List[str]:
        return [p.name for p in self.providers]

    def cheapest(self) -> Optional[Provider]:
        return self.providers[0] if self.providers else None

    def find(self, name: Optional[str]) -> Optional[Provider]:
        if not name:
            return None
        for provider in self.providers:
            if provider.name == name:
                return provider
        return None

    def first_with_capability(self, capability: str) -> Optional[Provider]:
        for provider in self.providers:
            if provider.has_capability(capability):
                return provider
        return None

    def first_other_than(self, name: str) -> Optional[Provider]:
        """Cheapest active provider whose name differs from *name*"""
        for provider in self.providers:
            if provider.name != name:
                return provider
        return None

    def age(self) -> float:
        return time.time() - self.fetched_at


class ProviderRegistry(BaseService):
    """Hands out registry snapshots loaded from the store

    Refresh swaps the snapshot reference; readers holding an older
    snapshot keep a consistent view.
    """

    def __init__(
        self,
        storage: StorageAdapter,
        ttl_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None
    ):
        super().__init__("ProviderRegistry")
        self.storage = storage
        self.ttl_seconds = (
            self.settings.gateway.registry_ttl if ttl_seconds is None else ttl_seconds
        )
        self.timeout_seconds = timeout_seconds or self.settings.gateway.registry_timeout
        self._snapshot: Optional[RegistrySnapshot] = None

    async def snapshot(self) -> RegistrySnapshot:
        """Return a fresh-enough snapshot, refreshing from the store if expired"""
        current = self._snapshot
        if current is not None and current.age() < self.ttl_seconds:
            return current
        return await self.refresh()

    async def refresh(self) -> RegistrySnapshot:
        with self.traced_operation("registry.refresh", storage=self.storage.storage_type) as span:
            try:
                providers = await self.with_timeout(
                    self.storage.list_active_providers(),
                    timeout_seconds=self.timeout_seconds
                )
            except (StorageError, asyncio.TimeoutError) as e:
                if self._snapshot is not None:
                    self.logger.warning(
                        f"Registry refresh failed, keeping previous snapshot: {str(e)}"
                    )
                    return self._snapshot
                raise ConfigurationError(f"Provider registry unavailable: {str(e)}") from e

            snapshot = RegistrySnapshot.build(providers)
            self._snapshot = snapshot
            span.set_attribute("registry.provider_count", len(snapshot))
            self.logger.debug(f"Registry refreshed with providers: {snapshot.names}")
            return snapshot

    def invalidate(self):
        """Drop the cached snapshot so the next read hits the store"""
        self._snapshot = None

    async def seed(self, providers: List[Provider]) -> int:
        """Write *providers* to the store when it has no active provider

        Returns:
            Number of providers written
        """
        with self.traced_operation("registry.seed"):
            existing = await self.storage.list_active_providers()
            if existing:
                self.logger.info(f"Registry already holds {len(existing)} active providers")
                return 0

            for provider in providers:
                await self.storage.save_provider(provider)
            self.invalidate()
            self.logger.info(f"Seeded registry with {len(providers)} providers")
            return len(providers)

    async def health_check(self) -> dict:
        storage_health = await self.storage.health_check()
        return {
            "service": self.service_name,
            "status": storage_health.get("status", "unknown"),
            "storage": storage_health,
        }
