"""Tests for ProviderRegistry and RegistrySnapshot"""

import asyncio
import pytest

from sector_gateway.core.exceptions import ConfigurationError
from sector_gateway.services.routing import ProviderRegistry, RegistrySnapshot
from sector_gateway.storage.base_storage import StorageError
from sector_gateway.storage.memory_storage import MemoryStorage


class FlakyStorage(MemoryStorage):
    """Memory storage whose provider reads can be made to fail or hang"""

    def __init__(self, providers=None):
        super().__init__(providers)
        self.reads = 0
        self.fail = False
        self.delay = 0.0

    async def list_active_providers(self):
        self.reads += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise StorageError("store unavailable")
        return await super().list_active_providers()


class TestRegistrySnapshot:
    """Test immutable registry snapshots"""

    def test_sorted_by_cost(self, providers):
        snapshot = RegistrySnapshot.build(providers)

        assert snapshot.names == ["deepseek", "qwen", "anthropic"]
        assert snapshot.cheapest().name == "deepseek"

    def test_inactive_dropped(self, provider_factory):
        snapshot = RegistrySnapshot.build([
            provider_factory("deepseek", 0.5, is_active=False),
            provider_factory("qwen", 1.0),
        ])

        assert snapshot.names == ["qwen"]

    def test_equal_cost_ordered_by_name(self, provider_factory):
        snapshot = RegistrySnapshot.build([
            provider_factory("zeta", 1.0),
            provider_factory("alpha", 1.0),
        ])

        assert snapshot.names == ["alpha", "zeta"]

    def test_lookups(self, providers, live_search_provider):
        snapshot = RegistrySnapshot.build(providers + [live_search_provider])

        assert snapshot.find("qwen").name == "qwen"
        assert snapshot.find("openai") is None
        assert snapshot.find(None) is None
        assert snapshot.first_with_capability("live_search").name == "perplexity"
        assert snapshot.first_other_than("deepseek").name == "qwen"

    def test_empty(self):
        snapshot = RegistrySnapshot.build([])

        assert snapshot.is_empty
        assert snapshot.cheapest() is None
        assert snapshot.first_other_than("deepseek") is None

    def test_immutable(self, providers):
        snapshot = RegistrySnapshot.build(providers)

        with pytest.raises(AttributeError):
            snapshot.providers = ()


class TestProviderRegistry:
    """Test TTL-cached registry reads"""

    @pytest.mark.asyncio
    async def test_snapshot_cached_within_ttl(self, providers):
        storage = FlakyStorage(providers)
        registry = ProviderRegistry(storage, ttl_seconds=60, timeout_seconds=1)

        first = await registry.snapshot()
        second = await registry.snapshot()

        assert first is second
        assert storage.reads == 1

    @pytest.mark.asyncio
    async def test_refresh_builds_new_snapshot(self, providers, provider_factory):
        storage = FlakyStorage(providers)
        registry = ProviderRegistry(storage, ttl_seconds=60, timeout_seconds=1)
        held = await registry.snapshot()

        await storage.save_provider(provider_factory("mistral", 0.1))
        registry.invalidate()
        fresh = await registry.snapshot()

        assert fresh.cheapest().name == "mistral"
        # Readers holding the old snapshot keep their view
        assert "mistral" not in held.names

    @pytest.mark.asyncio
    async def test_zero_ttl_always_reads(self, providers):
        storage = FlakyStorage(providers)
        registry = ProviderRegistry(storage, ttl_seconds=0, timeout_seconds=1)

        await registry.snapshot()
        await registry.snapshot()

        assert storage.reads == 2

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_snapshot(self, providers):
        storage = FlakyStorage(providers)
        registry = ProviderRegistry(storage, ttl_seconds=0, timeout_seconds=1)
        previous = await registry.snapshot()

        storage.fail = True
        current = await registry.snapshot()

        assert current is previous

    @pytest.mark.asyncio
    async def test_failure_without_snapshot(self, providers):
        storage = FlakyStorage(providers)
        storage.fail = True
        registry = ProviderRegistry(storage, ttl_seconds=60, timeout_seconds=1)

        with pytest.raises(ConfigurationError, match="registry unavailable"):
            await registry.snapshot()

    @pytest.mark.asyncio
    async def test_read_timeout(self, providers):
        storage = FlakyStorage(providers)
        storage.delay = 1.0
        registry = ProviderRegistry(storage, ttl_seconds=60, timeout_seconds=0.05)

        with pytest.raises(ConfigurationError):
            await registry.snapshot()

    @pytest.mark.asyncio
    async def test_seed_empty_store(self, providers):
        storage = MemoryStorage()
        registry = ProviderRegistry(storage)

        assert (await registry.snapshot()).is_empty
        written = await registry.seed(providers)

        assert written == 3
        assert (await registry.snapshot()).names == ["deepseek", "qwen", "anthropic"]

    @pytest.mark.asyncio
    async def test_seed_skips_populated_store(self, providers, provider_factory):
        storage = MemoryStorage(providers)
        registry = ProviderRegistry(storage)

        written = await registry.seed([provider_factory("mistral", 0.1)])

        assert written == 0
        assert "mistral" not in (await registry.snapshot()).names
