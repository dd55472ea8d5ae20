"""Tests for StorageFactory"""

import pytest

from sector_gateway.core.config import get_settings
from sector_gateway.storage.base_storage import StorageError
from sector_gateway.storage.filesystem_storage import FilesystemStorage
from sector_gateway.storage.memory_storage import MemoryStorage
from sector_gateway.storage.redis_storage import RedisStorage
from sector_gateway.storage.storage_factory import StorageFactory, StorageType


class TestStorageFactory:
    """Test suite for StorageFactory"""

    def test_available_types(self):
        assert set(StorageFactory.get_available_types()) == {
            StorageType.MEMORY, StorageType.REDIS, StorageType.FILESYSTEM
        }

    def test_create_memory(self):
        storage = StorageFactory.create(StorageType.MEMORY)

        assert isinstance(storage, MemoryStorage)

    def test_singleton(self):
        first = StorageFactory.create(StorageType.MEMORY)
        second = StorageFactory.create(StorageType.MEMORY)
        separate = StorageFactory.create(StorageType.MEMORY, singleton=False)

        assert first is second
        assert separate is not first

    def test_create_filesystem(self, temp_dir):
        storage = StorageFactory.create(StorageType.FILESYSTEM, base_path=str(temp_dir))

        assert isinstance(storage, FilesystemStorage)
        assert storage.base_path == temp_dir

    def test_create_redis_uses_settings(self):
        storage = StorageFactory.create(StorageType.REDIS, singleton=False)

        assert isinstance(storage, RedisStorage)
        assert storage.redis_url == get_settings().storage.redis_url

    def test_default_from_settings(self, monkeypatch):
        monkeypatch.setattr(get_settings().storage, "type", "memory")

        assert isinstance(StorageFactory.get_default(), MemoryStorage)

    def test_unknown_configured_type(self, monkeypatch):
        monkeypatch.setattr(get_settings().storage, "type", "cassandra")

        with pytest.raises(StorageError, match="Unknown storage type"):
            StorageFactory.create()

    def test_constructor_failure_wrapped(self):
        with pytest.raises(StorageError):
            StorageFactory.create(StorageType.MEMORY, singleton=False, unexpected=True)

    @pytest.mark.asyncio
    async def test_close_all(self):
        StorageFactory.create(StorageType.MEMORY)
        StorageFactory.create(StorageType.REDIS)

        await StorageFactory.close_all()

        assert StorageFactory._instances[StorageType.REDIS].redis_client is None
