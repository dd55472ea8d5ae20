"""Storage module for the Sector Gateway"""

from .base_storage import (
    StorageAdapter,
    StorageError,
    StorageConnectionError,
)
from .memory_storage import MemoryStorage
from .filesystem_storage import FilesystemStorage
from .redis_storage import RedisStorage
from .storage_factory import StorageFactory, StorageType

__all__ = [
    # Base classes and exceptions
    "StorageAdapter",
    "StorageError",
    "StorageConnectionError",

    # Storage implementations
    "MemoryStorage",
    "FilesystemStorage",
    "RedisStorage",

    # Factory
    "StorageFactory",
    "StorageType",
]
