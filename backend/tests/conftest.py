"""Pytest configuration and shared fixtures"""

import json
import pytest
import tempfile
import shutil
from pathlib import Path
from typing import Callable, Dict, Generator, List

import httpx

from sector_gateway.core.config import CredentialsConfig, DEFAULT_SECTOR_CATALOG
from sector_gateway.models.routing import Provider, RequestContext
from sector_gateway.services.routing import (
    PromptGenerator,
    ProviderInvoker,
    ProviderRegistry,
    load_catalog,
)
from sector_gateway.services.routing_gateway import RoutingGateway
from sector_gateway.services.service_factory import ServiceFactory
from sector_gateway.storage.memory_storage import MemoryStorage
from sector_gateway.storage.storage_factory import StorageFactory


def make_provider(name: str, cost: float, *capabilities: str, is_active: bool = True) -> Provider:
    return Provider(
        name=name,
        endpoint=f"https://{name}.test/v1/chat/completions",
        model_name=f"{name}-model",
        cost_per_million_tokens=cost,
        capabilities=tuple(capabilities) or ("chat",),
        is_active=is_active,
    )


def completion(content: str = "Bonjour", model: str = None, prompt_tokens: int = 10,
               completion_tokens: int = 20) -> Dict:
    """OpenAI-compatible chat completion body"""
    body = {
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        },
    }
    if model:
        body["model"] = model
    return body


class FakeProviders:
    """httpx handler answering per provider host and recording calls"""

    def __init__(self):
        self.responses: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.calls: List[httpx.Request] = []

    def respond(self, name: str, status_code: int = 200, body: Dict = None):
        payload = completion(content=f"Réponse de {name}") if body is None else body
        self.responses[name] = lambda request: httpx.Response(status_code, json=payload)

    def fail(self, name: str, status_code: int = 500):
        self.responses[name] = lambda request: httpx.Response(
            status_code, text="upstream exploded"
        )

    def raise_error(self, name: str, error: Exception):
        def handler(request):
            raise error
        self.responses[name] = handler

    def called_hosts(self) -> List[str]:
        return [request.url.host.split(".")[0] for request in self.calls]

    def payload(self, index: int = 0) -> Dict:
        return json.loads(self.calls[index].content)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        name = request.url.host.split(".")[0]
        handler = self.responses.get(name)
        if handler is None:
            return httpx.Response(200, json=completion(content=f"Réponse de {name}"))
        return handler(request)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing"""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    # Cleanup after test
    if temp_path.exists():
        shutil.rmtree(temp_path)


@pytest.fixture(autouse=True)
def clear_factories():
    """Reset factory singletons between tests"""
    yield
    ServiceFactory.clear_instances()
    StorageFactory.clear_instances()


@pytest.fixture
def catalog():
    """The packaged sector catalog"""
    return load_catalog(DEFAULT_SECTOR_CATALOG)


@pytest.fixture
def provider_factory():
    return make_provider


@pytest.fixture
def providers() -> List[Provider]:
    """Registry used by the routing scenarios"""
    return [
        make_provider("deepseek", 0.5, "chat", "code"),
        make_provider("anthropic", 3.0, "chat", "reasoning"),
        make_provider("qwen", 1.0, "chat", "multilingual"),
    ]


@pytest.fixture
def live_search_provider() -> Provider:
    return make_provider("perplexity", 2.0, "chat", "live_search")


@pytest.fixture
def credentials() -> CredentialsConfig:
    """An API key for every provider used in tests"""
    return CredentialsConfig(
        deepseek_api_key="sk-deepseek",
        anthropic_api_key="sk-anthropic",
        qwen_api_key="sk-qwen",
        perplexity_api_key="sk-perplexity",
        openai_api_key="sk-openai",
    )


@pytest.fixture
def fake_providers() -> FakeProviders:
    return FakeProviders()


@pytest.fixture
def http_client(fake_providers):
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_providers))


@pytest.fixture
def memory_storage(providers) -> MemoryStorage:
    return MemoryStorage(providers)


@pytest.fixture
def invoker(catalog, credentials, http_client) -> ProviderInvoker:
    return ProviderInvoker(
        PromptGenerator(catalog),
        credentials=credentials,
        http_client=http_client,
        timeout_seconds=5
    )


@pytest.fixture
def make_gateway(catalog, invoker):
    """Build a gateway over a memory store holding *providers*"""
    def _make(providers: List[Provider], storage: MemoryStorage = None) -> RoutingGateway:
        storage = storage if storage is not None else MemoryStorage(providers)
        return RoutingGateway(
            storage=storage,
            catalog=catalog,
            registry=ProviderRegistry(storage, ttl_seconds=30, timeout_seconds=1),
            invoker=invoker,
        )
    return _make


@pytest.fixture
def gateway(make_gateway, providers) -> RoutingGateway:
    return make_gateway(providers)


@pytest.fixture
def make_context():
    """Build a request context with sensible defaults"""
    def _make(message: str = "Quel est le meilleur taux de crédit bancaire ?", **kwargs) -> RequestContext:
        kwargs.setdefault("session_id", "session-1")
        return RequestContext(message=message, **kwargs)
    return _make


@pytest.fixture
async def redis_test_client():
    """Create a Redis client for testing (if Redis is available)"""
    import redis.asyncio as redis
    from redis.exceptions import ConnectionError as RedisConnectionError

    # Use a different database for testing (db=1)
    test_redis_url = "redis://localhost:6379/1"

    try:
        client = redis.from_url(test_redis_url, encoding="utf-8", decode_responses=True)
        # Test connection
        await client.ping()
    except (RedisConnectionError, OSError):
        # Redis not available, skip Redis tests
        pytest.skip("Redis not available for testing")

    yield client
    # Cleanup: flush test database
    await client.flushdb()
    await client.aclose()
