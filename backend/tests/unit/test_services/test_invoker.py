"""Tests for ProviderInvoker"""

import httpx
import pytest

from sector_gateway.core.config import CredentialsConfig
from sector_gateway.core.exceptions import ConfigurationError, ProviderError
from sector_gateway.models.routing import Sector
from sector_gateway.services.routing import PromptGenerator, ProviderInvoker


class TestProviderInvoker:
    """Test single provider calls"""

    @pytest.fixture
    def deepseek(self, providers):
        return providers[0]

    @pytest.mark.asyncio
    async def test_successful_call(self, invoker, deepseek, fake_providers, make_context):
        fake_providers.respond("deepseek", body={
            "model": "deepseek-chat-v3",
            "choices": [{"message": {"role": "assistant", "content": "Le taux moyen est de 8%."}}],
            "usage": {"prompt_tokens": 1200, "completion_tokens": 800, "total_tokens": 2000}
        })

        result = await invoker.invoke(deepseek, "Quel taux ?", make_context(), Sector.BANKING)

        assert result.content == "Le taux moyen est de 8%."
        assert result.provider_name == "deepseek"
        assert result.model_name == "deepseek-chat-v3"
        assert result.sector == Sector.BANKING
        assert result.prompt_tokens == 1200
        assert result.completion_tokens == 800
        assert result.total_tokens == 2000
        # 2000 tokens at 0.5 per million
        assert result.cost_estimate == pytest.approx(0.001)
        assert result.processing_time_ms >= 0

    @pytest.mark.asyncio
    async def test_request_shape(self, invoker, deepseek, fake_providers, catalog, make_context):
        await invoker.invoke(deepseek, "Quel taux ?", make_context(), Sector.BANKING)

        request = fake_providers.calls[0]
        payload = fake_providers.payload()

        assert str(request.url) == deepseek.endpoint
        assert request.headers["Authorization"] == "Bearer sk-deepseek"
        assert payload["model"] == "deepseek-model"
        assert payload["messages"] == [
            {"role": "system", "content": catalog.profile(Sector.BANKING).prompt},
            {"role": "user", "content": "Quel taux ?"},
        ]
        assert payload["temperature"] == 0.7
        assert payload["max_tokens"] == 1000

    @pytest.mark.asyncio
    async def test_missing_usage(self, invoker, deepseek, fake_providers, make_context):
        fake_providers.respond("deepseek", body={
            "choices": [{"message": {"content": "Bonjour"}}]
        })

        result = await invoker.invoke(deepseek, "Bonjour", make_context(), Sector.BANKING)

        assert result.total_tokens == 0
        assert result.cost_estimate == 0.0
        assert result.model_name == deepseek.model_name

    @pytest.mark.asyncio
    async def test_total_from_parts(self, invoker, deepseek, fake_providers, make_context):
        fake_providers.respond("deepseek", body={
            "choices": [{"message": {"content": "Bonjour"}}],
            "usage": {"prompt_tokens": 5, "completion_tokens": 7}
        })

        result = await invoker.invoke(deepseek, "Bonjour", make_context(), Sector.BANKING)

        assert result.total_tokens == 12

    @pytest.mark.asyncio
    async def test_http_error_status(self, invoker, deepseek, fake_providers, make_context):
        fake_providers.fail("deepseek", status_code=500)

        with pytest.raises(ProviderError) as exc_info:
            await invoker.invoke(deepseek, "Bonjour", make_context(), Sector.BANKING)

        assert exc_info.value.status_code == 500
        assert exc_info.value.provider_name == "deepseek"
        # Upstream body is logged, not surfaced
        assert "upstream exploded" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout(self, invoker, deepseek, fake_providers, make_context):
        fake_providers.raise_error("deepseek", httpx.ReadTimeout("timed out"))

        with pytest.raises(ProviderError, match="timed out"):
            await invoker.invoke(deepseek, "Bonjour", make_context(), Sector.BANKING)

    @pytest.mark.asyncio
    async def test_transport_error(self, invoker, deepseek, fake_providers, make_context):
        fake_providers.raise_error("deepseek", httpx.ConnectError("connection refused"))

        with pytest.raises(ProviderError, match="transport error"):
            await invoker.invoke(deepseek, "Bonjour", make_context(), Sector.BANKING)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {},
        {"choices": []},
        {"choices": [{"message": {}}]},
        {"choices": [{"message": {"content": None}}]},
    ])
    async def test_malformed_payload(self, invoker, deepseek, fake_providers, make_context, body):
        fake_providers.respond("deepseek", body=body)

        with pytest.raises(ProviderError, match="Malformed"):
            await invoker.invoke(deepseek, "Bonjour", make_context(), Sector.BANKING)

    @pytest.mark.asyncio
    async def test_non_json_body(self, invoker, deepseek, fake_providers, make_context):
        fake_providers.responses["deepseek"] = lambda request: httpx.Response(200, text="<html>")

        with pytest.raises(ProviderError, match="Malformed"):
            await invoker.invoke(deepseek, "Bonjour", make_context(), Sector.BANKING)

    @pytest.mark.asyncio
    async def test_missing_credential(self, catalog, http_client, deepseek, fake_providers,
                                      make_context, monkeypatch):
        """No call is made without an API key"""
        monkeypatch.delenv("DEEPSEEK_API_KEY", raising=False)
        invoker = ProviderInvoker(
            PromptGenerator(catalog),
            credentials=CredentialsConfig(_env_file=None),
            http_client=http_client
        )

        with pytest.raises(ConfigurationError) as exc_info:
            await invoker.invoke(deepseek, "Bonjour", make_context(), Sector.BANKING)

        assert exc_info.value.provider_name == "deepseek"
        assert "DEEPSEEK_API_KEY" in str(exc_info.value)
        assert fake_providers.calls == []

    @pytest.mark.asyncio
    async def test_credential_from_environment(self, catalog, http_client, provider_factory,
                                               fake_providers, make_context, monkeypatch):
        monkeypatch.setenv("MISTRAL_API_KEY", "sk-mistral")
        invoker = ProviderInvoker(
            PromptGenerator(catalog),
            credentials=CredentialsConfig(_env_file=None),
            http_client=http_client
        )

        await invoker.invoke(provider_factory("mistral", 0.8), "Bonjour", make_context(), Sector.BANKING)

        assert fake_providers.calls[0].headers["Authorization"] == "Bearer sk-mistral"


class TestInvokerCleanup:
    """Test HTTP client ownership on cleanup"""

    @pytest.mark.asyncio
    async def test_injected_client_left_open(self, catalog, credentials, http_client, providers,
                                             fake_providers, make_context):
        invoker = ProviderInvoker(
            PromptGenerator(catalog), credentials=credentials, http_client=http_client
        )

        await invoker.cleanup()

        assert not http_client.is_closed
        await invoker.invoke(providers[0], "Bonjour", make_context(), Sector.BANKING)
        assert len(fake_providers.calls) == 1
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_own_client_closed(self, catalog):
        invoker = ProviderInvoker(PromptGenerator(catalog))

        await invoker.cleanup()

        assert invoker.client.is_closed
