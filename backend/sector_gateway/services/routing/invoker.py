"""OpenAI-compatible chat completion adapter"""

import time
from typing import Any, Dict, Optional

import httpx

from .prompt_generator import PromptGenerator
from ..base_service import BaseService
from ...core.config import CredentialsConfig
from ...core.exceptions import ConfigurationError, ProviderError
from ...models.routing import (
    InvocationResult,
    Provider,
    RequestContext,
    Sector,
    estimate_cost,
)

# Provider bodies are logged, never returned to callers
MAX_LOGGED_BODY = 500


def _token_count(value: Any) -> int:
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


class ProviderInvoker(BaseService):
    """Call one provider once and measure the result

    No retries and no fallback: a failed call raises and the caller
    decides what happens next.
    """

    def __init__(
        self,
        prompt_generator: PromptGenerator,
        credentials: Optional[CredentialsConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: Optional[float] = None
    ):
        super().__init__("ProviderInvoker")
        self.prompt_generator = prompt_generator
        self.credentials = credentials or self.settings.credentials
        self.timeout_seconds = timeout_seconds or self.settings.gateway.request_timeout
        self.temperature = self.settings.gateway.temperature
        self.max_tokens = self.settings.gateway.max_tokens
        # A client passed in belongs to the caller and is never closed here
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(timeout=self.timeout_seconds)

    def build_payload(self, provider: Provider, system_prompt: str, message: str) -> Dict[str, Any]:
        return {
            "model": provider.model_name,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": message},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    async def invoke(
        self,
        provider: Provider,
        message: str,
        ctx: RequestContext,
        sector: Sector
    ) -> InvocationResult:
        """Send *message* to *provider* and parse the completion

        Raises:
            ConfigurationError: The provider has no credential; no call is made
            ProviderError: Non-2xx status, timeout, transport failure or
                malformed payload
        """
        with self.traced_operation(
            "provider.invoke",
            provider=provider.name,
            model=provider.model_name,
            sector=sector.value
        ) as span:
            api_key = self.credentials.get(provider.name)
            if not api_key:
                raise ConfigurationError(
                    f"API key not configured for {provider.name} "
                    f"({CredentialsConfig.env_name(provider.name)})",
                    provider_name=provider.name
                )

            system_prompt = self.prompt_generator.generate(sector, ctx)
            payload = self.build_payload(provider, system_prompt, message)
            headers = {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }

            start_time = time.monotonic()
            try:
                response = await self.client.post(
                    provider.endpoint,
                    json=payload,
                    headers=headers,
                    timeout=self.timeout_seconds
                )
            except httpx.TimeoutException as e:
                raise ProviderError(
                    f"{provider.name} timed out after {self.timeout_seconds}s",
                    provider_name=provider.name
                ) from e
            except httpx.HTTPError as e:
                raise ProviderError(
                    f"{provider.name} transport error: {type(e).__name__}",
                    provider_name=provider.name
                ) from e
            processing_time_ms = (time.monotonic() - start_time) * 1000

            span.set_attribute("http.status_code", response.status_code)
            if not response.is_success:
                self.logger.warning(
                    f"{provider.name} returned {response.status_code}: "
                    f"{response.text[:MAX_LOGGED_BODY]}",
                    extra={"provider": provider.name, "session_id": ctx.session_id}
                )
                raise ProviderError(
                    f"{provider.name} API error: {response.status_code}",
                    provider_name=provider.name,
                    status_code=response.status_code
                )

            try:
                data = response.json()
                content = data["choices"][0]["message"]["content"]
                if not isinstance(content, str):
                    raise TypeError("message content is not a string")
            except (KeyError, IndexError, TypeError, ValueError) as e:
                self.logger.warning(
                    f"Malformed payload from {provider.name}: {response.text[:MAX_LOGGED_BODY]}",
                    extra={"provider": provider.name, "session_id": ctx.session_id}
                )
                raise ProviderError(
                    f"Malformed response from {provider.name}: {str(e)}",
                    provider_name=provider.name,
                    status_code=response.status_code
                ) from e

            usage = data.get("usage") or {}
            if not isinstance(usage, dict):
                usage = {}
            model_name = data.get("model")
            if not isinstance(model_name, str) or not model_name:
                model_name = provider.model_name
            prompt_tokens = _token_count(usage.get("prompt_tokens"))
            completion_tokens = _token_count(usage.get("completion_tokens"))
            total_tokens = _token_count(usage.get("total_tokens")) or prompt_tokens + completion_tokens

            result = InvocationResult(
                content=content,
                provider_name=provider.name,
                model_name=model_name,
                sector=sector,
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=total_tokens,
                cost_estimate=estimate_cost(total_tokens, provider.cost_per_million_tokens),
                processing_time_ms=processing_time_ms,
            )
            span.set_attribute("llm.total_tokens", total_tokens)
            return result

    async def cleanup(self):
        """Close the HTTP client if this invoker created it"""
        if self._owns_client:
            await self.client.aclose()
