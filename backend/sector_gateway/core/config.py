"""Central configuration management for the Sector Gateway"""

import os
from typing import Dict, Any, Optional, List
from pathlib import Path
import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache


DEFAULT_SECTOR_CATALOG = str(Path(__file__).parent.parent / "data" / "sectors.yaml")


class StorageConfig(BaseSettings):
    """Backend holding the provider registry and the telemetry sink"""
    model_config = SettingsConfigDict(env_prefix="STORAGE_", extra="ignore")

    type: str = Field(default="memory", description="memory, filesystem or redis")
    redis_url: str = Field(default="redis://localhost:6379")
    filesystem_path: str = Field(default="./gateway_store")
    redis_key_prefix: str = Field(default="sector_gateway")


class CredentialsConfig(BaseSettings):
    """Per-provider API keys

    Each provider resolves its key from ``<NAME>_API_KEY``. The known
    providers are declared as fields so they can also be set from
    ``.env`` or the YAML overlay; any other provider falls back to a
    plain environment lookup.
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    deepseek_api_key: Optional[str] = None
    qwen_api_key: Optional[str] = None
    perplexity_api_key: Optional[str] = None
    mistral_api_key: Optional[str] = None

    @staticmethod
    def env_name(provider_name: str) -> str:
        normalized = "".join(c if c.isalnum() else "_" for c in provider_name)
        return f"{normalized.upper()}_API_KEY"

    def get(self, provider_name: str) -> Optional[str]:
        """Return the API key for *provider_name* or ``None`` when unset"""
        env_name = self.env_name(provider_name)
        value = getattr(self, env_name.lower(), None)
        if not value:
            value = os.getenv(env_name)
        return value or None


class GatewayConfig(BaseSettings):
    """Routing gateway behaviour"""
    model_config = SettingsConfigDict(env_prefix="GATEWAY_", extra="ignore")

    default_strategy: str = Field(default="balanced")
    default_sector: str = Field(default="insurance")
    sector_catalog_path: str = Field(default=DEFAULT_SECTOR_CATALOG)

    # Sampling parameters sent with every chat completion
    temperature: float = Field(default=0.7)
    max_tokens: int = Field(default=1000)

    # Seconds
    request_timeout: float = Field(default=30.0)
    registry_timeout: float = Field(default=5.0)
    registry_ttl: float = Field(default=30.0)

    fallback_content: str = Field(
        default=(
            "Je rencontre des difficultés techniques pour traiter votre demande. "
            "Veuillez réessayer dans quelques instants."
        )
    )

    # Written to the registry store at startup when it holds no providers
    seed_providers: bool = Field(default=True)
    providers: List[Dict[str, Any]] = Field(default_factory=lambda: [
        {
            "name": "deepseek",
            "endpoint": "https://api.deepseek.com/chat/completions",
            "model_name": "deepseek-chat",
            "cost_per_million_tokens": 0.14,
            "average_latency_ms": 300,
            "is_active": True,
            "capabilities": ["chat", "code"],
        },
        {
            "name": "qwen",
            "endpoint": "https://api.together.xyz/v1/chat/completions",
            "model_name": "Qwen/Qwen2.5-72B-Instruct",
            "cost_per_million_tokens": 0.6,
            "average_latency_ms": 250,
            "is_active": True,
            "capabilities": ["chat", "multilingual"],
        },
        {
            "name": "perplexity",
            "endpoint": "https://api.perplexity.ai/chat/completions",
            "model_name": "sonar",
            "cost_per_million_tokens": 1.0,
            "average_latency_ms": 900,
            "is_active": True,
            "capabilities": ["chat", "live_search"],
        },
        {
            "name": "anthropic",
            "endpoint": "https://api.anthropic.com/v1/chat/completions",
            "model_name": "claude-3-5-sonnet-20241022",
            "cost_per_million_tokens": 3.0,
            "average_latency_ms": 200,
            "is_active": True,
            "capabilities": ["chat", "reasoning", "code"],
        },
        {
            "name": "openai",
            "endpoint": "https://api.openai.com/v1/chat/completions",
            "model_name": "gpt-4o",
            "cost_per_million_tokens": 15.0,
            "average_latency_ms": 150,
            "is_active": True,
            "capabilities": ["chat", "reasoning", "code"],
        },
    ])


class TelemetryConfig(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    enabled: bool = Field(default=True, validation_alias="TELEMETRY_ENABLED")
    service_name: str = Field(default="sector-gateway", validation_alias="SERVICE_NAME")
    otlp_endpoint: str = Field(default="http://localhost:4317", validation_alias="OTEL_EXPORTER_OTLP_ENDPOINT")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app_name: str = Field(default="Sector Gateway")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")
    # Log level is read directly in logger.py, accepted here so the variable
    # does not trip validation when present in .env
    gateway_log_level: Optional[str] = Field(default="INFO")

    storage: StorageConfig = Field(default_factory=StorageConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    @classmethod
    def load_from_yaml(cls, yaml_path: Optional[str] = None) -> "Settings":
        """Load settings from YAML file with environment overrides"""
        if yaml_path and Path(yaml_path).exists():
            with open(yaml_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}
                return cls(**config_data)
        return cls()


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    yaml_path = os.getenv("CONFIG_PATH", "./config/settings.yaml")
    return Settings.load_from_yaml(yaml_path)
