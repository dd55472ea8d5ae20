"""Tests for routing models"""

from datetime import timezone

import pytest
from pydantic import ValidationError

from sector_gateway.models.routing import (
    ChatRequest,
    Locale,
    LogRecord,
    Provider,
    RequestContext,
    Sector,
    Strategy,
    estimate_cost,
)


class TestEstimateCost:
    """Test the per-call cost formula"""

    def test_cost_formula(self):
        """Cost is total tokens over one million times the unit cost"""
        assert estimate_cost(2000, 0.5) == pytest.approx(0.001)
        assert estimate_cost(1_000_000, 3.0) == pytest.approx(3.0)

    def test_zero_tokens(self):
        assert estimate_cost(0, 15.0) == 0.0

    def test_never_negative(self):
        assert estimate_cost(-500, 1.0) == 0.0


class TestProvider:
    """Test provider model"""

    def test_defaults(self):
        provider = Provider(
            name="deepseek",
            endpoint="https://api.deepseek.com/chat/completions",
            model_name="deepseek-chat",
            cost_per_million_tokens=0.14
        )

        assert provider.is_active is True
        assert provider.average_latency_ms == 0
        assert provider.capabilities == ()

    def test_negative_cost_rejected(self):
        with pytest.raises(ValidationError):
            Provider(name="x", endpoint="https://x", model_name="x", cost_per_million_tokens=-1)

    def test_has_capability(self):
        provider = Provider(
            name="perplexity",
            endpoint="https://api.perplexity.ai/chat/completions",
            model_name="sonar",
            cost_per_million_tokens=1.0,
            capabilities=["chat", "live_search"]
        )

        assert provider.has_capability("live_search")
        assert not provider.has_capability("code")

    def test_frozen(self):
        provider = Provider(name="x", endpoint="https://x", model_name="x", cost_per_million_tokens=1)
        with pytest.raises(ValidationError):
            provider.name = "y"


class TestRequestContext:
    """Test request context validation"""

    def test_blank_message_rejected(self):
        with pytest.raises(ValidationError):
            RequestContext(message="   ", session_id="s1")

    def test_blank_session_rejected(self):
        with pytest.raises(ValidationError):
            RequestContext(message="Bonjour", session_id="")

    def test_locale_completeness(self):
        assert Locale(country_code="SN", region="Dakar").is_complete
        assert not Locale(country_code="SN").is_complete
        assert not Locale().is_complete


class TestChatRequest:
    """Test inbound chat request parsing"""

    def test_camel_case_context(self):
        """camelCase keys from the web client are accepted"""
        request = ChatRequest.model_validate({
            "message": "Bonjour",
            "sessionId": "abc",
            "strategy": "cost_optimized",
            "context": {
                "countryCode": "CI",
                "region": "Abidjan",
                "language": "fr",
                "currentSector": "banque",
                "systemPrompt": "Réponds en une phrase."
            }
        })

        ctx = request.to_context(user_id="user-42")

        assert ctx.session_id == "abc"
        assert ctx.user_id == "user-42"
        assert ctx.strategy == Strategy.COST_OPTIMIZED
        assert ctx.locale.country_code == "CI"
        assert ctx.locale.region == "Abidjan"
        assert ctx.current_sector == "banque"
        assert ctx.override_system_prompt == "Réponds en une phrase."

    def test_snake_case_context(self):
        request = ChatRequest.model_validate({
            "message": "Bonjour",
            "session_id": "abc",
            "sector": "energy",
            "multi_sector": True,
            "context": {"country_code": "KE", "current_sector": "energy"}
        })

        ctx = request.to_context()

        assert ctx.sector_hint == Sector.ENERGY
        assert ctx.multi_sector_enabled is True
        assert ctx.locale.country_code == "KE"
        assert ctx.user_id is None

    def test_missing_context(self):
        ctx = ChatRequest(message="Bonjour", sessionId="abc").to_context()

        assert ctx.locale == Locale()
        assert ctx.override_system_prompt is None

    def test_unknown_sector_rejected(self):
        with pytest.raises(ValidationError):
            ChatRequest.model_validate({"message": "Bonjour", "sessionId": "abc", "sector": "mining"})

    def test_empty_message_rejected(self):
        with pytest.raises(ValidationError):
            ChatRequest.model_validate({"message": "", "sessionId": "abc"})

    @pytest.mark.parametrize("field, value", [("message", "   "), ("sessionId", "\t\n")])
    def test_whitespace_only_rejected(self, field, value):
        payload = {"message": "Bonjour", "sessionId": "abc", field: value}

        with pytest.raises(ValidationError, match="must not be blank"):
            ChatRequest.model_validate(payload)


class TestLogRecord:
    def test_defaults(self):
        record = LogRecord(
            session_id="s1",
            provider_name="unknown",
            model_name="unknown",
            success=False
        )

        assert record.id
        assert record.total_tokens == 0
        assert record.cost_estimate == 0.0
        assert record.latency_ms == 0.0
        assert record.provider_attempts == []
        assert record.fallback_used is False
        assert record.created_at.tzinfo is timezone.utc

    def test_json_round_trip(self):
        """Records survive the JSON form used by the file and redis sinks"""
        record = LogRecord(
            session_id="s1",
            provider_name="deepseek",
            model_name="deepseek-chat",
            success=True,
            sector=Sector.BANKING,
            provider_attempts=["anthropic", "deepseek"],
            fallback_used=True
        )

        restored = LogRecord(**record.model_dump(mode="json"))

        assert restored == record
