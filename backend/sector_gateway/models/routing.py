"""Routing models for the Sector Gateway"""

from typing import Optional, List, Tuple
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator
import uuid


class Sector(str, Enum):
    INSURANCE = "insurance"
    BANKING = "banking"
    ENERGY = "energy"
    REAL_ESTATE = "real_estate"
    TELECOM = "telecom"
    TRANSPORT = "transport"


class TaskType(str, Enum):
    CHAT = "chat"
    CODE = "code"
    SEARCH = "search"
    RECOMMENDATION = "recommendation"
    ANALYSIS = "analysis"


class Complexity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Strategy(str, Enum):
    """Named selection policy chosen by the caller"""
    COST_OPTIMIZED = "cost_optimized"
    PERFORMANCE = "performance"
    BALANCED = "balanced"
    SECTOR_OPTIMIZED = "sector_optimized"


def estimate_cost(total_tokens: int, cost_per_million_tokens: float) -> float:
    """Cost of a call in the provider's currency unit, never negative"""
    return max(0.0, (total_tokens / 1_000_000) * cost_per_million_tokens)


class Provider(BaseModel):
    """A callable backend language-model endpoint; ``name`` is the identity key"""
    model_config = ConfigDict(frozen=True)

    name: str
    endpoint: str
    model_name: str
    cost_per_million_tokens: float = Field(ge=0)
    average_latency_ms: int = Field(default=0, ge=0)
    is_active: bool = True
    capabilities: Tuple[str, ...] = Field(default_factory=tuple)

    def has_capability(self, capability: str) -> bool:
        return capability in self.capabilities


class Locale(BaseModel):
    model_config = ConfigDict(frozen=True)

    country_code: Optional[str] = None
    region: Optional[str] = None
    language: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        """Both country code and region were supplied"""
        return bool(self.country_code and self.region)


def _require_text(cls, value: str, info) -> str:
    if not value or not value.strip():
        raise ValueError(f"{info.field_name} must not be blank")
    return value


class RequestContext(BaseModel):
    """Caller input for one pass through the routing pipeline"""
    model_config = ConfigDict(frozen=True)

    message: str
    session_id: str
    user_id: Optional[str] = None
    sector_hint: Optional[Sector] = None
    current_sector: Optional[str] = Field(
        default=None,
        description="Sector name from the caller's page context, resolved through the alias table"
    )
    strategy: Optional[Strategy] = None
    locale: Locale = Field(default_factory=Locale)
    override_system_prompt: Optional[str] = None
    multi_sector_enabled: bool = False

    _not_blank = field_validator("message", "session_id")(_require_text)


class Classification(BaseModel):
    model_config = ConfigDict(frozen=True)

    sector: Sector
    task_type: TaskType
    complexity: Complexity
    requires_realtime: bool
    detected_language: str


class InvocationResult(BaseModel):
    """Outcome of one successful provider call"""
    model_config = ConfigDict(frozen=True)

    content: str
    provider_name: str
    model_name: str
    sector: Sector
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cost_estimate: float = 0.0
    processing_time_ms: float = 0.0


class LogRecord(BaseModel):
    """Append-only telemetry row, one per top-level request"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: Optional[str] = None
    session_id: str
    provider_name: str
    model_name: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cost_estimate: float = 0.0
    latency_ms: float = 0.0
    success: bool
    error_message: Optional[str] = None
    task_type: Optional[TaskType] = None
    strategy: Optional[Strategy] = None
    country_context: Optional[str] = None
    region_context: Optional[str] = None

    # Not part of the sink's minimal row, kept for analysis
    sector: Optional[Sector] = None
    provider_attempts: List[str] = Field(default_factory=list)
    fallback_used: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RoutingAnalysis(BaseModel):
    detected_sector: Sector
    task_type: TaskType
    complexity: Complexity
    requires_realtime: bool
    detected_language: str
    strategy_used: Strategy
    selection_rule: Optional[str] = None
    context_enhanced: bool = True
    provider_attempts: List[str] = Field(default_factory=list)
    fallback_used: bool = False


class LocaleEcho(BaseModel):
    country_code: str
    region: Optional[str] = None
    language: Optional[str] = None
    sector: Sector


class GatewayResponse(BaseModel):
    """Successful chat response returned to callers"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    content: str
    provider: str
    model: str
    sector: Sector
    tokens_used: int
    cost_estimate: float
    processing_time: float
    analysis: RoutingAnalysis
    multi_sector_context: Optional[LocaleEcho] = None


class ChatContext(BaseModel):
    """Optional ``context`` block of an inbound chat request"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    country_code: Optional[str] = Field(default=None, alias="countryCode")
    region: Optional[str] = None
    language: Optional[str] = None
    current_sector: Optional[str] = Field(default=None, alias="currentSector")
    system_prompt: Optional[str] = Field(default=None, alias="systemPrompt")


class ChatRequest(BaseModel):
    """Inbound ``POST /api/chat`` body"""
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1)
    session_id: str = Field(alias="sessionId", min_length=1)
    context: Optional[ChatContext] = None
    strategy: Optional[Strategy] = None
    sector: Optional[Sector] = None
    multi_sector: bool = False

    _not_blank = field_validator("message", "session_id")(_require_text)

    def to_context(self, user_id: Optional[str] = None) -> RequestContext:
        """Build the immutable pipeline context for this request"""
        context = self.context or ChatContext()
        return RequestContext(
            message=self.message,
            session_id=self.session_id,
            user_id=user_id,
            sector_hint=self.sector,
            current_sector=context.current_sector,
            strategy=self.strategy,
            locale=Locale(
                country_code=context.country_code,
                region=context.region,
                language=context.language,
            ),
            override_system_prompt=context.system_prompt,
            multi_sector_enabled=self.multi_sector,
        )


class ErrorResponse(BaseModel):
    """Body returned when routing fails for good"""
    error: str
    fallback_content: str
