"""Configuration data models.

Defines the structure for storeagent configuration: LLM provider settings,
agent loop limits and metrics store bounds.
"""

from typing import Literal

from pydantic import BaseModel, Field, SecretStr

# Hard circuit breaker against endless tool-calling dialogues
DEFAULT_MAX_STEPS = 15


class LLMConfig(BaseModel):
    """Configuration for an LLM provider."""

    provider: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    max_tokens: int = Field(default=4096, ge=1)
    api_key: SecretStr | None = None
    base_url: str | None = None
    # Context window size (mainly for Ollama, which defaults to only 2048)
    context_size: int | None = Field(default=None, ge=1024)
    # Reasoning/thinking effort level (maps to provider-specific options)
    reasoning: Literal["low", "medium", "high"] | None = None


class AgentSettings(BaseModel):
    """Configuration for the assistant agent loop."""

    max_steps: int = Field(default=DEFAULT_MAX_STEPS, ge=1)
    # Assistant specialisation used to pick the role prompt (products, orders, ...)
    category: str | None = None


class MetricsConfig(BaseModel):
    """Bounds and thresholds for the metrics and anomaly store."""

    max_events: int = Field(default=1000, ge=1)
    max_anomalies: int = Field(default=200, ge=1)
    max_turns: int = Field(default=200, ge=1)
    recent_events_limit: int = Field(default=50, ge=1)
    spike_window_minutes: int = Field(default=10, ge=1)
    spike_factor: float = Field(default=3.0, gt=0)
    spike_min_calls: int = Field(default=10, ge=1)
    error_rate_window: int = Field(default=10, ge=1)
    error_rate_threshold: float = Field(default=0.5, gt=0, le=1.0)
