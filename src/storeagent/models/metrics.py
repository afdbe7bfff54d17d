"""Metrics data models.

Defines tool events, anomalies, assistant turns and validation checks, plus
the summary document read by external dashboards. Every model serializes with
camelCase aliases (``model_dump(by_alias=True)``); the field names of that
document are a stable contract.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MetricsModel(BaseModel):
    """Base for metrics models exported with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ToolEvent(MetricsModel):
    """One instrumented tool invocation."""

    id: str
    timestamp: float  # ms epoch
    tool: str
    args: Any = None
    result: Any = None
    success: bool
    error_message: str | None = None
    duration_ms: float | None = None


class Anomaly(MetricsModel):
    """Irregular condition detected in tool traffic or tool-result data."""

    id: str
    timestamp: float  # ms epoch
    type: str  # "negative-inventory", "spike", "high-error-rate"
    message: str
    details: dict[str, Any] | None = None


class NumberDelta(MetricsModel):
    """Comparison of an AI-claimed number against its tool-grounded value."""

    model_config = ConfigDict(frozen=True)

    ai: float
    tool: float
    diff: float
    within_tolerance: bool


class ValidationCheck(MetricsModel):
    """Single numeric validation appended to a turn. Immutable."""

    model_config = ConfigDict(frozen=True)

    label: str
    ai: float | None = None
    tool: float | None = None
    tolerance: float | None = None
    delta: NumberDelta | None = None
    ok: bool


class AssistantTurn(MetricsModel):
    """One prompt-to-answer interaction."""

    id: str
    timestamp: float  # ms epoch
    user_message: str
    assistant_message: str | None = None
    tools_used: list[str] = Field(default_factory=list)
    extracted_numbers: dict[str, float] = Field(default_factory=dict)
    grounded_numbers: dict[str, float] = Field(default_factory=dict)
    validations: list[ValidationCheck] = Field(default_factory=list)

    @property
    def sealed(self) -> bool:
        """Whether the turn has reached a terminal state."""
        return self.assistant_message is not None


class ToolStats(MetricsModel):
    """Running aggregate for one tool."""

    total: int = 0
    errors: int = 0
    avg_latency: float = 0.0


class Totals(MetricsModel):
    """Event counters."""

    total_events: int
    last_hour: int


class Rates(MetricsModel):
    """Current-minute call counts against the per-minute baseline."""

    this_minute: dict[str, int] = Field(default_factory=dict)
    baseline_avg_per_minute: dict[str, float] = Field(default_factory=dict)


class ValidationTotals(MetricsModel):
    """Aggregate pass/fail counts over all validation checks."""

    total: int = 0
    ok: int = 0
    fail: int = 0


class AssistantSummary(MetricsModel):
    """Turn-level validation summary."""

    turns: list[AssistantTurn] = Field(default_factory=list)
    validation: ValidationTotals = Field(default_factory=ValidationTotals)


class MetricsSummary(MetricsModel):
    """Read-only snapshot of the metrics store."""

    totals: Totals
    by_tool: dict[str, ToolStats] = Field(default_factory=dict)
    rates: Rates = Field(default_factory=Rates)
    recent_events: list[ToolEvent] = Field(default_factory=list)
    anomalies: list[Anomaly] = Field(default_factory=list)
    assistant: AssistantSummary = Field(default_factory=AssistantSummary)

    def to_document(self) -> dict[str, Any]:
        """Return the JSON-ready document with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
