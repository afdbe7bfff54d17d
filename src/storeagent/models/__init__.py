"""Data models for storeagent."""

from storeagent.models.assistant import (
    AskResult,
    CallToolPlan,
    FinalAnswerPlan,
    HistoryEntry,
    Plan,
    ToolDescriptor,
    plan_adapter,
)
from storeagent.models.chart import ChartSpec, ChartType
from storeagent.models.config import AgentSettings, LLMConfig, MetricsConfig
from storeagent.models.metrics import (
    Anomaly,
    AssistantSummary,
    AssistantTurn,
    MetricsSummary,
    NumberDelta,
    Rates,
    ToolEvent,
    ToolStats,
    Totals,
    ValidationCheck,
    ValidationTotals,
)

__all__ = [
    "AgentSettings",
    "Anomaly",
    "AskResult",
    "AssistantSummary",
    "AssistantTurn",
    "CallToolPlan",
    "ChartSpec",
    "ChartType",
    "FinalAnswerPlan",
    "HistoryEntry",
    "LLMConfig",
    "MetricsConfig",
    "MetricsSummary",
    "NumberDelta",
    "Plan",
    "Rates",
    "ToolDescriptor",
    "ToolEvent",
    "ToolStats",
    "Totals",
    "ValidationCheck",
    "ValidationTotals",
    "plan_adapter",
]
