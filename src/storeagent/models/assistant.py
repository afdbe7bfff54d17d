"""Assistant data models.

Defines tool descriptors, the two-shape plan union, history entries and the
result of a single ``ask`` call.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

from storeagent.models.chart import ChartSpec


class ToolDescriptor(BaseModel):
    """Tool advertised by the tool server."""

    name: str
    description: str | None = None
    input_schema: dict[str, Any] = Field(default_factory=dict)

    def parameter_kind(self, parameter: str) -> str | None:
        """Return the declared JSON schema type of a top-level parameter."""
        properties = self.input_schema.get("properties") or {}
        spec = properties.get(parameter)
        if not isinstance(spec, dict):
            return None
        kind = spec.get("type")
        # ["array", "null"] style unions
        if isinstance(kind, list):
            return "array" if "array" in kind else next((k for k in kind if k != "null"), None)
        return kind


class FinalAnswerPlan(BaseModel):
    """The model has enough information and answers the user."""

    action: Literal["final_answer"]
    answer: str


class CallToolPlan(BaseModel):
    """The model wants to call a tool before answering."""

    action: Literal["call_tool"]
    tool_name: str = Field(..., min_length=1)
    tool_args: dict[str, Any] = Field(default_factory=dict)


Plan = Annotated[FinalAnswerPlan | CallToolPlan, Field(discriminator="action")]

plan_adapter: TypeAdapter[FinalAnswerPlan | CallToolPlan] = TypeAdapter(Plan)


class HistoryEntry(BaseModel):
    """One tool step taken during a turn."""

    tool_name: str
    tool_args: dict[str, Any]
    tool_result: Any


class AskResult(BaseModel):
    """Outcome of one prompt processed end-to-end."""

    answer: str | None = None
    chart: ChartSpec | None = None
    data: Any = None
    history: list[HistoryEntry] = Field(default_factory=list)
    turn_id: str | None = None
