"""Next-step planner.

Wraps a language model behind a two-shape contract: each call returns either
a tool call or a final answer. Anything else the model produces is an error.
"""

import json
import logging
from abc import ABC, abstractmethod

from pydantic import ValidationError

from storeagent.exceptions import InvalidPlanError, PlanGeneratorError, ProviderError
from storeagent.models.assistant import (
    CallToolPlan,
    FinalAnswerPlan,
    HistoryEntry,
    ToolDescriptor,
    plan_adapter,
)
from storeagent.models.chart import ChartType
from storeagent.planning.prompts import build_system_message, build_user_message
from storeagent.providers.base import LLMProvider, Message
from storeagent.validation.grounding import strip_json_fences

logger = logging.getLogger(__name__)


class PlanGenerator(ABC):
    """Decides the next step of a turn."""

    @abstractmethod
    async def next_step(
        self,
        prompt: str,
        tools: list[ToolDescriptor],
        history: list[HistoryEntry],
        *,
        wants_chart: bool = False,
        chart_type: ChartType = "bar",
    ) -> FinalAnswerPlan | CallToolPlan:
        """Return the next plan.

        Args:
            prompt: The user's original goal.
            tools: Tool catalog for the turn.
            history: Tool steps taken so far.
            wants_chart: Whether the user asked for a chart.
            chart_type: Requested chart type.

        Raises:
            PlanGeneratorError: If the model call fails or its output is not JSON.
            InvalidPlanError: If the output is JSON but neither plan shape.
        """
        ...


class LLMPlanGenerator(PlanGenerator):
    """Plan generator backed by an LLM provider."""

    def __init__(self, provider: LLMProvider, category: str | None = None) -> None:
        """Initialize the planner.

        Args:
            provider: LLM provider used for every planning call.
            category: Assistant specialisation selecting the role prompt.
        """
        self._provider = provider
        self._category = category

    @property
    def model(self) -> str:
        """Model identifier of the underlying provider."""
        return self._provider.model

    def build_messages(
        self,
        prompt: str,
        tools: list[ToolDescriptor],
        history: list[HistoryEntry],
        *,
        wants_chart: bool,
        chart_type: ChartType,
    ) -> list[Message]:
        """Build the planner conversation for one step."""
        system = build_system_message(
            tools, wants_chart=wants_chart, chart_type=chart_type, category=self._category
        )
        return [
            Message(role="system", content=system),
            Message(role="user", content=build_user_message(prompt, history)),
        ]

    async def next_step(
        self,
        prompt: str,
        tools: list[ToolDescriptor],
        history: list[HistoryEntry],
        *,
        wants_chart: bool = False,
        chart_type: ChartType = "bar",
    ) -> FinalAnswerPlan | CallToolPlan:
        """Ask the model for the next plan."""
        messages = self.build_messages(
            prompt, tools, history, wants_chart=wants_chart, chart_type=chart_type
        )
        try:
            response = await self._provider.generate(messages, json_output=True)
        except ProviderError as e:
            msg = f"Planner model call failed: {e}"
            raise PlanGeneratorError(msg) from e

        return parse_plan(response.content)


def parse_plan(text: str) -> FinalAnswerPlan | CallToolPlan:
    """Parse model output into a plan.

    Args:
        text: Raw model output, optionally wrapped in a JSON code fence.

    Returns:
        The parsed plan.

    Raises:
        PlanGeneratorError: If the text is empty or not a JSON value.
        InvalidPlanError: If the JSON is neither a tool call nor a final answer.
    """
    if not text or not text.strip():
        msg = "LLM returned empty response"
        raise PlanGeneratorError(msg)

    try:
        raw = json.loads(strip_json_fences(text).strip())
    except ValueError as e:
        msg = f"Failed to parse LLM JSON response for the next action: {e}"
        raise PlanGeneratorError(msg) from e

    try:
        plan = plan_adapter.validate_python(raw)
    except ValidationError as e:
        logger.debug("Rejected plan: %s", raw)
        msg = f"AI returned an invalid plan: {e.errors(include_url=False)}"
        raise InvalidPlanError(msg) from e
    return plan
