"""Assistant agent loop.

Drives one prompt through a bounded sequence of plan/tool steps. Each step
asks the planner for the next action; tool calls are executed through the
gateway and logged to the metrics store, and the final answer is checked
against the numbers the tools reported during the turn.
"""

import logging

from storeagent.charts import build_chart_from_answer, build_chart_from_latest_tool
from storeagent.exceptions import (
    InvalidInputError,
    InvalidPlanError,
    StepBudgetExceededError,
)
from storeagent.gateway.base import ToolGateway
from storeagent.gateway.normalize import normalize_tool_args
from storeagent.metrics.store import MetricsStore
from storeagent.models.assistant import (
    AskResult,
    CallToolPlan,
    FinalAnswerPlan,
    HistoryEntry,
    ToolDescriptor,
)
from storeagent.models.chart import ChartType
from storeagent.models.config import AgentSettings
from storeagent.planning.planner import PlanGenerator
from storeagent.validation.claims import extract_claimed_numbers
from storeagent.validation.grounding import (
    collect_ground_truth_numbers,
    extract_tool_json_payload,
)

logger = logging.getLogger(__name__)

MAX_STEPS_SENTINEL = "[aborted: max steps exceeded]"


class AssistantAgent:
    """Tool-calling assistant with numeric answer validation."""

    def __init__(
        self,
        gateway: ToolGateway,
        planner: PlanGenerator,
        metrics: MetricsStore,
        settings: AgentSettings | None = None,
    ) -> None:
        """Initialize the agent.

        Args:
            gateway: Gateway to the tool server.
            planner: Plan generator deciding each step.
            metrics: Store receiving tool events and turn bookkeeping.
            settings: Loop settings (step budget, category).
        """
        self._gateway = gateway
        self._planner = planner
        self._metrics = metrics
        self._settings = settings or AgentSettings()

    @property
    def settings(self) -> AgentSettings:
        """Loop settings."""
        return self._settings

    async def ask(
        self,
        prompt: str | None,
        wants_chart: bool = False,
        chart_type: str = "bar",
        chart_title: str | None = None,
    ) -> AskResult:
        """Answer a prompt, calling tools as the planner decides.

        Args:
            prompt: The user's question.
            wants_chart: Whether a chart should accompany the answer.
            chart_type: ``"line"`` or ``"bar"``; anything else means bar.
            chart_title: Optional chart title.

        Returns:
            AskResult with the answer, optional chart, latest tool payload
            and the tool history of the turn.

        Raises:
            InvalidInputError: If the prompt is blank.
            GatewayError: If the tool catalog cannot be fetched.
            PlanGeneratorError: If the planner fails.
            InvalidPlanError: If the planner returns an unusable plan.
            StepBudgetExceededError: If no final answer arrives within budget.
        """
        if prompt is None or not prompt.strip():
            msg = "Missing prompt"
            raise InvalidInputError(msg)

        resolved_type: ChartType = "line" if chart_type == "line" else "bar"
        tools = await self._gateway.list_tools()
        catalog = {tool.name: tool for tool in tools}

        turn_id = self._metrics.start_assistant_turn(prompt)
        history: list[HistoryEntry] = []

        try:
            for step in range(1, self._settings.max_steps + 1):
                logger.info("Step %d/%d", step, self._settings.max_steps)
                plan = await self._planner.next_step(
                    prompt,
                    tools,
                    history,
                    wants_chart=wants_chart,
                    chart_type=resolved_type,
                )

                if isinstance(plan, FinalAnswerPlan):
                    return self._finish(
                        turn_id, plan.answer, history, wants_chart, resolved_type, chart_title
                    )
                if isinstance(plan, CallToolPlan):
                    history.append(await self._call_tool(turn_id, plan, catalog.get(plan.tool_name)))
                    continue

                msg = f"Invalid plan type: {type(plan).__name__}"
                raise InvalidPlanError(msg)
        except Exception as e:
            self._metrics.end_assistant_turn(turn_id, f"[error: {e}]")
            raise

        logger.warning("No final answer within %d steps", self._settings.max_steps)
        self._metrics.end_assistant_turn(turn_id, MAX_STEPS_SENTINEL)
        msg = f"No final answer after {self._settings.max_steps} steps"
        raise StepBudgetExceededError(msg)

    async def _call_tool(
        self, turn_id: str, plan: CallToolPlan, tool: ToolDescriptor | None
    ) -> HistoryEntry:
        """Execute one tool step; failures become error records in history."""
        self._metrics.note_tool_used(turn_id, plan.tool_name)
        if tool is None:
            logger.warning("Planner chose unknown tool '%s'", plan.tool_name)

        args = normalize_tool_args(plan.tool_args, tool)
        logger.debug("Tool %s args=%s normalized=%s", plan.tool_name, plan.tool_args, args)

        try:
            result = await self._metrics.with_tool_logging(
                plan.tool_name,
                args,
                lambda: self._gateway.call_tool(plan.tool_name, args),
            )
        except Exception as e:
            logger.warning("Tool %s failed: %s", plan.tool_name, e)
            return HistoryEntry(
                tool_name=plan.tool_name,
                tool_args=args,
                tool_result={"isError": True, "error": str(e), "result": getattr(e, "result", None)},
            )

        logger.debug("Tool %s result=%.500s", plan.tool_name, result)
        grounded = collect_ground_truth_numbers(extract_tool_json_payload(result))
        if grounded:
            self._metrics.provide_ground_truth(turn_id, grounded)
        return HistoryEntry(tool_name=plan.tool_name, tool_args=args, tool_result=result)

    def _finish(
        self,
        turn_id: str,
        answer: str,
        history: list[HistoryEntry],
        wants_chart: bool,
        chart_type: ChartType,
        chart_title: str | None,
    ) -> AskResult:
        """Seal the turn, validate the answer and assemble the result."""
        self._metrics.end_assistant_turn(turn_id, answer)

        turn = self._metrics.get_turn(turn_id)
        grounded = turn.grounded_numbers if turn is not None else {}
        claims = extract_claimed_numbers(answer, grounded)
        for label in grounded:
            self._metrics.auto_validate_from_answer(turn_id, label, claims.get(label), tolerance=0.0)

        data = extract_tool_json_payload(history[-1].tool_result) if history else None

        chart = None
        if wants_chart:
            chart = build_chart_from_answer(answer, chart_type, chart_title)
            if chart is None:
                chart = build_chart_from_latest_tool(history, chart_type, chart_title)

        logger.info("Final answer after %d tool call(s)", len(history))
        return AskResult(answer=answer, chart=chart, data=data, history=history, turn_id=turn_id)
