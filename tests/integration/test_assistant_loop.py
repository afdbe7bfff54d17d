"""Integration tests for the assistant loop.

Runs AssistantAgent end-to-end with an in-memory tool gateway and a scripted
planner, checking history, metrics bookkeeping and answer validation.
"""

import asyncio
import json
from typing import Any

import pytest

from storeagent.agent import MAX_STEPS_SENTINEL, AssistantAgent
from storeagent.exceptions import (
    InvalidInputError,
    InvalidPlanError,
    PlanGeneratorError,
    StepBudgetExceededError,
    ToolInvocationError,
)
from storeagent.gateway.base import ToolGateway
from storeagent.metrics.store import MetricsStore
from storeagent.models.assistant import (
    CallToolPlan,
    FinalAnswerPlan,
    HistoryEntry,
    ToolDescriptor,
)
from storeagent.models.chart import ChartType
from storeagent.models.config import AgentSettings
from storeagent.planning.planner import PlanGenerator


def envelope(payload: Any) -> dict[str, Any]:
    """Wrap a payload the way an MCP server returns it."""
    return {"content": [{"type": "text", "text": json.dumps(payload)}], "isError": False}


class FakeGateway(ToolGateway):
    """Gateway serving canned results; a result that is an exception is raised."""

    def __init__(self, tools: dict[str, Any]) -> None:
        self.tools = tools
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def list_tools(self) -> list[ToolDescriptor]:
        return [
            ToolDescriptor(
                name=name,
                input_schema={"type": "object", "properties": {"limit": {"type": "number"}}},
            )
            for name in self.tools
        ]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        self.calls.append((name, arguments))
        result = self.tools[name]
        if isinstance(result, Exception):
            raise result
        return result


class ScriptedPlanner(PlanGenerator):
    """Planner replaying a fixed list of plans (or exceptions)."""

    def __init__(self, script: list[Any]) -> None:
        self.script = list(script)
        self.seen_history: list[list[HistoryEntry]] = []

    async def next_step(
        self,
        prompt: str,
        tools: list[ToolDescriptor],
        history: list[HistoryEntry],
        *,
        wants_chart: bool = False,
        chart_type: ChartType = "bar",
    ) -> FinalAnswerPlan | CallToolPlan:
        self.seen_history.append(list(history))
        step = self.script.pop(0) if self.script else self.script_default()
        if isinstance(step, Exception):
            raise step
        return step

    @staticmethod
    def script_default() -> CallToolPlan:
        return CallToolPlan(action="call_tool", tool_name="count_orders", tool_args={})


def call(tool: str, **args: Any) -> CallToolPlan:
    return CallToolPlan(action="call_tool", tool_name=tool, tool_args=args)


def answer(text: str) -> FinalAnswerPlan:
    return FinalAnswerPlan(action="final_answer", answer=text)


@pytest.fixture
def store() -> MetricsStore:
    """Fresh metrics store."""
    return MetricsStore()


@pytest.fixture
def gateway() -> FakeGateway:
    """Gateway with an order counter and a failing tool."""
    return FakeGateway(
        {
            "count_orders": envelope({"count": 42}),
            "broken_tool": ToolInvocationError(
                "Tool 'broken_tool' returned an error: boom",
                result={"content": [{"type": "text", "text": "boom"}], "isError": True},
            ),
        }
    )


class TestImmediateAnswer:
    """Turns that answer without calling tools."""

    @pytest.mark.asyncio
    async def test_single_step(self, gateway: FakeGateway, store: MetricsStore) -> None:
        planner = ScriptedPlanner([answer("Hello! Ask me about your store.")])
        agent = AssistantAgent(gateway, planner, store)

        result = await agent.ask("hi")

        assert result.answer == "Hello! Ask me about your store."
        assert result.history == []
        assert result.data is None
        assert result.chart is None
        assert len(planner.seen_history) == 1
        turn = store.get_turn(result.turn_id)
        assert turn is not None
        assert turn.assistant_message == "Hello! Ask me about your store."
        assert turn.validations == []
        assert store.get_summary().totals.total_events == 0


class TestGroundedValidation:
    """Numeric validation of the final answer."""

    @pytest.mark.asyncio
    async def test_matching_claim(self, gateway: FakeGateway, store: MetricsStore) -> None:
        planner = ScriptedPlanner(
            [call("count_orders", limit="7"), answer("There were 42 orders in the last 7 days.")]
        )
        agent = AssistantAgent(gateway, planner, store)

        result = await agent.ask("How many orders in the last 7 days?")

        # Numeric-string paging values become ints
        assert gateway.calls == [("count_orders", {"limit": 7})]
        assert result.data == {"count": 42}
        assert len(result.history) == 1
        assert planner.seen_history[1][0].tool_name == "count_orders"

        turn = store.get_turn(result.turn_id)
        assert turn is not None
        assert turn.tools_used == ["count_orders"]
        assert turn.grounded_numbers == {"count": 42}
        assert turn.extracted_numbers == {"count": 42}
        check = turn.validations[0]
        assert check.ok
        assert check.delta is not None
        assert (check.delta.ai, check.delta.tool, check.delta.diff) == (42, 42, 0)

        summary = store.get_summary()
        assert summary.by_tool["count_orders"].total == 1
        assert summary.assistant.validation.ok == 1

    @pytest.mark.asyncio
    async def test_divergent_claim(self, gateway: FakeGateway, store: MetricsStore) -> None:
        planner = ScriptedPlanner([call("count_orders"), answer("You received 40 orders this week.")])
        agent = AssistantAgent(gateway, planner, store)

        result = await agent.ask("How many orders this week?")

        turn = store.get_turn(result.turn_id)
        assert turn is not None
        check = turn.validations[0]
        assert not check.ok
        assert check.delta is not None
        assert check.delta.diff == 2
        assert store.get_summary().assistant.validation.fail == 1

    @pytest.mark.asyncio
    async def test_unclaimed_label_passes(self, gateway: FakeGateway, store: MetricsStore) -> None:
        planner = ScriptedPlanner([call("count_orders"), answer("Orders look healthy.")])
        agent = AssistantAgent(gateway, planner, store)

        result = await agent.ask("How are orders?")

        turn = store.get_turn(result.turn_id)
        assert turn is not None
        assert turn.validations[0].ok
        assert turn.validations[0].delta is None


class TestToolFailures:
    """Tool errors are fed back to the planner."""

    @pytest.mark.asyncio
    async def test_failure_recorded_and_loop_continues(
        self, gateway: FakeGateway, store: MetricsStore
    ) -> None:
        planner = ScriptedPlanner(
            [call("broken_tool"), call("count_orders"), answer("There are 42 orders.")]
        )
        agent = AssistantAgent(gateway, planner, store)

        result = await agent.ask("How many orders?")

        assert result.answer == "There are 42 orders."
        first = result.history[0].tool_result
        assert first["isError"] is True
        assert "boom" in first["error"]
        assert first["result"]["isError"] is True
        # The planner saw the failure before choosing the next step
        assert planner.seen_history[1][0].tool_result["isError"] is True

        events = store.get_events()
        assert [e.success for e in events] == [False, True]
        assert "boom" in (events[0].error_message or "")
        assert result.data == {"count": 42}


    @pytest.mark.asyncio
    async def test_unexpected_exception_keeps_loop(self, store: MetricsStore) -> None:
        """Errors that are not gateway errors are fed back the same way."""
        gateway = FakeGateway(
            {
                "flaky": TimeoutError("read timed out"),
                "count_orders": envelope({"count": 42}),
            }
        )
        planner = ScriptedPlanner(
            [call("flaky"), call("count_orders"), answer("There are 42 orders.")]
        )
        agent = AssistantAgent(gateway, planner, store)

        result = await agent.ask("How many orders?")

        assert result.answer == "There are 42 orders."
        first = result.history[0]
        assert first.tool_name == "flaky"
        assert first.tool_result == {"isError": True, "error": "read timed out", "result": None}
        assert [e.success for e in store.get_events()] == [False, True]
        turn = store.get_turn(result.turn_id)
        assert turn is not None
        assert turn.tools_used == ["flaky", "count_orders"]
        assert turn.assistant_message == "There are 42 orders."


class YieldingGateway(FakeGateway):
    """Gateway that hands control back to the event loop on every call."""

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        await asyncio.sleep(0)
        return await super().call_tool(name, arguments)


class TestConcurrentTurns:
    """Several turns sharing one metrics store."""

    @pytest.mark.asyncio
    async def test_turns_keep_their_own_bookkeeping(self, store: MetricsStore) -> None:
        gateway = YieldingGateway(
            {
                "count_orders": envelope({"count": 42}),
                "product_stock": envelope({"available_quantity": 5}),
                "count_customers": envelope({"total": 9}),
            }
        )
        scripts = {
            "orders": [call("count_orders"), answer("There were 42 orders.")],
            "stock": [
                call("product_stock"),
                call("product_stock"),
                answer("The available quantity is 5."),
            ],
            "customers": [call("count_customers"), answer("Total: 9 customers.")],
        }
        agents = {
            name: AssistantAgent(gateway, ScriptedPlanner(script), store)
            for name, script in scripts.items()
        }

        results = await asyncio.gather(*(agent.ask(name) for name, agent in agents.items()))

        expected = {
            "orders": (["count_orders"], {"count": 42}),
            "stock": (["product_stock", "product_stock"], {"available_quantity": 5}),
            "customers": (["count_customers"], {"total": 9}),
        }
        assert len({r.turn_id for r in results}) == 3
        for name, result in zip(agents, results, strict=True):
            turn = store.get_turn(result.turn_id)
            assert turn is not None
            assert turn.user_message == name
            assert (turn.tools_used, turn.grounded_numbers) == expected[name]
            assert all(check.ok for check in turn.validations)

        summary = store.get_summary()
        assert summary.totals.total_events == 4
        assert summary.by_tool["product_stock"].total == 2
        assert summary.assistant.validation.fail == 0


class TestTermination:
    """Budget exhaustion and planner failures."""

    @pytest.mark.asyncio
    async def test_step_budget(self, gateway: FakeGateway, store: MetricsStore) -> None:
        planner = ScriptedPlanner([])
        agent = AssistantAgent(gateway, planner, store, AgentSettings(max_steps=3))

        with pytest.raises(StepBudgetExceededError):
            await agent.ask("Loop forever")

        assert len(planner.seen_history) == 3
        assert len(gateway.calls) == 3
        turn = store.get_last_turn()
        assert turn is not None
        assert turn.assistant_message == MAX_STEPS_SENTINEL

    @pytest.mark.asyncio
    async def test_invalid_plan_seals_turn(self, gateway: FakeGateway, store: MetricsStore) -> None:
        planner = ScriptedPlanner([InvalidPlanError("Plan has no recognised action")])
        agent = AssistantAgent(gateway, planner, store)

        with pytest.raises(InvalidPlanError):
            await agent.ask("Anything")

        turn = store.get_last_turn()
        assert turn is not None
        assert turn.assistant_message is not None
        assert turn.assistant_message.startswith("[error:")

    @pytest.mark.asyncio
    async def test_planner_error_propagates(self, gateway: FakeGateway, store: MetricsStore) -> None:
        planner = ScriptedPlanner([call("count_orders"), PlanGeneratorError("model offline")])
        agent = AssistantAgent(gateway, planner, store)

        with pytest.raises(PlanGeneratorError, match="model offline"):
            await agent.ask("How many orders?")

        turn = store.get_last_turn()
        assert turn is not None
        assert turn.tools_used == ["count_orders"]
        assert turn.assistant_message == "[error: model offline]"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("prompt", ["", "   ", None])
    async def test_blank_prompt(
        self, gateway: FakeGateway, store: MetricsStore, prompt: str | None
    ) -> None:
        planner = ScriptedPlanner([answer("unused")])
        agent = AssistantAgent(gateway, planner, store)

        with pytest.raises(InvalidInputError, match="Missing prompt"):
            await agent.ask(prompt)

        assert store.get_last_turn() is None
        assert planner.seen_history == []


class TestCharts:
    """Chart construction at the end of a turn."""

    @pytest.mark.asyncio
    async def test_chart_from_answer(self, gateway: FakeGateway, store: MetricsStore) -> None:
        planner = ScriptedPlanner([answer("Orders per month:\n- Jan: 12\n- Feb: 7")])
        agent = AssistantAgent(gateway, planner, store)

        result = await agent.ask("Orders per month", wants_chart=True, chart_type="line")

        assert result.chart is not None
        assert result.chart.chart == "line"
        assert result.chart.data == [{"label": "Jan", "value": 12}, {"label": "Feb", "value": 7}]

    @pytest.mark.asyncio
    async def test_chart_falls_back_to_tool(self, gateway: FakeGateway, store: MetricsStore) -> None:
        planner = ScriptedPlanner([call("count_orders"), answer("There were 42 orders.")])
        agent = AssistantAgent(gateway, planner, store)

        result = await agent.ask("Chart my orders", wants_chart=True, chart_type="pie")

        assert result.chart is not None
        assert result.chart.chart == "bar"
        assert result.chart.data == [{"label": "Total", "count": 42}]

    @pytest.mark.asyncio
    async def test_no_chart_unless_requested(
        self, gateway: FakeGateway, store: MetricsStore
    ) -> None:
        planner = ScriptedPlanner([answer("Orders per month:\n- Jan: 12\n- Feb: 7")])
        agent = AssistantAgent(gateway, planner, store)

        result = await agent.ask("Orders per month")

        assert result.chart is None
