"""Tests for the chart builder."""

import json

from storeagent.charts import (
    build_chart_from_answer,
    build_chart_from_latest_tool,
    chart_from_child_objects,
    chart_from_series,
    coerce_chart_spec,
    generic_chart_from_payload,
    monthify,
    pick_xy,
)
from storeagent.models.assistant import HistoryEntry


def _entry(payload: object, name: str = "analytics") -> HistoryEntry:
    return HistoryEntry(
        tool_name=name,
        tool_args={},
        tool_result={"content": [{"type": "text", "text": json.dumps(payload)}]},
    )


class TestHelpers:
    """Tests for key picking and month rendering."""

    def test_monthify(self) -> None:
        assert monthify("month", 1) == "Jan"
        assert monthify("month", 12) == "Dec"
        assert monthify("month", 13) == 13
        assert monthify("label", 3) == 3

    def test_pick_xy_priorities(self) -> None:
        assert pick_xy({"id": "x", "month": 2, "revenue": 10, "count": 3}) == ("month", "count")

    def test_pick_xy_fallbacks(self) -> None:
        assert pick_xy({"sku": "A", "weight": 2}) == ("sku", "weight")

    def test_pick_xy_without_numbers(self) -> None:
        assert pick_xy({"sku": "A"}) == ("sku", None)


class TestPayloadHeuristics:
    """Tests for the payload chart heuristics."""

    def test_explicit_chart_spec_honored(self) -> None:
        payload = {
            "type": "chart",
            "chart": "line",
            "title": "Sales",
            "xKey": "day",
            "yKey": "sales",
            "data": [{"day": "Mon", "sales": 3}],
        }
        chart = coerce_chart_spec(payload)
        assert chart is not None
        assert chart.chart == "line"
        assert chart.x_key == "day"

    def test_explicit_chart_with_unknown_type_ignored(self) -> None:
        assert coerce_chart_spec({"type": "chart", "chart": "pie", "data": []}) is None

    def test_series_payload(self) -> None:
        payload = {"series": [{"label": 1, "count": "4"}, {"label": 2, "count": 6}]}
        chart = chart_from_series(payload, "bar", "Orders")
        assert chart is not None
        assert chart.title == "Orders"
        assert (chart.x_key, chart.y_key) == ("label", "count")
        assert chart.data == [{"label": 1, "count": 4.0}, {"label": 2, "count": 6}]

    def test_series_with_explicit_keys_and_months(self) -> None:
        payload = {
            "title": "Monthly",
            "xKey": "month",
            "yKey": "orders",
            "series": [{"month": 1, "orders": 5}, {"month": 2, "orders": 7}],
        }
        chart = chart_from_series(payload, "line")
        assert chart is not None
        assert chart.title == "Monthly"
        assert chart.data == [{"month": "Jan", "orders": 5}, {"month": "Feb", "orders": 7}]

    def test_root_count(self) -> None:
        chart = generic_chart_from_payload({"count": 42}, "bar")
        assert chart is not None
        assert chart.title == "Total"
        assert chart.data == [{"label": "Total", "count": 42}]

    def test_child_objects(self) -> None:
        payload = {"jan": {"month": 1, "count": 3}, "feb": {"month": 2, "count": 5}, "meta": 1}
        chart = chart_from_child_objects(payload, "bar")
        assert chart is not None
        assert chart.y_key == "count"
        assert chart.data == [{"label": "Jan", "count": 3}, {"label": "Feb", "count": 5}]

    def test_child_objects_need_two(self) -> None:
        assert chart_from_child_objects({"only": {"count": 1}}, "bar") is None

    def test_first_array_of_objects(self) -> None:
        payload = {"data": {"products": [{"title": "Shirt", "sold": 4}, {"title": "Cap", "sold": 2}]}}
        chart = generic_chart_from_payload(payload, "bar")
        assert chart is not None
        assert (chart.x_key, chart.y_key) == ("title", "sold")
        assert chart.data == [{"title": "Shirt", "sold": 4}, {"title": "Cap", "sold": 2}]

    def test_array_rows_are_capped(self) -> None:
        payload = [{"name": f"p{i}", "quantity": i} for i in range(40)]
        chart = generic_chart_from_payload(payload, "bar")
        assert chart is not None
        assert len(chart.data) == 24


class TestBuildChartFromLatestTool:
    """Tests for build_chart_from_latest_tool."""

    def test_empty_history(self) -> None:
        assert build_chart_from_latest_tool([], "bar") is None

    def test_latest_usable_payload_wins(self) -> None:
        history = [
            _entry({"count": 1}),
            _entry({"series": [{"label": "a", "count": 2}, {"label": "b", "count": 3}]}),
        ]
        chart = build_chart_from_latest_tool(history, "line", "T")
        assert chart is not None
        assert chart.chart == "line"
        assert chart.data == [{"label": "a", "count": 2}, {"label": "b", "count": 3}]

    def test_skips_failed_and_unusable_entries(self) -> None:
        failed = HistoryEntry(
            tool_name="broken", tool_args={}, tool_result={"isError": True, "error": "x"}
        )
        history = [_entry({"count": 9}), _entry({"message": "ok"}), failed]
        chart = build_chart_from_latest_tool(history, "bar")
        assert chart is not None
        assert chart.data == [{"label": "Total", "count": 9}]


class TestBuildChartFromAnswer:
    """Tests for answer text parsing."""

    def test_label_value_lines(self) -> None:
        answer = "Orders per month:\n- Jan: 12\n- Feb: 7\n- Mar: 15"
        chart = build_chart_from_answer(answer, "bar", "Orders")
        assert chart is not None
        assert chart.title == "Orders"
        assert chart.data == [
            {"label": "Jan", "value": 12},
            {"label": "Feb", "value": 7},
            {"label": "Mar", "value": 15},
        ]

    def test_markdown_table(self) -> None:
        answer = (
            "| Product | Units Sold |\n"
            "|---------|-----------:|\n"
            "| Shirt   | 40         |\n"
            "| Cap     | 12.5       |\n"
        )
        chart = build_chart_from_answer(answer, "line")
        assert chart is not None
        assert chart.y_key == "units_sold"
        assert chart.data == [
            {"label": "Shirt", "units_sold": 40},
            {"label": "Cap", "units_sold": 12.5},
        ]

    def test_single_point_is_not_a_chart(self) -> None:
        assert build_chart_from_answer("You had 42 orders: 42", "bar") is None

    def test_prose_is_not_a_chart(self) -> None:
        assert build_chart_from_answer("There were 42 orders in the last 7 days.", "bar") is None

    def test_empty_answer(self) -> None:
        assert build_chart_from_answer(None, "bar") is None
