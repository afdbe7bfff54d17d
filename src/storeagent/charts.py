"""Chart builder.

Turns either the final answer text or the most recent usable tool payload
into a bar/line chart spec. Payload heuristics are tried in order: an
explicit chart spec, a neutral ``series`` payload, a root ``count``, a map of
child objects sharing a numeric field, then the first array of objects.
"""

import logging
import math
import re
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from storeagent.models.assistant import HistoryEntry
from storeagent.models.chart import ChartSpec, ChartType
from storeagent.validation.claims import NUMBER, parse_number
from storeagent.validation.grounding import extract_tool_json_payload

logger = logging.getLogger(__name__)

MONTHS_SHORT = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

X_PRIORITIES = ("month", "label", "date", "day", "bucket", "name", "email", "id", "year")
Y_PRIORITIES = (
    "count",
    "total",
    "amount",
    "revenue",
    "value",
    "quantity",
    "orders",
    "customers",
    "items",
    "sum",
    "avg",
    "median",
    "min",
    "max",
)

MAX_SERIES_ROWS = 100
MAX_GENERIC_ROWS = 24
MIN_CHILD_OBJECTS = 2
MAX_CHILD_OBJECTS = 24
MAX_SEARCH_DEPTH = 4
MIN_ANSWER_POINTS = 2

DEFAULT_TITLE = "Results"

# "- Jan: 12", "* Widgets = 3.5", "1. March - 40"
_ANSWER_LINE = re.compile(
    rf"^\s*(?:[-*•]|\d+[.)])?\s*\**(?P<label>[^:=|\n]*?[^\s:=|*])\**\s*(?::|=|\s-\s)\s*\$?(?P<value>{NUMBER})\b"
)
_TABLE_SEPARATOR = re.compile(r"^\s*\|?\s*:?-{2,}:?\s*(\|\s*:?-{2,}:?\s*)*\|?\s*$")


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool) and math.isfinite(value)


def _is_scalar(value: Any) -> bool:
    return isinstance(value, str) or _is_number(value)


def _to_number(value: Any) -> int | float:
    if _is_number(value):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    return number if math.isfinite(number) else 0


def _to_label(value: Any) -> str | int | float:
    if _is_scalar(value):
        return value
    return "" if value is None else str(value)


def monthify(key: str, value: Any) -> Any:
    """Render month numbers 1-12 under a ``month`` key as short month names."""
    if key == "month" and _is_number(value) and 1 <= value <= 12 and value == int(value):
        return MONTHS_SHORT[int(value) - 1]
    return value


def find_array_of_objects(node: Any, depth: int = 0) -> list[Mapping[str, Any]] | None:
    """Depth-first search for the first non-empty list of objects."""
    if depth > MAX_SEARCH_DEPTH:
        return None
    if isinstance(node, list) and node and isinstance(node[0], Mapping):
        return node
    if not isinstance(node, Mapping):
        return None
    for value in node.values():
        found = find_array_of_objects(value, depth + 1)
        if found is not None:
            return found
    return None


def pick_xy(row: Mapping[str, Any]) -> tuple[str | None, str | None]:
    """Choose the category and value keys of a row."""
    x_key = next((k for k in X_PRIORITIES if k in row and _is_scalar(row[k])), None)
    y_key = next((k for k in Y_PRIORITIES if k in row and _is_number(row[k])), None)
    if x_key is None:
        x_key = next((k for k, v in row.items() if _is_scalar(v)), None)
    if y_key is None:
        y_key = next((k for k, v in row.items() if _is_number(v) and k != x_key), None)
    return x_key, y_key


def _rows(
    items: Sequence[Mapping[str, Any]], x_key: str, y_key: str, limit: int
) -> list[dict[str, str | int | float]]:
    return [
        {
            x_key: _to_label(monthify(x_key, item.get(x_key))),
            y_key: _to_number(item.get(y_key)),
        }
        for item in items[:limit]
        if isinstance(item, Mapping)
    ]


def coerce_chart_spec(payload: Any) -> ChartSpec | None:
    """Honor a chart spec returned verbatim by a tool."""
    if not isinstance(payload, Mapping) or payload.get("type") != "chart":
        return None
    if not isinstance(payload.get("data"), list) or payload.get("chart") not in ("bar", "line"):
        return None
    try:
        return ChartSpec.model_validate(payload)
    except ValidationError as e:
        logger.debug("Ignoring malformed chart spec from tool: %s", e)
        return None


def chart_from_series(payload: Any, chart_type: ChartType, title: str | None = None) -> ChartSpec | None:
    """Build a chart from a neutral ``{"series": [...], "xKey", "yKey"}`` payload."""
    if not isinstance(payload, Mapping):
        return None
    series = payload.get("series")
    if not isinstance(series, list) or not series or not isinstance(series[0], Mapping):
        return None

    sample = series[0]
    x_key = payload.get("xKey")
    if not isinstance(x_key, str):
        x_key = "label" if "label" in sample else "x" if "x" in sample else None
    y_key = payload.get("yKey")
    if not isinstance(y_key, str):
        y_key = "count" if "count" in sample else "y" if "y" in sample else None
    if x_key is None or y_key is None:
        return None

    return ChartSpec(
        chart=chart_type,
        title=payload.get("title") or title or DEFAULT_TITLE,
        x_key=x_key,
        y_key=y_key,
        data=_rows(series, x_key, y_key, MAX_SERIES_ROWS),
    )


def chart_from_child_objects(
    payload: Any, chart_type: ChartType, title: str | None = None
) -> ChartSpec | None:
    """Build a chart from a map of child objects sharing a numeric field.

    ``{"jan": {"count": 3}, "feb": {"count": 5}}`` becomes two bars. The value
    field is the first priority key that is numeric in at least half of the
    children (and in at least two).
    """
    if not isinstance(payload, Mapping):
        return None
    entries = [(str(k), v) for k, v in payload.items() if isinstance(v, Mapping)]
    if not MIN_CHILD_OBJECTS <= len(entries) <= MAX_CHILD_OBJECTS:
        return None

    needed = max(MIN_CHILD_OBJECTS, math.ceil(len(entries) / 2))
    chosen = next(
        (y for y in Y_PRIORITIES if sum(1 for _, obj in entries if _is_number(obj.get(y))) >= needed),
        None,
    )
    if chosen is None:
        return None

    rows: list[dict[str, str | int | float]] = []
    for key, obj in entries:
        label = obj.get("label")
        if label is None:
            label = obj.get("name")
        if label is None and obj.get("month") is not None:
            label = monthify("month", obj["month"])
        if label is None:
            label = obj.get("year")
        if label is None:
            label = key
        rows.append({"label": _to_label(label), chosen: _to_number(obj.get(chosen))})

    return ChartSpec(
        chart=chart_type, title=title or DEFAULT_TITLE, x_key="label", y_key=chosen, data=rows
    )


def generic_chart_from_payload(
    payload: Any, chart_type: ChartType, title: str | None = None
) -> ChartSpec | None:
    """Fallback heuristics: root count, child objects, first array of objects."""
    if isinstance(payload, Mapping) and _is_number(payload.get("count")):
        return ChartSpec(
            chart=chart_type,
            title=title or "Total",
            x_key="label",
            y_key="count",
            data=[{"label": "Total", "count": payload["count"]}],
        )

    from_children = chart_from_child_objects(payload, chart_type, title)
    if from_children is not None:
        return from_children

    items = find_array_of_objects(payload)
    if not items:
        return None
    x_key, y_key = pick_xy(items[0])
    if x_key is None or y_key is None:
        return None
    return ChartSpec(
        chart=chart_type,
        title=title or DEFAULT_TITLE,
        x_key=x_key,
        y_key=y_key,
        data=_rows(items, x_key, y_key, MAX_GENERIC_ROWS),
    )


def build_chart_from_latest_tool(
    history: Sequence[HistoryEntry], chart_type: ChartType, title: str | None = None
) -> ChartSpec | None:
    """Build a chart from the most recent tool result that yields one.

    Args:
        history: Tool steps of the turn, oldest first.
        chart_type: Requested chart type.
        title: Optional chart title.

    Returns:
        The chart, or None when no payload can be charted.
    """
    for entry in reversed(history):
        payload = extract_tool_json_payload(entry.tool_result)
        if not payload:
            continue
        chart = (
            coerce_chart_spec(payload)
            or chart_from_series(payload, chart_type, title)
            or generic_chart_from_payload(payload, chart_type, title)
        )
        if chart is not None:
            return chart
    return None


def _split_table_row(line: str) -> list[str]:
    return [cell.strip().strip("*").strip() for cell in line.strip().strip("|").split("|")]


def _points_from_table(lines: list[str]) -> tuple[str, list[tuple[str, float]]] | None:
    for i in range(len(lines) - 1):
        if "|" not in lines[i] or not _TABLE_SEPARATOR.match(lines[i + 1]):
            continue
        header = _split_table_row(lines[i])
        body: list[list[str]] = []
        for line in lines[i + 2 :]:
            if "|" not in line:
                break
            body.append(_split_table_row(line))
        if not body or len(header) < 2:
            continue

        # First column holding a number in every row is the value column
        number = re.compile(rf"^\$?({NUMBER})%?$")
        for col in range(1, len(header)):
            matches = [number.match(row[col]) if col < len(row) else None for row in body]
            if all(matches):
                points = [
                    (row[0], parse_number(m.group(1)))
                    for row, m in zip(body, matches, strict=True)
                    if m is not None
                ]
                return header[col], points
    return None


def build_chart_from_answer(
    answer: str | None, chart_type: ChartType, title: str | None = None
) -> ChartSpec | None:
    """Parse a data series out of the answer text.

    Recognizes a markdown table (first column as labels, first all-numeric
    column as values) or ``label: value`` lines.

    Args:
        answer: Final answer text.
        chart_type: Requested chart type.
        title: Optional chart title.

    Returns:
        The chart, or None when fewer than two data points are found.
    """
    if not answer:
        return None
    lines = answer.splitlines()

    y_key = "value"
    points: list[tuple[str, float]] = []
    table = _points_from_table(lines)
    if table is not None:
        header, points = table
        y_key = header.lower().replace(" ", "_")
        if y_key in ("", "label"):
            y_key = "value"
    if len(points) < MIN_ANSWER_POINTS:
        y_key = "value"
        points = []
        for line in lines:
            match = _ANSWER_LINE.match(line)
            if match:
                points.append((match.group("label").strip(), parse_number(match.group("value"))))
    if len(points) < MIN_ANSWER_POINTS:
        return None

    return ChartSpec(
        chart=chart_type,
        title=title or DEFAULT_TITLE,
        x_key="label",
        y_key=y_key,
        data=[{"label": label, y_key: _whole(value)} for label, value in points],
    )


def _whole(value: float) -> int | float:
    return int(value) if value == int(value) else value
