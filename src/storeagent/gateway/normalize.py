"""Normalization of model-produced tool arguments.

Models often send argument shapes that do not match the declared schema.
Two passes fix the common cases before dispatch:

- query normalization for the commerce admin API: filter operators gain a
  ``$`` prefix (``{"gte": 5}`` -> ``{"$gte": 5}``), a ``fields`` list becomes
  a comma-separated string and numeric-string ``limit``/``offset`` become ints;
- schema coercion: a scalar sent for a parameter declared as ``array`` is
  wrapped in a single-element list.
"""

import re
from typing import Any

from storeagent.models.assistant import ToolDescriptor

QUERY_OPERATORS = frozenset(
    {
        "gt",
        "gte",
        "lt",
        "lte",
        "eq",
        "ne",
        "in",
        "nin",
        "not",
        "like",
        "ilike",
        "re",
        "fulltext",
        "overlap",
        "contains",
        "contained",
        "exists",
        "and",
        "or",
    }
)

NUMERIC_PAGING_KEYS = frozenset({"limit", "offset"})

_DIGITS = re.compile(r"^\d+$")


def normalize_query_args(value: Any, *, join_fields: bool = True, key: str | None = None) -> Any:
    """Recursively apply the admin API query conventions.

    Args:
        value: Argument value (any JSON shape).
        join_fields: Join a ``fields`` list into a comma-separated string.
        key: Key under which ``value`` sits in its parent object.

    Returns:
        A normalized copy of ``value``.
    """
    if isinstance(value, list):
        if key == "fields" and join_fields:
            return ",".join(str(v) for v in value)
        return [normalize_query_args(v, join_fields=join_fields, key=key) for v in value]
    if isinstance(value, dict):
        normalized: dict[str, Any] = {}
        for k, v in value.items():
            bare = str(k).lstrip("$")
            new_key = f"${bare}" if bare in QUERY_OPERATORS else str(k)
            normalized[new_key] = normalize_query_args(v, join_fields=join_fields, key=new_key)
        return normalized
    if key in NUMERIC_PAGING_KEYS and isinstance(value, str) and _DIGITS.match(value):
        return int(value)
    return value


def coerce_to_schema(args: dict[str, Any], tool: ToolDescriptor) -> dict[str, Any]:
    """Wrap scalars sent for array-typed parameters into single-element lists."""
    coerced = dict(args)
    for name, value in args.items():
        if value is None or isinstance(value, list):
            continue
        if tool.parameter_kind(name) == "array":
            coerced[name] = [value]
    return coerced


def normalize_tool_args(
    args: dict[str, Any] | None, tool: ToolDescriptor | None = None
) -> dict[str, Any]:
    """Normalize model arguments for ``tool`` before dispatch.

    Args:
        args: Arguments as produced by the model.
        tool: Descriptor of the target tool, if it is in the catalog.

    Returns:
        Normalized arguments (a new dict; the input is not modified).
    """
    if not args:
        return {}
    join_fields = tool is None or tool.parameter_kind("fields") != "array"
    normalized = normalize_query_args(args, join_fields=join_fields)
    if tool is not None:
        normalized = coerce_to_schema(normalized, tool)
    return normalized
