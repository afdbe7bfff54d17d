"""Ground-truth extraction from tool results.

Tool results are treated as one of two shapes: an MCP envelope
(``{"content": [{"type": "text", "text": "..."}], "isError": ...}``) whose
text item carries JSON, or an already-decoded JSON value. Only a fixed
allow-list of numeric fields is ever trusted as ground truth.
"""

import json
import math
import re
from collections.abc import Mapping
from typing import Any

# Quantity/count/total style fields trusted as ground truth
GROUND_TRUTH_KEYS = (
    "available",
    "available_quantity",
    "inventory_quantity",
    "stocked_quantity",
    "reserved_quantity",
    "count",
    "total",
    "orders",
    "items",
)

JSON_FENCE_PATTERN = re.compile(r"```(?:json)?\s*\n([\s\S]*?)\n```", re.IGNORECASE)


def is_number(value: Any) -> bool:
    """Return True for finite ints/floats (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return False
    return math.isfinite(value)


def strip_json_fences(text: str) -> str:
    """Return the body of the first fenced code block, or the text unchanged."""
    match = JSON_FENCE_PATTERN.search(text)
    return match.group(1) if match else text


def safe_parse_json(maybe_json: Any) -> Any | None:
    """Parse JSON out of model or tool text.

    Tries the whole (fence-stripped) text first, then the outermost ``{...}``
    slice, then the outermost ``[...]`` slice.

    Args:
        maybe_json: Text that may contain JSON.

    Returns:
        The decoded value, or None if nothing decodes.
    """
    if not isinstance(maybe_json, str):
        return None
    stripped = strip_json_fences(maybe_json).strip()

    try:
        return json.loads(stripped)
    except ValueError:
        pass

    for opener, closer in (("{", "}"), ("[", "]")):
        first = stripped.find(opener)
        last = stripped.rfind(closer)
        if first != -1 and last > first:
            try:
                return json.loads(stripped[first : last + 1])
            except ValueError:
                continue
    return None


def extract_tool_json_payload(tool_result: Any) -> Any | None:
    """Extract the JSON payload carried by a tool result.

    Args:
        tool_result: MCP result dict, decoded JSON value, or JSON text.

    Returns:
        The payload, or None for failed calls and opaque results.
    """
    if isinstance(tool_result, Mapping):
        if tool_result.get("isError"):
            return None
        content = tool_result.get("content")
        if isinstance(content, list):
            for item in content:
                if isinstance(item, Mapping) and item.get("type") == "text" and item.get("text"):
                    return safe_parse_json(item["text"])
            structured = tool_result.get("structuredContent")
            return structured if structured else None
        return tool_result
    if isinstance(tool_result, list):
        return tool_result
    if isinstance(tool_result, str):
        return safe_parse_json(tool_result)
    return None


def collect_ground_truth_numbers(payload: Any) -> dict[str, float] | None:
    """Pull allow-listed numeric fields out of a payload.

    Args:
        payload: Decoded tool payload of any shape.

    Returns:
        Mapping of field name to value, or None when no field matches.
    """
    if not isinstance(payload, Mapping):
        return None

    found = {key: payload[key] for key in GROUND_TRUTH_KEYS if is_number(payload.get(key))}
    return found or None
