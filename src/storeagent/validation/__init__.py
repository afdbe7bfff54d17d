"""Numeric grounding of model answers against tool results."""

from storeagent.validation.claims import extract_claimed_numbers, find_numbers
from storeagent.validation.grounding import (
    GROUND_TRUTH_KEYS,
    collect_ground_truth_numbers,
    extract_tool_json_payload,
    safe_parse_json,
    strip_json_fences,
)

__all__ = [
    "GROUND_TRUTH_KEYS",
    "collect_ground_truth_numbers",
    "extract_claimed_numbers",
    "extract_tool_json_payload",
    "find_numbers",
    "safe_parse_json",
    "strip_json_fences",
]
