"""Extraction of the numbers a model states in its answer text.

For every grounded label the answer is searched for a number the model ties
to that label ("orders totaled 42", then "42 orders"). When no labelled
mention exists but the grounded value itself appears in the text, that
mention is taken as the claim. Labels the answer never speaks about have no
claim.
"""

import re
from collections.abc import Mapping

# Dates, times, identifiers and version strings are not claims.
NUMBER = r"(?<![\w.\-/:])-?\d+(?:,\d{3})*(?:\.\d+)?(?![\-/:]?\d)"
NUMBER_PATTERN = re.compile(NUMBER)

LABEL_ALIASES: dict[str, tuple[str, ...]] = {
    "count": ("count", "orders", "results"),
    "total": ("total",),
    "orders": ("orders",),
    "items": ("items",),
    "available": ("available",),
    "available_quantity": ("available quantity", "available", "in stock"),
    "inventory_quantity": ("inventory quantity", "inventory", "in inventory"),
    "stocked_quantity": ("stocked quantity", "stocked"),
    "reserved_quantity": ("reserved quantity", "reserved"),
}

_LINKING_WORDS = (
    r"(?:[:=]|\b(?:is|was|are|were|of|totals?|totaled|totalled|totaling|totalling)\b)"
)

# Time spans and rankings ("7 days", "top 5") never count the label that follows.
_UNIT_WORDS = r"(?:minutes?|hours?|days?|weeks?|months?|years?|top)"


def parse_number(text: str) -> float:
    """Convert a matched number (thousands separators allowed) to float."""
    return float(text.replace(",", ""))


def find_numbers(text: str) -> list[float]:
    """Return every standalone number in the text, in order."""
    return [parse_number(m.group(0)) for m in NUMBER_PATTERN.finditer(text)]


def _aliases(label: str) -> tuple[str, ...]:
    return LABEL_ALIASES.get(label, (label.replace("_", " "),))


def _after_pattern(alias: str) -> re.Pattern[str]:
    # "orders: 42", "total of 42", "orders totaled 42"
    return re.compile(rf"\b{re.escape(alias)}\s*{_LINKING_WORDS}\s*\$?({NUMBER})", re.IGNORECASE)


def _before_pattern(alias: str) -> re.Pattern[str]:
    # "42 orders", "42 completed orders"; not "7 days orders" or "top 5 orders"
    word = rf"(?!{_UNIT_WORDS}\b)[A-Za-z]+"
    return re.compile(
        rf"(?<!top )\$?({NUMBER})(?!\s+{_UNIT_WORDS}\b)\s+(?:{word}\s+){{0,2}}?"
        rf"{re.escape(alias)}\b",
        re.IGNORECASE,
    )


def _labelled_claim(answer: str, label: str) -> float | None:
    aliases = _aliases(label)
    for make_pattern in (_after_pattern, _before_pattern):
        for alias in aliases:
            match = make_pattern(alias).search(answer)
            if match:
                return parse_number(match.group(1))
    return None


def extract_claimed_numbers(answer: str, grounded: Mapping[str, float]) -> dict[str, float]:
    """Find the value the answer claims for each grounded label.

    Args:
        answer: Final answer text produced by the model.
        grounded: Tool-grounded numbers of the turn, keyed by field name.

    Returns:
        Claimed value per label, for labels the answer mentions.
    """
    claims: dict[str, float] = {}
    if not answer:
        return claims

    mentioned = find_numbers(answer)
    for label, tool_value in grounded.items():
        claim = _labelled_claim(answer, label)
        if claim is None and any(abs(n - tool_value) < 1e-9 for n in mentioned):
            claim = float(tool_value)
        if claim is not None:
            claims[label] = claim
    return claims
