"""Anomaly detectors run by the metrics store after every tool event.

A detector is any callable ``(event, payload, store) -> Anomaly | None``.
``payload`` is the decoded JSON payload of the tool result (None when the
result carried none); ``store`` exposes the rate and outcome views.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from storeagent.models.metrics import Anomaly, ToolEvent
from storeagent.validation.grounding import is_number

if TYPE_CHECKING:
    from storeagent.metrics.store import MetricsStore

AnomalyDetector = Callable[[ToolEvent, Any, "MetricsStore"], Anomaly | None]

# Inventory-quantity style keys whose values must never be negative
INVENTORY_KEYS = frozenset(
    {
        "inventory",
        "inventory_quantity",
        "inventory_qty",
        "stock",
        "stock_level",
        "available",
        "available_quantity",
        "available_qty",
        "quantity",
        "qty",
    }
)

MAX_REPORTED_FIELDS = 10


def new_anomaly(
    store: MetricsStore,
    anomaly_type: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> Anomaly:
    """Build an anomaly stamped with the store's clock."""
    return Anomaly(
        id=str(uuid.uuid4()),
        timestamp=store.now_ms(),
        type=anomaly_type,
        message=message,
        details=details,
    )


def find_negative_inventory(payload: Any) -> list[dict[str, Any]]:
    """Walk a payload and collect negative inventory-quantity fields.

    Args:
        payload: Decoded JSON payload.

    Returns:
        Findings as ``{"path": "variants.0.inventory_quantity", "value": -3}``.
    """
    findings: list[dict[str, Any]] = []

    def walk(node: Any, path: list[str]) -> None:
        if isinstance(node, list):
            for index, item in enumerate(node):
                walk(item, [*path, str(index)])
            return
        if not isinstance(node, dict):
            return
        for key, value in node.items():
            current = [*path, str(key)]
            if key in INVENTORY_KEYS and is_number(value) and value < 0:
                findings.append({"path": ".".join(current), "value": value})
            if isinstance(value, dict | list):
                walk(value, current)

    walk(payload, [])
    return findings


def detect_negative_inventory(
    event: ToolEvent, payload: Any, store: MetricsStore
) -> Anomaly | None:
    """Flag tool results reporting negative stock."""
    if payload is None:
        return None
    findings = find_negative_inventory(payload)
    if not findings:
        return None
    return new_anomaly(
        store,
        "negative-inventory",
        f"Negative inventory detected in {event.tool} result ({len(findings)} fields)",
        {"fields": findings[:MAX_REPORTED_FIELDS]},
    )


def detect_spike(event: ToolEvent, payload: Any, store: MetricsStore) -> Anomaly | None:
    """Flag a burst of calls to one tool compared to its per-minute baseline."""
    config = store.config
    this_minute = store.calls_this_minute(event.tool)
    baseline = store.baseline_per_minute(event.tool)
    if (
        this_minute >= config.spike_min_calls
        and baseline > 0
        and this_minute > baseline * config.spike_factor
    ):
        return new_anomaly(
            store,
            "spike",
            f"Spike in tool calls for {event.tool}: {this_minute} this minute "
            f"vs avg {baseline:.2f}",
            {"thisMinute": this_minute, "baselineAvg": baseline},
        )
    return None


def detect_high_error_rate(
    event: ToolEvent, payload: Any, store: MetricsStore
) -> Anomaly | None:
    """Flag a tool failing for a large share of its most recent calls."""
    config = store.config
    outcomes = store.recent_outcomes(event.tool)
    if len(outcomes) < config.error_rate_window:
        return None
    errors = sum(1 for ok in outcomes if not ok)
    if errors / len(outcomes) >= config.error_rate_threshold:
        return new_anomaly(
            store,
            "high-error-rate",
            f"High error rate for {event.tool}: {errors}/{len(outcomes)} failures "
            f"in last {len(outcomes)} calls",
            {"errors": errors, "window": len(outcomes)},
        )
    return None


DEFAULT_DETECTORS: tuple[AnomalyDetector, ...] = (
    detect_negative_inventory,
    detect_spike,
    detect_high_error_rate,
)
