"""Tool-call metrics, anomaly detection and turn validation bookkeeping."""

from storeagent.metrics.anomalies import (
    DEFAULT_DETECTORS,
    AnomalyDetector,
    detect_high_error_rate,
    detect_negative_inventory,
    detect_spike,
    find_negative_inventory,
)
from storeagent.metrics.store import MetricsStore, sanitize

__all__ = [
    "DEFAULT_DETECTORS",
    "AnomalyDetector",
    "MetricsStore",
    "detect_high_error_rate",
    "detect_negative_inventory",
    "detect_spike",
    "find_negative_inventory",
    "sanitize",
]
