"""In-memory metrics and anomaly store.

One store is constructed per process and passed to the assistant loop and to
whatever serves the metrics summary. All state sits behind a re-entrant lock
so concurrent turns can record events while the summary is being read. The
lock is never held across an ``await``.

Turn bookkeeping is best-effort: operations on unknown turn ids are silently
ignored so instrumentation can never break the agent loop.
"""

from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from collections import OrderedDict, deque
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any, TypeVar

from storeagent.metrics.anomalies import DEFAULT_DETECTORS, AnomalyDetector
from storeagent.models.config import MetricsConfig
from storeagent.models.metrics import (
    Anomaly,
    AssistantSummary,
    AssistantTurn,
    MetricsSummary,
    NumberDelta,
    Rates,
    ToolEvent,
    ToolStats,
    Totals,
    ValidationCheck,
    ValidationTotals,
)
from storeagent.validation.grounding import extract_tool_json_payload

logger = logging.getLogger(__name__)

T = TypeVar("T")

MS_PER_MINUTE = 60_000
MS_PER_HOUR = 60 * MS_PER_MINUTE

# Truncation limits for stored args/results
MAX_STRING_LENGTH = 1000
MAX_LIST_ITEMS = 200
MAX_ARGS_LENGTH = 3000
MAX_RESULT_LENGTH = 10000


def sanitize(value: Any, max_length: int = MAX_ARGS_LENGTH) -> Any:
    """Make a value JSON-safe and bounded in size.

    Long strings and lists are clipped; if the encoded value is still longer
    than ``max_length`` it is stored as a truncated JSON string.
    """

    def clip(node: Any) -> Any:
        if isinstance(node, str) and len(node) > MAX_STRING_LENGTH:
            return node[:MAX_STRING_LENGTH] + "…"
        if isinstance(node, list | tuple):
            items = [clip(item) for item in node[:MAX_LIST_ITEMS]]
            if len(node) > MAX_LIST_ITEMS:
                items.append("…truncated…")
            return items
        if isinstance(node, Mapping):
            return {str(k): clip(v) for k, v in node.items()}
        return node

    text = json.dumps(clip(value), default=str)
    if len(text) > max_length:
        return text[:max_length] + "…"
    return json.loads(text)


class MetricsStore:
    """Process-wide log of tool events, anomalies and assistant turns."""

    def __init__(
        self,
        config: MetricsConfig | None = None,
        *,
        detectors: Iterable[AnomalyDetector] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize an empty store.

        Args:
            config: Buffer sizes and anomaly thresholds.
            detectors: Anomaly detectors run after each event. Defaults to the
                negative-inventory, spike and high-error-rate checks.
            clock: Wall clock in epoch seconds (injectable for tests).
        """
        self._config = config or MetricsConfig()
        self._detectors = list(DEFAULT_DETECTORS if detectors is None else detectors)
        self._clock = clock
        self._lock = threading.RLock()

        self._events: deque[ToolEvent] = deque(maxlen=self._config.max_events)
        self._anomalies: deque[Anomaly] = deque(maxlen=self._config.max_anomalies)
        self._total_events = 0
        self._by_tool: dict[str, ToolStats] = {}
        self._latency_samples: dict[str, int] = {}
        # tool -> minute index -> calls started in that minute
        self._minute_counts: dict[str, dict[int, int]] = {}
        # tool -> success flags of the most recent calls
        self._outcomes: dict[str, deque[bool]] = {}
        self._turns: OrderedDict[str, AssistantTurn] = OrderedDict()
        self._last_turn_id: str | None = None

    @property
    def config(self) -> MetricsConfig:
        """Get the store configuration."""
        return self._config

    def now_ms(self) -> float:
        """Current time in epoch milliseconds."""
        return self._clock() * 1000

    # ------------------------------------------------------------------
    # Tool events
    # ------------------------------------------------------------------

    async def with_tool_logging(
        self,
        tool: str,
        args: Any,
        fn: Callable[[], Awaitable[T]],
    ) -> T:
        """Run a tool call and record exactly one event for it.

        Args:
            tool: Tool name.
            args: Arguments the tool is called with.
            fn: Zero-argument coroutine factory performing the call.

        Returns:
            Whatever ``fn`` returns.

        Raises:
            Exception: Anything ``fn`` raises, re-raised after logging.
        """
        started_at = self.now_ms()
        started = time.perf_counter()
        try:
            result = await fn()
        except Exception as e:
            self.record_tool_event(
                tool,
                args,
                result=getattr(e, "result", None),
                success=False,
                error_message=str(e) or e.__class__.__name__,
                duration_ms=(time.perf_counter() - started) * 1000,
                started_at=started_at,
            )
            raise
        self.record_tool_event(
            tool,
            args,
            result=result,
            success=True,
            duration_ms=(time.perf_counter() - started) * 1000,
            started_at=started_at,
        )
        return result

    def record_tool_event(
        self,
        tool: str,
        args: Any,
        *,
        result: Any = None,
        success: bool,
        error_message: str | None = None,
        duration_ms: float | None = None,
        started_at: float | None = None,
    ) -> ToolEvent:
        """Append a tool event, update aggregates and run anomaly detectors.

        Args:
            tool: Tool name.
            args: Call arguments.
            result: Raw tool result (or the error's result on failure).
            success: Whether the call succeeded.
            error_message: Failure message.
            duration_ms: Wall-clock duration of the call.
            started_at: Call start in epoch ms; defaults to now.

        Returns:
            The recorded event.
        """
        event = ToolEvent(
            id=str(uuid.uuid4()),
            timestamp=started_at if started_at is not None else self.now_ms(),
            tool=tool,
            args=sanitize(args),
            result=sanitize(result, MAX_RESULT_LENGTH),
            success=success,
            error_message=None if success else (error_message or ""),
            duration_ms=duration_ms,
        )
        payload = extract_tool_json_payload(result)

        with self._lock:
            self._events.append(event)
            self._total_events += 1

            stats = self._by_tool.setdefault(tool, ToolStats())
            stats.total += 1
            if not success:
                stats.errors += 1
            if duration_ms is not None:
                # Incremental mean over all calls of this tool
                samples = self._latency_samples.get(tool, 0) + 1
                self._latency_samples[tool] = samples
                stats.avg_latency += (duration_ms - stats.avg_latency) / samples

            minute = int(event.timestamp // MS_PER_MINUTE)
            buckets = self._minute_counts.setdefault(tool, {})
            buckets[minute] = buckets.get(minute, 0) + 1
            self._prune_buckets(buckets)

            outcomes = self._outcomes.setdefault(
                tool, deque(maxlen=self._config.error_rate_window)
            )
            outcomes.append(success)

            for detector in self._detectors:
                anomaly = detector(event, payload, self)
                if anomaly is not None:
                    logger.warning("Anomaly detected: %s", anomaly.message)
                    self._anomalies.append(anomaly)

        return event

    def _prune_buckets(self, buckets: dict[int, int]) -> None:
        oldest = self._current_minute() - self._config.spike_window_minutes
        for minute in [m for m in buckets if m < oldest]:
            del buckets[minute]

    def _current_minute(self) -> int:
        return int(self.now_ms() // MS_PER_MINUTE)

    def calls_this_minute(self, tool: str) -> int:
        """Number of calls to ``tool`` started in the current minute."""
        with self._lock:
            return self._minute_counts.get(tool, {}).get(self._current_minute(), 0)

    def baseline_per_minute(self, tool: str) -> float:
        """Average calls per minute over the window before the current minute."""
        window = self._config.spike_window_minutes
        with self._lock:
            buckets = self._minute_counts.get(tool, {})
            current = self._current_minute()
            total = sum(buckets.get(current - offset, 0) for offset in range(1, window + 1))
        return total / window

    def recent_outcomes(self, tool: str) -> list[bool]:
        """Success flags of the most recent calls to ``tool``, oldest first."""
        with self._lock:
            return list(self._outcomes.get(tool, ()))

    def get_events(self) -> list[ToolEvent]:
        """Copy of the retained event log."""
        with self._lock:
            return [e.model_copy(deep=True) for e in self._events]

    def get_anomalies(self) -> list[Anomaly]:
        """Copy of the retained anomalies."""
        with self._lock:
            return [a.model_copy(deep=True) for a in self._anomalies]

    # ------------------------------------------------------------------
    # Assistant turns
    # ------------------------------------------------------------------

    def start_assistant_turn(self, user_message: str) -> str:
        """Open a new turn and return its id."""
        turn = AssistantTurn(
            id=str(uuid.uuid4()),
            timestamp=self.now_ms(),
            user_message=user_message,
        )
        with self._lock:
            self._turns[turn.id] = turn
            while len(self._turns) > self._config.max_turns:
                self._turns.popitem(last=False)
            self._last_turn_id = turn.id
        return turn.id

    def end_assistant_turn(self, turn_id: str, answer: str) -> None:
        """Seal a turn with its final answer (or an abort/error marker)."""
        with self._lock:
            turn = self._turns.get(turn_id)
            if turn is None or turn.sealed:
                return
            turn.assistant_message = answer

    def note_tool_used(self, turn_id: str, tool: str) -> None:
        """Record that the turn invoked ``tool``."""
        with self._lock:
            turn = self._turns.get(turn_id)
            if turn is None or turn.sealed:
                return
            turn.tools_used.append(tool)

    def provide_ground_truth(self, turn_id: str, numbers: Mapping[str, float]) -> None:
        """Merge tool-grounded numbers into the turn (last writer wins)."""
        with self._lock:
            turn = self._turns.get(turn_id)
            if turn is None or turn.sealed:
                return
            turn.grounded_numbers.update(numbers)

    def auto_validate_from_answer(
        self,
        turn_id: str,
        label: str,
        ai_value: float | None,
        tolerance: float = 0.0,
    ) -> ValidationCheck | None:
        """Compare the number the model claimed for ``label`` with ground truth.

        A check is appended for every call. When both sides are known the
        check passes iff ``|ai - tool| <= tolerance``. A label the answer
        never states (``ai_value`` None) or one with no grounded value cannot
        contradict anything and passes without a delta.

        Args:
            turn_id: Turn to validate.
            label: Grounded field name.
            ai_value: Value the model's answer claims, if any.
            tolerance: Allowed absolute difference.

        Returns:
            The appended check, or None for an unknown turn.
        """
        with self._lock:
            turn = self._turns.get(turn_id)
            if turn is None:
                return None
            tool_value = turn.grounded_numbers.get(label)
            delta: NumberDelta | None = None
            if ai_value is not None:
                turn.extracted_numbers[label] = ai_value
                if tool_value is not None:
                    diff = abs(ai_value - tool_value)
                    delta = NumberDelta(
                        ai=ai_value,
                        tool=tool_value,
                        diff=diff,
                        within_tolerance=diff <= tolerance,
                    )
            check = ValidationCheck(
                label=label,
                ai=ai_value,
                tool=tool_value,
                tolerance=tolerance,
                delta=delta,
                ok=delta.within_tolerance if delta is not None else True,
            )
            turn.validations.append(check)
        if not check.ok:
            logger.warning(
                "Answer claims %s=%s but tools reported %s", label, ai_value, tool_value
            )
        return check

    def get_turn(self, turn_id: str) -> AssistantTurn | None:
        """Snapshot of a turn, or None if unknown."""
        with self._lock:
            turn = self._turns.get(turn_id)
            return turn.model_copy(deep=True) if turn is not None else None

    def get_last_turn(self) -> AssistantTurn | None:
        """Snapshot of the most recently started turn."""
        with self._lock:
            if self._last_turn_id is None:
                return None
            return self.get_turn(self._last_turn_id)

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def get_summary(self, recent_limit: int | None = None) -> MetricsSummary:
        """Read-only snapshot of everything the store tracks.

        Args:
            recent_limit: Number of recent events/anomalies to include.
                Defaults to ``config.recent_events_limit``.

        Returns:
            MetricsSummary; use ``to_document()`` for the camelCase JSON form.
        """
        limit = recent_limit if recent_limit is not None else self._config.recent_events_limit
        now = self.now_ms()

        with self._lock:
            last_hour = sum(1 for e in self._events if e.timestamp >= now - MS_PER_HOUR)
            current = self._current_minute()
            this_minute = {
                tool: buckets[current]
                for tool, buckets in self._minute_counts.items()
                if buckets.get(current)
            }
            baseline = {tool: self.baseline_per_minute(tool) for tool in self._minute_counts}
            events = list(self._events)[-limit:] if limit > 0 else []
            anomalies = list(self._anomalies)[-limit:] if limit > 0 else []
            turns = [t.model_copy(deep=True) for t in self._turns.values()]

            return MetricsSummary(
                totals=Totals(total_events=self._total_events, last_hour=last_hour),
                by_tool={tool: s.model_copy() for tool, s in self._by_tool.items()},
                rates=Rates(this_minute=this_minute, baseline_avg_per_minute=baseline),
                recent_events=[e.model_copy(deep=True) for e in events],
                anomalies=[a.model_copy(deep=True) for a in anomalies],
                assistant=AssistantSummary(
                    turns=turns,
                    validation=_validation_totals(turns),
                ),
            )


def _validation_totals(turns: list[AssistantTurn]) -> ValidationTotals:
    checks = [check for turn in turns for check in turn.validations]
    passed = sum(1 for check in checks if check.ok)
    return ValidationTotals(total=len(checks), ok=passed, fail=len(checks) - passed)
