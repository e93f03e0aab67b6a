"""Cache telemetry: lookup events and per-step timings.

`ContentCache` reports one event per lookup ("hit", "miss", and "discarded"
for unusable stored entries) and times the render, diff, persist and replay
steps. Nothing is collected unless `CACHED_CONTENT_TELEMETRY=1` (or
`DEBUG=1`) is set at import time and at least one reporter is given.
"""

from collections import Counter, deque
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager, nullcontext
from dataclasses import dataclass
import logging
import os
import time
from typing import Any, Protocol, runtime_checkable

log = logging.getLogger(__name__)

# Evaluated once at import time
_TELEMETRY_ENABLED = (
    os.getenv("CACHED_CONTENT_TELEMETRY") == "1" or os.getenv("DEBUG") == "1"
)


@runtime_checkable
class TelemetryReporter(Protocol):
    """Receives cache events from an enabled telemetry context."""

    def record_timing(self, step: str, duration: float, **metadata: Any) -> None: ...  # noqa: D102
    def record_event(self, event: str, **metadata: Any) -> None: ...  # noqa: D102


@dataclass(frozen=True, slots=True)
class _NoOpTelemetryContext:
    """Shared stateless context used when telemetry is off."""

    def step(self, name: str, **metadata: Any) -> AbstractContextManager[None]:  # noqa: ARG002
        return nullcontext()

    def event(self, name: str, **metadata: Any) -> None:
        pass


class _EnabledTelemetryContext:
    __slots__ = ("reporters",)

    def __init__(self, *reporters: TelemetryReporter):
        self.reporters = reporters

    @contextmanager
    def step(self, name: str, **metadata: Any) -> Iterator[None]:
        """Time one cache step. Steps that raise are reported as failed."""
        start = time.perf_counter()
        failed = True
        try:
            yield
            failed = False
        finally:
            self._emit(
                "record_timing",
                name,
                time.perf_counter() - start,
                failed=failed,
                **metadata,
            )

    def event(self, name: str, **metadata: Any) -> None:
        self._emit("record_event", name, **metadata)

    def _emit(self, method: str, *args: Any, **metadata: Any) -> None:
        for reporter in self.reporters:
            try:
                getattr(reporter, method)(*args, **metadata)
            except Exception as e:
                log.error(
                    "Telemetry reporter '%s' failed: %s",
                    type(reporter).__name__,
                    e,
                    exc_info=True,
                )


_NO_OP_SINGLETON = _NoOpTelemetryContext()

type TelemetryContextProtocol = _EnabledTelemetryContext | _NoOpTelemetryContext


def TelemetryContext(*reporters: TelemetryReporter) -> TelemetryContextProtocol:  # noqa: N802
    """Return an enabled context, or the shared no-op one.

    The no-op context is returned when telemetry is disabled or no reporter
    is given.
    """
    if _TELEMETRY_ENABLED and reporters:
        return _EnabledTelemetryContext(*reporters)
    return _NO_OP_SINGLETON


class SimpleReporter:
    """In-memory reporter for development use.

    Keeps the latest `max_entries_per_step` durations per step and running
    event counts. Call `get_report()` for a summary.
    """

    def __init__(self, max_entries_per_step: int = 1000):
        self.max_entries = max_entries_per_step
        self.timings: dict[str, deque[float]] = {}
        self.failures: Counter[str] = Counter()
        self.events: Counter[str] = Counter()

    def record_timing(
        self, step: str, duration: float, *, failed: bool = False, **metadata: Any
    ) -> None:
        if step not in self.timings:
            self.timings[step] = deque(maxlen=self.max_entries)
        self.timings[step].append(duration)
        if failed:
            self.failures[step] += 1

    def record_event(self, event: str, **metadata: Any) -> None:
        self.events[event] += 1

    @property
    def hit_ratio(self) -> float | None:
        """Fraction of lookups served from the cache, None before any lookup."""
        lookups = self.events["hit"] + self.events["miss"]
        return self.events["hit"] / lookups if lookups else None

    def get_report(self) -> str:
        ratio = self.hit_ratio
        lines = [
            "=== Cache Telemetry ===",
            f"Hits: {self.events['hit']} | Misses: {self.events['miss']} | "
            f"Discarded: {self.events['discarded']} | "
            f"Hit ratio: {'n/a' if ratio is None else f'{ratio:.1%}'}",
        ]
        for step, durations in sorted(self.timings.items()):
            lines.append(
                f"{step:<10} | Calls: {len(durations):<4} | "
                f"Avg: {sum(durations) / len(durations):.4f}s | "
                f"Failed: {self.failures[step]}"
            )
        return "\n".join(lines)
