"""Acquire one diagnostic fact from an ordered list of fallback strategies.

Callers order the strategies most precise first and most compatible last
(e.g. performance counters, then WMI, then a process heuristic). The collector
does not know what a strategy does; it only enforces the order and stops at
the first usable value.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from .error_log import ErrorLog
from .executor import SafeExecutor
from .incident import Incident, Severity


class _NotAvailable:
    """Marker for a fact that no strategy could obtain. Never equal to 0 or None."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_AVAILABLE"

    def __reduce__(self):
        return (_NotAvailable, ())


NOT_AVAILABLE = _NotAvailable()

# SafeExecutor default marking a failed strategy, distinct from a strategy that
# returned None or 0.
_FAILED = object()


def is_present(value: Any) -> bool:
    return value is not None and value is not NOT_AVAILABLE


def is_non_empty(value: Any) -> bool:
    if not is_present(value):
        return False
    try:
        return len(value) > 0
    except TypeError:
        return True


def is_number(value: Any) -> bool:
    """True for real numbers (bools excluded), NaN rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def clamp_percent(value: float) -> float:
    """Clamp a percentage reading into 0..100."""
    if value < 0:
        return 0.0
    if value > 100:
        return 100.0
    return float(value)


@dataclass(frozen=True)
class Strategy:
    label: str
    operation: Callable[[], Any]
    success: Callable[[Any], bool] = is_present
    timeout: Optional[float] = None


@dataclass(frozen=True)
class Collected:
    value: Any
    method: str


class MultiStrategyCollector:
    def __init__(self, executor: SafeExecutor, timeout: Optional[float] = None) -> None:
        self.executor = executor
        self.timeout = timeout

    @property
    def log(self) -> ErrorLog:
        return self.executor.log

    def collect(
        self,
        fact: str,
        strategies: Sequence[Strategy],
        essential: bool = False,
        suppress: bool = False,
    ):
        """Return ``Collected(value, method)`` from the first strategy that works.

        Every strategy that raises leaves one Error incident (via SafeExecutor).
        A strategy whose value fails its ``success`` predicate falls through
        without an incident of its own. When nothing works, one aggregate
        incident is appended (Critical if *essential*, Warning otherwise) and
        NOT_AVAILABLE is returned.
        """
        attempted: list[str] = []
        for strategy in strategies:
            timeout = strategy.timeout if strategy.timeout is not None else self.timeout
            value = self.executor.execute(
                f"{fact} [{strategy.label}]",
                strategy.operation,
                default=_FAILED,
                suppress=suppress,
                timeout=timeout,
            )
            if value is _FAILED:
                attempted.append(f"{strategy.label} (failed)")
                continue
            if not _passes(strategy, value):
                attempted.append(f"{strategy.label} (no usable value)")
                continue
            return Collected(value=value, method=strategy.label)

        severity = Severity.CRITICAL if essential else Severity.WARNING
        tried = ", ".join(attempted) if attempted else "no strategies configured"
        self.log.append(Incident(
            section=fact,
            message=f"All collection methods failed for {fact}: {tried}",
            category="NotAvailable",
            severity=severity,
        ))
        return NOT_AVAILABLE


def _passes(strategy: Strategy, value: Any) -> bool:
    # A predicate that blows up is a rejection, not a crash
    try:
        return bool(strategy.success(value))
    except Exception:  # noqa: BLE001
        return False
