"""Map collected facts to severity tiers using fixed thresholds.

Comparisons are strict: a value exactly on a threshold is classified into the
better tier. ``Classify(20, critical=10, warning=20, LOWER_IS_WORSE)`` is Good.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .collector import is_number
from .error_log import ErrorLog
from .incident import Incident, Severity


class Tier(str, Enum):
    GOOD = "Good"
    WARNING = "Warning"
    CRITICAL = "Critical"

    @property
    def severity(self) -> Optional[Severity]:
        return {Tier.WARNING: Severity.WARNING, Tier.CRITICAL: Severity.CRITICAL}.get(self)


class Direction(str, Enum):
    HIGHER_IS_WORSE = "higher_is_worse"
    LOWER_IS_WORSE = "lower_is_worse"


@dataclass(frozen=True)
class Thresholds:
    critical: float
    warning: float
    direction: Direction = Direction.HIGHER_IS_WORSE

    def __post_init__(self) -> None:
        if not (is_number(self.critical) and is_number(self.warning)):
            raise ValueError(f"Thresholds must be numbers: {self.critical!r}, {self.warning!r}")
        direction = Direction(self.direction)
        object.__setattr__(self, "direction", direction)
        if direction is Direction.HIGHER_IS_WORSE and self.critical < self.warning:
            raise ValueError(
                f"critical ({self.critical}) must be >= warning ({self.warning}) "
                "when higher values are worse"
            )
        if direction is Direction.LOWER_IS_WORSE and self.critical > self.warning:
            raise ValueError(
                f"critical ({self.critical}) must be <= warning ({self.warning}) "
                "when lower values are worse"
            )

    @classmethod
    def from_config(cls, block: dict, direction: Direction) -> "Thresholds":
        return cls(critical=block["critical"], warning=block["warning"], direction=direction)


@dataclass(frozen=True)
class ClassifiedFact:
    subject: str
    value: Any
    tier: Tier
    label: str
    threshold: Optional[float] = None
    method: Optional[str] = None
    unit: str = ""


def _fmt(value: Any, unit: str) -> str:
    if isinstance(value, float):
        value = f"{value:.1f}".rstrip("0").rstrip(".")
    return f"{value}{unit}"


class Classifier:
    """Classify facts and record Warning/Critical breaches in the ErrorLog.

    ``log`` may be ``None`` when only the tier is wanted.
    """

    def __init__(self, log: Optional[ErrorLog] = None) -> None:
        self.log = log

    def classify(
        self,
        value,
        thresholds: Thresholds,
        subject: str = "value",
        unit: str = "",
        method: Optional[str] = None,
    ) -> ClassifiedFact:
        """Return the tier for *value*.

        Raises:
            ValueError: for None, NaN, booleans or non-numeric values. Callers
                filter unavailable facts before classifying.
        """
        if not is_number(value):
            raise ValueError(f"Cannot classify {subject}: {value!r} is not a number")

        tier, threshold = Tier.GOOD, None
        if thresholds.direction is Direction.HIGHER_IS_WORSE:
            if value > thresholds.critical:
                tier, threshold = Tier.CRITICAL, thresholds.critical
            elif value > thresholds.warning:
                tier, threshold = Tier.WARNING, thresholds.warning
            relation = "above"
        else:
            if value < thresholds.critical:
                tier, threshold = Tier.CRITICAL, thresholds.critical
            elif value < thresholds.warning:
                tier, threshold = Tier.WARNING, thresholds.warning
            relation = "below"

        if tier is Tier.GOOD:
            label = f"{subject} OK ({_fmt(value, unit)})"
        else:
            label = (
                f"{subject} {tier.value.lower()}: {_fmt(value, unit)} "
                f"({relation} {_fmt(threshold, unit)})"
            )
        fact = ClassifiedFact(
            subject=subject,
            value=value,
            tier=tier,
            label=label,
            threshold=threshold,
            method=method,
            unit=unit,
        )
        self._record(fact)
        return fact

    def classify_flag(
        self,
        value,
        subject: str,
        expected: bool = True,
        tier: Tier = Tier.CRITICAL,
        method: Optional[str] = None,
        detail: str = "",
    ) -> ClassifiedFact:
        """Classify a boolean fact; anything but *expected* lands in *tier*."""
        if not isinstance(value, bool):
            raise ValueError(f"Cannot classify {subject}: {value!r} is not a boolean")
        if value is expected:
            fact = ClassifiedFact(subject, value, Tier.GOOD, f"{subject} OK", method=method)
        else:
            state = "enabled" if value else "disabled"
            label = f"{subject} is {state}" + (f" ({detail})" if detail else "")
            fact = ClassifiedFact(subject, value, Tier(tier), label, method=method)
        self._record(fact)
        return fact

    def _record(self, fact: ClassifiedFact) -> None:
        if self.log is None or fact.tier.severity is None:
            return
        self.log.append(Incident(
            section=fact.subject,
            message=fact.label,
            category="Threshold",
            severity=fact.tier.severity,
        ))
