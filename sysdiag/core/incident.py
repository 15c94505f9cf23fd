"""Incident record and severity tiers."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Severity(str, Enum):
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        return _RANK[self]


_RANK = {
    Severity.INFO:     0,
    Severity.WARNING:  1,
    Severity.ERROR:    2,
    Severity.CRITICAL: 3,
}

# Display / summary order, most severe first
SEVERITY_ORDER = (Severity.CRITICAL, Severity.ERROR, Severity.WARNING, Severity.INFO)


def _now() -> datetime.datetime:
    return datetime.datetime.now()


@dataclass(frozen=True)
class Incident:
    """One recorded failure or notable condition during a run."""

    section: str
    message: str
    category: str = "General"
    target: Optional[str] = None
    severity: Severity = Severity.ERROR
    source_line: int = 0
    source_operation: str = ""
    timestamp: datetime.datetime = field(default_factory=_now)

    def __post_init__(self) -> None:
        # Accept "warning" / "Warning" / Severity.WARNING alike
        if not isinstance(self.severity, Severity):
            object.__setattr__(self, "severity", parse_severity(self.severity))


def parse_severity(value) -> Severity:
    """Return the Severity matching *value* (case-insensitive name or value)."""
    if isinstance(value, Severity):
        return value
    text = str(value).strip().lower()
    for sev in Severity:
        if text in (sev.value.lower(), sev.name.lower()):
            return sev
    raise ValueError(f"Unknown severity: {value!r}")
