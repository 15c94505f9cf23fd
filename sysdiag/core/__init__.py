"""Error aggregation, fallback collection and threshold classification."""

from .classifier import ClassifiedFact, Classifier, Direction, Thresholds, Tier
from .collector import (
    NOT_AVAILABLE,
    Collected,
    MultiStrategyCollector,
    Strategy,
    clamp_percent,
    is_non_empty,
    is_number,
    is_present,
)
from .error_log import NO_INCIDENTS, ErrorLog
from .executor import STDERR, CollectionError, Outcome, SafeExecutor, StrategyTimeout
from .incident import SEVERITY_ORDER, Incident, Severity, parse_severity

__all__ = [
    "ClassifiedFact",
    "Classifier",
    "Collected",
    "CollectionError",
    "Direction",
    "ErrorLog",
    "Incident",
    "MultiStrategyCollector",
    "NOT_AVAILABLE",
    "NO_INCIDENTS",
    "Outcome",
    "SEVERITY_ORDER",
    "STDERR",
    "SafeExecutor",
    "Severity",
    "Strategy",
    "StrategyTimeout",
    "Thresholds",
    "Tier",
    "clamp_percent",
    "is_non_empty",
    "is_number",
    "is_present",
    "parse_severity",
]
