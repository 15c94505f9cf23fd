"""Base class for checks: a named, ordered list of strategies plus classification."""

import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from ..core import (
    NOT_AVAILABLE,
    ClassifiedFact,
    Classifier,
    Collected,
    Direction,
    MultiStrategyCollector,
    Strategy,
    Thresholds,
)


@dataclass
class FactResult:
    """Outcome of one fact: a classified value, or unavailable (classified=None)."""

    name: str
    subject: str
    value: Any = None
    method: Optional[str] = None
    classified: Optional[ClassifiedFact] = None

    @property
    def available(self) -> bool:
        return self.method is not None


class BaseCheck(ABC):
    name: str = "base"
    subject: str = "Base"
    essential: bool = False
    direction: Direction = Direction.HIGHER_IS_WORSE
    default_thresholds: Optional[dict] = None

    def __init__(self, config: Optional[dict] = None, platform: Optional[str] = None) -> None:
        self.config = config or {}
        self.platform = platform or sys.platform

    @property
    def is_windows(self) -> bool:
        return self.platform == "win32"

    @property
    def is_macos(self) -> bool:
        return self.platform == "darwin"

    def thresholds(self) -> Thresholds:
        block = (self.config.get("thresholds") or {}).get(self.name) or self.default_thresholds
        return Thresholds.from_config(block, self.direction)

    @abstractmethod
    def strategies(self) -> list[Strategy]:
        """Return strategies, most precise first."""
        ...

    def normalize(self, value: Any) -> Any:
        return value

    @abstractmethod
    def classify(self, value: Any, method: str, classifier: Classifier) -> Optional[ClassifiedFact]:
        ...

    def collect(self, collector: MultiStrategyCollector, classifier: Classifier) -> list[FactResult]:
        """Collect and classify; never raises for fact-gathering failures."""
        outcome = collector.collect(self.subject, self.strategies(), essential=self.essential)
        if outcome is NOT_AVAILABLE:
            return [FactResult(name=self.name, subject=self.subject)]
        return [self._result(outcome, classifier)]

    def _result(self, outcome: Collected, classifier: Classifier) -> FactResult:
        value = self.normalize(outcome.value)
        return FactResult(
            name=self.name,
            subject=self.subject,
            value=value,
            method=outcome.method,
            classified=self.classify(value, outcome.method, classifier),
        )
