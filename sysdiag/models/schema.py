"""Pydantic v2 schema definitions for the diagnostic report."""

from __future__ import annotations

import dataclasses
from typing import Any, Optional

from pydantic import BaseModel

from ..core import Incident


class IncidentModel(BaseModel):
    timestamp: str
    section: str
    message: str
    category: str = "General"
    target: Optional[str] = None
    severity: str = "Error"
    source_line: int = 0
    source_operation: str = ""

    @classmethod
    def from_incident(cls, incident: Incident) -> "IncidentModel":
        return cls(
            timestamp=incident.timestamp.isoformat(),
            section=incident.section,
            message=incident.message,
            category=incident.category,
            target=incident.target,
            severity=incident.severity.value,
            source_line=incident.source_line,
            source_operation=incident.source_operation,
        )


class FactModel(BaseModel):
    name: str
    subject: str
    available: bool = False
    value: Any = None
    method: Optional[str] = None
    tier: Optional[str] = None
    label: str = "Not available"
    threshold: Optional[float] = None

    @classmethod
    def from_result(cls, result) -> "FactModel":
        value = result.value
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            value = dataclasses.asdict(value)
        classified = result.classified
        return cls(
            name=result.name,
            subject=result.subject,
            available=result.available,
            value=value,
            method=result.method,
            tier=classified.tier.value if classified else None,
            label=classified.label if classified else f"{result.subject}: not available",
            threshold=classified.threshold if classified else None,
        )


class SeveritySummary(BaseModel):
    critical: int = 0
    error: int = 0
    warning: int = 0
    info: int = 0
    total: int = 0

    @classmethod
    def from_counts(cls, counts: dict[str, int]) -> "SeveritySummary":
        return cls(
            critical=counts.get("Critical", 0),
            error=counts.get("Error", 0),
            warning=counts.get("Warning", 0),
            info=counts.get("Info", 0),
            total=sum(counts.values()),
        )


class DiagnosticReport(BaseModel):
    schema_version: str = "1.0"
    tool_version: str
    run_id: str
    collected_at: str
    hostname: Optional[str] = None
    facts: list[FactModel] = []
    summary: SeveritySummary = SeveritySummary()
    incidents: list[IncidentModel] = []
