"""Run-scoped, ordered record of everything that went wrong during a run.

The log is owned by the run that creates it and handed to every collaborator
that needs to append or read. ``append`` never raises: recording an error must
not itself abort the diagnostics.

Export format (UTF-8 text)::

    System Diagnostics Error Log
    Generated: 2026-10-19 09:30:00
    Total incidents: 2
    ============================================================

    [2026-10-19 09:29:58] ERROR
      Section:  CPU
      Message:  Access is denied
      Category: PermissionError
      Target:   C:\\pagefile.sys
    ------------------------------------------------------------
"""

from __future__ import annotations

import datetime
import sys
import threading
from pathlib import Path
from typing import IO, Union

from .incident import Incident, Severity, SEVERITY_ORDER

NO_INCIDENTS = "No incidents were recorded during this run."

_TS_FORMAT = "%Y-%m-%d %H:%M:%S"
_RULE = "=" * 60
_SEP = "-" * 60


class ErrorLog:
    def __init__(self) -> None:
        self._incidents: list[Incident] = []
        self._lock = threading.Lock()

    # ── mutation ──────────────────────────────────────────────────────────────

    def reset(self) -> None:
        """Drop every incident. Called once at the start of each run."""
        with self._lock:
            self._incidents.clear()

    def append(self, incident: Incident) -> None:
        """Add *incident* to the end of the log; falls back to stderr on failure."""
        try:
            with self._lock:
                self._incidents.append(incident)
        except Exception as exc:  # noqa: BLE001
            _write_side_channel(incident, exc)

    # ── read-only views ───────────────────────────────────────────────────────

    def count(self) -> int:
        with self._lock:
            return len(self._incidents)

    def __len__(self) -> int:
        return self.count()

    def all(self) -> tuple[Incident, ...]:
        """Return the incidents in insertion order as an immutable snapshot."""
        with self._lock:
            return tuple(self._incidents)

    def __iter__(self):
        return iter(self.all())

    def summarize(self) -> dict[str, int]:
        """Return incident counts keyed by severity, most severe first."""
        summary = {sev.value: 0 for sev in SEVERITY_ORDER}
        for incident in self.all():
            summary[incident.severity.value] += 1
        return summary

    def worst(self) -> Severity | None:
        """Return the highest severity recorded, or None for an empty log."""
        incidents = self.all()
        if not incidents:
            return None
        return max((i.severity for i in incidents), key=lambda s: s.rank)

    # ── export ────────────────────────────────────────────────────────────────

    def render(self) -> str:
        """Return the export text for the current log contents."""
        incidents = self.all()
        lines = [
            "System Diagnostics Error Log",
            f"Generated: {datetime.datetime.now().strftime(_TS_FORMAT)}",
            f"Total incidents: {len(incidents)}",
            _RULE,
            "",
        ]
        if not incidents:
            lines.append(NO_INCIDENTS)
        for incident in incidents:
            lines.extend(_format_incident(incident))
        return "\n".join(lines) + "\n"

    def export(self, destination: Union[str, Path, IO[str]]) -> None:
        """Write the log as human-readable text to a path or text stream.

        Raises:
            OSError: if *destination* cannot be written. The in-memory log is
                left untouched.
        """
        text = self.render()
        if hasattr(destination, "write"):
            destination.write(text)
            return
        path = Path(destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")


def _format_incident(incident: Incident) -> list[str]:
    block = [
        f"[{incident.timestamp.strftime(_TS_FORMAT)}] {incident.severity.value.upper()}",
        f"  Section:  {incident.section}",
        f"  Message:  {incident.message}",
        f"  Category: {incident.category}",
    ]
    if incident.target:
        block.append(f"  Target:   {incident.target}")
    if incident.source_line:
        where = f"{incident.source_line}"
        if incident.source_operation:
            where += f" ({incident.source_operation})"
        block.append(f"  Line:     {where}")
    block.append(_SEP)
    return block


def _write_side_channel(incident: Incident, exc: BaseException) -> None:
    try:
        print(
            f"  [error-log] could not record incident ({exc}); "
            f"{incident.severity.value} {incident.section}: {incident.message}",
            file=sys.stderr,
            flush=True,
        )
    except Exception:  # noqa: BLE001
        pass
