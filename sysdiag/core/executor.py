"""Run a single fact-gathering operation without letting it abort the run."""

from __future__ import annotations

import subprocess
import sys
import threading
import traceback
from dataclasses import dataclass
from typing import IO, Any, Callable, Optional

from .error_log import ErrorLog
from .incident import Incident, Severity, parse_severity

# Console default: whatever sys.stderr is when the line is printed
STDERR = object()


class CollectionError(Exception):
    """A fact-gathering failure carrying structured incident fields.

    Operations raise this when they know more than a bare message: what they
    were acting on (*target*), how to file it (*category*) or how bad it is
    (*severity*).
    """

    def __init__(
        self,
        message: str,
        category: str = "General",
        target: Optional[str] = None,
        severity: Severity = Severity.ERROR,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.target = target
        self.severity = parse_severity(severity)


class StrategyTimeout(CollectionError):
    """Raised when an operation outlives its timeout.

    *operation* and *line* name the hung callable, not the waiting thread.
    """

    def __init__(self, seconds: float, operation: str = "", line: int = 0) -> None:
        super().__init__(f"operation timed out after {seconds:g}s", category="Timeout")
        self.seconds = seconds
        self.operation = operation
        self.line = line


@dataclass(frozen=True)
class Outcome:
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None


def run_with_timeout(operation: Callable[[], Any], timeout: Optional[float]) -> Any:
    """Call *operation*, raising StrategyTimeout if it runs past *timeout* seconds.

    The worker thread is a daemon: a hung OS query is abandoned, not joined.
    """
    if timeout is None or timeout <= 0:
        return operation()

    box: dict = {}

    def _target() -> None:
        try:
            box["value"] = operation()
        except BaseException as exc:  # noqa: BLE001
            box["error"] = exc

    worker = threading.Thread(target=_target, name="sysdiag-strategy", daemon=True)
    worker.start()
    worker.join(timeout)
    if worker.is_alive():
        code = getattr(operation, "__code__", None)
        raise StrategyTimeout(
            timeout,
            operation=getattr(operation, "__qualname__", "") or "",
            line=getattr(code, "co_firstlineno", 0) or 0,
        )
    if "error" in box:
        raise box["error"]
    return box.get("value")


def incident_from_exception(section: str, exc: BaseException) -> Incident:
    """Build an Incident from whatever structured detail *exc* carries."""
    message = str(exc).strip() or type(exc).__name__
    category = type(exc).__name__
    target = None
    severity = Severity.ERROR

    if isinstance(exc, CollectionError):
        category, target, severity = exc.category, exc.target, exc.severity
    elif isinstance(exc, OSError) and exc.filename:
        target = str(exc.filename)
    elif isinstance(exc, (subprocess.CalledProcessError, subprocess.TimeoutExpired)):
        cmd = exc.cmd
        target = " ".join(map(str, cmd)) if isinstance(cmd, (list, tuple)) else str(cmd)

    line, operation = 0, ""
    frames = traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
    if frames:
        line, operation = frames[-1].lineno or 0, frames[-1].name or ""
    if isinstance(exc, StrategyTimeout):
        line, operation = exc.line, exc.operation

    return Incident(
        section=section,
        message=message,
        category=category,
        target=target,
        severity=severity,
        source_line=line,
        source_operation=operation,
    )


def resolve_stream(stream: Any) -> Optional[IO[str]]:
    return sys.stderr if stream is STDERR else stream


class SafeExecutor:
    """Wrap fact-gathering operations so any failure becomes an Incident.

    Args:
        log:      ErrorLog that receives one Incident per failed operation.
        console:  Text stream for interactive warnings; ``STDERR`` (default)
                  follows the current sys.stderr. Pass ``None`` to keep the
                  console quiet.
        timeout:  Default bound in seconds for each operation; ``None``
                  means unbounded.
    """

    def __init__(
        self,
        log: ErrorLog,
        console: Any = STDERR,
        timeout: Optional[float] = None,
    ) -> None:
        self.log = log
        self.console = console
        self.timeout = timeout

    def attempt(self, operation: Callable[[], Any], timeout: Optional[float] = None) -> Outcome:
        """Run *operation* and report the result as data, never as an exception."""
        try:
            value = run_with_timeout(operation, timeout if timeout is not None else self.timeout)
        except Exception as exc:  # noqa: BLE001
            return Outcome(ok=False, error=exc)
        return Outcome(ok=True, value=value)

    def execute(
        self,
        section: str,
        operation: Callable[[], Any],
        default: Any = None,
        suppress: bool = False,
        timeout: Optional[float] = None,
    ) -> Any:
        """Return ``operation()``, or *default* after recording the failure."""
        outcome = self.attempt(operation, timeout)
        if outcome.ok:
            return outcome.value

        incident = incident_from_exception(section or "General", outcome.error)
        self.log.append(incident)
        if not suppress:
            self._warn(incident)
        return default

    def _warn(self, incident: Incident) -> None:
        stream = resolve_stream(self.console)
        if stream is None:
            return
        try:
            print(f"  [warn] {incident.section}: {incident.message}", file=stream, flush=True)
        except Exception:  # noqa: BLE001
            pass
