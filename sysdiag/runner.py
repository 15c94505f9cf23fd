"""One end-to-end diagnostic run: reset, collect, classify, assemble."""

from __future__ import annotations

import concurrent.futures
import datetime
import socket
import uuid
from typing import Any, Optional

from . import __version__
from .collectors import BaseCheck, FactResult, build_checks
from .config import default_config
from .core import Classifier, ErrorLog, MultiStrategyCollector, SafeExecutor
from .core.executor import STDERR, incident_from_exception, resolve_stream
from .models.schema import DiagnosticReport, FactModel, IncidentModel, SeveritySummary


class DiagnosticRun:
    """Own the ErrorLog for a run and drive every configured check.

    Args:
        config:   Resolved config dict (see ``sysdiag.config``).
        log:      ErrorLog to fill; a fresh one is created when omitted.
        console:  Stream for progress lines, or None. ``STDERR`` follows sys.stderr.
        checks:   Explicit check instances; built from *config* when omitted.
        quiet:    Record failures without printing executor warnings.
        warnings: Stream for executor warnings (``STDERR`` by default).
    """

    def __init__(
        self,
        config: Optional[dict] = None,
        log: Optional[ErrorLog] = None,
        console: Any = STDERR,
        checks: Optional[list[BaseCheck]] = None,
        quiet: bool = False,
        warnings: Any = STDERR,
    ) -> None:
        self.config = config if config is not None else default_config()
        self.log = log if log is not None else ErrorLog()
        self.console = console
        self.checks = checks if checks is not None else build_checks(self.config)

        # Bad threshold blocks are configuration bugs: fail before collecting
        for check in self.checks:
            if check.default_thresholds is not None:
                check.thresholds()

        timeout = (self.config.get("timeouts") or {}).get("strategy_seconds") or None
        self.executor = SafeExecutor(self.log, console=None if quiet else warnings)
        self.collector = MultiStrategyCollector(self.executor, timeout=timeout)
        self.classifier = Classifier(self.log)

    # ── collection ───────────────────────────────────────────────────────────

    def _run_check(self, check: BaseCheck) -> list[FactResult]:
        # Checks absorb strategy failures; this guards bugs in a check's own glue
        try:
            return check.collect(self.collector, self.classifier)
        except Exception as exc:  # noqa: BLE001
            self.log.append(incident_from_exception(check.subject, exc))
            return [FactResult(name=check.name, subject=check.subject)]

    def _progress(self, text: str) -> None:
        stream = resolve_stream(self.console)
        if stream is not None:
            print(text, file=stream, flush=True)

    def collect(self, parallel: bool = False, workers: int = 4) -> list[FactResult]:
        """Run every check; results keep the configured check order."""
        if not parallel:
            results: list[FactResult] = []
            for check in self.checks:
                self._progress(f"  - {check.subject}...")
                results.extend(self._run_check(check))
            return results

        by_check: dict[int, list[FactResult]] = {}
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {pool.submit(self._run_check, check): i for i, check in enumerate(self.checks)}
            for future in concurrent.futures.as_completed(futures):
                i = futures[future]
                by_check[i] = future.result()
                self._progress(f"  - {self.checks[i].subject}... done")
        return [r for i in sorted(by_check) for r in by_check[i]]

    # ── run ──────────────────────────────────────────────────────────────────

    def run(self, parallel: bool = False) -> DiagnosticReport:
        """Reset the log, collect and classify every fact, and build the report."""
        self.log.reset()
        results = self.collect(parallel=parallel)
        return self.build_report(results)

    def build_report(self, results: list[FactResult]) -> DiagnosticReport:
        return DiagnosticReport(
            tool_version=__version__,
            run_id=str(uuid.uuid4()),
            collected_at=datetime.datetime.now(datetime.timezone.utc).isoformat(),
            hostname=socket.gethostname(),
            facts=[FactModel.from_result(r) for r in results],
            summary=SeveritySummary.from_counts(self.log.summarize()),
            incidents=[IncidentModel.from_incident(i) for i in self.log.all()],
        )
