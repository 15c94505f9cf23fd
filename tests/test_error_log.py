"""Tests for the run-scoped ErrorLog.

Run with:  python -m pytest tests/  or  python -m unittest discover tests/
"""

import io
import tempfile
import unittest
import unittest.mock as mock
from pathlib import Path

from sysdiag.core import NO_INCIDENTS, ErrorLog, Incident, Severity


def _incident(section="CPU", message="boom", severity=Severity.ERROR, **kw) -> Incident:
    return Incident(section=section, message=message, severity=severity, **kw)


class TestAppendAndCount(unittest.TestCase):

    def test_count_matches_appends(self):
        log = ErrorLog()
        for i in range(7):
            log.append(_incident(message=f"m{i}"))
        self.assertEqual(log.count(), 7)
        self.assertEqual(len(log), 7)

    def test_all_preserves_insertion_order(self):
        log = ErrorLog()
        for i in range(5):
            log.append(_incident(message=f"m{i}"))
        self.assertEqual([i.message for i in log.all()], ["m0", "m1", "m2", "m3", "m4"])

    def test_all_is_restartable_and_read_only(self):
        log = ErrorLog()
        log.append(_incident())
        view = log.all()
        self.assertEqual(list(view), list(view))
        self.assertEqual(log.count(), 1)
        self.assertFalse(hasattr(view, "append"))

    def test_snapshot_not_affected_by_later_appends(self):
        log = ErrorLog()
        log.append(_incident())
        view = log.all()
        log.append(_incident())
        self.assertEqual(len(view), 1)
        self.assertEqual(log.count(), 2)

    def test_append_failure_goes_to_stderr(self):
        log = ErrorLog()
        log._incidents = mock.Mock()
        log._incidents.append.side_effect = MemoryError("out of memory")
        with mock.patch("sys.stderr", new_callable=io.StringIO) as err:
            log.append(_incident(section="Disk", message="lost?"))
        self.assertIn("Disk", err.getvalue())
        self.assertIn("lost?", err.getvalue())


class TestReset(unittest.TestCase):

    def test_reset_empties_log(self):
        log = ErrorLog()
        for _ in range(3):
            log.append(_incident())
        log.reset()
        self.assertEqual(log.count(), 0)
        self.assertEqual(log.all(), ())

    def test_reset_on_empty_log(self):
        log = ErrorLog()
        log.reset()
        log.reset()
        self.assertEqual(log.count(), 0)


class TestSummarize(unittest.TestCase):

    def test_empty_log_all_zero(self):
        self.assertEqual(
            ErrorLog().summarize(),
            {"Critical": 0, "Error": 0, "Warning": 0, "Info": 0},
        )

    def test_counts_by_severity(self):
        log = ErrorLog()
        for sev in (Severity.CRITICAL, Severity.ERROR, Severity.ERROR, Severity.INFO):
            log.append(_incident(severity=sev))
        summary = log.summarize()
        self.assertEqual(summary["Critical"], 1)
        self.assertEqual(summary["Error"], 2)
        self.assertEqual(summary["Warning"], 0)
        self.assertEqual(summary["Info"], 1)

    def test_totals_equal_count(self):
        log = ErrorLog()
        for sev in list(Severity) * 3:
            log.append(_incident(severity=sev))
        self.assertEqual(sum(log.summarize().values()), log.count())

    def test_worst(self):
        log = ErrorLog()
        self.assertIsNone(log.worst())
        log.append(_incident(severity=Severity.WARNING))
        log.append(_incident(severity=Severity.CRITICAL))
        log.append(_incident(severity=Severity.INFO))
        self.assertIs(log.worst(), Severity.CRITICAL)


class TestIncident(unittest.TestCase):

    def test_defaults(self):
        inc = Incident(section="Firewall", message="query failed")
        self.assertEqual(inc.category, "General")
        self.assertIs(inc.severity, Severity.ERROR)
        self.assertIsNone(inc.target)
        self.assertEqual(inc.source_line, 0)
        self.assertEqual(inc.source_operation, "")

    def test_immutable(self):
        inc = _incident()
        with self.assertRaises(Exception):
            inc.message = "changed"

    def test_severity_from_string(self):
        self.assertIs(_incident(severity="warning").severity, Severity.WARNING)

    def test_unknown_severity_rejected(self):
        with self.assertRaises(ValueError):
            _incident(severity="catastrophic")


class TestExport(unittest.TestCase):

    def _mixed_log(self) -> ErrorLog:
        log = ErrorLog()
        log.append(_incident("CPU", "counter query failed", Severity.ERROR))
        log.append(_incident("Disk C:\\", "only 7% free", Severity.CRITICAL))
        log.append(_incident("Uptime", "35 days since reboot", Severity.WARNING))
        return log

    def test_export_contains_each_incident(self):
        text = self._mixed_log().render()
        for fragment in ("CPU", "counter query failed", "ERROR",
                         "Disk C:\\", "only 7% free", "CRITICAL",
                         "Uptime", "35 days since reboot", "WARNING"):
            self.assertIn(fragment, text)
        self.assertIn("Total incidents: 3", text)
        self.assertNotIn(NO_INCIDENTS, text)

    def test_export_line_count_is_deterministic(self):
        text = self._mixed_log().render()
        # 5 header lines + 3 blocks of (severity, section, message, category, separator)
        self.assertEqual(len(text.splitlines()), 5 + 3 * 5)

    def test_optional_fields_only_when_present(self):
        log = ErrorLog()
        log.append(_incident(target="C:\\pagefile.sys", source_line=42, source_operation="probe"))
        log.append(_incident())
        text = log.render()
        self.assertEqual(text.count("Target:"), 1)
        self.assertEqual(text.count("Line:"), 1)
        self.assertIn("42 (probe)", text)

    def test_empty_log_placeholder(self):
        text = ErrorLog().render()
        self.assertIn(NO_INCIDENTS, text)
        self.assertIn("Total incidents: 0", text)
        self.assertNotIn("Section:", text)

    def test_export_writes_utf8_file(self):
        log = self._mixed_log()
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "logs" / "errors.txt"
            log.export(path)
            text = path.read_text(encoding="utf-8")
        self.assertIn("only 7% free", text)

    def test_export_to_stream(self):
        buf = io.StringIO()
        self._mixed_log().export(buf)
        self.assertIn("Total incidents: 3", buf.getvalue())

    def test_export_failure_raises_and_keeps_state(self):
        log = self._mixed_log()
        with tempfile.TemporaryDirectory() as tmp:
            blocker = Path(tmp) / "not_a_dir"
            blocker.write_text("x", encoding="utf-8")
            with self.assertRaises(OSError):
                log.export(blocker / "errors.txt")
        self.assertEqual(log.count(), 3)


if __name__ == "__main__":
    unittest.main()
