"""Tests for SafeExecutor: failures become incidents, never exceptions."""

import io
import subprocess
import threading
import unittest
from contextlib import redirect_stderr

from sysdiag.core import STDERR, CollectionError, ErrorLog, SafeExecutor, Severity


def _executor(console=None):
    log = ErrorLog()
    return SafeExecutor(log, console=console), log


class TestSuccess(unittest.TestCase):

    def test_returns_value_unchanged(self):
        ex, log = _executor()
        payload = {"load": 12.5}
        self.assertIs(ex.execute("CPU", lambda: payload, default=None), payload)
        self.assertEqual(log.count(), 0)

    def test_falsy_results_are_not_failures(self):
        ex, log = _executor()
        self.assertEqual(ex.execute("CPU", lambda: 0, default=-1), 0)
        self.assertIsNone(ex.execute("CPU", lambda: None, default=-1))
        self.assertEqual(log.count(), 0)


class TestFailure(unittest.TestCase):

    def test_any_exception_returns_default_and_logs_once(self):
        errors = [
            ValueError("bad value"),
            RuntimeError("runtime"),
            KeyError("missing"),
            OSError("os error"),
            ZeroDivisionError("div"),
            CollectionError("structured"),
        ]
        for exc in errors:
            ex, log = _executor()

            def op(exc=exc):
                raise exc

            self.assertEqual(ex.execute("Section", op, default="fallback"), "fallback")
            self.assertEqual(log.count(), 1, type(exc).__name__)

    def test_default_returned_verbatim(self):
        ex, _ = _executor()
        default = ["no", "adapters"]
        result = ex.execute("Network", lambda: 1 / 0, default=default)
        self.assertIs(result, default)

    def test_incident_fields_from_plain_exception(self):
        ex, log = _executor()

        def query_counters():
            raise RuntimeError("counter unavailable")

        ex.execute("CPU", query_counters)
        inc = log.all()[0]
        self.assertEqual(inc.section, "CPU")
        self.assertEqual(inc.message, "counter unavailable")
        self.assertEqual(inc.category, "RuntimeError")
        self.assertIs(inc.severity, Severity.ERROR)
        self.assertGreater(inc.source_line, 0)
        self.assertEqual(inc.source_operation, "query_counters")

    def test_structured_error_fields(self):
        ex, log = _executor()

        def op():
            raise CollectionError(
                "definitions stale", category="Antivirus", target="MsMpEng",
                severity=Severity.WARNING,
            )

        ex.execute("Antivirus", op)
        inc = log.all()[0]
        self.assertEqual(inc.category, "Antivirus")
        self.assertEqual(inc.target, "MsMpEng")
        self.assertIs(inc.severity, Severity.WARNING)

    def test_oserror_filename_becomes_target(self):
        ex, log = _executor()

        def op():
            raise PermissionError(13, "Access is denied", "C:\\pagefile.sys")

        ex.execute("Disk", op)
        inc = log.all()[0]
        self.assertEqual(inc.target, "C:\\pagefile.sys")
        self.assertEqual(inc.category, "PermissionError")

    def test_subprocess_command_becomes_target(self):
        ex, log = _executor()

        def op():
            raise subprocess.CalledProcessError(1, ["netsh", "advfirewall"])

        ex.execute("Firewall", op)
        self.assertEqual(log.all()[0].target, "netsh advfirewall")

    def test_message_less_exception_degrades_to_type_name(self):
        ex, log = _executor()

        class Weird(Exception):
            pass

        def op():
            raise Weird()

        ex.execute("Misc", op)
        self.assertEqual(log.all()[0].message, "Weird")

    def test_empty_section_gets_label(self):
        ex, log = _executor()
        ex.execute("", lambda: 1 / 0)
        self.assertEqual(log.all()[0].section, "General")

    def test_keyboard_interrupt_is_not_absorbed(self):
        ex, _ = _executor()

        def op():
            raise KeyboardInterrupt

        with self.assertRaises(KeyboardInterrupt):
            ex.execute("CPU", op)


class TestConsole(unittest.TestCase):

    def test_warning_printed_when_not_suppressed(self):
        buf = io.StringIO()
        ex, _ = _executor(console=buf)
        ex.execute("Memory", lambda: 1 / 0)
        self.assertIn("[warn] Memory:", buf.getvalue())

    def test_suppressed_failure_is_recorded_but_silent(self):
        buf = io.StringIO()
        ex, log = _executor(console=buf)
        ex.execute("Memory", lambda: 1 / 0, suppress=True)
        self.assertEqual(buf.getvalue(), "")
        self.assertEqual(log.count(), 1)

    def test_success_prints_nothing(self):
        buf = io.StringIO()
        ex, _ = _executor(console=buf)
        ex.execute("Memory", lambda: 42)
        self.assertEqual(buf.getvalue(), "")

    def test_default_console_follows_current_stderr(self):
        log = ErrorLog()
        ex = SafeExecutor(log)
        self.assertIs(ex.console, STDERR)
        buf = io.StringIO()
        with redirect_stderr(buf):
            ex.execute("Memory", lambda: 1 / 0)
        self.assertIn("[warn] Memory:", buf.getvalue())

    def test_none_console_is_silent(self):
        log = ErrorLog()
        ex = SafeExecutor(log, console=None)
        with redirect_stderr(io.StringIO()) as buf:
            ex.execute("Memory", lambda: 1 / 0)
        self.assertEqual(buf.getvalue(), "")


class TestTimeout(unittest.TestCase):

    def test_slow_operation_times_out(self):
        release = threading.Event()
        ex, log = _executor()
        try:
            result = ex.execute("Gateway", lambda: release.wait(5), default="n/a", timeout=0.05)
        finally:
            release.set()
        self.assertEqual(result, "n/a")
        self.assertEqual(log.count(), 1)
        self.assertEqual(log.all()[0].category, "Timeout")

    def test_fast_operation_within_timeout(self):
        ex, log = _executor()
        self.assertEqual(ex.execute("Gateway", lambda: "10.0.0.1", timeout=5), "10.0.0.1")
        self.assertEqual(log.count(), 0)

    def test_error_inside_timed_operation_is_recorded(self):
        ex, log = _executor()
        ex.execute("Gateway", lambda: 1 / 0, default=None, timeout=5)
        self.assertEqual(log.all()[0].category, "ZeroDivisionError")

    def test_timeout_names_hung_operation(self):
        release = threading.Event()

        def wait_for_gateway():
            release.wait(5)

        ex, log = _executor()
        try:
            ex.execute("Gateway", wait_for_gateway, timeout=0.05)
        finally:
            release.set()
        inc = log.all()[0]
        self.assertTrue(inc.source_operation.endswith("wait_for_gateway"))
        self.assertEqual(inc.source_line, wait_for_gateway.__code__.co_firstlineno)

    def test_executor_default_timeout(self):
        release = threading.Event()
        log = ErrorLog()
        ex = SafeExecutor(log, console=None, timeout=0.05)
        try:
            ex.execute("Gateway", lambda: release.wait(5))
        finally:
            release.set()
        self.assertEqual(log.all()[0].category, "Timeout")


class TestAttempt(unittest.TestCase):

    def test_outcome_ok(self):
        ex, _ = _executor()
        outcome = ex.attempt(lambda: 5)
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.value, 5)
        self.assertIsNone(outcome.error)

    def test_outcome_error_does_not_log(self):
        ex, log = _executor()
        outcome = ex.attempt(lambda: 1 / 0)
        self.assertFalse(outcome.ok)
        self.assertIsInstance(outcome.error, ZeroDivisionError)
        self.assertEqual(log.count(), 0)


if __name__ == "__main__":
    unittest.main()
