"""Shell helpers shared by the fact strategies."""

import json
import subprocess
import sys

from ..core import CollectionError

# When True, no PowerShell or external command is executed: run_powershell()
# returns an empty stub and require_output() raises CollectionError. Set by the
# CLI --dry-run flag before facts are collected.
DRY_RUN: bool = False


def _decode(raw: bytes) -> str:
    """Decode subprocess bytes with UTF-8; fall back to cp1252 then replace."""
    for enc in ("utf-8-sig", "utf-8", "cp1252"):
        try:
            return raw.decode(enc)
        except UnicodeDecodeError:
            continue
    return raw.decode("utf-8", errors="replace")


def _no_window_kwargs() -> dict:
    if sys.platform == "win32":
        return {"creationflags": 0x08000000}  # CREATE_NO_WINDOW
    return {}


def run_powershell(cmd: str, timeout: int = 30) -> str:
    """Run a PowerShell command and return stdout as a string.

    Returns '[]' immediately when DRY_RUN is True.
    Raises CollectionError on non-zero exit code.
    """
    if DRY_RUN:
        return "[]"

    # Force UTF-8 output encoding so JSON is readable regardless of system locale
    full_cmd = (
        "[Console]::OutputEncoding = [System.Text.Encoding]::UTF8; "
        "[Console]::InputEncoding  = [System.Text.Encoding]::UTF8; "
        + cmd
    )

    result = subprocess.run(
        ["powershell", "-NonInteractive", "-ExecutionPolicy", "Bypass", "-Command", full_cmd],
        capture_output=True,
        timeout=timeout,
        **_no_window_kwargs(),
    )
    stdout = _decode(result.stdout).strip()
    stderr = _decode(result.stderr).strip()

    if result.returncode != 0:
        raise CollectionError(
            stderr or f"PowerShell exited with code {result.returncode}",
            category="PowerShell",
            target=cmd.split("|", 1)[0].strip(),
        )
    return stdout


def command_succeeds(cmd: list[str], timeout: int = 15) -> bool:
    """Return True when *cmd* exits with status 0. False on any failure or in DRY_RUN."""
    if DRY_RUN:
        return False
    try:
        result = subprocess.run(cmd, capture_output=True, timeout=timeout, **_no_window_kwargs())
        return result.returncode == 0
    except Exception:
        return False


def require_output(cmd: list[str], timeout: int = 15) -> str:
    """Run *cmd* and return its stripped stdout.

    Raises:
        FileNotFoundError: the binary is not installed (filename = the command).
        subprocess.TimeoutExpired: the command ran past *timeout* seconds.
        CollectionError: a non-zero exit (stderr as the message), empty output,
            or DRY_RUN being set.
    """
    target = " ".join(cmd)
    if DRY_RUN:
        raise CollectionError("not run in dry-run mode", category="Command", target=target)
    try:
        result = subprocess.run(cmd, capture_output=True, timeout=timeout, **_no_window_kwargs())
    except FileNotFoundError as exc:
        raise FileNotFoundError(exc.errno, exc.strerror or "command not found", target) from None

    stdout = _decode(result.stdout).strip()
    if result.returncode != 0:
        stderr = _decode(result.stderr).strip()
        raise CollectionError(
            stderr or f"exit {result.returncode}", category="Command", target=target
        )
    if not stdout:
        raise CollectionError("command produced no output", category="Command", target=target)
    return stdout


def loads_array(ps_output: str) -> list:
    """Parse PowerShell JSON output; always return a list."""
    try:
        data = json.loads(ps_output)
        return data if isinstance(data, list) else [data]
    except Exception:
        return []


def loads_obj(ps_output: str) -> dict:
    try:
        data = json.loads(ps_output)
        return data if isinstance(data, dict) else {}
    except Exception:
        return {}


def to_float(raw, what: str) -> float:
    """Convert command output to float, raising CollectionError when it isn't one."""
    try:
        return float(str(raw).strip().replace(",", "."))
    except (TypeError, ValueError):
        raise CollectionError(f"unexpected {what} reading: {raw!r}", category="Parse") from None
