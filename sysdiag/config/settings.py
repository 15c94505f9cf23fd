"""Configuration loader for sysdiag.

Resolution order (first match wins):
  1. --config <path> CLI flag (explicit_path argument)
  2. SYSDIAG_CONFIG environment variable
  3. Local system fallback:
       Windows: %PROGRAMDATA%\\sysdiag\\sysdiag.yaml
       macOS:   /Library/Application Support/sysdiag/sysdiag.yaml
       Linux:   /etc/sysdiag/sysdiag.yaml

Placeholder expansion:
  String values in the config may contain %VARNAME% tokens (Windows env-var
  style). These are expanded using the current process environment.
  Example: log_file: C:\\Support\\%COMPUTERNAME%-errors.txt
"""

from __future__ import annotations

import copy
import getpass
import os
import re
import socket
import sys
import tempfile
from pathlib import Path
from typing import Any

import yaml

_CONFIG_ENV = "SYSDIAG_CONFIG"

# Default config schema with all supported keys and their default values.
_DEFAULTS: dict[str, Any] = {
    "thresholds": {
        "cpu_load":    {"critical": 90, "warning": 75},   # % busy, higher is worse
        "memory_used": {"critical": 90, "warning": 80},   # % used, higher is worse
        "disk_free":   {"critical": 10, "warning": 20},   # % free, lower is worse
        "uptime_days": {"critical": 60, "warning": 30},   # days, higher is worse
    },
    "timeouts": {
        "strategy_seconds": 30,   # 0 = unbounded
    },
    "essential_facts": ["antivirus"],
    "checks": {},                 # <name>: false disables a check
    "connectivity": {
        "targets": [
            "https://www.msftconnecttest.com/connecttest.txt",
            "1.1.1.1:53",
            "8.8.8.8:53",
        ],
        "probe_seconds": 5,
    },
    "output": {
        "report_file": "diagnostics.json",
        "log_file":    None,
    },
}


# ── path helpers ──────────────────────────────────────────────────────────────

def _local_config_dir() -> Path:
    """Return the platform-specific directory for the local config file."""
    if sys.platform == "win32":
        base = os.environ.get("PROGRAMDATA", r"C:\ProgramData")
        return Path(base) / "sysdiag"
    elif sys.platform == "darwin":
        return Path("/Library/Application Support/sysdiag")
    else:
        return Path("/etc/sysdiag")


def _local_config_path() -> Path:
    return _local_config_dir() / "sysdiag.yaml"


# ── YAML loading ──────────────────────────────────────────────────────────────

def _load_yaml(path: Path) -> dict:
    """Load a YAML file and return its top-level mapping.

    Raises:
        ValueError: if the file cannot be read, is not valid YAML, or is not
            a mapping.
    """
    try:
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Config file is not valid YAML: {path}: {exc}") from exc
    except OSError as exc:
        raise ValueError(f"Cannot read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Config must be a YAML mapping, got {type(data).__name__}: {path}")
    return data


# ── merging and expansion ─────────────────────────────────────────────────────

def _deep_merge(base: dict, override: dict) -> dict:
    """Return a new dict with override merged recursively into base."""
    result = copy.deepcopy(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


_PLACEHOLDER_RE = re.compile(r"%([A-Za-z0-9_]+)%")


def _build_expansion_map() -> dict[str, str]:
    """Build a token -> value map from the environment.

    COMPUTERNAME, USERNAME and TEMP are always populated, so the same config
    file works on macOS and Linux where those variables are not set.
    """
    mapping: dict[str, str] = dict(os.environ)

    if "COMPUTERNAME" not in mapping:
        mapping["COMPUTERNAME"] = socket.gethostname().split(".")[0].upper()

    if "USERNAME" not in mapping:
        try:
            mapping["USERNAME"] = getpass.getuser()
        except Exception:
            mapping["USERNAME"] = "unknown"

    if "TEMP" not in mapping:
        mapping["TEMP"] = tempfile.gettempdir()

    return mapping


def _expand_placeholder(value: str, _map: dict[str, str] | None = None) -> str:
    """Expand %VARNAME% tokens; unknown tokens are left unchanged."""
    if _map is None:
        _map = _build_expansion_map()

    def _replace(m: re.Match) -> str:
        return _map.get(m.group(1), m.group(0))

    return _PLACEHOLDER_RE.sub(_replace, value)


def _expand_strings(obj: Any, _map: dict[str, str] | None = None) -> None:
    """Recursively expand %VARNAME% placeholders in all string values (in-place)."""
    if _map is None:
        _map = _build_expansion_map()
    if isinstance(obj, dict):
        for key, val in obj.items():
            if isinstance(val, str):
                obj[key] = _expand_placeholder(val, _map)
            else:
                _expand_strings(val, _map)
    elif isinstance(obj, list):
        for i, val in enumerate(obj):
            if isinstance(val, str):
                obj[i] = _expand_placeholder(val, _map)
            else:
                _expand_strings(val, _map)


# ── public API ────────────────────────────────────────────────────────────────

def default_config() -> dict:
    """Return a fresh copy of the built-in defaults."""
    return copy.deepcopy(_DEFAULTS)


def load_config(explicit_path: str | None = None) -> dict:
    """Load and return the resolved configuration dict.

    Args:
        explicit_path: Path passed via ``--config``. When provided, this is
            used exclusively and an error is raised if the file is missing.
            If ``None`` the auto-resolution chain is used.

    Returns:
        Config dict deeply merged over ``_DEFAULTS``.  All ``%VARNAME%``
        placeholders in string values are expanded.

    Raises:
        FileNotFoundError: If ``explicit_path`` is given but does not exist.
        ValueError: If the explicit file is unreadable, not valid YAML, or not
            a mapping. A bad SYSDIAG_CONFIG or local file is reported and
            skipped.
    """
    raw: dict = {}

    if explicit_path is not None:
        p = Path(explicit_path)
        if not p.exists():
            raise FileNotFoundError(f"Config file not found: {p}")
        raw = _load_yaml(p)

    else:
        env_path_str = os.environ.get(_CONFIG_ENV)
        if env_path_str:
            env_p = Path(env_path_str)
            if env_p.exists():
                try:
                    raw = _load_yaml(env_p)
                except ValueError as exc:
                    print(f"  [config] Warning: ignoring {env_p}: {exc}", file=sys.stderr, flush=True)
            else:
                print(
                    f"  [config] Warning: {_CONFIG_ENV} points to missing file: {env_p}",
                    file=sys.stderr,
                    flush=True,
                )

        if not raw:
            local = _local_config_path()
            if local.exists():
                try:
                    raw = _load_yaml(local)
                    print(f"  [config] Loaded from local: {local}", flush=True)
                except ValueError as exc:
                    print(f"  [config] Warning: ignoring {local}: {exc}", file=sys.stderr, flush=True)

    config = _deep_merge(_DEFAULTS, raw)
    _expand_strings(config)
    return config
