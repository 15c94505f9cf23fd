"""Concrete diagnostic checks, each a thin configuration of fallback strategies."""

from .base import BaseCheck, FactResult
from .hardware import CpuLoadCheck, MemoryCheck
from .network import ConnectivityCheck, GatewayCheck
from .security import AntivirusCheck, AntivirusFact, FirewallCheck, FirewallFact
from .storage import DiskFact, DiskFreeCheck
from .uptime import UptimeCheck

# Run order for a full diagnostic pass
ALL_CHECKS = (
    CpuLoadCheck,
    MemoryCheck,
    DiskFreeCheck,
    UptimeCheck,
    GatewayCheck,
    ConnectivityCheck,
    FirewallCheck,
    AntivirusCheck,
)


def build_checks(config: dict, platform=None) -> list[BaseCheck]:
    """Instantiate every enabled check; ``checks.<name>: false`` disables one."""
    enabled = config.get("checks") or {}
    essential = config.get("essential_facts")
    checks = []
    for cls in ALL_CHECKS:
        if enabled.get(cls.name, True) is False:
            continue
        check = cls(config, platform=platform)
        if essential is not None:
            check.essential = cls.name in essential
        checks.append(check)
    return checks


__all__ = [
    "ALL_CHECKS",
    "AntivirusCheck",
    "AntivirusFact",
    "BaseCheck",
    "ConnectivityCheck",
    "CpuLoadCheck",
    "DiskFact",
    "DiskFreeCheck",
    "FactResult",
    "FirewallCheck",
    "FirewallFact",
    "GatewayCheck",
    "MemoryCheck",
    "UptimeCheck",
    "build_checks",
]
