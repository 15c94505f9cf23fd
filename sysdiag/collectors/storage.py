"""Free space per fixed volume."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass

import psutil

from ..core import (
    NOT_AVAILABLE,
    CollectionError,
    Direction,
    Strategy,
    is_non_empty,
    is_present,
)
from .base import BaseCheck, FactResult
from . import _utils

_GB = 1024 ** 3

# Pseudo filesystems that never hold user data
_SKIP_FSTYPES = {"squashfs", "tmpfs", "devtmpfs", "overlay", "iso9660", "udf"}


@dataclass(frozen=True)
class DiskFact:
    drive: str
    total_gb: float
    free_gb: float
    percent_free: float

    @classmethod
    def from_bytes(cls, drive: str, total: int, free: int) -> "DiskFact":
        if not total:
            raise CollectionError("volume reports zero capacity", category="Parse", target=drive)
        return cls(
            drive=drive,
            total_gb=round(total / _GB, 2),
            free_gb=round(free / _GB, 2),
            percent_free=round(max(0.0, min(100.0, free / total * 100)), 1),
        )


def _system_root() -> str:
    if os.name == "nt":
        return os.environ.get("SystemDrive", "C:") + "\\"
    return "/"


class DiskFreeCheck(BaseCheck):
    name = "disk_free"
    subject = "Disk free"
    direction = Direction.LOWER_IS_WORSE
    default_thresholds = {"critical": 10, "warning": 20}

    # ── volume discovery ─────────────────────────────────────────────────────

    def volume_strategies(self) -> list[Strategy]:
        chain = [Strategy("psutil", self._volumes_psutil, is_non_empty)]
        if self.is_windows:
            chain.append(Strategy("wmi", self._volumes_wmi, is_non_empty))
        chain.append(Strategy("system-root", lambda: [_system_root()], is_non_empty))
        return chain

    @staticmethod
    def _volumes_psutil() -> list[str]:
        return [
            part.mountpoint
            for part in psutil.disk_partitions(all=False)
            if part.fstype and part.fstype.lower() not in _SKIP_FSTYPES
            and "cdrom" not in (part.opts or "")
        ]

    @staticmethod
    def _volumes_wmi() -> list[str]:
        ps = _utils.run_powershell(
            "Get-CimInstance Win32_LogicalDisk -Filter 'DriveType=3' "
            "| Select-Object DeviceID | ConvertTo-Json"
        )
        return [d["DeviceID"] + "\\" for d in _utils.loads_array(ps) if d.get("DeviceID")]

    # ── per-volume usage ─────────────────────────────────────────────────────

    def strategies(self, drive: str | None = None) -> list[Strategy]:
        drive = drive or _system_root()
        chain = [
            Strategy("psutil", lambda: self._usage_psutil(drive), is_present),
            Strategy("shutil", lambda: self._usage_shutil(drive), is_present),
        ]
        if self.is_windows:
            chain.append(Strategy("wmi", lambda: self._usage_wmi(drive), is_present))
        return chain

    @staticmethod
    def _usage_psutil(drive: str) -> DiskFact:
        usage = psutil.disk_usage(drive)
        return DiskFact.from_bytes(drive, usage.total, usage.free)

    @staticmethod
    def _usage_shutil(drive: str) -> DiskFact:
        usage = shutil.disk_usage(drive)
        return DiskFact.from_bytes(drive, usage.total, usage.free)

    @staticmethod
    def _usage_wmi(drive: str) -> DiskFact:
        device_id = drive.rstrip("\\")
        ps = _utils.run_powershell(
            f"Get-CimInstance Win32_LogicalDisk -Filter \"DeviceID='{device_id}'\" "
            "| Select-Object Size,FreeSpace | ConvertTo-Json"
        )
        d = _utils.loads_obj(ps)
        return DiskFact.from_bytes(drive, int(d.get("Size") or 0), int(d.get("FreeSpace") or 0))

    # ── collection ───────────────────────────────────────────────────────────

    def collect(self, collector, classifier) -> list[FactResult]:
        volumes = collector.collect("Disk volumes", self.volume_strategies())
        drives = volumes.value if volumes is not NOT_AVAILABLE else [_system_root()]

        results = []
        for drive in dict.fromkeys(drives):
            subject = f"Disk {drive}"
            outcome = collector.collect(subject, self.strategies(drive), essential=self.essential)
            if outcome is NOT_AVAILABLE:
                results.append(FactResult(name=self.name, subject=subject))
                continue
            results.append(FactResult(
                name=self.name,
                subject=subject,
                value=outcome.value,
                method=outcome.method,
                classified=self.classify(outcome.value, outcome.method, classifier),
            ))
        return results

    def classify(self, value: DiskFact, method, classifier):
        return classifier.classify(
            value.percent_free, self.thresholds(), f"Disk {value.drive} free space",
            unit="%", method=method,
        )
