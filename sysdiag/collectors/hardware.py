"""CPU load and memory usage checks."""

import os
import time
from pathlib import Path

import psutil

from ..core import CollectionError, Direction, Strategy, clamp_percent, is_number
from .base import BaseCheck
from . import _utils


class CpuLoadCheck(BaseCheck):
    name = "cpu_load"
    subject = "CPU load"
    direction = Direction.HIGHER_IS_WORSE
    default_thresholds = {"critical": 90, "warning": 75}

    def strategies(self) -> list[Strategy]:
        chain = [Strategy("performance-counter", self._from_psutil, is_number)]
        if self.is_windows:
            chain.append(Strategy("wmi", self._from_wmi, is_number))
        else:
            chain.append(Strategy("load-average", self._from_loadavg, is_number))
        chain.append(Strategy("process-heuristic", self._from_processes, is_number))
        return chain

    def normalize(self, value):
        return round(clamp_percent(value), 1)

    def classify(self, value, method, classifier):
        return classifier.classify(value, self.thresholds(), self.subject, unit="%", method=method)

    # ── strategies ───────────────────────────────────────────────────────────

    @staticmethod
    def _from_psutil() -> float:
        return psutil.cpu_percent(interval=0.5)

    @staticmethod
    def _from_wmi() -> float:
        ps = _utils.run_powershell(
            "(Get-CimInstance Win32_Processor "
            "| Measure-Object -Property LoadPercentage -Average).Average"
        )
        return _utils.to_float(ps, "LoadPercentage")

    @staticmethod
    def _from_loadavg() -> float:
        one_minute = os.getloadavg()[0]
        cores = psutil.cpu_count(logical=True) or 1
        return one_minute / cores * 100

    @staticmethod
    def _from_processes() -> float:
        # Process.cpu_percent() is 0.0 on its first call; prime, wait, read
        procs = list(psutil.process_iter())
        for p in procs:
            try:
                p.cpu_percent(None)
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        time.sleep(0.3)
        total = 0.0
        for p in procs:
            try:
                total += p.cpu_percent(None)
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        cores = psutil.cpu_count(logical=True) or 1
        return total / cores


class MemoryCheck(BaseCheck):
    name = "memory_used"
    subject = "Memory usage"
    direction = Direction.HIGHER_IS_WORSE
    default_thresholds = {"critical": 90, "warning": 80}

    def strategies(self) -> list[Strategy]:
        chain = [Strategy("psutil", self._from_psutil, is_number)]
        if self.is_windows:
            chain.append(Strategy("wmi", self._from_wmi, is_number))
        else:
            chain.append(Strategy("procfs", self._from_procfs, is_number))
        return chain

    def normalize(self, value):
        return round(clamp_percent(value), 1)

    def classify(self, value, method, classifier):
        return classifier.classify(value, self.thresholds(), self.subject, unit="%", method=method)

    @staticmethod
    def _from_psutil() -> float:
        return psutil.virtual_memory().percent

    @staticmethod
    def _from_wmi() -> float:
        ps = _utils.run_powershell(
            "Get-CimInstance Win32_OperatingSystem "
            "| Select-Object FreePhysicalMemory,TotalVisibleMemorySize "
            "| ConvertTo-Json"
        )
        os_info = _utils.loads_obj(ps)
        total = os_info.get("TotalVisibleMemorySize") or 0
        free = os_info.get("FreePhysicalMemory")
        if not total or free is None:
            raise CollectionError("Win32_OperatingSystem returned no memory counters", category="Parse")
        return (1 - float(free) / float(total)) * 100

    @staticmethod
    def _from_procfs(path: str = "/proc/meminfo") -> float:
        fields: dict = {}
        for line in Path(path).read_text(encoding="utf-8").splitlines():
            key, _, rest = line.partition(":")
            parts = rest.split()
            if parts:
                fields[key.strip()] = int(parts[0])
        total = fields.get("MemTotal")
        available = fields.get("MemAvailable", fields.get("MemFree"))
        if not total or available is None:
            raise CollectionError("meminfo lacks MemTotal/MemAvailable", category="Parse", target=path)
        return (1 - available / total) * 100
