"""Days since last boot."""

import datetime
from pathlib import Path

import psutil

from ..core import Direction, Strategy, is_number
from .base import BaseCheck
from . import _utils


class UptimeCheck(BaseCheck):
    name = "uptime_days"
    subject = "Uptime"
    direction = Direction.HIGHER_IS_WORSE
    default_thresholds = {"critical": 60, "warning": 30}

    def strategies(self) -> list[Strategy]:
        chain = [Strategy("psutil", self._from_psutil, is_number)]
        if self.is_windows:
            chain.append(Strategy("wmi", self._from_wmi, is_number))
        else:
            chain.append(Strategy("procfs", self._from_procfs, is_number))
        return chain

    def normalize(self, value):
        return round(max(0.0, value), 1)

    def classify(self, value, method, classifier):
        return classifier.classify(value, self.thresholds(), self.subject, unit=" days", method=method)

    @staticmethod
    def _from_psutil() -> float:
        boot_dt = datetime.datetime.fromtimestamp(psutil.boot_time(), tz=datetime.timezone.utc)
        now_dt = datetime.datetime.now(tz=datetime.timezone.utc)
        return (now_dt - boot_dt).total_seconds() / 86400

    @staticmethod
    def _from_wmi() -> float:
        ps = _utils.run_powershell(
            "((Get-Date) - (Get-CimInstance Win32_OperatingSystem).LastBootUpTime).TotalDays"
        )
        return _utils.to_float(ps, "LastBootUpTime")

    @staticmethod
    def _from_procfs(path: str = "/proc/uptime") -> float:
        seconds = Path(path).read_text(encoding="utf-8").split()[0]
        return _utils.to_float(seconds, "uptime") / 86400
