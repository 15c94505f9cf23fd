"""Default gateway and outbound connectivity checks."""

from __future__ import annotations

import re
import socket
from urllib.parse import urlparse

import requests

from ..core import (
    NOT_AVAILABLE,
    ClassifiedFact,
    CollectionError,
    Direction,
    Strategy,
    Thresholds,
    Tier,
    is_present,
)
from .base import BaseCheck, FactResult
from . import _utils

_IPV4_RE = re.compile(r"\b(\d{1,3}(?:\.\d{1,3}){3})\b")


def _first_ipv4(text: str) -> str:
    m = _IPV4_RE.search(text or "")
    if not m or m.group(1) == "0.0.0.0":
        raise CollectionError("no gateway address in output", category="Parse")
    return m.group(1)


class GatewayCheck(BaseCheck):
    name = "default_gateway"
    subject = "Default gateway"

    def strategies(self) -> list[Strategy]:
        if self.is_windows:
            return [
                Strategy("get-netroute", self._from_netroute, is_present),
                Strategy("route-print", self._from_route_print, is_present),
            ]
        chain = []
        if self.is_macos:
            chain.append(Strategy("route-get", self._from_route_get, is_present))
        else:
            chain.append(Strategy("ip-route", self._from_ip_route, is_present))
        chain.append(Strategy("netstat", self._from_netstat, is_present))
        return chain

    def classify(self, value, method, classifier):
        return ClassifiedFact(self.subject, value, Tier.GOOD, f"Default gateway {value}", method=method)

    @staticmethod
    def _from_netroute() -> str:
        ps = (
            "Get-NetRoute -DestinationPrefix '0.0.0.0/0' "
            "| Sort-Object RouteMetric "
            "| Select-Object -First 1 -ExpandProperty NextHop"
        )
        return _first_ipv4(_utils.run_powershell(ps))

    @staticmethod
    def _from_route_print() -> str:
        out = _utils.require_output(["route", "print", "-4", "0.0.0.0"])
        for line in out.splitlines():
            cols = line.split()
            if len(cols) >= 3 and cols[0] == "0.0.0.0" and cols[1] == "0.0.0.0":
                return _first_ipv4(cols[2])
        raise CollectionError("no default route in route table", category="Parse")

    @staticmethod
    def _from_ip_route() -> str:
        out = _utils.require_output(["ip", "route", "show", "default"])
        m = re.search(r"default via (\S+)", out)
        if not m:
            raise CollectionError("no default route", category="Parse", target="ip route")
        return m.group(1)

    @staticmethod
    def _from_route_get() -> str:
        out = _utils.require_output(["route", "-n", "get", "default"])
        m = re.search(r"gateway:\s*(\S+)", out)
        if not m:
            raise CollectionError("no gateway line", category="Parse", target="route -n get default")
        return m.group(1)

    @staticmethod
    def _from_netstat() -> str:
        out = _utils.require_output(["netstat", "-rn"])
        for line in out.splitlines():
            cols = line.split()
            if len(cols) >= 2 and cols[0] in ("default", "0.0.0.0"):
                return _first_ipv4(cols[1])
        raise CollectionError("no default route in netstat output", category="Parse")


# ── connectivity ──────────────────────────────────────────────────────────────

def parse_target(target: str) -> tuple[str | None, str, int]:
    """Return (url, host, port) for a URL, ``host:port`` or bare host."""
    if "://" in target:
        parsed = urlparse(target)
        port = parsed.port or (443 if parsed.scheme == "https" else 80)
        return target, parsed.hostname or "", port
    host, sep, port = target.rpartition(":")
    if sep and host and port.isdigit() and ":" not in host:
        return None, host, int(port)
    return None, target, 443


def _only_true(value) -> bool:
    return value is True


class ConnectivityCheck(BaseCheck):
    """Count of reachable targets. Zero reachable is Critical, partial Warning."""

    name = "connectivity"
    subject = "Network connectivity"
    direction = Direction.LOWER_IS_WORSE

    def targets(self) -> list[str]:
        return list((self.config.get("connectivity") or {}).get("targets") or [])

    def strategies(self, target: str | None = None) -> list[Strategy]:
        url, host, port = parse_target(target or "")
        chain = []
        if url:
            chain.append(Strategy("http", lambda: self._probe_http(url), _only_true))
        chain.append(Strategy("tcp", lambda: self._probe_tcp(host, port), _only_true))
        chain.append(Strategy("ping", lambda: self._probe_ping(host), _only_true))
        return chain

    def collect(self, collector, classifier) -> list[FactResult]:
        targets = self.targets()
        if not targets:
            return []

        reachable: dict[str, str | None] = {}
        for target in targets:
            outcome = collector.collect(f"Connectivity {target}", self.strategies(target))
            reachable[target] = outcome.method if outcome is not NOT_AVAILABLE else None

        methods = sorted({m for m in reachable.values() if m})
        count = sum(1 for m in reachable.values() if m)
        method = "+".join(methods) or "probe"
        value = {"reachable": count, "targets": reachable}
        return [FactResult(
            name=self.name,
            subject=self.subject,
            value=value,
            method=method,
            classified=self.classify(value, method, classifier),
        )]

    def classify(self, value, method, classifier):
        tested = len(value["targets"])
        thresholds = Thresholds(critical=1, warning=tested, direction=self.direction)
        return classifier.classify(
            value["reachable"], thresholds, f"Reachable targets ({tested} tested)", method=method,
        )

    # ── probes: True when reachable, False for an ordinary miss ──────────────

    def _timeout(self) -> float:
        return float((self.config.get("connectivity") or {}).get("probe_seconds") or 5)

    def _probe_http(self, url: str) -> bool:
        if _utils.DRY_RUN:
            return False
        try:
            requests.head(url, timeout=self._timeout(), allow_redirects=True)
            return True
        except requests.RequestException:
            return False

    def _probe_tcp(self, host: str, port: int) -> bool:
        if _utils.DRY_RUN:
            return False
        try:
            with socket.create_connection((host, port), timeout=self._timeout()):
                return True
        except OSError:
            return False

    def _probe_ping(self, host: str) -> bool:
        if self.is_windows:
            cmd = ["ping", "-n", "1", "-w", str(int(self._timeout() * 1000)), host]
        else:
            cmd = ["ping", "-c", "1", "-W", str(int(self._timeout())), host]
        return _utils.command_succeeds(cmd, timeout=int(self._timeout()) + 5)
