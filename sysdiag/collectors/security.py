"""Firewall and antivirus posture checks."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Optional

import psutil

from ..core import ClassifiedFact, CollectionError, Strategy, Tier, is_present
from .base import BaseCheck
from . import _utils


# ── firewall ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class FirewallFact:
    enabled: bool
    profiles: dict = field(default_factory=dict)

    @property
    def disabled_profiles(self) -> list[str]:
        return [name for name, on in self.profiles.items() if on is False]


def _is_state(value) -> bool:
    return isinstance(value, FirewallFact)


class FirewallCheck(BaseCheck):
    name = "firewall"
    subject = "Firewall"

    def strategies(self) -> list[Strategy]:
        if self.is_windows:
            return [
                Strategy("get-netfirewallprofile", self._from_netfirewall, _is_state),
                Strategy("netsh", self._from_netsh, _is_state),
            ]
        if self.is_macos:
            return [Strategy("socketfilterfw", self._from_socketfilterfw, _is_state)]
        return [
            Strategy("ufw", self._from_ufw, _is_state),
            Strategy("firewalld", self._from_firewalld, _is_state),
            Strategy("nftables", self._from_nft, _is_state),
        ]

    def classify(self, value: FirewallFact, method, classifier) -> ClassifiedFact:
        detail = ""
        if value.disabled_profiles:
            detail = "profiles off: " + ", ".join(value.disabled_profiles)
        return classifier.classify_flag(
            value.enabled, self.subject, tier=Tier.CRITICAL, method=method, detail=detail,
        )

    # ── Windows ──────────────────────────────────────────────────────────────

    @staticmethod
    def _from_netfirewall() -> FirewallFact:
        ps = _utils.run_powershell(
            "Get-NetFirewallProfile "
            "| Select-Object Name,Enabled "
            "| ConvertTo-Json"
        )
        profiles: dict = {}
        for p in _utils.loads_array(ps):
            name = (p.get("Name") or "").lower()
            if name:
                profiles[name] = bool(p.get("Enabled"))
        if not profiles:
            raise CollectionError("no firewall profiles returned", category="Parse")
        return FirewallFact(enabled=all(profiles.values()), profiles=profiles)

    @staticmethod
    def _from_netsh() -> FirewallFact:
        out = _utils.require_output(["netsh", "advfirewall", "show", "allprofiles", "state"])
        profiles: dict = {}
        current = None
        for line in out.splitlines():
            line = line.strip()
            if line.lower().endswith("profile settings:"):
                current = line.split()[0].lower()
            elif line.lower().startswith("state") and current:
                profiles[current] = line.split()[-1].upper() == "ON"
        if not profiles:
            raise CollectionError("could not parse netsh output", category="Parse", target="netsh")
        return FirewallFact(enabled=all(profiles.values()), profiles=profiles)

    # ── macOS ────────────────────────────────────────────────────────────────

    @staticmethod
    def _from_socketfilterfw() -> FirewallFact:
        out = _utils.require_output(
            ["/usr/libexec/ApplicationFirewall/socketfilterfw", "--getglobalstate"]
        )
        return FirewallFact(enabled="enabled" in out.lower())

    # ── Linux ────────────────────────────────────────────────────────────────

    @staticmethod
    def _from_ufw() -> FirewallFact:
        out = _utils.require_output(["ufw", "status"])
        if "status:" not in out.lower():
            raise CollectionError("unexpected ufw output", category="Parse", target="ufw")
        return FirewallFact(enabled="status: active" in out.lower())

    @staticmethod
    def _from_firewalld() -> FirewallFact:
        out = _utils.require_output(["firewall-cmd", "--state"])
        return FirewallFact(enabled=out.strip().lower() == "running")

    @staticmethod
    def _from_nft() -> FirewallFact:
        out = _utils.require_output(["nft", "list", "ruleset"])
        return FirewallFact(enabled="chain" in out)


# ── antivirus ─────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AntivirusFact:
    product: Optional[str]
    enabled: bool
    up_to_date: Optional[bool] = None


def decode_product_state(state: int) -> tuple[bool, bool]:
    """Return (enabled, up_to_date) from a SecurityCenter2 productState value."""
    hex_state = format(int(state), "06x")
    # Byte 2 of the productState hex encodes run state (10 = enabled)
    # Byte 3 encodes definition update status (00 = up-to-date)
    return hex_state[2:4] == "10", hex_state[4:6] == "00"


def _is_active(value) -> bool:
    return isinstance(value, AntivirusFact) and value.enabled


# Resident scanner daemons recognised by the process heuristic
_AV_PROCESSES = {
    "clamd":           "ClamAV",
    "wdavdaemon":      "Microsoft Defender for Endpoint",
    "mdatp":           "Microsoft Defender for Endpoint",
    "falcon-sensor":   "CrowdStrike Falcon",
    "falcond":         "CrowdStrike Falcon",
    "sophosav":        "Sophos",
    "savd":            "Sophos",
    "sentineld":       "SentinelOne",
    "msmpeng.exe":     "Windows Defender",
}


class AntivirusCheck(BaseCheck):
    name = "antivirus"
    subject = "Antivirus"
    essential = True

    def strategies(self) -> list[Strategy]:
        chain = []
        if self.is_windows:
            chain.append(Strategy("defender", self._from_defender, _is_active))
            chain.append(Strategy("security-center", self._from_security_center, is_present))
        chain.append(Strategy("process-scan", self._from_processes, is_present))
        return chain

    def classify(self, value: AntivirusFact, method, classifier) -> ClassifiedFact:
        label = f"Antivirus ({value.product})" if value.product else self.subject
        fact = classifier.classify_flag(value.enabled, label, tier=Tier.CRITICAL, method=method)
        if fact.tier is Tier.GOOD and value.up_to_date is False:
            fact = classifier.classify_flag(
                False, f"{label} definitions", tier=Tier.WARNING, method=method,
                detail="definitions out of date",
            )
        return fact

    @staticmethod
    def _from_defender() -> AntivirusFact:
        ps = _utils.run_powershell(
            "Get-MpComputerStatus "
            "| Select-Object AMServiceEnabled,RealTimeProtectionEnabled,"
            "AntivirusSignatureAge "
            "| ConvertTo-Json"
        )
        d = _utils.loads_obj(ps)
        if d.get("AMServiceEnabled") is None:
            raise CollectionError("Get-MpComputerStatus returned no status", category="Parse")
        age = d.get("AntivirusSignatureAge")
        return AntivirusFact(
            product="Windows Defender",
            enabled=bool(d.get("AMServiceEnabled")) and bool(d.get("RealTimeProtectionEnabled")),
            up_to_date=None if age is None else int(age) <= 7,
        )

    @staticmethod
    def _from_security_center() -> AntivirusFact:
        ps = _utils.run_powershell(
            "Get-WmiObject -Namespace root/SecurityCenter2 -Class AntiVirusProduct "
            "| Select-Object displayName,productState "
            "| ConvertTo-Json"
        )
        raw = json.loads(ps)
        products = [raw] if isinstance(raw, dict) else list(raw or [])
        if not products:
            raise CollectionError("no antivirus product registered", category="SecurityCenter2")

        decoded = []
        for item in products:
            enabled, up_to_date = decode_product_state(item.get("productState") or 0)
            decoded.append(AntivirusFact(item.get("displayName"), enabled, up_to_date))
        # Prefer an active product over a registered-but-disabled one
        return next((p for p in decoded if p.enabled), decoded[0])

    @staticmethod
    def _from_processes() -> Optional[AntivirusFact]:
        for proc in psutil.process_iter(["name"]):
            name = (proc.info.get("name") or "").lower()
            if name in _AV_PROCESSES:
                return AntivirusFact(product=_AV_PROCESSES[name], enabled=True)
        return None
