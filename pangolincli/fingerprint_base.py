"""Device fingerprint and posture check records shared by all platforms."""

from __future__ import annotations

import platform
import subprocess
from dataclasses import dataclass, field, fields
from typing import Any, Optional

_GO_ARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "x64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i486": "386",
    "i586": "386",
    "i686": "386",
    "x86": "386",
    "armv6l": "arm",
    "armv7l": "arm",
    "armv7": "arm",
    "arm": "arm",
    "riscv64": "riscv64",
    "ppc64le": "ppc64le",
    "ppc64": "ppc64",
    "s390x": "s390x",
    "mips64": "mips64",
}


def _go_arch() -> str:
    """Architecture name in the short form used inside fingerprints."""
    machine = platform.machine().lower()
    return _GO_ARCH.get(machine, machine)


def _run_command(*args: str) -> Optional[str]:
    """Run a program and return its combined output, or None if it failed."""
    try:
        proc = subprocess.run(
            list(args),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            check=False,
        )
    except (OSError, ValueError):
        return None
    if proc.returncode != 0:
        return None
    output = proc.stdout
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output or ""


def _json(name: str, default: Any):
    return field(default=default, metadata={"json": name})


def _as_map(obj: Any) -> dict[str, Any]:
    return {f.metadata.get("json", f.name): getattr(obj, f.name) for f in fields(obj)}


@dataclass
class Fingerprint:
    """Identifying facts about this machine and its user."""

    username: str = _json("username", "")
    hostname: str = _json("hostname", "")
    platform: str = _json("platform", "")
    os_version: str = _json("osVersion", "")
    kernel_version: str = _json("kernelVersion", "")
    architecture: str = _json("arch", "")
    device_model: str = _json("deviceModel", "")
    serial_number: str = _json("serialNumber", "")
    platform_fingerprint: str = _json("platformFingerprint", "")

    def to_map(self) -> dict[str, Any]:
        """Return the fingerprint keyed by its JSON field names."""
        return _as_map(self)


@dataclass
class PostureChecks:
    """Security posture of this machine."""

    biometrics_enabled: bool = _json("biometricsEnabled", False)
    disk_encrypted: bool = _json("diskEncrypted", False)
    firewall_enabled: bool = _json("firewallEnabled", False)
    auto_updates_enabled: bool = _json("autoUpdatesEnabled", False)
    tpm_available: bool = _json("tpmAvailable", False)

    windows_defender_enabled: bool = _json("windowsDefenderEnabled", False)

    macos_sip_enabled: bool = _json("macosSipEnabled", False)
    macos_gatekeeper_enabled: bool = _json("macosGatekeeperEnabled", False)
    macos_firewall_stealth_mode: bool = _json("macosFirewallStealthMode", False)

    linux_app_armor_enabled: bool = _json("linuxAppArmorEnabled", False)
    linux_selinux_enabled: bool = _json("linuxSELinuxEnabled", False)

    def to_map(self) -> dict[str, Any]:
        """Return the checks keyed by their JSON field names."""
        return _as_map(self)


def format_device_name(os_name: str, is_laptop: bool) -> str:
    """Name a device after its operating system and form factor."""
    return f"{os_name} Laptop" if is_laptop else f"{os_name} Desktop"


def normalize(text: str) -> str:
    """Lower-case, trim and collapse runs of whitespace to single spaces."""
    return " ".join(text.strip().lower().split())