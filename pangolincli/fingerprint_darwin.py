"""Fingerprint and posture checks for macOS machines."""

from __future__ import annotations

import hashlib
import json
import os
import re
import socket
from dataclasses import dataclass
from typing import Any, Optional

from .fingerprint_base import (
    Fingerprint,
    PostureChecks,
    _go_arch,
    _run_command,
    normalize,
)

_BIOMETRICS_RE = re.compile(r"Biometrics for unlock:\s*(\d+)")
_SOCKETFILTERFW = "/usr/libexec/ApplicationFirewall/socketfilterfw"
_SOFTWARE_UPDATE_PLIST = "/Library/Preferences/com.apple.SoftwareUpdate.plist"
_AUTO_UPDATE_KEYS = (
    "AutomaticDownload",
    "AutomaticallyInstallMacOSUpdates",
    "ConfigDataInstall",
    "CriticalUpdateInstall",
)


@dataclass
class SPHardwareOutput:
    """Hardware facts reported by system_profiler."""

    machine_name: str = ""
    serial_number: str = ""
    machine_model: str = ""
    platform_uuid: str = ""


def parse_system_profiler_output(output: str | bytes) -> Optional[SPHardwareOutput]:
    """Parse system_profiler SPHardwareDataType JSON; None if unusable."""
    try:
        data = json.loads(output)
    except (ValueError, TypeError):
        return None
    if not isinstance(data, dict):
        return None
    entries = data.get("SPHardwareDataType")
    if not isinstance(entries, list) or not entries:
        return None
    first = entries[0]
    if not isinstance(first, dict):
        return None

    values: dict[str, str] = {}
    for attr, key in (
        ("machine_name", "machine_name"),
        ("serial_number", "serial_number"),
        ("machine_model", "machine_model"),
        ("platform_uuid", "platform_UUID"),
    ):
        value: Any = first.get(key)
        if value is None:
            value = ""
        if not isinstance(value, str):
            return None
        values[attr] = value
    return SPHardwareOutput(**values)


def run_macos_system_profiler() -> Optional[SPHardwareOutput]:
    """Run system_profiler for hardware data; None if it fails."""
    output = _run_command("system_profiler", "SPHardwareDataType", "-json")
    if output is None:
        return None
    return parse_system_profiler_output(output)


def compute_platform_fingerprint(hardware: Optional[SPHardwareOutput]) -> str:
    """SHA-256 hex digest of the hardware identity; empty without hardware data."""
    if hardware is None:
        return ""
    parts = ["darwin", _go_arch()]
    parts.extend(
        normalize(value)
        for value in (hardware.machine_model, hardware.serial_number, hardware.platform_uuid)
        if value
    )
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()


def _trimmed_output(*args: str) -> str:
    output = _run_command(*args)
    return output.strip() if output is not None else ""


def gather_fingerprint_info() -> Fingerprint:
    """Collect identifying facts about this Mac."""
    hardware = run_macos_system_profiler()
    return Fingerprint(
        username=os.environ.get("USER", ""),
        hostname=socket.gethostname(),
        platform="macos",
        os_version=_trimmed_output("sw_vers", "-productVersion"),
        kernel_version=_trimmed_output("uname", "-r"),
        architecture=_trimmed_output("uname", "-m"),
        device_model=hardware.machine_model if hardware else "",
        serial_number=hardware.serial_number if hardware else "",
        platform_fingerprint=compute_platform_fingerprint(hardware),
    )


def _output_contains(needle: str, *args: str) -> bool:
    output = _run_command(*args)
    return output is not None and needle in output.lower()


def _biometrics_enabled() -> bool:
    sudo_user = os.environ.get("SUDO_USER", "")
    if sudo_user:
        output = _run_command("sudo", "-u", sudo_user, "bioutil", "-r")
    else:
        output = _run_command("bioutil", "-r")
    if output is None:
        return False
    match = _BIOMETRICS_RE.search(output)
    return match is not None and int(match.group(1)) > 0


def _auto_updates_enabled() -> bool:
    for key in _AUTO_UPDATE_KEYS:
        output = _run_command("defaults", "read", _SOFTWARE_UPDATE_PLIST, key)
        if output is None or output.strip() != "1":
            return False
    return True


def gather_posture_checks() -> PostureChecks:
    """Collect the security posture of this Mac."""
    return PostureChecks(
        biometrics_enabled=_biometrics_enabled(),
        disk_encrypted=_output_contains("filevault is on", "fdesetup", "status"),
        firewall_enabled=_output_contains("enabled", _SOCKETFILTERFW, "--getglobalstate"),
        auto_updates_enabled=_auto_updates_enabled(),
        tpm_available=True,
        macos_sip_enabled=_output_contains("enabled", "csrutil", "status"),
        macos_gatekeeper_enabled=_output_contains("enabled", "spctl", "--status"),
        macos_firewall_stealth_mode=_output_contains("is on", _SOCKETFILTERFW, "--getstealthmode"),
    )


def get_device_name() -> str:
    """Machine name from system_profiler, or a generic name."""
    hardware = run_macos_system_profiler()
    if hardware is None:
        return "macOS"
    return hardware.machine_name