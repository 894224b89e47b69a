"""Fingerprint and posture checks for whichever platform this runs on."""

from __future__ import annotations

import json
import sys
from types import ModuleType

from . import fingerprint_darwin, fingerprint_linux, fingerprint_windows
from .fingerprint_base import Fingerprint, PostureChecks


def _platform_module() -> ModuleType:
    if sys.platform.startswith("linux"):
        return fingerprint_linux
    if sys.platform == "darwin":
        return fingerprint_darwin
    if sys.platform == "win32":
        return fingerprint_windows
    raise RuntimeError(f"unsupported platform: {sys.platform}")


def gather_fingerprint_info() -> Fingerprint:
    """Collect identifying facts about this machine."""
    return _platform_module().gather_fingerprint_info()


def gather_posture_checks() -> PostureChecks:
    """Collect the security posture of this machine."""
    return _platform_module().gather_posture_checks()


def get_device_name() -> str:
    """A human-readable name for this device."""
    return _platform_module().get_device_name()


def _flag(value: bool) -> str:
    return "true" if value else "false"


def format_posture_report(checks: PostureChecks) -> str:
    """Readable summary of posture checks followed by their JSON form."""
    lines = [
        "=== Posture Checks ===",
        "",
        "Platform-agnostic checks:",
        f"  Biometrics Enabled:  {_flag(checks.biometrics_enabled)}",
        f"  Disk Encrypted:      {_flag(checks.disk_encrypted)}",
        f"  Firewall Enabled:    {_flag(checks.firewall_enabled)}",
        f"  Auto Updates:        {_flag(checks.auto_updates_enabled)}",
        f"  TPM Available:       {_flag(checks.tpm_available)}",
        "",
        "macOS-specific checks:",
        f"  SIP Enabled:         {_flag(checks.macos_sip_enabled)}",
        f"  Gatekeeper Enabled:  {_flag(checks.macos_gatekeeper_enabled)}",
        f"  Firewall Stealth:    {_flag(checks.macos_firewall_stealth_mode)}",
        "",
        "=== JSON Output ===",
        json.dumps(checks.to_map(), indent=2),
    ]
    return "\n".join(lines) + "\n"