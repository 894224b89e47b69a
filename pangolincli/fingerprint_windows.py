"""Fingerprint and posture checks for Windows machines."""

from __future__ import annotations

import getpass
import hashlib
import os
import socket
import subprocess
import sys
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from .fingerprint_base import Fingerprint, PostureChecks, _go_arch, normalize

try:
    import winreg
except ImportError:
    winreg = None  # type: ignore[assignment]

_SYSTEM_INFORMATION = r"SYSTEM\CurrentControlSet\Control\SystemInformation"
_CPU_KEY = r"HARDWARE\DESCRIPTION\System\CentralProcessor\0"
_FIREWALL_POLICY = r"SYSTEM\CurrentControlSet\Services\SharedAccess\Parameters\FirewallPolicy"
_FIREWALL_PROFILES = ("DomainProfile", "StandardProfile", "PublicProfile")
_WINDOWS_UPDATE_AU = r"SOFTWARE\Policies\Microsoft\Windows\WindowsUpdate\AU"
_BIOMETRICS_KEY = r"SOFTWARE\Microsoft\Windows\CurrentVersion\Biometrics"
_MANAGE_BDE = r"C:\Windows\System32\manage-bde.exe"
_NO_WINDOW = getattr(subprocess, "CREATE_NO_WINDOW", 0)

_CPU_VALUES = (
    ("VendorIdentifier", "vendor"),
    ("ProcessorNameString", "model_name"),
    ("Identifier", "identifier"),
)
_DMI_VALUES = (
    ("SystemManufacturer", "sys_vendor"),
    ("SystemProductName", "product_name"),
    ("SystemSKU", "sku"),
    ("BaseBoardManufacturer", "board_vendor"),
    ("BaseBoardProduct", "board_name"),
)


@contextmanager
def _open_key(path: str) -> Iterator[Any]:
    """Open a key under HKEY_LOCAL_MACHINE for reading; yields None if unavailable."""
    if winreg is None:
        yield None
        return
    try:
        handle = winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, path, 0, winreg.KEY_QUERY_VALUE)
    except OSError:
        yield None
        return
    with handle:
        yield handle


def _query(handle: Any, name: str) -> Any:
    try:
        value, _kind = winreg.QueryValueEx(handle, name)
    except OSError:
        return None
    return value


def _string(handle: Any, name: str) -> Optional[str]:
    value = _query(handle, name)
    return value if isinstance(value, str) else None


def _integer(handle: Any, name: str) -> Optional[int]:
    value = _query(handle, name)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _command_output(*args: str) -> tuple[bool, str]:
    """Run a program without a console window; return (succeeded, stdout)."""
    try:
        proc = subprocess.run(
            list(args),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=False,
            creationflags=_NO_WINDOW,
        )
    except (OSError, ValueError):
        return False, ""
    output = proc.stdout
    if isinstance(output, bytes):
        output = output.decode("utf-8", errors="replace")
    return proc.returncode == 0, output or ""


def _username() -> str:
    try:
        user = getpass.getuser()
    except (OSError, KeyError, ImportError):
        return ""
    domain = os.environ.get("USERDOMAIN", "")
    return f"{domain}\\{user}" if domain else user


def _windows_version() -> tuple[str, str]:
    major = minor = build = 0
    get_version = getattr(sys, "getwindowsversion", None)
    if get_version is not None:
        info = get_version()
        major, minor, build = info.major, info.minor, info.build
    text = " ".join(["Windows", str(major), str(minor), "Build", str(build)]).strip()
    return text, text


def _model_and_serial() -> tuple[str, str]:
    with _open_key(_SYSTEM_INFORMATION) as key:
        if key is None:
            return "", ""
        return _string(key, "SystemProductName") or "", _string(key, "BIOSSerialNumber") or ""


def _disk_encrypted() -> bool:
    ok, output = _command_output(_MANAGE_BDE, "-status", "C:")
    if not ok and not output:
        return False
    return "Protection On" in output


def _firewall_enabled() -> bool:
    for profile in _FIREWALL_PROFILES:
        with _open_key(f"{_FIREWALL_POLICY}\\{profile}") as key:
            value = _integer(key, "EnableFirewall") if key is not None else None
        if value is not None and value != 0:
            return True
    return False


def _service_running(name: str) -> bool:
    ok, output = _command_output("sc", "query", name)
    return ok and "RUNNING" in output


def _defender_enabled() -> bool:
    return _service_running("WinDefend")


def _tpm_available() -> bool:
    return _service_running("tpm")


def _auto_updates_enabled() -> bool:
    with _open_key(_WINDOWS_UPDATE_AU) as key:
        if key is None:
            return True
        value = _integer(key, "NoAutoUpdate")
    return value is None or value != 1


def _biometrics_enabled() -> bool:
    with _open_key(_BIOMETRICS_KEY) as key:
        if key is None:
            return False
        value = _integer(key, "Enabled")
    return value == 1


def _cpu_fingerprint() -> str:
    with _open_key(_CPU_KEY) as key:
        if key is None:
            return ""
        parts = []
        for name, label in _CPU_VALUES:
            value = _string(key, name)
            if value is not None:
                parts.append(f"{label}={normalize(value)}")
    return "|".join(parts)


def _dmi_fingerprint() -> str:
    with _open_key(_SYSTEM_INFORMATION) as key:
        if key is None:
            return ""
        parts = []
        for name, label in _DMI_VALUES:
            value = _string(key, name)
            if value:
                parts.append(f"{label}={normalize(value)}")
    return "|".join(parts)


def compute_platform_fingerprint(cpu_part: str, dmi_part: str) -> str:
    """SHA-256 hex digest of the platform, CPU and DMI descriptions."""
    parts = [p for p in ("windows", _go_arch(), cpu_part, dmi_part) if p]
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()


def gather_fingerprint_info() -> Fingerprint:
    """Collect identifying facts about this Windows machine."""
    os_version, kernel_version = _windows_version()
    device_model, serial_number = _model_and_serial()
    return Fingerprint(
        username=_username(),
        hostname=socket.gethostname(),
        platform="windows",
        os_version=os_version,
        kernel_version=kernel_version,
        architecture=_go_arch(),
        device_model=device_model,
        serial_number=serial_number,
        platform_fingerprint=compute_platform_fingerprint(_cpu_fingerprint(), _dmi_fingerprint()),
    )


def gather_posture_checks() -> PostureChecks:
    """Collect the security posture of this Windows machine, checks run concurrently."""
    with ThreadPoolExecutor(max_workers=6) as pool:
        biometrics = pool.submit(_biometrics_enabled)
        disk = pool.submit(_disk_encrypted)
        firewall = pool.submit(_firewall_enabled)
        updates = pool.submit(_auto_updates_enabled)
        tpm = pool.submit(_tpm_available)
        defender = pool.submit(_defender_enabled)
        return PostureChecks(
            biometrics_enabled=biometrics.result(),
            disk_encrypted=disk.result(),
            firewall_enabled=firewall.result(),
            auto_updates_enabled=updates.result(),
            tpm_available=tpm.result(),
            windows_defender_enabled=defender.result(),
        )


def get_device_name() -> str:
    """Generic device name for Windows machines."""
    return "Windows"