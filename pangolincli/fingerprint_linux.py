"""Fingerprint and posture checks for Linux machines."""

from __future__ import annotations

import glob
import hashlib
import os
import shutil
import socket
from pathlib import Path
from typing import Optional

from .fingerprint_base import (
    Fingerprint,
    PostureChecks,
    _go_arch,
    _run_command,
    format_device_name,
)

OS_RELEASE_PATH = "/etc/os-release"
CPUINFO_PATH = "/proc/cpuinfo"
_DMI_DIR = "/sys/devices/virtual/dmi/id"
_DMI_FINGERPRINT_FILES = ("product_uuid", "board_serial", "product_name", "sys_vendor")

_CPU_KEYS = {
    "vendor_id": "vendor",
    "model name": "model_name",
    "cpu family": "family",
    "model": "model",
    "stepping": "stepping",
    "cpu cores": "cores",
    "siblings": "siblings",
    "cpu implementer": "implementer",
    "cpu part": "part",
    "cpu revision": "revision",
}
_CPU_ORDER = (
    "vendor",
    "model_name",
    "family",
    "model",
    "stepping",
    "cores",
    "siblings",
    "implementer",
    "part",
    "revision",
)


def _read_trimmed(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8", errors="replace").strip()
    except OSError:
        return ""


def _current_username() -> str:
    sudo_user = os.environ.get("SUDO_USER", "")
    if sudo_user:
        return sudo_user
    try:
        import pwd

        return pwd.getpwuid(os.getuid()).pw_name
    except (ImportError, KeyError, AttributeError, OSError):
        return os.environ.get("USER", "")


def _trimmed_output(*args: str) -> str:
    output = _run_command(*args)
    return output.strip() if output is not None else ""


def gather_fingerprint_info() -> Fingerprint:
    """Collect identifying facts about this Linux machine."""
    device_model = _read_trimmed(f"{_DMI_DIR}/product_name")
    serial_number = _read_trimmed(f"{_DMI_DIR}/product_serial")
    return Fingerprint(
        username=_current_username(),
        hostname=socket.gethostname(),
        platform="linux",
        os_version=detect_os_version(),
        kernel_version=_trimmed_output("uname", "-r"),
        architecture=_trimmed_output("uname", "-m"),
        device_model=device_model,
        serial_number=serial_number,
        platform_fingerprint=compute_hw_fingerprint(),
    )


def gather_posture_checks() -> PostureChecks:
    """Collect the security posture of this Linux machine."""
    disk_encrypted = False
    output = _run_command("lsblk", "-o", "NAME,TYPE")
    if output is not None:
        for line in output.split("\n"):
            parts = line.split()
            if len(parts) >= 2 and parts[1] == "crypt":
                disk_encrypted = True
                break

    app_armor = "y" in _read_trimmed("/sys/module/apparmor/parameters/enabled").lower()

    selinux = False
    output = _run_command("getenforce")
    if output is not None:
        selinux = output.lower().strip() == "enforcing"

    return PostureChecks(
        biometrics_enabled=False,
        disk_encrypted=disk_encrypted,
        firewall_enabled=is_firewall_enabled(),
        auto_updates_enabled=False,
        tpm_available=tpm_available(),
        linux_app_armor_enabled=app_armor,
        linux_selinux_enabled=selinux,
    )


def detect_os_version() -> str:
    """Describe the distribution and release, falling back to the kernel."""
    if shutil.which("lsb_release"):
        output = _run_command("lsb_release", "-ds")
        if output is not None:
            return output.strip().strip('"')

    try:
        release = parse_os_release()
    except OSError:
        release = {}
    name = release.get("NAME", "")
    version = release.get("VERSION", "")
    if name and version:
        return f"{name} {version}"

    output = _run_command("uname", "-sr")
    if output is not None:
        return output.strip()
    return ""


def is_firewall_enabled() -> bool:
    """Whether ufw, firewalld, nftables or iptables show an active firewall."""
    if shutil.which("ufw"):
        output = _run_command("ufw", "status")
        if output is not None and "status: active" in output.lower():
            return True

    if shutil.which("firewall-cmd"):
        output = _run_command("firewall-cmd", "--state")
        if output is not None and output.strip() == "running":
            return True

    if shutil.which("nft"):
        output = _run_command("nft", "list", "ruleset")
        if output is not None and output.strip():
            return True

    if shutil.which("iptables"):
        output = _run_command("iptables", "-S")
        if output is not None and any(line.startswith("-A") for line in output.split("\n")):
            return True

    return False


def tpm_available() -> bool:
    """Whether a TPM device node is present."""
    return os.path.exists("/dev/tpm0")


def parse_os_release_text(text: str) -> dict[str, str]:
    """Parse os-release KEY=value lines, dropping comments and quotes."""
    values: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        values[key] = value.strip('"')
    return values


def parse_os_release(path: str | os.PathLike | None = None) -> dict[str, str]:
    """Read and parse an os-release file; raises OSError if it cannot be read."""
    target = Path(path) if path is not None else Path(OS_RELEASE_PATH)
    return parse_os_release_text(target.read_text(encoding="utf-8", errors="replace"))


def cpu_fingerprint(cpuinfo: Optional[str] = None) -> str:
    """Stable CPU description built from the first value of selected cpuinfo fields."""
    if cpuinfo is None:
        try:
            cpuinfo = Path(CPUINFO_PATH).read_text(encoding="utf-8", errors="replace")
        except OSError:
            return ""

    values: dict[str, str] = {}
    for line in cpuinfo.split("\n"):
        key, sep, value = line.partition(":")
        if not sep:
            continue
        norm_key = _CPU_KEYS.get(key.strip().lower())
        value = value.strip().lower()
        if norm_key is not None and value and norm_key not in values:
            values[norm_key] = value

    return "|".join(f"{key}={values[key]}" for key in _CPU_ORDER if key in values)


def compute_hw_fingerprint() -> str:
    """SHA-256 hex digest of normalised hardware identifiers."""
    parts = [_go_arch(), "linux", cpu_fingerprint()]
    parts.extend(_read_trimmed(f"{_DMI_DIR}/{name}") for name in _DMI_FINGERPRINT_FILES)
    cleaned = sorted(p for p in (part.strip().lower() for part in parts) if p)
    return hashlib.sha256("|".join(cleaned).encode("utf-8")).hexdigest()


def get_device_name() -> str:
    """Distribution name followed by Laptop or Desktop."""
    os_name = "Linux"
    try:
        release = parse_os_release()
    except OSError:
        release = {}
    if "NAME" in release:
        os_name = release["NAME"]
    is_laptop = bool(glob.glob("/sys/class/power_supply/BAT*"))
    return format_device_name(os_name, is_laptop)