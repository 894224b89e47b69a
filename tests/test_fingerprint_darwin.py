import json
import subprocess
from unittest import mock

from pangolincli import fingerprint_darwin as fd
from pangolincli.fingerprint_darwin import SPHardwareOutput

SOCKETFILTERFW = "/usr/libexec/ApplicationFirewall/socketfilterfw"

PROFILER_JSON = json.dumps(
    {
        "SPHardwareDataType": [
            {
                "machine_name": "MacBook Pro",
                "machine_model": "MacBookPro18,1",
                "serial_number": "TESTSERIAL0001",
                "platform_UUID": "00000000-0000-0000-0000-000000000000",
                "chip_type": "Example",
            }
        ]
    }
)


def _fake_run(outputs):
    def run(args, **kwargs):
        key = " ".join(args)
        for prefix, out in outputs.items():
            if key.startswith(prefix):
                if out is None:
                    return subprocess.CompletedProcess(args, 1, stdout=b"")
                return subprocess.CompletedProcess(args, 0, stdout=out.encode())
        raise FileNotFoundError(args[0])

    return run


def test_parse_system_profiler_output():
    hw = fd.parse_system_profiler_output(PROFILER_JSON)
    assert hw == SPHardwareOutput(
        machine_name="MacBook Pro",
        serial_number="TESTSERIAL0001",
        machine_model="MacBookPro18,1",
        platform_uuid="00000000-0000-0000-0000-000000000000",
    )


def test_parse_system_profiler_output_bad_input():
    assert fd.parse_system_profiler_output('{"SPHardwareDataType": []}') is None
    assert fd.parse_system_profiler_output("not json") is None
    assert fd.parse_system_profiler_output("[]") is None


def test_compute_platform_fingerprint_none():
    assert fd.compute_platform_fingerprint(None) == ""


def test_compute_platform_fingerprint_normalizes():
    a = SPHardwareOutput(machine_model="MacBookPro18,1", serial_number="TESTSERIAL0001")
    b = SPHardwareOutput(machine_model="  macbookpro18,1 ", serial_number="testserial0001\n")
    digest = fd.compute_platform_fingerprint(a)
    assert digest == fd.compute_platform_fingerprint(b)
    assert len(digest) == 64
    assert all(c in "0123456789abcdef" for c in digest)


def test_compute_platform_fingerprint_depends_on_serial():
    a = SPHardwareOutput(machine_model="M", serial_number="TESTSERIAL0001")
    b = SPHardwareOutput(machine_model="M", serial_number="TESTSERIAL0002")
    assert fd.compute_platform_fingerprint(a) != fd.compute_platform_fingerprint(b)


def test_run_profiler_and_device_name():
    with mock.patch("subprocess.run", side_effect=_fake_run({"system_profiler": PROFILER_JSON})):
        hw = fd.run_macos_system_profiler()
        name = fd.get_device_name()
    assert hw is not None
    assert hw.machine_model == "MacBookPro18,1"
    assert name == "MacBook Pro"


def test_device_name_without_profiler():
    with mock.patch("subprocess.run", side_effect=_fake_run({})):
        assert fd.run_macos_system_profiler() is None
        assert fd.get_device_name() == "macOS"


def test_gather_fingerprint_info(monkeypatch):
    monkeypatch.setenv("USER", "tester")
    outputs = {
        "sw_vers": "14.5\n",
        "uname -r": "23.5.0\n",
        "uname -m": "arm64\n",
        "system_profiler": PROFILER_JSON,
    }
    with mock.patch("subprocess.run", side_effect=_fake_run(outputs)):
        info = fd.gather_fingerprint_info()
    assert info.username == "tester"
    assert info.platform == "macos"
    assert info.os_version == "14.5"
    assert info.kernel_version == "23.5.0"
    assert info.architecture == "arm64"
    assert info.device_model == "MacBookPro18,1"
    assert info.serial_number == "TESTSERIAL0001"
    expected = fd.compute_platform_fingerprint(fd.parse_system_profiler_output(PROFILER_JSON))
    assert info.platform_fingerprint == expected


def test_gather_posture_checks_all_on(monkeypatch):
    monkeypatch.delenv("SUDO_USER", raising=False)
    outputs = {
        "bioutil": "Biometrics for unlock: 1\n",
        "fdesetup": "FileVault is On.\n",
        f"{SOCKETFILTERFW} --getglobalstate": "Firewall is enabled. (State = 1)\n",
        f"{SOCKETFILTERFW} --getstealthmode": "Firewall stealth mode is on\n",
        "defaults": "1\n",
        "csrutil": "System Integrity Protection status: enabled.\n",
        "spctl": "assessments enabled\n",
    }
    with mock.patch("subprocess.run", side_effect=_fake_run(outputs)):
        checks = fd.gather_posture_checks()
    assert checks.biometrics_enabled is True
    assert checks.disk_encrypted is True
    assert checks.firewall_enabled is True
    assert checks.auto_updates_enabled is True
    assert checks.tpm_available is True
    assert checks.macos_sip_enabled is True
    assert checks.macos_gatekeeper_enabled is True
    assert checks.macos_firewall_stealth_mode is True


def test_gather_posture_checks_off(monkeypatch):
    monkeypatch.delenv("SUDO_USER", raising=False)
    outputs = {
        "bioutil": "Biometrics for unlock: 0\n",
        "fdesetup": "FileVault is Off.\n",
        "defaults": "0\n",
    }
    with mock.patch("subprocess.run", side_effect=_fake_run(outputs)):
        checks = fd.gather_posture_checks()
    assert checks.biometrics_enabled is False
    assert checks.disk_encrypted is False
    assert checks.auto_updates_enabled is False
    assert checks.firewall_enabled is False
    assert checks.macos_sip_enabled is False
    assert checks.tpm_available is True


def test_biometrics_run_as_sudo_user(monkeypatch):
    monkeypatch.setenv("SUDO_USER", "alice")
    seen = []

    def run(args, **kwargs):
        seen.append(list(args))
        if args[0] == "sudo":
            return subprocess.CompletedProcess(args, 0, stdout=b"Biometrics for unlock: 2\n")
        raise FileNotFoundError(args[0])

    with mock.patch("subprocess.run", side_effect=run):
        checks = fd.gather_posture_checks()
    assert checks.biometrics_enabled is True
    assert ["sudo", "-u", "alice", "bioutil", "-r"] in seen