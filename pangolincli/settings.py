"""User configuration stored in the Pangolin config directory."""

from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .logger import LogLevel

ENV_PREFIX = "PANGOLIN_CLI"
CONFIG_FILE_NAME = "config.json"
FINGERPRINT_FILE_NAME = "platform_fingerprint"
LINUX_FINGERPRINT_DIR = "/etc/pangolin"
_FALLBACK_LOG_PATH = "/tmp/olm.log"
_KEYS = ("log_level", "log_file", "disable_update_check")
_TRUE_STRINGS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_STRINGS = {"0", "f", "F", "FALSE", "false", "False"}


def _user_home_dir() -> Path:
    """Home directory of the invoking user, looking through sudo."""
    sudo_user = os.environ.get("SUDO_USER", "")
    if sudo_user:
        try:
            import pwd
        except ImportError as exc:
            raise RuntimeError(f"failed to lookup original user {sudo_user}: {exc}") from exc
        try:
            return Path(pwd.getpwnam(sudo_user).pw_dir)
        except KeyError as exc:
            raise RuntimeError(
                f"failed to lookup original user {sudo_user}: unknown user"
            ) from exc
    return Path.home()


def get_pangolin_config_dir() -> Path:
    """Return the path of the Pangolin configuration directory."""
    try:
        home = _user_home_dir()
    except (RuntimeError, KeyError, OSError) as exc:
        raise RuntimeError(f"failed to get home directory: {exc}") from exc
    return home / ".config" / "pangolin"


def default_log_path() -> str:
    """Return the default path of the client log file."""
    try:
        directory = get_pangolin_config_dir()
    except RuntimeError:
        return _FALLBACK_LOG_PATH
    return str(directory / "logs" / "client.log")


def get_fingerprint_dir() -> Path:
    """Directory holding the platform fingerprint: system-wide on Linux."""
    if sys.platform.startswith("linux"):
        return Path(LINUX_FINGERPRINT_DIR)
    return get_pangolin_config_dir()


def get_fingerprint_file_path() -> Path:
    """Full path of the platform fingerprint file."""
    return get_fingerprint_dir() / FINGERPRINT_FILE_NAME


def _parse_bool(value: Any, key: str) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        if value in _TRUE_STRINGS:
            return True
        if value in _FALSE_STRINGS:
            return False
        raise ValueError(f"invalid boolean for {key}: {value!r}")
    raise ValueError(f"invalid boolean for {key}: {value!r}")


def _as_log_level(value: Any) -> LogLevel | str:
    text = "" if value is None else str(value)
    try:
        return LogLevel(text)
    except ValueError:
        return text


@dataclass
class Config:
    """CLI settings: log level, log file and update-check switch."""

    log_level: LogLevel | str = LogLevel.INFO
    log_file: str = ""
    disable_update_check: bool = False
    path: Optional[Path] = field(default=None, repr=False, compare=False)
    _extra: dict = field(default_factory=dict, init=False, repr=False, compare=False)

    def validate(self) -> None:
        """Raise ValueError if the log level is not a supported one."""
        if self.log_level not in (LogLevel.DEBUG, LogLevel.INFO):
            raise ValueError(f"invalid log level: {self.log_level}")

    def save(self) -> None:
        """Write the settings to the configuration file."""
        target = self.path if self.path is not None else get_pangolin_config_dir() / CONFIG_FILE_NAME
        data = dict(self._extra)
        data["log_level"] = str(self.log_level)
        data["log_file"] = self.log_file
        data["disable_update_check"] = self.disable_update_check
        Path(target).write_text(json.dumps(data, indent=2), encoding="utf-8")


def load_config(path: str | os.PathLike | None = None) -> Config:
    """Load settings from file, defaults and PANGOLIN_CLI_* environment variables."""
    config_path = Path(path) if path is not None else get_pangolin_config_dir() / CONFIG_FILE_NAME
    values: dict[str, Any] = {
        "log_level": "info",
        "log_file": default_log_path(),
        "disable_update_check": False,
    }
    extra: dict[str, Any] = {}

    try:
        text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        pass
    else:
        data = json.loads(text) if text.strip() else {}
        if not isinstance(data, dict):
            raise ValueError(f"{config_path}: expected a JSON object")
        for key, value in data.items():
            folded = str(key).lower()
            if folded in values:
                values[folded] = value
            else:
                extra[key] = value

    for key in _KEYS:
        env_value = os.environ.get(f"{ENV_PREFIX}_{key.upper()}")
        if env_value:
            values[key] = env_value

    log_file = values["log_file"]
    cfg = Config(
        log_level=_as_log_level(values["log_level"]),
        log_file="" if log_file is None else str(log_file),
        disable_update_check=_parse_bool(values["disable_update_check"], "disable_update_check"),
        path=config_path,
    )
    cfg._extra = extra
    return cfg