"""Checking for newer releases, with an on-disk cache of the last check."""

from __future__ import annotations

import json
import os
import queue
import re
import threading
import urllib.error
import urllib.request
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional

import semver

from .settings import get_pangolin_config_dir

VERSION = "0.5.0"
UPDATE_CHECK_INTERVAL = timedelta(hours=12)
UPDATE_CHECK_CACHE_FILE = "pangolin-update-check.json"
GITHUB_REPO_OWNER = "fosrl"
GITHUB_REPO_NAME = "cli"
GITHUB_API_BASE_URL = "https://api.github.com"
_FETCH_TIMEOUT = 10.0
_ASYNC_WAIT = 1.0

_RFC3339 = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(\.\d+)?([Zz]|[+-]\d{2}:\d{2})?$"
)
_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
_ZERO_TIME_TEXT = "0001-01-01T00:00:00Z"


def _parse_time(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError(f"expected timestamp string, got {type(value).__name__}")
    match = _RFC3339.match(value)
    if match is None:
        raise ValueError(f"invalid timestamp: {value!r}")
    date_part, time_part, frac, tz = match.groups()
    frac_text = "." + frac[1:7].ljust(6, "0") if frac else ""
    if tz is None or tz in ("Z", "z"):
        tz = "+00:00"
    parsed = datetime.fromisoformat(f"{date_part}T{time_part}{frac_text}{tz}")
    return None if parsed == _ZERO_TIME else parsed


def _format_time(value: Optional[datetime]) -> str:
    if value is None:
        return _ZERO_TIME_TEXT
    if value.tzinfo is None:
        value = value.astimezone()
    text = value.isoformat()
    return text[:-6] + "Z" if text.endswith("+00:00") else text


@dataclass
class GitHubRelease:
    """A published release."""

    tag_name: str = ""
    name: str = ""
    url: str = ""


@dataclass
class UpdateCheckCache:
    """When updates were last checked for, and what was found."""

    last_check_time: Optional[datetime] = None
    latest_version: str = ""
    update_url: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "UpdateCheckCache":
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        latest = data.get("latest_version") or ""
        url = data.get("update_url") or ""
        if not isinstance(latest, str) or not isinstance(url, str):
            raise ValueError("expected string values")
        return cls(
            last_check_time=_parse_time(data.get("last_check_time")),
            latest_version=latest,
            update_url=url,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"last_check_time": _format_time(self.last_check_time)}
        if self.latest_version:
            out["latest_version"] = self.latest_version
        if self.update_url:
            out["update_url"] = self.update_url
        return out


def _now() -> datetime:
    return datetime.now(timezone.utc)


def get_cache_file_path() -> Path:
    """Return the path of the update check cache file."""
    try:
        directory = get_pangolin_config_dir()
    except RuntimeError as exc:
        raise RuntimeError(f"failed to get pangolin config directory: {exc}") from exc
    return directory / UPDATE_CHECK_CACHE_FILE


def _resolve(path: str | os.PathLike | None) -> Path:
    return Path(path) if path is not None else get_cache_file_path()


def read_cache(path: str | os.PathLike | None = None) -> UpdateCheckCache:
    """Read the cache; a missing file gives an empty cache."""
    cache_path = _resolve(path)
    try:
        text = cache_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return UpdateCheckCache()
    try:
        return UpdateCheckCache.from_dict(json.loads(text))
    except ValueError as exc:
        raise ValueError(f"failed to parse cache: {exc}") from exc


def write_cache(cache: UpdateCheckCache, path: str | os.PathLike | None = None) -> None:
    """Write the cache to disk as indented JSON."""
    cache_path = _resolve(path)
    cache_path.write_text(json.dumps(cache.to_dict(), indent=2), encoding="utf-8")


def should_check_for_update(path: str | os.PathLike | None = None) -> bool:
    """True if the last check is older than the check interval or unknown."""
    try:
        cache = read_cache(path)
    except (OSError, ValueError, RuntimeError):
        return True
    if cache.last_check_time is None:
        return True
    return _now() - cache.last_check_time >= UPDATE_CHECK_INTERVAL


def get_cached_update_info(path: str | os.PathLike | None = None) -> Optional[GitHubRelease]:
    """Return a cached newer release if the cache is recent, else None."""
    try:
        cache = read_cache(path)
    except (OSError, ValueError, RuntimeError):
        return None
    if not cache.latest_version or cache.last_check_time is None:
        return None
    if _now() - cache.last_check_time >= UPDATE_CHECK_INTERVAL:
        return None
    try:
        comparison = compare_versions(VERSION, cache.latest_version)
    except ValueError:
        return None
    if comparison < 0:
        return GitHubRelease(tag_name=cache.latest_version, url=cache.update_url)
    return None


def cache_update_info(
    release: Optional[GitHubRelease], path: str | os.PathLike | None = None
) -> None:
    """Record the result of a check made now."""
    cache = UpdateCheckCache(last_check_time=_now())
    if release is not None:
        cache.latest_version = release.tag_name
        cache.update_url = release.url
    write_cache(cache, path)


def get_latest_release() -> GitHubRelease:
    """Fetch the latest published release."""
    url = f"{GITHUB_API_BASE_URL}/repos/{GITHUB_REPO_OWNER}/{GITHUB_REPO_NAME}/releases/latest"
    request = urllib.request.Request(
        url,
        headers={"Accept": "application/vnd.github.v3+json", "User-Agent": "pangolin-cli"},
    )
    try:
        with urllib.request.urlopen(request, timeout=_FETCH_TIMEOUT) as response:
            status = response.status
            body = response.read()
    except urllib.error.HTTPError as exc:
        text = exc.read().decode("utf-8", errors="replace") if exc.fp is not None else ""
        raise RuntimeError(f"failed to fetch release: status {exc.code}, body: {text}") from exc
    except (urllib.error.URLError, OSError) as exc:
        raise RuntimeError(f"failed to fetch release: {exc}") from exc

    if status != 200:
        text = body.decode("utf-8", errors="replace")
        raise RuntimeError(f"failed to fetch release: status {status}, body: {text}")

    try:
        data = json.loads(body)
    except ValueError as exc:
        raise RuntimeError(f"failed to parse response: {exc}") from exc
    if not isinstance(data, dict):
        raise RuntimeError("failed to parse response: expected a JSON object")
    return GitHubRelease(
        tag_name=str(data.get("tag_name") or ""),
        name=str(data.get("name") or ""),
        url=str(data.get("html_url") or ""),
    )


def normalize_version(version: str) -> str:
    """Strip a leading 'v' from a version string."""
    return version.removeprefix("v")


def _parse_version(text: str, label: str, original: str) -> semver.Version:
    try:
        return semver.Version.parse(normalize_version(text), optional_minor_and_patch=True)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"failed to parse {label} version {original}: {exc}") from exc


def compare_versions(current: str, latest: str) -> int:
    """Return -1, 0 or 1 as current is older than, equal to or newer than latest."""
    current_version = _parse_version(current, "current", current)
    latest_version = _parse_version(latest, "latest", latest)
    return current_version.compare(latest_version)


def check_for_update() -> Optional[GitHubRelease]:
    """Return the latest release if it is newer than this version, else None."""
    latest = get_latest_release()
    if compare_versions(VERSION, latest.tag_name) < 0:
        return latest
    return None


def check_for_update_async(show_message: Callable[[GitHubRelease], None]) -> None:
    """Check for a newer release, waiting briefly, and report it if found."""
    cached = get_cached_update_info()
    if cached is not None:
        show_message(cached)
        return

    if not should_check_for_update():
        return

    results: "queue.Queue[Optional[GitHubRelease]]" = queue.Queue(maxsize=1)

    def worker() -> None:
        try:
            latest = check_for_update()
        except Exception:
            results.put(None)
            return
        try:
            cache_update_info(latest)
        except (OSError, RuntimeError):
            pass
        results.put(latest)

    threading.Thread(target=worker, daemon=True).start()

    try:
        release = results.get(timeout=_ASYNC_WAIT)
    except queue.Empty:
        return
    if release is not None:
        show_message(release)