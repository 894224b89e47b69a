"""Client for the local OLM process, spoken to over HTTP on a Unix socket."""

from __future__ import annotations

import http.client
import json
import os
import re
import socket
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

DEFAULT_SOCKET_PATH = "/var/run/olm.sock"
AGENT_NAME = "Pangolin CLI"
DEFAULT_TIMEOUT = 5.0

_RFC3339 = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(\.\d+)?([Zz]|[+-]\d{2}:\d{2})?$"
)
_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


class OlmError(Exception):
    """Raised when the OLM process cannot be reached or answers badly."""


def _parse_time(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError(f"expected timestamp string, got {type(value).__name__}")
    match = _RFC3339.match(value)
    if match is None:
        raise ValueError(f"invalid timestamp: {value!r}")
    date_part, time_part, frac, tz = match.groups()
    frac_text = ""
    if frac:
        frac_text = "." + frac[1:7].ljust(6, "0")
    if tz is None or tz in ("Z", "z"):
        tz = "+00:00"
    parsed = datetime.fromisoformat(f"{date_part}T{time_part}{frac_text}{tz}")
    return None if parsed == _ZERO_TIME else parsed


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what}: expected object, got {type(data).__name__}")
    return data


@dataclass
class StatusError:
    """An error reported in the OLM status."""

    code: str = ""
    message: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "StatusError":
        data = _mapping(data, "error")
        return cls(code=str(data.get("code") or ""), message=str(data.get("message") or ""))


@dataclass
class PeerStatus:
    """Connection state of one peer site."""

    site_id: int = 0
    site_name: str = ""
    connected: bool = False
    rtt: timedelta = field(default_factory=timedelta)
    last_seen: Optional[datetime] = None
    endpoint: str = ""
    is_relay: bool = False
    peer_ip: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "PeerStatus":
        data = _mapping(data, "peer")
        rtt_ns = data.get("rtt") or 0
        if isinstance(rtt_ns, bool) or not isinstance(rtt_ns, (int, float)):
            raise ValueError("rtt: expected number of nanoseconds")
        return cls(
            site_id=int(data.get("siteId") or 0),
            site_name=str(data.get("name") or ""),
            connected=bool(data.get("connected", False)),
            rtt=timedelta(microseconds=rtt_ns / 1000),
            last_seen=_parse_time(data.get("lastSeen")),
            endpoint=str(data.get("endpoint") or ""),
            is_relay=bool(data.get("isRelay", False)),
            peer_ip=str(data.get("peerAddress") or ""),
        )


@dataclass
class StatusResponse:
    """The status reported by the OLM process."""

    connected: bool = False
    registered: bool = False
    terminated: bool = False
    version: str = ""
    agent: str = ""
    org_id: str = ""
    peer_statuses: dict[int, PeerStatus] = field(default_factory=dict)
    network_settings: dict[str, Any] = field(default_factory=dict)
    error: Optional[StatusError] = None

    @classmethod
    def from_dict(cls, data: Any) -> "StatusResponse":
        """Build a status from the decoded JSON body."""
        data = _mapping(data, "status")
        peers_raw = data.get("peers") or {}
        peers = {
            int(key): PeerStatus.from_dict(value)
            for key, value in _mapping(peers_raw, "peers").items()
            if value is not None
        }
        settings = data.get("networkSettings") or {}
        error_raw = data.get("error")
        return cls(
            connected=bool(data.get("connected", False)),
            registered=bool(data.get("registered", False)),
            terminated=bool(data.get("terminated", False)),
            version=str(data.get("version") or ""),
            agent=str(data.get("agent") or ""),
            org_id=str(data.get("orgId") or ""),
            peer_statuses=peers,
            network_settings=dict(_mapping(settings, "networkSettings")),
            error=None if error_raw is None else StatusError.from_dict(error_raw),
        )


@dataclass
class ExitResponse:
    """Reply to a shutdown request."""

    status: str = ""


@dataclass
class SwitchOrgResponse:
    """Reply to an organisation switch request."""

    status: str = ""


class _UnixHTTPConnection(http.client.HTTPConnection):
    def __init__(self, socket_path: str, timeout: float) -> None:
        super().__init__("localhost", timeout=timeout)
        self._socket_path = socket_path

    def connect(self) -> None:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(self.timeout)
        try:
            sock.connect(self._socket_path)
        except OSError:
            sock.close()
            raise
        self.sock = sock


def get_default_socket_path() -> str:
    """Return the default path of the OLM control socket."""
    return DEFAULT_SOCKET_PATH


class OlmClient:
    """Talks to a running OLM process through its control socket."""

    def __init__(self, socket_path: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.socket_path = socket_path or get_default_socket_path()
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        body: Optional[bytes] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> bytes:
        conn = _UnixHTTPConnection(self.socket_path, self.timeout)
        try:
            conn.request(method, path, body=body, headers=headers or {})
            response = conn.getresponse()
            payload = response.read()
            status = response.status
        except (OSError, http.client.HTTPException) as exc:
            if not os.path.exists(self.socket_path):
                raise OlmError(
                    f"socket does not exist: {self.socket_path} (is the client running?)"
                ) from exc
            raise OlmError(f"failed to connect to socket: {exc}") from exc
        finally:
            conn.close()

        if status != 200:
            text = payload.decode("utf-8", errors="replace")
            raise OlmError(f"unexpected status code {status}: {text}")
        return payload

    @staticmethod
    def _decode(payload: bytes) -> Any:
        try:
            return json.loads(payload)
        except ValueError as exc:
            raise OlmError(f"failed to decode response: {exc}") from exc

    def get_status(self) -> StatusResponse:
        """Fetch the current status of the OLM process."""
        data = self._decode(self._request("GET", "/status"))
        try:
            return StatusResponse.from_dict(data)
        except (ValueError, TypeError) as exc:
            raise OlmError(f"failed to decode response: {exc}") from exc

    def exit(self) -> ExitResponse:
        """Ask the OLM process to shut down."""
        data = self._decode(self._request("POST", "/exit"))
        if not isinstance(data, Mapping):
            raise OlmError("failed to decode response: expected object")
        return ExitResponse(status=str(data.get("status") or ""))

    def switch_org(self, org_id: str) -> SwitchOrgResponse:
        """Switch the running OLM process to another organisation."""
        body = json.dumps({"org_id": org_id}).encode("utf-8")
        payload = self._request(
            "POST", "/switch-org", body=body, headers={"Content-Type": "application/json"}
        )
        data = self._decode(payload)
        if not isinstance(data, Mapping):
            raise OlmError("failed to decode response: expected object")
        return SwitchOrgResponse(status=str(data.get("status") or ""))

    def is_running(self) -> bool:
        """Whether the socket exists and the process answers a health check."""
        if not os.path.exists(self.socket_path):
            return False
        try:
            self._request("GET", "/health")
        except OlmError:
            return False
        return True