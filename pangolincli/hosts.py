"""Helpers for turning server hostnames into web base URLs."""

DEFAULT_HOSTNAME = "app.pangolin.net"


def format_hostname_base_url(hostname: str) -> str:
    """Return the hostname as a base URL with scheme and without the API suffix."""
    if not hostname:
        hostname = DEFAULT_HOSTNAME
    if not hostname.startswith(("http://", "https://")):
        hostname = "https://" + hostname
    hostname = hostname.removesuffix("/api/v1")
    return hostname.removesuffix("/")