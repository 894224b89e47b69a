"""Display names for users and accounts, and organisation switching."""

from __future__ import annotations

from typing import Any, Optional

from . import logger
from .olm_client import AGENT_NAME, OlmClient, OlmError


def _first_name(email: Optional[str], name: Optional[str], username: Optional[str], fallback: str) -> str:
    for candidate in (email, name, username):
        if candidate:
            return candidate
    return fallback


def user_display_name(user: Any) -> str:
    """Email, else name, else username, else "User"."""
    return _first_name(
        getattr(user, "email", None),
        getattr(user, "name", None),
        getattr(user, "username", None),
        "User",
    )


def account_display_name(account: Any) -> str:
    """Email, else name, else username, else "Account"."""
    return _first_name(
        getattr(account, "email", None),
        getattr(account, "name", None),
        getattr(account, "username", None),
        "Account",
    )


def account_display_name_with_host(account: Any) -> str:
    """Account display name followed by " @ host" when the host is known."""
    display_name = account_display_name(account)
    host = getattr(account, "host", None)
    if host:
        return f"{display_name} @ {host}"
    return display_name


def switch_active_client_org(org_id: str, client: Any = None) -> bool:
    """Switch a running client started by this tool to org_id.

    Returns True only when a switch request was sent successfully.
    """
    if client is None:
        client = OlmClient()
    if not client.is_running():
        return False

    try:
        current_status = client.get_status()
    except OlmError as exc:
        logger.warning("Failed to get current status: %v", exc)
        return False

    if current_status is not None and current_status.agent != AGENT_NAME:
        return False

    if current_status is not None and current_status.org_id == org_id:
        return False

    try:
        client.switch_org(org_id)
    except OlmError as exc:
        logger.warning("Failed to switch organization in active client: %v", exc)
        logger.warning(
            "The organization has been saved to config, but the active client "
            "may still be using the previous organization."
        )
        return False

    return True