from types import SimpleNamespace

import pytest

from pangolincli.identity import (
    account_display_name,
    account_display_name_with_host,
    switch_active_client_org,
    user_display_name,
)
from pangolincli.olm_client import AGENT_NAME, OlmError, StatusResponse, SwitchOrgResponse


def _person(email="", name=None, username=None, host=""):
    return SimpleNamespace(email=email, name=name, username=username, host=host)


class FakeClient:
    def __init__(self, running=True, status=None, status_error=None, switch_error=None):
        self.running = running
        self.status = status
        self.status_error = status_error
        self.switch_error = switch_error
        self.switched = []

    def is_running(self):
        return self.running

    def get_status(self):
        if self.status_error is not None:
            raise self.status_error
        return self.status

    def switch_org(self, org_id):
        if self.switch_error is not None:
            raise self.switch_error
        self.switched.append(org_id)
        return SwitchOrgResponse(status="ok")


@pytest.mark.parametrize(
    "person, expected",
    [
        (_person(email="alice@example.com", name="Alice", username="al"), "alice@example.com"),
        (_person(name="Alice", username="al"), "Alice"),
        (_person(name="", username="al"), "al"),
        (_person(), "User"),
    ],
)
def test_user_display_name_precedence(person, expected):
    assert user_display_name(person) == expected


@pytest.mark.parametrize(
    "person, expected",
    [
        (_person(email="bob@example.com", name="Bob"), "bob@example.com"),
        (_person(name="Bob", username="bobby"), "Bob"),
        (_person(username="bobby"), "bobby"),
        (_person(name="", username=""), "Account"),
    ],
)
def test_account_display_name_precedence(person, expected):
    assert account_display_name(person) == expected


def test_account_display_name_with_host():
    account = _person(email="bob@example.com", host="pangolin.example.com")
    assert account_display_name_with_host(account) == "bob@example.com @ pangolin.example.com"


def test_account_display_name_without_host():
    account = _person(username="bobby")
    assert account_display_name_with_host(account) == account_display_name(account)


def test_switch_not_running():
    client = FakeClient(running=False)
    assert switch_active_client_org("org1", client) is False
    assert client.switched == []


def test_switch_sends_request():
    client = FakeClient(status=StatusResponse(agent=AGENT_NAME, org_id="old"))
    assert switch_active_client_org("new", client) is True
    assert client.switched == ["new"]


def test_switch_skipped_for_other_agent():
    client = FakeClient(status=StatusResponse(agent="other agent", org_id="old"))
    assert switch_active_client_org("new", client) is False
    assert client.switched == []


def test_switch_skipped_when_already_on_org():
    client = FakeClient(status=StatusResponse(agent=AGENT_NAME, org_id="same"))
    assert switch_active_client_org("same", client) is False
    assert client.switched == []


def test_switch_status_failure_warns(capsys):
    client = FakeClient(status_error=OlmError("boom"))
    assert switch_active_client_org("new", client) is False
    out = capsys.readouterr().out
    assert "Failed to get current status: boom" in out


def test_switch_request_failure_warns(capsys):
    client = FakeClient(
        status=StatusResponse(agent=AGENT_NAME, org_id="old"),
        switch_error=OlmError("refused"),
    )
    assert switch_active_client_org("new", client) is False
    out = capsys.readouterr().out
    assert "Failed to switch organization in active client: refused" in out
    assert "saved to config" in out