from pangolincli.logpreview import (
    LogPreview,
    LogPreviewConfig,
    get_last_log_lines,
    run_log_preview,
)
from pangolincli.olm_client import OlmError, StatusError, StatusResponse


class FakeClient:
    def __init__(self, running=True, status=None, fail=False):
        self.running = running
        self.status = status
        self.fail = fail

    def is_running(self):
        return self.running

    def get_status(self):
        if self.fail:
            raise OlmError("boom")
        return self.status


def _formatter(running, status):
    return f"running={running} connected={status.connected if status else None}"


def _config(tmp_path, **kwargs):
    return LogPreviewConfig(
        log_file=str(tmp_path / "client.log"),
        header="Connecting",
        status_formatter=_formatter,
        **kwargs,
    )


def test_missing_file_keeps_position(tmp_path):
    assert get_last_log_lines(tmp_path / "none.log", 5, 7) == ([], 7)


def test_returns_last_n_lines(tmp_path):
    path = tmp_path / "a.log"
    path.write_text("a\nb\nc\n")
    assert get_last_log_lines(path, 2, 0) == (["b", "c"], path.stat().st_size)


def test_reads_only_new_content(tmp_path):
    path = tmp_path / "a.log"
    path.write_text("one\n")
    _, pos = get_last_log_lines(path, 5, 0)
    assert pos == path.stat().st_size
    with open(path, "a") as handle:
        handle.write("two\nthree")
    lines, new_pos = get_last_log_lines(path, 5, pos)
    assert lines == ["two", "three"]
    assert new_pos == path.stat().st_size
    assert get_last_log_lines(path, 5, new_pos) == ([], new_pos)


def test_crlf_lines_are_trimmed(tmp_path):
    path = tmp_path / "a.log"
    path.write_bytes(b"x\r\ny\r\n")
    assert get_last_log_lines(path, 5, 0)[0] == ["x", "y"]


def test_log_update_sets_lines(tmp_path):
    preview = LogPreview(_config(tmp_path), FakeClient())
    (tmp_path / "client.log").write_text("first\nsecond\n")
    preview.handle_log_update()
    assert preview.log_lines == ["first", "second"]
    assert preview.last_log_pos == (tmp_path / "client.log").stat().st_size
    preview.handle_log_update()
    assert preview.log_lines == ["first", "second"]


def test_view_layout_and_truncation(tmp_path):
    preview = LogPreview(_config(tmp_path), FakeClient(running=False))
    preview.log_lines = ["short", "z" * 100]
    lines = preview.view().split("\n")
    assert len(lines) == 7
    assert lines[0] == "Connecting"
    assert lines[1] == "short"
    assert lines[2] == "z" * 77 + "..."
    assert lines[3:6] == ["", "", ""]
    assert lines[6] == "Status: " + _formatter(False, None)


def test_error_before_registration_stops(tmp_path):
    seen = []
    error = StatusError(code="E", message="bad")
    client = FakeClient(status=StatusResponse(registered=False, error=error))
    preview = LogPreview(_config(tmp_path, on_error=lambda c, e: seen.append(e)), client)
    assert preview.handle_status_update(0.0) is True
    assert preview.error == error
    assert seen == [error]
    assert preview.completed is False


def test_error_after_registration_is_ignored(tmp_path):
    client = FakeClient(status=StatusResponse(registered=True, error=StatusError("E", "bad")))
    preview = LogPreview(_config(tmp_path), client)
    assert preview.handle_status_update(0.0) is False
    assert preview.error is None
    assert preview.status is client.status


def test_exit_condition_waits_one_second(tmp_path):
    condition = lambda c, s: (True, True)
    preview = LogPreview(_config(tmp_path, exit_condition=condition), FakeClient(running=False))
    assert preview.handle_status_update(10.0) is False
    assert preview.completed is True
    assert preview.handle_status_update(10.5) is False
    assert preview.handle_status_update(11.0) is True


def test_exit_condition_reset(tmp_path):
    answers = iter([(True, True), (False, False), (True, True)])
    preview = LogPreview(
        _config(tmp_path, exit_condition=lambda c, s: next(answers)), FakeClient(running=False)
    )
    preview.handle_status_update(0.0)
    preview.handle_status_update(2.0)
    assert preview.completed_time is None
    assert preview.handle_status_update(5.0) is False
    assert preview.completed_time == 5.0


def test_status_cleared_when_not_running_and_kept_on_failure(tmp_path):
    status = StatusResponse(connected=True)
    client = FakeClient(status=status)
    preview = LogPreview(_config(tmp_path), client)
    preview.handle_status_update(0.0)
    assert preview.status is status
    client.fail = True
    preview.handle_status_update(1.0)
    assert preview.status is status
    client.running = False
    preview.handle_status_update(2.0)
    assert preview.status is None


def test_interrupt_calls_callback(tmp_path):
    calls = []
    client = FakeClient()
    preview = LogPreview(_config(tmp_path, on_early_exit=calls.append), client)
    preview.completed = True
    preview.handle_interrupt()
    assert calls == [client]
    assert preview.completed is False


def test_run_stops_on_error(tmp_path, capsys):
    error = StatusError(code="E", message="bad")
    client = FakeClient(status=StatusResponse(registered=False, error=error))
    preview = LogPreview(_config(tmp_path), client)
    assert preview.run() == (False, error)
    assert "Connecting" in capsys.readouterr().out


def test_run_log_preview_without_socket_uses_exit_condition(tmp_path, capsys):
    config = _config(tmp_path, exit_condition=lambda c, s: (c.is_running() is False, True))
    completed, error = run_log_preview(config)
    assert (completed, error) == (True, None)
    assert "Status: running=" in capsys.readouterr().out