"""Live terminal preview of the client log while waiting on the OLM process."""

from __future__ import annotations

import os
import sys
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, TextIO

from .logger import Color, _render
from .olm_client import OlmClient, OlmError, StatusError, StatusResponse

ExitCondition = Callable[[Any, Optional[StatusResponse]], "tuple[bool, bool]"]
StatusFormatter = Callable[[bool, Optional[StatusResponse]], str]

_PREVIEW_LINES = 5
_MAX_LINE = 80
_LOG_INTERVAL = 0.2
_STATUS_INTERVAL = 0.5
_EXIT_DELAY = 1.0


@dataclass
class LogPreviewConfig:
    """What the preview shows and how it decides to stop."""

    log_file: str
    header: str
    status_formatter: StatusFormatter
    exit_condition: Optional[ExitCondition] = None
    on_early_exit: Optional[Callable[[Any], None]] = None
    on_error: Optional[Callable[[Any, StatusError], None]] = None


def get_last_log_lines(
    log_path: str | os.PathLike, n: int, last_pos: int
) -> tuple[list[str], int]:
    """Last n lines written after last_pos, and the file's current size."""
    try:
        with open(log_path, "rb") as handle:
            size = os.fstat(handle.fileno()).st_size
            if size <= last_pos:
                return [], last_pos
            handle.seek(last_pos)
            data = handle.read()
    except OSError:
        return [], last_pos

    lines = data.decode("utf-8", errors="replace").split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    lines = [line.removesuffix("\r") for line in lines]
    return lines[-n:] if len(lines) > n else lines, size


class LogPreview:
    """State and rendering of the live log preview."""

    def __init__(self, config: LogPreviewConfig, client: Any = None) -> None:
        self.config = config
        self.client = client if client is not None else OlmClient()
        self.log_lines: list[str] = []
        self.status: Optional[StatusResponse] = None
        self.last_log_pos = 0
        self.completed_time: Optional[float] = None
        self.completed = False
        self.error: Optional[StatusError] = None

    def handle_log_update(self) -> None:
        """Pick up lines appended to the log since the last update."""
        lines, new_pos = get_last_log_lines(self.config.log_file, _PREVIEW_LINES, self.last_log_pos)
        if new_pos != self.last_log_pos:
            self.last_log_pos = new_pos
            self.log_lines = lines

    def handle_status_update(self, now: Optional[float] = None) -> bool:
        """Refresh the OLM status; return True when the preview should stop."""
        if self.client.is_running():
            try:
                status = self.client.get_status()
            except OlmError:
                status = None
            if status is not None:
                self.status = status
                if status.error is not None and not status.registered:
                    self.error = status.error
                    if self.config.on_error is not None:
                        self.config.on_error(self.client, status.error)
                    self.completed = False
                    return True
        else:
            self.status = None

        if self.config.exit_condition is not None:
            should_exit, completed = self.config.exit_condition(self.client, self.status)
            if should_exit:
                current = time.monotonic() if now is None else now
                if self.completed_time is None:
                    self.completed_time = current
                    self.completed = completed
                elif current - self.completed_time >= _EXIT_DELAY:
                    return True
            else:
                self.completed_time = None
        return False

    def handle_interrupt(self) -> None:
        """The user stopped the preview early."""
        if self.config.on_early_exit is not None:
            self.config.on_early_exit(self.client)
        self.completed = False

    def view(self) -> str:
        """Render the header, the last log lines and the status line."""
        parts = [self.config.header, "\n"]
        for index in range(_PREVIEW_LINES):
            if index < len(self.log_lines):
                line = self.log_lines[index]
                if len(line) > _MAX_LINE:
                    line = line[: _MAX_LINE - 3] + "..."
                parts.append(_render(Color.LIGHT_GRAY, line, sys.stdout))
            parts.append("\n")
        parts.append("Status: ")
        parts.append(self.config.status_formatter(self.client.is_running(), self.status))
        return "".join(parts)

    def _draw(self, out: TextIO, previous_lines: int) -> int:
        text = self.view()
        if previous_lines > 1:
            out.write(f"\x1b[{previous_lines - 1}A")
        if previous_lines:
            out.write("\r\x1b[J")
        out.write(text)
        out.flush()
        return text.count("\n") + 1

    def run(self) -> tuple[bool, Optional[StatusError]]:
        """Show the preview until it completes, fails or is interrupted."""
        out = sys.stdout
        start = time.monotonic()
        next_log = start + 2 * _LOG_INTERVAL
        next_status = start + _STATUS_INTERVAL
        drawn = 0
        try:
            drawn = self._draw(out, drawn)
            while True:
                delay = min(next_log, next_status) - time.monotonic()
                if delay > 0:
                    time.sleep(delay)
                now = time.monotonic()
                stop = False
                if now >= next_log:
                    self.handle_log_update()
                    next_log = now + _LOG_INTERVAL
                if now >= next_status:
                    stop = self.handle_status_update(now)
                    next_status = now + _STATUS_INTERVAL
                drawn = self._draw(out, drawn)
                if stop:
                    break
        except KeyboardInterrupt:
            self.handle_interrupt()
        out.write("\n")
        out.flush()
        return self.completed, self.error


def run_log_preview(config: LogPreviewConfig) -> tuple[bool, Optional[StatusError]]:
    """Run a preview against the default OLM socket; return (completed, status error)."""
    return LogPreview(config).run()