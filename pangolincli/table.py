"""Plain-text, column-aligned tables."""

from __future__ import annotations

import sys
from typing import Iterable, Sequence

_PADDING = 2
_MIN_WIDTH = 0


def _write_lines(cells, start, end, widths, out):
    for line in cells[start:end]:
        for j, cell in enumerate(line):
            out.append(cell)
            if j < len(widths):
                out.append(" " * (widths[j] - len(cell)))
        out.append("\n")


def _format_block(cells, start, end, widths, out):
    column = len(widths)
    line0 = start
    this = start
    while this < end:
        if column >= len(cells[this]) - 1:
            this += 1
            continue
        _write_lines(cells, line0, this, widths, out)
        line0 = this
        width = _MIN_WIDTH
        while this < end and column < len(cells[this]) - 1:
            width = max(width, len(cells[this][column]) + _PADDING)
            this += 1
        _format_block(cells, line0, this, [*widths, width], out)
        line0 = this
    _write_lines(cells, line0, end, widths, out)


def format_table(headers: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    """Render headers and rows as tab-aligned text with two spaces of padding.

    The last cell of each line is never padded; columns are aligned within
    runs of consecutive lines that share them.
    """
    lines = ["\t".join(headers), *("\t".join(row) for row in rows)]
    cells = [line.split("\t") for line in lines]
    out: list[str] = []
    _format_block(cells, 0, len(cells), [], out)
    return "".join(out)


def print_table(headers: Sequence[str], rows: Iterable[Sequence[str]]) -> None:
    """Print a column-aligned table to standard output."""
    sys.stdout.write(format_table(headers, rows))
    sys.stdout.flush()