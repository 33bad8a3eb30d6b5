"""Shared pytest fixtures."""

from __future__ import annotations

import re
from io import StringIO

import pytest
from rich.cells import get_character_cell_size
from rich.console import Console

_TOKEN = re.compile(r"\x1b\[(\d+)([ABCDG])|(\r)|(\n)|(.)", re.DOTALL)


class TerminalModel:
    """Minimal VT100 screen: auto-wrap with a pending wrap at the last column.

    A double-width character takes two cells; the second one holds "". A wide
    character that does not fit in the remaining cells moves to the next row.
    """

    def __init__(self, columns: int) -> None:
        self.columns = columns
        self.cells: dict[int, dict[int, str]] = {}
        self.row = 0
        self.col = 0

    def feed(self, data: str) -> None:
        for match in _TOKEN.finditer(data):
            count, code, cr, lf, char = match.groups()
            if code is not None:
                self._move(code, int(count))
            elif cr:
                self.col = 0
            elif lf:
                # the tty translates LF into CR LF
                self.row += 1
                self.col = 0
            else:
                self._put(char)

    def _put(self, char: str) -> None:
        width = get_character_cell_size(char)
        if not width:
            return
        if self.col + width > self.columns:
            self.row += 1
            self.col = 0
        cells = self.cells.setdefault(self.row, {})
        span = range(self.col, self.col + width)
        for col in span:
            # overwriting half of a wide character blanks the other half
            if cells.get(col) == "" and col - 1 not in span:
                cells[col - 1] = " "
            if cells.get(col + 1) == "" and col + 1 not in span:
                cells[col + 1] = " "
        cells[self.col] = char
        for col in span[1:]:
            cells[col] = ""
        self.col += width

    def _move(self, code: str, count: int) -> None:
        col = min(self.col, self.columns - 1)
        if code == "A":
            self.row = max(0, self.row - count)
            self.col = col
        elif code == "B":
            self.row += count
            self.col = col
        elif code == "C":
            self.col = min(self.columns - 1, col + count)
        elif code == "D":
            self.col = max(0, col - count)
        else:
            self.col = min(self.columns - 1, count - 1)

    def lines(self) -> list[str]:
        """Screen content, one string per row, trailing blanks stripped."""
        if not self.cells:
            return []
        height = max(self.cells) + 1
        result = []
        for row in range(height):
            cells = self.cells.get(row, {})
            width = max(cells) + 1 if cells else 0
            result.append("".join(cells.get(col, " ") for col in range(width)).rstrip())
        while result and not result[-1]:
            result.pop()
        return result


def expected_lines(frame: str, columns: int) -> list[str]:
    """How ``frame`` looks on a fresh screen ``columns`` wide."""
    screen = TerminalModel(columns)
    screen.feed(frame)
    return screen.lines()


@pytest.fixture
def make_console():
    """Build an in-memory console of the given size."""

    def _make(width: int = 80, height: int = 24) -> Console:
        return Console(file=StringIO(), width=width, height=height, force_terminal=True)

    return _make


@pytest.fixture
def terminal():
    return TerminalModel


@pytest.fixture
def screen_of():
    return expected_lines
