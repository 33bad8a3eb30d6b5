"""
Terminal output helpers.

Holds the size formatter, the in-place frame renderer used for the live
report, and the key watcher that lets the user abort a running scan.
"""
import asyncio
import os
import sys

from rich.cells import cell_len, chop_cells, set_cell_size
from rich.console import Console
from rich.control import Control
from rich.segment import ControlType

SIZE_UNITS = ["B", "K", "M", "G", "T", "P", "E", "Z", "Y"]


def format_size(size):
    for unit in SIZE_UNITS:
        if size < 1024:
            return f"{size:.1f}{unit}"
        size /= 1024
    return "Inf"


def wrap_line(line, columns):
    """Split ``line`` into screen rows at most ``columns`` cells wide."""
    if cell_len(line) <= columns:
        return [line]
    return chop_cells(line, columns) or [line]


def screen_rows(text, columns):
    """
    Lay ``text`` out on a terminal ``columns`` wide.

    Returns the number of occupied cells for every screen row the text
    touches; double-width characters count twice. The last item is the
    column the cursor rests on afterwards. A line exactly as wide as the
    terminal stays on one row: the wrap only happens once another character
    is printed. A wrapped row counts as full even when a wide character did
    not fit in its last cell.
    """
    rows = []
    for line in text.split("\n"):
        chunks = wrap_line(line, columns)
        rows.extend([columns] * (len(chunks) - 1))
        rows.append(cell_len(chunks[-1]))
    return rows


class FrameRenderer:
    """
    Redraws a multi-line frame in place without clearing the screen.

    Every call to :meth:`render` moves the cursor back to the top-left corner
    of the previous frame and writes the new one over it. Rows the new frame
    leaves shorter than before are padded with spaces so nothing from the old
    frame survives.
    """

    def __init__(self, console=None):
        self.console = console if console is not None else Console()
        self._frame = None
        self._rows = []
        self._row = 0
        self._col = 0

    @property
    def columns(self):
        return max(1, self.console.size.width)

    def _rewind(self):
        if self._row:
            return str(Control.move(y=-self._row)) + str(Control(ControlType.CARRIAGE_RETURN))
        return str(Control.move(x=-self._col))

    def _padding(self, row, col):
        if row < len(self._rows) and self._rows[row] > col:
            return " " * (self._rows[row] - col)
        return ""

    def render(self, frame):
        columns = self.columns
        out = [self._rewind()]
        rows = []
        lines = frame.split("\n")
        for index, line in enumerate(lines):
            if index:
                out.append("\n")
            chunks = wrap_line(line, columns)
            # fill rows a wide character left short so the wrap is explicit
            out.extend(set_cell_size(chunk, columns) for chunk in chunks[:-1])
            out.append(chunks[-1])
            rows.extend([columns] * (len(chunks) - 1))
            rows.append(cell_len(chunks[-1]))
            if index < len(lines) - 1:
                out.append(self._padding(len(rows) - 1, rows[-1]))

        last_row, last_col = len(rows) - 1, rows[-1]
        tail = self._padding(last_row, last_col)
        out.append(tail)
        end_row, end_col = last_row, last_col + len(tail)

        # blank whatever the previous frame drew below the new one
        leftover = self._rows[last_row + 1:]
        while leftover and not leftover[-1]:
            leftover.pop()
        for offset, width in enumerate(leftover, start=1):
            out.append("\n" + " " * width)
            end_row, end_col = last_row + offset, width

        if end_row != last_row or (end_col > last_col and end_col >= columns):
            out.append(str(Control.move(y=last_row - end_row)))
            out.append(str(Control(ControlType.CARRIAGE_RETURN)))
            out.append(str(Control.move(x=last_col)))
        elif end_col > last_col:
            out.append(str(Control.move(x=last_col - end_col)))

        self.console.file.write("".join(out))
        self.console.file.flush()
        self._frame = frame
        self._rows = rows
        self._row = last_row
        self._col = last_col

    def end(self):
        """Leave the cursor on a fresh line below the last frame."""
        if self._frame is not None and not self._frame.endswith("\n"):
            self.console.file.write("\n")
            self.console.file.flush()
        self._frame = None
        self._rows = []
        self._row = self._col = 0


class KeyWatcher:
    """
    Sets ``pressed`` as soon as any key is hit on an interactive stdin.

    The terminal is switched to cbreak mode so single key presses arrive
    without waiting for Enter; output processing is left alone.
    """

    def __init__(self, stream=None):
        self.stream = stream if stream is not None else sys.stdin
        self.pressed = asyncio.Event()
        self._loop = None
        self._fd = None
        self._saved = None

    def start(self):
        if sys.platform == "win32" or self.stream is None or not self.stream.isatty():
            return False
        import termios
        import tty

        self._fd = self.stream.fileno()
        self._saved = termios.tcgetattr(self._fd)
        tty.setcbreak(self._fd)
        self._loop = asyncio.get_running_loop()
        self._loop.add_reader(self._fd, self._on_key)
        return True

    def _on_key(self):
        os.read(self._fd, 1024)
        self.pressed.set()

    def close(self):
        if self._loop is not None:
            self._loop.remove_reader(self._fd)
            self._loop = None
        if self._saved is not None:
            import termios

            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved)
            self._saved = None
