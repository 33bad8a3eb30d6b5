"""
Live report: frame layout and render throttling.
"""
import time

from rich.cells import cell_len

from analyzer import largest_entries
from settings import DEFAULT_INTERVAL_MS, DISPLAY_NAME
from ui import format_size

STOP_MESSAGE = "[Press any key to exit]"
DONE_MESSAGE = "done."


def row_budget(rows, finished):
    """How many entry rows fit on a terminal ``rows`` lines high."""
    # heading and separator, then the footer line
    budget = rows - 2 - 1
    if finished:
        # the shell prompt comes back below "done."
        return budget - 1
    # blank line and stop message
    return budget - 2


def build_report(entries, pending, columns, rows, name=DISPLAY_NAME):
    finished = pending == 0
    shown = largest_entries(entries, row_budget(rows, finished))
    sizes = [format_size(entry.size) for entry in shown]
    size_width = max((len(size) for size in sizes), default=0)
    path_width = max((cell_len(entry.path) for entry in shown), default=0)

    pending_message = f"pending: {pending}"
    footer = [DONE_MESSAGE] if finished else [pending_message, STOP_MESSAGE]

    width = max(
        cell_len(f"== {name} =="),
        1 + size_width + 2 + path_width,
        *(cell_len(text) for text in footer),
    )
    if width % 2 == 1:
        width += 1
    width = min(width, columns)

    fill = "=" * max(0, (width - cell_len(name) - 2) // 2)
    lines = [f"{fill} {name} {fill}"]
    for size, entry in zip(sizes, shown):
        lines.append(f" {size:>{size_width}}  {entry.path}")
    lines.append("=" * width)
    if finished:
        lines.append(DONE_MESSAGE)
        return "\n".join(lines) + "\n"
    lines += [pending_message, "", STOP_MESSAGE]
    return "\n".join(lines)


def _monotonic_ms():
    return time.monotonic() * 1000


class ReportScheduler:
    """
    Throttles renders to one per ``interval`` milliseconds.

    The render that follows the end of the scan is never throttled, so the
    settled totals always reach the screen.
    """

    def __init__(self, render, is_finished, interval=DEFAULT_INTERVAL_MS, clock=None):
        if interval < 0:
            raise ValueError(f"interval must not be negative: {interval}")
        self._render = render
        self._is_finished = is_finished
        self.interval = interval
        self._clock = clock if clock is not None else _monotonic_ms
        self.next_deadline = 0
        self.renders = 0
        self._settled = False

    def _draw(self):
        self.renders += 1
        self._render()

    def on_progress(self):
        if self._settled:
            return
        now = self._clock()
        rendered = False
        if now >= self.next_deadline:
            self._draw()
            self.next_deadline = now + self.interval
            rendered = True
        if self._is_finished():
            if not rendered:
                self._draw()
            self._settled = True
