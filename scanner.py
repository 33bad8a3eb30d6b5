import asyncio
import os
import stat
from dataclasses import dataclass

from settings import logger


@dataclass
class RootEntry:
    path: str
    size: int = 0


def is_tolerated_error(error):
    # permission denied (e.g. lost+found) or vanished mid-scan (e.g. /proc/<pid>/fd/*)
    return isinstance(error, (PermissionError, FileNotFoundError))


def list_root_entries(target):
    names = sorted(os.listdir(target))
    return [RootEntry(name if target == "." else os.path.join(target, name)) for name in names]


class DirectoryScanner:
    """
    Accumulates the size of every regular file below each root entry.

    The blocking ``stat``/``listdir`` calls run on ``executor`` while all the
    bookkeeping happens on the event loop, one completion at a time.
    ``pending`` counts the filesystem operations issued but not completed yet;
    the scan is over when it drops back to zero.
    """

    def __init__(self, on_progress=None, follow_links=False, executor=None):
        self.on_progress = on_progress
        self.follow_links = follow_links
        self.executor = executor
        self.roots = []
        self.pending = 0
        self._started = False
        self._error = None
        self._tasks = set()
        self._loop = None
        self._done = None

    @property
    def finished(self):
        return self._started and self.pending == 0

    def scan(self, roots):
        """Start walking ``roots``; returns without waiting for any result."""
        self._loop = asyncio.get_running_loop()
        self._done = asyncio.Event()
        self.roots = list(roots)
        self._started = True
        for root in self.roots:
            self._visit(root, root.path)
        if not self.pending:
            self._done.set()

    async def wait(self):
        await self._done.wait()
        if self._error is not None:
            raise self._error

    def cancel(self):
        for task in list(self._tasks):
            task.cancel()

    def _issue(self, coro):
        self.pending += 1
        task = self._loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _visit(self, root, path):
        self._issue(self._check_file(root, path))

    async def _call(self, func, path):
        return await self._loop.run_in_executor(self.executor, func, path)

    async def _check_file(self, root, path):
        stat_fn = os.stat if self.follow_links else os.lstat
        try:
            info = await self._call(stat_fn, path)
        except OSError as e:
            self._complete(path, e)
            return
        if stat.S_ISREG(info.st_mode):
            root.size += info.st_size
        elif stat.S_ISDIR(info.st_mode):
            self._issue(self._list_dir(root, path))
        self._complete(path)

    async def _list_dir(self, root, path):
        try:
            names = await self._call(os.listdir, path)
        except OSError as e:
            self._complete(path, e)
            return
        for name in names:
            self._visit(root, os.path.join(path, name))
        self._complete(path)

    def _complete(self, path, error=None):
        if self._error is not None:
            return
        if error is not None:
            if not is_tolerated_error(error):
                self._fail(error)
                return
            logger.debug("Skipping %s: %s", path, error)
        self.pending -= 1
        if self.on_progress is not None:
            try:
                self.on_progress()
            except Exception as e:
                self._fail(e)
                return
        if not self.pending:
            self._done.set()

    def _fail(self, error):
        self._error = error
        self.cancel()
        self._done.set()
