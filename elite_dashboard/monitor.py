"""Watches the journal directory and serialises change notifications.

watchdog delivers notifications on its observer thread; they are handed to
the asyncio loop with ``call_soon_threadsafe`` and processed one at a time
by a single dispatch task, so journal and status handling never interleave
their mutations.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Callable, Optional, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from .logging_utils import get_logger
from .status import StatusProcessor
from .tailer import JournalTailer


_log = get_logger("monitor")

DEFAULT_STATUS_FILENAME = "Status.json"


class JournalDirectoryHandler(FileSystemEventHandler):
    """Forwards file paths of interest from the observer thread."""

    def __init__(self, notify: Callable[[str], None]) -> None:
        super().__init__()
        self._notify = notify

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._notify(os.fsdecode(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._notify(os.fsdecode(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._notify(os.fsdecode(event.dest_path))


class JournalMonitor:
    """Drives the tailer and status processor from file-system notifications."""

    def __init__(
        self,
        tailer: JournalTailer,
        status: StatusProcessor,
        *,
        status_filename: str = DEFAULT_STATUS_FILENAME,
        on_ready: Optional[Callable[[], None]] = None,
        observer_factory: Callable[[], BaseObserver] = Observer,
    ) -> None:
        self._tailer = tailer
        self._status = status
        self._status_filename = status_filename
        self._on_ready = on_ready
        self._observer_factory = observer_factory
        self._observer: Optional[BaseObserver] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue[str]] = None
        self._pending: Set[str] = set()
        self._task: Optional[asyncio.Task[None]] = None
        self.ready = False

    @property
    def journal_dir(self) -> Path:
        return self._tailer.journal_dir

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self) -> None:
        journal_dir = self.journal_dir
        if not journal_dir.is_dir():
            raise FileNotFoundError(f"Journal directory does not exist: {journal_dir}")

        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()

        observer = self._observer_factory()
        observer.schedule(JournalDirectoryHandler(self._notify_threadsafe), str(journal_dir), recursive=False)
        observer.daemon = True
        observer.start()
        self._observer = observer
        _log.info("Monitoring journal folder: %s", journal_dir)

        await self._tailer.initial_scan()
        self.ready = True
        _log.info("Initial scan complete; watching for changes")
        if self._on_ready is not None:
            self._on_ready()

        self._task = asyncio.create_task(self._dispatch_loop(), name="journal-dispatch")

    async def stop(self) -> None:
        observer = self._observer
        self._observer = None
        if observer is not None:
            observer.stop()
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, observer.join, 5.0)
        task = self._task
        self._task = None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.ready = False
        _log.info("Journal monitoring stopped")

    # ------------------------------------------------------------------
    # Notification plumbing
    # ------------------------------------------------------------------
    def _notify_threadsafe(self, path: str) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self.enqueue, path)

    def enqueue(self, path: str) -> None:
        """Queue ``path`` for processing unless it is already waiting."""

        if self._queue is None or path in self._pending:
            return
        self._pending.add(path)
        self._queue.put_nowait(path)

    async def _dispatch_loop(self) -> None:
        assert self._queue is not None
        while True:
            path = await self._queue.get()
            self._pending.discard(path)
            try:
                await self.dispatch(path)
            except Exception:
                _log.exception("Failed to process change notification for %s", path)
            finally:
                self._queue.task_done()

    async def dispatch(self, path: str) -> None:
        name = Path(path).name
        if name == self._status_filename:
            await self._status.process_file(path)
        elif self._tailer.is_todays_journal(path):
            await self._tailer.process_file(path)


__all__ = ["DEFAULT_STATUS_FILENAME", "JournalDirectoryHandler", "JournalMonitor"]
