"""Incremental reader for today's journal files."""

from __future__ import annotations

import asyncio
import os
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from .logging_utils import get_logger


_log = get_logger("tailer")

JOURNAL_PREFIX = "Journal."
JOURNAL_SUFFIX = ".log"

PathLike = Union[str, Path]


def _read_increment(path: str, start: int) -> Tuple[int, bytes]:
    """Return ``(size, data)`` for the bytes between ``start`` and the current size."""

    size = os.stat(path).st_size
    if start >= size:
        return size, b""
    with open(path, "rb") as handle:
        handle.seek(start)
        data = handle.read(size - start)
    return size, data


class JournalTailer:
    """Tracks a read cursor per journal file and streams only unread lines.

    The cursor for a file moves only after every complete line of an
    increment has been handed to ``on_line``. If ``on_line`` raises, the
    cursor stays put and the same range is read again on the next call.
    An unterminated trailing fragment is left for the next increment.
    """

    def __init__(
        self,
        journal_dir: PathLike,
        on_line: Callable[[str], object],
        *,
        on_drained: Optional[Callable[[], None]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.journal_dir = Path(journal_dir)
        self._on_line = on_line
        self._on_drained = on_drained
        self._clock = clock
        self._offsets: Dict[str, int] = {}

    # ------------------------------------------------------------------
    # File selection
    # ------------------------------------------------------------------
    def todays_prefix(self) -> str:
        # Evaluated on every call so the filter follows the local date.
        return f"{JOURNAL_PREFIX}{self._clock():%Y-%m-%d}"

    def is_todays_journal(self, path: PathLike) -> bool:
        name = Path(path).name
        return name.startswith(self.todays_prefix()) and name.endswith(JOURNAL_SUFFIX)

    def todays_journals(self) -> List[Path]:
        """Enumerate matching files currently in the journal directory."""

        matches = [
            candidate
            for candidate in self.journal_dir.iterdir()
            if candidate.is_file() and self.is_todays_journal(candidate)
        ]
        return sorted(matches)

    # ------------------------------------------------------------------
    # Cursor
    # ------------------------------------------------------------------
    @staticmethod
    def _key(path: PathLike) -> str:
        return os.path.abspath(os.fspath(path))

    def offset(self, path: PathLike) -> int:
        return self._offsets.get(self._key(path), 0)

    @property
    def offsets(self) -> Dict[str, int]:
        return dict(self._offsets)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------
    async def process_file(self, path: PathLike, *, suppress_broadcast: bool = False) -> int:
        """Feed the unread lines of ``path`` to ``on_line``; return how many."""

        if not self.is_todays_journal(path):
            return 0

        key = self._key(path)
        start = self._offsets.get(key, 0)
        loop = asyncio.get_running_loop()
        try:
            size, data = await loop.run_in_executor(None, _read_increment, key, start)
        except OSError as exc:
            _log.warning("Failed to read journal %s: %s", key, exc)
            return 0

        if self._offsets.get(key, 0) != start:
            _log.debug("Cursor for %s moved during read; dropping stale increment", key)
            return 0
        if size < start:
            _log.warning("Journal %s shrank from %d to %d bytes; ignoring", key, start, size)
            return 0

        terminator = data.rfind(b"\n")
        if terminator < 0:
            return 0
        complete = data[: terminator + 1]

        count = 0
        for raw in complete.splitlines():
            self._on_line(raw.decode("utf-8", errors="replace"))
            count += 1

        self._offsets[key] = start + len(complete)
        _log.debug("Consumed %d line(s) from %s (offset %d -> %d)", count, key, start, self._offsets[key])

        if not suppress_broadcast and self._on_drained is not None:
            self._on_drained()
        return count

    async def initial_scan(self) -> int:
        """Drain every matching journal that already exists, without broadcasting."""

        total = 0
        for path in self.todays_journals():
            try:
                total += await self.process_file(path, suppress_broadcast=True)
            except Exception:
                _log.exception("Failed to process journal %s during initial scan", path)
        _log.info("Initial scan consumed %d journal line(s)", total)
        return total


__all__ = ["JOURNAL_PREFIX", "JOURNAL_SUFFIX", "JournalTailer"]
