"""Recording-scoped event log shared by the journal and status processors."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, List, Optional

from .formatting import format_elapsed_time
from .logging_utils import get_logger


_log = get_logger("event_log")

START_MARKER = "-- Recording started --"
STOP_MARKER = "-- Recording stopped --"
MINOR_PREFIX = "* "


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EventLogRecorder:
    """Accumulates human-readable log lines while a recording is active.

    ``begin``/``end`` are driven by the external recorder. Every change to the
    line sequence is delivered through ``on_changed`` as a fresh list.
    """

    def __init__(
        self,
        on_changed: Optional[Callable[[List[str]], None]] = None,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._on_changed = on_changed
        self._clock = clock
        self._lines: List[str] = []
        self._recording_start: Optional[datetime] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def begin(self, start_time: Optional[datetime] = None) -> None:
        start = self._ensure_aware(start_time or self._clock())
        self._recording_start = start
        self._lines = [f"[{format_elapsed_time(0)}] {START_MARKER}"]
        _log.info("Recording started at %s", start.isoformat())
        self._deliver()

    def end(self) -> None:
        if self._recording_start is not None:
            elapsed = self.elapsed()
            self._lines.append(f"[{elapsed}] {STOP_MARKER}")
            _log.info("Recording stopped after %s", elapsed)
        self._recording_start = None
        self._deliver()

    # ------------------------------------------------------------------
    # Event capture
    # ------------------------------------------------------------------
    @property
    def is_recording(self) -> bool:
        return self._recording_start is not None

    @property
    def recording_start(self) -> Optional[datetime]:
        return self._recording_start

    @property
    def lines(self) -> List[str]:
        return list(self._lines)

    def elapsed(self, now: Optional[datetime] = None) -> str:
        if self._recording_start is None:
            return format_elapsed_time(0)
        current = self._ensure_aware(now or self._clock())
        return format_elapsed_time(current - self._recording_start)

    def record(self, message: str, *, minor: bool = False) -> bool:
        """Append ``message`` if recording; return whether a line was written."""

        if not message or self._recording_start is None:
            return False
        prefix = MINOR_PREFIX if minor else ""
        self._lines.append(f"{prefix}[{self.elapsed()}] {message}")
        self._deliver()
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _deliver(self) -> None:
        if self._on_changed is not None:
            self._on_changed(list(self._lines))

    @staticmethod
    def _ensure_aware(value: datetime) -> datetime:
        # Naive values are local wall-clock time.
        return value.astimezone(timezone.utc)


__all__ = ["EventLogRecorder", "MINOR_PREFIX", "START_MARKER", "STOP_MARKER"]
