"""Shared fakes for the dashboard tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, List


class FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.callback()


class FakeScheduler:
    """Records scheduled callbacks instead of running them."""

    def __init__(self) -> None:
        self.timers: List[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(3310, 5, 1, 10, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)
