"""Game session lifecycle tracking used to gate status snapshot processing."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable, Optional, Protocol

from .logging_utils import get_logger


_log = get_logger("session")

DEFAULT_SETTLE_DELAY = 1.5


class SessionPhase(Enum):
    NOT_IN_GAME = "not_in_game"
    LOADING = "loading"
    IN_GAME = "in_game"


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]


class _SettledTimer:
    def cancel(self) -> None:
        pass


def loop_scheduler(delay: float, callback: Callable[[], None]) -> TimerHandle:
    """Schedule ``callback`` on the running asyncio loop.

    Outside a loop there is nothing to wait on, so ``callback`` runs at once.
    """

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        callback()
        return _SettledTimer()
    return loop.call_later(delay, callback)


class SessionGate:
    """Derives whether the commander is in game from lifecycle events.

    ``NOT_IN_GAME -> LOADING -> IN_GAME -> NOT_IN_GAME``. The LOADING to
    IN_GAME step waits ``settle_delay`` seconds after the first location
    event so the status file has stabilised before it is trusted.
    """

    def __init__(
        self,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        *,
        schedule: Scheduler = loop_scheduler,
        on_phase_changed: Optional[Callable[[SessionPhase], None]] = None,
    ) -> None:
        self._settle_delay = max(0.0, float(settle_delay))
        self._schedule = schedule
        self._on_phase_changed = on_phase_changed
        self._phase = SessionPhase.NOT_IN_GAME
        self._settle_handle: Optional[TimerHandle] = None

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def in_game(self) -> bool:
        return self._phase is SessionPhase.IN_GAME

    @property
    def loading(self) -> bool:
        return self._phase is SessionPhase.LOADING

    @property
    def settle_pending(self) -> bool:
        return self._settle_handle is not None

    def game_loaded(self) -> None:
        self._cancel_settle()
        self._set_phase(SessionPhase.LOADING)

    def location_observed(self) -> None:
        if self._phase is not SessionPhase.LOADING or self._settle_handle is not None:
            return
        _log.debug("Location received while loading; settling for %.1fs", self._settle_delay)
        handle = self._schedule(self._settle_delay, self._settle)
        # The scheduler may have settled synchronously.
        if self._phase is SessionPhase.LOADING:
            self._settle_handle = handle

    def session_ended(self) -> None:
        self._cancel_settle()
        self._set_phase(SessionPhase.NOT_IN_GAME)

    def close(self) -> None:
        self._cancel_settle()

    def _settle(self) -> None:
        self._settle_handle = None
        if self._phase is SessionPhase.LOADING:
            self._set_phase(SessionPhase.IN_GAME)

    def _cancel_settle(self) -> None:
        handle = self._settle_handle
        if handle is not None:
            handle.cancel()
            self._settle_handle = None

    def _set_phase(self, phase: SessionPhase) -> None:
        if phase is self._phase:
            return
        _log.info("Game session %s -> %s", self._phase.value, phase.value)
        self._phase = phase
        if self._on_phase_changed is not None:
            self._on_phase_changed(phase)


__all__ = ["DEFAULT_SETTLE_DELAY", "Scheduler", "SessionGate", "SessionPhase", "TimerHandle", "loop_scheduler"]
