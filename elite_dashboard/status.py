"""Status.json snapshot decoding and combat/landing transition logging."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .event_log import EventLogRecorder
from .logging_utils import get_logger
from .session import SessionGate
from .state import SessionFlags


_log = get_logger("status")

# Bit positions are defined by the game's Status.json format.
LANDING_GEAR_FLAG = 1 << 2
SUPERCRUISE_FLAG = 1 << 4
HARDPOINTS_FLAG = 1 << 6


@dataclass(frozen=True)
class StatusBits:
    landing_gear_down: bool
    supercruise: bool
    hardpoints_deployed: bool

    @classmethod
    def from_flags(cls, flags: int) -> "StatusBits":
        return cls(
            landing_gear_down=bool(flags & LANDING_GEAR_FLAG),
            supercruise=bool(flags & SUPERCRUISE_FLAG),
            hardpoints_deployed=bool(flags & HARDPOINTS_FLAG),
        )


def _read_status_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


class StatusProcessor:
    """Compares each status snapshot with the previous one and logs transitions.

    Snapshots are only trusted while the session gate reports the commander
    in game; anything received otherwise is dropped, not queued.
    """

    def __init__(self, flags: SessionFlags, event_log: EventLogRecorder, gate: SessionGate) -> None:
        self._flags = flags
        self._event_log = event_log
        self._gate = gate

    async def process_file(self, path: Union[str, Path]) -> bool:
        if not self._gate.in_game:
            return False
        status_path = Path(path)
        loop = asyncio.get_running_loop()
        try:
            text = await loop.run_in_executor(None, _read_status_text, status_path)
        except OSError as exc:
            _log.warning("Failed to read status file %s: %s", status_path, exc)
            return False
        status = self.parse(text)
        if status is None:
            return False
        return self.handle_status(status)

    @staticmethod
    def parse(text: str) -> Optional[Dict[str, Any]]:
        if not text or not text.strip():
            return None
        try:
            payload = json.loads(text)
        except ValueError:
            # The game rewrites the file in place; a partial write parses badly.
            _log.debug("Ignoring unparsable status snapshot")
            return None
        return payload if isinstance(payload, dict) else None

    def handle_status(self, status: Dict[str, Any]) -> bool:
        if not self._gate.in_game:
            return False
        raw_flags = status.get("Flags")
        if isinstance(raw_flags, bool) or not isinstance(raw_flags, int):
            return False

        bits = StatusBits.from_flags(raw_flags)
        flags = self._flags
        hardpoints_changed = bits.hardpoints_deployed != flags.hardpoints_deployed
        gear_changed = bits.landing_gear_down != flags.landing_gear_down

        start_landing = (
            bits.landing_gear_down
            and not flags.landing_sequence_active
            and flags.initial_takeoff_complete
        )
        cancel_landing = not bits.landing_gear_down and flags.landing_sequence_active

        # Hardpoints retract on their own when entering supercruise.
        if hardpoints_changed and not bits.supercruise:
            if bits.hardpoints_deployed:
                self._event_log.record("-- Combat started --")
            else:
                self._event_log.record("-- Combat ended --")

        if gear_changed:
            if start_landing:
                self._event_log.record("-- Landing started --")
                flags.landing_sequence_active = True
            elif cancel_landing:
                self._event_log.record("-- Landing interrupted --")
                flags.landing_sequence_active = False

        flags.hardpoints_deployed = bits.hardpoints_deployed
        flags.landing_gear_down = bits.landing_gear_down
        return True


__all__ = [
    "HARDPOINTS_FLAG",
    "LANDING_GEAR_FLAG",
    "SUPERCRUISE_FLAG",
    "StatusBits",
    "StatusProcessor",
]
