import asyncio
import json
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

from ..event_log import EventLogRecorder
from ..session import SessionGate
from ..state import SessionFlags
from ..status import HARDPOINTS_FLAG, LANDING_GEAR_FLAG, SUPERCRUISE_FLAG, StatusBits, StatusProcessor
from .support import FakeClock, FakeScheduler


class StatusProcessorTest(unittest.TestCase):
    def setUp(self) -> None:
        self.scheduler = FakeScheduler()
        self.gate = SessionGate(schedule=self.scheduler)
        self.flags = SessionFlags()
        self.event_log = EventLogRecorder(clock=FakeClock())
        self.processor = StatusProcessor(self.flags, self.event_log, self.gate)

    def _enter_game(self) -> None:
        self.gate.game_loaded()
        self.gate.location_observed()
        self.scheduler.timers[-1].fire()
        self.assertTrue(self.gate.in_game)

    def _status(self, flags: int) -> bool:
        return self.processor.handle_status({"timestamp": "3310-05-01T10:00:00Z", "event": "Status", "Flags": flags})

    def test_flag_bits(self) -> None:
        bits = StatusBits.from_flags(LANDING_GEAR_FLAG | HARDPOINTS_FLAG)
        self.assertTrue(bits.landing_gear_down)
        self.assertTrue(bits.hardpoints_deployed)
        self.assertFalse(bits.supercruise)

    def test_snapshots_ignored_outside_game(self) -> None:
        self.event_log.begin()
        self.assertFalse(self._status(HARDPOINTS_FLAG))
        self.assertFalse(self.flags.hardpoints_deployed)

        self.gate.game_loaded()
        self.assertFalse(self._status(HARDPOINTS_FLAG))
        self.assertEqual(len(self.event_log.lines), 1)

    def test_combat_transitions(self) -> None:
        self._enter_game()
        self.event_log.begin()

        self._status(HARDPOINTS_FLAG)
        self._status(HARDPOINTS_FLAG)
        self._status(0)

        self.assertEqual(
            self.event_log.lines[1:],
            ["[00:00:00] -- Combat started --", "[00:00:00] -- Combat ended --"],
        )

    def test_hardpoint_changes_in_supercruise_are_silent(self) -> None:
        self._enter_game()
        self.event_log.begin()

        self._status(HARDPOINTS_FLAG)
        self._status(SUPERCRUISE_FLAG)

        self.assertEqual(self.event_log.lines[1:], ["[00:00:00] -- Combat started --"])
        self.assertFalse(self.flags.hardpoints_deployed)

    def test_landing_requires_completed_takeoff(self) -> None:
        self._enter_game()
        self.event_log.begin()

        self._status(LANDING_GEAR_FLAG)
        self._status(0)
        self.assertEqual(len(self.event_log.lines), 1)

        self.flags.initial_takeoff_complete = True
        self._status(LANDING_GEAR_FLAG)
        self.assertTrue(self.flags.landing_sequence_active)
        self._status(0)
        self.assertFalse(self.flags.landing_sequence_active)

        self.assertEqual(
            self.event_log.lines[1:],
            ["[00:00:00] -- Landing started --", "[00:00:00] -- Landing interrupted --"],
        )

    def test_flags_update_without_recording(self) -> None:
        self._enter_game()
        self.flags.initial_takeoff_complete = True

        self.assertTrue(self._status(LANDING_GEAR_FLAG | HARDPOINTS_FLAG))

        self.assertTrue(self.flags.landing_gear_down)
        self.assertTrue(self.flags.hardpoints_deployed)
        self.assertTrue(self.flags.landing_sequence_active)
        self.assertEqual(self.event_log.lines, [])

    def test_missing_flags_are_ignored(self) -> None:
        self._enter_game()
        self.assertFalse(self.processor.handle_status({"event": "Status"}))
        self.assertFalse(self.processor.handle_status({"event": "Status", "Flags": "64"}))

    def test_parse(self) -> None:
        self.assertIsNone(StatusProcessor.parse(""))
        self.assertIsNone(StatusProcessor.parse('{"Flags": 1'))
        self.assertIsNone(StatusProcessor.parse("[]"))
        self.assertEqual(StatusProcessor.parse('{"Flags": 4}'), {"Flags": 4})

    def test_process_file_reads_snapshot(self) -> None:
        self._enter_game()
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "Status.json"
            path.write_text(json.dumps({"event": "Status", "Flags": HARDPOINTS_FLAG}), encoding="utf-8")

            self.assertTrue(asyncio.run(self.processor.process_file(path)))
            self.assertTrue(self.flags.hardpoints_deployed)
            self.assertFalse(asyncio.run(self.processor.process_file(Path(tmp) / "missing.json")))


if __name__ == "__main__":
    unittest.main()
