import asyncio
import shutil
import unittest
from datetime import datetime
from pathlib import Path
from tempfile import TemporaryDirectory

from ..event_log import EventLogRecorder
from ..journal import JournalProcessor
from ..session import SessionGate, SessionPhase
from ..tailer import JournalTailer
from .support import FakeScheduler


DATA_DIR = Path(__file__).with_name("data")
TODAY = datetime(2025, 3, 14, 12, 0, 0)


class JournalReplayTest(unittest.TestCase):
    """Replays a recorded play session through the tailer and processor."""

    def setUp(self) -> None:
        self._tmp = TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.journal_dir = Path(self._tmp.name)
        self.journal_path = self.journal_dir / f"Journal.{TODAY:%Y-%m-%d}T100000.01.log"
        shutil.copyfile(DATA_DIR / "sample_journal.jsonl", self.journal_path)

        self.scheduler = FakeScheduler()
        self.phases = []
        self.gate = SessionGate(schedule=self.scheduler, on_phase_changed=self.phases.append)
        self.processor = JournalProcessor(event_log=EventLogRecorder(), gate=self.gate)
        self.tailer = JournalTailer(self.journal_dir, self.processor.handle_line, clock=lambda: TODAY)

    def test_replay_aggregates(self) -> None:
        consumed = asyncio.run(self.tailer.initial_scan())
        self.assertEqual(consumed, 29)

        payload = self.processor.snapshot()
        self.assertEqual(payload["lastUpdateTimestamp"], "3310-05-01T11:00:00Z")

        bounty = payload["bounty"]
        self.assertEqual(bounty["count"], 3)
        self.assertEqual(bounty["totalRewards"], 352000)
        self.assertEqual(bounty["targets"], {"Anaconda": 1, "Sidewinder": 1})
        self.assertEqual(bounty["ranks"], {"Deadly": 1, "Unknown": 1})

        self.assertEqual(
            payload["missions"],
            {"completed": 2, "federation": 1, "empire": 0, "independent": 1},
        )

        materials = payload["materials"]
        self.assertEqual(materials["total"], 10)
        self.assertEqual(materials["categories"], {"Raw": 8, "Encoded": 2})
        self.assertEqual(materials["details"]["Raw"], {"Iron": 3, "nickel": 5})
        self.assertEqual(materials["details"]["Encoded"], {"Aberrant Shield Pattern Analysis": 2})

        exploration = payload["exploration"]
        self.assertEqual(exploration["totalScans"], 2)
        self.assertEqual(exploration["firstToDiscover"], 1)
        self.assertEqual(exploration["highValueScans"], 2)
        self.assertEqual(exploration["estimatedValue"], 5_000_000)
        self.assertEqual(exploration["jumpCount"], 1)
        self.assertEqual(exploration["jumpDistance"], 12.5)
        self.assertTrue(exploration["valuableBodyFound"]["elw"])
        self.assertTrue(exploration["valuableBodyFound"]["terraformable"])
        self.assertFalse(exploration["valuableBodyFound"]["ww"])

        progress = payload["progress"]
        self.assertEqual(progress["Combat"], {"rank": 4, "name": "Expert", "progress": 0.0, "nextName": "Master"})
        self.assertEqual(progress["Explore"]["name"], "Pathfinder")
        self.assertEqual(progress["Explore"]["progress"], 87)
        self.assertEqual(progress["Federation"]["name"], "Petty Officer")
        self.assertEqual(progress["Trade"]["nextName"], "")

        trading = payload["trading"]
        self.assertEqual(trading["totalBuy"], 90000)
        self.assertEqual(trading["totalSell"], 100000)
        self.assertEqual(trading["profit"], 10000)

    def test_replay_drives_session_lifecycle(self) -> None:
        asyncio.run(self.tailer.initial_scan())

        self.assertEqual(len(self.scheduler.timers), 1)
        self.assertTrue(self.scheduler.timers[0].cancelled)
        self.assertEqual(self.phases, [SessionPhase.LOADING, SessionPhase.NOT_IN_GAME])

    def test_replay_is_not_repeated(self) -> None:
        asyncio.run(self.tailer.initial_scan())
        self.assertEqual(asyncio.run(self.tailer.process_file(self.journal_path)), 0)
        self.assertEqual(self.processor.state.bounty.count, 3)


if __name__ == "__main__":
    unittest.main()
