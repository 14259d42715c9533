"""Journal event processing: folds journal records into dashboard statistics."""

from __future__ import annotations

import json
from collections import Counter
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .event_log import EventLogRecorder
from .formatting import format_compact_number
from .logging_utils import get_logger
from .ranks import ALL_RANKS, UNKNOWN_RANK, combat_rank_name, estimate_scan_value
from .session import SessionGate
from .state import (
    DashboardState,
    SessionFlags,
    apply_rank_level,
    new_dashboard_state,
    state_to_payload,
)


_log = get_logger("journal")

TRACKED_ALLEGIANCES = ("Federation", "Empire")
MAIN_MENU_TRACK = "MainMenu"


class JournalEvent(str, Enum):
    """Journal ``event`` values the dashboard understands."""

    BOUNTY = "Bounty"
    FACTION_KILL_BOND = "FactionKillBond"
    SHIP_TARGETED = "ShipTargeted"
    MATERIAL_COLLECTED = "MaterialCollected"
    FSD_JUMP = "FSDJump"
    LOCATION = "Location"
    MISSION_ACCEPTED = "MissionAccepted"
    MISSION_COMPLETED = "MissionCompleted"
    MISSION_FAILED = "MissionFailed"
    MISSION_ABANDONED = "MissionAbandoned"
    SCAN = "Scan"
    PROGRESS = "Progress"
    RANK = "Rank"
    PROMOTION = "Promotion"
    LOAD_GAME = "LoadGame"
    UNDOCKED = "Undocked"
    LIFTOFF = "Liftoff"
    DOCKED = "Docked"
    TOUCHDOWN = "Touchdown"
    DOCKING_GRANTED = "DockingGranted"
    DOCKING_CANCELLED = "DockingCancelled"
    SHIPYARD_SWAP = "ShipyardSwap"
    SHUTDOWN = "Shutdown"
    MUSIC = "Music"
    MARKET_BUY = "MarketBuy"
    MARKET_SELL = "MarketSell"
    UNKNOWN = "__unknown__"

    @classmethod
    def _missing_(cls, value: object) -> "JournalEvent":
        return cls.UNKNOWN

    @classmethod
    def of(cls, entry: Dict[str, Any]) -> "JournalEvent":
        name = entry.get("event")
        if not isinstance(name, str):
            return cls.UNKNOWN
        return cls(name)


def _localised(entry: Dict[str, Any], key: str) -> Optional[str]:
    for candidate in (f"{key}_Localised", key):
        value = entry.get(candidate)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]


def _as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _is_detailed_scan(entry: Dict[str, Any]) -> bool:
    return entry.get("ScanType") == "Detailed"


class JournalProcessor:
    """Transforms journal records into aggregate statistics and event log lines."""

    def __init__(
        self,
        state: Optional[DashboardState] = None,
        *,
        flags: Optional[SessionFlags] = None,
        event_log: Optional[EventLogRecorder] = None,
        gate: Optional[SessionGate] = None,
        on_state_changed: Optional[Callable[[Dict[str, Any]], None]] = None,
    ) -> None:
        self._state = state or new_dashboard_state()
        self.flags = flags or SessionFlags()
        self.event_log = event_log or EventLogRecorder()
        self.gate = gate or SessionGate()
        self._on_state_changed = on_state_changed
        self._handlers: Dict[JournalEvent, Callable[[Dict[str, Any]], None]] = {
            JournalEvent.BOUNTY: self._handle_bounty,
            JournalEvent.FACTION_KILL_BOND: self._handle_faction_kill_bond,
            JournalEvent.SHIP_TARGETED: self._handle_ship_targeted,
            JournalEvent.MATERIAL_COLLECTED: self._handle_material_collected,
            JournalEvent.FSD_JUMP: self._handle_fsd_jump,
            JournalEvent.LOCATION: self._handle_system_change,
            JournalEvent.MISSION_ACCEPTED: self._handle_mission_accepted,
            JournalEvent.MISSION_COMPLETED: self._handle_mission_completed,
            JournalEvent.MISSION_FAILED: self._handle_mission_dropped,
            JournalEvent.MISSION_ABANDONED: self._handle_mission_dropped,
            JournalEvent.SCAN: self._handle_scan,
            JournalEvent.PROGRESS: self._handle_progress,
            JournalEvent.RANK: self._handle_rank,
            JournalEvent.PROMOTION: self._handle_promotion,
            JournalEvent.LOAD_GAME: self._handle_load_game,
            JournalEvent.UNDOCKED: self._handle_takeoff,
            JournalEvent.LIFTOFF: self._handle_takeoff,
            JournalEvent.DOCKED: self._handle_landing_complete,
            JournalEvent.TOUCHDOWN: self._handle_landing_complete,
            JournalEvent.DOCKING_GRANTED: self._handle_docking_granted,
            JournalEvent.DOCKING_CANCELLED: self._handle_docking_cancelled,
            JournalEvent.SHUTDOWN: self._handle_session_end,
            JournalEvent.MUSIC: self._handle_music,
            JournalEvent.MARKET_BUY: self._handle_market_buy,
            JournalEvent.MARKET_SELL: self._handle_market_sell,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def state(self) -> DashboardState:
        return self._state

    def snapshot(self) -> Dict[str, Any]:
        return state_to_payload(self._state)

    def publish_state(self) -> None:
        if self._on_state_changed is not None:
            self._on_state_changed(self.snapshot())

    def reset_statistics(self) -> None:
        """Discard every accumulated statistic and broadcast the fresh aggregate."""

        _log.info("Resetting dashboard statistics")
        self._state = new_dashboard_state()
        self.flags.first_scan_seen = False
        self.publish_state()

    def handle_line(self, line: str) -> bool:
        """Decode one journal line; malformed or empty lines are skipped."""

        text = line.strip()
        if not text:
            return False
        try:
            entry = json.loads(text)
        except ValueError:
            _log.debug("Skipping malformed journal line: %.200s", text)
            return False
        if not isinstance(entry, dict):
            _log.debug("Skipping non-object journal line: %.200s", text)
            return False
        self.handle_entry(entry)
        return True

    def handle_entry(self, entry: Dict[str, Any]) -> None:
        if not entry:
            return

        timestamp = entry.get("timestamp")
        if timestamp:
            self._state.last_update_timestamp = timestamp

        event = JournalEvent.of(entry)
        if self.event_log.is_recording:
            self._record_log_line(event, entry)

        handler = self._handlers.get(event)
        if handler is not None:
            handler(entry)

    # ------------------------------------------------------------------
    # Event log emission
    # ------------------------------------------------------------------
    def _record_log_line(self, event: JournalEvent, entry: Dict[str, Any]) -> None:
        # Evaluated against the flags as they were before this entry is folded.
        flags = self.flags
        message: Optional[str] = None
        minor = False

        if event is JournalEvent.BOUNTY:
            minor = True
            message = f"Destroyed: {self._target_name(entry)}"
        elif event is JournalEvent.FSD_JUMP:
            message = f"Jump to: {entry.get('StarSystem') or 'Unknown'}"
        elif event is JournalEvent.DOCKING_GRANTED:
            if not flags.landing_sequence_active:
                message = "-- Landing started --"
        elif event is JournalEvent.DOCKING_CANCELLED:
            if flags.landing_sequence_active:
                message = "-- Landing cancelled --"
        elif event is JournalEvent.DOCKED:
            message = f"Docked: {entry.get('StationName') or 'Unknown'}"
        elif event is JournalEvent.TOUCHDOWN:
            message = f"Landed: {entry.get('Body') or 'Unknown'}"
        elif event is JournalEvent.UNDOCKED:
            message = f"Undocked: {entry.get('StationName') or 'Unknown'}"
        elif event is JournalEvent.LIFTOFF:
            message = f"Liftoff: {entry.get('Body') or 'Unknown'}"
        elif event is JournalEvent.SHIPYARD_SWAP:
            ship = _localised(entry, "ShipType") or "Unknown"
            message = f"Swapped to: {_capitalize(ship)}"
        elif event is JournalEvent.SCAN:
            if _is_detailed_scan(entry) and not flags.first_scan_seen:
                message = f"First discovery: {entry.get('BodyName') or 'Unknown'}"

        if message:
            self.event_log.record(message, minor=minor)

    # ------------------------------------------------------------------
    # Combat
    # ------------------------------------------------------------------
    @staticmethod
    def _target_name(entry: Dict[str, Any]) -> str:
        localised = entry.get("Target_Localised")
        if isinstance(localised, str) and localised.strip():
            return localised.strip()
        raw = entry.get("Target")
        if isinstance(raw, str) and raw.strip():
            return _capitalize(raw.strip())
        return UNKNOWN_RANK

    def _handle_bounty(self, entry: Dict[str, Any]) -> None:
        bounty = self._state.bounty
        bounty.count += 1

        reward = 0
        rewards = entry.get("Rewards")
        if isinstance(rewards, list):
            for item in rewards:
                if isinstance(item, dict):
                    reward += _as_int(item.get("Reward"))
            bounty.total_rewards += reward

        bounty.targets[self._target_name(entry)] += 1

        pilot_name = _localised(entry, "PilotName")
        rank = UNKNOWN_RANK
        if pilot_name and pilot_name in self.flags.pilot_ranks:
            rank = combat_rank_name(self.flags.pilot_ranks[pilot_name])
        bounty.ranks[rank] += 1
        _log.info("Ship destroyed: %s (%s) @ %s Cr", pilot_name, rank, format_compact_number(reward))

    def _handle_faction_kill_bond(self, entry: Dict[str, Any]) -> None:
        bounty = self._state.bounty
        bounty.count += 1
        bounty.total_rewards += _as_int(entry.get("Reward"))

    def _handle_ship_targeted(self, entry: Dict[str, Any]) -> None:
        if entry.get("TargetLocked") is not True or "PilotRank" not in entry:
            return
        pilot_name = _localised(entry, "PilotName")
        rank = entry.get("PilotRank")
        if pilot_name and isinstance(rank, (int, str)) and not isinstance(rank, bool):
            self.flags.pilot_ranks[pilot_name] = rank

    # ------------------------------------------------------------------
    # Materials and trading
    # ------------------------------------------------------------------
    def _handle_material_collected(self, entry: Dict[str, Any]) -> None:
        category = entry.get("Category")
        name = _localised(entry, "Name")
        if not isinstance(category, str) or not category or not name:
            return
        quantity = max(0, _as_int(entry.get("Count"), 1))
        if quantity == 0:
            return
        materials = self._state.materials
        materials.total += quantity
        materials.categories[category] += quantity
        details = materials.details.get(category)
        if details is None:
            details = materials.details[category] = Counter()
        details[name] += quantity

    def _handle_market_buy(self, entry: Dict[str, Any]) -> None:
        self._state.trading.total_buy += _as_int(entry.get("TotalCost"))

    def _handle_market_sell(self, entry: Dict[str, Any]) -> None:
        trading = self._state.trading
        total_sale = _as_int(entry.get("TotalSale"))
        count = _as_int(entry.get("Count"))
        avg_paid = _as_float(entry.get("AvgPricePaid")) or 0.0
        trading.total_sell += total_sale
        trading.sell_count += 1
        trading.units_sold += count
        trading.profit += total_sale - avg_paid * count

    # ------------------------------------------------------------------
    # Navigation and missions
    # ------------------------------------------------------------------
    def _handle_fsd_jump(self, entry: Dict[str, Any]) -> None:
        exploration = self._state.exploration
        exploration.jump_count += 1
        distance = _as_float(entry.get("JumpDist"))
        if distance is not None and distance > 0:
            exploration.jump_distance += distance
        self._handle_system_change(entry)

    def _handle_system_change(self, entry: Dict[str, Any]) -> None:
        allegiances: Dict[str, str] = {}
        factions = entry.get("Factions")
        if isinstance(factions, list):
            for faction in factions:
                if not isinstance(faction, dict):
                    continue
                name = faction.get("Name")
                allegiance = faction.get("Allegiance")
                if isinstance(name, str) and name and isinstance(allegiance, str) and allegiance:
                    allegiances[name] = allegiance
        self.flags.faction_allegiances = allegiances
        self.gate.location_observed()

    def _handle_mission_accepted(self, entry: Dict[str, Any]) -> None:
        mission_id = entry.get("MissionID")
        allegiance = self.flags.faction_allegiances.get(entry.get("Faction") or "")
        if mission_id is not None and allegiance in TRACKED_ALLEGIANCES:
            self.flags.active_missions[mission_id] = allegiance

    def _handle_mission_completed(self, entry: Dict[str, Any]) -> None:
        allegiance = self.flags.active_missions.pop(entry.get("MissionID"), None)
        missions = self._state.missions
        missions.completed += 1
        if allegiance == "Federation":
            missions.federation += 1
        elif allegiance == "Empire":
            missions.empire += 1
        else:
            missions.independent += 1

    def _handle_mission_dropped(self, entry: Dict[str, Any]) -> None:
        self.flags.active_missions.pop(entry.get("MissionID"), None)

    # ------------------------------------------------------------------
    # Exploration
    # ------------------------------------------------------------------
    def _handle_scan(self, entry: Dict[str, Any]) -> None:
        if not _is_detailed_scan(entry):
            return
        exploration = self._state.exploration
        exploration.total_scans += 1
        # The first detailed scan of a session is the baseline and is not counted.
        if self.flags.first_scan_seen:
            exploration.first_to_discover += 1
        else:
            self.flags.first_scan_seen = True

        planet_class = entry.get("PlanetClass")
        terraform_state = entry.get("TerraformState")
        value = estimate_scan_value(planet_class, terraform_state)
        exploration.estimated_value += value
        if value > 0:
            exploration.high_value_scans += 1

        bodies = exploration.valuable_body_found
        if planet_class == "Earthlike body":
            bodies.elw = True
        elif planet_class == "Water world":
            bodies.ww = True
        elif planet_class == "Ammonia world":
            bodies.aw = True
        if terraform_state == "Terraformable":
            bodies.terraformable = True

    # ------------------------------------------------------------------
    # Ranks
    # ------------------------------------------------------------------
    def _handle_progress(self, entry: Dict[str, Any]) -> None:
        for track in ALL_RANKS:
            if track not in entry:
                continue
            value = _as_float(entry.get(track))
            if value is not None:
                self._state.progress[track].progress = value

    def _handle_rank(self, entry: Dict[str, Any]) -> None:
        self._apply_ranks(entry, promotion=False)

    def _handle_promotion(self, entry: Dict[str, Any]) -> None:
        self._apply_ranks(entry, promotion=True)

    def _apply_ranks(self, entry: Dict[str, Any], *, promotion: bool) -> None:
        for track, table in ALL_RANKS.items():
            if track not in entry:
                continue
            level = entry.get(track)
            if isinstance(level, bool) or not isinstance(level, int):
                _log.debug("Ignoring non-integer %s rank: %r", track, level)
                continue
            item = self._state.progress[track]
            apply_rank_level(item, table, level)
            if promotion:
                item.progress = 0.0
                _log.info("Promoted in %s to %s", track, item.name)

    # ------------------------------------------------------------------
    # Session flags
    # ------------------------------------------------------------------
    def _handle_load_game(self, entry: Dict[str, Any]) -> None:
        started_landed = bool(entry.get("Docked") or entry.get("StartLanded"))
        self.flags.initial_takeoff_complete = not started_landed
        self.flags.landing_gear_down = started_landed
        self.gate.game_loaded()

    def _handle_takeoff(self, entry: Dict[str, Any]) -> None:
        self.flags.initial_takeoff_complete = True
        self.flags.landing_sequence_active = False
        # The gear is still down when leaving the pad; retracting it must not
        # read as an interrupted landing.
        self.flags.landing_gear_down = True

    def _handle_landing_complete(self, entry: Dict[str, Any]) -> None:
        self.flags.landing_sequence_active = False

    def _handle_docking_granted(self, entry: Dict[str, Any]) -> None:
        self.flags.landing_sequence_active = True

    def _handle_docking_cancelled(self, entry: Dict[str, Any]) -> None:
        self.flags.landing_sequence_active = False

    def _handle_session_end(self, entry: Dict[str, Any]) -> None:
        self.gate.session_ended()

    def _handle_music(self, entry: Dict[str, Any]) -> None:
        if entry.get("MusicTrack") == MAIN_MENU_TRACK:
            self.gate.session_ended()


__all__ = ["JournalEvent", "JournalProcessor", "TRACKED_ALLEGIANCES"]
