"""Dataclasses that encapsulate the aggregate statistics and session flags."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from .ranks import ALL_RANKS, next_rank_name, rank_name


@dataclass
class BountyStats:
    count: int = 0
    total_rewards: int = 0
    targets: Counter[str] = field(default_factory=Counter)
    ranks: Counter[str] = field(default_factory=Counter)


@dataclass
class MaterialStats:
    total: int = 0
    categories: Counter[str] = field(default_factory=Counter)
    details: Dict[str, Counter[str]] = field(default_factory=dict)


@dataclass
class MissionStats:
    """Completed missions; ``federation + empire + independent == completed``."""

    completed: int = 0
    federation: int = 0
    empire: int = 0
    independent: int = 0


@dataclass
class ValuableBodyFlags:
    elw: bool = False
    ww: bool = False
    aw: bool = False
    terraformable: bool = False


@dataclass
class ExplorationStats:
    total_scans: int = 0
    high_value_scans: int = 0
    first_to_discover: int = 0
    estimated_value: int = 0
    jump_count: int = 0
    jump_distance: float = 0.0
    valuable_body_found: ValuableBodyFlags = field(default_factory=ValuableBodyFlags)


@dataclass
class TradingStats:
    total_buy: int = 0
    total_sell: int = 0
    sell_count: int = 0
    units_sold: int = 0
    profit: float = 0.0


@dataclass
class RankProgress:
    """One progression track; ``name`` always mirrors the table entry for ``rank``."""

    rank: int = 0
    name: str = ""
    progress: float = 0.0
    next_name: str = ""


def initial_progress() -> Dict[str, RankProgress]:
    return {
        track: RankProgress(
            rank=0,
            name=rank_name(table, 0),
            progress=0.0,
            next_name=next_rank_name(table, 0),
        )
        for track, table in ALL_RANKS.items()
    }


@dataclass
class DashboardState:
    """Represents the cumulative statistics broadcast to viewers."""

    last_update_timestamp: Optional[str] = None
    bounty: BountyStats = field(default_factory=BountyStats)
    materials: MaterialStats = field(default_factory=MaterialStats)
    missions: MissionStats = field(default_factory=MissionStats)
    exploration: ExplorationStats = field(default_factory=ExplorationStats)
    trading: TradingStats = field(default_factory=TradingStats)
    progress: Dict[str, RankProgress] = field(default_factory=initial_progress)


@dataclass
class SessionFlags:
    """Ephemeral derived state that is never broadcast.

    Survives a statistics reset except for ``first_scan_seen`` which belongs
    to the accumulated exploration figures.
    """

    hardpoints_deployed: bool = False
    landing_gear_down: bool = False
    landing_sequence_active: bool = False
    initial_takeoff_complete: bool = False
    first_scan_seen: bool = False
    pilot_ranks: Dict[str, Union[int, str]] = field(default_factory=dict)
    active_missions: Dict[int, str] = field(default_factory=dict)
    faction_allegiances: Dict[str, str] = field(default_factory=dict)


def new_dashboard_state() -> DashboardState:
    """Return a fresh aggregate with every counter zeroed."""

    return DashboardState()


def apply_rank_level(track: RankProgress, table, level: int) -> None:
    track.rank = level
    track.name = rank_name(table, level)
    track.next_name = next_rank_name(table, level)


def _number(value: float) -> Union[int, float]:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def state_to_payload(state: DashboardState) -> Dict[str, Any]:
    """Serialise the aggregate into its wire form.

    The result shares nothing with ``state`` so consumers may hold on to it
    or transform it freely.
    """

    exploration = state.exploration
    bodies = exploration.valuable_body_found
    return {
        "lastUpdateTimestamp": state.last_update_timestamp,
        "bounty": {
            "count": state.bounty.count,
            "totalRewards": state.bounty.total_rewards,
            "targets": dict(state.bounty.targets),
            "ranks": dict(state.bounty.ranks),
        },
        "materials": {
            "total": state.materials.total,
            "categories": dict(state.materials.categories),
            "details": {
                category: dict(counts)
                for category, counts in state.materials.details.items()
            },
        },
        "missions": {
            "completed": state.missions.completed,
            "federation": state.missions.federation,
            "empire": state.missions.empire,
            "independent": state.missions.independent,
        },
        "exploration": {
            "totalScans": exploration.total_scans,
            "highValueScans": exploration.high_value_scans,
            "firstToDiscover": exploration.first_to_discover,
            "estimatedValue": exploration.estimated_value,
            "jumpCount": exploration.jump_count,
            "jumpDistance": _number(round(exploration.jump_distance, 2)),
            "valuableBodyFound": {
                "elw": bodies.elw,
                "ww": bodies.ww,
                "aw": bodies.aw,
                "terraformable": bodies.terraformable,
            },
        },
        "trading": {
            "totalBuy": state.trading.total_buy,
            "totalSell": state.trading.total_sell,
            "sellCount": state.trading.sell_count,
            "unitsSold": state.trading.units_sold,
            "profit": _number(state.trading.profit),
        },
        "progress": {
            track: {
                "rank": item.rank,
                "name": item.name,
                "progress": item.progress,
                "nextName": item.next_name,
            }
            for track, item in state.progress.items()
        },
    }


__all__ = [
    "BountyStats",
    "DashboardState",
    "ExplorationStats",
    "MaterialStats",
    "MissionStats",
    "RankProgress",
    "SessionFlags",
    "TradingStats",
    "ValuableBodyFlags",
    "apply_rank_level",
    "initial_progress",
    "new_dashboard_state",
    "state_to_payload",
]
