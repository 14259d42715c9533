"""Static rank tables and exploration value lookups."""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Sequence, Tuple, Union


UNKNOWN_RANK = "Unknown"

FEDERATION_RANKS: Tuple[str, ...] = (
    "None", "Recruit", "Cadet", "Midshipman", "Petty Officer", "Chief Petty Officer",
    "Warrant Officer", "Ensign", "Lieutenant", "Lieutenant Commander", "Post Commander",
    "Post Captain", "Rear Admiral", "Vice Admiral", "Admiral",
)
EMPIRE_RANKS: Tuple[str, ...] = (
    "None", "Outsider", "Serf", "Master", "Squire", "Knight", "Lord", "Baron", "Viscount",
    "Count", "Earl", "Marquis", "Duke", "Prince", "King",
)
COMBAT_RANKS: Tuple[str, ...] = (
    "Harmless", "Mostly Harmless", "Novice", "Competent", "Expert", "Master", "Dangerous",
    "Deadly", "Elite", "Elite I", "Elite II", "Elite III", "Elite IV", "Elite V",
)
TRADE_RANKS: Tuple[str, ...] = (
    "Penniless", "Mostly Penniless", "Peddler", "Dealer", "Merchant", "Broker", "Entrepreneur",
    "Tycoon", "Elite", "Elite I", "Elite II", "Elite III", "Elite IV", "Elite V",
)
EXPLORE_RANKS: Tuple[str, ...] = (
    "Aimless", "Mostly Aimless", "Scout", "Surveyor", "Explorer", "Pathfinder", "Ranger",
    "Pioneer", "Elite", "Elite I", "Elite II", "Elite III", "Elite IV", "Elite V",
)
CQC_RANKS: Tuple[str, ...] = (
    "Helpless", "Mostly Helpless", "Amateur", "Semi-Professional", "Professional", "Champion",
    "Hero", "Legend", "Elite", "Elite I", "Elite II", "Elite III", "Elite IV", "Elite V",
)
SOLDIER_RANKS: Tuple[str, ...] = (
    "Defenceless", "Mostly Defenceless", "Rookie", "Soldier", "Gunslinger", "Warrior",
    "Gladiator", "Deadeye", "Elite", "Elite I", "Elite II", "Elite III", "Elite IV", "Elite V",
)
EXOBIOLOGIST_RANKS: Tuple[str, ...] = (
    "Directionless", "Mostly Directionless", "Compiler", "Collector", "Cataloguer",
    "Taxonomist", "Ecologist", "Geneticist", "Elite", "Elite I", "Elite II", "Elite III",
    "Elite IV", "Elite V",
)

# Journal key -> table. Order matches the progress panel.
ALL_RANKS: Dict[str, Tuple[str, ...]] = {
    "Combat": COMBAT_RANKS,
    "Trade": TRADE_RANKS,
    "Explore": EXPLORE_RANKS,
    "Federation": FEDERATION_RANKS,
    "Empire": EMPIRE_RANKS,
    "CQC": CQC_RANKS,
    "Soldier": SOLDIER_RANKS,
    "Exobiologist": EXOBIOLOGIST_RANKS,
}

# Estimated payout of a detailed scan, keyed by planet class with an optional
# "(Terraformable)" qualifier.
SCAN_VALUES: Dict[str, int] = {
    "Earthlike body": 3_000_000,
    "Water world(Terraformable)": 3_000_000,
    "Ammonia world": 1_600_000,
    "High metal content body(Terraformable)": 2_000_000,
    "Water world": 1_000_000,
    "Metalrich body": 500_000,
    "High metal content body": 300_000,
    "Rocky ice body": 1_500_000,
}


def rank_name(table: Sequence[str], level: object, default: str = UNKNOWN_RANK) -> str:
    """Return the display name for ``level`` or ``default`` when out of range."""

    if isinstance(level, bool) or not isinstance(level, int):
        return default
    if 0 <= level < len(table):
        return table[level]
    return default


def next_rank_name(table: Sequence[str], level: object) -> str:
    """Return the name one level above ``level``; empty at the ceiling."""

    if isinstance(level, bool) or not isinstance(level, int):
        return ""
    return rank_name(table, level + 1, default="")


def combat_rank_name(rank: Union[int, str, None]) -> str:
    """Resolve a cached pilot rank (index or already-named) to a combat rank name."""

    if isinstance(rank, str):
        return rank.strip() or UNKNOWN_RANK
    return rank_name(COMBAT_RANKS, rank)


def scan_value_key(planet_class: Optional[str], terraform_state: Optional[str]) -> Optional[str]:
    if not isinstance(planet_class, str) or not planet_class:
        return None
    if isinstance(terraform_state, str) and terraform_state == "Terraformable":
        return f"{planet_class}(Terraformable)"
    return planet_class


def estimate_scan_value(
    planet_class: Optional[str],
    terraform_state: Optional[str] = None,
    values: Mapping[str, int] = SCAN_VALUES,
) -> int:
    """Look up the estimated value of a detailed scan, defaulting to zero."""

    key = scan_value_key(planet_class, terraform_state)
    if key is None:
        return 0
    return int(values.get(key, 0))


__all__ = [
    "ALL_RANKS",
    "COMBAT_RANKS",
    "CQC_RANKS",
    "EMPIRE_RANKS",
    "EXOBIOLOGIST_RANKS",
    "EXPLORE_RANKS",
    "FEDERATION_RANKS",
    "SCAN_VALUES",
    "SOLDIER_RANKS",
    "TRADE_RANKS",
    "UNKNOWN_RANK",
    "combat_rank_name",
    "estimate_scan_value",
    "next_rank_name",
    "rank_name",
    "scan_value_key",
]
