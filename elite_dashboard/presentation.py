"""Viewer-side down-sampling of large count mappings."""

from __future__ import annotations

import copy
from typing import Any, Dict, Mapping

OTHERS_LABEL = "OTHERS"
DEFAULT_TOP_ENTRIES = 5


def trim_top_entries(counts: Mapping[str, int], limit: int = DEFAULT_TOP_ENTRIES) -> Dict[str, int]:
    """Keep the ``limit`` largest entries and fold the rest into ``OTHERS``.

    Ties keep their first-seen order. Mappings already within the limit are
    returned unchanged.
    """

    limit = max(1, int(limit))
    if len(counts) <= limit:
        return dict(counts)
    ordered = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    trimmed = dict(ordered[:limit])
    remainder = sum(count for _, count in ordered[limit:])
    if remainder:
        trimmed[OTHERS_LABEL] = trimmed.get(OTHERS_LABEL, 0) + remainder
    return trimmed


def trim_state_payload(payload: Mapping[str, Any], limit: int = DEFAULT_TOP_ENTRIES) -> Dict[str, Any]:
    """Return a copy of a state payload with its large mappings trimmed."""

    result = copy.deepcopy(dict(payload))
    bounty = result.get("bounty")
    if isinstance(bounty, dict):
        for key in ("targets", "ranks"):
            if isinstance(bounty.get(key), dict):
                bounty[key] = trim_top_entries(bounty[key], limit)
    materials = result.get("materials")
    if isinstance(materials, dict) and isinstance(materials.get("details"), dict):
        materials["details"] = {
            category: trim_top_entries(counts, limit)
            for category, counts in materials["details"].items()
        }
    return result


__all__ = ["DEFAULT_TOP_ENTRIES", "OTHERS_LABEL", "trim_state_payload", "trim_top_entries"]
