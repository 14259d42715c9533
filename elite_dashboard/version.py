"""Centralized package metadata and version helpers."""

from __future__ import annotations


DASHBOARD_VERSION = "1.0.0"
DASHBOARD_NAME = "Elite Dangerous Realtime Dashboard"


def display_version(value: str) -> str:
    """Return a version string prefixed with ``v`` if missing."""

    value = value.strip()
    return value if value.lower().startswith("v") else f"v{value}"
