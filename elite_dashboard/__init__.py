"""Elite Dangerous realtime dashboard package."""

from __future__ import annotations

from .journal import JournalEvent, JournalProcessor
from .state import DashboardState, new_dashboard_state, state_to_payload
from .tailer import JournalTailer
from .version import DASHBOARD_VERSION

__version__ = DASHBOARD_VERSION

__all__ = [
    "DASHBOARD_VERSION",
    "DashboardState",
    "JournalEvent",
    "JournalProcessor",
    "JournalTailer",
    "__version__",
    "new_dashboard_state",
    "state_to_payload",
]
