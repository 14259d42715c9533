"""Core orchestration for the Elite Dangerous realtime dashboard."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from aiohttp import web

from .event_log import EventLogRecorder
from .integrations.obs import ObsRecordingClient
from .journal import JournalProcessor
from .logging_utils import get_logger
from .monitor import JournalMonitor
from .preferences import DashboardSettings
from .server import DashboardServer
from .session import SessionGate
from .status import StatusProcessor
from .tailer import JournalTailer
from .version import DASHBOARD_NAME, DASHBOARD_VERSION


_log = get_logger()


class DashboardApp:
    """Coordinates journal processing, file monitoring, transport and OBS."""

    def __init__(self, settings: DashboardSettings) -> None:
        self.settings = settings
        self.event_log = EventLogRecorder(on_changed=self._publish_log)
        self.gate = SessionGate(settings.settle_delay_seconds)
        self.journal = JournalProcessor(
            event_log=self.event_log,
            gate=self.gate,
            on_state_changed=self._publish_state,
        )
        self.status = StatusProcessor(self.journal.flags, self.event_log, self.gate)
        self.tailer = JournalTailer(
            settings.journal_dir,
            self.journal.handle_line,
            on_drained=self.journal.publish_state,
        )
        self.monitor = JournalMonitor(
            self.tailer,
            self.status,
            status_filename=settings.status_filename,
            on_ready=self.journal.publish_state,
        )
        self.server = DashboardServer(
            state_provider=self.journal.snapshot,
            log_provider=lambda: self.event_log.lines,
            on_reset=self.reset_statistics,
            on_recording_started=self.begin_recording,
            on_recording_stopped=self.end_recording,
            top_entries=settings.top_entries,
            debounce_ms=settings.broadcast_debounce_ms,
            static_dir=settings.static_dir,
        )
        self.obs: Optional[ObsRecordingClient] = None
        if settings.obs_enabled:
            self.obs = ObsRecordingClient(
                settings.obs_host,
                settings.obs_port,
                settings.obs_password,
                on_started=self.begin_recording,
                on_stopped=self.end_recording,
                max_retries=settings.obs_max_retries,
            )

    # ------------------------------------------------------------------
    # Control signals
    # ------------------------------------------------------------------
    def begin_recording(self, start_time: Optional[datetime] = None) -> None:
        self.event_log.begin(start_time)

    def end_recording(self) -> None:
        self.event_log.end()

    def reset_statistics(self) -> None:
        self.journal.reset_statistics()

    # ------------------------------------------------------------------
    # Outbound delivery
    # ------------------------------------------------------------------
    def _publish_state(self, payload: Dict[str, Any]) -> None:
        if not self.monitor.ready:
            # Suppressed until the initial scan has drained every journal.
            return
        self.server.publish_state(payload)

    def _publish_log(self, lines: List[str]) -> None:
        self.server.publish_log(lines)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def build_app(self) -> web.Application:
        app = self.server.build_app()
        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)
        return app

    async def _on_startup(self, app: web.Application) -> None:
        _log.info("Starting %s v%s", DASHBOARD_NAME, DASHBOARD_VERSION)
        await self.monitor.start()
        if self.obs is not None:
            self.obs.start()

    async def _on_cleanup(self, app: web.Application) -> None:
        _log.info("Shutting down %s", DASHBOARD_NAME)
        if self.obs is not None:
            try:
                await self.obs.stop()
            except Exception:
                _log.exception("Failed to stop OBS integration")
        await self.monitor.stop()
        self.gate.close()

    def run(self) -> None:
        _log.info("Dashboard available at http://%s:%d", self.settings.host, self.settings.port)
        web.run_app(self.build_app(), host=self.settings.host, port=self.settings.port, print=None)


__all__ = ["DashboardApp"]
