"""HTTP/WebSocket transport that pushes dashboard updates to viewers."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set

import aiohttp
from aiohttp import web

from .logging_utils import get_logger
from .presentation import DEFAULT_TOP_ENTRIES, trim_state_payload


_log = get_logger("server")

FULL_UPDATE = "full_update"
EVENT_LOG = "event_log"


class DashboardServer:
    """Fans state and event-log snapshots out to connected WebSocket clients.

    State snapshots are coalesced over ``debounce_ms`` so a burst of journal
    lines yields a single broadcast; event-log snapshots are sent at once.
    """

    def __init__(
        self,
        *,
        state_provider: Callable[[], Dict[str, Any]],
        log_provider: Callable[[], List[str]],
        on_reset: Optional[Callable[[], None]] = None,
        on_recording_started: Optional[Callable[[], None]] = None,
        on_recording_stopped: Optional[Callable[[], None]] = None,
        top_entries: int = DEFAULT_TOP_ENTRIES,
        debounce_ms: int = 100,
        static_dir: Optional[Path] = None,
    ) -> None:
        self._state_provider = state_provider
        self._log_provider = log_provider
        self._on_reset = on_reset
        self._on_recording_started = on_recording_started
        self._on_recording_stopped = on_recording_stopped
        self._top_entries = top_entries
        self._debounce = max(0, debounce_ms) / 1000.0
        self._static_dir = static_dir
        self._clients: Set[web.WebSocketResponse] = set()
        self._tasks: Set[asyncio.Task[None]] = set()
        self._latest_state: Optional[Dict[str, Any]] = None
        self._flush_handle: Optional[asyncio.TimerHandle] = None

    @property
    def client_count(self) -> int:
        return len(self._clients)

    # ------------------------------------------------------------------
    # Application
    # ------------------------------------------------------------------
    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/ws", self.websocket_handler)
        app.router.add_get("/api/state", self.handle_state)
        app.router.add_get("/api/log", self.handle_log)
        if self._static_dir is not None and self._static_dir.is_dir():
            app.router.add_get("/", self.handle_index)
            app.router.add_static("/assets", self._static_dir)
        app.on_shutdown.append(self._close_clients)
        return app

    async def handle_index(self, request: web.Request) -> web.StreamResponse:
        assert self._static_dir is not None
        index = self._static_dir / "index.html"
        if not index.is_file():
            raise web.HTTPNotFound()
        return web.FileResponse(index)

    async def handle_state(self, request: web.Request) -> web.Response:
        payload = self._state_provider()
        if request.query.get("full") not in {"1", "true"}:
            payload = trim_state_payload(payload, self._top_entries)
        return web.json_response(payload)

    async def handle_log(self, request: web.Request) -> web.Response:
        return web.json_response(self._log_provider())

    async def websocket_handler(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse(heartbeat=10)
        await ws.prepare(request)
        self._clients.add(ws)
        _log.info("Viewer connected. Total clients: %d", len(self._clients))

        try:
            await ws.send_json(self._state_message(self._state_provider()))
            await ws.send_json({"type": EVENT_LOG, "payload": self._log_provider()})
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._handle_client_message(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    _log.warning("WebSocket closed with exception: %s", ws.exception())
        except (ConnectionResetError, asyncio.CancelledError):
            pass
        finally:
            self._clients.discard(ws)
            _log.info("Viewer disconnected. Total clients: %d", len(self._clients))
        return ws

    def _handle_client_message(self, data: str) -> None:
        try:
            message = json.loads(data)
        except ValueError:
            _log.debug("Ignoring malformed viewer message: %.200s", data)
            return
        if not isinstance(message, dict):
            return
        msg_type = message.get("type")
        if msg_type == "reset_stats" and self._on_reset is not None:
            _log.info("Reset requested by viewer")
            self._on_reset()
        elif msg_type == "recording_started" and self._on_recording_started is not None:
            self._on_recording_started()
        elif msg_type == "recording_stopped" and self._on_recording_stopped is not None:
            self._on_recording_stopped()
        else:
            _log.debug("Unhandled viewer message type: %r", msg_type)

    # ------------------------------------------------------------------
    # Outbound delivery
    # ------------------------------------------------------------------
    def publish_state(self, payload: Dict[str, Any]) -> None:
        self._latest_state = payload
        loop = self._running_loop()
        if loop is None:
            return
        if self._debounce <= 0:
            self._flush_state()
            return
        if self._flush_handle is None:
            self._flush_handle = loop.call_later(self._debounce, self._flush_state)

    def publish_log(self, lines: List[str]) -> None:
        if self._running_loop() is None:
            return
        self._spawn(self.broadcast({"type": EVENT_LOG, "payload": list(lines)}))

    def _flush_state(self) -> None:
        self._flush_handle = None
        payload = self._latest_state
        self._latest_state = None
        if payload is None:
            return
        self._spawn(self.broadcast(self._state_message(payload)))

    def _state_message(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return {"type": FULL_UPDATE, "payload": trim_state_payload(payload, self._top_entries)}

    async def broadcast(self, message: Dict[str, Any]) -> None:
        clients = [ws for ws in self._clients if not ws.closed]
        if not clients:
            return
        results = await asyncio.gather(
            *(ws.send_json(message) for ws in clients),
            return_exceptions=True,
        )
        for ws, result in zip(clients, results):
            if isinstance(result, Exception):
                _log.debug("Dropping viewer after send failure: %s", result)
                self._clients.discard(ws)

    def _spawn(self, coro: Any) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @staticmethod
    def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    async def _close_clients(self, app: web.Application) -> None:
        if self._flush_handle is not None:
            self._flush_handle.cancel()
            self._flush_handle = None
        for ws in list(self._clients):
            await ws.close(code=aiohttp.WSCloseCode.GOING_AWAY, message=b"Server shutdown")
        self._clients.clear()


__all__ = ["DashboardServer", "EVENT_LOG", "FULL_UPDATE"]
