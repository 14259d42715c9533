"""OBS Studio (obs-websocket v5) integration that follows the recording state."""

from __future__ import annotations

import asyncio
import base64
import hashlib
import json
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Any, Callable, Dict, Optional

import aiohttp

from ..logging_utils import get_logger


_log = get_logger("obs")

RPC_VERSION = 1
EVENT_SUBSCRIPTION_OUTPUTS = 1 << 6
RECORD_STATUS_REQUEST_ID = "elite-dashboard-record-status"

OUTPUT_STARTED = "OBS_WEBSOCKET_OUTPUT_STARTED"
OUTPUT_STOPPED = "OBS_WEBSOCKET_OUTPUT_STOPPED"


class OpCode(IntEnum):
    HELLO = 0
    IDENTIFY = 1
    IDENTIFIED = 2
    EVENT = 5
    REQUEST = 6
    REQUEST_RESPONSE = 7


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _sha256_b64(value: str) -> str:
    return base64.b64encode(hashlib.sha256(value.encode("utf-8")).digest()).decode("ascii")


def build_authentication(password: str, salt: str, challenge: str) -> str:
    """Return the obs-websocket authentication string for a Hello challenge."""

    secret = _sha256_b64(password + salt)
    return _sha256_b64(secret + challenge)


class ObsRecordingClient:
    """Connects to OBS and reports recording start/stop transitions.

    A recording already running at connect time is reported with the start
    instant derived from OBS' reported output duration.
    """

    def __init__(
        self,
        host: str,
        port: int,
        password: str = "",
        *,
        on_started: Callable[[datetime], None],
        on_stopped: Callable[[], None],
        max_retries: int = 5,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.url = f"ws://{host}:{port}"
        self._password = password
        self._on_started = on_started
        self._on_stopped = on_stopped
        self._max_retries = max(0, max_retries)
        self._clock = clock
        self._task: Optional[asyncio.Task[None]] = None
        self.identified = False
        self.recording = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="elite-dashboard-obs")

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def run(self) -> None:
        failures = 0
        backoff = 2
        while True:
            try:
                await self._connect_once()
                failures = 0
                backoff = 2
                _log.info("OBS connection closed; reconnecting")
            except asyncio.CancelledError:
                raise
            except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
                failures += 1
                if failures > self._max_retries:
                    _log.warning("Giving up on OBS at %s after %d attempts: %s", self.url, failures, exc)
                    return
                _log.warning(
                    "Cannot connect to OBS at %s (%s); retry %d/%d in %ds",
                    self.url,
                    exc,
                    failures,
                    self._max_retries,
                    backoff,
                )
            finally:
                self._connection_lost()
            await asyncio.sleep(backoff)
            backoff = min(backoff * 2, 60)

    async def _connect_once(self) -> None:
        async with aiohttp.ClientSession() as session:
            async with session.ws_connect(self.url, protocols=("obswebsocket.json",)) as ws:
                _log.info("Connected to OBS at %s", self.url)
                async for msg in ws:
                    if msg.type != aiohttp.WSMsgType.TEXT:
                        if msg.type == aiohttp.WSMsgType.ERROR:
                            _log.warning("OBS connection error: %s", ws.exception())
                        continue
                    try:
                        message = json.loads(msg.data)
                    except ValueError:
                        _log.debug("Ignoring malformed OBS message: %.200s", msg.data)
                        continue
                    reply = self.handle_message(message)
                    if reply is not None:
                        await ws.send_json(reply)

    def _connection_lost(self) -> None:
        self.identified = False
        if self.recording:
            _log.info("Lost OBS connection during recording; treating as stopped")
            self._set_recording(False)

    # ------------------------------------------------------------------
    # Protocol
    # ------------------------------------------------------------------
    def handle_message(self, message: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Process one server message; return the reply to send, if any."""

        if not isinstance(message, dict):
            return None
        op = message.get("op")
        data = message.get("d") if isinstance(message.get("d"), dict) else {}

        if op == OpCode.HELLO:
            return self._identify(data)
        if op == OpCode.IDENTIFIED:
            self.identified = True
            _log.info("Identified with OBS (rpc v%s)", data.get("negotiatedRpcVersion"))
            return {
                "op": int(OpCode.REQUEST),
                "d": {"requestType": "GetRecordStatus", "requestId": RECORD_STATUS_REQUEST_ID},
            }
        if op == OpCode.EVENT and data.get("eventType") == "RecordStateChanged":
            event_data = data.get("eventData") or {}
            state = event_data.get("outputState")
            if state == OUTPUT_STARTED:
                self._set_recording(True)
            elif state == OUTPUT_STOPPED:
                self._set_recording(False)
            return None
        if op == OpCode.REQUEST_RESPONSE and data.get("requestId") == RECORD_STATUS_REQUEST_ID:
            self._handle_record_status(data)
        return None

    def _identify(self, data: Dict[str, Any]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "rpcVersion": RPC_VERSION,
            "eventSubscriptions": EVENT_SUBSCRIPTION_OUTPUTS,
        }
        auth = data.get("authentication")
        if isinstance(auth, dict):
            if not self._password:
                _log.warning("OBS requires a password but none is configured")
            payload["authentication"] = build_authentication(
                self._password,
                str(auth.get("salt", "")),
                str(auth.get("challenge", "")),
            )
        return {"op": int(OpCode.IDENTIFY), "d": payload}

    def _handle_record_status(self, data: Dict[str, Any]) -> None:
        status = data.get("requestStatus") or {}
        if not status.get("result"):
            _log.debug("GetRecordStatus failed: %s", status)
            return
        response = data.get("responseData") or {}
        if not response.get("outputActive"):
            return
        start: Optional[datetime] = None
        duration = response.get("outputDuration")
        if isinstance(duration, (int, float)) and duration >= 0:
            start = self._clock() - timedelta(milliseconds=duration)
        self._set_recording(True, start)

    def _set_recording(self, active: bool, start: Optional[datetime] = None) -> None:
        if active == self.recording:
            return
        self.recording = active
        if active:
            self._on_started(start or self._clock())
        else:
            self._on_stopped()


__all__ = ["ObsRecordingClient", "OpCode", "build_authentication"]
