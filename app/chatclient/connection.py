"""
WebSocket connection to the chat server.

One ChatConnection is created per authenticated session and passed to
whatever needs it; nothing in this package opens a socket on import.

Lifecycle:
    connect()     open the socket, then join the user's room before any
                  other frame is sent
    emit()        send a frame; with ack=True wait for the server's ack
                  carrying the same ref
    disconnect()  close for good (no reconnect)

If the socket drops without disconnect(), the connection retries up to
reconnect_attempts times, reconnect_delay seconds apart, and joins again
on each successful reconnect. Handlers registered for "reconnect" run after
the re-join; "reconnect_failed" handlers run when all attempts fail.

Frames:
    {"event": "<name>", "data": <payload>, "ref": "<n>"}
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import json
import logging
from collections import defaultdict
from typing import TYPE_CHECKING
from urllib.parse import urlsplit, urlunsplit

import aiohttp

from .constants import CLIENT_CONFIG
from .exceptions import SendFailedError, TransportError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

JWT_SUBPROTOCOL = "jwt"

# Pseudo-events dispatched by the connection itself
RECONNECT = "reconnect"
RECONNECT_FAILED = "reconnect_failed"


def websocket_url(base_url: str, path: str = CLIENT_CONFIG.WS_PATH) -> str:
    """http(s)://host -> ws(s)://host/ws/chat/"""
    parts = urlsplit(base_url)
    scheme = {"http": "ws", "https": "wss"}.get(parts.scheme, parts.scheme)
    return urlunsplit((scheme, parts.netloc, path, "", ""))


class ChatConnection:
    """
    Async WebSocket client for ws/chat/.

    Attributes:
        user_id: Identity joined on every (re)connect
        ack_timeout: Seconds to wait for an ack before TransportError
        reconnect_attempts: Retries after an unexpected drop
        reconnect_delay: Seconds between retries
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        user_id: str,
        *,
        session: aiohttp.ClientSession | None = None,
        ack_timeout: float = CLIENT_CONFIG.ACK_TIMEOUT_SECONDS,
        reconnect_attempts: int = CLIENT_CONFIG.RECONNECT_ATTEMPTS,
        reconnect_delay: float = CLIENT_CONFIG.RECONNECT_DELAY_SECONDS,
    ):
        self.url = websocket_url(base_url)
        self.token = token
        self.user_id = str(user_id)
        self.ack_timeout = ack_timeout
        self.reconnect_attempts = reconnect_attempts
        self.reconnect_delay = reconnect_delay

        self._session = session
        self._owns_session = session is None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader: asyncio.Task | None = None
        self._reconnector: asyncio.Task | None = None
        self._pending: dict[str, asyncio.Future] = {}
        self._handlers: dict[str, list[Callable]] = defaultdict(list)
        self._refs = itertools.count(1)
        self._closing = False

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    def on(self, event: str, handler: Callable) -> None:
        """Register a handler (sync or async) for a server event."""
        self._handlers[event].append(handler)

    def off(self, event: str, handler: Callable | None = None) -> None:
        if handler is None:
            self._handlers.pop(event, None)
        elif handler in self._handlers.get(event, []):
            self._handlers[event].remove(handler)

    async def _dispatch(self, event: str, data) -> None:
        for handler in list(self._handlers.get(event, [])):
            try:
                result = handler(data)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Handler for %s failed", event)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """
        Open the socket and join the user's room.

        Raises:
            TransportError: The socket could not be opened or join timed out
            SendFailedError: The server refused the join
        """
        self._closing = False
        await self._open()
        await self._join()

    async def disconnect(self) -> None:
        self._closing = True
        for task in (self._reconnector, self._reader):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._reader = self._reconnector = None

        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        self._fail_pending(TransportError("Connection closed", error_code="DISCONNECTED"))

        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def _open(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        try:
            self._ws = await self._session.ws_connect(
                self.url,
                protocols=(JWT_SUBPROTOCOL, self.token),
                heartbeat=20,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"Could not connect to {self.url}: {e}", error_code="CONNECT_FAILED") from e

        self._reader = asyncio.create_task(self._read_loop(self._ws))
        logger.info("Connected to %s", self.url)

    async def _join(self) -> None:
        await self.emit("join", {"userId": self.user_id})
        logger.info("Joined room of %s", self.user_id)

    # -------------------------------------------------------------------------
    # Sending
    # -------------------------------------------------------------------------

    async def emit(self, event: str, data=None, ack: bool = True, timeout: float | None = None):
        """
        Send one frame.

        Returns:
            The ack's data when ack=True, otherwise None

        Raises:
            TransportError: Not connected, the socket closed before the ack,
                or no ack within the timeout
            SendFailedError: The ack reported failure
        """
        if not self.connected:
            raise TransportError("Not connected", error_code="NOT_CONNECTED")

        frame = {"event": event, "data": data}
        if not ack:
            await self._send(frame)
            return None

        ref = str(next(self._refs))
        frame["ref"] = ref
        future = asyncio.get_running_loop().create_future()
        self._pending[ref] = future
        try:
            await self._send(frame)
            reply = await asyncio.wait_for(future, timeout or self.ack_timeout)
        except asyncio.TimeoutError as e:
            raise TransportError(f"No ack for {event} within timeout", error_code="ACK_TIMEOUT") from e
        finally:
            self._pending.pop(ref, None)

        if not reply.get("ok"):
            raise SendFailedError(
                reply.get("error") or f"{event} failed",
                error_code=reply.get("error_code"),
                details=reply.get("errors"),
            )
        return reply.get("data")

    async def _send(self, frame: dict) -> None:
        try:
            await self._ws.send_json(frame)
        except (ConnectionResetError, aiohttp.ClientError) as e:
            raise TransportError(f"Send failed: {e}", error_code="SEND_FAILED") from e

    # -------------------------------------------------------------------------
    # Receiving
    # -------------------------------------------------------------------------

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        async for msg in ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                try:
                    frame = json.loads(msg.data)
                except json.JSONDecodeError:
                    logger.warning("Ignoring non-JSON frame")
                    continue
                await self._handle_frame(frame)
            elif msg.type in (aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                break

        logger.info("Socket closed (code %s)", ws.close_code)
        self._fail_pending(TransportError("Connection lost", error_code="CONNECTION_LOST"))
        # Only the current socket triggers a reconnect; replaced sockets just end
        if not self._closing and ws is self._ws:
            self._reconnector = asyncio.create_task(self._reconnect())

    async def _handle_frame(self, frame: dict) -> None:
        event = frame.get("event")
        if event == "ack":
            future = self._pending.get(str(frame.get("ref")))
            if future is not None and not future.done():
                future.set_result(frame)
            return
        await self._dispatch(event, frame.get("data"))

    def _fail_pending(self, error: TransportError) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()

    async def _reconnect(self) -> None:
        for attempt in range(1, self.reconnect_attempts + 1):
            await asyncio.sleep(self.reconnect_delay)
            if self._closing:
                return
            try:
                await self._open()
                await self._join()
            except (TransportError, SendFailedError) as e:
                logger.warning("Reconnect attempt %s/%s failed: %s", attempt, self.reconnect_attempts, e)
                stale, self._ws = self._ws, None
                if stale is not None:
                    await stale.close()
                continue
            logger.info("Reconnected after %s attempt(s)", attempt)
            await self._dispatch(RECONNECT, {"attempt": attempt})
            return

        logger.error("Giving up after %s reconnect attempts", self.reconnect_attempts)
        await self._dispatch(RECONNECT_FAILED, {"attempts": self.reconnect_attempts})
