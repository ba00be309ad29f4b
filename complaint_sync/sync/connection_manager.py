"""Connection Manager - Lifecycle of the live complaint channel

Owns at most one open channel and at most one pending reconnection timer.
Failures (refused connection, handshake timeout, abnormal close) never
propagate to the caller; they move the manager to DISCONNECTED and schedule
a reconnect with capped exponential backoff. shutdown() is final.
"""
import asyncio
import json
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Protocol
from urllib.parse import urlsplit, urlunsplit

from websockets.asyncio.client import connect as websocket_connect

from ..domain.enums import ConnectionState
from .backoff import BackoffPolicy
from ..utils.logger import get_logger

logger = get_logger(__name__)

NORMAL_CLOSURE = 1000
SUBSCRIBE_CHANNEL = "complaints"


class LiveChannel(Protocol):
    """Minimal surface used from a websocket connection"""

    async def send(self, message: str) -> None: ...

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None: ...

    def __aiter__(self) -> AsyncIterator[Any]: ...


Connector = Callable[[str], Awaitable[LiveChannel]]
MessageHandler = Callable[[Any], None]
StateListener = Callable[[ConnectionState], None]


def websocket_connector(ping_interval: Optional[float] = 20.0) -> Connector:
    """Connector opening a websocket; the manager applies the connect timeout"""

    async def _connect(url: str) -> LiveChannel:
        return await websocket_connect(url, ping_interval=ping_interval, open_timeout=None)

    return _connect


def redact_url(url: str) -> str:
    """Drop the query string (it may carry the access token)"""
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<invalid url>"
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


class ConnectionManager:
    """
    Keeps one live channel to the complaint event feed alive.

    - connect(): no-op unless DISCONNECTED; opens the channel with a
      connect timeout, then sends the subscribe handshake
    - inbound frames go to ``on_message`` untouched
    - close/error: DISCONNECTED, then reconnect after
      backoff.next_delay(attempt); the attempt counter resets on success
    - shutdown(): cancel the timer, stop the reader, close with 1000
    """

    def __init__(
        self,
        url: str,
        on_message: MessageHandler,
        *,
        connector: Optional[Connector] = None,
        backoff: Optional[BackoffPolicy] = None,
        connect_timeout: float = 10.0,
        on_state_change: Optional[StateListener] = None,
        channel: str = SUBSCRIBE_CHANNEL
    ):
        self._url = url
        self._on_message = on_message
        self._connector = connector or websocket_connector()
        self._backoff = backoff or BackoffPolicy()
        self._connect_timeout = connect_timeout
        self._on_state_change = on_state_change
        self._subscribe_frame = json.dumps({"type": "subscribe", "channel": channel})

        self._state = ConnectionState.DISCONNECTED
        self._attempt = 0
        self._channel: Optional[LiveChannel] = None
        self._task: Optional[asyncio.Task] = None
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._shut_down = False

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def attempt(self) -> int:
        """Consecutive failed attempts since the last successful connect"""
        return self._attempt

    @property
    def is_shut_down(self) -> bool:
        return self._shut_down

    @property
    def has_pending_reconnect(self) -> bool:
        return self._reconnect_handle is not None

    def connect(self) -> None:
        """Open the channel unless already connected/connecting or shut down"""
        if self._shut_down:
            logger.debug("connect() ignored after shutdown")
            return
        if self._state != ConnectionState.DISCONNECTED:
            return

        self._cancel_reconnect()
        self._set_state(ConnectionState.CONNECTING)
        self._task = asyncio.get_running_loop().create_task(self._run())

    def reconnect_now(self) -> None:
        """Manual retry: skip the pending backoff delay"""
        if self._shut_down or self._state != ConnectionState.DISCONNECTED:
            return
        self._attempt = 0
        self.connect()

    async def shutdown(self) -> None:
        """
        Tear down for good.

        Everything up to the channel close happens synchronously, so no
        timer or reader can fire once this has been called.
        """
        if self._shut_down:
            return
        self._shut_down = True
        self._cancel_reconnect()

        task, self._task = self._task, None
        channel, self._channel = self._channel, None
        current = asyncio.current_task()
        if task is not None and task is not current:
            task.cancel()
        self._set_state(ConnectionState.DISCONNECTED)

        if channel is not None:
            await self._close_channel(channel)
        if task is not None and task is not current:
            await asyncio.gather(task, return_exceptions=True)

        logger.info("Live channel shut down", extra={"url": redact_url(self._url)})

    async def _run(self) -> None:
        try:
            channel = await asyncio.wait_for(self._connector(self._url), timeout=self._connect_timeout)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Construction failures are handled exactly like a close
            logger.warning(
                f"Live channel connect failed: {e!r}",
                extra={"attempt": self._attempt, "url": redact_url(self._url)}
            )
            self._handle_disconnect()
            return

        if self._shut_down:
            await self._close_channel(channel)
            return

        self._channel = channel
        self._attempt = 0
        self._set_state(ConnectionState.CONNECTED)
        logger.info("Live channel connected", extra={"url": redact_url(self._url)})

        try:
            await channel.send(self._subscribe_frame)
            async for raw in channel:
                self._dispatch(raw)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Live channel error: {e!r}", extra={"url": redact_url(self._url)})
        else:
            logger.info("Live channel closed by server", extra={"url": redact_url(self._url)})

        if self._channel is channel:
            self._channel = None
        self._handle_disconnect()

    def _dispatch(self, raw: Any) -> None:
        if self._shut_down:
            return
        try:
            self._on_message(raw)
        except Exception:
            logger.exception("Live message handler failed")

    def _handle_disconnect(self) -> None:
        self._set_state(ConnectionState.DISCONNECTED)
        if self._shut_down or self._reconnect_handle is not None:
            return

        delay = self._backoff.next_delay(self._attempt)
        logger.info(
            f"Reconnecting live channel in {delay:.2f}s",
            extra={"attempt": self._attempt, "delay_seconds": round(delay, 3)}
        )
        self._reconnect_handle = asyncio.get_running_loop().call_later(delay, self._on_reconnect_timer)

    def _on_reconnect_timer(self) -> None:
        self._reconnect_handle = None
        if self._shut_down:
            return
        self._attempt += 1
        self.connect()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    async def _close_channel(self, channel: LiveChannel) -> None:
        try:
            await channel.close(code=NORMAL_CLOSURE, reason="client shutdown")
        except Exception as e:
            logger.debug(f"Ignoring error while closing live channel: {e!r}")

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        self._state = state
        logger.debug(f"Live channel state -> {state.value}", extra={"state": state.value})
        if self._on_state_change is None:
            return
        try:
            self._on_state_change(state)
        except Exception:
            logger.exception("Connection state listener failed")
