"""WebSocket channels keyed by URL, with a shared keep-alive ping."""

import sys
import threading
from collections.abc import Callable
from functools import partial
from typing import Any

import httpx
from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.sync.client import connect as ws_connect

from weboperations._internal.callbacks import CallbackContext
from weboperations.config import DEFAULT_PING_INTERVAL
from weboperations.models import NORMAL_CLOSURE, WEBSOCKET_SCHEMES, Result

Message = str | bytes
OnReceive = Callable[[Result[Message]], None]
Connect = Callable[[str], Any]


class _Channel:
    def __init__(self, url: str, connection: Any, on_receive: OnReceive) -> None:
        self.url = url
        self.connection = connection
        self.on_receive = on_receive
        self.closed = threading.Event()
        self.thread: threading.Thread | None = None


class _PingTimer:
    """Repeating timer; `cancel()` stops it before the next tick."""

    def __init__(self, interval: float, tick: Callable[[], None]) -> None:
        self._interval = interval
        self._tick = tick
        self._stopped = threading.Event()
        self._thread = threading.Thread(
            target=self._run, name="weboperations.ws.ping", daemon=True
        )

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._stopped.set()

    def _run(self) -> None:
        while not self._stopped.wait(self._interval):
            self._tick()


class WebSocketManager:
    """Opens, closes and keeps alive WebSocket channels.

    At most one channel exists per URL string. Each channel runs a receive
    loop on its own thread that hands every message, or failure, to the
    channel's `on_receive` callback on the callback context. While more than
    one channel is open, every channel is pinged each `ping_interval` seconds.

    Args:
        callbacks: Context on which `on_receive` callbacks run.
        ping_interval: Seconds between keep-alive pings.
        open_timeout: Seconds to wait for the opening handshake.
        connect: Optional factory `connect(url) -> connection`. Defaults to
            `websockets.sync.client.connect`.
        debug: Enable debug logging to stderr.
    """

    def __init__(
        self,
        callbacks: CallbackContext,
        *,
        ping_interval: float = DEFAULT_PING_INTERVAL,
        open_timeout: float | None = 10.0,
        connect: Connect | None = None,
        debug: bool = False,
    ) -> None:
        self._callbacks = callbacks
        self._ping_interval = ping_interval
        self._connect = connect or partial(ws_connect, open_timeout=open_timeout)
        self._debug = debug
        self._lock = threading.Lock()
        self._channels: dict[str, _Channel] = {}
        self._connecting: set[str] = set()
        self._ping_timer: _PingTimer | None = None

    def _log_debug(self, message: str) -> None:
        """Log a debug message to stderr if debug mode is enabled."""
        if self._debug:
            print(f"[weboperations:ws] {message}", file=sys.stderr)

    @property
    def open_urls(self) -> list[str]:
        with self._lock:
            return list(self._channels)

    @property
    def ping_active(self) -> bool:
        return self._ping_timer is not None

    def is_open(self, url: str) -> bool:
        with self._lock:
            return url in self._channels

    # =========================================================================
    # Channels
    # =========================================================================

    def add_socket(self, url: str, on_receive: OnReceive) -> bool:
        """Open a channel to `url` and start receiving.

        Returns:
            True if the channel was opened. False if a channel for this exact
            URL already exists, the scheme is not ws/wss, or the connection
            could not be established.
        """
        try:
            scheme = httpx.URL(url).scheme
        except (httpx.InvalidURL, TypeError):
            self._log_debug(f"Invalid URL: {url!r}")
            return False
        if scheme not in WEBSOCKET_SCHEMES:
            self._log_debug(f"Not a WebSocket URL: {url}")
            return False

        with self._lock:
            if url in self._channels or url in self._connecting:
                self._log_debug(f"Channel already open: {url}")
                return False
            self._connecting.add(url)

        try:
            connection = self._connect(url)
        except (WebSocketException, OSError) as e:
            self._log_debug(f"Connect to {url} failed: {e!r}")
            with self._lock:
                self._connecting.discard(url)
            return False

        channel = _Channel(url, connection, on_receive)
        with self._lock:
            self._connecting.discard(url)
            self._channels[url] = channel
            self._reschedule_ping()

        channel.thread = threading.Thread(
            target=self._receive_loop,
            args=(channel,),
            name=f"weboperations.ws:{url}",
            daemon=True,
        )
        channel.thread.start()
        self._log_debug(f"Opened {url}")
        return True

    def close_socket(self, url: str) -> bool:
        """Close the channel for `url` with a normal closure.

        Returns:
            True if a channel was open for `url`.
        """
        with self._lock:
            channel = self._channels.pop(url, None)
            if channel is not None:
                self._reschedule_ping()
        if channel is None:
            return False

        channel.closed.set()
        try:
            channel.connection.close(code=NORMAL_CLOSURE)
        except (WebSocketException, OSError) as e:
            self._log_debug(f"Close of {url} failed: {e!r}")
        self._log_debug(f"Closed {url}")
        return True

    def close_all(self) -> None:
        for url in self.open_urls:
            self.close_socket(url)

    def send(self, url: str, message: Message) -> bool:
        """Send a text or binary message on an open channel.

        Returns:
            True if the message was handed to the connection.
        """
        with self._lock:
            channel = self._channels.get(url)
        if channel is None:
            self._log_debug(f"No channel for {url}")
            return False
        try:
            channel.connection.send(message)
            return True
        except (WebSocketException, OSError) as e:
            self._log_debug(f"Send on {url} failed: {e!r}")
            return False

    # =========================================================================
    # Receive loop
    # =========================================================================

    def _receive_loop(self, channel: _Channel) -> None:
        while not channel.closed.is_set():
            try:
                message = channel.connection.recv()
            except ConnectionClosed as e:
                if channel.closed.is_set():
                    return
                self._log_debug(f"{channel.url} closed by peer: {e}")
                self._callbacks.post(channel.on_receive, Result(error=e))
                self._drop(channel)
                return
            except Exception as e:
                self._log_debug(f"Receive on {channel.url} failed: {e!r}")
                self._callbacks.post(channel.on_receive, Result(error=e))
            else:
                self._callbacks.post(channel.on_receive, Result(value=message))

    def _drop(self, channel: _Channel) -> None:
        with self._lock:
            if self._channels.get(channel.url) is channel:
                del self._channels[channel.url]
                self._reschedule_ping()
        channel.closed.set()

    # =========================================================================
    # Keep-alive
    # =========================================================================

    def _reschedule_ping(self) -> None:
        # Caller holds self._lock.
        if self._ping_timer is not None:
            self._ping_timer.cancel()
            self._ping_timer = None
        if len(self._channels) > 1:
            self._ping_timer = _PingTimer(self._ping_interval, self._send_pings)
            self._ping_timer.start()

    def _send_pings(self) -> None:
        with self._lock:
            channels = list(self._channels.values())
        for channel in channels:
            try:
                channel.connection.ping()
            except (WebSocketException, OSError, RuntimeError) as e:
                self._log_debug(f"Ping on {channel.url} failed: {e!r}")
