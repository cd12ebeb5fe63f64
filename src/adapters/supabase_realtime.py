"""Supabase Realtime change-channel adapter.

Implements the core ChangeChannelPort over the Realtime websocket, which
speaks the Phoenix channel protocol (JSON serializer, vsn 1.0.0). Only the
parts needed to watch one table are covered: join, heartbeat, change
dispatch, reconnect with rejoin, and leave.
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import json
import logging
from typing import Any, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit

import aiohttp

from core.config import StoreConfig
from core.models import ChangeNotification
from core.ports import ChangeHandler, ChannelLostHandler

LOGGER = logging.getLogger(__name__)

PHOENIX_TOPIC = "phoenix"
CHANGE_EVENTS = {"INSERT", "UPDATE", "DELETE"}
# Emitted after a rejoin; changes made while disconnected were never delivered.
RESYNC_EVENT = "RESYNC"

CONNECT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError)


def realtime_url(base_url: str, api_key: str) -> str:
    """Return the websocket URL for a Supabase project URL."""

    parts = urlsplit(base_url.rstrip("/"))
    scheme = "ws" if parts.scheme == "http" else "wss"
    path = f"{parts.path}/realtime/v1/websocket"
    query = urlencode({"apikey": api_key, "vsn": "1.0.0"})
    return urlunsplit((scheme, parts.netloc, path, query, ""))


def channel_topic(channel: str) -> str:
    return f"realtime:{channel}"


def build_join_message(config: StoreConfig, api_key: str, ref: str) -> dict[str, Any]:
    """Join the channel with a postgres_changes listener for every event."""

    return {
        "topic": channel_topic(config.channel),
        "event": "phx_join",
        "payload": {
            "config": {
                "broadcast": {"ack": False, "self": False},
                "presence": {"key": ""},
                "postgres_changes": [
                    {"event": "*", "schema": config.schema, "table": config.table},
                ],
                "private": False,
            },
            "access_token": api_key,
        },
        "ref": ref,
        "join_ref": ref,
    }


def build_heartbeat_message(ref: str) -> dict[str, Any]:
    return {"topic": PHOENIX_TOPIC, "event": "heartbeat", "payload": {}, "ref": ref}


def build_leave_message(channel: str, ref: str) -> dict[str, Any]:
    return {"topic": channel_topic(channel), "event": "phx_leave", "payload": {}, "ref": ref}


def parse_change_event(message: dict[str, Any], topic: str) -> Optional[ChangeNotification]:
    """Return a notification for change messages on the topic, else None.

    Current servers send `postgres_changes` with the change under
    payload.data; older ones send the change type as the event name.
    """

    if message.get("topic") != topic:
        return None
    event = message.get("event")
    payload = message.get("payload") or {}
    if event == "postgres_changes":
        data = payload.get("data") or {}
    elif event in CHANGE_EVENTS:
        data = dict(payload)
        data.setdefault("type", event)
    else:
        return None
    return ChangeNotification(
        event_type=str(data.get("type") or data.get("eventType") or "*"),
        table=data.get("table"),
        commit_timestamp=data.get("commit_timestamp"),
    )


class SupabaseRealtimeChannel:
    """Websocket subscription that satisfies the ChangeChannelPort contract.

    The socket is reopened with exponential backoff whenever it drops or the
    server errors or closes the channel. Every successful rejoin emits a
    RESYNC notification, since changes made while disconnected were never
    delivered. After max_reconnect_attempts consecutive failures the channel
    gives up and reports through on_lost.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str,
        api_key: str,
        config: StoreConfig | None = None,
        heartbeat_seconds: float = 25.0,
        max_reconnect_attempts: int = 6,
        backoff_seconds: float = 1.0,
        max_backoff_seconds: float = 30.0,
    ) -> None:
        self._session = session
        self._base_url = base_url
        self._api_key = api_key
        self._config = config or StoreConfig()
        self._heartbeat_seconds = heartbeat_seconds
        self._max_reconnect_attempts = max_reconnect_attempts
        self._backoff_seconds = backoff_seconds
        self._max_backoff_seconds = max_backoff_seconds
        self._topic = channel_topic(self._config.channel)
        self._refs = itertools.count(1)
        self._handler: Optional[ChangeHandler] = None
        self._on_lost: Optional[ChannelLostHandler] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._task: Optional[asyncio.Task] = None
        self._connections = 0
        self._joined = False
        self._closed = False

    @property
    def is_joined(self) -> bool:
        return self._joined

    def _next_ref(self) -> str:
        return str(next(self._refs))

    async def subscribe(
        self,
        handler: ChangeHandler,
        on_lost: Optional[ChannelLostHandler] = None,
    ) -> None:
        """Open the socket, join the channel and keep it joined until unsubscribe.

        A failed first connection is retried in the background like any later
        drop, so the dashboard still starts when realtime is unreachable.
        """

        if self._task is not None or self._closed:
            raise RuntimeError("Realtime channel can only be subscribed once")
        self._handler = handler
        self._on_lost = on_lost
        try:
            await self._connect()
        except CONNECT_ERRORS as exc:
            LOGGER.warning("Realtime connection failed: %s", str(exc) or type(exc).__name__)
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def unsubscribe(self) -> None:
        """Leave the channel and close the socket. Safe to call twice."""

        if self._closed:
            return
        self._closed = True
        self._handler = None
        self._on_lost = None

        ws = self._ws
        if ws is not None and not ws.closed:
            try:
                await ws.send_json(build_leave_message(self._config.channel, self._next_ref()))
            except (aiohttp.ClientError, ConnectionError) as exc:
                LOGGER.debug("Could not send phx_leave: %s", exc)

        task = self._task
        self._task = None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self._close_socket()
        LOGGER.info("Left realtime channel %s", self._topic)

    def dispatch(self, message: dict[str, Any]) -> bool:
        """Route one decoded protocol message.

        Returns False when the server has rejected or closed the channel and
        it has to be rejoined.
        """

        event = message.get("event")
        on_topic = message.get("topic") == self._topic
        if event == "phx_reply" and on_topic:
            payload = message.get("payload") or {}
            if payload.get("status") != "ok":
                LOGGER.error("Realtime join failed: %s", payload.get("response"))
                return False
            if not self._joined:
                self._joined = True
                if self._connections > 1:
                    LOGGER.info("Rejoined realtime channel %s", self._topic)
                    self._deliver(ChangeNotification(event_type=RESYNC_EVENT, table=self._config.table))
            return True
        if event in {"phx_error", "phx_close"} and on_topic:
            LOGGER.warning("Realtime channel %s reported %s", self._topic, event)
            return False

        notification = parse_change_event(message, self._topic)
        if notification is not None:
            self._deliver(notification)
        return True

    def _deliver(self, notification: ChangeNotification) -> None:
        if self._handler is not None:
            self._handler(notification)

    async def _connect(self) -> None:
        self._joined = False
        self._ws = await self._session.ws_connect(realtime_url(self._base_url, self._api_key))
        self._connections += 1
        await self._ws.send_json(build_join_message(self._config, self._api_key, self._next_ref()))

    async def _run(self) -> None:
        failures = 0
        while True:
            if self._ws is not None and await self._serve():
                failures = 0
            if self._closed:
                return
            failures += 1
            if failures > self._max_reconnect_attempts:
                self._give_up(failures - 1)
                return
            delay = min(self._backoff_seconds * 2 ** (failures - 1), self._max_backoff_seconds)
            LOGGER.warning(
                "Realtime channel %s down; reconnecting in %.1fs (attempt %d/%d)",
                self._topic,
                delay,
                failures,
                self._max_reconnect_attempts,
            )
            await asyncio.sleep(delay)
            try:
                await self._connect()
            except CONNECT_ERRORS as exc:
                LOGGER.warning("Realtime reconnect failed: %s", str(exc) or type(exc).__name__)
                await self._close_socket()

    async def _serve(self) -> bool:
        """Read until the socket drops or the channel has to be rejoined.

        Returns whether the channel was joined on this connection.
        """

        ws = self._ws
        if ws is None:
            return False
        heartbeat = asyncio.get_running_loop().create_task(self._heartbeat_loop(ws))
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    try:
                        message = json.loads(msg.data)
                    except ValueError:
                        LOGGER.warning("Ignoring non-JSON realtime frame")
                        continue
                    if not self.dispatch(message):
                        break
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    LOGGER.warning("Realtime socket error: %s", ws.exception())
                    break
        finally:
            joined = self._joined
            heartbeat.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await heartbeat
            await self._close_socket()
        return joined

    async def _heartbeat_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        while not ws.closed:
            await asyncio.sleep(self._heartbeat_seconds)
            try:
                await ws.send_json(build_heartbeat_message(self._next_ref()))
            except (aiohttp.ClientError, ConnectionError) as exc:
                LOGGER.debug("Heartbeat failed: %s", exc)
                return

    async def _close_socket(self) -> None:
        ws = self._ws
        self._ws = None
        self._joined = False
        if ws is not None and not ws.closed:
            await ws.close()

    def _give_up(self, attempts: int) -> None:
        message = f"Live updates stopped: could not reconnect after {attempts} attempts"
        LOGGER.error("Realtime channel %s lost after %d attempts", self._topic, attempts)
        if self._on_lost is not None:
            self._on_lost(message)
