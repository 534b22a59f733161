"""Subscription remote channel over MQTT retained messages.

The shared trip document lives on one retained topic. Writing the document
is a retained publish (replace-write); every retained or live message is a
full-document snapshot.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from wandersync._constants import MQTT_TOPIC_PREFIX
from wandersync.config import SyncConfig
from wandersync.exceptions import MalformedRemoteDataError, SyncTransportError
from wandersync.models.trip import TripDocument

ClientFactory = Callable[[str], mqtt.Client]


def document_topic(document_id: str) -> str:
    return f"{MQTT_TOPIC_PREFIX}/{document_id}"


def decode_snapshot(payload: bytes) -> TripDocument | None:
    """Parse a retained/live message into a trip document.

    Empty payloads (a cleared retained message) and payloads without an
    identity field are treated as "no document".
    """
    text = payload.decode("utf-8", errors="replace").strip()
    if not text:
        return None
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedRemoteDataError(f"Snapshot is not JSON: {text[:64]}") from exc
    return TripDocument.from_wire(parsed)


def _default_client_factory(client_id: str) -> mqtt.Client:
    return mqtt.Client(
        callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
        client_id=client_id,
        protocol=mqtt.MQTTv5,
    )


class SubscriptionChannel:
    """Threaded paho-mqtt runtime that streams document snapshots onto an asyncio loop."""

    def __init__(
        self,
        config: SyncConfig,
        *,
        client_id: str = "",
        client_factory: ClientFactory | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._client_id = client_id
        self._client_factory = client_factory or _default_client_factory
        self._logger = logger or logging.getLogger(__name__)
        self._topic = document_topic(config.document_id)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._client: mqtt.Client | None = None
        self._running = False
        self._subscribers: list[Callable[[TripDocument], None]] = []

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def topic(self) -> str:
        return self._topic

    async def open(self) -> None:
        """Connect to the broker and subscribe to the document topic."""
        if self._running:
            return
        self._loop = asyncio.get_running_loop()
        try:
            await self._loop.run_in_executor(None, self._start)
        except OSError as exc:
            raise SyncTransportError(
                f"MQTT connect to {self._config.mqtt_host}:{self._config.mqtt_port} failed: {exc}",
                endpoint=self._topic,
            ) from exc

    def _start(self) -> None:
        self._logger.debug(
            "MQTT runtime start requested host=%s port=%s topic=%s",
            self._config.mqtt_host,
            self._config.mqtt_port,
            self._topic,
        )
        client = self._client_factory(self._client_id)
        client.enable_logger(self._logger)
        if self._config.mqtt_username:
            client.username_pw_set(self._config.mqtt_username, self._config.mqtt_password)
        if self._config.mqtt_tls:
            client.tls_set()

        client.on_connect = self._on_connect
        client.on_message = self._on_message
        client.on_disconnect = self._on_disconnect

        client.connect(self._config.mqtt_host, self._config.mqtt_port, keepalive=self._config.mqtt_keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def _on_connect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if reason_code.value != 0:
            self._logger.warning("MQTT connect failed: %s", reason_code)
            return
        self._logger.debug("MQTT connected, subscribing topic=%s", self._topic)
        client.subscribe(self._topic, qos=1)

    def _on_message(self, _client: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
        try:
            doc = decode_snapshot(msg.payload)
        except MalformedRemoteDataError:
            self._logger.warning("Dropping malformed snapshot on %s", msg.topic, exc_info=True)
            return
        if doc is None:
            self._logger.debug("Snapshot on %s has no document; ignored", msg.topic)
            return
        self._logger.debug("Snapshot received id=%s lastSynced=%s", doc.id, doc.last_synced)
        loop = self._loop
        if loop is None:
            return
        loop.call_soon_threadsafe(self._dispatch, doc)

    def _on_disconnect(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        _disconnect_flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if self._running:
            self._logger.debug("MQTT disconnected: %s", reason_code)

    def _dispatch(self, doc: TripDocument) -> None:
        for callback in list(self._subscribers):
            try:
                callback(doc)
            except Exception:
                self._logger.exception("Snapshot subscriber failed")

    def subscribe(self, on_change: Callable[[TripDocument], None]) -> Callable[[], None]:
        """Register *on_change* for every snapshot; returns the unsubscribe handle."""
        self._subscribers.append(on_change)

        def _unsubscribe() -> None:
            if on_change in self._subscribers:
                self._subscribers.remove(on_change)

        return _unsubscribe

    async def send(self, doc: TripDocument) -> None:
        """Replace the remote document with a retained publish and wait for completion."""
        client = self._client
        if client is None or not self._running:
            raise SyncTransportError("MQTT channel is not connected", endpoint=self._topic)

        body = json.dumps(doc.to_wire(), separators=(",", ":"))
        info = client.publish(self._topic, body, qos=1, retain=True)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise SyncTransportError(
                f"MQTT publish rejected rc={info.rc}",
                endpoint=self._topic,
            )

        loop = self._loop or asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, info.wait_for_publish, self._config.mqtt_publish_timeout)
        except (RuntimeError, ValueError) as exc:
            raise SyncTransportError(f"MQTT publish failed: {exc}", endpoint=self._topic) from exc
        if not info.is_published():
            raise SyncTransportError(
                f"MQTT publish not confirmed within {self._config.mqtt_publish_timeout}s",
                endpoint=self._topic,
            )

    async def pull(self) -> TripDocument | None:
        """Snapshots arrive through ``subscribe``; there is nothing to pull."""
        return None

    async def close(self) -> None:
        """Stop and disconnect the MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._subscribers.clear()

        if client is None:
            return
        loop = self._loop or asyncio.get_running_loop()
        await loop.run_in_executor(None, self._stop_client, client, was_running)

    def _stop_client(self, client: mqtt.Client, was_running: bool) -> None:
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
