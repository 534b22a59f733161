"""Remote channel contract and strategy selection."""

from __future__ import annotations

import secrets
from collections.abc import Callable
from typing import Protocol

import aiohttp

from wandersync._mqtt import SubscriptionChannel
from wandersync._transport import RequestResponseChannel
from wandersync.config import SyncConfig, TransportKind
from wandersync.models.trip import TripDocument

Unsubscribe = Callable[[], None]


class RemoteChannel(Protocol):
    """Structural interface the reconciler is written against.

    Having a protocol here makes it easy to pass test doubles while keeping
    the two production strategies concrete.
    """

    async def open(self) -> None:
        ...

    async def close(self) -> None:
        ...

    async def send(self, doc: TripDocument) -> None:
        ...

    async def pull(self) -> TripDocument | None:
        ...

    def subscribe(self, on_change: Callable[[TripDocument], None]) -> Unsubscribe:
        ...


def build_channel(
    config: SyncConfig,
    *,
    session: aiohttp.ClientSession | None = None,
) -> RemoteChannel:
    """Construct the one channel strategy this deployment is configured for."""
    if config.transport == TransportKind.MQTT:
        return SubscriptionChannel(config, client_id=f"wandersync-{secrets.token_hex(6)}")
    return RequestResponseChannel(config, session=session)


__all__ = [
    "RemoteChannel",
    "RequestResponseChannel",
    "SubscriptionChannel",
    "Unsubscribe",
    "build_channel",
]
