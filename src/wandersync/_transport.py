"""Request/response remote channel over HTTP."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable

import aiohttp

from wandersync._redact import redact_for_log
from wandersync.config import SyncConfig
from wandersync.exceptions import MalformedRemoteDataError, SyncTransportError
from wandersync.models._base import utc_now_iso
from wandersync.models.trip import TripDocument

_logger = logging.getLogger(__name__)


def _noop_unsubscribe() -> None:
    return None


class RequestResponseChannel:
    """Push/pull channel against a document endpoint.

    The endpoint gives no read-after-write guarantee and no usable success
    payload for writes, so ``send`` is fire-and-forget: only network-level
    failures are observable.
    """

    def __init__(
        self,
        config: SyncConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http = session

    async def open(self) -> None:
        if self._http is None:
            self._http = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self._config.request_timeout))

    async def close(self) -> None:
        if not self._external_session and self._http is not None:
            await self._http.close()
        self._http = None

    def _require_http(self) -> aiohttp.ClientSession:
        if self._http is None:
            raise SyncTransportError("Channel not opened", endpoint=self._config.sync_url)
        return self._http

    async def send(self, doc: TripDocument) -> None:
        """POST the full document plus a client-version tag and push timestamp.

        The response is deliberately not inspected.
        """
        http = self._require_http()
        payload = doc.to_wire()
        payload["clientVersion"] = self._config.client_version
        payload["pushedAt"] = utc_now_iso()
        body = json.dumps(payload, separators=(",", ":"))

        _logger.debug("POST %s payload=%s", self._config.sync_url, redact_for_log(payload))
        try:
            async with http.post(
                self._config.sync_url,
                data=body,
                headers={"content-type": "text/plain;charset=utf-8"},
            ):
                pass
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise SyncTransportError(
                f"Push to {self._config.sync_url} failed: {exc}",
                endpoint=self._config.sync_url,
            ) from exc

    async def pull(self) -> TripDocument | None:
        """GET the remote document with a cache-busting query parameter.

        Returns ``None`` when the body carries no identity field.

        Raises
        ------
        SyncTransportError
            Network failure or non-200 status.
        MalformedRemoteDataError
            The body is not UTF-8 JSON or fails document validation.
        """
        http = self._require_http()
        url = self._config.sync_url
        params = {"t": str(int(time.time() * 1000))}

        _logger.debug("GET %s", url)
        try:
            async with http.get(url, params=params) as resp:
                try:
                    text = await resp.text()
                except UnicodeDecodeError as exc:
                    raise MalformedRemoteDataError(f"Undecodable body from {url}: {exc}") from exc
                if resp.status != 200:
                    raise SyncTransportError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=url,
                    )
        except SyncTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise SyncTransportError(f"Pull from {url} failed: {exc}", endpoint=url) from exc

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedRemoteDataError(f"Invalid JSON from {url}: {text[:200]}") from exc

        doc = TripDocument.from_wire(body)
        if doc is None:
            _logger.debug("Remote body has no trip id; treating as absent")
        return doc

    def subscribe(self, on_change: Callable[[TripDocument], None]) -> Callable[[], None]:
        """No live updates on this channel; remote changes arrive only via ``pull``."""
        return _noop_unsubscribe
