"""Client configuration for wandersync."""

from __future__ import annotations

import dataclasses
import os
from enum import StrEnum
from typing import Any

from wandersync._constants import (
    APP_VERSION,
    DEFAULT_DOCUMENT_ID,
    PUSH_DEBOUNCE_SECONDS,
    WEATHER_CACHE_TTL_SECONDS,
    WEATHER_COOLDOWN_SECONDS,
    WEATHER_INITIAL_RETRY_DELAY,
    WEATHER_MAX_RETRIES,
    WEATHER_URL,
)
from wandersync.exceptions import SyncConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


class TransportKind(StrEnum):
    """Which remote channel a deployment uses."""

    HTTP = "http"
    MQTT = "mqtt"


@dataclasses.dataclass(frozen=True)
class SyncConfig:
    """Sync configuration.

    Parameters
    ----------
    transport : TransportKind
        Remote channel strategy. Exactly one is active per deployment.
    sync_url : str
        Endpoint for the request/response channel (push POST, pull GET).
    document_id : str
        Name of the shared trip document.
    mqtt_host : str
        Broker host for the subscription channel.
    mqtt_port : int
        Broker port.
    mqtt_username : str or None
        Broker username, if the broker requires one.
    mqtt_password : str or None
        Broker password.
    mqtt_tls : bool
        Connect to the broker over TLS.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_publish_timeout : float
        Seconds to wait for a document publish to complete.
    push_debounce : float
        Quiet period after the last local edit before a push fires.
    request_timeout : float
        Total timeout for one HTTP request, in seconds.
    weather_url : str
        OpenWeatherMap-compatible current weather endpoint.
    weather_api_key : str or None
        API key for the weather endpoint.
    weather_cache_ttl : float
        Freshness window for cached weather, in seconds.
    weather_cooldown : float
        Circuit breaker cooldown after a rate-limit error, in seconds.
    weather_max_retries : int
        Retries on rate-limit errors (not counting the first attempt).
    weather_initial_delay : float
        Backoff before the first retry; doubles on each further retry.
    storage_path : str
        Path of the JSON file backing the local store.
    client_version : str
        Version tag sent with every push.
    """

    transport: TransportKind = TransportKind.HTTP
    sync_url: str = ""
    document_id: str = DEFAULT_DOCUMENT_ID
    mqtt_host: str = "localhost"
    mqtt_port: int = 8883
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    mqtt_tls: bool = True
    mqtt_keepalive: int = 120
    mqtt_publish_timeout: float = 10.0
    push_debounce: float = PUSH_DEBOUNCE_SECONDS
    request_timeout: float = 15.0
    weather_url: str = WEATHER_URL
    weather_api_key: str | None = None
    weather_cache_ttl: float = WEATHER_CACHE_TTL_SECONDS
    weather_cooldown: float = WEATHER_COOLDOWN_SECONDS
    weather_max_retries: int = WEATHER_MAX_RETRIES
    weather_initial_delay: float = WEATHER_INITIAL_RETRY_DELAY
    storage_path: str = "wandersync.json"
    client_version: str = APP_VERSION

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "transport", TransportKind(self.transport))
        except ValueError as exc:
            raise SyncConfigError(f"Unknown transport {self.transport!r} (expected 'http' or 'mqtt')") from exc
        if self.transport == TransportKind.HTTP and not self.sync_url:
            raise SyncConfigError("sync_url is required for the http transport")
        if not self.document_id.strip():
            raise SyncConfigError("document_id must be non-empty")
        if self.push_debounce < 0:
            raise SyncConfigError("push_debounce must be >= 0")
        if self.weather_max_retries < 0:
            raise SyncConfigError("weather_max_retries must be >= 0")

    @classmethod
    def from_env(cls, **overrides: Any) -> SyncConfig:
        """Create configuration from environment variables.

        Reads ``WANDERSYNC_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        SyncConfig
            Populated configuration.

        Raises
        ------
        SyncConfigError
            If a numeric variable cannot be parsed or the result is invalid.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "WANDERSYNC_TRANSPORT": "transport",
            "WANDERSYNC_SYNC_URL": "sync_url",
            "WANDERSYNC_DOCUMENT_ID": "document_id",
            "WANDERSYNC_MQTT_HOST": "mqtt_host",
            "WANDERSYNC_MQTT_USERNAME": "mqtt_username",
            "WANDERSYNC_MQTT_PASSWORD": "mqtt_password",
            "WANDERSYNC_WEATHER_URL": "weather_url",
            "WANDERSYNC_WEATHER_API_KEY": "weather_api_key",
            "WANDERSYNC_STORAGE_PATH": "storage_path",
            "WANDERSYNC_CLIENT_VERSION": "client_version",
        }
        _ENV_NUM_MAP: dict[str, tuple[str, type]] = {
            "WANDERSYNC_MQTT_PORT": ("mqtt_port", int),
            "WANDERSYNC_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
            "WANDERSYNC_MQTT_PUBLISH_TIMEOUT": ("mqtt_publish_timeout", float),
            "WANDERSYNC_PUSH_DEBOUNCE": ("push_debounce", float),
            "WANDERSYNC_REQUEST_TIMEOUT": ("request_timeout", float),
            "WANDERSYNC_WEATHER_CACHE_TTL": ("weather_cache_ttl", float),
            "WANDERSYNC_WEATHER_COOLDOWN": ("weather_cooldown", float),
            "WANDERSYNC_WEATHER_MAX_RETRIES": ("weather_max_retries", int),
            "WANDERSYNC_WEATHER_INITIAL_DELAY": ("weather_initial_delay", float),
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, (field_name, caster) in _ENV_NUM_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = caster(val)
            except ValueError as exc:
                raise SyncConfigError(f"{env_key} must be a {caster.__name__}, got {val!r}") from exc

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("WANDERSYNC_MQTT_TLS"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
