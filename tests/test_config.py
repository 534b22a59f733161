from __future__ import annotations

import pytest

from wandersync.config import SyncConfig, TransportKind
from wandersync.exceptions import SyncConfigError


def test_from_env_reads_wandersync_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WANDERSYNC_TRANSPORT", "mqtt")
    monkeypatch.setenv("WANDERSYNC_MQTT_HOST", "broker.example.test")
    monkeypatch.setenv("WANDERSYNC_MQTT_PORT", "1883")
    monkeypatch.setenv("WANDERSYNC_MQTT_TLS", "off")
    monkeypatch.setenv("WANDERSYNC_PUSH_DEBOUNCE", "0.5")

    config = SyncConfig.from_env()

    assert config.transport == TransportKind.MQTT
    assert config.mqtt_host == "broker.example.test"
    assert config.mqtt_port == 1883
    assert config.mqtt_tls is False
    assert config.push_debounce == 0.5
    assert config.weather_cooldown == 15 * 60


def test_overrides_beat_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WANDERSYNC_SYNC_URL", "https://env.example.test")
    monkeypatch.setenv("WANDERSYNC_PUSH_DEBOUNCE", "9")

    config = SyncConfig.from_env(sync_url="https://override.example.test", push_debounce=1.0)

    assert config.sync_url == "https://override.example.test"
    assert config.push_debounce == 1.0


def test_http_transport_requires_sync_url() -> None:
    with pytest.raises(SyncConfigError):
        SyncConfig(transport=TransportKind.HTTP)


def test_unknown_transport_is_rejected() -> None:
    with pytest.raises(SyncConfigError):
        SyncConfig(transport="carrier-pigeon", sync_url="x")  # type: ignore[arg-type]


def test_bad_number_in_environment_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WANDERSYNC_SYNC_URL", "https://env.example.test")
    monkeypatch.setenv("WANDERSYNC_MQTT_PORT", "eighty")

    with pytest.raises(SyncConfigError):
        SyncConfig.from_env()
