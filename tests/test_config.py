"""Settings parsing from the environment."""
import pytest
from pydantic import ValidationError


def test_defaults(monkeypatch):
    from strangers.core.config import Settings
    for name in ("PORT", "API_PORT", "DEBUG", "HEARTBEAT_INACTIVITY_SECONDS", "HEARTBEAT_PONG_TIMEOUT_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    s = Settings(_env_file=None)
    assert s.api_port == 3000
    assert s.heartbeat_inactivity_seconds == 3.0
    assert s.heartbeat_pong_timeout_seconds == 1.0
    assert s.debug is False


def test_port_from_environment(monkeypatch):
    from strangers.core.config import Settings
    monkeypatch.delenv("API_PORT", raising=False)
    monkeypatch.setenv("PORT", "8123")
    assert Settings(_env_file=None).api_port == 8123


def test_api_port_is_accepted_too(monkeypatch):
    from strangers.core.config import Settings
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.setenv("API_PORT", "9001")
    assert Settings(_env_file=None).api_port == 9001


def test_debug_is_lenient(monkeypatch):
    from strangers.core.config import Settings
    monkeypatch.setenv("DEBUG", "yes")
    assert Settings(_env_file=None).debug is True
    monkeypatch.setenv("DEBUG", "nope")
    assert Settings(_env_file=None).debug is False


def test_heartbeat_delays_must_be_positive(monkeypatch):
    from strangers.core.config import Settings
    monkeypatch.setenv("HEARTBEAT_PONG_TIMEOUT_SECONDS", "0")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_broker_from_settings(monkeypatch):
    from strangers.core.broker import Broker
    from strangers.core.config import Settings
    monkeypatch.setenv("HEARTBEAT_INACTIVITY_SECONDS", "7.5")
    monkeypatch.setenv("MAX_FRAME_SIZE", "1024")
    broker = Broker.from_settings(Settings(_env_file=None))
    assert broker.max_frame_size == 1024
    assert broker.heartbeat._inactivity_timeout == 7.5


def test_no_unused_environment_field():
    from strangers.core.config import Settings
    assert "environment" not in Settings.model_fields
