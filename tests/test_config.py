from __future__ import annotations

import pytest

from pymultistream.config import StreamConfig
from pymultistream.exceptions import StreamConfigError


def test_defaults() -> None:
    config = StreamConfig()

    assert config.base_url == "https://stream.datasift.com"
    assert config.base_path == "/multi"
    assert config.interaction_timeout == 300.0


def test_from_env_reads_prefixed_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MULTISTREAM_HOST", "localhost:8080")
    monkeypatch.setenv("MULTISTREAM_USE_TLS", "no")
    monkeypatch.setenv("MULTISTREAM_INTERACTION_TIMEOUT", "12.5")
    monkeypatch.setenv("MULTISTREAM_AUTH", "user:key")

    config = StreamConfig.from_env()

    assert config.base_url == "http://localhost:8080"
    assert config.interaction_timeout == 12.5
    assert config.headers == {"Auth": "user:key"}


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MULTISTREAM_INTERACTION_TIMEOUT", "12.5")

    config = StreamConfig.from_env(interaction_timeout=1.0, use_tls=False)

    assert config.interaction_timeout == 1.0
    assert not config.use_tls


def test_from_env_rejects_non_numeric_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MULTISTREAM_CONNECT_TIMEOUT", "soon")

    with pytest.raises(StreamConfigError):
        StreamConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"host": " "},
        {"base_path": "multi"},
        {"connect_timeout": -1},
        {"reconnect_backoff": ()},
        {"reconnect_attempts": -1},
    ],
)
def test_invalid_values_raise(kwargs: dict[str, object]) -> None:
    with pytest.raises(StreamConfigError):
        StreamConfig(**kwargs)  # type: ignore[arg-type]
