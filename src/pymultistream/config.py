"""Client configuration for pymultistream."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from pymultistream._constants import DEFAULT_BASE_PATH, DEFAULT_HOST, USER_AGENT
from pymultistream.exceptions import StreamConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class StreamConfig:
    """Consumer configuration.

    Parameters
    ----------
    host : str
        Streaming endpoint host name.
    base_path : str
        Path of the multiplexed stream, without query string.
    use_tls : bool
        Connect over ``https`` when ``True``.
    headers : Mapping[str, str]
        Extra request headers (e.g. ``{"Auth": "user:apikey"}``), passed
        through unchanged.
    interaction_timeout : float
        Seconds without an interaction, delete or tick record before the
        connection is recycled.  ``0`` disables the watchdog.
    connect_timeout : float
        Seconds to wait for the response headers on connect.
    reconnect_backoff : tuple[float, ...]
        Delays in seconds between successive reconnect attempts.  The
        last value is reused once the sequence is exhausted.
    reconnect_attempts : int
        Attempts made by one recover before giving up.  ``0`` retries
        until the transport is stopped.
    user_agent : str
        ``User-Agent`` header value.
    """

    host: str = DEFAULT_HOST
    base_path: str = DEFAULT_BASE_PATH
    use_tls: bool = True
    headers: Mapping[str, str] = dataclasses.field(default_factory=dict)
    interaction_timeout: float = 300.0
    connect_timeout: float = 30.0
    reconnect_backoff: tuple[float, ...] = (1.0, 5.0, 10.0, 30.0, 120.0)
    reconnect_attempts: int = 0
    user_agent: str = USER_AGENT

    def __post_init__(self) -> None:
        if not self.host.strip():
            raise StreamConfigError("host must be non-empty")
        if not self.base_path.startswith("/"):
            raise StreamConfigError(f"base_path must start with '/', got {self.base_path!r}")
        if self.connect_timeout < 0:
            raise StreamConfigError("connect_timeout must not be negative")
        if not self.reconnect_backoff:
            raise StreamConfigError("reconnect_backoff must contain at least one delay")
        if self.reconnect_attempts < 0:
            raise StreamConfigError("reconnect_attempts must not be negative")

    @property
    def base_url(self) -> str:
        scheme = "https" if self.use_tls else "http"
        return f"{scheme}://{self.host}"

    @classmethod
    def from_env(cls, **overrides: Any) -> StreamConfig:
        """Create configuration from ``MULTISTREAM_*`` environment variables.

        Explicit keyword arguments override environment values.
        ``MULTISTREAM_AUTH`` is sent as the ``Auth`` header.
        """
        env = os.environ

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in (
            ("MULTISTREAM_HOST", "host"),
            ("MULTISTREAM_BASE_PATH", "base_path"),
            ("MULTISTREAM_USER_AGENT", "user_agent"),
        ):
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        if "use_tls" not in overrides:
            config_kwargs["use_tls"] = _env_bool(env.get("MULTISTREAM_USE_TLS"), True)

        for env_key, field_name in (
            ("MULTISTREAM_INTERACTION_TIMEOUT", "interaction_timeout"),
            ("MULTISTREAM_CONNECT_TIMEOUT", "connect_timeout"),
        ):
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                try:
                    config_kwargs[field_name] = float(val)
                except ValueError as exc:
                    raise StreamConfigError(f"{env_key} must be numeric, got {val!r}") from exc

        auth = env.get("MULTISTREAM_AUTH")
        if auth and "headers" not in overrides:
            config_kwargs["headers"] = {"Auth": auth}

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
