"""Custom exception hierarchy for pymultistream."""

from __future__ import annotations


class MultiStreamError(Exception):
    """Base exception for all pymultistream errors."""


class StreamConfigError(MultiStreamError):
    """Invalid or missing configuration."""


class InvalidIdentifierError(MultiStreamError, ValueError):
    """Stream hash is not a 32 character hex string."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"invalid hash: {value!r}")


class UnknownIdentifierError(MultiStreamError, KeyError):
    """Stream hash is not tracked by the registry."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"unknown hash: {value!r}")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message.
        return str(self.args[0])


class SubscriptionRejectedError(MultiStreamError):
    """The server reported that the stream hash doesn't exist."""

    def __init__(self, message: str, *, hash: str = "") -> None:  # noqa: A002
        self.message = message
        self.hash = hash
        super().__init__(message)


class ServerFailureError(MultiStreamError):
    """The stream delivered a ``failure`` status record."""

    def __init__(self, message: str, *, record: dict[str, object] | None = None) -> None:
        self.message = message
        self.record = record or {}
        super().__init__(message)


class RecycleError(MultiStreamError):
    """The watchdog-driven stop/reconnect cycle failed."""


class StreamTransportError(MultiStreamError):
    """HTTP-level failure (network, non-200, write while disconnected)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        path: str = "",
    ) -> None:
        self.status_code = status_code
        self.path = path
        super().__init__(message)
