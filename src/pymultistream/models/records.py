"""Inbound record shapes and classification.

The stream carries a single JSON object per line.  Records are routed
as raw dicts; the pydantic models here only validate the parts the
router needs to read.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StatusKind(StrEnum):
    FAILURE = "failure"
    SUCCESS = "success"
    WARNING = "warning"


class RecordKind(StrEnum):
    FAILURE = "failure"
    SUCCESS = "success"
    WARNING = "warning"
    DELETE = "delete"
    TICK = "tick"
    INTERACTION = "interaction"
    UNKNOWN = "unknown"


class StatusRecord(BaseModel):
    """A ``{"status": ..., "message": ...}`` record."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    status: StatusKind
    message: str = ""
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)

    @field_validator("message", mode="before")
    @classmethod
    def _coerce_message(cls, value: Any) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> StatusRecord:
        return cls.model_validate({**record, "raw": record})


_STATUS_KINDS: dict[str, RecordKind] = {
    StatusKind.FAILURE: RecordKind.FAILURE,
    StatusKind.SUCCESS: RecordKind.SUCCESS,
    StatusKind.WARNING: RecordKind.WARNING,
}


def classify_record(record: Any) -> RecordKind:
    """Return the routing category for a decoded record.

    Checks run in priority order and the first match wins, so a record
    carrying both a status and data is treated as a status record.
    """
    if not isinstance(record, dict):
        return RecordKind.UNKNOWN

    status = record.get("status")
    if isinstance(status, str) and status in _STATUS_KINDS:
        return _STATUS_KINDS[status]

    data = record.get("data")
    if isinstance(data, dict) and data.get("deleted") is True:
        return RecordKind.DELETE
    if "tick" in record:
        return RecordKind.TICK
    if isinstance(data, dict) and "interaction" in data:
        return RecordKind.INTERACTION
    return RecordKind.UNKNOWN
