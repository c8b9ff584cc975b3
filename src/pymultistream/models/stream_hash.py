"""Stream hash identifier."""

from __future__ import annotations

import re
from typing import NewType

from pymultistream.exceptions import InvalidIdentifierError

StreamHash = NewType("StreamHash", str)
"""A validated, lowercase 32 character hex stream hash.

Only :func:`parse_hash` should produce values of this type.
"""

_HASH_RE = re.compile(r"[0-9a-fA-F]{32}")


def validate_hash(value: object) -> bool:
    """Return ``True`` when *value* is exactly 32 hex characters."""
    return isinstance(value, str) and _HASH_RE.fullmatch(value) is not None


def parse_hash(value: object) -> StreamHash:
    """Validate *value* and return it as a normalised :data:`StreamHash`.

    Hex is case-insensitive, so hashes are lowercased to keep registry
    keys and server-reported hashes comparable.

    Raises :class:`~pymultistream.exceptions.InvalidIdentifierError`.
    """
    if not isinstance(value, str) or not validate_hash(value):
        raise InvalidIdentifierError(value)
    return StreamHash(value.lower())
