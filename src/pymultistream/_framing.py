"""Newline-delimited JSON framing for the stream body."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator
from typing import Any

from pymultistream._constants import KEEPALIVE_LINE, LINE_DELIMITER

_logger = logging.getLogger(__name__)


class LineFramer:
    """Turn arbitrary text chunks into decoded JSON records.

    The unterminated tail of the stream is kept in :attr:`buffer` and
    prepended to the next chunk.  The buffer is updated as soon as
    :meth:`feed` is called; only decoding is deferred to iteration.

    Each complete line is decoded except the bare ``"\\r"`` keep-alive,
    so an empty line is reported as undecodable.
    """

    def __init__(self, on_decode_error: Callable[[str, json.JSONDecodeError], None] | None = None) -> None:
        self._buffer = ""
        self._on_decode_error = on_decode_error

    @property
    def buffer(self) -> str:
        return self._buffer

    def reset(self) -> None:
        self._buffer = ""

    def feed(self, chunk: str) -> Iterator[Any]:
        """Append *chunk* and return an iterator over the completed records."""
        self._buffer += chunk
        if LINE_DELIMITER not in chunk:
            return iter(())

        lines = self._buffer.split(LINE_DELIMITER)
        self._buffer = lines.pop()
        return self._decode(lines)

    def _decode(self, lines: list[str]) -> Iterator[Any]:
        for line in lines:
            if line == KEEPALIVE_LINE:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as exc:
                _logger.debug("Skipping undecodable line: %.200s", line)
                if self._on_decode_error is not None:
                    self._on_decode_error(line, exc)
                continue
            if record is None:
                continue
            yield record
