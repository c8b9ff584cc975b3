from __future__ import annotations

import json

from pymultistream._framing import LineFramer


def _collecting_framer() -> tuple[LineFramer, list[str]]:
    errors: list[str] = []

    def _on_error(line: str, exc: json.JSONDecodeError) -> None:
        errors.append(line)

    return LineFramer(on_decode_error=_on_error), errors


def test_partial_lines_are_joined_across_chunks() -> None:
    framer, errors = _collecting_framer()

    first = list(framer.feed('{"a":1}\n{"b":2'))
    second = list(framer.feed('}\n{"c":3'))

    assert first == [{"a": 1}]
    assert second == [{"b": 2}]
    assert framer.buffer == '{"c":3'
    assert errors == []


def test_malformed_line_is_skipped_and_reported() -> None:
    framer, errors = _collecting_framer()

    records = list(framer.feed('{"a":1}\n{bad\n{"c":3}\n'))

    assert records == [{"a": 1}, {"c": 3}]
    assert errors == ["{bad"]
    assert framer.buffer == ""


def test_chunk_without_delimiter_is_only_buffered() -> None:
    framer, errors = _collecting_framer()

    assert list(framer.feed('{"a":')) == []
    assert list(framer.feed("1")) == []
    assert framer.buffer == '{"a":1'

    assert list(framer.feed("}\n")) == [{"a": 1}]
    assert errors == []


def test_buffer_is_updated_before_iteration() -> None:
    framer, _ = _collecting_framer()

    pending = framer.feed('{"a":1}\n{"b"')
    assert framer.buffer == '{"b"'
    assert list(pending) == [{"a": 1}]


def test_crlf_keepalive_is_ignored() -> None:
    framer, errors = _collecting_framer()

    records = list(framer.feed('\r\n{"tick":1}\n\r\n'))

    assert records == [{"tick": 1}]
    assert errors == []


def test_empty_line_is_reported_as_undecodable() -> None:
    framer, errors = _collecting_framer()

    records = list(framer.feed('{"a":1}\n\n{"c":3}\n'))

    assert records == [{"a": 1}, {"c": 3}]
    assert errors == [""]


def test_reset_discards_partial_line() -> None:
    framer, _ = _collecting_framer()
    list(framer.feed('{"a":1}\n{"trunc'))

    framer.reset()

    assert framer.buffer == ""
    assert list(framer.feed('{"b":2}\n')) == [{"b": 2}]
