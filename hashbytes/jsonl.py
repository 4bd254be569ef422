"""Compact JSON-lines output, including an order-restoring writer."""

from __future__ import annotations

import json
from typing import Any, TextIO


def dumps_line(value: Any) -> str:
    """Render ``value`` as compact JSON with sorted object keys and a newline."""
    return (
        json.dumps(
            value,
            separators=(",", ":"),
            ensure_ascii=False,
            sort_keys=True,
            allow_nan=False,
        )
        + "\n"
    )


def write_json_line(stream: TextIO, value: Any) -> None:
    """Write ``value`` to ``stream`` as one JSON line."""
    stream.write(dumps_line(value))


class OrderedWriter:
    """Writes JSON lines in sequence order whatever order they arrive in."""

    def __init__(self, writer: TextIO) -> None:
        self._writer = writer
        self._buffer: dict[int, str] = {}
        self._next_expected = 0

    def write_ordered(self, sequence: int, value: Any) -> None:
        """Write ``value`` now if it is next in sequence, otherwise hold it back."""
        line = dumps_line(value)
        if sequence != self._next_expected:
            self._buffer[sequence] = line
            return
        self._writer.write(line)
        self._next_expected += 1
        while (buffered := self._buffer.pop(self._next_expected, None)) is not None:
            self._writer.write(buffered)
            self._next_expected += 1

    def flush(self) -> None:
        """Flush the underlying stream."""
        self._writer.flush()

    def into_inner(self) -> TextIO:
        """Write every held-back line in sequence order and return the stream."""
        for sequence in sorted(self._buffer):
            self._writer.write(self._buffer[sequence])
        self._buffer.clear()
        self._writer.flush()
        return self._writer

    @property
    def has_buffered(self) -> bool:
        """Whether any lines are waiting for an earlier sequence number."""
        return bool(self._buffer)

    @property
    def buffered_count(self) -> int:
        """Number of lines held back."""
        return len(self._buffer)

    @property
    def next_expected(self) -> int:
        """The sequence number that will be written next."""
        return self._next_expected