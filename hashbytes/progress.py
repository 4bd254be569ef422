"""Structured progress and warning events written to stderr."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, TextIO

TOOL_NAME = "hash"


def _write_line(stream: TextIO, payload: dict[str, Any]) -> None:
    stream.write(json.dumps(payload, separators=(",", ":"), ensure_ascii=False) + "\n")


@dataclass(frozen=True)
class ProgressEvent:
    """How many records have been emitted so far."""

    processed: int
    total: int
    elapsed_ms: int
    percent: float = field(init=False)

    def __post_init__(self) -> None:
        percent = 0.0 if self.total == 0 else (self.processed / self.total) * 100.0
        object.__setattr__(self, "percent", percent)

    def to_dict(self) -> dict[str, Any]:
        """Wire form of the event."""
        return {
            "type": "progress",
            "tool": TOOL_NAME,
            "processed": self.processed,
            "total": self.total,
            "percent": self.percent,
            "elapsed_ms": self.elapsed_ms,
        }


@dataclass(frozen=True)
class WarningEvent:
    """A non-fatal problem with one path."""

    path: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        """Wire form of the event."""
        return {
            "type": "warning",
            "tool": TOOL_NAME,
            "path": self.path,
            "message": self.message,
        }


def write_progress(stream: TextIO, event: ProgressEvent) -> None:
    """Write a progress event as one JSON line."""
    _write_line(stream, event.to_dict())


def write_warning(stream: TextIO, event: WarningEvent) -> None:
    """Write a warning event as one JSON line."""
    _write_line(stream, event.to_dict())