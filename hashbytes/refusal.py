"""Refusal envelopes emitted when input cannot be processed."""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any

HASH_VERSION = "hash.v0"
REFUSAL_OUTCOME = "REFUSAL"


class RefusalCode(StrEnum):
    """Machine-readable refusal codes."""

    BAD_INPUT = "E_BAD_INPUT"
    IO = "E_IO"

    def default_message(self) -> str:
        """Human-readable message used when none is given."""
        return _DEFAULT_MESSAGES[self]


_DEFAULT_MESSAGES = {
    RefusalCode.BAD_INPUT: "Input is not valid JSONL or missing required fields",
    RefusalCode.IO: "Cannot read input/output stream",
}


@dataclass(frozen=True)
class Refusal:
    """Body of a refusal: code, message, detail and optional next command."""

    code: str
    message: str
    detail: Any
    next_command: str | None = None


@dataclass(frozen=True)
class RefusalEnvelope:
    """Top-level refusal document."""

    refusal: Refusal
    version: str = HASH_VERSION
    outcome: str = REFUSAL_OUTCOME

    @classmethod
    def from_code(cls, code: RefusalCode, detail: Any) -> RefusalEnvelope:
        """Build an envelope using the code's default message."""
        return cls(Refusal(code, code.default_message(), detail))

    @classmethod
    def bad_input_parse_error(cls, line: int, error: str) -> RefusalEnvelope:
        """Refusal for a line that is not valid JSON."""
        return cls.from_code(RefusalCode.BAD_INPUT, {"line": line, "error": str(error)})

    @classmethod
    def bad_input_missing_field(cls, line: int, field: str) -> RefusalEnvelope:
        """Refusal for a record lacking a required field."""
        return cls.from_code(RefusalCode.BAD_INPUT, {"line": line, "missing_field": str(field)})

    @classmethod
    def io_error(cls, error: str) -> RefusalEnvelope:
        """Refusal for an unreadable input or unwritable output stream."""
        return cls.from_code(RefusalCode.IO, {"error": str(error)})

    def with_next_command(self, command: str) -> RefusalEnvelope:
        """Return a copy carrying a suggested next command."""
        return replace(self, refusal=replace(self.refusal, next_command=str(command)))

    def to_dict(self) -> dict[str, Any]:
        """Plain-data form in wire order."""
        return {
            "version": self.version,
            "outcome": self.outcome,
            "refusal": {
                "code": str(self.refusal.code),
                "message": self.refusal.message,
                "detail": self.refusal.detail,
                "next_command": self.refusal.next_command,
            },
        }

    def to_json(self) -> str:
        """Compact single-line JSON."""
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)


class RefusalError(Exception):
    """Raised when processing must stop with a refusal envelope."""

    def __init__(self, envelope: RefusalEnvelope) -> None:
        super().__init__(envelope.refusal.message)
        self.envelope = envelope