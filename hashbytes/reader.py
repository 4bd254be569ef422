"""Parsing and validation of manifest JSONL lines."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from .refusal import RefusalCode, RefusalEnvelope, RefusalError

REQUIRED_FIELDS = ("path", "version")


@dataclass(frozen=True)
class ParsedLine:
    """A manifest record together with its 1-based line number."""

    line_number: int
    record: Any


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON value {name}")


def parse_json_line(line: str, line_number: int) -> ParsedLine:
    """Parse one manifest line; raises RefusalError for bad JSON or missing fields."""
    try:
        record = json.loads(line, parse_constant=_reject_constant)
    except ValueError as error:
        raise RefusalError(RefusalEnvelope.bad_input_parse_error(line_number, str(error))) from error

    if not isinstance(record, dict):
        raise RefusalError(
            RefusalEnvelope.from_code(
                RefusalCode.BAD_INPUT,
                {"line": line_number, "error": "record must be a JSON object"},
            )
        )

    for field in REQUIRED_FIELDS:
        if record.get(field) is None:
            raise RefusalError(RefusalEnvelope.bad_input_missing_field(line_number, field))

    return ParsedLine(line_number, record)