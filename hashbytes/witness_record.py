"""Witness ledger records: one entry per run, chained by id."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any

from .blake3_hash import Blake3
from .enricher import TOOL_NAME, TOOL_VERSION

_MISSING = object()
_MAX_EXIT_CODE = 0xFF
_MAX_U64 = 0xFFFFFFFFFFFFFFFF


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@lru_cache(maxsize=1)
def _program_hash() -> str:
    """BLAKE3 of the package's own source files, or "" if they cannot be read."""
    hasher = Blake3()
    try:
        for source in sorted(Path(__file__).resolve().parent.rglob("*.py")):
            hasher.update(source.read_bytes())
    except OSError:
        return ""
    return f"blake3:{hasher.hexdigest()}"


def _string(data: dict[str, Any], key: str, default: Any = _MISSING) -> str:
    value = data.get(key, _MISSING)
    if value is _MISSING:
        if default is _MISSING:
            raise ValueError(f"missing field `{key}`")
        return default
    if not isinstance(value, str):
        raise ValueError(f"invalid type for `{key}`: expected a string")
    return value


def _optional_string(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None or isinstance(value, str):
        return value
    raise ValueError(f"invalid type for `{key}`: expected a string or null")


def _unsigned(value: Any, key: str, maximum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= maximum:
        raise ValueError(f"invalid value for `{key}`: expected an integer in 0..={maximum}")
    return value


@dataclass
class WitnessInput:
    """One input of a run: its path and, when known, its hash and size."""

    path: str
    hash: str | None = None
    bytes: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire form; absent hash and size are left out."""
        result: dict[str, Any] = {"path": self.path}
        if self.hash is not None:
            result["hash"] = self.hash
        if self.bytes is not None:
            result["bytes"] = self.bytes
        return result

    @classmethod
    def from_dict(cls, data: Any) -> WitnessInput:
        """Build from wire form; raises ValueError when the shape is wrong."""
        if not isinstance(data, dict):
            raise ValueError("witness input must be a JSON object")
        size = data.get("bytes")
        return cls(
            path=_string(data, "path"),
            hash=_optional_string(data, "hash"),
            bytes=None if size is None else _unsigned(size, "bytes", _MAX_U64),
        )


@dataclass
class WitnessRecord:
    """A single witness ledger entry."""

    tool: str
    version: str
    outcome: str
    exit_code: int
    output_hash: str = ""
    ts: str = ""
    params: dict[str, Any] = field(default_factory=dict)
    inputs: list[WitnessInput] = field(default_factory=list)
    binary_hash: str = ""
    prev: str | None = None
    id: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Wire form in field order; an empty input list is left out."""
        result: dict[str, Any] = {
            "id": self.id,
            "tool": self.tool,
            "version": self.version,
            "binary_hash": self.binary_hash,
        }
        if self.inputs:
            result["inputs"] = [item.to_dict() for item in self.inputs]
        result.update(
            {
                "params": dict(self.params),
                "outcome": self.outcome,
                "exit_code": self.exit_code,
                "output_hash": self.output_hash,
                "prev": self.prev,
                "ts": self.ts,
            }
        )
        return result

    @classmethod
    def from_dict(cls, data: Any) -> WitnessRecord:
        """Build from wire form; raises ValueError when the shape is wrong."""
        if not isinstance(data, dict):
            raise ValueError("witness record must be a JSON object")
        params = data.get("params", _MISSING)
        if params is _MISSING:
            raise ValueError("missing field `params`")
        if not isinstance(params, dict):
            raise ValueError("invalid type for `params`: expected an object")
        raw_inputs = data.get("inputs", [])
        if not isinstance(raw_inputs, list):
            raise ValueError("invalid type for `inputs`: expected an array")
        if "exit_code" not in data:
            raise ValueError("missing field `exit_code`")
        return cls(
            id=_string(data, "id", default=""),
            tool=_string(data, "tool"),
            version=_string(data, "version"),
            binary_hash=_string(data, "binary_hash", default=""),
            inputs=[WitnessInput.from_dict(item) for item in raw_inputs],
            params=dict(params),
            outcome=_string(data, "outcome"),
            exit_code=_unsigned(data["exit_code"], "exit_code", _MAX_EXIT_CODE),
            output_hash=_string(data, "output_hash"),
            prev=_optional_string(data, "prev"),
            ts=_string(data, "ts"),
        )

    @classmethod
    def from_run(
        cls,
        inputs: list[WitnessInput],
        outcome: str,
        exit_code: int,
        params: dict[str, Any],
        output_hash: str,
        prev: str | None,
    ) -> WitnessRecord:
        """Record of a finished run of this tool, stamped with the current time."""
        return cls(
            tool=TOOL_NAME,
            version=TOOL_VERSION,
            binary_hash=_program_hash(),
            inputs=list(inputs),
            params=dict(params),
            outcome=str(outcome),
            exit_code=exit_code,
            output_hash=output_hash,
            prev=prev,
            ts=_timestamp(),
        )

    @classmethod
    def new(cls, tool: str, outcome: str, exit_code: int) -> WitnessRecord:
        """Bare record for ``tool`` with no inputs, params or chain link."""
        return cls(
            tool=str(tool),
            version=TOOL_VERSION,
            outcome=str(outcome),
            exit_code=exit_code,
            ts=_timestamp(),
        )

    def compute_id(self) -> None:
        """Set ``id`` to the BLAKE3 of the canonical JSON with an empty id."""
        self.id = ""
        self.id = f"blake3:{Blake3(canonical_json(self).encode('utf-8')).hexdigest()}"


def canonical_json(record: WitnessRecord) -> str:
    """Compact JSON of the record with object keys sorted."""
    return json.dumps(
        record.to_dict(),
        separators=(",", ":"),
        sort_keys=True,
        ensure_ascii=False,
    )