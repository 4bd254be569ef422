"""Location of the witness ledger and appending to it."""

from __future__ import annotations

import json
import os
from pathlib import Path

from .witness_record import WitnessRecord, canonical_json

_LEDGER_RELATIVE = Path(".epistemic/witness.jsonl")


def _env(name: str) -> str | None:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return None
    return value


def default_witness_path() -> Path:
    """EPISTEMIC_WITNESS, else the ledger under HOME or USERPROFILE, else a relative path."""
    explicit = _env("EPISTEMIC_WITNESS")
    if explicit is not None:
        return Path(explicit)
    for variable in ("HOME", "USERPROFILE"):
        home = _env(variable)
        if home is not None:
            return Path(home) / _LEDGER_RELATIVE
    return _LEDGER_RELATIVE


def append_record(path: str | os.PathLike, record: WitnessRecord) -> None:
    """Append the record's canonical JSON as one line, creating parent directories."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "a", encoding="utf-8") as handle:
        handle.write(canonical_json(record) + "\n")


def append_default_record(record: WitnessRecord) -> Path:
    """Append to the default ledger and return its path."""
    path = default_witness_path()
    append_record(path, record)
    return path


def last_record_id(path: str | os.PathLike) -> str | None:
    """The ``id`` of the last non-empty line of the ledger, if it has one."""
    try:
        data = Path(path).read_bytes()
    except OSError:
        return None

    last_non_empty = None
    for raw in data.split(b"\n"):
        try:
            line = raw.removesuffix(b"\r").decode("utf-8")
        except UnicodeDecodeError:
            break
        if line.strip():
            last_non_empty = line.strip()

    if last_non_empty is None:
        return None
    try:
        value = json.loads(last_non_empty)
    except ValueError:
        return None
    if not isinstance(value, dict):
        return None
    record_id = value.get("id")
    return record_id if isinstance(record_id, str) else None