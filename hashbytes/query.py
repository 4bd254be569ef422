"""Loading, filtering and reporting witness ledger records."""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import StrEnum
from pathlib import Path

from .algorithm import Outcome, exit_code
from .ledger import default_witness_path
from .witness_record import WitnessRecord

_RFC3339 = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt ](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)


@dataclass(frozen=True)
class WitnessQuery:
    """Filters applied to ledger records; unset filters match everything."""

    tool: str | None = None
    since: str | None = None
    until: str | None = None
    outcome: str | None = None
    input_hash: str | None = None
    limit: int | None = None


@dataclass(frozen=True)
class WitnessAction:
    """A ``witness`` subcommand with its options."""

    class Kind(StrEnum):
        QUERY = "query"
        LAST = "last"
        COUNT = "count"

    kind: Kind
    tool: str | None = None
    since: str | None = None
    until: str | None = None
    outcome: str | None = None
    input_hash: str | None = None
    limit: int | None = None
    json: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", WitnessAction.Kind(self.kind))


def _dumps(value) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _reject_constant(name: str):
    raise ValueError(f"invalid JSON value {name}")


def load_witness_records(path: str | os.PathLike | None = None) -> list[WitnessRecord]:
    """Read every valid record from the ledger, skipping malformed lines.

    A missing ledger yields no records; unreadable or non-UTF-8 data raises OSError.
    """
    witness_path = Path(path) if path is not None else default_witness_path()
    if not witness_path.exists():
        return []

    records = []
    for raw in witness_path.read_bytes().split(b"\n"):
        try:
            line = raw.removesuffix(b"\r").decode("utf-8")
        except UnicodeDecodeError as error:
            raise OSError("stream did not contain valid UTF-8") from error
        if not line.strip():
            continue
        try:
            records.append(WitnessRecord.from_dict(json.loads(line, parse_constant=_reject_constant)))
        except ValueError:
            continue
    return records


def _parse_time_bound(value: str) -> datetime | None:
    match = _RFC3339.match(value)
    if match is None:
        return None
    year, month, day, hour, minute, second, fraction, offset = match.groups()
    try:
        if offset in ("Z", "z"):
            tz = timezone.utc
        else:
            sign = -1 if offset[0] == "-" else 1
            hours, minutes = int(offset[1:3]), int(offset[4:6])
            tz = timezone(sign * timedelta(hours=hours, minutes=minutes))
        micros = int((fraction or "0")[:6].ljust(6, "0"))
        moment = datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second), micros, tzinfo=tz
        )
    except ValueError:
        return None
    return moment.astimezone(timezone.utc)


def _within_bounds(record: WitnessRecord, since: datetime | None, until: datetime | None) -> bool:
    if since is None and until is None:
        return True
    stamp = _parse_time_bound(record.ts)
    if stamp is None:
        return False
    if since is not None and stamp < since:
        return False
    if until is not None and stamp > until:
        return False
    return True


def _matches_input_hash(record: WitnessRecord, needle: str) -> bool:
    return any(item.hash is not None and needle in item.hash for item in record.inputs)


def filter_records(records: list[WitnessRecord], query: WitnessQuery) -> list[WitnessRecord]:
    """Records matching every filter, most recent first, at most ``limit`` of them."""
    since = _parse_time_bound(query.since) if query.since is not None else None
    until = _parse_time_bound(query.until) if query.until is not None else None

    filtered = [
        record
        for record in records
        if (query.tool is None or record.tool == query.tool)
        and (query.outcome is None or record.outcome == query.outcome)
        and _within_bounds(record, since, until)
        and (query.input_hash is None or _matches_input_hash(record, query.input_hash))
    ]
    filtered.reverse()
    if query.limit is not None:
        del filtered[query.limit :]
    return filtered


def _summary(record: WitnessRecord) -> str:
    return f"{record.tool} {record.outcome} {record.version} (exit: {record.exit_code})"


def _status(found: bool) -> int:
    return exit_code(Outcome.ALL_HASHED if found else Outcome.PARTIAL)


def handle_witness_query(action: WitnessAction) -> int:
    """Run a ``witness`` subcommand against the default ledger, print and return the exit code.

    Raises OSError when the ledger cannot be read.
    """
    records = load_witness_records()

    if action.kind is WitnessAction.Kind.LAST:
        last = records[-1] if records else None
        if action.json:
            print(_dumps(last.to_dict() if last is not None else None))
        elif last is not None:
            print(_summary(last))
        else:
            print("No witness records found")
        return _status(last is not None)

    query = WitnessQuery(
        tool=action.tool,
        since=action.since,
        until=action.until,
        outcome=action.outcome,
        input_hash=action.input_hash,
        limit=action.limit if action.kind is WitnessAction.Kind.QUERY else None,
    )
    filtered = filter_records(records, query)

    if action.kind is WitnessAction.Kind.COUNT:
        count = len(filtered)
        print(_dumps({"count": count}) if action.json else count)
        return _status(count > 0)

    if action.json:
        print(_dumps([record.to_dict() for record in filtered]))
    elif not filtered:
        print("No matching witness records")
    else:
        for record in filtered:
            print(_summary(record))
    return _status(bool(filtered))