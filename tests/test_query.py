import json

import pytest

from hashbytes.query import (
    WitnessAction,
    WitnessQuery,
    filter_records,
    handle_witness_query,
    load_witness_records,
)
from hashbytes.witness_record import WitnessRecord


def sample_records():
    return [
        {
            "version": "witness.v0",
            "tool": "hash",
            "outcome": "ALL_HASHED",
            "exit_code": 0,
            "inputs": [{"path": "stdin", "hash": "blake3:input-aaa111", "bytes": None}],
            "output_hash": "blake3:aaa111",
            "ts": "2026-01-01T12:00:00Z",
            "params": {},
        },
        {
            "version": "witness.v0",
            "tool": "lock",
            "outcome": "REFUSAL",
            "exit_code": 2,
            "inputs": [{"path": "stdin", "hash": "blake3:input-bbb222", "bytes": None}],
            "output_hash": "blake3:bbb222",
            "ts": "2026-01-02T12:00:00Z",
            "params": {},
        },
        {
            "version": "witness.v0",
            "tool": "hash",
            "outcome": "PARTIAL",
            "exit_code": 1,
            "inputs": [{"path": "stdin", "hash": "blake3:input-match-333", "bytes": None}],
            "output_hash": "blake3:result-333",
            "ts": "2026-01-03T12:00:00Z",
            "params": {},
        },
    ]


def witness_line(tool, outcome, code, output_hash, input_hash, ts):
    return json.dumps(
        {
            "id": f"blake3:{tool}-{outcome}-{ts}",
            "tool": tool,
            "version": "0.0.0-test",
            "binary_hash": "blake3:test-binary",
            "outcome": outcome,
            "exit_code": code,
            "inputs": [{"path": "stdin", "hash": input_hash, "bytes": None}],
            "params": {},
            "output_hash": output_hash,
            "prev": None,
            "ts": ts,
        }
    )


@pytest.fixture
def ledger(tmp_path, monkeypatch):
    path = tmp_path / "witness.jsonl"
    monkeypatch.setenv("EPISTEMIC_WITNESS", str(path))
    return path


def write_lines(path, lines):
    path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")


def write_samples(path):
    write_lines(path, [json.dumps(record) for record in sample_records()])


def test_query_applies_tool_outcome_hash_and_limit_filters(ledger, capsys):
    write_samples(ledger)
    action = WitnessAction(
        "query", tool="hash", outcome="PARTIAL", input_hash="match", limit=1, json=True
    )
    assert handle_witness_query(action) == 0
    rows = json.loads(capsys.readouterr().out)
    assert len(rows) == 1
    assert rows[0]["tool"] == "hash"
    assert rows[0]["outcome"] == "PARTIAL"


def test_query_applies_since_and_until_bounds(ledger, capsys):
    write_samples(ledger)
    action = WitnessAction(
        "query", since="2026-01-02T00:00:00Z", until="2026-01-02T23:59:59Z", json=True
    )
    assert handle_witness_query(action) == 0
    rows = json.loads(capsys.readouterr().out)
    assert len(rows) == 1
    assert rows[0]["tool"] == "lock"
    assert rows[0]["outcome"] == "REFUSAL"


def test_last_returns_null_and_exit_one_when_ledger_is_empty(ledger, capsys):
    assert handle_witness_query(WitnessAction("last", json=True)) == 1
    assert capsys.readouterr().out.strip() == "null"


def test_last_returns_most_recent_record_when_ledger_has_rows(ledger, capsys):
    write_samples(ledger)
    assert handle_witness_query(WitnessAction("last", json=True)) == 0
    parsed = json.loads(capsys.readouterr().out)
    assert parsed["tool"] == "hash"
    assert parsed["outcome"] == "PARTIAL"
    assert parsed["output_hash"] == "blake3:result-333"


def test_query_skips_malformed_lines_and_keeps_valid_matches(ledger, capsys):
    write_lines(ledger, ['{"broken":'] + [json.dumps(r) for r in sample_records()])
    assert handle_witness_query(WitnessAction("query", tool="hash", json=True)) == 0
    rows = json.loads(capsys.readouterr().out)
    assert len(rows) == 2
    assert all(row["tool"] == "hash" for row in rows)


def test_count_outputs_json_and_respects_match_exit_codes(ledger, capsys):
    write_samples(ledger)
    assert handle_witness_query(WitnessAction("count", tool="hash", json=True)) == 0
    assert json.loads(capsys.readouterr().out) == {"count": 2}
    assert handle_witness_query(WitnessAction("count", tool="missing", json=True)) == 1
    assert json.loads(capsys.readouterr().out) == {"count": 0}


def test_behavior_query_skips_malformed_and_filters(ledger, capsys):
    good_match = witness_line(
        "hash", "PARTIAL", 1, "blake3:result-123", "blake3:input-match-123", "2026-01-03T12:00:00Z"
    )
    good_non_match = witness_line(
        "lock", "REFUSAL", 2, "blake3:other-456", "blake3:input-other-456", "2026-01-04T12:00:00Z"
    )
    write_lines(ledger, ["{bad-json", good_match, good_non_match])
    action = WitnessAction(
        "query", tool="hash", outcome="PARTIAL", input_hash="input-match", json=True
    )
    assert handle_witness_query(action) == 0
    rows = json.loads(capsys.readouterr().out)
    assert len(rows) == 1
    assert rows[0]["tool"] == "hash"
    assert rows[0]["outcome"] == "PARTIAL"
    assert rows[0]["output_hash"] == "blake3:result-123"


def test_behavior_last_returns_newest(ledger, capsys):
    older = witness_line(
        "hash", "ALL_HASHED", 0, "blake3:older", "blake3:input-older", "2026-01-01T00:00:00Z"
    )
    newer = witness_line(
        "lock", "REFUSAL", 2, "blake3:newer", "blake3:input-newer", "2026-01-02T00:00:00Z"
    )
    write_lines(ledger, [older, newer])
    assert handle_witness_query(WitnessAction("last", json=True)) == 0
    parsed = json.loads(capsys.readouterr().out)
    assert parsed["tool"] == "lock"
    assert parsed["outcome"] == "REFUSAL"
    assert parsed["exit_code"] == 2
    assert parsed["output_hash"] == "blake3:newer"


def test_no_such_tool_query_returns_partial(ledger, capsys):
    action = WitnessAction("query", tool="__no_such_tool__", since="2999-01-01T00:00:00Z", json=True)
    assert handle_witness_query(action) == 1
    assert json.loads(capsys.readouterr().out) == []


def test_text_outputs(ledger, capsys):
    assert handle_witness_query(WitnessAction("query")) == 1
    assert capsys.readouterr().out == "No matching witness records\n"
    assert handle_witness_query(WitnessAction("last")) == 1
    assert capsys.readouterr().out == "No witness records found\n"

    write_samples(ledger)
    assert handle_witness_query(WitnessAction("query", outcome="PARTIAL")) == 0
    assert capsys.readouterr().out == "hash PARTIAL witness.v0 (exit: 1)\n"
    assert handle_witness_query(WitnessAction("count", tool="hash")) == 0
    assert capsys.readouterr().out == "2\n"


def test_filter_records_scaffold_case():
    records = [
        WitnessRecord.new("hash", "ALL_HASHED", 0),
        WitnessRecord.new("hash", "REFUSAL", 2),
    ]
    filtered = filter_records(records, WitnessQuery(tool="hash", outcome="REFUSAL"))
    assert len(filtered) == 1
    assert filtered[0].exit_code == 2


def test_filter_records_most_recent_first_with_limit(tmp_path):
    path = tmp_path / "witness.jsonl"
    write_samples(path)
    records = load_witness_records(path)
    all_rows = filter_records(records, WitnessQuery())
    assert [r.output_hash for r in all_rows] == [r.output_hash for r in reversed(records)]
    limited = filter_records(records, WitnessQuery(limit=2))
    assert limited == all_rows[:2]


def test_unparsable_bound_is_ignored(tmp_path):
    path = tmp_path / "witness.jsonl"
    write_samples(path)
    records = load_witness_records(path)
    assert len(filter_records(records, WitnessQuery(since="yesterday"))) == len(records)


def test_record_with_bad_timestamp_excluded_by_bounds():
    record = WitnessRecord.new("hash", "ALL_HASHED", 0)
    record.ts = "not-a-time"
    assert filter_records([record], WitnessQuery(since="2000-01-01T00:00:00Z")) == []
    assert filter_records([record], WitnessQuery()) == [record]


def test_offset_bounds_are_compared_in_utc(tmp_path):
    path = tmp_path / "witness.jsonl"
    write_samples(path)
    records = load_witness_records(path)
    rows = filter_records(
        records, WitnessQuery(since="2026-01-02T13:00:00+01:00", until="2026-01-02T07:00:00-05:00")
    )
    assert [r.tool for r in rows] == ["lock"]


def test_load_missing_ledger_is_empty(tmp_path):
    assert load_witness_records(tmp_path / "absent.jsonl") == []


def test_load_rejects_invalid_utf8(tmp_path):
    path = tmp_path / "witness.jsonl"
    path.write_bytes(b"\xff\xfe\n")
    with pytest.raises(OSError):
        load_witness_records(path)


def test_action_rejects_unknown_kind():
    with pytest.raises(ValueError):
        WitnessAction("purge")