# hashbytes

Streaming content hashing for JSONL manifests. `hashbytes` reads a manifest
with one JSON object per line, hashes the file named by each record's `path`,
and writes the enriched records to standard output in input order. It has no
dependencies beyond the Python standard library (3.11 or later); BLAKE3 is
implemented in pure Python.

## Installation

```
pip install .
```

## Usage

```
hashbytes manifest.jsonl
cat manifest.jsonl | hashbytes --algorithm blake3 --jobs 4
```

Each input record must be a JSON object with a non-null `path` and `version`.
Blank lines are ignored. Every output record gets:

- `version` set to `hash.v0`
- `bytes_hash`, such as `sha256:<hex>` or `blake3:<hex>`
- `hash_algorithm`, either `sha256` or `blake3`
- `tool_versions.hash` set to `0.3.1`, next to any upstream tool versions

All other fields are passed through unchanged. Output lines are compact JSON
with object keys in sorted order, so the same input always gives the same
bytes, whatever `--jobs` is set to.

Records that an upstream tool already marked with `"_skipped": true` are passed
through unhashed, with `bytes_hash` and `hash_algorithm` set to `null` and
their `_warnings` left as they were. If a file cannot be read, its record is
marked `"_skipped": true`, its hash fields are set to `null`, and an entry
with `"tool": "hash"`, `"code": "E_IO"` and the path and error is appended to
its `_warnings` list. A line `hash: warning: <path>: skipped: <error>` is
written to stderr.

### Options

| Flag | Meaning |
| --- | --- |
| `--algorithm NAME` | `sha256` (default) or `blake3`; case-insensitive |
| `--jobs N` | number of worker threads; defaults to the CPU count, and `0` means 1 |
| `--progress` | write JSON progress and warning events to stderr, one per line |
| `--no-witness` | do not append a record to the witness ledger |
| `--describe` | print the operator manifest and exit |
| `--schema` | print the output JSON Schema and exit |
| `--version` | print the version and exit |

### Exit codes

| Code | Outcome |
| --- | --- |
| 0 | `ALL_HASHED`: every record was hashed |
| 1 | `PARTIAL`: at least one record was skipped |
| 2 | `REFUSAL`: the input was invalid or unreadable, or the algorithm is unknown |

On refusal, a single JSON envelope is printed after any records already
written:

```json
{"version":"hash.v0","outcome":"REFUSAL","refusal":{"code":"E_BAD_INPUT","message":"...","detail":{"line":1,"error":"..."},"next_command":null}}
```

The codes are `E_BAD_INPUT` (invalid JSON, a non-object record, a missing
`path` or `version`, or an unknown algorithm) and `E_IO` (the input cannot be
opened or read, or is not UTF-8).

## Witness ledger

Unless `--no-witness` is given, each run, refusals included, appends one record
to a JSONL ledger. The ledger lives at `$EPISTEMIC_WITNESS` if that is set,
otherwise at `.epistemic/witness.jsonl` under `$HOME` (or `$USERPROFILE`), and
failing both at `.epistemic/witness.jsonl` in the current directory.

A record holds the tool name and version, the input (`stdin`, or the manifest
path with its BLAKE3 hash and size), the parameters, the outcome and exit
code, a BLAKE3 hash of the output, a UTC timestamp, and `prev`, the `id` of the
ledger's last record. Its `id` is the BLAKE3 of its canonical JSON.
`binary_hash` is a BLAKE3 hash of the package's own Python source files. If
the ledger cannot be written, a warning is printed and the exit code is not
changed.

You can query the ledger:

```
hashbytes witness query --tool hash --outcome PARTIAL --since 2026-01-01T00:00:00Z --limit 10 --json
hashbytes witness last --json
hashbytes witness count --tool hash --json
```

`query` lists the most recent records first. It accepts `--tool`, `--since`,
`--until` (RFC 3339 timestamps), `--outcome`, `--input-hash` (matched as a
substring) and `--limit`. `count` takes the same filters except `--limit`.
`last` prints the newest record, or `null` with `--json` when there is none.
Malformed ledger lines are skipped. Each subcommand exits with 0 when it finds
at least one record, with 1 when it finds none, and with 2 when the ledger
cannot be read.

## What is not included

The operator manifest and the output JSON Schema are not shipped with the
package. `--describe` and `--schema` read them from
`hashbytes/data/operator.json` and `hashbytes/data/hash.v0.schema.json`; when
those files are absent, the flags print an `E_IO` refusal envelope and exit
with 2.

## Library use

```python
from hashbytes.algorithm import Algorithm, parse_algorithm
from hashbytes.hashing import hash_file
from hashbytes.reader import parse_json_line
from hashbytes.enricher import process_hashed_record
from hashbytes.refusal import RefusalError

algorithm = parse_algorithm("BLAKE3")
print(hash_file("data.csv", algorithm))

try:
    parsed = parse_json_line('{"path": "data.csv", "version": "vacuum.v0"}', 1)
except RefusalError as refusal:
    print(refusal.envelope.to_json())
else:
    record = process_hashed_record(parsed.record, hash_file("data.csv", algorithm), algorithm.prefix)
```

Other modules: `hashbytes.blake3_hash` (`Blake3`, `blake3_hex`),
`hashbytes.jsonl` (`write_json_line`, `OrderedWriter`), `hashbytes.parallel`
(`process_indexed_in_parallel`, `OrderedResults`), `hashbytes.progress`,
`hashbytes.witness_record`, `hashbytes.ledger` and `hashbytes.query`.