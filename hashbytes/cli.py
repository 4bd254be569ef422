"""Command-line entry point: enrich a JSONL manifest with content hashes."""

from __future__ import annotations

import argparse
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Iterable, Iterator

from .algorithm import Algorithm, Outcome, parse_algorithm
from .blake3_hash import Blake3
from .enricher import (
    TOOL_VERSION,
    is_skipped,
    process_hashed_record,
    process_io_failed_record,
    process_skipped_record,
)
from .hashing import hash_bytes, hash_file
from .jsonl import dumps_line
from .ledger import append_record, default_witness_path, last_record_id
from .parallel import normalized_jobs, process_indexed_in_parallel
from .progress import ProgressEvent, WarningEvent, write_progress, write_warning
from .query import WitnessAction, handle_witness_query
from .reader import ParsedLine, parse_json_line
from .refusal import RefusalCode, RefusalEnvelope, RefusalError
from .witness_record import WitnessInput, WitnessRecord

PROG = "hashbytes"
DATA_DIR = Path(__file__).resolve().parent / "data"
OPERATOR_FILE = "operator.json"
SCHEMA_FILE = "hash.v0.schema.json"

_VALUE_OPTIONS = frozenset({"--algorithm", "--jobs"})


@dataclass
class Cli:
    """Parsed command line."""

    command: WitnessAction | None = None
    input: Path | None = None
    algorithm: str = "sha256"
    jobs: int | None = None
    no_witness: bool = False
    progress: bool = False
    describe: bool = False
    schema: bool = False


def _non_negative_int(text: str) -> int:
    try:
        value = int(text, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid digit found in string: {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"invalid value {text!r}: must not be negative")
    return value


def _root_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Streaming content hashing for manifest enrichment",
        allow_abbrev=False,
    )
    parser.add_argument("input", nargs="?", type=Path, help="JSONL manifest file (default: stdin)")
    parser.add_argument("--algorithm", default="sha256", help="Hash algorithm: sha256 or blake3")
    parser.add_argument(
        "--jobs", type=_non_negative_int, help="Number of parallel workers (default: CPU count)"
    )
    parser.add_argument("--no-witness", action="store_true", help="Suppress witness ledger recording")
    parser.add_argument("--progress", action="store_true", help="Emit progress to stderr")
    parser.add_argument("--describe", action="store_true", help="Print operator.json and exit")
    parser.add_argument("--schema", action="store_true", help="Print JSON Schema and exit")
    parser.add_argument("--version", action="version", version=f"{PROG} {TOOL_VERSION}")
    return parser


def _add_filters(parser: argparse.ArgumentParser, with_limit: bool) -> None:
    parser.add_argument("--tool", help="Tool name filter")
    parser.add_argument("--since", help="Since timestamp (ISO 8601)")
    parser.add_argument("--until", help="Until timestamp (ISO 8601)")
    parser.add_argument("--outcome", help="Outcome filter")
    parser.add_argument("--input-hash", help="Input hash substring filter")
    if with_limit:
        parser.add_argument("--limit", type=_non_negative_int, help="Limit number of results")
    parser.add_argument("--json", action="store_true", help="JSON output format")


def _witness_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=f"{PROG} witness", description="Query the witness ledger", allow_abbrev=False
    )
    actions = parser.add_subparsers(dest="action", required=True)
    _add_filters(
        actions.add_parser("query", help="Query witness records with filters", allow_abbrev=False),
        with_limit=True,
    )
    last = actions.add_parser("last", help="Get the most recent witness record", allow_abbrev=False)
    last.add_argument("--json", action="store_true", help="JSON output format")
    _add_filters(
        actions.add_parser("count", help="Count witness records matching filters", allow_abbrev=False),
        with_limit=False,
    )
    return parser


def _subcommand_index(argv: list[str]) -> int | None:
    """Position of a leading ``witness`` subcommand among the arguments, if any."""
    skip_next = False
    for index, token in enumerate(argv):
        if skip_next:
            skip_next = False
            continue
        if token == "--":
            return None
        if token.startswith("-") and len(token) > 1:
            skip_next = token in _VALUE_OPTIONS
            continue
        return index if token == "witness" else None
    return None


def parse_args(argv: list[str] | None = None) -> Cli:
    """Parse command-line arguments; exits on usage errors, ``--help`` and ``--version``."""
    args = list(sys.argv[1:] if argv is None else argv)
    split = _subcommand_index(args)
    root_args = args if split is None else args[:split]
    namespace = _root_parser().parse_args(root_args)

    command = None
    if split is not None:
        witness = _witness_parser().parse_args(args[split + 1 :])
        command = WitnessAction(
            kind=WitnessAction.Kind(witness.action),
            tool=getattr(witness, "tool", None),
            since=getattr(witness, "since", None),
            until=getattr(witness, "until", None),
            outcome=getattr(witness, "outcome", None),
            input_hash=getattr(witness, "input_hash", None),
            limit=getattr(witness, "limit", None),
            json=witness.json,
        )

    return Cli(
        command=command,
        input=namespace.input,
        algorithm=namespace.algorithm,
        jobs=namespace.jobs,
        no_witness=namespace.no_witness,
        progress=namespace.progress,
        describe=namespace.describe,
        schema=namespace.schema,
    )


def _os_error_text(error: OSError) -> str:
    if error.strerror and error.errno is not None:
        return f"{error.strerror} (os error {error.errno})"
    return str(error)


@dataclass
class _Processed:
    record: Any
    warning: WarningEvent | None
    skipped: bool


@dataclass
class _StreamState:
    progress: bool
    started: float = field(default_factory=time.monotonic)
    hasher: Blake3 = field(default_factory=Blake3)
    processed: int = 0
    any_skipped: bool = False


def _print_document(name: str) -> int:
    try:
        text = (DATA_DIR / name).read_text(encoding="utf-8")
    except OSError as error:
        print(RefusalEnvelope.io_error(_os_error_text(error)).to_json())
        return Outcome.REFUSAL.exit_code
    sys.stdout.write(text if text.endswith("\n") else text + "\n")
    return 0


def _refusal_result(envelope: RefusalEnvelope) -> tuple[Outcome, str]:
    rendered = envelope.to_json()
    print(rendered)
    return Outcome.REFUSAL, hash_bytes(f"{rendered}\n".encode("utf-8"))


@contextmanager
def _open_input(path: Path | None) -> Iterator[IO]:
    if path is None:
        yield getattr(sys.stdin, "buffer", sys.stdin)
        return
    try:
        handle = open(path, "rb")
    except OSError as error:
        raise RefusalError(RefusalEnvelope.io_error(_os_error_text(error))) from error
    with handle:
        yield handle


def _decoded_lines(handle: Iterable) -> Iterator[str]:
    lines = iter(handle)
    while True:
        try:
            raw = next(lines)
        except StopIteration:
            return
        except OSError as error:
            raise RefusalError(RefusalEnvelope.io_error(_os_error_text(error))) from error
        if isinstance(raw, str):
            yield raw
            continue
        try:
            yield raw.decode("utf-8")
        except UnicodeDecodeError as error:
            raise RefusalError(
                RefusalEnvelope.io_error("stream did not contain valid UTF-8")
            ) from error


def _process_record(pending: ParsedLine, algorithm: Algorithm) -> _Processed:
    record = pending.record
    if not isinstance(record, dict):
        raise RefusalError(
            RefusalEnvelope.from_code(
                RefusalCode.BAD_INPUT,
                {"line": pending.line_number, "error": "record must be a JSON object"},
            )
        )
    if is_skipped(record):
        return _Processed(process_skipped_record(record), None, True)

    path = record.get("path")
    if not isinstance(path, str):
        raise RefusalError(RefusalEnvelope.bad_input_missing_field(pending.line_number, "path"))

    try:
        file_hash = hash_file(path, algorithm)
    except OSError as error:
        text = _os_error_text(error)
        return _Processed(
            process_io_failed_record(record, path, text),
            WarningEvent(path, f"skipped: {text}"),
            True,
        )
    return _Processed(process_hashed_record(record, file_hash, algorithm.prefix), None, False)


def _process_or_refuse(pending: ParsedLine, algorithm: Algorithm) -> _Processed | RefusalError:
    try:
        return _process_record(pending, algorithm)
    except RefusalError as refusal:
        return refusal


def _emit(record: Any, state: _StreamState) -> None:
    rendered = dumps_line(record)
    try:
        sys.stdout.write(rendered)
    except OSError as error:
        raise RefusalError(RefusalEnvelope.io_error(_os_error_text(error))) from error
    state.hasher.update(rendered.encode("utf-8"))
    state.processed += 1
    if state.progress:
        elapsed_ms = int((time.monotonic() - state.started) * 1000)
        write_progress(sys.stderr, ProgressEvent(state.processed, state.processed, elapsed_ms))


def _flush(pending: list[ParsedLine], algorithm: Algorithm, jobs: int, state: _StreamState) -> None:
    if not pending:
        return
    results = process_indexed_in_parallel(
        pending, jobs, lambda pair: _process_or_refuse(pair[1], algorithm)
    )
    for result in results:
        if isinstance(result, RefusalError):
            raise result
        if result.warning is not None:
            if state.progress:
                write_warning(sys.stderr, result.warning)
            else:
                print(
                    f"hash: warning: {result.warning.path}: {result.warning.message}",
                    file=sys.stderr,
                )
        _emit(result.record, state)
        if result.skipped:
            state.any_skipped = True


def _process_stream(
    handle: Iterable, algorithm: Algorithm, jobs: int, progress: bool
) -> tuple[Outcome, str]:
    state = _StreamState(progress)
    batch_size = max(jobs, 1) * 32
    pending: list[ParsedLine] = []
    for line_number, text in enumerate(_decoded_lines(handle), start=1):
        if not text.strip():
            continue
        pending.append(parse_json_line(text, line_number))
        if len(pending) >= batch_size:
            _flush(pending, algorithm, jobs, state)
            pending = []
    _flush(pending, algorithm, jobs, state)

    outcome = Outcome.PARTIAL if state.any_skipped else Outcome.ALL_HASHED
    return outcome, f"blake3:{state.hasher.hexdigest()}"


def _run_main(cli: Cli) -> tuple[Outcome, str]:
    try:
        algorithm = parse_algorithm(cli.algorithm)
    except ValueError as error:
        return _refusal_result(
            RefusalEnvelope.from_code(
                RefusalCode.BAD_INPUT, {"algorithm": cli.algorithm, "error": str(error)}
            )
        )
    jobs = normalized_jobs(cli.jobs)
    try:
        with _open_input(cli.input) as handle:
            return _process_stream(handle, algorithm, jobs, cli.progress)
    except RefusalError as refusal:
        return _refusal_result(refusal.envelope)


def _emit_witness_warning(cli: Cli, path: str, message: str) -> None:
    if cli.progress:
        write_warning(sys.stderr, WarningEvent(path, message))
    else:
        print(f"hash: warning: {message}", file=sys.stderr)


def _witness_params(cli: Cli) -> dict[str, Any]:
    params: dict[str, Any] = {"algorithm": cli.algorithm}
    if cli.jobs is not None:
        params["jobs"] = normalized_jobs(cli.jobs)
    return params


def _witness_inputs(cli: Cli) -> list[WitnessInput]:
    if cli.input is None:
        return [WitnessInput("stdin")]
    data = Path(cli.input).read_bytes()
    return [WitnessInput(str(cli.input), hash_bytes(data), len(data))]


def _append_witness(cli: Cli, outcome: Outcome, output_hash: str) -> None:
    if cli.no_witness:
        return
    witness_path = default_witness_path()
    try:
        inputs = _witness_inputs(cli)
    except OSError as error:
        label = str(cli.input) if cli.input is not None else "stdin"
        _emit_witness_warning(
            cli, label, f"witness input metadata failed: {_os_error_text(error)}"
        )
        return

    record = WitnessRecord.from_run(
        inputs,
        outcome.label,
        outcome.exit_code,
        _witness_params(cli),
        output_hash,
        last_record_id(witness_path),
    )
    record.compute_id()
    try:
        append_record(witness_path, record)
    except OSError as error:
        _emit_witness_warning(
            cli, str(witness_path), f"witness append failed: {_os_error_text(error)}"
        )


def run_with_cli(cli: Cli) -> int:
    """Run the parsed command and return the process exit status."""
    if cli.describe:
        return _print_document(OPERATOR_FILE)
    if cli.schema:
        return _print_document(SCHEMA_FILE)
    if cli.command is not None:
        try:
            return handle_witness_query(cli.command)
        except OSError:
            return Outcome.REFUSAL.exit_code

    outcome, output_hash = _run_main(cli)
    _append_witness(cli, outcome, output_hash)
    return outcome.exit_code


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run, and return the exit status."""
    return run_with_cli(parse_args(argv))


if __name__ == "__main__":
    raise SystemExit(main())