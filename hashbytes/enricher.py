"""Record enrichment: hash fields, skip markers, warnings and tool versions."""

from __future__ import annotations

from typing import Any

HASH_VERSION = "hash.v0"
TOOL_NAME = "hash"
TOOL_VERSION = "0.3.1"


def set_hash_version(record: dict[str, Any]) -> None:
    """Stamp the record with this tool's output version."""
    record["version"] = HASH_VERSION


def mark_skipped(record: dict[str, Any]) -> None:
    """Mark the record skipped and null its hash fields."""
    record["_skipped"] = True
    record["bytes_hash"] = None
    record["hash_algorithm"] = None


def merge_tool_versions(record: dict[str, Any]) -> None:
    """Add this tool's version, replacing a ``tool_versions`` value that is not an object."""
    existing = record.pop("tool_versions", None)
    tool_versions = existing if isinstance(existing, dict) else {}
    tool_versions[TOOL_NAME] = TOOL_VERSION
    record["tool_versions"] = tool_versions


def apply_upstream_skipped_passthrough(record: dict[str, Any]) -> None:
    """Prepare a record already skipped upstream for output, in place."""
    set_hash_version(record)
    mark_skipped(record)
    merge_tool_versions(record)


def is_skipped(record: dict[str, Any]) -> bool:
    """True only when ``_skipped`` is the boolean ``true``."""
    return record.get("_skipped") is True


def update_tool_versions(record: dict[str, Any]) -> None:
    """Set ``tool_versions.hash``, keeping upstream entries."""
    existing = record.get("tool_versions")
    tool_versions = dict(existing) if isinstance(existing, dict) else {}
    tool_versions[TOOL_NAME] = TOOL_VERSION
    record["tool_versions"] = tool_versions


def process_skipped_record(record: Any) -> Any:
    """Pass an upstream-skipped record through with null hash fields."""
    if not isinstance(record, dict):
        return record
    result = dict(record)
    set_hash_version(result)
    result["bytes_hash"] = None
    result["hash_algorithm"] = None
    update_tool_versions(result)
    return result


def process_hashed_record(record: Any, bytes_hash: str, algorithm: str) -> Any:
    """Return the record with its content hash and algorithm filled in."""
    if not isinstance(record, dict):
        return record
    result = dict(record)
    set_hash_version(result)
    result["bytes_hash"] = bytes_hash
    result["hash_algorithm"] = str(algorithm)
    update_tool_versions(result)
    return result


def process_io_failed_record(record: Any, path: str, io_error: str) -> Any:
    """Return the record marked skipped with an ``E_IO`` warning appended."""
    if not isinstance(record, dict):
        return record
    result = dict(record)
    set_hash_version(result)
    mark_skipped(result)
    _append_io_warning(result, path, io_error)
    update_tool_versions(result)
    return result


def process_file_io_error(record: Any, error: str) -> Any:
    """Like :func:`process_io_failed_record`, taking the path from the record."""
    path = record.get("path") if isinstance(record, dict) else None
    return process_io_failed_record(record, path if isinstance(path, str) else "", str(error))


def _append_io_warning(record: dict[str, Any], path: str, error: str) -> None:
    existing = record.get("_warnings")
    warnings = list(existing) if isinstance(existing, list) else []
    warnings.append(
        {
            "tool": TOOL_NAME,
            "code": "E_IO",
            "message": "Cannot read file",
            "detail": {"path": path, "error": error},
        }
    )
    record["_warnings"] = warnings