"""Streaming file hashing with SHA-256 or BLAKE3."""

from __future__ import annotations

import hashlib
import os
from typing import BinaryIO, Iterator

from .algorithm import Algorithm
from .blake3_hash import Blake3

READ_BUFFER_SIZE = 64 * 1024


def _read_chunks(handle: BinaryIO) -> Iterator[bytes]:
    while chunk := handle.read(READ_BUFFER_SIZE):
        yield chunk


def hash_file_sha256(path: str | os.PathLike) -> str:
    """Return ``sha256:<hex>`` of the file's bytes; raises OSError on failure."""
    hasher = hashlib.sha256()
    with open(path, "rb") as handle:
        for chunk in _read_chunks(handle):
            hasher.update(chunk)
    return f"sha256:{hasher.hexdigest()}"


def hash_file_blake3(path: str | os.PathLike) -> str:
    """Return ``blake3:<hex>`` of the file's bytes; raises OSError on failure."""
    hasher = Blake3()
    with open(path, "rb") as handle:
        for chunk in _read_chunks(handle):
            hasher.update(chunk)
    return f"blake3:{hasher.hexdigest()}"


def hash_file(path: str | os.PathLike, algorithm: Algorithm) -> str:
    """Hash a file with the chosen algorithm."""
    if algorithm is Algorithm.SHA256:
        return hash_file_sha256(path)
    return hash_file_blake3(path)


def hash_bytes(data: bytes) -> str:
    """Return ``blake3:<hex>`` of an in-memory byte string."""
    return f"blake3:{Blake3(data).hexdigest()}"