"""Hash algorithm selection and run outcomes."""

from __future__ import annotations

import string
from enum import Enum

_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)


class Algorithm(Enum):
    """Supported content hash algorithms."""

    SHA256 = "sha256"
    BLAKE3 = "blake3"

    @property
    def prefix(self) -> str:
        """The label used in front of a digest, e.g. ``sha256``."""
        return self.value

    def format_bytes_hash(self, digest_hex: str) -> str:
        """Return ``<prefix>:<hex>`` with the hex digits in lower case."""
        return f"{self.prefix}:{digest_hex.translate(_ASCII_LOWER)}"

    def __str__(self) -> str:
        return self.prefix


def parse_algorithm(value: str) -> Algorithm:
    """Parse an algorithm name, ignoring ASCII case.

    Raises ValueError for anything other than sha256 or blake3.
    """
    if value.isascii():
        lowered = value.translate(_ASCII_LOWER)
        for algorithm in Algorithm:
            if lowered == algorithm.value:
                return algorithm
    raise ValueError(f"Invalid algorithm '{value}'. Expected one of: sha256, blake3")


class Outcome(Enum):
    """Overall result of a run."""

    ALL_HASHED = "ALL_HASHED"
    PARTIAL = "PARTIAL"
    REFUSAL = "REFUSAL"

    @property
    def exit_code(self) -> int:
        """Process exit status for this outcome."""
        return _EXIT_CODES[self]

    @property
    def label(self) -> str:
        """Label recorded in the witness ledger."""
        return self.value


_EXIT_CODES = {
    Outcome.ALL_HASHED: 0,
    Outcome.PARTIAL: 1,
    Outcome.REFUSAL: 2,
}


def exit_code(outcome: Outcome) -> int:
    """Return the process exit status for an outcome."""
    return outcome.exit_code