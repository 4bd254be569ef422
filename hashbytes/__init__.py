"""Streaming SHA-256/BLAKE3 hashing of files named in JSONL manifests, with a witness ledger."""

__version__ = "0.3.1"
__all__ = ["__version__"]