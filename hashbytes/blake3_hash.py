"""BLAKE3 hashing (unkeyed, 32-byte output)."""

from __future__ import annotations

import struct
from typing import NamedTuple

OUT_LEN = 32
BLOCK_LEN = 64
CHUNK_LEN = 1024

_CHUNK_START = 1 << 0
_CHUNK_END = 1 << 1
_PARENT = 1 << 2
_ROOT = 1 << 3

_MASK = 0xFFFFFFFF

_IV = (
    0x6A09E667,
    0xBB67AE85,
    0x3C6EF372,
    0xA54FF53A,
    0x510E527F,
    0x9B05688C,
    0x1F83D9AB,
    0x5BE0CD19,
)

_MSG_PERMUTATION = (2, 6, 3, 10, 7, 0, 4, 13, 1, 11, 12, 5, 9, 14, 15, 8)

_G_LANES = (
    (0, 4, 8, 12),
    (1, 5, 9, 13),
    (2, 6, 10, 14),
    (3, 7, 11, 15),
    (0, 5, 10, 15),
    (1, 6, 11, 12),
    (2, 7, 8, 13),
    (3, 4, 9, 14),
)

_WORDS = struct.Struct("<16I")


def _build_schedules() -> tuple[tuple[tuple[int, int], ...], ...]:
    order = tuple(range(16))
    schedules = []
    for _ in range(7):
        schedules.append(tuple(zip(order[0::2], order[1::2])))
        order = tuple(order[p] for p in _MSG_PERMUTATION)
    return tuple(schedules)


_SCHEDULES = _build_schedules()


def _compress(cv, block_words, counter: int, block_len: int, flags: int) -> list[int]:
    state = [
        *cv,
        *_IV[:4],
        counter & _MASK,
        (counter >> 32) & _MASK,
        block_len,
        flags,
    ]
    for schedule in _SCHEDULES:
        for (a, b, c, d), (x, y) in zip(_G_LANES, schedule):
            sa = (state[a] + state[b] + block_words[x]) & _MASK
            sd = state[d] ^ sa
            sd = ((sd >> 16) | (sd << 16)) & _MASK
            sc = (state[c] + sd) & _MASK
            sb = state[b] ^ sc
            sb = ((sb >> 12) | (sb << 20)) & _MASK
            sa = (sa + sb + block_words[y]) & _MASK
            sd ^= sa
            sd = ((sd >> 8) | (sd << 24)) & _MASK
            sc = (sc + sd) & _MASK
            sb ^= sc
            sb = ((sb >> 7) | (sb << 25)) & _MASK
            state[a], state[b], state[c], state[d] = sa, sb, sc, sd
    low, high = state[:8], state[8:]
    return [lo ^ hi for lo, hi in zip(low, high)] + [hi ^ c for hi, c in zip(high, cv)]


class _Output(NamedTuple):
    input_cv: tuple[int, ...]
    block_words: tuple[int, ...]
    counter: int
    block_len: int
    flags: int

    def chaining_value(self) -> tuple[int, ...]:
        words = _compress(self.input_cv, self.block_words, self.counter, self.block_len, self.flags)
        return tuple(words[:8])

    def root_bytes(self, length: int = OUT_LEN) -> bytes:
        out = bytearray()
        counter = 0
        while len(out) < length:
            words = _compress(
                self.input_cv, self.block_words, counter, self.block_len, self.flags | _ROOT
            )
            out += _WORDS.pack(*words)
            counter += 1
        return bytes(out[:length])


def _parent_output(left_cv, right_cv) -> _Output:
    return _Output(_IV, tuple(left_cv) + tuple(right_cv), 0, BLOCK_LEN, _PARENT)


class _ChunkState:
    def __init__(self, chunk_counter: int) -> None:
        self.cv: tuple[int, ...] = _IV
        self.chunk_counter = chunk_counter
        self.block = bytearray()
        self.blocks_compressed = 0

    def __len__(self) -> int:
        return BLOCK_LEN * self.blocks_compressed + len(self.block)

    def _start_flag(self) -> int:
        return _CHUNK_START if self.blocks_compressed == 0 else 0

    def update(self, data: memoryview) -> None:
        while data:
            if len(self.block) == BLOCK_LEN:
                words = _WORDS.unpack(self.block)
                self.cv = tuple(
                    _compress(self.cv, words, self.chunk_counter, BLOCK_LEN, self._start_flag())[:8]
                )
                self.blocks_compressed += 1
                self.block = bytearray()
            take = min(BLOCK_LEN - len(self.block), len(data))
            self.block += data[:take]
            data = data[take:]

    def output(self) -> _Output:
        words = _WORDS.unpack(bytes(self.block).ljust(BLOCK_LEN, b"\0"))
        return _Output(
            self.cv,
            words,
            self.chunk_counter,
            len(self.block),
            self._start_flag() | _CHUNK_END,
        )


class Blake3:
    """Incremental BLAKE3 hasher with a 32-byte digest."""

    def __init__(self, data: bytes = b"") -> None:
        self._chunk = _ChunkState(0)
        self._cv_stack: list[tuple[int, ...]] = []
        if data:
            self.update(data)

    def _push_chunk_cv(self, cv: tuple[int, ...], total_chunks: int) -> None:
        while total_chunks & 1 == 0:
            cv = _parent_output(self._cv_stack.pop(), cv).chaining_value()
            total_chunks >>= 1
        self._cv_stack.append(cv)

    def update(self, data) -> Blake3:
        """Feed more bytes into the hash."""
        view = memoryview(data).cast("B")
        while view:
            if len(self._chunk) == CHUNK_LEN:
                chunk_cv = self._chunk.output().chaining_value()
                total_chunks = self._chunk.chunk_counter + 1
                self._push_chunk_cv(chunk_cv, total_chunks)
                self._chunk = _ChunkState(total_chunks)
            take = min(CHUNK_LEN - len(self._chunk), len(view))
            self._chunk.update(view[:take])
            view = view[take:]
        return self

    def digest(self) -> bytes:
        """Return the 32-byte digest of everything fed so far."""
        output = self._chunk.output()
        for left_cv in reversed(self._cv_stack):
            output = _parent_output(left_cv, output.chaining_value())
        return output.root_bytes(OUT_LEN)

    def hexdigest(self) -> str:
        """Return the digest as lower-case hex."""
        return self.digest().hex()


def blake3_hex(data: bytes) -> str:
    """Return the BLAKE3 digest of ``data`` as lower-case hex."""
    return Blake3(data).hexdigest()