"""Buffer helpers for key material handled by the harness.

Secret keys and shared secrets are copied out of the provider into
``SecretBuffer`` instances sized exactly from the descriptor. The buffers are
mutable so they can be zeroed once the owning harness is done with them.
Python cannot scrub the transient ``bytes`` objects handed across the provider
boundary; the buffers only bound how long the harness itself keeps secrets.
"""

from __future__ import annotations

from typing import Union

from cryptography.hazmat.primitives import constant_time

from .errors import AllocationFailure, InvariantViolation

BytesLike = Union[bytes, bytearray, memoryview]

DEFAULT_PREVIEW_BYTES = 16


def allocate(length: int, label: str = "buffer") -> bytearray:
    """Return a zeroed buffer of exactly ``length`` bytes."""
    if isinstance(length, bool) or not isinstance(length, int):
        raise AllocationFailure(f"{label}: length must be an integer, got {length!r}")
    if length <= 0:
        raise AllocationFailure(f"{label}: length must be positive, got {length}")
    try:
        return bytearray(length)
    except MemoryError as exc:
        raise AllocationFailure(f"{label}: unable to allocate {length} bytes") from exc


class SecretBuffer:
    """Fixed-size mutable holder for sensitive bytes; zeroed by ``wipe()``."""

    __slots__ = ("_data", "label", "_wiped")

    def __init__(self, length: int, label: str = "secret") -> None:
        self._data = allocate(length, label)
        self.label = label
        self._wiped = False

    @classmethod
    def copy_of(cls, data: BytesLike, label: str = "secret") -> "SecretBuffer":
        buf = cls(len(data), label)
        buf._data[:] = data
        return buf

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        state = "wiped" if self._wiped else "live"
        return f"SecretBuffer(label={self.label!r}, len={len(self._data)}, {state})"

    def __enter__(self) -> "SecretBuffer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.wipe()

    @property
    def wiped(self) -> bool:
        return self._wiped

    def view(self) -> memoryview:
        if self._wiped:
            raise InvariantViolation(f"{self.label}: buffer used after wipe")
        return memoryview(self._data).toreadonly()

    def bytes(self) -> bytes:
        # Provider bindings only accept immutable bytes.
        return bytes(self.view())

    def equals(self, other: BytesLike | "SecretBuffer") -> bool:
        rhs = other.bytes() if isinstance(other, SecretBuffer) else bytes(other)
        return constant_time_equal(self.bytes(), rhs)

    def wipe(self) -> None:
        for i in range(len(self._data)):
            self._data[i] = 0
        self._wiped = True


def secret_from(data: BytesLike, expected_len: int, label: str = "secret") -> SecretBuffer:
    """Copy provider output into a ``SecretBuffer`` after an exact size check."""
    size = len(data) if data is not None else 0
    if size != expected_len:
        raise InvariantViolation(f"{label}: expected {expected_len} bytes, provider returned {size}")
    buf = SecretBuffer(expected_len, label)
    buf._data[:] = data
    return buf


def check_length(data: BytesLike, expected: int, label: str) -> None:
    size = len(data) if data is not None else 0
    if size != expected:
        raise InvariantViolation(f"{label}: expected {expected} bytes, got {size}")


def hex_preview(data: BytesLike | None, limit: int = DEFAULT_PREVIEW_BYTES) -> str | None:
    if data is None:
        return None
    raw = bytes(data)
    if limit <= 0:
        return ""
    text = raw[:limit].hex()
    if len(raw) > limit:
        text += "..."
    return text


def constant_time_equal(a: BytesLike, b: BytesLike) -> bool:
    return constant_time.bytes_eq(bytes(a), bytes(b))
