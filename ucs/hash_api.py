"""
ucs.hash_api — Keccak-256 wrappers used for slot and selector derivation.

Goals
-----
- Strictly bytes-in, bytes-out (no implicit text/encoding).
- Keccak-256 with the original (pre-FIPS) padding, as used by EVM-style
  storage layouts. `hashlib.sha3_256` is a *different* function and must not be
  substituted.

Provided APIs
-------------
- keccak256(data) -> bytes
- keccak256_int(data) -> int                     # big-endian 256-bit word
"""

from __future__ import annotations

from Crypto.Hash import keccak as _keccak


def _ensure_bytes(buf: object, name: str) -> bytes:
    if isinstance(buf, (bytes, bytearray, memoryview)):
        return bytes(buf)
    raise TypeError(f"{name} must be bytes-like (got {type(buf).__name__})")


def _new_keccak256():
    return _keccak.new(digest_bits=256)


def keccak256(data: bytes | bytearray | memoryview) -> bytes:
    """One-shot Keccak-256."""
    h = _new_keccak256()
    h.update(_ensure_bytes(data, "data"))
    return h.digest()


def keccak256_int(data: bytes | bytearray | memoryview) -> int:
    return int.from_bytes(keccak256(data), "big")


__all__ = [
    "keccak256",
    "keccak256_int",
]
