"""
ABI type definitions and word coercion.

The surface mirrors the fixed-width value types that occupy exactly one
32-byte word, both on the calldata wire and in a storage slot:

  - address            20-byte account id, left-padded; Python value: int
  - bool               0 / 1; Python value: bool
  - uintN / intN       N in 8..256 step 8; intN is two's complement in the word
  - bytesN             N in 1..32, left-aligned (right-padded); Python value: bytes

plus `T[]` dynamic arrays of those, which only appear on the calldata wire.

Utilities here *only* coerce/validate Python values and map them to and from
256-bit words; calldata layout lives in ucs.abi.encoding / ucs.abi.decoding.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional

__all__ = [
    "ABITypeError",
    "ValidationError",
    "WORD_BYTES",
    "U256_MAX",
    "ADDRESS_MAX",
    "AbiType",
    "parse_type",
    "coerce_address",
    "to_address_hex",
    "word_to_bytes",
    "bytes_to_word",
    "to_word",
    "from_word",
    "encode_key",
]

# ──────────────────────────────────────────────────────────────────────────────
# Errors & constants
# ──────────────────────────────────────────────────────────────────────────────


class ABITypeError(TypeError):
    """Raised when an ABI type spec is malformed or unsupported."""


class ValidationError(ValueError):
    """Raised when a Python value does not conform to an ABI type."""


WORD_BYTES = 32
U256_MAX = (1 << 256) - 1
ADDRESS_MAX = (1 << 160) - 1


# ──────────────────────────────────────────────────────────────────────────────
# Type specs
# ──────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AbiType:
    """
    Parsed ABI type.

    kind is one of "address", "bool", "uint", "int", "bytes", "array".
    `size` is the bit width for uint/int and the byte length for bytesN.
    `elem` is set for arrays only.
    """

    kind: str
    size: int = 0
    elem: Optional["AbiType"] = None

    @property
    def canonical(self) -> str:
        if self.kind in ("uint", "int"):
            return f"{self.kind}{self.size}"
        if self.kind == "bytes":
            return f"bytes{self.size}"
        if self.kind == "array":
            assert self.elem is not None
            return f"{self.elem.canonical}[]"
        return self.kind

    @property
    def is_dynamic(self) -> bool:
        return self.kind == "array"

    def __str__(self) -> str:
        return self.canonical


_INT_RE = re.compile(r"^(u?int)(\d*)$")
_BYTES_RE = re.compile(r"^bytes(\d+)$")


@lru_cache(maxsize=256)
def parse_type(spec: str) -> AbiType:
    """
    Parse a type string. `uint` / `int` alias to their 256-bit forms so the
    canonical signature always spells the width out.
    """
    if not isinstance(spec, str) or not spec.strip():
        raise ABITypeError(f"type spec must be a non-empty string, got {spec!r}")
    s = spec.strip()

    if s.endswith("[]"):
        elem = parse_type(s[:-2])
        if elem.is_dynamic:
            raise ABITypeError(f"nested dynamic arrays are not supported: {spec!r}")
        return AbiType("array", elem=elem)

    if s in ("address", "bool"):
        return AbiType(s)

    m = _INT_RE.match(s)
    if m:
        bits = int(m.group(2)) if m.group(2) else 256
        if bits < 8 or bits > 256 or bits % 8:
            raise ABITypeError(f"invalid integer width in {spec!r}")
        return AbiType(m.group(1), bits)

    m = _BYTES_RE.match(s)
    if m:
        n = int(m.group(1))
        if n < 1 or n > 32:
            raise ABITypeError(f"invalid bytesN length in {spec!r}")
        return AbiType("bytes", n)

    raise ABITypeError(f"unsupported ABI type: {spec!r}")


def _as_type(t: "str | AbiType") -> AbiType:
    return t if isinstance(t, AbiType) else parse_type(t)


# ──────────────────────────────────────────────────────────────────────────────
# Address helpers
# ──────────────────────────────────────────────────────────────────────────────


def coerce_address(value: Any) -> int:
    """Accept an int, 20 raw bytes, or a 0x-prefixed 40-hex-digit string."""
    if isinstance(value, bool):
        raise ValidationError("address cannot be a bool")
    if isinstance(value, int):
        if value < 0 or value > ADDRESS_MAX:
            raise ValidationError(f"address out of range: {value:#x}")
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        b = bytes(value)
        if len(b) != 20:
            raise ValidationError(f"address must be 20 bytes, got {len(b)}")
        return int.from_bytes(b, "big")
    if isinstance(value, str):
        h = value[2:] if value.startswith(("0x", "0X")) else value
        if len(h) != 40:
            raise ValidationError(f"address hex must be 40 digits: {value!r}")
        try:
            return int(h, 16)
        except ValueError as e:
            raise ValidationError(f"invalid address hex: {value!r}") from e
    raise ValidationError(f"cannot use {type(value).__name__} as address")


def to_address_hex(addr: int) -> str:
    return "0x" + coerce_address(addr).to_bytes(20, "big").hex()


# ──────────────────────────────────────────────────────────────────────────────
# Word conversion
# ──────────────────────────────────────────────────────────────────────────────


def word_to_bytes(word: int) -> bytes:
    if not isinstance(word, int) or word < 0 or word > U256_MAX:
        raise ValidationError(f"not a 256-bit word: {word!r}")
    return word.to_bytes(WORD_BYTES, "big")


def bytes_to_word(b: bytes | bytearray | memoryview) -> int:
    raw = bytes(b)
    if len(raw) != WORD_BYTES:
        raise ValidationError(f"word must be {WORD_BYTES} bytes, got {len(raw)}")
    return int.from_bytes(raw, "big")


def to_word(t: "str | AbiType", value: Any) -> int:
    """Encode a Python value into a single 256-bit word per its ABI type."""
    typ = _as_type(t)

    if typ.kind == "address":
        return coerce_address(value)

    if typ.kind == "bool":
        if not isinstance(value, (bool, int)) or value not in (0, 1):
            raise ValidationError(f"bool must be True/False, got {value!r}")
        return 1 if value else 0

    if typ.kind == "uint":
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{typ} value must be int, got {type(value).__name__}")
        if value < 0 or value.bit_length() > typ.size:
            raise ValidationError(f"{typ} out of range: {value}")
        return value

    if typ.kind == "int":
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{typ} value must be int, got {type(value).__name__}")
        lo, hi = -(1 << (typ.size - 1)), (1 << (typ.size - 1)) - 1
        if value < lo or value > hi:
            raise ValidationError(f"{typ} out of range: {value}")
        return value & U256_MAX

    if typ.kind == "bytes":
        if isinstance(value, int) and not isinstance(value, bool):
            # Integer literals (e.g. selectors written as 0xa9059cbb) are taken
            # as the big-endian bytesN value.
            if value < 0 or value.bit_length() > typ.size * 8:
                raise ValidationError(f"{typ} out of range: {value:#x}")
            value = value.to_bytes(typ.size, "big")
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise ValidationError(f"{typ} value must be bytes, got {type(value).__name__}")
        b = bytes(value)
        if len(b) != typ.size:
            raise ValidationError(f"{typ} requires exactly {typ.size} bytes, got {len(b)}")
        return int.from_bytes(b.ljust(WORD_BYTES, b"\x00"), "big")

    raise ABITypeError(f"{typ} does not fit in a single word")


def from_word(t: "str | AbiType", word: int, *, strict: bool = True) -> Any:
    """
    Decode a 256-bit word into a Python value.

    With `strict`, dirty high/low padding is rejected instead of being masked
    away.
    """
    typ = _as_type(t)
    if not isinstance(word, int) or word < 0 or word > U256_MAX:
        raise ValidationError(f"not a 256-bit word: {word!r}")

    if typ.kind == "address":
        if strict and word > ADDRESS_MAX:
            raise ValidationError("address word has dirty high bits")
        return word & ADDRESS_MAX

    if typ.kind == "bool":
        if strict and word > 1:
            raise ValidationError("bool word must be 0 or 1")
        return word != 0

    if typ.kind == "uint":
        if strict and word.bit_length() > typ.size:
            raise ValidationError(f"{typ} word out of range")
        return word & ((1 << typ.size) - 1)

    if typ.kind == "int":
        v = word - (1 << 256) if word >> 255 else word
        lo, hi = -(1 << (typ.size - 1)), (1 << (typ.size - 1)) - 1
        if strict and (v < lo or v > hi):
            raise ValidationError(f"{typ} word out of range")
        return v

    if typ.kind == "bytes":
        raw = word.to_bytes(WORD_BYTES, "big")
        if strict and any(raw[typ.size:]):
            raise ValidationError(f"{typ} word has dirty low bytes")
        return raw[: typ.size]

    raise ABITypeError(f"{typ} does not fit in a single word")


def encode_key(t: "Optional[str | AbiType]", key: Any) -> bytes:
    """
    Encode a mapping key into the 32-byte word that is hashed with the base
    slot. Without a declared type, ints and raw 32-byte strings are accepted
    as-is.
    """
    if t is None:
        if isinstance(key, (bytes, bytearray, memoryview)) and len(bytes(key)) == WORD_BYTES:
            return bytes(key)
        if isinstance(key, int) and not isinstance(key, bool):
            return word_to_bytes(key)
        raise ValidationError(f"untyped mapping key must be int or 32 bytes, got {key!r}")
    return word_to_bytes(to_word(t, key))
