"""
Inverse of encoding.py: a sequential calldata decoder.

The Decoder walks 32-byte words after the 4-byte selector. Each primitive
(address, uintN/intN, bool, bytesN) consumes exactly one word, so calling the
typed readers in parameter order yields the arguments left-to-right. `T[]`
heads hold a byte offset (relative to the start of the head) to a
`length || elements` tail.

`strict=True` (default: UCS_STRICT_DECODING) rejects dirty padding and
out-of-range values instead of masking them. Any failure raises DecodeError,
which is a call failure.

Top-level:
- Decoder(data, offset=4, strict=None)
- decode_args(types, data, offset=4, strict=None) -> list
- decode_returns(types, data, strict=None) -> value | tuple | None
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Union

from ..config import load_config
from ..errors import DecodeError
from .signature import SELECTOR_BYTES
from .types import WORD_BYTES, AbiType, ValidationError, from_word, parse_type

__all__ = ["Decoder", "decode_args", "decode_returns", "MAX_ARRAY_LENGTH"]

# Element count ceiling for decoded `T[]` values; anything larger cannot fit
# within the calldata size limit anyway.
MAX_ARRAY_LENGTH = 1 << 16


def _t(t: Union[str, AbiType]) -> AbiType:
    return t if isinstance(t, AbiType) else parse_type(t)


class Decoder:
    """Cursor over calldata words."""

    __slots__ = ("_data", "_base", "_pos", "_strict")

    def __init__(self, data: bytes, *, offset: int = SELECTOR_BYTES, strict: Optional[bool] = None) -> None:
        self._data = bytes(data)
        if offset > len(self._data):
            raise DecodeError("calldata shorter than selector", data={"size": len(self._data)})
        self._base = offset
        self._pos = offset
        self._strict = load_config().strict_decoding if strict is None else strict

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    # ---- raw ----

    def _word_at(self, pos: int) -> int:
        end = pos + WORD_BYTES
        if pos < 0 or end > len(self._data):
            raise DecodeError(
                "calldata truncated",
                data={"offset": pos, "need": WORD_BYTES, "size": len(self._data)},
            )
        return int.from_bytes(self._data[pos:end], "big")

    def word(self) -> int:
        w = self._word_at(self._pos)
        self._pos += WORD_BYTES
        return w

    # ---- typed ----

    def next(self, t: Union[str, AbiType]) -> Any:
        typ = _t(t)
        if typ.is_dynamic:
            return self.array(typ.elem)  # type: ignore[arg-type]
        return self._convert(typ, self.word())

    def address(self) -> int:
        return self.next("address")

    def uint(self, bits: int = 256) -> int:
        return self.next(f"uint{bits}")

    def boolean(self) -> bool:
        return self.next("bool")

    def fixed_bytes(self, n: int) -> bytes:
        return self.next(f"bytes{n}")

    def array(self, elem: Union[str, AbiType]) -> List[Any]:
        et = _t(elem)
        rel = self.word()
        start = self._base + rel
        n = self._word_at(start)
        if n > MAX_ARRAY_LENGTH:
            raise DecodeError("array length too large", data={"length": n})
        out: List[Any] = []
        pos = start + WORD_BYTES
        for _ in range(n):
            out.append(self._convert(et, self._word_at(pos)))
            pos += WORD_BYTES
        return out

    def _convert(self, typ: AbiType, word: int) -> Any:
        try:
            return from_word(typ, word, strict=self._strict)
        except ValidationError as e:
            raise DecodeError(f"bad {typ} word: {e}", data={"type": typ.canonical}) from e


def decode_args(
    types: Sequence[Union[str, AbiType]],
    data: bytes,
    *,
    offset: int = SELECTOR_BYTES,
    strict: Optional[bool] = None,
) -> List[Any]:
    dec = Decoder(data, offset=offset, strict=strict)
    return [dec.next(t) for t in types]


def decode_returns(
    types: Sequence[Union[str, AbiType]],
    data: bytes,
    *,
    strict: Optional[bool] = None,
) -> Any:
    """Mirror of encode_returns: None, a bare value, or a tuple."""
    if not types:
        return None
    vals = decode_args(types, data, offset=0, strict=strict)
    return vals[0] if len(vals) == 1 else tuple(vals)
