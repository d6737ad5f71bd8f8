"""
Calldata encoder.

Layout (one 32-byte word per static value):

    call      := selector(4) || head || tail
    head[i]   := word(value_i)             for single-word types
              := offset_i (bytes, from the start of head) for `T[]`
    tail      := for each `T[]`: length word || element words

Top-level:
- encode_words(types, values) -> bytes
- encode_call(signature, *args) -> bytes
- encode_dynamic_array(elem_type, values) -> bytes   (length || words, no offset)
"""

from __future__ import annotations

from typing import Any, List, Sequence, Union

from .signature import Signature, parse_signature
from .types import AbiType, ValidationError, parse_type, to_word, word_to_bytes

__all__ = [
    "encode_word",
    "encode_dynamic_array",
    "encode_words",
    "encode_call",
    "encode_returns",
]


def _t(t: Union[str, AbiType]) -> AbiType:
    return t if isinstance(t, AbiType) else parse_type(t)


def encode_word(t: Union[str, AbiType], value: Any) -> bytes:
    return word_to_bytes(to_word(_t(t), value))


def encode_dynamic_array(elem_type: Union[str, AbiType], values: Sequence[Any]) -> bytes:
    if isinstance(values, (str, bytes, bytearray)):
        raise ValidationError("array value must be a sequence of elements")
    et = _t(elem_type)
    out = bytearray(word_to_bytes(len(values)))
    for v in values:
        out += encode_word(et, v)
    return bytes(out)


def encode_words(types: Sequence[Union[str, AbiType]], values: Sequence[Any]) -> bytes:
    """Head/tail encode `values` against `types` (no selector)."""
    if len(types) != len(values):
        raise ValidationError(f"expected {len(types)} values, got {len(values)}")
    typs: List[AbiType] = [_t(t) for t in types]
    head_size = 32 * len(typs)
    head = bytearray()
    tail = bytearray()
    for typ, val in zip(typs, values):
        if typ.is_dynamic:
            assert typ.elem is not None
            head += word_to_bytes(head_size + len(tail))
            tail += encode_dynamic_array(typ.elem, val)
        else:
            head += encode_word(typ, val)
    return bytes(head + tail)


def encode_call(signature: Union[str, Signature], *args: Any) -> bytes:
    """`encode_call("transfer(address,uint256)", to, amount)` -> calldata."""
    sig = signature if isinstance(signature, Signature) else parse_signature(signature)
    return sig.selector + encode_words(sig.params, args)


def encode_returns(types: Sequence[Union[str, AbiType]], value: Any) -> bytes:
    """
    Encode a function's return value. A single return type takes the bare
    value; several take a tuple/list; none returns empty bytes.
    """
    if not types:
        return b""
    if len(types) == 1:
        return encode_words(types, [value])
    if not isinstance(value, (tuple, list)):
        raise ValidationError(f"expected {len(types)} return values, got {value!r}")
    return encode_words(types, list(value))
