"""
Function signatures and 4-byte selectors.

    canonical  := name "(" type ["," type]* ")"
    selector   := keccak256(utf8(canonical))[:4]

A `Signature` keeps the parsed name, parameter and return types together with
its canonical text. `bind_selector` pairs a signature with an optional literal
selector constant and refuses the pair when the two disagree, so a typo in a
hard-coded selector fails at registration instead of silently routing calls to
the wrong entry.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Optional, Sequence, Tuple, Union

from ..errors import SelectorMismatch
from ..hash_api import keccak256
from .types import ABITypeError, AbiType, parse_type

__all__ = [
    "SELECTOR_BYTES",
    "Signature",
    "canonical_signature",
    "derive_selector",
    "selector_hex",
    "coerce_selector",
    "parse_signature",
    "bind_selector",
    "event_topic",
]

SELECTOR_BYTES = 4

_NAME_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_SIG_RE = re.compile(r"^\s*([A-Za-z_$][A-Za-z0-9_$]*)\s*\((.*)\)\s*$")

SelectorLike = Union[bytes, bytearray, int, str]


def _split_types(inner: str) -> Tuple[str, ...]:
    inner = inner.strip()
    if not inner:
        return ()
    return tuple(p.strip() for p in inner.split(","))


def _canonical_types(types: Iterable[Union[str, AbiType]]) -> Tuple[str, ...]:
    out = []
    for t in types:
        typ = t if isinstance(t, AbiType) else parse_type(t)
        out.append(typ.canonical)
    return tuple(out)


def canonical_signature(name: str, arg_types: Sequence[Union[str, AbiType]]) -> str:
    """`transfer`, ["address", "uint"] -> "transfer(address,uint256)"."""
    if not isinstance(name, str) or not _NAME_RE.match(name):
        raise ABITypeError(f"invalid function name {name!r}")
    return f"{name}({','.join(_canonical_types(arg_types))})"


@lru_cache(maxsize=1024)
def derive_selector(signature: str) -> bytes:
    """First four bytes of keccak256 over the canonical signature text."""
    sig = parse_signature(signature)
    return keccak256(sig.canonical.encode("utf-8"))[:SELECTOR_BYTES]


def event_topic(signature: str) -> bytes:
    """Full 32-byte keccak of an event signature (log topic 0)."""
    return keccak256(parse_signature(signature).canonical.encode("utf-8"))


def selector_hex(selector: bytes) -> str:
    return "0x" + bytes(selector).hex()


def coerce_selector(value: SelectorLike) -> bytes:
    """Accept 4 raw bytes, an int literal such as 0xa9059cbb, or a hex string."""
    if isinstance(value, (bytes, bytearray)):
        b = bytes(value)
    elif isinstance(value, int) and not isinstance(value, bool):
        if value < 0 or value > 0xFFFFFFFF:
            raise ABITypeError(f"selector out of range: {value:#x}")
        b = value.to_bytes(SELECTOR_BYTES, "big")
    elif isinstance(value, str):
        h = value[2:] if value.startswith(("0x", "0X")) else value
        try:
            b = bytes.fromhex(h)
        except ValueError as e:
            raise ABITypeError(f"invalid selector hex {value!r}") from e
    else:
        raise ABITypeError(f"cannot use {type(value).__name__} as selector")
    if len(b) != SELECTOR_BYTES:
        raise ABITypeError(f"selector must be {SELECTOR_BYTES} bytes, got {len(b)}")
    return b


@dataclass(frozen=True)
class Signature:
    name: str
    params: Tuple[str, ...]
    returns: Tuple[str, ...] = ()

    @property
    def canonical(self) -> str:
        return f"{self.name}({','.join(self.params)})"

    @property
    def selector(self) -> bytes:
        return derive_selector(self.canonical)

    def param_types(self) -> Tuple[AbiType, ...]:
        return tuple(parse_type(p) for p in self.params)

    def return_types(self) -> Tuple[AbiType, ...]:
        return tuple(parse_type(r) for r in self.returns)

    def __str__(self) -> str:
        return self.canonical


@lru_cache(maxsize=1024)
def _parse(text: str) -> Signature:
    m = _SIG_RE.match(text)
    if not m:
        raise ABITypeError(f"malformed signature {text!r}")
    return Signature(name=m.group(1), params=_canonical_types(_split_types(m.group(2))))


def parse_signature(text: str, returns: Sequence[str] = ()) -> Signature:
    """
    Parse `name(type,...)`. Types are canonicalised (`uint` -> `uint256`).
    Return types are supplied separately since they are not part of the
    selector preimage.
    """
    if not isinstance(text, str):
        raise ABITypeError(f"signature must be str, got {type(text).__name__}")
    sig = _parse(text)
    if returns:
        return Signature(sig.name, sig.params, _canonical_types(returns))
    return sig


def bind_selector(
    signature: Union[str, Signature],
    literal: Optional[SelectorLike] = None,
) -> Tuple[Signature, bytes]:
    """
    Return `(signature, selector)`. When a literal selector is supplied it must
    equal the derived one, otherwise SelectorMismatch is raised.
    """
    sig = signature if isinstance(signature, Signature) else parse_signature(signature)
    derived = sig.selector
    if literal is not None:
        lit = coerce_selector(literal)
        if lit != derived:
            raise SelectorMismatch(sig.canonical, derived, lit)
    return sig, derived
