"""
ucs.runtime.context — read-only execution context seen by contract code.

The host engine builds one ExecutionContext per frame. It contains only pure
data (ints/bytes) and validates on construction. Contract code reads it; it
never mutates it.

Fields
------
address:   account whose storage the frame runs against
code_address: account whose code is executing (differs under delegatecall)
caller:    immediate caller (preserved across delegatecall)
value:     attached value (preserved across delegatecall)
calldata:  raw call input (selector || words)
gas_left:  remaining budget when the frame was entered
depth:     call depth (0 = top-level transaction)
static:    True inside a read-only invocation
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from ..abi.types import ADDRESS_MAX, to_address_hex


class ContextError(ValueError):
    """Validation failure for ExecutionContext fields."""


def _require_non_negative_int(name: str, v: Any) -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise ContextError(f"{name} must be int, got {type(v).__name__}")
    if v < 0:
        raise ContextError(f"{name} must be non-negative, got {v}")
    return v


def _require_address(name: str, v: Any) -> int:
    v = _require_non_negative_int(name, v)
    if v > ADDRESS_MAX:
        raise ContextError(f"{name} exceeds 160 bits")
    return v


@dataclass(frozen=True)
class ExecutionContext:
    address: int
    code_address: int
    caller: int
    value: int
    calldata: bytes
    gas_left: int
    depth: int = 0
    static: bool = False

    def __post_init__(self) -> None:
        for name in ("address", "code_address", "caller"):
            object.__setattr__(self, name, _require_address(name, getattr(self, name)))
        object.__setattr__(self, "value", _require_non_negative_int("value", self.value))
        object.__setattr__(self, "gas_left", _require_non_negative_int("gas_left", self.gas_left))
        object.__setattr__(self, "depth", _require_non_negative_int("depth", self.depth))
        if not isinstance(self.calldata, (bytes, bytearray, memoryview)):
            raise ContextError("calldata must be bytes")
        object.__setattr__(self, "calldata", bytes(self.calldata))

    @property
    def selector(self) -> bytes:
        return self.calldata[:4]

    @property
    def is_delegated(self) -> bool:
        return self.address != self.code_address

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": to_address_hex(self.address),
            "codeAddress": to_address_hex(self.code_address),
            "caller": to_address_hex(self.caller),
            "value": self.value,
            "calldata": "0x" + self.calldata.hex(),
            "gasLeft": self.gas_left,
            "depth": self.depth,
            "static": self.static,
        }


__all__ = ["ContextError", "ExecutionContext"]
