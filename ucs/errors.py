"""
ucs.errors — error taxonomy for slot layout, dispatch and forwarding.

Failures are communicated via *typed exceptions*. The host engine converts any
`Revert` raised inside a frame into a failed call result (success=False plus
return data) and rolls back every effect of that frame. Ordinary Python
failures raised by contract code (ValueError, TypeError, ...) are wrapped in
`ExecutionFailed` first, so they fail the frame the same way.

Hierarchy
---------
UcsError (base)
 ├─ Revert                 : call failure, carries `return_data` bytes
 │   ├─ Unauthorized       : caller lacks the required role
 │   ├─ AlreadyInitialized : one-time setup invoked twice
 │   ├─ NoImplementation   : selector not registered in the dictionary
 │   ├─ UnknownSelector    : no matching dispatch entry
 │   ├─ NestedCallFailed   : propagated failure of a remote invocation
 │   ├─ OutOfGas           : compute budget exhausted
 │   ├─ CallDepthExceeded  : nested invocation too deep
 │   ├─ DecodeError        : malformed calldata
 │   ├─ CapabilityError    : storage capability used outside its call
 │   ├─ StaticWriteViolation : write attempted in a read-only invocation
 │   ├─ ArithmeticOverflow / ArithmeticUnderflow
 │   ├─ ExecutionFailed    : contract code raised a non-Revert exception
 │   └─ InvalidTransition  : state machine transition not in the allowed table
 ├─ SchemaError            : bad field declaration (construction time)
 └─ SelectorMismatch       : literal selector disagrees with its signature

Notes
-----
* The five protocol errors (Unauthorized, AlreadyInitialized, NoImplementation,
  UnknownSelector, NestedCallFailed) surface with empty return data unless a
  nested call supplied some.
* `SchemaError` and `SelectorMismatch` indicate programming errors found during
  startup validation; they are never produced by a well-formed call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(eq=False)
class UcsError(Exception):
    """
    Base error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g., 'UNAUTHORIZED').
        data:    Optional structured details (kept JSON-serializable).
    """
    message: str = "ucs error"
    code: str = "UCS_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for results and logs."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


class Revert(UcsError):
    """
    Call failure.

    `return_data` is the failure payload handed back to the caller. Protocol
    errors leave it empty; `NestedCallFailed` and explicit reverts may carry
    the bytes produced by the failing code.
    """

    code_name = "REVERT"
    default_message = "reverted"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        return_data: bytes = b"",
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message or self.default_message, code=self.code_name, data=data or None)
        self.return_data = bytes(return_data)


def _hex(v: Any) -> Any:
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    if isinstance(v, int) and not isinstance(v, bool):
        return hex(v)
    return v


class Unauthorized(Revert):
    code_name = "UNAUTHORIZED"

    def __init__(self, message: str = "caller is not authorized", *, caller: Any = None, required: Any = None) -> None:
        d: Dict[str, Any] = {}
        if caller is not None:
            d["caller"] = _hex(caller)
        if required is not None:
            d["required"] = _hex(required)
        super().__init__(message, data=d)


class AlreadyInitialized(Revert):
    code_name = "ALREADY_INITIALIZED"

    def __init__(self, message: str = "already initialized", *, what: Optional[str] = None) -> None:
        super().__init__(message, data={"what": what} if what else None)


class NoImplementation(Revert):
    code_name = "NO_IMPLEMENTATION"

    def __init__(self, message: str = "no implementation for selector", *, selector: Optional[bytes] = None) -> None:
        super().__init__(message, data={"selector": _hex(selector)} if selector is not None else None)


class UnknownSelector(Revert):
    code_name = "UNKNOWN_SELECTOR"

    def __init__(self, message: str = "unknown selector", *, selector: Optional[bytes] = None) -> None:
        super().__init__(message, data={"selector": _hex(selector)} if selector is not None else None)


class NestedCallFailed(Revert):
    """Failure of a remote invocation, bubbled to the caller with the inner return data."""

    code_name = "NESTED_CALL_FAILED"

    def __init__(
        self,
        message: str = "nested call failed",
        *,
        target: Optional[bytes] = None,
        return_data: bytes = b"",
    ) -> None:
        super().__init__(
            message,
            return_data=return_data,
            data={"target": _hex(target)} if target is not None else None,
        )


class OutOfGas(Revert):
    code_name = "OUT_OF_GAS"

    def __init__(self, message: str = "out of gas", *, need: Optional[int] = None, remaining: Optional[int] = None) -> None:
        d: Dict[str, Any] = {}
        if need is not None:
            d["need"] = need
        if remaining is not None:
            d["remaining"] = remaining
        super().__init__(message, data=d)


class CallDepthExceeded(Revert):
    code_name = "CALL_DEPTH_EXCEEDED"
    default_message = "call depth exceeded"


class DecodeError(Revert):
    code_name = "DECODE_ERROR"
    default_message = "malformed calldata"


class CapabilityError(Revert):
    code_name = "CAPABILITY_ERROR"
    default_message = "storage capability is not live"


class StaticWriteViolation(Revert):
    code_name = "STATIC_WRITE"
    default_message = "state write in read-only call"


class ArithmeticOverflow(Revert):
    code_name = "ARITHMETIC_OVERFLOW"
    default_message = "arithmetic overflow"


class ArithmeticUnderflow(Revert):
    code_name = "ARITHMETIC_UNDERFLOW"
    default_message = "arithmetic underflow"


class ExecutionFailed(Revert):
    """Contract code raised something other than a Revert (bad return value, bad address, ...)."""

    code_name = "EXECUTION_FAILED"
    default_message = "execution failed"


class InvalidTransition(Revert):
    code_name = "INVALID_TRANSITION"

    def __init__(self, message: str = "invalid state transition", *, src: Any = None, dst: Any = None) -> None:
        d: Dict[str, Any] = {}
        if src is not None:
            d["from"] = str(src)
        if dst is not None:
            d["to"] = str(dst)
        super().__init__(message, data=d)


class SchemaError(UcsError):
    """Malformed schema declaration (duplicate name, capacity exceeded, bad type)."""

    def __init__(self, message: str = "invalid schema", *, data: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message=message, code="SCHEMA_ERROR", data=data)


class SelectorMismatch(UcsError):
    """A literal selector does not match the selector derived from its signature."""

    def __init__(self, signature: str, expected: bytes, got: bytes) -> None:
        super().__init__(
            message=f"selector for {signature} is 0x{expected.hex()}, literal was 0x{got.hex()}",
            code="SELECTOR_MISMATCH",
            data={"signature": signature, "derived": "0x" + expected.hex(), "literal": "0x" + got.hex()},
        )


# -------- helper utilities ----------------------------------------------------


def error_to_result_fields(err: UcsError) -> Dict[str, Any]:
    """
    Map an error to canonical call-result fields.

    Returns:
        {
          "status": "OOG" | "REVERT" | "ERROR",
          "error":  {code, message, data?}
        }
    """
    if isinstance(err, OutOfGas):
        status = "OOG"
    elif isinstance(err, Revert):
        status = "REVERT"
    else:
        status = "ERROR"
    return {"status": status, "error": err.to_dict()}


__all__ = [
    "UcsError",
    "Revert",
    "Unauthorized",
    "AlreadyInitialized",
    "NoImplementation",
    "UnknownSelector",
    "NestedCallFailed",
    "OutOfGas",
    "CallDepthExceeded",
    "DecodeError",
    "CapabilityError",
    "StaticWriteViolation",
    "ArithmeticOverflow",
    "ArithmeticUnderflow",
    "ExecutionFailed",
    "InvalidTransition",
    "SchemaError",
    "SelectorMismatch",
    "error_to_result_fields",
]
