"""
ucs.runtime.dispatch — selector dispatch and the storage capability.

Every time contract code is entered (one Frame), `Contract.run` mints exactly
one StorageCapability for that frame, builds the dispatch table and runs the
first entry whose selector matches the call. The capability is revoked when
the frame exits, so a copy smuggled out of the call is useless.

StorageCapability cannot be constructed outside this module: its constructor
demands a module-private key. Storage functions in ucs.storage take it as
their first argument, so "touches persistent state" is visible from a
function's signature.

Entries
-------
An Entry exposes `selector()` and `invoke()`. `invoke` takes no arguments:
the handler action is a closure over the current call, decoding its own
arguments with a Decoder and encoding its own return value.

    class Counter(Contract):
        @external("increment()")
        def increment(self, call): ...

        @external("number()", returns=("uint256",))
        def number(self, call) -> int: ...

Handlers receive `call` (a Call) followed by the decoded arguments in
parameter order; the returned Python value is encoded per `returns`. Handlers
with `raw=True` return bytes as-is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import (Any, Callable, Dict, List, Optional, Protocol, Sequence,
                    Tuple)

from ..abi.decoding import Decoder
from ..abi.encoding import encode_returns
from ..abi.signature import (SELECTOR_BYTES, Signature, SelectorLike,
                             bind_selector, parse_signature, selector_hex)
from ..errors import (CapabilityError, NestedCallFailed, UcsError,
                      UnknownSelector)
from ..runtime.context import ExecutionContext

log = logging.getLogger(__name__)

__all__ = [
    "StorageCapability",
    "Entry",
    "Handler",
    "dispatch",
    "external",
    "ExternalSpec",
    "Call",
    "Contract",
]

# ─────────────────────────────────────────────────────────────────────────────
# Capability
# ─────────────────────────────────────────────────────────────────────────────

_MINT_KEY = object()


class StorageCapability:
    """Opaque, call-scoped token proving the holder runs inside a live frame."""

    __slots__ = ("_frame", "_live")

    def __init__(self, key: object, frame: Any) -> None:
        if key is not _MINT_KEY:
            raise TypeError("StorageCapability cannot be constructed directly")
        self._frame = frame
        self._live = True

    @property
    def live(self) -> bool:
        return self._live

    @property
    def frame(self):
        if not self._live:
            raise CapabilityError()
        return self._frame

    def _revoke(self) -> None:
        self._live = False
        self._frame = None

    def __reduce__(self):
        raise TypeError("StorageCapability cannot be serialized")

    def __copy__(self):
        raise TypeError("StorageCapability cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("StorageCapability cannot be copied")

    def __repr__(self) -> str:
        return f"<StorageCapability live={self._live}>"


def _mint(frame: Any) -> StorageCapability:
    return StorageCapability(_MINT_KEY, frame)


# ─────────────────────────────────────────────────────────────────────────────
# Entries & dispatch
# ─────────────────────────────────────────────────────────────────────────────


class Entry(Protocol):
    def selector(self) -> bytes: ...

    def invoke(self) -> bytes: ...


@dataclass(frozen=True)
class Handler:
    """Selector bound to a zero-argument action."""

    _selector: bytes
    action: Callable[[], bytes]
    name: str = ""

    def selector(self) -> bytes:
        return self._selector

    def invoke(self) -> bytes:
        return self.action()


def dispatch(
    table: Sequence[Entry],
    calldata: bytes,
    *,
    fallback: Optional[Callable[[], bytes]] = None,
) -> bytes:
    """
    Run the first entry whose selector equals the leading four calldata bytes.
    Without a match, run `fallback` if given, else fail with UnknownSelector
    and empty return data.
    """
    sel = bytes(calldata[:SELECTOR_BYTES])
    if len(sel) == SELECTOR_BYTES:
        for entry in table:
            if entry.selector() == sel:
                log.debug("dispatch", extra={"selector": selector_hex(sel), "entry": getattr(entry, "name", "")})
                return entry.invoke()
    if fallback is not None:
        return fallback()
    raise UnknownSelector(selector=sel or None)


# ─────────────────────────────────────────────────────────────────────────────
# Declarative externals
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ExternalSpec:
    signature: Signature
    selector: bytes
    attr: str
    raw: bool = False


def external(
    signature: str,
    *,
    returns: Sequence[str] = (),
    selector: Optional[SelectorLike] = None,
    raw: bool = False,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Mark a Contract method as an external entry point. A literal `selector`
    is checked against the signature right here, at class definition time.
    """
    sig, sel = bind_selector(parse_signature(signature, returns), selector)

    def deco(fn: Callable[..., Any]) -> Callable[..., Any]:
        fn.__ucs_external__ = (sig, sel, raw)  # type: ignore[attr-defined]
        return fn

    return deco


class Call:
    """
    What a handler sees of the current call: its context, the storage
    capability, and fail-fast wrappers around the frame's call primitives.
    """

    __slots__ = ("frame", "cap", "_decoder")

    def __init__(self, frame: Any, cap: StorageCapability) -> None:
        self.frame = frame
        self.cap = cap
        self._decoder: Optional[Decoder] = None

    @property
    def ctx(self) -> ExecutionContext:
        return self.frame.context()

    @property
    def caller(self) -> int:
        return self.frame.caller

    @property
    def value(self) -> int:
        return self.frame.value

    @property
    def calldata(self) -> bytes:
        return self.frame.calldata

    @property
    def address(self) -> int:
        return self.frame.address

    @property
    def selector(self) -> bytes:
        return self.frame.calldata[:SELECTOR_BYTES]

    def decoder(self) -> Decoder:
        if self._decoder is None:
            self._decoder = Decoder(self.frame.calldata)
        return self._decoder

    # ---- nested calls that bubble failures ----

    def call(self, to: int, data: bytes, value: int = 0) -> bytes:
        ok, out = self.frame.call(to, data, value=value)
        return self._require(ok, to, out)

    def delegatecall(self, to: int, data: bytes) -> bytes:
        ok, out = self.frame.delegatecall(to, data)
        return self._require(ok, to, out)

    def staticcall(self, to: int, data: bytes) -> bytes:
        ok, out = self.frame.staticcall(to, data)
        return self._require(ok, to, out)

    def emit(self, topics: Sequence[bytes], data: bytes = b"") -> None:
        self.frame.emit_log(topics, data)

    @staticmethod
    def _require(ok: bool, to: int, out: bytes) -> bytes:
        if not ok:
            raise NestedCallFailed(target=to.to_bytes(20, "big"), return_data=out)
        return out


class Contract:
    """
    Base class for Python-native contract code (a Program for ucs.host).

    Instances are code, not state: they may carry immutable configuration
    but every persistent value lives in storage reached through the
    capability. One instance can back any number of accounts.
    """

    _externals: Tuple[ExternalSpec, ...] = ()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        # keyed by selector: a subclass redeclaring a signature replaces the
        # inherited entry, whatever the method is called
        specs: Dict[bytes, ExternalSpec] = {}
        for klass in reversed(cls.__mro__):
            declared: Dict[bytes, ExternalSpec] = {}
            for attr, fn in vars(klass).items():
                for sel in [s for s, spec in specs.items() if spec.attr == attr]:
                    del specs[sel]
                meta = getattr(fn, "__ucs_external__", None)
                if meta is None:
                    continue
                spec = ExternalSpec(meta[0], meta[1], attr, meta[2])
                other = declared.get(spec.selector) or specs.get(spec.selector)
                if other is not None and (
                    spec.selector in declared or other.signature.canonical != spec.signature.canonical
                ):
                    raise UcsError(
                        f"selector clash in {cls.__name__}: {other.signature.canonical} ({other.attr}) "
                        f"and {spec.signature.canonical} ({attr})",
                        code="SELECTOR_CLASH",
                    )
                declared[spec.selector] = spec
                specs[spec.selector] = spec
        cls._externals = tuple(specs.values())

    @classmethod
    def externals(cls) -> Tuple[ExternalSpec, ...]:
        return cls._externals

    @classmethod
    def selectors(cls) -> Tuple[bytes, ...]:
        return tuple(s.selector for s in cls._externals)

    # ---- Program protocol ----

    def run(self, frame: Any) -> bytes:
        cap = _mint(frame)
        call = Call(frame, cap)
        try:
            return dispatch(self.dispatch_table(call), frame.calldata, fallback=self._fallback_action(call))
        finally:
            cap._revoke()

    def dispatch_table(self, call: Call) -> List[Entry]:
        return [Handler(spec.selector, self._action(spec, call), spec.signature.canonical) for spec in self._externals]

    def fallback(self, call: Call) -> bytes:
        """Called for calldata matching no entry. Default: UnknownSelector."""
        raise UnknownSelector(selector=call.selector or None)

    def _fallback_action(self, call: Call) -> Callable[[], bytes]:
        return lambda: self.fallback(call)

    def _action(self, spec: ExternalSpec, call: Call) -> Callable[[], bytes]:
        fn = getattr(self, spec.attr)

        def action() -> bytes:
            dec = call.decoder()
            args = [dec.next(t) for t in spec.signature.params]
            result = fn(call, *args)
            if spec.raw:
                return bytes(result or b"")
            return encode_returns(spec.signature.returns, result)

        return action
