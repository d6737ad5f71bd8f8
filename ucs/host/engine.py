"""
ucs.host.engine — in-process reference engine providing the call primitives.

The engine owns a WorldState behind a Journal and executes messages against
it. Each message runs in a Frame, which is the only object contract code
talks to:

    frame.sload(slot) / frame.sstore(slot, value) / frame.keccak256(data)
    frame.call(to, data, value=0, gas=None)       -> (success, returndata)
    frame.delegatecall(to, data, gas=None)        -> (success, returndata)
    frame.staticcall(to, data, gas=None)          -> (success, returndata)
    frame.create(code, value=0)                   -> address (0 on failure)
    frame.emit_log(topics, data)
    frame.caller / frame.value / frame.calldata / frame.gas_left

Semantics
---------
- Every frame runs inside its own journal checkpoint: it either commits into
  its parent or is dropped, together with everything its children did.
- A failing nested call never raises into the caller; it is reported as
  `(False, returndata)`. Whether to bubble it up is the caller's decision.
- Gas: a nested call costs `gas.call` up front and receives at most all but
  one 64th of what remains; a frame that runs out of gas burns its whole
  allowance.
- Static frames (and everything below them) cannot write storage, emit logs,
  create accounts or move value.
- Depth beyond `max_call_depth` fails the nested call with CallDepthExceeded,
  and so does nesting deeper than the Python stack can hold (STACK_RESERVE
  frames are always left free below the recursion limit).
- Contract code raising a ValueError, TypeError, ArithmeticError, LookupError
  or non-Revert UcsError fails its frame with ExecutionFailed.
- `create` installs the given bytes as runtime code at
  keccak256(creator20 || nonce32)[12:].

Top level:
    host = Host()
    addr = host.deploy(program_or_bytes, sender=..., init=calldata)
    res  = host.transact(sender, to, data, value=0, gas=None)   # CallResult
    res  = host.static_query(to, data)
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .. import logging as ulog
from ..abi.types import ADDRESS_MAX, to_address_hex, word_to_bytes
from ..config import UcsConfig, load_config
from ..errors import (CallDepthExceeded, DecodeError, ExecutionFailed,
                      OutOfGas, Revert, StaticWriteViolation, UcsError,
                      error_to_result_fields)
from ..hash_api import keccak256
from ..runtime.context import ExecutionContext
from ..runtime.gasmeter import GasMeter
from .interpreter import Interpreter
from .journal import Journal
from .state import Account, Code, Log, Program, WorldState

log = logging.getLogger(__name__)

# Address used by `Host.deploy` when no sender is given.
DEFAULT_DEPLOYER = 0xDE9107E4

# Python frames kept free below the recursion limit. A message that would eat
# into them fails with CallDepthExceeded before it starts executing.
STACK_RESERVE = 200

# Raised by contract code, these fail the frame as ExecutionFailed.
_CONTRACT_FAULTS = (UcsError, ValueError, TypeError, ArithmeticError, LookupError)


class CallKind(str, Enum):
    CALL = "call"
    DELEGATECALL = "delegatecall"
    STATICCALL = "staticcall"


@dataclass(frozen=True)
class Message:
    kind: CallKind
    caller: int
    address: int
    code_address: int
    value: int
    data: bytes
    depth: int
    static: bool


@dataclass
class CallResult:
    success: bool
    return_data: bytes
    gas_used: int
    logs: List[Log] = field(default_factory=list)
    error: Optional[UcsError] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "success": self.success,
            "returnData": "0x" + self.return_data.hex(),
            "gasUsed": self.gas_used,
            "logs": [entry.to_dict() for entry in self.logs],
        }
        if self.error is not None:
            out.update(error_to_result_fields(self.error))
        return out

    def unwrap(self) -> bytes:
        """Return data of a successful call; re-raise the failure otherwise."""
        if not self.success:
            if self.error is not None:
                raise self.error
            raise Revert(return_data=self.return_data)
        return self.return_data


def _require_address(name: str, v: int) -> int:
    if isinstance(v, bool) or not isinstance(v, int) or v < 0 or v > ADDRESS_MAX:
        raise ValueError(f"{name} must be a 160-bit int address, got {v!r}")
    return v


# ─────────────────────────────────────────────────────────────────────────────
# Frame
# ─────────────────────────────────────────────────────────────────────────────


class Frame:
    """Execution frame of one message; the primitive surface for contract code."""

    def __init__(self, host: "Host", msg: Message, gas: GasMeter) -> None:
        self.host = host
        self.msg = msg
        self.gas = gas
        self.returndata = b""

    # ---- context accessors ----

    @property
    def address(self) -> int:
        return self.msg.address

    @property
    def code_address(self) -> int:
        return self.msg.code_address

    @property
    def caller(self) -> int:
        return self.msg.caller

    @property
    def value(self) -> int:
        return self.msg.value

    @property
    def calldata(self) -> bytes:
        return self.msg.data

    @property
    def depth(self) -> int:
        return self.msg.depth

    @property
    def static(self) -> bool:
        return self.msg.static

    @property
    def gas_left(self) -> int:
        return self.gas.remaining

    def context(self) -> ExecutionContext:
        return ExecutionContext(
            address=self.address,
            code_address=self.code_address,
            caller=self.caller,
            value=self.value,
            calldata=self.calldata,
            gas_left=self.gas_left,
            depth=self.depth,
            static=self.static,
        )

    # ---- storage / hashing / logs ----

    def sload(self, slot: int) -> int:
        self.gas.consume(self.host.config.gas.sload)
        return self.host.journal.storage_get(self.address, slot & ((1 << 256) - 1))

    def sstore(self, slot: int, value: int) -> None:
        if self.static:
            raise StaticWriteViolation(data={"slot": hex(slot)})
        if value < 0 or value >> 256:
            raise ValueError("storage value must be a 256-bit word")
        self.gas.consume(self.host.config.gas.sstore)
        self.host.journal.storage_set(self.address, slot & ((1 << 256) - 1), value)

    def keccak256(self, data: bytes) -> bytes:
        words = max(1, (len(data) + 31) // 32)
        self.gas.consume(self.host.config.gas.keccak_word * words)
        return keccak256(data)

    def emit_log(self, topics: Sequence[bytes], data: bytes = b"") -> None:
        if self.static:
            raise StaticWriteViolation("log emitted in read-only call")
        if len(topics) > 4:
            raise ValueError("at most 4 log topics")
        self.gas.consume(self.host.config.gas.log)
        self.host.journal.emit_log(Log(self.address, tuple(bytes(t) for t in topics), bytes(data)))

    def balance(self, addr: int) -> int:
        acc = self.host.journal.get_account(addr)
        return acc.balance if acc is not None else 0

    # ---- message calls ----

    def call(self, to: int, data: bytes = b"", value: int = 0, gas: Optional[int] = None) -> Tuple[bool, bytes]:
        if value and self.static:
            raise StaticWriteViolation("value transfer in read-only call")
        return self.host._nested(self, CallKind.CALL, to, data, value=value, gas=gas)

    def delegatecall(self, to: int, data: bytes = b"", gas: Optional[int] = None) -> Tuple[bool, bytes]:
        return self.host._nested(self, CallKind.DELEGATECALL, to, data, gas=gas)

    def staticcall(self, to: int, data: bytes = b"", gas: Optional[int] = None) -> Tuple[bool, bytes]:
        return self.host._nested(self, CallKind.STATICCALL, to, data, gas=gas)

    def create(self, code: Code, value: int = 0) -> int:
        if self.static:
            raise StaticWriteViolation("create in read-only call")
        self.gas.consume(self.host.config.gas.create)
        self.returndata = b""
        journal = self.host.journal
        journal.begin()
        try:
            addr = self.host._create_account(self.address, code)
            if value:
                self.host._transfer(self.address, addr, value)
        except Revert:
            journal.revert()
            return 0
        except BaseException:
            journal.revert()
            raise
        journal.commit()
        return addr


# ─────────────────────────────────────────────────────────────────────────────
# Host
# ─────────────────────────────────────────────────────────────────────────────


class Host:
    def __init__(self, *, config: Optional[UcsConfig] = None, state: Optional[WorldState] = None) -> None:
        self.config = config or load_config()
        self.state = state or WorldState()
        self.journal = Journal(self.state)
        self._tx_seq = 0

    # ---- accounts / inspection ----

    def fund(self, addr: int, amount: int) -> None:
        _require_address("addr", addr)
        with self.journal.checkpoint():
            self.journal.account_for_write(addr).balance += int(amount)

    def balance_of(self, addr: int) -> int:
        acc = self.journal.get_account(addr)
        return acc.balance if acc is not None else 0

    def get_code(self, addr: int) -> Code:
        acc = self.journal.get_account(addr)
        return acc.code if acc is not None else b""

    def storage_at(self, addr: int, slot: int) -> int:
        return self.journal.storage_get(addr, slot)

    def logs(self) -> List[Log]:
        return list(self.state.logs)

    # ---- deployment ----

    def deploy(
        self,
        code: Code,
        *,
        sender: Optional[int] = None,
        init: Optional[bytes] = None,
        gas: Optional[int] = None,
    ) -> int:
        """
        Install `code` at a fresh address and optionally run `init` calldata
        against it from `sender`, atomically. A failing init raises its error
        and leaves no account behind.
        """
        creator = DEFAULT_DEPLOYER if sender is None else _require_address("sender", sender)
        meter = GasMeter(limit=gas or self.config.default_gas_limit)
        with self.journal.checkpoint():
            addr = self._create_account(creator, code)
            if init is not None:
                msg = Message(CallKind.CALL, creator, addr, addr, 0, bytes(init), 0, False)
                self._run_message(msg, meter)
        log.info("deployed", extra={"address": to_address_hex(addr), "program": _code_label(code)})
        return addr

    def _next_address(self, creator: int) -> int:
        acc = self.journal.account_for_write(creator)
        nonce = acc.nonce
        acc.nonce += 1
        digest = keccak256(creator.to_bytes(20, "big") + word_to_bytes(nonce))
        return int.from_bytes(digest[12:], "big")

    def _create_account(self, creator: int, code: Code) -> int:
        if not isinstance(code, (bytes, bytearray)) and not isinstance(code, Program):
            raise TypeError(f"code must be bytes or a Program, got {type(code).__name__}")
        addr = self._next_address(creator)
        existing = self.journal.get_account(addr)
        if existing is not None and (existing.has_code or existing.nonce):
            raise Revert("address collision", data={"address": to_address_hex(addr)})
        self.journal.create_account(addr, code=bytes(code) if isinstance(code, bytearray) else code)
        return addr

    def _transfer(self, src: int, dst: int, value: int) -> None:
        if value < 0:
            raise ValueError("negative value")
        if value == 0:
            return
        sender = self.journal.account_for_write(src)
        if sender.balance < value:
            raise Revert("insufficient balance", data={"balance": sender.balance, "value": value})
        sender.balance -= value
        self.journal.account_for_write(dst).balance += value

    # ---- transactions ----

    def transact(
        self,
        sender: int,
        to: int,
        data: bytes = b"",
        *,
        value: int = 0,
        gas: Optional[int] = None,
    ) -> CallResult:
        return self._top_level(sender, to, data, value=value, gas=gas, static=False)

    def static_query(
        self,
        to: int,
        data: bytes = b"",
        *,
        sender: int = 0,
        gas: Optional[int] = None,
    ) -> CallResult:
        """Read-only call; nothing it does can persist."""
        return self._top_level(sender, to, data, value=0, gas=gas, static=True)

    def _top_level(self, sender: int, to: int, data: bytes, *, value: int, gas: Optional[int], static: bool) -> CallResult:
        _require_address("sender", sender)
        _require_address("to", to)
        data = bytes(data)
        meter = GasMeter(limit=gas or self.config.default_gas_limit)
        msg = Message(CallKind.STATICCALL if static else CallKind.CALL, sender, to, to, value, data, 0, static)
        self._tx_seq += 1
        logs_before = len(self.state.logs)

        with ulog.trace_scope(tx=self._tx_seq):
            try:
                if len(data) > self.config.max_calldata_bytes:
                    raise DecodeError("calldata exceeds size limit", data={"size": len(data)})
                out = self._run_message(msg, meter)
            except Revert as e:
                if isinstance(e, OutOfGas):
                    meter.exhaust()
                log.warning(
                    "transaction reverted",
                    extra={"to": to_address_hex(to), "code": e.code, "reason": e.message},
                )
                return CallResult(False, e.return_data, meter.used, [], e)

        return CallResult(True, out, meter.used, self.state.logs[logs_before:])

    # ---- execution ----

    def _run_message(self, msg: Message, meter: GasMeter) -> bytes:
        if msg.depth > self.config.max_call_depth:
            raise CallDepthExceeded(data={"depth": msg.depth})
        if _stack_depth() + STACK_RESERVE > sys.getrecursionlimit():
            raise CallDepthExceeded("interpreter stack exhausted", data={"depth": msg.depth})
        try:
            return self._execute(msg, meter)
        except Revert:
            raise
        except _CONTRACT_FAULTS as e:
            log.debug("contract fault", extra={"contract": to_address_hex(msg.address), "exc": repr(e)})
            raise ExecutionFailed(str(e) or type(e).__name__, data={"exception": type(e).__name__}) from e

    def _execute(self, msg: Message, meter: GasMeter) -> bytes:
        with ulog.trace_scope(contract=to_address_hex(msg.address), depth=msg.depth):
            with self.journal.checkpoint():
                if msg.value and msg.kind is not CallKind.DELEGATECALL:
                    self._transfer(msg.caller, msg.address, msg.value)
                acc = self.journal.get_account(msg.code_address)
                code = acc.code if acc is not None else b""
                frame = Frame(self, msg, meter)
                if isinstance(code, (bytes, bytearray)):
                    if not code:
                        return b""
                    return Interpreter(frame, code).run()
                return code.run(frame)

    def _nested(
        self,
        parent: Frame,
        kind: CallKind,
        to: int,
        data: bytes,
        *,
        value: int = 0,
        gas: Optional[int] = None,
    ) -> Tuple[bool, bytes]:
        _require_address("to", to)
        parent.gas.consume(self.config.gas.call)
        child = GasMeter(limit=parent.gas.forwardable(gas))

        if kind is CallKind.DELEGATECALL:
            msg = Message(kind, parent.caller, parent.address, to, parent.value, bytes(data), parent.depth + 1, parent.static)
        elif kind is CallKind.STATICCALL:
            msg = Message(kind, parent.address, to, to, 0, bytes(data), parent.depth + 1, True)
        else:
            msg = Message(kind, parent.address, to, to, value, bytes(data), parent.depth + 1, parent.static)

        try:
            out = self._run_message(msg, child)
            ok = True
        except OutOfGas:
            child.exhaust()
            ok, out = False, b""
        except Revert as e:
            ok, out = False, e.return_data
        parent.gas.consume(child.used)
        parent.returndata = out
        return ok, out


def _stack_depth() -> int:
    frame = sys._getframe(1)
    n = 0
    while frame is not None:
        n += 1
        frame = frame.f_back
    return n


def _code_label(code: Code) -> str:
    if isinstance(code, (bytes, bytearray)):
        return f"bytecode[{len(code)}]"
    return type(code).__name__


__all__ = ["CallKind", "Message", "CallResult", "Frame", "Host", "DEFAULT_DEPLOYER"]
