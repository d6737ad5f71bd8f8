"""
ucs.host.interpreter — gas-first stack interpreter for raw bytecode accounts.

Design goals
------------
- Deterministic: no I/O, no time, no randomness.
- Gas is charged *before* each instruction (`step`), storage and nested-call
  costs are charged by the Frame primitives they call into.
- Small, explicit instruction set: just what forwarding stubs such as the
  45-byte minimal clone and small hand-assembled test programs need.

Supported opcodes
-----------------
    00 STOP          01 ADD          03 SUB          14 EQ          15 ISZERO
    33 CALLER        34 CALLVALUE    35 CALLDATALOAD 36 CALLDATASIZE
    37 CALLDATACOPY  3d RETURNDATASIZE              3e RETURNDATACOPY
    50 POP           51 MLOAD        52 MSTORE      54 SLOAD       55 SSTORE
    56 JUMP          57 JUMPI        5a GAS         5b JUMPDEST
    60..7f PUSH1..PUSH32             80..8f DUP1..DUP16   90..9f SWAP1..SWAP16
    f3 RETURN        f4 DELEGATECALL fa STATICCALL  fd REVERT

Anything else fails the frame.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Set

from ..errors import Revert

MASK = (1 << 256) - 1
STACK_LIMIT = 1024
MEMORY_LIMIT = 1 << 20

STOP, ADD, SUB, EQ, ISZERO = 0x00, 0x01, 0x03, 0x14, 0x15
CALLER, CALLVALUE, CALLDATALOAD, CALLDATASIZE, CALLDATACOPY = 0x33, 0x34, 0x35, 0x36, 0x37
RETURNDATASIZE, RETURNDATACOPY = 0x3D, 0x3E
POP, MLOAD, MSTORE, SLOAD, SSTORE = 0x50, 0x51, 0x52, 0x54, 0x55
JUMP, JUMPI, GAS, JUMPDEST = 0x56, 0x57, 0x5A, 0x5B
PUSH1, PUSH32, DUP1, DUP16, SWAP1, SWAP16 = 0x60, 0x7F, 0x80, 0x8F, 0x90, 0x9F
RETURN, DELEGATECALL, STATICCALL, REVERT = 0xF3, 0xF4, 0xFA, 0xFD


class InvalidCode(Revert):
    code_name = "INVALID_CODE"
    default_message = "invalid bytecode execution"


def jumpdests(code: bytes) -> Set[int]:
    """Valid JUMPDEST offsets (skipping PUSH immediates)."""
    out: Set[int] = set()
    pc = 0
    while pc < len(code):
        op = code[pc]
        if op == JUMPDEST:
            out.add(pc)
        if PUSH1 <= op <= PUSH32:
            pc += op - PUSH1 + 1
        pc += 1
    return out


class Interpreter:
    """
    Runs `code` inside `frame` (a ucs.host.engine.Frame) and returns the
    output bytes. REVERT raises Revert carrying the reverted bytes.
    """

    def __init__(self, frame, code: bytes) -> None:
        self.frame = frame
        self.code = bytes(code)
        self.stack: List[int] = []
        self.memory = bytearray()
        self.pc = 0
        self._jumpdests = jumpdests(self.code)
        self._ops: Dict[int, Callable[[], None]] = {
            ADD: lambda: self._push((self._pop() + self._pop()) & MASK),
            SUB: self._sub,
            EQ: lambda: self._push(1 if self._pop() == self._pop() else 0),
            ISZERO: lambda: self._push(1 if self._pop() == 0 else 0),
            CALLER: lambda: self._push(frame.caller),
            CALLVALUE: lambda: self._push(frame.value),
            CALLDATALOAD: self._calldataload,
            CALLDATASIZE: lambda: self._push(len(frame.calldata)),
            CALLDATACOPY: self._calldatacopy,
            RETURNDATASIZE: lambda: self._push(len(frame.returndata)),
            RETURNDATACOPY: self._returndatacopy,
            POP: self._pop,
            MLOAD: self._mload,
            MSTORE: self._mstore,
            SLOAD: lambda: self._push(frame.sload(self._pop())),
            SSTORE: self._sstore,
            GAS: lambda: self._push(frame.gas_left),
            JUMPDEST: lambda: None,
            DELEGATECALL: lambda: self._call(frame.delegatecall),
            STATICCALL: lambda: self._call(frame.staticcall),
        }

    # ---- stack / memory ----

    def _push(self, v: int) -> None:
        if len(self.stack) >= STACK_LIMIT:
            raise InvalidCode("stack overflow")
        self.stack.append(v & MASK)

    def _pop(self) -> int:
        if not self.stack:
            raise InvalidCode("stack underflow")
        return self.stack.pop()

    def _mem_extend(self, offset: int, size: int) -> None:
        if size == 0:
            return
        end = offset + size
        if end > MEMORY_LIMIT:
            raise InvalidCode("memory limit exceeded")
        if end > len(self.memory):
            self.memory.extend(b"\x00" * (end - len(self.memory)))

    def _mem_read(self, offset: int, size: int) -> bytes:
        self._mem_extend(offset, size)
        return bytes(self.memory[offset : offset + size])

    def _mem_write(self, offset: int, data: bytes) -> None:
        self._mem_extend(offset, len(data))
        self.memory[offset : offset + len(data)] = data

    # ---- ops ----

    def _sub(self) -> None:
        a = self._pop()
        b = self._pop()
        self._push((a - b) & MASK)

    def _calldataload(self) -> None:
        off = self._pop()
        cd = self.frame.calldata
        chunk = cd[off : off + 32] if off < len(cd) else b""
        self._push(int.from_bytes(chunk.ljust(32, b"\x00"), "big"))

    def _calldatacopy(self) -> None:
        dst, src, size = self._pop(), self._pop(), self._pop()
        self._mem_extend(dst, size)
        cd = self.frame.calldata
        chunk = cd[src : src + size] if src < len(cd) else b""
        self._mem_write(dst, chunk.ljust(size, b"\x00"))

    def _returndatacopy(self) -> None:
        dst, src, size = self._pop(), self._pop(), self._pop()
        rd = self.frame.returndata
        if src + size > len(rd):
            raise InvalidCode("return data out of bounds")
        self._mem_write(dst, rd[src : src + size])

    def _mload(self) -> None:
        self._push(int.from_bytes(self._mem_read(self._pop(), 32), "big"))

    def _mstore(self) -> None:
        off, val = self._pop(), self._pop()
        self._mem_write(off, val.to_bytes(32, "big"))

    def _sstore(self) -> None:
        slot, val = self._pop(), self._pop()
        self.frame.sstore(slot, val)

    def _call(self, primitive) -> None:
        gas, to = self._pop(), self._pop()
        in_off, in_size, out_off, out_size = self._pop(), self._pop(), self._pop(), self._pop()
        data = self._mem_read(in_off, in_size)
        ok, out = primitive(to & ((1 << 160) - 1), data, gas=min(gas, self.frame.gas_left))
        self._mem_write(out_off, out[:out_size])
        self._push(1 if ok else 0)

    def _jump_to(self, dest: int) -> None:
        if dest not in self._jumpdests:
            raise InvalidCode(f"bad jump destination {dest}")
        self.pc = dest

    # ---- main loop ----

    def run(self) -> bytes:
        code = self.code
        step = self.frame.host.config.gas.step
        while self.pc < len(code):
            op = code[self.pc]
            self.frame.gas.consume(step)
            self.pc += 1

            if op == STOP:
                return b""
            if PUSH1 <= op <= PUSH32:
                n = op - PUSH1 + 1
                self._push(int.from_bytes(code[self.pc : self.pc + n].ljust(n, b"\x00"), "big"))
                self.pc += n
            elif DUP1 <= op <= DUP16:
                k = op - DUP1 + 1
                if len(self.stack) < k:
                    raise InvalidCode("stack underflow")
                self._push(self.stack[-k])
            elif SWAP1 <= op <= SWAP16:
                k = op - SWAP1 + 1
                if len(self.stack) < k + 1:
                    raise InvalidCode("stack underflow")
                self.stack[-1], self.stack[-1 - k] = self.stack[-1 - k], self.stack[-1]
            elif op == JUMP:
                self._jump_to(self._pop())
            elif op == JUMPI:
                dest, cond = self._pop(), self._pop()
                if cond:
                    self._jump_to(dest)
            elif op == RETURN:
                off, size = self._pop(), self._pop()
                return self._mem_read(off, size)
            elif op == REVERT:
                off, size = self._pop(), self._pop()
                raise Revert("execution reverted", return_data=self._mem_read(off, size))
            else:
                handler = self._ops.get(op)
                if handler is None:
                    raise InvalidCode(f"unsupported opcode 0x{op:02x} at {self.pc - 1}")
                handler()
        return b""


__all__ = ["Interpreter", "InvalidCode", "jumpdests"]
