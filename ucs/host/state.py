"""
ucs.host.state — accounts, code and persistent word storage.

The world state is a plain in-memory model:

- accounts:  address(int, 160-bit) -> Account(nonce, balance, code)
- storage:   address -> {slot(int) -> word(int)}; a zero word means "absent"
- logs:      committed event log records, in emission order

Account code is either raw bytecode (`bytes`, run by the interpreter) or a
Program object: anything with a `run(frame) -> bytes` method, which is how
Python-native contracts (ucs.runtime.dispatch.Contract) are installed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union, runtime_checkable

from ..abi.types import to_address_hex


@runtime_checkable
class Program(Protocol):
    def run(self, frame: Any) -> bytes: ...


Code = Union[bytes, Program]


@dataclass
class Account:
    nonce: int = 0
    balance: int = 0
    code: Code = b""

    def copy(self) -> "Account":
        return Account(nonce=self.nonce, balance=self.balance, code=self.code)

    @property
    def has_code(self) -> bool:
        if isinstance(self.code, (bytes, bytearray)):
            return len(self.code) > 0
        return True


@dataclass(frozen=True)
class Log:
    address: int
    topics: Tuple[bytes, ...]
    data: bytes = b""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": to_address_hex(self.address),
            "topics": ["0x" + t.hex() for t in self.topics],
            "data": "0x" + self.data.hex(),
        }


@dataclass
class WorldState:
    accounts: Dict[int, Account] = field(default_factory=dict)
    storage: Dict[int, Dict[int, int]] = field(default_factory=dict)
    logs: List[Log] = field(default_factory=list)

    def get_account(self, addr: int) -> Optional[Account]:
        return self.accounts.get(addr)

    def storage_get(self, addr: int, slot: int) -> int:
        return self.storage.get(addr, {}).get(slot, 0)

    def storage_set(self, addr: int, slot: int, value: int) -> None:
        m = self.storage.setdefault(addr, {})
        if value == 0:
            m.pop(slot, None)
            if not m:
                self.storage.pop(addr, None)
        else:
            m[slot] = value


__all__ = ["Program", "Code", "Account", "Log", "WorldState"]
