"""
Counter implementation module (example).

Storage lives in the "counter.v1" namespace, so the same code can sit behind
any number of proxies or clones without touching their forwarding slots.

    increment()          number += 1 (checked)
    number() -> uint256
    setNumber(uint256)
"""

from __future__ import annotations

from ..runtime import checked
from ..runtime.dispatch import Call, Contract, external
from ..storage.schema import Schema, Value

LAYOUT = Schema("counter.v1", number=Value("uint256"))
NUMBER = LAYOUT.value("number")


class Counter(Contract):
    @external("increment()", selector=0xD09DE08A)
    def increment(self, call: Call) -> None:
        NUMBER.set(call.cap, checked.add(NUMBER.get(call.cap), 1))

    @external("number()", returns=("uint256",), selector=0x8381F58A)
    def number(self, call: Call) -> int:
        return NUMBER.get(call.cap)

    @external("setNumber(uint256)", selector=0x3FB5C1CB)
    def set_number(self, call: Call, value: int) -> None:
        NUMBER.set(call.cap, value)
