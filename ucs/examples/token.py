"""
Minimal fungible token implementation module (example).

Namespace "token.v1":
    total_supply   uint256
    balances       mapping(address => uint256)
    minter         address

    setMinter(address)               once
    mint(address,uint256)            minter only
    transfer(address,uint256) -> bool
    balanceOf(address) -> uint256
    totalSupply() -> uint256

All arithmetic is checked; an overdraft fails with ArithmeticUnderflow and
leaves balances untouched.
"""

from __future__ import annotations

from ..abi.encoding import encode_word
from ..abi.signature import event_topic
from ..abi.types import word_to_bytes
from ..errors import AlreadyInitialized, Unauthorized
from ..runtime import checked
from ..runtime.dispatch import Call, Contract, external
from ..storage.schema import Mapping, Schema, Value

LAYOUT = Schema(
    "token.v1",
    total_supply=Value("uint256"),
    balances=Mapping("address", "uint256"),
    minter=Value("address"),
)
TOTAL_SUPPLY = LAYOUT.value("total_supply")
BALANCES = LAYOUT.mapping("balances")
MINTER = LAYOUT.value("minter")

TOPIC_TRANSFER = event_topic("Transfer(address,address,uint256)")


def _emit_transfer(call: Call, src: int, dst: int, amount: int) -> None:
    call.emit([TOPIC_TRANSFER, word_to_bytes(src), word_to_bytes(dst)], encode_word("uint256", amount))


class Token(Contract):
    @external("setMinter(address)")
    def set_minter(self, call: Call, minter: int) -> None:
        if MINTER.get(call.cap) != 0:
            raise AlreadyInitialized(what="minter")
        MINTER.set(call.cap, minter)

    @external("mint(address,uint256)", selector=0x40C10F19)
    def mint(self, call: Call, to: int, amount: int) -> None:
        minter = MINTER.get(call.cap)
        if call.caller != minter or minter == 0:
            raise Unauthorized(caller=call.caller, required=minter)
        TOTAL_SUPPLY.set(call.cap, checked.add(TOTAL_SUPPLY.get(call.cap), amount))
        BALANCES.set(call.cap, to, checked.add(BALANCES.get(call.cap, to), amount))
        _emit_transfer(call, 0, to, amount)

    @external("transfer(address,uint256)", returns=("bool",), selector=0xA9059CBB)
    def transfer(self, call: Call, to: int, amount: int) -> bool:
        src = call.caller
        BALANCES.set(call.cap, src, checked.sub(BALANCES.get(call.cap, src), amount))
        BALANCES.set(call.cap, to, checked.add(BALANCES.get(call.cap, to), amount))
        _emit_transfer(call, src, to, amount)
        return True

    @external("balanceOf(address)", returns=("uint256",), selector=0x70A08231)
    def balance_of(self, call: Call, owner: int) -> int:
        return BALANCES.get(call.cap, owner)

    @external("totalSupply()", returns=("uint256",), selector=0x18160DDD)
    def total_supply(self, call: Call) -> int:
        return TOTAL_SUPPLY.get(call.cap)
