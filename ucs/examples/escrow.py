"""
Simple escrow implementation module (example).

- setup(address depositor, address beneficiary, uint256 amount)
    One-time initializer; stores the parties and the required amount.
- deposit()
    Depositor attaches exactly `amount`; INIT -> FUNDED.
- release()
    Depositor pays the beneficiary; FUNDED -> RELEASED.
- refund()
    Beneficiary returns the funds to the depositor; FUNDED -> REFUNDED.
- status() -> uint8
    Current phase tag.

Phase changes go through an explicit transition table; anything else fails
with InvalidTransition. Funds are held by the account whose storage the code
runs against (the proxy, when reached through one).
"""

from __future__ import annotations

from enum import IntEnum

from ..errors import AlreadyInitialized, Revert, Unauthorized
from ..runtime.dispatch import Call, Contract, external
from ..runtime.fsm import StateMachine
from ..storage.schema import Schema, Value


class Phase(IntEnum):
    INIT = 0
    FUNDED = 1
    RELEASED = 2
    REFUNDED = 3


PHASES = StateMachine(
    Phase,
    {
        Phase.INIT: {Phase.FUNDED},
        Phase.FUNDED: {Phase.RELEASED, Phase.REFUNDED},
    },
)

LAYOUT = Schema(
    "escrow.v1",
    phase=Value("uint8"),
    depositor=Value("address"),
    beneficiary=Value("address"),
    amount=Value("uint256"),
)
PHASE = LAYOUT.value("phase")
DEPOSITOR = LAYOUT.value("depositor")
BENEFICIARY = LAYOUT.value("beneficiary")
AMOUNT = LAYOUT.value("amount")


def _advance(call: Call, target: Phase) -> None:
    PHASE.set(call.cap, PHASES.transition(PHASE.get(call.cap), target))


def _only(call: Call, who: int) -> None:
    if call.caller != who:
        raise Unauthorized(caller=call.caller, required=who)


class Escrow(Contract):
    @external("setup(address,address,uint256)")
    def setup(self, call: Call, depositor: int, beneficiary: int, amount: int) -> None:
        if AMOUNT.get(call.cap) != 0:
            raise AlreadyInitialized(what="escrow")
        if depositor == 0 or beneficiary == 0 or amount == 0:
            raise Revert("escrow: bad parameters")
        DEPOSITOR.set(call.cap, depositor)
        BENEFICIARY.set(call.cap, beneficiary)
        AMOUNT.set(call.cap, amount)

    @external("deposit()")
    def deposit(self, call: Call) -> None:
        _only(call, DEPOSITOR.get(call.cap))
        if call.value != AMOUNT.get(call.cap):
            raise Revert("escrow: wrong deposit", data={"value": call.value})
        _advance(call, Phase.FUNDED)

    @external("release()")
    def release(self, call: Call) -> None:
        _only(call, DEPOSITOR.get(call.cap))
        _advance(call, Phase.RELEASED)
        call.call(BENEFICIARY.get(call.cap), b"", value=AMOUNT.get(call.cap))

    @external("refund()")
    def refund(self, call: Call) -> None:
        _only(call, BENEFICIARY.get(call.cap))
        _advance(call, Phase.REFUNDED)
        call.call(DEPOSITOR.get(call.cap), b"", value=AMOUNT.get(call.cap))

    @external("status()", returns=("uint8",))
    def status(self, call: Call) -> int:
        return PHASE.get(call.cap)
