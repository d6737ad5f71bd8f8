"""
Example implementation modules behind a proxy: an escrow with value and an
explicit phase machine, and a token with checked balances.
"""

from __future__ import annotations

import pytest

from ucs import deploy_dictionary, deploy_proxy, new_host
from ucs.abi import encode_call
from ucs.errors import InvalidTransition, NestedCallFailed, Unauthorized
from ucs.examples import Escrow, Phase, Token
from ucs.examples.escrow import PHASE
from ucs.examples.token import TOPIC_TRANSFER

from .conftest import ALICE, BOB, OWNER, STRANGER, register

AMOUNT = 250


@pytest.fixture
def escrow(host, send, dictionary, proxy) -> int:
    impl = host.deploy(Escrow())
    register(send, dictionary, impl, Escrow.selectors())
    host.fund(ALICE, 1_000)
    assert send(ALICE, proxy, "setup(address,address,uint256)", ALICE, BOB, AMOUNT).success
    return proxy


def _status(view, escrow) -> Phase:
    return Phase(view(escrow, "status()", returns=("uint8",)))


def test_escrow_release_flow(host, send, view, escrow) -> None:
    assert _status(view, escrow) is Phase.INIT

    assert not send(ALICE, escrow, "deposit()", value=AMOUNT - 1).success
    assert send(ALICE, escrow, "deposit()", value=AMOUNT).success
    assert host.balance_of(escrow) == AMOUNT
    assert _status(view, escrow) is Phase.FUNDED

    assert send(ALICE, escrow, "release()").success
    assert host.balance_of(BOB) == AMOUNT
    assert host.balance_of(escrow) == 0
    assert _status(view, escrow) is Phase.RELEASED
    assert host.storage_at(escrow, PHASE.slot) == Phase.RELEASED


def test_escrow_refund_flow(host, send, view, escrow) -> None:
    send(ALICE, escrow, "deposit()", value=AMOUNT)
    assert isinstance(send(ALICE, escrow, "refund()").error, NestedCallFailed)
    assert send(BOB, escrow, "refund()").success
    assert host.balance_of(ALICE) == 1_000
    assert _status(view, escrow) is Phase.REFUNDED


def test_escrow_rejects_invalid_transitions(send, view, escrow) -> None:
    # releasing before funding is not an edge of the phase table
    res = send(ALICE, escrow, "release()")
    assert isinstance(res.error, NestedCallFailed)
    assert _status(view, escrow) is Phase.INIT

    send(ALICE, escrow, "deposit()", value=AMOUNT)
    send(ALICE, escrow, "release()")
    # RELEASED is terminal
    res = send(BOB, escrow, "refund()")
    assert isinstance(res.error, NestedCallFailed)
    assert _status(view, escrow) is Phase.RELEASED


def test_escrow_invalid_transition_raised_directly(host, send) -> None:
    escrow = host.deploy(Escrow())
    send(ALICE, escrow, "setup(address,address,uint256)", ALICE, BOB, AMOUNT)
    res = send(ALICE, escrow, "release()")
    assert isinstance(res.error, InvalidTransition)
    assert res.error.data == {"from": "INIT", "to": "RELEASED"}


def test_escrow_setup_once(send, escrow) -> None:
    res = send(STRANGER, escrow, "setup(address,address,uint256)", STRANGER, STRANGER, 1)
    assert isinstance(res.error, NestedCallFailed)


def test_token_overdraft_leaves_balances(host, send, view) -> None:
    token = host.deploy(Token(), init=encode_call("setMinter(address)", ALICE))
    assert send(ALICE, token, "mint(address,uint256)", ALICE, 10).success

    res = send(ALICE, token, "transfer(address,uint256)", BOB, 11)
    assert res.error.code == "ARITHMETIC_UNDERFLOW"
    assert view(token, "balanceOf(address)", ALICE) == 10
    assert view(token, "balanceOf(address)", BOB) == 0


def test_token_mint_is_gated(host, send, view) -> None:
    token = host.deploy(Token(), init=encode_call("setMinter(address)", ALICE))
    res = send(BOB, token, "mint(address,uint256)", BOB, 10)
    assert isinstance(res.error, Unauthorized)
    assert view(token, "totalSupply()") == 0


def test_token_transfer_event(host, send) -> None:
    token = host.deploy(Token(), init=encode_call("setMinter(address)", ALICE))
    res = send(ALICE, token, "mint(address,uint256)", BOB, 3)
    (entry,) = res.logs
    assert entry.topics == (TOPIC_TRANSFER, (0).to_bytes(32, "big"), BOB.to_bytes(32, "big"))
    assert entry.data == (3).to_bytes(32, "big")


def test_package_helpers_wire_a_working_stack() -> None:
    host = new_host()
    dictionary = deploy_dictionary(host, OWNER)
    proxy = deploy_proxy(host, dictionary)
    token = host.deploy(Token())
    for sel in Token.selectors():
        res = host.transact(OWNER, dictionary, encode_call("setImplementation(bytes4,address)", sel, token))
        assert res.success
    assert host.transact(ALICE, proxy, encode_call("setMinter(address)", ALICE)).success
    assert host.transact(ALICE, proxy, encode_call("mint(address,uint256)", ALICE, 5)).success
    res = host.static_query(proxy, encode_call("balanceOf(address)", ALICE))
    assert int.from_bytes(res.return_data, "big") == 5
