"""
Dictionary: owner-gated registration, ownership, events and the all-or-nothing
batch update.
"""

from __future__ import annotations

import pytest

from ucs.abi import derive_selector, encode_call
from ucs.contracts import Dictionary
from ucs.contracts.dictionary import (IMPLEMENTATIONS, OWNER as OWNER_FIELD,
                                      TOPIC_IMPLEMENTATION_UPGRADED,
                                      TOPIC_OWNERSHIP_TRANSFERRED)
from ucs.errors import (AlreadyInitialized, DecodeError, OutOfGas,
                        Unauthorized, UnknownSelector)

from .conftest import ALICE, OWNER, STRANGER

TRANSFER = derive_selector("transfer(address,uint256)")
BALANCE_OF = derive_selector("balanceOf(address)")
IMPL = 0xC0FFEE
IMPL2 = 0xBEEF


def _impl(view, dictionary, selector) -> int:
    return view(dictionary, "getImplementation(bytes4)", selector, returns=("address",))


def test_unset_selector_resolves_to_zero(view, dictionary) -> None:
    assert _impl(view, dictionary, TRANSFER) == 0


def test_owner_registers_and_unregisters(host, send, view, dictionary) -> None:
    assert send(OWNER, dictionary, "setImplementation(bytes4,address)", TRANSFER, IMPL).success
    assert _impl(view, dictionary, TRANSFER) == IMPL
    assert host.storage_at(dictionary, IMPLEMENTATIONS.slot(TRANSFER)) == IMPL

    assert send(OWNER, dictionary, "setImplementation(bytes4,address)", TRANSFER, 0).success
    assert _impl(view, dictionary, TRANSFER) == 0


def test_non_owner_cannot_register(send, view, dictionary) -> None:
    res = send(STRANGER, dictionary, "setImplementation(bytes4,address)", TRANSFER, IMPL)
    assert not res.success
    assert isinstance(res.error, Unauthorized)
    assert res.return_data == b""
    assert _impl(view, dictionary, TRANSFER) == 0


def test_owner_is_stored_at_slot_zero(host, view, dictionary) -> None:
    assert host.storage_at(dictionary, 0) == OWNER
    assert OWNER_FIELD.slot == 0
    assert view(dictionary, "owner()", returns=("address",)) == OWNER


def test_initialize_owner_only_once(send, view, dictionary) -> None:
    res = send(STRANGER, dictionary, "initializeOwner(address)", STRANGER)
    assert isinstance(res.error, AlreadyInitialized)
    assert view(dictionary, "owner()", returns=("address",)) == OWNER


def test_transfer_ownership(send, view, dictionary) -> None:
    assert not send(ALICE, dictionary, "transferOwnership(address)", ALICE).success
    res = send(OWNER, dictionary, "transferOwnership(address)", ALICE)
    assert res.success
    assert view(dictionary, "owner()", returns=("address",)) == ALICE

    # previous owner lost its rights
    assert not send(OWNER, dictionary, "setImplementation(bytes4,address)", TRANSFER, IMPL).success
    assert send(ALICE, dictionary, "setImplementation(bytes4,address)", TRANSFER, IMPL).success


def test_events(send, dictionary) -> None:
    res = send(OWNER, dictionary, "setImplementation(bytes4,address)", TRANSFER, IMPL)
    (entry,) = res.logs
    assert entry.address == dictionary
    assert entry.topics[0] == TOPIC_IMPLEMENTATION_UPGRADED
    assert entry.topics[1] == TRANSFER.ljust(32, b"\x00")
    assert int.from_bytes(entry.topics[2], "big") == IMPL

    res = send(OWNER, dictionary, "transferOwnership(address)", ALICE)
    (entry,) = res.logs
    assert entry.topics[0] == TOPIC_OWNERSHIP_TRANSFERRED
    assert int.from_bytes(entry.topics[1], "big") == OWNER
    assert int.from_bytes(entry.topics[2], "big") == ALICE


def test_initialization_emits_ownership_event(host) -> None:
    addr = host.deploy(Dictionary(), init=encode_call("initializeOwner(address)", OWNER))
    entry = host.logs()[-1]
    assert entry.address == addr
    assert entry.topics == (
        TOPIC_OWNERSHIP_TRANSFERRED,
        (0).to_bytes(32, "big"),
        OWNER.to_bytes(32, "big"),
    )


def test_batch_registration(send, view, dictionary) -> None:
    res = send(OWNER, dictionary, "batchSetImplementation(bytes4[],address[])", [TRANSFER, BALANCE_OF], [IMPL, IMPL2])
    assert res.success
    assert len(res.logs) == 2
    assert _impl(view, dictionary, TRANSFER) == IMPL
    assert _impl(view, dictionary, BALANCE_OF) == IMPL2


def test_batch_length_mismatch(send, view, dictionary) -> None:
    res = send(OWNER, dictionary, "batchSetImplementation(bytes4[],address[])", [TRANSFER, BALANCE_OF], [IMPL])
    assert isinstance(res.error, DecodeError)
    assert _impl(view, dictionary, TRANSFER) == 0


def test_batch_is_all_or_nothing(send, view, dictionary) -> None:
    selectors = [derive_selector(f"f{i}()") for i in range(8)]
    res = send(
        OWNER,
        dictionary,
        "batchSetImplementation(bytes4[],address[])",
        selectors,
        [IMPL] * len(selectors),
        gas=20_000,
    )
    assert not res.success
    assert isinstance(res.error, OutOfGas)
    assert res.gas_used == 20_000
    for sel in selectors:
        assert _impl(view, dictionary, sel) == 0


def test_batch_by_non_owner(send, view, dictionary) -> None:
    res = send(STRANGER, dictionary, "batchSetImplementation(bytes4[],address[])", [TRANSFER], [IMPL])
    assert isinstance(res.error, Unauthorized)
    assert _impl(view, dictionary, TRANSFER) == 0


def test_unknown_selector_on_direct_call(host, dictionary) -> None:
    res = host.transact(ALICE, dictionary, bytes.fromhex("deadbeef"))
    assert isinstance(res.error, UnknownSelector)
    assert res.return_data == b""


@pytest.mark.parametrize("owner", [0, STRANGER])
def test_fresh_dictionary_accepts_any_initial_owner(host, view, owner) -> None:
    addr = host.deploy(Dictionary(), init=encode_call("initializeOwner(address)", owner))
    assert view(addr, "owner()", returns=("address",)) == owner
