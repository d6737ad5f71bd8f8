"""
Proxy forwarding end to end: resolution through the Dictionary, storage in
the proxy, exact mirroring of success and failure, and proxy configuration.
"""

from __future__ import annotations

from ucs.abi import derive_selector, encode_call
from ucs.contracts import ForwardingStrategy, Proxy, dictionary_slot
from ucs.contracts.proxy import TOPIC_DICTIONARY_UPGRADED
from ucs.errors import (AlreadyInitialized, ArithmeticUnderflow,
                        NestedCallFailed, NoImplementation, Unauthorized)
from ucs.examples import Counter, Echo, Token
from ucs.examples.counter import NUMBER
from ucs.examples.token import BALANCES

from .conftest import ALICE, BOB, OWNER, STRANGER, register

ECHO_SEL = bytes.fromhex("11223344")
ECHO_REVERT_SEL = bytes.fromhex("ff000001")


def _token_behind(host, send, dictionary, proxy) -> int:
    token = host.deploy(Token())
    register(send, dictionary, token, Token.selectors())
    assert send(ALICE, proxy, "setMinter(address)", ALICE).success
    assert send(ALICE, proxy, "mint(address,uint256)", ALICE, 100).success
    return token


def test_transfer_through_proxy_writes_proxy_storage(host, send, view, dictionary, proxy) -> None:
    token = _token_behind(host, send, dictionary, proxy)

    calldata = encode_call("transfer(address,uint256)", BOB, 30)
    assert calldata[:4] == bytes.fromhex("a9059cbb")
    res = host.transact(ALICE, proxy, calldata)
    assert res.success, res.error
    assert res.return_data == (1).to_bytes(32, "big")

    assert host.storage_at(proxy, BALANCES.slot(BOB)) == 30
    assert host.storage_at(proxy, BALANCES.slot(ALICE)) == 70
    assert host.storage_at(token, BALANCES.slot(BOB)) == 0
    assert view(proxy, "balanceOf(address)", BOB) == 30
    assert view(proxy, "totalSupply()") == 100

    # the event is attributed to the proxy
    (entry,) = res.logs
    assert entry.address == proxy


def test_unregistered_selector_fails_with_empty_data(host, proxy) -> None:
    res = host.transact(ALICE, proxy, bytes.fromhex("deadbeef"))
    assert not res.success
    assert isinstance(res.error, NoImplementation)
    assert res.return_data == b""


def test_short_calldata_has_no_implementation(host, proxy) -> None:
    res = host.transact(ALICE, proxy, b"\x01\x02")
    assert isinstance(res.error, NoImplementation)


def test_unregistering_makes_selector_unavailable(host, send, dictionary, proxy) -> None:
    counter = host.deploy(Counter())
    register(send, dictionary, counter, Counter.selectors())
    assert send(ALICE, proxy, "increment()").success

    register(send, dictionary, 0, [derive_selector("increment()")])
    res = send(ALICE, proxy, "increment()")
    assert isinstance(res.error, NoImplementation)


def test_dictionary_updates_apply_on_next_call(host, send, dictionary, proxy) -> None:
    counter = host.deploy(Counter())
    echo = host.deploy(Echo())
    register(send, dictionary, counter, Counter.selectors())
    send(ALICE, proxy, "increment()")

    number = encode_call("number()")
    assert host.transact(ALICE, proxy, number).return_data == (1).to_bytes(32, "big")

    register(send, dictionary, echo, [number[:4]])
    assert host.transact(ALICE, proxy, number).return_data == number


def test_success_and_failure_are_mirrored_exactly(host, send, dictionary, proxy) -> None:
    echo = host.deploy(Echo())
    register(send, dictionary, echo, [ECHO_SEL, ECHO_REVERT_SEL])

    payload = ECHO_SEL + b"hello world"
    res = host.transact(ALICE, proxy, payload)
    assert res.success
    assert res.return_data == payload

    payload = ECHO_REVERT_SEL + b"\x00" * 40
    res = host.transact(ALICE, proxy, payload)
    assert not res.success
    assert isinstance(res.error, NestedCallFailed)
    assert res.return_data == payload


def test_failed_call_leaves_proxy_storage_untouched(host, send, dictionary, proxy) -> None:
    _token_behind(host, send, dictionary, proxy)
    res = send(BOB, proxy, "transfer(address,uint256)", ALICE, 1)
    assert not res.success
    assert res.logs == []
    assert host.storage_at(proxy, BALANCES.slot(ALICE)) == 100
    assert host.storage_at(proxy, BALANCES.slot(BOB)) == 0


def test_implementation_errors_surface_through_the_proxy(host, send, dictionary, proxy) -> None:
    _token_behind(host, send, dictionary, proxy)
    res = send(ALICE, proxy, "transfer(address,uint256)", BOB, 101)
    assert isinstance(res.error, NestedCallFailed)
    # the implementation's own failure had no return data
    assert res.return_data == b""

    token = host.deploy(Token())
    direct = send(ALICE, token, "transfer(address,uint256)", BOB, 1)
    assert isinstance(direct.error, ArithmeticUnderflow)


def test_dictionary_pointer_lives_in_namespaced_slot(host, dictionary, proxy) -> None:
    assert host.storage_at(proxy, dictionary_slot()) == dictionary
    assert dictionary_slot() % 256 == 0


def test_initialize_proxy_only_once(send, proxy) -> None:
    res = send(OWNER, proxy, "initializeProxy(address)", 0x1234)
    assert isinstance(res.error, AlreadyInitialized)


def test_uninitialized_proxy_cannot_forward(host) -> None:
    bare = host.deploy(Proxy())
    res = host.transact(ALICE, bare, encode_call("increment()"))
    assert isinstance(res.error, NoImplementation)
    res = host.transact(ALICE, bare, encode_call("setDictionary(address)", 0x1234))
    assert isinstance(res.error, Unauthorized)


def test_set_dictionary_requires_dictionary_owner(host, send, dictionary, proxy) -> None:
    res = send(STRANGER, proxy, "setDictionary(address)", 0x1234)
    assert isinstance(res.error, Unauthorized)
    assert host.storage_at(proxy, dictionary_slot()) == dictionary

    res = send(OWNER, proxy, "setDictionary(address)", 0x1234)
    assert res.success
    assert host.storage_at(proxy, dictionary_slot()) == 0x1234
    (entry,) = res.logs
    assert entry.topics == (TOPIC_DICTIONARY_UPGRADED, (0x1234).to_bytes(32, "big"))


def test_proxies_sharing_a_dictionary_keep_separate_storage(host, send, view, dictionary, proxy) -> None:
    counter = host.deploy(Counter())
    register(send, dictionary, counter, Counter.selectors())
    other = host.deploy(Proxy(), init=encode_call("initializeProxy(address)", dictionary))

    send(ALICE, proxy, "setNumber(uint256)", 5)
    send(ALICE, other, "increment()")
    assert view(proxy, "number()") == 5
    assert view(other, "number()") == 1
    assert host.storage_at(counter, NUMBER.slot) == 0


def test_direct_strategy_uses_mapping_in_proxy_storage(host, send, view, dictionary, direct_proxy) -> None:
    counter = host.deploy(Counter())
    # registration goes through the proxy, so the mapping lives in its storage
    register(send, direct_proxy, counter, Counter.selectors())

    assert send(ALICE, direct_proxy, "increment()").success
    assert view(direct_proxy, "number()") == 1
    assert host.storage_at(direct_proxy, NUMBER.slot) == 1
    assert view(dictionary, "getImplementation(bytes4)", derive_selector("increment()"), returns=("address",)) == 0

    res = host.transact(ALICE, direct_proxy, bytes.fromhex("deadbeef"))
    assert isinstance(res.error, NestedCallFailed)
    assert res.return_data == b""


def test_direct_strategy_owner_is_proxy_local(host, send, dictionary, direct_proxy) -> None:
    assert host.storage_at(direct_proxy, 0) == OWNER
    res = send(STRANGER, direct_proxy, "setImplementation(bytes4,address)", derive_selector("increment()"), 1)
    assert isinstance(res.error, NestedCallFailed)


def test_direct_strategy_repointing_is_authorized_by_the_local_owner(host, send, dictionary, direct_proxy) -> None:
    assert send(OWNER, direct_proxy, "transferOwnership(address)", BOB).success
    assert host.storage_at(direct_proxy, 0) == BOB

    # the shared dictionary is still owned by OWNER, which no longer counts here
    res = send(OWNER, direct_proxy, "setDictionary(address)", 0x1234)
    assert isinstance(res.error, Unauthorized)
    assert host.storage_at(direct_proxy, dictionary_slot()) == dictionary

    assert send(BOB, direct_proxy, "setDictionary(address)", 0x1234).success
    assert host.storage_at(direct_proxy, dictionary_slot()) == 0x1234


def test_proxy_registered_as_its_own_implementation_fails_cleanly(host, send, dictionary, proxy) -> None:
    register(send, dictionary, proxy, [derive_selector("increment()")])
    res = host.transact(ALICE, proxy, encode_call("increment()"))
    assert not res.success
    assert isinstance(res.error, NestedCallFailed)
    assert res.return_data == b""
    assert res.logs == []


def test_strategy_enum_accepts_strings() -> None:
    assert Proxy("direct").strategy is ForwardingStrategy.DIRECT
