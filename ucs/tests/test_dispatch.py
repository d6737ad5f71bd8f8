"""
Selector dispatch: table order, fallbacks, short calldata and the
class-level selector checks.
"""

from __future__ import annotations

from typing import List

import pytest

from ucs.abi import derive_selector, encode_call
from ucs.errors import DecodeError, UcsError, UnknownSelector
from ucs.runtime.dispatch import Call, Contract, Handler, dispatch, external

from .conftest import ALICE, BOB


def _table(log: List[str]) -> List[Handler]:
    sel = derive_selector("ping()")
    return [
        Handler(sel, lambda: log.append("first") or b"1", "first"),
        Handler(sel, lambda: log.append("second") or b"2", "second"),
        Handler(derive_selector("pong()"), lambda: b"pong", "pong"),
    ]


def test_first_matching_entry_wins() -> None:
    calls: List[str] = []
    assert dispatch(_table(calls), encode_call("ping()")) == b"1"
    assert calls == ["first"]


def test_no_match_fails_with_empty_data() -> None:
    with pytest.raises(UnknownSelector) as ei:
        dispatch(_table([]), bytes.fromhex("deadbeef"))
    assert ei.value.return_data == b""


def test_no_match_runs_fallback() -> None:
    assert dispatch(_table([]), bytes.fromhex("deadbeef"), fallback=lambda: b"fb") == b"fb"


@pytest.mark.parametrize("data", [b"", b"\x01", b"\x01\x02\x03"])
def test_short_calldata_never_matches(data: bytes) -> None:
    with pytest.raises(UnknownSelector):
        dispatch(_table([]), data)


class Adder(Contract):
    @external("add(uint256,uint256)", returns=("uint256",))
    def add(self, call: Call, a: int, b: int) -> int:
        return a + b

    @external("order(address,uint256,bool)", returns=("address", "uint256", "bool"))
    def order(self, call: Call, who: int, n: int, flag: bool):
        return (who, n, flag)

    @external("sender()", returns=("address",))
    def sender(self, call: Call) -> int:
        return call.caller

    @external("raw()", raw=True)
    def raw(self, call: Call) -> bytes:
        return b"\x01\x02"


class Child(Adder):
    @external("sub(uint256,uint256)", returns=("uint256",))
    def sub(self, call: Call, a: int, b: int) -> int:
        return a - b


def test_contract_dispatch_decodes_and_encodes(host, view) -> None:
    addr = host.deploy(Adder())
    assert view(addr, "add(uint256,uint256)", 2, 40) == 42
    assert view(addr, "order(address,uint256,bool)", BOB, 5, True, returns=("address", "uint256", "bool")) == (
        BOB,
        5,
        True,
    )


def test_handler_sees_caller(host) -> None:
    addr = host.deploy(Adder())
    res = host.transact(ALICE, addr, encode_call("sender()"))
    assert int.from_bytes(res.return_data, "big") == ALICE


def test_raw_handlers_return_bytes_verbatim(host) -> None:
    addr = host.deploy(Adder())
    assert host.transact(ALICE, addr, encode_call("raw()")).return_data == b"\x01\x02"


def test_unknown_selector_on_contract(host) -> None:
    addr = host.deploy(Adder())
    res = host.transact(ALICE, addr, bytes.fromhex("deadbeef"))
    assert not res.success
    assert isinstance(res.error, UnknownSelector)
    assert res.return_data == b""


def test_truncated_arguments_fail_decoding(host) -> None:
    addr = host.deploy(Adder())
    res = host.transact(ALICE, addr, encode_call("add(uint256,uint256)", 1, 2)[:-8])
    assert not res.success
    assert isinstance(res.error, DecodeError)


def test_externals_are_inherited() -> None:
    assert set(Adder.selectors()) < set(Child.selectors())
    assert derive_selector("sub(uint256,uint256)") in Child.selectors()


def test_selector_clash_rejected_at_class_definition() -> None:
    # 0x23b872dd is shared by these two signatures
    with pytest.raises(UcsError) as ei:

        class Clash(Contract):
            @external("transferFrom(address,address,uint256)")
            def a(self, call, x, y, z):  # pragma: no cover
                return None

            @external("gasprice_bit_ether(int128)")
            def b(self, call, x):  # pragma: no cover
                return None

    assert ei.value.code == "SELECTOR_CLASH"


class Versioned(Contract):
    @external("version()", returns=("uint256",))
    def version(self, call: Call) -> int:
        return 1


class Upgraded(Versioned):
    @external("version()", returns=("uint256",))
    def version_v2(self, call: Call) -> int:
        return 2


def test_redeclared_signature_replaces_the_inherited_entry(host, view) -> None:
    assert [s.attr for s in Upgraded.externals()] == ["version_v2"]
    assert Upgraded.selectors() == Versioned.selectors()
    assert view(host.deploy(Upgraded()), "version()") == 2
    assert view(host.deploy(Versioned()), "version()") == 1


def test_plain_override_withdraws_the_external() -> None:
    class Hidden(Versioned):
        def version(self, call: Call) -> int:  # pragma: no cover
            return 0

    assert Hidden.externals() == ()


def test_same_signature_twice_in_one_class_is_a_clash() -> None:
    with pytest.raises(UcsError) as ei:

        class Twice(Contract):
            @external("ping()")
            def a(self, call):  # pragma: no cover
                return None

            @external("ping()")
            def b(self, call):  # pragma: no cover
                return None

    assert ei.value.code == "SELECTOR_CLASH"
