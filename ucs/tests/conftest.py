"""
ucs.tests.conftest
==================

Shared fixtures: a fresh in-process host per test, well-known accounts, a
Dictionary owned by OWNER and a Proxy pointing at it, plus small helpers for
sending encoded calls and running read-only queries.

    def test_flow(host, proxy, send, view):
        res = send(ALICE, proxy, "increment()")
        assert res.success
        assert view(proxy, "number()") == 1
"""

from __future__ import annotations

import os
from typing import Any, Callable, Sequence

import pytest

os.environ.setdefault("PYTHONHASHSEED", "0")
os.environ.setdefault("TZ", "UTC")

from ucs.abi import decode_returns, encode_call  # noqa: E402
from ucs.contracts import Dictionary, ForwardingStrategy, Proxy  # noqa: E402
from ucs.host import CallResult, Host  # noqa: E402

OWNER = 0x00000000000000000000000000000000000000A1
ALICE = 0x00000000000000000000000000000000000000A2
BOB = 0x00000000000000000000000000000000000000A3
STRANGER = 0x0000000000000000000000000000000000000BAD


@pytest.fixture
def host() -> Host:
    return Host()


@pytest.fixture
def send(host: Host) -> Callable[..., CallResult]:
    def _send(sender: int, to: int, signature: str, *args: Any, value: int = 0, gas: int | None = None) -> CallResult:
        return host.transact(sender, to, encode_call(signature, *args), value=value, gas=gas)

    return _send


@pytest.fixture
def view(host: Host) -> Callable[..., Any]:
    def _view(to: int, signature: str, *args: Any, returns: Sequence[str] = ("uint256",)) -> Any:
        res = host.static_query(to, encode_call(signature, *args))
        assert res.success, res.error
        return decode_returns(returns, res.return_data)

    return _view


@pytest.fixture
def dictionary(host: Host) -> int:
    return host.deploy(Dictionary(), init=encode_call("initializeOwner(address)", OWNER))


@pytest.fixture
def proxy(host: Host, dictionary: int) -> int:
    return host.deploy(Proxy(), init=encode_call("initializeProxy(address)", dictionary))


@pytest.fixture
def direct_proxy(host: Host, dictionary: int) -> int:
    """Proxy delegating whole calls to the Dictionary code (own mapping in its storage)."""
    addr = host.deploy(
        Proxy(ForwardingStrategy.DIRECT),
        init=encode_call("initializeProxy(address)", dictionary),
    )
    res = host.transact(OWNER, addr, encode_call("initializeOwner(address)", OWNER))
    assert res.success, res.error
    return addr


def register(send: Callable[..., CallResult], dictionary: int, implementation: int, selectors: Sequence[bytes]) -> None:
    for sel in selectors:
        res = send(OWNER, dictionary, "setImplementation(bytes4,address)", sel, implementation)
        assert res.success, res.error

