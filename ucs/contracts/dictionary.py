"""
ucs.contracts.dictionary — selector → implementation registry.

Storage (fixed layout, slot 0 based):
    slot 0                owner: address
    slot 1                implementations: mapping(bytes4 => address)

External interface:
    getImplementation(bytes4) -> address       anyone; 0 if unset
    setImplementation(bytes4,address)          owner only; 0 unregisters
    batchSetImplementation(bytes4[],address[]) owner only; all or nothing
    transferOwnership(address)                 owner only
    initializeOwner(address)                   only while owner == 0
    owner() -> address

Events:
    OwnershipTransferred(address indexed previous, address indexed next)
    ImplementationUpgraded(bytes4 indexed selector, address indexed implementation)

When this code runs through direct delegation (a proxy delegating the whole
call here, so storage is the proxy's), a selector that is none of the above
is looked up in the stored mapping and delegated to the registered
implementation, mirroring its result.
"""

from __future__ import annotations

import logging
from typing import List

from ..abi.signature import event_topic, selector_hex
from ..abi.types import to_address_hex, to_word, word_to_bytes
from ..errors import (AlreadyInitialized, DecodeError, NoImplementation,
                      Unauthorized, UnknownSelector)
from ..runtime.dispatch import Call, Contract, external
from ..storage.schema import Mapping, Namespace, Schema, Value

log = logging.getLogger(__name__)

LAYOUT = Schema(
    Namespace.at(0, "erc7546.dictionary"),
    owner=Value("address"),
    implementations=Mapping("bytes4", "address"),
)
OWNER = LAYOUT.value("owner")
IMPLEMENTATIONS = LAYOUT.mapping("implementations")

TOPIC_OWNERSHIP_TRANSFERRED = event_topic("OwnershipTransferred(address,address)")
TOPIC_IMPLEMENTATION_UPGRADED = event_topic("ImplementationUpgraded(bytes4,address)")


def _require_owner(call: Call) -> int:
    owner = OWNER.get(call.cap)
    if call.caller != owner:
        raise Unauthorized(caller=call.caller, required=owner)
    return owner


def _set_implementation(call: Call, selector: bytes, implementation: int) -> None:
    IMPLEMENTATIONS.set(call.cap, selector, implementation)
    call.emit(
        [
            TOPIC_IMPLEMENTATION_UPGRADED,
            word_to_bytes(to_word("bytes4", selector)),
            word_to_bytes(implementation),
        ]
    )
    log.info(
        "implementation set",
        extra={"selector": selector_hex(selector), "implementation": to_address_hex(implementation)},
    )


def _set_owner(call: Call, previous: int, new_owner: int) -> None:
    OWNER.set(call.cap, new_owner)
    call.emit([TOPIC_OWNERSHIP_TRANSFERRED, word_to_bytes(previous), word_to_bytes(new_owner)])
    log.info("owner set", extra={"previous": to_address_hex(previous), "owner": to_address_hex(new_owner)})


class Dictionary(Contract):
    """Owner-gated selector registry (ERC-7546 dictionary)."""

    @external("getImplementation(bytes4)", returns=("address",))
    def get_implementation(self, call: Call, selector: bytes) -> int:
        return IMPLEMENTATIONS.get(call.cap, selector)

    @external("setImplementation(bytes4,address)")
    def set_implementation(self, call: Call, selector: bytes, implementation: int) -> None:
        _require_owner(call)
        _set_implementation(call, selector, implementation)

    @external("batchSetImplementation(bytes4[],address[])")
    def batch_set_implementation(self, call: Call, selectors: List[bytes], implementations: List[int]) -> None:
        if len(selectors) != len(implementations):
            raise DecodeError(
                "selector and implementation arrays differ in length",
                data={"selectors": len(selectors), "implementations": len(implementations)},
            )
        for selector, implementation in zip(selectors, implementations):
            _require_owner(call)
            _set_implementation(call, selector, implementation)

    @external("transferOwnership(address)")
    def transfer_ownership(self, call: Call, new_owner: int) -> None:
        previous = _require_owner(call)
        _set_owner(call, previous, new_owner)

    @external("initializeOwner(address)")
    def initialize_owner(self, call: Call, owner: int) -> None:
        if OWNER.get(call.cap) != 0:
            raise AlreadyInitialized(what="owner")
        _set_owner(call, 0, owner)

    @external("owner()", returns=("address",))
    def owner(self, call: Call) -> int:
        return OWNER.get(call.cap)

    def fallback(self, call: Call) -> bytes:
        if not call.ctx.is_delegated:
            raise UnknownSelector(selector=call.selector or None)
        selector = call.selector
        if len(selector) < 4:
            raise NoImplementation(selector=selector or None)
        implementation = IMPLEMENTATIONS.get(call.cap, selector)
        if implementation == 0:
            raise NoImplementation(selector=selector)
        log.debug(
            "direct delegation",
            extra={"selector": selector_hex(selector), "implementation": to_address_hex(implementation)},
        )
        return call.delegatecall(implementation, call.calldata)


__all__ = [
    "LAYOUT",
    "OWNER",
    "IMPLEMENTATIONS",
    "TOPIC_OWNERSHIP_TRANSFERRED",
    "TOPIC_IMPLEMENTATION_UPGRADED",
    "Dictionary",
]
