"""
ucs.contracts.proxy — storage-holding entry point that forwards every call.

Storage: a single field, the Dictionary address, at
`namespace_root(<proxy dictionary namespace>)` (UCS_PROXY_DICTIONARY_NAMESPACE,
default "erc7546.proxy.dictionary"), far from anything an implementation
declares.

Forwarding strategies
---------------------
RESOLVE (default)
    1. take the 4-byte selector from calldata
    2. read-only query `getImplementation(selector)` on the Dictionary
    3. zero -> NoImplementation (empty return data)
    4. delegatecall the implementation with the original calldata and mirror
       its success/failure and return data exactly
    Nothing is cached: every call resolves again, so dictionary updates take
    effect on the next call.
DIRECT
    delegatecall the whole call to the Dictionary's own code, which resolves
    against the mapping held in this proxy's storage.

Configuration entry points (handled by the proxy itself):
    initializeProxy(address)   once; AlreadyInitialized afterwards
    setDictionary(address)     RESOLVE: only the current Dictionary's owner()
                               DIRECT:  only the owner held in this proxy's
                                        own storage (the registry it runs)
Both emit DictionaryUpgraded(address indexed dictionary).
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from ..abi.decoding import decode_returns
from ..abi.encoding import encode_call
from ..abi.signature import event_topic, selector_hex
from ..abi.types import to_address_hex, word_to_bytes
from ..config import load_config
from ..errors import (AlreadyInitialized, NestedCallFailed, NoImplementation,
                      Unauthorized)
from ..runtime.dispatch import Call, Contract, external
from ..storage.schema import Schema, Value
from ..storage.slots import namespace_root
from .dictionary import OWNER as REGISTRY_OWNER

log = logging.getLogger(__name__)

TOPIC_DICTIONARY_UPGRADED = event_topic("DictionaryUpgraded(address)")

_GET_IMPLEMENTATION = "getImplementation(bytes4)"
_OWNER = "owner()"


class ForwardingStrategy(str, Enum):
    RESOLVE = "resolve"
    DIRECT = "direct"


def dictionary_slot(namespace: Optional[str] = None) -> int:
    """Slot holding a proxy's Dictionary address."""
    return namespace_root(namespace or load_config().proxy_dictionary_namespace)


class Proxy(Contract):
    """
    Proxy code. Instances carry only immutable configuration (strategy and
    storage namespace); the Dictionary pointer lives in the account's storage.
    """

    def __init__(
        self,
        strategy: ForwardingStrategy = ForwardingStrategy.RESOLVE,
        *,
        namespace: Optional[str] = None,
    ) -> None:
        self.strategy = ForwardingStrategy(strategy)
        self.layout = Schema(namespace or load_config().proxy_dictionary_namespace, dictionary=Value("address"))
        self._dictionary = self.layout.value("dictionary")

    # ---- configuration ----

    @external("initializeProxy(address)")
    def initialize_proxy(self, call: Call, dictionary: int) -> None:
        if self._dictionary.get(call.cap) != 0:
            raise AlreadyInitialized(what="dictionary")
        self._point_at(call, dictionary)

    @external("setDictionary(address)")
    def set_dictionary(self, call: Call, dictionary: int) -> None:
        current = self._dictionary.get(call.cap)
        if current == 0:
            raise Unauthorized("proxy has no dictionary", caller=call.caller)
        if self.strategy is ForwardingStrategy.DIRECT:
            owner = REGISTRY_OWNER.get(call.cap)
        else:
            owner = decode_returns(["address"], call.staticcall(current, encode_call(_OWNER)))
        if call.caller != owner:
            raise Unauthorized(caller=call.caller, required=owner)
        self._point_at(call, dictionary)

    def _point_at(self, call: Call, dictionary: int) -> None:
        self._dictionary.set(call.cap, dictionary)
        call.emit([TOPIC_DICTIONARY_UPGRADED, word_to_bytes(dictionary)])
        log.info("dictionary upgraded", extra={"proxy": to_address_hex(call.address), "dictionary": to_address_hex(dictionary)})

    # ---- forwarding ----

    def fallback(self, call: Call) -> bytes:
        selector = call.selector
        dictionary = self._dictionary.get(call.cap)
        if dictionary == 0:
            raise NoImplementation("proxy has no dictionary", selector=selector or None)

        if self.strategy is ForwardingStrategy.DIRECT:
            return self._mirror(call, dictionary)

        if len(selector) < 4:
            raise NoImplementation(selector=selector or None)
        implementation = self.resolve(call, dictionary, selector)
        if implementation == 0:
            raise NoImplementation(selector=selector)
        log.debug(
            "forwarding",
            extra={"selector": selector_hex(selector), "implementation": to_address_hex(implementation)},
        )
        return self._mirror(call, implementation)

    @staticmethod
    def resolve(call: Call, dictionary: int, selector: bytes) -> int:
        out = call.staticcall(dictionary, encode_call(_GET_IMPLEMENTATION, selector))
        return decode_returns(["address"], out)

    @staticmethod
    def _mirror(call: Call, target: int) -> bytes:
        ok, out = call.frame.delegatecall(target, call.calldata)
        if not ok:
            raise NestedCallFailed(target=target.to_bytes(20, "big"), return_data=out)
        return out


__all__ = ["ForwardingStrategy", "Proxy", "dictionary_slot", "TOPIC_DICTIONARY_UPGRADED"]
