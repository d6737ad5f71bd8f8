"""
ucs.contracts.clone — 45-byte minimal clones.

Runtime layout (bytes):
    [0:10]   363d3d373d3d3d363d73     copy calldata, set up DELEGATECALL, PUSH20
    [10:30]  <target address>
    [30:32]  5af4                     GAS, DELEGATECALL
    [32:45]  3d82803e903d91602b57fd5bf3
                                      copy return data; REVERT or RETURN it

The blob is assembled as two 32-byte words, exactly as a factory would
MSTORE them before calling `create(offset, 45)`:
    word0 = prefix || target || mid
    word1 = suffix || 0x00 * 19

Invoking a clone delegates the whole call to the target and mirrors its
outcome, so one shared Dictionary (or any implementation) can back many
cheap proxies whose storage stays separate.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from ..abi.signature import event_topic
from ..abi.types import coerce_address, to_address_hex, word_to_bytes
from ..errors import Revert
from ..runtime.dispatch import Call, Contract, external

log = logging.getLogger(__name__)

CLONE_PREFIX = bytes.fromhex("363d3d373d3d3d363d73")
CLONE_MID = bytes.fromhex("5af4")
CLONE_SUFFIX = bytes.fromhex("3d82803e903d91602b57fd5bf3")
CLONE_SIZE = len(CLONE_PREFIX) + 20 + len(CLONE_MID) + len(CLONE_SUFFIX)

TOPIC_CLONE_CREATED = event_topic("CloneCreated(address,address)")


def clone_words(target: int) -> Tuple[int, int]:
    target = coerce_address(target)
    word0 = CLONE_PREFIX + target.to_bytes(20, "big") + CLONE_MID
    word1 = CLONE_SUFFIX.ljust(32, b"\x00")
    return int.from_bytes(word0, "big"), int.from_bytes(word1, "big")


def minimal_clone_code(target: int) -> bytes:
    """45-byte runtime code forwarding every call to `target`."""
    word0, word1 = clone_words(target)
    memory = bytearray(64)
    memory[0:32] = word_to_bytes(word0)
    memory[32:64] = word_to_bytes(word1)
    return bytes(memory[:CLONE_SIZE])


def clone_target(code: bytes) -> Optional[int]:
    """Target address embedded in `code`, or None if it is not a minimal clone."""
    if not isinstance(code, (bytes, bytearray)) or len(code) != CLONE_SIZE:
        return None
    code = bytes(code)
    if code[:10] != CLONE_PREFIX or code[30:32] != CLONE_MID or code[32:] != CLONE_SUFFIX:
        return None
    return int.from_bytes(code[10:30], "big")


def create_minimal_proxy(frame, target: int) -> int:
    """Create a clone of `target` from inside `frame`; returns its address."""
    code = minimal_clone_code(target)
    addr = frame.create(code)
    if addr == 0:
        raise Revert("clone creation failed", data={"target": to_address_hex(target)})
    log.info("clone created", extra={"clone": to_address_hex(addr), "target": to_address_hex(target)})
    return addr


class CloneFactory(Contract):
    """Deploys minimal clones on request."""

    @external("createMinimalProxy(address)", returns=("address",))
    def create_minimal_proxy(self, call: Call, target: int) -> int:
        addr = create_minimal_proxy(call.frame, target)
        call.emit([TOPIC_CLONE_CREATED, word_to_bytes(target), word_to_bytes(addr)])
        return addr


__all__ = [
    "CLONE_PREFIX",
    "CLONE_MID",
    "CLONE_SUFFIX",
    "CLONE_SIZE",
    "clone_words",
    "minimal_clone_code",
    "clone_target",
    "create_minimal_proxy",
    "CloneFactory",
]
