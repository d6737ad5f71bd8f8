"""
ucs.storage.gateway — the single path to raw storage.

Every function takes a live StorageCapability as its first argument and
performs the engine get/set through the frame the capability was minted for.
Values are raw 256-bit words here; typed views live in ucs.storage.schema.

Primitives:   read, write, hash
Composites:   read_mapping / write_mapping, read_mapping2 / write_mapping2,
              array_length / array_get / array_set / array_push / array_pop

Failure modes:
  - expired capability              -> CapabilityError
  - write from a read-only frame    -> StaticWriteViolation
  - array index past the length     -> Revert (out of bounds)
"""

from __future__ import annotations

from typing import Any

from ..errors import CapabilityError, Revert, StaticWriteViolation
from ..runtime.dispatch import StorageCapability
from . import slots as _slots
from .slots import KeyType

__all__ = [
    "read",
    "write",
    "hash",
    "read_mapping",
    "write_mapping",
    "read_mapping2",
    "write_mapping2",
    "array_length",
    "array_get",
    "array_set",
    "array_push",
    "array_pop",
]


def _frame(cap: StorageCapability):
    if not isinstance(cap, StorageCapability):
        raise CapabilityError("a StorageCapability is required", data={"got": type(cap).__name__})
    return cap.frame


def _writable_frame(cap: StorageCapability):
    frame = _frame(cap)
    if frame.static:
        raise StaticWriteViolation()
    return frame


# ---- primitives -------------------------------------------------------------


def read(cap: StorageCapability, slot: int) -> int:
    return _frame(cap).sload(slot)


def write(cap: StorageCapability, slot: int, value: int) -> None:
    _writable_frame(cap).sstore(slot, value)


def hash(cap: StorageCapability, data: bytes) -> bytes:  # noqa: A001
    return _frame(cap).keccak256(bytes(data))


# ---- mappings ---------------------------------------------------------------


def read_mapping(cap: StorageCapability, base: int, key: Any, key_type: KeyType = None) -> int:
    return read(cap, _slots.mapping_slot(base, key, key_type))


def write_mapping(cap: StorageCapability, base: int, key: Any, value: int, key_type: KeyType = None) -> None:
    write(cap, _slots.mapping_slot(base, key, key_type), value)


def read_mapping2(
    cap: StorageCapability,
    base: int,
    key1: Any,
    key2: Any,
    key1_type: KeyType = None,
    key2_type: KeyType = None,
) -> int:
    return read(cap, _slots.nested_mapping_slot(base, key1, key2, key1_type, key2_type))


def write_mapping2(
    cap: StorageCapability,
    base: int,
    key1: Any,
    key2: Any,
    value: int,
    key1_type: KeyType = None,
    key2_type: KeyType = None,
) -> None:
    write(cap, _slots.nested_mapping_slot(base, key1, key2, key1_type, key2_type), value)


# ---- dynamic arrays ---------------------------------------------------------


def array_length(cap: StorageCapability, base: int) -> int:
    return read(cap, base)


def _checked_index(cap: StorageCapability, base: int, index: int) -> None:
    n = array_length(cap, base)
    if index < 0 or index >= n:
        raise Revert("array index out of bounds", data={"index": index, "length": n})


def array_get(cap: StorageCapability, base: int, index: int, elem_size: int = 1) -> int:
    _checked_index(cap, base, index)
    return read(cap, _slots.array_element_slot(base, index, elem_size))


def array_set(cap: StorageCapability, base: int, index: int, value: int, elem_size: int = 1) -> None:
    _checked_index(cap, base, index)
    write(cap, _slots.array_element_slot(base, index, elem_size), value)


def array_push(cap: StorageCapability, base: int, value: int, elem_size: int = 1) -> int:
    """Append `value`; returns the new length."""
    n = array_length(cap, base)
    write(cap, _slots.array_element_slot(base, n, elem_size), value)
    write(cap, base, n + 1)
    return n + 1


def array_pop(cap: StorageCapability, base: int, elem_size: int = 1) -> int:
    """Remove and return the last element, zeroing its slot."""
    n = array_length(cap, base)
    if n == 0:
        raise Revert("pop from empty array")
    slot = _slots.array_element_slot(base, n - 1, elem_size)
    value = read(cap, slot)
    write(cap, slot, 0)
    write(cap, base, n - 1)
    return value

