"""
ucs.storage.slots — pure storage-slot derivation.

All functions operate on unsigned 256-bit integers; H is Keccak-256.

    namespace_root(id)                = H(uint256(H(id)) - 1) & ~0xFF
    mapping_slot(base, key)           = H(key32 || base32)
    nested_mapping_slot(base, k1, k2) = mapping_slot(mapping_slot(base, k1), k2)
    array_element_slot(base, i, size) = H(base32) + i * size      (mod 2**256)
    struct_field_slot(base, offset)   = base + offset             (mod 2**256)

The array length lives at `base` itself. Namespace roots have their low byte
cleared so that up to 256 consecutive field slots (`root + 0 .. root + 255`)
stay inside the namespace without reaching another root.

Nothing here touches storage; reads and writes go through ucs.storage.gateway.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Optional, Union

from ..abi.types import U256_MAX, AbiType, encode_key, word_to_bytes
from ..hash_api import keccak256, keccak256_int

__all__ = [
    "SLOT_MOD",
    "NAMESPACE_CAPACITY",
    "namespace_root",
    "mapping_slot",
    "nested_mapping_slot",
    "array_data_slot",
    "array_element_slot",
    "struct_field_slot",
    "slot_hex",
]

SLOT_MOD = 1 << 256
NAMESPACE_CAPACITY = 256
_LOW_BYTE_MASK = U256_MAX ^ 0xFF

KeyType = Optional[Union[str, AbiType]]


def _require_slot(v: int, name: str) -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise TypeError(f"{name} must be int, got {type(v).__name__}")
    if v < 0 or v > U256_MAX:
        raise ValueError(f"{name} out of 256-bit range")
    return v


@lru_cache(maxsize=512)
def namespace_root(namespace_id: str) -> int:
    """ERC-7201 style root for a namespace id (UTF-8)."""
    if not isinstance(namespace_id, str):
        raise TypeError("namespace id must be str")
    inner = (keccak256_int(namespace_id.encode("utf-8")) - 1) % SLOT_MOD
    return keccak256_int(word_to_bytes(inner)) & _LOW_BYTE_MASK


def mapping_slot(base: int, key: Any, key_type: KeyType = None) -> int:
    """Slot of `mapping[key]` whose head sits at `base`."""
    _require_slot(base, "base")
    return keccak256_int(encode_key(key_type, key) + word_to_bytes(base))


def nested_mapping_slot(
    base: int,
    key1: Any,
    key2: Any,
    key1_type: KeyType = None,
    key2_type: KeyType = None,
) -> int:
    return mapping_slot(mapping_slot(base, key1, key1_type), key2, key2_type)


def array_data_slot(base: int) -> int:
    """First element slot of a dynamic array whose length is stored at `base`."""
    _require_slot(base, "base")
    return int.from_bytes(keccak256(word_to_bytes(base)), "big")


def array_element_slot(base: int, index: int, elem_size: int = 1) -> int:
    if isinstance(index, bool) or not isinstance(index, int) or index < 0:
        raise ValueError(f"array index must be a non-negative int, got {index!r}")
    if isinstance(elem_size, bool) or not isinstance(elem_size, int) or elem_size < 1:
        raise ValueError(f"element size must be a positive int, got {elem_size!r}")
    return (array_data_slot(base) + index * elem_size) % SLOT_MOD


def struct_field_slot(base: int, offset: int) -> int:
    _require_slot(base, "base")
    if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
        raise ValueError(f"field offset must be a non-negative int, got {offset!r}")
    return (base + offset) % SLOT_MOD


def slot_hex(slot: int) -> str:
    return "0x" + word_to_bytes(slot).hex()
