"""
Slot derivation: published namespace roots, mapping/array/struct formulas and
the non-aliasing properties the layout relies on.
"""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ucs.hash_api import keccak256_int
from ucs.storage.slots import (NAMESPACE_CAPACITY, SLOT_MOD, array_data_slot,
                               array_element_slot, mapping_slot,
                               namespace_root, nested_mapping_slot,
                               slot_hex, struct_field_slot)

U256 = st.integers(min_value=0, max_value=SLOT_MOD - 1)
IDS = st.text(min_size=1, max_size=40)

# ---------------------------------------------------------------------------
# Known values
# ---------------------------------------------------------------------------

# Roots published alongside their namespace ids (ERC-7201 reference example
# and the OpenZeppelin v5 Ownable layout).
KNOWN_ROOTS = {
    "example.main": 0x183A6125C38840424C4A85FA12BAB2AB606C4B6D0E7CC73C0C06BA5300EAB500,
    "openzeppelin.storage.Ownable": 0x9016D09D72D40FDAE2FD8CEAC6B6234C7706214FD39C1CD1E609A0528C199300,
}


@pytest.mark.parametrize("ns, root", sorted(KNOWN_ROOTS.items()))
def test_namespace_root_matches_published_values(ns: str, root: int) -> None:
    assert namespace_root(ns) == root


def test_namespace_root_formula() -> None:
    ns = "erc7546.proxy.dictionary"
    inner = keccak256_int(ns.encode()) - 1
    expected = keccak256_int(inner.to_bytes(32, "big")) & ~0xFF & (SLOT_MOD - 1)
    assert namespace_root(ns) == expected


def test_mapping_slot_of_zero_key_at_zero_base() -> None:
    # keccak256(32 zero bytes || 32 zero bytes)
    assert mapping_slot(0, 0) == 0xAD3228B676F7D3CD4284A5443F17F1962B36E491B30A40B2405849E597BA5FB5


def test_array_data_slot_of_base_zero() -> None:
    # keccak256(32 zero bytes)
    assert array_data_slot(0) == 0x290DECD9548B62A8D60345A988386FC84BA6BC95484008F6362F93160EF3E563
    assert array_element_slot(0, 0) == array_data_slot(0)
    assert array_element_slot(0, 3, 2) == array_data_slot(0) + 6


def test_typed_keys_encode_like_their_words() -> None:
    base = namespace_root("token.v1") + 1
    addr = 0xA2
    assert mapping_slot(base, addr, "address") == mapping_slot(base, addr)
    assert mapping_slot(base, True, "bool") == mapping_slot(base, 1)
    # bytesN keys are left-aligned, so they differ from the same integer value.
    sel = bytes.fromhex("a9059cbb")
    assert mapping_slot(base, sel, "bytes4") == mapping_slot(base, sel.ljust(32, b"\x00"))
    assert mapping_slot(base, sel, "bytes4") != mapping_slot(base, 0xA9059CBB)


def test_nested_mapping_composes() -> None:
    base = 7
    assert nested_mapping_slot(base, 1, 2) == mapping_slot(mapping_slot(base, 1), 2)
    assert nested_mapping_slot(base, 1, 2) != nested_mapping_slot(base, 2, 1)


def test_struct_field_slot_wraps_modulo_2_256() -> None:
    assert struct_field_slot(5, 3) == 8
    assert struct_field_slot(SLOT_MOD - 1, 1) == 0


def test_array_element_slot_wraps_modulo_2_256() -> None:
    data = array_data_slot(9)
    index = SLOT_MOD - data
    assert array_element_slot(9, index) == 0


@pytest.mark.parametrize("bad", [-1, SLOT_MOD, True])
def test_slot_inputs_are_validated(bad) -> None:
    with pytest.raises((TypeError, ValueError)):
        mapping_slot(bad, 0)


def test_negative_index_rejected() -> None:
    with pytest.raises(ValueError):
        array_element_slot(0, -1)
    with pytest.raises(ValueError):
        array_element_slot(0, 0, 0)


def test_slot_hex_is_fixed_width() -> None:
    assert slot_hex(1) == "0x" + "00" * 31 + "01"


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


@given(IDS)
def test_namespace_roots_have_a_zero_low_byte(ns: str) -> None:
    root = namespace_root(ns)
    assert root % 256 == 0
    assert 0 <= root < SLOT_MOD


@settings(max_examples=200)
@given(IDS, IDS)
def test_distinct_namespaces_get_distinct_roots(a: str, b: str) -> None:
    if a != b:
        assert namespace_root(a) != namespace_root(b)


@given(IDS)
def test_field_slots_stay_inside_their_namespace(ns: str) -> None:
    root = namespace_root(ns)
    last = struct_field_slot(root, NAMESPACE_CAPACITY - 1)
    assert last >> 8 == root >> 8


@given(U256, U256, U256)
def test_distinct_keys_get_distinct_slots(base: int, k1: int, k2: int) -> None:
    if k1 != k2:
        assert mapping_slot(base, k1) != mapping_slot(base, k2)


@given(U256, U256, U256)
def test_same_key_under_distinct_bases_does_not_alias(b1: int, b2: int, key: int) -> None:
    if b1 != b2:
        assert mapping_slot(b1, key) != mapping_slot(b2, key)


@given(U256, st.integers(min_value=0, max_value=2**64), st.integers(min_value=1, max_value=8))
def test_array_elements_are_contiguous(base: int, index: int, size: int) -> None:
    first = array_element_slot(base, index, size)
    assert array_element_slot(base, index + 1, size) == (first + size) % SLOT_MOD
