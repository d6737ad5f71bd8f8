"""
ucs.storage — slot derivation, schemas and the capability-gated gateway.
"""

from __future__ import annotations

from . import gateway
from .schema import (Array, ArrayField, Mapping, Mapping2, Mapping2Field,
                     MappingField, Namespace, Schema, Value, ValueField)
from .slots import (NAMESPACE_CAPACITY, array_data_slot, array_element_slot,
                    mapping_slot, namespace_root, nested_mapping_slot,
                    slot_hex, struct_field_slot)

__all__ = [
    "gateway",
    "NAMESPACE_CAPACITY",
    "namespace_root",
    "mapping_slot",
    "nested_mapping_slot",
    "array_data_slot",
    "array_element_slot",
    "struct_field_slot",
    "slot_hex",
    "Namespace",
    "Schema",
    "Value",
    "Mapping",
    "Mapping2",
    "Array",
    "ValueField",
    "MappingField",
    "Mapping2Field",
    "ArrayField",
]
