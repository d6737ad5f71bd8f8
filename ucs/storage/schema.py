"""
ucs.storage.schema — declarative storage layouts anchored at a namespace.

A Schema is an ordered list of named fields. Field `i` (declaration order)
owns the head slot `root + i`; mappings and arrays derive their element slots
from that head via ucs.storage.slots. Schemas are built once and then
read-only.

    TOKEN = Schema(
        "token.v1",
        total_supply=Value("uint256"),
        balances=Mapping("address", "uint256"),
        allowances=Mapping2("address", "address", "uint256"),
        holders=Array("address"),
    )

    TOKEN.mapping("balances").get(cap, alice)        # typed read
    TOKEN.offset_of("holders")                       # 3
    TOKEN.lookup("nope")                             # None

A schema may also be anchored at a raw slot (e.g. 0) instead of a namespace
id, for layouts fixed by an external convention.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from ..abi.types import ABITypeError, AbiType, from_word, parse_type, to_word
from ..errors import SchemaError
from ..runtime.dispatch import StorageCapability
from . import gateway
from . import slots as _slots

log = logging.getLogger(__name__)

__all__ = [
    "Namespace",
    "Value",
    "Mapping",
    "Mapping2",
    "Array",
    "FieldSpec",
    "Schema",
    "ValueField",
    "MappingField",
    "Mapping2Field",
    "ArrayField",
]


# ─────────────────────────────────────────────────────────────────────────────
# Namespace
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Namespace:
    id: str
    root: int

    @classmethod
    def of(cls, namespace_id: str) -> "Namespace":
        return cls(namespace_id, _slots.namespace_root(namespace_id))

    @classmethod
    def at(cls, slot: int, label: str = "") -> "Namespace":
        """Anchor at a fixed slot rather than a derived root."""
        return cls(label or f"slot:{slot}", _slots.struct_field_slot(slot, 0))


# ─────────────────────────────────────────────────────────────────────────────
# Field declarations
# ─────────────────────────────────────────────────────────────────────────────


def _word_type(t: Union[str, AbiType], role: str) -> AbiType:
    try:
        typ = t if isinstance(t, AbiType) else parse_type(t)
    except ABITypeError as e:
        raise SchemaError(f"bad {role} type {t!r}: {e}") from e
    if typ.is_dynamic:
        raise SchemaError(f"{role} type must fit one word, got {typ}")
    return typ


@dataclass(frozen=True)
class Value:
    type: Union[str, AbiType]
    kind = "value"


@dataclass(frozen=True)
class Mapping:
    key_type: Union[str, AbiType]
    value_type: Union[str, AbiType]
    kind = "mapping"


@dataclass(frozen=True)
class Mapping2:
    key1_type: Union[str, AbiType]
    key2_type: Union[str, AbiType]
    value_type: Union[str, AbiType]
    kind = "mapping2"


@dataclass(frozen=True)
class Array:
    elem_type: Union[str, AbiType]
    kind = "array"


FieldSpec = Union[Value, Mapping, Mapping2, Array]


# ─────────────────────────────────────────────────────────────────────────────
# Bound (typed) fields
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class _Bound:
    name: str
    offset: int
    head: int

    @property
    def kind(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class ValueField(_Bound):
    type: AbiType

    @property
    def kind(self) -> str:
        return "value"

    @property
    def slot(self) -> int:
        return self.head

    def get(self, cap: StorageCapability) -> Any:
        return from_word(self.type, gateway.read(cap, self.head), strict=False)

    def set(self, cap: StorageCapability, value: Any) -> None:
        gateway.write(cap, self.head, to_word(self.type, value))


@dataclass(frozen=True)
class MappingField(_Bound):
    key_type: AbiType
    value_type: AbiType

    @property
    def kind(self) -> str:
        return "mapping"

    def slot(self, key: Any) -> int:
        return _slots.mapping_slot(self.head, key, self.key_type)

    def get(self, cap: StorageCapability, key: Any) -> Any:
        return from_word(self.value_type, gateway.read_mapping(cap, self.head, key, self.key_type), strict=False)

    def set(self, cap: StorageCapability, key: Any, value: Any) -> None:
        gateway.write_mapping(cap, self.head, key, to_word(self.value_type, value), self.key_type)


@dataclass(frozen=True)
class Mapping2Field(_Bound):
    key1_type: AbiType
    key2_type: AbiType
    value_type: AbiType

    @property
    def kind(self) -> str:
        return "mapping2"

    def slot(self, key1: Any, key2: Any) -> int:
        return _slots.nested_mapping_slot(self.head, key1, key2, self.key1_type, self.key2_type)

    def get(self, cap: StorageCapability, key1: Any, key2: Any) -> Any:
        return from_word(
            self.value_type,
            gateway.read_mapping2(cap, self.head, key1, key2, self.key1_type, self.key2_type),
            strict=False,
        )

    def set(self, cap: StorageCapability, key1: Any, key2: Any, value: Any) -> None:
        gateway.write_mapping2(cap, self.head, key1, key2, to_word(self.value_type, value), self.key1_type, self.key2_type)


@dataclass(frozen=True)
class ArrayField(_Bound):
    elem_type: AbiType

    @property
    def kind(self) -> str:
        return "array"

    def slot(self, index: int) -> int:
        return _slots.array_element_slot(self.head, index)

    def length(self, cap: StorageCapability) -> int:
        return gateway.array_length(cap, self.head)

    def get(self, cap: StorageCapability, index: int) -> Any:
        return from_word(self.elem_type, gateway.array_get(cap, self.head, index), strict=False)

    def set(self, cap: StorageCapability, index: int, value: Any) -> None:
        gateway.array_set(cap, self.head, index, to_word(self.elem_type, value))

    def push(self, cap: StorageCapability, value: Any) -> int:
        return gateway.array_push(cap, self.head, to_word(self.elem_type, value))

    def pop(self, cap: StorageCapability) -> Any:
        return from_word(self.elem_type, gateway.array_pop(cap, self.head), strict=False)


BoundField = Union[ValueField, MappingField, Mapping2Field, ArrayField]


# ─────────────────────────────────────────────────────────────────────────────
# Schema
# ─────────────────────────────────────────────────────────────────────────────


class Schema:
    """Ordered named fields at one namespace root; at most 256 of them."""

    def __init__(
        self,
        namespace: Union[str, Namespace],
        fields: Sequence[Tuple[str, FieldSpec]] = (),
        **kw_fields: FieldSpec,
    ) -> None:
        self.namespace = namespace if isinstance(namespace, Namespace) else Namespace.of(namespace)
        declared: List[Tuple[str, FieldSpec]] = list(fields) + list(kw_fields.items())
        if len(declared) > _slots.NAMESPACE_CAPACITY:
            raise SchemaError(
                f"namespace {self.namespace.id!r} declares {len(declared)} fields",
                data={"capacity": _slots.NAMESPACE_CAPACITY},
            )

        self._fields: Dict[str, BoundField] = {}
        for offset, (name, spec) in enumerate(declared):
            if not isinstance(name, str) or not name:
                raise SchemaError(f"field name must be a non-empty string, got {name!r}")
            if name in self._fields:
                raise SchemaError(f"duplicate field {name!r}", data={"namespace": self.namespace.id})
            self._fields[name] = self._bind(name, offset, spec)

        log.debug(
            "schema built",
            extra={"namespace": self.namespace.id, "root": _slots.slot_hex(self.namespace.root), "fields": len(self._fields)},
        )

    def _bind(self, name: str, offset: int, spec: FieldSpec) -> BoundField:
        head = _slots.struct_field_slot(self.namespace.root, offset)
        if isinstance(spec, Value):
            return ValueField(name, offset, head, _word_type(spec.type, "value"))
        if isinstance(spec, Mapping):
            return MappingField(name, offset, head, _word_type(spec.key_type, "key"), _word_type(spec.value_type, "value"))
        if isinstance(spec, Mapping2):
            return Mapping2Field(
                name,
                offset,
                head,
                _word_type(spec.key1_type, "key"),
                _word_type(spec.key2_type, "key"),
                _word_type(spec.value_type, "value"),
            )
        if isinstance(spec, Array):
            return ArrayField(name, offset, head, _word_type(spec.elem_type, "element"))
        raise SchemaError(f"field {name!r} has unsupported declaration {spec!r}")

    # ---- introspection ----

    @property
    def root(self) -> int:
        return self.namespace.root

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[BoundField]:
        return iter(self._fields.values())

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def names(self) -> Tuple[str, ...]:
        return tuple(self._fields)

    def lookup(self, name: str) -> Optional[BoundField]:
        return self._fields.get(name)

    def offset_of(self, name: str) -> Optional[int]:
        f = self._fields.get(name)
        return None if f is None else f.offset

    def slot_of(self, name: str) -> Optional[int]:
        f = self._fields.get(name)
        return None if f is None else f.head

    # ---- typed accessors ----

    def _typed(self, name: str, cls: type) -> Any:
        f = self._fields.get(name)
        if f is None:
            raise SchemaError(f"no field {name!r} in {self.namespace.id!r}")
        if not isinstance(f, cls):
            raise SchemaError(f"field {name!r} is a {f.kind}, not a {cls.__name__}")
        return f

    def value(self, name: str) -> ValueField:
        return self._typed(name, ValueField)

    def mapping(self, name: str) -> MappingField:
        return self._typed(name, MappingField)

    def mapping2(self, name: str) -> Mapping2Field:
        return self._typed(name, Mapping2Field)

    def array(self, name: str) -> ArrayField:
        return self._typed(name, ArrayField)

    def __repr__(self) -> str:
        return f"Schema({self.namespace.id!r}, fields={list(self._fields)})"
