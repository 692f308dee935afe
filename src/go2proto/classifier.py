"""Classify Go field types into protobuf field shapes.

Every field is mapped to one ``FieldShape``. Types with no protobuf
counterpart (channels, functions, interfaces with methods, nested
collections, type parameters) classify as ``FieldKind.UNSUPPORTED`` and are
dropped by the caller. A type from an imported package that was not loaded
is referenced as a message by its bare name.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, Optional

from go2proto.loader import SymbolTable, TypeDefinition, is_basic
from go2proto.parser.go_ast import (
    GoArrayType,
    GoInterfaceType,
    GoMapType,
    GoNamedType,
    GoPointerType,
    GoSliceType,
    GoStructType,
    GoType,
)

ANY_TYPE = "google.protobuf.Any"

# Go basic type -> protobuf scalar; anything else keeps its Go name.
SCALAR_TYPE_MAP: Dict[str, str] = {
    "int": "int64",
    "float32": "float",
    "float64": "double",
}


def protobuf_type(go_type: str) -> str:
    return SCALAR_TYPE_MAP.get(go_type, go_type)


class FieldKind(Enum):
    SCALAR = auto()
    MESSAGE = auto()
    REPEATED = auto()
    MAP = auto()
    ANY = auto()
    UNSUPPORTED = auto()


@dataclass
class Record:
    """A struct type that becomes a message.

    ``name`` is the canonical name: the bare type name for named structs, the
    rendered struct literal for anonymous ones. ``scope`` is the definition
    the struct's field types are resolved in.
    """

    name: str
    struct: GoStructType
    scope: TypeDefinition
    is_anonymous: bool = False


@dataclass
class FieldShape:
    kind: FieldKind
    type_name: str = ""
    map_key: str = ""
    record: Optional[Record] = None

    @property
    def is_anonymous(self) -> bool:
        return self.record is not None and self.record.is_anonymous


_UNSUPPORTED = FieldShape(FieldKind.UNSUPPORTED)


def resolve_record(
    symbols: SymbolTable, go_type: GoType, scope: TypeDefinition
) -> Optional[Record]:
    """Find the struct a type ultimately describes.

    Pointer, slice, array and map (value side) layers are unwrapped, as are
    aliases and named types whose underlying type is such a wrapper. A
    defined type over a struct (``type Employee Person``) is its own record.
    """
    seen = set()
    while True:
        if isinstance(go_type, GoStructType):
            return Record(go_type.type_string(), go_type, scope, is_anonymous=True)

        if isinstance(go_type, (GoPointerType, GoSliceType, GoArrayType)):
            go_type = go_type.elem
            continue

        if isinstance(go_type, GoMapType):
            go_type = go_type.value
            continue

        if not isinstance(go_type, GoNamedType):
            return None

        definition = symbols.lookup(go_type, scope)
        if definition is None:
            return None
        key = (id(definition.package), definition.name)
        if key in seen:
            return None
        seen.add(key)

        if definition.is_alias:
            go_type, scope = definition.type, definition
            continue

        underlying, underlying_scope = symbols.underlying(definition.type, definition)
        if isinstance(underlying, GoStructType):
            return Record(definition.name, underlying, underlying_scope)
        go_type, scope = definition.type, definition


def classify_field(
    symbols: SymbolTable, go_type: GoType, scope: TypeDefinition
) -> FieldShape:
    """Determine the protobuf shape of a struct field's type."""
    go_type = _strip_pointers(go_type)
    underlying, underlying_scope = symbols.underlying(go_type, scope)

    if isinstance(underlying, GoMapType):
        key, _ = symbols.underlying(_strip_pointers(underlying.key), underlying_scope)
        if not is_basic(key):
            return _UNSUPPORTED
        value = _classify_element(symbols, underlying.value, underlying_scope)
        if value.kind is FieldKind.UNSUPPORTED:
            return _UNSUPPORTED
        return FieldShape(
            FieldKind.MAP,
            type_name=value.type_name,
            map_key=protobuf_type(key.name),
            record=value.record,
        )

    if isinstance(underlying, (GoSliceType, GoArrayType)):
        elem = _classify_element(symbols, underlying.elem, underlying_scope)
        if elem.kind is FieldKind.UNSUPPORTED:
            return _UNSUPPORTED
        return FieldShape(FieldKind.REPEATED, type_name=elem.type_name, record=elem.record)

    return _classify_element(symbols, go_type, scope)


def _classify_element(
    symbols: SymbolTable, go_type: GoType, scope: TypeDefinition
) -> FieldShape:
    """Classify a single value: a scalar, ``any`` or a struct reference."""
    go_type = _strip_pointers(go_type)
    underlying, _ = symbols.underlying(go_type, scope)

    if is_basic(underlying):
        return FieldShape(FieldKind.SCALAR, type_name=protobuf_type(underlying.name))

    if isinstance(underlying, GoInterfaceType):
        if underlying.is_empty:
            return FieldShape(FieldKind.ANY, type_name=ANY_TYPE)
        return _UNSUPPORTED

    if isinstance(underlying, GoStructType):
        record = resolve_record(symbols, go_type, scope)
        if record is None:
            return _UNSUPPORTED
        return FieldShape(FieldKind.MESSAGE, type_name=record.name, record=record)

    if underlying is None:
        # time.Time and friends: referenced by bare name, no message emitted
        external = symbols.external_name(go_type, scope)
        if external is not None:
            return FieldShape(FieldKind.MESSAGE, type_name=external)

    return _UNSUPPORTED


def _strip_pointers(go_type: GoType) -> GoType:
    while isinstance(go_type, GoPointerType):
        go_type = go_type.elem
    return go_type
