from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from starknet_py.cairo.felt import encode_shortstring

from .errors import TypedDataError

INVALID_TYPE_NODE = "Invalid type node"
INVALID_STRUCT = "Invalid struct definition"

StructDef = Sequence[Mapping[str, str]]
TypeDefs = Mapping[str, StructDef]


@dataclass(frozen=True)
class Felt:
    pass


@dataclass(frozen=True)
class String:
    pass


@dataclass(frozen=True)
class ShortString:
    pass


@dataclass(frozen=True)
class Reference:
    name: str


@dataclass(frozen=True)
class Unsupported:
    tag: str


TypeKind = Union[Felt, String, ShortString, Reference, Unsupported]

_PRIMITIVES: Dict[str, TypeKind] = {
    "felt": Felt(),
    "string": String(),
    "shortstring": ShortString(),
}

UNSUPPORTED_TAGS = frozenset({"enum", "merkletree"})


def parse_type(tag: str) -> TypeKind:
    if tag in _PRIMITIVES:
        return _PRIMITIVES[tag]
    if tag in UNSUPPORTED_TAGS:
        return Unsupported(tag)
    return Reference(tag)


@dataclass(frozen=True)
class Field:
    name: str
    kind: TypeKind


def _parse_field(node: Any) -> Optional[Field]:
    if not isinstance(node, Mapping):
        return None
    name = node.get("name")
    tag = node.get("type")
    if not isinstance(name, str) or not isinstance(tag, str):
        return None
    return Field(name=name, kind=parse_type(tag))


def parse_struct(nodes: Any) -> Union[List[Field], TypedDataError]:
    if isinstance(nodes, (str, bytes, Mapping)) or not isinstance(nodes, Sequence):
        return TypedDataError(INVALID_STRUCT)
    fields = []
    for node in nodes:
        field = _parse_field(node)
        if field is None:
            name = node.get("name") if isinstance(node, Mapping) else None
            return TypedDataError(INVALID_TYPE_NODE, [name] if isinstance(name, str) else None)
        fields.append(field)
    return fields


def is_short_string(value: str) -> bool:
    try:
        encode_shortstring(value)
    except ValueError:
        return False
    return True


def check_type(types: TypeDefs, type_or_struct: Union[Mapping[str, str], StructDef], value: Any) -> Optional[TypedDataError]:
    """Check ``value`` against a single type node or a struct (list of nodes).

    Returns the first failure, with its field path relative to ``type_or_struct``,
    or None when the value conforms. Malformed type nodes are reported the same
    way, with ``"Invalid type node"`` as the leaf.
    """
    if isinstance(type_or_struct, Mapping):
        field = _parse_field(type_or_struct)
        if field is None:
            return TypedDataError(INVALID_TYPE_NODE)
        return _check_kind(types, field.kind, value)
    fields = parse_struct(type_or_struct)
    if isinstance(fields, TypedDataError):
        return fields
    return _check_struct(types, fields, value)


def validate_type(types: TypeDefs, type_or_struct: Union[Mapping[str, str], StructDef], value: Any) -> None:
    error = check_type(types, type_or_struct, value)
    if error is not None:
        raise error


def _check_struct(types: TypeDefs, fields: List[Field], value: Any) -> Optional[TypedDataError]:
    if not isinstance(value, Mapping):
        return TypedDataError("Not an object")

    declared = {f.name for f in fields}
    for key in value:
        if key not in declared:
            return TypedDataError("unexpected field", [str(key)])

    for f in fields:
        if f.name not in value:
            return TypedDataError("missing field", [f.name])
        error = _check_kind(types, f.kind, value[f.name])
        if error is not None:
            return error.with_field(f.name)
    return None


def _is_felt_value(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return math.isfinite(value) and value.is_integer()
    return isinstance(value, (str, int))


def _check_kind(types: TypeDefs, kind: TypeKind, value: Any) -> Optional[TypedDataError]:
    if isinstance(kind, ShortString):
        if not isinstance(value, str) or not is_short_string(value):
            return TypedDataError("Not a shortstring")
        return None
    if isinstance(kind, String):
        if not isinstance(value, str):
            return TypedDataError("Not a string")
        return None
    if isinstance(kind, Felt):
        if not _is_felt_value(value):
            return TypedDataError("Not a felt")
        return None
    if isinstance(kind, Unsupported):
        return TypedDataError(f"Type {kind.tag} not supported")
    if isinstance(kind, Reference):
        if kind.name not in types:
            return TypedDataError(f"Type {kind.name} not found in defined types")
        fields = parse_struct(types[kind.name])
        if isinstance(fields, TypedDataError):
            return fields
        return _check_struct(types, fields, value)
    raise TypeError(f"unhandled type kind: {kind!r}")
