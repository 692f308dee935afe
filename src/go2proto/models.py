from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


def proto_field_name(name: str) -> str:
    """Lower the first letter of a Go field name; two-letter names are lowered entirely."""
    if len(name) == 2:
        return name.lower()
    return name[:1].lower() + name[1:]


@dataclass
class Field:
    native_type_name: str
    native_field_name: str
    field_name: str
    type_name: str
    order: int
    is_anonymous: bool = False
    is_repeated: bool = False
    is_map: bool = False
    map_key: str = ""
    tags: str = ""


@dataclass
class Message:
    type_name: str
    native_type_name: str
    fields: List[Field] = field(default_factory=list)
    parent: Optional[Message] = field(default=None, repr=False, compare=False)
    parental_field_name: str = ""
