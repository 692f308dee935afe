"""AST node definitions for Go source files.

Only declarations that matter for schema generation are modelled: the package
clause, imports and type declarations. Type expressions can render themselves
back to Go syntax with ``type_string()``, which serves as the identity of
anonymous struct types.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Union


_MAJOR_VERSION_RE = re.compile(r"^v[0-9]+$")


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


@dataclass
class GoNamedType:
    """A type name, optionally package-qualified: ``Name``, ``pkg.Name``, ``Box[int]``."""

    name: str
    package: Optional[str] = None
    type_args: List[GoType] = field(default_factory=list)
    line: int = field(default=0, compare=False)
    col: int = field(default=0, compare=False)

    def type_string(self) -> str:
        base = f"{self.package}.{self.name}" if self.package else self.name
        if self.type_args:
            base += "[" + ", ".join(a.type_string() for a in self.type_args) + "]"
        return base


@dataclass
class GoPointerType:
    elem: GoType

    def type_string(self) -> str:
        return "*" + self.elem.type_string()


@dataclass
class GoSliceType:
    elem: GoType

    def type_string(self) -> str:
        return "[]" + self.elem.type_string()


@dataclass
class GoArrayType:
    """``[length]elem``; the length expression is kept as source text."""

    length: str
    elem: GoType

    def type_string(self) -> str:
        return f"[{self.length}]" + self.elem.type_string()


@dataclass
class GoMapType:
    key: GoType
    value: GoType

    def type_string(self) -> str:
        return f"map[{self.key.type_string()}]{self.value.type_string()}"


@dataclass
class GoChanType:
    elem: GoType
    direction: str = ""

    def type_string(self) -> str:
        if self.direction == "send":
            return "chan<- " + self.elem.type_string()
        if self.direction == "recv":
            return "<-chan " + self.elem.type_string()
        return "chan " + self.elem.type_string()


@dataclass
class GoFuncType:
    """A function type; parameters and results are kept as source text only."""

    signature: str = "()"

    def type_string(self) -> str:
        return "func" + self.signature


@dataclass
class GoInterfaceType:
    """An interface type. ``methods`` holds one source-text entry per element."""

    methods: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.methods

    def type_string(self) -> str:
        return "interface{" + "; ".join(self.methods) + "}"


@dataclass
class GoStructField:
    """One field declaration line: ``A, B int `tag```, or an embedded ``*Base``."""

    names: List[str]
    type: GoType
    tag: str = ""
    embedded: bool = False


@dataclass
class GoStructType:
    fields: List[GoStructField] = field(default_factory=list)

    def type_string(self) -> str:
        parts = []
        for f in self.fields:
            decl = f.type.type_string()
            if not f.embedded:
                decl = ", ".join(f.names) + " " + decl
            if f.tag:
                decl += " " + _quote(f.tag)
            parts.append(decl)
        return "struct{" + "; ".join(parts) + "}"


GoType = Union[
    GoNamedType,
    GoPointerType,
    GoSliceType,
    GoArrayType,
    GoMapType,
    GoChanType,
    GoFuncType,
    GoInterfaceType,
    GoStructType,
]


@dataclass
class GoImport:
    """import [alias] "path" """

    path: str
    alias: Optional[str] = None

    @property
    def package_name(self) -> str:
        """Package name implied by the import path."""
        parts = self.path.rstrip("/").split("/")
        # Major version suffixes (example.com/mod/v2) are not part of the name.
        if len(parts) > 1 and _MAJOR_VERSION_RE.match(parts[-1]):
            return parts[-2]
        return parts[-1]

    @property
    def local_name(self) -> str:
        """Name the import is referred to by in the importing file."""
        return self.alias or self.package_name


@dataclass
class GoTypeSpec:
    """type Name[TypeParams] Type, or the alias form type Name = Type."""

    name: str
    type: GoType
    is_alias: bool = False
    type_params: List[str] = field(default_factory=list)
    line: int = 0
    col: int = 0


@dataclass
class GoFile:
    """Top-level parsed representation of a Go source file."""

    package: str
    imports: List[GoImport] = field(default_factory=list)
    type_specs: List[GoTypeSpec] = field(default_factory=list)
    file_name: str = ""
