"""Load Go packages from directories and answer type questions about them.

This is the symbol collector: it turns package directories into a
``SymbolTable`` of top-level type definitions. Errors are gathered for every
package before a single ``CollectionError`` is raised.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple

from go2proto.errors import CollectionError
from go2proto.parser.go_ast import (
    GoArrayType,
    GoChanType,
    GoFile,
    GoInterfaceType,
    GoMapType,
    GoNamedType,
    GoPointerType,
    GoSliceType,
    GoStructType,
    GoType,
)
from go2proto.parser.go_parser import is_build_ignored, parse_go_source
from go2proto.parser.go_tokenizer import GoParseError

BASIC_TYPES = {
    "bool",
    "byte",
    "complex64",
    "complex128",
    "float32",
    "float64",
    "int",
    "int8",
    "int16",
    "int32",
    "int64",
    "rune",
    "string",
    "uint",
    "uint8",
    "uint16",
    "uint32",
    "uint64",
    "uintptr",
}

BUILTIN_TYPES = BASIC_TYPES | {"any", "comparable", "error"}

_SKIPPED_DIRS = {"testdata", "vendor"}


@dataclass
class TypeDefinition:
    """A top-level ``type`` declaration together with the scope it was declared in."""

    name: str
    type: GoType
    package: GoPackage = field(repr=False, compare=False)
    imports: Dict[str, str] = field(default_factory=dict)
    dot_imports: List[str] = field(default_factory=list)
    is_alias: bool = False
    type_params: List[str] = field(default_factory=list)
    file: str = ""
    line: int = 0
    col: int = 0

    @property
    def exported(self) -> bool:
        return self.name[:1].isupper()


@dataclass
class GoPackage:
    name: str
    directory: str
    label: str
    files: List[GoFile] = field(default_factory=list)
    definitions: Dict[str, TypeDefinition] = field(default_factory=dict)


class SymbolTable:
    """Type definitions of all loaded packages."""

    def __init__(self, packages: List[GoPackage]):
        self.packages = packages
        self._by_name: Dict[str, GoPackage] = {}
        for package in packages:
            self._by_name.setdefault(package.name, package)

    def definitions(self) -> Iterator[TypeDefinition]:
        """Yield the exported top-level definitions in load order."""
        for package in self.packages:
            for definition in package.definitions.values():
                if definition.exported:
                    yield definition

    def lookup(self, named: GoNamedType, scope: TypeDefinition) -> Optional[TypeDefinition]:
        """Find the definition a type name refers to from within ``scope``.

        Returns None for builtins, type parameters and names of packages that
        were not loaded.
        """
        if named.package is None:
            if named.name in scope.type_params:
                return None
            definition = scope.package.definitions.get(named.name)
            if definition is not None:
                return definition
            for package_name in scope.dot_imports:
                package = self._by_name.get(package_name)
                if package is not None and named.name in package.definitions:
                    return package.definitions[named.name]
            return None

        package_name = scope.imports.get(named.package)
        if package_name is None:
            return None
        package = self._by_name.get(package_name)
        if package is None:
            return None
        return package.definitions.get(named.name)

    def underlying(
        self, go_type: GoType, scope: TypeDefinition
    ) -> Tuple[Optional[GoType], Optional[TypeDefinition]]:
        """Follow named types and aliases down to a type literal.

        Returns the literal together with the definition whose scope it was
        written in. Basic types come back as their ``GoNamedType``, ``any`` as
        the empty interface and ``error`` as a one-method interface.
        ``(None, None)`` means the type cannot be resolved.
        """
        seen: Set[Tuple[int, str]] = set()
        while isinstance(go_type, GoNamedType):
            definition = self.lookup(go_type, scope)
            if definition is None:
                if go_type.package is not None or go_type.name in scope.type_params:
                    return None, None
                if go_type.name in BASIC_TYPES:
                    return go_type, scope
                if go_type.name == "any":
                    return GoInterfaceType(), scope
                if go_type.name == "error":
                    return GoInterfaceType(methods=["Error() string"]), scope
                return None, None
            key = (id(definition.package), definition.name)
            if key in seen:
                return None, None
            seen.add(key)
            go_type, scope = definition.type, definition
        return go_type, scope

    def external_name(self, go_type: GoType, scope: TypeDefinition) -> Optional[str]:
        """Name of the type from a package that was not loaded behind ``go_type``.

        Follows named types and aliases like ``underlying``. Returns the bare
        name (``Time`` for ``time.Time``) when the chain ends in a qualified
        name whose package is imported but not loaded, None otherwise.
        """
        seen: Set[Tuple[int, str]] = set()
        while isinstance(go_type, GoNamedType):
            definition = self.lookup(go_type, scope)
            if definition is None:
                package_name = scope.imports.get(go_type.package) if go_type.package else None
                if package_name is not None and package_name not in self._by_name:
                    return go_type.name
                return None
            key = (id(definition.package), definition.name)
            if key in seen:
                return None
            seen.add(key)
            go_type, scope = definition.type, definition
        return None


def is_basic(go_type: Optional[GoType]) -> bool:
    """Report whether an underlying type (see ``SymbolTable.underlying``) is basic."""
    return (
        isinstance(go_type, GoNamedType)
        and go_type.package is None
        and go_type.name in BASIC_TYPES
    )


def iter_named_types(go_type: GoType) -> Iterator[GoNamedType]:
    """Yield every type name referenced by a type expression."""
    if isinstance(go_type, GoNamedType):
        yield go_type
        for arg in go_type.type_args:
            yield from iter_named_types(arg)
    elif isinstance(go_type, (GoPointerType, GoSliceType, GoArrayType, GoChanType)):
        yield from iter_named_types(go_type.elem)
    elif isinstance(go_type, GoMapType):
        yield from iter_named_types(go_type.key)
        yield from iter_named_types(go_type.value)
    elif isinstance(go_type, GoStructType):
        for f in go_type.fields:
            yield from iter_named_types(f.type)


def load_packages(patterns: List[str]) -> SymbolTable:
    """Load every package matched by ``patterns``.

    A pattern is a directory; ``dir/...`` also matches every sub-directory
    holding Go files. Raises CollectionError listing the errors of all
    failing packages.
    """
    packages: List[GoPackage] = []
    errors: List[str] = []
    seen_dirs: Set[str] = set()

    for pattern in patterns:
        pattern = pattern.strip()
        if not pattern:
            continue
        directories, pattern_error = _expand_pattern(pattern)
        if pattern_error:
            errors.append(f"package {pattern}: {pattern_error}")
            continue
        for label, directory in directories:
            key = os.path.realpath(directory)
            if key in seen_dirs:
                continue
            seen_dirs.add(key)
            package, package_errors = _load_package(label, directory)
            if package_errors:
                errors.append(f"package {label}: {', '.join(package_errors)}")
            elif package is not None:
                packages.append(package)

    if errors:
        raise CollectionError("; ".join(errors))

    return SymbolTable(packages)


def _expand_pattern(pattern: str) -> Tuple[List[Tuple[str, str]], str]:
    """Turn a pattern into (label, directory) pairs, or an error message."""
    recursive = pattern == "..." or pattern.endswith("/...")
    base = pattern[: -len("...")].rstrip("/") if recursive else pattern
    base = base or "."

    if not os.path.isdir(base):
        return [], f"directory {base} not found"

    if not recursive:
        return [(pattern, base)], ""

    found: List[Tuple[str, str]] = []
    for root, dirs, files in os.walk(base):
        dirs[:] = sorted(
            d for d in dirs if d not in _SKIPPED_DIRS and not d.startswith((".", "_"))
        )
        if any(f.endswith(".go") and not f.endswith("_test.go") for f in files):
            found.append((root, root))
    if not found:
        return [], "matched no packages"
    return found, ""


def _load_package(label: str, directory: str) -> Tuple[Optional[GoPackage], List[str]]:
    """Parse the Go files of one directory and build its definitions."""
    errors: List[str] = []
    files: List[GoFile] = []

    go_paths = sorted(
        p
        for p in Path(directory).glob("*.go")
        if p.is_file() and not p.name.endswith("_test.go")
    )
    for path in go_paths:
        try:
            # utf-8-sig drops a leading byte order mark, which Go accepts
            text = path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            errors.append(f"{path.name}: {e}")
            continue
        if is_build_ignored(text):
            continue
        try:
            files.append(parse_go_source(text, file_name=path.name))
        except GoParseError as e:
            errors.append(f"{path.name}: {e}")

    if errors:
        return None, errors

    if not files:
        return None, [f"no Go files in {os.path.abspath(directory)}"]

    first = files[0]
    for other in files[1:]:
        if other.package != first.package:
            return None, [
                f"found packages {first.package} ({first.file_name}) and "
                f"{other.package} ({other.file_name}) in {os.path.abspath(directory)}"
            ]

    package = GoPackage(name=first.package, directory=directory, label=label, files=files)
    for go_file in files:
        imports: Dict[str, str] = {}
        dot_imports: List[str] = []
        for imp in go_file.imports:
            if imp.alias == ".":
                dot_imports.append(imp.package_name)
            elif imp.alias != "_":
                imports[imp.local_name] = imp.package_name

        for spec in go_file.type_specs:
            if spec.name == "_":
                continue
            if spec.name in package.definitions:
                errors.append(
                    f"{go_file.file_name}:{spec.line}:{spec.col}: "
                    f"{spec.name} redeclared in this block"
                )
                continue
            package.definitions[spec.name] = TypeDefinition(
                name=spec.name,
                type=spec.type,
                package=package,
                imports=imports,
                dot_imports=dot_imports,
                is_alias=spec.is_alias,
                type_params=spec.type_params,
                file=go_file.file_name,
                line=spec.line,
                col=spec.col,
            )

    errors.extend(_check_references(package))
    if errors:
        return None, errors
    return package, []


def _check_references(package: GoPackage) -> List[str]:
    """Report type names that resolve to nothing in their declaring file."""
    errors: List[str] = []
    for definition in package.definitions.values():
        for named in iter_named_types(definition.type):
            where = f"{definition.file}:{named.line}:{named.col}"
            if named.package is not None:
                if named.package not in definition.imports:
                    errors.append(f"{where}: undefined: {named.package}")
                continue
            if (
                named.name in definition.type_params
                or named.name in package.definitions
                or named.name in BUILTIN_TYPES
                or definition.dot_imports
            ):
                continue
            errors.append(f"{where}: undefined: {named.name}")
    return errors
