from __future__ import annotations

import re
from pathlib import Path

from .go_ast import GoFile
from .go_ast_parser import GoParser
from .go_tokenizer import tokenize_go

# Build constraint excluding a file from every build: //go:build ignore
_BUILD_IGNORE_RE = re.compile(r"^//\s*(?:go:build|\+build)\s+ignore\b", re.MULTILINE)
_PACKAGE_CLAUSE_RE = re.compile(r"^package\s", re.MULTILINE)


def parse_go_source(text: str, file_name: str = "") -> GoFile:
    """Tokenize and parse Go source text."""
    return GoParser(tokenize_go(text), file_name=file_name).parse()


def parse_go_file(file_path: str) -> GoFile:
    """Parse a Go source file and extract its imports and type declarations."""
    text = Path(file_path).read_text(encoding="utf-8-sig")
    return parse_go_source(text, file_name=Path(file_path).name)


def is_build_ignored(text: str) -> bool:
    """Report whether a ``//go:build ignore`` constraint precedes the package clause."""
    clause = _PACKAGE_CLAUSE_RE.search(text)
    header = text[: clause.start()] if clause else text
    return _BUILD_IGNORE_RE.search(header) is not None
