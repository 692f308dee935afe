"""Recursive descent parser for Go source files.

Consumes a token stream from go_tokenizer and produces Go AST nodes. Only the
package clause, imports and type declarations are parsed; function, variable
and constant declarations are skipped.
"""

from __future__ import annotations

from typing import List, Optional

from .go_ast import (
    GoArrayType,
    GoChanType,
    GoFile,
    GoFuncType,
    GoImport,
    GoInterfaceType,
    GoMapType,
    GoNamedType,
    GoPointerType,
    GoSliceType,
    GoStructField,
    GoStructType,
    GoType,
    GoTypeSpec,
)
from .go_tokenizer import GoParseError, GoToken, GoTokenType

_OPENERS = {GoTokenType.LPAREN, GoTokenType.LBRACKET, GoTokenType.LBRACE}
_CLOSERS = {GoTokenType.RPAREN, GoTokenType.RBRACKET, GoTokenType.RBRACE}

# Tokens that can begin a type expression.
_TYPE_STARTS = {
    GoTokenType.IDENT,
    GoTokenType.STAR,
    GoTokenType.LBRACKET,
    GoTokenType.LPAREN,
    GoTokenType.MAP,
    GoTokenType.CHAN,
    GoTokenType.ARROW,
    GoTokenType.FUNC,
    GoTokenType.STRUCT,
    GoTokenType.INTERFACE,
}


def _error(message: str, token: GoToken) -> GoParseError:
    return GoParseError(message, token.line, token.col)


class GoParser:
    """Recursive descent parser for Go source files."""

    def __init__(self, tokens: List[GoToken], file_name: str = ""):
        self._tokens = tokens
        self._pos = 0
        self._file_name = file_name

    # -- public API --

    def parse(self) -> GoFile:
        """Parse the full token stream into a GoFile AST."""
        self._skip_semicolons()
        self._expect(GoTokenType.PACKAGE)
        package = self._expect(GoTokenType.IDENT).value
        self._expect_terminator()

        go_file = GoFile(package=package, file_name=self._file_name)

        while not self._at_end():
            tt = self._peek().type

            if tt == GoTokenType.SEMICOLON:
                self._advance()
            elif tt == GoTokenType.IMPORT:
                go_file.imports.extend(self._parse_import_decl())
            elif tt == GoTokenType.TYPE:
                go_file.type_specs.extend(self._parse_type_decl())
            else:
                # func, var, const: not needed for schema generation
                self._skip_declaration()

        return go_file

    # -- import parsing --

    def _parse_import_decl(self) -> List[GoImport]:
        """Parse ``import "p"`` or ``import ( ... )``."""
        self._expect(GoTokenType.IMPORT)
        if self._consume_if(GoTokenType.LPAREN) is None:
            imports = [self._parse_import_spec()]
            self._expect_terminator()
            return imports

        imports: List[GoImport] = []
        self._skip_semicolons()
        while self._peek().type != GoTokenType.RPAREN:
            imports.append(self._parse_import_spec())
            if self._peek().type != GoTokenType.RPAREN:
                self._expect(GoTokenType.SEMICOLON)
            self._skip_semicolons()
        self._expect(GoTokenType.RPAREN)
        self._expect_terminator()
        return imports

    def _parse_import_spec(self) -> GoImport:
        """Parse ``[alias | . | _] "path"``."""
        alias: Optional[str] = None
        if self._peek().type == GoTokenType.IDENT:
            alias = self._advance().value
        elif self._peek().type == GoTokenType.DOT:
            alias = self._advance().value
        path = self._expect(GoTokenType.STRING).value
        return GoImport(path=path, alias=alias)

    # -- type declaration parsing --

    def _parse_type_decl(self) -> List[GoTypeSpec]:
        """Parse ``type Spec`` or ``type ( Spec; Spec; ... )``."""
        self._expect(GoTokenType.TYPE)
        if self._consume_if(GoTokenType.LPAREN) is None:
            spec = self._parse_type_spec()
            self._expect_terminator()
            return [spec]

        specs: List[GoTypeSpec] = []
        self._skip_semicolons()
        while self._peek().type != GoTokenType.RPAREN:
            specs.append(self._parse_type_spec())
            if self._peek().type != GoTokenType.RPAREN:
                self._expect(GoTokenType.SEMICOLON)
            self._skip_semicolons()
        self._expect(GoTokenType.RPAREN)
        self._expect_terminator()
        return specs

    def _parse_type_spec(self) -> GoTypeSpec:
        """Parse one type spec.

        Handles three forms:
        1. Name Type              -> defined type
        2. Name = Type            -> alias
        3. Name[T any, ...] Type  -> generic defined type
        """
        name_tok = self._expect(GoTokenType.IDENT)

        type_params: List[str] = []
        if self._peek().type == GoTokenType.LBRACKET and self._looks_like_type_params():
            type_params = self._parse_type_params()

        is_alias = self._consume_if(GoTokenType.ASSIGN) is not None
        go_type = self._parse_type()
        return GoTypeSpec(
            name=name_tok.value,
            type=go_type,
            is_alias=is_alias,
            type_params=type_params,
            line=name_tok.line,
            col=name_tok.col,
        )

    def _looks_like_type_params(self) -> bool:
        """Tell ``Name[T any]`` from an array type ``Name [N]T`` at a ``[``."""
        first = self._peek_at(1)
        second = self._peek_at(2)
        if first.type != GoTokenType.IDENT:
            return False
        if second.type in (
            GoTokenType.IDENT,
            GoTokenType.COMMA,
            GoTokenType.INTERFACE,
            GoTokenType.TILDE,
            GoTokenType.LBRACKET,
            GoTokenType.MAP,
            GoTokenType.CHAN,
            GoTokenType.FUNC,
        ):
            return True
        # [T *C] is a type parameter list, [N * M] an array length.
        return (
            second.type == GoTokenType.STAR
            and self._peek_at(3).type == GoTokenType.IDENT
            and self._peek_at(4).type != GoTokenType.RBRACKET
        )

    def _parse_type_params(self) -> List[str]:
        """Parse ``[A, B any, C comparable]`` and return the parameter names.

        A name is an identifier directly after ``[`` or a top-level ``,``;
        constraints are skipped.
        """
        self._expect(GoTokenType.LBRACKET)
        names: List[str] = []
        depth = 0
        expect_name = True
        while not self._at_end():
            tok = self._peek()
            if depth == 0 and tok.type == GoTokenType.RBRACKET:
                break
            self._advance()
            if tok.type in _OPENERS:
                depth += 1
            elif tok.type in _CLOSERS:
                depth -= 1
            if depth == 0 and tok.type == GoTokenType.COMMA:
                expect_name = True
                continue
            if expect_name and tok.type == GoTokenType.IDENT:
                names.append(tok.value)
            expect_name = False
        self._expect(GoTokenType.RBRACKET)
        return names

    # -- type expression parsing --

    def _parse_type(self) -> GoType:
        """Parse a type expression."""
        tok = self._peek()
        tt = tok.type

        if tt == GoTokenType.IDENT:
            return self._parse_type_name()

        if tt == GoTokenType.STAR:
            self._advance()
            return GoPointerType(elem=self._parse_type())

        if tt == GoTokenType.LBRACKET:
            self._advance()
            if self._consume_if(GoTokenType.RBRACKET) is not None:
                return GoSliceType(elem=self._parse_type())
            length = self._collect_until(GoTokenType.RBRACKET)
            self._expect(GoTokenType.RBRACKET)
            return GoArrayType(length=length, elem=self._parse_type())

        if tt == GoTokenType.MAP:
            self._advance()
            self._expect(GoTokenType.LBRACKET)
            key = self._parse_type()
            self._expect(GoTokenType.RBRACKET)
            return GoMapType(key=key, value=self._parse_type())

        if tt == GoTokenType.CHAN:
            self._advance()
            if self._consume_if(GoTokenType.ARROW) is not None:
                return GoChanType(elem=self._parse_type(), direction="send")
            return GoChanType(elem=self._parse_type())

        if tt == GoTokenType.ARROW:
            self._advance()
            self._expect(GoTokenType.CHAN)
            return GoChanType(elem=self._parse_type(), direction="recv")

        if tt == GoTokenType.FUNC:
            self._advance()
            return self._parse_func_signature()

        if tt == GoTokenType.STRUCT:
            return self._parse_struct_type()

        if tt == GoTokenType.INTERFACE:
            return self._parse_interface_type()

        if tt == GoTokenType.LPAREN:
            self._advance()
            inner = self._parse_type()
            self._expect(GoTokenType.RPAREN)
            return inner

        raise _error(f"Expected type, got {tt.name} ({tok.value!r})", tok)

    def _parse_type_name(self) -> GoNamedType:
        """Parse ``Name``, ``pkg.Name`` and an optional ``[TypeArgs]`` list."""
        first = self._expect(GoTokenType.IDENT)
        named = GoNamedType(name=first.value, line=first.line, col=first.col)

        if self._consume_if(GoTokenType.DOT) is not None:
            named.package = first.value
            named.name = self._expect(GoTokenType.IDENT).value

        if self._peek().type == GoTokenType.LBRACKET and self._peek_at(1).type != GoTokenType.RBRACKET:
            self._advance()  # [
            named.type_args.append(self._parse_type())
            while self._consume_if(GoTokenType.COMMA) is not None:
                if self._peek().type == GoTokenType.RBRACKET:
                    break
                named.type_args.append(self._parse_type())
            self._expect(GoTokenType.RBRACKET)

        return named

    def _parse_func_signature(self) -> GoFuncType:
        """Parse ``(params) [result]`` after the ``func`` keyword."""
        if self._peek().type != GoTokenType.LPAREN:
            raise _error("Expected ( after func", self._peek())
        signature = self._collect_balanced()
        if self._peek().type == GoTokenType.LPAREN:
            signature += " " + self._collect_balanced()
        elif self._peek().type in _TYPE_STARTS:
            signature += " " + self._parse_type().type_string()
        return GoFuncType(signature=signature)

    def _parse_interface_type(self) -> GoInterfaceType:
        """Parse ``interface { ... }``, keeping each element as source text."""
        self._expect(GoTokenType.INTERFACE)
        self._expect(GoTokenType.LBRACE)
        methods: List[str] = []
        self._skip_semicolons()
        while self._peek().type != GoTokenType.RBRACE:
            if self._at_end():
                raise _error("Unterminated interface type", self._peek())
            element = self._collect_until(GoTokenType.SEMICOLON, GoTokenType.RBRACE)
            if element:
                methods.append(element)
            self._skip_semicolons()
        self._expect(GoTokenType.RBRACE)
        return GoInterfaceType(methods=methods)

    # -- struct parsing --

    def _parse_struct_type(self) -> GoStructType:
        """Parse ``struct { FieldDecl; ... }``."""
        self._expect(GoTokenType.STRUCT)
        self._expect(GoTokenType.LBRACE)
        fields: List[GoStructField] = []
        self._skip_semicolons()
        while self._peek().type != GoTokenType.RBRACE:
            fields.append(self._parse_field_decl())
            if self._peek().type != GoTokenType.RBRACE:
                self._expect(GoTokenType.SEMICOLON)
            self._skip_semicolons()
        self._expect(GoTokenType.RBRACE)
        return GoStructType(fields=fields)

    def _parse_field_decl(self) -> GoStructField:
        """Parse a struct field declaration.

        Handles three forms:
        1. A, B Type [tag]    -> named fields sharing one type
        2. Base [tag]         -> embedded field (also pkg.Base, Base[T])
        3. *Base [tag]        -> embedded pointer field
        """
        tok = self._peek()

        if tok.type == GoTokenType.STAR:
            self._advance()
            embedded_type = self._parse_type_name()
            return GoStructField(
                names=[embedded_type.name],
                type=GoPointerType(elem=embedded_type),
                tag=self._parse_optional_tag(),
                embedded=True,
            )

        if tok.type != GoTokenType.IDENT:
            raise _error(f"Expected field name, got {tok.type.name} ({tok.value!r})", tok)

        next_tt = self._peek_at(1).type
        if next_tt in (
            GoTokenType.SEMICOLON,
            GoTokenType.RBRACE,
            GoTokenType.STRING,
            GoTokenType.DOT,
        ):
            embedded_type = self._parse_type_name()
            return GoStructField(
                names=[embedded_type.name],
                type=embedded_type,
                tag=self._parse_optional_tag(),
                embedded=True,
            )

        names = [self._advance().value]
        while self._consume_if(GoTokenType.COMMA) is not None:
            names.append(self._expect(GoTokenType.IDENT).value)
        field_type = self._parse_type()
        return GoStructField(names=names, type=field_type, tag=self._parse_optional_tag())

    def _parse_optional_tag(self) -> str:
        tag = self._consume_if(GoTokenType.STRING)
        return tag.value if tag is not None else ""

    # -- skip / recovery helpers --

    def _skip_declaration(self) -> None:
        """Skip tokens up to and including the next top-level semicolon."""
        depth = 0
        while not self._at_end():
            tok = self._advance()
            if tok.type in _OPENERS:
                depth += 1
            elif tok.type in _CLOSERS:
                depth -= 1
            elif tok.type == GoTokenType.SEMICOLON and depth <= 0:
                return

    def _collect_balanced(self) -> str:
        """Consume a bracketed group starting at the current opener; return its text."""
        values: List[str] = []
        depth = 0
        while not self._at_end():
            tok = self._advance()
            if tok.type in _OPENERS:
                depth += 1
            elif tok.type in _CLOSERS:
                depth -= 1
            if tok.type != GoTokenType.SEMICOLON or tok.value == ";":
                values.append(tok.value)
            if depth == 0:
                break
        return _join_tokens(values)

    def _collect_until(self, *stops: GoTokenType) -> str:
        """Consume tokens up to (not including) a top-level stop token; return their text."""
        values: List[str] = []
        depth = 0
        while not self._at_end():
            tok = self._peek()
            if depth == 0 and tok.type in stops:
                break
            if tok.type in _OPENERS:
                depth += 1
            elif tok.type in _CLOSERS:
                if depth == 0:
                    break
                depth -= 1
            self._advance()
            if tok.type != GoTokenType.SEMICOLON or tok.value == ";":
                values.append(tok.value)
        return _join_tokens(values)

    def _skip_semicolons(self) -> None:
        while self._peek().type == GoTokenType.SEMICOLON:
            self._advance()

    def _expect_terminator(self) -> None:
        """A declaration ends with a semicolon, or at end of input."""
        if not self._at_end():
            self._expect(GoTokenType.SEMICOLON)

    # -- token helpers --

    def _peek(self) -> GoToken:
        return self._tokens[self._pos]

    def _peek_at(self, offset: int) -> GoToken:
        idx = self._pos + offset
        if idx < len(self._tokens):
            return self._tokens[idx]
        return self._tokens[-1]  # EOF

    def _advance(self) -> GoToken:
        tok = self._tokens[self._pos]
        if tok.type != GoTokenType.EOF:
            self._pos += 1
        return tok

    def _expect(self, expected: GoTokenType) -> GoToken:
        tok = self._peek()
        if tok.type != expected:
            raise _error(
                f"Expected {expected.name}, got {tok.type.name} ({tok.value!r})",
                tok,
            )
        return self._advance()

    def _consume_if(self, expected: GoTokenType) -> GoToken | None:
        if self._peek().type == expected:
            return self._advance()
        return None

    def _at_end(self) -> bool:
        return self._tokens[self._pos].type == GoTokenType.EOF


def _join_tokens(values: List[str]) -> str:
    """Re-assemble token values into compact source text."""
    text = ""
    for value in values:
        if text and (text[-1].isalnum() or text[-1] == "_") and (value[:1].isalnum() or value[:1] == "_"):
            text += " "
        elif text.endswith(","):
            text += " "
        text += value
    return text
