"""Build the set of protobuf messages described by loaded Go packages."""

from __future__ import annotations

from typing import Dict, List, Set

from go2proto.classifier import FieldKind, Record, classify_field, resolve_record
from go2proto.loader import SymbolTable, load_packages
from go2proto.models import Field, Message, proto_field_name
from go2proto.parser.go_ast import GoNamedType


class MessageMap:
    """Messages keyed by canonical type name.

    Construction builds the graph from every exported definition, then runs
    the three naming passes over the whole map:

    1. link anonymous struct messages to the message and field declaring them,
    2. name each of them ``<Parent>_<FieldName>``, parents first,
    3. point fields at the final names.

    Fields refer to other messages by name only, so entries never hold
    references that a rename could invalidate.
    """

    def __init__(self, symbols: SymbolTable):
        self._symbols = symbols
        self._messages: Dict[str, Message] = {}

        for definition in symbols.definitions():
            record = resolve_record(
                symbols,
                GoNamedType(name=definition.name, line=definition.line, col=definition.col),
                definition,
            )
            # Anonymous structs get promoted where a field declares them.
            if record is not None and not record.is_anonymous:
                self._add_record(record)

        self._link_parents()
        self._resolve_type_names()
        self._propagate_type_names()

    def messages(self) -> List[Message]:
        """All messages, in discovery order."""
        return list(self._messages.values())

    def get(self, native_type_name: str) -> Message | None:
        return self._messages.get(native_type_name)

    def __len__(self) -> int:
        return len(self._messages)

    # -- graph building --

    def _add_record(self, record: Record) -> None:
        if record.name in self._messages:
            return

        message = Message(type_name=record.name, native_type_name=record.name)
        # Registered before its fields are walked so self references terminate.
        self._messages[record.name] = message

        order = 0
        for go_field in record.struct.fields:
            for name in go_field.names:
                if not name[:1].isupper():
                    continue
                shape = classify_field(self._symbols, go_field.type, record.scope)
                if shape.kind is FieldKind.UNSUPPORTED:
                    continue
                order += 1
                message.fields.append(
                    Field(
                        native_type_name=shape.record.name if shape.record else shape.type_name,
                        native_field_name=name,
                        field_name=proto_field_name(name),
                        type_name=shape.type_name,
                        order=order,
                        is_anonymous=shape.is_anonymous,
                        is_repeated=shape.kind is FieldKind.REPEATED,
                        is_map=shape.kind is FieldKind.MAP,
                        map_key=shape.map_key,
                        tags=go_field.tag,
                    )
                )
                if shape.record is not None:
                    self._add_record(shape.record)

    # -- naming passes --

    def _link_parents(self) -> None:
        """Pass 1: record which message and field declare each anonymous message.

        Fields are scanned last to first, so when several fields share one
        anonymous type the earliest declared field names it.
        """
        for message in self._messages.values():
            for f in reversed(message.fields):
                if not f.is_anonymous:
                    continue
                child = self._messages.get(f.native_type_name)
                if child is None:
                    continue
                child.parent = message
                child.parental_field_name = f.native_field_name

    def _resolve_type_names(self) -> None:
        """Pass 2: give every anonymous message its hierarchical name.

        Names of top-level types are fixed. A promoted name already in use
        gets the first free numeric suffix (``Outer_Inner_2``).
        """
        taken: Set[str] = {m.type_name for m in self._messages.values() if m.parent is None}
        resolved: Set[str] = set()
        for message in self._messages.values():
            # Collect the unresolved ancestors, stopping at a root, a resolved
            # message or a message already on the chain (a nesting cycle).
            chain: List[Message] = []
            on_chain: Set[str] = set()
            node = message
            while (
                node is not None
                and node.native_type_name not in resolved
                and node.native_type_name not in on_chain
            ):
                chain.append(node)
                on_chain.add(node.native_type_name)
                node = node.parent

            # Name top-down; the top of a cycle keeps its canonical name.
            for node in reversed(chain):
                parent = node.parent
                if parent is not None and parent.native_type_name in resolved:
                    node.type_name = _unique_name(
                        f"{parent.type_name}_{node.parental_field_name}", taken
                    )
                else:
                    taken.add(node.type_name)
                resolved.add(node.native_type_name)

    def _propagate_type_names(self) -> None:
        """Pass 3: fields typed by an anonymous struct take its final name."""
        for message in self._messages.values():
            for f in message.fields:
                if not f.is_anonymous:
                    continue
                target = self._messages.get(f.native_type_name)
                if target is not None:
                    f.type_name = target.type_name


def _unique_name(name: str, taken: Set[str]) -> str:
    """Reserve ``name``, or ``name_2``, ``name_3``... when it is taken."""
    candidate = name
    n = 2
    while candidate in taken:
        candidate = f"{name}_{n}"
        n += 1
    taken.add(candidate)
    return candidate


def get_messages(input_paths: List[str], name_filter: str = "") -> List[Message]:
    """Return the messages for the Go packages at ``input_paths``, sorted by name.

    Only messages whose final name contains ``name_filter`` are kept; an empty
    filter keeps them all.
    """
    symbols = load_packages(input_paths)
    msgs = [
        m
        for m in MessageMap(symbols).messages()
        if name_filter == "" or name_filter in m.type_name
    ]
    msgs.sort(key=lambda m: m.type_name)
    return msgs
