from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import List

from jinja2 import Environment, FileSystemLoader

from go2proto.classifier import ANY_TYPE
from go2proto.errors import OutputError
from go2proto.models import Message


def escape_quotes(tags: str) -> str:
    return tags.replace('"', '\\"')


def needs_tagger_import(messages: List[Message], use_tags: bool) -> bool:
    """True when tags are enabled and at least one field carries a tag."""
    if not use_tags:
        return False
    return any(f.tags for msg in messages for f in msg.fields)


def needs_any_import(messages: List[Message]) -> bool:
    """True when at least one field resolved to google.protobuf.Any."""
    return any(f.type_name == ANY_TYPE for msg in messages for f in msg.fields)


def _get_template_env() -> Environment:
    template_dir = Path(__file__).parent.parent / "templates"
    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        keep_trailing_newline=True,
        trim_blocks=True,
    )
    env.filters["escape_quotes"] = escape_quotes
    return env


def generate_proto(messages: List[Message], use_tags: bool = False) -> str:
    """Render messages as a proto3 file, messages sorted by name."""
    env = _get_template_env()
    template = env.get_template("proto.proto.j2")

    ordered = sorted(messages, key=lambda m: m.type_name)
    return template.render(
        messages=ordered,
        use_tags=use_tags,
        import_tagger=needs_tagger_import(ordered, use_tags),
        import_any=needs_any_import(ordered),
    )


def write_proto(output_path: str, messages: List[Message], use_tags: bool = False) -> str:
    """Write the rendered proto file to ``output_path``.

    The text is written to a temporary file next to the target and moved into
    place, so a failed write never leaves a truncated file behind. Returns the
    absolute path written.
    """
    abs_path = os.path.abspath(output_path)
    source = generate_proto(messages, use_tags)

    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(
            prefix=".go2proto-", suffix=".tmp", dir=os.path.dirname(abs_path)
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(source)
        # mkstemp creates the file owner-only
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, abs_path)
    except OSError as e:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise OutputError(f"Unable to create file {abs_path} : {e}") from e

    return abs_path
