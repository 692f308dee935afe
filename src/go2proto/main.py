from __future__ import annotations

import argparse
import os
import sys
from typing import List

from go2proto.errors import ConfigError, Go2ProtoError, NoMessagesError
from go2proto.generator.proto_generator import write_proto
from go2proto.message_map import get_messages


def _check_output_folder(output_path: str) -> None:
    """The folder receiving the output file must already exist."""
    output_folder = os.path.dirname(output_path) or "."
    if not os.path.exists(output_folder):
        raise ConfigError(f"Output folder {output_folder} does not exist")
    if not os.path.isdir(output_folder):
        raise ConfigError(f"{output_folder} is not a directory")


def run(
    input_paths: List[str],
    name_filter: str = "",
    output_path: str = "./output.proto",
    use_tags: bool = False,
) -> str:
    """Main pipeline: load packages, build messages, write the proto file.

    Returns the absolute path of the written file.
    """
    # 1. Validate options before any analysis
    input_paths = [p for p in (p.strip() for p in input_paths) if p]
    if not input_paths:
        raise ConfigError("No input paths given")
    _check_output_folder(output_path)

    # 2. Load, resolve and filter
    msgs = get_messages(input_paths, name_filter)
    if not msgs:
        raise NoMessagesError("No messages were found")

    print(f"Found {len(msgs)} message(s)")
    for msg in msgs:
        print(f"  {msg.type_name}: {len(msg.fields)} field(s)")

    # 3. Write
    abs_output_path = write_proto(output_path, msgs, use_tags)
    print(f"Output file written to {abs_output_path}")
    return abs_output_path


def main():
    parser = argparse.ArgumentParser(
        description="Generate a proto3 schema from the structs of Go packages",
    )
    parser.add_argument(
        "-p",
        "--paths",
        default="",
        help='Comma-separated paths of package directories to analyse for structs. '
        'Relative paths ("./example/in") are allowed; "dir/..." includes sub-packages.',
    )
    parser.add_argument(
        "-f",
        "--filter",
        default="",
        help="Filter by struct names.",
    )
    parser.add_argument(
        "-o",
        "--output",
        default="./output.proto",
        help="Protobuf output file path. The output directory must exist.",
    )
    parser.add_argument(
        "-t",
        "--tags",
        action="store_true",
        help="Add import tagger/tagger.proto and write tag extensions if any of the structs are tagged.",
    )

    args = parser.parse_args()

    if not args.paths.strip():
        parser.print_help()
        sys.exit(1)

    try:
        run(args.paths.split(","), args.filter, args.output, args.tags)
    except Go2ProtoError as e:
        print(f"FATAL: {e}", file=sys.stderr)
        sys.exit(1)
