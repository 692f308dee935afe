import os

import pytest

from go2proto.classifier import ANY_TYPE
from go2proto.errors import OutputError
from go2proto.generator.proto_generator import (
    escape_quotes,
    generate_proto,
    needs_any_import,
    needs_tagger_import,
    write_proto,
)
from go2proto.models import Field, Message


def _field(name: str, type_name: str, order: int, **kwargs) -> Field:
    return Field(
        native_type_name=type_name,
        native_field_name=name[:1].upper() + name[1:],
        field_name=name,
        type_name=type_name,
        order=order,
        **kwargs,
    )


def _address_person():
    address = Message(
        type_name="Address",
        native_type_name="Address",
        fields=[_field("street", "string", 1), _field("city", "string", 2)],
    )
    person = Message(
        type_name="Person",
        native_type_name="Person",
        fields=[
            _field("name", "string", 1, tags='json:"name"'),
            _field("home", "Address", 2),
            _field("tags", "string", 3, is_repeated=True),
        ],
    )
    return [person, address]


class TestGenerateProto:
    def test_address_person_output(self):
        expected = (
            'syntax = "proto3";\n'
            "\n"
            "package proto;\n"
            "\n"
            "message Address {\n"
            "  string street = 1;\n"
            "  string city = 2;\n"
            "}\n"
            "\n"
            "message Person {\n"
            "  string name = 1;\n"
            "  Address home = 2;\n"
            "  repeated string tags = 3;\n"
            "}\n"
        )
        assert generate_proto(_address_person()) == expected

    def test_tags_emitted_when_enabled(self):
        output = generate_proto(_address_person(), use_tags=True)
        assert 'import "tagger/tagger.proto";\n' in output
        assert '  string name = 1 [(tagger.tags) = "json:\\"name\\""];\n' in output
        # untagged fields stay bare
        assert "  string street = 1;\n" in output

    def test_tags_suppressed_when_disabled(self):
        output = generate_proto(_address_person(), use_tags=False)
        assert "tagger" not in output
        assert "json" not in output

    def test_tagger_import_needs_a_tagged_field(self):
        msg = Message(type_name="Plain", native_type_name="Plain", fields=[_field("x", "int64", 1)])
        output = generate_proto([msg], use_tags=True)
        assert "import" not in output

    def test_any_import(self):
        msg = Message(
            type_name="Envelope",
            native_type_name="Envelope",
            fields=[_field("payload", ANY_TYPE, 1)],
        )
        output = generate_proto([msg])
        assert output.startswith(
            'syntax = "proto3";\n\npackage proto;\n\nimport "google/protobuf/any.proto";\n\nmessage Envelope {\n'
        )
        assert "  google.protobuf.Any payload = 1;\n" in output

    def test_both_imports_ordered(self):
        msg = Message(
            type_name="Envelope",
            native_type_name="Envelope",
            fields=[_field("payload", ANY_TYPE, 1, tags='json:"p"')],
        )
        output = generate_proto([msg], use_tags=True)
        assert (
            'package proto;\n\nimport "tagger/tagger.proto";\nimport "google/protobuf/any.proto";\n\n'
            in output
        )

    def test_map_fields(self):
        msg = Message(
            type_name="Registry",
            native_type_name="Registry",
            fields=[
                _field("byName", "Address", 1, is_map=True, map_key="string"),
                _field("counts", "double", 2, is_map=True, map_key="int64"),
            ],
        )
        output = generate_proto([msg])
        assert "  map<string, Address> byName = 1;\n" in output
        assert "  map<int64, double> counts = 2;\n" in output

    def test_messages_sorted_by_name(self):
        names = ["Zebra", "Apple_Core", "Apple", "Mango"]
        msgs = [Message(type_name=n, native_type_name=n) for n in names]
        output = generate_proto(msgs)
        positions = [output.index(f"message {n} {{") for n in sorted(names)]
        assert positions == sorted(positions)

    def test_empty_message(self):
        output = generate_proto([Message(type_name="Empty", native_type_name="Empty")])
        assert output.endswith("\nmessage Empty {\n}\n")


class TestImportChecks:
    def test_needs_tagger_import(self):
        msgs = _address_person()
        assert needs_tagger_import(msgs, True)
        assert not needs_tagger_import(msgs, False)

    def test_needs_any_import(self):
        assert not needs_any_import(_address_person())

    def test_escape_quotes(self):
        assert escape_quotes('json:"a" xml:"b"') == 'json:\\"a\\" xml:\\"b\\"'


class TestWriteProto:
    def test_writes_file_and_returns_absolute_path(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        written = write_proto("./out.proto", _address_person())

        assert written == os.path.join(os.getcwd(), "out.proto")
        assert (tmp_path / "out.proto").read_text() == generate_proto(_address_person())
        # no temporary files left next to the output
        assert os.listdir(tmp_path) == ["out.proto"]

    def test_overwrites_existing_file(self, tmp_path):
        target = tmp_path / "out.proto"
        target.write_text("stale")
        write_proto(str(target), _address_person())
        assert target.read_text().startswith('syntax = "proto3";')

    def test_missing_directory(self, tmp_path):
        target = tmp_path / "missing" / "out.proto"
        with pytest.raises(OutputError, match="Unable to create file"):
            write_proto(str(target), _address_person())
        assert not (tmp_path / "missing").exists()
