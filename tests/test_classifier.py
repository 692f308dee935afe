import pytest

from go2proto.classifier import ANY_TYPE, FieldKind, classify_field, protobuf_type, resolve_record
from go2proto.loader import load_packages
from go2proto.parser.go_ast import GoNamedType

SOURCE = """\
package shapes

type Point struct {
	X int
}

type Points []*Point
type Lookup map[string]Point
type Ref = *Point
type Label string

type Holder struct {
	P       Point
	Ps      Points
	L       Lookup
	R       Ref
	Name    Label
	Blob    []byte
	Any     interface{}
	Inline  struct{ Y int }
	Matrix  [][]float64
	Fn      func(int) error
	BadKey  map[Point]int
}
"""


@pytest.fixture
def holder(tmp_path):
    directory = tmp_path / "shapes"
    directory.mkdir()
    (directory / "shapes.go").write_text(SOURCE)
    symbols = load_packages([str(directory)])
    definition = symbols.packages[0].definitions["Holder"]
    fields = {f.names[0]: f.type for f in definition.type.fields}
    return symbols, definition, fields


class TestProtobufType:
    @pytest.mark.parametrize(
        "go_type,expected",
        [("int", "int64"), ("float32", "float"), ("float64", "double"), ("uint32", "uint32"), ("string", "string")],
    )
    def test_scalar_names(self, go_type, expected):
        assert protobuf_type(go_type) == expected


class TestClassifyField:
    def _classify(self, holder, name):
        symbols, definition, fields = holder
        return classify_field(symbols, fields[name], definition)

    def test_message_reference(self, holder):
        shape = self._classify(holder, "P")
        assert (shape.kind, shape.type_name) == (FieldKind.MESSAGE, "Point")
        assert shape.record.name == "Point"
        assert not shape.is_anonymous

    def test_named_slice_is_repeated(self, holder):
        shape = self._classify(holder, "Ps")
        assert (shape.kind, shape.type_name) == (FieldKind.REPEATED, "Point")

    def test_named_map(self, holder):
        shape = self._classify(holder, "L")
        assert (shape.kind, shape.map_key, shape.type_name) == (FieldKind.MAP, "string", "Point")

    def test_alias_to_pointer(self, holder):
        shape = self._classify(holder, "R")
        assert (shape.kind, shape.type_name) == (FieldKind.MESSAGE, "Point")

    def test_named_basic(self, holder):
        shape = self._classify(holder, "Name")
        assert (shape.kind, shape.type_name) == (FieldKind.SCALAR, "string")

    def test_byte_slice_is_repeated_byte(self, holder):
        shape = self._classify(holder, "Blob")
        assert (shape.kind, shape.type_name) == (FieldKind.REPEATED, "byte")

    def test_empty_interface(self, holder):
        shape = self._classify(holder, "Any")
        assert (shape.kind, shape.type_name) == (FieldKind.ANY, ANY_TYPE)

    def test_inline_struct(self, holder):
        shape = self._classify(holder, "Inline")
        assert shape.kind is FieldKind.MESSAGE
        assert shape.is_anonymous
        assert shape.type_name == "struct{Y int}"

    @pytest.mark.parametrize("name", ["Matrix", "Fn", "BadKey"])
    def test_unsupported(self, holder, name):
        assert self._classify(holder, name).kind is FieldKind.UNSUPPORTED


class TestResolveRecord:
    def test_unwraps_named_wrappers(self, holder):
        symbols, definition, _ = holder
        for name in ("Points", "Lookup", "Ref"):
            record = resolve_record(symbols, GoNamedType(name=name), definition)
            assert record is not None
            assert record.name == "Point"

    def test_non_struct_has_no_record(self, holder):
        symbols, definition, _ = holder
        assert resolve_record(symbols, GoNamedType(name="Label"), definition) is None
        assert resolve_record(symbols, GoNamedType(name="int"), definition) is None
