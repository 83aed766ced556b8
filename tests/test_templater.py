import pytest

from avrorustgen.errors import TemplateError
from avrorustgen.schema import (
    EnumSchema,
    FixedSchema,
    Name,
    Primitive,
    RecordField,
    RecordSchema,
    Ref,
    UnionSchema,
    parse_list,
    parse_str,
)
from avrorustgen.state import GenState
from avrorustgen.templater import Templater

ENUM_DERIVE = (
    "#[derive(Debug, PartialEq, Eq, Hash, PartialOrd, Ord, Clone, "
    "serde::Deserialize, serde::Serialize)]\n"
)


def _derive(eq=False, extra=()):
    parts = ["Debug", "PartialEq"] + (["Eq"] if eq else []) + ["Clone"]
    parts += ["serde::Deserialize", "serde::Serialize", *extra]
    return "#[derive(" + ", ".join(parts) + ")]\n"


def _attr(kind, value):
    return f'    #[serde({kind} = "{value}")]\n'


def _field(name, rust_type):
    return f"    pub {name}: {rust_type},\n"


def _default_fn(fn_name, rust_type, value):
    return f"\n#[inline(always)]\nfn {fn_name}() -> {rust_type} {{ {value} }}\n"


def _variant(original, variant):
    return _attr("rename", original) + f"    {variant},\n"


def _record(text, templater=None, use_chrono_dates=False):
    schema = parse_str(text)
    state = GenState([schema], use_chrono_dates)
    return (templater or Templater()).str_record(schema, state)


def test_enum_with_doc():
    schema = EnumSchema(
        Name("Colors"), ("RED", "GREEN", "BLUE"), doc="Roses are red violets are blue."
    )
    expected = (
        "\n/// Roses are red violets are blue.\n"
        + ENUM_DERIVE
        + "pub enum Colors {\n"
        + _variant("RED", "Red")
        + _variant("GREEN", "Green")
        + _variant("BLUE", "Blue")
        + "}\n"
    )
    assert Templater().str_enum(schema) == expected


def test_enum_multiline_doc():
    schema = EnumSchema(Name("Colors"), ("RED",), doc="Roses are red\nviolets are blue.")
    result = Templater().str_enum(schema)
    assert result.startswith("\n/// Roses are red\n/// violets are blue.\n" + ENUM_DERIVE)
    assert result.endswith("pub enum Colors {\n" + _variant("RED", "Red") + "}\n")


def test_enum_sanitize():
    schema = EnumSchema(
        Name("ContextScopeKind"),
        ("self", "sources", "targets", "sourcesOrSelf", "targetsOrSelf"),
    )
    expected = (
        "\n"
        + ENUM_DERIVE
        + "pub enum ContextScopeKind {\n"
        + _variant("self", "r#Self_")
        + _variant("sources", "Sources")
        + _variant("targets", "Targets")
        + _variant("sourcesOrSelf", "SourcesOrSelf")
        + _variant("targetsOrSelf", "TargetsOrSelf")
        + "}\n"
    )
    assert Templater().str_enum(schema) == expected


def test_enum_without_symbols_fails():
    with pytest.raises(TemplateError, match="No symbol for enum"):
        Templater().str_enum(EnumSchema(Name("Empty"), ()))


def test_fixed():
    assert Templater().str_fixed(FixedSchema(Name("md5"), 16)) == "\npub type Md5 = [u8; 16];\n"


def test_fixed_requires_fixed_schema():
    with pytest.raises(TemplateError, match="Requires Schema::Fixed"):
        Templater().str_fixed(Primitive.INT)


SIMPLE = """
{"type": "record", "name": "test", "fields": [
  {"name": "a", "type": "long", "default": 42},
  {"name": "b", "type": "string"}
]}
"""


def test_simple_record():
    expected = (
        "\n"
        + _derive(eq=True)
        + "pub struct Test {\n"
        + _attr("default", "default_test_a")
        + _field("a", "i64")
        + _field("b", "String")
        + "}\n"
        + _default_fn("default_test_a", "i64", "42")
    )
    assert _record(SIMPLE) == expected


def test_simple_record_with_builders():
    result = _record(SIMPLE, Templater(derive_builders=True))
    assert result.startswith(
        "\n"
        + _derive(eq=True, extra=("derive_builder::Builder",))
        + "#[builder(setter(into))]\npub struct Test {\n"
    )


def test_simple_record_with_schemas():
    result = _record(SIMPLE, Templater(derive_schemas=True))
    assert result.startswith(
        "\n" + _derive(eq=True, extra=("apache_avro::AvroSchema",)) + "pub struct Test {\n"
    )


RECORD = r"""
{"type": "record", "name": "User", "fields": [
  {"name": "as", "type": "string"},
  {"name": "favoriteNumber", "type": "int", "default": 7},
  {"name": "likes_pizza", "type": "boolean", "default": false},
  {"name": "b", "type": "bytes", "default": "\u00ff"},
  {"name": "union_b", "type": ["null", "bytes"], "default": null},
  {"name": "a-bool", "type": {"type": "array", "items": "boolean"}, "default": [true, false]},
  {"name": "a-i32", "type": {"type": "array", "items": "int"}, "default": [12, -1]},
  {"name": "m-f64", "type": {"type": "map", "values": "double"}}
]}
"""


def test_record():
    expected = (
        "\n"
        + _derive()
        + "pub struct User {\n"
        + _field("r#as", "String")
        + _attr("rename", "favoriteNumber")
        + _attr("default", "default_user_favorite_number")
        + _field("favorite_number", "i32")
        + _attr("default", "default_user_likes_pizza")
        + _field("likes_pizza", "bool")
        + _attr("with", "serde_bytes")
        + _attr("default", "default_user_b")
        + _field("b", "Vec<u8>")
        + _attr("with", "serde_bytes")
        + _attr("default", "default_user_union_b")
        + _field("union_b", "Option<Vec<u8>>")
        + _attr("rename", "a-bool")
        + _attr("default", "default_user_a_bool")
        + _field("a_bool", "Vec<bool>")
        + _attr("rename", "a-i32")
        + _attr("default", "default_user_a_i32")
        + _field("a_i32", "Vec<i32>")
        + _attr("rename", "m-f64")
        + _field("m_f64", "::std::collections::HashMap<String, f64>")
        + "}\n"
        + _default_fn("default_user_favorite_number", "i32", "7")
        + _default_fn("default_user_likes_pizza", "bool", "false")
        + _default_fn("default_user_b", "Vec<u8>", "vec![195, 191]")
        + _default_fn("default_user_union_b", "Option<Vec<u8>>", "None")
        + _default_fn("default_user_a_bool", "Vec<bool>", "vec![true, false]")
        + _default_fn("default_user_a_i32", "Vec<i32>", "vec![12, -1]")
    )
    assert _record(RECORD) == expected


NULLABLE = """
{"type": "record", "name": "test", "fields": [
  {"name": "a", "type": "long", "default": 42},
  {"name": "b-b", "type": "string", "default": "na"},
  {"name": "c", "type": ["null", "int"], "default": null}
]}
"""


def _nullable_fn(field, rust_type):
    return (
        "\n#[inline(always)]\n"
        f"fn nullable_test_{field}<'de, D>(deserializer: D) -> Result<{rust_type}, D::Error>\n"
        "where\n"
        "    D: serde::Deserializer<'de>,\n"
        "{\n"
        "    use serde::Deserialize;\n"
        "    let opt = Option::deserialize(deserializer)?;\n"
        f"    Ok(opt.unwrap_or_else(|| default_test_{field}() ))\n"
        "}\n"
    )


def test_nullable_record():
    expected = (
        "\n"
        + _derive(eq=True)
        + "#[serde(default)]\n"
        + "pub struct Test {\n"
        + _attr("deserialize_with", "nullable_test_a")
        + _field("a", "i64")
        + _attr("rename", "b-b")
        + _attr("deserialize_with", "nullable_test_b_b")
        + _field("b_b", "String")
        + _field("c", "Option<i32>")
        + "}\n"
        + _nullable_fn("a", "i64")
        + _nullable_fn("b_b", "String")
        + _default_fn("default_test_a", "i64", "42")
        + _default_fn("default_test_b_b", "String", '"na".to_owned()')
        + _default_fn("default_test_c", "Option<i32>", "None")
        + "\nimpl Default for Test {\n"
        + "    fn default() -> Test {\n"
        + "        Test {\n"
        + "            a: default_test_a(),\n"
        + "            b_b: default_test_b_b(),\n"
        + "            c: default_test_c(),\n"
        + "        }\n"
        + "    }\n"
        + "}\n"
    )
    assert _record(NULLABLE, Templater(nullable=True)) == expected


LOGICAL_DATES = """
{"type": "record", "name": "DateLogicalType", "doc": "Date type", "fields": [
  {"name": "birthday", "type": {"type": "int", "logicalType": "date"}},
  {"name": "meeting_time",
   "type": ["null", {"type": "long", "logicalType": "timestamp-millis"}],
   "default": null},
  {"name": "release_datetime_micro",
   "type": {"type": "long", "logicalType": "timestamp-micros"},
   "default": 1570903062000000}
]}
"""


def test_logical_dates_with_chrono():
    naive = "chrono::NaiveDateTime"
    expected = (
        "\n/// Date type\n"
        + _derive(eq=True)
        + "pub struct DateLogicalType {\n"
        + _attr("with", "chrono::naive::serde::ts_seconds")
        + _field("birthday", naive)
        + _attr("default", "default_datelogicaltype_meeting_time")
        + _field("meeting_time", f"Option<{naive}>")
        + _attr("with", "chrono::naive::serde::ts_microseconds")
        + _attr("default", "default_datelogicaltype_release_datetime_micro")
        + _field("release_datetime_micro", naive)
        + "}\n"
        + _default_fn("default_datelogicaltype_meeting_time", f"Option<{naive}>", "None")
        + _default_fn(
            "default_datelogicaltype_release_datetime_micro",
            naive,
            f"{naive}::from_timestamp_micros(1570903062000000).unwrap()",
        )
    )
    result = _record(LOGICAL_DATES, Templater(use_chrono_dates=True), use_chrono_dates=True)
    assert result == expected


def test_nullable_bytes_uses_wrapper():
    text = r"""
{"type": "record", "name": "BytesData", "fields": [
  {"name": "b", "type": "bytes", "default": "\u00ff"},
  {"name": "nb", "type": ["null", "bytes"], "default": null}
]}
"""
    result = _record(text, Templater(nullable=True))
    assert _attr("serialize_with", "serde_bytes::serialize") + _field("b", "Vec<u8>") in result
    assert 'struct Wrapper(#[serde(with = "serde_bytes")] Vec<u8>);' in result
    assert _default_fn("default_bytesdata_b", "Vec<u8>", "vec![195, 191]") in result


def test_record_with_reference():
    schema_a = '{"name": "A", "type": "record", "fields": [{"name": "field_one", "type": "float"}]}'
    schema_b = '{"name": "B", "type": "record", "fields": [{"name": "field_one", "type": "A"}]}'
    a, b = parse_list([schema_a, schema_b])
    state = GenState([b, a])
    templater = Templater()
    assert templater.str_record(b, state) == (
        "\n" + _derive() + "pub struct B {\n" + _field("field_one", "A") + "}\n"
    )
    assert templater.str_record(a, state) == (
        "\n" + _derive() + "pub struct A {\n" + _field("field_one", "f32") + "}\n"
    )


def test_record_with_unresolved_reference_fails():
    schema = RecordSchema(Name("R"), (RecordField("x", Ref(Name("Missing"))),))
    with pytest.raises(TemplateError, match="cannot be resolved"):
        Templater().str_record(schema, GenState([]))


def test_record_with_null_field_fails():
    schema = RecordSchema(Name("R"), (RecordField("x", Primitive.NULL),))
    with pytest.raises(TemplateError, match="Invalid use of Schema::Null"):
        Templater().str_record(schema, GenState([schema]))


def test_record_requires_record_schema():
    with pytest.raises(TemplateError, match="Requires Schema::Record"):
        Templater().str_record(Primitive.STRING, GenState([]))


MULTI = UnionSchema(
    (Primitive.NULL, Primitive.STRING, Primitive.LONG, Primitive.DOUBLE, Primitive.BOOLEAN)
)
MULTI_NAME = "UnionStringLongDoubleBoolean"
UNION_DOC = "\n/// Auto-generated type for unnamed Avro union variants.\n"


def _conversions(name, rust_type, variant):
    return (
        "\n"
        f"impl From<{rust_type}> for {name} {{\n"
        f"    fn from(v: {rust_type}) -> Self {{\n"
        f"        Self::{variant}(v)\n"
        "    }\n"
        "}\n"
        "\n"
        f"impl TryFrom<{name}> for {rust_type} {{\n"
        f"    type Error = {name};\n"
        "\n"
        f"    fn try_from(v: {name}) -> Result<Self, Self::Error> {{\n"
        f"        if let {name}::{variant}(v) = v {{\n"
        "            Ok(v)\n"
        "        } else {\n"
        "            Err(v)\n"
        "        }\n"
        "    }\n"
        "}\n"
    )


def _enum_body(name, symbols):
    return f"pub enum {name} {{\n" + "".join(f"    {s},\n" for s in symbols) + "}\n"


def test_multi_valued_union():
    pairs = [("String", "String"), ("i64", "Long"), ("f64", "Double"), ("bool", "Boolean")]
    expected = (
        UNION_DOC
        + _derive()
        + _enum_body(
            MULTI_NAME, ["String(String)", "Long(i64)", "Double(f64)", "Boolean(bool)"]
        )
        + "".join(_conversions(MULTI_NAME, rust_type, variant) for rust_type, variant in pairs)
    )
    assert Templater().str_union_enum(MULTI, GenState([MULTI])) == expected


def test_multi_valued_union_with_avro_rs_unions():
    result = Templater(use_avro_rs_unions=True).str_union_enum(MULTI, GenState([MULTI]))
    assert result.startswith(UNION_DOC + "#[derive(Debug, PartialEq, Clone, serde::Serialize)]\n")
    assert "fn visit_str<E>(self, value: &str) -> Result<Self::Value, E>" in result
    assert f"Ok({MULTI_NAME}::String(value.into()))" in result
    assert f"Ok({MULTI_NAME}::Boolean(value.into()))" in result
    assert f'formatter.write_str("a {MULTI_NAME}")' in result
    assert result.endswith(f"deserializer.deserialize_any({MULTI_NAME}Visitor)\n    }}\n}}\n")


def test_union_of_ints_is_eq():
    union = UnionSchema((Primitive.INT, Primitive.LONG))
    result = Templater().str_union_enum(union, GenState([union]))
    assert result.startswith(
        UNION_DOC + _derive(eq=True) + _enum_body("UnionIntLong", ["Int(i32)", "Long(i64)"])
    )


def test_optional_union_enum_fails():
    union = UnionSchema((Primitive.NULL, Primitive.INT))
    with pytest.raises(TemplateError, match="Attempt to generate a union enum for an optional"):
        Templater().str_union_enum(union, GenState([union]))


def test_single_union_enum_fails():
    union = UnionSchema((Primitive.INT,))
    with pytest.raises(TemplateError, match="single element"):
        Templater().str_union_enum(union, GenState([union]))