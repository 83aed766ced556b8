"""Rust type names for nested Avro schemas."""

from __future__ import annotations

from typing import Dict

from .errors import TemplateError
from .naming import sanitize, to_upper_camel_case
from .schema import (
    ArraySchema,
    DecimalSchema,
    EnumSchema,
    FixedSchema,
    MapSchema,
    Primitive,
    RecordSchema,
    Ref,
    Schema,
    UnionSchema,
)
from .state import GenState

CHRONO_TYPE = "chrono::NaiveDateTime"

CHRONO_KINDS = frozenset(
    {
        Primitive.DATE,
        Primitive.TIME_MILLIS,
        Primitive.TIME_MICROS,
        Primitive.TIMESTAMP_MILLIS,
        Primitive.TIMESTAMP_MICROS,
    }
)

_RUST_TYPES: Dict[Primitive, str] = {
    Primitive.BOOLEAN: "bool",
    Primitive.INT: "i32",
    Primitive.LONG: "i64",
    Primitive.FLOAT: "f32",
    Primitive.DOUBLE: "f64",
    Primitive.BYTES: "Vec<u8>",
    Primitive.STRING: "String",
    Primitive.DATE: "i32",
    Primitive.TIME_MILLIS: "i32",
    Primitive.TIME_MICROS: "i64",
    Primitive.TIMESTAMP_MILLIS: "i64",
    Primitive.TIMESTAMP_MICROS: "i64",
    Primitive.UUID: "uuid::Uuid",
    Primitive.DURATION: "apache_avro::Duration",
}

_VARIANT_NAMES: Dict[Primitive, str] = {
    Primitive.BOOLEAN: "Boolean",
    Primitive.INT: "Int",
    Primitive.LONG: "Long",
    Primitive.FLOAT: "Float",
    Primitive.DOUBLE: "Double",
    Primitive.BYTES: "Bytes",
    Primitive.STRING: "String",
    Primitive.UUID: "Uuid",
    Primitive.DATE: "Date",
    Primitive.TIME_MILLIS: "TimeMillis",
    Primitive.TIME_MICROS: "TimeMicros",
    Primitive.TIMESTAMP_MILLIS: "TimestampMillis",
    Primitive.TIMESTAMP_MICROS: "TimestampMicros",
    Primitive.DURATION: "Duration",
}


def _resolve(schema: Schema, gen_state: GenState) -> Schema:
    """Follow references until a concrete schema is reached."""
    while isinstance(schema, Ref):
        target = gen_state.get_schema(schema.name)
        if target is None:
            raise TemplateError(f"Schema reference '{schema.name!r}' cannot be resolved")
        schema = target
    return schema


def _element_type(inner: Schema, gen_state: GenState) -> str:
    """The Rust type of a value held in an array, a map or an optional."""
    inner = _resolve(inner, gen_state)
    if isinstance(inner, Primitive):
        if inner is Primitive.NULL:
            raise TemplateError("Invalid use of Schema::Null")
        if inner in CHRONO_KINDS and gen_state.use_chrono_dates:
            return CHRONO_TYPE
        return _RUST_TYPES[inner]
    if isinstance(inner, DecimalSchema):
        return "apache_avro::Decimal"
    if isinstance(inner, (FixedSchema, RecordSchema, EnumSchema)):
        return sanitize(to_upper_camel_case(inner.name.name))
    if isinstance(inner, (ArraySchema, MapSchema, UnionSchema)):
        nested = gen_state.get_type(inner)
        if nested is None:
            raise TemplateError(f"Didn't find schema {inner!r} in state {gen_state!r}")
        return nested
    raise TemplateError(f"Unsupported schema: {inner!r}")


def array_type(inner: Schema, gen_state: GenState) -> str:
    """The Rust type of an Avro array whose items follow inner."""
    return f"Vec<{_element_type(inner, gen_state)}>"


def map_type(inner: Schema, gen_state: GenState) -> str:
    """The Rust type of an Avro map whose values follow inner."""
    return f"::std::collections::HashMap<String, {_element_type(inner, gen_state)}>"


def option_type(inner: Schema, gen_state: GenState) -> str:
    """The Rust type of an optional union ["null", inner]."""
    return f"Option<{_element_type(inner, gen_state)}>"


def union_enum_variant(schema: Schema, gen_state: GenState) -> str:
    """The name of the enum variant that holds schema inside a union enum."""
    schema = _resolve(schema, gen_state)
    if isinstance(schema, Primitive):
        if schema is Primitive.NULL:
            raise TemplateError(
                "Invalid Schema::Null not in first position on an UnionSchema variants"
            )
        return _VARIANT_NAMES[schema]
    if isinstance(schema, ArraySchema):
        return "Array" + union_enum_variant(schema.items, gen_state)
    if isinstance(schema, MapSchema):
        return "Map" + union_enum_variant(schema.values, gen_state)
    if isinstance(schema, UnionSchema):
        return union_type(schema, gen_state, False)
    if isinstance(schema, RecordSchema):
        return to_upper_camel_case(schema.name.name)
    if isinstance(schema, (EnumSchema, FixedSchema)):
        return sanitize(to_upper_camel_case(schema.name.name))
    if isinstance(schema, DecimalSchema):
        return "Decimal"
    raise TemplateError(f"Unsupported schema: {schema!r}")


def union_type(union: UnionSchema, gen_state: GenState, wrap_if_optional: bool = True) -> str:
    """The Rust type of an Avro union: an Option or a generated union enum."""
    variants = union.variants
    if not variants:
        raise TemplateError("Invalid empty Schema::Union")
    if len(variants) == 1 and variants[0] is Primitive.NULL:
        raise TemplateError("Invalid Schema::Union of only Schema::Null")

    if union.is_nullable() and len(variants) == 2:
        return option_type(variants[1], gen_state)

    optional = variants[0] is Primitive.NULL
    schemas = variants[1:] if optional else variants
    type_str = "Union" + "".join(union_enum_variant(s, gen_state) for s in schemas)

    if optional and wrap_if_optional:
        return f"Option<{type_str}>"
    return type_str