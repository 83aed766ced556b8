"""Rust expressions for the default values of Avro record fields."""

from __future__ import annotations

import json
import math
import struct
import uuid
from typing import Any

from .errors import TemplateError
from .naming import sanitize, to_snake_case, to_upper_camel_case
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
from .types import union_enum_variant, union_type

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1

_INT_KINDS = frozenset({Primitive.INT, Primitive.DATE, Primitive.TIME_MILLIS})
_LONG_KINDS = frozenset(
    {
        Primitive.LONG,
        Primitive.TIME_MICROS,
        Primitive.TIMESTAMP_MILLIS,
        Primitive.TIMESTAMP_MICROS,
    }
)
_CHRONO_CONSTRUCTORS = {
    Primitive.DATE: "chrono::NaiveDateTime::from_timestamp_opt({}, 0).unwrap()",
    Primitive.TIME_MILLIS: "chrono::NaiveDateTime::from_timestamp_millis({}).unwrap()",
    Primitive.TIMESTAMP_MILLIS: "chrono::NaiveDateTime::from_timestamp_millis({}).unwrap()",
    Primitive.TIME_MICROS: "chrono::NaiveDateTime::from_timestamp_micros({}).unwrap()",
    Primitive.TIMESTAMP_MICROS: "chrono::NaiveDateTime::from_timestamp_micros({}).unwrap()",
}


def _debug_str(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _debug(value: Any) -> str:
    """Describe a JSON value the way error messages show it."""
    if value is None:
        return "Null"
    if isinstance(value, bool):
        return f"Bool({'true' if value else 'false'})"
    if isinstance(value, (int, float)):
        return f"Number({value!r})"
    if isinstance(value, str):
        return f"String({_debug_str(value)})"
    if isinstance(value, list):
        return "Array [" + ", ".join(_debug(v) for v in value) + "]"
    if isinstance(value, dict):
        items = ", ".join(f"{_debug_str(k)}: {_debug(v)}" for k, v in sorted(value.items()))
        return "Object {" + items + "}"
    return repr(value)


def _invalid(default: Any) -> TemplateError:
    return TemplateError(f"Invalid default: {_debug(default)}")


def _is_i64(value: Any) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and _I64_MIN <= value <= _I64_MAX
    )


def _as_i32(value: int) -> int:
    return ((value + 2**31) % 2**32) - 2**31


def _as_f32(value: float) -> float:
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _byte_list(data: bytes) -> str:
    return "[" + ", ".join(str(b) for b in data) + "]"


class DefaultRenderer:
    """Renders JSON default values of Avro fields as Rust expressions."""

    def __init__(self, precision: int = 3, use_chrono_dates: bool = False) -> None:
        self.precision = precision
        self.use_chrono_dates = use_chrono_dates

    def render(self, schema: Schema, gen_state: GenState, default: Any) -> str:
        """The Rust expression for default, a value of the given schema."""
        if isinstance(schema, Ref):
            target = gen_state.get_schema(schema.name)
            if target is None:
                raise TemplateError(f"Schema reference '{schema.name!r}' cannot be resolved")
            return self.render(target, gen_state, default)
        if isinstance(schema, Primitive):
            return self._primitive(schema, default)
        if isinstance(schema, DecimalSchema):
            return self._decimal(schema, default)
        if isinstance(schema, FixedSchema):
            return self._sized_bytes(default, schema.size)
        if isinstance(schema, ArraySchema):
            if schema.items is Primitive.NULL:
                raise TemplateError("Invalid use of Schema::Null")
            return self._array(schema.items, gen_state, default)
        if isinstance(schema, MapSchema):
            if schema.values is Primitive.NULL:
                raise TemplateError("Invalid use of Schema::Null")
            return self._map(schema.values, gen_state, default)
        if isinstance(schema, RecordSchema):
            return self._record(schema, gen_state, default)
        if isinstance(schema, EnumSchema):
            return self._enum(schema, default)
        if isinstance(schema, UnionSchema):
            return self._union(schema, gen_state, default)
        raise TemplateError(f"Invalid record: {schema!r}")

    def _primitive(self, schema: Primitive, default: Any) -> str:
        if schema is Primitive.NULL:
            raise TemplateError("Invalid use of Schema::Null")
        if schema is Primitive.BOOLEAN:
            if not isinstance(default, bool):
                raise _invalid(default)
            return "true" if default else "false"
        if self.use_chrono_dates and schema in _CHRONO_CONSTRUCTORS:
            if not _is_i64(default):
                raise _invalid(default)
            return _CHRONO_CONSTRUCTORS[schema].format(default)
        if schema in _INT_KINDS:
            if not _is_i64(default):
                raise _invalid(default)
            return str(_as_i32(default))
        if schema in _LONG_KINDS:
            if not _is_i64(default):
                raise _invalid(default)
            return str(default)
        if schema is Primitive.FLOAT:
            if not isinstance(default, float):
                raise _invalid(default)
            return self._float(_as_f32(default))
        if schema is Primitive.DOUBLE:
            if not isinstance(default, float):
                raise _invalid(default)
            return self._float(default)
        if schema is Primitive.BYTES:
            if not isinstance(default, str):
                raise _invalid(default)
            return "vec!" + _byte_list(default.encode())
        if schema is Primitive.STRING:
            if not isinstance(default, str):
                raise _invalid(default)
            return f'"{default}".to_owned()'
        if schema is Primitive.UUID:
            if not isinstance(default, str):
                raise _invalid(default)
            try:
                parsed = uuid.UUID(default)
            except ValueError as exc:
                raise TemplateError(str(exc)) from exc
            return f'uuid::Uuid::parse_str("{parsed}").unwrap()'
        if schema is Primitive.DURATION:
            return self._sized_bytes(default, 12)
        raise _invalid(default)

    def _float(self, value: float) -> str:
        if not math.isfinite(value) or value == math.ceil(value):
            return f"{value:.1f}"
        return f"{value:.{self.precision}f}"

    @staticmethod
    def _sized_bytes(default: Any, size: int) -> str:
        if not isinstance(default, str):
            raise _invalid(default)
        data = default.encode()
        if len(data) != size:
            raise TemplateError(f"Invalid default: {_byte_list(data)}")
        return _byte_list(data)

    def _decimal(self, schema: DecimalSchema, default: Any) -> str:
        inner = schema.inner
        if inner is Primitive.BYTES:
            if not isinstance(default, str):
                raise _invalid(default)
            return "vec!" + _byte_list(default.encode())
        if isinstance(inner, FixedSchema):
            return self._sized_bytes(default, inner.size)
        raise TemplateError(f"Invalid Decimal inner Schema: {inner!r}")

    def _array(self, items: Schema, gen_state: GenState, default: Any) -> str:
        if not isinstance(default, list):
            raise TemplateError(f"Invalid default: {_debug(default)}, expected: Array")
        return "vec![" + ", ".join(self.render(items, gen_state, v) for v in default) + "]"

    def _map(self, values: Schema, gen_state: GenState, default: Any) -> str:
        if not isinstance(default, dict):
            raise TemplateError(f"Invalid default: {_debug(default)}, expected: Map")
        if not default:
            return "::std::collections::HashMap::new()"
        inserts = " ".join(
            f'm.insert("{key}".to_owned(), {self.render(values, gen_state, value)});'
            for key, value in sorted(default.items())
        )
        return f"{{ let mut m = ::std::collections::HashMap::new(); {inserts} m }}"

    def _record(self, schema: RecordSchema, gen_state: GenState, default: Any) -> str:
        if not isinstance(default, dict):
            raise TemplateError(f"Invalid default: {_debug(default)}, expected: Object")
        type_name = sanitize(to_upper_camel_case(schema.name.name))
        if not default:
            return f"{type_name}::default()"
        parts = []
        for rf in schema.fields:
            field_name = sanitize(to_snake_case(rf.name))
            if rf.name in default:
                value = self.render(rf.schema, gen_state, default[rf.name])
            else:
                value = f"default_{schema.name.name.lower()}_{field_name}()"
            parts.append(f"{field_name}: {value},")
        return f"{type_name} {{ {' '.join(parts)} }}"

    @staticmethod
    def _enum(schema: EnumSchema, default: Any) -> str:
        type_name = sanitize(to_upper_camel_case(schema.name.name))
        valid = {sanitize(to_upper_camel_case(s)) for s in schema.symbols}
        if not isinstance(default, str):
            raise _invalid(default)
        symbol = sanitize(to_upper_camel_case(default))
        if symbol not in valid:
            raise _invalid(default)
        return f"{type_name}::{sanitize(to_upper_camel_case(symbol))}"

    def _union(self, union: UnionSchema, gen_state: GenState, default: Any) -> str:
        if union.is_nullable():
            if default is not None:
                raise TemplateError(f"Invalid optional union default: {_debug(default)}")
            return "None"
        first = union.variants[0]
        enum_name = union_type(union, gen_state, False)
        variant = union_enum_variant(first, gen_state)
        value = self.render(first, gen_state, default)
        return f"{enum_name}::{variant}({value})"