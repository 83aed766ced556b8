"""Rendering Rust source code for Avro schemas."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import jinja2

from .defaults import DefaultRenderer
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
from .types import CHRONO_KINDS, CHRONO_TYPE, array_type, map_type, union_enum_variant, union_type

_RECORD_TEMPLATE = """\
{%- for line in doc_lines %}
/// {{ line }}
{%- endfor %}
#[derive(Debug, PartialEq{% if is_eq %}, Eq{% endif %}, Clone, serde::Deserialize, serde::Serialize\
{% if derive_builders %}, derive_builder::Builder{% endif %}\
{% if derive_schemas %}, apache_avro::AvroSchema{% endif %})]
{%- if derive_builders %}
#[builder(setter(into))]
{%- endif %}
{%- if all_default %}
#[serde(default)]
{%- endif %}
pub struct {{ name }} {
{%- for f in fields %}
{%- if f.rename %}
    #[serde(rename = "{{ f.original }}")]
{%- endif %}
{%- if nullable and not f.optional %}
    #[serde(deserialize_with = "nullable_{{ lname }}_{{ f.ident }}")]
{%- endif %}
{%- if nullable and not f.optional and f.serde_with %}
    #[serde(serialize_with = "{{ f.serde_with }}::serialize")]
{%- endif %}
{%- if not nullable and f.serde_with %}
    #[serde(with = "{{ f.serde_with }}")]
{%- endif %}
{%- if f.default is not none and not all_default %}
    #[serde(default = "default_{{ lname }}_{{ f.fn_suffix }}")]
{%- endif %}
    pub {{ f.ident }}: {{ f.rust_type }},
{%- endfor %}
}
{%- for f in fields %}
{%- if nullable and not f.optional %}
{# #}
#[inline(always)]
fn nullable_{{ lname }}_{{ f.ident }}<'de, D>(deserializer: D) -> Result<{{ f.rust_type }}, D::Error>
where
    D: serde::Deserializer<'de>,
{
    use serde::Deserialize;
{%- if f.serde_with %}
    #[derive(serde::Deserialize)]
    struct Wrapper(#[serde(with = "{{ f.serde_with }}")] {{ f.rust_type }});
    let opt = Option::<Wrapper>::deserialize(deserializer)?.map(|w| w.0);
{%- else %}
    let opt = Option::deserialize(deserializer)?;
{%- endif %}
    Ok(opt.unwrap_or_else(|| default_{{ lname }}_{{ f.fn_suffix }}() ))
}
{%- endif %}
{%- endfor %}
{%- for f in fields %}
{%- if f.default is not none %}
{# #}
#[inline(always)]
fn default_{{ lname }}_{{ f.fn_suffix }}() -> {{ f.rust_type }} { {{ f.default }} }
{%- endif %}
{%- endfor %}
{%- if all_default %}
{# #}
impl Default for {{ name }} {
    fn default() -> {{ name }} {
        {{ name }} {
{%- for f in fields %}
            {{ f.ident }}: default_{{ lname }}_{{ f.fn_suffix }}(),
{%- endfor %}
        }
    }
}
{%- endif %}
"""

_ENUM_TEMPLATE = """\
{%- for line in doc_lines %}
/// {{ line }}
{%- endfor %}
#[derive(Debug, PartialEq, Eq, Hash, PartialOrd, Ord, Clone, serde::Deserialize, serde::Serialize)]
pub enum {{ name }} {
{%- for s in symbols %}
{%- if s.rename %}
    #[serde(rename = "{{ s.original }}")]
{%- endif %}
    {{ s.ident }},
{%- endfor %}
}
"""

_UNION_TEMPLATE = """
/// Auto-generated type for unnamed Avro union variants.
#[derive(Debug, PartialEq{% if is_eq %}, Eq{% endif %}, Clone\
{% if not use_avro_rs_unions %}, serde::Deserialize{% endif %}, serde::Serialize)]
pub enum {{ name }} {
{%- for s in symbols %}
    {{ s }},
{%- endfor %}
}
{%- for v in visitors %}
{# #}
impl From<{{ v.rust_type }}> for {{ name }} {
    fn from(v: {{ v.rust_type }}) -> Self {
        Self::{{ v.variant }}(v)
    }
}

impl TryFrom<{{ name }}> for {{ v.rust_type }} {
    type Error = {{ name }};

    fn try_from(v: {{ name }}) -> Result<Self, Self::Error> {
        if let {{ name }}::{{ v.variant }}(v) = v {
            Ok(v)
        } else {
            Err(v)
        }
    }
}
{%- endfor %}
{%- if use_avro_rs_unions %}
{# #}
impl<'de> serde::Deserialize<'de> for {{ name }} {
    fn deserialize<D>(deserializer: D) -> Result<{{ name }}, D::Error>
    where
        D: serde::Deserializer<'de>,
    {
        /// Serde visitor for the auto-generated unnamed Avro union type.
        struct {{ name }}Visitor;

        impl<'de> serde::de::Visitor<'de> for {{ name }}Visitor {
            type Value = {{ name }};

            fn expecting(&self, formatter: &mut std::fmt::Formatter) -> std::fmt::Result {
                formatter.write_str("a {{ name }}")
            }
{%- for v in visitors %}
{%- if v.serde_visitor %}

            fn visit_{{ v.visit_name }}<E>(self, value: {{ v.serde_visitor }}) -> Result<Self::Value, E>
            where
                E: serde::de::Error,
            {
                Ok({{ name }}::{{ v.variant }}(value.into()))
            }
{%- endif %}
{%- endfor %}
        }

        deserializer.deserialize_any({{ name }}Visitor)
    }
}
{%- endif %}
"""

_FIXED_TEMPLATE = """
pub type {{ name }} = [u8; {{ size }}];
"""

_FIELD_TYPES: Dict[Primitive, str] = {
    Primitive.BOOLEAN: "bool",
    Primitive.INT: "i32",
    Primitive.DATE: "i32",
    Primitive.TIME_MILLIS: "i32",
    Primitive.LONG: "i64",
    Primitive.TIME_MICROS: "i64",
    Primitive.TIMESTAMP_MILLIS: "i64",
    Primitive.TIMESTAMP_MICROS: "i64",
    Primitive.FLOAT: "f32",
    Primitive.DOUBLE: "f64",
    Primitive.BYTES: "Vec<u8>",
    Primitive.STRING: "String",
    Primitive.UUID: "uuid::Uuid",
    Primitive.DURATION: "apache_avro::Duration",
}

_CHRONO_SERDE: Dict[Primitive, str] = {
    Primitive.DATE: "chrono::naive::serde::ts_seconds",
    Primitive.TIME_MILLIS: "chrono::naive::serde::ts_milliseconds",
    Primitive.TIMESTAMP_MILLIS: "chrono::naive::serde::ts_milliseconds",
    Primitive.TIME_MICROS: "chrono::naive::serde::ts_microseconds",
    Primitive.TIMESTAMP_MICROS: "chrono::naive::serde::ts_microseconds",
}

_UNION_SYMBOLS: Dict[Primitive, str] = {
    Primitive.BOOLEAN: "Boolean(bool)",
    Primitive.INT: "Int(i32)",
    Primitive.LONG: "Long(i64)",
    Primitive.FLOAT: "Float(f32)",
    Primitive.DOUBLE: "Double(f64)",
    Primitive.BYTES: 'Bytes(#[serde(with = "serde_bytes")] Vec<u8>)',
    Primitive.STRING: "String(String)",
    Primitive.UUID: "Uuid(uuid::Uuid)",
    Primitive.DATE: "Date(i32)",
    Primitive.TIME_MILLIS: "TimeMillis(i32)",
    Primitive.TIME_MICROS: "TimeMicros(i64)",
    Primitive.TIMESTAMP_MILLIS: "TimestampMillis(i64)",
    Primitive.TIMESTAMP_MICROS: "TimestampMicros(i64)",
    Primitive.DURATION: "Duration(apache_avro::Duration)",
}


@dataclass(frozen=True)
class _UnionVisitor:
    variant: str
    rust_type: str
    serde_visitor: Optional[str] = None

    @property
    def visit_name(self) -> str:
        return (self.serde_visitor or "").lstrip("&")


_PRIMITIVE_VISITORS: Dict[Primitive, _UnionVisitor] = {
    Primitive.BOOLEAN: _UnionVisitor("Boolean", "bool", "bool"),
    Primitive.INT: _UnionVisitor("Int", "i32", "i32"),
    Primitive.LONG: _UnionVisitor("Long", "i64", "i64"),
    Primitive.FLOAT: _UnionVisitor("Float", "f32", "f32"),
    Primitive.DOUBLE: _UnionVisitor("Double", "f64", "f64"),
    Primitive.STRING: _UnionVisitor("String", "String", "&str"),
}


@dataclass(frozen=True)
class _FieldView:
    ident: str
    rust_type: str
    original: str
    default: Optional[str]
    serde_with: Optional[str]

    @property
    def rename(self) -> bool:
        return self.ident != self.original and not self.ident.startswith("r#")

    @property
    def optional(self) -> bool:
        return self.rust_type.startswith("Option")

    @property
    def fn_suffix(self) -> str:
        suffix = self.ident.lower()
        return suffix[2:] if suffix.startswith("r#") else suffix


@dataclass(frozen=True)
class _SymbolView:
    ident: str
    original: str

    @property
    def rename(self) -> bool:
        return self.ident != self.original


def _doc_lines(doc: Optional[str]) -> List[str]:
    return doc.split("\n") if doc else []


def _unresolved(name) -> TemplateError:
    return TemplateError(f"Schema reference '{name!r}' cannot be resolved")


class Templater:
    """Renders Rust type definitions for Avro schemas."""

    def __init__(
        self,
        precision: int = 3,
        nullable: bool = False,
        use_avro_rs_unions: bool = False,
        use_chrono_dates: bool = False,
        derive_builders: bool = False,
        derive_schemas: bool = False,
    ) -> None:
        self.precision = precision
        self.nullable = nullable
        self.use_avro_rs_unions = use_avro_rs_unions
        self.use_chrono_dates = use_chrono_dates
        self.derive_builders = derive_builders
        self.derive_schemas = derive_schemas
        env = jinja2.Environment(
            keep_trailing_newline=True,
            undefined=jinja2.StrictUndefined,
            autoescape=False,
        )
        self._record = env.from_string(_RECORD_TEMPLATE)
        self._enum = env.from_string(_ENUM_TEMPLATE)
        self._union = env.from_string(_UNION_TEMPLATE)
        self._fixed = env.from_string(_FIXED_TEMPLATE)

    @property
    def _defaults(self) -> DefaultRenderer:
        return DefaultRenderer(self.precision, self.use_chrono_dates)

    @staticmethod
    def _render(template: jinja2.Template, **context) -> str:
        try:
            return template.render(**context)
        except jinja2.TemplateError as exc:
            raise TemplateError(str(exc)) from exc

    def str_fixed(self, schema: Schema) -> str:
        """A Rust type alias for a fixed schema."""
        if not isinstance(schema, FixedSchema):
            raise TemplateError(f"Requires Schema::Fixed, found {schema!r}")
        return self._render(
            self._fixed,
            name=sanitize(to_upper_camel_case(schema.name.name)),
            size=schema.size,
        )

    def str_enum(self, schema: Schema) -> str:
        """A Rust enum for an enum schema."""
        if not isinstance(schema, EnumSchema):
            raise TemplateError(f"Requires Schema::Enum, found {schema!r}")
        if not schema.symbols:
            raise TemplateError(f'No symbol for enum: "{schema.name.name}"')
        originals = {sanitize(to_upper_camel_case(s)): s for s in schema.symbols}
        idents = [sanitize(to_upper_camel_case(s)) for s in schema.symbols]
        return self._render(
            self._enum,
            name=sanitize(to_upper_camel_case(schema.name.name)),
            doc_lines=_doc_lines(schema.doc),
            symbols=[_SymbolView(i, originals[i]) for i in idents],
        )

    def _field_type(self, schema: Schema, gen_state: GenState) -> Tuple[str, Optional[str]]:
        """The Rust type of a field and the serde module it is serialized with."""
        if isinstance(schema, Primitive):
            if schema is Primitive.NULL:
                raise TemplateError("Invalid use of Schema::Null")
            if self.use_chrono_dates and schema in _CHRONO_SERDE:
                return CHRONO_TYPE, _CHRONO_SERDE[schema]
            if schema is Primitive.BYTES:
                return "Vec<u8>", "serde_bytes"
            return _FIELD_TYPES[schema], None
        if isinstance(schema, DecimalSchema):
            return "apache_avro::Decimal", None
        if isinstance(schema, (FixedSchema, RecordSchema, EnumSchema)):
            return sanitize(to_upper_camel_case(schema.name.name)), None
        if isinstance(schema, ArraySchema):
            if schema.items is Primitive.NULL:
                raise TemplateError("Invalid use of Schema::Null")
            return array_type(schema.items, gen_state), None
        if isinstance(schema, MapSchema):
            if schema.values is Primitive.NULL:
                raise TemplateError("Invalid use of Schema::Null")
            return map_type(schema.values, gen_state), None
        if isinstance(schema, UnionSchema):
            serde_with = None
            if (
                schema.is_nullable()
                and len(schema.variants) == 2
                and schema.variants[1] is Primitive.BYTES
            ):
                serde_with = "serde_bytes"
            return union_type(schema, gen_state, True), serde_with
        raise TemplateError(f"Unsupported field schema: {schema!r}")

    def str_record(self, schema: Schema, gen_state: GenState) -> str:
        """A Rust struct, with its default functions, for a record schema."""
        if not isinstance(schema, RecordSchema):
            raise TemplateError(f"Requires Schema::Record, found {schema!r}")
        renderer = self._defaults
        idents: List[str] = []
        types: Dict[str, str] = {}
        originals: Dict[str, str] = {}
        defaults: Dict[str, str] = {}
        serde_with: Dict[str, str] = {}

        for rf in sorted(schema.fields, key=lambda f: f.position):
            ident = sanitize(to_snake_case(rf.name))
            originals[ident] = rf.name
            field_schema = rf.schema
            if isinstance(field_schema, Ref):
                target = gen_state.get_schema(field_schema.name)
                if target is None:
                    raise _unresolved(field_schema.name)
                field_schema = target
            rust_type, with_module = self._field_type(field_schema, gen_state)
            idents.append(ident)
            types[ident] = rust_type
            if with_module is not None:
                serde_with[ident] = with_module
            if rf.has_default:
                defaults[ident] = renderer.render(field_schema, gen_state, rf.default)

        fields = [
            _FieldView(i, types[i], originals[i], defaults.get(i), serde_with.get(i))
            for i in idents
        ]
        name = to_upper_camel_case(schema.name.name)
        return self._render(
            self._record,
            name=name,
            lname=name.lower(),
            doc_lines=_doc_lines(schema.doc),
            derive_builders=self.derive_builders,
            derive_schemas=self.derive_schemas,
            is_eq=gen_state.is_eq_derivable(schema),
            nullable=self.nullable,
            all_default=len(idents) == len(defaults),
            fields=fields,
        )

    def _union_symbol(self, schema: Schema, gen_state: GenState) -> str:
        if isinstance(schema, Primitive):
            if schema is Primitive.NULL:
                raise TemplateError(
                    "Invalid Schema::Null not in first position on an UnionSchema variants"
                )
            if self.use_chrono_dates and schema in CHRONO_KINDS:
                return "NaiveDateTime(chrono::NaiveDateTime)"
            return _UNION_SYMBOLS[schema]
        if isinstance(schema, ArraySchema):
            variant = union_enum_variant(schema.items, gen_state)
            return f"Array{variant}({array_type(schema.items, gen_state)})"
        if isinstance(schema, MapSchema):
            variant = union_enum_variant(schema.values, gen_state)
            return f"Map{variant}({map_type(schema, gen_state)})"
        if isinstance(schema, UnionSchema):
            nested = union_type(schema, gen_state, False)
            return f"{nested}({nested})"
        if isinstance(schema, RecordSchema):
            record = to_upper_camel_case(schema.name.name)
            return f"{record}({record})"
        if isinstance(schema, (EnumSchema, FixedSchema)):
            named = sanitize(to_upper_camel_case(schema.name.name))
            return f"{named}({named})"
        if isinstance(schema, DecimalSchema):
            return "Decimal(apache_avro::Decimal)"
        raise TemplateError(f"Unsupported union variant: {schema!r}")

    def str_union_enum(self, schema: Schema, gen_state: GenState) -> str:
        """A Rust enum for a union of several non-null variants."""
        if not isinstance(schema, UnionSchema):
            raise TemplateError(f"Requires Schema::Union, found {schema!r}")
        variants = schema.variants
        if not variants:
            raise TemplateError("Invalid empty Schema::Union")
        if len(variants) == 1:
            raise TemplateError("Invalid Schema::Union of a single element")
        if schema.is_nullable() and len(variants) == 2:
            raise TemplateError("Attempt to generate a union enum for an optional")

        members = variants[1:] if variants[0] is Primitive.NULL else variants
        enum_name = union_type(schema, gen_state, False)

        symbols: List[str] = []
        visitors: List[_UnionVisitor] = []
        for member in members:
            while isinstance(member, Ref):
                target = gen_state.get_schema(member.name)
                if target is None:
                    raise _unresolved(member.name)
                member = target
            symbols.append(self._union_symbol(member, gen_state))
            if isinstance(member, RecordSchema):
                record = to_upper_camel_case(member.name.name)
                visitors.append(_UnionVisitor(record, record))
            elif isinstance(member, Primitive) and member in _PRIMITIVE_VISITORS:
                visitors.append(_PRIMITIVE_VISITORS[member])

        return self._render(
            self._union,
            name=enum_name,
            symbols=symbols,
            visitors=visitors,
            use_avro_rs_unions=self.use_avro_rs_unions,
            is_eq=gen_state.is_eq_derivable(schema),
        )