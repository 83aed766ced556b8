# avrorustgen

Render Rust type definitions from Avro schemas.

An Avro record becomes a `struct`, an enum becomes an `enum`, a fixed becomes
a byte-array type alias, and a union of several non-null types becomes a
generated `enum`. All of these derive `serde` traits. Field defaults turn into
`default_*` functions, and a `Default` impl is written when every field of a
record has a default.

## Installation

```
pip install avrorustgen
```

## Usage

```python
from avrorustgen.schema import parse_str
from avrorustgen.state import GenState
from avrorustgen.templater import Templater

schema = parse_str("""
{
  "type": "record",
  "name": "test",
  "fields": [
    {"name": "a", "type": "long", "default": 42},
    {"name": "b", "type": "string"}
  ]
}
""")

templater = Templater(precision=3)
print(templater.str_record(schema, GenState([schema])))
```

This prints:

```rust
#[derive(Debug, PartialEq, Eq, Clone, serde::Deserialize, serde::Serialize)]
pub struct Test {
    #[serde(default = "default_test_a")]
    pub a: i64,
    pub b: String,
}

#[inline(always)]
fn default_test_a() -> i64 { 42 }
```

## Modules

- `avrorustgen.schema`: the schema model (`RecordSchema`, `EnumSchema`,
  `FixedSchema`, `DecimalSchema`, `ArraySchema`, `MapSchema`, `UnionSchema`,
  `Ref`, `Primitive`) and the parsers `parse_str` for one JSON schema and
  `parse_list` for named schemas that may refer to each other. `to_json`
  serializes a schema back to compact JSON.
- `avrorustgen.templater`: `Templater` with `str_record`, `str_enum`,
  `str_fixed` and `str_union_enum`. Its options are `precision`, `nullable`,
  `use_avro_rs_unions`, `use_chrono_dates`, `derive_builders` and
  `derive_schemas`.
- `avrorustgen.state`: `GenState` holds the named schemas by name. It also
  holds the Rust types already chosen for nested arrays, maps and unions
  (`put_type` / `get_type`). It decides whether `Eq` can be derived.
- `avrorustgen.types`: `array_type`, `map_type`, `option_type`, `union_type`
  and `union_enum_variant` give Rust type and variant names.
- `avrorustgen.defaults`: `DefaultRenderer.render` turns a JSON default value
  into a Rust expression.
- `avrorustgen.naming`: `sanitize`, `to_snake_case` and `to_upper_camel_case`.

Failures raise a subclass of `avrorustgen.errors.Error`:

- `AvroError` when a schema cannot be parsed or resolved.
- `TemplateError` for a bad default, an unresolved reference, or a schema of
  the wrong kind.
- `SchemaError` for a schema that cannot be used to generate types.

## What the package does not do

The package renders one schema at a time. It does not walk a schema's nested
dependencies or put them in order. It does not register the types of nested
arrays, maps and unions in a `GenState` for you. Before rendering a record or
union that contains such types, call `put_type` for each of them.

The package also does not read schema files matched by a glob pattern. It has
no command-line tool and does not run `rustfmt` on its output.