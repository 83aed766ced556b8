"""State shared while generating code for nested schemas."""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Set

from .errors import TemplateError
from .schema import (
    ArraySchema,
    EnumSchema,
    FixedSchema,
    MapSchema,
    Name,
    Primitive,
    RecordSchema,
    Ref,
    Schema,
    UnionSchema,
    to_json,
)


def _search_not_eq(
    schema: Schema,
    by_name: Mapping[Name, Schema],
    visiting: Set[Name],
) -> bool:
    """True when schema holds a float or double anywhere inside it."""
    if isinstance(schema, ArraySchema):
        return _search_not_eq(schema.items, by_name, visiting)
    if isinstance(schema, MapSchema):
        return _search_not_eq(schema.values, by_name, visiting)
    if isinstance(schema, RecordSchema):
        if schema.name in visiting:
            return False
        visiting = visiting | {schema.name}
        return any(_search_not_eq(f.schema, by_name, visiting) for f in schema.fields)
    if isinstance(schema, UnionSchema):
        return any(_search_not_eq(v, by_name, visiting) for v in schema.variants)
    if isinstance(schema, Ref):
        target = by_name.get(schema.name)
        if target is None:
            raise TemplateError(f"Ref `{schema.name!r}` is not resolved. Schema: {schema!r}")
        return _search_not_eq(target, by_name, visiting)
    return schema in (Primitive.FLOAT, Primitive.DOUBLE)


class GenState:
    """Rust types of already generated nested schemas, and named schemas by name."""

    def __init__(self, deps: Iterable[Schema], use_chrono_dates: bool = False) -> None:
        deps = list(deps)
        self.use_chrono_dates = use_chrono_dates
        self._types_by_schema: Dict[str, str] = {}
        self._schemata_by_name: Dict[Name, Schema] = {
            s.name: s for s in deps if isinstance(s, (RecordSchema, FixedSchema, EnumSchema))
        }
        self._not_eq: Set[str] = {
            to_json(dep)
            for dep in deps
            if _search_not_eq(dep, self._schemata_by_name, set())
        }

    def get_schema(self, name: Name) -> Optional[Schema]:
        """The named schema registered under name, if any."""
        return self._schemata_by_name.get(name)

    def put_type(self, schema: Schema, rust_type: str) -> None:
        """Remember the Rust type generated for schema."""
        self._types_by_schema[to_json(schema)] = rust_type

    def get_type(self, schema: Schema) -> Optional[str]:
        """The Rust type remembered for schema, if any."""
        return self._types_by_schema.get(to_json(schema))

    def is_eq_derivable(self, schema: Schema) -> bool:
        """False for records and unions that contain a float or double."""
        if isinstance(schema, (UnionSchema, RecordSchema)):
            return to_json(schema) not in self._not_eq
        return True

    def __repr__(self) -> str:
        return (
            f"GenState(types_by_schema={self._types_by_schema!r}, "
            f"names={sorted(n.fullname for n in self._schemata_by_name)!r}, "
            f"use_chrono_dates={self.use_chrono_dates!r})"
        )