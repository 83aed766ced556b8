"""Avro schema model and a parser for Avro schemas written in JSON."""

from __future__ import annotations

import enum
import json
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Tuple, Union

from .errors import AvroError

_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*\Z")


class Kind(enum.Enum):
    """The kind of every schema the model can represent."""

    NULL = "null"
    BOOLEAN = "boolean"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    BYTES = "bytes"
    STRING = "string"
    UUID = "uuid"
    DATE = "date"
    TIME_MILLIS = "time-millis"
    TIME_MICROS = "time-micros"
    TIMESTAMP_MILLIS = "timestamp-millis"
    TIMESTAMP_MICROS = "timestamp-micros"
    DURATION = "duration"
    DECIMAL = "decimal"
    FIXED = "fixed"
    ENUM = "enum"
    RECORD = "record"
    ARRAY = "array"
    MAP = "map"
    UNION = "union"
    REF = "ref"


class Primitive(enum.Enum):
    """Schemas without attributes: primitive types and simple logical types."""

    NULL = "null"
    BOOLEAN = "boolean"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    BYTES = "bytes"
    STRING = "string"
    UUID = "uuid"
    DATE = "date"
    TIME_MILLIS = "time-millis"
    TIME_MICROS = "time-micros"
    TIMESTAMP_MILLIS = "timestamp-millis"
    TIMESTAMP_MICROS = "timestamp-micros"
    DURATION = "duration"

    @property
    def kind(self) -> Kind:
        return Kind[self.name]


_BASE_TYPES: Dict[str, Primitive] = {
    p.value: p
    for p in (
        Primitive.NULL,
        Primitive.BOOLEAN,
        Primitive.INT,
        Primitive.LONG,
        Primitive.FLOAT,
        Primitive.DOUBLE,
        Primitive.BYTES,
        Primitive.STRING,
    )
}

# logicalType -> (required underlying type, resulting schema)
_LOGICAL_TYPES: Dict[str, Tuple[Primitive, Primitive]] = {
    "uuid": (Primitive.STRING, Primitive.UUID),
    "date": (Primitive.INT, Primitive.DATE),
    "time-millis": (Primitive.INT, Primitive.TIME_MILLIS),
    "time-micros": (Primitive.LONG, Primitive.TIME_MICROS),
    "timestamp-millis": (Primitive.LONG, Primitive.TIMESTAMP_MILLIS),
    "timestamp-micros": (Primitive.LONG, Primitive.TIMESTAMP_MICROS),
}

_LOGICAL_BASES: Dict[Primitive, Primitive] = {
    logical: base for base, logical in _LOGICAL_TYPES.values()
}

_DURATION_SIZE = 12


class _Missing:
    def __repr__(self) -> str:
        return "<no default>"


_MISSING: Any = _Missing()


@dataclass(frozen=True)
class Name:
    """The name of a named schema, with its optional namespace."""

    name: str
    namespace: Optional[str] = None

    @property
    def fullname(self) -> str:
        return f"{self.namespace}.{self.name}" if self.namespace else self.name


@dataclass(frozen=True)
class Ref:
    """A reference to a named schema defined elsewhere."""

    name: Name
    kind: ClassVar[Kind] = Kind.REF


@dataclass(frozen=True)
class RecordField:
    """One field of a record schema."""

    name: str
    schema: "Schema"
    default: Any = field(default=_MISSING, compare=False)
    doc: Optional[str] = field(default=None, compare=False)
    aliases: Tuple[str, ...] = field(default=(), compare=False)
    position: int = field(default=0, compare=False)

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING


@dataclass(frozen=True)
class RecordSchema:
    name: Name
    fields: Tuple[RecordField, ...] = ()
    doc: Optional[str] = field(default=None, compare=False)
    aliases: Tuple[str, ...] = field(default=(), compare=False)
    kind: ClassVar[Kind] = Kind.RECORD


@dataclass(frozen=True)
class EnumSchema:
    name: Name
    symbols: Tuple[str, ...] = ()
    doc: Optional[str] = field(default=None, compare=False)
    default: Optional[str] = field(default=None, compare=False)
    aliases: Tuple[str, ...] = field(default=(), compare=False)
    kind: ClassVar[Kind] = Kind.ENUM


@dataclass(frozen=True)
class FixedSchema:
    name: Name
    size: int
    doc: Optional[str] = field(default=None, compare=False)
    aliases: Tuple[str, ...] = field(default=(), compare=False)
    kind: ClassVar[Kind] = Kind.FIXED


@dataclass(frozen=True)
class DecimalSchema:
    precision: int
    scale: int
    inner: "Schema"
    kind: ClassVar[Kind] = Kind.DECIMAL


@dataclass(frozen=True)
class ArraySchema:
    items: "Schema"
    kind: ClassVar[Kind] = Kind.ARRAY


@dataclass(frozen=True)
class MapSchema:
    values: "Schema"
    kind: ClassVar[Kind] = Kind.MAP


@dataclass(frozen=True)
class UnionSchema:
    variants: Tuple["Schema", ...] = ()
    kind: ClassVar[Kind] = Kind.UNION

    def is_nullable(self) -> bool:
        """True when the first variant is null."""
        return bool(self.variants) and self.variants[0] is Primitive.NULL


Schema = Union[
    Primitive,
    Ref,
    RecordSchema,
    EnumSchema,
    FixedSchema,
    DecimalSchema,
    ArraySchema,
    MapSchema,
    UnionSchema,
]

_NAMED = (RecordSchema, EnumSchema, FixedSchema)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _qualify(text: str, namespace: Optional[str]) -> Name:
    prefix, _, short = text.rpartition(".")
    if not _NAME_RE.match(short):
        raise AvroError(f"Invalid name: {text!r}")
    return Name(short, (prefix or namespace) or None)


def _duplicates(items: Iterable[str]) -> List[str]:
    return [item for item, count in Counter(items).items() if count > 1]


class _Parser:
    def __init__(self, inputs: Optional[Dict[Name, Any]] = None) -> None:
        self.inputs: Dict[Name, Any] = dict(inputs or {})
        self.parsed: Dict[Name, Schema] = {}
        self._resolving: set = set()
        self._aliases: Dict[Name, Name] = {}

    def parse(self, value: Any, namespace: Optional[str]) -> Schema:
        if isinstance(value, str):
            return self._reference(value, namespace)
        if isinstance(value, list):
            return self._union(value, namespace)
        if isinstance(value, dict):
            return self._complex(value, namespace)
        raise AvroError(f"Invalid schema: {value!r}")

    def _reference(self, type_name: str, namespace: Optional[str]) -> Schema:
        primitive = _BASE_TYPES.get(type_name)
        if primitive is not None:
            return primitive
        name = _qualify(type_name, namespace)
        name = self._aliases.get(name, name)
        if name in self.parsed or name in self._resolving:
            return Ref(name)
        value = self.inputs.pop(name, None)
        if value is None:
            raise AvroError(f"Unknown type: {name.fullname}")
        schema = self.parse(value, None)
        return Ref(schema.name) if isinstance(schema, _NAMED) else schema

    def _complex(self, obj: Dict[str, Any], namespace: Optional[str]) -> Schema:
        if "logicalType" in obj:
            return self._logical(obj, namespace)
        type_value = obj.get("type")
        if isinstance(type_value, dict):
            return self._complex(type_value, namespace)
        if isinstance(type_value, list):
            return self._union(type_value, namespace)
        if not isinstance(type_value, str):
            raise AvroError(f"Schema has no valid 'type' attribute: {obj!r}")
        builders = {
            "record": self._record,
            "error": self._record,
            "enum": self._enum,
            "fixed": self._fixed,
            "array": self._array,
            "map": self._map,
        }
        builder = builders.get(type_value)
        if builder is None:
            return self._reference(type_value, namespace)
        return builder(obj, namespace)

    def _logical(self, obj: Dict[str, Any], namespace: Optional[str]) -> Schema:
        logical = obj["logicalType"]
        base_obj = {k: v for k, v in obj.items() if k != "logicalType"}
        if (
            logical == "duration"
            and base_obj.get("type") == "fixed"
            and _is_int(base_obj.get("size"))
            and base_obj["size"] == _DURATION_SIZE
        ):
            return Primitive.DURATION
        base = self._complex(base_obj, namespace)
        if logical == "decimal":
            return _decimal(obj, base)
        expected = _LOGICAL_TYPES.get(logical) if isinstance(logical, str) else None
        if expected is not None and base is expected[0]:
            return expected[1]
        return base

    def _declare(self, obj: Dict[str, Any], namespace: Optional[str]) -> Tuple[Name, Tuple[str, ...]]:
        raw_name = obj.get("name")
        if not isinstance(raw_name, str):
            raise AvroError(f"Named schema requires a 'name' attribute: {obj!r}")
        if "namespace" in obj:
            explicit = obj["namespace"]
            if explicit is not None and not isinstance(explicit, str):
                raise AvroError(f"Invalid namespace: {explicit!r}")
            namespace = explicit or None
        name = _qualify(raw_name, namespace)
        if name in self.parsed or name in self._resolving:
            raise AvroError(f"Two named schemas defined for the same fullname: {name.fullname}")
        aliases = obj.get("aliases") or []
        if not isinstance(aliases, list) or not all(isinstance(a, str) for a in aliases):
            raise AvroError(f"Invalid aliases: {aliases!r}")
        for alias in aliases:
            self._aliases[_qualify(alias, name.namespace)] = name
        return name, tuple(aliases)

    def _record(self, obj: Dict[str, Any], namespace: Optional[str]) -> Schema:
        name, aliases = self._declare(obj, namespace)
        raw_fields = obj.get("fields")
        if not isinstance(raw_fields, list):
            raise AvroError(f"Record {name.fullname} has no 'fields' list")
        self._resolving.add(name)
        try:
            fields = tuple(
                self._field(raw, position, name.namespace)
                for position, raw in enumerate(raw_fields)
            )
        finally:
            self._resolving.discard(name)
        duplicated = _duplicates(f.name for f in fields)
        if duplicated:
            raise AvroError(f"Duplicate field name in {name.fullname}: {duplicated[0]}")
        schema = RecordSchema(name, fields, doc=obj.get("doc"), aliases=aliases)
        self.parsed[name] = schema
        return schema

    def _field(self, raw: Any, position: int, namespace: Optional[str]) -> RecordField:
        if not isinstance(raw, dict):
            raise AvroError(f"Invalid record field: {raw!r}")
        field_name = raw.get("name")
        if not isinstance(field_name, str) or not _NAME_RE.match(field_name.replace("-", "_")):
            raise AvroError(f"Invalid field name: {field_name!r}")
        if "type" not in raw:
            raise AvroError(f"Field {field_name} has no 'type' attribute")
        aliases = raw.get("aliases") or []
        return RecordField(
            name=field_name,
            schema=self.parse(raw["type"], namespace),
            default=raw.get("default", _MISSING),
            doc=raw.get("doc"),
            aliases=tuple(aliases),
            position=position,
        )

    def _enum(self, obj: Dict[str, Any], namespace: Optional[str]) -> Schema:
        name, aliases = self._declare(obj, namespace)
        symbols = obj.get("symbols")
        if not isinstance(symbols, list) or not all(isinstance(s, str) for s in symbols):
            raise AvroError(f"Enum {name.fullname} has no valid 'symbols' list")
        invalid = [s for s in symbols if not _NAME_RE.match(s)]
        if invalid:
            raise AvroError(f"Invalid enum symbol: {invalid[0]!r}")
        duplicated = _duplicates(symbols)
        if duplicated:
            raise AvroError(f"Duplicate enum symbol: {duplicated[0]}")
        default = obj.get("default")
        if default is not None and default not in symbols:
            raise AvroError(f"Enum default {default!r} is not one of the symbols")
        schema = EnumSchema(name, tuple(symbols), doc=obj.get("doc"), default=default, aliases=aliases)
        self.parsed[name] = schema
        return schema

    def _fixed(self, obj: Dict[str, Any], namespace: Optional[str]) -> Schema:
        name, aliases = self._declare(obj, namespace)
        size = obj.get("size")
        if not _is_int(size) or size < 0:
            raise AvroError(f"Fixed {name.fullname} has no valid 'size' attribute")
        schema = FixedSchema(name, size, doc=obj.get("doc"), aliases=aliases)
        self.parsed[name] = schema
        return schema

    def _array(self, obj: Dict[str, Any], namespace: Optional[str]) -> Schema:
        if "items" not in obj:
            raise AvroError("Array schema has no 'items' attribute")
        return ArraySchema(self.parse(obj["items"], namespace))

    def _map(self, obj: Dict[str, Any], namespace: Optional[str]) -> Schema:
        if "values" not in obj:
            raise AvroError("Map schema has no 'values' attribute")
        return MapSchema(self.parse(obj["values"], namespace))

    def _union(self, values: List[Any], namespace: Optional[str]) -> Schema:
        variants = tuple(self.parse(v, namespace) for v in values)
        seen = set()
        for variant in variants:
            if isinstance(variant, UnionSchema):
                raise AvroError("Unions may not directly contain a union")
            if isinstance(variant, (Ref,) + _NAMED):
                continue
            if variant.kind in seen:
                raise AvroError(f"Unions cannot contain duplicate types: {variant.kind.value}")
            seen.add(variant.kind)
        return UnionSchema(variants)


def _decimal(obj: Dict[str, Any], base: Schema) -> Schema:
    if not (base is Primitive.BYTES or isinstance(base, FixedSchema)):
        return base
    precision = obj.get("precision")
    scale = obj.get("scale", 0)
    if not (_is_int(precision) and _is_int(scale)):
        return base
    if precision < 1 or scale < 0 or scale > precision:
        return base
    if isinstance(base, FixedSchema):
        if base.size < 1:
            return base
        max_precision = len(str(2 ** (8 * base.size - 1) - 1)) - 1
        if precision > max_precision:
            return base
    return DecimalSchema(precision, scale, base)


def _load(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise AvroError(f"Failed to parse schema from JSON: {exc}") from exc


def parse_str(text: str) -> Schema:
    """Parse one Avro schema written in JSON."""
    return _Parser().parse(_load(text), None)


def parse_list(texts: Iterable[str]) -> List[Schema]:
    """Parse named schemas that may refer to each other, keeping their order."""
    inputs: Dict[Name, Any] = {}
    for value in map(_load, texts):
        if not isinstance(value, dict) or not isinstance(value.get("name"), str):
            raise AvroError("Every schema of a list must be a named type")
        name = _qualify(value["name"], value.get("namespace") or None)
        if name in inputs:
            raise AvroError(f"Two named schemas defined for the same fullname: {name.fullname}")
        inputs[name] = value
    order = list(inputs)
    parser = _Parser(inputs)
    for name in order:
        value = parser.inputs.pop(name, None)
        if value is not None:
            parser.parse(value, None)
    schemas = []
    for name in order:
        schema = parser.parsed.get(name)
        if schema is None:
            raise AvroError(f"Schema {name.fullname} is not a named type")
        schemas.append(schema)
    return schemas


def _named_value(type_name: str, name: Name, enclosing: Optional[str]) -> Dict[str, Any]:
    value: Dict[str, Any] = {"type": type_name, "name": name.name}
    if name.namespace != enclosing:
        value["namespace"] = name.namespace or ""
    return value


def _primitive_value(schema: Primitive) -> Any:
    if schema is Primitive.DURATION:
        return {"type": "fixed", "name": "duration", "size": _DURATION_SIZE, "logicalType": "duration"}
    base = _LOGICAL_BASES.get(schema)
    if base is None:
        return schema.value
    return {"type": base.value, "logicalType": schema.value}


def _field_value(f: RecordField, namespace: Optional[str]) -> Dict[str, Any]:
    value: Dict[str, Any] = {"name": f.name, "type": _to_value(f.schema, namespace)}
    if f.has_default:
        value["default"] = f.default
    if f.doc is not None:
        value["doc"] = f.doc
    if f.aliases:
        value["aliases"] = list(f.aliases)
    return value


def _to_value(schema: Schema, enclosing: Optional[str]) -> Any:
    if isinstance(schema, Primitive):
        return _primitive_value(schema)
    if isinstance(schema, Ref):
        return schema.name.fullname
    if isinstance(schema, RecordSchema):
        value = _named_value("record", schema.name, enclosing)
        if schema.doc is not None:
            value["doc"] = schema.doc
        if schema.aliases:
            value["aliases"] = list(schema.aliases)
        value["fields"] = [_field_value(f, schema.name.namespace) for f in schema.fields]
        return value
    if isinstance(schema, EnumSchema):
        value = _named_value("enum", schema.name, enclosing)
        value["symbols"] = list(schema.symbols)
        if schema.doc is not None:
            value["doc"] = schema.doc
        if schema.default is not None:
            value["default"] = schema.default
        if schema.aliases:
            value["aliases"] = list(schema.aliases)
        return value
    if isinstance(schema, FixedSchema):
        value = _named_value("fixed", schema.name, enclosing)
        value["size"] = schema.size
        if schema.doc is not None:
            value["doc"] = schema.doc
        if schema.aliases:
            value["aliases"] = list(schema.aliases)
        return value
    if isinstance(schema, DecimalSchema):
        inner = _to_value(schema.inner, enclosing)
        value = dict(inner) if isinstance(inner, dict) else {"type": inner}
        value.update(logicalType="decimal", precision=schema.precision, scale=schema.scale)
        return value
    if isinstance(schema, ArraySchema):
        return {"type": "array", "items": _to_value(schema.items, enclosing)}
    if isinstance(schema, MapSchema):
        return {"type": "map", "values": _to_value(schema.values, enclosing)}
    if isinstance(schema, UnionSchema):
        return [_to_value(v, enclosing) for v in schema.variants]
    raise TypeError(f"Not a schema: {schema!r}")


def to_json(schema: Schema) -> str:
    """Serialize a schema to compact, deterministic JSON."""
    return json.dumps(_to_value(schema, None), separators=(",", ":"), ensure_ascii=False)