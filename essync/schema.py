"""
Declaring the schema of a data model

A schema is declared as a mapping of field names to definitions, in the style of document store ODMs:

    CitySchema = Schema({"name": str, "tags": [TagSchema]}, name="City")
    UserSchema = Schema({
        "name": {"type": str, "es_boost": 2},
        "joined": datetime,
        "tags": [str],
        "address": {"street": str, "number": int},  # plain object
        "city": CitySchema,                            # embedded schema
        "company": {"type": "objectid", "ref": "Company", "es_type": {"name": {"es_type": "text"}}},
    }, name="User")

A definition is one of:
- a python type (str, int, float, Decimal, bool, datetime, date, UUID, dict, Any) or a kind name ("string", ...)
- a Schema, for an embedded schema
- a list with a single definition, for an array
- a mapping with a "type" key, giving the definition plus options. Options starting with es_ are
  search mapping directives (es_indexed, es_type, es_boost, es_analyzer, ...), "ref" names the referenced model
- any other mapping, for a plain (schema-less) object
"""

import datetime
import uuid
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping

from essync.models import FieldKind, SchemaNode

DIRECTIVE_PREFIX = "es_"

_PRIMITIVE_KINDS: dict[Any, FieldKind] = {
    str: "string",
    int: "number",
    float: "number",
    Decimal: "number",
    bool: "boolean",
    datetime.datetime: "date",
    datetime.date: "date",
    uuid.UUID: "objectid",
    dict: "mixed",
    object: "mixed",
    Any: "mixed",
}

_PRIMITIVE_KIND_NAMES = {"string", "number", "boolean", "date", "objectid", "mixed"}


class SchemaDefinitionError(ValueError):
    pass


class Schema:
    """The field tree of one data model"""

    def __init__(self, definition: Mapping[str, Any], name: str | None = None):
        if not isinstance(definition, Mapping):
            raise SchemaDefinitionError(f"A schema is declared as a mapping of fields, not {definition!r}")
        self.name = name
        self.fields: dict[str, SchemaNode] = {
            field: parse_field(field, value) for field, value in definition.items()
        }

    def __iter__(self) -> Iterator[SchemaNode]:
        return iter(self.fields.values())

    def __getitem__(self, field: str) -> SchemaNode:
        return self.fields[field]

    def __repr__(self):
        return f"Schema({self.name or '<anonymous>'}: {', '.join(self.fields)})"


class SchemaRegistry(Mapping[str, Schema]):
    """
    Read-only lookup table of schema name to Schema, used to resolve es_schema directives.
    Pass it explicitly to the mapping compiler, there is no global registry.
    """

    def __init__(self, schemas: Mapping[str, Schema] | Iterable[Schema] = ()):
        if isinstance(schemas, Mapping):
            table = dict(schemas)
        else:
            table = {}
            for schema in schemas:
                if not schema.name:
                    raise SchemaDefinitionError(f"Cannot register an anonymous schema: {schema!r}")
                table[schema.name] = schema
        self._schemas = MappingProxyType(table)

    def __getitem__(self, name: str) -> Schema:
        return self._schemas[name]

    def __iter__(self):
        return iter(self._schemas)

    def __len__(self):
        return len(self._schemas)


def parse_field(name: str, definition: Any) -> SchemaNode:
    """Turn the definition of a single field into a SchemaNode"""
    if isinstance(definition, Schema):
        return SchemaNode(name=name, kind="embedded", children=definition.fields, schema_name=definition.name)
    if isinstance(definition, list):
        if len(definition) != 1:
            raise SchemaDefinitionError(f"Array field {name!r} should be declared with exactly one element type")
        return SchemaNode(name=name, kind="array", item=parse_field(name, definition[0]))
    if isinstance(definition, Mapping):
        if "type" in definition:
            return _parse_field_options(name, definition)
        children = {key: parse_field(key, value) for key, value in definition.items()}
        return SchemaNode(name=name, kind="object", children=children)
    kind = _primitive_kind(definition)
    if kind is None:
        raise SchemaDefinitionError(f"Cannot interpret the definition of field {name!r}: {definition!r}")
    return SchemaNode(name=name, kind=kind)


def _parse_field_options(name: str, definition: Mapping[str, Any]) -> SchemaNode:
    node = parse_field(name, definition["type"])
    directives = {}
    options = {}
    for key, value in definition.items():
        if key in ("type", "ref"):
            continue
        if key.startswith(DIRECTIVE_PREFIX):
            directives[key[len(DIRECTIVE_PREFIX) :]] = value
        else:
            options[key] = value

    update: dict[str, Any] = dict(directives=directives, options=options)
    ref = definition.get("ref")
    if ref is not None:
        if node.kind == "array" and node.item is not None:
            # {"type": ["objectid"], "ref": "Tag"} is an array of references
            update["item"] = node.item.model_copy(update=dict(ref=ref))
        else:
            update["ref"] = ref
    return node.model_copy(update=update)


def _primitive_kind(definition: Any) -> FieldKind | None:
    if isinstance(definition, str):
        return definition if definition in _PRIMITIVE_KIND_NAMES else None  # type: ignore[return-value]
    try:
        return _PRIMITIVE_KINDS.get(definition)
    except TypeError:
        # unhashable definitions are not primitives
        return None


def is_reference(node: SchemaNode) -> bool:
    """Is this a reference field, or an array of references?"""
    if node.ref is not None:
        return True
    return node.kind == "array" and node.item is not None and node.item.ref is not None


def field_children(node: SchemaNode) -> dict[str, SchemaNode] | None:
    """The sub-fields of an embedded schema or plain object, also when it is the element of an array"""
    if node.kind == "array" and node.item is not None:
        return field_children(node.item)
    return node.children


def effective_directives(node: SchemaNode) -> dict[str, Any]:
    """Directives of the field. For arrays, directives given on the element apply unless set on the array"""
    if node.kind == "array" and node.item is not None and node.item.directives:
        return {**node.item.directives, **node.directives}
    return dict(node.directives)

