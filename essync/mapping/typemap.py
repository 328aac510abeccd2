# maps schema field kinds to elastic field types.
# Kinds not listed here (e.g. mixed) fall back to DEFAULT_ELASTIC_TYPE: generating a mapping should
# never fail on an unsupported field.
import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from essync.models import FieldKind, SchemaNode

_TYPEMAP_KIND_TO_ES: dict[FieldKind, str] = {
    "string": "text",
    "number": "double",
    "boolean": "boolean",
    "date": "date",
    "objectid": "keyword",
}

DEFAULT_ELASTIC_TYPE = "text"

GEO_INDEXES = {"2d", "2dsphere"}

TEXT_TYPES = {"text", "keyword", "string", "constant_keyword", "wildcard", "match_only_text", "annotated_text"}
INTEGER_TYPES = {"integer", "long", "short", "byte", "unsigned_long"}


def resolve_field_type(node: SchemaNode) -> str:
    """
    Determine the elastic type of a primitive field (or an array of primitives, which elastic treats as the
    type of its elements). An explicit es_type string always wins.
    """
    es_type = node.directives.get("type")
    if isinstance(es_type, str):
        return es_type
    if node.kind == "array" and node.item is not None:
        if node.item.kind == "number" and node.options.get("index") in GEO_INDEXES:
            return "geo_point"
        return resolve_field_type(node.item)
    return _TYPEMAP_KIND_TO_ES.get(node.kind, DEFAULT_ELASTIC_TYPE)


def coerce_value(value: Any, es_type: str | None):
    """
    Convert values into the representation elastic expects for the given field type.
    Only lossless conversions are done: values that do not fit the field type are sent as they are,
    so elastic accepts or rejects them.
    """
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if es_type in TEXT_TYPES:
        # identifiers (ints, UUIDs, ObjectIds) are stored as their string form
        if isinstance(value, (str, bool, Mapping, list, tuple)):
            return value
        return str(value)
    if es_type in INTEGER_TYPES and isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, Decimal):
        return float(value)
    return value
