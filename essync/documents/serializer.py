"""
Serialize live records into the documents stored in elasticsearch

The compiled mapping decides which fields go into the document. Fields that are missing on the record
(or None) are left out, arrays keep their order and length, and arrays of objects stay arrays of objects:
nested fields need one entry per sub-document.
"""

from functools import partial
from typing import Any, Mapping

from essync.documents.records import get_value, is_populated
from essync.documents.references import resolve_reference
from essync.mapping.typemap import coerce_value
from essync.models import MappingNode


def serialize(record: Any, mapping: MappingNode, id_field: str = "_id") -> dict[str, Any]:
    """
    Serialize a record against a compiled (root) mapping

    :param record: The record (mapping, pydantic model or other object)
    :param mapping: The compiled mapping of the record's schema
    :param id_field: The field containing the identifier of (referenced) records
    :return: the document to store in elastic
    """
    return serialize_object(record, mapping.properties or {}, id_field)


def serialize_object(record: Any, properties: Mapping[str, MappingNode], id_field: str = "_id") -> dict[str, Any]:
    document = {}
    for field, mapping in properties.items():
        value = get_value(record, field)
        if value is None:
            continue
        serialized = serialize_value(value, mapping, id_field)
        if serialized is not None:
            document[field] = serialized
    return document


def serialize_value(value: Any, mapping: MappingNode, id_field: str = "_id"):
    """Serialize a single field value, returning None if it should be left out"""
    if mapping.reference:
        return resolve_reference(value, mapping, partial(serialize_object, id_field=id_field), id_field)

    if mapping.properties is not None:
        if isinstance(value, (list, tuple)):
            return [serialize_object(v, mapping.properties, id_field) for v in value if is_populated(v)]
        if is_populated(value):
            return serialize_object(value, mapping.properties, id_field)
        # an identifier where a (projected) record was expected: nothing to embed
        return None

    if isinstance(value, (list, tuple)):
        return [coerce_value(v, mapping.type) for v in value if v is not None]
    return coerce_value(value, mapping.type)
