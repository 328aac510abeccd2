"""
Compile a schema into an elasticsearch mapping

Which fields end up in the mapping is decided per level (the fields of a schema, or the keys of a plain object):

- A level is *explicit* if any of its fields opts in, i.e. has es_indexed=True, or contains a sub-field that
  opts in (and is not itself es_indexed=False). On an explicit level only the fields that opt in are mapped.
- Otherwise the level is *implicit*: primitives, arrays and embedded schemas are mapped, plain objects are not
  (unless they have es_indexed=True).
- es_indexed=False always excludes a field.
- Reference fields are never mapped from the referenced model. They are mapped only if they have an es_type
  (a type name, or a projection: a mapping of sub-field name to directives) or an es_schema naming a schema in the
  registry. An es_type projection takes precedence over es_schema.

Compilation never fails on a field: anything that cannot be mapped is left out.
"""

import logging
from typing import Any, Mapping

from essync.mapping.typemap import DEFAULT_ELASTIC_TYPE, resolve_field_type
from essync.models import MappingNode, SchemaNode
from essync.schema import DIRECTIVE_PREFIX, Schema, SchemaRegistry, effective_directives, field_children, is_reference

logger = logging.getLogger("essync.mapping")

# Directives that steer compilation and are not copied into the elastic mapping
NON_MAPPING_DIRECTIVES = {"indexed", "type", "schema"}

# es_type values that keep the sub-fields of an object
OBJECT_TYPES = {"object", "nested"}

# elastic keeps these outside the document source, so they cannot be mapped at the root
METADATA_FIELDS = {"_id", "_index", "_source", "_routing", "_type", "_version", "_seq_no"}


def compile_mapping(schema: Schema, registry: SchemaRegistry | None = None) -> MappingNode:
    """
    Compile the mapping for all fields of a schema. The result is the root node, which only has properties.
    Root fields that clash with elastic metadata fields (such as _id) are not mapped.
    """
    registry = registry if registry is not None else SchemaRegistry()
    chain = (schema.name,) if schema.name else ()
    fields = {name: node for name, node in schema.fields.items() if name not in METADATA_FIELDS}
    return MappingNode(properties=compile_fields(fields, registry, chain))


def compile_fields(
    fields: Mapping[str, SchemaNode], registry: SchemaRegistry, chain: tuple[str, ...] = ()
) -> dict[str, MappingNode]:
    """Compile one level of fields, applying the inclusion rules"""
    explicit = any(opts_in(node) for node in fields.values())
    properties = {}
    for name, node in fields.items():
        if not is_included(node, explicit):
            continue
        mapping = compile_field(node, registry, chain)
        if mapping is not None:
            properties[name] = mapping
    return properties


def opts_in(node: SchemaNode) -> bool:
    """Is this field explicitly indexed, or does it contain an explicitly indexed field?"""
    directives = effective_directives(node)
    indexed = directives.get("indexed")
    if is_reference(node):
        # a reference can only opt in if there is something to map
        return bool(indexed) and ("type" in directives or "schema" in directives)
    if indexed is not None:
        return bool(indexed)
    children = field_children(node)
    return bool(children) and any(opts_in(child) for child in children.values())


def is_included(node: SchemaNode, explicit: bool) -> bool:
    directives = effective_directives(node)
    if directives.get("indexed") is False:
        return False
    if is_reference(node):
        return "type" in directives or "schema" in directives
    if explicit:
        return opts_in(node)
    if node.kind == "object":
        return directives.get("indexed") is True
    return True


def compile_field(
    node: SchemaNode, registry: SchemaRegistry, chain: tuple[str, ...] = ()
) -> MappingNode | None:
    """Compile the mapping of a single field, or None if it has nothing to map"""
    directives = effective_directives(node)
    if is_reference(node):
        return _compile_reference(node.name, directives, registry, chain)
    options = _mapping_options(directives)

    children = field_children(node)
    if children is None:
        return MappingNode(type=resolve_field_type(node), options=options)

    es_type = directives.get("type")
    if isinstance(es_type, str) and es_type not in OBJECT_TYPES:
        # e.g. geo_point or flattened: the object is a leaf for elastic
        return MappingNode(type=es_type, options=options)
    properties = compile_fields(children, registry, chain)
    if not properties:
        return None
    return MappingNode(type=es_type, properties=properties, options=options)


def _compile_reference(
    name: str, directives: dict[str, Any], registry: SchemaRegistry, chain: tuple[str, ...]
) -> MappingNode | None:
    es_type = directives.get("type")
    options = _mapping_options(directives)
    if isinstance(es_type, str):
        return MappingNode(type=es_type, options=options, reference=True)
    if isinstance(es_type, Mapping):
        properties = compile_projection(es_type)
    elif (schema_name := directives.get("schema")) is not None:
        if schema_name in chain:
            logger.warning(f"Not mapping field {name!r}: schema {schema_name!r} refers to itself via {' > '.join(chain)}")
            return None
        schema = registry.get(schema_name)
        if schema is None:
            logger.warning(f"Not mapping field {name!r}: schema {schema_name!r} is not registered")
            return None
        properties = compile_fields(schema.fields, registry, chain + (schema_name,))
    else:
        return None
    if not properties:
        return None
    return MappingNode(properties=properties, options=options, reference=True)


def compile_projection(projection: Mapping[str, Any], _seen: frozenset[int] = frozenset()) -> dict[str, MappingNode]:
    """
    Compile an explicit projection, e.g. {"name": {"es_type": "text"}, "city": {"es_type": {...}}}.
    Each key is a sub-field with its own es_ directives, a mapping as es_type is a nested projection.
    """
    if id(projection) in _seen:
        logger.warning("Ignoring a projection that contains itself")
        return {}
    seen = _seen | {id(projection)}

    properties = {}
    for field, definition in projection.items():
        if not isinstance(definition, Mapping):
            continue
        directives = {
            key[len(DIRECTIVE_PREFIX) :]: value for key, value in definition.items() if key.startswith(DIRECTIVE_PREFIX)
        }
        if directives.get("indexed") is False:
            continue
        es_type = directives.get("type")
        options = _mapping_options(directives)
        if isinstance(es_type, Mapping):
            sub_properties = compile_projection(es_type, seen)
            if sub_properties:
                properties[field] = MappingNode(properties=sub_properties, options=options)
        else:
            properties[field] = MappingNode(
                type=es_type if isinstance(es_type, str) else DEFAULT_ELASTIC_TYPE, options=options
            )
    return properties


def _mapping_options(directives: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in directives.items() if key not in NON_MAPPING_DIRECTIVES}
