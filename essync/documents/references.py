import logging
from typing import Any, Callable, Mapping

from essync.documents.records import get_value, is_populated
from essync.mapping.typemap import coerce_value
from essync.models import MappingNode

logger = logging.getLogger("essync.documents")

SerializeObject = Callable[[Any, Mapping[str, MappingNode]], dict[str, Any]]


def resolve_reference(value: Any, mapping: MappingNode, serialize_object: SerializeObject, id_field: str = "_id"):
    """
    Resolve the value of a reference field into what should be stored in elastic.

    If the reference is not populated (the value is just an identifier) and the mapping is a projection,
    there is nothing to embed and None is returned: the field should be left out of the document.
    A populated reference is serialized with serialize_object against the properties of the projection, so
    references within the projection are resolved as deep as the projection goes.
    If the reference is mapped to a plain type, the identifier of the referenced record is stored.
    """
    if isinstance(value, (list, tuple)):
        resolved = [resolve_reference(v, mapping, serialize_object, id_field) for v in value]
        resolved = [r for r in resolved if r is not None]
        if value and not resolved:
            return None
        return resolved

    if mapping.properties is None:
        target = get_value(value, id_field) if is_populated(value) else value
        return None if target is None else coerce_value(target, mapping.type)

    if not is_populated(value):
        logger.debug(f"Reference {value!r} is not populated, leaving it out of the document")
        return None
    return serialize_object(value, mapping.properties)
