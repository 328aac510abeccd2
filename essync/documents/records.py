"""
Access to the live records of the primary data store.

Records can be mappings (e.g. documents read from a document store), pydantic models, dataclasses or any other
object with attributes. A reference field either holds the identifier of the referenced record (not populated),
or the referenced record itself (populated).
"""

import dataclasses
from typing import Any, Mapping

from pydantic import BaseModel


def get_value(record: Any, field: str) -> Any:
    """Get the value of a field, or None if the record does not have it"""
    if isinstance(record, Mapping):
        return record.get(field)
    return getattr(record, field, None)


def is_populated(value: Any) -> bool:
    """Is this value a record (as opposed to a scalar such as an identifier)?"""
    if isinstance(value, (Mapping, BaseModel)):
        return True
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return True
    return hasattr(value, "__dict__") and not isinstance(value, type)


def get_record_id(record: Any, id_field: str = "_id") -> str:
    """The identifier of a record, as used for the elasticsearch document _id"""
    record_id = get_value(record, id_field)
    if record_id is None:
        raise ValueError(f"Record has no identifier (field {id_field!r}): {record!r}")
    return str(record_id)
