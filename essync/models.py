from enum import Enum
from typing import Annotated, Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field

from essync.connections import es

IndexName = Annotated[str, Field(pattern=r"^[a-z][a-z0-9_.-]*$", title="Index name")]


######################## SCHEMA SPECIFICATIONS #########################

FieldKind = Literal[
    "string",
    "number",
    "boolean",
    "date",
    "objectid",
    "mixed",
    "array",
    "embedded",
    "object",
]


class SchemaNode(BaseModel):
    """One field of a data model schema.

    Primitive fields only have a kind. Embedded schemas and plain objects carry their fields in ``children``,
    arrays carry their element in ``item``. ``directives`` holds the search mapping directives of the field
    (the ``es_*`` options, without prefix), ``options`` any other option given in the definition.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    kind: FieldKind
    children: dict[str, "SchemaNode"] | None = None
    item: "SchemaNode | None" = None
    schema_name: str | None = None
    ref: str | None = None
    directives: dict[str, Any] = {}
    options: dict[str, Any] = {}


######################## MAPPING SPECIFICATIONS #########################


class MappingNode(BaseModel):
    """A compiled elasticsearch field mapping.

    ``reference`` marks nodes that were compiled for a reference field, so the serializer knows
    to resolve populated records rather than copy the stored value. It is not part of the elastic mapping.
    """

    type: str | None = None
    properties: dict[str, "MappingNode"] | None = None
    options: dict[str, Any] = {}
    reference: bool = False

    def to_elastic(self) -> dict[str, Any]:
        result = dict(self.options)
        if self.type is not None:
            result["type"] = self.type
        if self.properties is not None:
            result["properties"] = {name: field.to_elastic() for name, field in self.properties.items()}
        return result


######################## MODEL OPTIONS #########################


class ModelOptions(BaseModel):
    """Indexing options of a single model. Computed when the model is made searchable, never changed afterwards."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, protected_namespaces=())

    model_name: str
    index: IndexName
    type: str
    # An AsyncElasticsearch client. If None, the shared connection from essync.connections is used
    client: Any = None
    mapping_settings: dict[str, Any] = {}
    custom_properties: dict[str, Any] = {}
    id_field: str = "_id"
    refresh: bool = False
    bulk_size: Annotated[int, Field(ge=1)] = 1000
    filter: Callable[[Any], bool] | None = None
    transform: Callable[[dict[str, Any], Any], dict[str, Any] | None] | None = None

    def elastic(self):
        return self.client if self.client is not None else es()


######################## INDEXING #########################


class IndexingState(str, Enum):
    pending = "pending"
    sent = "sent"
    acknowledged = "acknowledged"
    failed = "failed"


IndexingAction = Literal["index", "delete"]


class IndexingOutcome(BaseModel):
    """Terminal state of one record mutation"""

    record_id: str
    action: IndexingAction
    state: IndexingState
    result: str | None = None
    error: str | None = None
