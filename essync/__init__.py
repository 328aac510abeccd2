"""
essync: keep elasticsearch indices in sync with the records of a document-oriented data model
"""

from essync.indexing import IndexingError, IndexingRequest
from essync.mapping.compiler import compile_mapping
from essync.models import IndexingOutcome, IndexingState, MappingNode, ModelOptions
from essync.plugin import SearchableModel, searchable
from essync.schema import Schema, SchemaDefinitionError, SchemaRegistry

__all__ = [
    "IndexingError",
    "IndexingOutcome",
    "IndexingRequest",
    "IndexingState",
    "MappingNode",
    "ModelOptions",
    "Schema",
    "SchemaDefinitionError",
    "SchemaRegistry",
    "SearchableModel",
    "compile_mapping",
    "searchable",
]
