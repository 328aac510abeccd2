"""
Making a model searchable

    UserSchema = Schema({"name": str, "age": int}, name="User")
    User = searchable(UserSchema)

    await User.create_mapping()
    await User.index_record({"_id": 1, "name": "Maurice", "age": 42})
    await User.refresh()
    result = await User.search({"query": {"match": {"name": "maurice"}}})

Hook on_saved and on_removed into the post-save and post-delete hooks of the data store, so the index follows the
records. Both return the IndexingRequest, which can be awaited to know when (and whether) elastic has it.
"""

import json
import logging
from typing import Any, AsyncIterable, Iterable

import elasticsearch.helpers

from essync import admin
from essync.documents.records import get_record_id
from essync.indexing import IndexingDispatcher, IndexingRequest
from essync.mapping.compiler import compile_mapping
from essync.models import IndexingOutcome, MappingNode, ModelOptions
from essync.options import build_model_options
from essync.schema import Schema, SchemaRegistry


class SearchableModel:
    """A data model (schema) attached to its elasticsearch index"""

    def __init__(self, schema: Schema, options: ModelOptions, registry: SchemaRegistry | None = None):
        self.schema = schema
        self.registry = registry
        self._options = options
        self.mapping: MappingNode = compile_mapping(schema, registry)
        self.dispatcher = IndexingDispatcher(options, self.mapping)

    def __repr__(self):
        return f"<SearchableModel {self._options.model_name} -> {self._options.index}>"

    def get_options(self) -> ModelOptions:
        return self._options

    def mapping_body(self) -> dict[str, Any]:
        """The mappings sent to elastic when creating the index"""
        properties = self.mapping.to_elastic().get("properties", {})
        return {
            "_meta": {"model": self._options.model_name, "type": self._options.type},
            "properties": {**properties, **self._options.custom_properties},
        }

    def serialize(self, record: Any) -> dict[str, Any]:
        return self.dispatcher.to_document(record)

    ######################## ADMINISTRATION #########################

    async def create_mapping(self, settings: dict[str, Any] | None = None):
        """
        Create the index with the mapping of this model. Index settings are the mapping_settings option updated
        with the given settings. If the index already exists, only the mapping is updated.
        """
        merged_settings = {**self._options.mapping_settings, **(settings or {})}
        if await admin.index_exists(self._options):
            if merged_settings:
                logging.warning(f"Index {self._options.index} already exists, not changing its settings")
            await admin.put_mapping(self._options, self.mapping_body())
        else:
            await admin.create_index(self._options, self.mapping_body(), merged_settings)

    async def delete_index(self):
        await admin.delete_index(self._options)

    async def refresh(self):
        await admin.refresh_index(self._options)

    async def truncate(self):
        """Remove all documents from the index, keeping the index and its mapping"""
        await self._options.elastic().delete_by_query(
            index=self._options.index, query={"match_all": {}}, refresh=True, conflicts="proceed"
        )

    ######################## SEARCH #########################

    async def search(self, body: dict[str, Any] | None = None, **kargs):
        """
        Run a search on the index of this model, returning the raw elastic response
        :param body: The search request body, e.g. {"query": {...}, "size": 10}
        """
        return await self._options.elastic().search(index=self._options.index, **(body or {}), **kargs)

    async def count(self, query: dict[str, Any] | None = None) -> int:
        r = await self._options.elastic().count(index=self._options.index, query=query or {"match_all": {}})
        return r["count"]

    async def get_document(self, record_id: Any) -> dict[str, Any]:
        """
        Get the stored document of a record. Raises elasticsearch.NotFoundError if it is not in the index
        """
        r = await self._options.elastic().get(index=self._options.index, id=str(record_id))
        return r["_source"]

    ######################## RECORD LIFECYCLE #########################

    def submit(self, record: Any) -> IndexingRequest:
        return self.dispatcher.submit_index(record)

    async def index_record(self, record: Any) -> IndexingOutcome:
        """(Re)index a record and wait for elastic to acknowledge it"""
        return await self.dispatcher.submit_index(record)

    async def remove_record(self, record_id: Any) -> IndexingOutcome:
        """Remove a record from the index and wait for elastic to acknowledge it"""
        return await self.dispatcher.submit_delete(record_id)

    def on_saved(self, record: Any) -> IndexingRequest:
        """Post-save hook for the data store"""
        return self.dispatcher.submit_index(record)

    def on_removed(self, record: Any) -> IndexingRequest:
        """Post-delete hook for the data store"""
        return self.dispatcher.submit_delete(get_record_id(record, self._options.id_field))

    async def synchronize(
        self, records: Iterable[Any] | AsyncIterable[Any], raise_on_error: bool = False
    ) -> dict[str, Any]:
        """
        Index all given records in bulk, e.g. to build the index of an existing collection.
        Records excluded by the filter option are skipped.

        :param records: An iterable or async iterable of records
        :param raise_on_error: If True, raise a BulkIndexError if any document fails
        :return: a dict with the number of successes and the list of failures
        """
        actions = self._bulk_actions(records)
        try:
            successes, failures = await elasticsearch.helpers.async_bulk(
                self._options.elastic(),
                actions,
                chunk_size=self._options.bulk_size,
                stats_only=False,
                raise_on_error=raise_on_error,
                refresh=self._options.refresh,
            )
        except elasticsearch.helpers.BulkIndexError as e:
            logging.error("Error on indexing: " + json.dumps(e.errors, indent=2, default=str))
            if e.errors:
                _, error = list(e.errors[0].items())[0]
                reason = error.get("error", {}).get("reason", error)
                e.args = e.args + (f"First error: {reason}",)
            raise
        if failures:
            logging.warning(f"Synchronizing {self._options.model_name}: {len(failures)} documents failed")
        return dict(successes=successes, failures=failures)

    async def _bulk_actions(self, records: Iterable[Any] | AsyncIterable[Any]):
        async for record in _aiter(records):
            if self.dispatcher.is_filtered(record):
                continue
            yield {
                "_op_type": "index",
                "_index": self._options.index,
                "_id": get_record_id(record, self._options.id_field),
                "_source": self.dispatcher.to_document(record),
            }


async def _aiter(records: Iterable[Any] | AsyncIterable[Any]):
    if isinstance(records, AsyncIterable):
        async for record in records:
            yield record
    else:
        for record in records:
            yield record


def searchable(
    schema: Schema, model_name: str | None = None, registry: SchemaRegistry | None = None, **overrides: Any
) -> SearchableModel:
    """
    Attach a schema to its elasticsearch index.

    :param schema: The schema of the model
    :param model_name: The name of the model (default: the name of the schema)
    :param registry: Schemas that es_schema directives can refer to
    :param overrides: Explicit model options, e.g. index, type, client, mapping_settings, filter, transform
    """
    model_name = model_name or schema.name
    if not model_name:
        raise ValueError("Cannot make an anonymous schema searchable without a model_name")
    return SearchableModel(schema, build_model_options(model_name, **overrides), registry)
