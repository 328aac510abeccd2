"""
Index administration

These calls act directly on the index of a model and return once elastic has answered.
Note that new documents only become visible to searches after a refresh of the index, so call refresh_index
(and await it) before relying on search results in tests or scripts.
"""

import logging
from typing import Any

from elasticsearch import NotFoundError

from essync.models import ModelOptions


class IndexDoesNotExist(ValueError):
    pass


class IndexAlreadyExists(ValueError):
    pass


async def index_exists(options: ModelOptions) -> bool:
    return bool(await options.elastic().indices.exists(index=options.index))


async def create_index(options: ModelOptions, mappings: dict[str, Any], settings: dict[str, Any] | None = None):
    """
    Create the index of a model with the given mappings and index settings (e.g. analysis)
    """
    if await index_exists(options):
        raise IndexAlreadyExists(f'Index "{options.index}" already exists')
    logging.info(f"Creating index {options.index} for {options.model_name}")
    await options.elastic().indices.create(index=options.index, mappings=mappings, settings=settings or None)


async def put_mapping(options: ModelOptions, mappings: dict[str, Any]):
    """
    Add the mapped fields to an existing index. Elastic refuses changes to the type of existing fields.
    """
    try:
        await options.elastic().indices.put_mapping(index=options.index, properties=mappings.get("properties", {}))
    except NotFoundError:
        raise IndexDoesNotExist(options.index)


async def delete_index(options: ModelOptions, ignore_missing: bool = True) -> None:
    """
    Delete the index of a model
    :param ignore_missing: If True (default), deleting an index that does not exist succeeds
    """
    _es = options.elastic().options(ignore_status=404) if ignore_missing else options.elastic()
    await _es.indices.delete(index=options.index)


async def refresh_index(options: ModelOptions):
    """
    Refresh the elasticsearch index
    """
    await options.elastic().indices.refresh(index=options.index)
