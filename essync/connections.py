import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from elasticsearch import AsyncElasticsearch

from essync.config import get_settings


class ESConnectionHolder:
    active: AsyncElasticsearch | None = None


ES_CONNECTION = ESConnectionHolder()


@asynccontextmanager
async def essync_connections() -> AsyncGenerator[AsyncElasticsearch, None]:
    """
    The main context manager to start and stop the elasticsearch connection.
    Models that were attached without an explicit client use this connection, so open it once:
        - For applications: around the lifetime of the application
        - For tests: in the setup fixture in the tests
        - For CLI commands: within the CLI command
    """
    try:
        yield await _start_elastic()
    finally:
        await _close_elastic()


def es() -> AsyncElasticsearch:
    """
    Use this function to access the elasticsearch connection.
    """
    if ES_CONNECTION.active is None:
        raise ConnectionError("Elasticsearch connection not initialized")
    return ES_CONNECTION.active


def connect_elastic() -> AsyncElasticsearch:
    """
    Connect to the elastic server using the system settings
    """
    settings = get_settings()
    if settings.elastic_password:
        return AsyncElasticsearch(
            settings.elastic_host,
            basic_auth=("elastic", settings.elastic_password),
            verify_certs=bool(settings.elastic_verify_ssl),
        )
    else:
        return AsyncElasticsearch(settings.elastic_host or None)


async def _start_elastic() -> AsyncElasticsearch:
    """
    Check whether we can connect with elastic
    """
    settings = get_settings()
    logging.debug(
        f"Connecting with elasticsearch at {settings.elastic_host}, password? {'yes' if settings.elastic_password else 'no'} "
    )
    elastic = connect_elastic()
    if not await elastic.ping():
        await elastic.close()
        raise ConnectionError(f"Cannot connect to elasticsearch server {settings.elastic_host}")
    ES_CONNECTION.active = elastic
    return elastic


async def _close_elastic() -> None:
    if ES_CONNECTION.active is not None:
        await ES_CONNECTION.active.close()
        ES_CONNECTION.active = None
