import pytest

from essync.config import get_settings
from essync.connections import connect_elastic, essync_connections
from tests.tools import FakeElasticsearch

ESSYNC_TESTS_PREFIX = "essync_unittest_"


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session", autouse=True)
def my_setup():
    # Keep test indices apart from real ones
    get_settings().index_prefix = ESSYNC_TESTS_PREFIX
    yield


@pytest.fixture(scope="function")
def fake_elastic():
    return FakeElasticsearch()


async def _elastic_available() -> bool:
    elastic = connect_elastic()
    try:
        return bool(await elastic.ping())
    finally:
        await elastic.close()


@pytest.fixture(scope="session")
async def elastic():
    """The shared elasticsearch connection. Tests using it are skipped if elastic cannot be reached"""
    if not await _elastic_available():
        pytest.skip(f"Cannot connect to elasticsearch at {get_settings().elastic_host}")
    async with essync_connections() as connection:
        yield connection
