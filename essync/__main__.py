"""
essync command line interface
"""

import argparse
import asyncio
import importlib
import inspect
import json
import logging
import sys

from essync.config import ENV_PREFIX, get_settings
from essync.connections import essync_connections, es
from essync.plugin import SearchableModel


def load_model(path: str) -> SearchableModel:
    """Import a searchable model given as package.module:attribute"""
    module_name, _, attribute = path.partition(":")
    if not attribute:
        raise ValueError(f"Specify the model as package.module:attribute, not {path!r}")
    model = getattr(importlib.import_module(module_name), attribute)
    if not isinstance(model, SearchableModel):
        raise ValueError(f"{path} is not a searchable model, but {model!r}")
    return model


def show_config(_args):
    for k, v in get_settings().model_dump().items():
        print(f"{ENV_PREFIX.upper()}{k.upper()}={v}")


async def check_connection(_args):
    settings = get_settings()
    try:
        async with essync_connections():
            info = await es().info()
            logging.info(f"Connected to elasticsearch {info['version']['number']} at {settings.elastic_host}")
    except ConnectionError as e:
        logging.error(str(e))
        sys.exit(1)


def show_mapping(args):
    model = load_model(args.model)
    print(json.dumps(model.mapping_body(), indent=2))


async def create_mapping(args):
    model = load_model(args.model)
    async with essync_connections():
        if args.recreate:
            await model.delete_index()
        await model.create_mapping()
    logging.info(f"Created mapping for {model.get_options().model_name} in {model.get_options().index}")


async def delete_index(args):
    model = load_model(args.model)
    async with essync_connections():
        await model.delete_index()
    logging.info(f"Deleted index {model.get_options().index}")


async def refresh(args):
    model = load_model(args.model)
    async with essync_connections():
        await model.refresh()


def main():
    parser = argparse.ArgumentParser(description=__doc__, prog="python -m essync")

    subparsers = parser.add_subparsers(dest="action", title="action", help="Action to perform:", required=True)
    p = subparsers.add_parser("config", help="Show the current essync settings")
    p.set_defaults(func=show_config)

    p = subparsers.add_parser("check", help="Check the connection with elasticsearch")
    p.set_defaults(func=check_connection)

    p = subparsers.add_parser("show-mapping", help="Print the compiled mapping of a model")
    p.add_argument("model", help="The searchable model, as package.module:attribute")
    p.set_defaults(func=show_mapping)

    p = subparsers.add_parser("create-mapping", help="Create the index and mapping of a model")
    p.add_argument("model", help="The searchable model, as package.module:attribute")
    p.add_argument("--recreate", action="store_true", help="Delete the index first (this deletes all documents!)")
    p.set_defaults(func=create_mapping)

    p = subparsers.add_parser("delete-index", help="Delete the index of a model")
    p.add_argument("model", help="The searchable model, as package.module:attribute")
    p.set_defaults(func=delete_index)

    p = subparsers.add_parser("refresh", help="Refresh the index of a model")
    p.add_argument("model", help="The searchable model, as package.module:attribute")
    p.set_defaults(func=refresh)

    args = parser.parse_args()

    logging.basicConfig(format="[%(levelname)-7s:%(name)-15s] %(message)s", level=logging.INFO)
    es_logger = logging.getLogger("elasticsearch")
    es_logger.setLevel(logging.WARNING)

    if inspect.iscoroutinefunction(args.func):
        asyncio.run(args.func(args))
    else:
        args.func(args)


if __name__ == "__main__":
    main()
