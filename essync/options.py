from typing import Any

from essync.config import get_settings
from essync.models import ModelOptions


def pluralize(name: str) -> str:
    """
    Naive english plural, used to derive index names from model names (user -> users, city -> cities)
    """
    if name.endswith("y") and len(name) > 1 and name[-2] not in "aeiou":
        return name[:-1] + "ies"
    if name.endswith(("s", "x", "z", "ch", "sh")):
        return name + "es"
    return name + "s"


def build_model_options(model_name: str, **overrides: Any) -> ModelOptions:
    """
    Compute the indexing options of a model from its name, the global settings and explicit overrides.
    By default, model User is stored in index users (with the index_prefix setting prepended) with type user.
    """
    settings = get_settings()
    name = model_name.lower()
    defaults: dict[str, Any] = dict(
        model_name=model_name,
        index=settings.index_prefix + pluralize(name),
        type=name,
        bulk_size=settings.bulk_size,
        refresh=settings.refresh_on_write,
    )
    return ModelOptions(**(defaults | overrides))
