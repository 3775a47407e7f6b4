"""Loading of engines from entry points."""

from importlib.metadata import EntryPoint, entry_points

from ox_runner.engines.base import Engine

ENTRY_POINT_GROUP = "ox_runner.engines"


class EngineNotFoundError(Exception):
    """Raised when an engine is not found."""


def load_engine(key: str) -> type[Engine]:
    """Load an engine class by key.

    Args:
        key: The engine key as registered in pyproject.toml (e.g., "scripted"),
             or a "module:attribute" reference

    Returns:
        The engine class

    Raises:
        EngineNotFoundError: If no engine with the given key is found

    """
    entries = entry_points(group=ENTRY_POINT_GROUP)

    for entry in entries:
        if entry.name == key:
            engine_cls: type[Engine] = entry.load()
            return engine_cls

    if ":" in key:
        try:
            engine_cls = EntryPoint(name=key, value=key, group=ENTRY_POINT_GROUP).load()
        except (ImportError, AttributeError) as e:
            raise EngineNotFoundError(f"Cannot import engine '{key}': {e}") from e
        return engine_cls

    available = [e.name for e in entries]
    raise EngineNotFoundError(
        f"Engine '{key}' not found. Available engines: {available}"
    )
