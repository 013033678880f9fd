"""Adapter selection and engine-level defaults."""

from typing import Dict, List, Type, Union

from .base import SourceAdapter
from .models import SourceEngine
from .mssql import MSSQLAdapter
from .mysql import MySQLAdapter
from .postgres import PostgresAdapter

ADAPTERS: Dict[SourceEngine, Type[SourceAdapter]] = {
    SourceEngine.POSTGRESQL: PostgresAdapter,
    SourceEngine.MYSQL: MySQLAdapter,
    SourceEngine.MSSQL: MSSQLAdapter,
}


def _adapter_class(engine: Union[SourceEngine, str]) -> Type[SourceAdapter]:
    try:
        return ADAPTERS[SourceEngine(engine)]
    except ValueError:
        raise ValueError(f"Unsupported source engine: {engine}") from None


def get_adapter(engine: Union[SourceEngine, str]) -> SourceAdapter:
    """Create a new adapter for an engine.

    Each call returns a fresh instance with its own connection state.

    Raises:
        ValueError: If the engine is not supported
    """
    return _adapter_class(engine)()


def get_engine_display_name(engine: Union[SourceEngine, str]) -> str:
    """Human readable engine name, e.g. ``SQL Server``."""
    return _adapter_class(engine).display_name


def get_default_port(engine: Union[SourceEngine, str]) -> int:
    """Default TCP port for an engine."""
    return _adapter_class(engine).default_port


def get_default_user(engine: Union[SourceEngine, str]) -> str:
    """Default administrative user for an engine."""
    return _adapter_class(engine).default_user


def list_engines() -> List[SourceEngine]:
    """All supported engines, in display order."""
    return list(ADAPTERS)
