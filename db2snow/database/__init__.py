"""Source database access for db2snow.

This module provides a uniform adapter interface over PostgreSQL, MySQL and
SQL Server, together with the metadata model and the per-engine type mappers
that translate source columns into Snowflake columns.
"""

from .models import (
    SnowflakeColumn,
    SourceColumn,
    SourceConnectionConfig,
    SourceEngine,
    SourceForeignKey,
    SourceIndex,
    SourcePrimaryKey,
    SourceSchema,
    SourceSequence,
    SourceTable,
    SourceTableMetadata,
)
from .type_mappers import (
    TypeMapper,
    PostgresTypeMapper,
    MySQLTypeMapper,
    MSSQLTypeMapper,
    get_type_mapper,
)
from .base import SourceAdapter
from .postgres import PostgresAdapter
from .mysql import MySQLAdapter
from .mssql import MSSQLAdapter
from .factory import (
    get_adapter,
    get_default_port,
    get_default_user,
    get_engine_display_name,
    list_engines,
)

__all__ = [
    # Data models
    "SnowflakeColumn",
    "SourceColumn",
    "SourceConnectionConfig",
    "SourceEngine",
    "SourceForeignKey",
    "SourceIndex",
    "SourcePrimaryKey",
    "SourceSchema",
    "SourceSequence",
    "SourceTable",
    "SourceTableMetadata",
    # Type mappers
    "TypeMapper",
    "PostgresTypeMapper",
    "MySQLTypeMapper",
    "MSSQLTypeMapper",
    "get_type_mapper",
    # Adapters
    "SourceAdapter",
    "PostgresAdapter",
    "MySQLAdapter",
    "MSSQLAdapter",
    # Factory
    "get_adapter",
    "get_default_port",
    "get_default_user",
    "get_engine_display_name",
    "list_engines",
]
