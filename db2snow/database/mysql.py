"""MySQL source adapter.

MySQL has no schema level below the database, so the connected database is
presented as the only schema.
"""

import logging
from pathlib import Path
from typing import Any, List, Optional

from ..config import settings
from ..constants import MYSQL_SYSTEM_SCHEMAS
from ..export import DuckDBExporter
from .base import SourceAdapter
from .models import (
    SourceColumn,
    SourceConnectionConfig,
    SourceEngine,
    SourceForeignKey,
    SourceIndex,
    SourcePrimaryKey,
    SourceSchema,
    SourceTable,
)

logger = logging.getLogger(__name__)


def connection_string_value(value: Any) -> str:
    """Quote a key=value connection string value for the DuckDB MySQL extension.

    Values are single-quoted with backslash escapes, so spaces, ``=`` and
    quotes in passwords survive parsing.
    """
    text = str(value)
    return "'" + text.replace("\\", "\\\\").replace("'", "\\'") + "'"


QUERY_TABLES = """
    SELECT TABLE_SCHEMA AS schema_name, TABLE_NAME AS table_name
    FROM information_schema.TABLES
    WHERE TABLE_TYPE = 'BASE TABLE'
      AND TABLE_SCHEMA = %s
    ORDER BY TABLE_NAME
"""

QUERY_COLUMNS = """
    SELECT
        TABLE_SCHEMA AS schema_name,
        TABLE_NAME AS table_name,
        COLUMN_NAME AS column_name,
        ORDINAL_POSITION AS ordinal_position,
        COLUMN_DEFAULT AS column_default,
        CASE WHEN IS_NULLABLE = 'YES' THEN 1 ELSE 0 END AS is_nullable,
        DATA_TYPE AS data_type,
        COLUMN_TYPE AS udt_name,
        CHARACTER_MAXIMUM_LENGTH AS character_maximum_length,
        NUMERIC_PRECISION AS numeric_precision,
        NUMERIC_SCALE AS numeric_scale,
        CASE WHEN EXTRA LIKE '%%auto_increment%%' THEN 1 ELSE 0 END AS is_identity
    FROM information_schema.COLUMNS
    WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s
    ORDER BY ORDINAL_POSITION
"""

QUERY_PRIMARY_KEY = """
    SELECT
        tc.TABLE_SCHEMA AS schema_name,
        tc.TABLE_NAME AS table_name,
        tc.CONSTRAINT_NAME AS constraint_name,
        kcu.COLUMN_NAME AS column_name
    FROM information_schema.TABLE_CONSTRAINTS tc
    JOIN information_schema.KEY_COLUMN_USAGE kcu
      ON tc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME
     AND tc.TABLE_SCHEMA = kcu.TABLE_SCHEMA
     AND tc.TABLE_NAME = kcu.TABLE_NAME
    WHERE tc.CONSTRAINT_TYPE = 'PRIMARY KEY'
      AND tc.TABLE_SCHEMA = %s
      AND tc.TABLE_NAME = %s
    ORDER BY kcu.ORDINAL_POSITION
"""

QUERY_FOREIGN_KEYS = """
    SELECT
        tc.TABLE_SCHEMA AS schema_name,
        tc.TABLE_NAME AS table_name,
        tc.CONSTRAINT_NAME AS constraint_name,
        kcu.COLUMN_NAME AS column_name,
        kcu.REFERENCED_TABLE_SCHEMA AS referenced_schema,
        kcu.REFERENCED_TABLE_NAME AS referenced_table,
        kcu.REFERENCED_COLUMN_NAME AS referenced_column,
        rc.UPDATE_RULE AS update_rule,
        rc.DELETE_RULE AS delete_rule
    FROM information_schema.TABLE_CONSTRAINTS tc
    JOIN information_schema.KEY_COLUMN_USAGE kcu
      ON tc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME
     AND tc.TABLE_SCHEMA = kcu.TABLE_SCHEMA
     AND tc.TABLE_NAME = kcu.TABLE_NAME
    JOIN information_schema.REFERENTIAL_CONSTRAINTS rc
      ON tc.CONSTRAINT_NAME = rc.CONSTRAINT_NAME
     AND tc.TABLE_SCHEMA = rc.CONSTRAINT_SCHEMA
    WHERE tc.CONSTRAINT_TYPE = 'FOREIGN KEY'
      AND tc.TABLE_SCHEMA = %s
      AND tc.TABLE_NAME = %s
    ORDER BY tc.CONSTRAINT_NAME, kcu.ORDINAL_POSITION
"""

QUERY_INDEXES = """
    SELECT
        TABLE_SCHEMA AS schema_name,
        TABLE_NAME AS table_name,
        INDEX_NAME AS index_name,
        CASE WHEN NON_UNIQUE = 0 THEN 1 ELSE 0 END AS is_unique,
        GROUP_CONCAT(COLUMN_NAME ORDER BY SEQ_IN_INDEX SEPARATOR ', ') AS columns
    FROM information_schema.STATISTICS
    WHERE TABLE_SCHEMA = %s
      AND TABLE_NAME = %s
      AND INDEX_NAME != 'PRIMARY'
    GROUP BY TABLE_SCHEMA, TABLE_NAME, INDEX_NAME, NON_UNIQUE
    ORDER BY INDEX_NAME
"""


class MySQLAdapter(SourceAdapter):
    """Adapter for MySQL sources (PyMySQL for catalog queries)."""

    engine = SourceEngine.MYSQL
    display_name = "MySQL"
    default_port = 3306
    default_user = "root"
    supports_schemas = False
    system_schemas = MYSQL_SYSTEM_SCHEMAS

    def _open_connection(self, config: SourceConnectionConfig) -> Any:
        try:
            import pymysql
        except ImportError:
            raise ImportError(
                "PyMySQL is required for MySQL sources. "
                "Install it with: pip install pymysql"
            )

        return pymysql.connect(
            host=config.host,
            port=config.port,
            user=config.user,
            password=config.password,
            database=config.database,
            ssl={"check_hostname": False} if config.ssl else None,
            connect_timeout=settings.connect_timeout,
            charset="utf8mb4",
            autocommit=True,
        )

    async def get_schemas(self) -> List[SourceSchema]:
        """Return the connected database as the single schema."""
        self._require_connection()
        return [SourceSchema(schema_name=self._config.database)]

    async def get_tables(self, schema_name: str) -> List[SourceTable]:
        rows = await self._query(QUERY_TABLES, [schema_name])
        return [SourceTable(**row) for row in rows]

    async def _fetch_columns(self, schema_name: str, table_name: str) -> List[SourceColumn]:
        rows = await self._query(QUERY_COLUMNS, [schema_name, table_name])
        return [SourceColumn(**row) for row in rows]

    async def _fetch_primary_key(self, schema_name: str, table_name: str) -> Optional[SourcePrimaryKey]:
        rows = await self._query(QUERY_PRIMARY_KEY, [schema_name, table_name])
        return self._build_primary_key(rows)

    async def _fetch_foreign_keys(self, schema_name: str, table_name: str) -> List[SourceForeignKey]:
        rows = await self._query(QUERY_FOREIGN_KEYS, [schema_name, table_name])
        return self._group_foreign_keys(rows)

    async def _fetch_indexes(self, schema_name: str, table_name: str) -> List[SourceIndex]:
        rows = await self._query(QUERY_INDEXES, [schema_name, table_name])
        return self._build_column_indexes(rows)

    def _exporter(self, config: SourceConnectionConfig) -> DuckDBExporter:
        params = {
            "host": config.host,
            "port": config.port,
            "user": config.user,
            "password": config.password,
            "database": config.database,
        }
        target = " ".join(f"{key}={connection_string_value(value)}" for key, value in params.items())
        if config.ssl:
            target += " ssl_mode=required"
        return DuckDBExporter(extension="mysql", attach_target=target, attach_type="MYSQL")

    def _export_table_sync(
        self,
        session: Any,
        config: SourceConnectionConfig,
        schema_name: str,
        table_name: str,
        fmt: str,
        output_file: Path,
    ) -> int:
        # The attached database is the schema, so tables are addressed directly
        exporter = self._exporter(config)
        return exporter.copy_table(exporter.relation(table_name), output_file, fmt)
