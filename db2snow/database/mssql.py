"""SQL Server source adapter."""

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

from ..config import settings
from ..constants import MSSQL_SYSTEM_SCHEMAS
from ..export import write_rows
from .base import SourceAdapter
from .models import (
    SourceColumn,
    SourceConnectionConfig,
    SourceEngine,
    SourceForeignKey,
    SourceIndex,
    SourcePrimaryKey,
    SourceSchema,
    SourceSequence,
    SourceTable,
)

logger = logging.getLogger(__name__)

QUERY_SCHEMAS = """
    SELECT s.name AS schema_name
    FROM sys.schemas s
    WHERE s.name NOT IN ({placeholders})
    ORDER BY s.name
"""

QUERY_TABLES = """
    SELECT TABLE_SCHEMA AS schema_name, TABLE_NAME AS table_name
    FROM INFORMATION_SCHEMA.TABLES
    WHERE TABLE_TYPE = 'BASE TABLE'
      AND TABLE_SCHEMA = %s
    ORDER BY TABLE_NAME
"""

QUERY_COLUMNS = """
    SELECT
        c.TABLE_SCHEMA AS schema_name,
        c.TABLE_NAME AS table_name,
        c.COLUMN_NAME AS column_name,
        c.ORDINAL_POSITION AS ordinal_position,
        c.COLUMN_DEFAULT AS column_default,
        CASE WHEN c.IS_NULLABLE = 'YES' THEN 1 ELSE 0 END AS is_nullable,
        c.DATA_TYPE AS data_type,
        c.CHARACTER_MAXIMUM_LENGTH AS character_maximum_length,
        c.NUMERIC_PRECISION AS numeric_precision,
        c.NUMERIC_SCALE AS numeric_scale,
        COLUMNPROPERTY(OBJECT_ID(QUOTENAME(c.TABLE_SCHEMA) + '.' + QUOTENAME(c.TABLE_NAME)),
                       c.COLUMN_NAME, 'IsIdentity') AS is_identity,
        IDENT_SEED(QUOTENAME(c.TABLE_SCHEMA) + '.' + QUOTENAME(c.TABLE_NAME)) AS identity_seed,
        IDENT_INCR(QUOTENAME(c.TABLE_SCHEMA) + '.' + QUOTENAME(c.TABLE_NAME)) AS identity_increment
    FROM INFORMATION_SCHEMA.COLUMNS c
    WHERE c.TABLE_SCHEMA = %s AND c.TABLE_NAME = %s
    ORDER BY c.ORDINAL_POSITION
"""

QUERY_PRIMARY_KEY = """
    SELECT
        tc.TABLE_SCHEMA AS schema_name,
        tc.TABLE_NAME AS table_name,
        tc.CONSTRAINT_NAME AS constraint_name,
        kcu.COLUMN_NAME AS column_name
    FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS tc
    JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE kcu
      ON tc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME
     AND tc.TABLE_SCHEMA = kcu.TABLE_SCHEMA
     AND tc.TABLE_NAME = kcu.TABLE_NAME
    WHERE tc.CONSTRAINT_TYPE = 'PRIMARY KEY'
      AND tc.TABLE_SCHEMA = %s
      AND tc.TABLE_NAME = %s
    ORDER BY kcu.ORDINAL_POSITION
"""

# Referenced columns are paired with local columns by key ordinal
QUERY_FOREIGN_KEYS = """
    SELECT
        tc.TABLE_SCHEMA AS schema_name,
        tc.TABLE_NAME AS table_name,
        tc.CONSTRAINT_NAME AS constraint_name,
        kcu.COLUMN_NAME AS column_name,
        kcu2.TABLE_SCHEMA AS referenced_schema,
        kcu2.TABLE_NAME AS referenced_table,
        kcu2.COLUMN_NAME AS referenced_column,
        rc.UPDATE_RULE AS update_rule,
        rc.DELETE_RULE AS delete_rule
    FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS tc
    JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE kcu
      ON tc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME
     AND tc.TABLE_SCHEMA = kcu.TABLE_SCHEMA
    JOIN INFORMATION_SCHEMA.REFERENTIAL_CONSTRAINTS rc
      ON tc.CONSTRAINT_NAME = rc.CONSTRAINT_NAME
     AND tc.TABLE_SCHEMA = rc.CONSTRAINT_SCHEMA
    JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE kcu2
      ON rc.UNIQUE_CONSTRAINT_NAME = kcu2.CONSTRAINT_NAME
     AND rc.UNIQUE_CONSTRAINT_SCHEMA = kcu2.TABLE_SCHEMA
     AND kcu.ORDINAL_POSITION = kcu2.ORDINAL_POSITION
    WHERE tc.CONSTRAINT_TYPE = 'FOREIGN KEY'
      AND tc.TABLE_SCHEMA = %s
      AND tc.TABLE_NAME = %s
    ORDER BY tc.CONSTRAINT_NAME, kcu.ORDINAL_POSITION
"""

QUERY_INDEXES = """
    SELECT
        SCHEMA_NAME(o.schema_id) AS schema_name,
        o.name AS table_name,
        i.name AS index_name,
        i.is_unique AS is_unique,
        STRING_AGG(c.name, ', ') WITHIN GROUP (ORDER BY ic.key_ordinal) AS columns
    FROM sys.indexes i
    JOIN sys.index_columns ic ON i.object_id = ic.object_id AND i.index_id = ic.index_id
    JOIN sys.columns c ON ic.object_id = c.object_id AND ic.column_id = c.column_id
    JOIN sys.objects o ON i.object_id = o.object_id
    WHERE o.type = 'U'
      AND i.is_primary_key = 0
      AND i.type > 0
      AND SCHEMA_NAME(o.schema_id) = %s
      AND o.name = %s
    GROUP BY SCHEMA_NAME(o.schema_id), o.name, i.name, i.is_unique
    ORDER BY i.name
"""

QUERY_SEQUENCES = """
    SELECT
        SCHEMA_NAME(s.schema_id) AS schema_name,
        s.name AS sequence_name,
        TYPE_NAME(s.system_type_id) AS data_type,
        CAST(s.start_value AS VARCHAR(64)) AS start_value,
        CAST(s.increment AS VARCHAR(64)) AS increment
    FROM sys.sequences s
    WHERE SCHEMA_NAME(s.schema_id) = %s
    ORDER BY s.name
"""


class MSSQLAdapter(SourceAdapter):
    """Adapter for SQL Server sources (pymssql for catalog queries and export reads).

    SQL Server sequences belong to the schema rather than a column, so the
    whole list ends up on the first table of an introspected batch.
    """

    engine = SourceEngine.MSSQL
    display_name = "SQL Server"
    default_port = 1433
    default_user = "sa"
    supports_schemas = True
    system_schemas = MSSQL_SYSTEM_SCHEMAS

    def _connect_kwargs(self, config: SourceConnectionConfig) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "user": config.user,
            "password": config.password,
            "database": config.database,
            "login_timeout": settings.mssql_login_timeout,
            "appname": "db2snow",
        }
        if config.instance_name:
            # Named instances are resolved through the SQL Browser, not a port
            kwargs["server"] = f"{config.host}\\{config.instance_name}"
        else:
            kwargs["server"] = config.host
            kwargs["port"] = str(config.port)
        if config.ssl:
            kwargs["encryption"] = "require"
        return kwargs

    def _open_connection(self, config: SourceConnectionConfig, timeout: Optional[int] = None) -> Any:
        try:
            import pymssql
        except ImportError:
            raise ImportError(
                "pymssql is required for SQL Server sources. "
                "Install it with: pip install pymssql"
            )

        kwargs = self._connect_kwargs(config)
        if timeout is not None:
            kwargs["timeout"] = timeout
        return pymssql.connect(**kwargs)

    async def get_schemas(self) -> List[SourceSchema]:
        placeholders = ", ".join(["%s"] * len(self.system_schemas))
        rows = await self._query(QUERY_SCHEMAS.format(placeholders=placeholders), list(self.system_schemas))
        return [SourceSchema(schema_name=row["schema_name"]) for row in rows]

    async def get_tables(self, schema_name: str) -> List[SourceTable]:
        rows = await self._query(QUERY_TABLES, [schema_name])
        return [SourceTable(**row) for row in rows]

    async def _fetch_columns(self, schema_name: str, table_name: str) -> List[SourceColumn]:
        rows = await self._query(QUERY_COLUMNS, [schema_name, table_name])
        return [self._build_column(row) for row in rows]

    @staticmethod
    def _build_column(row: Dict[str, Any]) -> SourceColumn:
        is_identity = row["is_identity"] == 1
        identity_generation = None
        if is_identity and row.get("identity_seed") is not None:
            identity_generation = f"{row['identity_seed']},{row['identity_increment']}"
        return SourceColumn(
            schema_name=row["schema_name"],
            table_name=row["table_name"],
            column_name=row["column_name"],
            ordinal_position=row["ordinal_position"],
            column_default=row["column_default"],
            is_nullable=bool(row["is_nullable"]),
            data_type=row["data_type"],
            udt_name=row["data_type"],
            character_maximum_length=row["character_maximum_length"],
            numeric_precision=row["numeric_precision"],
            numeric_scale=row["numeric_scale"],
            is_identity=is_identity,
            identity_generation=identity_generation,
        )

    async def _fetch_primary_key(self, schema_name: str, table_name: str) -> Optional[SourcePrimaryKey]:
        rows = await self._query(QUERY_PRIMARY_KEY, [schema_name, table_name])
        return self._build_primary_key(rows)

    async def _fetch_foreign_keys(self, schema_name: str, table_name: str) -> List[SourceForeignKey]:
        rows = await self._query(QUERY_FOREIGN_KEYS, [schema_name, table_name])
        return self._group_foreign_keys(rows)

    async def _fetch_indexes(self, schema_name: str, table_name: str) -> List[SourceIndex]:
        rows = await self._query(QUERY_INDEXES, [schema_name, table_name])
        return self._build_column_indexes(rows)

    async def _fetch_sequences(self, schema_name: str) -> List[SourceSequence]:
        rows = await self._query(QUERY_SEQUENCES, [schema_name])
        return [
            SourceSequence(
                schema_name=row["schema_name"],
                sequence_name=row["sequence_name"],
                data_type=row["data_type"],
                start_value=str(row["start_value"]),
                increment=str(row["increment"]),
            )
            for row in rows
        ]

    def _open_export_session(self, config: SourceConnectionConfig) -> Any:
        # Reads of large tables must not time out
        return self._open_connection(config, timeout=0)

    def _export_table_sync(
        self,
        session: Any,
        config: SourceConnectionConfig,
        schema_name: str,
        table_name: str,
        fmt: str,
        output_file: Path,
    ) -> int:
        cursor = session.cursor()
        try:
            cursor.execute(f"SELECT * FROM {_quote_name(schema_name)}.{_quote_name(table_name)}")
            columns = [d[0] for d in cursor.description]
            return write_rows(columns, _batches(cursor, settings.export_batch_size), output_file, fmt)
        finally:
            cursor.close()


def _quote_name(name: str) -> str:
    return "[" + name.replace("]", "]]") + "]"


def _batches(cursor: Any, size: int) -> Iterator[Sequence[Sequence[Any]]]:
    while True:
        rows = cursor.fetchmany(size)
        if not rows:
            return
        yield rows
