"""PostgreSQL source adapter."""

import logging
from pathlib import Path
from typing import Any, List, Optional
from urllib.parse import quote

from ..config import settings
from ..constants import POSTGRES_SYSTEM_SCHEMAS
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
    SourceSequence,
    SourceTable,
)

logger = logging.getLogger(__name__)

QUERY_SCHEMAS = """
    SELECT schema_name
    FROM information_schema.schemata
    WHERE schema_name NOT IN ({placeholders})
      AND schema_name NOT LIKE %s
      AND schema_name NOT LIKE %s
    ORDER BY schema_name
"""

QUERY_TABLES = """
    SELECT table_schema AS schema_name, table_name
    FROM information_schema.tables
    WHERE table_type = 'BASE TABLE'
      AND table_schema = %s
    ORDER BY table_name
"""

QUERY_COLUMNS = """
    SELECT
        table_schema AS schema_name,
        table_name,
        column_name,
        ordinal_position,
        column_default,
        is_nullable = 'YES' AS is_nullable,
        data_type,
        udt_name,
        character_maximum_length,
        numeric_precision,
        numeric_scale,
        is_identity = 'YES' AS is_identity,
        identity_generation
    FROM information_schema.columns
    WHERE table_schema = %s AND table_name = %s
    ORDER BY ordinal_position
"""

QUERY_PRIMARY_KEY = """
    SELECT
        tc.table_schema AS schema_name,
        tc.table_name,
        tc.constraint_name,
        kcu.column_name
    FROM information_schema.table_constraints tc
    JOIN information_schema.key_column_usage kcu
      ON tc.constraint_name = kcu.constraint_name
     AND tc.table_schema = kcu.table_schema
     AND tc.table_name = kcu.table_name
    WHERE tc.constraint_type = 'PRIMARY KEY'
      AND tc.table_schema = %s
      AND tc.table_name = %s
    ORDER BY kcu.ordinal_position
"""

# conkey/confkey are unnested together so local and referenced columns stay paired
QUERY_FOREIGN_KEYS = """
    SELECT
        ns.nspname AS schema_name,
        cl.relname AS table_name,
        con.conname AS constraint_name,
        att.attname AS column_name,
        rns.nspname AS referenced_schema,
        rcl.relname AS referenced_table,
        ratt.attname AS referenced_column,
        CASE con.confupdtype
            WHEN 'c' THEN 'CASCADE' WHEN 'n' THEN 'SET NULL' WHEN 'd' THEN 'SET DEFAULT'
            WHEN 'r' THEN 'RESTRICT' ELSE 'NO ACTION' END AS update_rule,
        CASE con.confdeltype
            WHEN 'c' THEN 'CASCADE' WHEN 'n' THEN 'SET NULL' WHEN 'd' THEN 'SET DEFAULT'
            WHEN 'r' THEN 'RESTRICT' ELSE 'NO ACTION' END AS delete_rule
    FROM pg_constraint con
    JOIN pg_class cl ON cl.oid = con.conrelid
    JOIN pg_namespace ns ON ns.oid = cl.relnamespace
    JOIN pg_class rcl ON rcl.oid = con.confrelid
    JOIN pg_namespace rns ON rns.oid = rcl.relnamespace
    CROSS JOIN LATERAL unnest(con.conkey, con.confkey) WITH ORDINALITY AS k(attnum, refattnum, position)
    JOIN pg_attribute att ON att.attrelid = con.conrelid AND att.attnum = k.attnum
    JOIN pg_attribute ratt ON ratt.attrelid = con.confrelid AND ratt.attnum = k.refattnum
    WHERE con.contype = 'f'
      AND ns.nspname = %s
      AND cl.relname = %s
    ORDER BY con.conname, k.position
"""

QUERY_INDEXES = """
    SELECT
        schemaname AS schema_name,
        tablename AS table_name,
        indexname AS index_name,
        indexdef AS index_def
    FROM pg_indexes
    WHERE schemaname = %s
      AND tablename = %s
      AND indexname NOT IN (
        SELECT constraint_name
        FROM information_schema.table_constraints
        WHERE constraint_type = 'PRIMARY KEY'
          AND table_schema = %s
          AND table_name = %s
      )
    ORDER BY indexname
"""

# deptype 'a' links serial sequences, 'i' identity sequences, to their column
QUERY_SEQUENCES = """
    SELECT
        s.sequence_schema AS schema_name,
        s.sequence_name,
        s.data_type,
        s.start_value,
        s.increment,
        tbl.relname AS owner_table,
        att.attname AS owner_column
    FROM information_schema.sequences s
    JOIN pg_namespace ns ON ns.nspname = s.sequence_schema
    JOIN pg_class seq ON seq.relname = s.sequence_name AND seq.relnamespace = ns.oid
    LEFT JOIN pg_depend d
      ON d.objid = seq.oid
     AND d.classid = 'pg_class'::regclass
     AND d.refclassid = 'pg_class'::regclass
     AND d.deptype IN ('a', 'i')
    LEFT JOIN pg_class tbl ON tbl.oid = d.refobjid
    LEFT JOIN pg_attribute att ON att.attrelid = d.refobjid AND att.attnum = d.refobjsubid
    WHERE s.sequence_schema = %s
    ORDER BY s.sequence_name
"""


class PostgresAdapter(SourceAdapter):
    """Adapter for PostgreSQL sources (psycopg2 for catalog queries)."""

    engine = SourceEngine.POSTGRESQL
    display_name = "PostgreSQL"
    default_port = 5432
    default_user = "postgres"
    supports_schemas = True
    system_schemas = POSTGRES_SYSTEM_SCHEMAS

    def _open_connection(self, config: SourceConnectionConfig) -> Any:
        try:
            import psycopg2
        except ImportError:
            raise ImportError(
                "psycopg2 is required for PostgreSQL sources. "
                "Install it with: pip install psycopg2-binary"
            )

        connection = psycopg2.connect(
            host=config.host,
            port=config.port,
            dbname=config.database,
            user=config.user,
            password=config.password,
            sslmode="require" if config.ssl else "prefer",
            connect_timeout=settings.connect_timeout,
            application_name="db2snow",
        )
        # Catalog reads only; autocommit avoids holding a transaction open
        connection.autocommit = True
        return connection

    async def get_schemas(self) -> List[SourceSchema]:
        placeholders = ", ".join(["%s"] * len(self.system_schemas))
        rows = await self._query(
            QUERY_SCHEMAS.format(placeholders=placeholders),
            [*self.system_schemas, "pg_temp_%", "pg_toast_temp_%"],
        )
        return [SourceSchema(schema_name=row["schema_name"]) for row in rows]

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
        rows = await self._query(QUERY_INDEXES, [schema_name, table_name, schema_name, table_name])
        return [
            SourceIndex(
                schema_name=row["schema_name"],
                table_name=row["table_name"],
                index_name=row["index_name"],
                index_def=row["index_def"],
                is_unique=row["index_def"].upper().startswith("CREATE UNIQUE"),
            )
            for row in rows
        ]

    async def _fetch_sequences(self, schema_name: str) -> List[SourceSequence]:
        rows = await self._query(QUERY_SEQUENCES, [schema_name])
        return [
            SourceSequence(
                schema_name=row["schema_name"],
                sequence_name=row["sequence_name"],
                data_type=row["data_type"],
                start_value=str(row["start_value"]),
                increment=str(row["increment"]),
                owner_table=row["owner_table"],
                owner_column=row["owner_column"],
            )
            for row in rows
        ]

    def _exporter(self, config: SourceConnectionConfig) -> DuckDBExporter:
        target = (
            f"postgresql://{quote(config.user, safe='')}:{quote(config.password, safe='')}"
            f"@{config.host}:{config.port}/{quote(config.database, safe='')}"
        )
        if config.ssl:
            target += "?sslmode=require"
        return DuckDBExporter(extension="postgres", attach_target=target, attach_type="POSTGRES")

    def _export_table_sync(
        self,
        session: Any,
        config: SourceConnectionConfig,
        schema_name: str,
        table_name: str,
        fmt: str,
        output_file: Path,
    ) -> int:
        exporter = self._exporter(config)
        return exporter.copy_table(exporter.relation(schema_name, table_name), output_file, fmt)
