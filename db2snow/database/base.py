"""Abstract base class for source database adapters."""

import asyncio
import functools
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from ..errors import ConnectionError
from ..export import ERROR, SUCCESS, ExportResult, export_file_path
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
from .type_mappers import TypeMapper, get_type_mapper

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]
TableRef = Union[SourceTable, SourceTableMetadata]


class SourceAdapter(ABC):
    """Abstract base class for source database adapters.

    An adapter owns a single DB-API connection. The drivers are blocking, so
    every call runs in the default executor; a per-adapter lock serializes
    calls on the shared connection, which lets introspection gather its
    catalog queries without the driver having to multiplex them.

    Subclasses implement the driver hooks (``_open_connection``) and the
    catalog fetches; the base class assembles them into the operations the
    rest of db2snow uses.
    """

    engine: SourceEngine
    display_name: str
    default_port: int
    default_user: str
    supports_schemas: bool = True
    # Override in subclasses to exclude system schemas
    system_schemas: Tuple[str, ...] = ()

    def __init__(self, type_mapper: Optional[TypeMapper] = None):
        self._connection: Any = None
        self._config: Optional[SourceConnectionConfig] = None
        self._lock = asyncio.Lock()
        self._type_mapper = type_mapper or get_type_mapper(self.engine)

    # ------------------------------------------------------------------
    # Driver hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _open_connection(self, config: SourceConnectionConfig) -> Any:
        """Open a DB-API connection with a bounded connect timeout."""
        pass

    @abstractmethod
    def _export_table_sync(
        self,
        session: Any,
        config: SourceConnectionConfig,
        schema_name: str,
        table_name: str,
        fmt: str,
        output_file: Path,
    ) -> int:
        """Copy one table to ``output_file`` and return its row count."""
        pass

    def _open_export_session(self, config: SourceConnectionConfig) -> Any:
        """Open whatever the export path shares across a batch (None by default)."""
        return None

    def _close_export_session(self, session: Any) -> None:
        if session is not None:
            session.close()

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def connect(self, config: SourceConnectionConfig) -> None:
        """Connect to the source database, replacing any existing connection.

        Raises:
            ConnectionError: If the handshake fails or times out
        """
        try:
            connection = await self._run_blocking(self._open_connection, config)
        except Exception as e:
            raise ConnectionError(
                f"Failed to connect to {self.display_name} at {config.describe()}",
                cause=e,
            ) from e

        previous = self._connection
        self._connection = connection
        self._config = config
        if previous is not None:
            await self._run_blocking(self._close_quietly, previous)
        logger.info("Connected to %s at %s", self.display_name, config.describe())

    async def disconnect(self) -> None:
        """Close the connection. Does nothing when not connected."""
        if self._connection is None:
            return
        connection = self._connection
        self._connection = None
        self._config = None
        await self._run_blocking(self._close_quietly, connection)
        logger.debug("Disconnected from %s", self.display_name)

    async def test_connection(self, config: SourceConnectionConfig) -> bool:
        """Check that a connection can be opened and queried.

        Uses its own short-lived connection and never raises.
        """
        def select_one() -> None:
            connection = self._open_connection(config)
            try:
                self._fetch_rows(connection, "SELECT 1", None)
            finally:
                connection.close()

        try:
            await self._run_blocking(select_one)
            return True
        except Exception as e:
            logger.info("Connection test to %s at %s failed: %s", self.display_name, config.describe(), e)
            return False

    async def __aenter__(self) -> "SourceAdapter":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    # ------------------------------------------------------------------
    # Catalog queries
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_schemas(self) -> List[SourceSchema]:
        """List user schemas, excluding system schemas."""
        pass

    @abstractmethod
    async def get_tables(self, schema_name: str) -> List[SourceTable]:
        """List base tables (no views) in a schema."""
        pass

    @abstractmethod
    async def _fetch_columns(self, schema_name: str, table_name: str) -> List[SourceColumn]:
        pass

    @abstractmethod
    async def _fetch_primary_key(self, schema_name: str, table_name: str) -> Optional[SourcePrimaryKey]:
        pass

    @abstractmethod
    async def _fetch_foreign_keys(self, schema_name: str, table_name: str) -> List[SourceForeignKey]:
        pass

    @abstractmethod
    async def _fetch_indexes(self, schema_name: str, table_name: str) -> List[SourceIndex]:
        pass

    async def _fetch_sequences(self, schema_name: str) -> List[SourceSequence]:
        return []

    async def introspect_table(self, schema_name: str, table_name: str) -> SourceTableMetadata:
        """Introspect columns, primary key, foreign keys and indexes of a table."""
        columns, primary_key, foreign_keys, indexes = await asyncio.gather(
            self._fetch_columns(schema_name, table_name),
            self._fetch_primary_key(schema_name, table_name),
            self._fetch_foreign_keys(schema_name, table_name),
            self._fetch_indexes(schema_name, table_name),
        )
        return SourceTableMetadata(
            schema_name=schema_name,
            table_name=table_name,
            columns=sorted(columns, key=lambda c: c.ordinal_position),
            primary_key=primary_key,
            foreign_keys=foreign_keys,
            indexes=indexes,
        )

    async def introspect_schema(
        self,
        schema_name: str,
        table_names: Sequence[str],
    ) -> List[SourceTableMetadata]:
        """Introspect the named tables of a schema together with its sequences.

        Sequences owned by a column are attached to the owning table; the
        rest are attached to the first table of the batch.
        """
        tables, sequences = await asyncio.gather(
            asyncio.gather(*(self.introspect_table(schema_name, name) for name in table_names)),
            self._fetch_sequences(schema_name),
        )
        return attach_sequences(list(tables), sequences)

    def map_column_to_snowflake(self, column: SourceColumn) -> SnowflakeColumn:
        """Map a column with this engine's type mapper."""
        return self._type_mapper.map_column(column)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    async def export_tables(
        self,
        config: SourceConnectionConfig,
        tables: Sequence[TableRef],
        fmt: str,
        output_dir: Union[str, Path],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[ExportResult]:
        """Export tables one at a time.

        A failing table produces an error result and the batch moves on, so
        the returned list always has one result per requested table.

        Args:
            config: Connection parameters (export uses its own connections)
            tables: Tables to export, in order
            fmt: ``parquet`` or ``csv``
            output_dir: Directory for ``<schema>.<table>.<fmt>`` files
            on_progress: Called with (display name, index, total) before each table
        """
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        try:
            session = await self._run_blocking(self._open_export_session, config)
        except Exception as e:
            logger.error("Could not open %s export connection: %s", self.display_name, e)
            return [
                ExportResult(t.schema_name, t.table_name, status=ERROR, error=_error_message(e))
                for t in tables
            ]

        results: List[ExportResult] = []
        try:
            total = len(tables)
            for index, table in enumerate(tables):
                if on_progress is not None:
                    on_progress(f"{table.schema_name}.{table.table_name}", index, total)
                results.append(await self._export_one(session, config, table, fmt, output_path))
        finally:
            if session is not None:
                await self._run_blocking(self._close_export_session, session)
        return results

    async def _export_one(
        self,
        session: Any,
        config: SourceConnectionConfig,
        table: TableRef,
        fmt: str,
        output_dir: Path,
    ) -> ExportResult:
        output_file = export_file_path(output_dir, table.schema_name, table.table_name, fmt)
        start = time.monotonic()
        try:
            row_count = await self._run_blocking(
                self._export_table_sync,
                session,
                config,
                table.schema_name,
                table.table_name,
                fmt,
                output_file,
            )
            file_size = output_file.stat().st_size
        except Exception as e:
            logger.warning("Export of %s.%s failed: %s", table.schema_name, table.table_name, e)
            return ExportResult(
                table.schema_name,
                table.table_name,
                status=ERROR,
                row_count=0,
                duration=time.monotonic() - start,
                error=_error_message(e),
            )

        duration = time.monotonic() - start
        logger.info(
            "Exported %s.%s: %d rows in %.2fs", table.schema_name, table.table_name, row_count, duration
        )
        return ExportResult(
            table.schema_name,
            table.table_name,
            status=SUCCESS,
            row_count=row_count,
            duration=duration,
            file_path=str(output_file),
            file_size=file_size,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_connection(self) -> Any:
        if self._connection is None:
            raise ConnectionError(f"Not connected to {self.display_name}. Connect first.")
        return self._connection

    async def _query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Run a catalog query on the adapter connection and return dict rows."""
        connection = self._require_connection()
        async with self._lock:
            return await self._run_blocking(self._fetch_rows, connection, sql, params)

    @staticmethod
    def _fetch_rows(connection: Any, sql: str, params: Optional[Sequence[Any]]) -> List[Dict[str, Any]]:
        cursor = connection.cursor()
        try:
            if params is None:
                cursor.execute(sql)
            else:
                cursor.execute(sql, tuple(params))
            names = [d[0] for d in cursor.description]
            return [dict(zip(names, row)) for row in cursor.fetchall()]
        finally:
            cursor.close()

    @staticmethod
    async def _run_blocking(func: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    def _close_quietly(self, connection: Any) -> None:
        try:
            connection.close()
        except Exception as e:
            logger.warning("Error closing %s connection: %s", self.display_name, e)

    @staticmethod
    def _build_primary_key(rows: List[Dict[str, Any]]) -> Optional[SourcePrimaryKey]:
        """Build a primary key from per-column rows already in key order."""
        if not rows:
            return None
        first = rows[0]
        return SourcePrimaryKey(
            schema_name=first["schema_name"],
            table_name=first["table_name"],
            constraint_name=first["constraint_name"],
            columns=[row["column_name"] for row in rows],
        )

    @staticmethod
    def _group_foreign_keys(rows: List[Dict[str, Any]]) -> List[SourceForeignKey]:
        """Group per-column rows by constraint name, keeping arrival order."""
        grouped: Dict[str, Dict[str, Any]] = {}
        for row in rows:
            fk = grouped.get(row["constraint_name"])
            if fk is None:
                fk = grouped[row["constraint_name"]] = {
                    "schema_name": row["schema_name"],
                    "table_name": row["table_name"],
                    "constraint_name": row["constraint_name"],
                    "columns": [],
                    "referenced_schema": row["referenced_schema"],
                    "referenced_table": row["referenced_table"],
                    "referenced_columns": [],
                    "update_rule": row["update_rule"],
                    "delete_rule": row["delete_rule"],
                }
            fk["columns"].append(row["column_name"])
            fk["referenced_columns"].append(row["referenced_column"])
        return [SourceForeignKey(**fk) for fk in grouped.values()]

    @staticmethod
    def _build_column_indexes(rows: List[Dict[str, Any]]) -> List[SourceIndex]:
        """Build indexes from rows carrying an aggregated ``columns`` list."""
        return [
            SourceIndex(
                schema_name=row["schema_name"],
                table_name=row["table_name"],
                index_name=row["index_name"],
                index_def=f"INDEX {row['index_name']} ({row['columns']})",
                is_unique=bool(row["is_unique"]),
            )
            for row in rows
        ]


def attach_sequences(
    tables: List[SourceTableMetadata],
    sequences: Sequence[SourceSequence],
) -> List[SourceTableMetadata]:
    """Attach sequences to their owner table, or to the first table when unowned.

    Sequences whose owner is outside the batch also go to the first table so
    none are dropped.
    """
    if not tables or not sequences:
        return tables

    by_table: Dict[str, List[SourceSequence]] = {}
    unowned: List[SourceSequence] = []
    names = {t.table_name for t in tables}
    for sequence in sequences:
        if sequence.owner_table and sequence.owner_table in names:
            by_table.setdefault(sequence.owner_table, []).append(sequence)
        else:
            unowned.append(sequence)

    attached = []
    for index, table in enumerate(tables):
        owned = by_table.get(table.table_name, [])
        extra = unowned if index == 0 else []
        if owned or extra:
            table = table.model_copy(update={"sequences": list(table.sequences) + owned + extra})
        attached.append(table)
    return attached


def _error_message(error: BaseException) -> str:
    return str(error) or error.__class__.__name__
