"""Snowflake DDL generator for introspected source tables."""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from ..database.models import SnowflakeColumn, SourceEngine, SourceTableMetadata
from ..database.type_mappers import TypeMapper, get_type_mapper
from ..errors import DDLGenerationError

HEADER = [
    "-- Generated by db2snow",
    "-- Snowflake records PRIMARY KEY and FOREIGN KEY constraints but does not enforce them;",
    "-- they document relationships for tools and the optimizer. Only NOT NULL is enforced.",
]

INDENT = "    "


@dataclass
class DDLResult:
    """Generated DDL script and what it contains."""
    sql: str
    schema_count: int
    table_count: int
    foreign_key_count: int


def quote_identifier(name: str) -> str:
    """Quote a Snowflake identifier, preserving its case."""
    return '"' + name.replace('"', '""') + '"'


def quote_string(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


class SnowflakeDDLGenerator:
    """Generates Snowflake DDL from introspected table metadata.

    Output order is fixed: header, one CREATE SCHEMA per schema in first-seen
    order, one CREATE TABLE per table in input order, then every foreign key
    as an ALTER TABLE statement. Foreign keys pointing at tables outside the
    input still render.
    """

    def __init__(
        self,
        tables: Sequence[SourceTableMetadata],
        engine: Union[SourceEngine, str] = SourceEngine.POSTGRESQL,
        type_mapper: Optional[TypeMapper] = None,
    ):
        self.tables = list(tables)
        self.engine = SourceEngine(engine)
        self.type_mapper = type_mapper or get_type_mapper(self.engine)

    def schema_names(self) -> List[str]:
        """Distinct schema names in first-seen order."""
        seen = {}
        for table in self.tables:
            seen.setdefault(table.schema_name, None)
        return list(seen)

    def generate_schemas(self) -> List[str]:
        return [f"CREATE SCHEMA IF NOT EXISTS {quote_identifier(name)};" for name in self.schema_names()]

    def generate_table(self, table: SourceTableMetadata) -> str:
        """Generate the CREATE TABLE statement for one table."""
        columns = self.type_mapper.map_all_columns(table.columns)
        definitions = [INDENT + self.render_column(column) for column in columns]

        if table.primary_key and table.primary_key.columns:
            pk_columns = ", ".join(quote_identifier(c) for c in table.primary_key.columns)
            definitions.append(
                f"{INDENT}CONSTRAINT {quote_identifier(table.primary_key.constraint_name)} "
                f"PRIMARY KEY ({pk_columns})"
            )

        lines = [f"CREATE TABLE IF NOT EXISTS {self._table_name(table.schema_name, table.table_name)} ("]
        lines.append(",\n".join(definitions))
        lines.append(");")
        return "\n".join(lines)

    @staticmethod
    def render_column(column: SnowflakeColumn) -> str:
        """Render a column definition in Snowflake clause order."""
        parts = [quote_identifier(column.name), column.type]
        if column.comment:
            parts.append(f"COMMENT {quote_string(column.comment)}")
        if column.is_identity:
            parts.append(f"IDENTITY({column.identity_seed},{column.identity_increment})")
        elif column.default_value is not None:
            parts.append(f"DEFAULT {column.default_value}")
        if not column.nullable:
            parts.append("NOT NULL")
        return " ".join(parts)

    def generate_foreign_keys(self) -> List[str]:
        statements = []
        for table in self.tables:
            for fk in table.foreign_keys:
                local = ", ".join(quote_identifier(c) for c in fk.columns)
                referenced = ", ".join(quote_identifier(c) for c in fk.referenced_columns)
                statements.append(
                    f"ALTER TABLE {self._table_name(table.schema_name, table.table_name)} "
                    f"ADD CONSTRAINT {quote_identifier(fk.constraint_name)} "
                    f"FOREIGN KEY ({local}) "
                    f"REFERENCES {self._table_name(fk.referenced_schema, fk.referenced_table)} ({referenced}) "
                    f"ON UPDATE {fk.update_rule} ON DELETE {fk.delete_rule};"
                )
        return statements

    def generate(self) -> DDLResult:
        """Generate the complete DDL script."""
        schemas = self.generate_schemas()
        tables = [self.generate_table(table) for table in self.tables]
        foreign_keys = self.generate_foreign_keys()

        sections = ["\n".join(HEADER)]
        if schemas:
            sections.append("\n".join(schemas))
        sections.extend(tables)
        if foreign_keys:
            sections.append("-- Foreign keys\n" + "\n".join(foreign_keys))

        return DDLResult(
            sql="\n\n".join(sections) + "\n",
            schema_count=len(schemas),
            table_count=len(tables),
            foreign_key_count=len(foreign_keys),
        )

    @staticmethod
    def _table_name(schema_name: str, table_name: str) -> str:
        return f"{quote_identifier(schema_name)}.{quote_identifier(table_name)}"


def generate_ddl(
    tables: Sequence[SourceTableMetadata],
    engine: Union[SourceEngine, str] = SourceEngine.POSTGRESQL,
) -> DDLResult:
    """Generate Snowflake DDL for a list of tables.

    Args:
        tables: Introspected tables, in the order they should be created
        engine: Source engine whose type mapper renders the columns

    Returns:
        DDLResult with the SQL text and statement counts

    Raises:
        DDLGenerationError: If the DDL cannot be generated
    """
    try:
        return SnowflakeDDLGenerator(tables, engine).generate()
    except DDLGenerationError:
        raise
    except Exception as e:
        raise DDLGenerationError(f"Failed to generate DDL: {e}", cause=e) from e
