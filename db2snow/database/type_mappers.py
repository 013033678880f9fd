"""Database-specific type mapping strategies.

Each mapper turns a ``SourceColumn`` into a ``SnowflakeColumn``. Mapping is
pure and total: a type without a rule becomes ``VARCHAR`` with a comment
naming the source type, it never raises.
"""

import re
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple, Union

from .models import SnowflakeColumn, SourceColumn, SourceEngine

CURRENT_TIMESTAMP = "CURRENT_TIMESTAMP()"
CURRENT_DATE = "CURRENT_DATE()"


class TypeMapping(NamedTuple):
    """Rendered Snowflake type plus an optional note about the conversion."""
    type: str
    comment: Optional[str] = None


class TypeMapper(ABC):
    """Abstract base class for source-to-Snowflake type mapping.

    Subclasses supply the engine rules; ``map_column`` applies them in a
    fixed order: identity detection, type resolution, then default
    translation for non-identity columns.
    """

    engine: SourceEngine
    # (precision, scale) used for numeric columns with no declared precision
    DEFAULT_NUMERIC: Tuple[int, int] = (38, 0)
    SIMPLE_TYPES: Dict[str, str] = {}

    def map_column(self, column: SourceColumn) -> SnowflakeColumn:
        """Map one source column to its Snowflake representation."""
        is_identity = self.is_identity(column)
        mapping = self.map_type(column)

        if is_identity:
            seed, increment = self.identity_seed_increment(column)
            default_value = None
        else:
            seed, increment = 1, 1
            default_value = self.map_default(column.column_default, column, mapping.type)

        return SnowflakeColumn(
            name=column.column_name,
            type=mapping.type,
            nullable=column.is_nullable,
            default_value=default_value,
            is_identity=is_identity,
            identity_seed=seed,
            identity_increment=increment,
            comment=mapping.comment,
        )

    def map_all_columns(self, columns: Sequence[SourceColumn]) -> List[SnowflakeColumn]:
        """Map columns in ordinal order."""
        ordered = sorted(columns, key=lambda c: c.ordinal_position)
        return [self.map_column(column) for column in ordered]

    @abstractmethod
    def is_identity(self, column: SourceColumn) -> bool:
        """Whether the engine assigns this column's value on insert."""
        pass

    @abstractmethod
    def map_type(self, column: SourceColumn) -> TypeMapping:
        """Resolve the Snowflake type for a column."""
        pass

    @abstractmethod
    def map_default(
        self,
        default: Optional[str],
        column: SourceColumn,
        target_type: str,
    ) -> Optional[str]:
        """Translate a source default expression to Snowflake syntax.

        Args:
            default: Raw default expression reported by the source catalog
            column: The column the default belongs to
            target_type: Snowflake type already resolved for the column

        Returns:
            Snowflake default expression, or None to omit the default
        """
        pass

    def identity_seed_increment(self, column: SourceColumn) -> Tuple[int, int]:
        """Seed and increment for an identity column."""
        return 1, 1

    def _numeric(self, column: SourceColumn) -> str:
        precision, scale = column.numeric_precision, column.numeric_scale
        if precision is not None and scale is not None:
            return f"NUMBER({precision},{scale})"
        if precision is not None:
            return f"NUMBER({precision})"
        return "NUMBER({},{})".format(*self.DEFAULT_NUMERIC)

    @staticmethod
    def _sized(base: str, length: Optional[int], default_length: Optional[int] = None) -> str:
        # -1 marks an unbounded (max) length
        if length is not None and length > 0:
            return f"{base}({length})"
        if default_length is not None and length is None:
            return f"{base}({default_length})"
        return base


class PostgresTypeMapper(TypeMapper):
    """Type mapper for PostgreSQL columns."""

    engine = SourceEngine.POSTGRESQL
    DEFAULT_NUMERIC = (38, 0)

    SIMPLE_TYPES = {
        # Integers
        "int2": "SMALLINT",
        "smallint": "SMALLINT",
        "int4": "INTEGER",
        "integer": "INTEGER",
        "int8": "BIGINT",
        "bigint": "BIGINT",
        "oid": "INTEGER",
        # Floating point and money
        "float4": "FLOAT",
        "real": "FLOAT",
        "float8": "DOUBLE",
        "double precision": "DOUBLE",
        "money": "NUMBER(19,4)",
        # Boolean
        "bool": "BOOLEAN",
        "boolean": "BOOLEAN",
        # Text
        "text": "VARCHAR",
        "name": "VARCHAR",
        "citext": "VARCHAR",
        # Date/time
        "date": "DATE",
        "time": "TIME",
        "timetz": "TIME",
        "time without time zone": "TIME",
        "time with time zone": "TIME",
        "timestamp": "TIMESTAMP_NTZ",
        "timestamp without time zone": "TIMESTAMP_NTZ",
        "timestamptz": "TIMESTAMP_TZ",
        "timestamp with time zone": "TIMESTAMP_TZ",
        "interval": "VARCHAR",
        # Semi-structured and binary
        "json": "VARIANT",
        "jsonb": "VARIANT",
        "xml": "VARCHAR",
        "bytea": "BINARY",
        "uuid": "VARCHAR(36)",
        # Network
        "inet": "VARCHAR(45)",
        "cidr": "VARCHAR(49)",
        "macaddr": "VARCHAR(17)",
        "macaddr8": "VARCHAR(23)",
        # Geometric
        "point": "VARCHAR",
        "line": "VARCHAR",
        "lseg": "VARCHAR",
        "box": "VARCHAR",
        "path": "VARCHAR",
        "polygon": "VARCHAR",
        "circle": "VARCHAR",
        # Full text search and catalog references
        "tsvector": "VARCHAR",
        "tsquery": "VARCHAR",
        "regclass": "VARCHAR",
        "regtype": "VARCHAR",
    }

    # Parameterized families resolved before the lookup table
    PARAMETERIZED_TYPES = {"numeric", "varchar", "bpchar"}

    TIMESTAMP_FUNCTIONS = {
        "now()",
        "current_timestamp",
        "transaction_timestamp()",
        "statement_timestamp()",
        "clock_timestamp()",
        "localtimestamp",
    }

    _NEXTVAL = re.compile(r"nextval\(", re.IGNORECASE)
    # Quoted literals are matched first so '::' inside a string is left alone
    _CAST = re.compile(r"('(?:[^']|'')*')|::[a-zA-Z_ ]+(?:\[\])?")

    def is_identity(self, column: SourceColumn) -> bool:
        if column.is_identity:
            return True
        return bool(column.column_default and self._NEXTVAL.search(column.column_default))

    def map_type(self, column: SourceColumn) -> TypeMapping:
        udt = (column.udt_name or "").lower()
        data_type = (column.data_type or "").lower()

        if udt.startswith("_"):
            base = udt[1:]
            comment = f"PostgreSQL array type: {base}[]"
            if base not in self.SIMPLE_TYPES and base not in self.PARAMETERIZED_TYPES:
                comment += f" (base type {base} not directly mapped)"
            return TypeMapping("ARRAY", comment)

        if udt == "numeric" or data_type in ("numeric", "decimal"):
            return TypeMapping(self._numeric(column))

        if udt == "varchar" or data_type == "character varying":
            return TypeMapping(self._sized("VARCHAR", column.character_maximum_length))

        if udt in ("bpchar", "char") or data_type in ("character", "char"):
            return TypeMapping(self._sized("CHAR", column.character_maximum_length, default_length=1))

        mapped = self.SIMPLE_TYPES.get(udt) or self.SIMPLE_TYPES.get(data_type)
        if mapped:
            if "interval" in (udt, data_type):
                return TypeMapping(mapped, "PostgreSQL INTERVAL has no direct Snowflake equivalent")
            return TypeMapping(mapped)

        if data_type == "user-defined":
            return TypeMapping("VARCHAR", f"PostgreSQL user-defined type: {column.udt_name}")

        return TypeMapping("VARCHAR", f"Unmapped PostgreSQL type: {column.udt_name} ({column.data_type})")

    def map_default(
        self,
        default: Optional[str],
        column: SourceColumn,
        target_type: str,
    ) -> Optional[str]:
        if default is None:
            return None

        value = default.strip()
        if self._NEXTVAL.search(value):
            return None

        value = self._CAST.sub(lambda m: m.group(1) or "", value).strip()
        if not value or value.upper() == "NULL":
            return None

        lowered = value.lower()
        if lowered in ("true", "false"):
            return value.upper()
        if lowered in self.TIMESTAMP_FUNCTIONS:
            return CURRENT_TIMESTAMP
        if lowered == "current_date":
            return CURRENT_DATE
        return value


class MySQLTypeMapper(TypeMapper):
    """Type mapper for MySQL columns.

    ``udt_name`` carries MySQL's full COLUMN_TYPE, which is where display
    widths, enum values and set values live.
    """

    engine = SourceEngine.MYSQL
    DEFAULT_NUMERIC = (10, 0)

    SIMPLE_TYPES = {
        "smallint": "SMALLINT",
        "mediumint": "INTEGER",
        "int": "INTEGER",
        "integer": "INTEGER",
        "bigint": "BIGINT",
        "float": "FLOAT",
        "double": "DOUBLE",
        "double precision": "DOUBLE",
        "real": "DOUBLE",
        "boolean": "BOOLEAN",
        "bool": "BOOLEAN",
        "tinytext": "VARCHAR",
        "text": "VARCHAR",
        "mediumtext": "VARCHAR",
        "longtext": "VARCHAR",
        "date": "DATE",
        "time": "TIME",
        "year": "INTEGER",
        "datetime": "TIMESTAMP_NTZ",
        "timestamp": "TIMESTAMP_TZ",
        "json": "VARIANT",
        "geometry": "VARCHAR",
        "point": "VARCHAR",
        "linestring": "VARCHAR",
        "polygon": "VARCHAR",
        "multipoint": "VARCHAR",
        "multilinestring": "VARCHAR",
        "multipolygon": "VARCHAR",
        "geometrycollection": "VARCHAR",
        "geomcollection": "VARCHAR",
    }

    LOB_BINARY_TYPES = {"tinyblob", "blob", "mediumblob", "longblob"}

    _CURRENT_TIMESTAMP = re.compile(r"^(current_timestamp|now|localtimestamp|localtime)(\(\d*\))?$")
    _BIT_WIDTH = re.compile(r"^bit\((\d+)\)")
    _NUMERIC_LITERAL = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
    # Target types whose defaults MySQL reports as bare, unquoted text
    _QUOTED_DEFAULT_TYPES = ("VARCHAR", "CHAR", "DATE", "TIME", "TIMESTAMP")

    def is_identity(self, column: SourceColumn) -> bool:
        return column.is_identity

    @staticmethod
    def is_boolean(column: SourceColumn) -> bool:
        """Apply the ``tinyint(1)`` means boolean convention.

        A bare ``tinyint`` (no display width, as MySQL 8 reports it) counts
        when precision 3, scale 0 and no character length are reported.
        """
        column_type = (column.udt_name or "").strip().lower()
        if column_type == "tinyint(1)":
            return True
        if column_type not in ("", "tinyint"):
            return False
        return (
            column.numeric_precision == 3
            and column.numeric_scale == 0
            and column.character_maximum_length is None
        )

    def map_type(self, column: SourceColumn) -> TypeMapping:
        data_type = (column.data_type or "").lower()
        column_type = column.udt_name or column.data_type

        if data_type in ("decimal", "numeric", "dec", "fixed"):
            return TypeMapping(self._numeric(column))

        if data_type == "varchar":
            return TypeMapping(self._sized("VARCHAR", column.character_maximum_length))

        if data_type == "char":
            return TypeMapping(self._sized("CHAR", column.character_maximum_length, default_length=1))

        if data_type in self.LOB_BINARY_TYPES:
            return TypeMapping("BINARY")

        if data_type in ("binary", "varbinary"):
            return TypeMapping(self._sized("BINARY", column.character_maximum_length))

        if data_type == "tinyint":
            return TypeMapping("BOOLEAN" if self.is_boolean(column) else "SMALLINT")

        if data_type == "bit":
            match = self._BIT_WIDTH.match(column_type.lower())
            if match and int(match.group(1)) > 1:
                return TypeMapping("BINARY", f"MySQL BIT type stored as binary: {column_type}")
            return TypeMapping("BOOLEAN")

        mapped = self.SIMPLE_TYPES.get(data_type)
        if mapped:
            return TypeMapping(mapped)

        if data_type == "enum":
            return TypeMapping("VARCHAR", f"MySQL ENUM type: {column_type}")

        if data_type == "set":
            return TypeMapping("VARCHAR", f"MySQL SET type: {column_type}")

        return TypeMapping("VARCHAR", f"Unmapped MySQL type: {column_type} ({column.data_type})")

    def map_default(
        self,
        default: Optional[str],
        column: SourceColumn,
        target_type: str,
    ) -> Optional[str]:
        if default is None:
            return None

        value = default.strip()
        lowered = value.lower()
        if lowered == "null":
            return None
        if self._CURRENT_TIMESTAMP.match(lowered):
            return CURRENT_TIMESTAMP

        if target_type == "BOOLEAN":
            if lowered in ("1", "b'1'", "true"):
                return "TRUE"
            if lowered in ("0", "b'0'", "false"):
                return "FALSE"

        if lowered in ("true", "false"):
            return value.upper()
        if self._needs_quoting(value, target_type):
            return "'" + value.replace("'", "''") + "'"
        return value

    def _needs_quoting(self, value: str, target_type: str) -> bool:
        """String and temporal literals come back unquoted from information_schema.

        Numbers, already quoted literals and expressions such as ``(uuid())``
        are left alone.
        """
        if not target_type.startswith(self._QUOTED_DEFAULT_TYPES):
            return False
        if value.startswith("'") and value.endswith("'") and len(value) > 1:
            return False
        if "(" in value or self._NUMERIC_LITERAL.match(value):
            return False
        return True


class MSSQLTypeMapper(TypeMapper):
    """Type mapper for SQL Server columns."""

    engine = SourceEngine.MSSQL
    DEFAULT_NUMERIC = (18, 0)

    SIMPLE_TYPES = {
        "bit": "BOOLEAN",
        "tinyint": "SMALLINT",
        "smallint": "SMALLINT",
        "int": "INTEGER",
        "bigint": "BIGINT",
        "float": "FLOAT",
        "real": "FLOAT",
        "money": "NUMBER(19,4)",
        "smallmoney": "NUMBER(10,4)",
        "date": "DATE",
        "time": "TIME",
        "datetime": "TIMESTAMP_NTZ",
        "datetime2": "TIMESTAMP_NTZ",
        "smalldatetime": "TIMESTAMP_NTZ",
        "datetimeoffset": "TIMESTAMP_TZ",
        "text": "VARCHAR",
        "ntext": "VARCHAR",
        "image": "BINARY",
        "uniqueidentifier": "VARCHAR(36)",
        "xml": "VARCHAR",
        "sql_variant": "VARIANT",
        "hierarchyid": "VARCHAR",
        "geography": "VARCHAR",
        "geometry": "VARCHAR",
        # Row-versioning token, not a point in time
        "timestamp": "BINARY(8)",
        "rowversion": "BINARY(8)",
    }

    TIMESTAMP_FUNCTIONS = {
        "getdate()",
        "sysdatetime()",
        "getutcdate()",
        "sysutcdatetime()",
        "sysdatetimeoffset()",
        "current_timestamp",
    }
    GUID_FUNCTIONS = {"newid()", "newsequentialid()"}

    def is_identity(self, column: SourceColumn) -> bool:
        return column.is_identity

    def identity_seed_increment(self, column: SourceColumn) -> Tuple[int, int]:
        """Parse ``"seed,increment"``; any part that fails to parse becomes 1."""
        parts = (column.identity_generation or "").split(",")
        return _parse_int(parts, 0), _parse_int(parts, 1)

    def map_type(self, column: SourceColumn) -> TypeMapping:
        data_type = (column.data_type or "").lower()

        if data_type in ("decimal", "numeric"):
            return TypeMapping(self._numeric(column))

        if data_type in ("varchar", "nvarchar"):
            return TypeMapping(self._sized("VARCHAR", column.character_maximum_length))

        if data_type in ("char", "nchar"):
            return TypeMapping(self._sized("CHAR", column.character_maximum_length, default_length=1))

        if data_type in ("binary", "varbinary"):
            return TypeMapping(self._sized("BINARY", column.character_maximum_length))

        mapped = self.SIMPLE_TYPES.get(data_type)
        if mapped:
            return TypeMapping(mapped)

        return TypeMapping("VARCHAR", f"Unmapped MSSQL type: {column.data_type}")

    def map_default(
        self,
        default: Optional[str],
        column: SourceColumn,
        target_type: str,
    ) -> Optional[str]:
        if default is None:
            return None

        value = strip_enclosing_parens(default.strip())
        lowered = value.lower()
        if not value or lowered == "null":
            return None
        if lowered in self.TIMESTAMP_FUNCTIONS:
            return CURRENT_TIMESTAMP
        if lowered in self.GUID_FUNCTIONS:
            return None

        if target_type == "BOOLEAN" and value in ("1", "0"):
            return "TRUE" if value == "1" else "FALSE"

        # N'...' unicode literals
        if len(value) >= 3 and value[0] in "Nn" and value[1] == "'" and value.endswith("'"):
            return value[1:]
        return value


def strip_enclosing_parens(value: str) -> str:
    """Peel parentheses that wrap the whole expression.

    SQL Server stores ``DEFAULT 0`` as ``((0))``; ``(1)+(2)`` is left intact
    because its first and last parens do not pair with each other.
    """
    while value.startswith("(") and value.endswith(")") and _parens_enclose(value):
        value = value[1:-1].strip()
    return value


def _parens_enclose(value: str) -> bool:
    depth = 0
    in_quote = False
    for i, ch in enumerate(value):
        if ch == "'":
            in_quote = not in_quote
        elif in_quote:
            continue
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0 and i != len(value) - 1:
                return False
    return depth == 0


def _parse_int(parts: List[str], index: int) -> int:
    try:
        return int(Decimal(parts[index].strip()))
    except (IndexError, InvalidOperation, ValueError, OverflowError):
        return 1


_TYPE_MAPPERS = {
    SourceEngine.POSTGRESQL: PostgresTypeMapper,
    SourceEngine.MYSQL: MySQLTypeMapper,
    SourceEngine.MSSQL: MSSQLTypeMapper,
}


def get_type_mapper(engine: Union[SourceEngine, str]) -> TypeMapper:
    """Return the type mapper for an engine.

    Raises:
        ValueError: If the engine is not one of the supported engines
    """
    try:
        return _TYPE_MAPPERS[SourceEngine(engine)]()
    except ValueError:
        raise ValueError(f"Unsupported source engine: {engine}") from None
