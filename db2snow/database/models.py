"""Metadata models shared by introspection, DDL generation and export."""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class SourceEngine(str, Enum):
    """Supported source database engines."""
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    MSSQL = "mssql"


class MetadataModel(BaseModel):
    """Base for persisted metadata: camelCase JSON, immutable once built."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True


class SourceColumn(MetadataModel):
    """A physical column as reported by the source catalog.

    For MySQL ``udt_name`` holds the full column type (``tinyint(1)``,
    ``enum('a','b')``). ``identity_generation`` is ``ALWAYS``/``BY DEFAULT``
    on PostgreSQL and ``"seed,increment"`` on SQL Server.
    """
    schema_name: str
    table_name: str
    column_name: str
    ordinal_position: int
    column_default: Optional[str] = None
    is_nullable: bool = True
    data_type: str
    udt_name: str = ""
    character_maximum_length: Optional[int] = None
    numeric_precision: Optional[int] = None
    numeric_scale: Optional[int] = None
    is_identity: bool = False
    identity_generation: Optional[str] = None


class SourcePrimaryKey(MetadataModel):
    """Primary key with columns in key order."""
    schema_name: str
    table_name: str
    constraint_name: str
    columns: List[str]


class SourceForeignKey(MetadataModel):
    """Foreign key; ``columns`` and ``referenced_columns`` are positionally paired."""
    schema_name: str
    table_name: str
    constraint_name: str
    columns: List[str]
    referenced_schema: str
    referenced_table: str
    referenced_columns: List[str]
    update_rule: str = "NO ACTION"
    delete_rule: str = "NO ACTION"


class SourceIndex(MetadataModel):
    """Secondary index (primary-key indexes are not included)."""
    schema_name: str
    table_name: str
    index_name: str
    index_def: str
    is_unique: bool = False


class SourceSequence(MetadataModel):
    """Sequence; numeric values kept as strings to preserve engine precision."""
    schema_name: str
    sequence_name: str
    data_type: str
    start_value: str
    increment: str
    owner_table: Optional[str] = None
    owner_column: Optional[str] = None


class SourceTableMetadata(MetadataModel):
    """Everything introspected about one table."""
    schema_name: str
    table_name: str
    columns: List[SourceColumn] = []
    primary_key: Optional[SourcePrimaryKey] = None
    foreign_keys: List[SourceForeignKey] = []
    indexes: List[SourceIndex] = []
    sequences: List[SourceSequence] = []

    @property
    def display_name(self) -> str:
        return f"{self.schema_name}.{self.table_name}"


class SourceSchema(MetadataModel):
    """Schema descriptor returned by schema listing."""
    schema_name: str


class SourceTable(MetadataModel):
    """Table descriptor returned by table listing."""
    schema_name: str
    table_name: str


@dataclass
class SnowflakeColumn:
    """A column rendered in Snowflake terms.

    ``type`` is fully rendered (``VARCHAR(100)``, ``NUMBER(10,2)``) and an
    identity column never carries a default value.
    """
    name: str
    type: str
    nullable: bool = True
    default_value: Optional[str] = None
    is_identity: bool = False
    identity_seed: int = 1
    identity_increment: int = 1
    comment: Optional[str] = None


@dataclass
class SourceConnectionConfig:
    """Connection parameters for a source database.

    The password is plaintext and only ever held in memory. ``instance_name``
    and ``trust_server_certificate`` apply to SQL Server only.
    """
    engine: SourceEngine
    host: str
    port: int
    database: str
    user: str
    password: str = ""
    ssl: bool = False
    instance_name: Optional[str] = None
    trust_server_certificate: Optional[bool] = None

    def describe(self) -> str:
        """Return host:port/database for messages (never includes the password)."""
        return f"{self.host}:{self.port}/{self.database}"
