"""Shared pytest fixtures for db2snow tests."""

import pytest

from db2snow.config import ConfigPaths, ensure_config_dirs, settings
from db2snow.database.models import (
    SourceColumn,
    SourceConnectionConfig,
    SourceEngine,
    SourceForeignKey,
    SourcePrimaryKey,
    SourceTableMetadata,
)
from db2snow.logging import run_logger as run_logger_module


@pytest.fixture
def make_column():
    """Factory for SourceColumn with sensible defaults."""

    def _make(column_name="col", data_type="integer", ordinal_position=1, **kwargs):
        kwargs.setdefault("schema_name", "public")
        kwargs.setdefault("table_name", "t")
        return SourceColumn(
            column_name=column_name,
            data_type=data_type,
            ordinal_position=ordinal_position,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_table(make_column):
    """Factory for SourceTableMetadata; columns default to a single id column."""

    def _make(table_name="t", schema_name="public", columns=None, **kwargs):
        if columns is None:
            columns = [
                make_column(
                    "id",
                    "integer",
                    1,
                    schema_name=schema_name,
                    table_name=table_name,
                    udt_name="int4",
                    is_nullable=False,
                )
            ]
        return SourceTableMetadata(
            schema_name=schema_name,
            table_name=table_name,
            columns=columns,
            **kwargs,
        )

    return _make


@pytest.fixture
def sample_tables(make_column, make_table):
    """Two related PostgreSQL tables: customers and orders."""
    customers = make_table(
        "customers",
        columns=[
            make_column(
                "id", "integer", 1, table_name="customers", udt_name="int4", is_nullable=False,
                column_default="nextval('customers_id_seq'::regclass)",
            ),
            make_column(
                "email", "character varying", 2, table_name="customers", udt_name="varchar",
                character_maximum_length=255, is_nullable=False,
            ),
        ],
        primary_key=SourcePrimaryKey(
            schema_name="public", table_name="customers", constraint_name="customers_pkey", columns=["id"]
        ),
    )
    orders = make_table(
        "orders",
        columns=[
            make_column(
                "id", "bigint", 1, table_name="orders", udt_name="int8", is_nullable=False,
                is_identity=True, identity_generation="ALWAYS",
            ),
            make_column("customer_id", "integer", 2, table_name="orders", udt_name="int4", is_nullable=False),
            make_column(
                "total", "numeric", 3, table_name="orders", udt_name="numeric",
                numeric_precision=10, numeric_scale=2, column_default="0",
            ),
            make_column(
                "created_at", "timestamp with time zone", 4, table_name="orders", udt_name="timestamptz",
                column_default="now()",
            ),
        ],
        primary_key=SourcePrimaryKey(
            schema_name="public", table_name="orders", constraint_name="orders_pkey", columns=["id"]
        ),
        foreign_keys=[
            SourceForeignKey(
                schema_name="public",
                table_name="orders",
                constraint_name="orders_customer_id_fkey",
                columns=["customer_id"],
                referenced_schema="public",
                referenced_table="customers",
                referenced_columns=["id"],
                update_rule="NO ACTION",
                delete_rule="CASCADE",
            )
        ],
    )
    return [customers, orders]


@pytest.fixture
def pg_config():
    """PostgreSQL connection config."""
    return SourceConnectionConfig(
        engine=SourceEngine.POSTGRESQL,
        host="localhost",
        port=5432,
        database="shop",
        user="postgres",
        password="s3cret",
    )


@pytest.fixture
def mysql_config():
    """MySQL connection config."""
    return SourceConnectionConfig(
        engine=SourceEngine.MYSQL,
        host="localhost",
        port=3306,
        database="shop",
        user="root",
        password="s3cret",
    )


@pytest.fixture
def mssql_config():
    """SQL Server connection config."""
    return SourceConnectionConfig(
        engine=SourceEngine.MSSQL,
        host="sqlhost",
        port=1433,
        database="shop",
        user="sa",
        password="s3cret",
        trust_server_certificate=True,
    )


@pytest.fixture
def config_paths(tmp_path, monkeypatch):
    """Point the configuration directory at a temporary directory."""
    root = tmp_path / "config"
    monkeypatch.setattr(settings, "config_dir", str(root))
    monkeypatch.setattr(run_logger_module, "_run_logger", None)
    paths = ConfigPaths.from_root(root)
    ensure_config_dirs(paths)
    return paths


@pytest.fixture
def encryption_key():
    """A fixed 256-bit key."""
    return bytes(range(32))


@pytest.fixture
def initialized_config(config_paths, encryption_key):
    """Temporary configuration directory with a key file."""
    config_paths.key_file.write_text(encryption_key.hex(), encoding="utf-8")
    return config_paths
