"""Tests for adapter and type mapper selection."""

import pytest

from db2snow.database import (
    MSSQLAdapter,
    MSSQLTypeMapper,
    MySQLAdapter,
    MySQLTypeMapper,
    PostgresAdapter,
    PostgresTypeMapper,
    SourceEngine,
    get_adapter,
    get_default_port,
    get_default_user,
    get_engine_display_name,
    get_type_mapper,
    list_engines,
)


class TestGetAdapter:
    """Test adapter creation."""

    @pytest.mark.parametrize(
        "engine,adapter_class",
        [
            (SourceEngine.POSTGRESQL, PostgresAdapter),
            (SourceEngine.MYSQL, MySQLAdapter),
            (SourceEngine.MSSQL, MSSQLAdapter),
            ("mysql", MySQLAdapter),
        ],
    )
    def test_adapter_for_engine(self, engine, adapter_class):
        adapter = get_adapter(engine)
        assert isinstance(adapter, adapter_class)
        assert adapter.is_connected is False

    def test_each_call_returns_new_instance(self):
        """Test adapters never share connection state."""
        assert get_adapter("postgresql") is not get_adapter("postgresql")

    def test_unknown_engine(self):
        with pytest.raises(ValueError, match="Unsupported source engine: oracle"):
            get_adapter("oracle")


class TestEngineDefaults:
    """Test engine-level defaults."""

    @pytest.mark.parametrize(
        "engine,display_name,port,user",
        [
            ("postgresql", "PostgreSQL", 5432, "postgres"),
            ("mysql", "MySQL", 3306, "root"),
            ("mssql", "SQL Server", 1433, "sa"),
        ],
    )
    def test_defaults(self, engine, display_name, port, user):
        assert get_engine_display_name(engine) == display_name
        assert get_default_port(engine) == port
        assert get_default_user(engine) == user

    def test_unknown_engine_defaults(self):
        with pytest.raises(ValueError, match="Unsupported source engine"):
            get_default_port("sqlite")

    def test_list_engines(self):
        assert list_engines() == [SourceEngine.POSTGRESQL, SourceEngine.MYSQL, SourceEngine.MSSQL]

    def test_schema_support(self):
        """Test MySQL treats the database as its only schema."""
        assert get_adapter("mysql").supports_schemas is False
        assert get_adapter("postgresql").supports_schemas is True
        assert get_adapter("mssql").supports_schemas is True


class TestGetTypeMapper:
    """Test type mapper selection."""

    @pytest.mark.parametrize(
        "engine,mapper_class",
        [
            ("postgresql", PostgresTypeMapper),
            ("mysql", MySQLTypeMapper),
            ("mssql", MSSQLTypeMapper),
        ],
    )
    def test_mapper_for_engine(self, engine, mapper_class):
        assert isinstance(get_type_mapper(engine), mapper_class)

    def test_unknown_engine(self):
        with pytest.raises(ValueError, match="Unsupported source engine: db2"):
            get_type_mapper("db2")
