"""Tests for MySQL type mapping."""

import pytest

from db2snow.database.models import SourceEngine, SourceTableMetadata
from db2snow.database.type_mappers import MySQLTypeMapper
from db2snow.ddl import generate_ddl


@pytest.fixture
def mapper():
    return MySQLTypeMapper()


@pytest.fixture
def mysql_column(make_column):
    def _make(data_type, udt_name=None, **kwargs):
        kwargs.setdefault("schema_name", "shop")
        return make_column(kwargs.pop("column_name", "c"), data_type, udt_name=udt_name or data_type, **kwargs)

    return _make


class TestMySQLBooleans:
    """Test the tinyint(1) boolean convention."""

    def test_tinyint_1_is_boolean(self, mapper, mysql_column):
        column = mysql_column("tinyint", "tinyint(1)", numeric_precision=3, numeric_scale=0)
        assert mapper.map_column(column).type == "BOOLEAN"

    def test_bare_tinyint_with_boolean_shape(self, mapper, mysql_column):
        """Test MySQL 8 style tinyint (no display width) with precision 3 and scale 0."""
        column = mysql_column("tinyint", "tinyint", numeric_precision=3, numeric_scale=0)
        assert mapper.map_column(column).type == "BOOLEAN"

    def test_tinyint_with_other_width_is_smallint(self, mapper, mysql_column):
        column = mysql_column("tinyint", "tinyint(4)", numeric_precision=3, numeric_scale=0)
        assert mapper.map_column(column).type == "SMALLINT"

    def test_unsigned_tinyint_is_smallint(self, mapper, mysql_column):
        column = mysql_column("tinyint", "tinyint unsigned", numeric_precision=3, numeric_scale=0)
        assert mapper.map_column(column).type == "SMALLINT"

    def test_boolean_default_one(self, mapper, mysql_column):
        """Test numeric boolean defaults become TRUE/FALSE."""
        column = mysql_column("tinyint", "tinyint(1)", numeric_precision=3, numeric_scale=0, column_default="1")
        assert mapper.map_column(column).default_value == "TRUE"

    def test_boolean_default_zero(self, mapper, mysql_column):
        column = mysql_column("tinyint", "tinyint(1)", numeric_precision=3, numeric_scale=0, column_default="0")
        assert mapper.map_column(column).default_value == "FALSE"

    def test_bit_1_is_boolean(self, mapper, mysql_column):
        column = mysql_column("bit", "bit(1)", column_default="b'1'")
        result = mapper.map_column(column)
        assert result.type == "BOOLEAN"
        assert result.default_value == "TRUE"

    def test_wide_bit_is_binary(self, mapper, mysql_column):
        result = mapper.map_column(mysql_column("bit", "bit(8)"))
        assert result.type == "BINARY"
        assert "bit(8)" in result.comment


class TestMySQLTypes:
    """Test type resolution."""

    @pytest.mark.parametrize(
        "data_type,expected",
        [
            ("int", "INTEGER"),
            ("mediumint", "INTEGER"),
            ("bigint", "BIGINT"),
            ("smallint", "SMALLINT"),
            ("double", "DOUBLE"),
            ("float", "FLOAT"),
            ("longtext", "VARCHAR"),
            ("datetime", "TIMESTAMP_NTZ"),
            ("timestamp", "TIMESTAMP_TZ"),
            ("json", "VARIANT"),
            ("year", "INTEGER"),
            ("blob", "BINARY"),
            ("longblob", "BINARY"),
        ],
    )
    def test_simple_types(self, mapper, mysql_column, data_type, expected):
        result = mapper.map_column(mysql_column(data_type))
        assert result.type == expected
        assert result.comment is None

    def test_decimal_with_precision(self, mapper, mysql_column):
        column = mysql_column("decimal", "decimal(12,4)", numeric_precision=12, numeric_scale=4)
        assert mapper.map_column(column).type == "NUMBER(12,4)"

    def test_decimal_default_precision(self, mapper, mysql_column):
        """Test decimal with no reported precision uses NUMBER(10,0)."""
        assert mapper.map_column(mysql_column("decimal")).type == "NUMBER(10,0)"

    def test_varchar_length(self, mapper, mysql_column):
        column = mysql_column("varchar", "varchar(50)", character_maximum_length=50)
        assert mapper.map_column(column).type == "VARCHAR(50)"

    def test_char_default_length(self, mapper, mysql_column):
        assert mapper.map_column(mysql_column("char")).type == "CHAR(1)"

    def test_varbinary_length(self, mapper, mysql_column):
        column = mysql_column("varbinary", "varbinary(16)", character_maximum_length=16)
        assert mapper.map_column(column).type == "BINARY(16)"

    def test_enum_has_comment(self, mapper, mysql_column):
        """Test enum becomes VARCHAR and the comment lists the values."""
        result = mapper.map_column(mysql_column("enum", "enum('a','b')"))
        assert result.type == "VARCHAR"
        assert result.comment == "MySQL ENUM type: enum('a','b')"

    def test_set_has_comment(self, mapper, mysql_column):
        result = mapper.map_column(mysql_column("set", "set('x','y')"))
        assert result.type == "VARCHAR"
        assert "set('x','y')" in result.comment

    def test_unknown_type_falls_back_to_varchar(self, mapper, mysql_column):
        result = mapper.map_column(mysql_column("vector", "vector(3)"))
        assert result.type == "VARCHAR"
        assert result.comment == "Unmapped MySQL type: vector(3) (vector)"


class TestMySQLIdentityAndDefaults:
    """Test identity columns and default translation."""

    def test_auto_increment_is_identity(self, mapper, mysql_column):
        column = mysql_column("int", "int", column_name="id", is_identity=True, column_default="0")
        result = mapper.map_column(column)
        assert result.is_identity is True
        assert result.default_value is None
        assert (result.identity_seed, result.identity_increment) == (1, 1)

    @pytest.mark.parametrize(
        "default",
        ["CURRENT_TIMESTAMP", "current_timestamp()", "CURRENT_TIMESTAMP(6)", "now()"],
    )
    def test_current_timestamp_variants(self, mapper, mysql_column, default):
        column = mysql_column("datetime", column_default=default)
        assert mapper.map_column(column).default_value == "CURRENT_TIMESTAMP()"

    def test_null_default(self, mapper, mysql_column):
        assert mapper.map_column(mysql_column("int", column_default="NULL")).default_value is None

    def test_string_default_is_quoted(self, mapper, mysql_column):
        """Test bare string defaults from information_schema become string literals."""
        column = mysql_column("varchar", "varchar(10)", character_maximum_length=10, column_default="pending")
        assert mapper.map_column(column).default_value == "'pending'"

    def test_string_default_with_quote_is_escaped(self, mapper, mysql_column):
        column = mysql_column("varchar", "varchar(10)", character_maximum_length=10, column_default="it's")
        assert mapper.map_column(column).default_value == "'it''s'"

    def test_enum_default_is_quoted(self, mapper, mysql_column):
        column = mysql_column("enum", "enum('a','b')", column_default="a")
        assert mapper.map_column(column).default_value == "'a'"

    def test_date_default_is_quoted(self, mapper, mysql_column):
        column = mysql_column("date", column_default="2000-01-01")
        assert mapper.map_column(column).default_value == "'2000-01-01'"

    @pytest.mark.parametrize(
        "data_type,udt_name,default",
        [
            ("varchar", "varchar(10)", "0"),
            ("varchar", "varchar(36)", "(uuid())"),
            ("varchar", "varchar(10)", "'x'"),
            ("int", "int", "42"),
            ("decimal", "decimal(10,2)", "-1.50"),
        ],
    )
    def test_literal_default_verbatim(self, mapper, mysql_column, data_type, udt_name, default):
        """Test numbers, expressions and quoted literals pass through."""
        column = mysql_column(data_type, udt_name, column_default=default)
        assert mapper.map_column(column).default_value == default

    def test_ddl_renders_quoted_default(self, mysql_column):
        column = mysql_column(
            "varchar", "varchar(10)", column_name="status", character_maximum_length=10,
            column_default="pending", table_name="t",
        )
        table = SourceTableMetadata(schema_name="shop", table_name="t", columns=[column])
        sql = generate_ddl([table], SourceEngine.MYSQL).sql
        assert "\"status\" VARCHAR(10) DEFAULT 'pending'" in sql
