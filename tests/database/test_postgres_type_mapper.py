"""Tests for PostgreSQL type mapping."""

import pytest

from db2snow.database.type_mappers import PostgresTypeMapper


@pytest.fixture
def mapper():
    return PostgresTypeMapper()


class TestPostgresTypes:
    """Test type resolution."""

    @pytest.mark.parametrize(
        "data_type,udt_name,expected",
        [
            ("integer", "int4", "INTEGER"),
            ("smallint", "int2", "SMALLINT"),
            ("bigint", "int8", "BIGINT"),
            ("boolean", "bool", "BOOLEAN"),
            ("text", "text", "VARCHAR"),
            ("date", "date", "DATE"),
            ("timestamp without time zone", "timestamp", "TIMESTAMP_NTZ"),
            ("timestamp with time zone", "timestamptz", "TIMESTAMP_TZ"),
            ("jsonb", "jsonb", "VARIANT"),
            ("uuid", "uuid", "VARCHAR(36)"),
            ("bytea", "bytea", "BINARY"),
            ("double precision", "float8", "DOUBLE"),
            ("inet", "inet", "VARCHAR(45)"),
        ],
    )
    def test_simple_types(self, mapper, make_column, data_type, udt_name, expected):
        """Test lookup-table types."""
        column = make_column(data_type=data_type, udt_name=udt_name)
        result = mapper.map_column(column)
        assert result.type == expected
        assert result.comment is None

    def test_varchar_with_length(self, mapper, make_column):
        """Test character varying keeps its declared length."""
        column = make_column(data_type="character varying", udt_name="varchar", character_maximum_length=100)
        assert mapper.map_column(column).type == "VARCHAR(100)"

    def test_varchar_without_length(self, mapper, make_column):
        """Test unbounded varchar maps to bare VARCHAR."""
        column = make_column(data_type="character varying", udt_name="varchar")
        assert mapper.map_column(column).type == "VARCHAR"

    def test_char_defaults_to_length_one(self, mapper, make_column):
        """Test bpchar with no length becomes CHAR(1)."""
        column = make_column(data_type="character", udt_name="bpchar")
        assert mapper.map_column(column).type == "CHAR(1)"

    def test_char_with_length(self, mapper, make_column):
        column = make_column(data_type="character", udt_name="bpchar", character_maximum_length=3)
        assert mapper.map_column(column).type == "CHAR(3)"

    def test_numeric_with_precision_and_scale(self, mapper, make_column):
        """Test numeric keeps precision and scale."""
        column = make_column(data_type="numeric", udt_name="numeric", numeric_precision=10, numeric_scale=2)
        assert mapper.map_column(column).type == "NUMBER(10,2)"

    def test_numeric_with_precision_only(self, mapper, make_column):
        column = make_column(data_type="numeric", udt_name="numeric", numeric_precision=12)
        assert mapper.map_column(column).type == "NUMBER(12)"

    def test_numeric_without_precision(self, mapper, make_column):
        """Test unconstrained numeric uses NUMBER(38,0)."""
        column = make_column(data_type="numeric", udt_name="numeric")
        assert mapper.map_column(column).type == "NUMBER(38,0)"

    def test_array_type(self, mapper, make_column):
        """Test array columns become ARRAY with a comment."""
        column = make_column(data_type="ARRAY", udt_name="_int4")
        result = mapper.map_column(column)
        assert result.type == "ARRAY"
        assert result.comment == "PostgreSQL array type: int4[]"

    def test_array_of_unmapped_base_type(self, mapper, make_column):
        column = make_column(data_type="ARRAY", udt_name="_mood")
        result = mapper.map_column(column)
        assert result.type == "ARRAY"
        assert "not directly mapped" in result.comment

    def test_user_defined_type(self, mapper, make_column):
        """Test enums and other user-defined types become VARCHAR with a comment."""
        column = make_column(data_type="USER-DEFINED", udt_name="mood")
        result = mapper.map_column(column)
        assert result.type == "VARCHAR"
        assert result.comment == "PostgreSQL user-defined type: mood"

    def test_interval_has_comment(self, mapper, make_column):
        column = make_column(data_type="interval", udt_name="interval")
        result = mapper.map_column(column)
        assert result.type == "VARCHAR"
        assert "INTERVAL" in result.comment

    def test_unknown_type_falls_back_to_varchar(self, mapper, make_column):
        """Test unmapped types never raise."""
        column = make_column(data_type="pg_lsn", udt_name="pg_lsn")
        result = mapper.map_column(column)
        assert result.type == "VARCHAR"
        assert result.comment == "Unmapped PostgreSQL type: pg_lsn (pg_lsn)"


class TestPostgresIdentity:
    """Test identity detection."""

    def test_serial_column_is_identity(self, mapper, make_column):
        """Test a nextval() default marks the column as identity and drops the default."""
        column = make_column(
            "id", "integer", udt_name="int4", column_default="nextval('users_id_seq'::regclass)"
        )
        result = mapper.map_column(column)
        assert result.is_identity is True
        assert result.default_value is None
        assert (result.identity_seed, result.identity_increment) == (1, 1)

    def test_identity_flag(self, mapper, make_column):
        column = make_column("id", "bigint", udt_name="int8", is_identity=True, identity_generation="ALWAYS")
        result = mapper.map_column(column)
        assert result.is_identity is True
        assert result.default_value is None

    def test_plain_column_is_not_identity(self, mapper, make_column):
        column = make_column("qty", "integer", udt_name="int4", column_default="0")
        result = mapper.map_column(column)
        assert result.is_identity is False
        assert result.default_value == "0"


class TestPostgresDefaults:
    """Test default expression translation."""

    @pytest.mark.parametrize(
        "default,expected",
        [
            ("now()", "CURRENT_TIMESTAMP()"),
            ("CURRENT_TIMESTAMP", "CURRENT_TIMESTAMP()"),
            ("now()::timestamp without time zone", "CURRENT_TIMESTAMP()"),
            ("CURRENT_DATE", "CURRENT_DATE()"),
            ("true", "TRUE"),
            ("false", "FALSE"),
            ("'active'::character varying", "'active'"),
            ("'{}'::jsonb", "'{}'"),
            ("'a::b'::text", "'a::b'"),
            ("42", "42"),
            ("NULL::character varying", None),
        ],
    )
    def test_default_translation(self, mapper, make_column, default, expected):
        column = make_column("c", "text", udt_name="text", column_default=default)
        assert mapper.map_column(column).default_value == expected

    def test_no_default(self, mapper, make_column):
        column = make_column("c", "text", udt_name="text")
        assert mapper.map_column(column).default_value is None


class TestPostgresMapAllColumns:
    """Test mapping a whole column list."""

    def test_columns_sorted_by_ordinal(self, mapper, make_column):
        columns = [
            make_column("b", "text", 2, udt_name="text"),
            make_column("a", "integer", 1, udt_name="int4"),
        ]
        result = mapper.map_all_columns(columns)
        assert [c.name for c in result] == ["a", "b"]

    def test_nullability_is_preserved(self, mapper, make_column):
        column = make_column("c", "text", udt_name="text", is_nullable=False)
        assert mapper.map_column(column).nullable is False
