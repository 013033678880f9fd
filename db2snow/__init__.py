"""db2snow - migrate PostgreSQL, MySQL and SQL Server schemas and data to Snowflake."""

__version__ = "0.1.0"
