"""Snowflake DDL generation."""

from .generator import DDLResult, SnowflakeDDLGenerator, generate_ddl

__all__ = [
    "DDLResult",
    "SnowflakeDDLGenerator",
    "generate_ddl",
]
