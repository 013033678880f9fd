"""Test fixtures package."""

from .fake_db import FakeConnection, FakeCursor, FakeDuckDBConnection, make_fake_connection

__all__ = [
    "FakeConnection",
    "FakeCursor",
    "FakeDuckDBConnection",
    "make_fake_connection",
]
