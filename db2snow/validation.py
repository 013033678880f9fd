"""Input validation helpers for connection parameters and names."""

import re
from typing import Any

HOST_PATTERN = re.compile(r"[a-zA-Z0-9._-]+")
DATABASE_NAME_PATTERN = re.compile(r"[a-zA-Z_][a-zA-Z0-9_-]*")
MAPPING_NAME_PATTERN = re.compile(r"[a-zA-Z0-9_-]+")


def is_valid_port(port: Any) -> bool:
    return isinstance(port, int) and not isinstance(port, bool) and 1 <= port <= 65535


def is_valid_host(host: str) -> bool:
    """Hostnames, IPv4 addresses and ``localhost``."""
    return bool(host and host.strip()) and HOST_PATTERN.fullmatch(host) is not None


def is_valid_database_name(name: str) -> bool:
    return bool(name and name.strip()) and DATABASE_NAME_PATTERN.fullmatch(name) is not None


def is_valid_mapping_name(name: str) -> bool:
    """Mapping names become file names: letters, digits, ``-`` and ``_``."""
    return bool(name and name.strip()) and MAPPING_NAME_PATTERN.fullmatch(name) is not None


def sanitize_file_name(name: str) -> str:
    """Replace characters that are unsafe in file names with ``_``."""
    return re.sub(r"[^a-zA-Z0-9._-]", "_", name)
