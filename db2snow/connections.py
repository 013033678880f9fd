"""Saved source connections, stored with an encrypted password."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .config import ConfigPaths, resolve_config_paths
from .constants import CONNECTION_FILE_EXTENSION
from .database.models import SourceConnectionConfig, SourceEngine
from .errors import MappingError
from .mapping import ConnectionInfo, connection_info, decrypt_password
from .validation import is_valid_mapping_name

logger = logging.getLogger(__name__)


class SavedConnection(ConnectionInfo):
    """A named connection file (camelCase JSON)."""
    name: str
    engine: SourceEngine = SourceEngine.POSTGRESQL
    created_at: datetime


def connection_file_path(name: str, paths: Optional[ConfigPaths] = None) -> Path:
    paths = paths or resolve_config_paths()
    return paths.connections_dir / f"{name}{CONNECTION_FILE_EXTENSION}"


def save_connection(
    name: str,
    config: SourceConnectionConfig,
    key: bytes,
    paths: Optional[ConfigPaths] = None,
) -> Path:
    """Save a connection under ``name``; returns the file path."""
    if not is_valid_mapping_name(name):
        raise MappingError(f'Invalid connection name "{name}". Use letters, digits, "-" and "_" only.')

    info = connection_info(config, key)
    saved = SavedConnection(
        name=name,
        engine=config.engine,
        created_at=datetime.now(timezone.utc),
        **dict(info),
    )
    file_path = connection_file_path(name, paths)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(saved.model_dump_json(by_alias=True, indent=2) + "\n", encoding="utf-8")
    logger.info("Saved connection %s to %s", name, file_path)
    return file_path


def load_connection(name: str, paths: Optional[ConfigPaths] = None) -> SavedConnection:
    """Load a saved connection by name.

    Raises:
        MappingError: If the connection does not exist or cannot be parsed
    """
    file_path = connection_file_path(name, paths)
    if not file_path.exists():
        raise MappingError(f'Connection "{name}" not found')
    try:
        return SavedConnection.model_validate_json(file_path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise MappingError(f"Invalid connection file {file_path}: {e}", cause=e) from e


def list_connections(paths: Optional[ConfigPaths] = None) -> List[str]:
    """Names of saved connections, sorted."""
    paths = paths or resolve_config_paths()
    if not paths.connections_dir.is_dir():
        return []
    return sorted(
        f.name[: -len(CONNECTION_FILE_EXTENSION)]
        for f in paths.connections_dir.iterdir()
        if f.is_file() and f.name.endswith(CONNECTION_FILE_EXTENSION)
    )


def delete_connection(name: str, paths: Optional[ConfigPaths] = None) -> None:
    file_path = connection_file_path(name, paths)
    if not file_path.exists():
        raise MappingError(f'Connection "{name}" not found')
    file_path.unlink()


def get_connection_config(saved: SavedConnection, key: bytes) -> SourceConnectionConfig:
    """Connection config for a saved connection, decrypting its password."""
    return SourceConnectionConfig(
        engine=saved.engine,
        host=saved.host,
        port=saved.port,
        database=saved.database,
        user=saved.user,
        password=decrypt_password(saved, key),
        ssl=saved.ssl,
        instance_name=saved.instance_name,
        trust_server_certificate=saved.trust_server_certificate,
    )
