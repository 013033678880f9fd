"""Mapping files: persisted connection info, selected schemas and table metadata.

A mapping is written once by ``db2snow map`` and read by ``export`` and
``generate-ddl``. Re-mapping writes a new file rather than editing one.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Literal, Optional, Sequence, Union

from pydantic import Field, ValidationError

from .config import ConfigPaths, resolve_config_paths
from .constants import DEFAULT_EXPORT_FORMAT, DEFAULT_OUTPUT_DIR, MAPPING_FILE_EXTENSION, MAPPING_FILE_VERSION
from .database.models import MetadataModel, SourceConnectionConfig, SourceEngine, SourceTableMetadata
from .encryption import EncryptedPayload, decrypt, encrypt
from .errors import MappingError
from .validation import is_valid_mapping_name

logger = logging.getLogger(__name__)


class ConnectionInfo(MetadataModel):
    """Connection details as stored on disk.

    ``password`` becomes an ``EncryptedPayload`` when the stored value has
    the encrypted shape; anything else is kept as read and rejected by
    ``decrypt_password``.
    """
    host: str
    port: int
    database: str
    user: str
    password: Union[EncryptedPayload, Any] = Field(union_mode="left_to_right")
    ssl: bool = False
    instance_name: Optional[str] = None
    trust_server_certificate: Optional[bool] = None


class MappingSource(MetadataModel):
    """Source engine and connection. Version 1 files have no engine."""
    engine: Optional[SourceEngine] = None
    connection: ConnectionInfo


class ExportOptions(MetadataModel):
    """Default export settings stored with a mapping."""
    format: Literal["parquet", "csv"] = DEFAULT_EXPORT_FORMAT
    output_dir: str = DEFAULT_OUTPUT_DIR


class MappingFile(MetadataModel):
    """A persisted mapping (camelCase JSON)."""
    version: Literal[1, 2] = MAPPING_FILE_VERSION
    name: str
    created_at: datetime
    source: MappingSource
    selected_schemas: List[str] = []
    tables: List[SourceTableMetadata] = []
    export_options: ExportOptions = ExportOptions()

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


def encrypt_password(password: str, key: bytes) -> EncryptedPayload:
    """Encrypt a plaintext password for storage."""
    return encrypt(password, key)


def decrypt_password(connection: ConnectionInfo, key: bytes) -> str:
    """Decrypt the stored password of a connection.

    Raises:
        MappingError: If the stored password is not an encrypted payload
        EncryptionError: If decryption fails
    """
    if not isinstance(connection.password, EncryptedPayload):
        raise MappingError("Password field is not properly encrypted")
    return decrypt(connection.password, key)


def connection_info(config: SourceConnectionConfig, key: bytes) -> ConnectionInfo:
    """Build storable connection info, encrypting the password."""
    return ConnectionInfo(
        host=config.host,
        port=config.port,
        database=config.database,
        user=config.user,
        password=encrypt_password(config.password, key),
        ssl=config.ssl,
        instance_name=config.instance_name,
        trust_server_certificate=config.trust_server_certificate,
    )


def build_mapping(
    name: str,
    config: SourceConnectionConfig,
    key: bytes,
    selected_schemas: Sequence[str],
    tables: Sequence[SourceTableMetadata],
    export_format: str = DEFAULT_EXPORT_FORMAT,
    output_dir: str = DEFAULT_OUTPUT_DIR,
) -> MappingFile:
    """Assemble a new mapping from an introspection run."""
    return MappingFile(
        version=MAPPING_FILE_VERSION,
        name=name,
        created_at=datetime.now(timezone.utc),
        source=MappingSource(engine=config.engine, connection=connection_info(config, key)),
        selected_schemas=list(selected_schemas),
        tables=list(tables),
        export_options=ExportOptions(format=export_format, output_dir=output_dir),
    )


def get_mapping_engine(mapping: MappingFile) -> SourceEngine:
    """Source engine of a mapping; version 1 files are always PostgreSQL."""
    return mapping.source.engine or SourceEngine.POSTGRESQL


def get_connection_from_mapping(mapping: MappingFile, password: str) -> SourceConnectionConfig:
    """Connection config for a mapping, using an already-decrypted password."""
    connection = mapping.source.connection
    return SourceConnectionConfig(
        engine=get_mapping_engine(mapping),
        host=connection.host,
        port=connection.port,
        database=connection.database,
        user=connection.user,
        password=password,
        ssl=connection.ssl,
        instance_name=connection.instance_name,
        trust_server_certificate=connection.trust_server_certificate,
    )


def mapping_file_path(name: str, paths: Optional[ConfigPaths] = None) -> Path:
    paths = paths or resolve_config_paths()
    return paths.mappings_dir / f"{name}{MAPPING_FILE_EXTENSION}"


def save_mapping(mapping: MappingFile, paths: Optional[ConfigPaths] = None) -> Path:
    """Write a mapping to the mappings directory.

    Returns:
        Path of the written file
    """
    if not is_valid_mapping_name(mapping.name):
        raise MappingError(
            f'Invalid mapping name "{mapping.name}". Use letters, digits, "-" and "_" only.'
        )
    file_path = mapping_file_path(mapping.name, paths)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(mapping.to_json() + "\n", encoding="utf-8")
    logger.info("Saved mapping %s to %s", mapping.name, file_path)
    return file_path


def load_mapping(name: str, paths: Optional[ConfigPaths] = None) -> MappingFile:
    """Load a mapping by name from the mappings directory."""
    file_path = mapping_file_path(name, paths)
    if not file_path.exists():
        raise MappingError(f'Mapping "{name}" not found at {file_path}')
    return load_mapping_from_path(file_path)


def load_mapping_from_path(file_path: Union[str, Path]) -> MappingFile:
    """Load and validate a mapping file.

    Raises:
        MappingError: If the file cannot be read or is not a valid mapping
    """
    file_path = Path(file_path)
    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise MappingError(f"Cannot read mapping file {file_path}", cause=e) from e

    try:
        return MappingFile.model_validate(json.loads(content))
    except (ValueError, ValidationError) as e:
        raise MappingError(f"Invalid mapping file {file_path}: {e}", cause=e) from e


def list_mappings(paths: Optional[ConfigPaths] = None) -> List[str]:
    """Names of saved mappings, sorted."""
    paths = paths or resolve_config_paths()
    if not paths.mappings_dir.is_dir():
        return []
    return sorted(
        f.name[: -len(MAPPING_FILE_EXTENSION)]
        for f in paths.mappings_dir.iterdir()
        if f.is_file() and f.name.endswith(MAPPING_FILE_EXTENSION)
    )


def open_mapping(reference: str, paths: Optional[ConfigPaths] = None) -> MappingFile:
    """Load a mapping given either its name or a path to a mapping file."""
    if reference.endswith(".json") or Path(reference).is_file():
        return load_mapping_from_path(reference)
    return load_mapping(reference, paths)


def select_tables(
    tables: Sequence[SourceTableMetadata],
    names: Optional[Sequence[str]] = None,
) -> List[SourceTableMetadata]:
    """Pick tables of a mapping by ``schema.table`` or bare table name.

    No names selects every table. Order follows the mapping.

    Raises:
        MappingError: If a name matches no table of the mapping
    """
    if not names:
        return list(tables)

    unmatched = [
        name for name in names
        if not any(name in (t.display_name, t.table_name) for t in tables)
    ]
    if unmatched:
        raise MappingError(f"Tables not in mapping: {', '.join(unmatched)}")
    return [t for t in tables if t.display_name in names or t.table_name in names]
