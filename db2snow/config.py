"""Configuration management for db2snow."""

import os
from dataclasses import dataclass
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional

from .constants import (
    CONFIG_DIR_NAME,
    CONNECTIONS_DIR,
    DEFAULT_EXPORT_FORMAT,
    DEFAULT_OUTPUT_DIR,
    KEY_FILE,
    LOGS_DIR,
    MAPPINGS_DIR,
    MAX_LOG_FILES,
)
from .errors import ConfigNotFoundError, EncryptionError


def _find_env_file() -> Optional[str]:
    """Find .env file in multiple locations.

    Search order:
    1. Current working directory
    2. ~/.db2snow/.env
    3. Package directory (where this file is located)
    """
    if os.path.exists(".env"):
        return ".env"

    user_env = Path.home() / CONFIG_DIR_NAME / ".env"
    if user_env.exists():
        return str(user_env)

    package_dir = Path(__file__).parent.parent
    package_env = package_dir / ".env"
    if package_env.exists():
        return str(package_env)

    return None


class Settings(BaseSettings):
    """Application settings loaded from DB2SNOW_* environment variables."""

    config_dir: Optional[str] = Field(
        default=None,
        description="Explicit configuration directory (default: ./.db2snow if present, else ~/.db2snow)"
    )

    # Export defaults
    default_export_format: str = Field(
        default=DEFAULT_EXPORT_FORMAT,
        description="Default export file format (parquet or csv)"
    )
    default_output_dir: str = Field(
        default=DEFAULT_OUTPUT_DIR,
        description="Default directory for exported data files"
    )
    export_batch_size: int = Field(
        default=10000,
        description="Rows fetched per round trip when streaming SQL Server exports"
    )

    # Connection timeouts (seconds)
    connect_timeout: int = Field(
        default=10,
        description="Connection timeout for PostgreSQL and MySQL"
    )
    mssql_login_timeout: int = Field(
        default=15,
        description="Login timeout for SQL Server"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Log level for run log files"
    )
    max_log_files: int = Field(
        default=MAX_LOG_FILES,
        description="Number of run log files to keep"
    )

    class Config:
        env_prefix = "DB2SNOW_"
        env_file = _find_env_file()
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


@dataclass
class ConfigPaths:
    """Resolved locations of the db2snow configuration directory."""

    root: Path
    mappings_dir: Path
    logs_dir: Path
    connections_dir: Path
    key_file: Path

    @classmethod
    def from_root(cls, root: Path) -> "ConfigPaths":
        return cls(
            root=root,
            mappings_dir=root / MAPPINGS_DIR,
            logs_dir=root / LOGS_DIR,
            connections_dir=root / CONNECTIONS_DIR,
            key_file=root / KEY_FILE,
        )


def resolve_config_paths(local: Optional[bool] = None) -> ConfigPaths:
    """Resolve the configuration directory.

    Args:
        local: True forces ./.db2snow, False forces ~/.db2snow, None picks
            ./.db2snow when it exists and falls back to ~/.db2snow.

    Returns:
        ConfigPaths for the chosen directory (not created)
    """
    if settings.config_dir:
        return ConfigPaths.from_root(Path(settings.config_dir).expanduser())

    local_root = Path.cwd() / CONFIG_DIR_NAME
    if local or (local is None and local_root.is_dir()):
        return ConfigPaths.from_root(local_root)

    return ConfigPaths.from_root(Path.home() / CONFIG_DIR_NAME)


def is_initialized(paths: Optional[ConfigPaths] = None) -> bool:
    """Check whether an encryption key has been created."""
    paths = paths or resolve_config_paths()
    return paths.key_file.exists()


def ensure_config_dirs(paths: ConfigPaths) -> None:
    """Create the configuration directory and its subdirectories."""
    for directory in (paths.root, paths.mappings_dir, paths.logs_dir, paths.connections_dir):
        directory.mkdir(parents=True, exist_ok=True)


def init_config(
    passphrase: Optional[str] = None,
    local: bool = False,
    force: bool = False,
) -> ConfigPaths:
    """Create the configuration directory and write the encryption key.

    Args:
        passphrase: Derive the key from this passphrase instead of generating
            a random one
        local: Create the configuration in the current directory
        force: Overwrite an existing key

    Returns:
        ConfigPaths of the initialized directory
    """
    from .encryption import derive_key, generate_key

    paths = resolve_config_paths(local=local)
    if paths.key_file.exists() and not force:
        return paths

    ensure_config_dirs(paths)
    key = derive_key(passphrase) if passphrase else generate_key()
    paths.key_file.write_text(key.hex(), encoding="utf-8")
    os.chmod(paths.key_file, 0o600)
    return paths


def read_encryption_key(paths: Optional[ConfigPaths] = None) -> bytes:
    """Read the encryption key from the configuration directory.

    Raises:
        ConfigNotFoundError: If no key has been created yet
        EncryptionError: If the key file does not contain a 256-bit hex key
    """
    paths = paths or resolve_config_paths()
    if not paths.key_file.exists():
        raise ConfigNotFoundError()

    content = paths.key_file.read_text(encoding="utf-8").strip()
    try:
        key = bytes.fromhex(content)
    except ValueError as e:
        raise EncryptionError(f"Invalid encryption key in {paths.key_file}", cause=e) from e
    if len(key) != 32:
        raise EncryptionError(f"Invalid encryption key in {paths.key_file}")
    return key
