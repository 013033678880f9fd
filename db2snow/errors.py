"""Error types for db2snow."""

from typing import Optional, Dict, Any


class Db2SnowError(Exception):
    """Base exception for db2snow errors."""

    def __init__(
        self,
        message: str,
        code: str = "DB2SNOW_ERROR",
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for structured output."""
        result: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result


class ConfigNotFoundError(Db2SnowError):
    """Configuration directory or encryption key is missing."""

    def __init__(
        self,
        message: str = 'Configuration not found. Run "init" first.',
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, code="CONFIG_NOT_FOUND", cause=cause)


class EncryptionError(Db2SnowError):
    """Error encrypting or decrypting stored credentials."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, code="ENCRYPTION_ERROR", cause=cause)


class ConnectionError(Db2SnowError):
    """Error connecting to a source database."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, code="CONNECTION_ERROR", cause=cause)


class MappingError(Db2SnowError):
    """Error reading, writing or interpreting a mapping file."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, code="MAPPING_ERROR", cause=cause)


class ExportError(Db2SnowError):
    """Error exporting table data."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, code="EXPORT_ERROR", cause=cause)


class DDLGenerationError(Db2SnowError):
    """Error generating Snowflake DDL."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, code="DDL_GENERATION_ERROR", cause=cause)
