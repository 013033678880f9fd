"""Application-wide constants."""

APP_NAME = "db2snow"
APP_VERSION = "0.1.0"

CONFIG_DIR_NAME = ".db2snow"
MAPPINGS_DIR = "mappings"
LOGS_DIR = "logs"
CONNECTIONS_DIR = "connections"
KEY_FILE = "key"
MAX_LOG_FILES = 10

MAPPING_FILE_VERSION = 2
MAPPING_FILE_EXTENSION = ".mapping.json"
CONNECTION_FILE_EXTENSION = ".connection.json"

DEFAULT_EXPORT_FORMAT = "parquet"
DEFAULT_OUTPUT_DIR = "./export"
EXPORT_FORMATS = ("parquet", "csv")

ENCRYPTION_ALGORITHM = "aes-256-gcm"
KEY_DERIVATION_SALT = b"db2snow-salt"

# System schemas excluded from schema listings
POSTGRES_SYSTEM_SCHEMAS = (
    "pg_catalog",
    "information_schema",
    "pg_toast",
    "pg_temp_1",
    "pg_toast_temp_1",
)

MYSQL_SYSTEM_SCHEMAS = (
    "information_schema",
    "mysql",
    "performance_schema",
    "sys",
)

MSSQL_SYSTEM_SCHEMAS = (
    "db_accessadmin",
    "db_backupoperator",
    "db_datareader",
    "db_datawriter",
    "db_ddladmin",
    "db_denydatareader",
    "db_denydatawriter",
    "db_owner",
    "db_securityadmin",
    "guest",
    "INFORMATION_SCHEMA",
    "sys",
)
