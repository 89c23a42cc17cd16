"""Frozen configuration dataclasses loaded from a JSON or YAML file."""

import enum
import json
import logging
import os
from dataclasses import dataclass

import yaml

from reqlog.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "logger.conf.json"
DEFAULT_COLLECTION_NAME = "loggerData"


class DatabaseType(enum.Enum):
    TEXT = "text"
    SQL = "sql"
    NOSQL = "nosql"


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class TextConfig:
    file_path: str
    enable_log_security: bool = False
    log_security_encryption_key: str | None = None
    random_iv: bool = False


@dataclass(frozen=True)
class SqlConfig:
    connection_string: str
    collection_name: str = DEFAULT_COLLECTION_NAME


@dataclass(frozen=True)
class NoSqlConfig:
    connection_string: str
    collection_name: str = DEFAULT_COLLECTION_NAME


@dataclass(frozen=True)
class Config:
    database_type: DatabaseType
    text: TextConfig | None = None
    sql: SqlConfig | None = None
    nosql: NoSqlConfig | None = None
    write_workers: int = 1

    def __post_init__(self):
        if self.database_type is DatabaseType.TEXT and self.text is None:
            raise ConfigError("Text file path is not specified in the configuration file")
        if self.database_type is DatabaseType.SQL and self.sql is None:
            raise ConfigError("SQL connection string is not specified in the configuration file")
        if self.database_type is DatabaseType.NOSQL and self.nosql is None:
            raise ConfigError("NoSQL connection string is not specified in the configuration file")
        if self.write_workers < 1:
            raise ConfigError(f"write_workers must be at least 1, got {self.write_workers}")


def _text_from_dict(section: dict, base_dir: str) -> TextConfig:
    file_path = section.get("file_path")
    if not file_path:
        raise ConfigError("Text file path is not specified in the configuration file")
    if not isinstance(file_path, str):
        raise ConfigError(f"Text file path must be a string, got {file_path!r}")

    enabled = _parse_bool(section.get("enable_log_security", False))
    key = section.get("log_security_encryption_key")
    if enabled and not key:
        raise ConfigError("Encryption key is not set in the configuration file")

    return TextConfig(
        file_path=os.path.normpath(os.path.join(base_dir, file_path)),
        enable_log_security=enabled,
        log_security_encryption_key=key if enabled else None,
        random_iv=_parse_bool(section.get("random_iv", False)),
    )


def _connection_section(section: dict, label: str) -> tuple[str, str]:
    connection_string = section.get("connectionString")
    if not connection_string:
        raise ConfigError(f"{label} connection string is not specified in the configuration file")
    if not isinstance(connection_string, str):
        raise ConfigError(f"{label} connection string must be a string, got {connection_string!r}")
    collection_name = section.get("collectionName") or DEFAULT_COLLECTION_NAME
    if not isinstance(collection_name, str):
        raise ConfigError(f"{label} collection name must be a string, got {collection_name!r}")
    return connection_string, collection_name


def _section(data: dict, name: str) -> dict:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"Section '{name}' must be a mapping, got {type(section).__name__}")
    return section


def config_from_dict(data: dict, base_dir: str | None = None) -> Config:
    """Validate a parsed configuration document and build a Config.

    Relative text file paths are resolved against *base_dir* (defaults to
    the current working directory).
    """
    if not isinstance(data, dict):
        raise ConfigError("Configuration document must be a mapping")

    raw_type = data.get("database_type")
    if not raw_type:
        raise ConfigError("Database type is not specified in the configuration file")
    try:
        db_type = DatabaseType(str(raw_type).strip().lower())
    except ValueError:
        raise ConfigError(f"Unsupported database type: {raw_type}") from None

    base_dir = base_dir if base_dir is not None else os.getcwd()
    try:
        write_workers = int(data.get("write_workers", 1))
    except (TypeError, ValueError):
        raise ConfigError(f"write_workers must be an integer, got {data.get('write_workers')!r}") from None

    text = sql = nosql = None
    if db_type is DatabaseType.TEXT:
        text = _text_from_dict(_section(data, "text"), base_dir)
    elif db_type is DatabaseType.SQL:
        sql = SqlConfig(*_connection_section(_section(data, "sql"), "SQL"))
    elif db_type is DatabaseType.NOSQL:
        nosql = NoSqlConfig(*_connection_section(_section(data, "nosql"), "NoSQL"))

    return Config(
        database_type=db_type,
        text=text,
        sql=sql,
        nosql=nosql,
        write_workers=write_workers,
    )


def load_config(path: str | None = None) -> Config:
    """Load the configuration file and return a validated Config.

    The path defaults to ``logger.conf.json`` in the working directory and
    can be overridden via the ``CONFIG_PATH`` environment variable. Files
    ending in ``.json`` are parsed as JSON, anything else as YAML.
    """
    path = path or os.environ.get("CONFIG_PATH", DEFAULT_CONFIG_PATH)
    path = os.path.abspath(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"Failed to load configuration file at {path}: {exc}") from exc
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Invalid configuration file at {path}: {exc}") from exc

    config = config_from_dict(data or {}, base_dir=os.getcwd())
    logger.info("Loaded config from %s (database_type=%s)", path, config.database_type.value)
    return config
