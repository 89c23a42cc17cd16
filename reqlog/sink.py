"""Sink protocol and backend selection."""

import logging
from typing import Protocol, runtime_checkable

from reqlog.cipher import CipherCodec
from reqlog.config import Config, DatabaseType
from reqlog.errors import ConfigError
from reqlog.file_sink import FileSink
from reqlog.models import LogRecord
from reqlog.nosql_sink import NoSqlSink
from reqlog.sql_sink import SqlSink

logger = logging.getLogger(__name__)


@runtime_checkable
class Sink(Protocol):
    def write(self, record: LogRecord) -> None: ...

    def close(self) -> None: ...


def build_sink(config: Config) -> Sink:
    """Construct the sink for the configured backend.

    Connection failures surface as BackendConnectionError and bad keys as
    InvalidKeyError; both are meant to abort startup.
    """
    db_type = config.database_type
    if db_type is DatabaseType.TEXT:
        text = config.text
        codec = None
        if text.enable_log_security:
            codec = CipherCodec(text.log_security_encryption_key, random_iv=text.random_iv)
        logger.info("Using text sink at %s (encryption=%s)", text.file_path, codec is not None)
        return FileSink(text.file_path, codec=codec)
    if db_type is DatabaseType.SQL:
        logger.info("Using SQL sink, table %s", config.sql.collection_name)
        return SqlSink(config.sql.connection_string, table_name=config.sql.collection_name)
    if db_type is DatabaseType.NOSQL:
        logger.info("Using NoSQL sink, collection %s", config.nosql.collection_name)
        return NoSqlSink(config.nosql.connection_string, collection_name=config.nosql.collection_name)
    raise ConfigError(f"Unsupported database type: {db_type}")
