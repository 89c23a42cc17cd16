"""SQL sink writing one row per record through SQLAlchemy Core."""

import datetime
import logging

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    create_engine,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError, SQLAlchemyError

from reqlog.config import DEFAULT_COLLECTION_NAME
from reqlog.errors import BackendConnectionError, ConfigError, SinkWriteError
from reqlog.models import LogRecord

logger = logging.getLogger(__name__)


def normalize_url(connection_string: str) -> str:
    """Accept the libpq-style ``postgres://`` scheme that SQLAlchemy rejects."""
    if connection_string.startswith("postgres://"):
        return "postgresql://" + connection_string[len("postgres://"):]
    return connection_string


def logs_table(metadata: MetaData, name: str) -> Table:
    return Table(
        name,
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("method", String(255)),
        Column("url", Text),
        Column("status_code", Integer),
        Column("response_time", Numeric),
        Column("timestamp", DateTime),
        Column("memory_usage", JSON),
        Column("cpu_usage", JSON),
    )


def _parse_timestamp(value: str) -> datetime.datetime:
    # Stored as naive UTC, matching a TIMESTAMP column without time zone
    parsed = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return parsed


class SqlSink:
    def __init__(self, connection_string: str, table_name: str = DEFAULT_COLLECTION_NAME,
                 engine: Engine | None = None):
        self._table_name = table_name or DEFAULT_COLLECTION_NAME
        if engine is None:
            try:
                engine = create_engine(normalize_url(connection_string))
            except (ArgumentError, ValueError) as exc:
                raise ConfigError(f"Invalid SQL connection string: {exc}") from exc
        self._engine = engine
        self._metadata = MetaData()
        self._table = logs_table(self._metadata, self._table_name)

        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            self._metadata.create_all(self._engine, checkfirst=True)
        except SQLAlchemyError as exc:
            raise BackendConnectionError(f"Failed to connect to the database: {exc}") from exc
        logger.info("Logs table %s ready", self._table_name)

    @property
    def table(self) -> Table:
        return self._table

    @property
    def engine(self) -> Engine:
        return self._engine

    def write(self, record: LogRecord) -> None:
        row = {
            "method": record.method,
            "url": record.url,
            "status_code": record.status_code,
            "response_time": record.response_time_ms,
            "timestamp": _parse_timestamp(record.timestamp),
            "memory_usage": record.memory_usage.to_dict(),
            "cpu_usage": record.cpu_usage.to_dict(),
        }
        try:
            with self._engine.begin() as conn:
                conn.execute(self._table.insert().values(**row))
        except SQLAlchemyError as exc:
            raise SinkWriteError(f"Failed to insert into {self._table_name}: {exc}") from exc

    def close(self) -> None:
        self._engine.dispose()
