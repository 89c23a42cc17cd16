"""MongoDB sink writing one schemaless document per record."""

import logging

from pymongo import MongoClient
from pymongo.errors import ConfigurationError, PyMongoError

from reqlog.config import DEFAULT_COLLECTION_NAME
from reqlog.errors import BackendConnectionError, ConfigError, SinkWriteError
from reqlog.models import LogRecord

logger = logging.getLogger(__name__)

FALLBACK_DATABASE = "test"


class NoSqlSink:
    def __init__(self, connection_string: str, collection_name: str = DEFAULT_COLLECTION_NAME,
                 client=None, server_selection_timeout_ms: int = 5000):
        if client is None:
            try:
                client = MongoClient(connection_string, serverSelectionTimeoutMS=server_selection_timeout_ms)
            except ConfigurationError as exc:
                raise ConfigError(f"Invalid NoSQL connection string: {exc}") from exc
        self._client = client

        try:
            self._client.admin.command("ping")
        except PyMongoError as exc:
            raise BackendConnectionError(f"Failed to connect to the database: {exc}") from exc

        db = self._client.get_default_database(default=FALLBACK_DATABASE)
        self._collection_name = collection_name or DEFAULT_COLLECTION_NAME
        self._collection = db[self._collection_name]
        logger.info("Connected to NoSQL database %s, collection %s", db.name, self._collection_name)

    @property
    def collection(self):
        return self._collection

    def write(self, record: LogRecord) -> None:
        try:
            self._collection.insert_one(record.to_dict())
        except PyMongoError as exc:
            raise SinkWriteError(f"Failed to insert into {self._collection_name}: {exc}") from exc

    def close(self) -> None:
        self._client.close()
