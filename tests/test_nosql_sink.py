"""Tests for the MongoDB sink using an in-memory fake client."""

import pytest
from pymongo.errors import AutoReconnect, ServerSelectionTimeoutError

from reqlog.errors import BackendConnectionError, SinkWriteError
from reqlog.models import LogRecord
from reqlog.nosql_sink import NoSqlSink


class FakeCollection:
    def __init__(self):
        self.documents = []
        self.fail_with = None

    def insert_one(self, document):
        if self.fail_with is not None:
            raise self.fail_with
        document["_id"] = len(self.documents) + 1
        self.documents.append(document)


class FakeDatabase:
    def __init__(self, name):
        self.name = name
        self.collections = {}

    def __getitem__(self, name):
        return self.collections.setdefault(name, FakeCollection())


class FakeAdmin:
    def __init__(self, reachable):
        self._reachable = reachable

    def command(self, name):
        if not self._reachable:
            raise ServerSelectionTimeoutError("no servers found")
        return {"ok": 1.0}


class FakeMongoClient:
    def __init__(self, default_db=None, reachable=True):
        self.admin = FakeAdmin(reachable)
        self._default_db = default_db
        self.databases = {}
        self.closed = False

    def get_default_database(self, default=None):
        name = self._default_db or default
        return self.databases.setdefault(name, FakeDatabase(name))

    def close(self):
        self.closed = True


class TestConnect:
    def test_uses_uri_default_database(self):
        client = FakeMongoClient(default_db="telemetry")
        sink = NoSqlSink("mongodb://h/telemetry", client=client)
        assert sink.collection is client.databases["telemetry"]["loggerData"]

    def test_falls_back_to_test_database(self):
        client = FakeMongoClient()
        NoSqlSink("mongodb://h", collection_name="hits", client=client)
        assert "hits" in client.databases["test"].collections

    def test_unreachable_server(self):
        with pytest.raises(BackendConnectionError):
            NoSqlSink("mongodb://h", client=FakeMongoClient(reachable=False))


class TestWrite:
    def test_inserts_one_document_per_record(self, sample_record, make_record):
        sink = NoSqlSink("mongodb://h", client=FakeMongoClient())
        sink.write(sample_record)
        sink.write(make_record(url="/second"))

        docs = sink.collection.documents
        assert len(docs) == 2
        assert docs[0]["url"] == "/api/orders?id=42"
        assert docs[0]["memoryUsage"]["heapUsed"] == 40_000_000
        assert docs[1]["url"] == "/second"

    def test_document_mirrors_record(self, sample_record):
        sink = NoSqlSink("mongodb://h", client=FakeMongoClient())
        sink.write(sample_record)
        doc = dict(sink.collection.documents[0])
        doc.pop("_id")
        assert LogRecord.from_dict(doc) == sample_record

    def test_driver_error_becomes_sink_write_error(self, sample_record):
        sink = NoSqlSink("mongodb://h", client=FakeMongoClient())
        sink.collection.fail_with = AutoReconnect("connection reset")
        with pytest.raises(SinkWriteError):
            sink.write(sample_record)

    def test_close_closes_client(self):
        client = FakeMongoClient()
        NoSqlSink("mongodb://h", client=client).close()
        assert client.closed is True
