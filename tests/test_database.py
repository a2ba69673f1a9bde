"""
Tests for the connection handle and document helpers
"""
import threading
from datetime import datetime

import mongomock
import pytest
from bson import ObjectId

from database import ConnectionHandle, create_document, serialize, to_object_id
from errors import UpstreamError


class TestConnectionHandle:
    """Lazy, one-shot connection"""

    def test_connects_once(self):
        calls = []

        def factory():
            calls.append(1)
            return mongomock.MongoClient()

        handle = ConnectionHandle(client_factory=factory, database_name="lazy")
        assert calls == []
        first = handle.get()
        second = handle.get()
        assert first is second
        assert calls == [1]
        assert first.name == "lazy"

    def test_concurrent_first_use(self):
        calls = []

        def factory():
            calls.append(1)
            return mongomock.MongoClient()

        handle = ConnectionHandle(client_factory=factory, database_name="lazy")
        results = []
        threads = [threading.Thread(target=lambda: results.append(handle.get())) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert calls == [1]
        assert all(db is results[0] for db in results)

    def test_creates_slug_index(self):
        handle = ConnectionHandle(client_factory=mongomock.MongoClient, database_name="lazy")
        info = handle.get()["events"].index_information()
        assert info["slug_unique"]["unique"] is True

    def test_unreachable_server(self, unreachable_handle):
        """A failed first connection is closed and reported, and the next call retries"""
        handle, clients = unreachable_handle
        for _ in range(3):
            with pytest.raises(UpstreamError):
                handle.get()
        assert len(clients) == 3
        assert all(c.closed for c in clients)
        assert handle.client is None

    def test_close_resets(self):
        handle = ConnectionHandle(client_factory=mongomock.MongoClient, database_name="lazy")
        handle.get()
        handle.close()
        assert handle.client is None


class TestHelpers:
    """create_document, serialize, to_object_id"""

    def test_create_document_stamps_times(self, db):
        data = {"name": "x"}
        inserted_id = create_document(db["things"], data)
        stored = db["things"].find_one({"_id": ObjectId(inserted_id)})
        assert stored["created_at"] == stored["updated_at"]
        assert "created_at" not in data

    def test_serialize(self):
        oid, ref = ObjectId(), ObjectId()
        now = datetime(2026, 1, 1)
        assert serialize({"_id": oid, "event_id": ref, "at": now}) == {
            "id": str(oid), "event_id": str(ref), "at": now}
        assert serialize(None) is None

    def test_to_object_id(self):
        oid = ObjectId()
        assert to_object_id(oid) is oid
        assert to_object_id(str(oid)) == oid
        assert to_object_id("nope") is None
        assert to_object_id(42) is None
