"""
Shared fixtures: an in-memory MongoDB, the stores on top of it and an API client.
"""
import mongomock
import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from database import ConnectionHandle, ensure_indexes
from store import BookingStore, EventStore


class FakeUploader:
    """Stands in for the image host."""

    def __init__(self, url="https://img.example.com/cover.png", error=None):
        self.url = url
        self.error = error
        self.uploads = []

    def upload(self, data):
        self.uploads.append(data)
        if self.error is not None:
            raise self.error
        return self.url


class UnreachableClient:
    """A client whose server never answers."""

    def __init__(self):
        self.closed = False

    def __getitem__(self, name):
        return self

    def create_index(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("127.0.0.1:1: connection refused")

    def close(self):
        self.closed = True


@pytest.fixture
def db():
    client = mongomock.MongoClient()
    database = client["devevent_test"]
    ensure_indexes(database)
    yield database
    client.close()


@pytest.fixture
def events(db):
    return EventStore(db)


@pytest.fixture
def bookings(db):
    return BookingStore(db)


@pytest.fixture
def event_record():
    return {
        "title": "My Talk",
        "description": "A talk about things",
        "overview": "A longer overview of the talk",
        "image": "https://img.example.com/talk.png",
        "venue": "Main Hall",
        "location": "Berlin, Germany",
        "date": "2026-05-15",
        "time": "09:00",
        "mode": "In-Person",
        "audience": "Developers",
        "agenda": ["09:00 Welcome", "09:30 Talk"],
        "organizer": "Dev Community",
        "tags": ["python", "web"],
    }


@pytest.fixture
def make_event(events, event_record):
    def _make(**overrides):
        return events.create(dict(event_record, **overrides))
    return _make


@pytest.fixture
def uploader():
    return FakeUploader()


@pytest.fixture
def client(db, uploader):
    from main import app, get_booking_store, get_event_store, get_uploader

    app.dependency_overrides[get_event_store] = lambda: EventStore(db)
    app.dependency_overrides[get_booking_store] = lambda: BookingStore(db)
    app.dependency_overrides[get_uploader] = lambda: uploader
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def unreachable_handle():
    """A connection handle for a database that is down, plus every client it created."""
    clients = []

    def factory():
        clients.append(UnreachableClient())
        return clients[-1]

    return ConnectionHandle(client_factory=factory, database_name="down"), clients
