"""
Shared pytest fixtures: a file-backed SQLite store per test, in-process hall
locks, an in-memory blob store and a notifier that records what it was told.
"""
import os
import tempfile

# Must run before hall_reservations is imported: log sinks and engine read these
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="hall-reservations-logs-"))
os.environ.setdefault("DATABASE_URL", "sqlite:///" + os.path.join(tempfile.mkdtemp(), "default.db"))
os.environ.pop("REDIS_URL", None)

import pytest  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from hall_reservations.core.locks import HallLockManager  # noqa: E402
from hall_reservations.db.base import Base  # noqa: E402
from hall_reservations.db.session import make_engine  # noqa: E402
from hall_reservations.services import calendar, catalog  # noqa: E402
from hall_reservations.services.notifications import BookingNotifier  # noqa: E402
from hall_reservations.utils.cloudinary_utils import UploadedBlob, content_key  # noqa: E402


class InMemoryBlobStore:
    def __init__(self):
        self.blobs = {}
        self.uploads = []
        self.deleted = []

    def upload(self, data: bytes) -> UploadedBlob:
        ref = f"hall_images/{content_key(data)}"
        self.blobs[ref] = data
        self.uploads.append(ref)
        return UploadedBlob(ref=ref, url=f"https://blobs.example.test/{ref}.jpg")

    def delete(self, ref: str) -> None:
        # Absent refs are fine, like the real store
        self.deleted.append(ref)
        self.blobs.pop(ref, None)


class RecordingNotifier(BookingNotifier):
    def __init__(self):
        self.events = []

    def status_changed(self, booking, previous, current, reason=None):
        self.events.append(("status", booking.id, previous, current, reason))

    def payment_changed(self, booking, previous, current):
        self.events.append(("payment", booking.id, previous, current))


class BrokenNotifier(BookingNotifier):
    def status_changed(self, booking, previous, current, reason=None):
        raise RuntimeError("mail server down")

    def payment_changed(self, booking, previous, current):
        raise RuntimeError("mail server down")


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'halls.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def locks():
    return HallLockManager()


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def broken_notifier():
    return BrokenNotifier()


@pytest.fixture
def make_hall(db):
    def _make(**overrides):
        payload = {
            "name": "Main Hall",
            "description": "Ground floor hall",
            "capacity": 10,
            "hourly_rate": "50.00",
            "security_deposit": "100.00",
            "location": "Douala",
            "equipment": ["Projector"],
        }
        payload.update(overrides)
        return catalog.create_hall(db, payload)

    return _make


@pytest.fixture
def book(db, locks):
    def _book(hall, start, end, num_attendees=5, **extra):
        payload = {
            "hall_id": hall.id,
            "customer_name": "Ada Obi",
            "customer_email": "ada@example.com",
            "num_attendees": num_attendees,
            "start_time": start,
            "end_time": end,
            "total_amount": "200.00",
        }
        payload.update(extra)
        return calendar.request_booking(db, payload, locks=locks)

    return _book
