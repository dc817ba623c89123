from hall_reservations.db.session import SessionLocal
from hall_reservations.services.notifications import get_notifier as _default_notifier
from hall_reservations.utils.cloudinary_utils import get_blob_store as _default_blob_store


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_blob_store():
    return _default_blob_store()


def get_notifier():
    return _default_notifier()
