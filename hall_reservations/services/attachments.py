"""
Image and equipment attachments for halls and bookings.

Blob store calls never run inside a store transaction or under a hall lock.
Uploading happens first and attaching the returned reference is a separate,
idempotent step, so a failed attach can simply be retried.
"""
from sqlalchemy import func
from sqlalchemy.orm import Session

from hall_reservations.core.errors import ValidationError, parse_payload
from hall_reservations.core.logging_config import get_logger
from hall_reservations.db.base import HallImage
from hall_reservations.db.store import store_read, store_transaction
from hall_reservations.schemas.booking import EquipmentItem
from hall_reservations.services.calendar import get_booking
from hall_reservations.services.catalog import get_hall
from hall_reservations.utils.cloudinary_utils import get_blob_store
from hall_reservations.utils.image_utils import convert_to_jpeg

logger = get_logger()


def _find_image(db: Session, hall_id: int, blob_ref: str):
    return (
        db.query(HallImage)
        .filter(HallImage.hall_id == hall_id, HallImage.public_id == blob_ref)
        .first()
    )


def _shared_elsewhere(db: Session, image: HallImage) -> bool:
    return (
        db.query(HallImage.id)
        .filter(HallImage.public_id == image.public_id, HallImage.id != image.id)
        .first()
        is not None
    )


# =====================================================================
# IMAGES
# =====================================================================
def attach_image(
    db: Session,
    hall_id: int,
    blob_ref: str,
    url: str | None = None,
    is_main: bool = False,
    timeout: float | None = None,
) -> HallImage:
    if not blob_ref or not blob_ref.strip():
        raise ValidationError("blob_ref cannot be empty")

    with store_transaction(db, timeout):
        hall = get_hall(db, hall_id, for_update=True)

        image = _find_image(db, hall.id, blob_ref)
        if image is None:
            last = (
                db.query(func.max(HallImage.position))
                .filter(HallImage.hall_id == hall.id)
                .scalar()
            )
            image = HallImage(
                hall_id=hall.id,
                public_id=blob_ref,
                image_url=url,
                position=0 if last is None else last + 1,
                is_main=False,
            )
            db.add(image)
        elif url and not image.image_url:
            image.image_url = url

        if is_main:
            db.query(HallImage).filter(
                HallImage.hall_id == hall.id,
                HallImage.public_id != blob_ref,
            ).update({"is_main": False})
            image.is_main = True

        db.flush()

    logger.bind(log_type="admin").info(f"Image Attached | Hall={hall_id} | Ref={blob_ref}")
    return image


def upload_hall_image(
    db: Session,
    hall_id: int,
    contents: bytes,
    blob_store=None,
    is_main: bool = False,
    timeout: float | None = None,
) -> HallImage:
    blob_store = blob_store or get_blob_store()

    # Fail fast before any upload
    get_hall(db, hall_id, timeout=timeout)

    jpeg_bytes = convert_to_jpeg(contents)
    blob = blob_store.upload(jpeg_bytes)

    return attach_image(db, hall_id, blob.ref, url=blob.url, is_main=is_main, timeout=timeout)


def detach_image(
    db: Session,
    hall_id: int,
    blob_ref: str,
    blob_store=None,
    timeout: float | None = None,
) -> None:
    blob_store = blob_store or get_blob_store()

    with store_read(db, timeout):
        get_hall(db, hall_id)
        image = _find_image(db, hall_id, blob_ref)
        # Same content uploaded for another hall resolves to the same reference
        shared = image is not None and _shared_elsewhere(db, image)

    if image is None:
        logger.info(f"Image {blob_ref} already detached from hall {hall_id}")
        return

    if not shared:
        blob_store.delete(blob_ref)

    with store_transaction(db, timeout):
        image = _find_image(db, hall_id, blob_ref)
        if image is not None:
            was_main = image.is_main
            db.delete(image)
            db.flush()

            if was_main:
                successor = (
                    db.query(HallImage)
                    .filter(HallImage.hall_id == hall_id)
                    .order_by(HallImage.position)
                    .first()
                )
                if successor is not None:
                    successor.is_main = True

    logger.bind(log_type="admin").info(f"Image Detached | Hall={hall_id} | Ref={blob_ref}")


def set_main_image(db: Session, hall_id: int, blob_ref: str, timeout: float | None = None) -> HallImage:
    with store_transaction(db, timeout):
        hall = get_hall(db, hall_id, for_update=True)
        image = _find_image(db, hall.id, blob_ref)
        if image is None:
            raise ValidationError(f"Image {blob_ref} is not attached to hall {hall_id}")

        db.query(HallImage).filter(HallImage.hall_id == hall.id).update({"is_main": False})
        image.is_main = True

    return image


def release_hall_images(db: Session, hall_id: int, blob_store=None, timeout: float | None = None) -> int:
    """Detach every image of a hall, deleting blobs nothing else references."""
    with store_read(db, timeout):
        refs = [
            ref
            for (ref,) in db.query(HallImage.public_id)
            .filter(HallImage.hall_id == hall_id)
            .order_by(HallImage.position)
            .all()
        ]
    for ref in refs:
        detach_image(db, hall_id, ref, blob_store=blob_store, timeout=timeout)
    return len(refs)


# =====================================================================
# EQUIPMENT
# =====================================================================
def _label(label) -> str:
    return parse_payload(EquipmentItem, {"label": label}).label


def _without(items, index: int):
    items = list(items or [])
    if not 0 <= index < len(items):
        raise ValidationError(f"No equipment at position {index}")
    del items[index]
    return items


def add_equipment(db: Session, hall_id: int, label: str, timeout: float | None = None):
    label = _label(label)
    with store_transaction(db, timeout):
        hall = get_hall(db, hall_id, for_update=True)
        hall.equipment = [*(hall.equipment or []), label]
    return hall


def remove_equipment(db: Session, hall_id: int, index: int, timeout: float | None = None):
    with store_transaction(db, timeout):
        hall = get_hall(db, hall_id, for_update=True)
        hall.equipment = _without(hall.equipment, index)
    return hall


def add_booking_equipment(db: Session, booking_id: int, label: str, timeout: float | None = None):
    label = _label(label)
    with store_transaction(db, timeout):
        booking = get_booking(db, booking_id, for_update=True)
        booking.equipment_requested = [*(booking.equipment_requested or []), label]
    return booking


def remove_booking_equipment(db: Session, booking_id: int, index: int, timeout: float | None = None):
    with store_transaction(db, timeout):
        booking = get_booking(db, booking_id, for_update=True)
        booking.equipment_requested = _without(booking.equipment_requested, index)
    return booking
