import io
from datetime import datetime

import pytest
from PIL import Image

from hall_reservations.core.errors import NotFoundError, ValidationError
from hall_reservations.db.base import HallImage
from hall_reservations.services import attachments, catalog


def png_bytes(color=(200, 30, 30), size=(8, 8)):
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def refs(hall):
    return [img.public_id for img in hall.images]


class TestImages:
    def test_upload_is_content_addressed(self, db, make_hall, blob_store):
        hall = make_hall()
        data = png_bytes()

        first = attachments.upload_hall_image(db, hall.id, data, blob_store=blob_store, is_main=True)
        again = attachments.upload_hall_image(db, hall.id, data, blob_store=blob_store)

        assert first.public_id == again.public_id
        assert first.public_id.startswith("hall_images/")
        assert first.image_url.endswith(".jpg")
        assert db.query(HallImage).filter(HallImage.hall_id == hall.id).count() == 1
        assert catalog.get_hall(db, hall.id).main_image == first.public_id

    def test_upload_rejects_non_images(self, db, make_hall, blob_store):
        hall = make_hall()

        with pytest.raises(ValidationError):
            attachments.upload_hall_image(db, hall.id, b"definitely not a picture", blob_store=blob_store)

        assert blob_store.uploads == []

    def test_upload_to_unknown_hall(self, db, blob_store):
        with pytest.raises(NotFoundError):
            attachments.upload_hall_image(db, 321, png_bytes(), blob_store=blob_store)

        assert blob_store.uploads == []

    def test_attach_orders_images(self, db, make_hall):
        hall = make_hall()
        for ref in ("hall_images/a", "hall_images/b", "hall_images/c"):
            attachments.attach_image(db, hall.id, ref)

        db.expire_all()
        stored = catalog.get_hall(db, hall.id)
        assert refs(stored) == ["hall_images/a", "hall_images/b", "hall_images/c"]
        assert [img.position for img in stored.images] == [0, 1, 2]

    def test_attach_rejects_blank_ref(self, db, make_hall):
        hall = make_hall()

        with pytest.raises(ValidationError):
            attachments.attach_image(db, hall.id, "  ")

    def test_only_one_main_image(self, db, make_hall):
        hall = make_hall()
        attachments.attach_image(db, hall.id, "hall_images/a", is_main=True)
        attachments.attach_image(db, hall.id, "hall_images/b", is_main=True)

        db.expire_all()
        stored = catalog.get_hall(db, hall.id)
        assert [img.is_main for img in stored.images] == [False, True]
        assert stored.main_image == "hall_images/b"

        attachments.set_main_image(db, hall.id, "hall_images/a")
        db.expire_all()
        assert catalog.get_hall(db, hall.id).main_image == "hall_images/a"

    def test_set_main_requires_attached_image(self, db, make_hall):
        hall = make_hall()

        with pytest.raises(ValidationError):
            attachments.set_main_image(db, hall.id, "hall_images/missing")

    def test_detach_deletes_blob_and_promotes_next_main(self, db, make_hall, blob_store):
        hall = make_hall()
        attachments.attach_image(db, hall.id, "hall_images/a", is_main=True)
        attachments.attach_image(db, hall.id, "hall_images/b")

        attachments.detach_image(db, hall.id, "hall_images/a", blob_store=blob_store)

        db.expire_all()
        stored = catalog.get_hall(db, hall.id)
        assert refs(stored) == ["hall_images/b"]
        assert stored.main_image == "hall_images/b"
        assert blob_store.deleted == ["hall_images/a"]

    def test_detach_absent_ref_is_a_no_op(self, db, make_hall, blob_store):
        hall = make_hall()
        attachments.attach_image(db, hall.id, "hall_images/a")

        attachments.detach_image(db, hall.id, "hall_images/zzz", blob_store=blob_store)

        db.expire_all()
        assert refs(catalog.get_hall(db, hall.id)) == ["hall_images/a"]
        assert blob_store.deleted == []

    def test_shared_blob_survives_until_last_reference(self, db, make_hall, blob_store):
        north = make_hall(name="North")
        south = make_hall(name="South")
        data = png_bytes(color=(0, 90, 200))
        ref = attachments.upload_hall_image(db, north.id, data, blob_store=blob_store).public_id
        attachments.upload_hall_image(db, south.id, data, blob_store=blob_store)

        attachments.detach_image(db, north.id, ref, blob_store=blob_store)
        assert blob_store.deleted == []

        attachments.detach_image(db, south.id, ref, blob_store=blob_store)
        assert blob_store.deleted == [ref]

    def test_release_hall_images(self, db, make_hall, blob_store):
        hall = make_hall()
        attachments.attach_image(db, hall.id, "hall_images/a")
        attachments.attach_image(db, hall.id, "hall_images/b")

        assert attachments.release_hall_images(db, hall.id, blob_store=blob_store) == 2

        db.expire_all()
        assert refs(catalog.get_hall(db, hall.id)) == []
        assert blob_store.deleted == ["hall_images/a", "hall_images/b"]


class TestEquipment:
    def test_hall_equipment(self, db, make_hall):
        hall = make_hall(equipment=["Projector"])

        attachments.add_equipment(db, hall.id, "  Sound system ")
        attachments.add_equipment(db, hall.id, "Projector")
        updated = attachments.remove_equipment(db, hall.id, 0)

        assert updated.equipment == ["Sound system", "Projector"]

    def test_blank_label(self, db, make_hall):
        hall = make_hall()

        with pytest.raises(ValidationError):
            attachments.add_equipment(db, hall.id, "   ")

    @pytest.mark.parametrize("index", [-1, 1, 7])
    def test_bad_index(self, db, make_hall, index):
        hall = make_hall(equipment=["Projector"])

        with pytest.raises(ValidationError):
            attachments.remove_equipment(db, hall.id, index)

        db.expire_all()
        assert catalog.get_hall(db, hall.id).equipment == ["Projector"]

    def test_booking_equipment(self, db, make_hall, book):
        hall = make_hall()
        booking = book(hall, datetime(2030, 5, 1, 9), datetime(2030, 5, 1, 10), equipment_requested=["Mic"])

        attachments.add_booking_equipment(db, booking.id, "Mic")
        attachments.add_booking_equipment(db, booking.id, "Podium")
        updated = attachments.remove_booking_equipment(db, booking.id, 1)

        assert updated.equipment_requested == ["Mic", "Podium"]

        with pytest.raises(ValidationError):
            attachments.remove_booking_equipment(db, booking.id, 3)
