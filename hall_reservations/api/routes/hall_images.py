from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from hall_reservations.core.dependencies import get_blob_store, get_db
from hall_reservations.core.errors import ValidationError
from hall_reservations.schemas.hall import HallImageOut
from hall_reservations.services import attachments, catalog
from hall_reservations.utils.image_utils import ALLOWED_CONTENT_TYPES

router = APIRouter(prefix="/hall-images", tags=["Hall Images"])


# =====================================================================
#                       UPLOAD IMAGE(S)
# =====================================================================
@router.post("/{hall_id}", status_code=201)
def upload_hall_images(
    hall_id: int,
    files: list[UploadFile] = File(...),
    is_main: bool = Form(False),
    db: Session = Depends(get_db),
    blob_store=Depends(get_blob_store),
):
    for file in files:
        if (file.content_type or "").lower() not in ALLOWED_CONTENT_TYPES:
            raise ValidationError(
                f"Unsupported file type {file.content_type}. Allowed: JPEG, JPG, PNG, HEIC, HEIF, WEBP"
            )

    uploaded = []
    for position, file in enumerate(files):
        image = attachments.upload_hall_image(
            db,
            hall_id,
            file.file.read(),
            blob_store=blob_store,
            # only the first file of a batch can become the cover image
            is_main=is_main and position == 0,
        )
        uploaded.append(HallImageOut.model_validate(image))

    return {
        "message": "Images uploaded successfully",
        "images": uploaded,
    }


# =====================================================================
#                       LIST IMAGES FOR A HALL
# =====================================================================
@router.get("/{hall_id}")
def list_hall_images(hall_id: int, db: Session = Depends(get_db)):
    hall = catalog.get_hall(db, hall_id)

    return {
        "hall_id": hall.id,
        "main_image": hall.main_image,
        "images": [HallImageOut.model_validate(img) for img in hall.images],
    }


# =====================================================================
#                       SET MAIN IMAGE
# =====================================================================
@router.put("/{hall_id}/main", response_model=HallImageOut)
def set_main_image(hall_id: int, public_id: str, db: Session = Depends(get_db)):
    return attachments.set_main_image(db, hall_id, public_id)


# =====================================================================
#                       DELETE IMAGE
# =====================================================================
@router.delete("/{hall_id}")
def delete_hall_image(
    hall_id: int,
    public_id: str,
    db: Session = Depends(get_db),
    blob_store=Depends(get_blob_store),
):
    attachments.detach_image(db, hall_id, public_id, blob_store=blob_store)
    return {"message": "Hall image deleted successfully"}
