"""
Cloudinary-backed blob store for hall photos.

References are content addressed: the public id is derived from a digest of
the uploaded bytes and uploads overwrite, so retrying an upload returns the
same reference instead of leaving duplicates behind.
"""
import hashlib
from dataclasses import dataclass

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from hall_reservations.core import config
from hall_reservations.core.errors import BlobStoreError
from hall_reservations.core.logging_config import get_logger

logger = get_logger()


@dataclass(frozen=True)
class UploadedBlob:
    ref: str
    url: str | None = None


def content_key(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()[:32]


class CloudinaryBlobStore:
    def __init__(self, folder: str | None = None):
        self.folder = folder or config.CLOUDINARY_FOLDER
        cloudinary.config(
            cloud_name=config.CLOUDINARY_CLOUD_NAME,
            api_key=config.CLOUDINARY_API_KEY,
            api_secret=config.CLOUDINARY_API_SECRET,
        )

    def upload(self, data: bytes) -> UploadedBlob:
        try:
            result = cloudinary.uploader.upload(
                data,
                folder=self.folder,
                public_id=content_key(data),
                overwrite=True,
                resource_type="image",
                format="jpg",          # force output as JPG
                quality="90"
            )
        except CloudinaryError as e:
            logger.error(f"Cloudinary upload error: {e}")
            raise BlobStoreError("Image upload failed") from e

        return UploadedBlob(ref=result.get("public_id"), url=result.get("secure_url"))

    def delete(self, ref: str) -> None:
        try:
            result = cloudinary.uploader.destroy(ref, invalidate=True)
        except CloudinaryError as e:
            logger.error(f"Cloudinary delete error: {e}")
            raise BlobStoreError(f"Image delete failed for {ref}") from e

        outcome = result.get("result")
        if outcome == "not found":
            logger.info(f"Blob {ref} already absent")
        elif outcome != "ok":
            raise BlobStoreError(f"Image delete failed for {ref}: {outcome}")


_blob_store = None


def get_blob_store() -> CloudinaryBlobStore:
    global _blob_store

    if _blob_store is None:
        _blob_store = CloudinaryBlobStore()
    return _blob_store
