import io

from PIL import Image, UnidentifiedImageError

from hall_reservations.core.errors import ValidationError

ALLOWED_CONTENT_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/heic",
    "image/heif",
    "image/webp",
}


# =====================================================================
#                  CONVERT ANY IMAGE TO JPEG (AUTO-CONVERT)
# =====================================================================
def convert_to_jpeg(contents: bytes, quality: int = 90) -> bytes:
    try:
        img = Image.open(io.BytesIO(contents)).convert("RGB")
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError("Invalid image file") from e

    buffer = io.BytesIO()
    img.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()
