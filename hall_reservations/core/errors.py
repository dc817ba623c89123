"""
Error taxonomy shared by every core operation.

Each error carries a machine readable ``kind`` and a human message. The HTTP
adapter maps kinds to status codes; callers of the function API catch the
classes directly.
"""
from pydantic import ValidationError as PydanticValidationError


class HallBookingError(Exception):
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.message


class ValidationError(HallBookingError):
    kind = "validation_error"


class NotFoundError(HallBookingError):
    kind = "not_found"


class CapacityError(HallBookingError):
    kind = "capacity_error"


class AvailabilityError(HallBookingError):
    kind = "availability_error"


class OverlapError(HallBookingError):
    kind = "overlap_error"


class InvalidTransitionError(HallBookingError):
    kind = "invalid_transition"


class ConflictError(HallBookingError):
    kind = "conflict"


class StoreError(HallBookingError):
    kind = "store_error"


class StoreTimeoutError(StoreError):
    kind = "store_timeout"


class BlobStoreError(StoreError):
    kind = "blob_store_error"


def parse_payload(schema, data):
    """Return ``data`` as an instance of ``schema``, wrapping pydantic failures."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(f"Invalid {schema.__name__}: {problems}") from e
