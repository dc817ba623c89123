# Import every model so relationship() targets resolve and Base.metadata is complete
from hall_reservations.db.session import Base  # noqa: F401
from hall_reservations.models.hall import Hall  # noqa: F401
from hall_reservations.models.hall_image import HallImage  # noqa: F401
from hall_reservations.models.booking import Booking  # noqa: F401
