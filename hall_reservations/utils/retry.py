import time

from hall_reservations.core.errors import StoreTimeoutError
from hall_reservations.core.logging_config import get_logger

logger = get_logger()


def retry_on_timeout(operation, *args, attempts: int = 3, backoff: float = 0.2, **kwargs):
    """
    Call ``operation`` and retry it when the store times out.

    Only ``StoreTimeoutError`` is retried: a timed out operation wrote
    nothing, so running it again is safe. Every other error propagates on the
    first attempt.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        try:
            return operation(*args, **kwargs)
        except StoreTimeoutError as e:
            if attempt == attempts:
                raise
            delay = backoff * 2 ** (attempt - 1)
            logger.warning(
                f"{getattr(operation, '__name__', operation)} timed out "
                f"(attempt {attempt}/{attempts}), retrying in {delay:.2f}s: {e}"
            )
            time.sleep(delay)
