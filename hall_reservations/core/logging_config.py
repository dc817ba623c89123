"""
Loguru setup, done once on import.

Domain events are routed to their own files by binding ``log_type``:
``logger.bind(log_type="booking")`` lands in ``bookings.log`` as well as the
general ``app.log``.
"""
import os
import sys
from loguru import logger

from hall_reservations.core import config

LINE_FORMAT = "{time} | {level} | {message}"

# file name -> bound log_type
CHANNEL_SINKS = {
    "bookings.log": "booking",
    "payments.log": "payment",
    "admin.log": "admin",
}


def _channel(log_type):
    return lambda record: record["extra"].get("log_type") == log_type


def _file_sink(name, level, retention="4 weeks", **options):
    logger.add(
        os.path.join(config.LOG_DIR, name),
        rotation="1 week",
        retention=retention,
        level=level,
        enqueue=True,
        **options,
    )


os.makedirs(config.LOG_DIR, exist_ok=True)

logger.remove()
logger.add(sys.stderr, level="WARNING")

_file_sink("app.log", config.LOG_LEVEL, format=LINE_FORMAT)
for file_name, log_type in CHANNEL_SINKS.items():
    _file_sink(file_name, "INFO", format=LINE_FORMAT, filter=_channel(log_type))
_file_sink("errors.log", "ERROR", retention="8 weeks")


def get_logger():
    return logger
