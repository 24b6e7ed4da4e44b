"""Root logging setup shared by the API process and tests."""

from __future__ import annotations

import logging
import sys
from typing import Iterable, Union

from .context import current_trace_id, current_trip

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | trace=%(trace_id)s trip=%(trip)s | %(message)s"


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = current_trace_id()
        record.trip = current_trip()
        return True


def configure_logging(
    level: Union[int, str] = logging.INFO,
    quiet: Iterable[str] = ("httpx", "httpcore"),
) -> None:
    """Send every record to stdout tagged with the request trace id and trip.

    Libraries listed in ``quiet`` are raised to WARNING; httpx alone logs one
    INFO line per provider call.
    """

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
