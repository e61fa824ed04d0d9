"""Carrier tracking code → internal order status.

The mapping is a flat table so it can be audited at a glance. Codes that are
missing from the table, absent, or not integers map to ``None``, meaning
"leave the line as it is".
"""

from dataclasses import dataclass
from datetime import datetime

import structlog

from marketplace.order.order import InternalOrderStatus

logger = structlog.get_logger(__name__)

PLATFORM_DATE_FORMAT = "%m-%d-%Y"

RETURN_CODES = (9, 14, 44, 40, 41, 46, 10)

CARRIER_STATUS_TABLE = {
    13: InternalOrderStatus.PICKUP_ERROR,
    20: InternalOrderStatus.PICKUP_EXCEPTION,
    15: InternalOrderStatus.PICKUP_RESCHEDULED,
    19: InternalOrderStatus.OUT_FOR_PICKUP,
    42: InternalOrderStatus.PICKED_UP,
    6: InternalOrderStatus.SHIPPED,
    18: InternalOrderStatus.IN_TRANSIT,
    38: InternalOrderStatus.REACHED_DESTINATION,
    17: InternalOrderStatus.OUT_FOR_DELIVERY,
    7: InternalOrderStatus.DELIVERED,
    21: InternalOrderStatus.UNDELIVERED,
    22: InternalOrderStatus.DELAYED,
    24: InternalOrderStatus.DESTROYED,
    25: InternalOrderStatus.DAMAGED,
    39: InternalOrderStatus.MISROUTED,
    12: InternalOrderStatus.LOST,
    16: InternalOrderStatus.CANCELLATION_REQUESTED,
    45: InternalOrderStatus.CANCELLED_BEFORE_DISPATCH,
    8: InternalOrderStatus.CANCELLED,
    **{code: InternalOrderStatus.RETURN for code in RETURN_CODES},
}


@dataclass(frozen=True)
class StatusMapping:
    status: InternalOrderStatus | None
    updated_date: str | None = None

    @property
    def is_change(self) -> bool:
        return self.status is not None


def map_tracking_code(code) -> InternalOrderStatus | None:
    if isinstance(code, bool) or not isinstance(code, int):
        return None
    return CARRIER_STATUS_TABLE.get(code)


def format_delivered_date(value) -> str | None:
    """Reformat ``YYYY-MM-DD[ HH:MM:SS]`` as MM-DD-YYYY.

    Month and day are always zero-padded, so ``2024-1-5 10:00`` becomes
    ``01-05-2024``.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.strptime(value.split()[0], "%Y-%m-%d")
    except ValueError:
        logger.warning("Unparseable delivered date in tracking history", delivered_date=value)
        return None
    return parsed.strftime(PLATFORM_DATE_FORMAT)


def first_delivered_date(history) -> str | None:
    """Delivered date of the first history entry that has one.

    First in list order, not earliest in time.
    """
    for entry in history or []:
        if isinstance(entry, dict) and entry.get("delivered_date"):
            return format_delivered_date(entry["delivered_date"])
    return None


def map_snapshot(snapshot) -> StatusMapping:
    status = map_tracking_code(snapshot.tracking_code)
    if status == InternalOrderStatus.DELIVERED:
        return StatusMapping(status=status, updated_date=first_delivered_date(snapshot.history))
    return StatusMapping(status=status)
