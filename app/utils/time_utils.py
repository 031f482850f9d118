from datetime import datetime, timedelta, timezone
from typing import Optional

EPOCH = datetime(1970, 1, 1)


def utc_now() -> datetime:
    """
    Current UTC time as a naive datetime (the form stored in the database).

    Truncated to milliseconds, the precision clients use for polling cursors.
    """
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def to_wire(value: datetime) -> str:
    """ISO-8601 in UTC with a 'Z' designator: 2024-06-10T08:26:41.088Z"""
    return to_naive_utc(value).isoformat(timespec="milliseconds") + "Z"


def parse_since(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a polling cursor.

    Accepts epoch milliseconds ("1718000000000") or an ISO-8601 timestamp.
    Unparseable values are ignored and yield None, like a missing cursor.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None

    if value.lstrip("-").isdigit():
        try:
            return EPOCH + timedelta(milliseconds=int(value))
        except (OverflowError, OSError, ValueError):
            return None

    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return to_naive_utc(parsed)
