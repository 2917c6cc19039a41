"""
Time normalization between offset-qualified timestamps and doctor timezones.
"""

from datetime import datetime
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from meditrack.exceptions import InvalidTimestamp, UnknownTimezone


@lru_cache(maxsize=256)
def resolve_zone(zone: str) -> ZoneInfo:
    """Look up an IANA timezone, raising UnknownTimezone for unrecognized ids."""
    try:
        return ZoneInfo(zone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise UnknownTimezone(zone) from exc


def parse_offset_timestamp(raw: str) -> datetime:
    """Parse an ISO-8601 timestamp that must carry a UTC offset ('Z' allowed)."""
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidTimestamp(str(raw))
    try:
        parsed = datetime.fromisoformat(raw.strip())
    except ValueError as exc:
        raise InvalidTimestamp(raw) from exc
    if parsed.tzinfo is None or parsed.utcoffset() is None:
        raise InvalidTimestamp(raw)
    return parsed


def to_canonical_instant(raw: str, zone: str) -> datetime:
    """
    Reinterpret an offset-qualified timestamp in `zone`.

    The offset only matters for parsing: the result is the same absolute
    instant, expressed in the doctor's timezone.

    Args:
        raw: ISO-8601 timestamp, e.g. "2024-06-01T10:00:00-04:00"
        zone: IANA timezone id, e.g. "America/New_York"

    Returns:
        Timezone-aware datetime in `zone`
    """
    tz = resolve_zone(zone)
    return parse_offset_timestamp(raw).astimezone(tz)


def format_instant(instant: datetime, zone: str) -> str:
    """
    Render an absolute instant as ISO-8601 with the offset `zone` has at it.

    The same instant renders with different offsets depending on the
    daylight-saving rules in effect for `zone`.
    """
    if instant.tzinfo is None:
        raise ValueError("cannot format a naive datetime as an absolute instant")
    local = instant.astimezone(resolve_zone(zone))
    timespec = "seconds" if local.microsecond == 0 else "auto"
    return local.isoformat(timespec=timespec)
