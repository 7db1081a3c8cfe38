"""
Timezone Utilities.

Golden Rules:
1. Database: Always store UTC
2. API: Accept any offset, normalize to UTC before persisting
3. Role expiry comparisons happen in UTC on both sides
"""

from datetime import datetime, timezone

# UTC constant
UTC = timezone.utc


def utc_now() -> datetime:
    """
    Get current time in UTC (timezone-aware).

    Always use this instead of datetime.utcnow() which returns
    naive datetime.

    Usage:
        from propdesk.utils.timezone import utc_now
        record.assigned_at = utc_now()
    """
    return datetime.now(UTC)


def to_utc(dt: datetime) -> datetime:
    """
    Convert datetime to UTC.

    Naive datetimes are assumed to already be UTC.

    Usage:
        expires_at = to_utc(payload.expires_at)
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)
