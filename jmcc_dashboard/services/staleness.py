"""
IVMS staleness calculation.

Staleness is the number of whole minutes since the last IVMS check. A record
with no usable check date has unknown staleness, represented by None.
"""
from datetime import date, datetime, time
from typing import Any, Optional

# Formats tried after datetime.fromisoformat
_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%dT%H:%M:%SZ",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
)

def parse_check_date(value: Any) -> Optional[datetime]:
    """
    Turn a stored check date into a datetime.

    Args:
        value: datetime, date, or string as read from the store or the API

    Returns:
        The parsed datetime, or None when the value is missing or unparsable
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None

def _align_timezones(check_date: datetime, now: datetime):
    # A naive value is read in the other side's zone
    if check_date.tzinfo is None and now.tzinfo is not None:
        return check_date.replace(tzinfo=now.tzinfo), now
    if check_date.tzinfo is not None and now.tzinfo is None:
        return check_date, now.replace(tzinfo=check_date.tzinfo)
    return check_date, now

def minutes_since_last_check(check_date: Any, now: datetime) -> Optional[int]:
    """
    Whole minutes elapsed between the last IVMS check and now.

    Args:
        check_date: Last check timestamp in any form parse_check_date accepts
        now: Reference time supplied by the caller

    Returns:
        Elapsed minutes, floored; negative for a check date in the future.
        None when the check date is missing or unparsable.
    """
    parsed = parse_check_date(check_date)
    if parsed is None:
        return None

    parsed, now = _align_timezones(parsed, now)
    elapsed = now - parsed
    return int(elapsed.total_seconds() // 60)
