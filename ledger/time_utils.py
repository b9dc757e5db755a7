from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Optional, Union
from zoneinfo import ZoneInfo

from .constants import DATE_FORMAT, SALE_EDIT_WINDOW_HOURS


DateLike = Union[str, date, datetime]

# One timezone for every "today" calculation; create_app() sets it from config.
_default_timezone = "Asia/Manila"


def set_default_timezone(name: str) -> None:
    """Validate and install the business timezone used by every helper below."""
    global _default_timezone
    ZoneInfo(name)
    _default_timezone = name


def get_timezone(tz: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(tz or _default_timezone)


def utcnow() -> datetime:
    """'Now' in UTC (aware)."""
    return datetime.now(timezone.utc)


def now_local(tz: Optional[str] = None, now: Optional[datetime] = None) -> datetime:
    """Current wall-clock time in the business timezone."""
    current = now or utcnow()
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(get_timezone(tz))


def today(tz: Optional[str] = None, now: Optional[datetime] = None) -> date:
    return now_local(tz, now).date()


def today_iso(tz: Optional[str] = None, now: Optional[datetime] = None) -> str:
    """Today's date (YYYY-MM-DD) in the business timezone, never the host's."""
    return today(tz, now).isoformat()


def yesterday_iso(tz: Optional[str] = None, now: Optional[datetime] = None) -> str:
    return (today(tz, now) - timedelta(days=1)).isoformat()


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string into an aware datetime.

    - None / "" -> None
    - "YYYY-MM-DD" is midnight UTC
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" keeps its offset
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def date_key(value: Optional[DateLike]) -> str:
    """
    The YYYY-MM-DD portion of a date field.

    Strings are cut at the 'T' so the key matches what the backend stored,
    datetimes are converted into the business timezone first.
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date().isoformat()
        return value.astimezone(get_timezone()).date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value.strip().split("T")[0]


def to_local_date(value: Optional[DateLike], tz: Optional[str] = None) -> Optional[date]:
    """Calendar date of a timestamp as seen in the business timezone."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return dt.astimezone(get_timezone(tz)).date()
    if isinstance(value, date):
        return value
    s = value.strip()
    if "T" not in s:
        return date.fromisoformat(s[:10])
    return parse_iso_datetime(s).astimezone(get_timezone(tz)).date()


def parse_iso_date(value: Optional[DateLike]) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(date_key(value))


def shift_days(value: DateLike, days: int) -> str:
    return (parse_iso_date(value) + timedelta(days=days)).isoformat()


def is_within_period(value: Optional[DateLike], start: DateLike, end: DateLike) -> bool:
    """Inclusive [start, end] check on date keys."""
    key = date_key(value)
    if not key:
        return False
    return date_key(start) <= key <= date_key(end)


def iter_date_keys(start: DateLike, end: DateLike) -> Iterator[str]:
    current = parse_iso_date(start)
    last = parse_iso_date(end)
    while current <= last:
        yield current.isoformat()
        current += timedelta(days=1)


def days_since(value: Optional[DateLike], reference: Optional[date] = None) -> Optional[int]:
    """Whole days from value's local date until reference (defaults to today)."""
    day = to_local_date(value)
    if day is None:
        return None
    return ((reference or today()) - day).days


def is_within_edit_window(created_at: Optional[str], now: Optional[datetime] = None) -> bool:
    """Sales stay editable for SALE_EDIT_WINDOW_HOURS after creation."""
    created = parse_iso_datetime(created_at)
    if created is None:
        return False
    return (now or utcnow()) - created < timedelta(hours=SALE_EDIT_WINDOW_HOURS)


# =============================================================================
# DISPLAY FORMATTING
# =============================================================================

def _format_time(dt: datetime) -> str:
    hour = dt.hour % 12 or 12
    suffix = "AM" if dt.hour < 12 else "PM"
    return f"{hour}:{dt.minute:02d} {suffix}"


def _local(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return dt.astimezone(get_timezone())
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=get_timezone())
    if "T" not in value.strip():
        d = date.fromisoformat(value.strip())
        return datetime(d.year, d.month, d.day, tzinfo=get_timezone())
    return parse_iso_datetime(value).astimezone(get_timezone())


def format_date(value: Optional[DateLike]) -> str:
    """'Oct 15, 2025'; unparseable input is returned unchanged."""
    if value is None or value == "":
        return ""
    try:
        return _local(value).strftime(DATE_FORMAT)
    except ValueError:
        return str(value)


def format_datetime(value: Optional[DateLike]) -> str:
    """'Oct 15, 2025 2:45 PM'"""
    if value is None or value == "":
        return ""
    try:
        dt = _local(value)
    except ValueError:
        return str(value)
    return f"{dt.strftime(DATE_FORMAT)} {_format_time(dt)}"


def format_relative_date(
    value: Optional[DateLike],
    *,
    max_days: int = 7,
    include_time: bool = False,
    now: Optional[datetime] = None,
) -> str:
    """
    Relative label ("Today", "Yesterday", "3 days ago", "In 2 days") within
    max_days of today, absolute date beyond it.
    """
    if value is None or value == "":
        return ""
    try:
        dt = _local(value)
    except ValueError:
        return str(value)

    diff = (today(now=now) - dt.date()).days
    at = f" at {_format_time(dt)}" if include_time else ""

    if diff == 0:
        label = "Today"
    elif diff == 1:
        label = "Yesterday"
    elif diff == -1:
        label = "Tomorrow"
    elif 1 < diff <= max_days:
        label = f"{diff} days ago"
    elif -max_days <= diff < -1:
        label = f"In {abs(diff)} days"
    else:
        return format_datetime(value) if include_time else format_date(value)
    return f"{label}{at}"


def format_date_range(start: DateLike, end: DateLike, separator: str = " - ") -> str:
    """Elides the repeated year: 'Oct 01 - Oct 15, 2025'."""
    try:
        start_dt = _local(start)
        end_dt = _local(end)
    except ValueError:
        return f"{start}{separator}{end}"

    if start_dt.date() == end_dt.date():
        return start_dt.strftime(DATE_FORMAT)
    if start_dt.year == end_dt.year:
        return f"{start_dt.strftime('%b %d')}{separator}{end_dt.strftime(DATE_FORMAT)}"
    return f"{start_dt.strftime(DATE_FORMAT)}{separator}{end_dt.strftime(DATE_FORMAT)}"
