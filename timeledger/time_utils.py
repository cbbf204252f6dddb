"""Date and time-of-day helpers shared by the ledger and the consolidator."""
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

import pytz

from timeledger.exceptions import ValidationError

MINUTES_PER_DAY = 24 * 60


def parse_iso_date(value: Any) -> date:
    """Accept a ``date`` or a YYYY-MM-DD string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError("Date must be a valid calendar date (YYYY-MM-DD).")


def parse_time_of_day(value: Any) -> time:
    """Accept a ``time`` or an HH:MM string; punches have minute resolution."""
    if isinstance(value, time):
        parsed = value
    else:
        try:
            parsed = datetime.strptime(str(value), "%H:%M").time()
        except ValueError:
            raise ValidationError("Time must be a valid time of day (HH:MM).")
    if parsed.second or parsed.microsecond:
        raise ValidationError("Times are recorded at minute resolution (HH:MM).")
    return parsed.replace(tzinfo=None)


def format_time_of_day(value: Optional[time]) -> Optional[str]:
    return value.strftime("%H:%M") if value is not None else None


def minutes_of_day(value: time) -> int:
    return value.hour * 60 + value.minute


def shift_duration_minutes(clock_in: time, clock_out: time) -> int:
    """Minutes from clock-in to clock-out; an earlier clock-out means the shift crossed midnight."""
    start, end = minutes_of_day(clock_in), minutes_of_day(clock_out)
    if end < start:
        return end + MINUTES_PER_DAY - start
    return end - start


def validate_date_range(date_from: date, date_to: date) -> None:
    if date_from > date_to:
        raise ValidationError("'date_from' must not be after 'date_to'.")


def now_utc() -> datetime:
    """Current UTC time. Wrapped so tests can patch it."""
    return datetime.now(timezone.utc)


def current_week_range(tz_name: str, now: Optional[datetime] = None) -> tuple[date, date]:
    """Monday to Sunday week containing today in the business-local timezone."""
    tz = pytz.timezone(tz_name)
    local_today = (now or now_utc()).astimezone(tz).date()
    monday = local_today - timedelta(days=local_today.weekday())
    return monday, monday + timedelta(days=6)
