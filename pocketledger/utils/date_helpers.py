from datetime import date, datetime, time, timedelta
import calendar
from pocketledger.utils.constants import DATE_FORMAT, DATETIME_FORMAT


def today() -> date:
    return date.today()


def now() -> datetime:
    return datetime.now().replace(microsecond=0)


def now_str() -> str:
    return format_datetime(now())


def parse_datetime(value) -> datetime | None:
    """Parse a stored timestamp, returning None on failure.

    Accepts datetime/date objects, 'YYYY-MM-DD HH:MM:SS', ISO 8601 with a 'T'
    separator, or a bare 'YYYY-MM-DD' (read as midnight).
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.replace(microsecond=0, tzinfo=None)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    text = str(value).strip()
    for fmt in (DATETIME_FORMAT, "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M", DATE_FORMAT):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text).replace(microsecond=0, tzinfo=None)
    except ValueError:
        return None


def format_datetime(d: datetime) -> str:
    return d.strftime(DATETIME_FORMAT)


def format_date(d: date) -> str:
    return d.strftime(DATE_FORMAT)


def to_storage(value, field: str = "date") -> str:
    """Normalise a caller-supplied timestamp to the stored text form."""
    parsed = parse_datetime(value)
    if parsed is None:
        raise ValueError(f"Invalid {field}: {value!r}. Use YYYY-MM-DD or YYYY-MM-DD HH:MM:SS.")
    return format_datetime(parsed)


def optional_to_storage(value, field: str = "date") -> str | None:
    if value is None or value == "":
        return None
    return to_storage(value, field)


def validate_month(month: int, year: int):
    if not 1 <= int(month) <= 12:
        raise ValueError(f"Invalid month: {month}. Must be 1-12.")
    if int(year) < 1:
        raise ValueError(f"Invalid year: {year}.")


def month_range(month: int, year: int) -> tuple[str, str]:
    """Return (first day 00:00:00, last day 23:59:59) for a calendar month."""
    validate_month(month, year)
    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1)
    end = datetime(year, month, last_day, 23, 59, 59)
    return format_datetime(start), format_datetime(end)


def day_range(d: date) -> tuple[str, str]:
    """Return the half-open window [d 00:00, d+1 00:00) as stored strings."""
    start = datetime.combine(d, time.min)
    return format_datetime(start), format_datetime(start + timedelta(days=1))


def clamp_day_to_month(year: int, month: int, day: int) -> int:
    """Clamp day to valid range for the given year/month."""
    max_day = calendar.monthrange(year, month)[1]
    return min(day, max_day)


def add_months(d, n: int):
    """Add n months to a date or datetime, clamping day to month end."""
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    day = clamp_day_to_month(year, month, d.day)
    return d.replace(year=year, month=month, day=day)


def add_years(d, n: int):
    """Add n years, moving Feb 29 to Feb 28 in non-leap years."""
    year = d.year + n
    day = clamp_day_to_month(year, d.month, d.day)
    return d.replace(year=year, day=day)


def recent_months(ref: date, months: int) -> list[tuple[int, int]]:
    """Return [(month, year), ...] for the last `months` months ending at ref, oldest first."""
    month_start = ref.replace(day=1)
    result = []
    for i in range(months - 1, -1, -1):
        d = add_months(month_start, -i)
        result.append((d.month, d.year))
    return result
