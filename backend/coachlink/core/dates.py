from datetime import date, datetime, timedelta, timezone

# Reported as "days since" when there is nothing to measure from.
DAYS_SINCE_NEVER = 2_147_483_647


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (SQLite hands these back) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_activity_date(value: datetime | date | str | None) -> date | None:
    """Calendar date of an activity timestamp.

    Strings may be full ISO-8601 timestamps or bare dates; anything that parses
    as neither yields None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value).date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    try:
        return as_utc(datetime.fromisoformat(text.replace("Z", "+00:00"))).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def days_since(value: datetime | date | str | None, today: date) -> int:
    parsed = parse_activity_date(value)
    if parsed is None:
        return DAYS_SINCE_NEVER
    return (today - parsed).days


def week_start(today: date) -> date:
    """Most recent Monday, today included."""
    return today - timedelta(days=today.weekday())
