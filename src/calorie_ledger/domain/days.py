"""Day-boundary normalization for ledger keys.

A ledger day is keyed by the absolute instant of the user's local midnight.
Offsets are minutes east of UTC, as stored on the user profile.
"""

from datetime import UTC, date, datetime, timedelta

from calorie_ledger.domain.errors import InvalidInputError

MIN_UTC_OFFSET_MINUTES = -720
MAX_UTC_OFFSET_MINUTES = 840


def parse_instant(raw: datetime | date | str) -> tuple[datetime, bool]:
    """Parse a raw date value into an aware UTC datetime.

    Returns the parsed instant and whether the input carried only a calendar
    date (no time of day).
    """
    if isinstance(raw, datetime):
        if raw.tzinfo is None:
            return raw.replace(tzinfo=UTC), False
        return raw.astimezone(UTC), False
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day, tzinfo=UTC), True
    if isinstance(raw, str):
        value = raw.strip()
        try:
            calendar_date: date | None = date.fromisoformat(value)
        except ValueError:
            calendar_date = None
        if calendar_date is not None:
            return parse_instant(calendar_date)
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as exc:
            raise InvalidInputError(f"Invalid date: {raw}") from exc
        return parse_instant(parsed)
    raise InvalidInputError(f"Invalid date: {raw!r}")


def normalize_day_start(
    instant: datetime | date | str | None = None,
    utc_offset_minutes: int | None = None,
    *,
    now: datetime | None = None,
) -> datetime:
    """Return the UTC instant of local midnight for the given instant.

    An unknown offset (None) behaves exactly like an offset of zero. Date-only
    inputs name the local calendar day directly.
    """
    if utc_offset_minutes is not None and not (
        MIN_UTC_OFFSET_MINUTES <= utc_offset_minutes <= MAX_UTC_OFFSET_MINUTES
    ):
        raise ValueError(f"UTC offset out of range: {utc_offset_minutes}")
    offset = timedelta(minutes=utc_offset_minutes or 0)

    if instant is None:
        moment, date_only = parse_instant(now or datetime.now(tz=UTC))
    else:
        moment, date_only = parse_instant(instant)

    if date_only:
        return moment - offset

    local = moment + offset
    local_midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return local_midnight - offset
