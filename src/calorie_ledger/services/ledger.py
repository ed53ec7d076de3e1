"""Daily nutrition ledger service."""

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Protocol
from uuid import UUID, uuid4

from calorie_ledger.config import parse_limit
from calorie_ledger.domain.days import normalize_day_start, parse_instant
from calorie_ledger.domain.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    StorageError,
)
from calorie_ledger.domain.ledger import (
    MACRO_FIELDS,
    Day,
    LogEntry,
    Macros,
    Meal,
    MealBucket,
    parse_macro,
    parse_meal,
    parse_name,
    recalc_bucket_totals,
    recalc_day_totals,
)
from calorie_ledger.services.profiles import ProfileService

logger = logging.getLogger(__name__)

RawDate = datetime | date | str | None


class DayRepository(Protocol):
    """Persistence interface for ledger days.

    Every mutating call is a single atomic document update that also bumps
    the day revision. Totals are kept current by applying signed deltas,
    never by rescanning entries.
    """

    def ensure_day(self, user_id: UUID, day_start: datetime) -> bool:
        """Create the empty day if absent; return True when it was created."""

    def fetch_day(self, user_id: UUID, day_start: datetime) -> Day | None:
        """Return the day for the key, if present."""

    def list_recent_days(self, user_id: UUID, limit: int) -> list[Day]:
        """Return the most recent days, newest first."""

    def append_log(  # noqa: PLR0913
        self,
        user_id: UUID,
        day_start: datetime,
        meal: Meal,
        entry: LogEntry,
        delta: Macros,
    ) -> Day | None:
        """Append an entry and increment totals; None if the day is missing."""

    def mutate_log(  # noqa: PLR0913
        self,
        user_id: UUID,
        day_start: datetime,
        meal: Meal,
        log_id: UUID,
        expected: Macros,
        fields: dict[str, object],
        delta: Macros,
    ) -> Day | None:
        """Overwrite an entry still holding `expected` and apply `delta`."""

    def remove_log(  # noqa: PLR0913
        self,
        user_id: UUID,
        day_start: datetime,
        meal: Meal,
        log_id: UUID,
        expected: Macros,
    ) -> Day | None:
        """Remove an entry still holding `expected` and subtract it."""

    def overwrite_totals(  # noqa: PLR0913
        self,
        user_id: UUID,
        day_start: datetime,
        expected_revision: int,
        bucket_totals: dict[Meal, Macros],
        day_totals: Macros,
    ) -> Day | None:
        """Replace every cached total of a day still at `expected_revision`."""


@dataclass(frozen=True)
class LoggedFood:
    """Result of logging a food entry."""

    day: Day
    log_id: UUID


@dataclass
class LedgerService:
    """Adds, edits and removes food entries on a user's ledger days."""

    repository: DayRepository
    profile_service: ProfileService
    edit_conflict_retries: int = 3

    def log_food(
        self,
        user_id: UUID,
        meal: object,
        entry: object,
        raw_date: RawDate = None,
    ) -> LoggedFood:
        """Record a food entry on the day containing `raw_date` (or now)."""
        resolved_meal = parse_meal(meal)
        if not isinstance(entry, dict):
            raise InvalidInputError("Log must include name")
        name = parse_name(entry.get("name"))
        created_at = _parse_created_at(entry.get("createdAt"))
        day_start = self._day_start(user_id, raw_date)

        log = LogEntry(
            id=uuid4(),
            name=name,
            ccal=parse_macro(entry.get("ccal")),
            protein=parse_macro(entry.get("protein")),
            fat=parse_macro(entry.get("fat")),
            carbohydrates=parse_macro(entry.get("carbohydrates")),
            created_at=created_at,
        )

        if self.repository.ensure_day(user_id, day_start):
            logger.info(
                "Created ledger day",
                extra={"user_id": str(user_id), "day_start": day_start.isoformat()},
            )
        day = self.repository.append_log(
            user_id, day_start, resolved_meal, log, log.macros
        )
        if day is None:
            raise StorageError("Ledger day missing after creation")
        logger.info(
            "Logged food entry",
            extra={
                "user_id": str(user_id),
                "meal": resolved_meal.value,
                "log_id": str(log.id),
            },
        )
        return LoggedFood(day=day, log_id=log.id)

    def edit_log(  # noqa: PLR0913
        self,
        user_id: UUID,
        meal: object,
        log_id: object,
        raw_date: RawDate,
        fields: object,
    ) -> Day:
        """Update an entry; omitted fields keep their current values."""
        resolved_meal = parse_meal(meal)
        fields = fields or {}
        if not isinstance(fields, dict):
            raise InvalidInputError("Log fields must be an object")
        new_name = parse_name(fields["name"]) if "name" in fields else None
        entry_id = _parse_log_id(log_id)
        day_start = self._day_start(user_id, raw_date)

        for attempt in range(1, self._attempts() + 1):
            current = self._require_log(user_id, day_start, resolved_meal, entry_id)
            new_macros = Macros(
                **{
                    name: (
                        parse_macro(fields[name])
                        if name in fields
                        else getattr(current, name)
                    )
                    for name in MACRO_FIELDS
                }
            )
            updated_fields: dict[str, object] = {
                "name": new_name if new_name is not None else current.name,
                **new_macros.as_dict(),
            }
            day = self.repository.mutate_log(
                user_id,
                day_start,
                resolved_meal,
                entry_id,
                expected=current.macros,
                fields=updated_fields,
                delta=new_macros - current.macros,
            )
            if day is not None:
                logger.info(
                    "Edited food entry",
                    extra={
                        "user_id": str(user_id),
                        "meal": resolved_meal.value,
                        "log_id": str(entry_id),
                    },
                )
                return day
            logger.warning(
                "Food entry changed during edit; retrying",
                extra={"log_id": str(entry_id), "attempt": attempt},
            )
        raise ConflictError("Log was modified concurrently, please retry")

    def delete_log(
        self, user_id: UUID, meal: object, log_id: object, raw_date: RawDate
    ) -> Day:
        """Remove an entry and subtract its last known values from totals."""
        resolved_meal = parse_meal(meal)
        entry_id = _parse_log_id(log_id)
        day_start = self._day_start(user_id, raw_date)

        for attempt in range(1, self._attempts() + 1):
            current = self._require_log(user_id, day_start, resolved_meal, entry_id)
            day = self.repository.remove_log(
                user_id,
                day_start,
                resolved_meal,
                entry_id,
                expected=current.macros,
            )
            if day is not None:
                logger.info(
                    "Deleted food entry",
                    extra={
                        "user_id": str(user_id),
                        "meal": resolved_meal.value,
                        "log_id": str(entry_id),
                    },
                )
                return day
            logger.warning(
                "Food entry changed during delete; retrying",
                extra={"log_id": str(entry_id), "attempt": attempt},
            )
        raise ConflictError("Log was modified concurrently, please retry")

    def get_day(self, user_id: UUID, raw_date: RawDate) -> Day | None:
        """Return the day, or None when nothing was logged on it yet."""
        day_start = self._day_start(user_id, raw_date)
        return self.repository.fetch_day(user_id, day_start)

    def list_days(self, user_id: UUID, limit: object = None) -> list[Day]:
        """Return the most recent days, newest first."""
        return self.repository.list_recent_days(user_id, parse_limit(limit))

    def reconcile_day(self, user_id: UUID, raw_date: RawDate) -> Day | None:
        """Recompute cached totals of a day from its entries.

        The overwrite only lands if no other write touched the day since it
        was read; otherwise the day is re-read and recomputed.
        """
        day_start = self._day_start(user_id, raw_date)

        for attempt in range(1, self._attempts() + 1):
            day = self.repository.fetch_day(user_id, day_start)
            if day is None:
                return None
            bucket_totals = {
                meal: recalc_bucket_totals(bucket.logs)
                for meal, bucket in day.buckets().items()
            }
            day_totals = recalc_day_totals(
                [
                    MealBucket(logs=bucket.logs, totals=bucket_totals[meal])
                    for meal, bucket in day.buckets().items()
                ]
            )
            drifted = day_totals != day.totals or any(
                bucket.totals != bucket_totals[meal]
                for meal, bucket in day.buckets().items()
            )
            if drifted:
                logger.warning(
                    "Repairing drifted ledger totals",
                    extra={
                        "user_id": str(user_id),
                        "day_start": day_start.isoformat(),
                    },
                )
            repaired = self.repository.overwrite_totals(
                user_id, day_start, day.revision, bucket_totals, day_totals
            )
            if repaired is not None:
                return repaired
            logger.warning(
                "Ledger day changed during reconcile; retrying",
                extra={"day_start": day_start.isoformat(), "attempt": attempt},
            )
        raise ConflictError("Day was modified concurrently, please retry")

    def _day_start(self, user_id: UUID, raw_date: RawDate) -> datetime:
        offset = self.profile_service.get_utc_offset(user_id)
        return normalize_day_start(raw_date or None, offset)

    def _require_log(
        self, user_id: UUID, day_start: datetime, meal: Meal, log_id: UUID
    ) -> LogEntry:
        day = self.repository.fetch_day(user_id, day_start)
        if day is None:
            raise NotFoundError("Day not found")
        entry = day.find_log(meal, log_id)
        if entry is None:
            raise NotFoundError("Log not found")
        return entry

    def _attempts(self) -> int:
        return max(self.edit_conflict_retries, 0) + 1


def _parse_log_id(raw: object) -> UUID:
    if isinstance(raw, UUID):
        return raw
    try:
        return UUID(str(raw))
    except ValueError as exc:
        raise NotFoundError("Log not found") from exc


def _parse_created_at(raw: object) -> datetime:
    if raw is None or raw == "":
        return datetime.now(tz=UTC)
    if not isinstance(raw, datetime | date | str):
        raise InvalidInputError("Invalid createdAt")
    instant, _ = parse_instant(raw)
    return instant
