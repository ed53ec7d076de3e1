"""MongoDB repository for ledger days."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Protocol, TypeVar
from uuid import UUID

from bson.decimal128 import Decimal128
from pymongo import DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import AutoReconnect, DuplicateKeyError, PyMongoError

from calorie_ledger.domain.errors import StorageError
from calorie_ledger.domain.ledger import (
    MACRO_FIELDS,
    Day,
    LogEntry,
    Macros,
    Meal,
    MealBucket,
    empty_day_document,
    quantize_macro,
)
from calorie_ledger.services.ledger import DayRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DaysCollectionSource(Protocol):
    """Anything exposing the days collection, usually a MongoConnection."""

    @property
    def days(self) -> Collection:
        """Return the days collection."""


@dataclass
class MongoDayRepository(DayRepository):
    """MongoDB implementation for ledger days.

    Amounts are stored as Decimal128 so `$inc` stays exact. Reads retry
    transient network errors; writes are attempted exactly once so a delta
    is never applied twice.
    """

    connection: DaysCollectionSource
    read_retry_attempts: int = 3
    read_retry_backoff_seconds: float = 0.2

    def ensure_day(self, user_id: UUID, day_start: datetime) -> bool:
        """Insert the empty day document unless it already exists."""
        document = empty_day_document(user_id, day_start, datetime.now(tz=UTC))
        try:
            result = self.connection.days.update_one(
                _day_key(user_id, day_start),
                {"$setOnInsert": _to_bson(document)},
                upsert=True,
            )
        except DuplicateKeyError:
            logger.debug(
                "Ledger day created concurrently",
                extra={"user_id": str(user_id), "day_start": day_start.isoformat()},
            )
            return False
        except PyMongoError as exc:
            raise StorageError("Failed to create ledger day") from exc
        return result.upserted_id is not None

    def fetch_day(self, user_id: UUID, day_start: datetime) -> Day | None:
        """Return the day document for the key."""
        document = self._read(
            lambda: self.connection.days.find_one(_day_key(user_id, day_start)),
            "fetch ledger day",
        )
        return _parse_day(document) if document else None

    def list_recent_days(self, user_id: UUID, limit: int) -> list[Day]:
        """Return the newest days for a user."""
        documents = self._read(
            lambda: list(
                self.connection.days.find({"user": str(user_id)})
                .sort("date", DESCENDING)
                .limit(limit)
            ),
            "list ledger days",
        )
        return [_parse_day(document) for document in documents]

    def append_log(  # noqa: PLR0913
        self,
        user_id: UUID,
        day_start: datetime,
        meal: Meal,
        entry: LogEntry,
        delta: Macros,
    ) -> Day | None:
        """Push an entry and increment bucket and day totals."""
        update = {
            "$push": {f"{meal.value}.logs": _entry_document(entry)},
            "$inc": _increments(meal, delta),
            "$set": {"updatedAt": datetime.now(tz=UTC)},
        }
        return self._write(
            lambda: self.connection.days.find_one_and_update(
                _day_key(user_id, day_start),
                update,
                return_document=ReturnDocument.AFTER,
            ),
            "append food entry",
        )

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
        """Overwrite an entry whose stored macros still equal `expected`."""
        set_ops: dict[str, object] = {
            f"{meal.value}.logs.$[log].{name}": _to_bson(value)
            for name, value in fields.items()
        }
        set_ops["updatedAt"] = datetime.now(tz=UTC)
        update = {"$set": set_ops, "$inc": _increments(meal, delta)}
        return self._write(
            lambda: self.connection.days.find_one_and_update(
                _entry_filter(user_id, day_start, meal, log_id, expected),
                update,
                array_filters=[{"log._id": str(log_id)}],
                return_document=ReturnDocument.AFTER,
            ),
            "update food entry",
        )

    def remove_log(  # noqa: PLR0913
        self,
        user_id: UUID,
        day_start: datetime,
        meal: Meal,
        log_id: UUID,
        expected: Macros,
    ) -> Day | None:
        """Pull an entry whose stored macros still equal `expected`."""
        update = {
            "$pull": {f"{meal.value}.logs": {"_id": str(log_id)}},
            "$inc": _increments(meal, expected.negated()),
            "$set": {"updatedAt": datetime.now(tz=UTC)},
        }
        return self._write(
            lambda: self.connection.days.find_one_and_update(
                _entry_filter(user_id, day_start, meal, log_id, expected),
                update,
                return_document=ReturnDocument.AFTER,
            ),
            "remove food entry",
        )

    def overwrite_totals(  # noqa: PLR0913
        self,
        user_id: UUID,
        day_start: datetime,
        expected_revision: int,
        bucket_totals: dict[Meal, Macros],
        day_totals: Macros,
    ) -> Day | None:
        """Replace all cached totals of a day not written since it was read."""
        set_ops: dict[str, object] = {
            f"{meal.value}.totals": _macros_document(totals)
            for meal, totals in bucket_totals.items()
        }
        set_ops["totals"] = _macros_document(day_totals)
        set_ops["updatedAt"] = datetime.now(tz=UTC)
        return self._write(
            lambda: self.connection.days.find_one_and_update(
                {
                    **_day_key(user_id, day_start),
                    **_revision_filter(expected_revision),
                },
                {"$set": set_ops, "$inc": {"revision": 1}},
                return_document=ReturnDocument.AFTER,
            ),
            "overwrite ledger totals",
        )

    def _read(self, operation: Callable[[], T], action: str) -> T:
        attempts = max(self.read_retry_attempts, 1)
        for attempt in range(1, attempts):
            try:
                return operation()
            except AutoReconnect:
                logger.warning(
                    "Transient MongoDB error, retrying read",
                    extra={"action": action, "attempt": attempt},
                )
                time.sleep(self.read_retry_backoff_seconds * attempt)
            except PyMongoError as exc:
                raise StorageError(f"Failed to {action}") from exc
        try:
            return operation()
        except PyMongoError as exc:
            raise StorageError(f"Failed to {action}") from exc

    def _write(
        self, operation: Callable[[], dict | None], action: str
    ) -> Day | None:
        try:
            document = operation()
        except PyMongoError as exc:
            raise StorageError(f"Failed to {action}") from exc
        return _parse_day(document) if document else None


def _day_key(user_id: UUID, day_start: datetime) -> dict[str, object]:
    return {"user": str(user_id), "date": day_start}


def _entry_filter(
    user_id: UUID, day_start: datetime, meal: Meal, log_id: UUID, expected: Macros
) -> dict[str, object]:
    return {
        **_day_key(user_id, day_start),
        f"{meal.value}.logs": {
            "$elemMatch": {"_id": str(log_id), **_macros_document(expected)}
        },
    }


def _revision_filter(expected_revision: int) -> dict[str, object]:
    if expected_revision == 0:
        return {"revision": {"$in": [0, None]}}
    return {"revision": expected_revision}


def _increments(meal: Meal, delta: Macros) -> dict[str, object]:
    increments: dict[str, object] = {"revision": 1}
    for name, value in delta.as_dict().items():
        increments[f"{meal.value}.totals.{name}"] = _to_bson(value)
        increments[f"totals.{name}"] = _to_bson(value)
    return increments


def _to_bson(value: object) -> object:
    if isinstance(value, Decimal):
        return Decimal128(value)
    if isinstance(value, dict):
        return {key: _to_bson(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_to_bson(item) for item in value]
    return value


def _macros_document(macros: Macros) -> dict[str, object]:
    return {name: _to_bson(value) for name, value in macros.as_dict().items()}


def _to_decimal(value: object) -> Decimal:
    if isinstance(value, Decimal128):
        return quantize_macro(value.to_decimal())
    if isinstance(value, int | float | Decimal) and not isinstance(value, bool):
        return quantize_macro(Decimal(str(value)))
    return quantize_macro(Decimal(0))


def _entry_document(entry: LogEntry) -> dict[str, object]:
    return {
        "_id": str(entry.id),
        "name": entry.name,
        **_macros_document(entry.macros),
        "createdAt": entry.created_at,
    }


def _parse_day(document: dict) -> Day:
    buckets = {meal: _parse_bucket(document.get(meal.value)) for meal in Meal}
    return Day(
        id=str(document.get("_id", "")),
        user_id=UUID(str(document["user"])),
        date=_as_utc(document["date"]),
        breakfast=buckets[Meal.BREAKFAST],
        lunch=buckets[Meal.LUNCH],
        dinner=buckets[Meal.DINNER],
        snacks=buckets[Meal.SNACKS],
        totals=_parse_macros(document.get("totals")),
        created_at=_as_utc(document.get("createdAt")),
        updated_at=_as_utc(document.get("updatedAt")),
        revision=int(document.get("revision") or 0),
    )


def _parse_bucket(document: dict | None) -> MealBucket:
    document = document or {}
    return MealBucket(
        logs=[_parse_entry(row) for row in document.get("logs") or []],
        totals=_parse_macros(document.get("totals")),
    )


def _parse_entry(row: dict) -> LogEntry:
    return LogEntry(
        id=UUID(str(row["_id"])),
        name=str(row.get("name", "")),
        ccal=_to_decimal(row.get("ccal")),
        protein=_to_decimal(row.get("protein")),
        fat=_to_decimal(row.get("fat")),
        carbohydrates=_to_decimal(row.get("carbohydrates")),
        created_at=_as_utc(row.get("createdAt")) or datetime.now(tz=UTC),
    )


def _parse_macros(document: dict | None) -> Macros:
    document = document or {}
    return Macros(**{name: _to_decimal(document.get(name)) for name in MACRO_FIELDS})


def _as_utc(value: object) -> datetime | None:
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
