"""Domain models for the daily nutrition ledger."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from uuid import UUID

from calorie_ledger.domain.errors import InvalidInputError

MACRO_FIELDS = ("ccal", "protein", "fat", "carbohydrates")

KCAL_PER_GRAM_PROTEIN = 4
KCAL_PER_GRAM_FAT = 9
KCAL_PER_GRAM_CARBOHYDRATES = 4

MACRO_QUANTUM = Decimal("0.01")
_ZERO = Decimal("0.00")


class Meal(str, Enum):
    """Meal buckets within a day."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACKS = "snacks"


def parse_meal(raw: object) -> Meal:
    """Return the meal for a raw name or raise a validation error."""
    if isinstance(raw, Meal):
        return raw
    try:
        return Meal(str(raw))
    except ValueError as exc:
        raise InvalidInputError("Invalid meal") from exc


@dataclass(frozen=True)
class Macros:
    """Calorie and macronutrient amounts, exact to two decimal places."""

    ccal: Decimal = _ZERO
    protein: Decimal = _ZERO
    fat: Decimal = _ZERO
    carbohydrates: Decimal = _ZERO

    @classmethod
    def zero(cls) -> "Macros":
        return cls()

    def __add__(self, other: "Macros") -> "Macros":
        return Macros(
            ccal=self.ccal + other.ccal,
            protein=self.protein + other.protein,
            fat=self.fat + other.fat,
            carbohydrates=self.carbohydrates + other.carbohydrates,
        )

    def __sub__(self, other: "Macros") -> "Macros":
        return Macros(
            ccal=self.ccal - other.ccal,
            protein=self.protein - other.protein,
            fat=self.fat - other.fat,
            carbohydrates=self.carbohydrates - other.carbohydrates,
        )

    def negated(self) -> "Macros":
        return Macros.zero() - self

    def as_dict(self) -> dict[str, Decimal]:
        return {
            "ccal": self.ccal,
            "protein": self.protein,
            "fat": self.fat,
            "carbohydrates": self.carbohydrates,
        }


@dataclass(frozen=True)
class LogEntry:
    """A single recorded food item."""

    id: UUID
    name: str
    ccal: Decimal
    protein: Decimal
    fat: Decimal
    carbohydrates: Decimal
    created_at: datetime

    @property
    def macros(self) -> Macros:
        return Macros(
            ccal=self.ccal,
            protein=self.protein,
            fat=self.fat,
            carbohydrates=self.carbohydrates,
        )


@dataclass(frozen=True)
class MealBucket:
    """Log entries for one meal with cached totals."""

    logs: list[LogEntry] = field(default_factory=list)
    totals: Macros = field(default_factory=Macros.zero)


@dataclass(frozen=True)
class Day:
    """Ledger document for one user's local calendar day."""

    id: str
    user_id: UUID
    date: datetime
    breakfast: MealBucket
    lunch: MealBucket
    dinner: MealBucket
    snacks: MealBucket
    totals: Macros
    created_at: datetime | None = None
    updated_at: datetime | None = None
    revision: int = 0

    def bucket(self, meal: Meal) -> MealBucket:
        return getattr(self, meal.value)

    def buckets(self) -> dict[Meal, MealBucket]:
        return {meal: self.bucket(meal) for meal in Meal}

    def find_log(self, meal: Meal, log_id: UUID) -> LogEntry | None:
        for entry in self.bucket(meal).logs:
            if entry.id == log_id:
                return entry
        return None


def recalc_bucket_totals(logs: list[LogEntry]) -> Macros:
    """Sum the macros of a bucket's entries."""
    total = Macros.zero()
    for entry in logs:
        total = total + entry.macros
    return total


def recalc_day_totals(buckets: list[MealBucket]) -> Macros:
    """Sum the cached totals of a day's buckets."""
    total = Macros.zero()
    for bucket in buckets:
        total = total + bucket.totals
    return total


def empty_day_document(user_id: UUID, day_start: datetime, now: datetime) -> dict:
    """Return the initial document for a day with four empty buckets."""
    empty_totals = recalc_bucket_totals([]).as_dict()
    document: dict[str, object] = {"user": str(user_id), "date": day_start}
    for meal in Meal:
        document[meal.value] = {"logs": [], "totals": dict(empty_totals)}
    document["totals"] = recalc_day_totals([]).as_dict()
    document["createdAt"] = now
    document["updatedAt"] = now
    document["revision"] = 0
    return document


def parse_macro(value: object) -> Decimal:
    """Coerce a macro value to a two-place decimal, falling back to zero.

    Absent, non-numeric, boolean, non-finite and negative values all become
    zero; a malformed macro never fails a request.
    """
    if isinstance(value, bool):
        return _ZERO
    if isinstance(value, int | float | Decimal):
        raw = str(value)
    elif isinstance(value, str):
        raw = value.strip()
    else:
        return _ZERO
    try:
        number = Decimal(raw)
        if not number.is_finite() or number < 0:
            return _ZERO
        return quantize_macro(number)
    except InvalidOperation:
        return _ZERO


def quantize_macro(value: Decimal) -> Decimal:
    """Round a macro amount to the stored precision."""
    return value.quantize(MACRO_QUANTUM, rounding=ROUND_HALF_UP)


def parse_name(value: object) -> str:
    """Return a trimmed entry name or raise when it is empty."""
    name = str(value).strip() if value is not None else ""
    if not name:
        raise InvalidInputError("Log must include name")
    return name


def estimate_calories(protein: float, fat: float, carbohydrates: float) -> float:
    """Return calories implied by macros using the 4/9/4 rule."""
    return (
        protein * KCAL_PER_GRAM_PROTEIN
        + fat * KCAL_PER_GRAM_FAT
        + carbohydrates * KCAL_PER_GRAM_CARBOHYDRATES
    )
