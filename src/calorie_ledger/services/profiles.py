"""User profile service."""

import logging
import math
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from calorie_ledger.domain.days import MAX_UTC_OFFSET_MINUTES, MIN_UTC_OFFSET_MINUTES
from calorie_ledger.domain.errors import InvalidInputError, NotFoundError
from calorie_ledger.domain.ledger import estimate_calories
from calorie_ledger.domain.profile import UserProfile

logger = logging.getLogger(__name__)

ACTIVITY_LEVELS = ("sedentary", "lightly", "moderate", "very", "extra")
SEX_VALUES = ("male", "female")

MIN_AGE, MAX_AGE = 10, 120
MIN_WEIGHT_KG, MAX_WEIGHT_KG = 20.0, 500.0
MIN_HEIGHT_CM, MAX_HEIGHT_CM = 50.0, 300.0
MAX_CALORIE_GOAL = 20000
MAX_PROTEIN_GOAL_G = 500.0
MAX_FAT_GOAL_G = 500.0
MAX_CARBOHYDRATES_GOAL_G = 1000.0


class ProfileRepository(Protocol):
    """Persistence interface for user profiles."""

    def get_profile(self, user_id: UUID) -> UserProfile | None:
        """Return the profile for a user, if present."""

    def update_profile(
        self, user_id: UUID, changes: dict[str, object]
    ) -> UserProfile | None:
        """Apply column changes and return the updated profile."""


@dataclass
class ProfileService:
    """Reads and validates user profile data."""

    repository: ProfileRepository

    def get_profile(self, user_id: UUID) -> UserProfile:
        """Return the user's profile or raise when it does not exist."""
        profile = self.repository.get_profile(user_id)
        if profile is None:
            raise NotFoundError("User not found")
        return profile

    def get_utc_offset(self, user_id: UUID) -> int | None:
        """Return the stored UTC offset in minutes, or None when unknown."""
        profile = self.repository.get_profile(user_id)
        if profile is None or profile.utc_offset_minutes is None:
            return None
        offset = profile.utc_offset_minutes
        if not MIN_UTC_OFFSET_MINUTES <= offset <= MAX_UTC_OFFSET_MINUTES:
            logger.warning(
                "Ignoring out-of-range UTC offset",
                extra={"user_id": str(user_id), "utc_offset_minutes": offset},
            )
            return None
        return offset

    def update_profile(
        self, user_id: UUID, payload: object
    ) -> UserProfile:
        """Validate any subset of profile fields and persist them."""
        if not isinstance(payload, dict):
            raise InvalidInputError("Profile update must be an object")
        changes, errors = _validate_changes(payload)
        if errors:
            raise InvalidInputError("Validation failed", errors)

        current = self.get_profile(user_id)
        macro_error = _check_macro_budget(changes, current)
        if macro_error:
            raise InvalidInputError("Validation failed", [macro_error])

        if not changes:
            return current
        updated = self.repository.update_profile(user_id, changes)
        if updated is None:
            raise NotFoundError("User not found")
        logger.info(
            "Profile updated",
            extra={"user_id": str(user_id), "fields": sorted(changes)},
        )
        return updated


def _validate_changes(  # noqa: PLR0912
    payload: dict[str, object],
) -> tuple[dict[str, object], list[str]]:
    changes: dict[str, object] = {}
    errors: list[str] = []

    if "age" in payload:
        age = _parse_int(payload["age"])
        if age is None or not MIN_AGE <= age <= MAX_AGE:
            errors.append("age must be integer between 10 and 120")
        else:
            changes["age"] = age

    if "sex" in payload:
        sex = str(payload["sex"])
        if sex not in SEX_VALUES:
            errors.append('sex must be "male" or "female"')
        else:
            changes["sex"] = sex

    if "weight" in payload:
        weight = _parse_float(payload["weight"])
        if weight is None or not MIN_WEIGHT_KG <= weight <= MAX_WEIGHT_KG:
            errors.append("weight must be number between 20 and 500 (kg)")
        else:
            changes["weight"] = weight

    if "height" in payload:
        height = _parse_float(payload["height"])
        if height is None or not MIN_HEIGHT_CM <= height <= MAX_HEIGHT_CM:
            errors.append("height must be number between 50 and 300 (cm)")
        else:
            changes["height"] = height

    activity = _first_present(payload, "activity_level", "activityLevel")
    if activity is not _MISSING:
        if str(activity) not in ACTIVITY_LEVELS:
            errors.append(
                f"activity_level must be one of: {', '.join(ACTIVITY_LEVELS)}"
            )
        else:
            changes["activity_level"] = str(activity)

    calorie_raw = _first_present(payload, "calorie_goal", "ccal")
    if calorie_raw is not _MISSING:
        calorie_goal = _parse_int(calorie_raw)
        if calorie_goal is None or not 0 < calorie_goal <= MAX_CALORIE_GOAL:
            errors.append("calorie_goal must be positive integer and reasonable")
        else:
            changes["calorie_goal"] = calorie_goal

    for key, maximum in (
        ("protein_goal", MAX_PROTEIN_GOAL_G),
        ("fat_goal", MAX_FAT_GOAL_G),
        ("carbohydrates_goal", MAX_CARBOHYDRATES_GOAL_G),
    ):
        if key not in payload:
            continue
        value = _parse_float(payload[key])
        if value is None or not 0 <= value <= maximum:
            errors.append(f"{key} must be number between 0 and {maximum:.0f} (g)")
        else:
            changes[key] = value

    offset_raw = _first_present(payload, "utcOffsetMinutes", "utc_offset_minutes")
    if offset_raw is not _MISSING:
        offset = _parse_int(offset_raw)
        if offset is None or not (
            MIN_UTC_OFFSET_MINUTES <= offset <= MAX_UTC_OFFSET_MINUTES
        ):
            errors.append("utcOffsetMinutes must be integer between -720 and 840")
        else:
            changes["utc_offset_minutes"] = offset

    return changes, errors


def _check_macro_budget(
    changes: dict[str, object], current: UserProfile
) -> str | None:
    if "calorie_goal" not in changes:
        return None
    macro_keys = ("protein_goal", "fat_goal", "carbohydrates_goal")
    if not any(key in changes for key in macro_keys):
        return None
    protein = changes.get("protein_goal", current.protein_goal) or 0.0
    fat = changes.get("fat_goal", current.fat_goal) or 0.0
    carbohydrates = (
        changes.get("carbohydrates_goal", current.carbohydrates_goal) or 0.0
    )
    macro_calories = estimate_calories(
        float(protein), float(fat), float(carbohydrates)
    )
    if macro_calories > float(changes["calorie_goal"]):
        return (
            "Macro calories exceed calorie goal. "
            "Lower macros or increase calorie_goal."
        )
    return None


_MISSING = object()


def _first_present(payload: dict[str, object], *keys: str) -> object:
    for key in keys:
        if key in payload:
            return payload[key]
    return _MISSING


def _parse_float(value: object) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int | float):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def _parse_int(value: object) -> int | None:
    number = _parse_float(value)
    if number is None:
        return None
    return int(number)
