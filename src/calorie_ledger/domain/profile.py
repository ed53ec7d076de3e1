"""Domain models for user profiles."""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class UserProfile:
    """Profile data stored for an authenticated user."""

    id: UUID
    email: str | None = None
    calorie_goal: int | None = None
    protein_goal: float | None = None
    fat_goal: float | None = None
    carbohydrates_goal: float | None = None
    weight: float | None = None
    height: float | None = None
    age: int | None = None
    sex: str | None = None
    activity_level: str | None = None
    utc_offset_minutes: int | None = None
