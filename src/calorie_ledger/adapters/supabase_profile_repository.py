"""Supabase repository for user profiles."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from calorie_ledger.domain.profile import UserProfile
from calorie_ledger.services.profiles import ProfileRepository

_PROFILE_COLUMNS = (
    "id, email, calorie_goal, protein_goal, fat_goal, carbohydrates_goal, "
    "weight, height, age, sex, activity_level, utc_offset_minutes"
)


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Supabase implementation for user profiles."""

    client: Client

    def get_profile(self, user_id: UUID) -> UserProfile | None:
        """Return the profile row for a user."""
        response = (
            self.client.table("profiles")
            .select(_PROFILE_COLUMNS)
            .eq("id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_profile(response.data[0])

    def update_profile(
        self, user_id: UUID, changes: dict[str, object]
    ) -> UserProfile | None:
        """Update profile columns and return the stored row."""
        response = (
            self.client.table("profiles")
            .update({**changes, "updated_at": datetime.now(tz=UTC).isoformat()})
            .eq("id", str(user_id))
            .execute()
        )
        if not response.data:
            return None
        return _parse_profile(response.data[0])


def _parse_profile(row: dict[str, object]) -> UserProfile:
    return UserProfile(
        id=UUID(str(row["id"])),
        email=_optional_str(row.get("email")),
        calorie_goal=_optional_int(row.get("calorie_goal")),
        protein_goal=_optional_float(row.get("protein_goal")),
        fat_goal=_optional_float(row.get("fat_goal")),
        carbohydrates_goal=_optional_float(row.get("carbohydrates_goal")),
        weight=_optional_float(row.get("weight")),
        height=_optional_float(row.get("height")),
        age=_optional_int(row.get("age")),
        sex=_optional_str(row.get("sex")),
        activity_level=_optional_str(row.get("activity_level")),
        utc_offset_minutes=_optional_int(row.get("utc_offset_minutes")),
    )


def _optional_str(value: object) -> str | None:
    return str(value) if value is not None else None


def _optional_int(value: object) -> int | None:
    return int(value) if isinstance(value, int | float) else None


def _optional_float(value: object) -> float | None:
    return float(value) if isinstance(value, int | float) else None
