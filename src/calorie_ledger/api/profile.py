"""User profile endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Body, Depends, Request

from calorie_ledger.api.auth import require_user

if TYPE_CHECKING:
    from calorie_ledger.containers import AppContainer
    from calorie_ledger.domain.profile import UserProfile

router = APIRouter(prefix="/data", tags=["profile"])


@router.get("/user")
async def get_user(
    request: Request, user_id: UUID = Depends(require_user)
) -> dict[str, object]:
    """Return the caller's profile."""
    container: AppContainer = request.app.state.container
    return serialize_profile(container.profile_service.get_profile(user_id))


@router.put("/user")
async def update_user(
    request: Request,
    payload: Any = Body(default=None),
    user_id: UUID = Depends(require_user),
) -> dict[str, object]:
    """Update any subset of the caller's profile fields."""
    container: AppContainer = request.app.state.container
    profile = container.profile_service.update_profile(user_id, payload or {})
    return serialize_profile(profile)


def serialize_profile(profile: UserProfile) -> dict[str, object]:
    """Render a profile with the field names the mobile client expects."""
    return {
        "email": profile.email,
        "userId": str(profile.id),
        "calorie_goal": profile.calorie_goal,
        "protein_goal": profile.protein_goal,
        "fat_goal": profile.fat_goal,
        "carbohydrates_goal": profile.carbohydrates_goal,
        "weight": profile.weight,
        "height": profile.height,
        "activityLevel": profile.activity_level,
        "age": profile.age,
        "sex": profile.sex,
        "utcOffsetMinutes": profile.utc_offset_minutes,
    }
