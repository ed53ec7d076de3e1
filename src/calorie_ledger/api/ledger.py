"""Food log endpoints backed by the daily ledger."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Body, Depends, Request, Response, status

from calorie_ledger.api.auth import require_user
from calorie_ledger.api.ledger_models import FoodLogRequest  # noqa: TC001

if TYPE_CHECKING:
    from calorie_ledger.containers import AppContainer
    from calorie_ledger.domain.ledger import Day, LogEntry, Macros

router = APIRouter(prefix="/log", tags=["log"])


@router.post("/foodLog")
async def log_food(
    payload: FoodLogRequest,
    request: Request,
    user_id: UUID = Depends(require_user),
) -> dict[str, object]:
    """Add a food entry to the caller's day."""
    container: AppContainer = request.app.state.container
    logged = container.ledger_service.log_food(
        user_id, payload.meal, payload.log, payload.date
    )
    return {
        "success": True,
        "day": serialize_day(logged.day),
        "logId": str(logged.log_id),
    }


@router.get("/days")
async def list_days(
    request: Request,
    limit: str | None = None,
    user_id: UUID = Depends(require_user),
) -> dict[str, object]:
    """Return the caller's most recent days, newest first."""
    container: AppContainer = request.app.state.container
    days = container.ledger_service.list_days(user_id, limit)
    return {"success": True, "days": [serialize_day(day) for day in days]}


@router.get("/days/{date}", response_model=None)
async def get_day(
    date: str,
    request: Request,
    user_id: UUID = Depends(require_user),
) -> Response | dict[str, object]:
    """Return one day, or 204 when nothing was logged on it yet."""
    container: AppContainer = request.app.state.container
    day = container.ledger_service.get_day(user_id, date)
    if day is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return {"success": True, "day": serialize_day(day)}


@router.post("/days/{date}/reconcile", response_model=None)
async def reconcile_day(
    date: str,
    request: Request,
    user_id: UUID = Depends(require_user),
) -> Response | dict[str, object]:
    """Recompute the cached totals of one day from its entries."""
    container: AppContainer = request.app.state.container
    day = container.ledger_service.reconcile_day(user_id, date)
    if day is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return {"success": True, "day": serialize_day(day)}


@router.put("/days/{date}/{meal}/{log_id}")
async def edit_log(  # noqa: PLR0913
    date: str,
    meal: str,
    log_id: str,
    request: Request,
    fields: Any = Body(default=None),
    user_id: UUID = Depends(require_user),
) -> dict[str, object]:
    """Update any subset of an entry's fields."""
    container: AppContainer = request.app.state.container
    day = container.ledger_service.edit_log(user_id, meal, log_id, date, fields)
    return {"success": True, "day": serialize_day(day)}


@router.delete("/days/{date}/{meal}/{log_id}")
async def delete_log(
    date: str,
    meal: str,
    log_id: str,
    request: Request,
    user_id: UUID = Depends(require_user),
) -> dict[str, object]:
    """Remove an entry from the caller's day."""
    container: AppContainer = request.app.state.container
    day = container.ledger_service.delete_log(user_id, meal, log_id, date)
    return {"success": True, "day": serialize_day(day)}


def serialize_day(day: Day) -> dict[str, object]:
    """Render a day as JSON-friendly data."""
    payload: dict[str, object] = {
        "id": day.id,
        "user": str(day.user_id),
        "date": day.date.isoformat(),
    }
    for meal, bucket in day.buckets().items():
        payload[meal.value] = {
            "logs": [_serialize_entry(entry) for entry in bucket.logs],
            "totals": _serialize_macros(bucket.totals),
        }
    payload["totals"] = _serialize_macros(day.totals)
    payload["createdAt"] = day.created_at.isoformat() if day.created_at else None
    payload["updatedAt"] = day.updated_at.isoformat() if day.updated_at else None
    return payload


def _serialize_entry(entry: LogEntry) -> dict[str, object]:
    return {
        "id": str(entry.id),
        "name": entry.name,
        **_serialize_macros(entry.macros),
        "createdAt": entry.created_at.isoformat(),
    }


def _serialize_macros(macros: Macros) -> dict[str, float]:
    return {name: float(value) for name, value in macros.as_dict().items()}
