"""Meal photo analysis endpoint."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status

from calorie_ledger.api.auth import require_user
from calorie_ledger.domain.errors import InvalidInputError

if TYPE_CHECKING:
    from calorie_ledger.containers import AppContainer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analyze"])


@router.post("/analyze")
async def analyze_photo(
    request: Request,
    image: UploadFile | None = File(default=None),
    user_id: UUID = Depends(require_user),
) -> dict[str, object]:
    """Estimate the nutrition of an uploaded meal photo."""
    container: AppContainer = request.app.state.container
    content = await image.read() if image is not None else b""
    if not content:
        raise InvalidInputError("No file uploaded")
    try:
        estimate = await container.vision_service.estimate(content)
    except Exception as exc:
        logger.exception("Image analysis failed", extra={"user_id": str(user_id)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Image processing failed",
        ) from exc
    return {"nutritionData": estimate.model_dump()}
