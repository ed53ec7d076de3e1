"""Models for photo nutrition estimates."""

from pydantic import BaseModel, Field


class NutritionEstimate(BaseModel):
    """Nutrition estimate returned for a meal photo."""

    name: str
    ccal: float = Field(ge=0.0)
    protein: float = Field(ge=0.0)
    fat: float = Field(ge=0.0)
    carbohydrates: float = Field(ge=0.0)
