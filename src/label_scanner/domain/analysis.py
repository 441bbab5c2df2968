"""Models for analyzer output."""

from pydantic import BaseModel, Field


class AnalysisFailure(BaseModel):
    """Reason the model gave for not extracting values."""

    error_reason: str
    suggestion_for_better_results: str | None = None


class AnalysisValues(BaseModel):
    """Per-100g values read off a nutrition label."""

    calories: float = Field(ge=0.0, allow_inf_nan=False)
    protein: float = Field(ge=0.0, allow_inf_nan=False)
    carbs: float = Field(ge=0.0, allow_inf_nan=False)
    fat: float = Field(ge=0.0, allow_inf_nan=False)
    fiber: float = Field(default=0.0, ge=0.0, allow_inf_nan=False)
    sugar: float = Field(default=0.0, ge=0.0, allow_inf_nan=False)


class AnalysisExtract(BaseModel):
    """Structured output for label analysis: exactly one branch is set."""

    error: AnalysisFailure | None = None
    success: AnalysisValues | None = None
