"""Nutrition domain models."""

from dataclasses import dataclass, replace
from datetime import datetime


@dataclass(frozen=True)
class NutrientDraft:
    """Per-100g values extracted from a label before confirmation."""

    calories: float
    protein: float
    carbs: float
    fat: float
    fiber: float
    sugar: float


@dataclass(frozen=True)
class NutritionalInfo:
    """Nutrient record for a scanned product.

    Macro values are per 100g; ``total_weight`` is the product weight in grams.
    """

    id: str
    total_weight: float
    calories: float
    protein: float
    carbs: float
    fat: float
    fiber: float
    sugar: float
    created_at: datetime
    updated_at: datetime
    image_path: str | None = None

    @classmethod
    def from_draft(
        cls,
        record_id: str,
        total_weight: float,
        draft: NutrientDraft,
        now: datetime,
    ) -> "NutritionalInfo":
        """Attach an id and weight to analyzer output."""
        return cls(
            id=record_id,
            total_weight=total_weight,
            calories=draft.calories,
            protein=draft.protein,
            carbs=draft.carbs,
            fat=draft.fat,
            fiber=draft.fiber,
            sugar=draft.sugar,
            created_at=now,
            updated_at=now,
        )

    def with_updates(self, now: datetime, **changes: object) -> "NutritionalInfo":
        """Return a copy with the given fields changed and a fresh update time."""
        return replace(self, updated_at=now, **changes)


@dataclass(frozen=True)
class NutrientTotals:
    """Summed primary macros over a period."""

    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0

    def add(self, info: NutritionalInfo) -> "NutrientTotals":
        return NutrientTotals(
            calories=self.calories + info.calories,
            protein=self.protein + info.protein,
            carbs=self.carbs + info.carbs,
            fat=self.fat + info.fat,
        )
