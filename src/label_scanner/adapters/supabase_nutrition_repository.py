"""Supabase repository for nutrient records and confirmed scans."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from label_scanner.domain.nutrition import NutritionalInfo
from label_scanner.domain.scans import ConfirmedScan, ScanStatus
from label_scanner.services.scans import NutritionRepository

_INFO_COLUMNS = (
    "id, total_weight, calories, protein, carbs, fat, fiber, sugar, "
    "image_path, created_at, updated_at"
)


@dataclass
class SupabaseNutritionRepository(NutritionRepository):
    """Supabase implementation for nutrient and scan persistence."""

    client: Client

    def save_nutritional_info(self, info: NutritionalInfo) -> None:
        """Upsert a nutrient record."""
        self.client.table("nutritional_info").upsert(
            {
                "id": info.id,
                "total_weight": info.total_weight,
                "calories": info.calories,
                "protein": info.protein,
                "carbs": info.carbs,
                "fat": info.fat,
                "fiber": info.fiber,
                "sugar": info.sugar,
                "image_path": info.image_path,
                "created_at": info.created_at.isoformat(),
                "updated_at": info.updated_at.isoformat(),
            },
            on_conflict="id",
        ).execute()

    def get_nutritional_info(self, info_id: str) -> NutritionalInfo | None:
        """Return a nutrient record by id."""
        response = (
            self.client.table("nutritional_info")
            .select(_INFO_COLUMNS)
            .eq("id", info_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_info(response.data[0])

    def get_recent(self, limit: int) -> list[NutritionalInfo]:
        """Return the newest nutrient records."""
        response = (
            self.client.table("nutritional_info")
            .select(_INFO_COLUMNS)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [_parse_info(row) for row in response.data or []]

    def save_scan(self, scan: ConfirmedScan) -> None:
        """Upsert a confirmed scan; image bytes are stored as bytea hex."""
        self.client.table("nutrition_scans").upsert(
            {
                "id": scan.id,
                "nutritional_info_id": scan.result.id,
                "image_data": "\\x" + scan.image_data.hex(),
                "status": scan.status.value,
                "error": scan.error,
                "created_at": scan.created_at.isoformat(),
                "updated_at": scan.updated_at.isoformat(),
            },
            on_conflict="id",
        ).execute()

    def update_scan_status(
        self, scan_id: str, status: ScanStatus, error: str | None = None
    ) -> None:
        """Update a scan's status and error text."""
        self.client.table("nutrition_scans").update(
            {
                "status": status.value,
                "error": error,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            }
        ).eq("id", scan_id).execute()


def _parse_info(row: dict[str, object]) -> NutritionalInfo:
    return NutritionalInfo(
        id=str(row["id"]),
        total_weight=float(row.get("total_weight") or 0.0),
        calories=float(row.get("calories") or 0.0),
        protein=float(row.get("protein") or 0.0),
        carbs=float(row.get("carbs") or 0.0),
        fat=float(row.get("fat") or 0.0),
        fiber=float(row.get("fiber") or 0.0),
        sugar=float(row.get("sugar") or 0.0),
        image_path=row.get("image_path") or None,
        created_at=_parse_timestamp(row.get("created_at")),
        updated_at=_parse_timestamp(row.get("updated_at")),
    )


def _parse_timestamp(raw: object) -> datetime:
    if isinstance(raw, str) and raw:
        return datetime.fromisoformat(raw)
    return datetime.min.replace(tzinfo=UTC)
