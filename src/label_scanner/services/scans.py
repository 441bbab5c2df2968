"""Two-phase scan workflow: analyze a label, then confirm the draft."""

import asyncio
import base64
import binascii
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol
from uuid import uuid4

from label_scanner.domain.errors import (
    AnalysisError,
    InvalidImageError,
    PersistenceError,
    ScanNotFoundError,
)
from label_scanner.domain.nutrition import NutrientDraft, NutritionalInfo
from label_scanner.domain.scans import ConfirmedScan, ScanStatus
from label_scanner.services.analyzer import Analyzer
from label_scanner.services.history import HistoryRepository
from label_scanner.services.pending_scans import PendingScanStore

_logger = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


class NutritionRepository(HistoryRepository, Protocol):
    """Durable storage for confirmed scans and their nutrient records."""

    def save_nutritional_info(self, info: NutritionalInfo) -> None:
        """Insert or update a nutrient record by id."""

    def get_nutritional_info(self, info_id: str) -> NutritionalInfo | None:
        """Return a nutrient record by id, if present."""

    def save_scan(self, scan: ConfirmedScan) -> None:
        """Insert or update a scan by id."""

    def update_scan_status(
        self, scan_id: str, status: ScanStatus, error: str | None = None
    ) -> None:
        """Change the status (and error text) of a stored scan."""


def decode_image(encoded: str) -> bytes:
    """Decode a standard base64 image payload."""
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidImageError(str(exc)) from exc


@dataclass
class ScanService:
    """Runs the analyze and confirm phases against shared stores."""

    analyzer: Analyzer
    repository: NutritionRepository
    pending_scans: PendingScanStore
    analyze_timeout_seconds: float | None = 60.0
    clock: Callable[[], datetime] = field(default=_local_now)

    async def analyze(self, image_bytes: bytes, total_weight: float) -> NutritionalInfo:
        """Analyze a label photo and hold its image until confirmation."""
        try:
            draft = await asyncio.wait_for(
                self.analyzer.analyze(image_bytes),
                timeout=self.analyze_timeout_seconds,
            )
        except AnalysisError:
            raise
        except TimeoutError as exc:
            raise AnalysisError(
                f"Analysis timed out after {self.analyze_timeout_seconds}s"
            ) from exc
        except Exception as exc:
            raise AnalysisError(f"{type(exc).__name__}: {exc}") from exc

        info = NutritionalInfo.from_draft(
            record_id=str(uuid4()),
            total_weight=total_weight,
            draft=draft,
            now=self.clock(),
        )
        self.pending_scans.put(info.id, image_bytes)
        _logger.info(
            "Analyzed label",
            extra={
                "scan_id": info.id,
                "calories": info.calories,
                "protein": info.protein,
                "carbs": info.carbs,
                "fat": info.fat,
            },
        )
        return info

    async def confirm(
        self, scan_id: str, total_weight: float, values: NutrientDraft
    ) -> ConfirmedScan:
        """Persist a confirmed draft.

        The pending entry is consumed before persistence and is not restored
        if a write fails.
        """
        image_bytes = self.pending_scans.take(scan_id)
        if image_bytes is None:
            raise ScanNotFoundError(f"No pending scan for id {scan_id}")

        now = self.clock()
        info = NutritionalInfo.from_draft(
            record_id=scan_id, total_weight=total_weight, draft=values, now=now
        )
        try:
            await asyncio.to_thread(self.repository.save_nutritional_info, info)
        except Exception as exc:
            raise PersistenceError("Failed to save results", str(exc)) from exc

        scan = ConfirmedScan(
            id=str(uuid4()),
            image_data=image_bytes,
            status=ScanStatus.COMPLETED,
            result=info,
            created_at=now,
            updated_at=now,
        )
        try:
            await asyncio.to_thread(self.repository.save_scan, scan)
        except Exception as exc:
            raise PersistenceError("Failed to save scan", str(exc)) from exc
        _logger.info(
            "Saved confirmed scan", extra={"scan_id": scan_id, "record_id": scan.id}
        )
        return scan
