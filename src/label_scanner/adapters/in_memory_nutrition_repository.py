"""Process-local repository for development runs without a database."""

import threading
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

from label_scanner.domain.nutrition import NutritionalInfo
from label_scanner.domain.scans import ConfirmedScan, ScanStatus
from label_scanner.services.scans import NutritionRepository


@dataclass
class InMemoryNutritionRepository(NutritionRepository):
    """Dictionary-backed repository with upsert semantics."""

    infos: dict[str, NutritionalInfo] = field(default_factory=dict)
    scans: dict[str, ConfirmedScan] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def save_nutritional_info(self, info: NutritionalInfo) -> None:
        with self._lock:
            existing = self.infos.get(info.id)
            if existing is not None:
                info = replace(info, created_at=existing.created_at)
            self.infos[info.id] = info

    def get_nutritional_info(self, info_id: str) -> NutritionalInfo | None:
        with self._lock:
            return self.infos.get(info_id)

    def get_recent(self, limit: int) -> list[NutritionalInfo]:
        with self._lock:
            ordered = sorted(
                self.infos.values(), key=lambda info: info.created_at, reverse=True
            )
        return ordered[:limit]

    def save_scan(self, scan: ConfirmedScan) -> None:
        with self._lock:
            self.scans[scan.id] = scan

    def update_scan_status(
        self, scan_id: str, status: ScanStatus, error: str | None = None
    ) -> None:
        with self._lock:
            scan = self.scans[scan_id]
            self.scans[scan_id] = replace(
                scan, status=status, error=error, updated_at=datetime.now(tz=UTC)
            )
