"""Domain models for label scans."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from label_scanner.domain.nutrition import NutritionalInfo


class ScanStatus(str, Enum):
    """Lifecycle states of a persisted scan."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class PendingScan:
    """Image bytes held between analysis and confirmation."""

    scan_id: str
    image_bytes: bytes
    stored_at: datetime


@dataclass(frozen=True)
class ConfirmedScan:
    """A confirmed scan persisted together with its nutrient record."""

    id: str
    image_data: bytes
    status: ScanStatus
    result: NutritionalInfo
    created_at: datetime
    updated_at: datetime
    error: str | None = None
