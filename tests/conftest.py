"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime

import pytest

from label_scanner.adapters.in_memory_nutrition_repository import (
    InMemoryNutritionRepository,
)
from label_scanner.api.registry import ConnectionRegistry
from label_scanner.config import Settings
from label_scanner.containers import AppContainer
from label_scanner.domain.nutrition import NutrientDraft, NutritionalInfo
from label_scanner.domain.scans import ConfirmedScan
from label_scanner.services.analyzer import Analyzer, AnalyzerClient
from label_scanner.services.history import HistoryService
from label_scanner.services.pending_scans import PendingScanStore
from label_scanner.services.scans import ScanService

APPLE_DRAFT = NutrientDraft(
    calories=52, protein=0.3, carbs=14, fat=0.2, fiber=2.4, sugar=10
)


@dataclass
class FakeAnalyzerClient(AnalyzerClient):
    """Fake analyzer client returning a fixed payload."""

    payload: dict[str, object] = field(
        default_factory=lambda: {
            "error": None,
            "success": {
                "calories": 52,
                "protein": 0.3,
                "carbs": 14,
                "fat": 0.2,
                "fiber": 2.4,
                "sugar": 10,
            },
        }
    )
    last_request: dict[str, object] | None = None

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        schema_name: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        self.last_request = {
            "model": model,
            "image_data_url": image_data_url,
            "schema_name": schema_name,
        }
        return self.payload


@dataclass
class FakeAnalyzer(Analyzer):
    """Analyzer returning a fixed draft, or failing when told to."""

    draft: NutrientDraft = APPLE_DRAFT
    error: Exception | None = None
    delay_seconds: float = 0.0
    calls: list[bytes] = field(default_factory=list)

    async def analyze(self, image_bytes: bytes) -> NutrientDraft:
        self.calls.append(image_bytes)
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        return self.draft


@dataclass
class FailingNutritionRepository(InMemoryNutritionRepository):
    """Repository whose writes fail on demand."""

    fail_info: bool = False
    fail_scan: bool = False
    fail_reads: bool = False

    def save_nutritional_info(self, info: NutritionalInfo) -> None:
        if self.fail_info:
            raise RuntimeError("database is locked")
        super().save_nutritional_info(info)

    def save_scan(self, scan: ConfirmedScan) -> None:
        if self.fail_scan:
            raise RuntimeError("disk full")
        super().save_scan(scan)

    def get_recent(self, limit: int) -> list[NutritionalInfo]:
        if self.fail_reads:
            raise RuntimeError("connection reset")
        return super().get_recent(limit)


def make_info(
    created_at: datetime, calories: float = 100.0, record_id: str | None = None
) -> NutritionalInfo:
    return NutritionalInfo(
        id=record_id or f"info-{created_at.isoformat()}-{calories}",
        total_weight=100.0,
        calories=calories,
        protein=10.0,
        carbs=20.0,
        fat=5.0,
        fiber=1.0,
        sugar=2.0,
        created_at=created_at,
        updated_at=created_at,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        repository="memory",
        openai_api_key="openai-key",
        environment="test",
        static_dir="does-not-exist",
    )


@pytest.fixture
def repository() -> FailingNutritionRepository:
    return FailingNutritionRepository()


@pytest.fixture
def analyzer() -> FakeAnalyzer:
    return FakeAnalyzer()


@pytest.fixture
def pending_scans() -> PendingScanStore:
    return PendingScanStore()


@pytest.fixture
def scan_service(
    analyzer: FakeAnalyzer,
    repository: FailingNutritionRepository,
    pending_scans: PendingScanStore,
) -> ScanService:
    return ScanService(
        analyzer=analyzer,
        repository=repository,
        pending_scans=pending_scans,
        analyze_timeout_seconds=1.0,
    )


@pytest.fixture
def container(
    settings: Settings,
    repository: FailingNutritionRepository,
    pending_scans: PendingScanStore,
    scan_service: ScanService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        pending_scans=pending_scans,
        scan_service=scan_service,
        history_service=HistoryService(repository),
        connection_registry=ConnectionRegistry(),
        close_resources=close_resources,
    )

