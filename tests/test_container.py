"""Tests for container wiring."""

import asyncio

import pytest

from label_scanner.adapters.in_memory_nutrition_repository import (
    InMemoryNutritionRepository,
)
from label_scanner.config import Settings, resolve_timezone
from label_scanner.containers import build_container, build_repository


def test_build_container_creates_services(settings: Settings) -> None:
    container = build_container(settings)
    assert container.scan_service is not None
    assert container.history_service.limit == 20
    assert container.scan_service.pending_scans is container.pending_scans
    asyncio.run(container.close_resources())


def test_build_repository_memory(settings: Settings) -> None:
    assert isinstance(build_repository(settings), InMemoryNutritionRepository)


def test_build_repository_requires_supabase_credentials(settings: Settings) -> None:
    settings.repository = "supabase"
    settings.supabase_url = None

    with pytest.raises(ValueError):
        build_repository(settings)


def test_resolve_timezone() -> None:
    assert resolve_timezone(None) is None
    assert resolve_timezone(" ") is None
    assert str(resolve_timezone("Europe/Paris")) == "Europe/Paris"
