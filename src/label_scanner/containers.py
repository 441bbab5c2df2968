"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from label_scanner.adapters.in_memory_nutrition_repository import (
    InMemoryNutritionRepository,
)
from label_scanner.adapters.openai_analyzer_client import OpenAIAnalyzerClient
from label_scanner.adapters.supabase_nutrition_repository import (
    SupabaseNutritionRepository,
)
from label_scanner.api.registry import ConnectionRegistry
from label_scanner.config import Settings, resolve_timezone
from label_scanner.services.analyzer import AnalyzerService
from label_scanner.services.history import HistoryService
from label_scanner.services.pending_scans import EvictionPolicy, PendingScanStore
from label_scanner.services.scans import NutritionRepository, ScanService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    pending_scans: PendingScanStore
    scan_service: ScanService
    history_service: HistoryService
    connection_registry: ConnectionRegistry
    close_resources: Callable[[], Awaitable[None]]


def build_repository(settings: Settings) -> NutritionRepository:
    """Create the configured nutrient repository."""
    if settings.repository == "memory":
        return InMemoryNutritionRepository()
    if settings.repository != "supabase":
        raise ValueError(f"Unsupported repository: {settings.repository}")
    if not settings.supabase_url or not settings.supabase_service_key:
        raise ValueError("Supabase repository requires SUPABASE_URL and key")
    return SupabaseNutritionRepository(
        create_client(settings.supabase_url, settings.supabase_service_key)
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    repository = build_repository(resolved_settings)
    pending_scans = PendingScanStore(
        policy=EvictionPolicy(
            ttl_seconds=resolved_settings.pending_scan_ttl_seconds,
            max_entries=resolved_settings.pending_scan_max_entries,
        )
    )
    openai_client = OpenAIAnalyzerClient.create(
        resolved_settings.openai_api_key,
        max_output_tokens=resolved_settings.openai_max_output_tokens,
    )
    analyzer = AnalyzerService(
        client=openai_client,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )
    scan_service = ScanService(
        analyzer=analyzer,
        repository=repository,
        pending_scans=pending_scans,
        analyze_timeout_seconds=resolved_settings.analyze_timeout_seconds,
    )
    history_service = HistoryService(
        repository=repository,
        timezone=resolve_timezone(resolved_settings.timezone),
        limit=resolved_settings.history_limit,
    )

    async def close_resources() -> None:
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        pending_scans=pending_scans,
        scan_service=scan_service,
        history_service=history_service,
        connection_registry=ConnectionRegistry(),
        close_resources=close_resources,
    )
