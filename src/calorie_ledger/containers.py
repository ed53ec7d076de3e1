"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from calorie_ledger.adapters.mongo_connection import MongoConnection
from calorie_ledger.adapters.mongo_day_repository import MongoDayRepository
from calorie_ledger.adapters.openai_vision_client import OpenAIVisionClient
from calorie_ledger.adapters.supabase_identity_provider import (
    SupabaseIdentityProvider,
)
from calorie_ledger.adapters.supabase_profile_repository import (
    SupabaseProfileRepository,
)
from calorie_ledger.config import Settings
from calorie_ledger.services.auth import AuthService
from calorie_ledger.services.ledger import LedgerService
from calorie_ledger.services.profiles import ProfileService
from calorie_ledger.services.vision import VisionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    auth_service: AuthService
    profile_service: ProfileService
    ledger_service: LedgerService
    vision_service: VisionService
    open_resources: Callable[[], Awaitable[None]]
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    mongo_connection = MongoConnection(
        uri=resolved_settings.mongo_uri,
        database=resolved_settings.mongo_database,
        days_collection=resolved_settings.mongo_days_collection,
        timeout_ms=resolved_settings.mongo_timeout_ms,
    )
    day_repository = MongoDayRepository(
        connection=mongo_connection,
        read_retry_attempts=resolved_settings.read_retry_attempts,
        read_retry_backoff_seconds=resolved_settings.read_retry_backoff_seconds,
    )
    profile_service = ProfileService(SupabaseProfileRepository(supabase_client))
    auth_service = AuthService(SupabaseIdentityProvider(supabase_client))
    ledger_service = LedgerService(
        repository=day_repository,
        profile_service=profile_service,
        edit_conflict_retries=resolved_settings.edit_conflict_retries,
    )
    openai_client = OpenAIVisionClient.create(
        resolved_settings.openai_api_key,
        timeout_seconds=resolved_settings.openai_timeout_seconds,
        image_detail=resolved_settings.openai_image_detail,
    )
    vision_service = VisionService(
        client=openai_client,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )

    async def open_resources() -> None:
        mongo_connection.connect()

    async def close_resources() -> None:
        mongo_connection.close()
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        auth_service=auth_service,
        profile_service=profile_service,
        ledger_service=ledger_service,
        vision_service=vision_service,
        open_resources=open_resources,
        close_resources=close_resources,
    )
