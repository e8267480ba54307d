"""Storage module for generated media."""

from src.studio.config import Settings
from src.studio.services.database.connection import get_supabase_admin_client
from src.studio.storage.media import BaseMediaStorage, InMemoryMediaStorage, SupabaseMediaStorage


def get_media_storage(settings: Settings) -> BaseMediaStorage:
    """Build the media store matching ``settings.storage_backend``."""
    if settings.storage_backend == "supabase":
        client = get_supabase_admin_client(settings.supabase_url, settings.supabase_service_role_key)
        return SupabaseMediaStorage(client, settings.media_bucket)
    return InMemoryMediaStorage()


__all__ = [
    "BaseMediaStorage",
    "InMemoryMediaStorage",
    "SupabaseMediaStorage",
    "get_media_storage",
]
