"""Database module for project persistence."""

from src.studio.config import Settings
from src.studio.services.database.base import BaseRepository
from src.studio.services.database.connection import get_supabase_admin_client
from src.studio.services.database.exceptions import VersionConflictError
from src.studio.services.database.memory import InMemoryRepository
from src.studio.services.database.supabase_repository import SupabaseRepository
from src.studio.services.database.utils import SupabaseQueryBuilder, get_query_builder


def get_repository(settings: Settings) -> BaseRepository:
    """
    Build the repository selected by ``settings.storage_backend``.

    Args:
        settings: Application settings

    Returns:
        SupabaseRepository for "supabase", InMemoryRepository otherwise
    """
    if settings.storage_backend == "supabase":
        client = get_supabase_admin_client(settings.supabase_url, settings.supabase_service_role_key)
        return SupabaseRepository(client)
    return InMemoryRepository()


__all__ = [
    "BaseRepository",
    "InMemoryRepository",
    "SupabaseQueryBuilder",
    "SupabaseRepository",
    "VersionConflictError",
    "get_query_builder",
    "get_repository",
    "get_supabase_admin_client",
]
