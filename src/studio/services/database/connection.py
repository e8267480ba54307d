"""Supabase database connection management."""

from functools import lru_cache

from supabase import Client, create_client


@lru_cache(maxsize=4)
def get_supabase_admin_client(supabase_url: str, service_role_key: str) -> Client:
    """
    Get Supabase admin client with service role key (one per URL/key pair).

    This client bypasses Row-Level Security (RLS) policies. Ownership is
    enforced explicitly by the generation handlers before any mutation.

    Args:
        supabase_url: Project URL
        service_role_key: Service role key

    Returns:
        Configured Supabase client

    Example:
        >>> client = get_supabase_admin_client(settings.supabase_url, settings.supabase_service_role_key)
        >>> response = client.table("projects").select("*").execute()
    """
    return create_client(supabase_url, service_role_key)
