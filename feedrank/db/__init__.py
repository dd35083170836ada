from .supabase_client import (
    SupabaseAuthError,
    SupabaseClient,
    SupabaseError,
    SupabaseQueryError,
    close_supabase_client,
    get_supabase_client,
)

__all__ = [
    "SupabaseAuthError",
    "SupabaseClient",
    "SupabaseError",
    "SupabaseQueryError",
    "close_supabase_client",
    "get_supabase_client",
]
