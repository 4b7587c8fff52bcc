"""
Supabase Client Configuration

Sessions and questions live in Supabase tables; the backend only talks to
them with the service role key, and ownership is enforced in the API layer.
"""

from postgrest.exceptions import APIError
from supabase import create_client, Client

from intervai.config import AppConfig
from intervai.errors import PersistenceError


class SupabaseClientError(Exception):
    """Raised when Supabase client cannot be initialized."""
    pass


def create_supabase_admin_client(app_config: AppConfig) -> Client:
    """
    Build a Supabase client with the service role key.

    Called once per process by the application context; the client is then
    shared by every service.

    WARNING: This client bypasses Row Level Security!
    """
    if not app_config.SUPABASE_URL:
        raise SupabaseClientError(
            "SUPABASE_URL is not configured. "
            "Set it in your .env file or environment variables."
        )

    if not app_config.SUPABASE_SERVICE_KEY:
        raise SupabaseClientError(
            "SUPABASE_SERVICE_KEY is not configured. "
            "Set it in your .env file or environment variables."
        )

    return create_client(
        app_config.SUPABASE_URL,
        app_config.SUPABASE_SERVICE_KEY
    )


def execute_query(query, action: str):
    """
    Execute a PostgREST query, converting API errors to PersistenceError.

    Args:
        query: A built supabase query (table(...).select/insert/update/delete or rpc(...))
        action: Short description for the error message, e.g. "insert questions"
    """
    try:
        return query.execute()
    except APIError as e:
        raise PersistenceError(f"Failed to {action}: {e.message}") from e
