"""
Database layer for INTERVAI (Supabase).
"""

from .client import (
    create_supabase_admin_client,
    execute_query,
    SupabaseClientError,
)
from .sessions import SessionService
from .questions import QuestionService

__all__ = [
    "create_supabase_admin_client",
    "execute_query",
    "SupabaseClientError",
    "SessionService",
    "QuestionService",
]
