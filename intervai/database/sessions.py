"""
Session Service

Read access to interview sessions plus the question-id bookkeeping the
question pipeline needs. Session CRUD itself is owned by another service.
"""

from typing import Callable, Optional, Dict, Any, List
from uuid import UUID

from supabase import Client

from .client import execute_query


class SessionService:
    """
    Service class for session operations.
    """

    TABLE = "sessions"

    def __init__(self, client_factory: Callable[[], Client]):
        self._client_factory = client_factory
        self._client: Optional[Client] = None

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    # =========================================================================
    # Retrieval
    # =========================================================================

    async def get_by_id(self, session_id: UUID | str) -> Optional[Dict[str, Any]]:
        """Get session by ID."""
        result = execute_query(
            self.client.table(self.TABLE)
            .select("*")
            .eq("id", str(session_id)),
            "load session"
        )
        return result.data[0] if result.data else None

    async def get_user_session_ids(self, user_id: str) -> List[str]:
        """IDs of every session owned by the user."""
        result = execute_query(
            self.client.table(self.TABLE)
            .select("id")
            .eq("user_id", user_id),
            "list sessions"
        )
        return [row["id"] for row in result.data]

    # =========================================================================
    # Question bookkeeping
    # =========================================================================
    #
    # Both edits run server side (see scripts/setup_supabase.py) so
    # concurrent workers and requests never overwrite each other's ids.

    async def append_questions(
        self,
        session_id: UUID | str,
        question_ids: List[str]
    ) -> Optional[Dict[str, Any]]:
        """Append question ids to the end of the session's ordered list."""
        if not question_ids:
            return None

        result = execute_query(
            self.client.rpc("append_session_questions", {
                "p_session_id": str(session_id),
                "p_question_ids": [str(q) for q in question_ids],
            }),
            "append questions to session"
        )
        return result.data[0] if result.data else None

    async def remove_questions(
        self,
        session_id: UUID | str,
        question_ids: List[str]
    ) -> Optional[Dict[str, Any]]:
        """Drop question ids from the session's list, keeping the order of the rest."""
        if not question_ids:
            return None

        result = execute_query(
            self.client.rpc("remove_session_questions", {
                "p_session_id": str(session_id),
                "p_question_ids": [str(q) for q in question_ids],
            }),
            "remove questions from session"
        )
        return result.data[0] if result.data else None

    async def remove_question(
        self,
        session_id: UUID | str,
        question_id: str
    ) -> Optional[Dict[str, Any]]:
        return await self.remove_questions(session_id, [question_id])
