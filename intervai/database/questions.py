"""
Question Service

Handles question rows: bulk insert from generation jobs, custom adds,
edits, pinning, bulk updates, search and per-session counts used by the
quota check.
"""

from datetime import datetime, timezone
from typing import Callable, Optional, Dict, Any, List
from uuid import UUID, uuid4

from supabase import Client

from intervai.models import QuestionCreate, QuestionUpdate
from .client import execute_query


class QuestionService:
    """
    Service class for question operations.
    """

    TABLE = "questions"

    def __init__(self, client_factory: Callable[[], Client]):
        self._client_factory = client_factory
        self._client: Optional[Client] = None

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    # =========================================================================
    # Creation
    # =========================================================================

    def _row(self, session_id: UUID | str, item: QuestionCreate) -> Dict[str, Any]:
        now = datetime.now(timezone.utc).isoformat()
        return {
            "id": str(uuid4()),
            "session_id": str(session_id),
            "question": item.question,
            "answer": item.answer,
            "difficulty": item.difficulty.value,
            "category": item.category,
            "notes": item.notes,
            "is_pinned": item.is_pinned,
            "created_at": now,
            "updated_at": now,
        }

    async def create_many(
        self,
        session_id: UUID | str,
        items: List[QuestionCreate]
    ) -> List[Dict[str, Any]]:
        """
        Insert several questions in one request.

        Returns:
            The inserted rows, in input order
        """
        if not items:
            return []

        rows = [self._row(session_id, item) for item in items]
        result = execute_query(
            self.client.table(self.TABLE).insert(rows),
            "insert questions"
        )
        return result.data

    async def create(self, session_id: UUID | str, item: QuestionCreate) -> Dict[str, Any]:
        """Insert a single question."""
        rows = await self.create_many(session_id, [item])
        return rows[0]

    # =========================================================================
    # Retrieval
    # =========================================================================

    async def count_for_session(self, session_id: UUID | str) -> int:
        """Number of question rows attached to the session."""
        result = execute_query(
            self.client.table(self.TABLE)
            .select("id", count="exact")
            .eq("session_id", str(session_id)),
            "count questions"
        )
        return result.count or 0

    async def get_by_id(self, question_id: UUID | str) -> Optional[Dict[str, Any]]:
        """Get question by ID."""
        result = execute_query(
            self.client.table(self.TABLE)
            .select("*")
            .eq("id", str(question_id)),
            "load question"
        )
        return result.data[0] if result.data else None

    async def get_many(self, question_ids: List[str]) -> List[Dict[str, Any]]:
        """Rows for the given ids; unknown ids are simply absent."""
        if not question_ids:
            return []

        result = execute_query(
            self.client.table(self.TABLE)
            .select("*")
            .in_("id", [str(q) for q in question_ids]),
            "load questions"
        )
        return result.data

    async def list_for_session(self, session_id: UUID | str) -> List[Dict[str, Any]]:
        """All questions of a session, pinned first, then oldest first."""
        result = execute_query(
            self.client.table(self.TABLE)
            .select("*")
            .eq("session_id", str(session_id))
            .order("is_pinned", desc=True)
            .order("created_at"),
            "list questions"
        )
        return result.data

    async def list_pinned(self, session_id: UUID | str) -> List[Dict[str, Any]]:
        """Pinned questions of a session, newest first."""
        result = execute_query(
            self.client.table(self.TABLE)
            .select("*")
            .eq("session_id", str(session_id))
            .eq("is_pinned", True)
            .order("created_at", desc=True),
            "list pinned questions"
        )
        return result.data

    async def count_pinned(self, session_id: UUID | str) -> int:
        result = execute_query(
            self.client.table(self.TABLE)
            .select("id", count="exact")
            .eq("session_id", str(session_id))
            .eq("is_pinned", True),
            "count pinned questions"
        )
        return result.count or 0

    async def search(
        self,
        session_ids: List[str],
        term: str,
        limit: int = 50
    ) -> List[Dict[str, Any]]:
        """
        Case-insensitive substring search over question and answer text,
        restricted to the given sessions.
        """
        if not session_ids:
            return []

        # PostgREST or-filter syntax; commas and parentheses would split it
        pattern = "*" + term.replace(",", " ").replace("(", " ").replace(")", " ") + "*"
        result = execute_query(
            self.client.table(self.TABLE)
            .select("*")
            .in_("session_id", session_ids)
            .or_(f"question.ilike.{pattern},answer.ilike.{pattern}")
            .order("created_at", desc=True)
            .limit(limit),
            "search questions"
        )
        return result.data

    # =========================================================================
    # Updates
    # =========================================================================

    async def update(
        self,
        question_id: UUID | str,
        changes: QuestionUpdate
    ) -> Optional[Dict[str, Any]]:
        """Apply the fields set on `changes`."""
        data = changes.model_dump(exclude_none=True, mode="json")
        if not data:
            return await self.get_by_id(question_id)

        data["updated_at"] = datetime.now(timezone.utc).isoformat()
        result = execute_query(
            self.client.table(self.TABLE)
            .update(data)
            .eq("id", str(question_id)),
            "update question"
        )
        return result.data[0] if result.data else None

    async def set_pinned(self, question_id: UUID | str, pinned: bool) -> Optional[Dict[str, Any]]:
        result = execute_query(
            self.client.table(self.TABLE)
            .update({
                "is_pinned": pinned,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            })
            .eq("id", str(question_id)),
            "pin question"
        )
        return result.data[0] if result.data else None

    async def delete(self, question_id: UUID | str) -> bool:
        result = execute_query(
            self.client.table(self.TABLE)
            .delete()
            .eq("id", str(question_id)),
            "delete question"
        )
        return bool(result.data)

    # =========================================================================
    # Bulk operations
    # =========================================================================

    async def update_many(self, question_ids: List[str], fields: Dict[str, Any]) -> int:
        """
        Set the same fields on several questions in one request.

        Returns:
            Number of rows updated
        """
        if not question_ids:
            return 0

        data = dict(fields)
        data["updated_at"] = datetime.now(timezone.utc).isoformat()
        result = execute_query(
            self.client.table(self.TABLE)
            .update(data)
            .in_("id", [str(q) for q in question_ids]),
            "update questions"
        )
        return len(result.data)

    async def delete_many(self, question_ids: List[str]) -> int:
        """Delete several questions; returns how many rows went away."""
        if not question_ids:
            return 0

        result = execute_query(
            self.client.table(self.TABLE)
            .delete()
            .in_("id", [str(q) for q in question_ids]),
            "delete questions"
        )
        return len(result.data)
