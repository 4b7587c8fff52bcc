"""In-memory stand-ins for the Supabase services and the LLM adapter."""

from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Any, Dict, List, Optional
from uuid import uuid4

from intervai.models import QuestionCreate, QuestionUpdate

_clock = count()


def _timestamp() -> str:
    # Strictly increasing so ordering by created_at is stable
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return (base + timedelta(milliseconds=next(_clock))).isoformat()


class InMemorySessionService:
    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}

    def add(self, user_id: str, role: str = "Backend Engineer", topics=None, experience: str = "mid-level") -> Dict[str, Any]:
        session = {
            "id": str(uuid4()),
            "user_id": user_id,
            "role": role,
            "experience": experience,
            "topics": topics or ["python", "databases"],
            "question_ids": [],
            "status": "pending",
            "created_at": _timestamp(),
            "updated_at": _timestamp(),
        }
        self.rows[session["id"]] = session
        return session

    async def get_by_id(self, session_id) -> Optional[Dict[str, Any]]:
        row = self.rows.get(str(session_id))
        return dict(row) if row else None

    async def get_user_session_ids(self, user_id: str) -> List[str]:
        return [sid for sid, row in self.rows.items() if row["user_id"] == user_id]

    async def append_questions(self, session_id, question_ids: List[str]):
        row = self.rows.get(str(session_id))
        if row is None or not question_ids:
            return None
        row["question_ids"] = row["question_ids"] + list(question_ids)
        return dict(row)

    async def remove_questions(self, session_id, question_ids: List[str]):
        row = self.rows.get(str(session_id))
        if row is None or not question_ids:
            return None
        drop = {str(q) for q in question_ids}
        row["question_ids"] = [q for q in row["question_ids"] if q not in drop]
        return dict(row)

    async def remove_question(self, session_id, question_id: str):
        return await self.remove_questions(session_id, [question_id])


class InMemoryQuestionService:
    def __init__(self):
        self.rows: List[Dict[str, Any]] = []

    async def create_many(self, session_id, items: List[QuestionCreate]) -> List[Dict[str, Any]]:
        created = []
        for item in items:
            now = _timestamp()
            row = {
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
            self.rows.append(row)
            created.append(dict(row))
        return created

    async def create(self, session_id, item: QuestionCreate) -> Dict[str, Any]:
        return (await self.create_many(session_id, [item]))[0]

    async def count_for_session(self, session_id) -> int:
        return sum(1 for r in self.rows if r["session_id"] == str(session_id))

    async def get_by_id(self, question_id) -> Optional[Dict[str, Any]]:
        for row in self.rows:
            if row["id"] == str(question_id):
                return dict(row)
        return None

    async def list_for_session(self, session_id) -> List[Dict[str, Any]]:
        rows = [dict(r) for r in self.rows if r["session_id"] == str(session_id)]
        rows.sort(key=lambda r: r["created_at"])
        rows.sort(key=lambda r: not r["is_pinned"])
        return rows

    async def get_many(self, question_ids: List[str]) -> List[Dict[str, Any]]:
        wanted = {str(q) for q in question_ids}
        return [dict(r) for r in self.rows if r["id"] in wanted]

    async def list_pinned(self, session_id) -> List[Dict[str, Any]]:
        rows = [dict(r) for r in self.rows if r["session_id"] == str(session_id) and r["is_pinned"]]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return rows

    async def count_pinned(self, session_id) -> int:
        return len(await self.list_pinned(session_id))

    async def search(self, session_ids: List[str], term: str, limit: int = 50) -> List[Dict[str, Any]]:
        needle = term.lower()
        return [
            dict(r) for r in self.rows
            if r["session_id"] in session_ids
            and (needle in r["question"].lower() or needle in r["answer"].lower())
        ][:limit]

    async def update(self, question_id, changes: QuestionUpdate):
        for row in self.rows:
            if row["id"] == str(question_id):
                row.update(changes.model_dump(exclude_none=True, mode="json"))
                return dict(row)
        return None

    async def set_pinned(self, question_id, pinned: bool):
        for row in self.rows:
            if row["id"] == str(question_id):
                row["is_pinned"] = pinned
                return dict(row)
        return None

    async def delete(self, question_id) -> bool:
        before = len(self.rows)
        self.rows = [r for r in self.rows if r["id"] != str(question_id)]
        return len(self.rows) < before

    async def update_many(self, question_ids: List[str], fields: Dict[str, Any]) -> int:
        wanted = {str(q) for q in question_ids}
        updated = 0
        for row in self.rows:
            if row["id"] in wanted:
                row.update(fields)
                updated += 1
        return updated

    async def delete_many(self, question_ids: List[str]) -> int:
        wanted = {str(q) for q in question_ids}
        before = len(self.rows)
        self.rows = [r for r in self.rows if r["id"] not in wanted]
        return before - len(self.rows)

    def seed(self, session_id: str, n: int) -> None:
        for i in range(n):
            now = _timestamp()
            self.rows.append({
                "id": str(uuid4()),
                "session_id": session_id,
                "question": f"Seeded question {i}?",
                "answer": f"Seeded answer number {i}.",
                "difficulty": "medium",
                "category": "",
                "notes": "",
                "is_pinned": False,
                "created_at": now,
                "updated_at": now,
            })


VALID_RESPONSE = """```json
[
  {"question": "What is a Python generator?", "answer": "A function that yields values lazily using the yield keyword."},
  {"question": "Explain database indexing.", "answer": "An index is a data structure that speeds up lookups [at a write cost]."},
  {"question": "What is a race condition?", "answer": "Two operations interleave so the outcome depends on timing."},
  {"question": "What does ACID stand for?", "answer": "Atomicity, Consistency, Isolation and Durability."},
  {"question": "What is the GIL?", "answer": "A mutex that lets one thread execute Python bytecode at a time."},
  {"question": "What is a sixth question?", "answer": "One more than the writer was asked for."}
]
```"""


class FakeWriter:
    """QuestionWriter double: returns scripted responses or raises scripted errors."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes) or [VALID_RESPONSE]
        self.calls = []
        self.counts = []

    async def write(self, role: str, experience: str, topics: List[str], count: Optional[int] = None) -> str:
        self.calls.append((role, experience, list(topics)))
        self.counts.append(count)
        index = min(len(self.calls) - 1, len(self.outcomes) - 1)
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome
