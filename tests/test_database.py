from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from postgrest.exceptions import APIError

from intervai.database import QuestionService, SessionService
from intervai.database.client import execute_query
from intervai.errors import PersistenceError
from intervai.models import QuestionCreate


def _client(data):
    """A supabase client whose every query chain and rpc call resolves to `data`."""
    client = MagicMock()
    query = client.table.return_value
    for method in ("select", "insert", "update", "delete", "eq", "in_", "or_", "order", "limit"):
        getattr(query, method).return_value = query
    query.execute.return_value = SimpleNamespace(data=data, count=len(data))
    client.rpc.return_value.execute.return_value = SimpleNamespace(data=data, count=len(data))
    return client, query


def test_execute_query_wraps_api_errors():
    query = MagicMock()
    query.execute.side_effect = APIError({"message": "duplicate key", "code": "23505", "hint": None, "details": None})

    with pytest.raises(PersistenceError, match="Failed to insert questions: duplicate key"):
        execute_query(query, "insert questions")


def test_client_is_built_lazily():
    calls = []

    def factory():
        calls.append(1)
        return MagicMock()

    service = SessionService(factory)
    assert calls == []
    assert service.client is service.client
    assert calls == [1]


@pytest.mark.anyio
async def test_create_many_inserts_one_batch():
    client, query = _client([{"id": "q1"}, {"id": "q2"}])
    service = QuestionService(lambda: client)

    rows = await service.create_many("s1", [
        QuestionCreate(question="First question?", answer="First answer text."),
        QuestionCreate(question="Second question?", answer="Second answer text."),
    ])

    assert rows == [{"id": "q1"}, {"id": "q2"}]
    inserted = query.insert.call_args.args[0]
    assert [r["question"] for r in inserted] == ["First question?", "Second question?"]
    assert {r["session_id"] for r in inserted} == {"s1"}
    assert query.insert.call_count == 1


@pytest.mark.anyio
async def test_search_strips_filter_syntax():
    client, query = _client([])
    service = QuestionService(lambda: client)

    assert await service.search([], "anything") == []
    client.table.assert_not_called()

    await service.search(["s1"], "joins (inner, outer)")
    expression = query.or_.call_args.args[0]
    assert expression == "question.ilike.*joins  inner  outer *,answer.ilike.*joins  inner  outer *"


@pytest.mark.anyio
async def test_append_questions_is_a_single_server_side_call():
    client, query = _client([{"id": "s1", "question_ids": ["a", "b", "c"]}])
    service = SessionService(lambda: client)

    session = await service.append_questions("s1", ["b", "c"])

    assert session["question_ids"] == ["a", "b", "c"]
    client.rpc.assert_called_once_with(
        "append_session_questions",
        {"p_session_id": "s1", "p_question_ids": ["b", "c"]},
    )
    # No read-then-write that a concurrent append could interleave with
    client.table.assert_not_called()


@pytest.mark.anyio
async def test_remove_question_is_a_single_server_side_call():
    client, _ = _client([{"id": "s1", "question_ids": ["a"]}])
    service = SessionService(lambda: client)

    await service.remove_question("s1", "b")

    client.rpc.assert_called_once_with(
        "remove_session_questions",
        {"p_session_id": "s1", "p_question_ids": ["b"]},
    )
    client.table.assert_not_called()


@pytest.mark.anyio
async def test_empty_session_edits_skip_the_database():
    client, _ = _client([])
    service = SessionService(lambda: client)

    assert await service.append_questions("s1", []) is None
    assert await service.remove_questions("s1", []) is None
    client.rpc.assert_not_called()


def test_setup_schema_defines_the_session_functions():
    from scripts.setup_supabase import SCHEMA_SQL

    assert "function append_session_questions(p_session_id uuid, p_question_ids uuid[])" in SCHEMA_SQL
    assert "array_cat(question_ids, p_question_ids)" in SCHEMA_SQL
    assert "function remove_session_questions(p_session_id uuid, p_question_ids uuid[])" in SCHEMA_SQL


@pytest.mark.anyio
async def test_bulk_updates_filter_by_id_list():
    client, query = _client([{"id": "q1"}, {"id": "q2"}])
    service = QuestionService(lambda: client)

    assert await service.update_many(["q1", "q2"], {"difficulty": "hard"}) == 2
    changes = query.update.call_args.args[0]
    assert changes["difficulty"] == "hard"
    assert "updated_at" in changes
    query.in_.assert_called_with("id", ["q1", "q2"])

    assert await service.delete_many(["q1", "q2"]) == 2
    assert query.delete.call_count == 1


@pytest.mark.anyio
async def test_bulk_operations_with_no_ids():
    client, _ = _client([])
    service = QuestionService(lambda: client)

    assert await service.get_many([]) == []
    assert await service.update_many([], {"is_pinned": True}) == 0
    assert await service.delete_many([]) == 0
    client.table.assert_not_called()


@pytest.mark.anyio
async def test_pinned_queries_filter_on_flag():
    client, query = _client([{"id": "q1", "is_pinned": True}])
    service = QuestionService(lambda: client)

    assert await service.list_pinned("s1") == [{"id": "q1", "is_pinned": True}]
    assert await service.count_pinned("s1") == 1
    query.eq.assert_any_call("is_pinned", True)
    query.order.assert_called_with("created_at", desc=True)
