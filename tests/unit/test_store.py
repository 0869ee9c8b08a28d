from dataclasses import replace
from datetime import datetime, timezone
from unittest.mock import MagicMock

import psycopg2
import pytest

from quiz_app.quiz_engine.errors import Conflict, NotFound, StorageError
from quiz_app.quiz_engine.state import Difficulty, Question, Session, SessionStatus
from quiz_app.quiz_engine.store import InMemorySessionStore, PostgresSessionStore

QUESTION = Question(
    id="q-1",
    prompt="9 - 4 = ?",
    correct_answer="5",
    options=("3", "5", "6", "7"),
    operator="-",
    left=9,
    right=4,
)
CREATED = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)


def new_session(owner="alice"):
    return Session(owner=owner, difficulty=Difficulty.MEDIUM, pending_question=QUESTION, created_at=CREATED)


def bump(session):
    return replace(session, current_index=session.current_index + 1)


class TestInMemoryStore:

    def test_create_and_get(self):
        store = InMemorySessionStore()
        session = new_session()
        store.create(session)
        assert store.get(session.id) == session
        assert store.get("nope") is None

    def test_duplicate_create_fails(self):
        store = InMemorySessionStore()
        session = new_session()
        store.create(session)
        with pytest.raises(StorageError):
            store.create(session)

    def test_conditional_update_applies_mutation(self):
        store = InMemorySessionStore()
        session = new_session()
        store.create(session)

        updated = store.conditional_update(session.id, SessionStatus.ACTIVE, bump)

        assert updated.current_index == 2
        assert store.get(session.id) == updated

    def test_conditional_update_status_mismatch(self):
        store = InMemorySessionStore()
        session = new_session()
        store.create(session)

        with pytest.raises(Conflict):
            store.conditional_update(session.id, SessionStatus.FINISHED, bump)
        assert store.get(session.id) == session

    def test_conditional_update_missing(self):
        with pytest.raises(NotFound):
            InMemorySessionStore().conditional_update("x", SessionStatus.ACTIVE, bump)

    def test_owner_cannot_change(self):
        store = InMemorySessionStore()
        session = new_session()
        store.create(session)
        with pytest.raises(ValueError):
            store.conditional_update(session.id, SessionStatus.ACTIVE, lambda s: replace(s, owner="bob"))

    def test_list_for_owner_filters(self):
        store = InMemorySessionStore()
        mine = new_session()
        done = replace(new_session(), status=SessionStatus.FINISHED, pending_question=None)
        theirs = new_session("bob")
        for s in (mine, done, theirs):
            store.create(s)

        assert {s.id for s in store.list_for_owner("alice")} == {mine.id, done.id}
        assert [s.id for s in store.list_for_owner("alice", SessionStatus.FINISHED)] == [done.id]


def session_row(session):
    return (
        session.id,
        session.owner,
        int(session.difficulty),
        session.status.value,
        session.total_questions,
        session.current_index,
        session.correct_count,
        session.pending_question.to_dict() if session.pending_question else None,
        session.score,
        session.created_at,
        session.finished_at,
    )


@pytest.fixture
def pg():
    conn = MagicMock()
    cur = conn.cursor.return_value
    put_connection = MagicMock()
    store = PostgresSessionStore(get_connection=lambda: conn, put_connection=put_connection)
    return store, conn, cur, put_connection


class TestPostgresStore:

    def test_get_maps_row(self, pg):
        store, conn, cur, put_connection = pg
        session = new_session()
        cur.fetchone.return_value = session_row(session)

        assert store.get(session.id) == session
        put_connection.assert_called_once_with(conn)
        cur.close.assert_called_once()

    def test_get_missing(self, pg):
        store, _, cur, _ = pg
        cur.fetchone.return_value = None
        assert store.get("9b1deb4d-3b7d-4bad-9bdd-2b0d7b3dcb6d") is None

    def test_get_malformed_id_is_missing(self, pg):
        store, conn, cur, put_connection = pg
        cur.execute.side_effect = psycopg2.DataError("invalid input syntax for type uuid")
        assert store.get("not-a-uuid") is None
        conn.rollback.assert_called_once()
        put_connection.assert_called_once_with(conn)

    def test_create_failure_becomes_storage_error(self, pg):
        store, conn, cur, put_connection = pg
        cur.execute.side_effect = psycopg2.OperationalError("server closed the connection")

        with pytest.raises(StorageError):
            store.create(new_session())

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        put_connection.assert_called_once_with(conn)

    def test_conditional_update_writes_guarded_row(self, pg):
        store, conn, cur, _ = pg
        session = new_session()
        cur.fetchone.return_value = session_row(session)
        cur.rowcount = 1

        updated = store.conditional_update(session.id, SessionStatus.ACTIVE, bump)

        assert updated.current_index == 2
        sql, params = cur.execute.call_args_list[-1].args
        assert "WHERE id = %s AND status = %s" in sql
        assert params[-2:] == (session.id, "active")
        conn.commit.assert_called_once()

    def test_conditional_update_lost_race(self, pg):
        store, conn, cur, _ = pg
        session = new_session()
        cur.fetchone.return_value = session_row(session)
        cur.rowcount = 0

        with pytest.raises(Conflict):
            store.conditional_update(session.id, SessionStatus.ACTIVE, bump)

        conn.commit.assert_not_called()
        conn.rollback.assert_called_once()

    def test_conditional_update_wrong_status(self, pg):
        store, conn, cur, put_connection = pg
        cur.fetchone.return_value = session_row(new_session())

        with pytest.raises(Conflict):
            store.conditional_update("id", SessionStatus.FINISHED, bump)

        assert cur.execute.call_count == 1
        put_connection.assert_called_once_with(conn)

    def test_conditional_update_missing(self, pg):
        store, _, cur, _ = pg
        cur.fetchone.return_value = None
        with pytest.raises(NotFound):
            store.conditional_update("id", SessionStatus.ACTIVE, bump)

    def test_list_for_owner_with_status(self, pg):
        store, _, cur, _ = pg
        done = replace(new_session(), status=SessionStatus.FINISHED, pending_question=None, score=90)
        cur.fetchall.return_value = [session_row(done)]

        assert store.list_for_owner("alice", SessionStatus.FINISHED) == [done]
        sql, params = cur.execute.call_args.args
        assert "AND status = %s" in sql
        assert params == ["alice", "finished"]


class TestWriteGuard:

    def test_create_rejects_active_session_without_question(self):
        store = InMemorySessionStore()
        broken = replace(new_session(), pending_question=None)

        with pytest.raises(ValueError):
            store.create(broken)
        assert store.get(broken.id) is None

    def test_update_rejects_more_correct_than_answered(self):
        store = InMemorySessionStore()
        session = new_session()
        store.create(session)

        with pytest.raises(ValueError):
            store.conditional_update(
                session.id, SessionStatus.ACTIVE, lambda s: replace(s, correct_count=5)
            )
        assert store.get(session.id) == session

    def test_update_rejects_finished_session_with_pending_question(self):
        store = InMemorySessionStore()
        session = new_session()
        store.create(session)

        with pytest.raises(ValueError):
            store.conditional_update(
                session.id, SessionStatus.ACTIVE, lambda s: replace(s, status=SessionStatus.FINISHED)
            )
        assert store.get(session.id).status is SessionStatus.ACTIVE

    def test_postgres_create_never_sends_broken_record(self, pg):
        store, _, cur, _ = pg
        with pytest.raises(ValueError):
            store.create(replace(new_session(), current_index=0))
        cur.execute.assert_not_called()
