import threading
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

import psycopg2
from psycopg2.extras import Json
from loguru import logger

from quiz_app.quiz_engine.errors import Conflict, NotFound, StorageError
from quiz_app.quiz_engine.state import (
    Difficulty,
    Question,
    Session,
    SessionStatus,
    check_invariants,
)

Mutation = Callable[[Session], Session]


class SessionStore(ABC):
    """Keyed persistence for quiz sessions."""

    @abstractmethod
    def get(self, session_id: str) -> Optional[Session]:
        ...

    @abstractmethod
    def create(self, session: Session) -> None:
        ...

    @abstractmethod
    def conditional_update(
        self, session_id: str, expected_status: SessionStatus, mutate: Mutation
    ) -> Session:
        """
        Re-read the session, apply ``mutate`` and write the result, but only
        if the stored status still equals ``expected_status``. Raises
        Conflict otherwise.
        """

    @abstractmethod
    def list_for_owner(
        self, owner: str, status: Optional[SessionStatus] = None
    ) -> List[Session]:
        ...


def _sound(session: Session) -> Session:
    problems = check_invariants(session)
    if problems:
        raise ValueError(f"Refusing to store session {session.id}: {'; '.join(problems)}")
    return session


def _checked(before: Session, after: Session) -> Session:
    if after.id != before.id or after.owner != before.owner or after.difficulty != before.difficulty:
        raise ValueError("id, owner and difficulty of a session are immutable")
    return _sound(after)


class InMemorySessionStore(SessionStore):
    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def get(self, session_id):
        with self._lock:
            return self._sessions.get(session_id)

    def create(self, session):
        _sound(session)
        with self._lock:
            if session.id in self._sessions:
                raise StorageError(f"Session {session.id} already exists")
            self._sessions[session.id] = session

    def conditional_update(self, session_id, expected_status, mutate):
        with self._lock:
            current = self._sessions.get(session_id)
            if current is None:
                raise NotFound()
            if current.status is not expected_status:
                raise Conflict()
            updated = _checked(current, mutate(current))
            self._sessions[session_id] = updated
            return updated

    def list_for_owner(self, owner, status=None):
        with self._lock:
            return [
                s for s in self._sessions.values()
                if s.owner == owner and (status is None or s.status is status)
            ]


_COLUMNS = """
    id, owner, level, status, total_questions, current_question_index,
    correct_answers, current_question, score, created_at, finished_at
"""


def _row_to_session(row) -> Session:
    (
        session_id, owner, level, status, total_questions, current_index,
        correct_count, question, score, created_at, finished_at,
    ) = row
    return Session(
        id=str(session_id),
        owner=owner,
        difficulty=Difficulty(level),
        status=SessionStatus(status),
        total_questions=total_questions,
        current_index=current_index,
        correct_count=correct_count,
        pending_question=Question.from_dict(question) if question else None,
        score=score,
        created_at=created_at,
        finished_at=finished_at,
    )


def _question_json(session: Session):
    if session.pending_question is None:
        return None
    return Json(session.pending_question.to_dict())


class PostgresSessionStore(SessionStore):
    """
    Sessions in the quiz_sessions table (see schema.sql). Connections come
    from the shared pool in quiz_app.db and are always handed back.
    """

    def __init__(self, get_connection=None, put_connection=None):
        if get_connection is None or put_connection is None:
            from quiz_app import db

            get_connection = get_connection or db.get_connection
            put_connection = put_connection or db.put_connection
        self._get_connection = get_connection
        self._put_connection = put_connection

    def get(self, session_id):
        conn = self._get_connection()
        cur = conn.cursor()

        try:
            cur.execute(
                f"SELECT {_COLUMNS} FROM quiz_sessions WHERE id = %s;",
                (session_id,),
            )
            row = cur.fetchone()
            conn.commit()
        except psycopg2.DataError:
            # Not a UUID, so it cannot name a session
            conn.rollback()
            return None
        except psycopg2.Error as exc:
            conn.rollback()
            logger.exception("Failed to load session {}", session_id)
            raise StorageError() from exc
        finally:
            cur.close()
            self._put_connection(conn)

        return _row_to_session(row) if row else None

    def create(self, session):
        _sound(session)
        conn = self._get_connection()
        cur = conn.cursor()

        try:
            cur.execute(
                f"""
                INSERT INTO quiz_sessions ({_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s);
                """,
                (
                    session.id,
                    session.owner,
                    int(session.difficulty),
                    session.status.value,
                    session.total_questions,
                    session.current_index,
                    session.correct_count,
                    _question_json(session),
                    session.score,
                    session.created_at,
                    session.finished_at,
                ),
            )
            conn.commit()
        except psycopg2.Error as exc:
            conn.rollback()
            logger.exception("Failed to create session {}", session.id)
            raise StorageError() from exc
        finally:
            cur.close()
            self._put_connection(conn)

    def conditional_update(self, session_id, expected_status, mutate):
        conn = self._get_connection()
        cur = conn.cursor()

        try:
            # Lock the row for the rest of the transaction
            cur.execute(
                f"SELECT {_COLUMNS} FROM quiz_sessions WHERE id = %s FOR UPDATE;",
                (session_id,),
            )
            row = cur.fetchone()
            if not row:
                raise NotFound()

            current = _row_to_session(row)
            if current.status is not expected_status:
                raise Conflict()

            updated = _checked(current, mutate(current))

            # Single transition, guarded on the status we read
            cur.execute(
                """
                UPDATE quiz_sessions
                SET status = %s,
                    current_question_index = %s,
                    correct_answers = %s,
                    current_question = %s,
                    score = %s,
                    finished_at = %s
                WHERE id = %s AND status = %s;
                """,
                (
                    updated.status.value,
                    updated.current_index,
                    updated.correct_count,
                    _question_json(updated),
                    updated.score,
                    updated.finished_at,
                    session_id,
                    expected_status.value,
                ),
            )
            if cur.rowcount != 1:
                raise Conflict()

            conn.commit()
        except psycopg2.Error as exc:
            conn.rollback()
            logger.exception("Failed to update session {}", session_id)
            raise StorageError() from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            cur.close()
            self._put_connection(conn)

        return updated

    def list_for_owner(self, owner, status=None):
        conn = self._get_connection()
        cur = conn.cursor()

        query = f"SELECT {_COLUMNS} FROM quiz_sessions WHERE owner = %s"
        params = [owner]
        if status is not None:
            query += " AND status = %s"
            params.append(status.value)

        try:
            cur.execute(query + " ORDER BY created_at;", params)
            rows = cur.fetchall()
            conn.commit()
        except psycopg2.Error as exc:
            conn.rollback()
            logger.exception("Failed to list sessions of {}", owner)
            raise StorageError() from exc
        finally:
            cur.close()
            self._put_connection(conn)

        return [_row_to_session(row) for row in rows]
