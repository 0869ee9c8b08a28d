import random
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional, Tuple

from loguru import logger

from quiz_app.quiz_engine.errors import Conflict, InvalidQuestion, NotFound, Unauthorized
from quiz_app.quiz_engine.generator import generate_question
from quiz_app.quiz_engine.progress import summarize
from quiz_app.quiz_engine.scoring import compute_score, duration_seconds
from quiz_app.quiz_engine.state import (
    TOTAL_QUESTIONS,
    AnswerOutcome,
    Difficulty,
    ProgressSummary,
    Question,
    Session,
    SessionResult,
    SessionStatus,
    utcnow,
)
from quiz_app.quiz_engine.store import SessionStore


class SessionEngine:
    """
    Drives quiz sessions from start to finish. Every state change goes
    through the store's conditional update so a session never moves from a
    state it is no longer in.
    """

    def __init__(
        self,
        store: SessionStore,
        total_questions: int = TOTAL_QUESTIONS,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.total_questions = total_questions
        self.rng = rng or random.Random()
        self.clock = clock

    def _load(self, caller: str, session_id: str) -> Session:
        session = self.store.get(session_id)
        if session is None:
            raise NotFound()
        if session.owner != caller:
            logger.warning("Caller {} asked for session {} owned by someone else", caller, session_id)
            raise Unauthorized()
        return session

    def start(self, caller: str, difficulty: Difficulty) -> Tuple[Session, Question]:
        difficulty = Difficulty(difficulty)
        question = generate_question(difficulty, self.rng)

        session = Session(
            owner=caller,
            difficulty=difficulty,
            pending_question=question,
            total_questions=self.total_questions,
            created_at=self.clock(),
        )
        self.store.create(session)

        logger.info("Session {} started by {} at level {}", session.id, caller, int(difficulty))
        return session, question

    def answer(self, caller: str, session_id: str, question_id: str, answer_text: str) -> AnswerOutcome:
        session = self._load(caller, session_id)
        if not session.is_active:
            raise NotFound()

        question = session.pending_question
        if question.id != question_id:
            raise InvalidQuestion()

        correct = answer_text == question.correct_answer

        def grade(current: Session) -> Session:
            # Re-checked under the store's lock; the first read may be stale
            if current.pending_question is None or current.pending_question.id != question_id:
                raise InvalidQuestion()

            next_index = current.current_index + 1
            correct_count = current.correct_count + (1 if correct else 0)

            if next_index > current.total_questions:
                return current.transition_to(
                    SessionStatus.FINISHED,
                    current_index=next_index,
                    correct_count=correct_count,
                    pending_question=None,
                    finished_at=self.clock(),
                )

            return replace(
                current,
                current_index=next_index,
                correct_count=correct_count,
                pending_question=generate_question(current.difficulty, self.rng),
            )

        updated = self.store.conditional_update(session_id, SessionStatus.ACTIVE, grade)

        logger.debug(
            "Session {} question {} answered {}",
            session_id,
            session.current_index,
            "correctly" if correct else "incorrectly",
        )
        if not updated.is_active:
            logger.info("Session {} completed with {} correct", session_id, updated.correct_count)

        return AnswerOutcome(
            correct=correct,
            correct_answer=question.correct_answer,
            session=updated,
            next_question=updated.pending_question,
        )

    def finish(self, caller: str, session_id: str) -> SessionResult:
        session = self._load(caller, session_id)

        if session.status is SessionStatus.ABORTED:
            raise Conflict("Session was aborted")

        if session.status is SessionStatus.FINISHED and session.score is not None:
            return self._result(session)

        def complete(current: Session) -> Session:
            finished_at = current.finished_at or self.clock()
            if current.is_active:
                current = current.transition_to(
                    SessionStatus.FINISHED,
                    pending_question=None,
                    finished_at=finished_at,
                )
            return replace(current, finished_at=finished_at, score=compute_score(current))

        updated = self.store.conditional_update(session_id, session.status, complete)
        logger.info("Session {} finished with score {}", session_id, updated.score)
        return self._result(updated)

    def abort(self, caller: str, session_id: str) -> Session:
        session = self._load(caller, session_id)

        if session.status is SessionStatus.ABORTED:
            return session
        if session.status is SessionStatus.FINISHED:
            raise Conflict("Session is already finished")

        updated = self.store.conditional_update(
            session_id,
            SessionStatus.ACTIVE,
            lambda current: current.transition_to(
                SessionStatus.ABORTED,
                pending_question=None,
                finished_at=self.clock(),
            ),
        )
        logger.info("Session {} aborted after {} answers", session_id, updated.answered)
        return updated

    def progress(self, caller: str) -> ProgressSummary:
        return summarize(self.store.list_for_owner(caller, SessionStatus.FINISHED))

    def _result(self, session: Session) -> SessionResult:
        return SessionResult(
            session_id=session.id,
            correct_count=session.correct_count,
            total_questions=session.total_questions,
            score=session.score,
            duration_seconds=duration_seconds(session, session.finished_at),
            difficulty=session.difficulty,
            finished_at=session.finished_at,
        )
