from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from quiz_app.quiz_engine.errors import Conflict

TOTAL_QUESTIONS = 10
OPTIONS_PER_QUESTION = 4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Difficulty(IntEnum):
    # The value doubles as the score weight
    EASY = 1
    MEDIUM = 2
    HARD = 3


class SessionStatus(str, Enum):
    ACTIVE = "active"
    FINISHED = "finished"
    ABORTED = "aborted"


ALLOWED_TRANSITIONS = {
    SessionStatus.ACTIVE: {SessionStatus.FINISHED, SessionStatus.ABORTED},
    SessionStatus.FINISHED: set(),
    SessionStatus.ABORTED: set(),
}


@dataclass(frozen=True)
class Question:
    id: str
    prompt: str
    correct_answer: str
    options: Tuple[str, ...]
    operator: str
    left: int
    right: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.prompt,
            "correctAnswer": self.correct_answer,
            "options": list(self.options),
            "operator": self.operator,
            "left": self.left,
            "right": self.right,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        return cls(
            id=data["id"],
            prompt=data["content"],
            correct_answer=data["correctAnswer"],
            options=tuple(data["options"]),
            operator=data["operator"],
            left=data["left"],
            right=data["right"],
        )


@dataclass(frozen=True)
class Session:
    """
    One quiz attempt. Instances are never mutated in place: the engine
    derives the next state with dataclasses.replace and hands it to the
    store.
    """

    owner: str
    difficulty: Difficulty
    pending_question: Optional[Question]
    id: str = field(default_factory=lambda: str(uuid4()))
    status: SessionStatus = SessionStatus.ACTIVE
    total_questions: int = TOTAL_QUESTIONS
    current_index: int = 1
    correct_count: int = 0
    created_at: datetime = field(default_factory=utcnow)
    finished_at: Optional[datetime] = None
    score: Optional[int] = None

    @property
    def answered(self) -> int:
        return self.current_index - 1

    @property
    def is_active(self) -> bool:
        return self.status is SessionStatus.ACTIVE

    def transition_to(self, status: SessionStatus, **changes) -> "Session":
        if status not in ALLOWED_TRANSITIONS[self.status]:
            raise Conflict(
                f"Session cannot move from {self.status.value} to {status.value}"
            )
        return replace(self, status=status, **changes)


@dataclass(frozen=True)
class AnswerOutcome:
    correct: bool
    correct_answer: str
    session: Session
    next_question: Optional[Question] = None


@dataclass(frozen=True)
class SessionResult:
    session_id: str
    correct_count: int
    total_questions: int
    score: int
    duration_seconds: int
    difficulty: Difficulty
    finished_at: datetime


@dataclass(frozen=True)
class ProgressSummary:
    total_games_played: int = 0
    total_correct_answers: int = 0
    total_questions_asked: int = 0
    average_score: int = 0
    best_score: int = 0
    last_played_at: Optional[datetime] = None


def check_invariants(session: Session) -> List[str]:
    """Return the list of broken invariants (empty when the record is sound)."""
    problems = []
    if not 0 <= session.correct_count <= session.answered <= session.total_questions:
        problems.append("correct_count/current_index out of range")
    if (session.pending_question is not None) != session.is_active:
        problems.append("pending_question must be set exactly while active")
    if session.status is SessionStatus.ACTIVE and session.finished_at is not None:
        problems.append("active session has finished_at")
    return problems
