from decimal import Decimal
from typing import Iterable

from quiz_app.quiz_engine.scoring import compute_score, round_half_up
from quiz_app.quiz_engine.state import ProgressSummary, Session, SessionStatus


def summarize(sessions: Iterable[Session]) -> ProgressSummary:
    """
    Aggregate a caller's finished sessions.

    Sessions that were completed by their last answer but never explicitly
    finished have no stored score yet; their score is computed on the fly so
    they count the same as finished ones.
    """
    finished = [s for s in sessions if s.status is SessionStatus.FINISHED]
    if not finished:
        return ProgressSummary()

    scores = [s.score if s.score is not None else compute_score(s) for s in finished]
    played = [s.finished_at for s in finished if s.finished_at is not None]

    return ProgressSummary(
        total_games_played=len(finished),
        total_correct_answers=sum(s.correct_count for s in finished),
        total_questions_asked=sum(s.total_questions for s in finished),
        average_score=round_half_up(Decimal(sum(scores)) / len(scores)),
        best_score=max(scores),
        last_played_at=max(played) if played else None,
    )
