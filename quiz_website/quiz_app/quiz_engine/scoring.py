from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from quiz_app.quiz_engine.state import Session


def round_half_up(value) -> int:
    """Round .5 away from zero, unlike the built-in round()."""
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def compute_score(session: Session) -> int:
    """Percentage of correct answers, weighted by difficulty."""
    raw = Decimal(session.correct_count * 100 * int(session.difficulty)) / session.total_questions
    return round_half_up(raw)


def duration_seconds(session: Session, end: datetime) -> int:
    return round_half_up((end - session.created_at).total_seconds())
