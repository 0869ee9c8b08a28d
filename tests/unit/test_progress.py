from datetime import datetime, timedelta, timezone

from quiz_app.quiz_engine.progress import summarize
from quiz_app.quiz_engine.scoring import compute_score, round_half_up
from quiz_app.quiz_engine.state import Difficulty, Session, SessionStatus

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def finished(correct, difficulty=Difficulty.EASY, score=None, minutes=0, status=SessionStatus.FINISHED):
    return Session(
        owner="alice",
        difficulty=difficulty,
        pending_question=None,
        status=status,
        current_index=11,
        correct_count=correct,
        created_at=T0,
        finished_at=T0 + timedelta(minutes=minutes),
        score=score,
    )


def test_empty_summary():
    summary = summarize([])
    assert summary.total_games_played == 0
    assert summary.average_score == 0
    assert summary.best_score == 0
    assert summary.last_played_at is None


def test_totals_and_best():
    sessions = [
        finished(7, score=70, minutes=1),
        finished(9, Difficulty.HARD, score=270, minutes=5),
        finished(4, Difficulty.MEDIUM, score=80, minutes=3),
    ]

    summary = summarize(sessions)

    assert summary.total_games_played == 3
    assert summary.total_correct_answers == 20
    assert summary.total_questions_asked == 30
    assert summary.best_score == 270
    assert summary.average_score == 140
    assert summary.last_played_at == T0 + timedelta(minutes=5)


def test_average_rounds_half_up():
    summary = summarize([finished(0, score=0), finished(1, score=1)])
    assert summary.average_score == 1


def test_missing_score_is_computed():
    summary = summarize([finished(5, Difficulty.HARD)])
    assert summary.best_score == 150


def test_non_finished_sessions_ignored():
    summary = summarize([finished(10, score=100), finished(3, status=SessionStatus.ABORTED)])
    assert summary.total_games_played == 1
    assert summary.total_correct_answers == 10


def test_round_half_up():
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2
    assert round_half_up(66.666) == 67


def test_compute_score_weights():
    assert compute_score(finished(7)) == 70
    assert compute_score(finished(7, Difficulty.MEDIUM)) == 140
    assert compute_score(finished(10, Difficulty.HARD)) == 300
