"""
Pytest configuration and shared fixtures.
"""
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Make quiz_app importable without installing the project
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "quiz_website"))

from quiz_app.quiz_engine.engine import SessionEngine  # noqa: E402
from quiz_app.quiz_engine.store import InMemorySessionStore  # noqa: E402


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: HTTP-level tests against the FastAPI app")


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def engine(store, rng, clock):
    return SessionEngine(store, rng=rng, clock=clock)


def pending_answer(store, session_id):
    """Correct answer of the question the session is waiting on."""
    return store.get(session_id).pending_question.correct_answer


def wrong_option(question):
    return next(o for o in question.options if o != question.correct_answer)


def play(engine, store, caller, session_id, pattern):
    """Answer one question per entry of ``pattern`` (True = answer correctly)."""
    outcome = None
    for correct in pattern:
        question = store.get(session_id).pending_question
        text = question.correct_answer if correct else wrong_option(question)
        outcome = engine.answer(caller, session_id, question.id, text)
    return outcome
