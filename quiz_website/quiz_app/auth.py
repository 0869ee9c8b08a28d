from typing import Optional

from fastapi import Depends, Header, Request
from loguru import logger

from quiz_app.config import Settings, get_settings
from quiz_app.quiz_engine.engine import SessionEngine
from quiz_app.quiz_engine.errors import Unauthenticated
from quiz_app.quiz_engine.store import InMemorySessionStore, PostgresSessionStore


def get_caller(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> str:
    """Resolve the bearer token to a caller id or reject the request."""
    if not authorization:
        raise Unauthenticated("Unauthorized - missing authorization header")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated()

    caller = settings.api_tokens.get(token.strip())
    if caller is None:
        logger.warning("Rejected request with unknown token")
        raise Unauthenticated()

    return caller


def build_engine(settings: Settings) -> SessionEngine:
    """Called once at start-up; every request shares the result."""
    if settings.store_backend == "postgres":
        store = PostgresSessionStore()
    else:
        store = InMemorySessionStore()

    return SessionEngine(store, total_questions=settings.total_questions)


def get_engine(request: Request) -> SessionEngine:
    return request.app.state.engine
