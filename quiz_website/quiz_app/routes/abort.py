from fastapi import APIRouter, Depends, Response

from quiz_app.auth import get_caller, get_engine
from quiz_app.quiz_engine.engine import SessionEngine
from quiz_app.schemas import AbortResponse, SessionRef, session_view

router = APIRouter()


@router.post("/abort", response_model=AbortResponse)
def abort_quiz(
    body: SessionRef,
    response: Response,
    caller: str = Depends(get_caller),
    engine: SessionEngine = Depends(get_engine),
):
    session = engine.abort(caller, body.sessionId)

    response.headers["Cache-Control"] = "no-store"
    return AbortResponse(session=session_view(session))
