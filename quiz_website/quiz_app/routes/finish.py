from fastapi import APIRouter, Depends, Response

from quiz_app.auth import get_caller, get_engine
from quiz_app.quiz_engine.engine import SessionEngine
from quiz_app.schemas import ResultResponse, SessionRef, result_response

router = APIRouter()


@router.post("/finish", response_model=ResultResponse)
def finish_quiz(
    body: SessionRef,
    response: Response,
    caller: str = Depends(get_caller),
    engine: SessionEngine = Depends(get_engine),
):
    # Safe to repeat: a finished session reports its stored result
    result = engine.finish(caller, body.sessionId)

    response.headers["Cache-Control"] = "no-store"
    return result_response(result)
