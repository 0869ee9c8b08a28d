from fastapi import APIRouter, Depends, Response

from quiz_app.auth import get_caller, get_engine
from quiz_app.quiz_engine.engine import SessionEngine
from quiz_app.quiz_engine.state import Difficulty
from quiz_app.schemas import StartRequest, StartResponse, start_response

router = APIRouter()


@router.post("/start", response_model=StartResponse, response_model_exclude_none=True)
def start_quiz(
    body: StartRequest,
    response: Response,
    caller: str = Depends(get_caller),
    engine: SessionEngine = Depends(get_engine),
):
    session, question = engine.start(caller, Difficulty(body.level))

    # Quiz state must never come from a cache
    response.headers["Cache-Control"] = "no-store"
    return start_response(session, question)
