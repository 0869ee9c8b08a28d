from fastapi import APIRouter, Depends, Response

from quiz_app.auth import get_caller, get_engine
from quiz_app.quiz_engine.engine import SessionEngine
from quiz_app.schemas import AnswerRequest, AnswerResponse, answer_response

router = APIRouter()


@router.post("/answer", response_model=AnswerResponse, response_model_exclude_none=True)
def submit_answer(
    body: AnswerRequest,
    response: Response,
    caller: str = Depends(get_caller),
    engine: SessionEngine = Depends(get_engine),
):
    outcome = engine.answer(caller, body.sessionId, body.questionId, body.answer)

    response.headers["Cache-Control"] = "no-store"
    return answer_response(outcome)
