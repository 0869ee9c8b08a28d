"""
Single endpoint for game clients that send one POST with
an ``action`` field instead of using one route per operation.
"""
from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from quiz_app.auth import get_caller, get_engine
from quiz_app.quiz_engine.engine import SessionEngine
from quiz_app.quiz_engine.errors import InvalidRequest, UnknownAction
from quiz_app.quiz_engine.state import Difficulty
from quiz_app.schemas import (
    AbortResponse,
    ActionRequest,
    answer_response,
    progress_response,
    result_response,
    session_view,
    start_response,
)

router = APIRouter()


def _require(value, name):
    if value is None:
        raise InvalidRequest(f"Missing field {name}")
    return value


@router.post("/game")
def game_action(
    body: ActionRequest,
    caller: str = Depends(get_caller),
    engine: SessionEngine = Depends(get_engine),
):
    action = body.action

    if action == "start":
        payload = start_response(*engine.start(caller, Difficulty(body.level)))
    elif action == "answer":
        outcome = engine.answer(
            caller,
            _require(body.sessionId, "sessionId"),
            _require(body.questionId, "questionId"),
            _require(body.answer, "answer"),
        )
        payload = answer_response(outcome)
    elif action == "finish":
        payload = result_response(engine.finish(caller, _require(body.sessionId, "sessionId")))
    elif action == "abort":
        session = engine.abort(caller, _require(body.sessionId, "sessionId"))
        payload = AbortResponse(session=session_view(session))
    elif action == "progress":
        # lastPlayedAt stays in the body even when null
        return JSONResponse(
            jsonable_encoder(progress_response(engine.progress(caller))),
            headers={"Cache-Control": "no-store"},
        )
    else:
        raise UnknownAction()

    return JSONResponse(
        jsonable_encoder(payload, exclude_none=True),
        headers={"Cache-Control": "no-store"},
    )
