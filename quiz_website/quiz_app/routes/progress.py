from fastapi import APIRouter, Depends, Response

from quiz_app.auth import get_caller, get_engine
from quiz_app.quiz_engine.engine import SessionEngine
from quiz_app.schemas import ProgressResponse, progress_response

router = APIRouter()


@router.get("/progress", response_model=ProgressResponse)
def get_progress(
    response: Response,
    caller: str = Depends(get_caller),
    engine: SessionEngine = Depends(get_engine),
):
    summary = engine.progress(caller)

    response.headers["Cache-Control"] = "no-store"
    return progress_response(summary)
