from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from quiz_app.auth import build_engine
from quiz_app.config import get_settings
from quiz_app.logging_setup import configure_logging
from quiz_app.quiz_engine.errors import QuizError
from quiz_app.routes import abort, actions, answer, finish, progress, start


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting quiz service with the {} session store", settings.store_backend)

    if settings.store_backend == "postgres":
        from quiz_app import db

        db.init_schema()

    app.state.engine = build_engine(settings)

    yield

    if settings.store_backend == "postgres":
        from quiz_app import db

        db.close_pool()
    logger.info("Quiz service stopped")


app = FastAPI(title="Arithmetic Quiz", lifespan=lifespan)


@app.exception_handler(QuizError)
async def quiz_error_handler(request: Request, exc: QuizError):
    if exc.status_code >= 500:
        logger.error("{} {} failed: {}", request.method, request.url.path, exc.message)
    return JSONResponse(
        {"error": exc.message, "code": exc.code},
        status_code=exc.status_code,
        headers={"Cache-Control": "no-store"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


@app.get("/")
def home():
    return {"service": "arithmetic-quiz", "status": "ok"}


app.include_router(start.router)
app.include_router(answer.router)
app.include_router(finish.router)
app.include_router(abort.router)
app.include_router(progress.router)
app.include_router(actions.router)
