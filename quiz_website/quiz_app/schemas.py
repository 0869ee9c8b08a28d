"""
Request/response models for the quiz endpoints.

Field names follow the JSON the game client already speaks (camelCase).
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from quiz_app.quiz_engine.state import (
    AnswerOutcome,
    ProgressSummary,
    Question,
    Session,
    SessionResult,
)


class StartRequest(BaseModel):
    """Request model for starting a new quiz session"""
    level: int = Field(1, ge=1, le=3, description="1 = easy, 2 = medium, 3 = hard")


class SessionRef(BaseModel):
    sessionId: str = Field(..., description="Quiz session identifier")


class AnswerRequest(SessionRef):
    questionId: str = Field(..., description="Id of the question being answered")
    answer: str = Field(..., description="Chosen option")


class ActionRequest(BaseModel):
    """Single-endpoint form: the action name plus that action's fields."""
    action: str
    level: int = Field(1, ge=1, le=3)
    sessionId: Optional[str] = None
    questionId: Optional[str] = None
    answer: Optional[str] = None


class SessionView(BaseModel):
    """Public view of a session; never carries the pending correct answer."""
    id: str
    status: Literal["active", "finished", "aborted"]
    level: int
    currentQuestionIndex: int
    totalQuestions: int
    correctAnswers: int
    startedAt: datetime
    finishedAt: Optional[datetime] = None


class QuestionView(BaseModel):
    id: str
    content: str
    options: List[str] = Field(..., min_length=4, max_length=4)
    questionNumber: int = Field(..., ge=1)


class StartResponse(BaseModel):
    session: SessionView
    question: QuestionView


class AnswerResponse(BaseModel):
    correct: bool
    correctAnswer: str
    session: SessionView
    nextQuestion: Optional[QuestionView] = None


class ResultResponse(BaseModel):
    sessionId: str
    correctAnswers: int = Field(..., ge=0)
    totalQuestions: int = Field(..., ge=1)
    score: int = Field(..., ge=0)
    durationSeconds: int
    level: int
    finishedAt: datetime


class AbortResponse(BaseModel):
    session: SessionView


class ProgressResponse(BaseModel):
    totalGamesPlayed: int = 0
    totalCorrectAnswers: int = 0
    totalQuestions: int = 0
    averageScore: int = 0
    bestScore: int = 0
    lastPlayedAt: Optional[datetime] = None


def session_view(session: Session) -> SessionView:
    return SessionView(
        id=session.id,
        status=session.status.value,
        level=int(session.difficulty),
        currentQuestionIndex=session.current_index,
        totalQuestions=session.total_questions,
        correctAnswers=session.correct_count,
        startedAt=session.created_at,
        finishedAt=session.finished_at,
    )


def question_view(question: Question, number: int) -> QuestionView:
    return QuestionView(
        id=question.id,
        content=question.prompt,
        options=list(question.options),
        questionNumber=number,
    )


def start_response(session: Session, question: Question) -> StartResponse:
    return StartResponse(session=session_view(session), question=question_view(question, 1))


def answer_response(outcome: AnswerOutcome) -> AnswerResponse:
    next_question = None
    if outcome.next_question is not None:
        next_question = question_view(outcome.next_question, outcome.session.current_index)

    return AnswerResponse(
        correct=outcome.correct,
        correctAnswer=outcome.correct_answer,
        session=session_view(outcome.session),
        nextQuestion=next_question,
    )


def result_response(result: SessionResult) -> ResultResponse:
    return ResultResponse(
        sessionId=result.session_id,
        correctAnswers=result.correct_count,
        totalQuestions=result.total_questions,
        score=result.score,
        durationSeconds=result.duration_seconds,
        level=int(result.difficulty),
        finishedAt=result.finished_at,
    )


def progress_response(summary: ProgressSummary) -> ProgressResponse:
    return ProgressResponse(
        totalGamesPlayed=summary.total_games_played,
        totalCorrectAnswers=summary.total_correct_answers,
        totalQuestions=summary.total_questions_asked,
        averageScore=summary.average_score,
        bestScore=summary.best_score,
        lastPlayedAt=summary.last_played_at,
    )
