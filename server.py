from __future__ import annotations

import io
import time
from dataclasses import asdict
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, File, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from agents.orchestrator_agent import InterviewOrchestrator
from interview import SortKey, query_sessions, session_row
from models import CandidateSession, SessionStatus
from tools.export import session_to_dict
from utils import errors
from utils.config import load_config
from utils.logging import get_logger, setup_logging


logger = get_logger("server")

API_VERSION = "0.2.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    cfg = load_config()
    setup_logging(cfg.log_level)
    app.state.start_time = time.time()
    # A fresh, empty store per process start.
    app.state.orchestrator = InterviewOrchestrator(config=cfg)
    try:
        yield
    finally:
        app.state.orchestrator.shutdown()


app = FastAPI(title="MCQ Interview Assistant", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


ERROR_STATUS = (
    (errors.NotFound, 404),
    (errors.ValidationError, 422),
    (errors.ExtractionFailure, 400),
    (errors.InvalidTransition, 409),
    (errors.RemoteServiceError, 502),
)


@app.exception_handler(errors.InterviewError)
async def interview_error_handler(request: Request, exc: errors.InterviewError) -> JSONResponse:
    status = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 500)
    if status >= 500:
        logger.warning(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status, content={"detail": str(exc)})


class FieldReq(BaseModel):
    value: str


class AnswerReq(BaseModel):
    answer: Optional[str] = None


class ChatEntryResp(BaseModel):
    type: str
    content: str
    metadata: Dict[str, Any]
    timestamp: float


class QuestionPromptResp(BaseModel):
    index: int
    difficulty: str
    question: str
    options: Dict[str, str]
    time_limit: int


class SummaryResp(BaseModel):
    total_score: int
    max_score: int
    percentage: float
    summary: str
    narrative_available: bool


class SessionResp(BaseModel):
    session_id: str
    name: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    status: str
    collecting_field: Optional[str]
    current_question_index: int
    total_questions: int
    current_question: Optional[QuestionPromptResp] = None
    remaining_time: Optional[int] = None
    final_score: Optional[int] = None
    final_summary: Optional[SummaryResp] = None
    chat_history: List[ChatEntryResp]


class EvaluationResp(BaseModel):
    accepted: bool
    score: Optional[int] = None
    feedback: Optional[str] = None
    session: SessionResp


class DashboardRowResp(BaseModel):
    session_id: str
    name: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    status: str
    final_score: Optional[int]
    percentage: Optional[float]
    created_at: float
    completed: bool
    progress: str


class DashboardResp(BaseModel):
    total: int
    sessions: List[DashboardRowResp]


class ResumeResp(BaseModel):
    session: SessionResp
    questions_completed: int
    questions_remaining: int


class HealthResp(BaseModel):
    status: str
    uptime_seconds: float
    sessions: int


class VersionResp(BaseModel):
    version: str
    api: str


def _orchestrator(request: Request) -> InterviewOrchestrator:
    return request.app.state.orchestrator


def _session_resp(orch: InterviewOrchestrator, session: CandidateSession) -> SessionResp:
    question = session.current_question() if session.status != SessionStatus.COMPLETED else None
    prompt = None
    if question is not None and session.status in (SessionStatus.IN_PROGRESS, SessionStatus.PAUSED):
        prompt = QuestionPromptResp(
            index=session.current_question_index,
            difficulty=question.difficulty,
            question=question.question,
            options=question.options,
            time_limit=question.time_limit,
        )
    summary = session.final_summary
    return SessionResp(
        session_id=session.session_id,
        name=session.name,
        email=session.email,
        phone=session.phone,
        status=session.status,
        collecting_field=session.collecting_field,
        current_question_index=session.current_question_index,
        total_questions=len(session.questions),
        current_question=prompt,
        remaining_time=orch.remaining_time(session.session_id) if prompt else None,
        final_score=session.final_score,
        final_summary=SummaryResp(**asdict(summary)) if summary else None,
        chat_history=[
            ChatEntryResp(type=e.type, content=e.content, metadata=e.metadata, timestamp=e.timestamp)
            for e in session.chat_history
        ],
    )


@app.get("/health", response_model=HealthResp)
async def health(request: Request) -> HealthResp:
    return HealthResp(
        status="ok",
        uptime_seconds=round(time.time() - request.app.state.start_time, 3),
        sessions=len(_orchestrator(request).store),
    )


@app.get("/version", response_model=VersionResp)
async def version() -> VersionResp:
    return VersionResp(version=API_VERSION, api="v1")


@app.post("/api/sessions", response_model=SessionResp)
async def upload_resume(request: Request, resume: UploadFile = File(...)) -> SessionResp:
    orch = _orchestrator(request)
    data = await resume.read()
    session = await orch.upload_resume(
        io.BytesIO(data),
        resume.filename or "",
        size=len(data),
        content_type=resume.content_type,
    )
    return _session_resp(orch, session)


@app.get("/api/sessions", response_model=DashboardResp)
async def list_sessions(
    request: Request,
    search: Optional[str] = None,
    status: Optional[str] = None,
    sort_by: str = Query(SortKey.SCORE, pattern="^(score|date|name)$"),
) -> DashboardResp:
    sessions = query_sessions(_orchestrator(request).store.all(), search=search, status=status, sort_by=sort_by)
    return DashboardResp(total=len(sessions), sessions=[DashboardRowResp(**session_row(s)) for s in sessions])


@app.get("/api/sessions/current", response_model=Optional[ResumeResp])
async def current_session(request: Request) -> Optional[ResumeResp]:
    orch = _orchestrator(request)
    pending = orch.pending_resume()
    if pending is None:
        return None
    return ResumeResp(
        session=_session_resp(orch, pending["session"]),
        questions_completed=pending["questions_completed"],
        questions_remaining=pending["questions_remaining"],
    )


@app.get("/api/sessions/{session_id}")
async def session_detail(request: Request, session_id: str) -> Dict[str, Any]:
    session = _orchestrator(request).store.get(session_id)
    return {"row": session_row(session), "session": session_to_dict(session)}


@app.delete("/api/sessions/{session_id}", status_code=204)
async def delete_session(request: Request, session_id: str) -> None:
    _orchestrator(request).delete(session_id)


@app.post("/api/sessions/{session_id}/select", response_model=SessionResp)
async def select_session(request: Request, session_id: str) -> SessionResp:
    orch = _orchestrator(request)
    orch.store.set_current(session_id)
    return _session_resp(orch, orch.store.get(session_id))


@app.post("/api/sessions/{session_id}/fields", response_model=SessionResp)
async def submit_field(request: Request, session_id: str, req: FieldReq) -> SessionResp:
    orch = _orchestrator(request)
    await orch.submit_field(session_id, req.value)
    return _session_resp(orch, orch.store.get(session_id))


@app.post("/api/sessions/{session_id}/start", response_model=SessionResp)
async def start_interview(request: Request, session_id: str) -> SessionResp:
    orch = _orchestrator(request)
    session = await orch.start_interview(session_id)
    return _session_resp(orch, session)


@app.post("/api/sessions/{session_id}/stage", response_model=SessionResp)
async def stage_answer(request: Request, session_id: str, req: AnswerReq) -> SessionResp:
    orch = _orchestrator(request)
    orch.stage_answer(session_id, req.answer or "")
    return _session_resp(orch, orch.store.get(session_id))


@app.post("/api/sessions/{session_id}/answer", response_model=EvaluationResp)
async def submit_answer(request: Request, session_id: str, req: AnswerReq) -> EvaluationResp:
    orch = _orchestrator(request)
    evaluation = await orch.submit_answer(session_id, req.answer)
    session = orch.store.get(session_id)
    return EvaluationResp(
        accepted=evaluation is not None,
        score=evaluation.score if evaluation else None,
        feedback=evaluation.feedback if evaluation else None,
        session=_session_resp(orch, session),
    )


@app.post("/api/sessions/{session_id}/retry-scoring", response_model=EvaluationResp)
async def retry_scoring(request: Request, session_id: str) -> EvaluationResp:
    orch = _orchestrator(request)
    evaluation = await orch.retry_scoring(session_id)
    return EvaluationResp(
        accepted=evaluation is not None,
        score=evaluation.score if evaluation else None,
        feedback=evaluation.feedback if evaluation else None,
        session=_session_resp(orch, orch.store.get(session_id)),
    )


@app.post("/api/sessions/{session_id}/pause", response_model=SessionResp)
async def pause_session(request: Request, session_id: str) -> SessionResp:
    orch = _orchestrator(request)
    orch.pause(session_id)
    return _session_resp(orch, orch.store.get(session_id))


@app.post("/api/sessions/{session_id}/resume", response_model=SessionResp)
async def resume_session(request: Request, session_id: str) -> SessionResp:
    orch = _orchestrator(request)
    session = await orch.resume(session_id)
    return _session_resp(orch, session)


@app.get("/api/export/{session_id}")
async def export_session(request: Request, session_id: str) -> Dict[str, Any]:
    return session_to_dict(_orchestrator(request).store.get(session_id))


@app.get("/api/telemetry")
async def telemetry(request: Request) -> Dict[str, Any]:
    return _orchestrator(request).telemetry.summary()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
