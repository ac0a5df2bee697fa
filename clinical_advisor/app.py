from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse, JSONResponse
from sqlmodel import SQLModel
from contextlib import asynccontextmanager
from typing import List, Optional
from loguru import logger
import os

from . import __version__
from .assessment import AssessmentService, GENERIC_FAILURE_NOTICE
from .config import KnowledgeBase, Settings, configure_logging, get_settings
from .errors import (
    AssessmentRequestError,
    IncompleteSubmissionError,
    SessionBusyError,
    SessionNotFoundError,
    UnknownFieldError,
)
from .gemini import GeminiClient
from .history import clear_history, list_history, make_engine
from .render import present_assessment, render_markdown
from .schemas import (
    CreateSessionRequest,
    FieldUpdate,
    HistoryItem,
    NarrativeReport,
    ResetRequest,
    ResetResponse,
    SessionState,
    SymptomsUpdate,
)
from .sessions import FormSession, SessionStore
from .vitals import assess_vitals

frontend_dir = os.path.join(os.path.dirname(__file__), "frontend")


def session_state(session: FormSession) -> SessionState:
    """Snapshot of a session as the page sees it. Vitals are recomputed every time."""
    return SessionState(
        session_id=session.session_id,
        mode=session.mode,
        profile=session.profile.model_dump(),
        symptoms=session.symptoms,
        busy=session.busy,
        assessment=present_assessment(session.result) if session.result else None,
        report=(
            NarrativeReport(markdown=session.report, html=str(render_markdown(session.report)))
            if session.report is not None
            else None
        ),
        vitals=assess_vitals(session.profile) if session.mode == "narrative" else [],
    )


def create_app(settings: Optional[Settings] = None, gemini_client=None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    # -----------------------------
    # STARTUP
    # -----------------------------
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Load knowledge texts and create the history table."""
        knowledge = KnowledgeBase.load(settings)
        client = gemini_client or GeminiClient(settings)
        engine = make_engine(settings.database_url)
        SQLModel.metadata.create_all(engine)

        app.state.engine = engine
        app.state.sessions = SessionStore(idle_timeout=settings.session_idle_timeout)
        app.state.assessor = AssessmentService(
            knowledge=knowledge,
            client=client,
            engine=engine,
        )
        logger.info("Clinical advisor ready (model={})", settings.llm_model)
        yield
        if gemini_client is None:
            await client.aclose()
        engine.dispose()

    app = FastAPI(
        title="Clinical Advisor (Gemini)",
        version=__version__,
        lifespan=lifespan,
    )

    # -----------------------------
    # CORS MIDDLEWARE
    # -----------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------
    # ERROR MAPPING
    # -----------------------------
    @app.exception_handler(IncompleteSubmissionError)
    async def incomplete_submission(request: Request, exc: IncompleteSubmissionError):
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(UnknownFieldError)
    async def unknown_field(request: Request, exc: UnknownFieldError):
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(SessionNotFoundError)
    async def session_not_found(request: Request, exc: SessionNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(SessionBusyError)
    async def session_busy(request: Request, exc: SessionBusyError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(AssessmentRequestError)
    async def request_failed(request: Request, exc: AssessmentRequestError):
        # The cause is logged by the service; the user only gets the generic notice.
        return JSONResponse(status_code=502, content={"detail": GENERIC_FAILURE_NOTICE})

    # -----------------------------
    # FRONTEND SERVING
    # -----------------------------
    app.mount("/static", StaticFiles(directory=frontend_dir), name="static")

    @app.get("/", include_in_schema=False)
    def serve_frontend():
        return FileResponse(os.path.join(frontend_dir, "index.html"))

    @app.get("/health")
    def health():
        return {"ok": True, "model": settings.llm_model}

    # -----------------------------
    # FORM SESSIONS
    # -----------------------------
    @app.post("/api/sessions", response_model=SessionState, status_code=201)
    async def create_session(payload: CreateSessionRequest, request: Request):
        sessions = request.app.state.sessions
        for expired in sessions.prune():
            clear_history(request.app.state.engine, expired)
            logger.debug("Evicted idle session {}", expired)
        session = sessions.create(payload.mode)
        return session_state(session)

    @app.get("/api/sessions/{session_id}", response_model=SessionState)
    async def get_session(session_id: str, request: Request):
        return session_state(request.app.state.sessions.get(session_id))

    @app.delete("/api/sessions/{session_id}", status_code=204)
    async def discard_session(session_id: str, request: Request):
        request.app.state.sessions.discard(session_id)
        clear_history(request.app.state.engine, session_id)

    @app.patch("/api/sessions/{session_id}/profile", response_model=SessionState)
    async def update_profile(session_id: str, payload: FieldUpdate, request: Request):
        session = request.app.state.sessions.get(session_id)
        session.update_field(payload.field, payload.value)
        return session_state(session)

    @app.put("/api/sessions/{session_id}/symptoms", response_model=SessionState)
    async def update_symptoms(session_id: str, payload: SymptomsUpdate, request: Request):
        session = request.app.state.sessions.get(session_id)
        session.update_symptoms(payload.symptoms)
        return session_state(session)

    @app.post("/api/sessions/{session_id}/reset", response_model=ResetResponse)
    async def reset_session(session_id: str, payload: ResetRequest, request: Request):
        session = request.app.state.sessions.get(session_id)
        done = session.reset(payload.confirm)
        if done:
            clear_history(request.app.state.engine, session_id)
        return ResetResponse(reset=done, state=session_state(session))

    # -----------------------------
    # MAIN ENDPOINT - ANALYZE
    # -----------------------------
    @app.post("/api/sessions/{session_id}/assessment", response_model=SessionState)
    async def analyze(session_id: str, request: Request):
        session = request.app.state.sessions.get(session_id)
        await request.app.state.assessor.submit(session)
        return session_state(session)

    # -----------------------------
    # HISTORY ENDPOINTS
    # -----------------------------
    @app.get("/api/sessions/{session_id}/history", response_model=List[HistoryItem])
    async def get_history(session_id: str, request: Request, limit: int = 10):
        request.app.state.sessions.get(session_id)
        records = list_history(request.app.state.engine, session_id, limit=limit)
        return [
            HistoryItem(
                id=r.id,
                mode=r.mode,
                symptoms=r.symptoms,
                outcome=r.outcome,
                timestamp=r.timestamp,
                result=r.result,
            )
            for r in records
        ]

    @app.delete("/api/sessions/{session_id}/history")
    async def delete_history(session_id: str, request: Request):
        request.app.state.sessions.get(session_id)
        clear_history(request.app.state.engine, session_id)
        return {"message": "History cleared"}

    return app


app = create_app()
