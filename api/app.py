"""Main FastAPI application with modularized routes."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.config import LOG_LEVEL
from api.database import init_db
from api.routes import backup, exam_configs, imports, questions, results, session, subjects
from core.logging_setup import setup_console_logging
from errors import StudyError

setup_console_logging(LOG_LEVEL)

log = logging.getLogger(__name__)

app = FastAPI(title="Study Bank API")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StudyError)
def study_error_handler(request: Request, exc: StudyError) -> JSONResponse:
    """Every domain error becomes one human-readable message."""
    if exc.status_code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        log.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Startup events
@app.on_event("startup")
def startup_events() -> None:
    """Create tables on startup."""
    init_db()


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# Include routers
app.include_router(subjects.router)
app.include_router(questions.router)
app.include_router(imports.router)
app.include_router(exam_configs.router)
app.include_router(session.router)
app.include_router(results.router)
app.include_router(backup.router)
