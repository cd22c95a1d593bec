# backend/formadb/main.py
"""
FastAPI application: CORS, typed-error handler, health checks and routers.
"""

import logging
import os
from typing import List

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .database import read_engine
from .errors import TrainingError
from .apps.accounts.router_public import router as accounts_public_router
from .apps.accounts.router_admin import router as accounts_admin_router
from .apps.training.router_formations import router as formations_router
from .apps.training.router_sessions import router as sessions_router
from .apps.training.router_attendance import router as attendance_router
from .apps.training.router_admin import router as training_admin_router
from .apps.training.router_student import router as student_router
from .apps.voice.router import router as voice_router

logger = logging.getLogger(__name__)

DEV_ORIGINS = (
    "http://127.0.0.1:5173",
    "http://localhost:5173",
    "http://localhost:3000",
)


def _allowed_origins() -> List[str]:
    """CORS_ALLOWED_ORIGINS is comma-separated; local dev servers when unset."""
    configured = [o.strip() for o in os.getenv("CORS_ALLOWED_ORIGINS", "").split(",") if o.strip()]
    return configured or list(DEV_ORIGINS)


app = FastAPI(title="Formation Portal API", version="1.0.0")

cors_origins = _allowed_origins()
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    # Browsers reject credentials with a wildcard origin.
    allow_credentials="*" not in cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TrainingError)
async def training_error_handler(request: Request, exc: TrainingError) -> JSONResponse:
    # Routers translate the errors they expect; this catches the rest.
    logger.info(
        "Unhandled business error",
        extra={"path": request.url.path, "code": exc.code, "detail": exc.detail},
    )
    return JSONResponse(
        status_code=exc.http_status,
        content={"detail": {"code": exc.code, "message": exc.detail}},
    )


@app.get("/", tags=["health"])
def read_root():
    return {"status": "ok", "message": "Formation Portal backend is running"}


@app.get("/health", tags=["health"])
def health():
    try:
        with read_engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        return JSONResponse(status_code=503, content={"status": "degraded", "database": "unreachable"})
    return {"status": "ok", "database": "ok"}


for _router in (
    accounts_public_router,
    accounts_admin_router,
    formations_router,
    sessions_router,
    attendance_router,
    training_admin_router,
    student_router,
    voice_router,
):
    app.include_router(_router)
