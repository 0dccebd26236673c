"""Health check endpoint with database and session store connectivity checks."""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.api.deps import get_app_settings, get_session_manager
from app.core.config import Settings
from app.core.database import check_db_connected, get_db
from app.schemas.health import HealthResponse
from app.services.sessions import SessionManager

router = APIRouter()


@router.get("", response_model=HealthResponse)
async def get_health(
    db: Annotated[Session, Depends(get_db)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> HealthResponse:
    """
    Return service health status plus database and Redis connectivity.
    Used by load balancers and monitoring.
    """
    db_ok = await run_in_threadpool(check_db_connected, db)
    store_ok = await sessions.store.ping()

    return HealthResponse(
        status="ok" if db_ok and store_ok else "degraded",
        environment=settings.APP_ENV,
        database="connected" if db_ok else "disconnected",
        session_store="connected" if store_ok else "disconnected",
    )
