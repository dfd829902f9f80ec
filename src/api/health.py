"""Health check endpoint."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.orm import Session

from src.db.database import get_db

router = APIRouter()


@router.get("/health")
def health_check(request: Request, db: Session = Depends(get_db)) -> dict[str, str]:
    """Return application, database and engine gate status."""
    engine = getattr(request.app.state, "lootbox_engine", None)
    engine_status = "missing" if engine is None else (
        "paused" if engine.paused else "running"
    )
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ok", "database": "connected", "engine": engine_status}
    except Exception:
        return {"status": "error", "database": "disconnected", "engine": engine_status}
