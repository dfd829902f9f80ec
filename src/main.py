"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI

from src.api.health import router as health_router
from src.api.lootbox import router as lootbox_router
from src.config import settings
from src.core.event_bus import EventBus
from src.core.logging import get_logger, setup_logging
from src.core.loot.access import AccessControl, PauseGate
from src.core.loot.engine import LootBoxEngine
from src.core.loot.randomness import ClockEntropy, HashRandomness
from src.core.loot.templates import TemplateRegistry
from src.db.database import SessionLocal, engine as db_engine
from src.db.models import Base
from src.services.ledger_service import SqlItemLedger

setup_logging(settings.LOG_LEVEL)
logger = get_logger(__name__)


def build_lootbox_engine(ledger: SqlItemLedger, event_bus: EventBus) -> LootBoxEngine:
    """설정값으로 LootBoxEngine 조립"""
    templates = TemplateRegistry()
    if settings.TEMPLATES_PATH and Path(settings.TEMPLATES_PATH).exists():
        templates.load_from_json(settings.TEMPLATES_PATH)
    elif settings.TEMPLATES_PATH:
        logger.warning("Template file not found: %s", settings.TEMPLATES_PATH)

    return LootBoxEngine(
        ledger=ledger,
        access=AccessControl(owner=settings.OWNER_ID),
        randomness=HashRandomness(ClockEntropy(), seed=settings.INITIAL_SEED),
        event_bus=event_bus,
        pause_gate=PauseGate(),
        holder=settings.STOCK_HOLDER_ID,
        operator=settings.ENGINE_OPERATOR_ID,
        name=settings.LOOTBOX_NAME,
        symbol=settings.LOOTBOX_SYMBOL,
        base_uri=settings.LOOTBOX_BASE_URI,
        templates=templates,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=db_engine)
    logger.info("Database tables created.")

    logger.info("Initializing LootBoxEngine...")
    event_bus = EventBus()
    db_session = SessionLocal()
    ledger = SqlItemLedger(db_session)
    app.state.event_bus = event_bus
    app.state.ledger = ledger
    app.state.lootbox_engine = build_lootbox_engine(ledger, event_bus)
    logger.info(
        "LootBoxEngine initialized (holder=%s, operator=%s)",
        settings.STOCK_HOLDER_ID,
        settings.ENGINE_OPERATOR_ID,
    )

    yield

    logger.info("Shutting down...")
    db_session.close()


app = FastAPI(title="Loot Box Allocation Engine", lifespan=lifespan)

app.include_router(health_router)
app.include_router(lootbox_router)
