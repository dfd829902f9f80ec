"""Shared test fixtures."""

from typing import Callable

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.core.event_bus import EventBus, LootEvent
from src.core.event_types import EventTypes
from src.core.loot.access import AccessControl
from src.core.loot.engine import LootBoxEngine
from src.core.loot.ledger import InMemoryItemLedger
from src.core.loot.randomness import SequenceRandomness
from src.db.models import Base

OWNER = "owner"
ADMIN = "ops"
HOLDER = "treasury"
OPERATOR = "lootbox_engine"
BASE_URI = "https://lootbox.example/api/box/"


@pytest.fixture()
def ledger() -> InMemoryItemLedger:
    return InMemoryItemLedger()


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def events(bus: EventBus) -> dict[str, list[LootEvent]]:
    """주요 이벤트 수집기"""
    received: dict[str, list[LootEvent]] = {
        EventTypes.LOOTBOX_OPENED: [],
        EventTypes.APPROVAL_WARNING: [],
    }
    for event_type, bucket in received.items():
        bus.subscribe(event_type, bucket.append)
    return received


@pytest.fixture()
def make_engine(
    ledger: InMemoryItemLedger, bus: EventBus
) -> Callable[..., LootBoxEngine]:
    """LootBoxEngine 팩토리. randomness 미지정 시 [0] 반복."""

    def _make(randomness=None, **kwargs) -> LootBoxEngine:
        kwargs.setdefault("ledger", ledger)
        return LootBoxEngine(
            access=AccessControl(owner=OWNER, admins=[ADMIN]),
            randomness=randomness or SequenceRandomness([0]),
            event_bus=bus,
            holder=HOLDER,
            operator=OPERATOR,
            base_uri=BASE_URI,
            **kwargs,
        )

    return _make


@pytest.fixture()
def db_session() -> Session:
    """인메모리 SQLite 세션"""
    db_engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(db_engine)
    session = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
