"""EventBus - 엔진 알림 전달

엔진은 관리 작업/배치 완료를 LootEvent로 발행하고, 감사 로그나 웹훅 같은
구독자는 버스에 핸들러를 등록한다. 엔진은 구독자를 알지 못한다.

제약:
- 페이로드는 ID와 집계 값만 담는다 (아이템 목록 전체 X)
- 핸들러가 다시 발행하는 연쇄는 MAX_DEPTH 단계까지
- 한 작업 안에서 같은 source의 같은 event_type은 한 번만 전달
- 핸들러 예외는 발행자(엔진)로 전파되지 않는다
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Set

from src.core.logging import get_logger

logger = get_logger(__name__)

MAX_DEPTH = 5


@dataclass
class LootEvent:
    """버스로 전달되는 알림 1건

    Args:
        event_type: EventTypes 상수 (예: "lootbox_opened")
        data: 식별자/수량 위주 페이로드
        source: 발행 컴포넌트 이름
    """

    event_type: str
    data: Dict[str, Any]
    source: str

    # 전달 시점의 연쇄 깊이. 버스가 채운다.
    _depth: int = field(default=0, repr=False)


EventHandler = Callable[[LootEvent], None]


class EventBus:
    """동기 알림 버스

    bus = EventBus()
    bus.subscribe(EventTypes.LOOTBOX_OPENED, audit_log.record)
    engine = LootBoxEngine(..., event_bus=bus)
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._depth = 0
        self._delivered: Set[str] = set()

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        self._subscribers[event_type].append(handler)
        logger.debug(f"EventBus 구독: {event_type} → {_name(handler)}")

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        handlers = self._subscribers.get(event_type)
        if not handlers or handler not in handlers:
            logger.warning(f"EventBus 미등록 핸들러: {event_type} → {_name(handler)}")
            return
        handlers.remove(handler)
        logger.debug(f"EventBus 구독 해제: {event_type} → {_name(handler)}")

    def emit(self, event: LootEvent) -> None:
        """구독 핸들러를 등록 순서대로 호출.

        깊이 초과 또는 같은 작업 내 중복이면 전달하지 않는다.
        """
        if self._depth >= MAX_DEPTH:
            logger.warning(
                f"EventBus 연쇄 깊이 {MAX_DEPTH} 도달: "
                f"{event.source}:{event.event_type} 전달 안 함"
            )
            return

        key = f"{event.source}:{event.event_type}"
        if key in self._delivered:
            logger.warning(f"EventBus 같은 작업 내 중복 차단: {key}")
            return
        self._delivered.add(key)
        event._depth = self._depth

        handlers = list(self._subscribers.get(event.event_type, ()))
        if not handlers:
            logger.debug(f"EventBus: {event.event_type} 구독자 없음")
            return

        logger.info(
            f"EventBus 전달: {event.event_type} (source={event.source}, "
            f"handlers={len(handlers)}, depth={self._depth})"
        )
        self._depth += 1
        try:
            for handler in handlers:
                try:
                    handler(event)
                except Exception:
                    logger.exception(
                        f"EventBus 핸들러 실패: {_name(handler)} "
                        f"(event={event.event_type})"
                    )
        finally:
            self._depth -= 1

    def reset_chain(self) -> None:
        """최상위 작업 종료 시 엔진이 호출."""
        self._delivered.clear()
        self._depth = 0

    def clear(self) -> None:
        """구독 전부 해제"""
        self._subscribers.clear()
        self.reset_chain()

    @property
    def handler_count(self) -> int:
        return sum(len(handlers) for handlers in self._subscribers.values())


def _name(handler: EventHandler) -> str:
    return getattr(handler, "__qualname__", repr(handler))
