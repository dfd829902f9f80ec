"""루트박스 할당 엔진

배치 open 흐름:
    권한 → 일시정지 → 재진입 검사
    원장 트랜잭션 안에서 quantity 회 반복:
        (보장 등급 지급) → 등급 추첨 → 아이템 결정 → 이전/발행 위임
    성공 시 요약 알림 1회 발행. 실패 시 원장/시드 모두 되돌리고 알림 없음.

상태(확률표, 재고, 템플릿, 시드)는 엔진 인스턴스 하나가 소유한다.
"""

from __future__ import annotations

import functools
import threading
from contextlib import contextmanager
from typing import Iterable, Iterator, Mapping, Optional

from src.core.event_bus import EventBus, LootEvent
from src.core.event_types import EventTypes
from src.core.logging import get_logger

from .access import AccessControl, PauseGate
from .defaults import DEFAULT_PROBABILITY_TABLES, DEFAULT_TIER_SETTINGS, box_item_id
from .errors import (
    InsufficientBoxes,
    InsufficientInventory,
    ReentrantCall,
    SystemPaused,
    TierDisabled,
    Unauthorized,
    UnmintedNotSupported,
)
from .inventory import InventoryEntry, InventoryRegistry
from .ledger import ItemLedger
from .models import (
    NUM_CLASSES,
    Allocation,
    AllocationOutcome,
    GenerationTemplate,
    ProbabilityTable,
    RarityClass,
    Tier,
    TierMetadata,
    TierSettings,
)
from .probability import ProbabilityTableRegistry, draw_class
from .randomness import RandomnessSource
from .templates import TemplateRegistry

logger = get_logger(__name__)

EVENT_SOURCE = "lootbox_engine"


def admin_operation(operation: str):
    """관리자 전용 + 일시정지 게이트. 검사 실패 시 부작용 없음."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(self: "LootBoxEngine", caller: str, *args, **kwargs):
            self._require_authorized(caller, operation)
            self._require_not_paused(operation)
            with self._chain():
                return func(self, caller, *args, **kwargs)

        return wrapper

    return decorator


class LootBoxEngine:
    """할당 엔진. 관리 API + open/unpack."""

    def __init__(
        self,
        ledger: ItemLedger,
        access: AccessControl,
        randomness: RandomnessSource,
        event_bus: EventBus | None = None,
        pause_gate: PauseGate | None = None,
        *,
        holder: str,
        operator: str,
        name: str = "Loot Box",
        symbol: str = "LOOTBOX",
        base_uri: str = "",
        tables: Mapping[Tier, Iterable[int]] | None = None,
        tier_settings: Mapping[Tier, TierSettings] | None = None,
        inventory: InventoryRegistry | None = None,
        templates: TemplateRegistry | None = None,
    ) -> None:
        self._ledger = ledger
        self._access = access
        self._randomness = randomness
        self._bus = event_bus or EventBus()
        self._pause_gate = pause_gate or PauseGate()
        self._holder = holder
        self._operator = operator
        self._name = name
        self._symbol = symbol
        self._base_uri = base_uri

        self._tables = ProbabilityTableRegistry(
            DEFAULT_PROBABILITY_TABLES if tables is None else tables
        )
        self._tier_settings: dict[Tier, TierSettings] = dict(DEFAULT_TIER_SETTINGS)
        self._tier_settings.update(tier_settings or {})
        self._inventory = inventory or InventoryRegistry()
        self._templates = templates or TemplateRegistry()

        self._in_flight = threading.Lock()
        self._op_depth = 0
        self._approval_checked = False

    # === 조회 ===

    @property
    def holder(self) -> str:
        return self._holder

    @property
    def paused(self) -> bool:
        return self._pause_gate.is_paused()

    def tier_metadata(self, tier: Tier) -> TierMetadata:
        tier = Tier(tier)
        return TierMetadata(
            tier=tier,
            name=self._name,
            symbol=self._symbol,
            uri=f"{self._base_uri}{int(tier)}",
        )

    def get_table(self, tier: Tier) -> ProbabilityTable:
        return self._tables.get_table(tier)

    def get_tier_settings(self, tier: Tier) -> TierSettings:
        return self._tier_settings[Tier(tier)]

    def inventory_view(self) -> dict[RarityClass, InventoryEntry]:
        return self._inventory.snapshot()

    def templates_for(self, rarity_class: RarityClass) -> list[GenerationTemplate]:
        return self._templates.templates_for(rarity_class)

    # === 관리: 확률표 / 등급 설정 ===

    @admin_operation("set_probability_table")
    def set_probability_table(
        self, caller: str, tier: Tier, weights: Iterable[int]
    ) -> ProbabilityTable:
        table = self._tables.set_table(tier, weights)
        self._emit(
            EventTypes.PROBABILITY_TABLE_SET,
            {"tier": int(tier), "weights": list(table), "by": caller},
        )
        return table

    @admin_operation("set_tier_settings")
    def set_tier_settings(
        self,
        caller: str,
        tier: Tier,
        max_quantity_per_open: int,
        guarantees: Optional[Iterable[int]] = None,
    ) -> TierSettings:
        """max_quantity_per_open=0이면 해당 등급 open 불가."""
        guarantee_tuple = tuple(int(g) for g in (guarantees or (0,) * NUM_CLASSES))
        if len(guarantee_tuple) != NUM_CLASSES or any(g < 0 for g in guarantee_tuple):
            raise ValueError(f"guarantees must be {NUM_CLASSES} non-negative counts")
        if max_quantity_per_open < 0:
            raise ValueError("max_quantity_per_open must be >= 0")
        settings = TierSettings(
            max_quantity_per_open=max_quantity_per_open,
            guarantees=guarantee_tuple,  # type: ignore[arg-type]
        )
        self._tier_settings[Tier(tier)] = settings
        self._emit(
            EventTypes.TIER_SETTINGS_SET,
            {
                "tier": int(tier),
                "max_quantity_per_open": max_quantity_per_open,
                "guarantees": list(guarantee_tuple),
            },
        )
        return settings

    # === 관리: 재고 / 템플릿 ===

    @admin_operation("add_item")
    def add_item(self, caller: str, rarity_class: RarityClass, item_id: str) -> None:
        self._inventory.add_item(rarity_class, item_id)
        self._emit_inventory_changed(rarity_class)

    @admin_operation("replace_items")
    def replace_items(
        self, caller: str, rarity_class: RarityClass, item_ids: Iterable[str]
    ) -> None:
        self._inventory.replace_items(rarity_class, item_ids)
        self._emit_inventory_changed(rarity_class)

    @admin_operation("reset_class")
    def reset_class(self, caller: str, rarity_class: RarityClass) -> None:
        self._inventory.reset(rarity_class)
        self._emit(EventTypes.CLASS_RESET, {"rarity_class": int(rarity_class)})

    @admin_operation("register_template")
    def register_template(self, caller: str, template: GenerationTemplate) -> None:
        """생성 모드 템플릿 등록. 같은 item_id는 덮어쓴다."""
        self._templates.register(template)
        self._emit(
            EventTypes.TEMPLATE_REGISTERED,
            {"item_id": template.item_id, "rarity_class": int(template.rarity_class)},
        )

    # === 관리: 보유자 재고 / 운영자 승인 ===

    @admin_operation("stock_item")
    def stock_item(self, caller: str, item_id: str, amount: int) -> int:
        """보유자 계정에 기존 아이템 재고 적재. 반환: 적재 후 잔고."""
        if not item_id:
            raise ValueError("item_id must not be empty")
        if amount <= 0:
            raise ValueError("amount must be > 0")
        self._ledger.deposit(self._holder, item_id, amount)
        balance = self._ledger.balance_of(self._holder, item_id)
        self._emit(
            EventTypes.STOCK_DEPOSITED,
            {"item_id": item_id, "amount": amount, "balance": balance},
        )
        return balance

    @admin_operation("set_operator_approval")
    def set_operator_approval(self, caller: str, approved: bool = True) -> None:
        """보유자 재고에 대한 엔진 운영자의 일괄 이전 승인."""
        self._ledger.set_approval_for_all(self._holder, self._operator, approved)
        self._emit(
            EventTypes.OPERATOR_APPROVAL_SET,
            {"holder": self._holder, "operator": self._operator, "approved": approved},
        )

    def operator_approved(self) -> bool:
        return self._ledger.is_approved_for_all(self._holder, self._operator)

    # === 관리: 시드 / 일시정지 ===

    @admin_operation("set_seed")
    def set_seed(self, caller: str, value: int) -> None:
        self._randomness.set_seed(value)
        self._emit(EventTypes.SEED_SET, {"by": caller})

    @admin_operation("pause")
    def pause(self, caller: str) -> None:
        self._pause_gate.set_paused(True)
        logger.warning("Loot box engine paused by %s", caller)
        self._emit(EventTypes.PAUSED, {"by": caller})

    def unpause(self, caller: str) -> None:
        """일시정지 중에도 허용되는 유일한 변경 작업."""
        self._require_authorized(caller, "unpause")
        if not self._pause_gate.is_paused():
            logger.info("Unpause requested by %s but engine is not paused", caller)
            return
        with self._chain():
            self._pause_gate.set_paused(False)
            logger.info("Loot box engine resumed by %s", caller)
            self._emit(EventTypes.UNPAUSED, {"by": caller})

    @admin_operation("mint_boxes")
    def mint_boxes(self, caller: str, tier: Tier, recipient: str, quantity: int) -> None:
        """recipient에게 박스 토큰 지급 (unpack 용)."""
        if quantity <= 0:
            raise ValueError("quantity must be > 0")
        tier = Tier(tier)
        box = GenerationTemplate(
            item_id=box_item_id(tier),
            rarity_class=RarityClass.COMMON,
            name=f"{self._name} #{int(tier)}",
            attributes={"kind": "lootbox", "tier": int(tier)},
        )
        self._ledger.mint(box, recipient, quantity)
        logger.info("Minted %d %s boxes to %s", quantity, tier.name, recipient)

    # === 할당 ===

    def open(
        self, caller: str, tier: Tier, recipient: str, quantity: int
    ) -> AllocationOutcome:
        """관리자 직접 open. 전부 성공하거나 아무 효과도 남기지 않는다."""
        self._require_authorized(caller, "open")
        self._require_not_paused("open")
        with self._chain(), self._exclusive("open"):
            outcome = self._run_batch(caller, Tier(tier), recipient, quantity)
            self._emit_opened(outcome, via="open")
        return outcome

    def unpack(self, caller: str, tier: Tier, quantity: int) -> AllocationOutcome:
        """보유 박스 quantity개를 소모하고 내용물을 caller에게 지급."""
        self._require_not_paused("unpack")
        with self._chain(), self._exclusive("unpack"):
            tier = Tier(tier)
            held = self._ledger.balance_of(caller, box_item_id(tier))
            if held < quantity:
                raise InsufficientBoxes(
                    f"{caller} holds {held} {tier.name} boxes, needs {quantity}"
                )
            outcome = self._run_batch(caller, tier, caller, quantity, burn_boxes=True)
            self._emit_opened(outcome, via="unpack")
        return outcome

    def resolve_item(
        self, rarity_class: RarityClass, min_amount: int, caller: str
    ) -> str:
        """등급 → 구체 아이템 ID. 시드를 전진시키지만 원장은 건드리지 않는다.

        생성 모드: 같은 등급 템플릿 중 균등 추첨 (재고 확인 없음).
        큐레이션: 무작위 시작점부터 순환 탐색, 보유자 잔고 >= min_amount인 첫 아이템.
        """
        rarity_class = RarityClass(rarity_class)
        if not self._inventory.is_curated(rarity_class):
            candidates = self._templates.templates_for(rarity_class)
            if not candidates:
                raise UnmintedNotSupported(rarity_class)
            index = self._randomness.next(caller) % len(candidates)
            return candidates[index].item_id

        item_ids = self._inventory.items_for(rarity_class)
        if not item_ids:
            raise InsufficientInventory(rarity_class, min_amount)
        start = self._randomness.next(caller) % len(item_ids)
        for offset in range(len(item_ids)):
            item_id = item_ids[(start + offset) % len(item_ids)]
            if self._ledger.balance_of(self._holder, item_id) >= min_amount:
                return item_id
        raise InsufficientInventory(rarity_class, min_amount)

    def _run_batch(
        self,
        caller: str,
        tier: Tier,
        recipient: str,
        quantity: int,
        burn_boxes: bool = False,
    ) -> AllocationOutcome:
        if quantity < 0:
            raise ValueError("quantity must be >= 0")
        settings = self._tier_settings[tier]
        if settings.max_quantity_per_open <= 0:
            raise TierDisabled(f"{tier.name} boxes cannot be opened")
        table = self._tables.get_table(tier)

        seed_state = self._randomness.snapshot()
        self._approval_checked = False
        allocations: list[Allocation] = []
        try:
            with self._ledger.transaction():
                if burn_boxes:
                    self._ledger.burn(caller, box_item_id(tier), quantity)
                for _ in range(quantity):
                    sent = 0
                    if settings.has_guarantees:
                        for rarity_class, count in zip(RarityClass, settings.guarantees):
                            if count > 0:
                                allocations.append(
                                    self._send(caller, rarity_class, recipient, count)
                                )
                                sent += count
                    while sent < settings.max_quantity_per_open:
                        rarity_class = draw_class(table, self._randomness.next(caller))
                        allocations.append(
                            self._send(caller, rarity_class, recipient, 1)
                        )
                        sent += 1
        except Exception as e:
            self._randomness.restore(seed_state)
            logger.warning(
                "Batch %s x%d for %s aborted after %d allocations: %s",
                tier.name,
                quantity,
                recipient,
                len(allocations),
                e,
            )
            raise

        fulfilled = sum(a.amount for a in allocations)
        logger.info(
            "Opened %d %s boxes for %s (%d units)", quantity, tier.name, recipient, fulfilled
        )
        return AllocationOutcome(
            tier=tier,
            recipient=recipient,
            quantity=quantity,
            fulfilled=fulfilled,
            allocations=tuple(allocations),
        )

    def _send(
        self, caller: str, rarity_class: RarityClass, recipient: str, amount: int
    ) -> Allocation:
        """아이템 하나를 결정하고 원장에 이전/발행을 위임."""
        item_id = self.resolve_item(rarity_class, amount, caller)
        if self._inventory.is_curated(rarity_class):
            self._check_approval()
            self._ledger.transfer(self._holder, recipient, item_id, amount)
            return Allocation(rarity_class, item_id, amount, minted=False)

        template = self._templates.get(item_id)
        self._ledger.mint(template, recipient, amount)
        return Allocation(rarity_class, item_id, amount, minted=True)

    def _check_approval(self) -> None:
        """배치당 1회. 승인 누락은 경고만 하고 진행한다."""
        if self._approval_checked:
            return
        self._approval_checked = True
        if not self._ledger.is_approved_for_all(self._holder, self._operator):
            logger.warning(
                "Engine operator %s is not approved to move stock held by %s",
                self._operator,
                self._holder,
            )
            self._emit(
                EventTypes.APPROVAL_WARNING,
                {"holder": self._holder, "operator": self._operator},
            )

    # === 게이트 ===

    def _require_authorized(self, caller: str, operation: str) -> None:
        if not self._access.is_authorized(caller):
            logger.warning("Unauthorized %s attempt by %s", operation, caller)
            raise Unauthorized(caller, operation)

    def _require_not_paused(self, operation: str) -> None:
        if self._pause_gate.is_paused():
            logger.info("Rejected %s: engine is paused", operation)
            raise SystemPaused(f"{operation} rejected: engine is paused")

    @contextmanager
    def _exclusive(self, operation: str) -> Iterator[None]:
        """진행 중 플래그. 모든 종료 경로에서 해제된다."""
        if not self._in_flight.acquire(blocking=False):
            logger.error("Rejected reentrant %s while a batch is in flight", operation)
            raise ReentrantCall(f"{operation} rejected: another batch is in flight")
        try:
            yield
        finally:
            self._in_flight.release()

    # === 알림 ===

    def _emit(self, event_type: str, data: dict) -> None:
        self._bus.emit(LootEvent(event_type=event_type, data=data, source=EVENT_SOURCE))

    def _emit_inventory_changed(self, rarity_class: RarityClass) -> None:
        self._emit(
            EventTypes.INVENTORY_CHANGED,
            {
                "rarity_class": int(rarity_class),
                "curated": self._inventory.is_curated(rarity_class),
                "item_count": len(self._inventory.items_for(rarity_class)),
            },
        )

    def _emit_opened(self, outcome: AllocationOutcome, via: str) -> None:
        self._emit(
            EventTypes.LOOTBOX_OPENED,
            {
                "tier": int(outcome.tier),
                "recipient": outcome.recipient,
                "quantity": outcome.quantity,
                "fulfilled": outcome.fulfilled,
                "via": via,
            },
        )

    @contextmanager
    def _chain(self) -> Iterator[None]:
        """최상위 작업이 끝나면 버스 중복 추적 초기화."""
        self._op_depth += 1
        try:
            yield
        finally:
            self._op_depth -= 1
            if self._op_depth == 0:
                self._bus.reset_chain()
