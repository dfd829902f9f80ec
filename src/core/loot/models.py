"""루트박스 도메인 모델 (DB 무관)"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

NUM_CLASSES = 4
INVERSE_BASIS_POINT = 10000  # 100% = 10000 bp


class RarityClass(IntEnum):
    """보상 등급. 저장은 희귀한 것이 뒤, 추첨은 희귀한 것부터."""

    COMMON = 0
    RARE = 1
    EPIC = 2
    LEGENDARY = 3


class Tier(IntEnum):
    """박스 등급 (Option). 등급마다 확률표 하나를 가진다."""

    BASIC = 0
    PREMIUM = 1
    GOLD = 2


ProbabilityTable = tuple[int, int, int, int]


@dataclass(frozen=True)
class GenerationTemplate:
    """생성 모드 템플릿 — 불변. Ledger.mint가 소비한다."""

    item_id: str  # "sword_of_embers"
    rarity_class: RarityClass
    name: str = ""
    attributes: dict[str, Any] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class TierSettings:
    """박스 1개를 열 때의 지급 규칙.

    max_quantity_per_open: 박스 1개당 지급 단위 수. 0이면 비활성 등급.
    guarantees: 등급별 보장 지급 수 (RarityClass 인덱스 순).
    """

    max_quantity_per_open: int = 1
    guarantees: tuple[int, int, int, int] = (0, 0, 0, 0)

    @property
    def has_guarantees(self) -> bool:
        return any(g > 0 for g in self.guarantees)


@dataclass(frozen=True)
class TierMetadata:
    """표시용 등급 정보"""

    tier: Tier
    name: str
    symbol: str
    uri: str


@dataclass(frozen=True)
class Allocation:
    """단위 지급 1건"""

    rarity_class: RarityClass
    item_id: str
    amount: int
    minted: bool  # True: 생성 모드, False: 큐레이션 재고 이전


@dataclass(frozen=True)
class AllocationOutcome:
    """open() 한 번의 결과. 저장하지 않고 알림으로 1회 발행."""

    tier: Tier
    recipient: str
    quantity: int  # 요청한 박스 수
    fulfilled: int  # 실제 지급 단위 수
    allocations: tuple[Allocation, ...] = ()
