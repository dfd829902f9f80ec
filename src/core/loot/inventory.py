"""큐레이션 재고 저장소

등급별로 기존 아이템 ID 목록 + curated 플래그를 관리한다.
curated=False인 등급은 생성 모드(템플릿 mint)로 폴백한다.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from .models import RarityClass

logger = logging.getLogger(__name__)


@dataclass
class InventoryEntry:
    """등급별 재고 항목"""

    item_ids: list[str] = field(default_factory=list)
    curated: bool = False


class InventoryRegistry:
    """등급별 큐레이션 재고. 용량 제한 없음."""

    def __init__(self) -> None:
        self._entries: dict[RarityClass, InventoryEntry] = {
            cls: InventoryEntry() for cls in RarityClass
        }

    def add_item(self, rarity_class: RarityClass, item_id: str) -> None:
        """목록 끝에 추가하고 curated로 전환."""
        entry = self._entries[RarityClass(rarity_class)]
        if not entry.curated:
            logger.info("%s switched to curated inventory", RarityClass(rarity_class).name)
        entry.item_ids.append(item_id)
        entry.curated = True

    def replace_items(self, rarity_class: RarityClass, item_ids: Iterable[str]) -> None:
        """통째 교체. 빈 목록이어도 curated=True가 된다.

        이후 해당 등급 추첨은 생성 모드로 폴백하지 않고 InsufficientInventory로 실패한다.
        """
        entry = self._entries[RarityClass(rarity_class)]
        entry.item_ids = list(item_ids)
        entry.curated = True
        if not entry.item_ids:
            logger.warning(
                "%s is curated with an empty item list; draws will fail",
                RarityClass(rarity_class).name,
            )

    def reset(self, rarity_class: RarityClass) -> None:
        """목록과 플래그를 비워 생성 모드로 되돌린다."""
        self._entries[RarityClass(rarity_class)] = InventoryEntry()

    def is_curated(self, rarity_class: RarityClass) -> bool:
        return self._entries[RarityClass(rarity_class)].curated

    def items_for(self, rarity_class: RarityClass) -> list[str]:
        """사본 반환."""
        return list(self._entries[RarityClass(rarity_class)].item_ids)

    def snapshot(self) -> dict[RarityClass, InventoryEntry]:
        """조회용 사본"""
        return {
            cls: InventoryEntry(item_ids=list(e.item_ids), curated=e.curated)
            for cls, e in self._entries.items()
        }
