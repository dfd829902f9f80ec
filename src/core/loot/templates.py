"""생성 템플릿 저장소 — JSON 로드 + 동적 등록"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from .models import GenerationTemplate, RarityClass

logger = logging.getLogger(__name__)


class TemplateRegistry:
    """
    item_id → GenerationTemplate.
    생성 모드 등급은 여기 등록된 같은 등급 템플릿 중 하나를 mint 한다.
    """

    def __init__(self) -> None:
        self._templates: dict[str, GenerationTemplate] = {}

    def load_from_json(self, path: str | Path) -> int:
        """템플릿 JSON 배열 로드. 반환: 로드된 수량.

        rarity_class는 이름("EPIC") 또는 인덱스(2) 모두 허용.
        """
        path = Path(path)
        with path.open("r", encoding="utf-8") as f:
            raw_list: list[dict] = json.load(f)

        count = 0
        for raw in raw_list:
            try:
                template = GenerationTemplate(
                    item_id=str(raw["item_id"]),
                    rarity_class=parse_rarity_class(raw["rarity_class"]),
                    name=raw.get("name", ""),
                    attributes=dict(raw.get("attributes", {})),
                )
                self.register(template)
                count += 1
            except (KeyError, ValueError) as e:
                logger.warning(
                    "Failed to load template %s: %s", raw.get("item_id", "?"), e
                )

        logger.info("Loaded %d templates from %s", count, path)
        return count

    def register(self, template: GenerationTemplate) -> None:
        """템플릿 등록. 이미 존재하는 item_id면 경고 로그 후 덮어쓴다."""
        if not template.item_id:
            raise ValueError("Template item_id must not be empty")
        if template.item_id in self._templates:
            logger.warning("Overwriting existing template: %s", template.item_id)
        self._templates[template.item_id] = template

    def get(self, item_id: str) -> Optional[GenerationTemplate]:
        """O(1) 조회. 없으면 None."""
        return self._templates.get(item_id)

    def templates_for(self, rarity_class: RarityClass) -> list[GenerationTemplate]:
        """등급별 템플릿. 등록 순서 유지."""
        cls = RarityClass(rarity_class)
        return [t for t in self._templates.values() if t.rarity_class == cls]

    def count(self) -> int:
        return len(self._templates)


def parse_rarity_class(value: str | int) -> RarityClass:
    """"EPIC" / "epic" / 2 → RarityClass.EPIC"""
    if isinstance(value, str) and not value.isdigit():
        try:
            return RarityClass[value.upper()]
        except KeyError:
            raise ValueError(f"Unknown rarity class: {value}") from None
    return RarityClass(int(value))
