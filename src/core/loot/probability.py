"""확률표 저장소 + 등급 추첨 — 순수 Python, 외부 의존 없음"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from .models import (
    INVERSE_BASIS_POINT,
    NUM_CLASSES,
    ProbabilityTable,
    RarityClass,
    Tier,
)

logger = logging.getLogger(__name__)


def normalize_table(weights: Iterable[int]) -> ProbabilityTable:
    """길이 4, 음수 없는 정수 튜플로 변환. 합계/단조성은 검사하지 않는다."""
    table = tuple(int(w) for w in weights)
    if len(table) != NUM_CLASSES:
        raise ValueError(f"Probability table needs {NUM_CLASSES} weights, got {len(table)}")
    if any(w < 0 for w in table):
        raise ValueError(f"Negative weight in probability table: {table}")
    return table  # type: ignore[return-value]


def table_warnings(table: ProbabilityTable) -> list[str]:
    """의도된 불변식(합계 10000, 희귀할수록 작거나 같음) 위반 목록."""
    warnings: list[str] = []
    total = sum(table)
    if total != INVERSE_BASIS_POINT:
        warnings.append(f"weights sum to {total}, expected {INVERSE_BASIS_POINT}")
    if any(table[i] < table[i + 1] for i in range(NUM_CLASSES - 1)):
        warnings.append("weights are not non-increasing by rarity")
    return warnings


def draw_class(table: ProbabilityTable, random_value: int) -> RarityClass:
    """역순 누적 차감 추첨.

    v = random_value mod 10000.
    index 3 → 1 순서로 v < table[index]이면 해당 등급, 아니면 v에서 차감.
    어느 것도 아니면 COMMON (잔여 확률 + 비정상 표의 기본값).
    """
    value = random_value % INVERSE_BASIS_POINT
    for index in range(NUM_CLASSES - 1, 0, -1):
        probability = table[index]
        if value < probability:
            return RarityClass(index)
        value -= probability
    return RarityClass.COMMON


class ProbabilityTableRegistry:
    """등급(Tier)별 확률표. 갱신은 통째 교체만."""

    def __init__(self, tables: Mapping[Tier, Iterable[int]] | None = None) -> None:
        self._tables: dict[Tier, ProbabilityTable] = {
            tier: (INVERSE_BASIS_POINT, 0, 0, 0) for tier in Tier
        }
        for tier, weights in (tables or {}).items():
            self._tables[Tier(tier)] = normalize_table(weights)

    def set_table(self, tier: Tier, weights: Iterable[int]) -> ProbabilityTable:
        """무조건 교체. 불변식 위반은 경고 로그만 남긴다."""
        table = normalize_table(weights)
        for warning in table_warnings(table):
            logger.warning("Probability table for %s: %s", Tier(tier).name, warning)
        self._tables[Tier(tier)] = table
        return table

    def get_table(self, tier: Tier) -> ProbabilityTable:
        return self._tables[Tier(tier)]
