"""기본 확률표 / 등급 설정 — 순수 Python, 외부 의존 없음"""

from .models import ProbabilityTable, Tier, TierSettings

# === 등급별 확률표 (basis point, COMMON→LEGENDARY) ===
DEFAULT_PROBABILITY_TABLES: dict[Tier, ProbabilityTable] = {
    Tier.BASIC: (7300, 2100, 400, 200),
    Tier.PREMIUM: (5800, 2900, 900, 400),
    Tier.GOLD: (4000, 3500, 1700, 800),
}

# === 등급별 지급 규칙 ===
DEFAULT_TIER_SETTINGS: dict[Tier, TierSettings] = {
    Tier.BASIC: TierSettings(),
    Tier.PREMIUM: TierSettings(),
    Tier.GOLD: TierSettings(),
}


def box_item_id(tier: Tier) -> str:
    """원장에서 박스 자체를 나타내는 아이템 ID."""
    return f"lootbox:{int(tier)}"
