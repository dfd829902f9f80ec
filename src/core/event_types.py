"""이벤트 유형 상수

루트박스 엔진이 발행하는 알림 목록.
"""


class EventTypes:
    """이벤트 유형 문자열 상수"""

    # allocation
    LOOTBOX_OPENED = "lootbox_opened"
    APPROVAL_WARNING = "approval_warning"

    # admin
    PROBABILITY_TABLE_SET = "probability_table_set"
    TIER_SETTINGS_SET = "tier_settings_set"
    INVENTORY_CHANGED = "inventory_changed"
    CLASS_RESET = "class_reset"
    TEMPLATE_REGISTERED = "template_registered"
    SEED_SET = "seed_set"
    STOCK_DEPOSITED = "stock_deposited"
    OPERATOR_APPROVAL_SET = "operator_approval_set"

    # pause gate
    PAUSED = "paused"
    UNPAUSED = "unpaused"
