"""루트박스 엔진 예외 계층

모든 치명적 오류는 진행 중인 배치를 통째로 되돌린다.
ApprovalWarning은 예외가 아니라 알림(EventTypes.APPROVAL_WARNING)이다.
"""


class LootBoxError(Exception):
    """루트박스 엔진 예외 기반 클래스"""


class Unauthorized(LootBoxError):
    """관리 권한 없음. 부작용 없음."""

    def __init__(self, caller: str, operation: str) -> None:
        super().__init__(f"{caller!r} is not authorized for {operation}")
        self.caller = caller
        self.operation = operation


class SystemPaused(LootBoxError):
    """일시정지 상태에서 변경 작업 시도. 부작용 없음."""


class ReentrantCall(LootBoxError):
    """배치 실행 중 중첩/동시 open 시도. 부작용 없음."""


class UnmintedNotSupported(LootBoxError):
    """생성 모드 등급에 등록된 템플릿이 없음."""

    def __init__(self, rarity_class) -> None:
        super().__init__(f"No generation template registered for {rarity_class.name}")
        self.rarity_class = rarity_class


class InsufficientInventory(LootBoxError):
    """큐레이션 등급의 순환 탐색에서 잔고 충분한 아이템을 찾지 못함."""

    def __init__(self, rarity_class, min_amount: int) -> None:
        super().__init__(
            f"Not enough stock for {rarity_class.name} (need {min_amount})"
        )
        self.rarity_class = rarity_class
        self.min_amount = min_amount


class TierDisabled(LootBoxError):
    """max_quantity_per_open이 0인 등급."""


class InsufficientBoxes(LootBoxError):
    """unpack 요청 수량만큼 박스를 보유하지 않음."""
