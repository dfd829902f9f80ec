"""아이템 원장 인터페이스 + 인메모리 구현

원장은 엔진 외부 협력자다. 엔진은 잔고 조회 후 이전/발행을 위임하고,
배치 전체를 transaction() 안에서 실행해 실패 시 통째로 되돌린다.
"""

from __future__ import annotations

import copy
import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from .models import GenerationTemplate

logger = logging.getLogger(__name__)


class ItemLedger(ABC):
    """엔진이 소비하는 원장 인터페이스"""

    @abstractmethod
    def transfer(self, holder: str, recipient: str, item_id: str, amount: int) -> None:
        """기존 재고 이동. 호출자가 balance_of로 잔고를 이미 확인했다."""
        ...

    @abstractmethod
    def mint(self, template: GenerationTemplate, recipient: str, amount: int) -> None:
        """템플릿으로 새 재고를 만들어 recipient에게 지급."""
        ...

    @abstractmethod
    def burn(self, holder: str, item_id: str, amount: int) -> None:
        ...

    @abstractmethod
    def balance_of(self, holder: str, item_id: str) -> int:
        ...

    @abstractmethod
    def is_approved_for_all(self, holder: str, operator: str) -> bool:
        ...

    @abstractmethod
    def set_approval_for_all(self, holder: str, operator: str, approved: bool) -> None:
        ...

    @abstractmethod
    def deposit(self, holder: str, item_id: str, amount: int) -> None:
        """템플릿 없이 기존 아이템 재고를 holder에게 적재."""
        ...

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[None]:
        """정상 종료 시 확정, 예외 시 블록 안의 모든 변경 취소."""
        ...


class LedgerError(ValueError):
    """원장 수준 불변식 위반 (잔고 음수 등)"""


@dataclass(frozen=True)
class LedgerOperation:
    """원장 작업 기록 1건"""

    kind: str  # "transfer" | "mint" | "burn"
    item_id: str
    amount: int
    recipient: str | None = None
    holder: str | None = None


class InMemoryItemLedger(ItemLedger):
    """dict 기반 원장. transaction()은 스냅샷/복원으로 구현.

    transaction()은 블록 전체 동안 _lock을 쥔다. 복원이 다른 스레드의 쓰기를
    덮어쓰지 않도록 단건 작업도 같은 잠금을 거친다.
    """

    def __init__(self) -> None:
        self._balances: dict[tuple[str, str], int] = defaultdict(int)
        self._approvals: set[tuple[str, str]] = set()
        self._lock = threading.RLock()
        self.operations: list[LedgerOperation] = []

    def transfer(self, holder: str, recipient: str, item_id: str, amount: int) -> None:
        with self._lock:
            if self._balances[(holder, item_id)] < amount:
                raise LedgerError(
                    f"{holder} holds {self._balances[(holder, item_id)]} of {item_id}, "
                    f"cannot transfer {amount}"
                )
            self._balances[(holder, item_id)] -= amount
            self._balances[(recipient, item_id)] += amount
            self.operations.append(
                LedgerOperation(
                    "transfer", item_id, amount, recipient=recipient, holder=holder
                )
            )

    def mint(self, template: GenerationTemplate, recipient: str, amount: int) -> None:
        with self._lock:
            self._balances[(recipient, template.item_id)] += amount
            self.operations.append(
                LedgerOperation("mint", template.item_id, amount, recipient=recipient)
            )

    def burn(self, holder: str, item_id: str, amount: int) -> None:
        with self._lock:
            if self._balances[(holder, item_id)] < amount:
                raise LedgerError(f"{holder} cannot burn {amount} of {item_id}")
            self._balances[(holder, item_id)] -= amount
            self.operations.append(LedgerOperation("burn", item_id, amount, holder=holder))

    def deposit(self, holder: str, item_id: str, amount: int) -> None:
        with self._lock:
            self._balances[(holder, item_id)] += amount

    def balance_of(self, holder: str, item_id: str) -> int:
        with self._lock:
            return self._balances.get((holder, item_id), 0)

    def is_approved_for_all(self, holder: str, operator: str) -> bool:
        with self._lock:
            return (holder, operator) in self._approvals

    def set_approval_for_all(self, holder: str, operator: str, approved: bool) -> None:
        with self._lock:
            if approved:
                self._approvals.add((holder, operator))
            else:
                self._approvals.discard((holder, operator))

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            balances = copy.copy(self._balances)
            approvals = set(self._approvals)
            op_count = len(self.operations)
            try:
                yield
            except BaseException:
                self._balances = balances
                self._approvals = approvals
                del self.operations[op_count:]
                logger.debug("In-memory ledger rolled back to %d operations", op_count)
                raise

    def count(self, kind: str) -> int:
        """kind별 작업 수"""
        return sum(1 for op in self.operations if op.kind == kind)
