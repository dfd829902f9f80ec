"""원장 Service — ItemLedger 인터페이스의 SQLAlchemy 구현

architecture: Service → Core, Service → DB 허용.
엔진은 배치 전체를 transaction() 안에서 실행한다.
가장 바깥 트랜잭션이 끝날 때만 commit, 예외 시 세션 전체 rollback.
트랜잭션 밖의 단건 작업은 즉시 commit.

세션 하나를 요청 스레드들이 공유하므로 모든 접근은 _lock 아래에서 일어난다.
transaction()은 블록 전체 동안 잠금을 쥐므로, 배치가 실패해 rollback 하더라도
다른 스레드의 쓰기는 그 rollback에 섞이지 않는다.
"""

import threading
from contextlib import contextmanager
from dataclasses import asdict
from typing import Iterator

from sqlalchemy.orm import Session

from src.core.logging import get_logger
from src.core.loot.ledger import ItemLedger, LedgerError
from src.core.loot.models import GenerationTemplate
from src.db.models import ItemBalanceModel, LedgerEntryModel, OperatorApprovalModel

logger = get_logger(__name__)


class SqlItemLedger(ItemLedger):
    """DB 잔고 테이블 기반 원장"""

    def __init__(self, db: Session):
        self._db = db
        self._depth = 0
        self._lock = threading.RLock()

    # === 잔고 ===

    def balance_of(self, holder: str, item_id: str) -> int:
        with self._lock:
            row = self._balance_row(holder, item_id)
            return row.amount if row else 0

    def deposit(self, holder: str, item_id: str, amount: int, note: str = "") -> None:
        """재고 적재 (관리자 stock 작업/운영 도구용)."""
        with self._lock:
            row = self._balance_row(holder, item_id, create=True)
            row.amount += amount
            self._journal("deposit", item_id, amount, recipient=holder, note=note)
            self._commit()
        logger.info("Deposited %d x %s to %s", amount, item_id, holder)

    # === 이전 / 발행 / 소각 ===

    def transfer(self, holder: str, recipient: str, item_id: str, amount: int) -> None:
        with self._lock:
            source = self._balance_row(holder, item_id)
            if source is None or source.amount < amount:
                raise LedgerError(f"{holder} cannot transfer {amount} of {item_id}")
            source.amount -= amount
            target = self._balance_row(recipient, item_id, create=True)
            target.amount += amount
            self._journal("transfer", item_id, amount, holder=holder, recipient=recipient)
            self._commit()
        logger.debug("Transferred %d x %s: %s → %s", amount, item_id, holder, recipient)

    def mint(self, template: GenerationTemplate, recipient: str, amount: int) -> None:
        template_data = asdict(template)
        template_data["rarity_class"] = int(template.rarity_class)
        with self._lock:
            target = self._balance_row(recipient, template.item_id, create=True)
            target.amount += amount
            self._journal(
                "mint",
                template.item_id,
                amount,
                recipient=recipient,
                template_data=template_data,
            )
            self._commit()
        logger.debug("Minted %d x %s to %s", amount, template.item_id, recipient)

    def burn(self, holder: str, item_id: str, amount: int) -> None:
        with self._lock:
            row = self._balance_row(holder, item_id)
            if row is None or row.amount < amount:
                raise LedgerError(f"{holder} cannot burn {amount} of {item_id}")
            row.amount -= amount
            self._journal("burn", item_id, amount, holder=holder)
            self._commit()

    # === 승인 ===

    def is_approved_for_all(self, holder: str, operator: str) -> bool:
        with self._lock:
            row = self._db.get(OperatorApprovalModel, (holder, operator))
            return bool(row and row.approved)

    def set_approval_for_all(self, holder: str, operator: str, approved: bool) -> None:
        with self._lock:
            row = self._db.get(OperatorApprovalModel, (holder, operator))
            if row is None:
                row = OperatorApprovalModel(
                    holder_id=holder, operator_id=operator, approved=approved
                )
                self._db.add(row)
            else:
                row.approved = approved
            self._commit()
        logger.info("Approval %s → %s set to %s", holder, operator, approved)

    # === 트랜잭션 ===

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            self._depth += 1
            try:
                yield
            except BaseException:
                self._depth -= 1
                if self._depth == 0:
                    self._db.rollback()
                    logger.debug("Ledger transaction rolled back")
                raise
            else:
                self._depth -= 1
                if self._depth == 0:
                    self._db.commit()

    def entries(self, kind: str | None = None) -> list[LedgerEntryModel]:
        """원장 기록 조회 (kind 필터 선택)."""
        with self._lock:
            q = self._db.query(LedgerEntryModel)
            if kind is not None:
                q = q.filter(LedgerEntryModel.kind == kind)
            return q.order_by(LedgerEntryModel.id).all()

    # === 내부 헬퍼 ===

    def _balance_row(
        self, holder: str, item_id: str, create: bool = False
    ) -> ItemBalanceModel | None:
        row = (
            self._db.query(ItemBalanceModel)
            .filter(
                ItemBalanceModel.holder_id == holder,
                ItemBalanceModel.item_id == item_id,
            )
            .first()
        )
        if row is None and create:
            row = ItemBalanceModel(holder_id=holder, item_id=item_id, amount=0)
            self._db.add(row)
            self._db.flush()
        return row

    def _journal(
        self,
        kind: str,
        item_id: str,
        amount: int,
        holder: str | None = None,
        recipient: str | None = None,
        template_data: dict | None = None,
        note: str = "",
    ) -> None:
        self._db.add(
            LedgerEntryModel(
                kind=kind,
                item_id=item_id,
                amount=amount,
                holder_id=holder,
                recipient_id=recipient,
                template_data=template_data,
                note=note or None,
            )
        )

    def _commit(self) -> None:
        """트랜잭션 안이면 flush만, 밖이면 commit."""
        if self._depth > 0:
            self._db.flush()
        else:
            self._db.commit()
