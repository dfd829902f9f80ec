"""SqlItemLedger 통합 테스트 (인메모리 SQLite)

잔고 이전/발행/소각, 트랜잭션 롤백, 승인, 원장 기록, 엔진 배치 롤백.
"""

import threading

import pytest

from src.core.event_bus import EventBus
from src.core.loot.access import AccessControl
from src.core.loot.engine import LootBoxEngine
from src.core.loot.errors import InsufficientInventory, UnmintedNotSupported
from src.core.loot.ledger import LedgerError
from src.core.loot.models import GenerationTemplate, RarityClass, Tier
from src.core.loot.randomness import SequenceRandomness
from src.services.ledger_service import SqlItemLedger

OWNER = "owner"
HOLDER = "treasury"
OPERATOR = "lootbox_engine"

ALL_RARE = (0, 10000, 0, 0)


@pytest.fixture()
def ledger(db_session) -> SqlItemLedger:
    return SqlItemLedger(db_session)


@pytest.fixture()
def stocked(ledger) -> SqlItemLedger:
    ledger.deposit(HOLDER, "gem", 3, note="initial stock")
    return ledger


class TestBalances:
    def test_unknown_balance_is_zero(self, ledger) -> None:
        assert ledger.balance_of("nobody", "gem") == 0

    def test_deposit(self, stocked) -> None:
        assert stocked.balance_of(HOLDER, "gem") == 3
        entry = stocked.entries("deposit")[0]
        assert entry.recipient_id == HOLDER
        assert entry.note == "initial stock"

    def test_transfer(self, stocked) -> None:
        stocked.transfer(HOLDER, "alice", "gem", 2)
        assert stocked.balance_of(HOLDER, "gem") == 1
        assert stocked.balance_of("alice", "gem") == 2
        entry = stocked.entries("transfer")[0]
        assert (entry.holder_id, entry.recipient_id, entry.amount) == (HOLDER, "alice", 2)

    def test_transfer_beyond_balance(self, stocked) -> None:
        with pytest.raises(LedgerError):
            stocked.transfer(HOLDER, "alice", "gem", 4)
        assert stocked.balance_of(HOLDER, "gem") == 3

    def test_mint_records_template(self, ledger) -> None:
        template = GenerationTemplate(
            "gen_bow", RarityClass.EPIC, name="Bow", attributes={"damage": 7}
        )
        ledger.mint(template, "alice", 2)
        assert ledger.balance_of("alice", "gen_bow") == 2
        entry = ledger.entries("mint")[0]
        assert entry.template_data == {
            "item_id": "gen_bow",
            "rarity_class": 2,
            "name": "Bow",
            "attributes": {"damage": 7},
        }

    def test_burn(self, stocked) -> None:
        stocked.burn(HOLDER, "gem", 1)
        assert stocked.balance_of(HOLDER, "gem") == 2
        with pytest.raises(LedgerError):
            stocked.burn(HOLDER, "gem", 5)
        with pytest.raises(LedgerError):
            stocked.burn("alice", "gem", 1)


class TestApprovals:
    def test_default_not_approved(self, ledger) -> None:
        assert ledger.is_approved_for_all(HOLDER, OPERATOR) is False

    def test_grant_and_revoke(self, ledger) -> None:
        ledger.set_approval_for_all(HOLDER, OPERATOR, True)
        assert ledger.is_approved_for_all(HOLDER, OPERATOR) is True
        ledger.set_approval_for_all(HOLDER, OPERATOR, False)
        assert ledger.is_approved_for_all(HOLDER, OPERATOR) is False

    def test_approval_is_per_pair(self, ledger) -> None:
        ledger.set_approval_for_all(HOLDER, OPERATOR, True)
        assert ledger.is_approved_for_all(HOLDER, "someone_else") is False
        assert ledger.is_approved_for_all("alice", OPERATOR) is False


class TestTransaction:
    def test_commit_on_success(self, stocked, db_session) -> None:
        with stocked.transaction():
            stocked.transfer(HOLDER, "alice", "gem", 1)
            stocked.transfer(HOLDER, "bob", "gem", 1)
        db_session.expire_all()
        assert stocked.balance_of(HOLDER, "gem") == 1
        assert len(stocked.entries("transfer")) == 2

    def test_rollback_on_error(self, stocked) -> None:
        with pytest.raises(RuntimeError):
            with stocked.transaction():
                stocked.transfer(HOLDER, "alice", "gem", 2)
                stocked.mint(GenerationTemplate("gen", RarityClass.COMMON), "alice", 1)
                raise RuntimeError("abort")
        assert stocked.balance_of(HOLDER, "gem") == 3
        assert stocked.balance_of("alice", "gem") == 0
        assert stocked.balance_of("alice", "gen") == 0
        assert stocked.entries("transfer") == []
        assert stocked.entries("mint") == []

    def test_nested_transaction_rolls_back_outermost(self, stocked) -> None:
        with pytest.raises(LedgerError):
            with stocked.transaction():
                stocked.transfer(HOLDER, "alice", "gem", 1)
                with stocked.transaction():
                    stocked.transfer(HOLDER, "alice", "gem", 5)
        assert stocked.balance_of("alice", "gem") == 0
        assert stocked.balance_of(HOLDER, "gem") == 3


class TestEngineOverSqlLedger:
    @pytest.fixture()
    def engine(self, stocked) -> LootBoxEngine:
        engine = LootBoxEngine(
            stocked,
            AccessControl(owner=OWNER),
            SequenceRandomness([0]),
            EventBus(),
            holder=HOLDER,
            operator=OPERATOR,
            tables={Tier.BASIC: ALL_RARE},
        )
        engine.add_item(OWNER, RarityClass.RARE, "gem")
        return engine

    def test_batch_commits(self, engine, stocked) -> None:
        outcome = engine.open(OWNER, Tier.BASIC, "alice", 3)
        assert outcome.fulfilled == 3
        assert stocked.balance_of("alice", "gem") == 3
        assert stocked.balance_of(HOLDER, "gem") == 0

    def test_failed_batch_leaves_no_trace(self, engine, stocked) -> None:
        with pytest.raises(InsufficientInventory):
            engine.open(OWNER, Tier.BASIC, "alice", 4)
        assert stocked.balance_of(HOLDER, "gem") == 3
        assert stocked.balance_of("alice", "gem") == 0
        assert stocked.entries("transfer") == []


class _SlowMintLedger(SqlItemLedger):
    """gen_common mint에서 release될 때까지 대기하는 원장"""

    def __init__(self, db) -> None:
        super().__init__(db)
        self.entered = threading.Event()
        self.release = threading.Event()

    def mint(self, template, recipient, amount) -> None:
        if template.item_id == "gen_common":
            self.entered.set()
            self.release.wait(timeout=5)
        super().mint(template, recipient, amount)


class TestConcurrentWrites:
    def test_failed_batch_keeps_other_callers_writes(self, db_session) -> None:
        ledger = _SlowMintLedger(db_session)
        # 9999 → COMMON(템플릿 있음), 0 → LEGENDARY(템플릿 없음)
        engine = LootBoxEngine(
            ledger,
            AccessControl(owner=OWNER),
            SequenceRandomness([9999, 0, 0]),
            EventBus(),
            holder=HOLDER,
            operator=OPERATOR,
        )
        engine.register_template(
            OWNER, GenerationTemplate("gen_common", RarityClass.COMMON)
        )

        errors: list[Exception] = []

        def open_batch() -> None:
            try:
                engine.open(OWNER, Tier.BASIC, "alice", 2)
            except UnmintedNotSupported as e:
                errors.append(e)

        batch = threading.Thread(target=open_batch)
        boxes = threading.Thread(
            target=lambda: engine.mint_boxes(OWNER, Tier.BASIC, "bob", 3)
        )
        batch.start()
        try:
            assert ledger.entered.wait(timeout=5)
            boxes.start()
            boxes.join(timeout=0.2)
            # 배치 트랜잭션이 끝날 때까지 다른 쓰기는 대기한다
            assert boxes.is_alive()
        finally:
            ledger.release.set()
            batch.join(timeout=5)
            boxes.join(timeout=5)

        assert len(errors) == 1
        assert ledger.balance_of("bob", "lootbox:0") == 3
        assert ledger.balance_of("alice", "gen_common") == 0
        assert [e.recipient_id for e in ledger.entries("mint")] == ["bob"]


class TestJournalTimestamps:
    def test_created_at_is_timezone_aware(self, stocked) -> None:
        with stocked.transaction():
            stocked.transfer(HOLDER, "alice", "gem", 1)
            entry = stocked.entries("transfer")[0]
            assert entry.created_at.tzinfo is not None
