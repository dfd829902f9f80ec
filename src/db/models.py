"""SQLAlchemy declarative base for all ORM models."""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON


class Base(DeclarativeBase):
    """Base class for all database models."""


class ItemBalanceModel(Base):
    """ORM model for per-holder item balances."""

    __tablename__ = "item_balances"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    holder_id: Mapped[str] = mapped_column(String, nullable=False)
    item_id: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("holder_id", "item_id", name="uq_balance_holder_item"),
        Index("idx_balance_item", "item_id"),
    )


class OperatorApprovalModel(Base):
    """ORM model for holder → operator blanket approvals."""

    __tablename__ = "operator_approvals"

    holder_id: Mapped[str] = mapped_column(String, primary_key=True)
    operator_id: Mapped[str] = mapped_column(String, primary_key=True)
    approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class LedgerEntryModel(Base):
    """ORM model for the append-only ledger journal."""

    __tablename__ = "ledger_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String, nullable=False)  # transfer|mint|burn
    item_id: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    holder_id: Mapped[str | None] = mapped_column(String, nullable=True)
    recipient_id: Mapped[str | None] = mapped_column(String, nullable=True)
    template_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
