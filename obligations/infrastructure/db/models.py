"""
SQLAlchemy ORM models: recurring templates, expected occurrences and the
host ledger table (read-only here)
"""
from decimal import Decimal
from datetime import date as date_type
from sqlalchemy import String, DateTime, Integer, Text, TIMESTAMP, Date, func, Boolean, Numeric, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from obligations.infrastructure.db.session import Base


class RecurringTemplateModel(Base):
    """Recurring obligation templates"""
    __tablename__ = "recurring_templates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    property_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    linked_account_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(16), nullable=False)  # income/expense/...

    frequency: Mapped[str] = mapped_column(String(16), nullable=False)  # weekly/fortnightly/monthly/quarterly/annually
    anchor_day_of_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    anchor_day_of_week: Mapped[int | None] = mapped_column(Integer, nullable=True)  # 0=Sunday
    start_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    end_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)

    amount_tolerance: Mapped[Decimal] = mapped_column(Numeric(precision=5, scale=2), nullable=False, server_default="5.00")
    date_tolerance_days: Mapped[int] = mapped_column(Integer, nullable=False, server_default="3")
    alert_delay_days: Mapped[int] = mapped_column(Integer, nullable=False, server_default="3")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class ExpectedOccurrenceModel(Base):
    """Materialized occurrences of a template (generated by the schedule generator)"""
    __tablename__ = "expected_occurrences"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    template_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    owner_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    property_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    expected_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    expected_amount: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="pending")  # pending/matched/missed/skipped
    matched_transaction_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint('template_id', 'expected_date', name='uq_expected_occurrence'),
        Index('ix_exp_occ_status', 'owner_id', 'status', 'expected_date'),
    )


class LedgerTransactionModel(Base):
    """Host ledger transactions (owned by the host application; never written here)"""
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    property_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    transaction_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
