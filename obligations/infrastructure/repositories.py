"""
Template and ledger stores backed by SQLAlchemy.

Rows are converted to frozen domain objects on the way out; status
transitions are computed in the domain and written back here.
"""
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from obligations.domain.ledger import LedgerTransaction
from obligations.domain.occurrence import ExpectedOccurrence, OccurrenceStatus
from obligations.domain.template import RecurringTemplate
from obligations.infrastructure.db.models import (
    RecurringTemplateModel, ExpectedOccurrenceModel, LedgerTransactionModel,
)


def template_from_row(row: RecurringTemplateModel) -> RecurringTemplate:
    """Build a RecurringTemplate from a RecurringTemplateModel row (or any object with matching attributes)."""
    return RecurringTemplate(
        id=row.id,
        owner_id=row.owner_id,
        property_id=row.property_id,
        linked_account_id=row.linked_account_id,
        frequency=row.frequency,
        anchor_day_of_week=row.anchor_day_of_week,
        anchor_day_of_month=row.anchor_day_of_month,
        start_date=row.start_date,
        end_date=row.end_date,
        description=row.description or "",
        amount=row.amount,
        category=row.category,
        transaction_type=row.transaction_type,
        amount_tolerance=row.amount_tolerance,
        date_tolerance_days=row.date_tolerance_days,
        alert_delay_days=row.alert_delay_days,
        is_active=bool(row.is_active),
    )


def occurrence_from_row(row: ExpectedOccurrenceModel, alert_delay_days: int) -> ExpectedOccurrence:
    return ExpectedOccurrence(
        id=row.id,
        template_id=row.template_id,
        owner_id=row.owner_id,
        property_id=row.property_id,
        expected_date=row.expected_date,
        expected_amount=Decimal(row.expected_amount),
        status=OccurrenceStatus(row.status),
        matched_transaction_id=row.matched_transaction_id,
        alert_delay_days=alert_delay_days,
    )


def transaction_from_row(row: LedgerTransactionModel) -> LedgerTransaction:
    return LedgerTransaction(
        id=row.id,
        owner_id=row.owner_id,
        property_id=row.property_id,
        date=row.date,
        amount=Decimal(row.amount),
        category=row.category,
        description=row.description or "",
        transaction_type=row.transaction_type,
    )


class TemplateRepository:
    """Recurring templates and their materialized occurrences"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, template_id: str, owner_id: Optional[str] = None) -> RecurringTemplate | None:
        query = self.db.query(RecurringTemplateModel).filter(RecurringTemplateModel.id == template_id)
        if owner_id is not None:
            query = query.filter(RecurringTemplateModel.owner_id == owner_id)
        row = query.first()
        return template_from_row(row) if row else None

    def active_rows(self, owner_id: Optional[str] = None) -> list[RecurringTemplateModel]:
        query = self.db.query(RecurringTemplateModel).filter(
            RecurringTemplateModel.is_active == True,  # noqa: E712
        )
        if owner_id is not None:
            query = query.filter(RecurringTemplateModel.owner_id == owner_id)
        return query.order_by(RecurringTemplateModel.id).all()

    def list_all(self, owner_id: str) -> list[RecurringTemplate]:
        rows = self.db.query(RecurringTemplateModel).filter(
            RecurringTemplateModel.owner_id == owner_id,
        ).all()
        return [template_from_row(r) for r in rows]

    def owner_ids(self) -> list[str]:
        rows = self.db.execute(select(RecurringTemplateModel.owner_id).distinct()).all()
        return sorted(r[0] for r in rows)

    def materialized_dates(self, template_id: str) -> set[date]:
        return {
            row.expected_date for row in
            self.db.query(ExpectedOccurrenceModel.expected_date).filter(
                ExpectedOccurrenceModel.template_id == template_id,
            ).all()
        }

    def add_occurrences(self, occurrences: Iterable[ExpectedOccurrence]) -> int:
        count = 0
        for occ in occurrences:
            self.db.add(ExpectedOccurrenceModel(
                id=occ.id,
                template_id=occ.template_id,
                owner_id=occ.owner_id,
                property_id=occ.property_id,
                expected_date=occ.expected_date,
                expected_amount=occ.expected_amount,
                status=occ.status.value,
                matched_transaction_id=occ.matched_transaction_id,
            ))
            count += 1
        return count

    def _occurrence_query(self, owner_id: Optional[str]):
        query = self.db.query(ExpectedOccurrenceModel, RecurringTemplateModel.alert_delay_days).join(
            RecurringTemplateModel, RecurringTemplateModel.id == ExpectedOccurrenceModel.template_id,
        )
        if owner_id is not None:
            query = query.filter(ExpectedOccurrenceModel.owner_id == owner_id)
        return query

    def get_occurrence(self, occurrence_id: str, owner_id: Optional[str] = None) -> ExpectedOccurrence | None:
        found = self._occurrence_query(owner_id).filter(ExpectedOccurrenceModel.id == occurrence_id).first()
        if not found:
            return None
        row, delay = found
        return occurrence_from_row(row, delay)

    def list_occurrences(
        self,
        owner_id: Optional[str] = None,
        statuses: Iterable[OccurrenceStatus] | None = None,
        property_id: Optional[str] = None,
        template_id: Optional[str] = None,
    ) -> list[ExpectedOccurrence]:
        query = self._occurrence_query(owner_id)
        if statuses is not None:
            query = query.filter(ExpectedOccurrenceModel.status.in_([s.value for s in statuses]))
        if property_id is not None:
            query = query.filter(ExpectedOccurrenceModel.property_id == property_id)
        if template_id is not None:
            query = query.filter(ExpectedOccurrenceModel.template_id == template_id)
        query = query.order_by(ExpectedOccurrenceModel.expected_date, ExpectedOccurrenceModel.id)
        return [occurrence_from_row(row, delay) for row, delay in query.all()]

    def linked_transaction_ids(self, owner_id: str) -> set[str]:
        rows = self.db.query(ExpectedOccurrenceModel.matched_transaction_id).filter(
            ExpectedOccurrenceModel.owner_id == owner_id,
            ExpectedOccurrenceModel.matched_transaction_id.isnot(None),
        ).all()
        return {r[0] for r in rows}

    def save_occurrence(self, occurrence: ExpectedOccurrence) -> None:
        row = self.db.query(ExpectedOccurrenceModel).filter(
            ExpectedOccurrenceModel.id == occurrence.id,
        ).first()
        row.status = occurrence.status.value
        row.matched_transaction_id = occurrence.matched_transaction_id


class LedgerRepository:
    """Read-only access to the host ledger"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, transaction_id: str, owner_id: str) -> LedgerTransaction | None:
        row = self.db.query(LedgerTransactionModel).filter(
            LedgerTransactionModel.id == transaction_id,
            LedgerTransactionModel.owner_id == owner_id,
        ).first()
        return transaction_from_row(row) if row else None

    def candidates(
        self,
        owner_id: str,
        exclude_ids: Iterable[str] = (),
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[LedgerTransaction]:
        query = self.db.query(LedgerTransactionModel).filter(LedgerTransactionModel.owner_id == owner_id)
        if date_from is not None:
            query = query.filter(LedgerTransactionModel.date >= date_from)
        if date_to is not None:
            query = query.filter(LedgerTransactionModel.date <= date_to)
        excluded = set(exclude_ids)
        return [
            transaction_from_row(r) for r in query.order_by(LedgerTransactionModel.date.desc()).all()
            if r.id not in excluded
        ]

    def history(self, owner_id: str, limit: int) -> list[LedgerTransaction]:
        rows = self.db.query(LedgerTransactionModel).filter(
            LedgerTransactionModel.owner_id == owner_id,
        ).order_by(LedgerTransactionModel.date.desc(), LedgerTransactionModel.id).limit(limit).all()
        return [transaction_from_row(r) for r in rows]
