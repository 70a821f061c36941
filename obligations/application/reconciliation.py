"""
Reconciliation use cases - match occurrences to ledger transactions,
skip them, and flag the ones that were never paid.

Auto-match policy: an occurrence is matched automatically only when its
top-ranked candidate is HIGH confidence; otherwise the best candidate is
reported as a suggestion. Missed occurrences stay eligible for matching
while RECONCILE_MISSED_OCCURRENCES is on, so a late payment closes them.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta

from sqlalchemy.orm import Session

from obligations.config import get_settings
from obligations.domain.matching import (
    HIGH_CONFIDENCE_MAX_DATE_DIFF, MatchConfidence, find_matches, should_auto_match,
)
from obligations.domain.missed import find_missed
from obligations.domain.occurrence import ExpectedOccurrence, OccurrenceStatus
from obligations.domain.template import RecurringTemplate
from obligations.application.occurrence_generator import OccurrenceGenerator
from obligations.infrastructure.repositories import TemplateRepository, LedgerRepository

logger = logging.getLogger(__name__)


class ReconciliationError(ValueError):
    pass


@dataclass(frozen=True)
class MatchOutcome:
    occurrence_id: str
    transaction_id: str | None
    confidence: MatchConfidence | None
    auto_matched: bool = False


@dataclass
class ReconciliationSummary:
    generated: int = 0
    matched: int = 0
    missed: int = 0
    errors: list[str] = field(default_factory=list)


class ReconciliationService:
    def __init__(self, db: Session):
        self.db = db
        self.templates = TemplateRepository(db)
        self.ledger = LedgerRepository(db)

    def _eligible_statuses(self) -> list[OccurrenceStatus]:
        statuses = [OccurrenceStatus.PENDING]
        if get_settings().RECONCILE_MISSED_OCCURRENCES:
            statuses.append(OccurrenceStatus.MISSED)
        return statuses

    def run_matching(self, owner_id: str) -> list[MatchOutcome]:
        """Rank ledger candidates for every open occurrence of an owner."""
        occurrences = self.templates.list_occurrences(owner_id, self._eligible_statuses())
        if not occurrences:
            logger.info("Matching for owner_id=%s: nothing open", owner_id)
            return []

        templates: dict[str, RecurringTemplate | None] = {
            template_id: self.templates.get(template_id)
            for template_id in {occ.template_id for occ in occurrences}
        }
        # ledger rows outside every occurrence's date tolerance can never match
        slack = timedelta(days=max(
            [HIGH_CONFIDENCE_MAX_DATE_DIFF]
            + [t.date_tolerance_days for t in templates.values() if t is not None]
        ))
        consumed = self.templates.linked_transaction_ids(owner_id)
        candidates = self.ledger.candidates(
            owner_id,
            exclude_ids=consumed,
            date_from=min(occ.expected_date for occ in occurrences) - slack,
            date_to=max(occ.expected_date for occ in occurrences) + slack,
        )

        outcomes: list[MatchOutcome] = []
        matched = 0
        for occ in occurrences:
            template = templates[occ.template_id]
            if template is None:
                continue

            available = [tx for tx in candidates if tx.id not in consumed]
            matches = find_matches(occ, available, template.amount_tolerance, template.date_tolerance_days)

            if should_auto_match(matches):
                top = matches[0]
                self.templates.save_occurrence(occ.match(top.transaction.id))
                consumed.add(top.transaction.id)
                matched += 1
                outcomes.append(MatchOutcome(occ.id, top.transaction.id, top.confidence, auto_matched=True))
            elif matches:
                outcomes.append(MatchOutcome(occ.id, matches[0].transaction.id, matches[0].confidence))
            else:
                outcomes.append(MatchOutcome(occ.id, None, None))

        if matched > 0:
            self.db.commit()
        logger.info("Matching for owner_id=%s: %d auto-matched of %d open", owner_id, matched, len(occurrences))
        return outcomes

    def match_manually(self, occurrence_id: str, transaction_id: str, owner_id: str) -> ExpectedOccurrence:
        occ = self.templates.get_occurrence(occurrence_id, owner_id)
        if occ is None:
            raise ReconciliationError("Expected occurrence not found")
        tx = self.ledger.get(transaction_id, owner_id)
        if tx is None:
            raise ReconciliationError("Transaction not found")
        if tx.id in self.templates.linked_transaction_ids(owner_id):
            raise ReconciliationError("Transaction is already matched to another occurrence")

        updated = occ.match(tx.id)
        self.templates.save_occurrence(updated)
        self.db.commit()
        return updated

    def skip(self, occurrence_id: str, owner_id: str) -> ExpectedOccurrence:
        occ = self.templates.get_occurrence(occurrence_id, owner_id)
        if occ is None:
            raise ReconciliationError("Expected occurrence not found")

        updated = occ.skip()
        self.templates.save_occurrence(updated)
        self.db.commit()
        return updated

    def mark_missed(self, today: date, owner_id: str | None = None) -> list[str]:
        """Persist the missed transition for overdue pending occurrences."""
        pending = self.templates.list_occurrences(owner_id, [OccurrenceStatus.PENDING])
        missed_ids = set(find_missed(pending, today))
        for occ in pending:
            if occ.id in missed_ids:
                self.templates.save_occurrence(occ.mark_missed())
        if missed_ids:
            self.db.commit()
        return [occ.id for occ in pending if occ.id in missed_ids]


def run_reconciliation_pass(db: Session, today: date | None = None) -> ReconciliationSummary:
    """
    Full pass: generate upcoming occurrences, auto-match, flag missed.

    Failures in any step (or for one owner) are logged and collected;
    the pass continues and always returns a summary.
    """
    if today is None:
        today = date.today()

    summary = ReconciliationSummary()
    try:
        generation = OccurrenceGenerator(db).generate(today=today)
        summary.generated = generation.generated
        summary.errors.extend(generation.errors)
    except Exception as e:
        db.rollback()
        logger.exception("Occurrence generation failed")
        summary.errors.append(f"Failed to generate occurrences: {e}")

    service = ReconciliationService(db)
    for owner_id in service.templates.owner_ids():
        try:
            outcomes = service.run_matching(owner_id)
            summary.matched += sum(1 for o in outcomes if o.auto_matched)
        except Exception as e:
            db.rollback()
            logger.exception("Matching failed for owner_id=%s", owner_id)
            summary.errors.append(f"Failed to match for owner {owner_id}: {e}")

    try:
        summary.missed = len(service.mark_missed(today))
    except Exception as e:
        db.rollback()
        logger.exception("Missed detection failed")
        summary.errors.append(f"Failed to mark missed occurrences: {e}")

    logger.info(
        "Reconciliation pass: generated=%d matched=%d missed=%d errors=%d",
        summary.generated, summary.matched, summary.missed, len(summary.errors),
    )
    return summary


# ── CLI entry point ──
if __name__ == "__main__":
    from obligations.infrastructure.db.session import get_session_factory

    logging.basicConfig(
        level=get_settings().LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        run_reconciliation_pass(db)
    finally:
        db.close()
