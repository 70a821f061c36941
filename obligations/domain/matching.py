"""
Fuzzy matching of ledger transactions against one expected occurrence.

Confidence tiers:
  HIGH   - |amount diff| <= amount_tolerance and date diff <= 2 days
  MEDIUM - amount diff <= 5% of expected and date diff <= date_tolerance_days
Candidates in neither tier are excluded, not ranked low.
"""
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from obligations.domain.ledger import LedgerTransaction

HIGH_CONFIDENCE_MAX_DATE_DIFF = 2
MEDIUM_CONFIDENCE_MAX_AMOUNT_PCT = Decimal("0.05")


class MatchConfidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"

    @property
    def rank(self) -> int:
        return 0 if self is MatchConfidence.HIGH else 1


@dataclass(frozen=True)
class MatchCandidate:
    transaction: LedgerTransaction
    confidence: MatchConfidence
    amount_diff: Decimal
    date_diff_days: int

    def sort_key(self) -> tuple:
        return (self.confidence.rank, self.date_diff_days, str(self.transaction.id))


def _amount_diff_pct(amount_diff: Decimal, expected_amount: Decimal) -> Decimal | None:
    if expected_amount == 0:
        return Decimal(0) if amount_diff == 0 else None
    return amount_diff / expected_amount


def classify(
    amount_diff: Decimal,
    expected_amount: Decimal,
    date_diff_days: int,
    amount_tolerance: Decimal,
    date_tolerance_days: int,
) -> MatchConfidence | None:
    if amount_diff <= amount_tolerance and date_diff_days <= HIGH_CONFIDENCE_MAX_DATE_DIFF:
        return MatchConfidence.HIGH
    pct = _amount_diff_pct(amount_diff, expected_amount)
    if pct is not None and pct <= MEDIUM_CONFIDENCE_MAX_AMOUNT_PCT and date_diff_days <= date_tolerance_days:
        return MatchConfidence.MEDIUM
    return None


def find_matches(
    expected,
    candidates: Iterable[LedgerTransaction],
    amount_tolerance,
    date_tolerance_days: int,
) -> list[MatchCandidate]:
    """Rank candidates for an expected occurrence, best first.

    `expected` is any object with expected_date, expected_amount and property_id.
    """
    expected_amount = abs(Decimal(expected.expected_amount))
    tolerance = Decimal(amount_tolerance)
    matches: list[MatchCandidate] = []

    for tx in candidates:
        if tx.property_id != expected.property_id:
            continue
        amount_diff = abs(abs(Decimal(tx.amount)) - expected_amount)
        date_diff = abs((tx.date - expected.expected_date).days)
        confidence = classify(amount_diff, expected_amount, date_diff, tolerance, date_tolerance_days)
        if confidence is None:
            continue
        matches.append(MatchCandidate(
            transaction=tx,
            confidence=confidence,
            amount_diff=amount_diff,
            date_diff_days=date_diff,
        ))

    matches.sort(key=MatchCandidate.sort_key)
    return matches


def should_auto_match(matches: list[MatchCandidate]) -> bool:
    return bool(matches) and matches[0].confidence is MatchConfidence.HIGH
