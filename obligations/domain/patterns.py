"""
Recurring pattern inference over historical ledger transactions.

Transactions are grouped by (property_id, category). A group of at least
MIN_EVIDENCE transactions whose mean day-gap falls inside a frequency band
becomes a DetectedPattern. Month-based cadences measure gaps against the
clamped calendar lattice, so 28- and 31-day months do not count as jitter.
Confidence is the product of:
  interval score = 1 - stdev(gaps) / band half-width
  amount score   = 1 - cv(amounts) / AMOUNT_CV_CEILING
each clipped to [0, 1].
"""
import statistics
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from obligations.domain.calendar_anchor import (
    clamp_day, last_day_of_month, month_index, sunday_based_weekday,
)
from obligations.domain.frequency import Frequency, classify_interval
from obligations.domain.ledger import LedgerTransaction
from obligations.domain.template import RecurringTemplate

MIN_EVIDENCE = 3
AMOUNT_CV_CEILING = 0.10
DEFAULT_MIN_CONFIDENCE = 0.7

_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class DetectedPattern:
    property_id: str
    category: str
    frequency: Frequency
    amount: Decimal
    confidence: float
    transaction_ids: tuple[str, ...]
    description: str = ""
    transaction_type: str = "expense"
    last_date: date | None = None


def interval_score(gaps: list[int], frequency: Frequency) -> float:
    spread = statistics.pstdev(gaps) if len(gaps) > 1 else 0.0
    return max(0.0, 1.0 - spread / frequency.spec.band_half_width)


def _calendar_day(d: date) -> int:
    # the last day of any month reads as an end-of-month anchor
    return 31 if d.day == last_day_of_month(d.year, d.month) else d.day


def _lattice_position(d: date, anchor_day: int) -> tuple[int, int]:
    """(month index, day offset) of the nearest anchored date to d."""
    best = None
    for index in (month_index(d) - 1, month_index(d), month_index(d) + 1):
        year, month0 = divmod(index, 12)
        offset = (d - clamp_day(year, month0 + 1, anchor_day)).days
        if best is None or abs(offset) < abs(best[1]):
            best = (index, offset)
    return best


def calendar_gaps(dates: list[date], frequency: Frequency) -> list[float]:
    """
    Gaps for month-based frequencies, measured against the clamped calendar
    lattice: a payment on the same anchor day every period yields gaps equal
    to nominal_days, whatever the month lengths.
    """
    spec = frequency.spec
    anchor_day = statistics.median_low([_calendar_day(d) for d in dates])
    month_days = spec.nominal_days / spec.step_months
    positions = [_lattice_position(d, anchor_day) for d in dates]
    return [
        spec.nominal_days + (b_off - a_off) + (b_idx - a_idx - spec.step_months) * month_days
        for (a_idx, a_off), (b_idx, b_off) in zip(positions, positions[1:])
    ]


def amount_score(amounts: list[Decimal]) -> float:
    values = [float(a) for a in amounts]
    mean = statistics.fmean(values)
    if mean == 0:
        return 1.0 if all(v == 0 for v in values) else 0.0
    cv = statistics.pstdev(values) / mean
    return max(0.0, 1.0 - cv / AMOUNT_CV_CEILING)


def _infer_type(group: list[LedgerTransaction]) -> str:
    declared = next((tx.transaction_type for tx in group if tx.transaction_type), None)
    if declared:
        return declared
    total = sum(Decimal(tx.amount) for tx in group)
    return "income" if total > 0 else "expense"


def _analyse_group(group: list[LedgerTransaction]) -> DetectedPattern | None:
    ordered = sorted(group, key=lambda tx: (tx.date, str(tx.id)))
    gaps = [(b.date - a.date).days for a, b in zip(ordered, ordered[1:])]
    frequency = classify_interval(statistics.fmean(gaps))
    if frequency is None:
        return None
    if not frequency.uses_weekday:
        gaps = calendar_gaps([tx.date for tx in ordered], frequency)

    amounts = [tx.magnitude for tx in ordered]
    confidence = interval_score(gaps, frequency) * amount_score(amounts)
    if confidence <= 0:
        return None

    mean_amount = (sum(amounts) / len(amounts)).quantize(_CENTS, rounding=ROUND_HALF_UP)
    first = ordered[0]
    return DetectedPattern(
        property_id=first.property_id,
        category=first.category,
        frequency=frequency,
        amount=mean_amount,
        confidence=round(confidence, 4),
        transaction_ids=tuple(tx.id for tx in ordered),
        description=first.description,
        transaction_type=_infer_type(ordered),
        last_date=ordered[-1].date,
    )


def detect_patterns(
    transactions: Iterable[LedgerTransaction],
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
) -> list[DetectedPattern]:
    """Candidate recurring templates, highest confidence first."""
    groups: dict[tuple[str, str], list[LedgerTransaction]] = defaultdict(list)
    for tx in transactions:
        if tx.property_id is None:
            continue
        groups[(tx.property_id, tx.category)].append(tx)

    patterns = []
    for group in groups.values():
        if len(group) < MIN_EVIDENCE:
            continue
        pattern = _analyse_group(group)
        if pattern is not None and pattern.confidence >= min_confidence:
            patterns.append(pattern)

    patterns.sort(key=lambda p: (-p.confidence, str(p.property_id), p.category))
    return patterns


def template_from_pattern(
    pattern: DetectedPattern,
    template_id: str,
    owner_id: str,
    start_date: date | None = None,
    **overrides,
) -> RecurringTemplate:
    """Build a template from an accepted pattern, anchored on its latest transaction."""
    anchor_date = pattern.last_date or start_date
    if anchor_date is None:
        raise ValueError("pattern has no last_date; start_date is required")
    fields = dict(
        id=template_id,
        owner_id=owner_id,
        property_id=pattern.property_id,
        frequency=pattern.frequency,
        start_date=start_date or anchor_date,
        amount=pattern.amount,
        description=pattern.description,
        category=pattern.category,
        transaction_type=pattern.transaction_type,
    )
    if pattern.frequency.uses_weekday:
        fields["anchor_day_of_week"] = sunday_based_weekday(anchor_date)
    else:
        fields["anchor_day_of_month"] = anchor_date.day
    fields.update(overrides)
    return RecurringTemplate(**fields)
