"""Missed-occurrence detection: pending occurrences past their grace period."""
from collections.abc import Iterable
from datetime import date

from obligations.domain.occurrence import ExpectedOccurrence, OccurrenceStatus


def is_overdue(occurrence: ExpectedOccurrence, today: date) -> bool:
    return (
        occurrence.status == OccurrenceStatus.PENDING
        and (today - occurrence.expected_date).days > occurrence.alert_delay_days
    )


def find_missed(occurrences: Iterable[ExpectedOccurrence], today: date) -> list[str]:
    """Ids of pending occurrences older than their alert_delay_days, in input order."""
    return [occ.id for occ in occurrences if is_overdue(occ, today)]
