"""
Schedule generation and occurrence materialization for recurring templates.

generate_dates() walks the anchor lattice inside
[max(from_date, start_date), from_date + lookahead_days], also bounded by
end_date. materialize() turns the dates not yet stored into pending
occurrences. Both are pure.
"""
import uuid
from collections.abc import Iterable
from datetime import date, timedelta

from obligations.domain.calendar_anchor import next_anchor_date, step_past
from obligations.domain.occurrence import ExpectedOccurrence, OccurrenceStatus
from obligations.domain.template import RecurringTemplate


def generate_dates(template: RecurringTemplate, from_date: date, lookahead_days: int) -> list[date]:
    """Strictly increasing occurrence dates within the lookahead window."""
    if not template.is_active or lookahead_days < 0:
        return []

    window_end = from_date + timedelta(days=lookahead_days)
    if template.end_date is not None:
        window_end = min(window_end, template.end_date)
    cursor = max(from_date, template.start_date)
    if cursor > window_end:
        return []

    anchor = template.anchor()
    dates: list[date] = []
    while True:
        candidate = next_anchor_date(template.frequency, anchor, cursor)
        if candidate > window_end:
            break
        if not dates or candidate > dates[-1]:
            dates.append(candidate)
        cursor = step_past(template.frequency, candidate)
    return dates


def materialize(
    template: RecurringTemplate,
    from_date: date,
    lookahead_days: int,
    already_materialized_dates: Iterable[date] = (),
) -> list[ExpectedOccurrence]:
    """New pending occurrences for dates not already materialized."""
    existing = set(already_materialized_dates)
    return [
        ExpectedOccurrence(
            id=str(uuid.uuid4()),
            template_id=template.id,
            owner_id=template.owner_id,
            property_id=template.property_id,
            expected_date=d,
            expected_amount=template.amount,
            status=OccurrenceStatus.PENDING,
            alert_delay_days=template.alert_delay_days,
        )
        for d in generate_dates(template, from_date, lookahead_days)
        if d not in existing
    ]
