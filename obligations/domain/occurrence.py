"""
ExpectedOccurrence domain entity - one dated instance derived from a template.

Status lifecycle:
    PENDING -> MATCHED   (auto or manual match)
    PENDING -> SKIPPED   (user action)
    PENDING -> MISSED    (grace period elapsed)
    MISSED  -> MATCHED   (late payment)
    MISSED  -> SKIPPED
MATCHED and SKIPPED are terminal.
"""
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from types import MappingProxyType

from obligations.domain.template import DEFAULT_ALERT_DELAY_DAYS


class InvalidOccurrenceTransition(ValueError):
    pass


class OccurrenceStatus(str, Enum):
    PENDING = "pending"
    MATCHED = "matched"
    MISSED = "missed"
    SKIPPED = "skipped"


ALLOWED_TRANSITIONS = MappingProxyType({
    OccurrenceStatus.PENDING: frozenset({
        OccurrenceStatus.MATCHED, OccurrenceStatus.SKIPPED, OccurrenceStatus.MISSED,
    }),
    OccurrenceStatus.MISSED: frozenset({OccurrenceStatus.MATCHED, OccurrenceStatus.SKIPPED}),
    OccurrenceStatus.MATCHED: frozenset(),
    OccurrenceStatus.SKIPPED: frozenset(),
})


@dataclass(frozen=True)
class ExpectedOccurrence:
    id: str
    template_id: str
    owner_id: str
    property_id: str | None
    expected_date: date
    expected_amount: Decimal
    status: OccurrenceStatus = OccurrenceStatus.PENDING
    matched_transaction_id: str | None = None
    alert_delay_days: int = DEFAULT_ALERT_DELAY_DAYS

    def __post_init__(self):
        object.__setattr__(self, "status", OccurrenceStatus(self.status))
        if (self.status == OccurrenceStatus.MATCHED) != (self.matched_transaction_id is not None):
            raise InvalidOccurrenceTransition(
                "matched_transaction_id must be set iff status is matched"
            )

    @property
    def is_open(self) -> bool:
        return self.status in (OccurrenceStatus.PENDING, OccurrenceStatus.MISSED)

    def can_transition(self, target: OccurrenceStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]

    def _transition(self, target: OccurrenceStatus, **changes) -> "ExpectedOccurrence":
        if not self.can_transition(target):
            raise InvalidOccurrenceTransition(
                f"occurrence {self.id}: {self.status.value} -> {target.value} is not allowed"
            )
        return replace(self, status=target, **changes)

    def match(self, transaction_id: str) -> "ExpectedOccurrence":
        return self._transition(OccurrenceStatus.MATCHED, matched_transaction_id=transaction_id)

    def skip(self) -> "ExpectedOccurrence":
        return self._transition(OccurrenceStatus.SKIPPED)

    def mark_missed(self) -> "ExpectedOccurrence":
        return self._transition(OccurrenceStatus.MISSED)
