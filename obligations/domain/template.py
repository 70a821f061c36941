"""
RecurringTemplate domain entity - a user-declared recurring obligation.

Anchor invariant: weekly/fortnightly use anchor_day_of_week (0=Sunday..6),
monthly/quarterly/annually use anchor_day_of_month (1..31). When the relevant
anchor is missing it is inferred from start_date.
"""
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal

from obligations.domain.calendar_anchor import Anchor, sunday_based_weekday
from obligations.domain.frequency import Frequency

DEFAULT_AMOUNT_TOLERANCE = Decimal("5.00")
DEFAULT_DATE_TOLERANCE_DAYS = 3
DEFAULT_ALERT_DELAY_DAYS = 3

TRANSACTION_TYPES = frozenset({"income", "expense", "capital", "transfer", "personal"})


class TemplateValidationError(ValueError):
    pass


@dataclass(frozen=True)
class RecurringTemplate:
    id: str
    owner_id: str
    frequency: Frequency
    start_date: date
    amount: Decimal
    description: str = ""
    category: str = ""
    transaction_type: str = "expense"
    property_id: str | None = None
    linked_account_id: str | None = None
    anchor_day_of_week: int | None = None
    anchor_day_of_month: int | None = None
    end_date: date | None = None
    amount_tolerance: Decimal = DEFAULT_AMOUNT_TOLERANCE
    date_tolerance_days: int = DEFAULT_DATE_TOLERANCE_DAYS
    alert_delay_days: int = DEFAULT_ALERT_DELAY_DAYS
    is_active: bool = True

    def __post_init__(self):
        object.__setattr__(self, "frequency", Frequency.parse(self.frequency))
        object.__setattr__(self, "amount", abs(Decimal(self.amount)))
        object.__setattr__(self, "amount_tolerance", Decimal(self.amount_tolerance))
        _validate(self)

    def anchor(self) -> Anchor:
        """Resolver anchor; only the anchor relevant to the frequency is kept."""
        if self.frequency.uses_weekday:
            dow = self.anchor_day_of_week
            if dow is None:
                dow = sunday_based_weekday(self.start_date)
            return Anchor(day_of_week=dow, origin=self.start_date)
        dom = self.anchor_day_of_month
        if dom is None:
            dom = self.start_date.day
        return Anchor(day_of_month=dom, origin=self.start_date)

    def with_changes(self, **changes) -> "RecurringTemplate":
        return replace(self, **changes)


def _validate(t: RecurringTemplate) -> None:
    if t.anchor_day_of_week is not None and not 0 <= t.anchor_day_of_week <= 6:
        raise TemplateValidationError(f"anchor_day_of_week out of range: {t.anchor_day_of_week}")
    if t.anchor_day_of_month is not None and not 1 <= t.anchor_day_of_month <= 31:
        raise TemplateValidationError(f"anchor_day_of_month out of range: {t.anchor_day_of_month}")
    if t.end_date is not None and t.end_date < t.start_date:
        raise TemplateValidationError("end_date must not be before start_date")
    if t.amount_tolerance < 0:
        raise TemplateValidationError("amount_tolerance must be >= 0")
    if t.date_tolerance_days < 0 or t.alert_delay_days < 0:
        raise TemplateValidationError("day tolerances must be >= 0")
    if t.transaction_type not in TRANSACTION_TYPES:
        raise TemplateValidationError(f"invalid transaction_type: {t.transaction_type}")
