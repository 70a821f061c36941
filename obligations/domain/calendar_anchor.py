"""
Calendar anchor resolution.

Date-only arithmetic (no timezone). Weekday anchors use 0=Sunday..6=Saturday,
the convention stored on templates; Python's date.weekday() is 0=Monday.

Day-of-month anchors are clamped to the last day of short months:
an anchor of 31 resolves to Apr 30, Feb 29 (leap) or Feb 28.
"""
import calendar
from dataclasses import dataclass
from datetime import date, timedelta

from obligations.domain.frequency import Frequency


@dataclass(frozen=True)
class Anchor:
    day_of_week: int | None = None   # weekly/fortnightly, 0=Sunday
    day_of_month: int | None = None  # monthly/quarterly/annually, 1..31
    origin: date | None = None       # seeds the fortnight / quarter / year lattice


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def clamp_day(year: int, month: int, day: int) -> date:
    return date(year, month, min(day, last_day_of_month(year, month)))


def sunday_based_weekday(d: date) -> int:
    return (d.weekday() + 1) % 7


def month_index(d: date) -> int:
    return d.year * 12 + d.month - 1


def _next_weekday(on_or_after: date, day_of_week: int) -> date:
    target = (day_of_week - 1) % 7
    return on_or_after + timedelta(days=(target - on_or_after.weekday()) % 7)


def _date_in_month(index: int, day_of_month: int) -> date:
    year, month0 = divmod(index, 12)
    return clamp_day(year, month0 + 1, day_of_month)


def next_anchor_date(frequency, anchor: Anchor, on_or_after: date) -> date:
    """Earliest date >= on_or_after that satisfies the anchor for this frequency."""
    spec = Frequency.parse(frequency).spec

    if spec.step_days is not None:
        dow = anchor.day_of_week
        if dow is None:
            dow = sunday_based_weekday(anchor.origin or on_or_after)
        first = _next_weekday(on_or_after, dow)
        if spec.step_days == 7 or anchor.origin is None:
            return first
        seed = _next_weekday(anchor.origin, dow)
        if on_or_after <= seed:
            return seed
        periods = -(-(on_or_after - seed).days // spec.step_days)
        return seed + timedelta(days=periods * spec.step_days)

    dom = anchor.day_of_month
    if dom is None:
        dom = (anchor.origin or on_or_after).day
    step = spec.step_months
    index = month_index(on_or_after)
    if anchor.origin is not None:
        index += (month_index(anchor.origin) - index) % step
    candidate = _date_in_month(index, dom)
    if candidate < on_or_after:
        candidate = _date_in_month(index + step, dom)
    return candidate


def step_past(frequency, occurrence: date) -> date:
    """Cursor one interval past an occurrence: +7/+14 days, or the 1st of the month N months on."""
    spec = Frequency.parse(frequency).spec
    if spec.step_days is not None:
        return occurrence + timedelta(days=spec.step_days)
    year, month0 = divmod(month_index(occurrence) + spec.step_months, 12)
    return date(year, month0 + 1, 1)
