"""Tests for missed-occurrence detection"""
from datetime import date
from decimal import Decimal

from obligations.domain.missed import find_missed, is_overdue
from obligations.domain.occurrence import ExpectedOccurrence


def _occ(occ_id, on, delay=3):
    return ExpectedOccurrence(
        id=occ_id, template_id="tpl-1", owner_id="user-1", property_id="prop-1",
        expected_date=on, expected_amount=Decimal("50"), alert_delay_days=delay,
    )


def test_grace_period_is_exclusive():
    occ = _occ("occ-1", date(2024, 1, 10))
    assert not is_overdue(occ, date(2024, 1, 13))
    assert is_overdue(occ, date(2024, 1, 14))


def test_zero_delay_flags_next_day():
    occ = _occ("occ-1", date(2024, 1, 10), delay=0)
    assert not is_overdue(occ, date(2024, 1, 10))
    assert is_overdue(occ, date(2024, 1, 11))


def test_only_pending_considered():
    today = date(2024, 2, 1)
    occs = [
        _occ("occ-1", date(2024, 1, 1)),
        _occ("occ-2", date(2024, 1, 1)).skip(),
        _occ("occ-3", date(2024, 1, 1)).match("tx-1"),
        _occ("occ-4", date(2024, 1, 1)).mark_missed(),
        _occ("occ-5", date(2024, 1, 31)),
        _occ("occ-6", date(2024, 1, 2)),
    ]
    assert find_missed(occs, today) == ["occ-1", "occ-6"]


def test_per_template_delay():
    today = date(2024, 1, 20)
    occs = [_occ("short", date(2024, 1, 15), delay=2), _occ("long", date(2024, 1, 15), delay=10)]
    assert find_missed(occs, today) == ["short"]


def test_nine_days_old_is_missed_unless_matched():
    today = date(2024, 1, 20)
    occ = _occ("occ-1", date(2024, 1, 11))
    assert find_missed([occ], today) == ["occ-1"]
    assert find_missed([occ.match("tx-1")], today) == []
    assert find_missed([_occ("old", date(2020, 1, 1)).match("tx-2")], today) == []
