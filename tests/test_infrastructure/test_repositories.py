"""Tests for the SQLAlchemy stores and schema helpers"""
import pytest
from datetime import date
from decimal import Decimal

from sqlalchemy import create_engine, inspect

from obligations.domain.frequency import Frequency
from obligations.domain.occurrence import OccurrenceStatus
from obligations.infrastructure.db import session as session_module
from obligations.infrastructure.db.models import (
    RecurringTemplateModel, ExpectedOccurrenceModel, LedgerTransactionModel,
)
from obligations.infrastructure.repositories import TemplateRepository, LedgerRepository

OWNER = "user-1"


@pytest.fixture
def seeded(db_session):
    db_session.add_all([
        RecurringTemplateModel(
            id="tpl-1", owner_id=OWNER, property_id="prop-1", description="Rent",
            amount=Decimal("1200.00"), category="rent", transaction_type="expense",
            frequency="monthly", anchor_day_of_month=1, start_date=date(2024, 1, 1),
            amount_tolerance=Decimal("5.00"), date_tolerance_days=3, alert_delay_days=7, is_active=True,
        ),
        RecurringTemplateModel(
            id="tpl-2", owner_id="user-2", property_id="prop-9", description="Gym",
            amount=Decimal("40.00"), category="gym", transaction_type="personal",
            frequency="weekly", anchor_day_of_week=2, start_date=date(2024, 1, 1),
            amount_tolerance=Decimal("1.00"), date_tolerance_days=1, alert_delay_days=2, is_active=False,
        ),
        ExpectedOccurrenceModel(
            id="occ-2", template_id="tpl-1", owner_id=OWNER, property_id="prop-1",
            expected_date=date(2024, 2, 1), expected_amount=Decimal("1200.00"), status="pending",
        ),
        ExpectedOccurrenceModel(
            id="occ-1", template_id="tpl-1", owner_id=OWNER, property_id="prop-1",
            expected_date=date(2024, 1, 1), expected_amount=Decimal("1200.00"),
            status="matched", matched_transaction_id="tx-1",
        ),
        LedgerTransactionModel(
            id="tx-1", owner_id=OWNER, property_id="prop-1", date=date(2024, 1, 1),
            amount=Decimal("-1200.00"), category="rent", description="Rent",
        ),
        LedgerTransactionModel(
            id="tx-2", owner_id=OWNER, property_id="prop-1", date=date(2024, 2, 2),
            amount=Decimal("-1200.00"), category="rent", description="Rent",
        ),
    ])
    db_session.flush()
    return db_session


class TestTemplateRepository:
    def test_get_converts_row(self, seeded):
        t = TemplateRepository(seeded).get("tpl-1")
        assert t.frequency is Frequency.MONTHLY
        assert t.amount == Decimal("1200.00")
        assert t.alert_delay_days == 7

    def test_get_scoped_by_owner(self, seeded):
        assert TemplateRepository(seeded).get("tpl-1", owner_id="user-2") is None

    def test_active_rows(self, seeded):
        assert [r.id for r in TemplateRepository(seeded).active_rows()] == ["tpl-1"]

    def test_owner_ids(self, seeded):
        assert TemplateRepository(seeded).owner_ids() == ["user-1", "user-2"]

    def test_materialized_dates(self, seeded):
        assert TemplateRepository(seeded).materialized_dates("tpl-1") == {date(2024, 1, 1), date(2024, 2, 1)}

    def test_list_occurrences_ordered_with_template_delay(self, seeded):
        occs = TemplateRepository(seeded).list_occurrences(OWNER)
        assert [o.id for o in occs] == ["occ-1", "occ-2"]
        assert all(o.alert_delay_days == 7 for o in occs)

    def test_list_occurrences_by_status(self, seeded):
        occs = TemplateRepository(seeded).list_occurrences(OWNER, [OccurrenceStatus.PENDING])
        assert [o.id for o in occs] == ["occ-2"]

    def test_list_occurrences_by_property_and_template(self, seeded):
        seeded.add(ExpectedOccurrenceModel(
            id="occ-3", template_id="tpl-9", owner_id=OWNER, property_id="prop-2",
            expected_date=date(2024, 1, 20), expected_amount=Decimal("10.00"), status="pending",
        ))
        seeded.add(RecurringTemplateModel(
            id="tpl-9", owner_id=OWNER, property_id="prop-2", description="Water",
            amount=Decimal("10.00"), category="water", transaction_type="expense",
            frequency="monthly", anchor_day_of_month=20, start_date=date(2024, 1, 1),
            amount_tolerance=Decimal("1.00"), date_tolerance_days=3, alert_delay_days=3, is_active=True,
        ))
        seeded.flush()
        repo = TemplateRepository(seeded)
        assert [o.id for o in repo.list_occurrences(OWNER, property_id="prop-2")] == ["occ-3"]
        assert [o.id for o in repo.list_occurrences(OWNER, template_id="tpl-1")] == ["occ-1", "occ-2"]
        assert repo.list_occurrences(OWNER, property_id="prop-1", template_id="tpl-9") == []

    def test_linked_transaction_ids(self, seeded):
        assert TemplateRepository(seeded).linked_transaction_ids(OWNER) == {"tx-1"}

    def test_save_occurrence(self, seeded):
        repo = TemplateRepository(seeded)
        repo.save_occurrence(repo.get_occurrence("occ-2").match("tx-2"))
        assert repo.get_occurrence("occ-2").matched_transaction_id == "tx-2"


class TestLedgerRepository:
    def test_candidates_exclude_linked(self, seeded):
        txs = LedgerRepository(seeded).candidates(OWNER, exclude_ids={"tx-1"})
        assert [t.id for t in txs] == ["tx-2"]

    def test_candidates_date_range(self, seeded):
        txs = LedgerRepository(seeded).candidates(OWNER, date_from=date(2024, 1, 15))
        assert [t.id for t in txs] == ["tx-2"]

    def test_history_newest_first(self, seeded):
        assert [t.id for t in LedgerRepository(seeded).history(OWNER, limit=10)] == ["tx-2", "tx-1"]

    def test_get_scoped_by_owner(self, seeded):
        assert LedgerRepository(seeded).get("tx-1", "user-2") is None
        assert LedgerRepository(seeded).get("tx-1", OWNER).magnitude == Decimal("1200.00")


class TestSchemaHelpers:
    def test_init_schema_creates_engine_tables_only(self):
        engine = create_engine("sqlite:///:memory:")
        session_module.init_schema(engine)
        tables = set(inspect(engine).get_table_names())
        assert tables == {"recurring_templates", "expected_occurrences"}

    def test_check_db_connection(self, monkeypatch):
        monkeypatch.setattr(session_module, "_engine", create_engine("sqlite:///:memory:"))
        session_module.check_db_connection()
