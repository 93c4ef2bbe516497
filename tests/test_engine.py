"""Tests for the ConsistencyEngine facade."""

from decimal import Decimal

import pytest

from src.consistency import ConsistencyEngine
from src.models import IssueKind


@pytest.fixture
def records(make_record):
    return [
        make_record(id="1", external_invoice_id="INV-1", date="2025-01-05"),
        make_record(id="2", external_invoice_id="INV-1", date="2025-01-15"),
        make_record(id="3", date="2025-02-01", vat_amount=Decimal("30.00")),
        make_record(id="4", date="2024-11-11", invoice_direction="S"),
    ]


@pytest.fixture
def engine(records, today):
    return ConsistencyEngine(records, today=today)


def test_issue_map_is_memoized(engine):
    assert engine.validate_all() is engine.validate_all()


def test_flagged_records(engine):
    assert [record.id for record in engine.flagged_records()] == ["1", "2", "3"]
    assert [issue.kind for issue in engine.issues_for(engine.records[2])] == [
        IssueKind.VAT_AMOUNT_MISMATCH
    ]


def test_summarize_defaults_to_most_recent_year(engine):
    summary = engine.summarize()
    assert summary.year == 2025
    assert summary.count == 3
    assert summary.flagged_count == 3


def test_summarize_other_year(engine):
    summary = engine.summarize(2024)
    assert summary.count == 1
    assert summary.months[0].directions[0].direction.value == "S"


def test_drill_down(engine):
    assert [r.id for r in engine.records_for_month("2025-01")] == ["1", "2"]
    assert [r.id for r in engine.records_for_direction("2025-01", "P")] == ["1", "2"]
    assert engine.records_for_company("2025-01", "S", "ACME UAB") == []
    companies = engine.company_summaries_for_month("2025-01")
    assert companies[0].flagged_count == 2


def test_resolve_and_reload(engine):
    resolutions = engine.resolve_duplicates("2025-01")
    assert len(resolutions) == 1
    assert resolutions[0].survivor.id == "2"

    losers = {record.id for r in resolutions for record in r.losers}
    engine.reload([record for record in engine.records if record.id not in losers])
    assert engine.find_duplicates("2025-01") == []
    assert IssueKind.DUPLICATE_INVOICE_ID not in [
        issue.kind for issues in engine.validate_all().values() for issue in issues
    ]


def test_empty_snapshot(today):
    engine = ConsistencyEngine(today=today)
    assert engine.available_years() == [2025]
    assert engine.summarize().count == 0
    assert engine.find_duplicates() == []
