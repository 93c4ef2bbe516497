"""Tests for single-record and cross-record validation."""

from decimal import Decimal

import pytest

from src.consistency import InvoiceValidator, validate_all
from src.consistency.signatures import company_number_signature, vat_signature
from src.models import IssueKind


@pytest.fixture
def validator(today):
    return InvoiceValidator(today=today)


def kinds(issues):
    return [issue.kind for issue in issues]


class TestSingleRecordChecks:

    def test_clean_record_has_no_issues(self, validator, make_record):
        record = make_record()
        assert validator.validate(record, [record]) == []

    def test_each_missing_field_is_reported(self, validator, make_record):
        record = make_record(company_name="  ", vat_number=None, date="")
        issues = validator.check_empty_fields(record)
        assert kinds(issues) == [IssueKind.EMPTY_FIELD] * 3
        assert [issue.field for issue in issues] == ['date', 'company_name', 'vat_number']
        assert issues[1].message == "Company name is required"

    def test_negative_amounts(self, validator, make_record):
        record = make_record(amount_excl_vat=Decimal("-100.00"), vat_amount=Decimal("-21.00"))
        issues = validator.check_negative_amounts(record)
        assert kinds(issues) == [IssueKind.NEGATIVE_AMOUNT] * 2
        assert issues[0].message == "Amount without VAT cannot be negative"

    def test_amount_ceiling_is_inclusive(self, validator, make_record):
        at_limit = make_record(amount_excl_vat=Decimal("1000000"), vat_amount=Decimal("210000"))
        above = make_record(amount_excl_vat=Decimal("1000000.01"), vat_amount=Decimal("0"))
        assert validator.check_amount_too_large(at_limit) == []
        issues = validator.check_amount_too_large(above)
        assert kinds(issues) == [IssueKind.AMOUNT_TOO_LARGE]
        assert issues[0].message == "Amount without VAT exceeds maximum of 1,000,000"

    def test_unparsable_date(self, validator, make_record):
        issues = validator.check_date_validity(make_record(date="someday"))
        assert kinds(issues) == [IssueKind.INVALID_DATE]
        assert issues[0].message == "Invalid date format: someday"

    def test_blank_date_only_reported_as_empty(self, validator, make_record):
        record = make_record(date=None)
        assert validator.check_date_validity(record) == []
        assert IssueKind.EMPTY_FIELD in kinds(validator.validate(record, [record]))

    def test_date_two_months_ahead_is_allowed(self, validator, make_record):
        # today is 2025-06-15
        assert validator.check_date_validity(make_record(date="2025-08-15")) == []

    def test_date_beyond_two_months_is_flagged(self, validator, make_record):
        issues = validator.check_date_validity(make_record(date="2025-08-16"))
        assert kinds(issues) == [IssueKind.INVALID_DATE]
        assert "more than 2 months in the future" in issues[0].message

    @pytest.mark.parametrize("vat", ["21.00", "21.03", "20.97", "9.00", "5.02", "0.00"])
    def test_vat_within_tolerance_of_some_rate(self, validator, make_record, vat):
        record = make_record(amount_excl_vat=Decimal("100.00"), vat_amount=Decimal(vat))
        assert validator.check_vat_amount(record) == []

    @pytest.mark.parametrize("vat", ["21.04", "20.96", "15.00"])
    def test_vat_outside_tolerance(self, validator, make_record, vat):
        record = make_record(amount_excl_vat=Decimal("100.00"), vat_amount=Decimal(vat))
        issues = validator.check_vat_amount(record)
        assert kinds(issues) == [IssueKind.VAT_AMOUNT_MISMATCH]
        assert "21%, 9%, 5%, 0%" in issues[0].message

    def test_vat_check_skipped_without_amounts(self, validator, make_record):
        assert validator.check_vat_amount(make_record(vat_amount=None)) == []
        assert validator.check_vat_amount(make_record(amount_excl_vat=None)) == []

    def test_checks_do_not_short_circuit(self, validator, make_record):
        record = make_record(
            company_name=None,
            amount_excl_vat=Decimal("-100.00"),
            vat_amount=Decimal("50.00"),
        )
        assert kinds(validator.validate(record, [record])) == [
            IssueKind.EMPTY_FIELD,
            IssueKind.NEGATIVE_AMOUNT,
            IssueKind.VAT_AMOUNT_MISMATCH,
        ]


class TestCrossRecordChecks:

    def test_duplicate_invoice_id_counts_others(self, validator, make_record):
        a = make_record(external_invoice_id="INV-1")
        b = make_record(external_invoice_id="INV-1")
        c = make_record(external_invoice_id=" INV-1 ")
        issues = validator.check_duplicate_invoice_id(a, _index([a, b, c]))
        assert kinds(issues) == [IssueKind.DUPLICATE_INVOICE_ID]
        assert issues[0].message == (
            "Duplicate invoice ID found: INV-1 (2 other invoice(s) with same ID)"
        )

    def test_record_is_not_its_own_duplicate(self, validator, make_record):
        record = make_record()
        assert validator.check_duplicate_invoice_id(record, _index([record])) == []

    def test_same_storage_id_is_the_same_record(self, validator, make_record):
        record = make_record(id="5")
        stale_copy = make_record(id="5", external_invoice_id=record.external_invoice_id)
        assert validator.check_duplicate_invoice_id(record, _index([stale_copy])) == []

    def test_records_without_ids_are_compared_by_identity(self, validator, make_record):
        a = make_record(id=None, external_invoice_id="INV-1")
        b = make_record(id=None, external_invoice_id="INV-1")
        assert kinds(validator.check_duplicate_invoice_id(a, _index([a, b]))) == [
            IssueKind.DUPLICATE_INVOICE_ID
        ]

    def test_vat_format_drift(self, validator, make_record):
        history = [make_record(vat_number="LT123456789") for _ in range(3)]
        drifted = make_record(vat_number="LT12345678")
        issues = validator.check_vat_format(drifted, _index(history + [drifted]))
        assert kinds(issues) == [IssueKind.VAT_FORMAT_MISMATCH]
        assert "LT|10|LLDDDDDDDD" in issues[0].message

    def test_vat_format_matching_history(self, validator, make_record):
        history = [make_record(vat_number="LT100000001")]
        record = make_record(vat_number="LT999999999")
        assert validator.check_vat_format(record, _index(history + [record])) == []

    def test_vat_prefix_is_part_of_the_shape(self, validator, make_record):
        history = [make_record(vat_number="LT123456789")]
        record = make_record(vat_number="LV123456789")
        assert kinds(validator.check_vat_format(record, _index(history + [record]))) == [
            IssueKind.VAT_FORMAT_MISMATCH
        ]

    def test_vat_without_country_prefix_drifts_from_prefixed_history(self, validator, make_record):
        history = [make_record(vat_number=f"LT{n:09d}") for n in (123456789, 987654321, 555555555)]
        record = make_record(vat_number="123456789")
        issues = validator.check_vat_format(record, _index(history + [record]))
        assert kinds(issues) == [IssueKind.VAT_FORMAT_MISMATCH]
        assert "|9|DDDDDDDDD" in issues[0].message

    def test_single_record_snapshot_has_no_cross_record_findings(self, validator, make_record):
        record = make_record(vat_number="odd-vat", company_number="X-1")
        cross_record = {
            IssueKind.DUPLICATE_INVOICE_ID,
            IssueKind.VAT_FORMAT_MISMATCH,
            IssueKind.COMPANY_NUMBER_FORMAT_MISMATCH,
            IssueKind.COMPANY_VAT_MISMATCH,
        }
        assert cross_record.isdisjoint(kinds(validator.validate(record, [record])))
        assert validator.validate_all([record]) == {record.id: []}

    def test_format_checks_skip_without_other_evidence(self, validator, make_record):
        record = make_record(vat_number="odd-vat", company_number="X-1")
        other = make_record(vat_number=None, company_number=None, company_name="Other")
        index = _index([record, other])
        assert validator.check_vat_format(record, index) == []
        assert validator.check_company_number_format(record, index) == []

    def test_company_number_drift(self, validator, make_record):
        history = [make_record(company_number="123456789")]
        record = make_record(company_number="12345-678")
        issues = validator.check_company_number_format(record, _index(history + [record]))
        assert kinds(issues) == [IssueKind.COMPANY_NUMBER_FORMAT_MISMATCH]
        assert "9|DDDDD-DDD" in issues[0].message

    def test_company_vat_mismatch_lists_each_conflict_once(self, validator, make_record):
        record = make_record(company_name="ACME UAB", vat_number="LT111111111")
        others = [
            make_record(company_name="ACME UAB", vat_number="LT222222222"),
            make_record(company_name="ACME UAB ", vat_number="LT222222222"),
            make_record(company_name="ACME UAB", vat_number="LT333333333"),
            make_record(company_name="ACME UAB", vat_number="LT111111111"),
            make_record(company_name="Other", vat_number="LT444444444"),
        ]
        issues = validator.check_company_vat_mismatch(record, _index([record] + others))
        assert kinds(issues) == [IssueKind.COMPANY_VAT_MISMATCH]
        assert issues[0].message == (
            "Company 'ACME UAB' has different VAT numbers in database: "
            "LT222222222, LT333333333"
        )

    def test_company_vat_mismatch_is_case_sensitive(self, validator, make_record):
        record = make_record(company_name="ACME UAB", vat_number="LT111111111")
        other = make_record(company_name="Acme UAB", vat_number="LT222222222")
        assert validator.check_company_vat_mismatch(record, _index([record, other])) == []


class TestSnapshotValidation:

    def test_validate_all_maps_every_record(self, today, make_record):
        clean = make_record()
        broken = make_record(vat_amount=Decimal("50.00"))
        issue_map = validate_all([clean, broken], today=today)
        assert set(issue_map) == {clean.id, broken.id}
        assert issue_map[clean.id] == []
        assert kinds(issue_map[broken.id]) == [IssueKind.VAT_AMOUNT_MISMATCH]

    def test_validate_all_is_idempotent(self, validator, make_record):
        records = [
            make_record(external_invoice_id="INV-1"),
            make_record(external_invoice_id="INV-1", date="31.01.2025"),
            make_record(vat_number="LT1"),
            make_record(date="bad"),
        ]
        assert validator.validate_all(records) == validator.validate_all(records)

    def test_validate_record_wraps_result(self, validator, make_record):
        record = make_record(vat_amount=Decimal("1.00"))
        result = validator.validate_record(record, [record])
        assert result.has_issues
        assert result.kinds() == [IssueKind.VAT_AMOUNT_MISMATCH]
        assert result.to_dict()['issues'][0]['kind'] == "VatAmountMismatch"

    def test_record_outside_snapshot_is_compared_to_all(self, validator, make_record):
        snapshot = [make_record(external_invoice_id="INV-1")]
        newcomer = make_record(external_invoice_id="INV-1")
        assert IssueKind.DUPLICATE_INVOICE_ID in kinds(validator.validate(newcomer, snapshot))

    def test_validate_snapshot_logs_summary(self, validator, make_record, caplog):
        records = [make_record(), make_record(company_name=None)]
        with caplog.at_level("INFO", logger="invoice_consistency"):
            results = validator.validate_snapshot(records)
        assert [result.has_issues for result in results] == [False, True]
        assert "Validated 2 records: 1 flagged" in caplog.text


class TestSignatures:

    def test_vat_signature(self):
        signature = vat_signature("lt123456789")
        assert signature.prefix == "LT"
        assert signature.length == 11
        assert signature.shape == "LLDDDDDDDDD"
        assert str(signature) == "LT|11|LLDDDDDDDDD"

    def test_vat_signature_without_letter_prefix(self):
        assert vat_signature("123456789").prefix == ""

    def test_company_number_signature_has_no_prefix(self):
        signature = company_number_signature("AB-12")
        assert signature.prefix is None
        assert str(signature) == "5|LL-DD"


def _index(records):
    from src.consistency import SnapshotIndex
    return SnapshotIndex(records)
