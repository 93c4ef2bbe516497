"""
Invoice Validators Module.

This module checks one invoice record in isolation and against the full
historical snapshot. Checks run in a fixed order, never short-circuit,
and never raise for malformed input: a check whose inputs are missing or
unreadable is skipped, except the required-field check where absence
is itself the finding.

Checks:
    - Required fields present
    - Amounts non-negative and below the ceiling
    - Date parseable and not too far in the future
    - VAT amount consistent with one of the fixed VAT rates
    - External invoice id not shared with other records
    - VAT / company number shaped like the rest of the dataset
    - One VAT number per company name
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, Hashable, Iterable, List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from config import get_config
from src.models import InvoiceRecord, IssueKind, ValidationIssue, ValidationResult
from src.utils.helpers import is_blank
from src.utils.logger import get_logger
from .normalizers import DateNormalizer
from .signatures import (
    FormatSignature,
    company_number_signature,
    vat_signature,
)

logger = get_logger(__name__)


FIELD_LABELS = {
    'external_invoice_id': "Invoice ID",
    'date': "Date",
    'company_name': "Company name",
    'amount_excl_vat': "Amount without VAT",
    'vat_amount': "VAT amount",
    'vat_number': "VAT number",
    'company_number': "Company number",
}


def is_same_record(record: InvoiceRecord, other: InvoiceRecord) -> bool:
    """
    Storage identity check used to exclude a record from "all other records".

    Records are the same row when they are the same object or share a
    non-null storage id. Business fields play no part.
    """
    if other is record:
        return True
    return record.id is not None and other.id == record.id


class SnapshotIndex:
    """
    Lookup tables over one snapshot for the cross-record checks.

    Built once per snapshot so that validating every record does not
    rescan the whole list for each rule.
    """

    def __init__(self, records: Sequence[InvoiceRecord]) -> None:
        self.records = list(records)
        self.by_external_id: Dict[str, List[InvoiceRecord]] = defaultdict(list)
        self.vat_holders: List[InvoiceRecord] = []
        self.vat_by_signature: Dict[FormatSignature, List[InvoiceRecord]] = defaultdict(list)
        self.company_number_holders: List[InvoiceRecord] = []
        self.company_number_by_signature: Dict[FormatSignature, List[InvoiceRecord]] = defaultdict(list)
        self.vat_holders_by_company: Dict[str, List[InvoiceRecord]] = defaultdict(list)

        for record in self.records:
            if not is_blank(record.external_invoice_id):
                self.by_external_id[record.external_invoice_id.strip()].append(record)

            if not is_blank(record.vat_number):
                self.vat_holders.append(record)
                self.vat_by_signature[vat_signature(record.vat_number)].append(record)
                if not is_blank(record.company_name):
                    self.vat_holders_by_company[record.company_name.strip()].append(record)

            if not is_blank(record.company_number):
                self.company_number_holders.append(record)
                self.company_number_by_signature[
                    company_number_signature(record.company_number)
                ].append(record)


class InvoiceValidator:
    """
    Validates invoice records against fixed rules and historical data.

    Attributes:
        vat_rates: Accepted VAT rates
        vat_tolerance: Absolute tolerance for the VAT amount check
        max_amount: Ceiling for both amounts
        max_future_months: How far past "today" a date may lie
        today: Reference date for the future-date rule

    Example:
        >>> validator = InvoiceValidator()
        >>> issues = validator.validate(record, all_records)
        >>> [issue.kind for issue in issues]
        [<IssueKind.VAT_AMOUNT_MISMATCH: 'VatAmountMismatch'>]
    """

    def __init__(
        self,
        today: Optional[date] = None,
        date_normalizer: Optional[DateNormalizer] = None
    ) -> None:
        """
        Initialize the validator with configuration.

        Args:
            today: Reference date for the future-date rule. Defaults to
                the current date.
            date_normalizer: Normalizer to share with other components.
        """
        self.today = today or date.today()
        self.date_normalizer = date_normalizer or DateNormalizer(today=self.today)

        self.required_fields: List[str] = get_config(
            "validation.required_fields",
            list(FIELD_LABELS)
        )
        self.vat_rates: List[Decimal] = [
            Decimal(str(rate))
            for rate in get_config("validation.vat_rates", ["0.21", "0.09", "0.05", "0.0"])
        ]
        self.vat_tolerance = Decimal(str(get_config("validation.vat_tolerance", "0.03")))
        self.max_amount = Decimal(str(get_config("validation.max_amount", "1000000")))
        self.max_future_months = int(get_config("validation.max_future_months", 2))

        logger.debug(
            f"InvoiceValidator initialized (rates: {[str(r) for r in self.vat_rates]}, "
            f"tolerance: {self.vat_tolerance})"
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def validate(
        self,
        record: InvoiceRecord,
        all_records: Sequence[InvoiceRecord],
        index: Optional[SnapshotIndex] = None
    ) -> List[ValidationIssue]:
        """
        Run every check on one record.

        Args:
            record: Record to validate.
            all_records: Full snapshot the record belongs to. The record
                itself may or may not be part of it.
            index: Prebuilt index of ``all_records``.

        Returns:
            Issues in check order; empty when the record is clean.
        """
        if index is None:
            index = SnapshotIndex(all_records)

        issues: List[ValidationIssue] = []
        issues.extend(self.check_empty_fields(record))
        issues.extend(self.check_negative_amounts(record))
        issues.extend(self.check_amount_too_large(record))
        issues.extend(self.check_date_validity(record))
        issues.extend(self.check_vat_amount(record))
        issues.extend(self.check_duplicate_invoice_id(record, index))
        issues.extend(self.check_vat_format(record, index))
        issues.extend(self.check_company_number_format(record, index))
        issues.extend(self.check_company_vat_mismatch(record, index))

        for issue in issues:
            logger.debug(f"Record {record.id}: {issue.kind.value} on {issue.field}: {issue.message}")
        return issues

    def validate_record(
        self,
        record: InvoiceRecord,
        all_records: Sequence[InvoiceRecord]
    ) -> ValidationResult:
        """Validate one record and wrap the findings in a ValidationResult."""
        return ValidationResult(record, self.validate(record, all_records))

    def validate_snapshot(self, records: Iterable[InvoiceRecord]) -> List[ValidationResult]:
        """
        Validate every record of a snapshot against the whole snapshot.

        Args:
            records: The snapshot.

        Returns:
            One ValidationResult per record, in input order.
        """
        snapshot = list(records)
        index = SnapshotIndex(snapshot)
        results = [
            ValidationResult(record, self.validate(record, snapshot, index))
            for record in snapshot
        ]

        flagged = sum(1 for result in results if result.has_issues)
        logger.info(f"Validated {len(results)} records: {flagged} flagged")
        return results

    def validate_all(self, records: Iterable[InvoiceRecord]) -> Dict[Hashable, List[ValidationIssue]]:
        """
        Build the record id -> issues map consumed by aggregation and UI.

        Every record gets an entry, clean records an empty list.

        Args:
            records: The snapshot.

        Returns:
            Mapping of storage id to issue list.
        """
        issue_map: Dict[Hashable, List[ValidationIssue]] = {}
        for result in self.validate_snapshot(records):
            if result.record.id in issue_map:
                logger.debug(f"Record id {result.record.id!r} appears more than once in snapshot")
            issue_map[result.record.id] = result.issues
        return issue_map

    # ------------------------------------------------------------------
    # Single-record checks
    # ------------------------------------------------------------------

    def check_empty_fields(self, record: InvoiceRecord) -> List[ValidationIssue]:
        """One EmptyField issue per missing required field."""
        issues = []
        for name in self.required_fields:
            if is_blank(getattr(record, name, None)):
                label = FIELD_LABELS.get(name, name)
                issues.append(ValidationIssue(
                    IssueKind.EMPTY_FIELD,
                    name,
                    f"{label} is required"
                ))
        return issues

    def check_negative_amounts(self, record: InvoiceRecord) -> List[ValidationIssue]:
        issues = []
        for name in ('amount_excl_vat', 'vat_amount'):
            amount = getattr(record, name)
            if amount is not None and amount < 0:
                issues.append(ValidationIssue(
                    IssueKind.NEGATIVE_AMOUNT,
                    name,
                    f"{FIELD_LABELS[name]} cannot be negative"
                ))
        return issues

    def check_amount_too_large(self, record: InvoiceRecord) -> List[ValidationIssue]:
        issues = []
        for name in ('amount_excl_vat', 'vat_amount'):
            amount = getattr(record, name)
            if amount is not None and amount > self.max_amount:
                issues.append(ValidationIssue(
                    IssueKind.AMOUNT_TOO_LARGE,
                    name,
                    f"{FIELD_LABELS[name]} exceeds maximum of {self.max_amount:,.0f}"
                ))
        return issues

    def check_date_validity(self, record: InvoiceRecord) -> List[ValidationIssue]:
        """
        The date must normalize and lie at most N calendar months after today.
        """
        if is_blank(record.date):
            return []

        parsed = self.date_normalizer.parse(record.date)
        if not parsed.ok:
            return [ValidationIssue(
                IssueKind.INVALID_DATE,
                'date',
                f"Invalid date format: {record.date}"
            )]

        latest_allowed = self.today + relativedelta(months=self.max_future_months)
        if parsed.value > latest_allowed:
            return [ValidationIssue(
                IssueKind.INVALID_DATE,
                'date',
                f"Date is more than {self.max_future_months} months in the future"
            )]
        return []

    def check_vat_amount(self, record: InvoiceRecord) -> List[ValidationIssue]:
        """VAT must match amount x rate within tolerance for at least one rate."""
        amount = record.amount_excl_vat
        vat = record.vat_amount
        if amount is None or vat is None:
            return []

        for rate in self.vat_rates:
            if abs(vat - amount * rate) <= self.vat_tolerance:
                return []

        rates = ", ".join(f"{(rate * 100).normalize():f}%" for rate in self.vat_rates)
        return [ValidationIssue(
            IssueKind.VAT_AMOUNT_MISMATCH,
            'vat_amount',
            f"VAT amount does not match any standard rate ({rates}) "
            f"within ±{self.vat_tolerance} tolerance"
        )]

    # ------------------------------------------------------------------
    # Cross-record checks
    # ------------------------------------------------------------------

    def check_duplicate_invoice_id(
        self,
        record: InvoiceRecord,
        index: SnapshotIndex
    ) -> List[ValidationIssue]:
        if is_blank(record.external_invoice_id):
            return []

        invoice_id = record.external_invoice_id.strip()
        count = sum(
            1 for other in index.by_external_id.get(invoice_id, [])
            if not is_same_record(record, other)
        )
        if count == 0:
            return []

        return [ValidationIssue(
            IssueKind.DUPLICATE_INVOICE_ID,
            'external_invoice_id',
            f"Duplicate invoice ID found: {invoice_id} "
            f"({count} other invoice(s) with same ID)"
        )]

    def check_vat_format(self, record: InvoiceRecord, index: SnapshotIndex) -> List[ValidationIssue]:
        if is_blank(record.vat_number):
            return []
        if not self._has_other(record, index.vat_holders):
            # No historical data to compare against
            return []

        signature = vat_signature(record.vat_number)
        if self._has_other(record, index.vat_by_signature.get(signature, [])):
            return []

        return [ValidationIssue(
            IssueKind.VAT_FORMAT_MISMATCH,
            'vat_number',
            f"VAT number format {signature} does not match any historical VAT numbers"
        )]

    def check_company_number_format(
        self,
        record: InvoiceRecord,
        index: SnapshotIndex
    ) -> List[ValidationIssue]:
        if is_blank(record.company_number):
            return []
        if not self._has_other(record, index.company_number_holders):
            return []

        signature = company_number_signature(record.company_number)
        if self._has_other(record, index.company_number_by_signature.get(signature, [])):
            return []

        return [ValidationIssue(
            IssueKind.COMPANY_NUMBER_FORMAT_MISMATCH,
            'company_number',
            f"Company number format {signature} does not match any historical company numbers"
        )]

    def check_company_vat_mismatch(
        self,
        record: InvoiceRecord,
        index: SnapshotIndex
    ) -> List[ValidationIssue]:
        """Other records of the same company must not carry a different VAT number."""
        if is_blank(record.company_name) or is_blank(record.vat_number):
            return []

        company_name = record.company_name.strip()
        vat_number = record.vat_number.strip()

        conflicting: List[str] = []
        for other in index.vat_holders_by_company.get(company_name, []):
            if is_same_record(record, other):
                continue
            other_vat = other.vat_number.strip()
            if other_vat != vat_number and other_vat not in conflicting:
                conflicting.append(other_vat)

        if not conflicting:
            return []

        return [ValidationIssue(
            IssueKind.COMPANY_VAT_MISMATCH,
            'vat_number',
            f"Company '{company_name}' has different VAT numbers in database: "
            f"{', '.join(conflicting)}"
        )]

    @staticmethod
    def _has_other(record: InvoiceRecord, candidates: Iterable[InvoiceRecord]) -> bool:
        return any(not is_same_record(record, other) for other in candidates)


def validate_all(
    records: Iterable[InvoiceRecord],
    today: Optional[date] = None
) -> Dict[Hashable, List[ValidationIssue]]:
    """
    Convenience function: validate a snapshot with a default validator.

    Args:
        records: The snapshot.
        today: Optional reference date.

    Returns:
        Mapping of storage id to issue list.
    """
    return InvoiceValidator(today=today).validate_all(records)
