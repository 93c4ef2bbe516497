"""
Validation Issue Data Classes.

Findings of the invoice validator. Issues are advisory values, never
exceptions: a flagged record is still usable for aggregation and export.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from .invoice_record import InvoiceRecord


class IssueKind(str, Enum):
    """Closed set of consistency findings."""

    EMPTY_FIELD = "EmptyField"
    NEGATIVE_AMOUNT = "NegativeAmount"
    AMOUNT_TOO_LARGE = "AmountTooLarge"
    INVALID_DATE = "InvalidDate"
    VAT_AMOUNT_MISMATCH = "VatAmountMismatch"
    DUPLICATE_INVOICE_ID = "DuplicateInvoiceId"
    VAT_FORMAT_MISMATCH = "VatFormatMismatch"
    COMPANY_NUMBER_FORMAT_MISMATCH = "CompanyNumberFormatMismatch"
    COMPANY_VAT_MISMATCH = "CompanyVatMismatch"


@dataclass(frozen=True)
class ValidationIssue:
    """A single finding: which rule fired, on which field, and why."""

    kind: IssueKind
    field: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind.value, 'field': self.field, 'message': self.message}


@dataclass
class ValidationResult:
    """
    Contains the result of validating one record against its snapshot.

    Attributes:
        record: The validated record
        issues: Findings in check order
    """
    record: InvoiceRecord
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def has_issues(self) -> bool:
        """A record with at least one issue is flagged."""
        return len(self.issues) > 0

    def kinds(self) -> List[IssueKind]:
        """Issue kinds in check order."""
        return [issue.kind for issue in self.issues]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.record.id,
            'external_invoice_id': self.record.external_invoice_id,
            'issues': [issue.to_dict() for issue in self.issues],
        }
