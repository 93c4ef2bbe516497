"""
Data Models for the Invoice Consistency Engine.

This module provides the value types exchanged between components:
    - InvoiceRecord / InvoiceDirection: the unit of work
    - ValidationIssue / IssueKind / ValidationResult: validator findings
    - PeriodSummary and its month/direction/company nodes
    - DuplicateGroup / DuplicateResolution / DeletionReport
"""

from .invoice_record import InvoiceRecord, InvoiceDirection
from .validation_issue import IssueKind, ValidationIssue, ValidationResult
from .summary import (
    SummaryTotals,
    CompanySummary,
    DirectionSummary,
    MonthlySummary,
    PeriodSummary,
)
from .duplicates import (
    DuplicateGroup,
    DuplicateResolution,
    DeletionOutcome,
    DeletionReport,
)

__all__ = [
    'InvoiceRecord',
    'InvoiceDirection',
    'IssueKind',
    'ValidationIssue',
    'ValidationResult',
    'SummaryTotals',
    'CompanySummary',
    'DirectionSummary',
    'MonthlySummary',
    'PeriodSummary',
    'DuplicateGroup',
    'DuplicateResolution',
    'DeletionOutcome',
    'DeletionReport',
]
