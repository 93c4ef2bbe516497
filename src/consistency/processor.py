"""
Consistency Engine Module.

This module provides the ConsistencyEngine class that wires the date
normalizer, validator, aggregator and duplicate resolver over a single
immutable snapshot of invoice records.

Operations:
    - Validate every record against the snapshot
    - Summarize a year by month, direction and company
    - Drill down to the records behind any summary node
    - Find and resolve duplicate invoice ids within a period
"""

from datetime import date
from typing import Dict, Hashable, Iterable, List, Optional, Tuple

from src.models import (
    CompanySummary,
    DuplicateGroup,
    DuplicateResolution,
    InvoiceDirection,
    InvoiceRecord,
    PeriodSummary,
    ValidationIssue,
)
from src.utils.logger import get_logger
from .aggregator import PeriodAggregator
from .duplicates import DuplicateResolver
from .normalizers import DateNormalizer
from .validators import InvoiceValidator

logger = get_logger(__name__)


class ConsistencyEngine:
    """
    Facade over one snapshot of invoice records.

    The engine keeps the snapshot as a tuple and memoizes only the issue
    map of that snapshot. ``reload`` swaps the snapshot and drops the
    memoized map; nothing else is cached between calls.

    Attributes:
        records: The current snapshot
        validator: InvoiceValidator instance
        aggregator: PeriodAggregator instance
        resolver: DuplicateResolver instance

    Example:
        >>> engine = ConsistencyEngine(store.get_all())
        >>> summary = engine.summarize(2025)
        >>> for month in summary.months:
        ...     print(month.month, month.count, month.flagged_count)
        >>> resolutions = engine.resolve_duplicates("2025-01")
    """

    def __init__(
        self,
        records: Iterable[InvoiceRecord] = (),
        today: Optional[date] = None
    ) -> None:
        """
        Initialize the engine with all sub-components.

        Args:
            records: Initial snapshot.
            today: Reference date shared by every component.
        """
        self.today = today or date.today()
        self.date_normalizer = DateNormalizer(today=self.today)
        self.validator = InvoiceValidator(today=self.today, date_normalizer=self.date_normalizer)
        self.aggregator = PeriodAggregator(date_normalizer=self.date_normalizer, today=self.today)
        self.resolver = DuplicateResolver(date_normalizer=self.date_normalizer)

        self.records: Tuple[InvoiceRecord, ...] = ()
        self._issue_map: Optional[Dict[Hashable, List[ValidationIssue]]] = None
        self.reload(records)

    def reload(self, records: Iterable[InvoiceRecord]) -> None:
        """Replace the snapshot, e.g. after deletions were applied to the store."""
        self.records = tuple(records)
        self._issue_map = None
        logger.info(f"Snapshot loaded: {len(self.records)} records")

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_all(self) -> Dict[Hashable, List[ValidationIssue]]:
        """Record id -> issues for the current snapshot."""
        if self._issue_map is None:
            self._issue_map = self.validator.validate_all(self.records)
        return self._issue_map

    def issues_for(self, record: InvoiceRecord) -> List[ValidationIssue]:
        return self.validate_all().get(record.id, [])

    def flagged_records(self) -> List[InvoiceRecord]:
        """Records with at least one issue, in snapshot order."""
        issue_map = self.validate_all()
        return [record for record in self.records if issue_map.get(record.id)]

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def available_years(self) -> List[int]:
        return self.aggregator.available_years(self.records)

    def summarize(self, year: Optional[int] = None) -> PeriodSummary:
        """
        Summarize one year, flagging records from the snapshot's issue map.

        Args:
            year: Target year; defaults to the most recent available year.

        Returns:
            PeriodSummary tree.
        """
        if year is None:
            year = self.available_years()[0]
        return self.aggregator.summarize(self.records, year, self.validate_all())

    def company_summaries_for_month(self, month: str) -> List[CompanySummary]:
        return self.aggregator.company_summaries_for_month(self.records, month, self.validate_all())

    def records_for_month(self, month: str) -> List[InvoiceRecord]:
        return self.aggregator.records_for_month(self.records, month)

    def records_for_direction(self, month: str, direction: InvoiceDirection) -> List[InvoiceRecord]:
        return self.aggregator.records_for_direction(self.records, month, direction)

    def records_for_company(
        self,
        month: str,
        direction: InvoiceDirection,
        company_name: str
    ) -> List[InvoiceRecord]:
        return self.aggregator.records_for_company(self.records, month, direction, company_name)

    # ------------------------------------------------------------------
    # Duplicates
    # ------------------------------------------------------------------

    def find_duplicates(self, period: Optional[str] = None) -> List[DuplicateGroup]:
        return self.resolver.find_duplicates(self.records, period)

    def resolve_duplicates(self, period: Optional[str] = None) -> List[DuplicateResolution]:
        """
        Decide survivors for every duplicate group of a period.

        The returned resolutions are instructions only; apply them with
        ``src.storage.apply_resolutions`` and reload the snapshot.
        """
        resolutions = self.resolver.resolve_all(self.find_duplicates(period))
        losers = sum(len(resolution.losers) for resolution in resolutions)
        logger.info(f"Resolved {len(resolutions)} duplicate groups: {losers} records to delete")
        return resolutions
