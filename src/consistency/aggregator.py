"""
Period Aggregator Module.

This module builds the hierarchical reporting view of a snapshot:
Year -> Month -> Direction -> Company, with counts, sums and flagged
counts rolled up from the leaves. Records whose date cannot be
normalized belong to no bucket and are excluded from every total.

Author: ML Engineering Team
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, Hashable, Iterable, List, Optional, Sequence

from config import get_config
from src.models import (
    CompanySummary,
    DirectionSummary,
    InvoiceDirection,
    InvoiceRecord,
    MonthlySummary,
    PeriodSummary,
    SummaryTotals,
    ValidationIssue,
)
from src.utils.helpers import is_blank
from src.utils.logger import get_logger
from .normalizers import DateNormalizer

logger = get_logger(__name__)

IssueMap = Dict[Hashable, List[ValidationIssue]]


class PeriodAggregator:
    """
    Buckets records by period, direction and company.

    Presentation order: months most recent first, Sales before Purchase,
    companies alphabetically (case-sensitive unless configured otherwise).

    Example:
        >>> aggregator = PeriodAggregator()
        >>> summary = aggregator.summarize(records, 2025, issue_map)
        >>> summary.months[0].month
        "2025-03"
        >>> aggregator.records_for_company(records, "2025-03", "S", "ACME")
        [InvoiceRecord(...)]
    """

    def __init__(
        self,
        date_normalizer: Optional[DateNormalizer] = None,
        today: Optional[date] = None
    ) -> None:
        """
        Initialize the aggregator with configuration.

        Args:
            date_normalizer: Normalizer used to derive period keys.
            today: Reference date (current-year fallback, two-digit years).
        """
        self.today = today or date.today()
        self.date_normalizer = date_normalizer or DateNormalizer(today=self.today)
        self.unknown_company = get_config("aggregation.unknown_company", "Unknown")
        self.case_sensitive = bool(get_config("aggregation.company_case_sensitive", True))

        logger.debug("PeriodAggregator initialized")

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def period_key(self, record: InvoiceRecord) -> Optional[str]:
        """YYYY-MM key of a record, None when its date does not normalize."""
        return self.date_normalizer.period_key(record.date)

    def company_name(self, record: InvoiceRecord) -> str:
        """Display name of a record's company bucket."""
        if is_blank(record.company_name):
            return self.unknown_company
        return record.company_name.strip()

    def company_key(self, record: InvoiceRecord) -> str:
        """
        Grouping key of a record's company.

        Case-folded when company_case_sensitive is off, so "ACME" and
        "Acme" share one bucket shown under the first spelling seen.
        """
        return self._fold(self.company_name(record))

    def _fold(self, name: str) -> str:
        return name if self.case_sensitive else name.casefold()

    def _company_sort_key(self, name: str):
        if self.case_sensitive:
            return name
        return (name.casefold(), name)

    def _group_companies(
        self,
        records: Iterable[InvoiceRecord],
        issue_map: IssueMap
    ) -> List[CompanySummary]:
        """Company leaves of a record set, alphabetical."""
        groups: Dict[str, List[InvoiceRecord]] = defaultdict(list)
        for record in records:
            groups[self.company_key(record)].append(record)

        companies = [
            self.build_company(self.company_name(members[0]), members, issue_map)
            for members in groups.values()
        ]
        companies.sort(key=lambda company: self._company_sort_key(company.company_name))
        return companies

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def summarize(
        self,
        records: Iterable[InvoiceRecord],
        year: int,
        issue_map: Optional[IssueMap] = None
    ) -> PeriodSummary:
        """
        Build the summary tree of one calendar year.

        Args:
            records: Snapshot to aggregate.
            year: Target year; records of other years are ignored.
            issue_map: Record id -> issues, as produced by validate_all.

        Returns:
            PeriodSummary whose months are ordered most recent first.
        """
        issue_map = issue_map or {}
        prefix = f"{year:04d}-"

        tree: Dict[str, Dict[InvoiceDirection, List[InvoiceRecord]]] = (
            defaultdict(lambda: defaultdict(list))
        )
        skipped = 0
        for record in records:
            month = self.period_key(record)
            if month is None:
                skipped += 1
                continue
            if not month.startswith(prefix):
                continue
            tree[month][record.invoice_direction].append(record)

        months = [
            self._build_month(month, tree[month], issue_map)
            for month in sorted(tree, reverse=True)
        ]
        summary = PeriodSummary(year=year, months=months, totals=SummaryTotals.roll_up(months))

        logger.info(
            f"Summarized {summary.count} records for {year} "
            f"into {len(months)} months ({summary.flagged_count} flagged)"
        )
        if skipped:
            logger.debug(f"{skipped} records without a usable date were left out of the summary")
        return summary

    def _build_month(
        self,
        month: str,
        directions: Dict[InvoiceDirection, List[InvoiceRecord]],
        issue_map: IssueMap
    ) -> MonthlySummary:
        direction_nodes = []
        for direction in sorted(directions, key=lambda d: d.value, reverse=True):
            companies = self._group_companies(directions[direction], issue_map)
            direction_nodes.append(DirectionSummary(
                direction=direction,
                companies=companies,
                totals=SummaryTotals.roll_up(companies)
            ))
        return MonthlySummary(
            month=month,
            directions=direction_nodes,
            totals=SummaryTotals.roll_up(direction_nodes)
        )

    @staticmethod
    def build_company(
        company_name: str,
        records: Sequence[InvoiceRecord],
        issue_map: IssueMap
    ) -> CompanySummary:
        """Leaf node with totals computed directly from its records."""
        totals = SummaryTotals()
        for record in records:
            totals.count += 1
            totals.sum_excl_vat += record.amount_excl_vat or Decimal("0")
            totals.sum_vat += record.vat_amount or Decimal("0")
            if issue_map.get(record.id):
                totals.flagged_count += 1
        return CompanySummary(company_name=company_name, records=list(records), totals=totals)

    def company_summaries_for_month(
        self,
        records: Iterable[InvoiceRecord],
        month: str,
        issue_map: Optional[IssueMap] = None
    ) -> List[CompanySummary]:
        """
        Company roll-up of one month across both directions.

        Args:
            records: Snapshot.
            month: Period key (YYYY-MM).
            issue_map: Record id -> issues.

        Returns:
            Company summaries in alphabetical order.
        """
        return self._group_companies(self.records_for_month(records, month), issue_map or {})

    # ------------------------------------------------------------------
    # Drill-down accessors
    # ------------------------------------------------------------------

    def records_for_month(self, records: Iterable[InvoiceRecord], month: str) -> List[InvoiceRecord]:
        """Records whose normalized date falls in the given YYYY-MM period."""
        return [record for record in records if self.period_key(record) == month]

    def records_for_direction(
        self,
        records: Iterable[InvoiceRecord],
        month: str,
        direction: InvoiceDirection
    ) -> List[InvoiceRecord]:
        wanted = InvoiceDirection.parse(direction)
        return [
            record for record in self.records_for_month(records, month)
            if record.invoice_direction is wanted
        ]

    def records_for_company(
        self,
        records: Iterable[InvoiceRecord],
        month: str,
        direction: InvoiceDirection,
        company_name: str
    ) -> List[InvoiceRecord]:
        """Records backing one leaf of the summary tree."""
        wanted = self._fold(company_name.strip())
        return [
            record for record in self.records_for_direction(records, month, direction)
            if self.company_key(record) == wanted
        ]

    def available_years(self, records: Iterable[InvoiceRecord]) -> List[int]:
        """
        Distinct years present in the snapshot, most recent first.

        Falls back to the current year when no record date normalizes.
        """
        years = set()
        for record in records:
            parsed = self.date_normalizer.parse(record.date)
            if parsed.ok:
                years.add(parsed.value.year)
        return sorted(years, reverse=True) or [self.today.year]
