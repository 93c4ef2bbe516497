"""
Period Summary Data Classes.

A period summary is a tree: Year -> Month -> Direction -> Company. Leaf
(company) nodes hold the backing records; every parent's totals are the
roll-up of its direct children, never recomputed independently.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from .invoice_record import InvoiceDirection, InvoiceRecord


@dataclass
class SummaryTotals:
    """Count, sums and flagged count of one summary node."""

    count: int = 0
    sum_excl_vat: Decimal = Decimal("0")
    sum_vat: Decimal = Decimal("0")
    flagged_count: int = 0

    def add(self, other: 'SummaryTotals') -> None:
        """Accumulate another node's totals into this one."""
        self.count += other.count
        self.sum_excl_vat += other.sum_excl_vat
        self.sum_vat += other.sum_vat
        self.flagged_count += other.flagged_count

    @classmethod
    def roll_up(cls, children: Iterable[Any]) -> 'SummaryTotals':
        """Sum the totals of child nodes."""
        totals = cls()
        for child in children:
            totals.add(child.totals)
        return totals

    def to_dict(self) -> Dict[str, Any]:
        return {
            'count': self.count,
            'sum_excl_vat': self.sum_excl_vat,
            'sum_vat': self.sum_vat,
            'flagged_count': self.flagged_count,
        }


class _TotalsMixin:
    """Expose the node totals as attributes of the node itself."""

    totals: SummaryTotals

    @property
    def count(self) -> int:
        return self.totals.count

    @property
    def sum_excl_vat(self) -> Decimal:
        return self.totals.sum_excl_vat

    @property
    def sum_vat(self) -> Decimal:
        return self.totals.sum_vat

    @property
    def flagged_count(self) -> int:
        return self.totals.flagged_count


@dataclass
class CompanySummary(_TotalsMixin):
    """Leaf node: all records of one company within a month and direction."""

    company_name: str
    records: List[InvoiceRecord] = field(default_factory=list)
    totals: SummaryTotals = field(default_factory=SummaryTotals)

    def to_dict(self) -> Dict[str, Any]:
        data = {'company_name': self.company_name}
        data.update(self.totals.to_dict())
        data['record_ids'] = [record.id for record in self.records]
        return data


@dataclass
class DirectionSummary(_TotalsMixin):
    """Purchase or Sales records of one month, split by company."""

    direction: InvoiceDirection
    companies: List[CompanySummary] = field(default_factory=list)
    totals: SummaryTotals = field(default_factory=SummaryTotals)

    @property
    def records(self) -> List[InvoiceRecord]:
        return [record for company in self.companies for record in company.records]

    def company(self, company_name: str) -> Optional[CompanySummary]:
        for company in self.companies:
            if company.company_name == company_name:
                return company
        return None

    def to_dict(self) -> Dict[str, Any]:
        data = {'direction': self.direction.value, 'label': self.direction.label}
        data.update(self.totals.to_dict())
        data['companies'] = [company.to_dict() for company in self.companies]
        return data


@dataclass
class MonthlySummary(_TotalsMixin):
    """All records of one YYYY-MM period key, split by direction."""

    month: str
    directions: List[DirectionSummary] = field(default_factory=list)
    totals: SummaryTotals = field(default_factory=SummaryTotals)

    @property
    def records(self) -> List[InvoiceRecord]:
        return [record for direction in self.directions for record in direction.records]

    def direction(self, direction: InvoiceDirection) -> Optional[DirectionSummary]:
        wanted = InvoiceDirection.parse(direction)
        for node in self.directions:
            if node.direction is wanted:
                return node
        return None

    def to_dict(self) -> Dict[str, Any]:
        data = {'month': self.month}
        data.update(self.totals.to_dict())
        data['directions'] = [direction.to_dict() for direction in self.directions]
        return data


@dataclass
class PeriodSummary(_TotalsMixin):
    """Root node: one calendar year, months most recent first."""

    year: int
    months: List[MonthlySummary] = field(default_factory=list)
    totals: SummaryTotals = field(default_factory=SummaryTotals)

    @property
    def records(self) -> List[InvoiceRecord]:
        return [record for month in self.months for record in month.records]

    def month(self, month: str) -> Optional[MonthlySummary]:
        for node in self.months:
            if node.month == month:
                return node
        return None

    def to_dict(self) -> Dict[str, Any]:
        data = {'year': self.year}
        data.update(self.totals.to_dict())
        data['months'] = [month.to_dict() for month in self.months]
        return data
