"""
Duplicate Group Data Classes.

Duplicate groups are computed on demand from a live snapshot and never
persisted. Resolving a group yields a decision; applying the decision
against the store of record is the caller's job.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .invoice_record import InvoiceRecord


@dataclass(frozen=True)
class DuplicateGroup:
    """Records sharing one external invoice id within one period."""

    external_invoice_id: str
    period: Optional[str]
    records: Tuple[InvoiceRecord, ...]

    @property
    def size(self) -> int:
        return len(self.records)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'external_invoice_id': self.external_invoice_id,
            'period': self.period,
            'record_ids': [record.id for record in self.records],
        }


@dataclass(frozen=True)
class DuplicateResolution:
    """The survivor kept for a group and the losers to delete."""

    group: DuplicateGroup
    survivor: InvoiceRecord
    losers: Tuple[InvoiceRecord, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'external_invoice_id': self.group.external_invoice_id,
            'period': self.group.period,
            'survivor_id': self.survivor.id,
            'loser_ids': [record.id for record in self.losers],
        }


@dataclass(frozen=True)
class DeletionOutcome:
    """Result of asking the store to delete one loser."""

    record: InvoiceRecord
    succeeded: bool
    error: Optional[str] = None


@dataclass
class DeletionReport:
    """
    Per-record outcome of applying duplicate resolutions.

    Deletions are not transactional: "N of M succeeded" is a valid
    terminal state and the caller is expected to reload and re-run
    detection.
    """
    outcomes: List[DeletionOutcome] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.succeeded)

    @property
    def failed(self) -> List[DeletionOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.succeeded]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'attempted': self.attempted,
            'succeeded': self.succeeded,
            'outcomes': [
                {'id': o.record.id, 'succeeded': o.succeeded, 'error': o.error}
                for o in self.outcomes
            ],
        }
