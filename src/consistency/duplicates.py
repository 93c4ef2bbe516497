"""
Duplicate Resolver Module.

Records that share a non-blank external invoice id within one period
describe the same document. For each such group exactly one survivor is
kept: the most recent by normalized date, ties broken by descending
storage id. The resolver only decides; deleting the losers is left to the
caller's store of record.
"""

from collections import OrderedDict
from datetime import date
from typing import Iterable, List, Optional, Tuple

from src.models import DuplicateGroup, DuplicateResolution, InvoiceRecord
from src.utils.helpers import is_blank
from src.utils.logger import get_logger
from .normalizers import DateNormalizer

logger = get_logger(__name__)


def storage_id_key(record_id: Optional[str]) -> Tuple[int, int, str]:
    """
    Total order over opaque storage ids.

    Numeric ids compare numerically so that "10" ranks above "9"; other
    ids compare as text and rank above numeric ones; missing ids rank
    lowest.
    """
    if record_id is None:
        return (0, 0, "")
    text = str(record_id).strip()
    if text.isdigit():
        return (1, int(text), text)
    return (2, 0, text)


class DuplicateResolver:
    """
    Finds duplicate groups and picks one survivor per group.

    Example:
        >>> resolver = DuplicateResolver()
        >>> groups = resolver.find_duplicates(records, period="2025-01")
        >>> resolution = resolver.resolve(groups[0])
        >>> resolution.survivor.date
        "2025-01-15"
    """

    def __init__(
        self,
        date_normalizer: Optional[DateNormalizer] = None,
        today: Optional[date] = None
    ) -> None:
        self.date_normalizer = date_normalizer or DateNormalizer(today=today)

    def recency_key(self, record: InvoiceRecord) -> int:
        """YYYYMMDD of the normalized date; 0 when the date does not parse."""
        return self.date_normalizer.parse(record.date).sort_key

    def find_duplicates(
        self,
        records: Iterable[InvoiceRecord],
        period: Optional[str] = None
    ) -> List[DuplicateGroup]:
        """
        Partition records by external invoice id.

        Args:
            records: Snapshot records.
            period: Optional YYYY-MM scope; only records whose normalized
                date falls in it take part. None means the caller already
                scoped the records.

        Returns:
            Groups with two or more members, in first-seen order.
        """
        partitions: "OrderedDict[str, List[InvoiceRecord]]" = OrderedDict()
        for record in records:
            if is_blank(record.external_invoice_id):
                continue
            if period is not None and self.date_normalizer.period_key(record.date) != period:
                continue
            partitions.setdefault(record.external_invoice_id.strip(), []).append(record)

        groups = [
            DuplicateGroup(external_invoice_id=invoice_id, period=period, records=tuple(members))
            for invoice_id, members in partitions.items()
            if len(members) > 1
        ]

        logger.info(
            f"Found {len(groups)} duplicate groups"
            + (f" in {period}" if period else "")
        )
        return groups

    def resolve(self, group: DuplicateGroup) -> DuplicateResolution:
        """
        Choose the survivor of one group.

        Members are ordered by (recency key, storage id), both descending;
        the first is kept and every other member becomes a loser.

        Args:
            group: A duplicate group with at least one member.

        Returns:
            DuplicateResolution with survivor and losers.
        """
        ranked = sorted(
            group.records,
            key=lambda record: (self.recency_key(record), storage_id_key(record.id)),
            reverse=True
        )
        survivor, losers = ranked[0], tuple(ranked[1:])

        logger.debug(
            f"Duplicate {group.external_invoice_id}: keeping {survivor.id}, "
            f"deleting {[loser.id for loser in losers]}"
        )
        return DuplicateResolution(group=group, survivor=survivor, losers=losers)

    def resolve_all(self, groups: Iterable[DuplicateGroup]) -> List[DuplicateResolution]:
        """Resolve every group independently."""
        return [self.resolve(group) for group in groups]
