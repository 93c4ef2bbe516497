"""
Deletion Reconciliation Module.

Applies duplicate resolutions to a store of record. Each loser is
deleted independently: one failure neither rolls back earlier deletions
nor stops later ones. The report tells the caller exactly which losers
were removed so it can reload the snapshot and re-run detection.
"""

from typing import Callable, Iterable

from src.models import DeletionOutcome, DeletionReport, DuplicateResolution, InvoiceRecord
from src.utils.logger import get_logger

logger = get_logger(__name__)

DeleteFn = Callable[[InvoiceRecord], bool]


def apply_resolutions(
    resolutions: Iterable[DuplicateResolution],
    delete: DeleteFn
) -> DeletionReport:
    """
    Delete every loser of every resolution through the given interface.

    Args:
        resolutions: Decisions from DuplicateResolver.
        delete: Store delete interface; returns True when a row was
            removed. Raising counts as a failure for that record only.

    Returns:
        DeletionReport with one outcome per loser.
    """
    report = DeletionReport()

    for resolution in resolutions:
        for loser in resolution.losers:
            try:
                deleted = bool(delete(loser))
            except Exception as e:
                logger.warning(
                    f"Failed to delete duplicate {resolution.group.external_invoice_id} "
                    f"(id {loser.id}): {e}"
                )
                report.outcomes.append(DeletionOutcome(loser, False, str(e)))
                continue

            if not deleted:
                logger.warning(f"Duplicate id {loser.id} was not found in the store")
                report.outcomes.append(DeletionOutcome(loser, False, "record not found"))
            else:
                report.outcomes.append(DeletionOutcome(loser, True))

    logger.info(f"Deleted {report.succeeded} of {report.attempted} duplicate records")
    return report
