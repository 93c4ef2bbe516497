"""
Storage Module for the Invoice Consistency Engine.

Caller-side collaborators of the engine:
    - InvoiceStore: SQLite store of record (fetch / delete interfaces)
    - load_records: JSON / CSV snapshot loader
    - apply_resolutions: issue duplicate deletions and report outcomes
"""

from .invoice_store import InvoiceStore
from .snapshot import load_records, rows_to_records
from .reconcile import apply_resolutions

__all__ = [
    'InvoiceStore',
    'load_records',
    'rows_to_records',
    'apply_resolutions'
]
