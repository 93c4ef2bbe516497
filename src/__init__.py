"""
Invoice Consistency Engine - Source Package.

This package contains all core modules for the invoice consistency
engine. Each module has a single responsibility.

Modules:
    - models: Invoice records, issues, summaries and duplicate groups
    - consistency: Normalization, validation, aggregation, duplicates
    - storage: SQLite store, snapshot loader, deletion reconciliation
    - utils: Logging, exceptions and helpers

Architecture:
    Snapshot → Normalization → Validation → Aggregation
                                    ↓
                     Duplicate Resolution → Store Deletions
"""

__version__ = "1.0.0"
__author__ = "ML Engineering Team"

__all__ = [
    'models',
    'consistency',
    'storage',
    'utils'
]
