"""
Consistency Module for the Invoice Consistency Engine.

This module provides functionality for:
    - Date normalization with a strict fallback ladder
    - Amount normalization to Decimal
    - Single-record and cross-record validation
    - Period aggregation with flag roll-up
    - Duplicate detection and survivor selection
"""

from src.utils.amounts import AmountNormalizer
from .normalizers import DateNormalizer, DateParseResult
from .signatures import FormatSignature, vat_signature, company_number_signature
from .validators import InvoiceValidator, SnapshotIndex, validate_all
from .aggregator import PeriodAggregator
from .duplicates import DuplicateResolver
from .processor import ConsistencyEngine

__all__ = [
    'DateNormalizer',
    'DateParseResult',
    'AmountNormalizer',
    'FormatSignature',
    'vat_signature',
    'company_number_signature',
    'InvoiceValidator',
    'SnapshotIndex',
    'validate_all',
    'PeriodAggregator',
    'DuplicateResolver',
    'ConsistencyEngine'
]
