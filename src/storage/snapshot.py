"""
Snapshot Loader Module.

Reads an invoice snapshot from a JSON or CSV export so the engine can
run without a live store. Rows without a storage id receive a stable
positional id ``row-<n>`` so identity comparisons keep working.
"""

import csv
import json
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Union

from src.consistency.normalizers import DateNormalizer
from src.models import InvoiceRecord
from src.models.invoice_record import FIELD_ALIASES, MONEY_FIELDS
from src.utils.exceptions import RecordLoadError, UnsupportedFileTypeError
from src.utils.helpers import is_blank
from src.utils.logger import get_logger

logger = get_logger(__name__)

SUPPORTED_EXTENSIONS = ['.json', '.csv']


def load_records(path: Union[str, Path]) -> List[InvoiceRecord]:
    """
    Load a snapshot file.

    Args:
        path: ``.json`` file holding a list of objects (or an object with
            an ``invoices`` list), or a ``.csv`` file with a header row.

    Returns:
        Records in file order.

    Raises:
        UnsupportedFileTypeError: For any other extension.
        RecordLoadError: If the file cannot be read or decoded.
    """
    file_path = Path(path)
    suffix = file_path.suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileTypeError(suffix, SUPPORTED_EXTENSIONS)

    try:
        if suffix == '.json':
            rows = _read_json(file_path)
        else:
            rows = _read_csv(file_path)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, csv.Error) as e:
        raise RecordLoadError(str(file_path), str(e))

    records = rows_to_records(rows)
    logger.info(f"Loaded {len(records)} records from {file_path.name}")
    return records


def rows_to_records(rows: Iterable[Any]) -> List[InvoiceRecord]:
    """Convert raw mappings to records, assigning positional ids where missing."""
    date_normalizer = DateNormalizer()
    records = []
    for position, row in enumerate(rows, start=1):
        if not isinstance(row, Mapping):
            logger.warning(f"Skipping row {position}: expected an object, got {type(row).__name__}")
            continue
        record = InvoiceRecord.from_dict(dict(row))
        if is_blank(record.id):
            record = record.with_id(f"row-{position}")
        _warn_unreadable(record, row, date_normalizer)
        records.append(record)
    return records


def _warn_unreadable(record: InvoiceRecord, row: Mapping, date_normalizer: DateNormalizer) -> None:
    """Log values that were present in the row but could not be read."""
    raw_values = {FIELD_ALIASES.get(key, key): value for key, value in row.items()}

    for name in MONEY_FIELDS:
        if getattr(record, name) is None and not is_blank(raw_values.get(name)):
            logger.warning(f"Record {record.id}: unreadable {name} '{raw_values[name]}'")

    if not is_blank(record.date) and not date_normalizer.is_valid_date(record.date):
        logger.warning(f"Record {record.id}: unparsable date '{record.date}'")


def _read_json(path: Path) -> List[Any]:
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get('invoices', [])
    if not isinstance(data, list):
        raise RecordLoadError(str(path), "expected a list of invoice objects")
    return data


def _read_csv(path: Path) -> List[dict]:
    with open(path, 'r', encoding='utf-8', newline='') as f:
        reader = csv.DictReader(f)
        # Empty cells mean "absent"
        return [
            {key: (value if value != '' else None) for key, value in row.items() if key}
            for row in reader
        ]
