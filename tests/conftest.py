"""Shared fixtures for the invoice consistency engine tests."""

import logging
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config import ConfigurationManager  # noqa: E402
from src.models import InvoiceDirection, InvoiceRecord  # noqa: E402
from src.utils.logger import ROOT_LOGGER_NAME  # noqa: E402

TODAY = date(2025, 6, 15)


@pytest.fixture(autouse=True)
def fresh_config():
    """Every test starts from the bundled settings file."""
    ConfigurationManager.reset()
    yield
    ConfigurationManager.reset()


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo CLI logging setup so caplog keeps seeing records."""
    yield
    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    app_logger.handlers.clear()
    app_logger.setLevel(logging.NOTSET)
    app_logger.propagate = True


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def make_record():
    """Factory for records that pass every single-record check by default."""
    counter = {'next': 1}

    def _make(**overrides):
        values = {
            'id': str(counter['next']),
            'external_invoice_id': f"INV-{counter['next']:03d}",
            'date': "2025-01-15",
            'company_name': "ACME UAB",
            'amount_excl_vat': Decimal("100.00"),
            'vat_amount': Decimal("21.00"),
            'vat_number': "LT123456789",
            'company_number': "123456789",
            'invoice_direction': InvoiceDirection.PURCHASE,
        }
        counter['next'] += 1
        values.update(overrides)
        return InvoiceRecord(**values)

    return _make


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "invoices.db"
