"""
Amount Normalizer Module.

Coerces loosely formatted money values to Decimal. Lives outside the
consistency package so that record construction can use it without
depending on the engine. Unreadable values become None, never an error.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from config import get_config
from src.utils.logger import get_logger

logger = get_logger(__name__)


class AmountNormalizer:
    """
    Normalizes currency/amount values to Decimal.

    Handles numbers, currency symbols and codes, thousand separators
    and comma decimals.

    Example:
        >>> normalizer = AmountNormalizer()
        >>> normalizer.to_decimal("€ 1.234,56")
        Decimal('1234.56')
        >>> normalizer.to_decimal("n/a") is None
        True
    """

    CURRENCY_SYMBOLS = ['$', '€', '£']
    CURRENCY_CODES = ['EUR', 'USD', 'GBP']

    def __init__(self) -> None:
        """Initialize the amount normalizer with configuration."""
        self.currencies = get_config(
            "normalization.amount.currencies",
            self.CURRENCY_SYMBOLS + self.CURRENCY_CODES
        )

    def to_decimal(self, value: Any) -> Optional[Decimal]:
        """
        Convert a loosely formatted amount to Decimal.

        Args:
            value: Number or amount string (e.g., "1 234,56 EUR").

        Returns:
            Decimal value, or None when absent or unreadable.
        """
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, Decimal):
            return value if value.is_finite() else None
        if isinstance(value, int):
            return Decimal(value)
        if isinstance(value, float):
            # Through str() so 21.03 stays 21.03 rather than its binary expansion
            return self._parse(str(value))

        amount_str = self._clean_amount_string(str(value))
        if not amount_str:
            return None
        amount_str = self._handle_european_format(amount_str)
        amount_str = amount_str.replace(',', '')
        result = self._parse(amount_str)
        if result is None:
            logger.debug(f"Could not parse amount: '{value}'")
        return result

    @staticmethod
    def _parse(text: str) -> Optional[Decimal]:
        try:
            result = Decimal(text)
        except InvalidOperation:
            return None
        return result if result.is_finite() else None

    def _clean_amount_string(self, amount_str: str) -> str:
        """
        Clean and prepare amount string for parsing.

        Args:
            amount_str: Raw amount string.

        Returns:
            Cleaned amount string.
        """
        amount_str = ' '.join(amount_str.split())

        for currency in self.currencies:
            if currency.isalpha():
                amount_str = re.sub(rf'\b{re.escape(currency)}\b', '', amount_str,
                                    flags=re.IGNORECASE)
            else:
                amount_str = amount_str.replace(currency, '')

        # Keep only digits, comma, dot, and minus
        amount_str = re.sub(r'[^\d,.\-]', '', amount_str)

        return amount_str.strip()

    def _handle_european_format(self, amount_str: str) -> str:
        """
        Convert European format (comma decimal) to dot decimal.

        Args:
            amount_str: Amount string.

        Returns:
            Amount string with a dot decimal separator.
        """
        if amount_str.count(',') == 1:
            comma_pos = amount_str.rfind(',')
            dot_pos = amount_str.rfind('.')

            if comma_pos > dot_pos:
                after_comma = amount_str[comma_pos + 1:]
                if len(after_comma) <= 2 and after_comma.isdigit():
                    amount_str = amount_str.replace('.', '')
                    amount_str = amount_str.replace(',', '.')

        return amount_str
