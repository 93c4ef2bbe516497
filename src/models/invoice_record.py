"""
Invoice Record Data Class.

This module defines the unit of work of the consistency engine: a single
loosely-structured invoice record as produced by upstream extraction or
manual entry. Every business field is optional because extraction is
unreliable; money is held as Decimal so that "missing" (None) and
"present" are distinguishable without string checks.
"""

from dataclasses import dataclass, asdict, fields, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from src.utils.amounts import AmountNormalizer


class InvoiceDirection(str, Enum):
    """Purchase (received) or Sales (issued) classification of an invoice."""

    PURCHASE = "P"
    SALES = "S"

    @classmethod
    def parse(cls, value: Optional[Any]) -> 'InvoiceDirection':
        """
        Interpret a loosely formatted direction value.

        Accepts the codes "P" / "S" and the words "Purchase" / "Sales" in
        any case. Anything else, including absence, is a Purchase.

        Args:
            value: Raw direction value.

        Returns:
            InvoiceDirection member.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.PURCHASE

        text = str(value).strip().upper()
        if text in ("S", "SALES", "SALE"):
            return cls.SALES
        return cls.PURCHASE

    @property
    def label(self) -> str:
        """Human-readable direction name."""
        return "Sales" if self is InvoiceDirection.SALES else "Purchase"


# Storage column names of the original schema mapped to record attributes
FIELD_ALIASES = {
    'invoice_id': 'external_invoice_id',
    'amount_without_vat_eur': 'amount_excl_vat',
    'amount_without_vat': 'amount_excl_vat',
    'vat_amount_eur': 'vat_amount',
    'invoice_type': 'invoice_direction',
    'direction': 'invoice_direction',
}

MONEY_FIELDS = ('amount_excl_vat', 'vat_amount', 'vat_rate')


@dataclass(frozen=True)
class InvoiceRecord:
    """
    Represents one invoice row of a snapshot.

    Attributes:
        id: Opaque storage identifier, used only for identity comparisons
        external_invoice_id: Invoice number as printed on the document
        date: Free-text date in an unknown format
        company_name: Counterpart name
        amount_excl_vat: Amount without VAT
        vat_amount: VAT amount
        vat_number: Counterpart VAT number (format is meaningful)
        company_number: Counterpart registration number (format is meaningful)
        invoice_direction: Purchase or Sales, Purchase when absent
        vat_rate: Optional declared VAT rate, carried through untouched
        tax_code: Optional tax code, carried through untouched

    Example:
        >>> record = InvoiceRecord(
        ...     id="1",
        ...     external_invoice_id="INV-1",
        ...     date="15.01.2025",
        ...     amount_excl_vat=Decimal("100.00"),
        ...     vat_amount=Decimal("21.00"),
        ... )
    """
    id: Optional[str] = None
    external_invoice_id: Optional[str] = None
    date: Optional[str] = None
    company_name: Optional[str] = None
    amount_excl_vat: Optional[Decimal] = None
    vat_amount: Optional[Decimal] = None
    vat_number: Optional[str] = None
    company_number: Optional[str] = None
    invoice_direction: InvoiceDirection = InvoiceDirection.PURCHASE
    vat_rate: Optional[Decimal] = None
    tax_code: Optional[str] = None

    def __post_init__(self) -> None:
        amounts = None
        for name in MONEY_FIELDS:
            value = getattr(self, name)
            if value is not None and not isinstance(value, Decimal):
                amounts = amounts or AmountNormalizer()
                object.__setattr__(self, name, amounts.to_decimal(value))

        if not isinstance(self.invoice_direction, InvoiceDirection):
            object.__setattr__(self, 'invoice_direction', InvoiceDirection.parse(self.invoice_direction))

    @property
    def direction_code(self) -> str:
        """Single-letter direction code ("P" or "S")."""
        return self.invoice_direction.value

    def with_id(self, record_id: str) -> 'InvoiceRecord':
        """Return a copy of this record carrying the given storage id."""
        return replace(self, id=record_id)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InvoiceRecord':
        """
        Build a record from a loosely typed mapping.

        Both the engine attribute names and the original storage column
        names are accepted. Amounts are coerced with AmountNormalizer;
        values that cannot be read as money become None. Unknown keys
        are ignored.

        Args:
            data: Mapping of field names to raw values.

        Returns:
            InvoiceRecord instance.
        """
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in data.items():
            name = FIELD_ALIASES.get(key, key)
            if name in known and name not in values:
                values[name] = value

        for name in ('id', 'external_invoice_id', 'date', 'company_name',
                     'vat_number', 'company_number', 'tax_code'):
            value = values.get(name)
            if value is not None and not isinstance(value, str):
                values[name] = str(value)

        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary.

        Returns:
            Dictionary representation; Decimals are kept as Decimal.
        """
        data = asdict(self)
        data['invoice_direction'] = self.direction_code
        return data
