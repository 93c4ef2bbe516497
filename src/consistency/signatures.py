"""
Identifier Format Signatures.

A signature summarizes the structural shape of an identifier (which
positions hold letters, digits or punctuation) rather than its value.
Historical identifiers of a dataset define which shapes are normal;
an identifier whose signature matches none of them has drifted.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class FormatSignature:
    """
    Structural signature of an identifier.

    Attributes:
        prefix: Uppercased two-letter country prefix, "" when the value
            does not start with two letters, None when the signature
            kind does not carry a prefix (company numbers)
        length: Full length of the value
        shape: Per-character class: "L" letter, "D" digit, punctuation kept

    Example:
        >>> vat_signature("LT123456789")
        FormatSignature(prefix='LT', length=11, shape='LLDDDDDDDDD')
    """
    prefix: Optional[str]
    length: int
    shape: str

    def __str__(self) -> str:
        if self.prefix is None:
            return f"{self.length}|{self.shape}"
        return f"{self.prefix}|{self.length}|{self.shape}"


def character_shape(value: str) -> str:
    """Map letters to L, digits to D and keep every other character."""
    shape = []
    for char in value:
        if char.isalpha():
            shape.append('L')
        elif char.isdecimal():
            shape.append('D')
        else:
            shape.append(char)
    return ''.join(shape)


def vat_signature(vat_number: str) -> FormatSignature:
    """Signature of a VAT number, including its letter prefix."""
    head = vat_number[:2]
    prefix = head.upper() if len(head) == 2 and head.isalpha() else ""
    return FormatSignature(prefix, len(vat_number), character_shape(vat_number))


def company_number_signature(company_number: str) -> FormatSignature:
    """Signature of a company registration number (no prefix component)."""
    return FormatSignature(None, len(company_number), character_shape(company_number))
