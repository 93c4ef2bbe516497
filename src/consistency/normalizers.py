"""
Data Normalizers Module.

This module provides date normalization:
    - Free-text invoice dates (strict ladder, no guessing)

Failures are values, never exceptions: DateNormalizer returns a
DateParseResult whose ``ok`` flag is False.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Tuple

from config import get_config
from src.utils.logger import get_logger

logger = get_logger(__name__)


CANONICAL_DATE = re.compile(r'\d{4}-\d{2}-\d{2}')

DEFAULT_INPUT_FORMATS = [
    "%d.%m.%Y",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%Y.%m.%d",
    "%Y/%m/%d",
    "%Y-%m-%d",
    "%d.%m.%y",
    "%d/%m/%y",
    "%d-%m-%y",
    "%Y%m%d",
    "%d%m%Y",
    "%d%m%y",
]

# Field widths of fully concatenated digit formats
_DIRECTIVE_WIDTHS = {'%Y': 4, '%m': 2, '%d': 2, '%y': 2}

# Digit runs each directive may occupy inside a separated format
_DIRECTIVE_PATTERNS = {'%Y': r'\d{4}', '%m': r'\d{1,2}', '%d': r'\d{1,2}', '%y': r'\d{2}'}


@dataclass(frozen=True)
class DateParseResult:
    """
    Tagged outcome of date normalization.

    Attributes:
        raw: The input string as received
        value: Parsed calendar date, None on failure
        method: Which rung of the ladder matched ("canonical", a strptime
            format, or "digits:<layout>")
    """
    raw: Optional[str]
    value: Optional[date] = None
    method: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.value is not None

    @property
    def iso(self) -> Optional[str]:
        """Canonical YYYY-MM-DD string, or None."""
        return self.value.isoformat() if self.value else None

    @property
    def period_key(self) -> Optional[str]:
        """YYYY-MM bucket of the date, or None."""
        return f"{self.value.year:04d}-{self.value.month:02d}" if self.value else None

    @property
    def sort_key(self) -> int:
        """YYYYMMDD as an integer; 0 for failures so they sort oldest."""
        if self.value is None:
            return 0
        return self.value.year * 10000 + self.value.month * 100 + self.value.day


class DateNormalizer:
    """
    Normalizes free-text date strings to the canonical YYYY-MM-DD form.

    The ladder, first success wins:
        1. Canonical ``YYYY-MM-DD`` validated strictly as a calendar date.
           A canonical-looking string that is not a real date fails here.
        2. Explicit formats in configured priority order, matched against
           the start of the string so a trailing time is ignored. Concatenated
           digit formats only apply to a leading digit run of exactly their width.
        3. Digit fallback: strip non-digits and try fixed positional
           layouts for 8, 7 and 6 digits within the plausible year range.

    Two-digit years always expand into the current century.

    Example:
        >>> normalizer = DateNormalizer()
        >>> normalizer.normalize("04.03.2024")
        "2024-03-04"
        >>> normalizer.normalize("2024034")
        "2024-03-04"
        >>> normalizer.normalize("not a date") is None
        True
    """

    def __init__(self, today: Optional[date] = None) -> None:
        """
        Initialize the date normalizer with configuration.

        Args:
            today: Reference date for two-digit year expansion.
                Defaults to the current date.
        """
        self.today = today or date.today()
        self.output_format = get_config(
            "normalization.date.output_format",
            "%Y-%m-%d"
        )
        self.input_formats: List[str] = get_config(
            "normalization.date.input_formats",
            DEFAULT_INPUT_FORMATS
        )
        self.min_year = int(get_config("normalization.date.min_year", 1900))
        self.max_year = int(get_config("normalization.date.max_year", 2100))
        self._format_patterns: Dict[str, Optional[re.Pattern]] = {
            fmt: self._leading_pattern(fmt) for fmt in self.input_formats
        }

        logger.debug(f"DateNormalizer initialized ({len(self.input_formats)} formats)")

    @property
    def century(self) -> int:
        return (self.today.year // 100) * 100

    def parse(self, raw: Optional[str]) -> DateParseResult:
        """
        Run the full normalization ladder on a raw date string.

        Args:
            raw: Free-text date, possibly None or blank.

        Returns:
            DateParseResult; ``ok`` is False when nothing matched.
        """
        if raw is None:
            return DateParseResult(raw)

        text = str(raw).strip()
        if not text:
            return DateParseResult(raw)

        if CANONICAL_DATE.fullmatch(text):
            value = self._strict_date(int(text[0:4]), int(text[5:7]), int(text[8:10]))
            if value is None:
                logger.debug(f"Canonical date is not a calendar date: '{text}'")
            return DateParseResult(raw, value, "canonical" if value else None)

        for fmt in self.input_formats:
            value = self._try_format(text, fmt)
            if value is not None:
                return DateParseResult(raw, value, fmt)

        value, layout = self._try_digit_fallback(text)
        if value is not None:
            return DateParseResult(raw, value, f"digits:{layout}")

        logger.debug(f"Could not parse date: '{text}'")
        return DateParseResult(raw)

    def normalize(self, raw: Optional[str]) -> Optional[str]:
        """
        Normalize a date string to the configured output format.

        Args:
            raw: Input date string in any recognized format.

        Returns:
            Normalized date string, or None if parsing fails.
        """
        result = self.parse(raw)
        if not result.ok:
            return None
        return result.value.strftime(self.output_format)

    def period_key(self, raw: Optional[str]) -> Optional[str]:
        """Return the YYYY-MM period key of a raw date, or None."""
        return self.parse(raw).period_key

    def is_valid_date(self, raw: Optional[str]) -> bool:
        """
        Check if a string represents a valid date.

        Args:
            raw: String to validate.

        Returns:
            True if valid date, False otherwise.
        """
        return self.parse(raw).ok

    def _try_format(self, text: str, fmt: str) -> Optional[date]:
        """
        Try one explicit strptime format on the leading part of the text.

        The date may be followed by a time or other text ("2024-03-04
        10:15", "2024-03-04T10:15:00") as long as it does not run on into
        more digits. Concatenated digit formats are pinned to their exact
        width since strptime accepts single-digit fields.
        """
        pattern = self._format_patterns.get(fmt)
        if pattern is None:
            candidate = text
        else:
            match = pattern.match(text)
            if match is None:
                return None
            candidate = match.group(0)

        try:
            parsed = datetime.strptime(candidate, fmt).date()
        except ValueError:
            return None

        if '%y' in fmt:
            # strptime pivots two-digit years at 1969; use the current century
            try:
                parsed = parsed.replace(year=self.century + parsed.year % 100)
            except ValueError:
                return None
        return parsed

    @classmethod
    def _leading_pattern(cls, fmt: str) -> Optional[re.Pattern]:
        """
        Regex matching a date of the given format at the start of a string.

        Returns None for formats with directives other than %d, %m, %Y and
        %y; those are only tried against the whole string.
        """
        width = cls._concatenated_width(fmt)
        if width is not None:
            return re.compile(rf'\d{{{width}}}(?!\d)')

        pattern = []
        for part in re.split(r'(%[a-zA-Z])', fmt):
            if part in _DIRECTIVE_PATTERNS:
                pattern.append(_DIRECTIVE_PATTERNS[part])
            elif part.startswith('%'):
                return None
            else:
                pattern.append(re.escape(part))
        return re.compile(''.join(pattern) + r'(?!\d)')

    @staticmethod
    def _concatenated_width(fmt: str) -> Optional[int]:
        """Total width of a separator-free format, None for other formats."""
        directives = re.findall(r'%[a-zA-Z]', fmt)
        if ''.join(directives) != fmt:
            return None
        try:
            return sum(_DIRECTIVE_WIDTHS[d] for d in directives)
        except KeyError:
            return None

    def _try_digit_fallback(self, text: str) -> Tuple[Optional[date], Optional[str]]:
        """
        Interpret the bare digits of a string positionally.

        Layouts are tried in a fixed order per digit count and the first
        plausible calendar date wins.
        """
        digits = re.sub(r'\D', '', text)
        layouts: List[Tuple[str, Callable[[str], Tuple[int, int, int]]]]

        if len(digits) == 8:
            layouts = [
                ("YYYYMMDD", lambda d: (int(d[0:4]), int(d[4:6]), int(d[6:8]))),
                ("DDMMYYYY", lambda d: (int(d[4:8]), int(d[2:4]), int(d[0:2]))),
            ]
        elif len(digits) == 7:
            layouts = [
                ("YYYYMMD", lambda d: (int(d[0:4]), int(d[4:6]), int(d[6:7]))),
                ("YYYYMDD", lambda d: (int(d[0:4]), int(d[4:5]), int(d[5:7]))),
            ]
        elif len(digits) == 6:
            layouts = [
                ("YYMMDD", lambda d: (self.century + int(d[0:2]), int(d[2:4]), int(d[4:6]))),
                ("DDMMYY", lambda d: (self.century + int(d[4:6]), int(d[2:4]), int(d[0:2]))),
            ]
        else:
            return None, None

        for name, split in layouts:
            year, month, day = split(digits)
            if name == "YYYYMMD" and not 1 <= day <= 9:
                continue
            if name == "YYYYMDD" and not 1 <= month <= 9:
                continue
            if not self.min_year <= year <= self.max_year:
                continue
            value = self._strict_date(year, month, day)
            if value is not None:
                return value, name
        return None, None

    @staticmethod
    def _strict_date(year: int, month: int, day: int) -> Optional[date]:
        """Build a date without overflow; None when out of range."""
        try:
            return date(year, month, day)
        except ValueError:
            return None
