"""Text, number and reference-range normalization."""

import logging
import re
import unicodedata

from medexam_parser import keywords
from medexam_parser.models import (
    LowerBound,
    NumericRange,
    QualitativeExpected,
    ReferenceRange,
    Unparseable,
    UpperBound,
)

logger = logging.getLogger(__name__)

# Plain decimal, nothing else (no exponents, no "nan"/"inf" that float() accepts)
_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)$")
# First decimal-looking run inside a longer string
_DECIMAL_SUBSTRING_RE = re.compile(r"\d+(?:[.,]\d+)?")

_NUMBER = r"(\d+(?:\.\d+)?|\.\d+)"
# Optional unit trailing a reference, e.g. "70 - 100 mg/dL" or "< 5 %"
_TRAILING_UNIT = r"(?:\s*[A-Za-zµμ%/][^\d<>]*)?"

_RANGE_RE = re.compile(rf"^{_NUMBER}\s*[-–—]\s*{_NUMBER}{_TRAILING_UNIT}$")
_UPPER_RE = re.compile(
    rf"^(?:<=?|≤|=<|hasta|menor\s+(?:a|que|de))\s*{_NUMBER}{_TRAILING_UNIT}$",
    re.IGNORECASE,
)
_LOWER_RE = re.compile(
    rf"^(?:>=?|≥|=>|mayor\s+(?:a|que|de))\s*{_NUMBER}{_TRAILING_UNIT}$",
    re.IGNORECASE,
)
_QUALITATIVE_RE = re.compile(r"^[^\W\d_]+(?:[\s\-]+[^\W\d_]+)*$")
_LABEL_PREFIX_RE = re.compile(r"^[^\W\d_][^\d<>≤≥:]*:?\s*(?=[<>≤≥\d])")


# ========================================
# Labels
# ========================================


def strip_accents(value: str) -> str:
    """Remove diacritics ("Hepático" -> "Hepatico")."""

    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_label(value: str) -> str:
    """Collapse a label for fuzzy comparison.

    Strips diacritics, lowercases and drops whitespace and punctuation, so
    "Colesterol LDL (Friedewald)" and "colesterol ldl friedewald" compare
    equal as "colesterolldlfriedewald".
    """

    value = strip_accents(value).lower()
    return re.sub(r"[\W_]+", "", value)


def normalize_phrase(value: str) -> str:
    """Lowercase, accent-free, single-spaced version of ``value``."""

    value = strip_accents(value).lower().strip()
    return re.sub(r"\s+", " ", value)


def clean_label(value: str) -> str:
    """Trim a captured parameter name: collapse spaces, drop trailing dots/colons."""

    value = re.sub(r"\s+", " ", value).strip()
    return value.rstrip(" .:-")


# ========================================
# Numbers
# ========================================


def preprocess_numeric_value(value: str) -> str:
    """
    Clean raw value for numeric conversion.

    Handles:
    - Surrounding whitespace
    - European decimal format (comma -> period)

    Args:
        value: Raw value from the document

    Returns:
        Cleaned string ready for numeric conversion
    """

    return value.strip().replace(",", ".")


def parse_decimal(value: str | None) -> float | None:
    """Parse ``value`` as a plain decimal after comma->dot, else None."""

    # Guard: None passthrough
    if value is None:
        return None

    s = preprocess_numeric_value(value)
    if not _DECIMAL_RE.match(s):
        return None
    return float(s)


def is_number(value: str | None) -> bool:
    return parse_decimal(value) is not None


def find_decimal(value: str) -> re.Match | None:
    """Locate the first decimal-looking substring in ``value``."""

    return _DECIMAL_SUBSTRING_RE.search(value)


# ========================================
# Qualitative tokens
# ========================================


def match_qualitative(value: str, tokens: tuple[str, ...]) -> str | None:
    """Return the configured token equal to ``value`` (case/accent-insensitive)."""

    wanted = normalize_phrase(value)
    for token in tokens:
        if normalize_phrase(token) == wanted:
            return token
    return None


# ========================================
# Reference Ranges
# ========================================


def interpret_reference_range(
    text: str | None,
    qualitative_tokens: tuple[str, ...] = keywords.QUALITATIVE_TOKENS,
) -> ReferenceRange:
    """
    Parse free-text reference ranges into a typed range.

    Handles:
    - "70 - 100", "4,5-11,0 mg/dL" -> NumericRange
    - "< 10", "<= 10", "Hasta 10" -> UpperBound
    - "> 40", ">= 40", "Mayor a 40" -> LowerBound
    - "Negativo", "No Reactivo" -> QualitativeExpected
    - Surrounding parentheses/brackets are ignored

    Only configured qualitative tokens become QualitativeExpected; other words
    ("Ver tabla", "Adultos") are notes, not expected results. Anything else
    (including blank text, or a range whose minimum exceeds its maximum) is
    Unparseable.

    Args:
        text: Reference range exactly as written in the document
        qualitative_tokens: Accepted qualitative result tokens

    Returns:
        One of NumericRange, UpperBound, LowerBound, QualitativeExpected, Unparseable
    """

    # Guard: Nothing to parse
    if text is None or not text.strip():
        return Unparseable()

    s = text.strip()

    # Drop wrapping "(...)" / "[...]"
    while len(s) >= 2 and s[0] in "([" and s[-1] in ")]":
        s = s[1:-1].strip()

    # Qualitative tokens keep their original spelling
    if _QUALITATIVE_RE.match(s):
        if match_qualitative(s, qualitative_tokens) is None:
            logger.debug(f"[reference] '{text}' is not a known qualitative result")
            return Unparseable()
        return QualitativeExpected(token=re.sub(r"\s+", " ", s))

    s = preprocess_numeric_value(s)

    reference = _interpret_numeric(s)

    # "Deseable < 200", "V.N.: 70 - 100": retry without the leading label
    if reference is None:
        stripped = _LABEL_PREFIX_RE.sub("", s, count=1)
        if stripped != s:
            reference = _interpret_numeric(stripped)

    if reference is None:
        logger.debug(f"[reference] Could not interpret reference range '{text}'")
        return Unparseable()

    if isinstance(reference, NumericRange) and reference.min > reference.max:
        logger.debug(f"[reference] Inverted range '{text}' treated as unparseable")
        return Unparseable()

    return reference


def _interpret_numeric(s: str) -> NumericRange | UpperBound | LowerBound | None:
    match = _RANGE_RE.match(s)
    if match:
        return NumericRange(min=float(match.group(1)), max=float(match.group(2)))

    match = _UPPER_RE.match(s)
    if match:
        return UpperBound(max=float(match.group(1)))

    match = _LOWER_RE.match(s)
    if match:
        return LowerBound(min=float(match.group(1)))

    return None
