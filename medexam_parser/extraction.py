"""Parameter extraction from category text spans.

Two strategies produce the same candidate shape (``ExtractedParameter`` with
status UNDEFINED; classification happens later):

- ``KeywordStrategy`` anchors on the canonical marker names configured for a
  category and reads the value from the same line (``Name: value``) or from a
  small window of following lines, the layout produced by PDF text
  extraction of column-based lab reports.
- ``PatternStrategy`` applies an ordered list of line patterns
  (``LINE_PATTERNS``) to categories without configured markers.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

from medexam_parser import keywords
from medexam_parser.config import ParserConfig
from medexam_parser.models import ExtractedParameter
from medexam_parser.normalization import (
    clean_label,
    find_decimal,
    is_number,
    match_qualitative,
    normalize_label,
    normalize_phrase,
    parse_decimal,
)

logger = logging.getLogger(__name__)

# Value used when a marker is found but nothing follows it
MISSING_VALUE = "N/A"

# Markers this short ("pH") only match by equality or prefix
_SHORT_MARKER_LENGTH = 3


class ExtractionStrategy(str, Enum):
    """How parameters are located inside a category span."""

    KEYWORD = "keyword"
    PATTERN = "pattern"


# ========================================
# Line Patterns
# ========================================


@dataclass(frozen=True)
class LinePattern:
    """Named line-level regex; must define ``name`` and ``value`` groups."""

    name: str
    regex: re.Pattern


_NUM = r"[<>]?\s*\d+(?:[.,]\d+)?"
_UNIT_CHARS = r"[A-Za-zµμ%/][A-Za-z0-9µμ%/\^.*³]*"
_REF_NUM = r"(?:(?:[<>]=?|≤|≥)\s*\d+(?:[.,]\d+)?|\d+(?:[.,]\d+)?\s*[-–]\s*\d+(?:[.,]\d+)?)"
_NAME_NO_PARENS = r"[A-Za-zÀ-ÿ0-9][A-Za-zÀ-ÿ0-9 .,/\-]*?"
_NAME_TABULAR = r"[A-Za-zÀ-ÿ0-9][A-Za-zÀ-ÿ0-9 .,/()\-]*?"

_UNIT_RE = re.compile(rf"^{_UNIT_CHARS}$")
_INLINE_VALUE_RE = re.compile(rf"^(?P<value>{_NUM})\s*(?P<unit>{_UNIT_CHARS})?\s*(?P<reference>.*?)\s*$")


def _qualitative_alternation(tokens: tuple[str, ...]) -> str:
    # Longest first so "No Reactivo" wins over "Reactivo"
    ordered = sorted(tokens, key=len, reverse=True)
    escaped = [re.escape(t).replace(r"\ ", r"\s+") for t in ordered]
    return "(?i:" + "|".join(escaped) + ")"


@lru_cache(maxsize=8)
def build_line_patterns(qualitative_tokens: tuple[str, ...]) -> tuple[LinePattern, ...]:
    """
    Build the ordered generic line patterns.

    Order is priority: the first pattern matching at least one line wins.

    1. colon_inline: "Glucosa: 95 mg/dl 70-100", "VDRL: No Reactivo (No Reactivo)"
    2. colon_unit_in_parens: "Hemoglobina (g/dL) : 13,5 : 12,0 - 16,0"
    3. tabular: "Hemoglobina  13.5  g/dL  12.0 - 16.0" (no colon)
    """

    qual = _qualitative_alternation(qualitative_tokens)

    colon_inline = re.compile(
        rf"^\s*(?P<name>{_NAME_NO_PARENS})\s*:\s*"
        rf"(?P<value>{_NUM}|{qual})"
        rf"(?:\s*(?P<unit>{_UNIT_CHARS}))?"
        rf"(?:\s*\(?\s*(?P<reference>{_REF_NUM}|{qual})\s*\)?)?\s*$"
    )
    colon_unit_in_parens = re.compile(
        rf"^\s*(?P<name>{_NAME_NO_PARENS})\s*\((?P<unit>[^()]+)\)\s*:\s*"
        rf"(?P<value>{_NUM}|{qual})"
        rf"\s*(?::\s*(?P<reference>[^:]+?))?\s*$"
    )
    tabular = re.compile(
        rf"^\s*(?P<name>{_NAME_TABULAR})\s+(?P<value>[<>]?\d+(?:[.,]\d+)?)\s+"
        rf"(?:(?P<unit>{_UNIT_CHARS})\s+)?"
        rf"(?P<reference>{_REF_NUM})"
        rf"(?:\s+(?P<unit_after>{_UNIT_CHARS}))?\s*$"
    )

    return (
        LinePattern("colon_inline", colon_inline),
        LinePattern("colon_unit_in_parens", colon_unit_in_parens),
        LinePattern("tabular", tabular),
    )


LINE_PATTERNS = build_line_patterns(keywords.QUALITATIVE_TOKENS)


# ========================================
# Keyword Strategy
# ========================================


class KeywordStrategy:
    """Positional lookup anchored on configured marker names."""

    kind = ExtractionStrategy.KEYWORD

    def __init__(self, markers: tuple[str, ...], config: ParserConfig | None = None):
        self.config = config or ParserConfig.default()
        self.markers = markers
        self._normalized = [(marker, normalize_label(marker)) for marker in markers]
        self._normalized_set = {n for _, n in self._normalized}

    def extract(self, text: str) -> list[ExtractedParameter]:
        """Find every configured marker in ``text`` (first occurrence wins)."""

        lines = text.splitlines()
        found: dict[str, ExtractedParameter] = {}

        for i, raw_line in enumerate(lines):
            line = raw_line.strip()
            marker = self.match_marker(line)
            if marker is None:
                continue

            # Skip markers already read in this span
            if marker in found:
                logger.debug(f"[extraction] '{marker}' already extracted, skipping line {i}")
                continue

            found[marker] = self._read_marker(marker, line, lines, i)

        return list(found.values())

    def match_marker(self, line: str) -> str | None:
        """
        Return the marker named on ``line``, if any.

        Lines and markers are compared normalized (no accents, case,
        whitespace or punctuation). Exact equality wins; otherwise the
        longest marker contained in the line. Short markers must prefix it.
        """

        normalized_line = normalize_label(line)

        # Guard: Blank or punctuation-only line
        if not normalized_line:
            return None

        compact_line = line.replace(" ", "")
        best: tuple[int, str] | None = None

        for marker, normalized_marker in self._normalized:
            if not normalized_marker:
                continue

            # Exact match returns immediately
            if compact_line == marker.replace(" ", "") or normalized_line == normalized_marker:
                return marker

            if len(normalized_marker) <= _SHORT_MARKER_LENGTH:
                matched = normalized_line.startswith(normalized_marker)
            else:
                matched = normalized_marker in normalized_line

            if matched and (best is None or len(normalized_marker) > best[0]):
                best = (len(normalized_marker), marker)

        return best[1] if best else None

    def _read_marker(self, marker: str, line: str, lines: list[str], index: int) -> ExtractedParameter:
        """Read value, unit and reference for a marker found at ``lines[index]``."""

        start, end = self.config.lookahead_for(marker)
        window = [lines[j].strip() for j in range(index + start, index + end + 1) if j < len(lines)]

        value, unit, reference = None, "", ""
        value_index = None

        # "Name: value [unit] [reference]" on the marker line itself
        if ":" in line:
            tail = line.split(":", 1)[1].strip()
            if tail:
                value, unit, reference = self._split_inline(tail)
                logger.debug(f"[extraction] '{marker}' inline value '{value}'")

        if value is None:
            value, value_index, unit = self._find_value(window)
            reference = self._find_reference(window, value, value_index)
        elif not reference:
            # Reference on the following lines, up to the next marker
            reference = self._find_reference(self._until_next_marker(window), value, None)

        logger.debug(f"[extraction] '{marker}' = '{value}' {unit} (ref: '{reference}')")

        return ExtractedParameter(
            name=marker,
            value=value,
            numeric_value=parse_decimal(value),
            unit=unit,
            reference_range=reference,
        )

    def _split_inline(self, tail: str) -> tuple[str, str, str]:
        """Split "95 mg/dl 70-100" into value, unit and reference."""

        match = _INLINE_VALUE_RE.match(tail)

        # Guard: Not numeric, keep verbatim
        if not match:
            return tail, "", ""

        reference = match.group("reference").strip()
        # Drop wrapping parentheses around the reference
        if reference.startswith("(") and reference.endswith(")"):
            reference = reference[1:-1].strip()

        return match.group("value").strip(), match.group("unit") or "", reference

    def _until_next_marker(self, window: list[str]) -> list[str]:
        for idx, candidate in enumerate(window):
            if self.match_marker(candidate) is not None:
                return window[:idx]
        return window

    def _find_value(self, window: list[str]) -> tuple[str, int | None, str]:
        """
        Pick the value line from the lookahead window.

        Preference: a line that is entirely a decimal number, then the first
        line containing a decimal, then the first non-blank line verbatim.

        Returns:
            Tuple of (value, index_in_window, unit)
        """

        # 1. A line that is just a number
        for idx, candidate in enumerate(window):
            if is_number(candidate):
                return candidate, idx, self._unit_after(window, idx)

        # 2. A line containing a number ("13,5 g/dL")
        for idx, candidate in enumerate(window):
            match = find_decimal(candidate)
            if match:
                remainder = candidate[match.end() :].strip()
                unit = remainder if self._looks_like_unit(remainder) else self._unit_after(window, idx)
                return match.group(0), idx, unit

        # 3. First non-blank line as written (qualitative results)
        for idx, candidate in enumerate(window):
            if candidate:
                return candidate, idx, ""

        return MISSING_VALUE, None, ""

    def _unit_after(self, window: list[str], idx: int) -> str:
        if idx + 1 < len(window) and self._looks_like_unit(window[idx + 1]):
            return window[idx + 1]
        return ""

    def _looks_like_unit(self, text: str) -> bool:
        if not text or len(text) > 12 or not _UNIT_RE.match(text):
            return False
        # Qualitative results and marker names are not units
        if match_qualitative(text, self.config.qualitative_tokens):
            return False
        return normalize_label(text) not in self._normalized_set

    def _find_reference(self, window: list[str], value: str, value_index: int | None) -> str:
        """
        Find a reference range line in the lookahead window.

        Accepted: "< 10" / "> 40" style lines whose bound is a number, and
        "70 - 100" lines with numbers on both sides. Lines mentioning "V.N"
        or containing "(" are not numeric ranges. For qualitative values a
        line holding a qualitative token is the expected result.
        """

        for idx, candidate in enumerate(window):
            if idx == value_index:
                continue

            line = candidate.replace(",", ".")
            if len(line) <= 1:
                continue

            if "<" in line or ">" in line:
                operator = "<" if "<" in line else ">"
                _, _, bound = line.partition(operator)
                if line.count(operator) == 1 and is_number(bound.lstrip("=")):
                    return candidate
            elif "-" in line:
                if "V.N" in line or "(" in line:
                    continue
                parts = line.split("-")
                if len(parts) == 2 and is_number(parts[0]) and is_number(parts[1]):
                    return candidate

        # Qualitative results: expected token on a following line
        if parse_decimal(value) is None and value != MISSING_VALUE:
            for idx, candidate in enumerate(window):
                if idx != value_index and match_qualitative(candidate, self.config.qualitative_tokens):
                    return candidate

        return ""


# ========================================
# Pattern Strategy
# ========================================


class PatternStrategy:
    """Generic extraction with ordered line patterns."""

    kind = ExtractionStrategy.PATTERN

    def __init__(self, config: ParserConfig | None = None, patterns: tuple[LinePattern, ...] | None = None):
        self.config = config or ParserConfig.default()
        self.patterns = patterns if patterns is not None else build_line_patterns(self.config.qualitative_tokens)
        self._denied = {normalize_phrase(label) for label in self.config.metadata_labels}

    def extract(self, text: str) -> list[ExtractedParameter]:
        """Apply patterns in priority order; the first one with matches wins."""

        lines = text.splitlines()

        for pattern in self.patterns:
            found: dict[str, ExtractedParameter] = {}

            for line in lines:
                match = pattern.regex.match(line)
                if not match:
                    continue

                name = clean_label(match.group("name"))
                if not self.is_parameter_name(name) or name in found:
                    continue

                groups = match.groupdict()
                value = groups["value"].strip()
                found[name] = ExtractedParameter(
                    name=name,
                    value=value,
                    numeric_value=parse_decimal(value),
                    unit=(groups.get("unit") or groups.get("unit_after") or "").strip(),
                    reference_range=(groups.get("reference") or "").strip(),
                )

            if found:
                logger.debug(f"[extraction] Pattern '{pattern.name}' matched {len(found)} line(s)")
                return list(found.values())

        return []

    def is_parameter_name(self, name: str) -> bool:
        """Reject captured names that are metadata labels or carry no letters."""

        # Guard: Needs at least two characters and one letter
        if len(name) < 2 or not re.search(r"[^\W\d_]", name):
            return False

        phrase = normalize_phrase(name).rstrip(" .:")
        if phrase in self._denied or any(phrase.startswith(label + " ") for label in self._denied):
            logger.debug(f"[extraction] Discarding metadata label '{name}'")
            return False

        return True


# ========================================
# Entry Point
# ========================================


def select_strategy(category: str, config: ParserConfig | None = None) -> ExtractionStrategy:
    """KEYWORD when the category has configured markers, PATTERN otherwise."""

    config = config or ParserConfig.default()
    return ExtractionStrategy.KEYWORD if config.markers_for(category) else ExtractionStrategy.PATTERN


def extract_parameters(text: str, category: str, config: ParserConfig | None = None) -> list[ExtractedParameter]:
    """
    Extract candidate parameters from one category span.

    Keyword lookup takes priority when the category has configured markers;
    the generic patterns are used when it has none or when keyword lookup
    finds nothing.

    Args:
        text: Span text
        category: Category name owning the span
        config: Parser configuration (defaults to ParserConfig.default())

    Returns:
        Unclassified candidates, unique by name, in document order
    """

    config = config or ParserConfig.default()

    if select_strategy(category, config) is ExtractionStrategy.KEYWORD:
        candidates = KeywordStrategy(config.markers_for(category), config).extract(text)
        if candidates:
            logger.info(f"[extraction] {category}: {len(candidates)} parameter(s) by keyword")
            return candidates
        logger.info(f"[extraction] {category}: no markers found, trying line patterns")

    candidates = PatternStrategy(config).extract(text)
    logger.info(f"[extraction] {category}: {len(candidates)} parameter(s) by pattern")
    return candidates
