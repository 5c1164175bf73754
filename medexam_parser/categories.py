"""Category detection: split a report into named, ordered sections."""

import logging
import re

from pydantic import BaseModel, ConfigDict, Field

from medexam_parser.config import ParserConfig
from medexam_parser.normalization import strip_accents

logger = logging.getLogger(__name__)

# A whole line made of uppercase letters and spaces ("QUIMICA SANGUINEA")
_UPPERCASE_HEADER_RE = re.compile(r"^[A-ZÁÉÍÓÚÜÑ]+(?:\s+[A-ZÁÉÍÓÚÜÑ]+)*$")
_MIN_HEADER_LENGTH = 4


class CategorySpan(BaseModel):
    """Slice ``text[start:end]`` attributed to one category."""

    model_config = ConfigDict(frozen=True)

    name: str
    start: int = Field(ge=0)
    end: int = Field(ge=0)

    def text_of(self, text: str) -> str:
        return text[self.start : self.end]


def detect_categories(text: str, config: ParserConfig | None = None) -> list[CategorySpan]:
    """
    Split ``text`` into category spans.

    Every configured category name is searched case-insensitively and only
    its first occurrence counts. Matches are ordered by offset; at equal
    offsets the category configured first wins, and a match that starts
    inside an already accepted category name (``ORINA`` inside ``ORINAS``)
    is dropped. Each span runs to the start of the next one, the last one
    to the end of the text.

    When no configured name occurs, standalone uppercase lines that are not
    known page/table headers become ad-hoc categories.

    Args:
        text: Raw document text
        config: Parser configuration (defaults to ParserConfig.default())

    Returns:
        Ordered, non-overlapping spans; empty when nothing looks like a category
    """

    config = config or ParserConfig.default()

    matches = _find_configured_categories(text, config)
    if not matches:
        matches = _find_uppercase_headers(text, config)
        if matches:
            logger.info(f"[categories] No configured category found, using {len(matches)} uppercase header(s)")

    spans = _to_spans(matches, len(text))

    # Guard: Nothing resembles a category
    if not spans:
        logger.info("[categories] No categories detected")
        return []

    logger.info(f"[categories] Detected: {', '.join(s.name for s in spans)}")
    return spans


def _find_configured_categories(text: str, config: ParserConfig) -> list[tuple[int, str, int]]:
    """First (offset, name, match_length) of every configured category present."""

    found = []
    for order, name in enumerate(config.category_markers):
        match = re.search(re.escape(name), text, re.IGNORECASE)
        if match:
            found.append((match.start(), order, name, match.end() - match.start()))

    # Sort by offset, then configuration order for ties
    found.sort()

    accepted: list[tuple[int, str, int]] = []
    for offset, _, name, length in found:
        if accepted:
            prev_offset, prev_name, prev_length = accepted[-1]
            # Same offset or nested inside the previous header
            if offset < prev_offset + prev_length:
                logger.debug(f"[categories] '{name}' at {offset} overlaps '{prev_name}', ignored")
                continue
        accepted.append((offset, name, length))

    return accepted


def _find_uppercase_headers(text: str, config: ParserConfig) -> list[tuple[int, str, int]]:
    """Standalone uppercase lines usable as ad-hoc categories."""

    denied = {strip_accents(label).upper() for label in config.header_labels}
    seen: set[str] = set()
    headers = []

    for match in re.finditer(r"^.*$", text, re.MULTILINE):
        raw_line = match.group(0)
        line = raw_line.strip()

        # Skip short or mixed-case lines
        if len(line) < _MIN_HEADER_LENGTH or not _UPPERCASE_HEADER_RE.match(line):
            continue

        name = re.sub(r"\s+", " ", line)
        if strip_accents(name) in denied or name in seen:
            continue

        seen.add(name)
        offset = match.start() + (len(raw_line) - len(raw_line.lstrip()))
        headers.append((offset, name, len(line)))

    return headers


def _to_spans(matches: list[tuple[int, str, int]], text_length: int) -> list[CategorySpan]:
    spans = []
    for i, (offset, name, _) in enumerate(matches):
        end = matches[i + 1][0] if i + 1 < len(matches) else text_length
        spans.append(CategorySpan(name=name, start=offset, end=end))
    return spans
