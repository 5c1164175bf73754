"""Configuration management for the medexam parser."""

import json
import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from medexam_parser import keywords
from medexam_parser.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _freeze_markers(markers: Mapping[str, list[str] | tuple[str, ...]]) -> Mapping[str, tuple[str, ...]]:
    return MappingProxyType({name: tuple(names) for name, names in markers.items()})


def _freeze_windows(windows: Mapping[str, list[int] | tuple[int, int]]) -> Mapping[str, tuple[int, int]]:
    frozen = {}
    for marker, window in windows.items():
        start, end = _validate_window(window, f"lookahead override for '{marker}'")
        frozen[marker] = (start, end)
    return MappingProxyType(frozen)


def _validate_window(window, label: str) -> tuple[int, int]:
    """Check a lookahead window is a pair of increasing positive offsets."""

    try:
        start, end = (int(v) for v in window)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid {label}: {window!r}") from e

    if start < 1 or end < start:
        raise ConfigurationError(f"Invalid {label}: {window!r} (expected 1 <= start <= end)")
    return start, end


@dataclass(frozen=True)
class ParserConfig:
    """Read-only tables and thresholds used by the extraction engine.

    Built once per process (``ParserConfig.default()``) and passed to every
    component. Instances are frozen and their mappings are read-only views,
    so a single config can be shared across threads and processes.
    """

    category_markers: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: _freeze_markers(keywords.CATEGORY_MARKERS)
    )
    metadata_labels: frozenset[str] = keywords.METADATA_LABELS
    header_labels: frozenset[str] = keywords.HEADER_LABELS
    qualitative_tokens: tuple[str, ...] = keywords.QUALITATIVE_TOKENS
    default_lookahead: tuple[int, int] = keywords.DEFAULT_LOOKAHEAD
    lookahead_overrides: Mapping[str, tuple[int, int]] = field(
        default_factory=lambda: MappingProxyType(dict(keywords.LOOKAHEAD_OVERRIDES))
    )
    lipid_aliases: Mapping[str, str] = field(default_factory=lambda: MappingProxyType(dict(keywords.LIPID_ALIASES)))
    lipid_cutoffs: Mapping[str, Mapping[str, float]] = field(
        default_factory=lambda: MappingProxyType(
            {k: MappingProxyType(dict(v)) for k, v in keywords.LIPID_CUTOFFS.items()}
        )
    )
    # Tolerance margins around the reference interval. Non-authoritative
    # defaults, not medical guidance.
    lower_margin: float = 0.8
    upper_margin: float = 1.2
    fallback_category: str = "General"

    @classmethod
    @lru_cache(maxsize=1)
    def default(cls) -> "ParserConfig":
        """Process-wide default configuration built from ``keywords``."""

        return cls()

    @classmethod
    def from_file(cls, config_path: Path) -> "ParserConfig":
        """Load a JSON file overriding the default tables.

        Recognized keys: ``categories`` (name -> list of markers),
        ``metadata_labels``, ``header_labels``, ``qualitative_tokens``,
        ``default_lookahead`` ([start, end]), ``lookahead_overrides``
        (marker -> [start, end]), ``lower_margin``, ``upper_margin``,
        ``fallback_category``. Missing keys keep their defaults.
        """

        # Guard: Missing file is a configuration error, not a silent default
        if not config_path.exists():
            raise ConfigurationError(f"Marker config not found at {config_path}")

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Marker config {config_path} is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Marker config {config_path} must contain a JSON object")

        overrides = {}

        # Category table replaces the default one entirely
        if "categories" in data:
            categories = data["categories"]
            if not isinstance(categories, dict) or not all(isinstance(v, list) for v in categories.values()):
                raise ConfigurationError("'categories' must map category names to lists of marker names")
            overrides["category_markers"] = _freeze_markers(categories)

        for key in ("metadata_labels", "header_labels"):
            if key in data:
                overrides[key] = frozenset(data[key])

        if "qualitative_tokens" in data:
            overrides["qualitative_tokens"] = tuple(data["qualitative_tokens"])

        if "default_lookahead" in data:
            overrides["default_lookahead"] = _validate_window(data["default_lookahead"], "default_lookahead")

        if "lookahead_overrides" in data:
            overrides["lookahead_overrides"] = _freeze_windows(data["lookahead_overrides"])

        for key in ("lower_margin", "upper_margin"):
            if key in data:
                overrides[key] = float(data[key])

        if "fallback_category" in data:
            overrides["fallback_category"] = str(data["fallback_category"])

        logger.info(f"Loaded marker config from {config_path} ({', '.join(sorted(overrides)) or 'no overrides'})")
        return cls(**overrides)

    def markers_for(self, category: str) -> tuple[str, ...]:
        """Configured markers for ``category`` (empty when none)."""

        return self.category_markers.get(category, ())

    def lookahead_for(self, marker: str) -> tuple[int, int]:
        """Inclusive relative line offsets searched after ``marker``."""

        return self.lookahead_overrides.get(marker, self.default_lookahead)


@dataclass
class ExtractionConfig:
    """Configuration for the batch extraction pipeline."""

    input_path: Path
    input_file_regex: str
    output_path: Path
    max_workers: int = 1
    markers_path: Path | None = None

    @classmethod
    def from_env(cls) -> "ExtractionConfig":
        """Load configuration from environment variables."""

        input_path = os.getenv("INPUT_PATH")
        input_file_regex = os.getenv("INPUT_FILE_REGEX", "*.txt")
        output_path = os.getenv("OUTPUT_PATH")
        max_workers_str = os.getenv("MAX_WORKERS", "1")
        markers_path = os.getenv("MARKERS_PATH") or None

        # Validate required fields
        if not input_path or not Path(input_path).exists():
            raise ConfigurationError(f"INPUT_PATH ('{input_path}') not set or does not exist.")
        if not output_path:
            raise ConfigurationError("OUTPUT_PATH not set")

        # Parse max_workers
        try:
            max_workers = max(1, int(max_workers_str))
        except ValueError:
            logger.warning(f"MAX_WORKERS ('{max_workers_str}') is not valid. Defaulting to 1.")
            max_workers = 1

        return cls(
            input_path=Path(input_path),
            input_file_regex=input_file_regex,
            output_path=Path(output_path),
            max_workers=max_workers,
            markers_path=Path(markers_path) if markers_path else None,
        )

    def load_parser_config(self) -> ParserConfig:
        """Parser tables for this run (defaults unless ``markers_path`` is set)."""

        if self.markers_path is None:
            return ParserConfig.default()
        return ParserConfig.from_file(self.markers_path)
