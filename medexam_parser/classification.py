"""Clinical status classification for extracted parameters."""

import logging

from medexam_parser.config import ParserConfig
from medexam_parser.models import (
    ExtractedParameter,
    LowerBound,
    NumericRange,
    ParameterStatus,
    QualitativeExpected,
    ReferenceRange,
    UpperBound,
)
from medexam_parser.normalization import (
    interpret_reference_range,
    normalize_label,
    normalize_phrase,
    parse_decimal,
)

logger = logging.getLogger(__name__)


def classify_status(
    name: str,
    value: str,
    numeric_value: float | None,
    reference: ReferenceRange,
    config: ParserConfig | None = None,
) -> ParameterStatus:
    """
    Assign a severity status to one parameter.

    Lipid panel parameters ignore the document's reference and use fixed
    cut-offs. Qualitative references compare the raw value text. Numeric
    references use the configured tolerance margins.

    Args:
        name: Parameter name (canonical or captured)
        value: Raw value text
        numeric_value: Parsed decimal value, if any
        reference: Interpreted reference range
        config: Parser configuration (defaults to ParserConfig.default())

    Returns:
        ParameterStatus
    """

    config = config or ParserConfig.default()

    # Lipid panel overrides take precedence over any document reference
    lipid_key = config.lipid_aliases.get(normalize_label(name))
    if lipid_key is not None:
        return _classify_lipid(lipid_key, numeric_value, config)

    if isinstance(reference, QualitativeExpected):
        return _classify_qualitative(value, reference.token)

    # Guard: Numeric comparison impossible
    if numeric_value is None:
        return ParameterStatus.UNDEFINED

    if isinstance(reference, NumericRange):
        return _classify_range(numeric_value, reference.min, reference.max, config)

    if isinstance(reference, UpperBound):
        if numeric_value < reference.max:
            return ParameterStatus.NORMAL
        if numeric_value > reference.max * config.upper_margin:
            return ParameterStatus.ATTENTION
        return ParameterStatus.WATCH

    if isinstance(reference, LowerBound):
        if numeric_value > reference.min:
            return ParameterStatus.NORMAL
        if numeric_value < reference.min * config.lower_margin:
            return ParameterStatus.ATTENTION
        return ParameterStatus.WATCH

    return ParameterStatus.UNDEFINED


def _classify_range(value: float, low: float, high: float, config: ParserConfig) -> ParameterStatus:
    if value < low:
        return ParameterStatus.WATCH if value >= low * config.lower_margin else ParameterStatus.ATTENTION
    if value > high:
        return ParameterStatus.WATCH if value <= high * config.upper_margin else ParameterStatus.ATTENTION
    return ParameterStatus.NORMAL


def _classify_qualitative(value: str, token: str) -> ParameterStatus:
    if normalize_phrase(value) == normalize_phrase(token):
        return ParameterStatus.NORMAL
    return ParameterStatus.WATCH


def _classify_lipid(lipid_key: str, value: float | None, config: ParserConfig) -> ParameterStatus:
    """Fixed lipid panel cut-offs (HDL is a two-sided watch band)."""

    # Guard: Cut-offs need a number
    if value is None:
        return ParameterStatus.UNDEFINED

    cutoffs = config.lipid_cutoffs[lipid_key]

    if lipid_key == "hdl":
        if value < cutoffs["low"] or value > cutoffs["high"]:
            return ParameterStatus.WATCH
        return ParameterStatus.NORMAL

    # LDL is strict ("< 100"), total cholesterol and triglycerides inclusive
    if "below" in cutoffs:
        return ParameterStatus.NORMAL if value < cutoffs["below"] else ParameterStatus.ATTENTION
    return ParameterStatus.NORMAL if value <= cutoffs["max"] else ParameterStatus.ATTENTION


def classify_parameter(candidate: ExtractedParameter, config: ParserConfig | None = None) -> ExtractedParameter:
    """Interpret the reference text and return the parameter with its status set."""

    config = config or ParserConfig.default()
    reference = interpret_reference_range(candidate.reference_range, config.qualitative_tokens)
    numeric_value = parse_decimal(candidate.value)
    status = classify_status(candidate.name, candidate.value, numeric_value, reference, config)

    logger.debug(
        f"[classification] {candidate.name}={candidate.value!r} ref={candidate.reference_range!r} "
        f"({reference.kind}) -> {status.value}"
    )

    return candidate.model_copy(update={"numeric_value": numeric_value, "reference": reference, "status": status})
