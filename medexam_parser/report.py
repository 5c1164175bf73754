"""Report assembly: text in, ``ExtractionResult`` out."""

import logging
import re
from datetime import date

from medexam_parser.categories import CategorySpan, detect_categories
from medexam_parser.classification import classify_parameter
from medexam_parser.config import ParserConfig
from medexam_parser.extraction import extract_parameters
from medexam_parser.models import (
    ExamCategory,
    ExtractedParameter,
    ExtractionFailure,
    ExtractionNotice,
    ExtractionResult,
    IssueKind,
    MedicalReport,
    PatientInfo,
    QualitativeExpected,
    Unparseable,
)

logger = logging.getLogger(__name__)

# ========================================
# Patient Metadata
# ========================================

# PatientInfo field -> "Label: value" pattern (value runs to end of line)
PATIENT_FIELD_PATTERNS: dict[str, re.Pattern] = {
    "name": re.compile(r"Nombre\s*:\s*([^\n\r]+)"),
    "patient_id": re.compile(r"RUN/DNI\.?\s*:\s*([^\n\r]+)"),
    "age": re.compile(r"Edad\s*:\s*([^\n\r]+)"),
    "gender": re.compile(r"Sexo\s*:\s*([^\n\r]+)"),
    "doctor": re.compile(r"Dr\(a\)\s*:\s*([^\n\r]+)"),
    "exam_date": re.compile(r"Toma de Muestra\s*:\s*([^\n\r]+)"),
    "report_date": re.compile(r"Fecha de informe\s*:\s*([^\n\r]+)"),
}

# Column layout: "Toma de Muestra" header, a blank/label line, then the date
_SAMPLE_DATE_HEADER = "TomadeMuestra"
_SAMPLE_DATE_OFFSET = 2


def extract_patient_info(text: str) -> PatientInfo:
    """Collect patient metadata from ``Label: value`` lines (missing -> "")."""

    fields = {}
    for field_name, pattern in PATIENT_FIELD_PATTERNS.items():
        match = pattern.search(text)
        if match:
            fields[field_name] = match.group(1).strip()

    lines = text.splitlines()
    for i, line in enumerate(lines):
        if line.replace(" ", "").strip() != _SAMPLE_DATE_HEADER:
            continue
        if i + _SAMPLE_DATE_OFFSET < len(lines):
            tokens = lines[i + _SAMPLE_DATE_OFFSET].split()
            if tokens:
                fields["sample_date"] = tokens[0]
        break

    return PatientInfo(**fields)


def normalize_date(date_str: str | None) -> str | None:
    """
    Normalize date strings to YYYY-MM-DD format.

    Handles common formats:
    - DD/MM/YYYY (e.g., 20/11/2024 -> 2024-11-20)
    - DD-MM-YYYY (e.g., 20-11-2024 -> 2024-11-20)
    - DD/MM/YY (e.g., 20/11/24 -> 2024-11-20)
    - YYYY-MM-DD (already correct)

    A trailing time ("20/11/2024 08:15") is ignored.

    Args:
        date_str: Date string in various formats

    Returns:
        Date string in YYYY-MM-DD format, or None if invalid/null
    """

    # Guard: Empty or invalid date string
    if not date_str or not date_str.strip():
        return None

    token = date_str.split()[0]

    match = re.match(r"^(\d{4})-(\d{2})-(\d{2})$", token)
    if match:
        year, month, day = match.groups()
    else:
        match = re.match(r"^(\d{1,2})[/.-](\d{1,2})[/.-](\d{4}|\d{2})$", token)
        if not match:
            logger.warning(f"Unable to normalize date format: {date_str}")
            return None
        day, month, year = match.groups()
        if len(year) == 2:
            year = f"20{year}"

    try:
        return date(int(year), int(month), int(day)).isoformat()
    except ValueError:
        logger.warning(f"Invalid calendar date: {date_str}")
        return None


# ========================================
# Assembly
# ========================================


def _notices_for(category: str, parameter: ExtractedParameter) -> list[ExtractionNotice]:
    """Recovered problems worth reporting for one kept parameter."""

    notices = []

    if parameter.numeric_value is None and not isinstance(parameter.reference, QualitativeExpected):
        notices.append(
            ExtractionNotice(
                kind=IssueKind.UNPARSEABLE_NUMERIC_VALUE,
                category=category,
                parameter=parameter.name,
                detail=parameter.value,
            )
        )

    if parameter.reference_range and isinstance(parameter.reference, Unparseable):
        notices.append(
            ExtractionNotice(
                kind=IssueKind.UNPARSEABLE_REFERENCE_RANGE,
                category=category,
                parameter=parameter.name,
                detail=parameter.reference_range,
            )
        )

    return notices


def assemble_report(
    groups: list[tuple[str, list[ExtractedParameter]]],
    patient: PatientInfo | None = None,
    notices: list[ExtractionNotice] | None = None,
) -> ExtractionResult:
    """
    Build the final result from classified parameters grouped by category.

    Categories keep discovery order. Within a category the first parameter
    with a given name wins; categories left without parameters are dropped.

    Args:
        groups: (category_name, classified parameters) in discovery order
        patient: Document metadata
        notices: Notices gathered before assembly

    Returns:
        ExtractionResult with a report, or an EXTRACTION_FAILED failure when
        every category is empty
    """

    patient = patient or PatientInfo()
    notices = list(notices or [])

    merged: dict[str, dict[str, ExtractedParameter]] = {}
    for category, parameters in groups:
        by_name = merged.setdefault(category, {})
        for parameter in parameters:
            if parameter.name in by_name:
                logger.debug(f"[report] Duplicate '{parameter.name}' in {category}, keeping first")
                continue
            by_name[parameter.name] = parameter

    categories = []
    for category, by_name in merged.items():
        # Skip empty categories
        if not by_name:
            logger.info(f"[report] Dropping empty category '{category}'")
            continue
        for parameter in by_name.values():
            notices.extend(_notices_for(category, parameter))
        categories.append(ExamCategory(name=category, parameters=tuple(by_name.values())))

    # Guard: Nothing extracted at all
    if not categories:
        logger.warning("[report] No parameters extracted from any category")
        return ExtractionResult(
            failure=ExtractionFailure(
                reason=IssueKind.EXTRACTION_FAILED,
                message="No parameters could be extracted from the detected categories",
            ),
            notices=tuple(notices),
        )

    report = MedicalReport(
        categories=tuple(categories),
        patient=patient,
        collection_date=normalize_date(patient.sample_date or patient.exam_date),
    )
    return ExtractionResult(report=report, notices=tuple(notices))


def _extract_spans(
    text: str, spans: list[CategorySpan], config: ParserConfig
) -> list[tuple[str, list[ExtractedParameter]]]:
    groups = []
    for span in spans:
        candidates = extract_parameters(span.text_of(text), span.name, config)
        groups.append((span.name, [classify_parameter(c, config) for c in candidates]))
    return groups


def parse_lab_report(text: str, config: ParserConfig | None = None) -> ExtractionResult:
    """
    Turn the raw text of one lab report into a structured result.

    Pipeline: category detection, per-category parameter extraction,
    reference interpretation and status classification, then assembly.
    When no category is detected the whole text is parsed as a single
    fallback category (``config.fallback_category``) and a
    NO_CATEGORIES_DETECTED notice is attached. When detected categories
    all come out empty, the whole text is parsed the same way before
    giving up with EXTRACTION_FAILED.

    The function is pure: the same text and config always produce the same
    result.

    Args:
        text: Document text (UTF-8 decoded)
        config: Parser configuration (defaults to ParserConfig.default())

    Returns:
        ExtractionResult (never raises for malformed documents)
    """

    config = config or ParserConfig.default()

    # Guard: Nothing to parse
    if not text or not text.strip():
        return ExtractionResult(
            failure=ExtractionFailure(reason=IssueKind.EMPTY_INPUT, message="Document text is empty")
        )

    notices = []
    patient = extract_patient_info(text)
    whole_document = CategorySpan(name=config.fallback_category, start=0, end=len(text))
    spans = detect_categories(text, config)

    if not spans:
        notices.append(
            ExtractionNotice(
                kind=IssueKind.NO_CATEGORIES_DETECTED,
                category=config.fallback_category,
                detail="No category headers found, parsing the whole document",
            )
        )
        spans = [whole_document]

    result = assemble_report(_extract_spans(text, spans, config), patient, notices)

    # Detected categories gave nothing: retry the whole document
    if not result.ok and spans[0] is not whole_document:
        logger.info(f"[report] Detected categories are empty, parsing the whole document as '{whole_document.name}'")
        result = assemble_report(_extract_spans(text, [whole_document], config), patient, notices)

    if result.ok:
        logger.info(
            f"[report] Extracted {result.report.parameter_count} parameter(s) "
            f"in {len(result.report.categories)} categor(ies)"
        )
    return result


class LabReportParser:
    """Reusable parser bound to one configuration."""

    def __init__(self, config: ParserConfig | None = None):
        self.config = config or ParserConfig.default()

    def parse(self, text: str) -> ExtractionResult:
        return parse_lab_report(text, self.config)

    def __call__(self, text: str) -> ExtractionResult:
        return self.parse(text)
