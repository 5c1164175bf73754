"""Medexam Parser - Structured extraction of clinical lab report text."""

from medexam_parser.categories import CategorySpan, detect_categories
from medexam_parser.classification import classify_parameter, classify_status
from medexam_parser.config import ExtractionConfig, ParserConfig
from medexam_parser.exceptions import ConfigurationError, PipelineError
from medexam_parser.export import (
    load_report_csv,
    load_result_json,
    report_from_dataframe,
    report_to_dataframe,
    save_report_csv,
    save_result_json,
)
from medexam_parser.extraction import (
    LINE_PATTERNS,
    ExtractionStrategy,
    KeywordStrategy,
    LinePattern,
    PatternStrategy,
    extract_parameters,
    select_strategy,
)
from medexam_parser.models import (
    ExamCategory,
    ExtractedParameter,
    ExtractionFailure,
    ExtractionNotice,
    ExtractionResult,
    IssueKind,
    LowerBound,
    MedicalReport,
    NumericRange,
    ParameterStatus,
    PatientInfo,
    QualitativeExpected,
    Unparseable,
    UpperBound,
)
from medexam_parser.normalization import interpret_reference_range
from medexam_parser.report import (
    LabReportParser,
    assemble_report,
    extract_patient_info,
    normalize_date,
    parse_lab_report,
)

__version__ = "0.1.0"

__all__ = [
    # Exceptions
    "ConfigurationError",
    "PipelineError",
    # Config
    "ParserConfig",
    "ExtractionConfig",
    # Models
    "ParameterStatus",
    "IssueKind",
    "NumericRange",
    "UpperBound",
    "LowerBound",
    "QualitativeExpected",
    "Unparseable",
    "ExtractedParameter",
    "ExamCategory",
    "PatientInfo",
    "MedicalReport",
    "ExtractionNotice",
    "ExtractionFailure",
    "ExtractionResult",
    # Categories
    "CategorySpan",
    "detect_categories",
    # Extraction
    "ExtractionStrategy",
    "KeywordStrategy",
    "PatternStrategy",
    "LinePattern",
    "LINE_PATTERNS",
    "select_strategy",
    "extract_parameters",
    # Classification
    "interpret_reference_range",
    "classify_status",
    "classify_parameter",
    # Report
    "LabReportParser",
    "parse_lab_report",
    "assemble_report",
    "extract_patient_info",
    "normalize_date",
    # Export
    "report_to_dataframe",
    "report_from_dataframe",
    "save_report_csv",
    "load_report_csv",
    "save_result_json",
    "load_result_json",
]
