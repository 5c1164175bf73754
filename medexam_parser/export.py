"""Tabular (pandas/CSV) and JSON export of extracted reports."""

import logging
from pathlib import Path

import pandas as pd

from medexam_parser.models import (
    ExamCategory,
    ExtractedParameter,
    ExtractionResult,
    MedicalReport,
    ParameterStatus,
    PatientInfo,
)
from medexam_parser.normalization import interpret_reference_range, parse_decimal
from medexam_parser.utils import ensure_columns

logger = logging.getLogger(__name__)

# One row per parameter
REPORT_COLUMNS = ["category", "name", "value", "unit", "reference_range", "status"]


def report_to_dataframe(report: MedicalReport) -> pd.DataFrame:
    """Flatten a report to one row per parameter, in report order."""

    rows = [
        {
            "category": category.name,
            "name": parameter.name,
            "value": parameter.value,
            "unit": parameter.unit,
            "reference_range": parameter.reference_range,
            "status": parameter.status.value,
        }
        for category in report.categories
        for parameter in category.parameters
    ]
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def report_from_dataframe(
    df: pd.DataFrame,
    patient: PatientInfo | None = None,
    collection_date: str | None = None,
) -> MedicalReport:
    """
    Rebuild a report from rows produced by ``report_to_dataframe``.

    Numeric values and typed references are derived again from the text
    columns; statuses are taken as stored.

    Args:
        df: DataFrame with REPORT_COLUMNS (unit/reference_range/status optional)
        patient: Patient metadata (not part of the tabular form)
        collection_date: YYYY-MM-DD collection date (not part of the tabular form)

    Returns:
        MedicalReport with categories in order of first appearance
    """

    df = ensure_columns(df.copy(), ["unit", "reference_range"], default="")
    df = ensure_columns(df, ["status"], default=ParameterStatus.UNDEFINED.value)
    df = df.fillna("")

    categories = []
    for category_name, rows in df.groupby("category", sort=False):
        parameters = [
            ExtractedParameter(
                name=str(row["name"]),
                value=str(row["value"]),
                numeric_value=parse_decimal(str(row["value"])),
                unit=str(row["unit"]),
                reference_range=str(row["reference_range"]),
                reference=interpret_reference_range(str(row["reference_range"])),
                status=ParameterStatus(row["status"] or ParameterStatus.UNDEFINED.value),
            )
            for _, row in rows.iterrows()
        ]
        categories.append(ExamCategory(name=str(category_name), parameters=tuple(parameters)))

    return MedicalReport(
        categories=tuple(categories),
        patient=patient or PatientInfo(),
        collection_date=collection_date,
    )


def save_report_csv(report: MedicalReport, csv_path: Path) -> Path:
    """Write the tabular form of ``report`` to ``csv_path``."""

    report_to_dataframe(report).to_csv(csv_path, index=False, encoding="utf-8")
    logger.info(f"Saved CSV: {csv_path}")
    return csv_path


def load_report_csv(csv_path: Path) -> MedicalReport:
    """Read a CSV written by ``save_report_csv``; all cells stay text."""

    df = pd.read_csv(csv_path, dtype=str, keep_default_na=False, encoding="utf-8")
    return report_from_dataframe(df)


def save_result_json(result: ExtractionResult, json_path: Path) -> Path:
    """Write the full extraction result (report or failure, plus notices)."""

    json_path.write_text(result.model_dump_json(indent=2), encoding="utf-8")
    logger.info(f"Saved JSON: {json_path}")
    return json_path


def load_result_json(json_path: Path) -> ExtractionResult:
    return ExtractionResult.model_validate_json(json_path.read_text(encoding="utf-8"))


def merge_csv_files(csv_paths: list[Path]) -> pd.DataFrame:
    """Concatenate per-document CSVs, tagging rows with their source file."""

    dataframes = []
    for csv_path in csv_paths:
        # Skip empty files
        if csv_path.stat().st_size == 0:
            continue
        df = pd.read_csv(csv_path, dtype=str, keep_default_na=False, encoding="utf-8")
        df["source_file"] = csv_path.stem
        dataframes.append(df)

    if not dataframes:
        return pd.DataFrame(columns=REPORT_COLUMNS + ["source_file"])

    return pd.concat(dataframes, ignore_index=True)
