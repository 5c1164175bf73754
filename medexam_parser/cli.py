"""CLI entry point for medexam-parser."""

import argparse
import logging
import sys
from functools import lru_cache
from multiprocessing import Pool
from pathlib import Path

from tqdm import tqdm

from medexam_parser.config import ExtractionConfig, ParserConfig
from medexam_parser.exceptions import ConfigurationError, PipelineError
from medexam_parser.export import merge_csv_files, save_report_csv, save_result_json
from medexam_parser.report import parse_lab_report
from medexam_parser.utils import load_dotenv_with_env, setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""

    parser = argparse.ArgumentParser(
        prog="medexam-parser",
        description="Medical Exam Parser - Extract lab parameters from report text",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Parse one document:
  medexam-parser reports/2024-03-12.txt --output out/

  # Parse a folder with 4 workers:
  medexam-parser reports/ --output out/ --workers 4

  # Use INPUT_PATH / OUTPUT_PATH from .env.prod:
  medexam-parser --env prod

  # Custom category/marker tables:
  medexam-parser reports/ --output out/ --markers markers.json
        """,
    )
    parser.add_argument(
        "input",
        nargs="?",
        type=Path,
        help="Text file or directory of text files (default: INPUT_PATH)",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Output directory (default: OUTPUT_PATH)",
    )
    parser.add_argument(
        "--pattern",
        type=str,
        help="Glob for files inside a directory input (default: INPUT_FILE_REGEX or *.txt)",
    )
    parser.add_argument(
        "--workers",
        "-w",
        type=int,
        help="Number of worker processes (default: MAX_WORKERS or 1)",
    )
    parser.add_argument(
        "--markers",
        type=Path,
        help="JSON file overriding category/marker tables (default: MARKERS_PATH)",
    )
    parser.add_argument(
        "--env",
        type=str,
        default="local",
        help="Load .env.<name> before reading configuration (default: local)",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ExtractionConfig:
    """Build ExtractionConfig from args, falling back to the environment."""

    # Explicit input path: environment only fills the gaps
    if args.input is not None:
        if not args.input.exists():
            raise ConfigurationError(f"Input path does not exist: {args.input}")
        config = ExtractionConfig(
            input_path=args.input,
            input_file_regex="*.txt",
            output_path=args.output or Path("output"),
        )
    else:
        config = ExtractionConfig.from_env()

    # Override from CLI args (highest priority)
    if args.output:
        config.output_path = args.output
    if args.pattern:
        config.input_file_regex = args.pattern
    if args.workers:
        config.max_workers = max(1, args.workers)
    if args.markers:
        config.markers_path = args.markers

    return config


def find_input_files(config: ExtractionConfig) -> list[Path]:
    """Single file, or files in the input directory matching the glob."""

    if config.input_path.is_file():
        return [config.input_path]
    return sorted(p for p in config.input_path.glob(config.input_file_regex) if p.is_file())


# ========================================
# Per-document Processing
# ========================================


@lru_cache(maxsize=4)
def _parser_config(markers_path: Path | None) -> ParserConfig:
    # Built once per worker process
    if markers_path is None:
        return ParserConfig.default()
    return ParserConfig.from_file(markers_path)


def process_document(text_path: Path, output_path: Path, markers_path: Path | None = None) -> dict:
    """
    Parse one text file and write ``<stem>.json`` (and ``<stem>.csv`` on success).

    Args:
        text_path: Document text file (UTF-8)
        output_path: Output directory
        markers_path: Optional marker config JSON

    Returns:
        Summary dict with ``file``, ``ok``, ``parameters``, ``csv`` and ``error``
    """

    config = _parser_config(markers_path)

    try:
        text = text_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise PipelineError(f"Failed to read {text_path}: {e}") from e

    result = parse_lab_report(text, config)

    try:
        save_result_json(result, output_path / f"{text_path.stem}.json")
        csv_path = save_report_csv(result.report, output_path / f"{text_path.stem}.csv") if result.ok else None
    except OSError as e:
        raise PipelineError(f"Failed to write results for {text_path.name}: {e}") from e

    if not result.ok:
        logger.warning(f"[{text_path.name}] {result.failure.reason.value}: {result.failure.message}")

    return {
        "file": text_path.name,
        "ok": result.ok,
        "parameters": result.report.parameter_count if result.ok else 0,
        "csv": csv_path,
        "error": None if result.ok else result.failure.reason.value,
    }


def _process_document_wrapper(args):
    """Wrapper function for multiprocessing."""
    return process_document(*args)


# ========================================
# Main Pipeline
# ========================================


def run(config: ExtractionConfig) -> list[dict]:
    """Process every input document and write the merged ``all.csv``."""

    # Fail fast on a bad marker config before spawning workers
    _parser_config(config.markers_path)

    files = find_input_files(config)
    logger.info(f"Found {len(files)} file(s) matching '{config.input_file_regex}'")

    # Guard: Nothing to do
    if not files:
        logger.warning("No input files found. Exiting.")
        return []

    config.output_path.mkdir(parents=True, exist_ok=True)
    tasks = [(path, config.output_path, config.markers_path) for path in files]
    n_workers = min(config.max_workers, len(tasks))
    logger.info(f"Using {n_workers} worker(s)")

    results = []
    with tqdm(total=len(tasks), desc="Parsing reports", unit="doc") as pbar:
        if n_workers == 1:
            for task in tasks:
                results.append(_process_document_wrapper(task))
                pbar.update(1)
        else:
            with Pool(n_workers) as pool:
                for result in pool.imap(_process_document_wrapper, tasks):
                    results.append(result)
                    pbar.update(1)

    csv_paths = [r["csv"] for r in results if r["csv"] is not None]
    merged_df = merge_csv_files(csv_paths)
    all_csv_path = config.output_path / "all.csv"
    merged_df.to_csv(all_csv_path, index=False, encoding="utf-8")
    logger.info(f"Saved merged CSV: {all_csv_path} ({len(merged_df)} rows)")

    return results


def main(argv: list[str] | None = None) -> int:
    """Main pipeline orchestration."""

    load_dotenv_with_env()
    args = parse_args(argv)

    try:
        config = build_config(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.output_path / "logs", clear_logs=True)
    logger.info(f"Input: {config.input_path}")
    logger.info(f"Output: {config.output_path}")

    try:
        results = run(config)
    except (ConfigurationError, PipelineError) as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    failed = [r for r in results if not r["ok"]]
    extracted = sum(r["parameters"] for r in results)
    print(f"Processed {len(results)} document(s): {extracted} parameter(s), {len(failed)} without results")

    return 0


if __name__ == "__main__":
    sys.exit(main())
