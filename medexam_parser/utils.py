"""Shared utility functions for the medexam parser."""

import logging
import sys
from pathlib import Path
from typing import Any

import pandas as pd
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _env_name_from_argv(argv: list[str]) -> str:
    for i, arg in enumerate(argv):
        if arg.startswith("--env="):
            return arg.split("=", 1)[1]
        if arg == "--env" and i + 1 < len(argv):
            return argv[i + 1]
    return "local"


def load_dotenv_with_env() -> str | None:
    """Load ``.env.<name>`` for the ``--env`` flag (default: "local").

    Runs before argparse so ``ExtractionConfig.from_env()`` already sees the
    variables.

    Returns:
        The environment name.
    """
    env_name = _env_name_from_argv(sys.argv)
    env_file = Path(f".env.{env_name}")

    # Missing file is fine: plain environment variables still apply
    if not env_file.exists():
        logger.debug(f"{env_file} not found")
        return env_name

    load_dotenv(env_file, override=True)
    logger.info(f"Loaded environment: {env_file}")
    return env_name


def ensure_columns(df: pd.DataFrame, columns: list[str], default: Any = None) -> pd.DataFrame:
    """Add any of ``columns`` missing from ``df``, filled with ``default``."""

    missing = [col for col in columns if col not in df.columns]
    for col in missing:
        df[col] = default
    return df


def _file_handler(path: Path, level: int) -> logging.FileHandler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def setup_logging(log_dir: Path, clear_logs: bool = False) -> logging.Logger:
    """
    Send INFO and above to ``log_dir/info.log``, ERROR to ``log_dir/error.log``
    and WARNING to the console.

    Args:
        log_dir: Directory for the log files (created if needed)
        clear_logs: Truncate existing log files; only the main process does this

    Returns:
        This module's logger
    """

    log_dir.mkdir(parents=True, exist_ok=True)
    info_log_path = log_dir / "info.log"
    error_log_path = log_dir / "error.log"

    if clear_logs:
        for log_file in (info_log_path, error_log_path):
            if log_file.exists():
                log_file.write_text("", encoding="utf-8")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)

    # Forked workers inherit the parent's handlers and share their file descriptors
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        if clear_logs:
            handler.close()

    # Warnings only on the console, below the tqdm bar
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    root_logger.addHandler(_file_handler(info_log_path, logging.INFO))
    root_logger.addHandler(_file_handler(error_log_path, logging.ERROR))
    root_logger.addHandler(console_handler)

    return logging.getLogger(__name__)
