"""Tests for logging, environment and DataFrame helpers."""

import logging
import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import pandas as pd

from medexam_parser.utils import ensure_columns, load_dotenv_with_env, setup_logging


class TestEnsureColumns(unittest.TestCase):
    def test_adds_only_missing_columns(self):
        df = pd.DataFrame([{"name": "Glucosa", "unit": "mg/dL"}])
        df = ensure_columns(df, ["unit", "status"], default="UNDEFINED")

        self.assertEqual(list(df.columns), ["name", "unit", "status"])
        self.assertEqual(df.loc[0, "unit"], "mg/dL")
        self.assertEqual(df.loc[0, "status"], "UNDEFINED")


class TestDotenv(unittest.TestCase):
    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.addCleanup(lambda: shutil.rmtree(self.temp_dir))
        cwd = os.getcwd()
        os.chdir(self.temp_dir)
        self.addCleanup(os.chdir, cwd)

    def test_loads_named_env_file(self):
        (self.temp_dir / ".env.staging").write_text("MEDEXAM_OUTPUT=staging_out\n", encoding="utf-8")

        with mock.patch("sys.argv", ["medexam-parser", "--env=staging"]), mock.patch.dict(os.environ, {}, clear=False):
            self.assertEqual(load_dotenv_with_env(), "staging")
            self.assertEqual(os.environ["MEDEXAM_OUTPUT"], "staging_out")

    def test_missing_env_file(self):
        with mock.patch("sys.argv", ["medexam-parser", "--env", "prod"]):
            self.assertEqual(load_dotenv_with_env(), "prod")

    def test_default_env_name(self):
        with mock.patch("sys.argv", ["medexam-parser"]):
            self.assertEqual(load_dotenv_with_env(), "local")


class TestSetupLogging(unittest.TestCase):
    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.addCleanup(lambda: shutil.rmtree(self.temp_dir))
        self.addCleanup(self._reset_logging)

    @staticmethod
    def _reset_logging():
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

    def test_info_and_error_files(self):
        log_dir = self.temp_dir / "logs"
        log_dir.mkdir()
        (log_dir / "info.log").write_text("stale\n", encoding="utf-8")

        setup_logging(log_dir, clear_logs=True)
        logging.getLogger("medexam_parser.test").info("parsed report")
        logging.getLogger("medexam_parser.test").error("unreadable file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        info_text = (log_dir / "info.log").read_text(encoding="utf-8")
        error_text = (log_dir / "error.log").read_text(encoding="utf-8")
        self.assertNotIn("stale", info_text)
        self.assertIn("parsed report", info_text)
        self.assertIn("unreadable file", info_text)
        self.assertIn("unreadable file", error_text)
        self.assertNotIn("parsed report", error_text)


if __name__ == "__main__":
    unittest.main()
