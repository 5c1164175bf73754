"""Tests for the batch command line pipeline."""

import json
import logging
import shutil
import tempfile
import unittest
from pathlib import Path

import pandas as pd

from medexam_parser.cli import main, parse_args

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class TestCli(unittest.TestCase):
    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.input_dir = self.temp_dir / "input"
        self.output_dir = self.temp_dir / "output"
        self.input_dir.mkdir()
        self.addCleanup(lambda: shutil.rmtree(self.temp_dir))
        # main() installs file handlers on the root logger
        self.addCleanup(self._reset_logging)

        shutil.copy2(FIXTURES_DIR / "sample_report.txt", self.input_dir / "sample_report.txt")
        (self.input_dir / "empty.txt").write_text("", encoding="utf-8")

    @staticmethod
    def _reset_logging():
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

    def test_parse_args(self):
        args = parse_args(["reports", "--output", "out", "--workers", "2"])
        self.assertEqual(args.input, Path("reports"))
        self.assertEqual(args.output, Path("out"))
        self.assertEqual(args.workers, 2)

    def test_processes_directory(self):
        exit_code = main([str(self.input_dir), "--output", str(self.output_dir)])
        self.assertEqual(exit_code, 0)

        report = json.loads((self.output_dir / "sample_report.json").read_text(encoding="utf-8"))
        self.assertEqual(report["report"]["parameter_count"], 10)
        self.assertTrue((self.output_dir / "sample_report.csv").exists())

        empty = json.loads((self.output_dir / "empty.json").read_text(encoding="utf-8"))
        self.assertEqual(empty["failure"]["reason"], "EMPTY_INPUT")
        self.assertFalse((self.output_dir / "empty.csv").exists())

        merged = pd.read_csv(self.output_dir / "all.csv", dtype=str, keep_default_na=False)
        self.assertEqual(len(merged), 10)
        self.assertEqual(set(merged["source_file"]), {"sample_report"})

    def test_single_file_input(self):
        exit_code = main([str(self.input_dir / "sample_report.txt"), "-o", str(self.output_dir)])
        self.assertEqual(exit_code, 0)
        self.assertFalse((self.output_dir / "empty.json").exists())

    def test_missing_input(self):
        self.assertEqual(main([str(self.temp_dir / "missing"), "-o", str(self.output_dir)]), 1)

    def test_invalid_marker_config(self):
        markers = self.temp_dir / "markers.json"
        markers.write_text("[]", encoding="utf-8")

        exit_code = main([str(self.input_dir), "-o", str(self.output_dir), "--markers", str(markers)])
        self.assertEqual(exit_code, 1)


if __name__ == "__main__":
    unittest.main()
