"""Tests for category detection."""

import unittest

from medexam_parser.categories import detect_categories
from medexam_parser.config import ParserConfig


class TestConfiguredCategories(unittest.TestCase):
    def test_spans_are_ordered_and_contiguous(self):
        text = "Encabezado\nHEMATOLOGIA\nHemoglobina\n13,5\nORINAS\nNitritos\nNegativo\n"
        spans = detect_categories(text)

        self.assertEqual([s.name for s in spans], ["HEMATOLOGIA", "ORINAS"])
        self.assertEqual(spans[0].start, text.index("HEMATOLOGIA"))
        self.assertEqual(spans[0].end, spans[1].start)
        self.assertEqual(spans[1].end, len(text))
        self.assertTrue(spans[1].text_of(text).startswith("ORINAS"))

    def test_nested_category_name_is_ignored(self):
        # "ORINA" is a prefix of "ORINAS" and "QUIMICA" sits inside "BIOQUIMICA"
        text = "BIOQUIMICA\nGlucosa: 95\nORINAS\nNitritos\nNegativo\n"
        names = [s.name for s in detect_categories(text)]
        self.assertEqual(names, ["BIOQUIMICA", "ORINAS"])

    def test_only_first_occurrence_counts(self):
        text = "HEMATOLOGIA\nHemoglobina\n13,5\nHEMATOLOGIA (cont.)\nHematocrito\n41\n"
        spans = detect_categories(text)
        self.assertEqual(len(spans), 1)
        self.assertEqual(spans[0].end, len(text))

    def test_case_insensitive_match_uses_configured_name(self):
        spans = detect_categories("Hematologia\nHemoglobina\n13,5\n")
        self.assertEqual(spans[0].name, "HEMATOLOGIA")

    def test_custom_category_table(self):
        config = ParserConfig(category_markers={"PANEL ESPECIAL": ("Ferritina",)})
        spans = detect_categories("PANEL ESPECIAL\nFerritina\n150\n", config)
        self.assertEqual([s.name for s in spans], ["PANEL ESPECIAL"])


class TestUppercaseHeaders(unittest.TestCase):
    def test_uppercase_lines_become_categories(self):
        text = "PERFIL TIROIDEO\nTSH: 2,5 uUI/mL 0,4-4,0\nMARCADORES  TUMORALES\nCEA: 1,2 ng/mL < 5\n"
        names = [s.name for s in detect_categories(text)]
        self.assertEqual(names, ["PERFIL TIROIDEO", "MARCADORES TUMORALES"])

    def test_known_table_headers_are_skipped(self):
        text = "RESULTADOS\nVALOR DE REFERENCIA\nPERFIL TIROIDEO\nTSH: 2,5\n"
        names = [s.name for s in detect_categories(text)]
        self.assertEqual(names, ["PERFIL TIROIDEO"])

    def test_short_uppercase_lines_are_not_headers(self):
        self.assertEqual(detect_categories("TSH\n2,5\n"), [])

    def test_no_categories(self):
        self.assertEqual(detect_categories("Glucosa: 95 mg/dl 70-100\n"), [])
        self.assertEqual(detect_categories(""), [])


if __name__ == "__main__":
    unittest.main()
