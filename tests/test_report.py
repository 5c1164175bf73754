"""End-to-end tests for report assembly."""

import unittest
from pathlib import Path

from medexam_parser.models import (
    ExtractedParameter,
    IssueKind,
    NumericRange,
    ParameterStatus,
    QualitativeExpected,
    Unparseable,
)
from medexam_parser.report import (
    LabReportParser,
    assemble_report,
    extract_patient_info,
    normalize_date,
    parse_lab_report,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


class TestSampleReport(unittest.TestCase):
    def setUp(self):
        self.text = load_fixture("sample_report.txt")
        self.result = parse_lab_report(self.text)
        self.report = self.result.report

    def test_categories_in_document_order(self):
        self.assertTrue(self.result.ok)
        self.assertIsNone(self.result.failure)
        self.assertEqual(
            [c.name for c in self.report.categories],
            ["HEMATOLOGIA", "Estudio de lípidos", "ORINAS"],
        )
        self.assertEqual(self.report.parameter_count, 10)

    def test_hematology(self):
        hematology = self.report.category("HEMATOLOGIA")
        self.assertEqual(
            [p.name for p in hematology.parameters],
            ["Hemoglobina", "Hematocrito", "Plaquetas", "Neutrófilos"],
        )

        hemoglobin = hematology.get("Hemoglobina")
        self.assertEqual(hemoglobin.value, "13,5")
        self.assertEqual(hemoglobin.unit, "g/dL")
        self.assertEqual(hemoglobin.reference, NumericRange(min=12.0, max=16.0))
        self.assertEqual(hemoglobin.status, ParameterStatus.NORMAL)

        self.assertEqual(hematology.get("Hematocrito").status, ParameterStatus.WATCH)
        self.assertEqual(hematology.get("Plaquetas").status, ParameterStatus.ATTENTION)
        self.assertEqual(hematology.get("Neutrófilos").value, "62")
        self.assertEqual(hematology.get("Neutrófilos").status, ParameterStatus.NORMAL)

    def test_category_summary(self):
        hematology = self.report.category("HEMATOLOGIA")
        self.assertEqual(hematology.overall_status(), ParameterStatus.ATTENTION)
        self.assertEqual(
            hematology.status_counts(),
            {ParameterStatus.NORMAL: 2, ParameterStatus.WATCH: 1, ParameterStatus.ATTENTION: 1},
        )

    def test_lipid_panel_uses_fixed_cutoffs(self):
        lipids = self.report.category("Estudio de lípidos")
        statuses = {p.name: p.status for p in lipids.parameters}
        self.assertEqual(
            statuses,
            {
                "Colesterol Total": ParameterStatus.ATTENTION,
                "Colesterol HDL": ParameterStatus.NORMAL,
                "Colesterol LDL (Friedewald)": ParameterStatus.ATTENTION,
                "Triglicéridos": ParameterStatus.NORMAL,
            },
        )

    def test_qualitative_urine_results(self):
        urine = self.report.category("ORINAS")
        self.assertEqual(urine.get("Nitritos").reference, QualitativeExpected(token="Negativo"))
        self.assertEqual(urine.get("Nitritos").status, ParameterStatus.NORMAL)
        self.assertEqual(urine.get("Proteína").status, ParameterStatus.WATCH)

    def test_patient_metadata(self):
        patient = self.report.patient
        self.assertEqual(patient.name, "JUAN PEREZ SOTO")
        self.assertEqual(patient.patient_id, "12.345.678-9")
        self.assertEqual(patient.age, "45 años")
        self.assertEqual(patient.gender, "Masculino")
        self.assertEqual(patient.doctor, "ANA ROJAS")
        self.assertEqual(patient.report_date, "15/03/2024")
        self.assertEqual(patient.sample_date, "12/03/2024")
        self.assertEqual(self.report.collection_date, "2024-03-12")

    def test_no_notices(self):
        self.assertEqual(self.result.notices, ())

    def test_parsing_is_idempotent(self):
        self.assertEqual(parse_lab_report(self.text), self.result)
        self.assertEqual(LabReportParser()(self.text), self.result)

    def test_parameter_names_unique_per_category(self):
        for category in self.report.categories:
            names = [p.name for p in category.parameters]
            self.assertEqual(len(names), len(set(names)), category.name)


class TestFallbackAndFailures(unittest.TestCase):
    def test_empty_input(self):
        for text in ("", "   \n\t"):
            with self.subTest(text=text):
                result = parse_lab_report(text)
                self.assertFalse(result.ok)
                self.assertEqual(result.failure.reason, IssueKind.EMPTY_INPUT)

    def test_general_fallback(self):
        result = parse_lab_report("Glucosa: 95 mg/dl 70-100\nCreatinina: 1,5 mg/dl 0,7-1,2\n")

        self.assertTrue(result.ok)
        self.assertEqual([c.name for c in result.report.categories], ["General"])
        self.assertEqual([n.kind for n in result.notices], [IssueKind.NO_CATEGORIES_DETECTED])

        general = result.report.category("General")
        self.assertEqual(general.get("Glucosa").status, ParameterStatus.NORMAL)
        self.assertEqual(general.get("Creatinina").status, ParameterStatus.ATTENTION)

    def test_uppercase_header_category(self):
        result = parse_lab_report("PERFIL TIROIDEO\nTSH: 2,5 uUI/mL 0,4-4,0\n")

        self.assertEqual([c.name for c in result.report.categories], ["PERFIL TIROIDEO"])
        tsh = result.report.category("PERFIL TIROIDEO").get("TSH")
        self.assertEqual(tsh.unit, "uUI/mL")
        self.assertEqual(tsh.status, ParameterStatus.NORMAL)
        self.assertEqual(result.notices, ())

    def test_empty_categories_are_dropped(self):
        text = "HEMOGRAMA\nsin datos\nBIOQUIMICA\nGlucosa: 95 mg/dl 70-100\n"
        result = parse_lab_report(text)
        self.assertEqual([c.name for c in result.report.categories], ["BIOQUIMICA"])

    def test_duplicate_names_keep_first(self):
        result = parse_lab_report("Glucosa: 95 mg/dl 70-100\nGlucosa: 180 mg/dl 70-100\n")
        general = result.report.category("General")
        self.assertEqual(len(general.parameters), 1)
        self.assertEqual(general.get("Glucosa").value, "95")

    def test_nothing_extracted(self):
        # Neither the detected category nor the whole-document retry finds anything
        result = parse_lab_report("HEMOGRAMA\nSin observaciones\n")
        self.assertFalse(result.ok)
        self.assertEqual(result.failure.reason, IssueKind.EXTRACTION_FAILED)
        self.assertEqual(result.notices, ())

    def test_empty_categories_retry_whole_document(self):
        result = parse_lab_report("Glucosa: 95 mg/dl 70-100\nHEMOGRAMA\nsin datos\n")

        self.assertTrue(result.ok)
        self.assertEqual([c.name for c in result.report.categories], ["General"])
        glucose = result.report.category("General").get("Glucosa")
        self.assertEqual(glucose.value, "95")
        self.assertEqual(glucose.status, ParameterStatus.NORMAL)

    def test_nothing_extracted_without_categories(self):
        result = parse_lab_report("Documento sin datos\n")
        self.assertEqual(result.failure.reason, IssueKind.EXTRACTION_FAILED)
        self.assertEqual([n.kind for n in result.notices], [IssueKind.NO_CATEGORIES_DETECTED])

    def test_free_text_reference_note(self):
        result = parse_lab_report("Glucosa (mg/dL) : 95 : Ver tabla\n")

        glucose = result.report.category("General").get("Glucosa")
        self.assertEqual(glucose.reference_range, "Ver tabla")
        self.assertIsInstance(glucose.reference, Unparseable)
        self.assertEqual(glucose.status, ParameterStatus.UNDEFINED)
        self.assertIn(IssueKind.UNPARSEABLE_REFERENCE_RANGE, [n.kind for n in result.notices])

    def test_unparseable_notices(self):
        text = (
            "HEMATOLOGIA\nHematocrito\n41\n%\nver nota 3\nHemoglobina\nver nota\n"
            "Perfil Bioquímico\nGlucosa: 95 mg/dL 100 - 70\n"
        )
        result = parse_lab_report(text)

        kinds = {(n.parameter, n.kind) for n in result.notices}
        self.assertEqual(
            kinds,
            {
                ("Hemoglobina", IssueKind.UNPARSEABLE_NUMERIC_VALUE),
                ("Glucosa", IssueKind.UNPARSEABLE_REFERENCE_RANGE),
            },
        )
        self.assertEqual(result.report.category("HEMATOLOGIA").get("Hemoglobina").status, ParameterStatus.UNDEFINED)
        self.assertEqual(result.report.category("Perfil Bioquímico").get("Glucosa").status, ParameterStatus.UNDEFINED)


class TestAssembleReport(unittest.TestCase):
    def test_merges_groups_with_the_same_name(self):
        first = ExtractedParameter(name="Glucosa", value="95")
        second = ExtractedParameter(name="Glucosa", value="180")
        other = ExtractedParameter(name="Urea", value="30")

        result = assemble_report([("QUIMICA", [first]), ("QUIMICA", [second, other]), ("ORINA", [])])

        self.assertEqual([c.name for c in result.report.categories], ["QUIMICA"])
        self.assertEqual([p.value for p in result.report.categories[0].parameters], ["95", "30"])

    def test_all_empty_is_a_failure(self):
        result = assemble_report([("QUIMICA", [])])
        self.assertEqual(result.failure.reason, IssueKind.EXTRACTION_FAILED)


class TestMetadata(unittest.TestCase):
    def test_missing_fields_are_empty(self):
        patient = extract_patient_info("Nombre: Ana\n")
        self.assertEqual(patient.name, "Ana")
        self.assertEqual(patient.doctor, "")
        self.assertEqual(patient.sample_date, "")

    def test_exam_date_line(self):
        patient = extract_patient_info("Toma de Muestra: 05/01/2024 09:30\n")
        self.assertEqual(patient.exam_date, "05/01/2024 09:30")

    def test_normalize_date(self):
        cases = {
            "20/11/2024": "2024-11-20",
            "20-11-2024": "2024-11-20",
            "2024-11-20": "2024-11-20",
            "5/3/24": "2024-03-05",
            "12/03/2024 08:15": "2024-03-12",
            "31/02/2024": None,
            "ayer": None,
            "": None,
            None: None,
        }
        for raw, expected in cases.items():
            with self.subTest(raw=raw):
                self.assertEqual(normalize_date(raw), expected)


if __name__ == "__main__":
    unittest.main()
