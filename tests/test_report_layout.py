"""
Reference-range evaluation and table row preparation.
"""
from datetime import date, datetime
from types import SimpleNamespace

import pytest

from app.services import report_layout as L
from app.services.report_layout import (ReportDocument, evaluate_range,
                                        fmt_datetime, prepare_rows)


class TestEvaluateRange:

    @pytest.mark.parametrize("value,ref,expected", [
        ("14.5", "12-16", None),
        ("18", "12-16", "high"),
        ("10", "12-16", "low"),
        ("16", "12-16", None),
        ("12", "12-16", None),
        (" 3.5 ", "3.5 - 5.0", None),
        ("-1", "-0.5-2", "low"),
        ("7", "<5", None),
        ("positive", "12-16", None),
        ("", "12-16", None),
        ("14", "", None),
        ("14", None, None),
    ])
    def test_cases(self, value, ref, expected):
        assert evaluate_range(value, ref) == expected

    @pytest.mark.parametrize("value,ref,expected", [
        ("20", "12-16 g/dL", "high"),
        ("130", "Fasting: 70-100\nPost-prandial: 70-140", "high"),
        ("17 g/dL", "12-16", "high"),
        ("9.5mg", "10 - 20", "low"),
        (".5", "1-2", "low"),
        ("14 g/dL", "M: 13-17 F: 12-15", None),
        (95, "70-110", None),
    ])
    def test_units_and_labels_around_numbers(self, value, ref, expected):
        assert evaluate_range(value, ref) == expected


class TestPrepareRows:

    def test_blank_values_are_dropped(self):
        rows = prepare_rows([
            {"label": "Hemoglobin", "value": "14.5", "unit": "g/dL",
             "refRange": "12-16"},
            {"label": "WBC", "value": "   "},
            {"label": "Platelets", "value": None},
        ])
        assert [r.label for r in rows] == ["Hemoglobin"]
        assert rows[0].unit == "g/dL"
        assert rows[0].ref_range == "12-16"
        assert rows[0].abnormal is None
        assert rows[0].arrow == ""

    def test_empty_input_gives_single_placeholder(self):
        rows = prepare_rows([])
        assert len(rows) == 1
        assert rows[0].placeholder
        assert rows[0].label == L.NO_RESULTS_TEXT

    def test_all_blank_gives_placeholder(self):
        rows = prepare_rows([{"label": "A", "value": ""}])
        assert rows[0].placeholder

    def test_arrows(self):
        high, low = prepare_rows([
            {"label": "A", "value": "20", "refRange": "1-10"},
            {"label": "B", "value": "0.5", "refRange": "1-10"},
        ])
        assert high.abnormal == "high" and high.arrow == L.ARROW_UP
        assert low.abnormal == "low" and low.arrow == L.ARROW_DOWN

    def test_snake_case_objects(self):
        p = SimpleNamespace(label="Glucose", value=95, unit="mg/dL",
                            ref_range="70-110")
        row = prepare_rows([p])[0]
        assert row.value == "95"
        assert row.ref_range == "70-110"

    def test_label_falls_back_to_id(self):
        assert prepare_rows([{"id": "hb", "value": "1"}])[0].label == "hb"


class TestGeometry:

    def test_column_widths_cover_table(self):
        widths = L.column_widths_pt(500)
        assert sum(widths) == pytest.approx(500)
        assert widths[0] == pytest.approx(150)

    def test_column_titles(self):
        assert L.COLUMN_TITLES == ("Parameter", "Result", "Unit",
                                   "Reference Range")


class TestDocument:

    def _make_doc(self, **kw):
        base = dict(report_id="R1", patient_name="Jane", patient_age="",
                    patient_gender="", referred_by="Self", test_name="CBC")
        base.update(kw)
        return ReportDocument(**base)

    def test_dates(self):
        doc = self._make_doc(collected_at=datetime(2024, 3, 5, 14, 30),
                             reported_at=None)
        assert doc.collected_text == "05-Mar-2024 02:30 PM"
        assert doc.reported_text == "-"

    def test_fmt_datetime_variants(self):
        assert fmt_datetime(date(2024, 1, 2)) == "02-Jan-2024"
        assert fmt_datetime("2024-01-02T08:00:00Z") == "02-Jan-2024 08:00 AM"
        assert fmt_datetime("yesterday") == "yesterday"
