"""
End-to-end tests of the invoice pipeline.
"""

import json

import pytest

from ecoinvoice.emissions import Unit
from ecoinvoice.extraction import ActivityHints
from ecoinvoice.pipeline import InvoicePipeline


@pytest.fixture
def pipeline():
    return InvoicePipeline()


class TestInvoicePipeline:
    """Text in, header + enriched lines + document estimate out."""

    def test_diesel_invoice(self, pipeline, diesel_invoice_text):
        """Labeled total and a diesel line end to end"""
        analysis = pipeline.process_text(diesel_invoice_text)

        assert analysis.header.total_amount == 12450.00
        assert len(analysis.lines) == 1
        line = analysis.lines[0]
        assert line.category == "fuel_diesel"
        assert line.quantity == 200
        assert line.unit_normalized == Unit.LITER
        assert line.co2_kg == pytest.approx(536.0)
        assert analysis.emissions.method == "fuel_volume"
        assert analysis.co2_kg == pytest.approx(536.0)

    def test_utility_invoice(self, pipeline, electricity_invoice_text):
        """Energy lines use the grid factor"""
        analysis = pipeline.process_text(electricity_invoice_text, source="fjordkraft.txt")

        assert analysis.source == "fjordkraft.txt"
        assert analysis.emissions.method == "energy_grid"
        assert analysis.emissions.co2_kg == pytest.approx(212.5)
        assert [l.co2_kg for l in analysis.lines] == [pytest.approx(212.5), None]
        assert analysis.lines_co2_kg == pytest.approx(212.5)

    def test_external_hints(self, pipeline, electricity_invoice_text):
        """Upstream CO2 takes precedence over the text"""
        analysis = pipeline.process_text(electricity_invoice_text, hints=ActivityHints(co2_kg=99.0))
        assert analysis.emissions.method == "direct"
        assert analysis.co2_kg == 99.0

    def test_line_sum_fallback(self, pipeline):
        """Without document hints the line sum is the document CO2"""
        analysis = pipeline.process_text("Kontorpapir 10 kg 450,00")
        assert analysis.emissions.co2_kg is None
        assert analysis.co2_kg == pytest.approx(11.0)

    def test_nothing_found(self, pipeline):
        """Unusable text gives absent values, not zeros"""
        analysis = pipeline.process_text("Lorem ipsum")
        assert analysis.lines == []
        assert analysis.co2_kg is None
        assert analysis.header.total_amount is None

    def test_process_file(self, pipeline, tmp_path, diesel_invoice_text):
        """Files go through the OCR engine first"""
        path = tmp_path / "diesel.txt"
        path.write_text(diesel_invoice_text, encoding="utf-8")

        analysis = pipeline.process_file(path)
        assert analysis.source == str(path)
        assert analysis.co2_kg == pytest.approx(536.0)

    def test_json(self, pipeline, diesel_invoice_text):
        """The analysis serializes to JSON"""
        data = json.loads(pipeline.process_text(diesel_invoice_text).to_json())
        assert data["header"]["total_amount"] == 12450.0
        assert data["lines"][0]["unit_normalized"] == "liter"
        assert data["lines"][0]["co2_source"] == "fuel_volume"
        assert data["co2_kg"] == pytest.approx(536.0)
