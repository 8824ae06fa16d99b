"""
Tests for header field extraction, total resolution and line segmentation.
"""

from datetime import date

import pytest

from ecoinvoice.emissions import Unit
from ecoinvoice.extraction import (
    FieldExtractor,
    InvoiceExtractor,
    LineSegmenter,
    TotalResolver,
)
from ecoinvoice.postprocessor import normalize_text


class TestFieldExtractorVendor:
    """Vendor strategies: label, line above org number, document head."""

    def test_vendor_from_label(self):
        """An explicit vendor label wins"""
        lines = ["Faktura 12345", "Leverandør: Bygg og Anlegg AS", "Org.nr: 912 345 678"]
        assert FieldExtractor().vendor(lines) == "Bygg og Anlegg AS"

    def test_vendor_above_org_line(self):
        """The line directly above the organization number is the vendor"""
        lines = ["FAKTURA", "Fjordkraft AS", "Org.nr: 987 654 321"]
        assert FieldExtractor().vendor(lines) == "Fjordkraft AS"

    def test_vendor_from_head_skips_noise_and_addresses(self):
        """Noise keywords and address lines are skipped in the head window"""
        lines = ["FAKTURA", "Storgata 5", "Hansen Rør AS", "Side 1 av 2"]
        assert FieldExtractor().vendor(lines) == "Hansen Rør AS"

    def test_vendor_from_head_skips_item_lines(self):
        """Lines with an amount or a quantity and unit are not vendors"""
        extractor = FieldExtractor()
        assert extractor.vendor(["Diesel 200 liter", "Kaffe 3 stk 120,00", "Statoil Fuel AS"]) == "Statoil Fuel AS"
        assert extractor.vendor(["Diesel 200 liter"]) is None
        assert not extractor.is_item_line("Fjordkraft AS")
        assert not extractor.is_item_line("Bergen, 15.03.2024")

    def test_postal_code_line_is_address(self):
        """A four-digit postal code followed by a town is an address"""
        extractor = FieldExtractor()
        assert extractor.is_address("5035 Bergen")
        assert not extractor.is_address("Hansen Rør AS")

    def test_no_vendor(self):
        """Only noise gives no vendor"""
        assert FieldExtractor().vendor(["FAKTURA", "12345678"]) is None


class TestFieldExtractorIdentifiers:
    """Invoice number and organization number."""

    def test_invoice_number(self):
        """The token after an invoice label is the number"""
        lines = ["Fakturadato: 15.03.2024", "Fakturanr: 2024-10023"]
        assert FieldExtractor().invoice_number(lines) == "2024-10023"

    def test_invoice_number_english(self):
        """English labels are recognized"""
        assert FieldExtractor().invoice_number(["Invoice No. INV-4711"]) == "INV-4711"

    def test_labeled_org_number(self):
        """A labeled org number is normalized to nine digits"""
        assert FieldExtractor().organization_id(["Org.nr: NO 987 654 321 MVA"]) == "987654321"

    def test_bare_org_number_skips_bank_lines(self):
        """The bare search ignores lines with bank details"""
        lines = ["Kontonr: 1234 56 78901", "Foretaksregisteret 912345678"]
        assert FieldExtractor().organization_id(lines) == "912345678"

    def test_account_number_is_not_org_number(self):
        """Digits embedded in a longer number are not an org number"""
        assert FieldExtractor().organization_id(["Ref 12345678901"]) is None


class TestFieldExtractorDates:
    """Issue date strategy chain."""

    def test_labeled_date_skips_due_date(self):
        """Due-date lines are not the issue date"""
        lines = ["Forfallsdato: 30.03.2024", "Fakturadato: 15.03.2024"]
        assert FieldExtractor().issue_date(lines) == date(2024, 3, 15)

    def test_invalid_date_is_absent(self):
        """An impossible date yields None rather than a mangled date"""
        assert FieldExtractor().issue_date(["Fakturadato: 45.13.2024"]) is None

    def test_iso_date(self):
        """ISO dates are found when no day-first date exists"""
        assert FieldExtractor().issue_date(["Invoice date 2024-03-15"]) == date(2024, 3, 15)

    def test_textual_date(self):
        """Month-name dates are the last strategy"""
        assert FieldExtractor().issue_date(["Bergen, 15. mars 2024"]) == date(2024, 3, 15)


class TestFieldExtractorCurrencyAndHints:
    """Currency detection and activity hints."""

    @pytest.mark.parametrize("text, expected", [
        ("Total 100 EUR", "EUR"),
        ("Sum 100 €", "EUR"),
        ("Totalt kr 100", "NOK"),
        ("Total 100", "NOK"),
        ("Amount due $ 40", "USD"),
    ])
    def test_currency(self, text, expected):
        """ISO codes first, then words and symbols, then the default"""
        assert FieldExtractor().currency(text) == expected

    def test_default_currency_override(self):
        """The home currency can be set explicitly"""
        assert FieldExtractor(default_currency="SEK").currency("Total 100") == "SEK"

    def test_activity_hints(self):
        """kWh, MWh, liters, m3 and stated CO2 are picked up"""
        hints = FieldExtractor().activity_hints([
            "Forbruk 2,5 MWh",
            "Diesel 200 liter",
            "Gass 40 m3",
            "Utslipp 1,2 t CO2e",
        ])
        assert hints.energy_kwh == pytest.approx(2500.0)
        assert hints.fuel_liters == 200.0
        assert hints.gas_m3 == 40.0
        assert hints.co2_kg == pytest.approx(1200.0)

    def test_no_hints(self):
        """Text without quantities gives empty hints"""
        assert FieldExtractor().activity_hints(["Konsulenttimer 4 800,00"]).is_empty


class TestTotalResolver:
    """Tiered total-amount resolution."""

    def test_strong_label_beats_currency_marker(self):
        """A labeled total wins over a larger currency-marked amount"""
        lines = ["Frakt NOK 9 000,00", "Sum å betale: 500,00"]
        assert TotalResolver().resolve(lines) == (500.0, 1)

    def test_label_on_previous_line(self):
        """A label without amount takes the amount on the next line"""
        lines = ["Beløp å betale", "kr 1 250,00"]
        assert TotalResolver().resolve(lines) == (1250.0, 2)

    def test_currency_marker_excludes_tax_lines(self):
        """Tier 3 ignores tax lines"""
        lines = ["MVA NOK 5 000,00", "Varer NOK 300,00"]
        assert TotalResolver().resolve(lines) == (300.0, 3)

    def test_full_scan(self):
        """Without labels or markers the largest plausible amount wins"""
        lines = ["Konsulenttimer 4 800,00", "Reise 950,00"]
        assert TotalResolver().resolve(lines) == (4800.0, 4)

    def test_account_number_never_becomes_total(self):
        """An 11-digit account number on a money-free line is ignored"""
        lines = ["Betal til 1234 56 78901", "Ref 12345678901"]
        assert TotalResolver().resolve(lines) == (None, None)

    def test_bank_line_ignored_under_label(self):
        """A labeled line with bank details is not a total"""
        lines = ["Å betale til konto 1234.56.7890", "Varer 120,00"]
        assert TotalResolver().resolve(lines) == (120.0, 4)

    def test_percentages_and_dates_are_not_totals(self):
        """Percentages and dates on a total line are skipped"""
        assert TotalResolver().resolve(["Totalt 25% 15.03.2024 400,00"]) == (400.0, 1)

    def test_unit_with_digit_before_amount(self):
        """Units such as m3 and CO2 do not merge into the next amount"""
        resolver = TotalResolver()
        assert resolver.resolve(["Å betale for 40 m3 vann: 400,00"]) == (400.0, 1)
        assert resolver.resolve(["Vann 40 m3 400,00 NOK"]) == (400.0, 3)
        assert resolver.resolve(["Avgift CO2 450,00 kr"]) == (450.0, 3)
        assert resolver.resolve(["Vann 40 m3 400,00"]) == (400.0, 4)

    def test_deterministic(self, electricity_invoice_text):
        """Repeated calls give identical results"""
        lines = normalize_text(electricity_invoice_text).lines
        resolver = TotalResolver()
        extractor = FieldExtractor()
        assert resolver.resolve(lines) == resolver.resolve(lines)
        assert extractor.vendor(lines) == extractor.vendor(lines)
        assert extractor.issue_date(lines) == extractor.issue_date(lines)


class TestLineSegmenter:
    """Line item detection, classification and parsing."""

    def test_quantity_and_unit(self):
        """Quantity and unit are parsed and normalized"""
        line = LineSegmenter().segment(["Diesel 200 liter"])[0]
        assert line.rule.category == "fuel_diesel"
        assert line.item.description == "Diesel"
        assert line.item.quantity == 200.0
        assert line.item.unit_raw == "liter"
        assert line.item.unit_normalized == Unit.LITER

    def test_grams_scale_to_kilograms(self):
        """Gram quantities become kilograms"""
        line = LineSegmenter().segment(["Frossen pommes 2500 g 89,90"])[0]
        assert line.rule.category == "packaged_goods"
        assert line.item.quantity == pytest.approx(2.5)
        assert line.item.unit_normalized == Unit.KILOGRAM
        assert line.item.amount == 89.9

    def test_amount_without_quantity(self):
        """A line without unit keeps its amount and has no quantity"""
        line = LineSegmenter().segment(["Nettleie 312,50"])[0]
        assert line.rule.category == "electricity"
        assert line.item.quantity is None
        assert line.item.unit_normalized is None
        assert line.item.amount == 312.5

    def test_totals_and_org_lines_are_not_items(self):
        """Total, tax and org lines are excluded even with keywords"""
        lines = ["Total strøm 1 000,00", "MVA strøm 250,00", "Org.nr strøm 987654321"]
        assert LineSegmenter().segment(lines) == []

    def test_unclassified_lines_are_dropped(self):
        """Lines without a category keyword are not items"""
        assert LineSegmenter().segment(["Diverse 100,00", "ab"]) == []

    def test_document_order(self):
        """Items keep document order"""
        lines = ["Strøm 1 250 kWh 1 875,00", "Diesel 40 l 800,00"]
        assert [l.rule.category for l in LineSegmenter().segment(lines)] == ["electricity", "fuel_diesel"]


class TestInvoiceExtractor:
    """Header and line extraction together."""

    def test_end_to_end_fuel(self, diesel_invoice_text):
        """Labeled total and a diesel line"""
        result = InvoiceExtractor().extract(diesel_invoice_text)
        assert result.header.total_amount == 12450.0
        assert result.header.total_tier == 1
        assert result.header.currency == "NOK"
        assert result.header.fuel_liters == 200.0
        assert [l.rule.category for l in result.lines] == ["fuel_diesel"]

    def test_utility_invoice(self, electricity_invoice_text):
        """A complete utility invoice"""
        header = InvoiceExtractor().extract(electricity_invoice_text).header
        assert header.vendor == "Fjordkraft AS"
        assert header.organization_id == "987654321"
        assert header.invoice_number == "2024-10023"
        assert header.issue_date == date(2024, 3, 15)
        assert header.total_amount == 2734.38
        assert header.energy_kwh == 1250.0
        assert header.missing_fields == []

    def test_empty_text(self):
        """Empty input gives an empty header, never zeros"""
        result = InvoiceExtractor().extract("")
        assert result.header.total_amount is None
        assert result.header.vendor is None
        assert result.header.currency == "NOK"
        assert result.lines == ()
        assert "total_amount" in result.header.missing_fields

    def test_json_serialization(self, electricity_invoice_text):
        """Dates are written as ISO strings"""
        result = InvoiceExtractor().extract(electricity_invoice_text)
        assert '"issue_date": "2024-03-15"' in result.to_json()
