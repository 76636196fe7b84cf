"""
Tests for the line-item tax calculator.

Covers:
- Single and multiple taxes, mixed taxability
- Breakdown keyed by tax name (merging, first-rate rule, order)
- Inactive rules (zero rate, empty name) and unknown codes
- Rounding once per amount
- Legacy four-slot helpers
- Malformed input
"""

from decimal import Decimal

import pytest

from axioma_engines.tax import (
    DocumentTotals,
    LineItem,
    LineItemTaxCalculator,
    TaxRule,
    compute_bill_total,
    tax_rules_from_slots,
)
from axioma_kernel.domain.values import Money
from axioma_kernel.exceptions import (
    CurrencyMismatchError,
    InvalidCurrencyError,
    InvalidInputError,
)


def usd(amount: str) -> Money:
    return Money.of(amount, "USD")


def line(quantity: str, price: str, *codes: str) -> LineItem:
    return LineItem(
        quantity=Decimal(quantity),
        unit_price=usd(price),
        tax_codes=frozenset(codes),
    )


class TestSimpleDocumentTotals:
    """Tests for basic subtotal, tax and grand total."""

    def setup_method(self):
        self.calculator = LineItemTaxCalculator()
        self.vat = TaxRule(tax_code="VAT", tax_name="VAT", rate=Decimal("0.10"))

    def test_single_line_single_tax(self):
        """2 x 100.00 with VAT 10% -> 200.00 / 20.00 / 220.00."""
        totals = self.calculator.compute([line("2", "100.00", "VAT")], [self.vat])

        assert totals.subtotal == usd("200.00")
        assert len(totals.breakdown) == 1
        assert totals.breakdown[0].tax_name == "VAT"
        assert totals.breakdown[0].rate == Decimal("0.10")
        assert totals.breakdown[0].amount == usd("20.00")
        assert totals.grand_total == usd("220.00")
        assert totals.tax_total == usd("20.00")

    def test_rate_as_percent(self):
        rule = TaxRule(tax_code="ST", tax_name="State", rate=Decimal("0.0825"))
        assert rule.rate_percent == Decimal("8.25")

        totals = self.calculator.compute([line("1", "100.00", "VAT")], [self.vat])
        assert totals.breakdown[0].rate_percent == Decimal("10")

    def test_zero_lines(self):
        totals = self.calculator.compute([], [self.vat])

        assert totals.subtotal == usd("0")
        assert totals.breakdown == ()
        assert totals.grand_total == usd("0")
        assert totals.line_totals == ()

    def test_mixed_taxability(self):
        """Exempt lines count toward subtotal but accrue no tax."""
        lines = [
            line("1", "100.00", "VAT"),
            line("3", "10.00"),
        ]
        totals = self.calculator.compute(lines, [self.vat])

        assert totals.subtotal == usd("130.00")
        assert totals.tax_by_name("VAT") == usd("10.00")
        assert totals.grand_total == usd("140.00")

    def test_line_totals_are_rounded_per_line(self):
        totals = self.calculator.compute(
            [line("3", "0.335"), line("1", "5.00")], []
        )
        assert totals.line_totals == (usd("1.01"), usd("5.00"))

    def test_negative_unit_price_reduces_tax(self):
        """Discount lines are taxed sign-preserving."""
        lines = [
            line("1", "100.00", "VAT"),
            line("1", "-20.00", "VAT"),
        ]
        totals = self.calculator.compute(lines, [self.vat])

        assert totals.subtotal == usd("80.00")
        assert totals.tax_by_name("VAT") == usd("8.00")
        assert totals.grand_total == usd("88.00")

    def test_returns_document_totals(self):
        totals = self.calculator.compute([line("1", "1.00")], [])
        assert isinstance(totals, DocumentTotals)
        assert totals.currency.code == "USD"


class TestMultipleTaxes:
    """Tests for breakdown grouping and ordering."""

    def setup_method(self):
        self.calculator = LineItemTaxCalculator()

    def test_two_distinct_taxes(self):
        rules = [
            TaxRule(tax_code="STATE", tax_name="State Tax", rate=Decimal("0.06")),
            TaxRule(tax_code="LOCAL", tax_name="Local Tax", rate=Decimal("0.02")),
        ]
        totals = self.calculator.compute([line("1", "100.00", "STATE", "LOCAL")], rules)

        assert [b.tax_name for b in totals.breakdown] == ["State Tax", "Local Tax"]
        assert totals.tax_total == usd("8.00")
        assert totals.grand_total == usd("108.00")

    def test_rules_sharing_name_merge(self):
        """Two codes with the same name produce one breakdown entry."""
        rules = [
            TaxRule(tax_code="TAX1", tax_name="GST", rate=Decimal("0.05")),
            TaxRule(tax_code="TAX2", tax_name="GST", rate=Decimal("0.07")),
        ]
        lines = [
            line("1", "100.00", "TAX1"),
            line("1", "100.00", "TAX2"),
        ]
        totals = self.calculator.compute(lines, rules)

        assert len(totals.breakdown) == 1
        assert totals.breakdown[0].amount == usd("12.00")

    def test_merged_entry_reports_first_encountered_rate(self):
        rules = [
            TaxRule(tax_code="TAX1", tax_name="GST", rate=Decimal("0.05")),
            TaxRule(tax_code="TAX2", tax_name="GST", rate=Decimal("0.07")),
        ]
        totals = self.calculator.compute([line("1", "10.00", "TAX2", "TAX1")], rules)

        # TAX1 is declared first, so it is encountered first on the line
        assert totals.breakdown[0].rate == Decimal("0.05")

    def test_breakdown_order_is_first_encounter(self):
        rules = [
            TaxRule(tax_code="A", tax_name="Alpha", rate=Decimal("0.01")),
            TaxRule(tax_code="B", tax_name="Beta", rate=Decimal("0.02")),
        ]
        lines = [
            line("1", "100.00", "B"),
            line("1", "100.00", "A"),
        ]
        totals = self.calculator.compute(lines, rules)

        assert [b.tax_name for b in totals.breakdown] == ["Beta", "Alpha"]

    def test_tax_by_name_missing_returns_zero(self):
        totals = self.calculator.compute([line("1", "10.00")], [])
        assert totals.tax_by_name("VAT") == usd("0")


class TestInactiveRules:
    """Tests for rules that must not produce breakdown entries."""

    def setup_method(self):
        self.calculator = LineItemTaxCalculator()

    def test_zero_rate_ignored(self):
        rules = [TaxRule(tax_code="T", tax_name="Zero", rate=Decimal("0"))]
        totals = self.calculator.compute([line("1", "100.00", "T")], rules)

        assert totals.breakdown == ()
        assert totals.grand_total == usd("100.00")

    def test_empty_name_with_rate_ignored(self):
        """A named rate with no name means no tax configured."""
        rules = [TaxRule(tax_code="T", tax_name="", rate=Decimal("0.05"))]
        totals = self.calculator.compute([line("1", "100.00", "T")], rules)

        assert totals.breakdown == ()
        assert totals.grand_total == usd("100.00")

    def test_whitespace_name_treated_as_empty(self):
        rule = TaxRule(tax_code="T", tax_name="   ", rate=Decimal("0.05"))
        assert rule.tax_name == ""
        assert not rule.is_active

    def test_unknown_line_code_ignored(self):
        rules = [TaxRule(tax_code="VAT", tax_name="VAT", rate=Decimal("0.10"))]
        totals = self.calculator.compute([line("1", "100.00", "NOPE")], rules)

        assert totals.breakdown == ()

    def test_empty_name_logged_at_debug(self, captured_logs):
        rules = [TaxRule(tax_code="T", tax_name="", rate=Decimal("0.05"))]
        self.calculator.compute([line("1", "100.00", "T")], rules)

        logs = captured_logs()
        skipped = [r for r in logs if r["message"] == "tax_rule_skipped_unnamed"]
        assert skipped
        assert skipped[0]["level"] == "DEBUG"
        assert skipped[0]["tax_code"] == "T"


class TestRounding:
    """Tests for the round-once policy."""

    def setup_method(self):
        self.calculator = LineItemTaxCalculator()

    def test_tax_computed_on_unrounded_line_subtotal(self):
        """3 x 0.335 = 1.005; 10% of 1.005 = 0.1005 -> 0.10."""
        rules = [TaxRule(tax_code="T", tax_name="Tax", rate=Decimal("0.10"))]
        totals = self.calculator.compute([line("3", "0.335", "T")], rules)

        assert totals.subtotal == usd("1.01")
        assert totals.tax_by_name("Tax") == usd("0.10")
        # round(1.005 + 0.10) = 1.11
        assert totals.grand_total == usd("1.11")

    def test_breakdown_rounded_once_after_accumulation(self):
        """Three lines each accruing 0.004 sum to 0.012 -> 0.01, not 0.00."""
        rules = [TaxRule(tax_code="T", tax_name="Tax", rate=Decimal("0.0004"))]
        lines = [line("1", "10.00", "T") for _ in range(3)]
        totals = self.calculator.compute(lines, rules)

        assert totals.tax_by_name("Tax") == usd("0.01")

    def test_half_rounds_away_from_zero(self):
        rules = [TaxRule(tax_code="T", tax_name="Tax", rate=Decimal("0.05"))]
        totals = self.calculator.compute([line("1", "0.10", "T")], rules)

        # 0.005 -> 0.01
        assert totals.tax_by_name("Tax") == usd("0.01")

    def test_negative_half_rounds_away_from_zero(self):
        rules = [TaxRule(tax_code="T", tax_name="Tax", rate=Decimal("0.05"))]
        totals = self.calculator.compute([line("1", "-0.10", "T")], rules)

        assert totals.tax_by_name("Tax") == usd("-0.01")

    def test_unrounded_grand_total_kept(self):
        rules = [TaxRule(tax_code="T", tax_name="Tax", rate=Decimal("0.0825"))]
        totals = self.calculator.compute([line("1", "9.99", "T")], rules)

        assert totals.unrounded_grand_total.amount == Decimal("9.99") + Decimal("9.99") * Decimal("0.0825")
        assert totals.grand_total == usd("10.81")

    def test_zero_decimal_currency(self):
        calculator = LineItemTaxCalculator("JPY")
        rules = [TaxRule(tax_code="CT", tax_name="Consumption Tax", rate=Decimal("0.10"))]
        item = LineItem(
            quantity=Decimal("1"),
            unit_price=Money.of("1005", "JPY"),
            tax_codes=frozenset({"CT"}),
        )
        totals = calculator.compute([item], rules)

        assert totals.tax_by_name("Consumption Tax") == Money.of("101", "JPY")
        assert totals.grand_total == Money.of("1106", "JPY")


class TestLegacySlots:
    """Tests for the four positional tax slot helpers."""

    def test_slot_rules_get_positional_codes(self):
        rules = tax_rules_from_slots([
            ("State", Decimal("0.06")),
            ("County", "0.01"),
            (None, 0),
            ("", "0.05"),
        ])

        assert [r.tax_code for r in rules] == ["TAX1", "TAX2", "TAX3", "TAX4"]
        assert rules[2].tax_name == ""
        assert not rules[3].is_active

    def test_slot_flags_select_codes(self):
        item = LineItem.from_slot_flags(
            quantity=Decimal("1"),
            unit_price=usd("50.00"),
            flags=[True, False, True, False],
        )
        assert item.tax_codes == frozenset({"TAX1", "TAX3"})

    def test_slot_helpers_compute_together(self):
        rules = tax_rules_from_slots([("State", "0.06"), ("County", "0.01")])
        lines = [
            LineItem.from_slot_flags(Decimal("2"), usd("50.00"), [True, True]),
            LineItem.from_slot_flags(Decimal("1"), usd("20.00"), [False, True]),
        ]
        totals = LineItemTaxCalculator().compute(lines, rules)

        assert totals.subtotal == usd("120.00")
        assert totals.tax_by_name("State") == usd("6.00")
        assert totals.tax_by_name("County") == usd("1.20")
        assert totals.grand_total == usd("127.20")

    def test_more_than_four_slots(self):
        rules = tax_rules_from_slots([(f"T{i}", "0.01") for i in range(1, 7)])
        assert rules[-1].tax_code == "TAX6"


class TestBillTotal:
    """Tests for untaxed purchase documents."""

    def test_bill_total_sums_lines(self):
        lines = [line("2", "12.50"), line("1", "0.005")]
        assert compute_bill_total(lines) == usd("25.01")

    def test_bill_ignores_tax_codes(self):
        assert compute_bill_total([line("1", "10.00", "VAT")]) == usd("10.00")

    def test_empty_bill(self):
        assert compute_bill_total([]) == usd("0")


class TestMalformedInput:
    """Tests for input validation."""

    def test_negative_quantity_rejected(self):
        with pytest.raises(InvalidInputError) as exc_info:
            line("-1", "10.00")
        assert exc_info.value.field == "quantity"

    def test_float_quantity_rejected(self):
        with pytest.raises(InvalidInputError):
            LineItem(quantity=1.5, unit_price=usd("10.00"))

    def test_non_money_unit_price_rejected(self):
        with pytest.raises(InvalidInputError):
            LineItem(quantity=Decimal("1"), unit_price=Decimal("10.00"))

    def test_negative_rate_rejected(self):
        with pytest.raises(InvalidInputError) as exc_info:
            TaxRule(tax_code="T", tax_name="Tax", rate=Decimal("-0.01"))
        assert exc_info.value.field == "rate"

    def test_float_rate_rejected(self):
        with pytest.raises(InvalidInputError):
            TaxRule(tax_code="T", tax_name="Tax", rate=0.1)

    def test_non_numeric_rate_rejected(self):
        with pytest.raises(InvalidInputError):
            TaxRule(tax_code="T", tax_name="Tax", rate="ten percent")

    def test_missing_code_rejected(self):
        with pytest.raises(InvalidInputError):
            TaxRule(tax_code="", tax_name="Tax", rate=Decimal("0.1"))

    def test_duplicate_codes_rejected(self):
        rules = [
            TaxRule(tax_code="T", tax_name="A", rate=Decimal("0.01")),
            TaxRule(tax_code="T", tax_name="B", rate=Decimal("0.02")),
        ]
        with pytest.raises(InvalidInputError):
            LineItemTaxCalculator().compute([line("1", "1.00", "T")], rules)

    def test_mixed_currency_rejected(self):
        item = LineItem(quantity=Decimal("1"), unit_price=Money.of("10.00", "EUR"))
        with pytest.raises(CurrencyMismatchError) as exc_info:
            LineItemTaxCalculator("USD").compute([item], [])
        assert exc_info.value.field == "lines[0].unit_price"

    def test_unknown_currency_rejected(self):
        with pytest.raises(InvalidCurrencyError):
            LineItemTaxCalculator("ZZZ")


class TestTaxLogging:
    """Tests for structured log output."""

    def test_started_and_completed_logged(self, captured_logs):
        rules = [TaxRule(tax_code="VAT", tax_name="VAT", rate=Decimal("0.10"))]
        LineItemTaxCalculator().compute([line("2", "100.00", "VAT")], rules)

        logs = captured_logs()
        messages = [r["message"] for r in logs]
        assert "tax_calculation_started" in messages
        completed = next(r for r in logs if r["message"] == "tax_calculation_completed")
        assert completed["grand_total"] == {"amount": "220.00", "currency": "USD"}
        assert completed["tax_total"] == {"amount": "20.00", "currency": "USD"}
        assert "duration_ms" in completed
